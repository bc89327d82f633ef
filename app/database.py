from __future__ import annotations

import datetime
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Integer,
    String,
    UniqueConstraint,
    create_engine,
    delete,
    func,
    select,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from models import DayRecord, Worker as WorkerRecord
from roles import canonical_role


DATA_DIR = Path(__file__).resolve().parent / "data"
DATA_DIR.mkdir(parents=True, exist_ok=True)
ROTATION_DATABASE_URL = f"sqlite:///{(DATA_DIR / 'rotation.db').as_posix()}"
WORKER_STATUS_CHOICES = {"active", "inactive"}
MOVE_DIRECTIONS = {"up": -1, "down": 1}


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class Base(DeclarativeBase):
    """Metadata for roster, schedule and policy tables living in rotation.db."""

    pass


class Worker(Base):
    __tablename__ = "workers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    roles: Mapped[str] = mapped_column(String(120), default="", nullable=False)
    status: Mapped[str] = mapped_column(String(12), default="active", nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    @property
    def role_list(self) -> List[str]:
        return [role.strip() for role in self.roles.split(",") if role.strip()]

    @role_list.setter
    def role_list(self, roles: Iterable[str]) -> None:
        self.roles = ", ".join(sorted({role.strip() for role in roles if role.strip()}))

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def to_record(self) -> WorkerRecord:
        return WorkerRecord(name=self.name, roles=tuple(self.role_list), is_active=self.is_active)


class DayEntry(Base):
    __tablename__ = "day_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    record_uid: Mapped[str] = mapped_column(String(40), nullable=False, unique=True)
    date: Mapped[str] = mapped_column(String(10), nullable=False, unique=True)
    day_name: Mapped[str] = mapped_column(String(24), nullable=False, default="")
    day_worker: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    night_worker: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    supervisor: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    is_holiday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    original_day_worker: Mapped[str | None] = mapped_column(String(120), nullable=True)
    original_night_worker: Mapped[str | None] = mapped_column(String(120), nullable=True)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    def to_record(self) -> DayRecord:
        return DayRecord(
            id=self.record_uid,
            date=self.date,
            day_name=self.day_name,
            day_worker=self.day_worker,
            night_worker=self.night_worker,
            supervisor=self.supervisor,
            is_holiday=bool(self.is_holiday),
            original_day_worker=self.original_day_worker,
            original_night_worker=self.original_night_worker,
        )


class Policy(Base):
    __tablename__ = "policies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    paramsJSON: Mapped[str] = mapped_column(String(8000), nullable=False, default="{}")
    lastEditedBy: Mapped[str] = mapped_column(String(60), nullable=False, default="system")
    lastEditedAt: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        UniqueConstraint("name", name="uq_policies_name"),
    )

    def params_dict(self) -> Dict:
        try:
            value = json.loads(self.paramsJSON or "{}")
            if isinstance(value, dict):
                return value
        except json.JSONDecodeError:
            pass
        return {}


class MonthLock(Base):
    """A locked month refuses generation and regeneration."""

    __tablename__ = "month_locks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    month: Mapped[str] = mapped_column(String(7), nullable=False, unique=True)
    locked_by: Mapped[str] = mapped_column(String(60), nullable=False, default="system")
    locked_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class AuditLog(Base):
    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(60), nullable=False)
    action: Mapped[str] = mapped_column(String(60), nullable=False)
    target_type: Mapped[str] = mapped_column(String(32), nullable=False, default="DayEntry")
    target_id: Mapped[str | None] = mapped_column(String(40), nullable=True)
    payloadJSON: Mapped[str] = mapped_column(String(2000), nullable=False, default="{}")
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


rotation_engine = create_engine(
    ROTATION_DATABASE_URL,
    echo=False,
    future=True,
)
SessionLocal = sessionmaker(bind=rotation_engine, expire_on_commit=False, future=True)


def init_database() -> None:
    Base.metadata.create_all(rotation_engine)


# ---------------------------------------------------------------------------
# Roster


def list_workers(session, only_active: bool = False) -> List[Worker]:
    stmt = select(Worker).order_by(Worker.position.asc(), Worker.id.asc())
    if only_active:
        stmt = stmt.where(Worker.status == "active")
    return list(session.scalars(stmt))


def get_roster(session) -> List[WorkerRecord]:
    """Return the full roster (inactive included) in rotation order."""
    return [worker.to_record() for worker in list_workers(session)]


def upsert_worker(session, name: str, roles: Iterable[str], *, status: str = "active") -> Worker:
    label = (name or "").strip()
    if not label:
        raise ValueError("Worker name is required.")
    if status not in WORKER_STATUS_CHOICES:
        raise ValueError(f"Unsupported worker status '{status}'.")
    worker = session.scalars(select(Worker).where(Worker.name == label)).first()
    if not worker:
        next_position = session.execute(select(func.max(Worker.position))).scalar()
        worker = Worker(name=label, position=(next_position or 0) + 1)
        session.add(worker)
    worker.role_list = roles
    worker.status = status
    session.commit()
    return worker


def set_worker_active(session, name: str, active: bool) -> Worker:
    worker = session.scalars(select(Worker).where(Worker.name == name)).first()
    if not worker:
        raise ValueError(f"Worker '{name}' not found.")
    worker.status = "active" if active else "inactive"
    session.commit()
    return worker


def delete_worker(session, name: str) -> None:
    """Remove a worker from the roster. Stored day entries keep the name."""
    worker = session.scalars(select(Worker).where(Worker.name == name)).first()
    if not worker:
        raise ValueError(f"Worker '{name}' not found.")
    session.delete(worker)
    session.commit()


def move_worker(session, name: str, direction: str, role: str) -> List[Worker]:
    """Swap ``name`` with its neighbour among workers holding ``role``.

    Only the relative order of that role's workers changes; moving past either
    end is a no-op. Returns that role's workers in their new order.
    """
    step = MOVE_DIRECTIONS.get((direction or "").strip().lower())
    if step is None:
        raise ValueError(f"Unsupported direction '{direction}'.")
    label = canonical_role(role)
    if not label:
        raise ValueError(f"Unknown role '{role}'.")
    group = [worker for worker in list_workers(session) if label in worker.role_list]
    names = [worker.name for worker in group]
    if name not in names:
        raise ValueError(f"Worker '{name}' does not hold the {label} role.")
    index = names.index(name)
    target = index + step
    if not 0 <= target < len(group):
        return group
    current, neighbour = group[index], group[target]
    current.position, neighbour.position = neighbour.position, current.position
    session.commit()
    group[index], group[target] = neighbour, current
    return group


# ---------------------------------------------------------------------------
# Schedule


def get_schedule(session, *, before: Optional[str] = None) -> List[DayRecord]:
    """Return stored day records in date order, optionally only those dated before ``before``."""
    stmt = select(DayEntry).order_by(DayEntry.date.asc())
    if before:
        stmt = stmt.where(DayEntry.date < before)
    return [entry.to_record() for entry in session.scalars(stmt)]


def get_month_entries(session, month_prefix: str) -> List[DayRecord]:
    stmt = (
        select(DayEntry)
        .where(DayEntry.date.startswith(f"{month_prefix}/"))
        .order_by(DayEntry.date.asc())
    )
    return [entry.to_record() for entry in session.scalars(stmt)]


def append_day_records(session, records: Iterable[DayRecord]) -> int:
    count = 0
    for record in records:
        session.add(
            DayEntry(
                record_uid=record.id,
                date=record.date,
                day_name=record.day_name,
                day_worker=record.day_worker,
                night_worker=record.night_worker,
                supervisor=record.supervisor,
                is_holiday=record.is_holiday,
                original_day_worker=record.original_day_worker,
                original_night_worker=record.original_night_worker,
            )
        )
        count += 1
    session.commit()
    return count


def delete_month_entries(session, month_prefix: str, *, commit: bool = True) -> int:
    """Delete a month's entries; with ``commit=False`` the caller owns the transaction."""
    result = session.execute(delete(DayEntry).where(DayEntry.date.startswith(f"{month_prefix}/")))
    if commit:
        session.commit()
    return int(result.rowcount or 0)


def update_day_entry(session, record: DayRecord) -> DayEntry:
    entry = session.scalars(select(DayEntry).where(DayEntry.date == record.date)).first()
    if not entry:
        raise ValueError(f"No day entry stored for {record.date}.")
    entry.day_worker = record.day_worker
    entry.night_worker = record.night_worker
    entry.supervisor = record.supervisor
    entry.is_holiday = record.is_holiday
    entry.original_day_worker = record.original_day_worker
    entry.original_night_worker = record.original_night_worker
    session.commit()
    return entry


def is_month_locked(session, month_prefix: str) -> bool:
    return session.scalars(select(MonthLock).where(MonthLock.month == month_prefix)).first() is not None


def set_month_locked(session, month_prefix: str, locked: bool, *, actor: str = "system") -> bool:
    lock = session.scalars(select(MonthLock).where(MonthLock.month == month_prefix)).first()
    if locked and not lock:
        session.add(MonthLock(month=month_prefix, locked_by=actor or "system"))
    elif not locked and lock:
        session.delete(lock)
    session.commit()
    return locked


# ---------------------------------------------------------------------------
# Policy and audit


def upsert_policy(session, name: str, params_dict: Dict, *, edited_by: str = "system") -> Policy:
    existing: Optional[Policy] = session.execute(
        select(Policy).where(Policy.name == name)
    ).scalars().first()
    payload = params_dict if isinstance(params_dict, dict) else {}
    if existing:
        existing.paramsJSON = json.dumps(payload)
        existing.lastEditedBy = edited_by
        existing.lastEditedAt = _utcnow()
        session.commit()
        session.refresh(existing)
        return existing
    policy = Policy(
        name=name,
        paramsJSON=json.dumps(payload),
        lastEditedBy=edited_by,
        lastEditedAt=_utcnow(),
    )
    session.add(policy)
    session.commit()
    session.refresh(policy)
    return policy


def get_active_policy(session) -> Optional[Policy]:
    stmt = select(Policy).order_by(Policy.lastEditedAt.desc(), Policy.id.desc())
    return session.scalars(stmt).first()


def record_audit_log(
    session,
    user_id: str,
    action: str,
    target_type: str = "DayEntry",
    target_id: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    log = AuditLog(
        user_id=user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        payloadJSON=json.dumps(payload or {}),
    )
    session.add(log)
    session.commit()
    return log
