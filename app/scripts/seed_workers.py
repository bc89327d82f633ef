from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Dict, List, Optional

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from database import SessionLocal, init_database, upsert_worker  # noqa: E402
from generator.api import generate_month  # noqa: E402
from policy import ensure_default_policy  # noqa: E402
from policy_defaults import DEFAULT_ROSTER  # noqa: E402
from roles import clean_roles  # noqa: E402


def normalize_roles(roles: List[str], worker_name: str) -> List[str]:
    cleaned = clean_roles(roles)
    missing = [role for role in roles if role not in cleaned]
    if missing:
        print(f"[seed] Skipping undefined roles for {worker_name}: {', '.join(missing)}")
    return cleaned


def seed_workers(roster: Optional[List[Dict]] = None, session_factory=SessionLocal) -> int:
    created = 0
    with session_factory() as session:
        for entry in roster or DEFAULT_ROSTER:
            roles = normalize_roles(entry.get("roles", []), entry["name"])
            if not roles:
                print(f"[seed] Skipping {entry['name']} because no valid roles remain.")
                continue
            upsert_worker(session, entry["name"], roles, status=entry.get("status", "active"))
            created += 1
    print(f"Seed complete. Saved {created} workers.")
    return created


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Seed the rotation roster and optionally build a first month.")
    parser.add_argument("--year", type=int, help="Year of the month to generate after seeding.")
    parser.add_argument("--month", help="Month code (01-12) to generate after seeding.")
    parser.add_argument("--leap-year", action="store_true", help="Treat the final month as 30 days.")
    args = parser.parse_args(argv)

    init_database()
    ensure_default_policy(SessionLocal)
    seed_workers()
    if args.year and args.month:
        summary = generate_month(SessionLocal, args.year, args.month, "seed", leap_year=args.leap_year)
        print(f"[seed] {summary['month']}: created {summary['days_created']} day(s).")
        for warning in summary["warnings"]:
            print(f"[seed] warning: {warning}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
