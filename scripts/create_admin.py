#!/usr/bin/env python
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from sqlalchemy import select

from internship_tracker.db import SessionLocal
from internship_tracker.models import User, UserRole
from internship_tracker.security import hash_password


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create or reset an ADMIN account.")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--name", default="Administrator")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    email = args.email.strip().lower()
    if len(args.password) < 6:
        print("ERROR: password must be at least 6 characters", file=sys.stderr)
        return 1

    with SessionLocal() as db:
        user = db.scalar(select(User).where(User.email == email))
        if user is None:
            user = User(name=args.name.strip(), email=email, role=UserRole.ADMIN)
            db.add(user)
            action = "created"
        else:
            user.role = UserRole.ADMIN
            action = "updated"
        user.password_hash = hash_password(args.password)
        db.commit()
        db.refresh(user)

    print(f"OK: admin {action} -> id={user.id} email={email}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
