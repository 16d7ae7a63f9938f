"""Grant or revoke the admin role for an existing account.

    python -m addonhub.scripts.promote_admin alice
    python -m addonhub.scripts.promote_admin alice --revoke
"""
from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from ..db import Base, SessionLocal, engine
from ..models import User


def set_role(db: Session, identifier: str, role: str) -> Optional[User]:
    user = (
        db.query(User)
        .filter((User.username == identifier) | (User.email == identifier.lower()))
        .first()
    )
    if not user:
        return None
    user.role = role
    db.commit()
    db.refresh(user)
    return user


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Grant or revoke AddonHub admin rights.")
    parser.add_argument("identifier", help="Username or email of the account")
    parser.add_argument(
        "--revoke",
        action="store_true",
        help="Demote the account back to a regular user",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    role = "user" if args.revoke else "admin"

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        user = set_role(db, args.identifier, role)
    finally:
        db.close()

    if not user:
        print(f"No user found for {args.identifier!r}", file=sys.stderr)
        return 1
    print(f"{user.username} ({user.email}) is now {role}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
