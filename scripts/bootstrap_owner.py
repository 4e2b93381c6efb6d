#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from pulse.core.config import DEV_BOOTSTRAP_ALLOW, IS_DEV  # noqa: E402
from pulse.core.database import SessionLocal, engine  # noqa: E402
from pulse.services.staff_admin import ensure_staff_tables, upsert_owner  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create or refresh a business and its owner account.")
    parser.add_argument("--business-code", required=True, help="Short business code used in login links")
    parser.add_argument("--business-name", required=True, help="Display name of the business")
    parser.add_argument("--email", required=True, help="Owner email")
    parser.add_argument("--password", help="Owner password (kept when omitted for an existing owner)")
    parser.add_argument("--name", required=True, help="Owner full name")
    parser.add_argument(
        "--must-change-password",
        action="store_true",
        help="Force the owner to pick a new password on first login",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Run without DEV_BOOTSTRAP_ALLOW=1",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()

    if not DEV_BOOTSTRAP_ALLOW and not args.force:
        print("Owner bootstrap disabled. Set DEV_BOOTSTRAP_ALLOW=1 or pass --force.")
        return 1

    try:
        ensure_staff_tables(engine)
    except RuntimeError as exc:
        print(str(exc))
        return 1

    db = SessionLocal()
    try:
        owner, created = upsert_owner(
            db,
            business_name=args.business_name,
            business_code=args.business_code,
            email=args.email,
            full_name=args.name,
            password=args.password,
            must_change_password=args.must_change_password,
        )
        tenant_id = owner.tenant_id
        email = owner.email
    except ValueError as exc:
        print(str(exc))
        return 1
    finally:
        db.close()

    action = "created" if created else "updated"
    print(f"Owner {action}: tenant={tenant_id} email={email}")
    if IS_DEV:
        password_info = args.password if args.password else "<unchanged>"
        print(f"DEV summary -> Business: {args.business_code} | Email: {email} | Password: {password_info}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
