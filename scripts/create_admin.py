"""Create (or reset the password of) a CashMais portal administrator."""

from __future__ import annotations

import argparse
import getpass
import os

from sqlalchemy import select

from cashmais.core.config import get_settings
from cashmais.storage.db import Database, load_models
from cashmais.storage.models import AdminUser
from cashmais.storage.security import hash_password


def upsert_admin(
    database: Database,
    *,
    username: str,
    email: str,
    full_name: str,
    password: str,
) -> tuple[str, bool]:
    load_models()
    with database.session_factory() as session:
        admin = session.scalar(select(AdminUser).where(AdminUser.username == username))
        created = admin is None
        if admin is None:
            admin = AdminUser(username=username, email=email, full_name=full_name)
            session.add(admin)
        admin.password_hash = hash_password(password)
        admin.is_active = True
        session.commit()
        return admin.id, created


def main() -> None:
    parser = argparse.ArgumentParser(description="Create or reset a CashMais admin user.")
    parser.add_argument("--username", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--full-name", default="")
    parser.add_argument(
        "--database-url",
        default=None,
        help="Defaults to DATABASE_URL from the environment.",
    )
    args = parser.parse_args()

    password = os.getenv("CASHMAIS_ADMIN_PASSWORD") or getpass.getpass("Admin password: ")
    if len(password) < 8:
        raise ValueError("admin password must have at least 8 characters")

    database = Database(args.database_url or get_settings().database_url)
    try:
        admin_id, created = upsert_admin(
            database,
            username=args.username,
            email=args.email,
            full_name=args.full_name,
            password=password,
        )
    finally:
        database.dispose()

    print(f"admin_id={admin_id}")
    print(f"created={str(created).lower()}")


if __name__ == "__main__":
    main()
