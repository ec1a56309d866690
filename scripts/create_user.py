#!/usr/bin/env python3
from __future__ import annotations

from getpass import getpass

from portal.auth.passwords import PasswordHasher
from portal.auth.service import AuthService
from portal.auth.session import SessionStore
from portal.auth.users import UserStore
from portal.config import Settings
from portal.errors import DuplicateEmail, ValidationError
from portal.infra.db import Database
from portal.logging import setup_logging


def main() -> None:
    settings = Settings.from_env()
    setup_logging(settings)
    database = Database(settings.database_url)
    database.create_all()
    auth = AuthService(
        UserStore(database),
        SessionStore(database, ttl=settings.session_ttl),
        PasswordHasher(
            time_cost=settings.hash_time_cost,
            memory_cost=settings.hash_memory_cost,
            parallelism=settings.hash_parallelism,
        ),
    )

    name = input("Name: ").strip()
    email = input("Email: ").strip()
    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")

    try:
        user = auth.register(name, email, pw1)
    except (ValidationError, DuplicateEmail) as e:
        raise SystemExit(str(e))
    finally:
        database.dispose()
    print(f"OK -> {user.email} ({settings.database_url})")


if __name__ == "__main__":
    main()
