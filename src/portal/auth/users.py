# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from portal.errors import DuplicateEmail
from portal.infra.db import Database, UserRow


@dataclass(frozen=True)
class UserRecord:
    name: str
    email: str
    password_hash: str


class UserStore:
    """Append-only user accounts keyed by email."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        e = (email or "").strip()
        if not e:
            return None
        with self._db.session_scope() as s:
            row = s.scalars(select(UserRow).where(UserRow.email == e)).first()
            if row is None:
                return None
            return UserRecord(name=row.name, email=row.email, password_hash=row.password_hash)

    def create(self, user: UserRecord) -> UserRecord:
        if self.find_by_email(user.email) is not None:
            raise DuplicateEmail(user.email)
        # A concurrent signup can slip between the check and the insert; the
        # primary key on email turns that into an IntegrityError.
        try:
            with self._db.session_scope() as s:
                s.add(
                    UserRow(
                        email=user.email,
                        name=user.name,
                        password_hash=user.password_hash,
                        created_at=datetime.now(timezone.utc),
                    )
                )
        except IntegrityError as e:
            raise DuplicateEmail(user.email) from e
        return user
