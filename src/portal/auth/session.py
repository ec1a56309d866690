# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from itsdangerous import BadSignature, URLSafeTimedSerializer
from sqlalchemy import delete

from portal.infra.db import Database, SessionRow

DEFAULT_TTL_SECONDS = 3600

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(dt: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo.
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class UserSummary:
    name: str
    email: str


class SessionStore:
    """Server-side sessions with a fixed expiry.

    Expired sessions read as absent and are deleted when read; there is no
    sliding expiry, a new login creates a new session.
    """

    def __init__(self, database: Database, *, ttl: int = DEFAULT_TTL_SECONDS, clock: Clock = utcnow) -> None:
        self._db = database
        self.ttl = ttl
        self._clock = clock

    def create(self, user: UserSummary, ttl: Optional[int] = None) -> str:
        now = self._clock()
        session_id = secrets.token_urlsafe(32)
        with self._db.session_scope() as s:
            s.add(
                SessionRow(
                    session_id=session_id,
                    name=user.name,
                    email=user.email,
                    created_at=now,
                    expires_at=now + timedelta(seconds=self.ttl if ttl is None else ttl),
                )
            )
        return session_id

    def get(self, session_id: str) -> Optional[UserSummary]:
        if not session_id:
            return None
        with self._db.session_scope() as s:
            row = s.get(SessionRow, session_id)
            if row is None:
                return None
            if self._clock() > _as_utc(row.expires_at):
                s.delete(row)
                return None
            return UserSummary(name=row.name, email=row.email)

    def destroy(self, session_id: str) -> None:
        if not session_id:
            return
        with self._db.session_scope() as s:
            s.execute(delete(SessionRow).where(SessionRow.session_id == session_id))

    def purge_expired(self) -> int:
        now = self._clock()
        with self._db.session_scope() as s:
            result = s.execute(delete(SessionRow).where(SessionRow.expires_at < now))
            return result.rowcount or 0


class SessionCookie:
    """Signs session identifiers for the cookie (itsdangerous).

    The signature age limit matches the session TTL and the cookie Max-Age.
    """

    def __init__(self, secret_key: str, *, max_age: int = DEFAULT_TTL_SECONDS, salt: str = "portal.session.v1") -> None:
        if not secret_key:
            raise RuntimeError("Missing secret key for session cookies")
        self.max_age = max_age
        self._serializer = URLSafeTimedSerializer(secret_key=secret_key, salt=salt)

    def dumps(self, session_id: str) -> str:
        return self._serializer.dumps({"sid": session_id})

    def loads(self, token: str) -> Optional[str]:
        if not token:
            return None
        try:
            data = self._serializer.loads(token, max_age=self.max_age)
        except BadSignature:
            return None
        sid = str((data or {}).get("sid") or "").strip() if isinstance(data, dict) else ""
        return sid or None
