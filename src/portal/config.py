# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

_TRUE = {"1", "true", "yes", "y"}


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in _TRUE


def _int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else default


@dataclass(frozen=True)
class Settings:
    secret_key: str
    database_url: str = "sqlite:///data/portal.db"
    host: str = "0.0.0.0"
    port: int = 3000
    reload: bool = False
    session_ttl: int = 3600
    cookie_name: str = "portal_session"
    cookie_secure: bool = False
    cookie_salt: str = "portal.session.v1"
    hash_time_cost: Optional[int] = None
    hash_memory_cost: Optional[int] = None
    hash_parallelism: Optional[int] = None
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        secret = os.getenv("SECRET_KEY") or os.getenv("PORTAL_SECRET_KEY")
        if not secret:
            raise RuntimeError("Missing SECRET_KEY (or PORTAL_SECRET_KEY) in environment")

        def _opt(name: str) -> Optional[int]:
            raw = os.getenv(name, "").strip()
            return int(raw) if raw else None

        return cls(
            secret_key=secret,
            database_url=os.getenv("PORTAL_DATABASE_URL", cls.database_url),
            host=os.getenv("PORTAL_HOST", cls.host),
            port=_int("PORTAL_PORT", cls.port),
            reload=_flag("PORTAL_RELOAD"),
            session_ttl=_int("PORTAL_SESSION_TTL", cls.session_ttl),
            cookie_name=os.getenv("PORTAL_COOKIE_NAME", cls.cookie_name),
            cookie_secure=_flag("PORTAL_COOKIE_SECURE"),
            cookie_salt=os.getenv("PORTAL_SESSION_SALT", cls.cookie_salt),
            hash_time_cost=_opt("PORTAL_HASH_TIME_COST"),
            hash_memory_cost=_opt("PORTAL_HASH_MEMORY_COST"),
            hash_parallelism=_opt("PORTAL_HASH_PARALLELISM"),
            log_level=os.getenv("PORTAL_LOG_LEVEL", cls.log_level),
            log_json=_flag("PORTAL_LOG_JSON"),
        )
