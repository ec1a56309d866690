# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, Request

from portal.auth.session import SessionCookie, SessionStore, UserSummary
from portal.config import Settings
from portal.errors import Unauthenticated


class AccessGuard:
    """Resolves the presented session identifier on every protected request."""

    def __init__(self, sessions: SessionStore, cookie: SessionCookie, cookie_name: str) -> None:
        self._sessions = sessions
        self._cookie = cookie
        self.cookie_name = cookie_name

    def authorize(self, session_id: Optional[str]) -> UserSummary:
        user = self._sessions.get(session_id or "")
        if user is None:
            raise Unauthenticated()
        return user

    def session_id_from_request(self, request: Request) -> Optional[str]:
        return self._cookie.loads(request.cookies.get(self.cookie_name, ""))

    def current_user(self, request: Request) -> Optional[UserSummary]:
        try:
            return self.authorize(self.session_id_from_request(request))
        except Unauthenticated:
            return None


def current_user_optional(request: Request) -> Optional[UserSummary]:
    guard: AccessGuard = request.app.state.guard
    return guard.current_user(request)


def require_user(request: Request) -> UserSummary:
    u = current_user_optional(request)
    if u:
        return u
    raise HTTPException(status_code=303, headers={"Location": "/"})


def cookie_settings(settings: Settings) -> dict:
    return {"httponly": True, "samesite": "lax", "secure": settings.cookie_secure}
