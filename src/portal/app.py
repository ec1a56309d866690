# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import random
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Form, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from portal.auth.passwords import PasswordHasher
from portal.auth.service import AuthService
from portal.auth.session import Clock, SessionCookie, SessionStore, UserSummary, utcnow
from portal.auth.users import UserStore
from portal.config import Settings
from portal.errors import DuplicateEmail, InvalidCredentials, UserNotFound, ValidationError
from portal.infra.db import Database
from portal.logging import bind_context, clear_context, get_logger, setup_logging
from portal.permissions import AccessGuard, cookie_settings, current_user_optional, require_user

logger = get_logger(__name__)

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

MEMBER_IMAGES = ("image1.svg", "image2.svg", "image3.svg")
LOGIN_FAILED = "Invalid email or password"

router = APIRouter()


def _render(request: Request, template_name: str, ctx: Optional[dict] = None, status_code: int = 200):
    ctx = ctx or {}
    base_ctx = {"user": None if "user" in ctx else current_user_optional(request), "error": ""}
    return templates.TemplateResponse(request, template_name, {**base_ctx, **ctx}, status_code=status_code)


def _start_session(request: Request, session_id: str) -> RedirectResponse:
    settings: Settings = request.app.state.settings
    cookie: SessionCookie = request.app.state.cookie
    resp = RedirectResponse(url="/members", status_code=303)
    resp.set_cookie(
        settings.cookie_name,
        cookie.dumps(session_id),
        max_age=settings.session_ttl,
        **cookie_settings(settings),
    )
    return resp


# ------------------ Routes ------------------


@router.get("/", response_class=HTMLResponse)
def home(request: Request, user: Optional[UserSummary] = Depends(current_user_optional)):
    return _render(request, "home.html", {"user": user})


@router.get("/signup", response_class=HTMLResponse)
def signup_get(request: Request, user: Optional[UserSummary] = Depends(current_user_optional)):
    return _render(request, "signup.html", {"user": user, "name": "", "email": ""})


@router.post("/signup")
def signup_post(
    request: Request,
    name: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
):
    auth: AuthService = request.app.state.auth
    try:
        session_id = auth.signup(name, email, password)
    except (ValidationError, DuplicateEmail) as e:
        return _render(request, "signup.html", {"name": name, "email": email, "error": str(e)})
    return _start_session(request, session_id)


@router.get("/login", response_class=HTMLResponse)
def login_get(request: Request, user: Optional[UserSummary] = Depends(current_user_optional)):
    return _render(request, "login.html", {"user": user, "email": ""})


@router.post("/login")
def login_post(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
):
    auth: AuthService = request.app.state.auth
    try:
        session_id = auth.login(email, password)
    except ValidationError as e:
        return _render(request, "login.html", {"email": email, "error": str(e)})
    except (UserNotFound, InvalidCredentials):
        return _render(request, "login.html", {"email": email, "error": LOGIN_FAILED})
    return _start_session(request, session_id)


@router.get("/members", response_class=HTMLResponse)
def members(request: Request, user: UserSummary = Depends(require_user)):
    return _render(request, "members.html", {"user": user, "image": random.choice(MEMBER_IMAGES)})


@router.get("/logout")
def logout(request: Request):
    guard: AccessGuard = request.app.state.guard
    auth: AuthService = request.app.state.auth
    auth.logout(guard.session_id_from_request(request) or "")
    resp = RedirectResponse(url="/", status_code=303)
    resp.delete_cookie(guard.cookie_name)
    return resp


@router.get("/healthz")
def healthz(request: Request):
    request.app.state.database.ping()
    return JSONResponse({"status": "ok"})


# ------------------ Application ------------------


def create_app(
    settings: Optional[Settings] = None,
    *,
    database: Optional[Database] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    """Build the application and its collaborators.

    Tables are created and expired sessions purged when the app starts; the
    engine is disposed when it stops.
    """
    settings = settings or Settings.from_env()
    setup_logging(settings)

    database = database or Database(settings.database_url)
    sessions = SessionStore(database, ttl=settings.session_ttl, clock=clock or utcnow)
    hasher = PasswordHasher(
        time_cost=settings.hash_time_cost,
        memory_cost=settings.hash_memory_cost,
        parallelism=settings.hash_parallelism,
    )
    cookie = SessionCookie(settings.secret_key, max_age=settings.session_ttl, salt=settings.cookie_salt)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database.create_all()
        purged = sessions.purge_expired()
        logger.info("startup", purged_sessions=purged)
        yield
        database.dispose()
        logger.info("shutdown")

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database
    app.state.cookie = cookie
    app.state.auth = AuthService(UserStore(database), sessions, hasher)
    app.state.guard = AccessGuard(sessions, cookie, settings.cookie_name)

    @app.middleware("http")
    async def _request_context(request: Request, call_next):
        bind_context(request_id=uuid.uuid4().hex, path=request.url.path)
        try:
            return await call_next(request)
        except Exception as exc:
            logger.exception("request_failed", error_type=type(exc).__name__)
            raise
        finally:
            clear_context()

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (404, 405):
            return _render(request, "404.html", status_code=404)
        return await http_exception_handler(request, exc)

    @app.exception_handler(Exception)
    async def _internal_error(request: Request, exc: Exception):
        # Logged by _request_context while the request context is still bound.
        user = None
        try:
            user = current_user_optional(request)
        except SQLAlchemyError:
            logger.warning("error_page_user_lookup_failed")
        return _render(request, "error.html", {"user": user}, status_code=500)

    app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")
    app.include_router(router)
    return app
