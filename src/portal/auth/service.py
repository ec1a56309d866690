# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Annotated, Type, TypeVar

import pydantic
from email_validator import EmailNotValidError, validate_email
from pydantic import AfterValidator, BaseModel, Field

from portal.auth.passwords import PasswordHasher
from portal.auth.session import SessionStore, UserSummary
from portal.auth.users import UserRecord, UserStore
from portal.errors import DuplicateEmail, InvalidCredentials, UserNotFound, ValidationError
from portal.logging import get_logger

logger = get_logger(__name__)

Name = Annotated[str, pydantic.StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]


def _check_email(value: str) -> str:
    """Reject anything that is not a bare address; return the input unchanged."""
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValueError(str(e)) from e
    return value


Email = Annotated[str, pydantic.StringConstraints(strip_whitespace=True), AfterValidator(_check_email)]

_MESSAGES = {
    ("name", "string_too_short"): "Name is required",
    ("name", "string_too_long"): "Name must be at most 50 characters",
    ("email", "value_error"): "Email must be a valid email address",
    ("password", "string_too_short"): "Password must be at least 6 characters",
}


class SignupForm(BaseModel):
    name: Name
    email: Email
    password: str = Field(min_length=6)


class LoginForm(BaseModel):
    email: Email
    password: str = Field(min_length=1)


F = TypeVar("F", bound=BaseModel)


def _validate(form: Type[F], **data: str) -> F:
    """Validate ``data`` against ``form``; report only the first failing field."""
    try:
        return form(**data)
    except pydantic.ValidationError as e:
        err = e.errors()[0]
        field = str(err["loc"][0]) if err.get("loc") else ""
        if form is LoginForm and field == "password":
            message = "Password is required"
        else:
            message = _MESSAGES.get((field, err["type"]), f"{field.capitalize()}: {err['msg']}")
        raise ValidationError(field, message) from None


class AuthService:
    def __init__(self, users: UserStore, sessions: SessionStore, hasher: PasswordHasher) -> None:
        self.users = users
        self.sessions = sessions
        self.hasher = hasher

    def register(self, name: str, email: str, password: str) -> UserRecord:
        """Validate and persist a new account without opening a session.

        Raises ``ValidationError`` or ``DuplicateEmail``.
        """
        form = _validate(SignupForm, name=name, email=email, password=password)
        if self.users.find_by_email(form.email) is not None:
            logger.info("signup_rejected", reason="duplicate_email", email=form.email)
            raise DuplicateEmail(form.email)
        user = UserRecord(name=form.name, email=form.email, password_hash=self.hasher.hash(form.password))
        created = self.users.create(user)
        logger.info("user_registered", email=created.email)
        return created

    def signup(self, name: str, email: str, password: str) -> str:
        user = self.register(name, email, password)
        return self.sessions.create(UserSummary(name=user.name, email=user.email))

    def login(self, email: str, password: str) -> str:
        form = _validate(LoginForm, email=email, password=password)
        user = self.users.find_by_email(form.email)
        if user is None:
            logger.info("login_failed", reason="user_not_found", email=form.email)
            raise UserNotFound(form.email)
        if not self.hasher.verify(form.password, user.password_hash):
            logger.info("login_failed", reason="invalid_password", email=form.email)
            raise InvalidCredentials(form.email)
        if self.hasher.needs_rehash(user.password_hash):
            logger.warning("password_hash_outdated", email=user.email)
        session_id = self.sessions.create(UserSummary(name=user.name, email=user.email))
        logger.info("login_succeeded", email=user.email)
        return session_id

    def logout(self, session_id: str) -> None:
        self.sessions.destroy(session_id)
        logger.info("logout")
