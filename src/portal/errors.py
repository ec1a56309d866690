# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy for the portal.

User-correctable errors (validation, duplicate email, bad credentials) are
rendered back on the originating form. ``HashingError`` and storage errors are
internal and end up in the generic 500 handler.
"""

from __future__ import annotations


class PortalError(Exception):
    """Base class for every error raised by the portal itself."""


class ValidationError(PortalError):
    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


class DuplicateEmail(PortalError):
    def __init__(self, email: str) -> None:
        super().__init__("Email already registered")
        self.email = email


class UserNotFound(PortalError):
    def __init__(self, email: str) -> None:
        super().__init__("User not found")
        self.email = email


class InvalidCredentials(PortalError):
    def __init__(self, email: str) -> None:
        super().__init__("Invalid password")
        self.email = email


class Unauthenticated(PortalError):
    def __init__(self) -> None:
        super().__init__("Not authenticated")


class HashingError(PortalError):
    pass
