# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Optional

import argon2
from argon2.exceptions import HashingError as Argon2HashingError
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from portal.errors import HashingError


class PasswordHasher:
    """argon2id hashing with a tunable cost.

    ``None`` for any cost parameter keeps the argon2-cffi default.
    """

    def __init__(
        self,
        *,
        time_cost: Optional[int] = None,
        memory_cost: Optional[int] = None,
        parallelism: Optional[int] = None,
    ) -> None:
        params = {
            "time_cost": time_cost,
            "memory_cost": memory_cost,
            "parallelism": parallelism,
        }
        self._ph = argon2.PasswordHasher(**{k: v for k, v in params.items() if v is not None})

    def hash(self, plain: str) -> str:
        try:
            return self._ph.hash(plain)
        except Argon2HashingError as e:
            raise HashingError(str(e)) from e

    def verify(self, plain: str, digest: str) -> bool:
        try:
            return self._ph.verify(digest, plain)
        except VerifyMismatchError:
            return False
        except (InvalidHashError, VerificationError) as e:
            raise HashingError(f"Unverifiable password digest: {e}") from e

    def needs_rehash(self, digest: str) -> bool:
        try:
            return self._ph.check_needs_rehash(digest)
        except (InvalidHashError, ValueError) as e:
            raise HashingError(f"Unverifiable password digest: {e}") from e
