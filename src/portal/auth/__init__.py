# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication and session lifecycle.

This package provides:
- Password hashing/verification (argon2)
- The user account store (SQLAlchemy)
- Server-side sessions with a fixed TTL, carried in a signed cookie (itsdangerous)
- Signup/login/logout orchestration
"""
