# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

# Fixed work factor; the same hasher is used to create and to verify.
_PH = PasswordHasher(time_cost=int(os.getenv("COURSEHUB_HASH_TIME_COST", "3")))


def hash_password(plain: str) -> str:
    if not plain:
        raise ValueError("Password must not be empty")
    return _PH.hash(plain)


def verify_password(hash_value: str, plain: str) -> bool:
    if not hash_value or not plain:
        return False
    try:
        return _PH.verify(hash_value, plain)
    except VerifyMismatchError:
        return False
    except (InvalidHashError, VerificationError):
        return False


def needs_rehash(hash_value: str) -> bool:
    """True when the stored hash was made with different parameters."""
    try:
        return _PH.check_needs_rehash(hash_value)
    except InvalidHashError:
        return True
