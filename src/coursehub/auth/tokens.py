# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import secrets

# No 0/O, 1/l/I: tokens may be read back by a human from a cookie dump.
ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz23456789"
REMEMBER_TOKEN_LENGTH = 30


def generate_token(length: int = REMEMBER_TOKEN_LENGTH) -> str:
    if length <= 0:
        raise ValueError("Token length must be positive")
    return "".join(secrets.choice(ALPHABET) for _ in range(length))
