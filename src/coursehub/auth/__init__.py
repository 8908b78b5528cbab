# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication helpers.

This package provides:
- Password hashing/verification (argon2)
- Remember-token generation
- Signed session and remember cookies (itsdangerous)
- The remember-me bridge that re-establishes sessions
"""
