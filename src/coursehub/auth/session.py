# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from itsdangerous import BadSignature, BadTimeSignature, URLSafeTimedSerializer

COOKIE_NAME = os.getenv("COURSEHUB_SESSION_NAME", "coursehub_session")
DEFAULT_MAX_AGE_SECONDS = int(os.getenv("COURSEHUB_SESSION_MAX_AGE", str(60 * 60 * 6)))  # 6 hours

REMEMBER_COOKIE_NAME = "Remember"
REMEMBER_MAX_AGE_SECONDS = 60 * 60 * 24 * 30  # 30 days


def _session_serializer() -> URLSafeTimedSerializer:
    secret = os.getenv("SESSION_SECRET_KEY") or os.getenv("COURSEHUB_SESSION_SECRET")
    if not secret:
        raise RuntimeError("SESSION_SECRET_KEY (or COURSEHUB_SESSION_SECRET) is not set")
    salt = os.getenv("COURSEHUB_SESSION_SALT", "coursehub.session.v1")
    return URLSafeTimedSerializer(secret_key=secret, salt=salt)


def _cookie_serializer() -> URLSafeTimedSerializer:
    secret = os.getenv("COOKIE_SECRET_KEY") or os.getenv("COURSEHUB_COOKIE_SECRET")
    if not secret:
        raise RuntimeError("COOKIE_SECRET_KEY (or COURSEHUB_COOKIE_SECRET) is not set")
    return URLSafeTimedSerializer(secret_key=secret, salt="coursehub.remember.v1")


@dataclass(frozen=True)
class SessionData:
    account_id: str


def sign_session(account_id: str) -> str:
    s = _session_serializer()
    return s.dumps({"a": account_id})


def verify_session(token: str, *, max_age: int = DEFAULT_MAX_AGE_SECONDS) -> Optional[SessionData]:
    if not token:
        return None
    s = _session_serializer()
    try:
        data = s.loads(token, max_age=max_age)
    except (BadSignature, BadTimeSignature):
        return None
    a = str((data or {}).get("a") or "").strip() if isinstance(data, dict) else ""
    if not a:
        return None
    return SessionData(account_id=a)


def sign_remember(token: str) -> str:
    return _cookie_serializer().dumps(token)


def unsign_remember(value: str, *, max_age: int = REMEMBER_MAX_AGE_SECONDS) -> Optional[str]:
    """Return the remember token carried by a signed cookie value, or None."""
    if not value:
        return None
    try:
        token = _cookie_serializer().loads(value, max_age=max_age)
    except (BadSignature, BadTimeSignature):
        return None
    if not isinstance(token, str) or not token:
        return None
    return token
