# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from fastapi import HTTPException, Request

from coursehub.auth.session import COOKIE_NAME, verify_session
from coursehub.infra.account_store import Account, AccountStore


@dataclass(frozen=True)
class CurrentUser:
    id: str
    name: str
    email: str
    admin: bool
    roles: Tuple[str, ...]

    @classmethod
    def from_account(cls, acc: Account) -> "CurrentUser":
        return cls(id=acc.id, name=acc.name, email=acc.email, admin=acc.admin, roles=acc.roles)


def load_user_from_request(request: Request, store: AccountStore) -> Optional[CurrentUser]:
    token = request.cookies.get(COOKIE_NAME, "")
    sess = verify_session(token)
    if not sess:
        return None
    acc = store.get(sess.account_id)
    if not acc:
        return None
    return CurrentUser.from_account(acc)


def current_user_optional(request: Request) -> Optional[CurrentUser]:
    return getattr(request.state, "user", None)


def require_user(request: Request) -> CurrentUser:
    u = current_user_optional(request)
    if u:
        return u
    next_url = str(request.url.path)
    if request.url.query:
        next_url += "?" + request.url.query
    loc = f"/login?next={next_url}"
    raise HTTPException(status_code=303, headers={"Location": loc})


def require_admin(request: Request) -> CurrentUser:
    u = require_user(request)
    if not u.admin:
        raise HTTPException(status_code=403, detail="Forbidden")
    return u


def require_roles(*roles: str):
    wanted = {r.strip().lower() for r in roles}

    def _dep(request: Request) -> CurrentUser:
        u = require_user(request)
        if not u.admin and not wanted.intersection(u.roles):
            raise HTTPException(status_code=403, detail="Forbidden")
        return u

    return _dep


def cookie_settings() -> dict:
    secure = os.getenv("COURSEHUB_COOKIE_SECURE", "false").lower() in {"1", "true", "yes", "y"}
    return {"httponly": True, "samesite": "lax", "secure": secure}
