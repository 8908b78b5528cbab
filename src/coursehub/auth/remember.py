# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Remember-me bridge.

A successful login with "remember me" stores a fresh random token on the
account and hands the browser a signed, httpOnly cookie carrying the same
token. When a later request has no valid session, the cookie is matched
against the stored token and, on a hit, the request is treated as freshly
authenticated. Only one token is live per account: issuing a new one
overwrites the previous.
"""

from __future__ import annotations

from typing import Optional

from fastapi import BackgroundTasks, Request
from starlette.responses import Response

from coursehub.auth.session import (
    REMEMBER_COOKIE_NAME,
    REMEMBER_MAX_AGE_SECONDS,
    sign_remember,
    unsign_remember,
)
from coursehub.auth.tokens import generate_token
from coursehub.infra.account_store import Account, AccountNotFoundError, AccountStore, StoreError
from coursehub.log import get_logger, log_fault
from coursehub.permissions import cookie_settings

log = get_logger(__name__)


def _persist_token(store: AccountStore, account_id: str, token: str) -> None:
    try:
        store.set_remember_token(account_id, token)
    except (StoreError, AccountNotFoundError) as e:
        log_fault("DBError", e, account_id=account_id, op="remember.persist_failed")


def set_remember(
    response: Response,
    account: Account,
    store: AccountStore,
    background: Optional[BackgroundTasks] = None,
) -> str:
    token = generate_token()
    response.set_cookie(
        REMEMBER_COOKIE_NAME,
        sign_remember(token),
        max_age=REMEMBER_MAX_AGE_SECONDS,
        **cookie_settings(),
    )
    if background is not None:
        background.add_task(_persist_token, store, account.id, token)
    else:
        _persist_token(store, account.id, token)
    log.info("remember.issued", account_id=account.id)
    return token


def account_from_remember(request: Request, store: AccountStore) -> Optional[Account]:
    raw = request.cookies.get(REMEMBER_COOKIE_NAME, "")
    if not raw:
        return None
    token = unsign_remember(raw)
    if not token:
        log.info("remember.bad_signature")
        return None
    try:
        acc = store.find_by_remember(token)
    except StoreError as e:
        log_fault("DBError", e, op="remember.lookup")
        return None
    if not acc:
        log.info("remember.unknown_token")
        return None
    log.info("remember.accepted", account_id=acc.id)
    return acc


def clear_remember(response: Response) -> None:
    response.delete_cookie(REMEMBER_COOKIE_NAME)
