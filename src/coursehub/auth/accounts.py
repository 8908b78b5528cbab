# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Optional

from coursehub.auth.passwords import needs_rehash
from coursehub.infra.account_store import Account, AccountStore, StoreError
from coursehub.log import get_logger, log_fault

log = get_logger(__name__)


def authenticate(store: AccountStore, email: str, password: str) -> Optional[Account]:
    """Password login. Unknown email or wrong password is None, not an error.

    Storage faults propagate as StoreError.
    """
    acc = store.find_by_email(email)
    if not acc:
        log.info("login.unknown_email")
        return None
    if not acc.compare_password(password):
        log.info("login.bad_password", account_id=acc.id)
        return None

    if needs_rehash(acc.password_hash):
        try:
            acc = store.change_password(acc.id, password)
        except StoreError as e:
            log_fault("DBError", e, account_id=acc.id)
    return acc
