# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Account documents persisted in a YAML file.

Layout of the file::

    version: 1
    accounts:
      <account id>:
        name: ...
        email: ...
        password_hash: ...
        remember: null
        admin: false
        roles: []
        purchases: []
        created_at: ...
        updated_at: ...

Every write rewrites the whole document through a temp file and
``os.replace`` so readers never see a half-written file.
"""

from __future__ import annotations

import hmac
import math
import os
import tempfile
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

import yaml

from coursehub.auth.passwords import hash_password, verify_password
from coursehub.infra.locks import FileLockTimeout, file_lock

BASE_DIR = Path(__file__).resolve().parents[3]
DEFAULT_ACCOUNTS_PATH = Path(
    os.getenv("COURSEHUB_ACCOUNTS_PATH", str(BASE_DIR / "data" / "accounts.yml"))
).resolve()


class StoreError(RuntimeError):
    """The account file could not be read or written."""


class DuplicateEmailError(ValueError):
    pass


class AccountNotFoundError(ValueError):
    pass


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


@dataclass(frozen=True)
class Account:
    id: str
    name: str
    email: str
    password_hash: str
    remember: Optional[str] = None
    admin: bool = False
    roles: Tuple[str, ...] = field(default_factory=tuple)
    purchases: Tuple[str, ...] = field(default_factory=tuple)
    created_at: str = ""
    updated_at: str = ""

    def compare_password(self, plain: str) -> bool:
        return verify_password(self.password_hash, plain)

    def is_purchased(self, course_id: str) -> bool:
        return str(course_id) in self.purchases

    def has_role(self, roles: Iterable[str]) -> bool:
        if isinstance(roles, str):
            roles = [roles]
        wanted = {str(r).strip().lower() for r in roles}
        return any(r in wanted for r in self.roles)

    def is_vip(self) -> bool:
        # Every account is treated as VIP until subscriptions exist.
        return True

    def to_doc(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "email": self.email,
            "password_hash": self.password_hash,
            "remember": self.remember,
            "admin": self.admin,
            "roles": list(self.roles),
            "purchases": list(self.purchases),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_doc(cls, account_id: str, doc: Dict[str, Any]) -> "Account":
        remember = doc.get("remember")
        return cls(
            id=str(account_id),
            name=str(doc.get("name") or "").strip(),
            email=normalize_email(str(doc.get("email") or "")),
            password_hash=str(doc.get("password_hash") or "").strip(),
            remember=str(remember) if remember else None,
            admin=bool(doc.get("admin", False)),
            roles=tuple(str(r).strip().lower() for r in (doc.get("roles") or []) if str(r).strip()),
            purchases=tuple(str(p) for p in (doc.get("purchases") or [])),
            created_at=str(doc.get("created_at") or ""),
            updated_at=str(doc.get("updated_at") or ""),
        )


DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100


@dataclass(frozen=True)
class Page:
    items: Tuple[Account, ...]
    page: int
    per_page: int
    total: int

    @property
    def pages(self) -> int:
        return max(1, math.ceil(self.total / self.per_page))

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.pages


class AccountStore:
    """File-backed account collection.

    Reads are cached on the file mtime and size. Writes hold an in-process lock and
    a sidecar file lock, so several worker processes can share one file;
    concurrent updates of the same field are last-write-wins.
    """

    def __init__(self, path: Path = DEFAULT_ACCOUNTS_PATH):
        self.path = Path(path)
        self.lock_path = self.path.with_name(self.path.name + ".lock")
        self._lock = threading.RLock()
        self._held = 0
        self._cache: Tuple[Tuple[int, int], Dict[str, Account]] = ((0, 0), {})

    # ------------------ Low-level IO ------------------

    def _load_file(self) -> Dict[str, Account]:
        try:
            raw = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise StoreError(f"Cannot read accounts file {self.path}: {e}") from e
        docs = (raw.get("accounts") or {}) if isinstance(raw, dict) else {}
        if not isinstance(docs, dict):
            raise StoreError(f"Invalid accounts file {self.path}: 'accounts' must be a mapping")
        out: Dict[str, Account] = {}
        for aid, doc in docs.items():
            if not isinstance(doc, dict) or not str(aid).strip():
                continue
            out[str(aid)] = Account.from_doc(str(aid), doc)
        return out

    def _read(self) -> Dict[str, Account]:
        if not self.path.exists():
            return {}
        try:
            st = self.path.stat()
        except OSError as e:
            raise StoreError(f"Cannot stat accounts file {self.path}: {e}") from e

        key = (st.st_mtime_ns, st.st_size)
        cached_key, cached = self._cache
        if key == cached_key and cached:
            return cached

        accounts = self._load_file()
        self._cache = (key, accounts)
        return accounts

    def _write(self, accounts: Dict[str, Account]) -> None:
        payload = {
            "version": 1,
            "accounts": {aid: acc.to_doc() for aid, acc in accounts.items()},
        }
        text = yaml.safe_dump(payload, sort_keys=False, allow_unicode=True)
        tmp_name = ""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".accounts.", suffix=".tmp", dir=str(self.path.parent))
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_name, self.path)
            tmp_name = ""
            st = self.path.stat()
        except OSError as e:
            raise StoreError(f"Cannot write accounts file {self.path}: {e}") from e
        finally:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
        self._cache = ((st.st_mtime_ns, st.st_size), dict(accounts))

    @contextmanager
    def _writing(self) -> Iterator[None]:
        """Hold the write locks; re-entrant within the owning thread.

        The cache is dropped on entry so the write starts from what other
        processes last committed.
        """
        with self._lock:
            outer = self._held == 0
            self._held += 1
            try:
                if not outer:
                    yield
                    return
                try:
                    with file_lock(self.lock_path):
                        self._cache = ((0, 0), {})
                        yield
                except FileLockTimeout as e:
                    raise StoreError(str(e)) from e
            finally:
                self._held -= 1

    def _update(self, account_id: str, **changes: Any) -> Account:
        with self._writing():
            accounts = dict(self._read())
            acc = accounts.get(account_id)
            if acc is None:
                raise AccountNotFoundError(f"Account '{account_id}' not found")
            updated = replace(acc, updated_at=_now(), **changes)
            accounts[account_id] = updated
            self._write(accounts)
            return updated

    # ------------------ Queries ------------------

    def all(self) -> List[Account]:
        return sorted(self._read().values(), key=lambda a: a.created_at)

    def paginate(self, page: int = 1, per_page: int = DEFAULT_PER_PAGE) -> Page:
        per_page = min(max(int(per_page), 1), MAX_PER_PAGE)
        page = max(int(page), 1)
        accounts = self.all()
        start = (page - 1) * per_page
        return Page(
            items=tuple(accounts[start:start + per_page]),
            page=page,
            per_page=per_page,
            total=len(accounts),
        )

    def get(self, account_id: str) -> Optional[Account]:
        aid = (account_id or "").strip()
        if not aid:
            return None
        return self._read().get(aid)

    def find_by_email(self, email: str) -> Optional[Account]:
        target = normalize_email(email)
        if not target:
            return None
        for acc in self._read().values():
            if acc.email == target:
                return acc
        return None

    def find_by_remember(self, token: str) -> Optional[Account]:
        """Exact match against the stored remember token. Empty never matches."""
        if not token:
            return None
        wanted = token.encode("utf-8")
        for acc in self._read().values():
            if acc.remember and hmac.compare_digest(acc.remember.encode("utf-8"), wanted):
                return acc
        return None

    # ------------------ Mutations ------------------

    def create(
        self,
        name: str,
        email: str,
        password: str,
        *,
        admin: bool = False,
        roles: Iterable[str] = (),
    ) -> Account:
        name = (name or "").strip()
        email = normalize_email(email)
        if not name:
            raise ValueError("Name is required")
        if not email or "@" not in email:
            raise ValueError("A valid email is required")
        password_hash = hash_password(password)

        with self._writing():
            accounts = dict(self._read())
            if any(a.email == email for a in accounts.values()):
                raise DuplicateEmailError(f"Email '{email}' is already registered")
            ts = _now()
            acc = Account(
                id=uuid.uuid4().hex,
                name=name,
                email=email,
                password_hash=password_hash,
                admin=bool(admin),
                roles=tuple(str(r).strip().lower() for r in roles if str(r).strip()),
                created_at=ts,
                updated_at=ts,
            )
            accounts[acc.id] = acc
            self._write(accounts)
            return acc

    def change_password(self, account_id: str, new_password: str) -> Account:
        return self._update(account_id, password_hash=hash_password(new_password))

    def set_remember_token(self, account_id: str, token: Optional[str]) -> Account:
        return self._update(account_id, remember=token or None)

    def add_purchase(self, account_id: str, course_id: str) -> Account:
        with self._writing():
            acc = self.get(account_id)
            if acc is None:
                raise AccountNotFoundError(f"Account '{account_id}' not found")
            if acc.is_purchased(course_id):
                return acc
            return self._update(account_id, purchases=acc.purchases + (str(course_id),))

    def assign_role(self, account_id: str, role: str) -> Account:
        role = (role or "").strip().lower()
        if not role:
            raise ValueError("Role name is required")
        with self._writing():
            acc = self.get(account_id)
            if acc is None:
                raise AccountNotFoundError(f"Account '{account_id}' not found")
            if role in acc.roles:
                return acc
            return self._update(account_id, roles=acc.roles + (role,))

    def delete(self, account_id: str) -> bool:
        with self._writing():
            accounts = dict(self._read())
            if accounts.pop(account_id, None) is None:
                return False
            self._write(accounts)
            return True
