from fastapi import BackgroundTasks
from starlette.requests import Request
from starlette.responses import Response

from coursehub.auth import remember as remember_module
from coursehub.auth.remember import account_from_remember, set_remember
from coursehub.auth.session import sign_remember, unsign_remember
from coursehub.infra.account_store import AccountStore, StoreError


def _request_with_cookie(value: str) -> Request:
    headers = [(b"cookie", f"Remember={value}".encode("latin-1"))] if value else []
    return Request({"type": "http", "method": "GET", "path": "/", "headers": headers})


def _remember_header(response: Response) -> str:
    for k, v in response.raw_headers:
        if k == b"set-cookie" and v.startswith(b"Remember="):
            return v.decode("latin-1")
    raise AssertionError("Remember cookie not set")


def test_set_remember_sets_cookie_and_persists(store):
    acc = store.create(name="Alice", email="alice@example.com", password="Secret1")
    resp = Response()
    token = set_remember(resp, acc, store)

    assert len(token) == 30
    header = _remember_header(resp).lower()
    assert "httponly" in header
    assert "max-age=2592000" in header
    assert store.get(acc.id).remember == token

    cookie_value = _remember_header(resp).split(";", 1)[0].split("=", 1)[1]
    assert unsign_remember(cookie_value) == token


def test_second_issuance_invalidates_first(store):
    acc = store.create(name="Alice", email="alice@example.com", password="Secret1")
    first = set_remember(Response(), acc, store)
    second = set_remember(Response(), acc, store)
    assert first != second

    assert account_from_remember(_request_with_cookie(sign_remember(first)), store) is None
    assert account_from_remember(_request_with_cookie(sign_remember(second)), store).id == acc.id


def test_background_persistence(store):
    acc = store.create(name="Alice", email="alice@example.com", password="Secret1")
    tasks = BackgroundTasks()
    token = set_remember(Response(), acc, store, tasks)
    assert store.get(acc.id).remember is None
    assert len(tasks.tasks) == 1

    task = tasks.tasks[0]
    task.func(*task.args, **task.kwargs)
    assert store.get(acc.id).remember == token


class _BrokenStore(AccountStore):
    def set_remember_token(self, account_id, token):
        raise StoreError("disk full")

    def find_by_remember(self, token):
        raise StoreError("disk gone")


def test_persistence_failure_is_logged_not_raised(accounts_path, monkeypatch):
    faults = []
    monkeypatch.setattr(remember_module, "log_fault", lambda kind, exc, **kw: faults.append((kind, str(exc))))
    broken = _BrokenStore(accounts_path)
    acc = AccountStore(accounts_path).create(name="Alice", email="alice@example.com", password="Secret1")

    resp = Response()
    token = set_remember(resp, acc, broken)
    assert len(token) == 30
    assert _remember_header(resp)
    assert faults == [("DBError", "disk full")]

    assert account_from_remember(_request_with_cookie(sign_remember(token)), broken) is None
    assert faults[-1] == ("DBError", "disk gone")


def test_unknown_or_forged_cookie_is_anonymous(store):
    store.create(name="Alice", email="alice@example.com", password="Secret1")
    assert account_from_remember(_request_with_cookie(""), store) is None
    assert account_from_remember(_request_with_cookie("forged"), store) is None
    assert account_from_remember(_request_with_cookie(sign_remember("Z" * 30)), store) is None
