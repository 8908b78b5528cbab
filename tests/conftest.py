import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

import importlib
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from coursehub.infra.account_store import AccountStore


@pytest.fixture(autouse=True)
def secrets_env(monkeypatch):
    monkeypatch.setenv("SESSION_SECRET_KEY", "test-session-secret")
    monkeypatch.setenv("COOKIE_SECRET_KEY", "test-cookie-secret")
    monkeypatch.delenv("COURSEHUB_SESSION_SECRET", raising=False)
    monkeypatch.delenv("COURSEHUB_COOKIE_SECRET", raising=False)


@pytest.fixture()
def accounts_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "accounts.yml"


@pytest.fixture()
def store(accounts_path: Path) -> AccountStore:
    return AccountStore(accounts_path)


@pytest.fixture()
def app_module(accounts_path: Path, monkeypatch):
    """coursehub.app reloaded against a temporary accounts file."""
    monkeypatch.setenv("COURSEHUB_ACCOUNTS_PATH", str(accounts_path))
    import coursehub.app as app_module
    importlib.reload(app_module)
    return app_module


@pytest.fixture()
def client(app_module) -> TestClient:
    return TestClient(app_module.app)


@pytest.fixture()
def alice(app_module):
    return app_module.STORE.create(name="Alice", email="alice@example.com", password="Secret1")
