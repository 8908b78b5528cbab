import pytest

from coursehub.infra.account_store import (
    AccountNotFoundError,
    AccountStore,
    DuplicateEmailError,
    StoreError,
)


def test_create_hashes_password(store):
    acc = store.create(name="Alice", email="Alice@Example.com ", password="Secret1")
    assert acc.email == "alice@example.com"
    assert acc.password_hash != "Secret1"
    assert "Secret1" not in store.path.read_text(encoding="utf-8")
    assert acc.compare_password("Secret1") is True
    assert acc.compare_password("wrong") is False
    assert acc.remember is None


def test_duplicate_email_is_case_insensitive(store):
    store.create(name="Alice", email="alice@example.com", password="Secret1")
    with pytest.raises(DuplicateEmailError):
        store.create(name="Other", email="ALICE@example.com", password="Secret2")


@pytest.mark.parametrize(
    "name,email,password",
    [("", "a@example.com", "pw"), ("A", "not-an-email", "pw"), ("A", "a@example.com", "")],
)
def test_create_validates_input(store, name, email, password):
    with pytest.raises(ValueError):
        store.create(name=name, email=email, password=password)


def test_records_survive_a_new_store_instance(store, accounts_path):
    acc = store.create(name="Alice", email="alice@example.com", password="Secret1", roles=["Teacher"])
    again = AccountStore(accounts_path)
    loaded = again.find_by_email("alice@example.com")
    assert loaded == acc
    assert loaded.roles == ("teacher",)


def test_remember_token_is_overwritten(store):
    acc = store.create(name="Alice", email="alice@example.com", password="Secret1")
    store.set_remember_token(acc.id, "first-token")
    store.set_remember_token(acc.id, "second-token")
    assert store.find_by_remember("first-token") is None
    assert store.find_by_remember("second-token").id == acc.id


def test_empty_remember_token_never_matches(store):
    store.create(name="Alice", email="alice@example.com", password="Secret1")
    assert store.find_by_remember("") is None
    assert store.find_by_remember(None) is None


def test_change_password_rehashes(store):
    acc = store.create(name="Alice", email="alice@example.com", password="Secret1")
    updated = store.change_password(acc.id, "Secret2")
    assert updated.password_hash != acc.password_hash
    assert updated.compare_password("Secret2") is True
    assert updated.compare_password("Secret1") is False


def test_purchases_and_roles(store):
    acc = store.create(name="Alice", email="alice@example.com", password="Secret1")
    store.add_purchase(acc.id, "course-1")
    acc = store.add_purchase(acc.id, "course-1")
    assert acc.purchases == ("course-1",)
    assert acc.is_purchased("course-1") is True
    assert acc.is_purchased("course-2") is False

    acc = store.assign_role(acc.id, "Editor")
    assert acc.has_role(["editor", "admin"]) is True
    assert acc.has_role(["admin"]) is False
    assert acc.is_vip() is True


def test_unknown_account_updates_raise(store):
    with pytest.raises(AccountNotFoundError):
        store.set_remember_token("missing", "tok")
    with pytest.raises(AccountNotFoundError):
        store.add_purchase("missing", "course-1")


def test_delete(store):
    acc = store.create(name="Alice", email="alice@example.com", password="Secret1")
    assert store.delete(acc.id) is True
    assert store.get(acc.id) is None
    assert store.delete(acc.id) is False


def test_missing_file_is_empty_store(store):
    assert store.all() == []
    assert store.find_by_email("alice@example.com") is None


def test_corrupt_file_is_a_store_error(accounts_path):
    accounts_path.parent.mkdir(parents=True, exist_ok=True)
    accounts_path.write_text("accounts: [unclosed", encoding="utf-8")
    with pytest.raises(StoreError):
        AccountStore(accounts_path).find_by_email("alice@example.com")


def test_has_role_accepts_a_single_name(store):
    acc = store.create(name="Alice", email="alice@example.com", password="Secret1", roles=["admin"])
    assert acc.has_role("admin") is True
    assert acc.has_role("a") is False


def test_paginate(store):
    for i in range(5):
        store.create(name=f"User{i}", email=f"user{i}@example.com", password="pw")
    first = store.paginate(page=1, per_page=2)
    assert [a.email for a in first.items] == [a.email for a in store.all()[:2]]
    assert (first.total, first.pages, first.has_prev, first.has_next) == (5, 3, False, True)

    last = store.paginate(page=3, per_page=2)
    assert len(last.items) == 1
    assert last.has_next is False

    assert store.paginate(page=9, per_page=2).items == ()
    assert store.paginate(page=0, per_page=0).per_page == 1


def test_two_stores_on_one_file_do_not_lose_accounts(accounts_path):
    worker_a = AccountStore(accounts_path)
    worker_b = AccountStore(accounts_path)
    worker_a.create(name="Alice", email="alice@example.com", password="Secret1")
    assert worker_a.find_by_email("alice@example.com")

    worker_b.create(name="Bob", email="bob@example.com", password="BobPw1")
    worker_a.create(name="Carol", email="carol@example.com", password="CarolPw1")

    emails = {a.email for a in AccountStore(accounts_path).all()}
    assert emails == {"alice@example.com", "bob@example.com", "carol@example.com"}
    assert worker_a.lock_path.exists()
