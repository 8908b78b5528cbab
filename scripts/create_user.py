#!/usr/bin/env python3
from __future__ import annotations

from getpass import getpass

from coursehub.infra.account_store import DEFAULT_ACCOUNTS_PATH, AccountStore, DuplicateEmailError


def main() -> None:
    store = AccountStore(DEFAULT_ACCOUNTS_PATH)

    name = input("Name: ").strip()
    email = input("Email: ").strip()
    admin_in = input("Admin? [y/N]: ").strip().lower()
    admin = admin_in in {"y", "yes"}
    roles_in = input("Roles (comma separated, optional): ").strip()
    roles = [r for r in (x.strip() for x in roles_in.split(",")) if r]

    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")

    try:
        acc = store.create(name=name, email=email, password=pw1, admin=admin, roles=roles)
    except DuplicateEmailError as e:
        raise SystemExit(str(e))
    except ValueError as e:
        raise SystemExit(f"Invalid input: {e}")

    print(f"OK -> {acc.email} ({acc.id}) in {store.path}")


if __name__ == "__main__":
    main()
