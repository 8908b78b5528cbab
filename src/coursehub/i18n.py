# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Locale selection via the `Lang` cookie and the UI message catalogue."""

from __future__ import annotations

from typing import Dict

from fastapi import Request

LANG_COOKIE = "Lang"
LOCALES = ("en", "fa")
DEFAULT_LOCALE = "en"
RTL_LOCALES = {"fa"}

MESSAGES: Dict[str, Dict[str, str]] = {
    "en": {
        "login.title": "Sign in",
        "login.email": "Email",
        "login.password": "Password",
        "login.remember": "Remember me",
        "login.submit": "Sign in",
        "login.invalid": "Invalid email or password",
        "register.title": "Create account",
        "register.name": "Name",
        "register.submit": "Register",
        "register.duplicate": "This email is already registered",
        "account.title": "Your account",
        "account.purchases": "Purchased courses",
        "account.roles": "Roles",
        "account.change_password": "Change password",
        "account.current_password": "Current password",
        "account.new_password": "New password",
        "account.password_changed": "Password updated",
        "account.password_wrong": "Current password is incorrect",
        "nav.home": "Home",
        "nav.account": "Account",
        "nav.logout": "Sign out",
        "nav.admin": "Admin",
        "error.generic": "Something went wrong, please try again",
    },
    "fa": {
        "login.title": "ورود",
        "login.email": "ایمیل",
        "login.password": "رمز عبور",
        "login.remember": "مرا به خاطر بسپار",
        "login.submit": "ورود",
        "login.invalid": "ایمیل یا رمز عبور نادرست است",
        "register.title": "ساخت حساب",
        "register.name": "نام",
        "register.submit": "ثبت نام",
        "register.duplicate": "این ایمیل قبلا ثبت شده است",
        "account.title": "حساب شما",
        "account.purchases": "دوره‌های خریداری شده",
        "account.roles": "نقش‌ها",
        "account.change_password": "تغییر رمز عبور",
        "account.current_password": "رمز عبور فعلی",
        "account.new_password": "رمز عبور جدید",
        "account.password_changed": "رمز عبور به‌روز شد",
        "account.password_wrong": "رمز عبور فعلی نادرست است",
        "nav.home": "خانه",
        "nav.account": "حساب",
        "nav.logout": "خروج",
        "nav.admin": "مدیریت",
        "error.generic": "خطایی رخ داد، دوباره تلاش کنید",
    },
}


def normalize_locale(code: str) -> str:
    c = (code or "").strip().lower()
    return c if c in LOCALES else DEFAULT_LOCALE


def resolve_locale(request: Request) -> str:
    return normalize_locale(request.cookies.get(LANG_COOKIE, ""))


def translate(locale: str, key: str) -> str:
    table = MESSAGES.get(normalize_locale(locale), MESSAGES[DEFAULT_LOCALE])
    return table.get(key) or MESSAGES[DEFAULT_LOCALE].get(key, key)
