# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import BackgroundTasks, Depends, FastAPI, Form, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from coursehub.auth.accounts import authenticate
from coursehub.auth.remember import account_from_remember, clear_remember, set_remember
from coursehub.auth.session import COOKIE_NAME, DEFAULT_MAX_AGE_SECONDS, REMEMBER_COOKIE_NAME, sign_session
from coursehub.i18n import LANG_COOKIE, RTL_LOCALES, normalize_locale, resolve_locale, translate
from coursehub.infra.account_store import (
    DEFAULT_ACCOUNTS_PATH,
    DEFAULT_PER_PAGE,
    AccountNotFoundError,
    AccountStore,
    DuplicateEmailError,
    StoreError,
)
from coursehub.log import (
    configure_logging,
    get_logger,
    install_fault_hooks,
    install_loop_fault_handler,
    log_fault,
)
from coursehub.permissions import (
    CurrentUser,
    cookie_settings,
    load_user_from_request,
    require_admin,
    require_roles,
    require_user,
)

configure_logging()
log = get_logger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    install_fault_hooks()
    install_loop_fault_handler()
    yield


app = FastAPI(lifespan=_lifespan)

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

ACCOUNTS_PATH = Path(os.getenv("COURSEHUB_ACCOUNTS_PATH", str(DEFAULT_ACCOUNTS_PATH))).resolve()
STORE = AccountStore(ACCOUNTS_PATH)

LANG_MAX_AGE_SECONDS = 60 * 60 * 24 * 365


@app.middleware("http")
async def _auth_middleware(request: Request, call_next):
    request.state.locale = resolve_locale(request)

    try:
        user = load_user_from_request(request, STORE)
    except StoreError as e:
        log_fault("DBError", e, op="session.lookup")
        user = None

    # No live session: fall back to the remember cookie.
    reestablish = False
    if user is None:
        acc = account_from_remember(request, STORE)
        if acc is not None:
            user = CurrentUser.from_account(acc)
            reestablish = True

    request.state.user = user
    request.state.remembered_account_id = user.id if reestablish else None
    response = await call_next(request)

    # A route that logged someone in or out owns the session cookie.
    settled = getattr(request.state, "session_started", False) or getattr(request.state, "logged_out", False)
    if reestablish and not settled:
        _start_session(request, response, user.id)
    return response


@app.exception_handler(Exception)
async def _unhandled_exception(request: Request, exc: Exception):
    log_fault("AppUncaughtException", exc, path=str(request.url.path))
    return PlainTextResponse("Internal Server Error", status_code=500)


def _start_session(request: Request, response, account_id: str) -> None:
    request.state.session_started = True
    response.set_cookie(
        COOKIE_NAME,
        sign_session(account_id),
        max_age=DEFAULT_MAX_AGE_SECONDS,
        **cookie_settings(),
    )


def _safe_next(next_url: str) -> str:
    """Only same-site absolute paths are accepted as redirect targets."""
    n = (next_url or "").strip()
    if not n.startswith("/") or n.startswith("//") or "\\" in n:
        return "/"
    return n


def _render(request: Request, template_name: str, ctx: dict, status_code: int = 200):
    """TemplateResponse wrapper injecting global UI state."""
    locale = getattr(request.state, "locale", "en")
    base_ctx = {
        "request": request,
        "current_user": getattr(request.state, "user", None),
        "locale": locale,
        "rtl": locale in RTL_LOCALES,
        "t": lambda key: translate(locale, key),
    }
    merged = {**base_ctx, **(ctx or {})}
    return templates.TemplateResponse(request, template_name, merged, status_code=status_code)


# ------------------ Routes ------------------


@app.get("/healthz")
def healthz():
    return JSONResponse({"status": "ok"})


@app.get("/", response_class=HTMLResponse)
def index(request: Request):
    return _render(request, "index.html", {})


@app.get("/login", response_class=HTMLResponse)
def login_get(request: Request, next: str = "/"):
    if getattr(request.state, "user", None):
        return RedirectResponse(url=_safe_next(next), status_code=303)
    return _render(request, "login.html", {"next": next, "error": "", "email": ""})


@app.post("/login")
def login_post(
    request: Request,
    background: BackgroundTasks,
    email: str = Form(...),
    password: str = Form(...),
    remember: str = Form(""),
    next: str = Form("/"),
):
    locale = request.state.locale
    try:
        acc = authenticate(STORE, email=email, password=password)
    except StoreError as e:
        log_fault("DBError", e, op="login")
        return _render(
            request,
            "login.html",
            {"next": next, "error": translate(locale, "error.generic"), "email": email},
            status_code=503,
        )
    if not acc:
        return _render(
            request,
            "login.html",
            {"next": next, "error": translate(locale, "login.invalid"), "email": email},
            status_code=401,
        )

    resp = RedirectResponse(url=_safe_next(next), status_code=303)
    _start_session(request, resp, acc.id)
    if remember:
        set_remember(resp, acc, STORE, background)
    elif REMEMBER_COOKIE_NAME in request.cookies and request.state.remembered_account_id != acc.id:
        clear_remember(resp)
    log.info("login.ok", account_id=acc.id, remember_me=bool(remember))
    return resp


@app.get("/register", response_class=HTMLResponse)
def register_get(request: Request):
    if getattr(request.state, "user", None):
        return RedirectResponse(url="/", status_code=303)
    return _render(request, "register.html", {"error": "", "name": "", "email": ""})


@app.post("/register")
def register_post(
    request: Request,
    name: str = Form(...),
    email: str = Form(...),
    password: str = Form(...),
):
    locale = request.state.locale
    form = {"name": name, "email": email}
    try:
        acc = STORE.create(name=name, email=email, password=password)
    except DuplicateEmailError:
        return _render(
            request, "register.html", {**form, "error": translate(locale, "register.duplicate")}, status_code=409
        )
    except ValueError as e:
        return _render(request, "register.html", {**form, "error": str(e)}, status_code=400)
    except StoreError as e:
        log_fault("DBError", e, op="register")
        return _render(
            request, "register.html", {**form, "error": translate(locale, "error.generic")}, status_code=503
        )

    log.info("account.created", account_id=acc.id)
    resp = RedirectResponse(url="/", status_code=303)
    _start_session(request, resp, acc.id)
    if REMEMBER_COOKIE_NAME in request.cookies:
        clear_remember(resp)
    return resp


def _revoke_remember(account_id: str) -> None:
    try:
        STORE.set_remember_token(account_id, None)
    except (StoreError, AccountNotFoundError) as e:
        log_fault("DBError", e, account_id=account_id, op="remember.revoke")


@app.post("/logout")
def logout_post(request: Request):
    request.state.logged_out = True
    user = getattr(request.state, "user", None)
    if user:
        _revoke_remember(user.id)
    resp = RedirectResponse(url="/login", status_code=303)
    resp.delete_cookie(COOKIE_NAME)
    clear_remember(resp)
    return resp


@app.get("/account", response_class=HTMLResponse)
def account_get(request: Request, user: CurrentUser = Depends(require_user)):
    acc = STORE.get(user.id)
    return _render(request, "account.html", {"account": acc, "message": "", "error": ""})


@app.post("/account/password", response_class=HTMLResponse)
def account_password_post(
    request: Request,
    current_password: str = Form(...),
    new_password: str = Form(...),
    user: CurrentUser = Depends(require_user),
):
    locale = request.state.locale
    acc = STORE.get(user.id)
    if acc is None or not acc.compare_password(current_password):
        return _render(
            request,
            "account.html",
            {"account": acc, "message": "", "error": translate(locale, "account.password_wrong")},
            status_code=400,
        )
    try:
        acc = STORE.change_password(acc.id, new_password)
    except ValueError as e:
        return _render(request, "account.html", {"account": acc, "message": "", "error": str(e)}, status_code=400)
    # Remembered devices must sign in again with the new password.
    _revoke_remember(acc.id)
    log.info("account.password_changed", account_id=acc.id)
    resp = _render(
        request, "account.html", {"account": acc, "message": translate(locale, "account.password_changed"), "error": ""}
    )
    clear_remember(resp)
    return resp


@app.get("/courses/{course_id}/access")
def course_access(course_id: str, user: CurrentUser = Depends(require_user)):
    acc = STORE.get(user.id)
    if acc is None:
        return JSONResponse({"detail": "Not found"}, status_code=404)
    purchased = acc.is_purchased(course_id)
    return JSONResponse(
        {
            "course_id": course_id,
            "purchased": purchased,
            "vip": acc.is_vip(),
            "can_view": purchased or acc.admin or acc.has_role(["teacher"]),
        }
    )


@app.get("/studio")
def studio(user: CurrentUser = Depends(require_roles("teacher"))):
    return JSONResponse({"account_id": user.id, "name": user.name, "roles": list(user.roles)})


@app.get("/admin", response_class=HTMLResponse)
def admin_get(
    request: Request,
    page: int = 1,
    per_page: int = DEFAULT_PER_PAGE,
    user: CurrentUser = Depends(require_admin),
):
    return _render(request, "admin.html", {"result": STORE.paginate(page=page, per_page=per_page)})


@app.get("/lang/{code}")
def lang_get(request: Request, code: str, next: str = "/"):
    resp = RedirectResponse(url=_safe_next(next), status_code=303)
    resp.set_cookie(LANG_COOKIE, normalize_locale(code), max_age=LANG_MAX_AGE_SECONDS, samesite="lax")
    return resp
