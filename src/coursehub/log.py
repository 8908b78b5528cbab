# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import asyncio
import logging
import os
import sys
import threading
from typing import Any, Dict, Optional

import structlog

_SENSITIVE_KEYS = {"password", "token", "remember", "secret", "cookie", "password_hash"}
_CONFIGURED = False


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes", "y"}


def redact_event(_, __, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    for k in list(event_dict.keys()):
        if k.lower() in _SENSITIVE_KEYS and event_dict[k]:
            event_dict[k] = "***REDACTED***"
    return event_dict


def configure_logging(*, force: bool = False) -> None:
    """Configure stdlib logging + structlog once per process."""
    global _CONFIGURED
    if _CONFIGURED and not force:
        return

    level = getattr(logging, os.getenv("COURSEHUB_LOG_LEVEL", "INFO").upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level, force=force)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_event,
    ]
    if _env_bool("COURSEHUB_LOG_JSON"):
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    _CONFIGURED = True


def get_logger(name: str = "coursehub") -> structlog.stdlib.BoundLogger:
    configure_logging()
    return structlog.get_logger(name)


def log_fault(kind: str, exc: BaseException, **fields: Any) -> None:
    """Central sink for faults that are logged and then dropped.

    `kind` is a short category such as ``"DBError"`` or
    ``"AppUncaughtException"``.
    """
    get_logger("coursehub.faults").error(
        "fault",
        kind=kind,
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=exc,
        **fields,
    )


def _thread_excepthook(args: threading.ExceptHookArgs) -> None:
    if args.exc_value is None or isinstance(args.exc_value, SystemExit):
        return
    thread = args.thread.name if args.thread else ""
    log_fault("AppUncaughtException", args.exc_value, thread=thread)


def _sys_excepthook(exc_type, exc, tb) -> None:
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc, tb)
        return
    log_fault("AppUncaughtException", exc)


def loop_exception_handler(loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
    """Failures of tasks nobody awaited, and other loop-level errors."""
    exc = context.get("exception")
    if exc is None:
        exc = RuntimeError(str(context.get("message") or "unhandled event loop error"))
    task = context.get("task") or context.get("future")
    log_fault("AppUnhandledRejection", exc, message=str(context.get("message") or ""), task=repr(task) if task else "")


def install_fault_hooks() -> None:
    """Route exceptions escaping the main thread and worker threads to log_fault."""
    sys.excepthook = _sys_excepthook
    threading.excepthook = _thread_excepthook


def install_loop_fault_handler(loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
    (loop or asyncio.get_running_loop()).set_exception_handler(loop_exception_handler)
