# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
import time
from contextlib import contextmanager, suppress
from pathlib import Path
from typing import Iterator, TextIO


class FileLockTimeout(RuntimeError):
    pass


def _acquire_posix(fp: TextIO, *, timeout_s: float, poll_interval_s: float) -> None:
    import fcntl

    deadline = time.monotonic() + float(timeout_s)
    while True:
        try:
            fcntl.flock(fp.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
            return
        except BlockingIOError:
            if time.monotonic() >= deadline:
                raise FileLockTimeout(f"Timed out acquiring file lock {fp.name}") from None
            time.sleep(float(poll_interval_s))


def _release_posix(fp: TextIO) -> None:
    import fcntl

    with suppress(OSError):
        fcntl.flock(fp.fileno(), fcntl.LOCK_UN)


def _acquire_windows(fp: TextIO, *, timeout_s: float, poll_interval_s: float) -> None:
    import msvcrt  # type: ignore

    deadline = time.monotonic() + float(timeout_s)
    while True:
        try:
            msvcrt.locking(fp.fileno(), msvcrt.LK_NBLCK, 1)
            return
        except OSError:
            if time.monotonic() >= deadline:
                raise FileLockTimeout(f"Timed out acquiring file lock {fp.name}") from None
            time.sleep(float(poll_interval_s))


def _release_windows(fp: TextIO) -> None:
    import msvcrt  # type: ignore

    with suppress(OSError):
        msvcrt.locking(fp.fileno(), msvcrt.LK_UNLCK, 1)


@contextmanager
def file_lock(path: Path, *, timeout_s: float = 10.0, poll_interval_s: float = 0.05) -> Iterator[None]:
    """Cross-process exclusive lock held on a sidecar file."""
    lock_path = Path(path)
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    fp = lock_path.open("a+", encoding="utf-8")
    try:
        if os.name == "nt":
            _acquire_windows(fp, timeout_s=timeout_s, poll_interval_s=poll_interval_s)
        else:
            _acquire_posix(fp, timeout_s=timeout_s, poll_interval_s=poll_interval_s)
        try:
            yield
        finally:
            if os.name == "nt":
                _release_windows(fp)
            else:
                _release_posix(fp)
    finally:
        fp.close()
