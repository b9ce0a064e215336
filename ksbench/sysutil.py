"""Bounded wrappers around process-table and filesystem calls."""

from __future__ import annotations

import logging
import os
import threading
from typing import Any, Callable, TypeVar

from .exceptions import OperationTimeoutError

log = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT = 10.0


def bounded(func: Callable[..., T], *args: Any, timeout: float | None = DEFAULT_TIMEOUT) -> T:
    """Run ``func(*args)`` and return its result, giving up after *timeout*.

    The call runs on a daemon thread so a stat stuck on a hung network
    filesystem cannot keep the interpreter alive.  Exceptions raised by
    *func* are re-raised unchanged.  ``timeout=None`` calls inline.
    """
    if timeout is None:
        return func(*args)

    outcome: dict[str, Any] = {}

    def _target() -> None:
        try:
            outcome["value"] = func(*args)
        except BaseException as exc:  # re-raised in the caller's thread
            outcome["error"] = exc

    worker = threading.Thread(target=_target, name="ksbench-bounded", daemon=True)
    worker.start()
    worker.join(timeout)

    if worker.is_alive():
        name = getattr(func, "__name__", repr(func))
        log.warning("%s%r did not return within %.1fs", name, args, timeout)
        raise OperationTimeoutError(f"{name}{args!r} timed out after {timeout:g}s")
    if "error" in outcome:
        raise outcome["error"]
    return outcome["value"]


def stat_path(path: str, timeout: float | None = DEFAULT_TIMEOUT) -> os.stat_result:
    """``os.stat`` under a timeout."""
    return bounded(os.stat, path, timeout=timeout)


def path_exists(path: str, timeout: float | None = DEFAULT_TIMEOUT) -> bool:
    """Return True if *path* exists.

    Only "does not exist" answers False; permission errors and other I/O
    failures propagate.
    """
    try:
        stat_path(path, timeout=timeout)
    except (FileNotFoundError, NotADirectoryError):
        return False
    return True
