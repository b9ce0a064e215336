"""Locate running node processes by name.

Callers depend on :class:`ProcessLocator` only.  Two implementations exist:
:class:`ProcfsProcessLocator` reads a Linux ``/proc`` tree directly (and can
point at a host ``/proc`` mounted elsewhere, e.g. ``/host/proc`` inside a
container), :class:`PsutilProcessLocator` covers other operating systems.
"""

from __future__ import annotations

import abc
import logging
import os
import sys
from dataclasses import dataclass
from functools import cached_property

import psutil

from .exceptions import ProcessLocatorError
from .flags import parse_flags
from .sysutil import DEFAULT_TIMEOUT, bounded

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessHandle:
    """Read-only view of a running process."""
    name: str
    pid: int
    cmdline: tuple[str, ...] = ()
    cwd: str | None = None

    @cached_property
    def flags(self) -> dict[str, str]:
        """Long flags of the process, tokenized once per handle."""
        return parse_flags(self.cmdline)


def _matches(name: str, comm: str, argv: list[str] | tuple[str, ...] | None) -> bool:
    # comm is truncated to 15 characters on Linux, so argv[0] is checked too
    if comm == name:
        return True
    return bool(argv) and os.path.basename(argv[0]) == name


class ProcessLocator(abc.ABC):
    """Find a running process by name.

    :meth:`locate` returns a :class:`ProcessHandle`, or ``None`` when no
    such process is running.  Failures to read the process table raise
    :class:`~ksbench.exceptions.ProcessLocatorError`.
    """

    def __init__(self, timeout: float | None = DEFAULT_TIMEOUT):
        self.timeout = timeout

    def locate(self, name: str) -> ProcessHandle | None:
        handle = bounded(self._find, name, timeout=self.timeout)
        if handle is None:
            log.info("Process %s is not running", name)
        else:
            log.debug("Found %s as pid %d: %s", name, handle.pid, " ".join(handle.cmdline))
        return handle

    @abc.abstractmethod
    def _find(self, name: str) -> ProcessHandle | None:
        """Scan the process table; lowest matching pid wins."""


class ProcfsProcessLocator(ProcessLocator):
    """Linux locator reading ``<proc_root>/<pid>/{comm,cmdline,cwd}``."""

    def __init__(self, proc_root: str = "/proc", timeout: float | None = DEFAULT_TIMEOUT):
        super().__init__(timeout=timeout)
        self.proc_root = proc_root

    def _find(self, name: str) -> ProcessHandle | None:
        try:
            entries = os.listdir(self.proc_root)
        except OSError as exc:
            raise ProcessLocatorError(f"cannot enumerate processes in {self.proc_root}: {exc}") from exc

        for pid in sorted(int(e) for e in entries if e.isdigit()):
            pid_dir = os.path.join(self.proc_root, str(pid))
            try:
                comm = self._read(pid_dir, "comm").decode("utf-8", "replace").strip()
            except (FileNotFoundError, ProcessLookupError):
                continue  # exited mid-scan
            except OSError as exc:
                raise ProcessLocatorError(f"cannot read {pid_dir}/comm: {exc}") from exc

            try:
                raw = self._read(pid_dir, "cmdline")
            except (FileNotFoundError, ProcessLookupError):
                continue
            except OSError as exc:
                if comm == name:
                    raise ProcessLocatorError(
                        f"cannot read arguments of {name} (pid {pid}): {exc}"
                    ) from exc
                continue

            argv = [a.decode("utf-8", "replace") for a in raw.split(b"\0") if a]
            if not _matches(name, comm, argv):
                continue

            try:
                cwd: str | None = os.readlink(os.path.join(pid_dir, "cwd"))
            except OSError:
                cwd = None

            return ProcessHandle(name=name, pid=pid, cmdline=tuple(argv), cwd=cwd)

        return None

    @staticmethod
    def _read(pid_dir: str, entry: str) -> bytes:
        with open(os.path.join(pid_dir, entry), "rb") as fh:
            return fh.read()


class PsutilProcessLocator(ProcessLocator):
    """Portable locator backed by :func:`psutil.process_iter`."""

    def _find(self, name: str) -> ProcessHandle | None:
        try:
            for proc in psutil.process_iter(["pid", "name", "cmdline", "cwd"]):
                info = proc.info
                argv = info.get("cmdline")
                if not _matches(name, info.get("name") or "", argv):
                    continue
                if argv is None:
                    raise ProcessLocatorError(
                        f"cannot read arguments of {name} (pid {info['pid']}): access denied"
                    )
                return ProcessHandle(
                    name=name,
                    pid=info["pid"],
                    cmdline=tuple(argv),
                    cwd=info.get("cwd"),
                )
        except psutil.Error as exc:
            raise ProcessLocatorError(f"cannot enumerate processes: {exc}") from exc
        return None


def default_locator(
    proc_root: str | None = None,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> ProcessLocator:
    """Return the locator for this operating system.

    An explicit *proc_root* always selects the ``/proc`` reader.
    """
    if proc_root or sys.platform.startswith("linux"):
        return ProcfsProcessLocator(proc_root or "/proc", timeout=timeout)
    return PsutilProcessLocator(timeout=timeout)
