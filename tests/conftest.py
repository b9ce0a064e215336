"""Shared fixtures: fake /proc trees, static locators and file owners."""
from __future__ import annotations

import grp
import os
import pwd
from pathlib import Path

import pytest
import yaml

from ksbench.process import ProcessHandle, ProcessLocator


class StaticLocator(ProcessLocator):
    """Locator answering from a fixed ``{name: handle}`` table."""

    def __init__(self, handles: dict[str, ProcessHandle] | None = None, errors: dict[str, Exception] | None = None):
        super().__init__(timeout=None)
        self.handles = handles or {}
        self.errors = errors or {}
        self.calls: list[str] = []

    def _find(self, name):
        self.calls.append(name)
        if name in self.errors:
            raise self.errors[name]
        return self.handles.get(name)


@pytest.fixture
def static_locator():
    return StaticLocator


@pytest.fixture
def fake_proc(tmp_path):
    """Return a function that adds a process to a fake ``/proc`` tree."""
    root = tmp_path / "proc"
    root.mkdir()

    def _add(pid: int, comm: str, argv: list[str], cwd: str | None = None) -> Path:
        pid_dir = root / str(pid)
        pid_dir.mkdir()
        (pid_dir / "comm").write_text(comm + "\n")
        (pid_dir / "cmdline").write_bytes(b"".join(a.encode() + b"\0" for a in argv))
        if cwd is not None:
            os.symlink(cwd, pid_dir / "cwd")
        return pid_dir

    _add.root = root
    return _add


@pytest.fixture
def owner_of():
    """Return ``(user, group)`` names owning a path, skipping if unnamed."""

    def _owner(path) -> tuple[str, str]:
        st = os.stat(path)
        try:
            return pwd.getpwuid(st.st_uid).pw_name, grp.getgrgid(st.st_gid).gr_name
        except KeyError:
            pytest.skip("test files are owned by an id without a name")

    return _owner


@pytest.fixture
def write_baseline(tmp_path):
    """Write a monolithic baseline with the given checks, return its path."""

    def _write(checks: list[dict], name: str = "baseline.yaml") -> str:
        path = tmp_path / name
        path.write_text(yaml.safe_dump({
            "metadata": {"benchmark": "Test Benchmark", "version": "0.0"},
            "checks": checks,
        }))
        return str(path)

    return _write
