"""Effective flag values and flag-derived file paths of a running process."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Iterable

from .models import FlagState, ResolvedPath
from .sysutil import DEFAULT_TIMEOUT, path_exists

if TYPE_CHECKING:
    from .process import ProcessHandle

log = logging.getLogger(__name__)


def parse_flags(argv: Iterable[str]) -> dict[str, str]:
    """Tokenize a process argument vector into ``{flag name: value}``.

    Accepted forms follow the long-flag convention of Kubernetes binaries:

    - ``--name=value``
    - ``--name value`` when the next token does not start with ``-``
    - ``--name`` alone, recorded as ``"true"``

    ``argv[0]`` and single-dash tokens are ignored, ``--`` ends flag
    parsing, and a repeated flag keeps its last value.

    Flag types are not known here, so a bare boolean flag followed by a
    positional token takes that token as its value.  Write boolean flags
    as ``--name=true`` when that matters.
    """
    tokens = list(argv)[1:]
    flags: dict[str, str] = {}

    i = 0
    while i < len(tokens):
        token = tokens[i]
        i += 1

        if token == "--":
            break
        if not token.startswith("--") or len(token) == 2:
            continue

        name, sep, value = token[2:].partition("=")
        if not name:
            continue
        if not sep:
            if i < len(tokens) and not tokens[i].startswith("-"):
                value = tokens[i]
                i += 1
            else:
                value = "true"
        flags[name] = value

    return flags


def resolve_flag(
    proc: ProcessHandle,
    flag_name: str,
    base_dir: str | None = None,
    default: str | None = None,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> ResolvedPath:
    """Resolve the file named by ``--flag_name`` on *proc*.

    Parameters
    ----------
    proc:
        Handle of the running process whose arguments are inspected.
    flag_name:
        Flag name without leading dashes, e.g. ``"kubeconfig"``.
    base_dir:
        Directory that relative values are joined onto.  When *None* a
        relative value is left as-is.
    default:
        Conventional location checked when the flag is absent.  The result
        is then marked ``explicit=False``.
    timeout:
        Upper bound for the existence check.

    An absent flag is not an error: the result has state
    ``FlagState.NOT_SET``.  I/O errors other than "does not exist"
    propagate.
    """
    value = proc.flags.get(flag_name)
    explicit = value is not None

    if value is None:
        if not default:
            log.debug("--%s is not set on %s (pid %d)", flag_name, proc.name, proc.pid)
            return ResolvedPath(path="", state=FlagState.NOT_SET, explicit=False)
        value = default
    elif value == "":
        return ResolvedPath(path="", state=FlagState.NOT_SET, explicit=True)

    path = value
    if not os.path.isabs(path) and base_dir:
        path = os.path.normpath(os.path.join(base_dir, path))

    if path_exists(path, timeout=timeout):
        state = FlagState.PRESENT
    else:
        log.info("--%s of %s points at %s, which does not exist", flag_name, proc.name, path)
        state = FlagState.MISSING

    return ResolvedPath(path=path, state=state, explicit=explicit)
