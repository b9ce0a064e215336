"""File security predicates: permission-mask and ownership comparison.

Each predicate is built once from its expected parameters and then
evaluated against ``os.stat_result`` values.  Mismatches come back as a
failed :class:`~ksbench.models.PredicateResult`; only lookup and I/O
problems raise.
"""

from __future__ import annotations

import grp
import logging
import operator as op
import os
import pwd
import stat
from dataclasses import dataclass, field
from typing import Callable

from .exceptions import UnknownPrincipalError
from .models import PredicateResult
from .sysutil import DEFAULT_TIMEOUT, bounded, stat_path

log = logging.getLogger(__name__)

_OPERATORS: dict[str, Callable[[int, int], bool]] = {
    "<=": op.le,
    "<": op.lt,
    "==": op.eq,
    ">=": op.ge,
    ">": op.gt,
}

# Shown in failure details: "0666 > 0644" for a failed "<=".
_NEGATED = {"<=": ">", "<": ">=", "==": "!=", ">=": "<", ">": "<="}

MAX_MODE = 0o777


def format_mode(bits: int) -> str:
    return f"{bits:04o}"


def parse_mode(value: int | str) -> int:
    """Accept ``0o644``/``420`` or the octal strings ``"0644"``/``"644"``."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid permission mode: {value!r}")
    if isinstance(value, int):
        bits = value
    else:
        try:
            bits = int(str(value).strip(), 8)
        except ValueError:
            raise ValueError(f"Invalid permission mode: {value!r}") from None
    if not 0 <= bits <= MAX_MODE:
        raise ValueError(f"Permission mode out of range: {value!r}")
    return bits


# ---------------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PermissionPredicate:
    """Compare an entry's permission bits against *threshold* with *operator*."""
    operator: str = "<="
    threshold: int = 0o644

    def __post_init__(self):
        if self.operator not in _OPERATORS:
            raise ValueError(
                f"Unsupported operator {self.operator!r}; expected one of {', '.join(_OPERATORS)}"
            )
        object.__setattr__(self, "threshold", parse_mode(self.threshold))

    def evaluate(self, st: os.stat_result) -> PredicateResult:
        actual = stat.S_IMODE(st.st_mode)
        if _OPERATORS[self.operator](actual, self.threshold):
            shown = self.operator
            ok = True
        else:
            shown = _NEGATED[self.operator]
            ok = False
        detail = f"{format_mode(actual)} {shown} {format_mode(self.threshold)}"
        return PredicateResult(ok=ok, detail=detail, checked=1)

    def describe(self) -> str:
        return f"permissions {self.operator} {format_mode(self.threshold)}"


# ---------------------------------------------------------------------------
# Ownership
# ---------------------------------------------------------------------------

def _user_name(uid: int) -> str | None:
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return None


def _group_name(gid: int) -> str | None:
    try:
        return grp.getgrgid(gid).gr_name
    except KeyError:
        return None


@dataclass(frozen=True)
class OwnershipPredicate:
    """Require an entry to be owned by *user*:*group*.

    Expected names are resolved to ids when the predicate is built, so an
    unknown name raises :class:`UnknownPrincipalError` before any file is
    looked at.  Comparison is numeric; the actual ids are reported raw when
    they have no name on this host.
    """
    user: str
    group: str
    uid: int = field(init=False)
    gid: int = field(init=False)

    def __post_init__(self):
        try:
            uid = pwd.getpwnam(self.user).pw_uid
        except KeyError:
            raise UnknownPrincipalError("user", self.user) from None
        try:
            gid = grp.getgrnam(self.group).gr_gid
        except KeyError:
            raise UnknownPrincipalError("group", self.group) from None
        object.__setattr__(self, "uid", uid)
        object.__setattr__(self, "gid", gid)

    def evaluate(self, st: os.stat_result) -> PredicateResult:
        uid, gid = st.st_uid, st.st_gid
        if uid == self.uid and gid == self.gid:
            return PredicateResult(ok=True, detail=f"{self.user}:{self.group}", checked=1)

        user = _user_name(uid) or f"uid {uid} has no name"
        group = _group_name(gid) or f"gid {gid} has no name"
        detail = (
            f"{uid}:{gid} ({user}:{group}), "
            f"expected {self.user}:{self.group} ({self.uid}:{self.gid})"
        )
        return PredicateResult(ok=False, detail=detail, checked=1)

    def describe(self) -> str:
        return f"ownership {self.user}:{self.group}"


# ---------------------------------------------------------------------------
# Evaluation over paths and trees
# ---------------------------------------------------------------------------

Predicate = PermissionPredicate | OwnershipPredicate


def evaluate_path(path: str, predicate: Predicate, timeout: float | None = DEFAULT_TIMEOUT) -> PredicateResult:
    return predicate.evaluate(stat_path(path, timeout=timeout))


def tree_entries(root: str, include_dirs: bool = False) -> list[str]:
    """List the entries under *root* in a deterministic order.

    Regular files and symlinks are always listed; directories (including
    *root* itself) only when *include_dirs* is set.  Symlinks to
    directories are listed as entries, not descended into.
    """
    entries: list[str] = []

    def _raise(exc: OSError) -> None:
        raise exc

    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
        dirnames.sort()
        if include_dirs:
            entries.append(dirpath)
        linked = [d for d in dirnames if os.path.islink(os.path.join(dirpath, d))]
        for name in sorted(filenames + linked):
            entries.append(os.path.join(dirpath, name))
    return entries


def evaluate_tree(
    root: str,
    predicate: Predicate,
    include_dirs: bool = False,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> PredicateResult:
    """Evaluate *predicate* on every entry under *root*, collecting every
    violation rather than stopping at the first.

    A symlink whose target is gone is reported as a violation of its own.
    """
    paths = bounded(tree_entries, root, include_dirs, timeout=timeout)
    violations: list[str] = []

    for path in paths:
        try:
            result = evaluate_path(path, predicate, timeout=timeout)
        except FileNotFoundError:
            if not os.path.islink(path):
                raise
            violations.append(f"{path}: dangling symlink")
            continue
        if not result.ok:
            violations.append(f"{path}: {result.detail}")

    log.debug("Checked %d entries under %s, %d violation(s)", len(paths), root, len(violations))
    if violations:
        return PredicateResult(
            ok=False,
            detail="; ".join(violations),
            violations=violations,
            checked=len(paths),
        )
    return PredicateResult(
        ok=True,
        detail=f"{len(paths)} entries satisfy {predicate.describe()}",
        checked=len(paths),
    )


def check_permissions(
    path: str,
    operator: str = "<=",
    threshold: int | str = 0o644,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> PredicateResult:
    return evaluate_path(path, PermissionPredicate(operator, threshold), timeout=timeout)


def check_ownership(
    path: str,
    user: str,
    group: str,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> PredicateResult:
    return evaluate_path(path, OwnershipPredicate(user, group), timeout=timeout)


def check_tree_permissions(
    root: str,
    operator: str = "<=",
    threshold: int | str = 0o644,
    include_dirs: bool = False,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> PredicateResult:
    return evaluate_tree(root, PermissionPredicate(operator, threshold), include_dirs, timeout)


def check_tree_ownership(
    root: str,
    user: str,
    group: str,
    include_dirs: bool = False,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> PredicateResult:
    return evaluate_tree(root, OwnershipPredicate(user, group), include_dirs, timeout)
