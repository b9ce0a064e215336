"""File permission and ownership checks.

Each function receives the already-resolved path of the item's target
(the engine has confirmed it exists) plus the item's ``params`` from the
baseline, and returns a :class:`Finding` with PASS or FAIL.  Lookup and
I/O errors propagate to the engine, which records them as ERROR.
"""

from __future__ import annotations

import stat

from ... import predicates
from ...models import Finding, PredicateResult, Status
from ...sysutil import DEFAULT_TIMEOUT, stat_path


def _is_tree(path: str, recursive: bool, timeout: float | None) -> bool:
    return recursive and stat.S_ISDIR(stat_path(path, timeout=timeout).st_mode)


def _tree_finding(path: str, result: PredicateResult, what: str) -> Finding:
    if result.ok:
        return Finding(
            check_id="",
            status=Status.PASS,
            message=f"All {result.checked} entries under {path} satisfy {what}.",
            evidence=result.detail,
        )
    return Finding(
        check_id="",
        status=Status.FAIL,
        message=(
            f"{len(result.violations)} of {result.checked} entries under {path} "
            f"do not satisfy {what}."
        ),
        evidence=result.detail,
    )


# ---------------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------------

def check_permissions(
    path: str,
    mode: int | str = "0644",
    operator: str = "<=",
    recursive: bool = False,
    include_dirs: bool = False,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> Finding:
    """Check that *path* has permissions ``<operator> mode``.

    With *recursive* and a directory target every entry under it is
    checked and all offenders are reported together; directories
    themselves are only checked when *include_dirs* is set.
    """
    predicate = predicates.PermissionPredicate(operator, mode)

    if _is_tree(path, recursive, timeout):
        result = predicates.evaluate_tree(path, predicate, include_dirs, timeout=timeout)
        return _tree_finding(path, result, predicate.describe())

    result = predicates.evaluate_path(path, predicate, timeout=timeout)
    return Finding(
        check_id="",
        status=Status.PASS if result.ok else Status.FAIL,
        message=f"{path} has permissions {result.detail}",
        evidence=result.detail,
    )


# ---------------------------------------------------------------------------
# Ownership
# ---------------------------------------------------------------------------

def check_ownership(
    path: str,
    user: str = "root",
    group: str = "root",
    recursive: bool = False,
    include_dirs: bool = False,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> Finding:
    """Check that *path* is owned by *user*:*group*.

    An expected name unknown to this host raises
    :class:`~ksbench.exceptions.UnknownPrincipalError`; an actual owner
    without a name is a plain mismatch showing the raw id.
    """
    predicate = predicates.OwnershipPredicate(user, group)

    if _is_tree(path, recursive, timeout):
        result = predicates.evaluate_tree(path, predicate, include_dirs, timeout=timeout)
        return _tree_finding(path, result, predicate.describe())

    result = predicates.evaluate_path(path, predicate, timeout=timeout)
    return Finding(
        check_id="",
        status=Status.PASS if result.ok else Status.FAIL,
        message=f"{path} is owned by {result.detail}",
        evidence=result.detail,
    )
