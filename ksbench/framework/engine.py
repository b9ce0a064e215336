"""Check execution engine.

Items run one at a time, in baseline order.  For each item the engine
resolves its prerequisites (process, flag-derived or fixed path, path
existence), records SKIP (or FAIL, per :class:`MissingProcessPolicy`) for
the first unmet one, and otherwise calls the item's check function.  An
exception inside one item becomes an ERROR finding for that item only.
"""

from __future__ import annotations

import importlib
import logging
import os
import re
from typing import Any

from ..exceptions import ProcessLocatorError
from ..flags import resolve_flag
from ..models import AuditResult, FlagState, Finding, MissingProcessPolicy, Status
from ..process import ProcessLocator, default_locator
from ..sysutil import DEFAULT_TIMEOUT, path_exists
from .baseline import get_checks, get_checks_by_family, load_baseline

log = logging.getLogger(__name__)


def run_audit(
    baseline_path: str | None = None,
    locator: ProcessLocator | None = None,
    missing_process: MissingProcessPolicy = MissingProcessPolicy.SKIP,
    family: str | None = None,
    process: str | None = None,
    focus: str | None = None,
    skip: str | None = None,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> AuditResult:
    """Execute the selected baseline items.

    Parameters
    ----------
    baseline_path:
        Optional custom baseline YAML path.
    locator:
        Process locator; defaults to the one for this operating system.
    missing_process:
        Whether an absent target process FAILs or SKIPs its items.
    family:
        Only run items of this benchmark family (e.g. ``"node"``).
    process:
        Only run items whose target process has this name.
    focus, skip:
        Regular expressions matched against ``"[<id>] <title>"``; an item
        runs if it matches *focus* (when given) and does not match *skip*.
    timeout:
        Upper bound for each process-table scan and stat call.
    """
    baseline = load_baseline(baseline_path)
    checks = get_checks_by_family(baseline, family) if family else get_checks(baseline)
    locator = locator or default_locator(timeout=timeout)

    focus_re = re.compile(focus) if focus else None
    skip_re = re.compile(skip) if skip else None

    findings: list[Finding] = []
    for check_def in checks:
        if process and check_def["target"].get("process") != process:
            continue
        if not _selected(check_def, focus_re, skip_re):
            continue
        finding = _execute_check(check_def, locator, missing_process, timeout)
        log.debug("[%s] %s: %s", finding.check_id, finding.status.value, finding.message)
        findings.append(finding)

    metadata = baseline.get("metadata", {})
    return AuditResult(
        benchmark=metadata.get("benchmark", ""),
        benchmark_version=str(metadata.get("version", "")),
        missing_process=missing_process,
        findings=findings,
        metadata=metadata,
    )


def item_label(check_def: dict[str, Any]) -> str:
    """Text that focus/skip expressions are matched against."""
    return f"[{check_def['id']}] {check_def.get('title', '')}"


def _selected(check_def: dict[str, Any], focus_re: re.Pattern | None, skip_re: re.Pattern | None) -> bool:
    label = item_label(check_def)
    if focus_re is not None and not focus_re.search(label):
        return False
    if skip_re is not None and skip_re.search(label):
        return False
    return True


def describe_target(target: dict[str, Any]) -> str:
    """Human-readable target, e.g. ``kubelet --kubeconfig``."""
    parts = []
    if target.get("process"):
        parts.append(target["process"])
    if target.get("flag"):
        parts.append(f"--{target['flag']}")
    elif target.get("path"):
        parts.append(target["path"])
    return " ".join(parts)


def _execute_check(
    check_def: dict[str, Any],
    locator: ProcessLocator,
    policy: MissingProcessPolicy,
    timeout: float | None,
) -> Finding:
    """Resolve prerequisites and execute a single check function."""
    check_id = str(check_def["id"])
    target = check_def["target"]

    try:
        path, unmet = _resolve_target(target, locator, policy, timeout)
    except Exception as exc:
        log.warning("[%s] prerequisite lookup failed: %s", check_id, exc)
        return _enrich(
            Finding(check_id=check_id, status=Status.ERROR, message=f"Prerequisite lookup error: {exc}"),
            check_def,
        )
    if unmet is not None:
        return _enrich(unmet, check_def)

    try:
        func = _resolve_check_function(check_def["check_function"])
    except Exception as exc:
        return _enrich(
            Finding(check_id=check_id, status=Status.ERROR, message=f"Failed to resolve check function: {exc}"),
            check_def,
        )

    try:
        finding = func(path, timeout=timeout, **check_def.get("params", {}))
    except Exception as exc:
        log.warning("[%s] check raised: %s", check_id, exc)
        finding = Finding(check_id=check_id, status=Status.ERROR, message=f"Check execution error: {exc}")

    finding = _enrich(finding, check_def)
    finding.target = path
    return finding


def _resolve_target(
    target: dict[str, Any],
    locator: ProcessLocator,
    policy: MissingProcessPolicy,
    timeout: float | None,
) -> tuple[str, Finding | None]:
    """Return the path to evaluate, or a SKIP/FAIL finding naming the first
    unmet prerequisite."""
    handle = None
    proc_name = target.get("process")
    if proc_name:
        handle = locator.locate(proc_name)
        if handle is None:
            status = Status.FAIL if policy is MissingProcessPolicy.FAIL else Status.SKIP
            return "", Finding(
                check_id="",
                status=status,
                message=f"process not found: {proc_name}",
                evidence=f"no running process named {proc_name}",
            )

    flag = target.get("flag")
    if flag:
        base_dir = target.get("base_dir")
        if base_dir == "process":
            base_dir = handle.cwd
            value = handle.flags.get(flag)
            if value is None:
                value = target.get("default")
            if base_dir is None and value and not os.path.isabs(value):
                raise ProcessLocatorError(f"cannot read cwd of {proc_name} (pid {handle.pid})")
        resolved = resolve_flag(
            handle,
            flag,
            base_dir=base_dir,
            default=target.get("default"),
            timeout=timeout,
        )
        if resolved.state is FlagState.NOT_SET:
            return "", Finding(
                check_id="",
                status=Status.SKIP,
                message=f"flag not set: --{flag}",
                evidence=f"{proc_name} (pid {handle.pid}) runs without --{flag}",
            )
        if resolved.state is FlagState.MISSING:
            source = f"--{flag}" if resolved.explicit else "default location"
            return "", Finding(
                check_id="",
                status=Status.SKIP,
                message=f"file not found: {resolved.path}",
                evidence=f"{resolved.path} (from {source}) does not exist",
            )
        return resolved.path, None

    path = target["path"]
    if not path_exists(path, timeout=timeout):
        return "", Finding(
            check_id="",
            status=Status.SKIP,
            message=f"file not found: {path}",
            evidence=f"{path} does not exist",
        )
    return path, None


def _enrich(finding: Finding, check_def: dict[str, Any]) -> Finding:
    """Copy baseline metadata onto a finding."""
    finding.check_id = str(check_def["id"])
    finding.title = check_def.get("title", finding.title)
    finding.family = check_def.get("family", finding.family)
    finding.scored = bool(check_def.get("scored", True))
    finding.target = describe_target(check_def["target"])
    return finding


def _resolve_check_function(dotted_path: str):
    """Resolve 'module.function_name' to an actual callable.

    The dotted_path is relative to ``ksbench.framework.checks``.
    For example ``files.check_permissions`` resolves to
    ``ksbench.framework.checks.files:check_permissions``.
    """
    parts = dotted_path.rsplit(".", 1)
    if len(parts) != 2:
        raise ValueError(f"Invalid check_function path: {dotted_path}")

    module_name, func_name = parts
    full_module = f"ksbench.framework.checks.{module_name}"
    mod = importlib.import_module(full_module)
    func = getattr(mod, func_name, None)
    if func is None:
        raise AttributeError(f"{func_name} not found in {full_module}")
    return func
