"""Load and manage YAML baseline definitions."""

from __future__ import annotations

import importlib.resources
import logging
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("id", "title", "check_function", "target")


def load_baseline(path: str | Path | None = None) -> dict[str, Any]:
    """Load the ksbench baseline YAML and return the parsed dict.

    Parameters
    ----------
    path:
        Path to a custom baseline YAML.  When *None* the built-in
        split baseline (metadata + per-section check files) is used.
        Custom paths are always loaded as monolithic single files.
    """
    if path:
        data = _load_single_file(Path(path))
    else:
        data = _load_split_baseline()
    _validate_checks(get_checks(data))
    return data


def _load_single_file(p: Path) -> dict[str, Any]:
    """Load a monolithic baseline YAML from *p*."""
    if not p.exists():
        raise FileNotFoundError(f"Baseline file not found: {p}")
    with p.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    if not isinstance(data, dict) or "checks" not in data:
        raise ValueError(f"Invalid baseline file, missing 'checks' key: {p}")
    return data


def _load_split_baseline() -> dict[str, Any]:
    """Load the built-in split baseline (metadata + per-section files).

    The main ``ksbench-baseline.yaml`` contains ``metadata`` and a
    ``check_files`` list.  Each referenced file is a bare YAML list of
    check dicts located under ``ksbench.data.checks``.
    """
    ref = importlib.resources.files("ksbench.data").joinpath("ksbench-baseline.yaml")
    with importlib.resources.as_file(ref) as p:
        with p.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)

    if not isinstance(data, dict) or "check_files" not in data:
        raise ValueError("Built-in baseline missing 'check_files' key")

    checks: list[dict[str, Any]] = []
    checks_pkg = importlib.resources.files("ksbench.data.checks")
    for filename in data["check_files"]:
        ref = checks_pkg.joinpath(filename)
        with importlib.resources.as_file(ref) as fp:
            with fp.open("r", encoding="utf-8") as fh:
                file_checks = yaml.safe_load(fh)
        if not isinstance(file_checks, list):
            raise ValueError(f"Expected a YAML list in {filename}, got {type(file_checks).__name__}")
        logger.debug("Loaded %d check(s) from %s", len(file_checks), filename)
        checks.extend(file_checks)

    data["checks"] = checks
    del data["check_files"]
    return data


def _validate_checks(checks: list[dict[str, Any]]) -> None:
    """Reject malformed items and duplicate ids; ids are stable report keys."""
    seen: set[str] = set()
    for check in checks:
        if not isinstance(check, dict):
            raise ValueError(f"Check definition must be a mapping, got {check!r}")
        missing = [k for k in REQUIRED_KEYS if k not in check]
        if missing:
            raise ValueError(f"Check {check.get('id', '?')} is missing {', '.join(missing)}")
        check_id = str(check["id"])
        if check_id in seen:
            raise ValueError(f"Duplicate check id: {check_id}")
        seen.add(check_id)
        target = check["target"]
        if not isinstance(target, dict) or not ("flag" in target or "path" in target):
            raise ValueError(f"Check {check_id} target needs a 'flag' or a 'path'")
        if "flag" in target and not target.get("process"):
            raise ValueError(f"Check {check_id} reads a flag but names no process")


def get_checks(baseline: dict[str, Any]) -> list[dict[str, Any]]:
    """Return the list of check definitions from a loaded baseline."""
    return baseline.get("checks", [])


def get_checks_by_family(baseline: dict[str, Any], family: str) -> list[dict[str, Any]]:
    """Return the check definitions of one benchmark family, in order."""
    return [c for c in get_checks(baseline) if c.get("family") == family]


def get_families(baseline: dict[str, Any]) -> list[str]:
    """Return sorted unique family names."""
    return sorted({c.get("family", "unknown") for c in get_checks(baseline)})


def get_family_title(baseline: dict[str, Any], family: str) -> str:
    """Return the display name of *family* from ``metadata.families``."""
    titles = baseline.get("metadata", {}).get("families") or {}
    return titles.get(family, family)
