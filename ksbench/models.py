"""Data models for flag resolution, predicate results and audit findings."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Status(enum.Enum):
    """Result status for a single benchmark item."""
    PASS = "pass"
    FAIL = "fail"
    SKIP = "skip"
    ERROR = "error"


class MissingProcessPolicy(enum.Enum):
    """Outcome of an item whose target process is not running."""
    FAIL = "fail"
    SKIP = "skip"


class FlagState(enum.Enum):
    """Three-way presence of a flag-derived file."""
    NOT_SET = "not-set"
    MISSING = "missing"
    PRESENT = "present"


# ---------------------------------------------------------------------------
# Resolution / predicate models
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ResolvedPath:
    """Path derived from a process flag."""
    path: str
    state: FlagState
    explicit: bool = False

    @property
    def exists(self) -> bool:
        return self.state is FlagState.PRESENT


@dataclass
class PredicateResult:
    """Outcome of evaluating a file predicate over one entry or a tree."""
    ok: bool
    detail: str = ""
    violations: list[str] = field(default_factory=list)
    checked: int = 0


# ---------------------------------------------------------------------------
# Audit / Finding models
# ---------------------------------------------------------------------------

@dataclass
class Finding:
    """Result of a single benchmark item."""
    check_id: str
    status: Status
    message: str
    evidence: str = ""
    title: str = ""
    family: str = ""
    target: str = ""
    scored: bool = True


@dataclass
class AuditResult:
    """Complete audit result with every evaluated item, in baseline order."""
    benchmark: str = ""
    benchmark_version: str = ""
    scan_date: str = field(default_factory=lambda: datetime.now().isoformat())
    missing_process: MissingProcessPolicy = MissingProcessPolicy.SKIP
    findings: list[Finding] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def count(self, status: Status) -> int:
        return sum(1 for f in self.findings if f.status == status)

    @property
    def pass_count(self) -> int:
        return self.count(Status.PASS)

    @property
    def fail_count(self) -> int:
        return self.count(Status.FAIL)

    @property
    def skip_count(self) -> int:
        return self.count(Status.SKIP)

    @property
    def error_count(self) -> int:
        return self.count(Status.ERROR)

    @property
    def succeeded(self) -> bool:
        """True when no item failed or errored; skips do not count against."""
        return self.fail_count == 0 and self.error_count == 0
