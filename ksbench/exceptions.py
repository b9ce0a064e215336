"""Error types raised by the resolution and predicate layers."""

from __future__ import annotations


class KsbenchError(Exception):
    """Base class for lookup errors that abort a single benchmark item."""


class ProcessLocatorError(KsbenchError):
    """The process table could not be read, or a matching process could not
    be inspected.  Distinct from the process simply not running."""


class UnknownPrincipalError(KsbenchError):
    """An expected user or group name has no entry on this host."""

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(f"unknown {kind}: {name!r}")


class OperationTimeoutError(KsbenchError, TimeoutError):
    """A process-table or filesystem call did not return in time."""
