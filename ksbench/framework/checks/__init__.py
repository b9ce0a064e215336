"""Check registry: imports all check modules so they are discoverable."""

from . import files  # noqa: F401
