"""
Exception hierarchy for draftdex.

Usage:
    from draftdex.errors import SearchValidationError

    try:
        search(session, filters, pagination, sort)
    except SearchValidationError as e:
        logger.error(f"Rejected search: {e}")
"""

from __future__ import annotations

import logging
from typing import Any, Optional


class DraftDexError(Exception):
    """
    Base exception for all draftdex errors.

    Carries an optional ``details`` mapping that is rendered into ``str()``.
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


# =============================================================================
# Pipeline Errors
# =============================================================================

class PhaseOrderError(DraftDexError):
    """Raised when a pipeline phase runs before its preconditions completed."""

    def __init__(self, phase: str, missing: list[str], message: Optional[str] = None):
        msg = message or f"Phase '{phase}' cannot run before {', '.join(missing)}"
        super().__init__(msg, {"phase": phase, "missing": missing})
        self.phase = phase
        self.missing = missing


class LookupMissError(DraftDexError):
    """
    Raised on an unresolved name/id lookup when strict lookups are enabled.

    Without strict lookups, misses are logged and skipped.
    """

    def __init__(self, kind: str, key: Any, message: Optional[str] = None):
        msg = message or f"Unresolved {kind} lookup: {key}"
        super().__init__(msg, {"kind": kind, "key": key})
        self.kind = kind
        self.key = key


class LockHeldError(DraftDexError):
    """Raised when another process holds the administrative lock."""

    def __init__(self, path: str, pid: Optional[int] = None):
        super().__init__("Administrative lock is held", {"path": path, "pid": pid})
        self.path = path
        self.pid = pid


# =============================================================================
# Query Errors
# =============================================================================

class SearchValidationError(DraftDexError):
    """Raised when a search request is rejected before any query executes."""

    def __init__(self, field: str, value: Any, allowed: Optional[list] = None,
                 message: Optional[str] = None):
        msg = message or f"Invalid value for {field}: {value!r}"
        details: dict = {"field": field, "value": value}
        if allowed is not None:
            details["allowed"] = allowed
        super().__init__(msg, details)
        self.field = field
        self.value = value
        self.allowed = allowed


def note_lookup_miss(logger: logging.Logger, kind: str, key: Any, *, strict: bool) -> None:
    """Log a lookup miss, raising ``LookupMissError`` when ``strict``."""
    if strict:
        raise LookupMissError(kind, key)
    logger.debug("skipping unresolved %s lookup: %s", kind, key)
