"""Shared type definitions for build_console.

This module contains enums and dataclasses shared across subpackages
to avoid circular imports.
"""

from dataclasses import dataclass, field
from enum import Enum


class StatusFilter(str, Enum):
    """Status filter applied to the build list."""

    ALL = "all"
    PATCHED = "patched"
    PENDING = "pending"


class BuildAction(str, Enum):
    """Action an operator can take on a build row."""

    DOWNLOAD = "download"
    ACTIVATE = "activate"
    REPATCH = "repatch"


class PollState(str, Enum):
    """State of a reconciliation poll."""

    POLLING = "polling"
    RESOLVED = "resolved"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class NotificationState(str, Enum):
    """Lifecycle of a transient notification."""

    VISIBLE = "visible"
    HIDING = "hiding"
    REMOVED = "removed"


@dataclass
class OperationResult:
    """Result of a console action (download, activate, etc.)."""

    success: bool
    message: str
    code: str | None = None
    build_hash: str | None = None
    details: dict[str, object] = field(default_factory=dict)


__all__ = [
    "BuildAction",
    "NotificationState",
    "OperationResult",
    "PollState",
    "StatusFilter",
]
