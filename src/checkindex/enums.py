"""
Enumeration types for the checkindex system.

These enums provide type-safe constants for verdicts, check methods and
entity lifecycles throughout the system.
"""

from enum import Enum


class Confidence(Enum):
    """Qualitative certainty of an indexation verdict."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class CheckMethod(Enum):
    """Which layer produced a verdict."""

    HEURISTIC = "heuristic"
    AUTHORITATIVE = "authoritative"


class WebhookStatus(Enum):
    """Lifecycle status of a registered webhook."""

    ACTIVE = "active"
    FAILING = "failing"
    DISABLED = "disabled"


class JobStatus(Enum):
    """Bulk job state. Transitions only move forward."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
