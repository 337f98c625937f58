from __future__ import annotations


class TimelineError(ValueError):
    """Base class for calgrid errors."""


class InvalidIntervalError(TimelineError):
    """Raised when an interval ends before it starts."""


class CrossesMidnightError(TimelineError):
    """Raised when an interval or an edit would leave its calendar day."""


class NotFoundError(TimelineError, LookupError):
    """Raised when an edited record no longer exists in the sink."""


class ConfigError(TimelineError):
    """Raised when configuration values are out of range."""


class DuplicateRecordError(TimelineError):
    """Raised when a source returns the same record id more than once."""
