"""Storage-layer error types."""

from __future__ import annotations


class TimezoneAwareRequiredError(ValueError):
    """Raised when a naive datetime is bound to a UTC column."""

    def __init__(self, column: str) -> None:
        """Attach a consistent message for the failing column."""
        super().__init__(f"{column} must be timezone aware")
