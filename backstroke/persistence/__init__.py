"""Record store models and initialisation for Backstroke."""

from __future__ import annotations

from .errors import TimezoneAwareRequiredError
from .storage import Base, Link, Repository, User, UTCDateTime, init_storage

__all__ = [
    "Base",
    "Link",
    "Repository",
    "TimezoneAwareRequiredError",
    "UTCDateTime",
    "User",
    "init_storage",
]
