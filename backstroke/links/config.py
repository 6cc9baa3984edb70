"""Configuration for link lifecycle operations.

Usage
-----
>>> LinkServiceConfig().default_name
'Untitled Link'

"""

from __future__ import annotations

import dataclasses as dc
import os

DEFAULT_LINK_NAME = "Untitled Link"


@dc.dataclass(frozen=True, slots=True)
class LinkServiceConfig:
    """Settings for :class:`~backstroke.links.service.LinkService`.

    Attributes
    ----------
    default_name
        Name given to links created without one.

    """

    default_name: str = DEFAULT_LINK_NAME

    @classmethod
    def from_env(cls) -> LinkServiceConfig:
        """Create configuration from ``BACKSTROKE_DEFAULT_LINK_NAME``."""
        raw = os.environ.get("BACKSTROKE_DEFAULT_LINK_NAME", "")
        return cls(default_name=raw.strip() or DEFAULT_LINK_NAME)
