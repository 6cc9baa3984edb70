"""HTTP resources for link lifecycle operations."""

from backstroke.api.links.resources import LinkResource, LinksResource

__all__ = ["LinkResource", "LinksResource"]
