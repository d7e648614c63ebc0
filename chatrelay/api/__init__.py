"""HTTP collaborators: recent-messages backfill and Helix profile lookup."""

from .backfill import RecentMessagesClient, parse_backfill  # noqa: F401
from .helix import HelixClient  # noqa: F401

__all__ = ["HelixClient", "RecentMessagesClient", "parse_backfill"]
