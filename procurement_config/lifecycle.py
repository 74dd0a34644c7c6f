"""
Catalog lifecycle status.

Catalog sets are append-only. Each version declares its predecessor.
Only PUBLISHED sets are preferred at runtime; superseded sets remain on
disk so contracts created under them can be explained later.
"""

from enum import Enum, unique


@unique
class ConfigStatus(str, Enum):
    """Lifecycle status for a catalog set."""

    DRAFT = "draft"
    REVIEWED = "reviewed"
    PUBLISHED = "published"
    SUPERSEDED = "superseded"

