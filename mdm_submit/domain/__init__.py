"""
Domain package for MDM Submit.

Exports the core domain models used across the store, channel and
submission layers. Keep this package focused on data definitions and
validation concerns.
"""

from mdm_submit.domain.models import (
    ChannelMessage,
    Comparator,
    QuerySpec,
    Resource,
    ResourceId,
    SearchFilter,
)

__all__ = [
    "ChannelMessage",
    "Comparator",
    "QuerySpec",
    "Resource",
    "ResourceId",
    "SearchFilter",
]
