"""
MDM Submit - resubmit stored resources to the MDM matching channel.

Resources that never went through MDM matching (or need to go through it
again) are read back from the resource store and published to the MDM
channel:

- in bulk, for one resource type or every allow-listed type, optionally
  narrowed by search criteria
- one at a time, by typed id

Bulk submissions page through the store with a server-side cursor so the
result set is never held in memory.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from mdm_submit.config import Settings, TransactionMode, get_settings
from mdm_submit.domain.models import ChannelMessage, QuerySpec, Resource, ResourceId
from mdm_submit.errors import (
    LoadError,
    PublishError,
    QueryError,
    RecordNotFoundError,
    StoreError,
    SubmitError,
    ValidationError,
)
from mdm_submit.submit import MdmSubmitService, open_submit_service
from mdm_submit.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "TransactionMode",
    "get_settings",
    # Domain
    "ChannelMessage",
    "QuerySpec",
    "Resource",
    "ResourceId",
    # Errors
    "LoadError",
    "PublishError",
    "QueryError",
    "RecordNotFoundError",
    "StoreError",
    "SubmitError",
    "ValidationError",
    # Submission
    "MdmSubmitService",
    "open_submit_service",
    # Logging
    "configure_logging",
    "get_logger",
]
