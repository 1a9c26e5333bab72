"""
Domain models for MDM Submit.

Defines the resource schema aligned with `db/init.sql`, the compiled query
specification consumed by the paginated cursor, and the message published to
the MDM channel.
"""
from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Tuple
from uuid import uuid4

from pydantic import BaseModel, Field

from mdm_submit.config import DEFAULT_PAGE_SIZE

_RESOURCE_TYPE_RE = re.compile(r"^[A-Z][A-Za-z]*$")
_ID_PART_RE = re.compile(r"^[A-Za-z0-9\-.]{1,64}$")


class ResourceId(BaseModel):
    """
    Logical id of a resource, carrying its resource type (e.g. `Patient/123`).
    """

    resource_type: str = Field(..., description="Resource type tag, e.g. Patient.")
    id_part: str = Field(..., description="Logical id within the type.")

    model_config = {"frozen": True}

    @classmethod
    def parse(cls, value: str) -> "ResourceId":
        """
        Parse `Type/id` or `Type/id/_history/N`. A leading base URL is ignored.

        Raises ValueError when the value is not a typed id.
        """
        parts = [part for part in value.strip().split("/") if part]
        if len(parts) >= 4 and parts[-2] == "_history":
            parts = parts[:-2]
        if len(parts) < 2:
            raise ValueError(f"Resource id must look like Type/id, got {value!r}")
        resource_type, id_part = parts[-2], parts[-1]
        if not _RESOURCE_TYPE_RE.match(resource_type) or not _ID_PART_RE.match(id_part):
            raise ValueError(f"Resource id must look like Type/id, got {value!r}")
        return cls(resource_type=resource_type, id_part=id_part)

    def __str__(self) -> str:
        return f"{self.resource_type}/{self.id_part}"


class Resource(BaseModel):
    """
    Representation of a single live row in the `mdm_resources` table.
    """

    pid: int = Field(..., description="Store-assigned primary key.")
    resource_type: str = Field(..., description="Resource type tag.")
    resource_id: str = Field(..., description="Logical id within the type.")
    version: int = Field(1, description="Current version number.")
    last_updated: datetime = Field(..., description="Timestamp of the current version.")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Resource body (JSON).")

    model_config = {"frozen": True}

    @property
    def typed_id(self) -> ResourceId:
        return ResourceId(resource_type=self.resource_type, id_part=self.resource_id)


class Comparator(str, Enum):
    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GE = "ge"
    LT = "lt"
    LE = "le"


class SearchFilter(BaseModel):
    """
    One compiled search parameter. `values` are OR-ed; filters are AND-ed.
    """

    param: str
    comparator: Comparator = Comparator.EQ
    values: Tuple[str, ...]

    model_config = {"frozen": True}


class QuerySpec(BaseModel):
    """
    Compiled filter, target type and page size. Consumed once by a cursor.
    """

    resource_type: str
    filters: Tuple[SearchFilter, ...] = ()
    page_size: int = Field(DEFAULT_PAGE_SIZE, gt=0)

    model_config = {"frozen": True}


OPERATION_MANUALLY_TRIGGERED = "MANUALLY_TRIGGERED"


class ChannelMessage(BaseModel):
    """
    Envelope published to the MDM channel for one resource.
    """

    resource_type: str
    resource_id: str
    version: int
    operation_type: str = OPERATION_MANUALLY_TRIGGERED
    transaction_id: str = Field(default_factory=lambda: str(uuid4()))
    submitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    payload: Dict[str, Any]

    model_config = {"frozen": True}

    @classmethod
    def for_resource(cls, resource: Resource) -> "ChannelMessage":
        return cls(
            resource_type=resource.resource_type,
            resource_id=resource.resource_id,
            version=resource.version,
            payload=resource.payload,
        )


__all__ = [
    "ChannelMessage",
    "Comparator",
    "OPERATION_MANUALLY_TRIGGERED",
    "QuerySpec",
    "Resource",
    "ResourceId",
    "SearchFilter",
]
