"""
Exception hierarchy for MDM Submit.

Client errors (a bad resource type, bad criteria, an unknown id) derive from
ValidationError and are raised before any store or channel work happens.
Store and channel failures are internal errors; they abort the current call
and never undo records that were already published.
"""

from __future__ import annotations

OPERATION_MDM_SUBMIT = "$mdm-submit"


class SubmitError(Exception):
    """Base class for every error raised by MDM Submit."""


class ValidationError(SubmitError):
    """The request itself is invalid; fix the input and call again."""


class RecordNotFoundError(ValidationError):
    """A direct read found no live resource for the given id."""

    def __init__(self, resource_id: str, deleted: bool = False) -> None:
        self.resource_id = resource_id
        self.deleted = deleted
        state = "has been deleted" if deleted else "is not known"
        super().__init__(f"Resource {resource_id} {state}")


class StoreError(SubmitError):
    """The resource store failed while serving a submission."""


class QueryError(StoreError):
    """The paginated query could not be opened or advanced."""


class LoadError(StoreError):
    """A batch of pids could not be resolved into resources."""


class PublishError(SubmitError):
    """The downstream MDM channel rejected or failed to accept a resource."""


def unsupported_type(resource_type: str) -> ValidationError:
    return ValidationError(
        f"{OPERATION_MDM_SUBMIT} does not support resource type: {resource_type}"
    )


__all__ = [
    "OPERATION_MDM_SUBMIT",
    "SubmitError",
    "ValidationError",
    "RecordNotFoundError",
    "StoreError",
    "QueryError",
    "LoadError",
    "PublishError",
    "unsupported_type",
]
