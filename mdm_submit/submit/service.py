"""
Submission of stored resources to the MDM channel.

Usage:
    from mdm_submit.submit import MdmSubmitService

    service = MdmSubmitService(
        mdm_types=("Patient", "Practitioner"),
        daos=DaoRegistry.for_connection(store_conn, ("Patient", "Practitioner")),
        publisher=OutboxChannelPublisher(channel_conn),
        transactions=TransactionScope(store_conn),
    )
    service.submit_type("Patient", "name=Smith")

Bulk submission pages through the store: the type's DAO opens a paginated
cursor of pids, each page is resolved into resources, and every resource is
published in the order it was loaded. Nothing is retried or deduplicated;
submitting the same type twice publishes its resources twice.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Union

from mdm_submit.channel.publisher import ChannelPublisher
from mdm_submit.config import DEFAULT_PAGE_SIZE, TransactionMode
from mdm_submit.domain.models import QuerySpec, ResourceId
from mdm_submit.errors import ValidationError, unsupported_type
from mdm_submit.infrastructure.transactions import TransactionScope
from mdm_submit.search.criteria import build_query_spec
from mdm_submit.store.dao import DaoRegistry, ResourceDao
from mdm_submit.utils.logging import TROUBLESHOOTING_LOGGER, get_logger

PATIENT = "Patient"
PRACTITIONER = "Practitioner"


class MdmSubmitService:
    """
    Resubmits resources of allow-listed types to the MDM channel.

    Parameters
    ----------
    mdm_types : Sequence[str]
        Allow-listed resource types, in the order submit_all visits them.
    daos : DaoRegistry
        Store access per resource type.
    publisher : ChannelPublisher
        Downstream channel. Failures propagate and abort the run.
    transactions : TransactionScope
        Read transaction boundary on the store connection.
    page_size : int
        Maximum number of pids pulled from the cursor per batch.
    transaction_mode : TransactionMode
        PER_TYPE gives every submit_type its own transaction; SHARED makes
        submit_all open one transaction that every type joins.
    logger : logging.Logger | None
        Defaults to the MDM troubleshooting logger.
    """

    def __init__(
        self,
        mdm_types: Sequence[str],
        daos: DaoRegistry,
        publisher: ChannelPublisher,
        transactions: TransactionScope,
        page_size: int = DEFAULT_PAGE_SIZE,
        transaction_mode: TransactionMode = TransactionMode.PER_TYPE,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self.mdm_types = tuple(mdm_types)
        self._allowed = frozenset(self.mdm_types)
        self._daos = daos
        self._publisher = publisher
        self._transactions = transactions
        self.page_size = page_size
        self.transaction_mode = transaction_mode
        self._log = logger or get_logger(TROUBLESHOOTING_LOGGER)

    def _validate_type(self, resource_type: str) -> None:
        if resource_type not in self._allowed:
            raise unsupported_type(resource_type)

    def submit_all(self, criteria: Optional[str] = None) -> int:
        """
        Submit every allow-listed type, in allow-list order, and return the sum.

        A failing type aborts the remaining ones; types already submitted stay
        submitted.
        """

        def _submit_each() -> int:
            return sum(self.submit_type(resource_type, criteria) for resource_type in self.mdm_types)

        if self.transaction_mode is TransactionMode.SHARED:
            return self._transactions.run(_submit_each)
        return _submit_each()

    def submit_type(self, resource_type: str, criteria: Optional[str] = None) -> int:
        """
        Submit all resources of `resource_type` matching `criteria`.

        Returns
        -------
        int
            Number of resources handed to the publisher.

        Raises
        ------
        ValidationError
            Type not allow-listed or criteria malformed; nothing was queried.
        QueryError, LoadError, PublishError
            The run stopped part way; resources published before the failure
            are not retracted.
        """
        if criteria is None:
            self._log.info(f"Submitting all resources of type {resource_type} to MDM")
        else:
            self._log.info(
                f"Submitting resources of type {resource_type} with criteria {criteria} to MDM"
            )

        self._validate_type(resource_type)
        spec = build_query_spec(resource_type, criteria, page_size=self.page_size)
        dao = self._daos.get(resource_type)
        return self._transactions.run(lambda: self._submit_matching(dao, spec))

    def _submit_matching(self, dao: ResourceDao, spec: QuerySpec) -> int:
        total = 0
        try:
            with dao.search(spec) as cursor:
                while cursor.has_more():
                    pids = cursor.next_batch(spec.page_size)
                    if not pids:
                        break
                    total += self._load_and_publish(dao, pids)
        except Exception:
            self._log.warning(
                f"MDM Submit of {spec.resource_type} aborted after submitting {total} resources.",
                extra={"resource_type": spec.resource_type, "submitted": total},
            )
            raise
        self._log.info(
            f"MDM Submit complete.  Submitted a total of {total} resources.",
            extra={"resource_type": spec.resource_type, "submitted": total},
        )
        return total

    def _load_and_publish(self, dao: ResourceDao, pids: Sequence[int]) -> int:
        resources = dao.load_batch(pids)
        if len(resources) < len(pids):
            self._log.warning(
                f"Resolved {len(resources)} of {len(pids)} {dao.resource_type} resources; "
                "the rest no longer exist",
                extra={"resource_type": dao.resource_type, "requested": len(pids)},
            )
        self._log.info(f"Submitting {len(resources)} resources to MDM")
        for resource in resources:
            self._publisher.publish(resource)
        return len(resources)

    def submit_practitioner_type(self, criteria: Optional[str] = None) -> int:
        return self.submit_type(PRACTITIONER, criteria)

    def submit_patient_type(self, criteria: Optional[str] = None) -> int:
        return self.submit_type(PATIENT, criteria)

    def submit_one(self, resource_id: Union[ResourceId, str]) -> int:
        """
        Read one resource by id and publish it. Always returns 1.

        Raises
        ------
        ValidationError
            Malformed id or type not allow-listed.
        RecordNotFoundError
            No live resource with that id.
        """
        if isinstance(resource_id, str):
            try:
                resource_id = ResourceId.parse(resource_id)
            except ValueError as exc:
                raise ValidationError(str(exc)) from exc

        self._validate_type(resource_id.resource_type)
        dao = self._daos.get(resource_id.resource_type)
        resource = self._transactions.run(lambda: dao.read(resource_id))
        self._log.info(f"Submitting {resource_id} to MDM")
        self._publisher.publish(resource)
        return 1


__all__ = ["MdmSubmitService", "PATIENT", "PRACTITIONER"]
