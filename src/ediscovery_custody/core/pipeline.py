"""Best-effort batch processing over the evidence registry."""

import logging
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ediscovery_custody.core.errors import EDiscoveryError, ErrorKind, ValidationError
from ediscovery_custody.core.interfaces import IUnitOfWork
from ediscovery_custody.core.models import ProcessingType
from ediscovery_custody.core.tenancy import TenantContext

if TYPE_CHECKING:
    from ediscovery_custody.core.services import EvidenceService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessedItem:
    evidence_id: uuid.UUID
    evidence_number: str


@dataclass(frozen=True)
class ItemError:
    evidence_id: uuid.UUID
    kind: str
    message: str


@dataclass
class ProcessingSummary:
    """Result of a processing batch.

    Attributes:
        processed: Number of items processed successfully.
        failed: Number of items that failed.
        processing_type: Processing type applied to the batch.
        processed_items: Successfully processed items, in request order.
        errors: One entry per failed item.
        error_kind: PartialBatchFailure when at least one item failed.
    """

    processing_type: str
    processed_items: list[ProcessedItem] = field(default_factory=list)
    errors: list[ItemError] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.processed_items)

    @property
    def failed(self) -> int:
        return len(self.errors)

    @property
    def error_kind(self) -> str | None:
        return ErrorKind.PARTIAL_BATCH_FAILURE.value if self.errors else None


class ProcessingPipeline:
    """Runs process_item over a batch, isolating each item in a savepoint.

    A failing item is rolled back to its savepoint and reported in the
    summary; it never aborts the rest of the batch.

    Args:
        evidence_service: Registry performing the per-item processing.
        uow: Unit of work providing savepoints.
        max_batch_size: Largest batch accepted.
    """

    def __init__(
        self,
        evidence_service: "EvidenceService",
        uow: IUnitOfWork,
        max_batch_size: int = 1000,
    ) -> None:
        self._evidence = evidence_service
        self._uow = uow
        self._max_batch_size = max_batch_size

    async def run(
        self,
        evidence_ids: list[uuid.UUID],
        processing_type: str,
        processed_by: str,
        tenant: TenantContext,
        extract_text: bool = True,
    ) -> ProcessingSummary:
        """Process every id in order and summarize the outcome.

        Raises:
            ValidationError: If the batch itself is invalid (empty, too
                large, or an unknown processing type). Per-item problems
                are reported in the summary instead.
        """
        if not evidence_ids:
            raise ValidationError("evidence_ids must not be empty")
        if len(evidence_ids) > self._max_batch_size:
            raise ValidationError(f"A processing batch cannot exceed {self._max_batch_size} items")
        try:
            processing = ProcessingType(processing_type)
        except ValueError:
            raise ValidationError(f"Unknown processing_type: {processing_type}") from None
        if not processed_by or not processed_by.strip():
            raise ValidationError("processed_by is required")

        summary = ProcessingSummary(processing_type=processing.value)
        for evidence_id in evidence_ids:
            try:
                async with self._uow.savepoint():
                    item = await self._evidence.process_item(
                        evidence_id, processing.value, processed_by, tenant, extract_text=extract_text
                    )
            except EDiscoveryError as exc:
                logger.warning(
                    "Evidence processing failed",
                    extra={
                        "evidence_id": str(evidence_id),
                        "error_kind": exc.kind.value,
                        "error": exc.message,
                    },
                )
                summary.errors.append(ItemError(evidence_id=evidence_id, kind=exc.kind.value, message=exc.message))
                continue
            summary.processed_items.append(
                ProcessedItem(evidence_id=item.id, evidence_number=item.evidence_number)
            )

        logger.info(
            "Processing batch finished",
            extra={
                "processing_type": processing.value,
                "processed": summary.processed,
                "failed": summary.failed,
                "tenant_id": str(tenant.tenant_id),
            },
        )
        return summary
