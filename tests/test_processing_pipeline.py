"""Tests for best-effort batch processing."""

import uuid

import pytest

from ediscovery_custody.core.errors import ValidationError
from ediscovery_custody.core.models import CustodyAction
from ediscovery_custody.core.services import EvidenceService
from ediscovery_custody.core.tenancy import TenantContext


class TestProcessingPipeline:
    @pytest.mark.asyncio
    async def test_all_items_processed(
        self, collect_evidence, evidence_service: EvidenceService, uow, tenant: TenantContext
    ) -> None:
        items = [await collect_evidence() for _ in range(3)]

        summary = await evidence_service.process(
            [item.id for item in items], "Metadata Extraction", "tech@firm.test", tenant
        )

        assert summary.processed == 3
        assert summary.failed == 0
        assert summary.error_kind is None
        assert [p.evidence_number for p in summary.processed_items] == [i.evidence_number for i in items]
        assert uow.savepoints == 3
        assert all(item.processing_type == "Metadata Extraction" for item in items)

    @pytest.mark.asyncio
    async def test_failures_are_isolated_per_item(
        self, collect_evidence, evidence_service: EvidenceService, content_store, tenant: TenantContext
    ) -> None:
        """One bad item does not stop the rest of the batch."""
        good = await collect_evidence(content=b"ok")
        broken = await collect_evidence(content=b"broken")
        content_store.failing_refs.add(broken.storage_ref)
        missing = uuid.uuid4()

        summary = await evidence_service.process(
            [good.id, missing, broken.id], "Full Processing", "tech@firm.test", tenant
        )

        assert summary.processed == 1
        assert summary.failed == 2
        assert summary.error_kind == "PartialBatchFailure"
        assert [(e.evidence_id, e.kind) for e in summary.errors] == [
            (missing, "NotFound"),
            (broken.id, "ContentStoreError"),
        ]
        assert good.processed is True
        assert broken.processed is False
        broken_entries = await evidence_service.custody(broken.id, tenant)
        assert [e.action for e in broken_entries] == [CustodyAction.COLLECTED.value]

    @pytest.mark.asyncio
    async def test_failure_after_mutation_rolls_item_back(
        self,
        collect_evidence,
        evidence_service: EvidenceService,
        custody_repo,
        uow,
        tenant: TenantContext,
    ) -> None:
        """A custody append that fails after the item was updated leaves the item as it was."""
        item = await collect_evidence(content=b"quarterly numbers")
        other = await collect_evidence()
        custody_repo.failing_evidence.add(item.id)

        summary = await evidence_service.process(
            [item.id, other.id], "Full Processing", "tech@firm.test", tenant
        )

        assert [e.kind for e in summary.errors] == ["InvalidTransition"]
        assert uow.rollbacks == 1
        assert item.processed is False
        assert item.processing_type is None
        assert item.processed_by is None
        assert item.extracted_text is None
        assert item.preservation_status == "Collected"
        assert item.ledger_length == 1
        assert other.processed is True
        assert other.preservation_status == "Processed"

    @pytest.mark.asyncio
    async def test_deleted_item_reported_as_invalid_transition(
        self, collect_evidence, evidence_service: EvidenceService, tenant: TenantContext
    ) -> None:
        item = await collect_evidence()
        await evidence_service.delete(item.id, "records@firm.test", "duplicate", tenant)

        summary = await evidence_service.process([item.id], "Full Processing", "tech@firm.test", tenant)

        assert summary.errors[0].kind == "InvalidTransition"

    @pytest.mark.asyncio
    async def test_extraction_can_be_skipped(
        self, collect_evidence, evidence_service: EvidenceService, content_store, tenant: TenantContext
    ) -> None:
        item = await collect_evidence(content=b"body")
        content_store.failing_refs.add(item.storage_ref)

        summary = await evidence_service.process(
            [item.id], "De-duplication", "tech@firm.test", tenant, extract_text=False
        )

        assert summary.failed == 0
        assert item.extracted_text is None

    @pytest.mark.asyncio
    async def test_empty_batch_rejected(self, evidence_service: EvidenceService, tenant: TenantContext) -> None:
        with pytest.raises(ValidationError):
            await evidence_service.process([], "Full Processing", "tech@firm.test", tenant)

    @pytest.mark.asyncio
    async def test_oversized_batch_rejected(self, evidence_service: EvidenceService, tenant: TenantContext) -> None:
        with pytest.raises(ValidationError):
            await evidence_service.process(
                [uuid.uuid4() for _ in range(11)], "Full Processing", "tech@firm.test", tenant
            )

    @pytest.mark.asyncio
    async def test_unknown_processing_type_rejected(
        self, collect_evidence, evidence_service: EvidenceService, tenant: TenantContext
    ) -> None:
        item = await collect_evidence()

        with pytest.raises(ValidationError):
            await evidence_service.process([item.id], "Magic", "tech@firm.test", tenant)
        assert item.processed is False
