"""Tests for the hash-chained custody ledger."""

import uuid

import pytest

from ediscovery_custody.core.errors import NotFoundError, ValidationError
from ediscovery_custody.core.ledger import CustodyLedger, HoldDetail, ProductionDetail
from ediscovery_custody.core.models import CustodyAction
from ediscovery_custody.core.tenancy import TenantContext


class TestCustodyLedger:
    @pytest.mark.asyncio
    async def test_collect_starts_chain_with_single_entry(
        self, collect_evidence, ledger: CustodyLedger, tenant: TenantContext
    ) -> None:
        """A freshly collected item has exactly one Collected entry with no predecessor."""
        item = await collect_evidence()

        entries = await ledger.entries(item.id, tenant)

        assert len(entries) == 1
        assert entries[0].sequence == 1
        assert entries[0].action == CustodyAction.COLLECTED.value
        assert entries[0].previous_hash is None
        assert item.ledger_length == 1
        assert item.ledger_head_hash == entries[0].entry_hash

    @pytest.mark.asyncio
    async def test_entries_link_to_previous_hash(
        self, collect_evidence, ledger: CustodyLedger, tenant: TenantContext
    ) -> None:
        item = await collect_evidence()
        await ledger.append(item.id, CustodyAction.REVIEWED, "reviewer@firm.test", tenant)
        await ledger.append(item.id, CustodyAction.REVIEWED, "reviewer@firm.test", tenant, notes="second pass")

        entries = await ledger.entries(item.id, tenant)

        assert [e.sequence for e in entries] == [1, 2, 3]
        assert entries[1].previous_hash == entries[0].entry_hash
        assert entries[2].previous_hash == entries[1].entry_hash
        assert item.ledger_head_hash == entries[2].entry_hash

    @pytest.mark.asyncio
    async def test_verify_reports_valid_chain(
        self, collect_evidence, ledger: CustodyLedger, tenant: TenantContext
    ) -> None:
        item = await collect_evidence()
        await ledger.append(item.id, CustodyAction.REVIEWED, "reviewer@firm.test", tenant)

        result = await ledger.verify(item.id, tenant)

        assert result.valid is True
        assert result.length == 2
        assert result.broken_at is None
        assert result.head_hash == item.ledger_head_hash

    @pytest.mark.asyncio
    async def test_verify_detects_tampered_entry(
        self, collect_evidence, ledger: CustodyLedger, custody_repo, tenant: TenantContext
    ) -> None:
        """Editing a stored entry breaks the chain at that entry."""
        item = await collect_evidence()
        await ledger.append(item.id, CustodyAction.REVIEWED, "reviewer@firm.test", tenant)
        await ledger.append(item.id, CustodyAction.REVIEWED, "reviewer@firm.test", tenant)

        custody_repo.entries[1].performed_by = "someone-else@firm.test"
        result = await ledger.verify(item.id, tenant)

        assert result.valid is False
        assert result.broken_at == 2

    @pytest.mark.asyncio
    async def test_verify_detects_missing_tail_entry(
        self, collect_evidence, ledger: CustodyLedger, custody_repo, tenant: TenantContext
    ) -> None:
        item = await collect_evidence()
        await ledger.append(item.id, CustodyAction.REVIEWED, "reviewer@firm.test", tenant)

        custody_repo.entries.pop()
        result = await ledger.verify(item.id, tenant)

        assert result.valid is False
        assert result.broken_at == 2

    @pytest.mark.asyncio
    async def test_append_unknown_evidence_raises_not_found(
        self, ledger: CustodyLedger, tenant: TenantContext
    ) -> None:
        with pytest.raises(NotFoundError):
            await ledger.append(uuid.uuid4(), CustodyAction.REVIEWED, "reviewer@firm.test", tenant)

    @pytest.mark.asyncio
    async def test_append_is_tenant_scoped(
        self, collect_evidence, ledger: CustodyLedger, other_tenant: TenantContext
    ) -> None:
        item = await collect_evidence()

        with pytest.raises(NotFoundError):
            await ledger.append(item.id, CustodyAction.REVIEWED, "reviewer@firm.test", other_tenant)

    @pytest.mark.asyncio
    async def test_produced_requires_production_detail(
        self, collect_evidence, ledger: CustodyLedger, tenant: TenantContext
    ) -> None:
        item = await collect_evidence()

        with pytest.raises(ValidationError):
            await ledger.append(item.id, CustodyAction.PRODUCED, "clerk@firm.test", tenant)
        with pytest.raises(ValidationError):
            await ledger.append(
                item.id,
                CustodyAction.PRODUCED,
                "clerk@firm.test",
                tenant,
                detail=HoldDetail(hold_id=uuid.uuid4()),
            )
        assert item.ledger_length == 1

    @pytest.mark.asyncio
    async def test_detail_rejected_on_plain_actions(
        self, collect_evidence, ledger: CustodyLedger, tenant: TenantContext
    ) -> None:
        item = await collect_evidence()

        with pytest.raises(ValidationError):
            await ledger.append(
                item.id,
                CustodyAction.REVIEWED,
                "reviewer@firm.test",
                tenant,
                detail=ProductionDetail(production_id=uuid.uuid4(), bates_number="ABC000001"),
            )

    @pytest.mark.asyncio
    async def test_production_detail_is_recorded(
        self, collect_evidence, ledger: CustodyLedger, tenant: TenantContext
    ) -> None:
        item = await collect_evidence()
        production_id = uuid.uuid4()

        entry = await ledger.append(
            item.id,
            CustodyAction.PRODUCED,
            "clerk@firm.test",
            tenant,
            detail=ProductionDetail(production_id=production_id, bates_number="ABC000007"),
        )

        assert entry.production_id == production_id
        assert entry.bates_number == "ABC000007"

    def test_unsupported_hash_algorithm_rejected(self, evidence_repo, custody_repo) -> None:
        with pytest.raises(ValueError):
            CustodyLedger(evidence_repo, custody_repo, hash_algorithm="not-a-hash")
