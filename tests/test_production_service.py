"""Tests for Bates allocation and the production service."""

import asyncio
import uuid

import pytest

from ediscovery_custody.core.bates import BatesLeaseRegistry, format_bates, normalize_prefix
from ediscovery_custody.core.errors import (
    InvalidTransitionError,
    NotFoundError,
    PrivilegedDocumentError,
    ValidationError,
)
from ediscovery_custody.core.models import CustodyAction, ProductionStatus
from ediscovery_custody.core.services import (
    LOAD_FILE_COLUMNS,
    EvidenceService,
    PrivilegeLogService,
    ProductionService,
)
from ediscovery_custody.core.tenancy import TenantContext


@pytest.fixture
def create_production(production_service: ProductionService, tenant: TenantContext, case_id: uuid.UUID):
    """Provide a helper that creates a Draft production for prefix ABC."""

    async def _create(**overrides):
        fields = {
            "tenant": tenant,
            "case_id": case_id,
            "production_name": "First production to plaintiff",
            "bates_prefix": "ABC",
            "produced_to": "Opposing Counsel LLP",
            "created_by": "clerk@firm.test",
        }
        fields.update(overrides)
        return await production_service.create_production(**fields)

    return _create


@pytest.fixture
def log_withheld(privilege_service: PrivilegeLogService, tenant: TenantContext, case_id: uuid.UUID):
    """Provide a helper that logs a withholding privilege claim on an item."""

    async def _log(evidence_id: uuid.UUID, redaction_type: str = "None"):
        return await privilege_service.log_privilege(
            tenant=tenant,
            case_id=case_id,
            privilege_type="Attorney-Client",
            privilege_basis="Legal advice",
            author="General Counsel",
            document_description="Advice memo",
            attorney="J. Smith, Esq.",
            identified_by="reviewer@firm.test",
            evidence_id=evidence_id,
            redaction_type=redaction_type,
        )

    return _log


# ---------------------------------------------------------------------------
# Formatting and leases
# ---------------------------------------------------------------------------


class TestBatesFormatting:
    def test_pads_to_width(self) -> None:
        assert format_bates("ABC", 1, 6) == "ABC000001"

    def test_never_truncates(self) -> None:
        assert format_bates("ABC", 1234567, 6) == "ABC1234567"

    def test_prefix_normalized(self) -> None:
        assert normalize_prefix("  abc-x ") == "ABC-X"

    @pytest.mark.asyncio
    async def test_lease_serializes_same_key(self) -> None:
        registry = BatesLeaseRegistry()
        tenant_id, case_id = uuid.uuid4(), uuid.uuid4()
        order: list[str] = []

        async def hold(name: str) -> None:
            async with registry.lease(tenant_id, case_id, "abc"):
                order.append(f"{name}-in")
                await asyncio.sleep(0)
                order.append(f"{name}-out")

        await asyncio.gather(hold("first"), hold("second"))

        assert order == ["first-in", "first-out", "second-in", "second-out"]


# ---------------------------------------------------------------------------
# Allocation
# ---------------------------------------------------------------------------


class TestBatesAllocation:
    @pytest.mark.asyncio
    async def test_next_number_starts_at_one(
        self, production_service: ProductionService, tenant: TenantContext, case_id: uuid.UUID
    ) -> None:
        result = await production_service.get_next_bates_number(case_id, "abc", tenant)

        assert result.prefix == "ABC"
        assert result.number == 1
        assert result.formatted == "ABC000001"

    @pytest.mark.asyncio
    async def test_documents_numbered_consecutively(
        self,
        create_production,
        collect_evidence,
        production_service: ProductionService,
        tenant: TenantContext,
        case_id: uuid.UUID,
    ) -> None:
        """Three documents in a production starting at 1 end at 3; next is 4."""
        production = await create_production(bates_start_number=1)
        items = [await collect_evidence() for _ in range(3)]

        documents = [
            await production_service.add_document(production.id, item.id, "clerk@firm.test", tenant, page_count=2)
            for item in items
        ]

        assert [d.bates_number for d in documents] == ["ABC000001", "ABC000002", "ABC000003"]
        assert [d.position for d in documents] == [1, 2, 3]
        assert production.bates_end_number == 3
        assert production.total_documents == 3
        assert production.total_pages == 6
        assert (await production_service.get_next_bates_number(case_id, "ABC", tenant)).number == 4

    @pytest.mark.asyncio
    async def test_new_production_continues_after_previous(
        self, create_production, collect_evidence, production_service: ProductionService, tenant: TenantContext
    ) -> None:
        first = await create_production()
        item = await collect_evidence()
        await production_service.add_document(first.id, item.id, "clerk@firm.test", tenant)

        second = await create_production(production_name="Supplemental", production_type="Supplemental")

        assert second.bates_start_number == 2
        assert second.production_number.endswith("-002")

    @pytest.mark.asyncio
    async def test_empty_production_reserves_its_start(
        self, create_production, production_service: ProductionService, tenant: TenantContext, case_id: uuid.UUID
    ) -> None:
        await create_production(bates_start_number=100)

        result = await production_service.get_next_bates_number(case_id, "ABC", tenant)

        assert result.number == 101

    @pytest.mark.asyncio
    async def test_start_below_high_water_rejected(self, create_production) -> None:
        await create_production(bates_start_number=10)

        with pytest.raises(ValidationError):
            await create_production(bates_start_number=5)

    @pytest.mark.asyncio
    async def test_prefixes_are_independent(
        self, create_production, production_service: ProductionService, tenant: TenantContext, case_id: uuid.UUID
    ) -> None:
        await create_production(bates_start_number=50)
        other = await create_production(bates_prefix="xyz")

        assert other.bates_prefix == "XYZ"
        assert other.bates_start_number == 1

    @pytest.mark.asyncio
    async def test_invalid_prefix_rejected(self, create_production) -> None:
        with pytest.raises(ValidationError):
            await create_production(bates_prefix="AB C")

    @pytest.mark.asyncio
    async def test_superseded_production_cannot_add(
        self, create_production, collect_evidence, production_service: ProductionService, tenant: TenantContext
    ) -> None:
        stale = await create_production()
        await create_production(production_name="Later")
        item = await collect_evidence()

        with pytest.raises(InvalidTransitionError):
            await production_service.add_document(stale.id, item.id, "clerk@firm.test", tenant)
        assert item.bates_number is None

    @pytest.mark.asyncio
    async def test_concurrent_additions_get_distinct_numbers(
        self,
        create_production,
        collect_evidence,
        production_service: ProductionService,
        tenant: TenantContext,
        case_id: uuid.UUID,
    ) -> None:
        production = await create_production()
        items = [await collect_evidence() for _ in range(5)]

        documents = await asyncio.gather(
            *(
                production_service.add_document(production.id, item.id, "clerk@firm.test", tenant)
                for item in items
            )
        )

        assert sorted(d.bates_sequence for d in documents) == [1, 2, 3, 4, 5]
        assert production.bates_end_number == 5
        assert (await production_service.get_next_bates_number(case_id, "ABC", tenant)).number == 6

    @pytest.mark.asyncio
    async def test_concurrent_sessions_reload_production_inside_lease(
        self,
        create_production,
        collect_evidence,
        session_production_service,
        tenant: TenantContext,
    ) -> None:
        """Each request holds its own stale copy of the production until it takes the lease."""
        production = await create_production()
        first, second = await collect_evidence(), await collect_evidence()
        leases = BatesLeaseRegistry()

        documents = await asyncio.gather(
            session_production_service(leases).add_document(production.id, first.id, "clerk@firm.test", tenant),
            session_production_service(leases).add_document(production.id, second.id, "clerk@firm.test", tenant),
        )

        assert sorted(d.bates_number for d in documents) == ["ABC000001", "ABC000002"]
        assert production.total_documents == 2
        assert production.bates_end_number == 2


# ---------------------------------------------------------------------------
# Document rules
# ---------------------------------------------------------------------------


class TestAddDocument:
    @pytest.mark.asyncio
    async def test_produced_item_is_stamped_in_custody(
        self,
        create_production,
        collect_evidence,
        production_service: ProductionService,
        evidence_service: EvidenceService,
        tenant: TenantContext,
    ) -> None:
        production = await create_production()
        item = await collect_evidence()

        await production_service.add_document(production.id, item.id, "clerk@firm.test", tenant)

        assert item.bates_number == "ABC000001"
        assert item.produced_in_set == production.id
        entries = await evidence_service.custody(item.id, tenant)
        assert entries[-1].action == CustodyAction.PRODUCED.value
        assert entries[-1].bates_number == "ABC000001"
        assert entries[-1].production_id == production.id

    @pytest.mark.asyncio
    async def test_item_cannot_be_produced_twice(
        self, create_production, collect_evidence, production_service: ProductionService, tenant: TenantContext
    ) -> None:
        production = await create_production()
        item = await collect_evidence()
        await production_service.add_document(production.id, item.id, "clerk@firm.test", tenant)

        with pytest.raises(InvalidTransitionError):
            await production_service.add_document(production.id, item.id, "clerk@firm.test", tenant)
        assert production.total_documents == 1

    @pytest.mark.asyncio
    async def test_privileged_item_refused_until_waived(
        self,
        create_production,
        collect_evidence,
        log_withheld,
        production_service: ProductionService,
        privilege_service: PrivilegeLogService,
        tenant: TenantContext,
    ) -> None:
        production = await create_production()
        item = await collect_evidence()
        entry = await log_withheld(item.id)

        with pytest.raises(PrivilegedDocumentError):
            await production_service.add_document(production.id, item.id, "clerk@firm.test", tenant)
        assert production.total_documents == 0
        assert item.bates_number is None

        await privilege_service.waive(entry.id, "counsel@firm.test", "Client consent", tenant)
        document = await production_service.add_document(production.id, item.id, "clerk@firm.test", tenant)

        assert document.bates_number == "ABC000001"

    @pytest.mark.asyncio
    async def test_partial_redaction_allows_redacted_variant(
        self,
        create_production,
        collect_evidence,
        log_withheld,
        production_service: ProductionService,
        tenant: TenantContext,
    ) -> None:
        production = await create_production()
        item = await collect_evidence()
        await log_withheld(item.id, redaction_type="Partial")

        with pytest.raises(PrivilegedDocumentError):
            await production_service.add_document(production.id, item.id, "clerk@firm.test", tenant)
        document = await production_service.add_document(
            production.id, item.id, "clerk@firm.test", tenant, redacted=True
        )

        assert document.redacted is True
        assert production.redacted_documents == 1

    @pytest.mark.asyncio
    async def test_full_redaction_blocks_redacted_variant(
        self,
        create_production,
        collect_evidence,
        log_withheld,
        production_service: ProductionService,
        tenant: TenantContext,
    ) -> None:
        production = await create_production()
        item = await collect_evidence()
        await log_withheld(item.id, redaction_type="Full")

        with pytest.raises(PrivilegedDocumentError):
            await production_service.add_document(
                production.id, item.id, "clerk@firm.test", tenant, redacted=True
            )

    @pytest.mark.asyncio
    async def test_item_from_other_case_rejected(
        self, create_production, collect_evidence, production_service: ProductionService, tenant: TenantContext
    ) -> None:
        production = await create_production()
        item = await collect_evidence(case_id=uuid.uuid4())

        with pytest.raises(ValidationError):
            await production_service.add_document(production.id, item.id, "clerk@firm.test", tenant)

    @pytest.mark.asyncio
    async def test_unknown_production_not_found(
        self, collect_evidence, production_service: ProductionService, tenant: TenantContext
    ) -> None:
        item = await collect_evidence()

        with pytest.raises(NotFoundError):
            await production_service.add_document(uuid.uuid4(), item.id, "clerk@firm.test", tenant)


# ---------------------------------------------------------------------------
# Status transitions and claw-backs
# ---------------------------------------------------------------------------


class TestProductionWorkflow:
    @pytest.mark.asyncio
    async def test_full_status_path(
        self, create_production, collect_evidence, production_service: ProductionService, tenant: TenantContext
    ) -> None:
        production = await create_production()
        item = await collect_evidence()

        await production_service.start(production.id, "clerk@firm.test", tenant)
        await production_service.add_document(production.id, item.id, "clerk@firm.test", tenant)
        await production_service.submit_for_review(production.id, "clerk@firm.test", tenant)
        await production_service.approve(production.id, "partner@firm.test", tenant)
        await production_service.deliver(production.id, "clerk@firm.test", tenant)
        await production_service.complete(production.id, "clerk@firm.test", tenant)

        assert production.status == ProductionStatus.COMPLETED.value
        assert production.approved_by == "partner@firm.test"
        assert production.approval_date is not None
        assert production.delivered_at is not None
        assert production.completed_at is not None

    @pytest.mark.asyncio
    async def test_steps_cannot_be_skipped(
        self, create_production, production_service: ProductionService, tenant: TenantContext
    ) -> None:
        production = await create_production()

        with pytest.raises(InvalidTransitionError):
            await production_service.approve(production.id, "partner@firm.test", tenant)
        assert production.status == ProductionStatus.DRAFT.value

    @pytest.mark.asyncio
    async def test_empty_production_cannot_be_submitted(
        self, create_production, production_service: ProductionService, tenant: TenantContext
    ) -> None:
        production = await create_production()
        await production_service.start(production.id, "clerk@firm.test", tenant)

        with pytest.raises(InvalidTransitionError, match="empty production set"):
            await production_service.submit_for_review(production.id, "clerk@firm.test", tenant)

    @pytest.mark.asyncio
    async def test_documents_locked_after_submission(
        self, create_production, collect_evidence, production_service: ProductionService, tenant: TenantContext
    ) -> None:
        production = await create_production()
        first, second = await collect_evidence(), await collect_evidence()
        await production_service.add_document(production.id, first.id, "clerk@firm.test", tenant)
        await production_service.start(production.id, "clerk@firm.test", tenant)
        await production_service.submit_for_review(production.id, "clerk@firm.test", tenant)

        with pytest.raises(InvalidTransitionError):
            await production_service.add_document(production.id, second.id, "clerk@firm.test", tenant)

    @pytest.mark.asyncio
    async def test_granted_clawback_flags_document_and_keeps_number(
        self,
        create_production,
        collect_evidence,
        log_withheld,
        production_service: ProductionService,
        privilege_service: PrivilegeLogService,
        tenant: TenantContext,
        case_id: uuid.UUID,
    ) -> None:
        production = await create_production()
        item = await collect_evidence()
        other = await collect_evidence()
        await production_service.add_document(production.id, item.id, "clerk@firm.test", tenant)
        await production_service.add_document(production.id, other.id, "clerk@firm.test", tenant)

        entry = await log_withheld(item.id)
        await privilege_service.request_clawback(entry.id, "counsel@firm.test", "Inadvertent production", tenant)
        await privilege_service.resolve_clawback(entry.id, "Granted", "judge@court.test", tenant)

        flagged = await production_service.apply_clawbacks(production.id, "counsel@firm.test", tenant)

        assert [d.bates_number for d in flagged] == ["ABC000001"]
        assert production.clawed_back_documents == 1
        assert item.bates_number == "ABC000001"
        assert (await production_service.get_next_bates_number(case_id, "ABC", tenant)).number == 3
        assert await production_service.apply_clawbacks(production.id, "counsel@firm.test", tenant) == []


class TestLoadFile:
    @pytest.mark.asyncio
    async def test_lists_documents_in_bates_order(
        self,
        create_production,
        collect_evidence,
        production_service: ProductionService,
        tenant: TenantContext,
    ) -> None:
        production = await create_production()
        first = await collect_evidence()
        second = await collect_evidence(custodian="John Roe")
        await production_service.add_document(production.id, first.id, "clerk@firm.test", tenant, page_count=3)
        document = await production_service.add_document(
            production.id, second.id, "clerk@firm.test", tenant, redacted=True
        )

        load_file = await production_service.generate_load_file(production.id, "clerk@firm.test", tenant)

        rows = [line.split("\x14") for line in load_file.content.split("\r\n") if line]
        assert rows[0] == [f"þ{column}þ" for column in LOAD_FILE_COLUMNS]
        assert rows[1][:5] == ["þABC000001þ", "þABC000001þ", f"þ{first.evidence_number}þ", "þJane Doeþ", "þ3þ"]
        assert rows[2] == [
            "þABC000002þ",
            "þABC000002þ",
            f"þ{second.evidence_number}þ",
            "þJohn Roeþ",
            "þ1þ",
            f"þ{document.produced_format}þ",
            "þYþ",
            "þNþ",
        ]
        assert load_file.document_count == 2
        assert load_file.path == f"/productions/{production.production_number}/loadfile.dat"
        assert production.load_file_generated is True
        assert production.load_file_path == load_file.path

    @pytest.mark.asyncio
    async def test_empty_production_has_no_load_file(
        self, create_production, production_service: ProductionService, tenant: TenantContext
    ) -> None:
        production = await create_production()

        with pytest.raises(InvalidTransitionError):
            await production_service.generate_load_file(production.id, "clerk@firm.test", tenant)
        assert production.load_file_generated is False
        assert production.load_file_path is None
