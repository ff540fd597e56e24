"""Business logic services for ediscovery-custody.

Services contain all domain logic. They:
  - Accept dependencies via constructor injection (repositories, ledger, adapters)
  - Validate input before writing anything
  - Append exactly one custody entry per evidence state transition, as the last step
  - Raise domain errors from ediscovery_custody.core.errors
  - Are framework-agnostic (no FastAPI, no direct DB access)
"""

import logging
import uuid
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, TypeVar

from ediscovery_custody.adapters.hold_notices import HoldNoticeRenderer
from ediscovery_custody.core.bates import BatesLeaseRegistry, bates_leases, format_bates, normalize_prefix
from ediscovery_custody.core.errors import (
    ContentStoreError,
    InvalidTransitionError,
    NotFoundError,
    PrivilegedDocumentError,
    ValidationError,
)
from ediscovery_custody.core.identifiers import IdentifierGenerator
from ediscovery_custody.core.interfaces import (
    ICaseDirectory,
    IContentStore,
    IDocumentReviewRepository,
    IEvidenceRepository,
    ILegalHoldRepository,
    IPrivilegeLogRepository,
    IProductionRepository,
    IUnitOfWork,
)
from ediscovery_custody.core.ledger import (
    CustodyLedger,
    HoldDetail,
    LedgerVerification,
    ProcessingDetail,
    ProductionDetail,
    TransferDetail,
)
from ediscovery_custody.core.models import (
    PRODUCTION_STATUS_ORDER,
    AcknowledgmentMethod,
    ClawbackStatus,
    CollectionMethod,
    Confidentiality,
    CustodianCompliance,
    CustodyAction,
    CustodyEntry,
    DeliveryMethod,
    DocumentReview,
    EvidenceHold,
    EvidenceItem,
    EvidenceStatus,
    EvidenceType,
    HoldCustodian,
    HoldStatus,
    LegalHold,
    PreservationStatus,
    PrivilegeLogEntry,
    PrivilegeStatus,
    PrivilegeType,
    ProcessingType,
    Production,
    ProductionDocument,
    ProductionFormat,
    ProductionStatus,
    ProductionType,
    RedactionType,
    Relevance,
    Responsiveness,
    ReviewDecision,
    ReviewPrivilege,
    ReviewStatus,
)
from ediscovery_custody.core.pipeline import ProcessingPipeline, ProcessingSummary
from ediscovery_custody.core.tenancy import TenantContext
from ediscovery_custody.database import utcnow

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)

_PRESERVATION_ORDER: list[PreservationStatus] = list(PreservationStatus)


def _require(value: str | None, field: str) -> str:
    """Return ``value`` stripped, or raise if it is missing or blank."""
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required")
    return str(value).strip()


def _coerce_enum(enum_cls: type[E], value: str | E, field: str) -> E:
    """Resolve ``value`` to a member of ``enum_cls`` or raise ValidationError."""
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"{field} must be one of: {allowed}") from None


def _normalize_email(email: str) -> str:
    return email.strip().casefold()


# ---------------------------------------------------------------------------
# Evidence registry
# ---------------------------------------------------------------------------


class EvidenceService:
    """Owns the evidence lifecycle and every custody event on evidence items.

    Args:
        repository: Evidence and hold-link storage.
        ledger: Chain-of-custody ledger.
        identifiers: Allocator for EVD numbers.
        uow: Unit of work used for per-item savepoints during batch processing.
        content_store: External content store; optional for metadata-only use.
        case_directory: Case metadata lookup used to fill in case numbers.
        max_batch_size: Upper bound on ids accepted by a processing batch.
    """

    def __init__(
        self,
        repository: IEvidenceRepository,
        ledger: CustodyLedger,
        identifiers: IdentifierGenerator,
        uow: IUnitOfWork,
        content_store: IContentStore | None = None,
        case_directory: ICaseDirectory | None = None,
        max_batch_size: int = 1000,
    ) -> None:
        self._repository = repository
        self._ledger = ledger
        self._identifiers = identifiers
        self._uow = uow
        self._content_store = content_store
        self._case_directory = case_directory
        self._max_batch_size = max_batch_size

    async def collect(
        self,
        tenant: TenantContext,
        case_id: uuid.UUID,
        evidence_type: str,
        description: str,
        collection_method: str,
        custodian: str,
        collected_by: str,
        case_number: str | None = None,
        source_system: str | None = None,
        collection_date: datetime | None = None,
        custodian_email: str | None = None,
        custodian_department: str | None = None,
        storage_location: str | None = None,
        file_size: int = 0,
        checksum: str | None = None,
        confidentiality_level: str = Confidentiality.INTERNAL.value,
        tags: list[str] | None = None,
        notes: str | None = None,
        content: bytes | None = None,
        filename: str | None = None,
    ) -> EvidenceItem:
        """Register a newly collected evidence item.

        All fields are validated before any number is allocated or any
        record is written. When raw content is supplied it is stored in the
        content store first and its reference, size and checksum recorded.

        Args:
            tenant: Tenant context for isolation.
            case_id: Case the evidence belongs to.
            evidence_type: One of EvidenceType.
            description: What was collected.
            collection_method: One of CollectionMethod.
            custodian: Person the evidence was collected from.
            collected_by: Actor performing the collection.
            case_number: Display case number; looked up when omitted.
            source_system: Originating system.
            collection_date: When collection happened; defaults to now.
            custodian_email: Custodian contact email.
            custodian_department: Custodian department.
            storage_location: Physical or logical storage location.
            file_size: Size in bytes when no content is supplied.
            checksum: Expected checksum of the content.
            confidentiality_level: One of Confidentiality.
            tags: Initial tags.
            notes: Free-text notes.
            content: Raw bytes to place in the content store.
            filename: Name to store the content under.

        Returns:
            The created EvidenceItem with one Collected custody entry.

        Raises:
            ValidationError: If any field is invalid.
            ContentStoreError: If storing content fails.
        """
        description = _require(description, "description")
        custodian = _require(custodian, "custodian")
        collected_by = _require(collected_by, "collected_by")
        evidence_type_value = _coerce_enum(EvidenceType, evidence_type, "evidence_type")
        method_value = _coerce_enum(CollectionMethod, collection_method, "collection_method")
        confidentiality = _coerce_enum(Confidentiality, confidentiality_level, "confidentiality_level")
        if file_size < 0:
            raise ValidationError("file_size cannot be negative")
        if content is not None and self._content_store is None:
            raise ValidationError("content upload requires a configured content store")

        storage_ref: str | None = None
        if content is not None:
            stored = await self._content_store.store_bytes(
                content, filename or f"{case_id}-{custodian}", tenant
            )
            if checksum and checksum.lower() != stored.checksum.lower():
                raise ValidationError("supplied checksum does not match stored content")
            storage_ref = stored.storage_ref
            file_size = stored.size
            checksum = stored.checksum

        if case_number is None and self._case_directory is not None:
            case = await self._case_directory.get_case(case_id, tenant)
            if case:
                case_number = case.get("case_number")

        item = EvidenceItem(
            tenant_id=tenant.tenant_id,
            evidence_number=await self._identifiers.evidence_number(tenant),
            case_id=case_id,
            case_number=case_number,
            evidence_type=evidence_type_value.value,
            description=description,
            source_system=source_system,
            collection_date=collection_date or utcnow(),
            collection_method=method_value.value,
            custodian=custodian,
            custodian_email=custodian_email,
            custodian_department=custodian_department,
            storage_location=storage_location,
            storage_ref=storage_ref,
            file_size=file_size,
            checksum=checksum,
            preservation_status=PreservationStatus.COLLECTED.value,
            processed=False,
            relevance=Relevance.PENDING_REVIEW.value,
            confidentiality_level=confidentiality.value,
            tags=_merge_tags([], tags or []),
            on_legal_hold=False,
            status=EvidenceStatus.ACTIVE.value,
            collected_by=collected_by,
            notes=notes,
            ledger_length=0,
        )
        await self._repository.add(item)

        logger.info(
            "Evidence collected",
            extra={
                "evidence_id": str(item.id),
                "evidence_number": item.evidence_number,
                "case_id": str(case_id),
                "tenant_id": str(tenant.tenant_id),
            },
        )
        await self._ledger.append(
            item.id,
            CustodyAction.COLLECTED,
            collected_by,
            tenant,
            notes="Evidence collected",
            location=storage_location,
        )
        return item

    async def get(self, evidence_id: uuid.UUID, tenant: TenantContext) -> EvidenceItem:
        """Fetch an evidence item.

        Raises:
            NotFoundError: If the item does not exist for the tenant.
        """
        item = await self._repository.get_by_id(evidence_id, tenant)
        if item is None:
            raise NotFoundError("Evidence", evidence_id)
        return item

    async def list_by_case(
        self, case_id: uuid.UUID, tenant: TenantContext, status: str | None = None
    ) -> list[EvidenceItem]:
        if status is not None:
            status = _coerce_enum(EvidenceStatus, status, "status").value
        return await self._repository.list_by_case(case_id, tenant, status=status)

    async def list_by_custodian(self, custodian: str, tenant: TenantContext) -> list[EvidenceItem]:
        """Active items collected from one custodian, most recently collected first."""
        custodian = _require(custodian, "custodian")
        items = await self._repository.list_by_custodian(custodian, tenant)
        return sorted(items, key=lambda item: item.collection_date, reverse=True)

    async def preserve(
        self,
        evidence_id: uuid.UUID,
        performed_by: str,
        tenant: TenantContext,
        storage_location: str | None = None,
    ) -> EvidenceItem:
        """Move an item from Collected to Preserved."""
        performed_by = _require(performed_by, "performed_by")
        item = await self._get_active(evidence_id, tenant)
        self._require_preservation(item, PreservationStatus.COLLECTED, PreservationStatus.PRESERVED)

        item.preservation_status = PreservationStatus.PRESERVED.value
        if storage_location:
            item.storage_location = storage_location
        await self._ledger.append(
            item.id,
            CustodyAction.PRESERVED,
            performed_by,
            tenant,
            location=item.storage_location,
        )
        return item

    async def verify_integrity(
        self,
        evidence_id: uuid.UUID,
        verified_by: str,
        tenant: TenantContext,
        checksum: str | None = None,
    ) -> EvidenceItem:
        """Move an item from Preserved to Verified after an integrity check.

        Args:
            evidence_id: Item to verify.
            verified_by: Actor performing verification.
            tenant: Tenant context for isolation.
            checksum: Checksum observed by the verifier. Must match the
                recorded checksum when one exists; recorded otherwise.

        Raises:
            ValidationError: On checksum mismatch.
            InvalidTransitionError: If the item is not Preserved.
        """
        verified_by = _require(verified_by, "verified_by")
        item = await self._get_active(evidence_id, tenant)
        self._require_preservation(item, PreservationStatus.PRESERVED, PreservationStatus.VERIFIED)
        if checksum:
            if item.checksum and item.checksum.lower() != checksum.lower():
                raise ValidationError(
                    f"Checksum mismatch for evidence {item.evidence_number}"
                )
            item.checksum = item.checksum or checksum

        now = utcnow()
        item.preservation_status = PreservationStatus.VERIFIED.value
        item.verification_date = now
        item.verified_by = verified_by
        await self._ledger.append(item.id, CustodyAction.VERIFIED, verified_by, tenant)
        return item

    async def process_item(
        self,
        evidence_id: uuid.UUID,
        processing_type: str,
        processed_by: str,
        tenant: TenantContext,
        extract_text: bool = True,
    ) -> EvidenceItem:
        """Process a single evidence item.

        Text extraction runs before any mutation so a content store failure
        leaves the item untouched. Items without stored content skip
        extraction.

        Raises:
            NotFoundError: If the item does not exist.
            InvalidTransitionError: If the item is not Active.
            ContentStoreError: If text extraction fails.
        """
        processing = _coerce_enum(ProcessingType, processing_type, "processing_type")
        processed_by = _require(processed_by, "processed_by")
        item = await self._get_active(evidence_id, tenant)

        extracted: str | None = None
        if extract_text and item.storage_ref:
            if self._content_store is None:
                raise ContentStoreError("No content store configured for text extraction")
            extracted = await self._content_store.extract_text(item.storage_ref, tenant)

        item.processed = True
        item.processing_date = utcnow()
        item.processed_by = processed_by
        item.processing_type = processing.value
        if extracted is not None:
            item.extracted_text = extracted
        if _PRESERVATION_ORDER.index(PreservationStatus(item.preservation_status)) < _PRESERVATION_ORDER.index(
            PreservationStatus.PROCESSED
        ):
            item.preservation_status = PreservationStatus.PROCESSED.value

        await self._ledger.append(
            item.id,
            CustodyAction.PROCESSED,
            processed_by,
            tenant,
            detail=ProcessingDetail(processing_type=processing.value),
        )
        return item

    async def process(
        self,
        evidence_ids: list[uuid.UUID],
        processing_type: str,
        processed_by: str,
        tenant: TenantContext,
        extract_text: bool = True,
    ) -> ProcessingSummary:
        """Process a batch of items, collecting per-item failures."""
        pipeline = ProcessingPipeline(self, self._uow, max_batch_size=self._max_batch_size)
        return await pipeline.run(evidence_ids, processing_type, processed_by, tenant, extract_text)

    async def mark_ready_for_review(
        self, evidence_id: uuid.UUID, performed_by: str, tenant: TenantContext
    ) -> EvidenceItem:
        """Queue a processed item for review."""
        performed_by = _require(performed_by, "performed_by")
        item = await self._get_active(evidence_id, tenant)
        self._require_preservation(
            item, PreservationStatus.PROCESSED, PreservationStatus.READY_FOR_REVIEW
        )
        item.preservation_status = PreservationStatus.READY_FOR_REVIEW.value
        await self._ledger.append(item.id, CustodyAction.QUEUED_FOR_REVIEW, performed_by, tenant)
        return item

    async def record_review(
        self,
        evidence_id: uuid.UUID,
        reviewed_by: str,
        tenant: TenantContext,
        relevance: str | None = None,
        notes: str | None = None,
    ) -> EvidenceItem:
        """Record a reviewer's pass over an item, optionally setting relevance."""
        reviewed_by = _require(reviewed_by, "reviewed_by")
        relevance_value = _coerce_enum(Relevance, relevance, "relevance") if relevance else None
        item = await self._get_active(evidence_id, tenant)
        if relevance_value is not None:
            item.relevance = relevance_value.value
        await self._ledger.append(item.id, CustodyAction.REVIEWED, reviewed_by, tenant, notes=notes)
        return item

    async def transfer(
        self,
        evidence_id: uuid.UUID,
        to_location: str,
        performed_by: str,
        tenant: TenantContext,
        notes: str | None = None,
    ) -> EvidenceItem:
        """Record a physical or logical transfer of an item."""
        to_location = _require(to_location, "to_location")
        performed_by = _require(performed_by, "performed_by")
        item = await self._get_active(evidence_id, tenant)
        item.storage_location = to_location
        await self._ledger.append(
            item.id,
            CustodyAction.TRANSFERRED,
            performed_by,
            tenant,
            notes=notes,
            detail=TransferDetail(to_location=to_location),
        )
        return item

    async def tag(
        self,
        evidence_id: uuid.UUID,
        tenant: TenantContext,
        tags: list[str] | None = None,
        relevance: str | None = None,
        confidentiality_level: str | None = None,
    ) -> EvidenceItem:
        """Merge tags and overwrite classification fields.

        Tags are set-unioned with existing tags, keeping first-seen order.
        Tagging is classification, not a custody event, so no entry is
        appended.

        Raises:
            ValidationError: If nothing to change was supplied.
        """
        if not tags and relevance is None and confidentiality_level is None:
            raise ValidationError("At least one of tags, relevance or confidentiality_level is required")
        relevance_value = _coerce_enum(Relevance, relevance, "relevance") if relevance else None
        confidentiality = (
            _coerce_enum(Confidentiality, confidentiality_level, "confidentiality_level")
            if confidentiality_level
            else None
        )
        item = await self.get(evidence_id, tenant)
        if item.status == EvidenceStatus.DELETED.value:
            raise InvalidTransitionError(f"Evidence {item.evidence_number} is deleted")

        if tags:
            item.tags = _merge_tags(item.tags, tags)
        if relevance_value is not None:
            item.relevance = relevance_value.value
        if confidentiality is not None:
            item.confidentiality_level = confidentiality.value
        item.updated_at = utcnow()
        return item

    async def place_on_hold(
        self,
        evidence_id: uuid.UUID,
        hold_id: uuid.UUID,
        applied_by: str,
        tenant: TenantContext,
        hold_number: str | None = None,
    ) -> EvidenceItem:
        """Add a hold to an item's active hold set.

        Re-applying a hold that is already active on the item is a no-op.

        Raises:
            NotFoundError: If the item does not exist.
            InvalidTransitionError: If the item is deleted.
        """
        applied_by = _require(applied_by, "applied_by")
        item = await self.get(evidence_id, tenant)
        if item.status == EvidenceStatus.DELETED.value:
            raise InvalidTransitionError(f"Evidence {item.evidence_number} is deleted")

        now = utcnow()
        link = await self._repository.get_hold_link(evidence_id, hold_id, tenant)
        if link is not None and link.released_at is None:
            return item
        if link is None:
            await self._repository.add_hold_link(
                EvidenceHold(
                    tenant_id=tenant.tenant_id,
                    evidence_id=evidence_id,
                    hold_id=hold_id,
                    applied_by=applied_by,
                    applied_at=now,
                )
            )
        else:
            link.applied_by = applied_by
            link.applied_at = now
            link.released_at = None
            link.released_by = None

        item.on_legal_hold = True
        item.legal_hold_id = hold_id
        item.legal_hold_date = now
        await self._ledger.append(
            item.id,
            CustodyAction.LEGAL_HOLD_APPLIED,
            applied_by,
            tenant,
            detail=HoldDetail(hold_id=hold_id, hold_number=hold_number),
        )
        return item

    async def release_hold(
        self,
        evidence_id: uuid.UUID,
        hold_id: uuid.UUID,
        released_by: str,
        tenant: TenantContext,
        hold_number: str | None = None,
    ) -> EvidenceItem:
        """Remove one hold from an item's active hold set.

        The item stays on legal hold while any other hold is still active.

        Raises:
            InvalidTransitionError: If the hold is not active on the item.
        """
        released_by = _require(released_by, "released_by")
        item = await self.get(evidence_id, tenant)
        link = await self._repository.get_hold_link(evidence_id, hold_id, tenant)
        if link is None or link.released_at is not None:
            raise InvalidTransitionError(
                f"Hold {hold_id} is not active on evidence {item.evidence_number}"
            )

        link.released_at = utcnow()
        link.released_by = released_by
        remaining = [
            other
            for other in await self._repository.list_active_hold_links(evidence_id, tenant)
            if other.hold_id != hold_id and other.released_at is None
        ]
        if remaining:
            latest = max(remaining, key=lambda other: other.applied_at)
            item.legal_hold_id = latest.hold_id
            item.legal_hold_date = latest.applied_at
        else:
            item.on_legal_hold = False
            item.legal_hold_id = None
            item.legal_hold_date = None

        await self._ledger.append(
            item.id,
            CustodyAction.LEGAL_HOLD_RELEASED,
            released_by,
            tenant,
            detail=HoldDetail(hold_id=hold_id, hold_number=hold_number),
        )
        return item

    async def archive(
        self, evidence_id: uuid.UUID, archived_by: str, tenant: TenantContext, notes: str | None = None
    ) -> EvidenceItem:
        """Archive an active item."""
        archived_by = _require(archived_by, "archived_by")
        item = await self._get_active(evidence_id, tenant)
        item.status = EvidenceStatus.ARCHIVED.value
        await self._ledger.append(item.id, CustodyAction.ARCHIVED, archived_by, tenant, notes=notes)
        return item

    async def delete(
        self, evidence_id: uuid.UUID, deleted_by: str, reason: str, tenant: TenantContext
    ) -> EvidenceItem:
        """Mark an item deleted. Forbidden while any legal hold is active.

        Raises:
            InvalidTransitionError: If the item is on hold or already deleted.
        """
        deleted_by = _require(deleted_by, "deleted_by")
        reason = _require(reason, "reason")
        item = await self.get(evidence_id, tenant)
        if item.on_legal_hold:
            raise InvalidTransitionError(
                f"Evidence {item.evidence_number} is under legal hold and cannot be deleted"
            )
        if item.status == EvidenceStatus.DELETED.value:
            raise InvalidTransitionError(f"Evidence {item.evidence_number} is already deleted")

        item.status = EvidenceStatus.DELETED.value
        logger.warning(
            "Evidence deleted",
            extra={
                "evidence_id": str(item.id),
                "deleted_by": deleted_by,
                "tenant_id": str(tenant.tenant_id),
            },
        )
        await self._ledger.append(item.id, CustodyAction.DELETED, deleted_by, tenant, notes=reason)
        return item

    async def mark_produced(
        self,
        evidence_id: uuid.UUID,
        production_id: uuid.UUID,
        bates_number: str,
        produced_by: str,
        tenant: TenantContext,
    ) -> EvidenceItem:
        """Stamp an item with its production and Bates number.

        Raises:
            InvalidTransitionError: If the item already carries a Bates number.
        """
        item = await self._get_active(evidence_id, tenant)
        if item.bates_number is not None:
            raise InvalidTransitionError(
                f"Evidence {item.evidence_number} was already produced as {item.bates_number}"
            )
        item.produced_in_set = production_id
        item.bates_number = bates_number
        item.production_date = utcnow()
        await self._ledger.append(
            item.id,
            CustodyAction.PRODUCED,
            produced_by,
            tenant,
            detail=ProductionDetail(production_id=production_id, bates_number=bates_number),
        )
        return item

    async def active_links_for_hold(self, hold_id: uuid.UUID, tenant: TenantContext) -> list[EvidenceHold]:
        return await self._repository.list_active_links_for_hold(hold_id, tenant)

    async def custody(self, evidence_id: uuid.UUID, tenant: TenantContext) -> list[CustodyEntry]:
        return await self._ledger.entries(evidence_id, tenant)

    async def verify_custody(self, evidence_id: uuid.UUID, tenant: TenantContext) -> LedgerVerification:
        return await self._ledger.verify(evidence_id, tenant)

    async def _get_active(self, evidence_id: uuid.UUID, tenant: TenantContext) -> EvidenceItem:
        item = await self.get(evidence_id, tenant)
        if item.status != EvidenceStatus.ACTIVE.value:
            raise InvalidTransitionError(
                f"Evidence {item.evidence_number} is {item.status}, expected Active"
            )
        return item

    @staticmethod
    def _require_preservation(
        item: EvidenceItem, expected: PreservationStatus, target: PreservationStatus
    ) -> None:
        if item.preservation_status != expected.value:
            raise InvalidTransitionError(
                f"Cannot move evidence {item.evidence_number} from "
                f"{item.preservation_status} to {target.value}"
            )


def _merge_tags(existing: list[str], incoming: list[str]) -> list[str]:
    merged = list(existing)
    seen = set(merged)
    for tag in incoming:
        cleaned = tag.strip()
        if cleaned and cleaned not in seen:
            merged.append(cleaned)
            seen.add(cleaned)
    return merged


# ---------------------------------------------------------------------------
# Legal holds
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CustodianInput:
    """A custodian named when issuing a hold."""

    name: str
    email: str
    department: str | None = None
    title: str | None = None


class LegalHoldService:
    """Issues, tracks and releases legal holds.

    Args:
        repository: Hold and custodian storage.
        evidence_service: Registry used to apply and release holds on items.
        identifiers: Allocator for HOLD numbers.
        notices: Renders hold notices and reminders.
        max_custodians: Upper bound on custodians per hold.
        overdue_threshold_days: Days after notification before an
            unacknowledged custodian is reported overdue.
    """

    def __init__(
        self,
        repository: ILegalHoldRepository,
        evidence_service: EvidenceService,
        identifiers: IdentifierGenerator,
        notices: HoldNoticeRenderer,
        max_custodians: int = 500,
        overdue_threshold_days: int = 14,
    ) -> None:
        self._repository = repository
        self._evidence = evidence_service
        self._identifiers = identifiers
        self._notices = notices
        self._max_custodians = max_custodians
        self._overdue_threshold_days = overdue_threshold_days

    async def issue(
        self,
        tenant: TenantContext,
        case_id: uuid.UUID,
        hold_name: str,
        scope: str,
        custodians: list[CustodianInput],
        created_by: str,
        matter_type: str = "litigation",
        case_number: str | None = None,
        description: str | None = None,
        legal_basis: str | None = None,
        data_types: list[str] | None = None,
        data_sources: list[str] | None = None,
        preservation_instructions: str | None = None,
        effective_date: date | None = None,
        notification_method: str = "Email",
        reminder_frequency: str = "Weekly",
        evidence_ids: list[uuid.UUID] | None = None,
    ) -> LegalHold:
        """Issue a new legal hold to one or more custodians.

        Custodian emails are compared case-insensitively and must be unique.
        When evidence ids are given the hold is applied to each of them; all
        ids are checked before the hold is created.

        Returns:
            The created LegalHold with compliance_rate 0.

        Raises:
            ValidationError: If required fields are missing or custodians are invalid.
            NotFoundError: If an evidence id does not exist.
        """
        hold_name = _require(hold_name, "hold_name")
        scope = _require(scope, "scope")
        created_by = _require(created_by, "created_by")
        if not custodians:
            raise ValidationError("A legal hold requires at least one custodian")
        if len(custodians) > self._max_custodians:
            raise ValidationError(
                f"A legal hold cannot have more than {self._max_custodians} custodians"
            )

        normalized: set[str] = set()
        for custodian in custodians:
            _require(custodian.name, "custodian name")
            email = _require(custodian.email, "custodian email")
            if "@" not in email:
                raise ValidationError(f"Invalid custodian email: {email}")
            key = _normalize_email(email)
            if key in normalized:
                raise ValidationError(f"Duplicate custodian email: {email}")
            normalized.add(key)

        for evidence_id in evidence_ids or []:
            item = await self._evidence.get(evidence_id, tenant)
            if item.status == EvidenceStatus.DELETED.value:
                raise InvalidTransitionError(f"Evidence {item.evidence_number} is deleted")

        now = utcnow()
        hold = LegalHold(
            tenant_id=tenant.tenant_id,
            hold_number=await self._identifiers.hold_number(tenant),
            hold_name=hold_name,
            case_id=case_id,
            case_number=case_number,
            matter_type=matter_type,
            description=description,
            legal_basis=legal_basis,
            scope=scope,
            data_types=list(data_types or []),
            data_sources=list(data_sources or []),
            preservation_instructions=preservation_instructions,
            issued_at=now,
            effective_date=effective_date,
            notification_method=notification_method,
            reminder_frequency=reminder_frequency,
            status=HoldStatus.ACTIVE.value,
            total_custodians=len(custodians),
            acknowledged_custodians=0,
            compliance_rate=0.0,
            created_by=created_by,
        )
        await self._repository.add(hold)
        for custodian in custodians:
            await self._repository.add_custodian(
                HoldCustodian(
                    tenant_id=tenant.tenant_id,
                    hold_id=hold.id,
                    name=custodian.name.strip(),
                    email=custodian.email.strip(),
                    email_normalized=_normalize_email(custodian.email),
                    department=custodian.department,
                    title=custodian.title,
                    notification_sent_at=now,
                    reminders_sent=0,
                    compliance_status=CustodianCompliance.PENDING.value,
                )
            )

        logger.info(
            "Legal hold issued",
            extra={
                "hold_id": str(hold.id),
                "hold_number": hold.hold_number,
                "case_id": str(case_id),
                "custodian_count": len(custodians),
                "tenant_id": str(tenant.tenant_id),
            },
        )
        for evidence_id in evidence_ids or []:
            await self._evidence.place_on_hold(
                evidence_id, hold.id, created_by, tenant, hold_number=hold.hold_number
            )
        return hold

    async def get(self, hold_id: uuid.UUID, tenant: TenantContext) -> LegalHold:
        hold = await self._repository.get_by_id(hold_id, tenant)
        if hold is None:
            raise NotFoundError("LegalHold", hold_id)
        return hold

    async def list_by_case(self, case_id: uuid.UUID, tenant: TenantContext) -> list[LegalHold]:
        return await self._repository.list_by_case(case_id, tenant)

    async def list_for_custodian(self, email: str, tenant: TenantContext) -> list[LegalHold]:
        """Holds naming a custodian, matched case-insensitively by email."""
        email = _require(email, "email")
        return await self._repository.list_holds_for_custodian(_normalize_email(email), tenant)

    async def custodians(self, hold_id: uuid.UUID, tenant: TenantContext) -> list[HoldCustodian]:
        await self.get(hold_id, tenant)
        return await self._repository.list_custodians(hold_id, tenant)

    async def acknowledge(
        self,
        hold_id: uuid.UUID,
        custodian_email: str,
        tenant: TenantContext,
        method: str = AcknowledgmentMethod.EMAIL.value,
    ) -> LegalHold:
        """Record a custodian's acknowledgement and recompute compliance.

        The hold row is locked for the read-modify-write of its counters.
        Acknowledging twice is a no-op.

        Raises:
            NotFoundError: If the hold or custodian does not exist.
            InvalidTransitionError: If the hold has been released.
        """
        ack_method = _coerce_enum(AcknowledgmentMethod, method, "method")
        custodian_email = _require(custodian_email, "custodian_email")
        hold = await self._repository.get_by_id(hold_id, tenant, for_update=True)
        if hold is None:
            raise NotFoundError("LegalHold", hold_id)
        if hold.status != HoldStatus.ACTIVE.value:
            raise InvalidTransitionError(f"Legal hold {hold.hold_number} has been released")

        custodians = await self._repository.list_custodians(hold_id, tenant)
        custodian = _find_custodian(custodians, custodian_email)
        if custodian.acknowledged_at is not None:
            return hold

        custodian.acknowledged_at = utcnow()
        custodian.acknowledgment_method = ack_method.value
        custodian.compliance_status = CustodianCompliance.COMPLIANT.value

        acknowledged = sum(1 for c in custodians if c.acknowledged_at is not None)
        hold.acknowledged_custodians = acknowledged
        hold.compliance_rate = acknowledged / hold.total_custodians if hold.total_custodians else 0.0
        hold.updated_at = custodian.acknowledged_at

        logger.info(
            "Legal hold acknowledged",
            extra={
                "hold_id": str(hold.id),
                "custodian_email": custodian.email,
                "compliance_rate": hold.compliance_rate,
                "tenant_id": str(tenant.tenant_id),
            },
        )
        return hold

    async def apply_to_evidence(
        self,
        hold_id: uuid.UUID,
        evidence_ids: list[uuid.UUID],
        applied_by: str,
        tenant: TenantContext,
    ) -> list[EvidenceItem]:
        """Apply an active hold to a set of evidence items.

        Every id is resolved before the hold is applied to any of them.

        Raises:
            InvalidTransitionError: If the hold is released or an item is deleted.
            NotFoundError: If the hold or an item does not exist.
        """
        applied_by = _require(applied_by, "applied_by")
        if not evidence_ids:
            raise ValidationError("evidence_ids must not be empty")
        hold = await self.get(hold_id, tenant)
        if hold.status != HoldStatus.ACTIVE.value:
            raise InvalidTransitionError(f"Legal hold {hold.hold_number} has been released")
        for evidence_id in evidence_ids:
            item = await self._evidence.get(evidence_id, tenant)
            if item.status == EvidenceStatus.DELETED.value:
                raise InvalidTransitionError(f"Evidence {item.evidence_number} is deleted")

        return [
            await self._evidence.place_on_hold(
                evidence_id, hold.id, applied_by, tenant, hold_number=hold.hold_number
            )
            for evidence_id in evidence_ids
        ]

    async def release(
        self, hold_id: uuid.UUID, released_by: str, reason: str, tenant: TenantContext
    ) -> LegalHold:
        """Release a hold and remove it from every item it covers.

        Raises:
            InvalidTransitionError: If the hold is already released.
        """
        released_by = _require(released_by, "released_by")
        hold = await self.get(hold_id, tenant)
        if hold.status == HoldStatus.RELEASED.value:
            raise InvalidTransitionError(f"Legal hold {hold.hold_number} is already released")

        hold.status = HoldStatus.RELEASED.value
        hold.released_at = utcnow()
        hold.released_by = released_by
        hold.release_reason = reason

        links = await self._evidence.active_links_for_hold(hold_id, tenant)
        for link in links:
            await self._evidence.release_hold(
                link.evidence_id, hold.id, released_by, tenant, hold_number=hold.hold_number
            )

        logger.info(
            "Legal hold released",
            extra={
                "hold_id": str(hold.id),
                "released_by": released_by,
                "evidence_released": len(links),
                "tenant_id": str(tenant.tenant_id),
            },
        )
        return hold

    async def send_reminder(
        self, hold_id: uuid.UUID, custodian_email: str, tenant: TenantContext
    ) -> str | None:
        """Send a reminder to a custodian who has not acknowledged.

        Returns:
            The reminder text, or None if the custodian already acknowledged.
        """
        hold = await self.get(hold_id, tenant)
        if hold.status != HoldStatus.ACTIVE.value:
            raise InvalidTransitionError(f"Legal hold {hold.hold_number} has been released")
        custodian = _find_custodian(
            await self._repository.list_custodians(hold_id, tenant), custodian_email
        )
        if custodian.acknowledged_at is not None:
            return None

        custodian.reminders_sent += 1
        custodian.last_reminder_at = utcnow()
        logger.info(
            "Hold reminder sent",
            extra={
                "hold_id": str(hold.id),
                "custodian_email": custodian.email,
                "reminders_sent": custodian.reminders_sent,
            },
        )
        return self._notices.render_reminder(hold, custodian)

    async def render_notice(
        self, hold_id: uuid.UUID, custodian_email: str, tenant: TenantContext
    ) -> str:
        hold = await self.get(hold_id, tenant)
        custodian = _find_custodian(
            await self._repository.list_custodians(hold_id, tenant), custodian_email
        )
        return self._notices.render_notice(hold, custodian)

    async def compliance_report(
        self, tenant: TenantContext, case_id: uuid.UUID | None = None
    ) -> dict[str, Any]:
        """Summarize acknowledgement status across active holds.

        Returns:
            Dict with hold counts, pending and overdue custodian counts, and
            one row per overdue custodian.
        """
        now = utcnow()
        threshold = timedelta(days=self._overdue_threshold_days)
        report: dict[str, Any] = {
            "total_active_holds": 0,
            "fully_compliant_holds": 0,
            "holds_with_overdue_custodians": 0,
            "total_pending_acknowledgements": 0,
            "total_overdue_custodians": 0,
            "overdue_custodians": [],
        }
        for hold in await self._repository.list_active(tenant, case_id=case_id):
            report["total_active_holds"] += 1
            custodians = await self._repository.list_custodians(hold.id, tenant)
            pending = [c for c in custodians if c.acknowledged_at is None]
            overdue = [
                c
                for c in pending
                if c.notification_sent_at is not None and now - c.notification_sent_at > threshold
            ]
            if not pending:
                report["fully_compliant_holds"] += 1
            if overdue:
                report["holds_with_overdue_custodians"] += 1
            report["total_pending_acknowledgements"] += len(pending)
            report["total_overdue_custodians"] += len(overdue)
            for custodian in overdue:
                report["overdue_custodians"].append(
                    {
                        "hold_id": str(hold.id),
                        "hold_number": hold.hold_number,
                        "custodian_name": custodian.name,
                        "custodian_email": custodian.email,
                        "days_since_notice": (now - custodian.notification_sent_at).days,
                        "reminders_sent": custodian.reminders_sent,
                    }
                )
        return report


def _find_custodian(custodians: list[HoldCustodian], email: str) -> HoldCustodian:
    key = _normalize_email(email)
    for custodian in custodians:
        if custodian.email_normalized == key:
            return custodian
    raise NotFoundError("Custodian", email)


# ---------------------------------------------------------------------------
# Privilege log
# ---------------------------------------------------------------------------


class PrivilegeLogService:
    """Maintains privilege claims, waivers and claw-back requests.

    Args:
        repository: Privilege log storage.
        evidence_repository: Used to validate evidence references.
        identifiers: Allocator for PRIV numbers.
    """

    def __init__(
        self,
        repository: IPrivilegeLogRepository,
        evidence_repository: IEvidenceRepository,
        identifiers: IdentifierGenerator,
    ) -> None:
        self._repository = repository
        self._evidence = evidence_repository
        self._identifiers = identifiers

    async def log_privilege(
        self,
        tenant: TenantContext,
        case_id: uuid.UUID,
        privilege_type: str,
        privilege_basis: str,
        author: str,
        document_description: str,
        attorney: str,
        identified_by: str,
        evidence_id: uuid.UUID | None = None,
        document_id: str | None = None,
        case_number: str | None = None,
        document_date: date | None = None,
        document_type: str | None = None,
        recipients: list[str] | None = None,
        redaction_type: str = RedactionType.NONE.value,
        notes: str | None = None,
    ) -> PrivilegeLogEntry:
        """Create a privilege log entry. New entries are withheld.

        Raises:
            ValidationError: If neither evidence_id nor document_id is given,
                required fields are missing, or the evidence belongs to a
                different case.
            NotFoundError: If the referenced evidence does not exist.
        """
        if evidence_id is None and not document_id:
            raise ValidationError("Either evidence_id or document_id is required")
        privilege = _coerce_enum(PrivilegeType, privilege_type, "privilege_type")
        redaction = _coerce_enum(RedactionType, redaction_type, "redaction_type")
        privilege_basis = _require(privilege_basis, "privilege_basis")
        author = _require(author, "author")
        document_description = _require(document_description, "document_description")
        attorney = _require(attorney, "attorney")
        identified_by = _require(identified_by, "identified_by")

        if evidence_id is not None:
            item = await self._evidence.get_by_id(evidence_id, tenant)
            if item is None:
                raise NotFoundError("Evidence", evidence_id)
            if item.case_id != case_id:
                raise ValidationError(
                    f"Evidence {item.evidence_number} does not belong to case {case_id}"
                )
            case_number = case_number or item.case_number

        entry = PrivilegeLogEntry(
            tenant_id=tenant.tenant_id,
            log_number=await self._identifiers.privilege_log_number(tenant),
            case_id=case_id,
            case_number=case_number,
            evidence_id=evidence_id,
            document_id=document_id,
            document_date=document_date,
            document_type=document_type,
            privilege_type=privilege.value,
            privilege_basis=privilege_basis,
            author=author,
            recipients=list(recipients or []),
            document_description=document_description,
            attorney=attorney,
            identified_by=identified_by,
            redaction_type=redaction.value,
            withheld=True,
            waived=False,
            clawback_status=ClawbackStatus.NONE.value,
            status=PrivilegeStatus.WITHHELD.value,
            notes=[notes] if notes else [],
        )
        await self._repository.add(entry)
        logger.info(
            "Privilege logged",
            extra={
                "entry_id": str(entry.id),
                "log_number": entry.log_number,
                "privilege_type": privilege.value,
                "tenant_id": str(tenant.tenant_id),
            },
        )
        return entry

    async def get(self, entry_id: uuid.UUID, tenant: TenantContext) -> PrivilegeLogEntry:
        entry = await self._repository.get_by_id(entry_id, tenant)
        if entry is None:
            raise NotFoundError("PrivilegeLogEntry", entry_id)
        return entry

    async def list_by_case(self, case_id: uuid.UUID, tenant: TenantContext) -> list[PrivilegeLogEntry]:
        return await self._repository.list_by_case(case_id, tenant)

    async def waive(
        self, entry_id: uuid.UUID, waived_by: str, reason: str, tenant: TenantContext
    ) -> PrivilegeLogEntry:
        """Waive a privilege claim so the document may be produced.

        Raises:
            InvalidTransitionError: If the privilege was already waived.
        """
        waived_by = _require(waived_by, "waived_by")
        entry = await self.get(entry_id, tenant)
        if entry.waived:
            raise InvalidTransitionError(f"Privilege {entry.log_number} is already waived")

        now = utcnow()
        entry.waived = True
        entry.withheld = False
        entry.waived_at = now
        entry.waived_by = waived_by
        entry.waiver_reason = reason
        entry.status = PrivilegeStatus.PRODUCED.value
        entry.notes = [*entry.notes, f"{now.isoformat()} privilege waived by {waived_by}: {reason}"]
        logger.info(
            "Privilege waived",
            extra={"entry_id": str(entry.id), "waived_by": waived_by},
        )
        return entry

    async def request_clawback(
        self, entry_id: uuid.UUID, requested_by: str, reason: str, tenant: TenantContext
    ) -> PrivilegeLogEntry:
        """Request claw-back of an inadvertently produced document.

        Raises:
            InvalidTransitionError: If the privilege was waived or a request
                is already pending or granted.
        """
        requested_by = _require(requested_by, "requested_by")
        reason = _require(reason, "reason")
        entry = await self.get(entry_id, tenant)
        if entry.waived:
            raise InvalidTransitionError(
                f"Privilege {entry.log_number} was waived and cannot be clawed back"
            )
        if entry.clawback_status not in (ClawbackStatus.NONE.value, ClawbackStatus.DENIED.value):
            raise InvalidTransitionError(
                f"Claw-back for {entry.log_number} is already {entry.clawback_status}"
            )

        now = utcnow()
        entry.clawback_status = ClawbackStatus.REQUESTED.value
        entry.clawback_requested_at = now
        entry.clawback_requested_by = requested_by
        entry.clawback_reason = reason
        entry.clawback_resolved_at = None
        entry.clawback_resolved_by = None
        entry.notes = [*entry.notes, f"{now.isoformat()} claw-back requested by {requested_by}: {reason}"]
        logger.info(
            "Claw-back requested",
            extra={"entry_id": str(entry.id), "requested_by": requested_by},
        )
        return entry

    async def resolve_clawback(
        self, entry_id: uuid.UUID, decision: str, resolved_by: str, tenant: TenantContext
    ) -> PrivilegeLogEntry:
        """Grant or deny a pending claw-back request.

        Raises:
            ValidationError: If the decision is not Granted or Denied.
            InvalidTransitionError: If no request is pending.
        """
        outcome = _coerce_enum(ClawbackStatus, decision, "decision")
        if outcome not in (ClawbackStatus.GRANTED, ClawbackStatus.DENIED):
            raise ValidationError("decision must be Granted or Denied")
        resolved_by = _require(resolved_by, "resolved_by")
        entry = await self.get(entry_id, tenant)
        if entry.clawback_status != ClawbackStatus.REQUESTED.value:
            raise InvalidTransitionError(f"No claw-back request is pending for {entry.log_number}")

        now = utcnow()
        entry.clawback_status = outcome.value
        entry.clawback_resolved_at = now
        entry.clawback_resolved_by = resolved_by
        if outcome is ClawbackStatus.GRANTED:
            entry.withheld = True
            entry.status = PrivilegeStatus.WITHHELD.value
        entry.notes = [*entry.notes, f"{now.isoformat()} claw-back {outcome.value.lower()} by {resolved_by}"]
        return entry

    async def withholding_entries(
        self, evidence_id: uuid.UUID, tenant: TenantContext
    ) -> list[PrivilegeLogEntry]:
        """Entries currently withholding an evidence item from production."""
        return [e for e in await self._repository.list_by_evidence(evidence_id, tenant) if e.withheld]

    async def granted_clawbacks(
        self, evidence_id: uuid.UUID, tenant: TenantContext
    ) -> list[PrivilegeLogEntry]:
        return [
            e
            for e in await self._repository.list_by_evidence(evidence_id, tenant)
            if e.clawback_status == ClawbackStatus.GRANTED.value
        ]


# ---------------------------------------------------------------------------
# Productions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NextBatesNumber:
    """The next Bates number available for a case and prefix."""

    prefix: str
    number: int
    formatted: str


@dataclass(frozen=True)
class LoadFile:
    """A generated Concordance load file for a production."""

    path: str
    content: str
    document_count: int


LOAD_FILE_COLUMNS = (
    "BEGBATES",
    "ENDBATES",
    "EVIDENCE_NUMBER",
    "CUSTODIAN",
    "PAGES",
    "FORMAT",
    "REDACTED",
    "CLAWED_BACK",
)
_DAT_QUOTE = "þ"
_DAT_DELIMITER = "\u0014"


def _dat_line(values: list[str]) -> str:
    return _DAT_DELIMITER.join(f"{_DAT_QUOTE}{value}{_DAT_QUOTE}" for value in values)


class ProductionService:
    """Creates productions and numbers documents into them.

    All Bates reads and writes for a (case, prefix) happen under a lease
    from the registry, and the unit of work is committed before the lease
    is released so the next holder sees the new high-water mark.

    Args:
        repository: Production and document storage.
        evidence_service: Registry used to stamp produced items.
        privilege_service: Consulted for withholding claims before numbering.
        identifiers: Allocator for PROD numbers.
        uow: Unit of work committed inside the Bates lease.
        leases: Lease registry; defaults to the process-wide one.
        default_padding: Bates digit count when a production does not set one.
    """

    def __init__(
        self,
        repository: IProductionRepository,
        evidence_service: EvidenceService,
        privilege_service: PrivilegeLogService,
        identifiers: IdentifierGenerator,
        uow: IUnitOfWork,
        leases: BatesLeaseRegistry = bates_leases,
        default_padding: int = 6,
    ) -> None:
        self._repository = repository
        self._evidence = evidence_service
        self._privilege = privilege_service
        self._identifiers = identifiers
        self._uow = uow
        self._leases = leases
        self._default_padding = default_padding

    async def get_next_bates_number(
        self, case_id: uuid.UUID, bates_prefix: str, tenant: TenantContext
    ) -> NextBatesNumber:
        """Return one more than the highest number issued or reserved."""
        prefix = _validate_prefix(bates_prefix)
        async with self._leases.lease(tenant.tenant_id, case_id, prefix):
            number = await self._next_number(case_id, prefix, tenant)
        return NextBatesNumber(
            prefix=prefix,
            number=number,
            formatted=format_bates(prefix, number, self._default_padding),
        )

    async def create_production(
        self,
        tenant: TenantContext,
        case_id: uuid.UUID,
        production_name: str,
        bates_prefix: str,
        produced_to: str,
        created_by: str,
        production_type: str = ProductionType.INITIAL.value,
        production_format: str = ProductionFormat.PDF.value,
        case_number: str | None = None,
        bates_start_number: int | None = None,
        bates_padding: int | None = None,
        recipient_firm: str | None = None,
        recipient_email: str | None = None,
        delivery_method: str | None = None,
        due_date: date | None = None,
        notes: str | None = None,
    ) -> Production:
        """Create a Draft production reserving its Bates start number.

        Raises:
            ValidationError: If fields are invalid or the start number is
                below the next available number for the case and prefix.
        """
        production_name = _require(production_name, "production_name")
        produced_to = _require(produced_to, "produced_to")
        created_by = _require(created_by, "created_by")
        prefix = _validate_prefix(bates_prefix)
        type_value = _coerce_enum(ProductionType, production_type, "production_type")
        format_value = _coerce_enum(ProductionFormat, production_format, "production_format")
        delivery = (
            _coerce_enum(DeliveryMethod, delivery_method, "delivery_method").value
            if delivery_method
            else None
        )
        padding = self._default_padding if bates_padding is None else bates_padding
        if not 1 <= padding <= 12:
            raise ValidationError("bates_padding must be between 1 and 12")
        if bates_start_number is not None and bates_start_number < 1:
            raise ValidationError("bates_start_number must be at least 1")

        async with self._leases.lease(tenant.tenant_id, case_id, prefix):
            next_number = await self._next_number(case_id, prefix, tenant)
            start = next_number if bates_start_number is None else bates_start_number
            if start < next_number:
                raise ValidationError(
                    f"Bates start {start} is already issued for {prefix}; next available is {next_number}"
                )
            production = Production(
                tenant_id=tenant.tenant_id,
                production_number=await self._identifiers.production_number(tenant),
                production_name=production_name,
                case_id=case_id,
                case_number=case_number,
                production_type=type_value.value,
                production_format=format_value.value,
                bates_prefix=prefix,
                bates_start_number=start,
                bates_end_number=None,
                bates_padding=padding,
                total_documents=0,
                total_pages=0,
                redacted_documents=0,
                clawed_back_documents=0,
                load_file_generated=False,
                produced_to=produced_to,
                recipient_firm=recipient_firm,
                recipient_email=recipient_email,
                delivery_method=delivery,
                due_date=due_date,
                status=ProductionStatus.DRAFT.value,
                created_by=created_by,
                notes=notes,
            )
            await self._repository.add(production)
            await self._uow.commit()

        logger.info(
            "Production created",
            extra={
                "production_id": str(production.id),
                "production_number": production.production_number,
                "bates_prefix": prefix,
                "bates_start_number": start,
                "tenant_id": str(tenant.tenant_id),
            },
        )
        return production

    async def get(self, production_id: uuid.UUID, tenant: TenantContext) -> Production:
        production = await self._repository.get_by_id(production_id, tenant)
        if production is None:
            raise NotFoundError("Production", production_id)
        return production

    async def list_by_case(self, case_id: uuid.UUID, tenant: TenantContext) -> list[Production]:
        return await self._repository.list_by_case(case_id, tenant)

    async def documents(
        self, production_id: uuid.UUID, tenant: TenantContext
    ) -> list[ProductionDocument]:
        await self.get(production_id, tenant)
        documents = await self._repository.list_documents(production_id, tenant)
        return sorted(documents, key=lambda d: d.bates_sequence)

    async def add_document(
        self,
        production_id: uuid.UUID,
        evidence_id: uuid.UUID,
        added_by: str,
        tenant: TenantContext,
        page_count: int = 1,
        redacted: bool = False,
        produced_format: str | None = None,
    ) -> ProductionDocument:
        """Number an evidence item into a production.

        The document receives ``start + total_documents`` as its Bates
        sequence. Items withheld by a privilege claim are refused unless a
        redacted variant is produced and every withholding claim allows
        partial redaction.

        Args:
            production_id: Target production.
            evidence_id: Item to produce.
            added_by: Actor adding the document.
            tenant: Tenant context for isolation.
            page_count: Pages in the produced document.
            redacted: Whether a redacted variant is being produced.
            produced_format: Format of this document; defaults to the
                production's format.

        Returns:
            The created ProductionDocument.

        Raises:
            ValidationError: On invalid page count or a cross-case item.
            NotFoundError: If the production or item does not exist.
            InvalidTransitionError: If the production is not open, has been
                superseded by a later production, or the item was already produced.
            PrivilegedDocumentError: If a privilege claim withholds the item.
        """
        added_by = _require(added_by, "added_by")
        if page_count < 1:
            raise ValidationError("page_count must be at least 1")
        format_value = (
            _coerce_enum(ProductionFormat, produced_format, "produced_format").value
            if produced_format
            else None
        )
        production = await self.get(production_id, tenant)

        async with self._leases.lease(tenant.tenant_id, production.case_id, production.bates_prefix):
            # Another holder may have numbered documents since the first read.
            production = await self._repository.get_by_id(production_id, tenant, for_update=True)
            if production.status not in (ProductionStatus.DRAFT.value, ProductionStatus.IN_PROGRESS.value):
                raise InvalidTransitionError(
                    f"Production {production.production_number} is {production.status}; "
                    "documents can only be added while Draft or In Progress"
                )
            siblings = await self._repository.list_by_case_and_prefix(
                production.case_id, production.bates_prefix, tenant
            )
            if any(
                other.id != production.id and other.bates_start_number > production.bates_start_number
                for other in siblings
            ):
                raise InvalidTransitionError(
                    f"Production {production.production_number} has been superseded by a later "
                    f"production for prefix {production.bates_prefix}"
                )

            item = await self._evidence.get(evidence_id, tenant)
            if item.case_id != production.case_id:
                raise ValidationError(
                    f"Evidence {item.evidence_number} does not belong to the production's case"
                )
            if item.status != EvidenceStatus.ACTIVE.value:
                raise InvalidTransitionError(f"Evidence {item.evidence_number} is {item.status}")
            if item.bates_number is not None:
                raise InvalidTransitionError(
                    f"Evidence {item.evidence_number} was already produced as {item.bates_number}"
                )
            withholding = await self._privilege.withholding_entries(evidence_id, tenant)
            if withholding and not (
                redacted and all(e.redaction_type == RedactionType.PARTIAL.value for e in withholding)
            ):
                raise PrivilegedDocumentError(
                    f"Evidence {item.evidence_number} is withheld as privileged "
                    f"({', '.join(e.log_number for e in withholding)})"
                )

            sequence = production.bates_start_number + production.total_documents
            bates_number = format_bates(production.bates_prefix, sequence, production.bates_padding)
            document = ProductionDocument(
                tenant_id=tenant.tenant_id,
                production_id=production.id,
                evidence_id=evidence_id,
                case_id=production.case_id,
                bates_prefix=production.bates_prefix,
                bates_sequence=sequence,
                bates_number=bates_number,
                page_count=page_count,
                produced_format=format_value or production.production_format,
                redacted=redacted,
                clawed_back=False,
                position=production.total_documents + 1,
            )
            await self._repository.add_document(document)

            production.total_documents += 1
            production.total_pages += page_count
            if redacted:
                production.redacted_documents += 1
            production.bates_end_number = sequence
            production.updated_at = utcnow()

            await self._evidence.mark_produced(evidence_id, production.id, bates_number, added_by, tenant)
            await self._uow.commit()

        logger.info(
            "Document added to production",
            extra={
                "production_id": str(production.id),
                "evidence_id": str(evidence_id),
                "bates_number": bates_number,
                "tenant_id": str(tenant.tenant_id),
            },
        )
        return document

    async def start(self, production_id: uuid.UUID, performed_by: str, tenant: TenantContext) -> Production:
        return await self._advance(production_id, ProductionStatus.IN_PROGRESS, performed_by, tenant)

    async def submit_for_review(
        self, production_id: uuid.UUID, performed_by: str, tenant: TenantContext
    ) -> Production:
        return await self._advance(production_id, ProductionStatus.READY_FOR_REVIEW, performed_by, tenant)

    async def approve(self, production_id: uuid.UUID, approved_by: str, tenant: TenantContext) -> Production:
        return await self._advance(production_id, ProductionStatus.APPROVED, approved_by, tenant)

    async def deliver(self, production_id: uuid.UUID, performed_by: str, tenant: TenantContext) -> Production:
        return await self._advance(production_id, ProductionStatus.DELIVERED, performed_by, tenant)

    async def complete(self, production_id: uuid.UUID, performed_by: str, tenant: TenantContext) -> Production:
        return await self._advance(production_id, ProductionStatus.COMPLETED, performed_by, tenant)

    async def apply_clawbacks(
        self, production_id: uuid.UUID, applied_by: str, tenant: TenantContext
    ) -> list[ProductionDocument]:
        """Flag produced documents whose privilege claw-back was granted.

        Flagged documents keep their Bates numbers; numbers are never reissued.

        Returns:
            Documents newly flagged as clawed back.
        """
        applied_by = _require(applied_by, "applied_by")
        production = await self.get(production_id, tenant)
        flagged: list[ProductionDocument] = []
        for document in await self._repository.list_documents(production_id, tenant):
            if document.clawed_back:
                continue
            if await self._privilege.granted_clawbacks(document.evidence_id, tenant):
                document.clawed_back = True
                flagged.append(document)
        if flagged:
            production.clawed_back_documents += len(flagged)
            production.updated_at = utcnow()
            logger.warning(
                "Produced documents clawed back",
                extra={
                    "production_id": str(production.id),
                    "bates_numbers": [d.bates_number for d in flagged],
                    "applied_by": applied_by,
                },
            )
        return flagged

    async def generate_load_file(
        self, production_id: uuid.UUID, generated_by: str, tenant: TenantContext
    ) -> LoadFile:
        """Build the Concordance DAT load file listing every produced document.

        One row per document in Bates order. Generating again rebuilds the
        file from the current documents.

        Raises:
            InvalidTransitionError: If the production has no documents.
        """
        generated_by = _require(generated_by, "generated_by")
        production = await self.get(production_id, tenant)
        documents = await self.documents(production_id, tenant)
        if not documents:
            raise InvalidTransitionError(
                f"Production {production.production_number} has no documents to list"
            )

        lines = [_dat_line(list(LOAD_FILE_COLUMNS))]
        for document in documents:
            item = await self._evidence.get(document.evidence_id, tenant)
            lines.append(
                _dat_line(
                    [
                        document.bates_number,
                        document.bates_number,
                        item.evidence_number,
                        item.custodian,
                        str(document.page_count),
                        document.produced_format,
                        "Y" if document.redacted else "N",
                        "Y" if document.clawed_back else "N",
                    ]
                )
            )

        path = f"/productions/{production.production_number}/loadfile.dat"
        production.load_file_generated = True
        production.load_file_path = path
        production.updated_at = utcnow()
        logger.info(
            "Load file generated",
            extra={
                "production_id": str(production.id),
                "document_count": len(documents),
                "generated_by": generated_by,
            },
        )
        return LoadFile(path=path, content="\r\n".join(lines) + "\r\n", document_count=len(documents))

    async def _advance(
        self,
        production_id: uuid.UUID,
        target: ProductionStatus,
        performed_by: str,
        tenant: TenantContext,
    ) -> Production:
        performed_by = _require(performed_by, "performed_by")
        production = await self.get(production_id, tenant)
        current = ProductionStatus(production.status)
        if PRODUCTION_STATUS_ORDER.index(target) != PRODUCTION_STATUS_ORDER.index(current) + 1:
            raise InvalidTransitionError(
                f"Cannot move production {production.production_number} from {current.value} to {target.value}"
            )
        if target is ProductionStatus.READY_FOR_REVIEW and production.total_documents == 0:
            raise InvalidTransitionError("Cannot submit an empty production set for review")

        now = utcnow()
        production.status = target.value
        production.updated_at = now
        if target is ProductionStatus.APPROVED:
            production.approved_by = performed_by
            production.approval_date = now
        elif target is ProductionStatus.DELIVERED:
            production.delivered_at = now
        elif target is ProductionStatus.COMPLETED:
            production.completed_at = now

        logger.info(
            "Production status changed",
            extra={
                "production_id": str(production.id),
                "from_status": current.value,
                "to_status": target.value,
                "performed_by": performed_by,
            },
        )
        return production

    async def _next_number(self, case_id: uuid.UUID, prefix: str, tenant: TenantContext) -> int:
        productions = await self._repository.list_by_case_and_prefix(case_id, prefix, tenant)
        if not productions:
            return 1
        high_water = max(
            p.bates_end_number if p.bates_end_number is not None else p.bates_start_number
            for p in productions
        )
        return high_water + 1


def _validate_prefix(bates_prefix: str) -> str:
    prefix = normalize_prefix(_require(bates_prefix, "bates_prefix"))
    if not all(ch.isalnum() or ch in "-_" for ch in prefix):
        raise ValidationError("bates_prefix may contain only letters, digits, '-' and '_'")
    return prefix


# ---------------------------------------------------------------------------
# Document review
# ---------------------------------------------------------------------------

_DECISION_RELEVANCE: dict[ReviewDecision, Relevance | None] = {
    ReviewDecision.RELEVANT: Relevance.RELEVANT,
    ReviewDecision.NOT_RELEVANT: Relevance.NOT_RELEVANT,
    ReviewDecision.POTENTIALLY_RELEVANT: Relevance.POTENTIALLY_RELEVANT,
    ReviewDecision.PRIVILEGED: Relevance.PRIVILEGED,
    ReviewDecision.NEEDS_SECOND_REVIEW: None,
}


class ReviewService:
    """Assigns documents to reviewers and records their decisions.

    Completing a review writes the relevance call back to the evidence item
    through the registry, which appends the Reviewed custody entry.

    Args:
        repository: Review storage.
        evidence_service: Registry holding the reviewed items.
        identifiers: Allocator for REV numbers.
    """

    def __init__(
        self,
        repository: IDocumentReviewRepository,
        evidence_service: EvidenceService,
        identifiers: IdentifierGenerator,
    ) -> None:
        self._repository = repository
        self._evidence = evidence_service
        self._identifiers = identifiers

    async def assign(
        self,
        evidence_id: uuid.UUID,
        assigned_to: str,
        assigned_by: str,
        tenant: TenantContext,
        due_date: date | None = None,
        batch_id: str | None = None,
        batch_name: str | None = None,
        document_title: str | None = None,
    ) -> DocumentReview:
        """Queue an evidence item for a reviewer.

        Case, title, type and Bates number are taken from the evidence item.

        Raises:
            NotFoundError: If the evidence does not exist.
            InvalidTransitionError: If the evidence is not active.
        """
        assigned_to = _require(assigned_to, "assigned_to")
        assigned_by = _require(assigned_by, "assigned_by")
        item = await self._evidence.get(evidence_id, tenant)
        if item.status != EvidenceStatus.ACTIVE.value:
            raise InvalidTransitionError(
                f"Evidence {item.evidence_number} is {item.status} and cannot be reviewed"
            )

        review = DocumentReview(
            tenant_id=tenant.tenant_id,
            review_number=await self._identifiers.review_number(tenant),
            case_id=item.case_id,
            case_number=item.case_number,
            evidence_id=item.id,
            document_title=(document_title or "").strip() or item.description,
            document_type=item.evidence_type,
            bates_number=item.bates_number,
            assigned_to=assigned_to,
            assigned_by=assigned_by,
            assigned_at=utcnow(),
            due_date=due_date,
            batch_id=batch_id,
            batch_name=batch_name,
            review_status=ReviewStatus.PENDING.value,
            tags=[],
            produce_document=False,
            redaction_required=False,
            time_spent_minutes=0,
        )
        await self._repository.add(review)
        logger.info(
            "Review assigned",
            extra={
                "review_id": str(review.id),
                "review_number": review.review_number,
                "evidence_id": str(item.id),
                "assigned_to": assigned_to,
                "tenant_id": str(tenant.tenant_id),
            },
        )
        return review

    async def get(self, review_id: uuid.UUID, tenant: TenantContext) -> DocumentReview:
        review = await self._repository.get_by_id(review_id, tenant)
        if review is None:
            raise NotFoundError("Review", review_id)
        return review

    async def list_reviews(
        self,
        tenant: TenantContext,
        case_id: uuid.UUID | None = None,
        assigned_to: str | None = None,
        review_status: str | None = None,
        batch_id: str | None = None,
    ) -> list[DocumentReview]:
        if review_status is not None:
            review_status = _coerce_enum(ReviewStatus, review_status, "review_status").value
        return await self._repository.search(
            tenant,
            case_id=case_id,
            assigned_to=assigned_to,
            review_status=review_status,
            batch_id=batch_id,
        )

    async def complete(
        self,
        review_id: uuid.UUID,
        reviewed_by: str,
        relevance: str,
        tenant: TenantContext,
        privilege: str = ReviewPrivilege.NONE.value,
        responsiveness: str | None = None,
        confidentiality: str | None = None,
        tags: list[str] | None = None,
        produce_document: bool = False,
        redaction_required: bool = False,
        time_spent_minutes: int = 0,
        review_notes: str | None = None,
    ) -> DocumentReview:
        """Record the reviewer's decision and close the review.

        ``Needs Second Review`` leaves the item's relevance unchanged.

        Raises:
            ValidationError: If a decision value is unknown or the time is negative.
            InvalidTransitionError: If the review is already completed.
        """
        reviewed_by = _require(reviewed_by, "reviewed_by")
        decision = _coerce_enum(ReviewDecision, relevance, "relevance")
        privilege_value = _coerce_enum(ReviewPrivilege, privilege, "privilege")
        responsiveness_value = (
            _coerce_enum(Responsiveness, responsiveness, "responsiveness") if responsiveness else None
        )
        confidentiality_value = (
            _coerce_enum(Confidentiality, confidentiality, "confidentiality") if confidentiality else None
        )
        if time_spent_minutes < 0:
            raise ValidationError("time_spent_minutes must not be negative")

        review = await self.get(review_id, tenant)
        if review.review_status == ReviewStatus.COMPLETED.value:
            raise InvalidTransitionError(f"Review {review.review_number} is already completed")

        mapped = _DECISION_RELEVANCE[decision]
        await self._evidence.record_review(
            review.evidence_id,
            reviewed_by,
            tenant,
            relevance=mapped.value if mapped is not None else None,
            notes=review_notes or f"Review {review.review_number}: {decision.value}",
        )
        if tags or confidentiality_value is not None:
            await self._evidence.tag(
                review.evidence_id,
                tenant,
                tags=tags,
                confidentiality_level=confidentiality_value.value if confidentiality_value else None,
            )

        now = utcnow()
        review.review_status = ReviewStatus.COMPLETED.value
        review.reviewed_at = now
        review.relevance = decision.value
        review.privilege = privilege_value.value
        review.responsiveness = responsiveness_value.value if responsiveness_value else None
        review.confidentiality = confidentiality_value.value if confidentiality_value else None
        review.tags = _merge_tags(review.tags, tags or [])
        review.produce_document = produce_document
        review.redaction_required = redaction_required
        review.time_spent_minutes = time_spent_minutes
        review.review_notes = review_notes
        review.updated_at = now
        logger.info(
            "Review completed",
            extra={
                "review_id": str(review.id),
                "review_number": review.review_number,
                "relevance": decision.value,
                "reviewed_by": reviewed_by,
            },
        )
        return review

    async def reviewer_stats(
        self,
        tenant: TenantContext,
        assigned_to: str | None = None,
        case_id: uuid.UUID | None = None,
    ) -> dict[str, Any]:
        """Review counts and minutes spent, grouped by review status."""
        reviews = await self._repository.search(tenant, case_id=case_id, assigned_to=assigned_to)
        return _review_breakdown(reviews)

    async def batch_progress(self, batch_id: str, tenant: TenantContext) -> dict[str, Any]:
        """Completion of one review batch.

        Raises:
            NotFoundError: If no review belongs to the batch.
        """
        reviews = await self._repository.search(tenant, batch_id=batch_id)
        if not reviews:
            raise NotFoundError("Review batch", batch_id)
        breakdown = _review_breakdown(reviews)
        return {
            "batch_id": batch_id,
            "batch_name": next((r.batch_name for r in reviews if r.batch_name), None),
            "total_reviews": breakdown["total_reviews"],
            "completed_reviews": breakdown["completed_reviews"],
            "completion_percentage": breakdown["completion_percentage"],
            "by_status": {status: bucket["count"] for status, bucket in breakdown["by_status"].items()},
        }


def _review_breakdown(reviews: list[DocumentReview]) -> dict[str, Any]:
    by_status: dict[str, dict[str, int]] = {}
    for review in reviews:
        bucket = by_status.setdefault(review.review_status, {"count": 0, "total_minutes": 0})
        bucket["count"] += 1
        bucket["total_minutes"] += review.time_spent_minutes or 0
    completed = by_status.get(ReviewStatus.COMPLETED.value, {}).get("count", 0)
    total_minutes = sum(bucket["total_minutes"] for bucket in by_status.values())
    return {
        "by_status": by_status,
        "total_reviews": len(reviews),
        "completed_reviews": completed,
        "completion_percentage": round(completed / len(reviews) * 100) if reviews else 0,
        "total_minutes": total_minutes,
    }


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------


class AnalyticsService:
    """Per-case aggregates over evidence, privilege, productions, holds and review."""

    def __init__(
        self,
        evidence_repository: IEvidenceRepository,
        privilege_repository: IPrivilegeLogRepository,
        production_repository: IProductionRepository,
        hold_repository: ILegalHoldRepository,
        review_repository: IDocumentReviewRepository,
    ) -> None:
        self._evidence = evidence_repository
        self._privilege = privilege_repository
        self._productions = production_repository
        self._holds = hold_repository
        self._reviews = review_repository

    async def case_summary(self, case_id: uuid.UUID, tenant: TenantContext) -> dict[str, Any]:
        """Build the analytics summary for one case.

        Deleted evidence is excluded from evidence, tag and relevance counts.
        """
        evidence = [
            item
            for item in await self._evidence.list_by_case(case_id, tenant)
            if item.status != EvidenceStatus.DELETED.value
        ]
        by_type: dict[str, dict[str, int]] = {}
        for item in evidence:
            bucket = by_type.setdefault(item.evidence_type, {"count": 0, "total_size": 0})
            bucket["count"] += 1
            bucket["total_size"] += item.file_size or 0
        tag_counts = Counter(tag for item in evidence for tag in item.tags)
        relevance_counts = Counter(item.relevance for item in evidence)

        privilege: dict[str, dict[str, int]] = {}
        for entry in await self._privilege.list_by_case(case_id, tenant):
            bucket = privilege.setdefault(entry.privilege_type, {"count": 0, "withheld": 0, "waived": 0})
            bucket["count"] += 1
            bucket["withheld"] += int(entry.withheld)
            bucket["waived"] += int(entry.waived)

        productions: dict[str, dict[str, int]] = {}
        for production in await self._productions.list_by_case(case_id, tenant):
            bucket = productions.setdefault(production.status, {"count": 0, "documents": 0, "pages": 0})
            bucket["count"] += 1
            bucket["documents"] += production.total_documents
            bucket["pages"] += production.total_pages

        holds = await self._holds.list_by_case(case_id, tenant)
        hold_summary = {
            "total_holds": len(holds),
            "active_holds": sum(1 for h in holds if h.status == HoldStatus.ACTIVE.value),
            "total_custodians": sum(h.total_custodians for h in holds),
            "acknowledged_custodians": sum(h.acknowledged_custodians for h in holds),
            "average_compliance_rate": (
                sum(h.compliance_rate for h in holds) / len(holds) if holds else 0.0
            ),
        }

        review = _review_breakdown(await self._reviews.search(tenant, case_id=case_id))

        return {
            "case_id": str(case_id),
            "evidence": {
                "total": len(evidence),
                "on_legal_hold": sum(1 for item in evidence if item.on_legal_hold),
                "produced": sum(1 for item in evidence if item.bates_number is not None),
                "by_type": by_type,
            },
            "tags": [{"tag": tag, "count": count} for tag, count in tag_counts.most_common()],
            "relevance": dict(relevance_counts),
            "privilege": privilege,
            "productions": productions,
            "legal_holds": hold_summary,
            "review": {
                "by_status": review["by_status"],
                "total_reviews": review["total_reviews"],
                "completed_reviews": review["completed_reviews"],
                "completion_percentage": review["completion_percentage"],
            },
            "cost": {
                "total_evidence": len(evidence),
                "total_reviews": review["total_reviews"],
                "total_review_hours": round(review["total_minutes"] / 60),
            },
        }
