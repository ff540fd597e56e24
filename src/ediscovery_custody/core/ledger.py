"""Append-only, hash-chained chain-of-custody ledger.

Every entry stores the hash of the entry before it for the same evidence
item, forming a tamper-evident linked list per item. The item row carries
the chain length and head hash so an append never scans the history.
"""

import hashlib
import json
import logging
import uuid
from dataclasses import dataclass

from ediscovery_custody.core.errors import NotFoundError, ValidationError
from ediscovery_custody.core.interfaces import ICustodyRepository, IEvidenceRepository
from ediscovery_custody.core.models import CustodyAction, CustodyEntry
from ediscovery_custody.core.tenancy import TenantContext
from ediscovery_custody.database import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HoldDetail:
    """Detail for Legal Hold Applied / Legal Hold Released entries."""

    hold_id: uuid.UUID
    hold_number: str | None = None


@dataclass(frozen=True)
class ProductionDetail:
    """Detail for Produced entries."""

    production_id: uuid.UUID
    bates_number: str


@dataclass(frozen=True)
class ProcessingDetail:
    """Detail for Processed entries."""

    processing_type: str


@dataclass(frozen=True)
class TransferDetail:
    """Detail for Transferred entries."""

    to_location: str


CustodyDetail = HoldDetail | ProductionDetail | ProcessingDetail | TransferDetail

_DETAIL_TYPES: dict[CustodyAction, type] = {
    CustodyAction.LEGAL_HOLD_APPLIED: HoldDetail,
    CustodyAction.LEGAL_HOLD_RELEASED: HoldDetail,
    CustodyAction.PRODUCED: ProductionDetail,
    CustodyAction.PROCESSED: ProcessingDetail,
    CustodyAction.TRANSFERRED: TransferDetail,
}


@dataclass(frozen=True)
class LedgerVerification:
    """Outcome of recomputing an item's hash chain.

    Attributes:
        evidence_id: Item whose chain was checked.
        length: Number of entries found.
        valid: True when every link and hash recomputes.
        broken_at: Sequence of the first entry that failed, if any.
        head_hash: Hash of the last entry, or None for an empty chain.
    """

    evidence_id: uuid.UUID
    length: int
    valid: bool
    broken_at: int | None
    head_hash: str | None


class CustodyLedger:
    """Records chain-of-custody events for evidence items.

    Entries are only ever appended. There is no update or
    delete operation and the ORM rejects both at flush time.

    Args:
        evidence_repository: Used to resolve and advance the item's chain head.
        custody_repository: Append-only entry storage.
        hash_algorithm: hashlib algorithm name used for entry hashes.
    """

    def __init__(
        self,
        evidence_repository: IEvidenceRepository,
        custody_repository: ICustodyRepository,
        hash_algorithm: str = "sha256",
    ) -> None:
        if hash_algorithm not in hashlib.algorithms_available:
            raise ValueError(f"Unsupported hash algorithm: {hash_algorithm}")
        self._evidence = evidence_repository
        self._entries = custody_repository
        self._hash_algorithm = hash_algorithm

    async def append(
        self,
        evidence_id: uuid.UUID,
        action: CustodyAction,
        performed_by: str,
        tenant: TenantContext,
        notes: str | None = None,
        location: str | None = None,
        detail: CustodyDetail | None = None,
    ) -> CustodyEntry:
        """Append one custody entry to an evidence item's chain.

        Args:
            evidence_id: Item the event applies to.
            action: Kind of custody event.
            performed_by: Actor responsible for the event.
            tenant: Tenant context for isolation.
            notes: Free-text notes.
            location: Where the event took place.
            detail: Structured detail; required for, and only allowed on,
                action kinds that carry one.

        Returns:
            The appended CustodyEntry.

        Raises:
            NotFoundError: If the evidence item does not exist.
            ValidationError: If the detail does not match the action kind.
        """
        item = await self._evidence.get_by_id(evidence_id, tenant)
        if item is None:
            raise NotFoundError("Evidence", evidence_id)
        if not performed_by:
            raise ValidationError("performed_by is required for custody entries")
        self._check_detail(action, detail)

        entry = CustodyEntry(
            tenant_id=tenant.tenant_id,
            evidence_id=evidence_id,
            sequence=item.ledger_length + 1,
            action=action.value,
            performed_by=performed_by,
            performed_at=utcnow(),
            location=location,
            notes=notes,
            previous_hash=item.ledger_head_hash,
        )
        if isinstance(detail, HoldDetail):
            entry.hold_id = detail.hold_id
            entry.hold_number = detail.hold_number
        elif isinstance(detail, ProductionDetail):
            entry.production_id = detail.production_id
            entry.bates_number = detail.bates_number
        elif isinstance(detail, ProcessingDetail):
            entry.processing_type = detail.processing_type
        elif isinstance(detail, TransferDetail):
            entry.location = detail.to_location
        entry.entry_hash = self._compute_entry_hash(entry)

        await self._entries.append(entry)
        item.ledger_length = entry.sequence
        item.ledger_head_hash = entry.entry_hash
        item.updated_at = entry.performed_at

        logger.info(
            "Custody entry appended",
            extra={
                "evidence_id": str(evidence_id),
                "action": action.value,
                "sequence": entry.sequence,
                "performed_by": performed_by,
                "tenant_id": str(tenant.tenant_id),
            },
        )
        return entry

    async def entries(self, evidence_id: uuid.UUID, tenant: TenantContext) -> list[CustodyEntry]:
        """Return an item's custody entries in sequence order.

        Raises:
            NotFoundError: If the evidence item does not exist.
        """
        if await self._evidence.get_by_id(evidence_id, tenant) is None:
            raise NotFoundError("Evidence", evidence_id)
        entries = await self._entries.list_for_evidence(evidence_id, tenant)
        return sorted(entries, key=lambda e: e.sequence)

    async def verify(self, evidence_id: uuid.UUID, tenant: TenantContext) -> LedgerVerification:
        """Recompute an item's hash chain and report the first break.

        Args:
            evidence_id: Item to verify.
            tenant: Tenant context for isolation.

        Returns:
            LedgerVerification describing the chain.

        Raises:
            NotFoundError: If the evidence item does not exist.
        """
        item = await self._evidence.get_by_id(evidence_id, tenant)
        if item is None:
            raise NotFoundError("Evidence", evidence_id)
        entries = sorted(
            await self._entries.list_for_evidence(evidence_id, tenant), key=lambda e: e.sequence
        )

        previous_hash: str | None = None
        broken_at: int | None = None
        for expected_sequence, entry in enumerate(entries, start=1):
            if (
                entry.sequence != expected_sequence
                or entry.previous_hash != previous_hash
                or entry.entry_hash != self._compute_entry_hash(entry)
            ):
                broken_at = expected_sequence
                break
            previous_hash = entry.entry_hash

        if broken_at is None and (
            item.ledger_length != len(entries) or item.ledger_head_hash != previous_hash
        ):
            broken_at = len(entries) + 1 if item.ledger_length > len(entries) else len(entries)

        if broken_at is not None:
            logger.warning(
                "Custody chain verification failed",
                extra={"evidence_id": str(evidence_id), "broken_at": broken_at},
            )
        return LedgerVerification(
            evidence_id=evidence_id,
            length=len(entries),
            valid=broken_at is None,
            broken_at=broken_at,
            head_hash=previous_hash if broken_at is None else item.ledger_head_hash,
        )

    @staticmethod
    def _check_detail(action: CustodyAction, detail: CustodyDetail | None) -> None:
        expected = _DETAIL_TYPES.get(action)
        if expected is None:
            if detail is not None:
                raise ValidationError(f"Custody action '{action.value}' does not take a detail")
            return
        if not isinstance(detail, expected):
            raise ValidationError(
                f"Custody action '{action.value}' requires a {expected.__name__}"
            )

    def _compute_entry_hash(self, entry: CustodyEntry) -> str:
        """Compute the deterministic integrity hash of an entry.

        Covers every recorded field plus the previous entry's hash.
        """
        payload = {
            "tenant_id": str(entry.tenant_id),
            "evidence_id": str(entry.evidence_id),
            "sequence": entry.sequence,
            "action": entry.action,
            "performed_by": entry.performed_by,
            "performed_at": entry.performed_at.isoformat(),
            "location": entry.location,
            "notes": entry.notes,
            "hold_id": str(entry.hold_id) if entry.hold_id else None,
            "hold_number": entry.hold_number,
            "production_id": str(entry.production_id) if entry.production_id else None,
            "bates_number": entry.bates_number,
            "processing_type": entry.processing_type,
            "previous_hash": entry.previous_hash,
        }
        canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return hashlib.new(self._hash_algorithm, canonical.encode("utf-8")).hexdigest()
