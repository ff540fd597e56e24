"""SQLAlchemy ORM models and domain enumerations for ediscovery-custody.

All tenant-scoped tables mix in TenantScopedModel which provides:
  - id: UUID primary key
  - tenant_id: UUID
  - created_at: datetime
  - updated_at: datetime

Table naming convention: edc_{table_name}
"""

import uuid
from datetime import date, datetime
from enum import Enum

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.dialects.postgresql import ARRAY, UUID
from sqlalchemy.orm import Mapped, mapped_column

from ediscovery_custody.database import Base, TenantScopedModel

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class EvidenceType(str, Enum):
    EMAIL = "Email"
    DOCUMENT = "Document"
    DATABASE = "Database"
    SYSTEM_FILES = "System Files"
    SOCIAL_MEDIA = "Social Media"
    AUDIO = "Audio"
    VIDEO = "Video"
    IMAGE = "Image"
    MOBILE_DEVICE = "Mobile Device"
    OTHER = "Other"


class CollectionMethod(str, Enum):
    FORENSIC_IMAGING = "Forensic Imaging"
    LIVE_COLLECTION = "Live Collection"
    NETWORK_CAPTURE = "Network Capture"
    CLOUD_EXPORT = "Cloud Export"
    MANUAL_COLLECTION = "Manual Collection"
    OTHER = "Other"


class PreservationStatus(str, Enum):
    """Forward-only preservation lifecycle of an evidence item."""

    COLLECTED = "Collected"
    PRESERVED = "Preserved"
    VERIFIED = "Verified"
    PROCESSED = "Processed"
    READY_FOR_REVIEW = "Ready for Review"


class Relevance(str, Enum):
    PENDING_REVIEW = "Pending Review"
    RELEVANT = "Relevant"
    POTENTIALLY_RELEVANT = "Potentially Relevant"
    NOT_RELEVANT = "Not Relevant"
    PRIVILEGED = "Privileged"


class Confidentiality(str, Enum):
    PUBLIC = "Public"
    INTERNAL = "Internal"
    CONFIDENTIAL = "Confidential"
    HIGHLY_CONFIDENTIAL = "Highly Confidential"


class EvidenceStatus(str, Enum):
    ACTIVE = "Active"
    ARCHIVED = "Archived"
    DELETED = "Deleted"
    EXPIRED = "Expired"


class ProcessingType(str, Enum):
    DEDUPLICATION = "De-duplication"
    TEXT_EXTRACTION = "Text Extraction"
    METADATA_EXTRACTION = "Metadata Extraction"
    FILE_EXTRACTION = "File Extraction"
    FULL_PROCESSING = "Full Processing"


class CustodyAction(str, Enum):
    """Kinds of chain-of-custody events."""

    COLLECTED = "Collected"
    TRANSFERRED = "Transferred"
    PRESERVED = "Preserved"
    VERIFIED = "Verified"
    PROCESSED = "Processed"
    QUEUED_FOR_REVIEW = "Queued for Review"
    REVIEWED = "Reviewed"
    PRODUCED = "Produced"
    ARCHIVED = "Archived"
    DELETED = "Deleted"
    LEGAL_HOLD_APPLIED = "Legal Hold Applied"
    LEGAL_HOLD_RELEASED = "Legal Hold Released"


class HoldStatus(str, Enum):
    ACTIVE = "Active"
    RELEASED = "Released"


class AcknowledgmentMethod(str, Enum):
    EMAIL = "Email"
    IN_PERSON = "In Person"
    PHONE = "Phone"
    SYSTEM = "System"


class CustodianCompliance(str, Enum):
    PENDING = "Pending"
    COMPLIANT = "Compliant"


class PrivilegeType(str, Enum):
    ATTORNEY_CLIENT = "Attorney-Client"
    WORK_PRODUCT = "Work Product"
    TRADE_SECRET = "Trade Secret"
    SETTLEMENT_NEGOTIATIONS = "Settlement Negotiations"
    JOINT_DEFENSE = "Joint Defense"
    OTHER = "Other"


class RedactionType(str, Enum):
    NONE = "None"
    PARTIAL = "Partial"
    FULL = "Full"


class ClawbackStatus(str, Enum):
    NONE = "None"
    REQUESTED = "Requested"
    GRANTED = "Granted"
    DENIED = "Denied"


class PrivilegeStatus(str, Enum):
    WITHHELD = "Withheld"
    PRODUCED = "Produced"


class ProductionType(str, Enum):
    INITIAL = "Initial"
    SUPPLEMENTAL = "Supplemental"
    ROLLING = "Rolling"
    FINAL = "Final"


class ProductionFormat(str, Enum):
    NATIVE = "Native"
    TIFF = "TIFF"
    PDF = "PDF"
    PAPER = "Paper"
    LOAD_FILE = "Load File"
    MIXED = "Mixed"


class DeliveryMethod(str, Enum):
    ELECTRONIC = "Electronic"
    PHYSICAL_MEDIA = "Physical Media"
    SECURE_FTP = "Secure FTP"
    EMAIL = "Email"
    COURIER = "Courier"


class ProductionStatus(str, Enum):
    """Production lifecycle, in the only order transitions may take."""

    DRAFT = "Draft"
    IN_PROGRESS = "In Progress"
    READY_FOR_REVIEW = "Ready for Review"
    APPROVED = "Approved"
    DELIVERED = "Delivered"
    COMPLETED = "Completed"


PRODUCTION_STATUS_ORDER: list[ProductionStatus] = list(ProductionStatus)


class ReviewStatus(str, Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    ON_HOLD = "On Hold"
    ESCALATED = "Escalated"


class ReviewDecision(str, Enum):
    """Relevance call recorded when a review is completed."""

    RELEVANT = "Relevant"
    NOT_RELEVANT = "Not Relevant"
    POTENTIALLY_RELEVANT = "Potentially Relevant"
    PRIVILEGED = "Privileged"
    NEEDS_SECOND_REVIEW = "Needs Second Review"


class ReviewPrivilege(str, Enum):
    NONE = "None"
    ATTORNEY_CLIENT = "Attorney-Client"
    WORK_PRODUCT = "Work Product"
    TRADE_SECRET = "Trade Secret"
    OTHER = "Other"


class Responsiveness(str, Enum):
    RESPONSIVE = "Responsive"
    NON_RESPONSIVE = "Non-Responsive"
    PARTIALLY_RESPONSIVE = "Partially Responsive"


# ---------------------------------------------------------------------------
# Evidence
# ---------------------------------------------------------------------------


class EvidenceItem(TenantScopedModel, Base):
    """A collected piece of evidence and its lifecycle state.

    ``ledger_length`` and ``ledger_head_hash`` track the tail of the item's
    custody chain so appends can link to the previous entry without a scan.

    Table: edc_evidence_items
    """

    __tablename__ = "edc_evidence_items"
    __table_args__ = (UniqueConstraint("tenant_id", "evidence_number", name="uq_edc_evidence_number"),)

    evidence_number: Mapped[str] = mapped_column(String(32), nullable=False)
    case_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    case_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    evidence_type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    source_system: Mapped[str | None] = mapped_column(String(255), nullable=True)
    collection_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    collection_method: Mapped[str] = mapped_column(String(50), nullable=False)
    custodian: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    custodian_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    custodian_department: Mapped[str | None] = mapped_column(String(255), nullable=True)
    storage_location: Mapped[str | None] = mapped_column(String(500), nullable=True)
    storage_ref: Mapped[str | None] = mapped_column(String(500), nullable=True)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    checksum: Mapped[str | None] = mapped_column(String(128), nullable=True)

    preservation_status: Mapped[str] = mapped_column(String(50), nullable=False)
    verification_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    verified_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    processing_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    processed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    processing_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    extracted_text: Mapped[str | None] = mapped_column(Text, nullable=True)

    relevance: Mapped[str] = mapped_column(String(50), nullable=False)
    confidentiality_level: Mapped[str] = mapped_column(String(50), nullable=False)
    tags: Mapped[list[str]] = mapped_column(ARRAY(String(100)), nullable=False, default=list)

    on_legal_hold: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    legal_hold_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    legal_hold_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    produced_in_set: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    bates_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    production_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    collected_by: Mapped[str] = mapped_column(String(255), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    ledger_length: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ledger_head_hash: Mapped[str | None] = mapped_column(String(128), nullable=True)


class CustodyEntry(TenantScopedModel, Base):
    """One immutable chain-of-custody event for an evidence item.

    Detail columns are populated only for the action kinds that carry them:
    hold_id/hold_number for hold actions, production_id/bates_number for
    Produced, processing_type for Processed and location for Transferred.

    Table: edc_custody_entries
    """

    __tablename__ = "edc_custody_entries"
    __table_args__ = (UniqueConstraint("evidence_id", "sequence", name="uq_edc_custody_sequence"),)

    evidence_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("edc_evidence_items.id"), nullable=False, index=True
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    performed_by: Mapped[str] = mapped_column(String(255), nullable=False)
    performed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    location: Mapped[str | None] = mapped_column(String(500), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    hold_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    hold_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    production_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    bates_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    processing_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    previous_hash: Mapped[str | None] = mapped_column(String(128), nullable=True)
    entry_hash: Mapped[str] = mapped_column(String(128), nullable=False)


@event.listens_for(CustodyEntry, "before_update")
def _reject_custody_update(mapper, connection, target: CustodyEntry) -> None:
    raise ValueError(f"Custody entry {target.id} is immutable and cannot be updated")


@event.listens_for(CustodyEntry, "before_delete")
def _reject_custody_delete(mapper, connection, target: CustodyEntry) -> None:
    raise ValueError(f"Custody entry {target.id} is immutable and cannot be deleted")


class EvidenceHold(TenantScopedModel, Base):
    """Links an evidence item to a legal hold.

    Rows with ``released_at`` unset form the item's active hold set.

    Table: edc_evidence_holds
    """

    __tablename__ = "edc_evidence_holds"
    __table_args__ = (UniqueConstraint("evidence_id", "hold_id", name="uq_edc_evidence_hold"),)

    evidence_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("edc_evidence_items.id"), nullable=False, index=True
    )
    hold_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("edc_legal_holds.id"), nullable=False, index=True
    )
    applied_by: Mapped[str] = mapped_column(String(255), nullable=False)
    applied_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    released_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    released_by: Mapped[str | None] = mapped_column(String(255), nullable=True)


# ---------------------------------------------------------------------------
# Legal holds
# ---------------------------------------------------------------------------


class LegalHold(TenantScopedModel, Base):
    """A preservation order covering custodians and evidence for a case.

    Table: edc_legal_holds
    """

    __tablename__ = "edc_legal_holds"
    __table_args__ = (UniqueConstraint("tenant_id", "hold_number", name="uq_edc_hold_number"),)

    hold_number: Mapped[str] = mapped_column(String(32), nullable=False)
    hold_name: Mapped[str] = mapped_column(String(255), nullable=False)
    case_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    case_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    matter_type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    legal_basis: Mapped[str | None] = mapped_column(Text, nullable=True)
    scope: Mapped[str] = mapped_column(Text, nullable=False)
    data_types: Mapped[list[str]] = mapped_column(ARRAY(String(100)), nullable=False, default=list)
    data_sources: Mapped[list[str]] = mapped_column(ARRAY(String(255)), nullable=False, default=list)
    preservation_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    effective_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    notification_method: Mapped[str] = mapped_column(String(50), nullable=False)
    reminder_frequency: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    total_custodians: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    acknowledged_custodians: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    compliance_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    released_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    released_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    release_reason: Mapped[str | None] = mapped_column(Text, nullable=True)


class HoldCustodian(TenantScopedModel, Base):
    """A custodian bound by a legal hold and their acknowledgement state.

    Table: edc_hold_custodians
    """

    __tablename__ = "edc_hold_custodians"
    __table_args__ = (UniqueConstraint("hold_id", "email_normalized", name="uq_edc_hold_custodian_email"),)

    hold_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("edc_legal_holds.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    email_normalized: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    department: Mapped[str | None] = mapped_column(String(255), nullable=True)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notification_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    acknowledged_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    acknowledgment_method: Mapped[str | None] = mapped_column(String(20), nullable=True)
    reminders_sent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_reminder_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    compliance_status: Mapped[str] = mapped_column(String(20), nullable=False)


# ---------------------------------------------------------------------------
# Privilege log
# ---------------------------------------------------------------------------


class PrivilegeLogEntry(TenantScopedModel, Base):
    """A privilege claim over a document or evidence item.

    Table: edc_privilege_log
    """

    __tablename__ = "edc_privilege_log"
    __table_args__ = (UniqueConstraint("tenant_id", "log_number", name="uq_edc_privilege_log_number"),)

    log_number: Mapped[str] = mapped_column(String(32), nullable=False)
    case_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    case_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    evidence_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("edc_evidence_items.id"), nullable=True, index=True
    )
    document_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    document_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    document_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    privilege_type: Mapped[str] = mapped_column(String(50), nullable=False)
    privilege_basis: Mapped[str] = mapped_column(Text, nullable=False)
    author: Mapped[str] = mapped_column(String(255), nullable=False)
    recipients: Mapped[list[str]] = mapped_column(ARRAY(String(255)), nullable=False, default=list)
    document_description: Mapped[str] = mapped_column(Text, nullable=False)
    attorney: Mapped[str] = mapped_column(String(255), nullable=False)
    identified_by: Mapped[str] = mapped_column(String(255), nullable=False)
    redaction_type: Mapped[str] = mapped_column(String(20), nullable=False)
    withheld: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    waived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    waived_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    waived_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    waiver_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    clawback_status: Mapped[str] = mapped_column(String(20), nullable=False)
    clawback_requested_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    clawback_requested_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    clawback_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    clawback_resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    clawback_resolved_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    notes: Mapped[list[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)


# ---------------------------------------------------------------------------
# Productions
# ---------------------------------------------------------------------------


class Production(TenantScopedModel, Base):
    """A production set with a contiguous Bates range.

    ``bates_end_number`` stays unset until the first document is added.

    Table: edc_productions
    """

    __tablename__ = "edc_productions"
    __table_args__ = (UniqueConstraint("tenant_id", "production_number", name="uq_edc_production_number"),)

    production_number: Mapped[str] = mapped_column(String(32), nullable=False)
    production_name: Mapped[str] = mapped_column(String(255), nullable=False)
    case_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    case_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    production_type: Mapped[str] = mapped_column(String(20), nullable=False)
    production_format: Mapped[str] = mapped_column(String(20), nullable=False)
    bates_prefix: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    bates_start_number: Mapped[int] = mapped_column(Integer, nullable=False)
    bates_end_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    bates_padding: Mapped[int] = mapped_column(Integer, nullable=False)
    total_documents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_pages: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    redacted_documents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    clawed_back_documents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    produced_to: Mapped[str] = mapped_column(String(255), nullable=False)
    recipient_firm: Mapped[str | None] = mapped_column(String(255), nullable=True)
    recipient_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    delivery_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    approved_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    approval_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    load_file_generated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    load_file_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class ProductionDocument(TenantScopedModel, Base):
    """An evidence item numbered into a production.

    Table: edc_production_documents
    """

    __tablename__ = "edc_production_documents"
    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "case_id", "bates_prefix", "bates_sequence", name="uq_edc_bates_sequence"
        ),
    )

    production_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("edc_productions.id"), nullable=False, index=True
    )
    evidence_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("edc_evidence_items.id"), nullable=False, index=True
    )
    case_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    bates_prefix: Mapped[str] = mapped_column(String(32), nullable=False)
    bates_sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    bates_number: Mapped[str] = mapped_column(String(64), nullable=False)
    page_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    produced_format: Mapped[str] = mapped_column(String(20), nullable=False)
    redacted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    clawed_back: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)


# ---------------------------------------------------------------------------
# Document review
# ---------------------------------------------------------------------------


class DocumentReview(TenantScopedModel, Base):
    """A review assignment for one evidence item and the reviewer's decision.

    Decision columns stay unset until the review is completed.

    Table: edc_document_reviews
    """

    __tablename__ = "edc_document_reviews"
    __table_args__ = (UniqueConstraint("tenant_id", "review_number", name="uq_edc_review_number"),)

    review_number: Mapped[str] = mapped_column(String(32), nullable=False)
    case_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    case_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    evidence_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("edc_evidence_items.id"), nullable=False, index=True
    )
    document_title: Mapped[str] = mapped_column(Text, nullable=False)
    document_type: Mapped[str] = mapped_column(String(50), nullable=False)
    bates_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    assigned_to: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    assigned_by: Mapped[str] = mapped_column(String(255), nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    batch_id: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    batch_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    review_status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    relevance: Mapped[str | None] = mapped_column(String(50), nullable=True)
    privilege: Mapped[str | None] = mapped_column(String(50), nullable=True)
    confidentiality: Mapped[str | None] = mapped_column(String(50), nullable=True)
    responsiveness: Mapped[str | None] = mapped_column(String(50), nullable=True)
    tags: Mapped[list[str]] = mapped_column(ARRAY(String(100)), nullable=False, default=list)
    produce_document: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    redaction_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    time_spent_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


# ---------------------------------------------------------------------------
# Identifier sequences
# ---------------------------------------------------------------------------


class NumberSequence(TenantScopedModel, Base):
    """Last issued value of a per-tenant human-readable number scope.

    Scopes look like ``EVD-2024`` or ``HOLD-2024``.

    Table: edc_number_sequences
    """

    __tablename__ = "edc_number_sequences"
    __table_args__ = (UniqueConstraint("tenant_id", "scope", name="uq_edc_number_sequence_scope"),)

    scope: Mapped[str] = mapped_column(String(32), nullable=False)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
