"""Pydantic request and response schemas for the ediscovery-custody API.

Every response is wrapped in an Envelope: ``{"success": true, "data": ...}``
on success and ``{"success": false, "error": {"kind", "message"}}`` on failure.
"""

import uuid
from datetime import date, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


class ErrorBody(BaseModel):
    kind: str
    message: str


class Envelope(BaseModel, Generic[T]):
    """Uniform response wrapper."""

    success: bool = True
    data: T | None = None
    error: ErrorBody | None = None


def ok(data: T) -> Envelope[T]:
    return Envelope(success=True, data=data)


# ---------------------------------------------------------------------------
# Evidence
# ---------------------------------------------------------------------------


class EvidenceCollectRequest(BaseModel):
    """Request body for collecting a new evidence item."""

    case_id: uuid.UUID
    case_number: str | None = None
    evidence_type: str = Field(..., description="Email, Document, Database, ...")
    description: str = Field(..., min_length=1)
    collection_method: str = Field(..., description="Forensic Imaging, Live Collection, ...")
    custodian: str = Field(..., min_length=1)
    collected_by: str = Field(..., min_length=1)
    source_system: str | None = None
    collection_date: datetime | None = None
    custodian_email: str | None = None
    custodian_department: str | None = None
    storage_location: str | None = None
    file_size: int = Field(default=0, ge=0)
    checksum: str | None = None
    confidentiality_level: str = "Internal"
    tags: list[str] = Field(default_factory=list)
    notes: str | None = None


class EvidenceResponse(BaseModel):
    """Response schema for an evidence item."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    evidence_number: str
    case_id: uuid.UUID
    case_number: str | None
    evidence_type: str
    description: str
    source_system: str | None
    collection_date: datetime
    collection_method: str
    custodian: str
    custodian_email: str | None
    storage_location: str | None
    storage_ref: str | None
    file_size: int
    checksum: str | None
    preservation_status: str
    verification_date: datetime | None
    verified_by: str | None
    processed: bool
    processing_date: datetime | None
    processing_type: str | None
    extracted_text: str | None
    relevance: str
    confidentiality_level: str
    tags: list[str]
    on_legal_hold: bool
    legal_hold_id: uuid.UUID | None
    produced_in_set: uuid.UUID | None
    bates_number: str | None
    status: str
    collected_by: str
    ledger_length: int
    created_at: datetime
    updated_at: datetime


class ActorRequest(BaseModel):
    """Request body for transitions that only need an actor."""

    performed_by: str = Field(..., min_length=1)
    notes: str | None = None


class PreserveRequest(ActorRequest):
    storage_location: str | None = None


class VerifyRequest(ActorRequest):
    checksum: str | None = None


class ReviewRequest(ActorRequest):
    relevance: str | None = None


class TransferRequest(ActorRequest):
    to_location: str = Field(..., min_length=1)


class DeleteRequest(ActorRequest):
    reason: str = Field(..., min_length=1)


class TagRequest(BaseModel):
    tags: list[str] = Field(default_factory=list)
    relevance: str | None = None
    confidentiality_level: str | None = None


class ProcessRequest(BaseModel):
    """Request body for batch processing."""

    evidence_ids: list[uuid.UUID] = Field(..., min_length=1)
    processing_type: str = "Full Processing"
    processed_by: str = Field(..., min_length=1)
    extract_text: bool = True


class ProcessedItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    evidence_id: uuid.UUID
    evidence_number: str


class ItemErrorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    evidence_id: uuid.UUID
    kind: str
    message: str


class ProcessingSummaryResponse(BaseModel):
    """Per-batch processing outcome."""

    model_config = ConfigDict(from_attributes=True)

    processed: int
    failed: int
    processing_type: str
    processed_items: list[ProcessedItemResponse]
    errors: list[ItemErrorResponse]
    error_kind: str | None


class CustodyEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    evidence_id: uuid.UUID
    sequence: int
    action: str
    performed_by: str
    performed_at: datetime
    location: str | None
    notes: str | None
    hold_id: uuid.UUID | None
    hold_number: str | None
    production_id: uuid.UUID | None
    bates_number: str | None
    processing_type: str | None
    previous_hash: str | None
    entry_hash: str


class LedgerVerificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    evidence_id: uuid.UUID
    length: int
    valid: bool
    broken_at: int | None
    head_hash: str | None


# ---------------------------------------------------------------------------
# Legal holds
# ---------------------------------------------------------------------------


class CustodianRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    department: str | None = None
    title: str | None = None


class LegalHoldCreateRequest(BaseModel):
    """Request body for issuing a legal hold."""

    case_id: uuid.UUID
    case_number: str | None = None
    hold_name: str = Field(..., min_length=1)
    matter_type: str = "litigation"
    description: str | None = None
    legal_basis: str | None = None
    scope: str = Field(..., min_length=1)
    custodians: list[CustodianRequest] = Field(..., min_length=1)
    created_by: str = Field(..., min_length=1)
    data_types: list[str] = Field(default_factory=list)
    data_sources: list[str] = Field(default_factory=list)
    preservation_instructions: str | None = None
    effective_date: date | None = None
    notification_method: str = "Email"
    reminder_frequency: str = "Weekly"
    evidence_ids: list[uuid.UUID] = Field(default_factory=list)


class LegalHoldResponse(BaseModel):
    """Response schema for a legal hold."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    hold_number: str
    hold_name: str
    case_id: uuid.UUID
    case_number: str | None
    matter_type: str
    scope: str
    data_types: list[str]
    data_sources: list[str]
    issued_at: datetime
    status: str
    total_custodians: int
    acknowledged_custodians: int
    compliance_rate: float
    created_by: str
    released_at: datetime | None
    released_by: str | None
    release_reason: str | None


class HoldCustodianResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    department: str | None
    title: str | None
    notification_sent_at: datetime | None
    acknowledged_at: datetime | None
    acknowledgment_method: str | None
    reminders_sent: int
    compliance_status: str


class AcknowledgeRequest(BaseModel):
    custodian_email: str = Field(..., min_length=3)
    method: str = "Email"


class CustodianEmailRequest(BaseModel):
    custodian_email: str = Field(..., min_length=3)


class ApplyHoldRequest(BaseModel):
    evidence_ids: list[uuid.UUID] = Field(..., min_length=1)
    applied_by: str = Field(..., min_length=1)


class ReleaseHoldRequest(BaseModel):
    released_by: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1)


class NoticeResponse(BaseModel):
    text: str | None


# ---------------------------------------------------------------------------
# Privilege log
# ---------------------------------------------------------------------------


class PrivilegeLogCreateRequest(BaseModel):
    """Request body for logging a privilege claim."""

    case_id: uuid.UUID
    case_number: str | None = None
    evidence_id: uuid.UUID | None = None
    document_id: str | None = None
    document_date: date | None = None
    document_type: str | None = None
    privilege_type: str
    privilege_basis: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)
    recipients: list[str] = Field(default_factory=list)
    document_description: str = Field(..., min_length=1)
    attorney: str = Field(..., min_length=1)
    identified_by: str = Field(..., min_length=1)
    redaction_type: str = "None"
    notes: str | None = None


class PrivilegeLogResponse(BaseModel):
    """Response schema for a privilege log entry."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    log_number: str
    case_id: uuid.UUID
    case_number: str | None
    evidence_id: uuid.UUID | None
    document_id: str | None
    document_date: date | None
    document_type: str | None
    privilege_type: str
    privilege_basis: str
    author: str
    recipients: list[str]
    document_description: str
    attorney: str
    identified_by: str
    redaction_type: str
    withheld: bool
    waived: bool
    waived_at: datetime | None
    waived_by: str | None
    clawback_status: str
    status: str
    notes: list[str]


class WaiveRequest(BaseModel):
    waived_by: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1)


class ClawbackRequest(BaseModel):
    requested_by: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1)


class ClawbackResolutionRequest(BaseModel):
    decision: str = Field(..., description="Granted or Denied")
    resolved_by: str = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Productions
# ---------------------------------------------------------------------------


class NextBatesResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    prefix: str
    number: int
    formatted: str


class ProductionCreateRequest(BaseModel):
    """Request body for creating a production."""

    case_id: uuid.UUID
    case_number: str | None = None
    production_name: str = Field(..., min_length=1)
    production_type: str = "Initial"
    production_format: str = "PDF"
    bates_prefix: str = Field(..., min_length=1, max_length=32)
    bates_start_number: int | None = Field(default=None, ge=1)
    bates_padding: int | None = Field(default=None, ge=1, le=12)
    produced_to: str = Field(..., min_length=1)
    recipient_firm: str | None = None
    recipient_email: str | None = None
    delivery_method: str | None = None
    due_date: date | None = None
    created_by: str = Field(..., min_length=1)
    notes: str | None = None


class ProductionResponse(BaseModel):
    """Response schema for a production set."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    production_number: str
    production_name: str
    case_id: uuid.UUID
    case_number: str | None
    production_type: str
    production_format: str
    bates_prefix: str
    bates_start_number: int
    bates_end_number: int | None
    bates_padding: int
    total_documents: int
    total_pages: int
    redacted_documents: int
    clawed_back_documents: int
    produced_to: str
    delivery_method: str | None
    due_date: date | None
    status: str
    created_by: str
    approved_by: str | None
    approval_date: datetime | None
    delivered_at: datetime | None
    completed_at: datetime | None
    load_file_generated: bool
    load_file_path: str | None


class LoadFileRequest(BaseModel):
    generated_by: str = Field(..., min_length=1)


class LoadFileResponse(BaseModel):
    """A generated Concordance DAT load file."""

    model_config = ConfigDict(from_attributes=True)

    path: str
    content: str
    document_count: int


class AddDocumentRequest(BaseModel):
    evidence_id: uuid.UUID
    added_by: str = Field(..., min_length=1)
    page_count: int = Field(default=1, ge=1)
    redacted: bool = False
    produced_format: str | None = None


class ProductionDocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    production_id: uuid.UUID
    evidence_id: uuid.UUID
    bates_sequence: int
    bates_number: str
    page_count: int
    produced_format: str
    redacted: bool
    clawed_back: bool
    position: int


class ProductionTransitionRequest(BaseModel):
    performed_by: str = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Document review
# ---------------------------------------------------------------------------


class ReviewAssignRequest(BaseModel):
    """Request body for assigning a document to a reviewer."""

    evidence_id: uuid.UUID
    assigned_to: str = Field(..., min_length=1)
    assigned_by: str = Field(..., min_length=1)
    due_date: date | None = None
    batch_id: str | None = None
    batch_name: str | None = None
    document_title: str | None = None


class ReviewCompleteRequest(BaseModel):
    """Request body for recording a review decision."""

    reviewed_by: str = Field(..., min_length=1)
    relevance: str
    privilege: str = "None"
    responsiveness: str | None = None
    confidentiality: str | None = None
    tags: list[str] = Field(default_factory=list)
    produce_document: bool = False
    redaction_required: bool = False
    time_spent_minutes: int = Field(default=0, ge=0)
    review_notes: str | None = None


class ReviewResponse(BaseModel):
    """Response schema for a document review."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    review_number: str
    case_id: uuid.UUID
    case_number: str | None
    evidence_id: uuid.UUID
    document_title: str
    document_type: str
    bates_number: str | None
    assigned_to: str
    assigned_by: str
    assigned_at: datetime
    due_date: date | None
    batch_id: str | None
    batch_name: str | None
    review_status: str
    reviewed_at: datetime | None
    relevance: str | None
    privilege: str | None
    confidentiality: str | None
    responsiveness: str | None
    tags: list[str]
    produce_document: bool
    redaction_required: bool
    review_notes: str | None
    time_spent_minutes: int


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------


class CaseSummaryResponse(BaseModel):
    case_id: uuid.UUID
    evidence: dict[str, Any]
    tags: list[dict[str, Any]]
    relevance: dict[str, int]
    privilege: dict[str, dict[str, int]]
    productions: dict[str, dict[str, int]]
    legal_holds: dict[str, Any]
    review: dict[str, Any]
    cost: dict[str, int]
