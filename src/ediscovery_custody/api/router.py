"""API router for ediscovery-custody.

All endpoints are registered here and included in main.py under /api/v1/ediscovery.
Routes delegate all logic to the service layer; none of the domain rules live here.
"""

import uuid
from typing import Literal

from fastapi import APIRouter, Depends, File, Form, Header, Query, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from ediscovery_custody.adapters.case_directory import HttpCaseDirectory
from ediscovery_custody.adapters.content_store import HttpContentStore
from ediscovery_custody.adapters.hold_notices import HoldNoticeRenderer
from ediscovery_custody.adapters.repositories import (
    CustodyRepository,
    DocumentReviewRepository,
    EvidenceRepository,
    LegalHoldRepository,
    PrivilegeLogRepository,
    ProductionRepository,
    SequenceRepository,
    SqlUnitOfWork,
)
from ediscovery_custody.api.schemas import (
    AcknowledgeRequest,
    ActorRequest,
    AddDocumentRequest,
    ApplyHoldRequest,
    CaseSummaryResponse,
    ClawbackRequest,
    ClawbackResolutionRequest,
    CustodianEmailRequest,
    CustodyEntryResponse,
    DeleteRequest,
    Envelope,
    EvidenceCollectRequest,
    EvidenceResponse,
    HoldCustodianResponse,
    LedgerVerificationResponse,
    LegalHoldCreateRequest,
    LegalHoldResponse,
    LoadFileRequest,
    LoadFileResponse,
    NextBatesResponse,
    NoticeResponse,
    PreserveRequest,
    PrivilegeLogCreateRequest,
    PrivilegeLogResponse,
    ProcessingSummaryResponse,
    ProcessRequest,
    ProductionCreateRequest,
    ProductionDocumentResponse,
    ProductionResponse,
    ProductionTransitionRequest,
    ReleaseHoldRequest,
    ReviewAssignRequest,
    ReviewCompleteRequest,
    ReviewRequest,
    ReviewResponse,
    TagRequest,
    TransferRequest,
    VerifyRequest,
    WaiveRequest,
    ok,
)
from ediscovery_custody.core.errors import ValidationError
from ediscovery_custody.core.identifiers import IdentifierGenerator
from ediscovery_custody.core.ledger import CustodyLedger
from ediscovery_custody.core.services import (
    AnalyticsService,
    CustodianInput,
    EvidenceService,
    LegalHoldService,
    PrivilegeLogService,
    ProductionService,
    ReviewService,
)
from ediscovery_custody.core.tenancy import TenantContext
from ediscovery_custody.database import get_db_session
from ediscovery_custody.settings import Settings

router = APIRouter(prefix="/ediscovery", tags=["ediscovery"])


# ---------------------------------------------------------------------------
# Dependency factories
# ---------------------------------------------------------------------------


def get_settings(request: Request) -> Settings:
    """Provide the settings loaded at application startup."""
    return request.app.state.settings


def get_tenant(
    x_tenant_id: uuid.UUID = Header(..., alias="X-Tenant-ID"),
    x_user_id: uuid.UUID | None = Header(default=None, alias="X-User-ID"),
) -> TenantContext:
    """Build the tenant context from request headers.

    Authentication happens upstream; the gateway forwards the resolved
    tenant and user identifiers.
    """
    return TenantContext(tenant_id=x_tenant_id, user_id=x_user_id)


def get_unit_of_work(session: AsyncSession = Depends(get_db_session)) -> SqlUnitOfWork:
    return SqlUnitOfWork(session)


def get_evidence_service(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
    uow: SqlUnitOfWork = Depends(get_unit_of_work),
    settings: Settings = Depends(get_settings),
) -> EvidenceService:
    """Provide a configured EvidenceService.

    Args:
        request: Current request, used to reach the shared HTTP client.
        session: Injected async database session.
        uow: Unit of work over the same session.
        settings: Application settings.

    Returns:
        EvidenceService with all dependencies wired.
    """
    evidence_repository = EvidenceRepository(session)
    http_client = request.app.state.http_client
    return EvidenceService(
        repository=evidence_repository,
        ledger=CustodyLedger(
            evidence_repository,
            CustodyRepository(session),
            hash_algorithm=settings.custody_hash_algorithm,
        ),
        identifiers=IdentifierGenerator(SequenceRepository(session)),
        uow=uow,
        content_store=HttpContentStore(
            settings.content_store_url, http_client, timeout=settings.content_store_timeout_seconds
        ),
        case_directory=HttpCaseDirectory(
            settings.case_directory_url, http_client, timeout=settings.case_directory_timeout_seconds
        ),
        max_batch_size=settings.processing_max_batch_size,
    )


def get_legal_hold_service(
    session: AsyncSession = Depends(get_db_session),
    evidence_service: EvidenceService = Depends(get_evidence_service),
    settings: Settings = Depends(get_settings),
) -> LegalHoldService:
    """Provide a configured LegalHoldService.

    Args:
        session: Injected async database session.
        evidence_service: Evidence registry sharing the same session.
        settings: Application settings.

    Returns:
        LegalHoldService with all dependencies wired.
    """
    return LegalHoldService(
        repository=LegalHoldRepository(session),
        evidence_service=evidence_service,
        identifiers=IdentifierGenerator(SequenceRepository(session)),
        notices=HoldNoticeRenderer(issuing_firm=settings.issuing_firm),
        max_custodians=settings.legal_hold_max_custodians,
        overdue_threshold_days=settings.legal_hold_overdue_threshold_days,
    )


def get_privilege_log_service(session: AsyncSession = Depends(get_db_session)) -> PrivilegeLogService:
    """Provide a configured PrivilegeLogService."""
    return PrivilegeLogService(
        repository=PrivilegeLogRepository(session),
        evidence_repository=EvidenceRepository(session),
        identifiers=IdentifierGenerator(SequenceRepository(session)),
    )


def get_production_service(
    session: AsyncSession = Depends(get_db_session),
    uow: SqlUnitOfWork = Depends(get_unit_of_work),
    evidence_service: EvidenceService = Depends(get_evidence_service),
    privilege_service: PrivilegeLogService = Depends(get_privilege_log_service),
    settings: Settings = Depends(get_settings),
) -> ProductionService:
    """Provide a configured ProductionService."""
    return ProductionService(
        repository=ProductionRepository(session),
        evidence_service=evidence_service,
        privilege_service=privilege_service,
        identifiers=IdentifierGenerator(SequenceRepository(session)),
        uow=uow,
        default_padding=settings.bates_default_padding,
    )


def get_review_service(
    session: AsyncSession = Depends(get_db_session),
    evidence_service: EvidenceService = Depends(get_evidence_service),
) -> ReviewService:
    """Provide a configured ReviewService."""
    return ReviewService(
        repository=DocumentReviewRepository(session),
        evidence_service=evidence_service,
        identifiers=IdentifierGenerator(SequenceRepository(session)),
    )


def get_analytics_service(session: AsyncSession = Depends(get_db_session)) -> AnalyticsService:
    """Provide a configured AnalyticsService."""
    return AnalyticsService(
        evidence_repository=EvidenceRepository(session),
        privilege_repository=PrivilegeLogRepository(session),
        production_repository=ProductionRepository(session),
        hold_repository=LegalHoldRepository(session),
        review_repository=DocumentReviewRepository(session),
    )


def _evidence(item) -> EvidenceResponse:
    return EvidenceResponse.model_validate(item, from_attributes=True)


def _hold(hold) -> LegalHoldResponse:
    return LegalHoldResponse.model_validate(hold, from_attributes=True)


def _privilege(entry) -> PrivilegeLogResponse:
    return PrivilegeLogResponse.model_validate(entry, from_attributes=True)


def _production(production) -> ProductionResponse:
    return ProductionResponse.model_validate(production, from_attributes=True)


def _review(review) -> ReviewResponse:
    return ReviewResponse.model_validate(review, from_attributes=True)


# ---------------------------------------------------------------------------
# Evidence endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/evidence",
    response_model=Envelope[EvidenceResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Collect a new evidence item",
)
async def collect_evidence(
    request: EvidenceCollectRequest,
    tenant: TenantContext = Depends(get_tenant),
    service: EvidenceService = Depends(get_evidence_service),
) -> Envelope[EvidenceResponse]:
    """Register collected evidence and open its chain of custody.

    Args:
        request: Evidence metadata.
        tenant: Tenant context from request headers.
        service: Injected EvidenceService.

    Returns:
        The created evidence item.
    """
    item = await service.collect(tenant=tenant, **request.model_dump())
    return ok(_evidence(item))


@router.post(
    "/evidence/upload",
    response_model=Envelope[EvidenceResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Upload and collect an evidence file",
)
async def upload_evidence(
    file: UploadFile = File(...),
    case_id: uuid.UUID = Form(...),
    evidence_type: str = Form(...),
    description: str = Form(...),
    collection_method: str = Form(...),
    custodian: str = Form(...),
    collected_by: str = Form(...),
    case_number: str | None = Form(default=None),
    source_system: str | None = Form(default=None),
    custodian_email: str | None = Form(default=None),
    custodian_department: str | None = Form(default=None),
    storage_location: str | None = Form(default=None),
    checksum: str | None = Form(default=None),
    confidentiality_level: str = Form(default="Internal"),
    tags: str | None = Form(default=None, description="Comma-separated tags"),
    notes: str | None = Form(default=None),
    tenant: TenantContext = Depends(get_tenant),
    service: EvidenceService = Depends(get_evidence_service),
) -> Envelope[EvidenceResponse]:
    """Store the uploaded bytes in the content store and collect them as evidence.

    The stored content's size and checksum are recorded on the item, and
    later processing extracts its text.
    """
    content = await file.read()
    if not content:
        raise ValidationError("Uploaded file is empty")
    item = await service.collect(
        tenant=tenant,
        case_id=case_id,
        evidence_type=evidence_type,
        description=description,
        collection_method=collection_method,
        custodian=custodian,
        collected_by=collected_by,
        case_number=case_number,
        source_system=source_system,
        custodian_email=custodian_email,
        custodian_department=custodian_department,
        storage_location=storage_location,
        checksum=checksum,
        confidentiality_level=confidentiality_level,
        tags=[tag.strip() for tag in tags.split(",")] if tags else [],
        notes=notes,
        content=content,
        filename=file.filename or None,
    )
    return ok(_evidence(item))


@router.post(
    "/evidence/process",
    response_model=Envelope[ProcessingSummaryResponse],
    summary="Process a batch of evidence items",
)
async def process_evidence(
    request: ProcessRequest,
    tenant: TenantContext = Depends(get_tenant),
    service: EvidenceService = Depends(get_evidence_service),
) -> Envelope[ProcessingSummaryResponse]:
    """Process items best-effort; per-item failures are reported, not raised."""
    summary = await service.process(
        request.evidence_ids,
        request.processing_type,
        request.processed_by,
        tenant,
        extract_text=request.extract_text,
    )
    return ok(ProcessingSummaryResponse.model_validate(summary, from_attributes=True))


@router.get("/evidence/by-custodian", response_model=Envelope[list[EvidenceResponse]])
async def list_custodian_evidence(
    custodian: str = Query(..., min_length=1),
    tenant: TenantContext = Depends(get_tenant),
    service: EvidenceService = Depends(get_evidence_service),
) -> Envelope[list[EvidenceResponse]]:
    """Active evidence collected from one custodian, newest collection first."""
    return ok([_evidence(item) for item in await service.list_by_custodian(custodian, tenant)])


@router.get("/evidence/{evidence_id}", response_model=Envelope[EvidenceResponse])
async def get_evidence(
    evidence_id: uuid.UUID,
    tenant: TenantContext = Depends(get_tenant),
    service: EvidenceService = Depends(get_evidence_service),
) -> Envelope[EvidenceResponse]:
    return ok(_evidence(await service.get(evidence_id, tenant)))


@router.get("/cases/{case_id}/evidence", response_model=Envelope[list[EvidenceResponse]])
async def list_case_evidence(
    case_id: uuid.UUID,
    status_filter: str | None = Query(default=None, alias="status"),
    tenant: TenantContext = Depends(get_tenant),
    service: EvidenceService = Depends(get_evidence_service),
) -> Envelope[list[EvidenceResponse]]:
    items = await service.list_by_case(case_id, tenant, status=status_filter)
    return ok([_evidence(item) for item in items])


@router.post("/evidence/{evidence_id}/preserve", response_model=Envelope[EvidenceResponse])
async def preserve_evidence(
    evidence_id: uuid.UUID,
    request: PreserveRequest,
    tenant: TenantContext = Depends(get_tenant),
    service: EvidenceService = Depends(get_evidence_service),
) -> Envelope[EvidenceResponse]:
    item = await service.preserve(
        evidence_id, request.performed_by, tenant, storage_location=request.storage_location
    )
    return ok(_evidence(item))


@router.post("/evidence/{evidence_id}/verify", response_model=Envelope[EvidenceResponse])
async def verify_evidence(
    evidence_id: uuid.UUID,
    request: VerifyRequest,
    tenant: TenantContext = Depends(get_tenant),
    service: EvidenceService = Depends(get_evidence_service),
) -> Envelope[EvidenceResponse]:
    item = await service.verify_integrity(evidence_id, request.performed_by, tenant, checksum=request.checksum)
    return ok(_evidence(item))


@router.post("/evidence/{evidence_id}/ready-for-review", response_model=Envelope[EvidenceResponse])
async def queue_evidence_for_review(
    evidence_id: uuid.UUID,
    request: ActorRequest,
    tenant: TenantContext = Depends(get_tenant),
    service: EvidenceService = Depends(get_evidence_service),
) -> Envelope[EvidenceResponse]:
    return ok(_evidence(await service.mark_ready_for_review(evidence_id, request.performed_by, tenant)))


@router.post("/evidence/{evidence_id}/review", response_model=Envelope[EvidenceResponse])
async def review_evidence(
    evidence_id: uuid.UUID,
    request: ReviewRequest,
    tenant: TenantContext = Depends(get_tenant),
    service: EvidenceService = Depends(get_evidence_service),
) -> Envelope[EvidenceResponse]:
    item = await service.record_review(
        evidence_id, request.performed_by, tenant, relevance=request.relevance, notes=request.notes
    )
    return ok(_evidence(item))


@router.post("/evidence/{evidence_id}/transfer", response_model=Envelope[EvidenceResponse])
async def transfer_evidence(
    evidence_id: uuid.UUID,
    request: TransferRequest,
    tenant: TenantContext = Depends(get_tenant),
    service: EvidenceService = Depends(get_evidence_service),
) -> Envelope[EvidenceResponse]:
    item = await service.transfer(
        evidence_id, request.to_location, request.performed_by, tenant, notes=request.notes
    )
    return ok(_evidence(item))


@router.post("/evidence/{evidence_id}/tags", response_model=Envelope[EvidenceResponse])
async def tag_evidence(
    evidence_id: uuid.UUID,
    request: TagRequest,
    tenant: TenantContext = Depends(get_tenant),
    service: EvidenceService = Depends(get_evidence_service),
) -> Envelope[EvidenceResponse]:
    item = await service.tag(
        evidence_id,
        tenant,
        tags=request.tags,
        relevance=request.relevance,
        confidentiality_level=request.confidentiality_level,
    )
    return ok(_evidence(item))


@router.post("/evidence/{evidence_id}/archive", response_model=Envelope[EvidenceResponse])
async def archive_evidence(
    evidence_id: uuid.UUID,
    request: ActorRequest,
    tenant: TenantContext = Depends(get_tenant),
    service: EvidenceService = Depends(get_evidence_service),
) -> Envelope[EvidenceResponse]:
    return ok(_evidence(await service.archive(evidence_id, request.performed_by, tenant, notes=request.notes)))


@router.post("/evidence/{evidence_id}/delete", response_model=Envelope[EvidenceResponse])
async def delete_evidence(
    evidence_id: uuid.UUID,
    request: DeleteRequest,
    tenant: TenantContext = Depends(get_tenant),
    service: EvidenceService = Depends(get_evidence_service),
) -> Envelope[EvidenceResponse]:
    """Mark evidence deleted. Refused while the item is under legal hold."""
    return ok(_evidence(await service.delete(evidence_id, request.performed_by, request.reason, tenant)))


@router.get("/evidence/{evidence_id}/custody", response_model=Envelope[list[CustodyEntryResponse]])
async def get_custody_chain(
    evidence_id: uuid.UUID,
    tenant: TenantContext = Depends(get_tenant),
    service: EvidenceService = Depends(get_evidence_service),
) -> Envelope[list[CustodyEntryResponse]]:
    entries = await service.custody(evidence_id, tenant)
    return ok([CustodyEntryResponse.model_validate(e, from_attributes=True) for e in entries])


@router.get(
    "/evidence/{evidence_id}/custody/verify",
    response_model=Envelope[LedgerVerificationResponse],
)
async def verify_custody_chain(
    evidence_id: uuid.UUID,
    tenant: TenantContext = Depends(get_tenant),
    service: EvidenceService = Depends(get_evidence_service),
) -> Envelope[LedgerVerificationResponse]:
    verification = await service.verify_custody(evidence_id, tenant)
    return ok(LedgerVerificationResponse.model_validate(verification, from_attributes=True))


# ---------------------------------------------------------------------------
# Legal hold endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/legal-holds",
    response_model=Envelope[LegalHoldResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Issue a legal hold",
)
async def issue_legal_hold(
    request: LegalHoldCreateRequest,
    tenant: TenantContext = Depends(get_tenant),
    service: LegalHoldService = Depends(get_legal_hold_service),
) -> Envelope[LegalHoldResponse]:
    """Issue a hold to custodians and optionally apply it to evidence.

    Args:
        request: Hold details and custodians.
        tenant: Tenant context from request headers.
        service: Injected LegalHoldService.

    Returns:
        The created hold with compliance_rate 0.
    """
    payload = request.model_dump(exclude={"custodians"})
    hold = await service.issue(
        tenant=tenant,
        custodians=[CustodianInput(**c.model_dump()) for c in request.custodians],
        **payload,
    )
    return ok(_hold(hold))


@router.get("/legal-holds/compliance", response_model=Envelope[dict])
async def legal_hold_compliance(
    case_id: uuid.UUID | None = Query(default=None),
    tenant: TenantContext = Depends(get_tenant),
    service: LegalHoldService = Depends(get_legal_hold_service),
) -> Envelope[dict]:
    return ok(await service.compliance_report(tenant, case_id=case_id))


@router.get("/legal-holds/by-custodian", response_model=Envelope[list[LegalHoldResponse]])
async def legal_holds_for_custodian(
    email: str = Query(..., min_length=3),
    tenant: TenantContext = Depends(get_tenant),
    service: LegalHoldService = Depends(get_legal_hold_service),
) -> Envelope[list[LegalHoldResponse]]:
    return ok([_hold(h) for h in await service.list_for_custodian(email, tenant)])


@router.get("/legal-holds/{hold_id}", response_model=Envelope[LegalHoldResponse])
async def get_legal_hold(
    hold_id: uuid.UUID,
    tenant: TenantContext = Depends(get_tenant),
    service: LegalHoldService = Depends(get_legal_hold_service),
) -> Envelope[LegalHoldResponse]:
    return ok(_hold(await service.get(hold_id, tenant)))


@router.get("/cases/{case_id}/legal-holds", response_model=Envelope[list[LegalHoldResponse]])
async def list_case_legal_holds(
    case_id: uuid.UUID,
    tenant: TenantContext = Depends(get_tenant),
    service: LegalHoldService = Depends(get_legal_hold_service),
) -> Envelope[list[LegalHoldResponse]]:
    return ok([_hold(h) for h in await service.list_by_case(case_id, tenant)])


@router.get("/legal-holds/{hold_id}/custodians", response_model=Envelope[list[HoldCustodianResponse]])
async def list_hold_custodians(
    hold_id: uuid.UUID,
    tenant: TenantContext = Depends(get_tenant),
    service: LegalHoldService = Depends(get_legal_hold_service),
) -> Envelope[list[HoldCustodianResponse]]:
    custodians = await service.custodians(hold_id, tenant)
    return ok([HoldCustodianResponse.model_validate(c, from_attributes=True) for c in custodians])


@router.post("/legal-holds/{hold_id}/acknowledge", response_model=Envelope[LegalHoldResponse])
async def acknowledge_legal_hold(
    hold_id: uuid.UUID,
    request: AcknowledgeRequest,
    tenant: TenantContext = Depends(get_tenant),
    service: LegalHoldService = Depends(get_legal_hold_service),
) -> Envelope[LegalHoldResponse]:
    hold = await service.acknowledge(hold_id, request.custodian_email, tenant, method=request.method)
    return ok(_hold(hold))


@router.post("/legal-holds/{hold_id}/apply", response_model=Envelope[list[EvidenceResponse]])
async def apply_legal_hold(
    hold_id: uuid.UUID,
    request: ApplyHoldRequest,
    tenant: TenantContext = Depends(get_tenant),
    service: LegalHoldService = Depends(get_legal_hold_service),
) -> Envelope[list[EvidenceResponse]]:
    items = await service.apply_to_evidence(hold_id, request.evidence_ids, request.applied_by, tenant)
    return ok([_evidence(item) for item in items])


@router.post("/legal-holds/{hold_id}/release", response_model=Envelope[LegalHoldResponse])
async def release_legal_hold(
    hold_id: uuid.UUID,
    request: ReleaseHoldRequest,
    tenant: TenantContext = Depends(get_tenant),
    service: LegalHoldService = Depends(get_legal_hold_service),
) -> Envelope[LegalHoldResponse]:
    return ok(_hold(await service.release(hold_id, request.released_by, request.reason, tenant)))


@router.post("/legal-holds/{hold_id}/reminders", response_model=Envelope[NoticeResponse])
async def send_hold_reminder(
    hold_id: uuid.UUID,
    request: CustodianEmailRequest,
    tenant: TenantContext = Depends(get_tenant),
    service: LegalHoldService = Depends(get_legal_hold_service),
) -> Envelope[NoticeResponse]:
    text = await service.send_reminder(hold_id, request.custodian_email, tenant)
    return ok(NoticeResponse(text=text))


@router.post("/legal-holds/{hold_id}/notice", response_model=Envelope[NoticeResponse])
async def render_hold_notice(
    hold_id: uuid.UUID,
    request: CustodianEmailRequest,
    tenant: TenantContext = Depends(get_tenant),
    service: LegalHoldService = Depends(get_legal_hold_service),
) -> Envelope[NoticeResponse]:
    return ok(NoticeResponse(text=await service.render_notice(hold_id, request.custodian_email, tenant)))


# ---------------------------------------------------------------------------
# Privilege log endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/privilege-log",
    response_model=Envelope[PrivilegeLogResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Log a privilege claim",
)
async def log_privilege(
    request: PrivilegeLogCreateRequest,
    tenant: TenantContext = Depends(get_tenant),
    service: PrivilegeLogService = Depends(get_privilege_log_service),
) -> Envelope[PrivilegeLogResponse]:
    entry = await service.log_privilege(tenant=tenant, **request.model_dump())
    return ok(_privilege(entry))


@router.get("/privilege-log/{entry_id}", response_model=Envelope[PrivilegeLogResponse])
async def get_privilege_entry(
    entry_id: uuid.UUID,
    tenant: TenantContext = Depends(get_tenant),
    service: PrivilegeLogService = Depends(get_privilege_log_service),
) -> Envelope[PrivilegeLogResponse]:
    return ok(_privilege(await service.get(entry_id, tenant)))


@router.get("/cases/{case_id}/privilege-log", response_model=Envelope[list[PrivilegeLogResponse]])
async def list_case_privilege_log(
    case_id: uuid.UUID,
    tenant: TenantContext = Depends(get_tenant),
    service: PrivilegeLogService = Depends(get_privilege_log_service),
) -> Envelope[list[PrivilegeLogResponse]]:
    return ok([_privilege(e) for e in await service.list_by_case(case_id, tenant)])


@router.post("/privilege-log/{entry_id}/waive", response_model=Envelope[PrivilegeLogResponse])
async def waive_privilege(
    entry_id: uuid.UUID,
    request: WaiveRequest,
    tenant: TenantContext = Depends(get_tenant),
    service: PrivilegeLogService = Depends(get_privilege_log_service),
) -> Envelope[PrivilegeLogResponse]:
    return ok(_privilege(await service.waive(entry_id, request.waived_by, request.reason, tenant)))


@router.post("/privilege-log/{entry_id}/clawback", response_model=Envelope[PrivilegeLogResponse])
async def request_privilege_clawback(
    entry_id: uuid.UUID,
    request: ClawbackRequest,
    tenant: TenantContext = Depends(get_tenant),
    service: PrivilegeLogService = Depends(get_privilege_log_service),
) -> Envelope[PrivilegeLogResponse]:
    entry = await service.request_clawback(entry_id, request.requested_by, request.reason, tenant)
    return ok(_privilege(entry))


@router.post(
    "/privilege-log/{entry_id}/clawback/resolve",
    response_model=Envelope[PrivilegeLogResponse],
)
async def resolve_privilege_clawback(
    entry_id: uuid.UUID,
    request: ClawbackResolutionRequest,
    tenant: TenantContext = Depends(get_tenant),
    service: PrivilegeLogService = Depends(get_privilege_log_service),
) -> Envelope[PrivilegeLogResponse]:
    entry = await service.resolve_clawback(entry_id, request.decision, request.resolved_by, tenant)
    return ok(_privilege(entry))


# ---------------------------------------------------------------------------
# Production endpoints
# ---------------------------------------------------------------------------


@router.get("/cases/{case_id}/bates/next", response_model=Envelope[NextBatesResponse])
async def next_bates_number(
    case_id: uuid.UUID,
    prefix: str = Query(..., min_length=1),
    tenant: TenantContext = Depends(get_tenant),
    service: ProductionService = Depends(get_production_service),
) -> Envelope[NextBatesResponse]:
    """Return the next Bates number for a case and prefix."""
    result = await service.get_next_bates_number(case_id, prefix, tenant)
    return ok(NextBatesResponse.model_validate(result, from_attributes=True))


@router.post(
    "/productions",
    response_model=Envelope[ProductionResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a production set",
)
async def create_production(
    request: ProductionCreateRequest,
    tenant: TenantContext = Depends(get_tenant),
    service: ProductionService = Depends(get_production_service),
) -> Envelope[ProductionResponse]:
    production = await service.create_production(tenant=tenant, **request.model_dump())
    return ok(_production(production))


@router.get("/productions/{production_id}", response_model=Envelope[ProductionResponse])
async def get_production(
    production_id: uuid.UUID,
    tenant: TenantContext = Depends(get_tenant),
    service: ProductionService = Depends(get_production_service),
) -> Envelope[ProductionResponse]:
    return ok(_production(await service.get(production_id, tenant)))


@router.get("/cases/{case_id}/productions", response_model=Envelope[list[ProductionResponse]])
async def list_case_productions(
    case_id: uuid.UUID,
    tenant: TenantContext = Depends(get_tenant),
    service: ProductionService = Depends(get_production_service),
) -> Envelope[list[ProductionResponse]]:
    return ok([_production(p) for p in await service.list_by_case(case_id, tenant)])


@router.post(
    "/productions/{production_id}/documents",
    response_model=Envelope[ProductionDocumentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def add_production_document(
    production_id: uuid.UUID,
    request: AddDocumentRequest,
    tenant: TenantContext = Depends(get_tenant),
    service: ProductionService = Depends(get_production_service),
) -> Envelope[ProductionDocumentResponse]:
    """Number an evidence item into a production."""
    document = await service.add_document(
        production_id,
        request.evidence_id,
        request.added_by,
        tenant,
        page_count=request.page_count,
        redacted=request.redacted,
        produced_format=request.produced_format,
    )
    return ok(ProductionDocumentResponse.model_validate(document, from_attributes=True))


@router.get(
    "/productions/{production_id}/documents",
    response_model=Envelope[list[ProductionDocumentResponse]],
)
async def list_production_documents(
    production_id: uuid.UUID,
    tenant: TenantContext = Depends(get_tenant),
    service: ProductionService = Depends(get_production_service),
) -> Envelope[list[ProductionDocumentResponse]]:
    documents = await service.documents(production_id, tenant)
    return ok([ProductionDocumentResponse.model_validate(d, from_attributes=True) for d in documents])


@router.post(
    "/productions/{production_id}/clawbacks",
    response_model=Envelope[list[ProductionDocumentResponse]],
)
async def apply_production_clawbacks(
    production_id: uuid.UUID,
    request: ProductionTransitionRequest,
    tenant: TenantContext = Depends(get_tenant),
    service: ProductionService = Depends(get_production_service),
) -> Envelope[list[ProductionDocumentResponse]]:
    documents = await service.apply_clawbacks(production_id, request.performed_by, tenant)
    return ok([ProductionDocumentResponse.model_validate(d, from_attributes=True) for d in documents])


@router.post("/productions/{production_id}/load-file", response_model=Envelope[LoadFileResponse])
async def generate_production_load_file(
    production_id: uuid.UUID,
    request: LoadFileRequest,
    tenant: TenantContext = Depends(get_tenant),
    service: ProductionService = Depends(get_production_service),
) -> Envelope[LoadFileResponse]:
    """Build the DAT load file for a production and record its path."""
    load_file = await service.generate_load_file(production_id, request.generated_by, tenant)
    return ok(LoadFileResponse.model_validate(load_file, from_attributes=True))


@router.post("/productions/{production_id}/{action}", response_model=Envelope[ProductionResponse])
async def transition_production(
    production_id: uuid.UUID,
    action: Literal["start", "submit-for-review", "approve", "deliver", "complete"],
    request: ProductionTransitionRequest,
    tenant: TenantContext = Depends(get_tenant),
    service: ProductionService = Depends(get_production_service),
) -> Envelope[ProductionResponse]:
    """Advance a production one step along its lifecycle."""
    transitions = {
        "start": service.start,
        "submit-for-review": service.submit_for_review,
        "approve": service.approve,
        "deliver": service.deliver,
        "complete": service.complete,
    }
    production = await transitions[action](production_id, request.performed_by, tenant)
    return ok(_production(production))


# ---------------------------------------------------------------------------
# Document review endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/reviews",
    response_model=Envelope[ReviewResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Assign a document for review",
)
async def assign_review(
    request: ReviewAssignRequest,
    tenant: TenantContext = Depends(get_tenant),
    service: ReviewService = Depends(get_review_service),
) -> Envelope[ReviewResponse]:
    review = await service.assign(tenant=tenant, **request.model_dump())
    return ok(_review(review))


@router.get("/reviews", response_model=Envelope[list[ReviewResponse]])
async def list_reviews(
    case_id: uuid.UUID | None = Query(default=None),
    assigned_to: str | None = Query(default=None),
    review_status: str | None = Query(default=None),
    batch_id: str | None = Query(default=None),
    tenant: TenantContext = Depends(get_tenant),
    service: ReviewService = Depends(get_review_service),
) -> Envelope[list[ReviewResponse]]:
    reviews = await service.list_reviews(
        tenant,
        case_id=case_id,
        assigned_to=assigned_to,
        review_status=review_status,
        batch_id=batch_id,
    )
    return ok([_review(r) for r in reviews])


@router.get("/reviews/stats", response_model=Envelope[dict])
async def reviewer_stats(
    assigned_to: str | None = Query(default=None),
    case_id: uuid.UUID | None = Query(default=None),
    tenant: TenantContext = Depends(get_tenant),
    service: ReviewService = Depends(get_review_service),
) -> Envelope[dict]:
    """Review counts and minutes by status, optionally for one reviewer."""
    return ok(await service.reviewer_stats(tenant, assigned_to=assigned_to, case_id=case_id))


@router.get("/reviews/batches/{batch_id}/progress", response_model=Envelope[dict])
async def review_batch_progress(
    batch_id: str,
    tenant: TenantContext = Depends(get_tenant),
    service: ReviewService = Depends(get_review_service),
) -> Envelope[dict]:
    return ok(await service.batch_progress(batch_id, tenant))


@router.get("/reviews/{review_id}", response_model=Envelope[ReviewResponse])
async def get_review(
    review_id: uuid.UUID,
    tenant: TenantContext = Depends(get_tenant),
    service: ReviewService = Depends(get_review_service),
) -> Envelope[ReviewResponse]:
    return ok(_review(await service.get(review_id, tenant)))


@router.post("/reviews/{review_id}/complete", response_model=Envelope[ReviewResponse])
async def complete_review(
    review_id: uuid.UUID,
    request: ReviewCompleteRequest,
    tenant: TenantContext = Depends(get_tenant),
    service: ReviewService = Depends(get_review_service),
) -> Envelope[ReviewResponse]:
    """Record the reviewer's decision and write relevance back to the evidence."""
    review = await service.complete(review_id, tenant=tenant, **request.model_dump())
    return ok(_review(review))


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------


@router.get("/cases/{case_id}/analytics", response_model=Envelope[CaseSummaryResponse])
async def case_analytics(
    case_id: uuid.UUID,
    tenant: TenantContext = Depends(get_tenant),
    service: AnalyticsService = Depends(get_analytics_service),
) -> Envelope[CaseSummaryResponse]:
    summary = await service.case_summary(case_id, tenant)
    return ok(CaseSummaryResponse.model_validate(summary))
