"""Shared test fixtures for ediscovery-custody.

Services are exercised against in-memory repositories that honor the same
tenant filtering and uniqueness rules as the SQL implementations.
"""

import asyncio
import hashlib
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

import pytest
from sqlalchemy import inspect as sa_inspect

from ediscovery_custody.adapters.hold_notices import HoldNoticeRenderer
from ediscovery_custody.core.bates import BatesLeaseRegistry
from ediscovery_custody.core.errors import ContentStoreError, InvalidTransitionError
from ediscovery_custody.core.identifiers import IdentifierGenerator
from ediscovery_custody.core.interfaces import StoredContent
from ediscovery_custody.core.ledger import CustodyLedger
from ediscovery_custody.core.models import (
    CustodyEntry,
    DocumentReview,
    EvidenceHold,
    EvidenceItem,
    EvidenceStatus,
    HoldCustodian,
    HoldStatus,
    LegalHold,
    PrivilegeLogEntry,
    Production,
    ProductionDocument,
)
from ediscovery_custody.core.services import (
    AnalyticsService,
    EvidenceService,
    LegalHoldService,
    PrivilegeLogService,
    ProductionService,
    ReviewService,
)
from ediscovery_custody.core.tenancy import TenantContext

# ---------------------------------------------------------------------------
# In-memory repositories
# ---------------------------------------------------------------------------


class InMemoryEvidenceRepository:
    def __init__(self) -> None:
        self.items: dict[uuid.UUID, EvidenceItem] = {}
        self.links: list[EvidenceHold] = []

    async def add(self, item: EvidenceItem) -> EvidenceItem:
        self.items[item.id] = item
        return item

    async def get_by_id(self, evidence_id: uuid.UUID, tenant: TenantContext) -> EvidenceItem | None:
        item = self.items.get(evidence_id)
        if item is None or item.tenant_id != tenant.tenant_id:
            return None
        return item

    async def list_by_case(
        self, case_id: uuid.UUID, tenant: TenantContext, status: str | None = None
    ) -> list[EvidenceItem]:
        return [
            item
            for item in self.items.values()
            if item.case_id == case_id
            and item.tenant_id == tenant.tenant_id
            and (status is None or item.status == status)
        ]

    async def list_by_custodian(self, custodian: str, tenant: TenantContext) -> list[EvidenceItem]:
        return [
            item
            for item in self.items.values()
            if item.custodian == custodian
            and item.status == EvidenceStatus.ACTIVE.value
            and item.tenant_id == tenant.tenant_id
        ]

    async def add_hold_link(self, link: EvidenceHold) -> EvidenceHold:
        self.links.append(link)
        return link

    async def get_hold_link(
        self, evidence_id: uuid.UUID, hold_id: uuid.UUID, tenant: TenantContext
    ) -> EvidenceHold | None:
        for link in self.links:
            if link.evidence_id == evidence_id and link.hold_id == hold_id and link.tenant_id == tenant.tenant_id:
                return link
        return None

    async def list_active_hold_links(self, evidence_id: uuid.UUID, tenant: TenantContext) -> list[EvidenceHold]:
        return [
            link
            for link in self.links
            if link.evidence_id == evidence_id and link.tenant_id == tenant.tenant_id and link.released_at is None
        ]

    async def list_active_links_for_hold(self, hold_id: uuid.UUID, tenant: TenantContext) -> list[EvidenceHold]:
        return [
            link
            for link in self.links
            if link.hold_id == hold_id and link.tenant_id == tenant.tenant_id and link.released_at is None
        ]


class InMemoryCustodyRepository:
    """Appends for ids in ``failing_evidence`` fail like a conflicting insert."""

    def __init__(self) -> None:
        self.entries: list[CustodyEntry] = []
        self.failing_evidence: set[uuid.UUID] = set()

    async def append(self, entry: CustodyEntry) -> CustodyEntry:
        if entry.evidence_id in self.failing_evidence:
            raise InvalidTransitionError(f"Conflicting concurrent update for evidence {entry.evidence_id}")
        self.entries.append(entry)
        return entry

    async def list_for_evidence(self, evidence_id: uuid.UUID, tenant: TenantContext) -> list[CustodyEntry]:
        return [e for e in self.entries if e.evidence_id == evidence_id and e.tenant_id == tenant.tenant_id]


class InMemoryLegalHoldRepository:
    def __init__(self) -> None:
        self.holds: dict[uuid.UUID, LegalHold] = {}
        self.custodians: list[HoldCustodian] = []

    async def add(self, hold: LegalHold) -> LegalHold:
        self.holds[hold.id] = hold
        return hold

    async def get_by_id(
        self, hold_id: uuid.UUID, tenant: TenantContext, for_update: bool = False
    ) -> LegalHold | None:
        hold = self.holds.get(hold_id)
        if hold is None or hold.tenant_id != tenant.tenant_id:
            return None
        return hold

    async def list_by_case(self, case_id: uuid.UUID, tenant: TenantContext) -> list[LegalHold]:
        return [h for h in self.holds.values() if h.case_id == case_id and h.tenant_id == tenant.tenant_id]

    async def list_active(self, tenant: TenantContext, case_id: uuid.UUID | None = None) -> list[LegalHold]:
        return [
            h
            for h in self.holds.values()
            if h.tenant_id == tenant.tenant_id
            and h.status == HoldStatus.ACTIVE.value
            and (case_id is None or h.case_id == case_id)
        ]

    async def add_custodian(self, custodian: HoldCustodian) -> HoldCustodian:
        self.custodians.append(custodian)
        return custodian

    async def list_custodians(self, hold_id: uuid.UUID, tenant: TenantContext) -> list[HoldCustodian]:
        return [c for c in self.custodians if c.hold_id == hold_id and c.tenant_id == tenant.tenant_id]

    async def list_holds_for_custodian(self, email_normalized: str, tenant: TenantContext) -> list[LegalHold]:
        hold_ids = {
            c.hold_id
            for c in self.custodians
            if c.email_normalized == email_normalized and c.tenant_id == tenant.tenant_id
        }
        return [self.holds[hold_id] for hold_id in hold_ids]


class InMemoryPrivilegeLogRepository:
    def __init__(self) -> None:
        self.entries: dict[uuid.UUID, PrivilegeLogEntry] = {}

    async def add(self, entry: PrivilegeLogEntry) -> PrivilegeLogEntry:
        self.entries[entry.id] = entry
        return entry

    async def get_by_id(self, entry_id: uuid.UUID, tenant: TenantContext) -> PrivilegeLogEntry | None:
        entry = self.entries.get(entry_id)
        if entry is None or entry.tenant_id != tenant.tenant_id:
            return None
        return entry

    async def list_by_case(self, case_id: uuid.UUID, tenant: TenantContext) -> list[PrivilegeLogEntry]:
        return [e for e in self.entries.values() if e.case_id == case_id and e.tenant_id == tenant.tenant_id]

    async def list_by_evidence(self, evidence_id: uuid.UUID, tenant: TenantContext) -> list[PrivilegeLogEntry]:
        return [
            e for e in self.entries.values() if e.evidence_id == evidence_id and e.tenant_id == tenant.tenant_id
        ]


class InMemoryProductionRepository:
    """Also enforces the (tenant, case, prefix, sequence) uniqueness backstop."""

    def __init__(self) -> None:
        self.productions: dict[uuid.UUID, Production] = {}
        self.documents: list[ProductionDocument] = []

    async def add(self, production: Production) -> Production:
        self.productions[production.id] = production
        return production

    async def get_by_id(
        self, production_id: uuid.UUID, tenant: TenantContext, for_update: bool = False
    ) -> Production | None:
        production = self.productions.get(production_id)
        if production is None or production.tenant_id != tenant.tenant_id:
            return None
        return production

    async def list_by_case(self, case_id: uuid.UUID, tenant: TenantContext) -> list[Production]:
        return [
            p for p in self.productions.values() if p.case_id == case_id and p.tenant_id == tenant.tenant_id
        ]

    async def list_by_case_and_prefix(
        self, case_id: uuid.UUID, bates_prefix: str, tenant: TenantContext
    ) -> list[Production]:
        # Yield to the loop so concurrent callers interleave here.
        await asyncio.sleep(0)
        return sorted(
            (
                p
                for p in self.productions.values()
                if p.case_id == case_id and p.bates_prefix == bates_prefix and p.tenant_id == tenant.tenant_id
            ),
            key=lambda p: p.bates_start_number,
        )

    async def add_document(self, document: ProductionDocument) -> ProductionDocument:
        for existing in self.documents:
            if (
                existing.tenant_id == document.tenant_id
                and existing.case_id == document.case_id
                and existing.bates_prefix == document.bates_prefix
                and existing.bates_sequence == document.bates_sequence
            ):
                raise InvalidTransitionError(f"Bates number {document.bates_number} already issued")
        self.documents.append(document)
        return document

    async def list_documents(self, production_id: uuid.UUID, tenant: TenantContext) -> list[ProductionDocument]:
        return [
            d for d in self.documents if d.production_id == production_id and d.tenant_id == tenant.tenant_id
        ]


class InMemoryDocumentReviewRepository:
    def __init__(self) -> None:
        self.reviews: dict[uuid.UUID, DocumentReview] = {}

    async def add(self, review: DocumentReview) -> DocumentReview:
        self.reviews[review.id] = review
        return review

    async def get_by_id(self, review_id: uuid.UUID, tenant: TenantContext) -> DocumentReview | None:
        review = self.reviews.get(review_id)
        if review is None or review.tenant_id != tenant.tenant_id:
            return None
        return review

    async def search(
        self,
        tenant: TenantContext,
        case_id: uuid.UUID | None = None,
        assigned_to: str | None = None,
        review_status: str | None = None,
        batch_id: str | None = None,
    ) -> list[DocumentReview]:
        return [
            r
            for r in self.reviews.values()
            if r.tenant_id == tenant.tenant_id
            and (case_id is None or r.case_id == case_id)
            and (assigned_to is None or r.assigned_to == assigned_to)
            and (review_status is None or r.review_status == review_status)
            and (batch_id is None or r.batch_id == batch_id)
        ]


class InMemorySequenceRepository:
    def __init__(self) -> None:
        self.values: dict[tuple[uuid.UUID, str], int] = {}

    async def next_value(self, scope: str, tenant: TenantContext) -> int:
        key = (tenant.tenant_id, scope)
        self.values[key] = self.values.get(key, 0) + 1
        return self.values[key]


def column_values(obj: Any) -> dict[str, Any]:
    """Copy the mapped column values of an ORM object."""
    values: dict[str, Any] = {}
    for attr in sa_inspect(type(obj)).column_attrs:
        value = getattr(obj, attr.key)
        values[attr.key] = list(value) if isinstance(value, list) else value
    return values


class InMemoryUnitOfWork:
    """Savepoints snapshot evidence and custody state and restore it on error."""

    def __init__(
        self,
        evidence_repo: InMemoryEvidenceRepository | None = None,
        custody_repo: InMemoryCustodyRepository | None = None,
    ) -> None:
        self.commits = 0
        self.savepoints = 0
        self.rollbacks = 0
        self._evidence = evidence_repo
        self._custody = custody_repo

    async def commit(self) -> None:
        await asyncio.sleep(0)
        self.commits += 1

    @asynccontextmanager
    async def savepoint(self) -> AsyncIterator[None]:
        self.savepoints += 1
        items = dict(self._evidence.items) if self._evidence else {}
        snapshot = {item_id: column_values(item) for item_id, item in items.items()}
        entry_count = len(self._custody.entries) if self._custody else 0
        try:
            yield
        except Exception:
            self.rollbacks += 1
            for item_id, values in snapshot.items():
                for key, value in values.items():
                    setattr(items[item_id], key, value)
            if self._evidence:
                self._evidence.items = items
            if self._custody:
                del self._custody.entries[entry_count:]
            raise


class SessionProductionRepository:
    """One session's view of a shared production store.

    Productions are handed out as private copies cached per session, so a
    copy loaded earlier goes stale when another session commits. Locked
    reads and prefix scans reload the committed state, and ``flush`` writes
    back only the columns this session changed.
    """

    def __init__(self, store: InMemoryProductionRepository) -> None:
        self._store = store
        self._identity: dict[uuid.UUID, Production] = {}
        self._loaded: dict[uuid.UUID, dict[str, Any]] = {}

    def _load(self, committed: Production, refresh: bool) -> Production:
        cached = self._identity.get(committed.id)
        values = column_values(committed)
        if cached is None:
            cached = Production(**values)
            self._identity[committed.id] = cached
        elif refresh:
            for key, value in values.items():
                setattr(cached, key, value)
        else:
            return cached
        self._loaded[committed.id] = values
        return cached

    async def add(self, production: Production) -> Production:
        return await self._store.add(production)

    async def get_by_id(
        self, production_id: uuid.UUID, tenant: TenantContext, for_update: bool = False
    ) -> Production | None:
        committed = await self._store.get_by_id(production_id, tenant)
        if committed is None:
            return None
        return self._load(committed, refresh=for_update)

    async def list_by_case(self, case_id: uuid.UUID, tenant: TenantContext) -> list[Production]:
        return [self._load(p, refresh=False) for p in await self._store.list_by_case(case_id, tenant)]

    async def list_by_case_and_prefix(
        self, case_id: uuid.UUID, bates_prefix: str, tenant: TenantContext
    ) -> list[Production]:
        committed = await self._store.list_by_case_and_prefix(case_id, bates_prefix, tenant)
        return [self._load(p, refresh=True) for p in committed]

    async def add_document(self, document: ProductionDocument) -> ProductionDocument:
        return await self._store.add_document(document)

    async def list_documents(self, production_id: uuid.UUID, tenant: TenantContext) -> list[ProductionDocument]:
        return await self._store.list_documents(production_id, tenant)

    def flush(self) -> None:
        for production_id, cached in self._identity.items():
            loaded = self._loaded[production_id]
            committed = self._store.productions[production_id]
            for key, value in column_values(cached).items():
                if value != loaded[key]:
                    setattr(committed, key, value)
            self._loaded[production_id] = column_values(committed)


class SessionUnitOfWork(InMemoryUnitOfWork):
    """Commits write the session's production changes to the shared store."""

    def __init__(self, productions: SessionProductionRepository) -> None:
        super().__init__()
        self._productions = productions

    async def commit(self) -> None:
        await super().commit()
        self._productions.flush()


class InMemoryContentStore:
    """Content store double; refs listed in ``failing_refs`` fail extraction."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.failing_refs: set[str] = set()

    async def store_bytes(self, content: bytes, filename: str, tenant: TenantContext) -> StoredContent:
        ref = f"obj-{len(self.objects) + 1}"
        self.objects[ref] = content
        return StoredContent(storage_ref=ref, size=len(content), checksum=hashlib.sha256(content).hexdigest())

    async def extract_text(self, storage_ref: str, tenant: TenantContext) -> str:
        if storage_ref in self.failing_refs:
            raise ContentStoreError(f"Text extraction failed for {storage_ref}")
        return self.objects[storage_ref].decode("utf-8")


class InMemoryCaseDirectory:
    def __init__(self) -> None:
        self.cases: dict[uuid.UUID, dict[str, Any]] = {}

    async def get_case(self, case_id: uuid.UUID, tenant: TenantContext) -> dict[str, Any] | None:
        return self.cases.get(case_id)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def tenant() -> TenantContext:
    """Provide a test tenant context.

    Returns:
        TenantContext with a random tenant UUID.
    """
    return TenantContext(tenant_id=uuid.uuid4(), user_id=uuid.uuid4())


@pytest.fixture
def other_tenant() -> TenantContext:
    """Provide a second, unrelated tenant."""
    return TenantContext(tenant_id=uuid.uuid4())


@pytest.fixture
def case_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def evidence_repo() -> InMemoryEvidenceRepository:
    return InMemoryEvidenceRepository()


@pytest.fixture
def custody_repo() -> InMemoryCustodyRepository:
    return InMemoryCustodyRepository()


@pytest.fixture
def hold_repo() -> InMemoryLegalHoldRepository:
    return InMemoryLegalHoldRepository()


@pytest.fixture
def privilege_repo() -> InMemoryPrivilegeLogRepository:
    return InMemoryPrivilegeLogRepository()


@pytest.fixture
def production_repo() -> InMemoryProductionRepository:
    return InMemoryProductionRepository()


@pytest.fixture
def review_repo() -> InMemoryDocumentReviewRepository:
    return InMemoryDocumentReviewRepository()


@pytest.fixture
def sequences() -> InMemorySequenceRepository:
    return InMemorySequenceRepository()


@pytest.fixture
def uow(
    evidence_repo: InMemoryEvidenceRepository, custody_repo: InMemoryCustodyRepository
) -> InMemoryUnitOfWork:
    return InMemoryUnitOfWork(evidence_repo, custody_repo)


@pytest.fixture
def content_store() -> InMemoryContentStore:
    return InMemoryContentStore()


@pytest.fixture
def case_directory() -> InMemoryCaseDirectory:
    return InMemoryCaseDirectory()


@pytest.fixture
def identifiers(sequences: InMemorySequenceRepository) -> IdentifierGenerator:
    return IdentifierGenerator(sequences)


@pytest.fixture
def ledger(
    evidence_repo: InMemoryEvidenceRepository, custody_repo: InMemoryCustodyRepository
) -> CustodyLedger:
    """Provide a ledger over the in-memory evidence and custody stores."""
    return CustodyLedger(evidence_repo, custody_repo)


@pytest.fixture
def evidence_service(
    evidence_repo: InMemoryEvidenceRepository,
    ledger: CustodyLedger,
    identifiers: IdentifierGenerator,
    uow: InMemoryUnitOfWork,
    content_store: InMemoryContentStore,
    case_directory: InMemoryCaseDirectory,
) -> EvidenceService:
    """Provide a configured EvidenceService with in-memory dependencies."""
    return EvidenceService(
        repository=evidence_repo,
        ledger=ledger,
        identifiers=identifiers,
        uow=uow,
        content_store=content_store,
        case_directory=case_directory,
        max_batch_size=10,
    )


@pytest.fixture
def hold_service(
    hold_repo: InMemoryLegalHoldRepository,
    evidence_service: EvidenceService,
    identifiers: IdentifierGenerator,
) -> LegalHoldService:
    """Provide a configured LegalHoldService with in-memory dependencies."""
    return LegalHoldService(
        repository=hold_repo,
        evidence_service=evidence_service,
        identifiers=identifiers,
        notices=HoldNoticeRenderer(issuing_firm="Smith & Partners LLP"),
        max_custodians=5,
        overdue_threshold_days=14,
    )


@pytest.fixture
def privilege_service(
    privilege_repo: InMemoryPrivilegeLogRepository,
    evidence_repo: InMemoryEvidenceRepository,
    identifiers: IdentifierGenerator,
) -> PrivilegeLogService:
    """Provide a configured PrivilegeLogService with in-memory dependencies."""
    return PrivilegeLogService(privilege_repo, evidence_repo, identifiers)


@pytest.fixture
def production_service(
    production_repo: InMemoryProductionRepository,
    evidence_service: EvidenceService,
    privilege_service: PrivilegeLogService,
    identifiers: IdentifierGenerator,
    uow: InMemoryUnitOfWork,
) -> ProductionService:
    """Provide a configured ProductionService with its own lease registry."""
    return ProductionService(
        repository=production_repo,
        evidence_service=evidence_service,
        privilege_service=privilege_service,
        identifiers=identifiers,
        uow=uow,
        leases=BatesLeaseRegistry(),
        default_padding=6,
    )


@pytest.fixture
def analytics_service(
    evidence_repo: InMemoryEvidenceRepository,
    privilege_repo: InMemoryPrivilegeLogRepository,
    production_repo: InMemoryProductionRepository,
    hold_repo: InMemoryLegalHoldRepository,
    review_repo: InMemoryDocumentReviewRepository,
) -> AnalyticsService:
    return AnalyticsService(evidence_repo, privilege_repo, production_repo, hold_repo, review_repo)


@pytest.fixture
def review_service(
    review_repo: InMemoryDocumentReviewRepository,
    evidence_service: EvidenceService,
    identifiers: IdentifierGenerator,
) -> ReviewService:
    return ReviewService(review_repo, evidence_service, identifiers)


@pytest.fixture
def collect_evidence(
    evidence_service: EvidenceService, tenant: TenantContext, case_id: uuid.UUID
) -> Callable[..., Awaitable[EvidenceItem]]:
    """Provide a helper that collects an evidence item with sensible defaults.

    Keyword arguments override the defaults passed to EvidenceService.collect.
    """

    async def _collect(**overrides: Any) -> EvidenceItem:
        fields: dict[str, Any] = {
            "tenant": tenant,
            "case_id": case_id,
            "evidence_type": "Email",
            "description": "Mailbox export for J. Doe",
            "collection_method": "Cloud Export",
            "custodian": "Jane Doe",
            "collected_by": "analyst@firm.test",
        }
        fields.update(overrides)
        return await evidence_service.collect(**fields)

    return _collect


@pytest.fixture
def session_production_service(
    production_repo: InMemoryProductionRepository,
    evidence_service: EvidenceService,
    privilege_service: PrivilegeLogService,
    identifiers: IdentifierGenerator,
) -> Callable[[BatesLeaseRegistry], ProductionService]:
    """Provide a factory of ProductionServices that each act as a separate request session."""

    def _build(leases: BatesLeaseRegistry) -> ProductionService:
        repository = SessionProductionRepository(production_repo)
        return ProductionService(
            repository=repository,
            evidence_service=evidence_service,
            privilege_service=privilege_service,
            identifiers=identifiers,
            uow=SessionUnitOfWork(repository),
            leases=leases,
        )

    return _build
