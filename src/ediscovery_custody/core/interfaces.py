"""Abstract interfaces (Protocol classes) for ediscovery-custody.

Services depend on interfaces, not concrete implementations,
enabling dependency injection and in-memory fakes in tests.
"""

import uuid
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from ediscovery_custody.core.models import (
    CustodyEntry,
    DocumentReview,
    EvidenceHold,
    EvidenceItem,
    HoldCustodian,
    LegalHold,
    PrivilegeLogEntry,
    Production,
    ProductionDocument,
)
from ediscovery_custody.core.tenancy import TenantContext


@runtime_checkable
class IEvidenceRepository(Protocol):
    """Repository interface for EvidenceItem records and their hold links."""

    async def add(self, item: EvidenceItem) -> EvidenceItem: ...

    async def get_by_id(
        self, evidence_id: uuid.UUID, tenant: TenantContext
    ) -> EvidenceItem | None: ...

    async def list_by_case(
        self, case_id: uuid.UUID, tenant: TenantContext, status: str | None = None
    ) -> list[EvidenceItem]: ...

    async def list_by_custodian(
        self, custodian: str, tenant: TenantContext
    ) -> list[EvidenceItem]: ...

    async def add_hold_link(self, link: EvidenceHold) -> EvidenceHold: ...

    async def get_hold_link(
        self, evidence_id: uuid.UUID, hold_id: uuid.UUID, tenant: TenantContext
    ) -> EvidenceHold | None: ...

    async def list_active_hold_links(
        self, evidence_id: uuid.UUID, tenant: TenantContext
    ) -> list[EvidenceHold]: ...

    async def list_active_links_for_hold(
        self, hold_id: uuid.UUID, tenant: TenantContext
    ) -> list[EvidenceHold]: ...


@runtime_checkable
class ICustodyRepository(Protocol):
    """Append-only repository for CustodyEntry records."""

    async def append(self, entry: CustodyEntry) -> CustodyEntry: ...

    async def list_for_evidence(
        self, evidence_id: uuid.UUID, tenant: TenantContext
    ) -> list[CustodyEntry]: ...


@runtime_checkable
class ILegalHoldRepository(Protocol):
    """Repository interface for LegalHold and HoldCustodian records."""

    async def add(self, hold: LegalHold) -> LegalHold: ...

    async def get_by_id(
        self, hold_id: uuid.UUID, tenant: TenantContext, for_update: bool = False
    ) -> LegalHold | None: ...

    async def list_by_case(self, case_id: uuid.UUID, tenant: TenantContext) -> list[LegalHold]: ...

    async def list_active(
        self, tenant: TenantContext, case_id: uuid.UUID | None = None
    ) -> list[LegalHold]: ...

    async def add_custodian(self, custodian: HoldCustodian) -> HoldCustodian: ...

    async def list_custodians(
        self, hold_id: uuid.UUID, tenant: TenantContext
    ) -> list[HoldCustodian]: ...

    async def list_holds_for_custodian(
        self, email_normalized: str, tenant: TenantContext
    ) -> list[LegalHold]: ...


@runtime_checkable
class IPrivilegeLogRepository(Protocol):
    """Repository interface for PrivilegeLogEntry records."""

    async def add(self, entry: PrivilegeLogEntry) -> PrivilegeLogEntry: ...

    async def get_by_id(
        self, entry_id: uuid.UUID, tenant: TenantContext
    ) -> PrivilegeLogEntry | None: ...

    async def list_by_case(
        self, case_id: uuid.UUID, tenant: TenantContext
    ) -> list[PrivilegeLogEntry]: ...

    async def list_by_evidence(
        self, evidence_id: uuid.UUID, tenant: TenantContext
    ) -> list[PrivilegeLogEntry]: ...


@runtime_checkable
class IProductionRepository(Protocol):
    """Repository interface for Production and ProductionDocument records."""

    async def add(self, production: Production) -> Production: ...

    async def get_by_id(
        self, production_id: uuid.UUID, tenant: TenantContext, for_update: bool = False
    ) -> Production | None: ...

    async def list_by_case(
        self, case_id: uuid.UUID, tenant: TenantContext
    ) -> list[Production]: ...

    async def list_by_case_and_prefix(
        self, case_id: uuid.UUID, bates_prefix: str, tenant: TenantContext
    ) -> list[Production]: ...

    async def add_document(self, document: ProductionDocument) -> ProductionDocument: ...

    async def list_documents(
        self, production_id: uuid.UUID, tenant: TenantContext
    ) -> list[ProductionDocument]: ...


@runtime_checkable
class IDocumentReviewRepository(Protocol):
    """Repository interface for DocumentReview records."""

    async def add(self, review: DocumentReview) -> DocumentReview: ...

    async def get_by_id(
        self, review_id: uuid.UUID, tenant: TenantContext
    ) -> DocumentReview | None: ...

    async def search(
        self,
        tenant: TenantContext,
        case_id: uuid.UUID | None = None,
        assigned_to: str | None = None,
        review_status: str | None = None,
        batch_id: str | None = None,
    ) -> list[DocumentReview]: ...


@runtime_checkable
class ISequenceRepository(Protocol):
    """Atomic per-scope counters backing human-readable identifiers."""

    async def next_value(self, scope: str, tenant: TenantContext) -> int: ...


@runtime_checkable
class IUnitOfWork(Protocol):
    """Transaction boundary shared by the repositories of one request."""

    async def commit(self) -> None: ...

    def savepoint(self) -> AbstractAsyncContextManager[None]: ...


@dataclass(frozen=True)
class StoredContent:
    """Reference returned by the content store after storing bytes."""

    storage_ref: str
    size: int
    checksum: str


@runtime_checkable
class IContentStore(Protocol):
    """External blob store that also performs text extraction."""

    async def store_bytes(
        self, content: bytes, filename: str, tenant: TenantContext
    ) -> StoredContent: ...

    async def extract_text(self, storage_ref: str, tenant: TenantContext) -> str: ...


@runtime_checkable
class ICaseDirectory(Protocol):
    """Read-only lookup of case metadata owned by the practice-management suite."""

    async def get_case(self, case_id: uuid.UUID, tenant: TenantContext) -> dict[str, Any] | None: ...
