"""SQLAlchemy repository implementations for ediscovery-custody.

Every query filters on the caller's tenant. Repositories add objects to the
request session and flush so generated rows are visible to later queries
in the same transaction; committing is left to the unit of work.
"""

import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ediscovery_custody.core.errors import InvalidTransitionError
from ediscovery_custody.core.models import (
    CustodyEntry,
    DocumentReview,
    EvidenceHold,
    EvidenceItem,
    EvidenceStatus,
    HoldCustodian,
    HoldStatus,
    LegalHold,
    NumberSequence,
    PrivilegeLogEntry,
    Production,
    ProductionDocument,
)
from ediscovery_custody.core.tenancy import TenantContext
from ediscovery_custody.database import utcnow


class BaseRepository:
    """Shared session handling for the repositories below.

    Args:
        session: The async SQLAlchemy session (injected by FastAPI dependency).
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _add(self, obj):
        self.session.add(obj)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise InvalidTransitionError(f"Conflicting concurrent update: {exc.orig}") from exc
        return obj


class EvidenceRepository(BaseRepository):
    """Repository for EvidenceItem records and EvidenceHold links."""

    async def add(self, item: EvidenceItem) -> EvidenceItem:
        return await self._add(item)

    async def get_by_id(self, evidence_id: uuid.UUID, tenant: TenantContext) -> EvidenceItem | None:
        result = await self.session.execute(
            select(EvidenceItem).where(
                EvidenceItem.id == evidence_id,
                EvidenceItem.tenant_id == tenant.tenant_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_by_case(
        self, case_id: uuid.UUID, tenant: TenantContext, status: str | None = None
    ) -> list[EvidenceItem]:
        query = select(EvidenceItem).where(
            EvidenceItem.case_id == case_id,
            EvidenceItem.tenant_id == tenant.tenant_id,
        )
        if status is not None:
            query = query.where(EvidenceItem.status == status)
        result = await self.session.execute(query.order_by(EvidenceItem.created_at))
        return list(result.scalars().all())

    async def list_by_custodian(self, custodian: str, tenant: TenantContext) -> list[EvidenceItem]:
        result = await self.session.execute(
            select(EvidenceItem)
            .where(
                EvidenceItem.custodian == custodian,
                EvidenceItem.status == EvidenceStatus.ACTIVE.value,
                EvidenceItem.tenant_id == tenant.tenant_id,
            )
            .order_by(EvidenceItem.collection_date.desc())
        )
        return list(result.scalars().all())

    async def add_hold_link(self, link: EvidenceHold) -> EvidenceHold:
        return await self._add(link)

    async def get_hold_link(
        self, evidence_id: uuid.UUID, hold_id: uuid.UUID, tenant: TenantContext
    ) -> EvidenceHold | None:
        result = await self.session.execute(
            select(EvidenceHold).where(
                EvidenceHold.evidence_id == evidence_id,
                EvidenceHold.hold_id == hold_id,
                EvidenceHold.tenant_id == tenant.tenant_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_active_hold_links(
        self, evidence_id: uuid.UUID, tenant: TenantContext
    ) -> list[EvidenceHold]:
        result = await self.session.execute(
            select(EvidenceHold).where(
                EvidenceHold.evidence_id == evidence_id,
                EvidenceHold.tenant_id == tenant.tenant_id,
                EvidenceHold.released_at.is_(None),
            )
        )
        return list(result.scalars().all())

    async def list_active_links_for_hold(
        self, hold_id: uuid.UUID, tenant: TenantContext
    ) -> list[EvidenceHold]:
        result = await self.session.execute(
            select(EvidenceHold).where(
                EvidenceHold.hold_id == hold_id,
                EvidenceHold.tenant_id == tenant.tenant_id,
                EvidenceHold.released_at.is_(None),
            )
        )
        return list(result.scalars().all())


class CustodyRepository(BaseRepository):
    """Append-only repository for CustodyEntry records."""

    async def append(self, entry: CustodyEntry) -> CustodyEntry:
        return await self._add(entry)

    async def list_for_evidence(self, evidence_id: uuid.UUID, tenant: TenantContext) -> list[CustodyEntry]:
        result = await self.session.execute(
            select(CustodyEntry)
            .where(
                CustodyEntry.evidence_id == evidence_id,
                CustodyEntry.tenant_id == tenant.tenant_id,
            )
            .order_by(CustodyEntry.sequence)
        )
        return list(result.scalars().all())


class LegalHoldRepository(BaseRepository):
    """Repository for LegalHold and HoldCustodian records."""

    async def add(self, hold: LegalHold) -> LegalHold:
        return await self._add(hold)

    async def get_by_id(
        self, hold_id: uuid.UUID, tenant: TenantContext, for_update: bool = False
    ) -> LegalHold | None:
        query = select(LegalHold).where(
            LegalHold.id == hold_id,
            LegalHold.tenant_id == tenant.tenant_id,
        )
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_by_case(self, case_id: uuid.UUID, tenant: TenantContext) -> list[LegalHold]:
        result = await self.session.execute(
            select(LegalHold)
            .where(LegalHold.case_id == case_id, LegalHold.tenant_id == tenant.tenant_id)
            .order_by(LegalHold.issued_at.desc())
        )
        return list(result.scalars().all())

    async def list_active(self, tenant: TenantContext, case_id: uuid.UUID | None = None) -> list[LegalHold]:
        query = select(LegalHold).where(
            LegalHold.tenant_id == tenant.tenant_id,
            LegalHold.status == HoldStatus.ACTIVE.value,
        )
        if case_id is not None:
            query = query.where(LegalHold.case_id == case_id)
        result = await self.session.execute(query.order_by(LegalHold.issued_at))
        return list(result.scalars().all())

    async def add_custodian(self, custodian: HoldCustodian) -> HoldCustodian:
        return await self._add(custodian)

    async def list_custodians(self, hold_id: uuid.UUID, tenant: TenantContext) -> list[HoldCustodian]:
        result = await self.session.execute(
            select(HoldCustodian)
            .where(HoldCustodian.hold_id == hold_id, HoldCustodian.tenant_id == tenant.tenant_id)
            .order_by(HoldCustodian.created_at)
        )
        return list(result.scalars().all())

    async def list_holds_for_custodian(self, email_normalized: str, tenant: TenantContext) -> list[LegalHold]:
        result = await self.session.execute(
            select(LegalHold)
            .join(HoldCustodian, HoldCustodian.hold_id == LegalHold.id)
            .where(
                HoldCustodian.email_normalized == email_normalized,
                LegalHold.tenant_id == tenant.tenant_id,
            )
            .order_by(LegalHold.issued_at.desc())
        )
        return list(result.scalars().unique().all())


class PrivilegeLogRepository(BaseRepository):
    """Repository for PrivilegeLogEntry records."""

    async def add(self, entry: PrivilegeLogEntry) -> PrivilegeLogEntry:
        return await self._add(entry)

    async def get_by_id(self, entry_id: uuid.UUID, tenant: TenantContext) -> PrivilegeLogEntry | None:
        result = await self.session.execute(
            select(PrivilegeLogEntry).where(
                PrivilegeLogEntry.id == entry_id,
                PrivilegeLogEntry.tenant_id == tenant.tenant_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_by_case(self, case_id: uuid.UUID, tenant: TenantContext) -> list[PrivilegeLogEntry]:
        result = await self.session.execute(
            select(PrivilegeLogEntry)
            .where(
                PrivilegeLogEntry.case_id == case_id,
                PrivilegeLogEntry.tenant_id == tenant.tenant_id,
            )
            .order_by(PrivilegeLogEntry.log_number)
        )
        return list(result.scalars().all())

    async def list_by_evidence(self, evidence_id: uuid.UUID, tenant: TenantContext) -> list[PrivilegeLogEntry]:
        result = await self.session.execute(
            select(PrivilegeLogEntry).where(
                PrivilegeLogEntry.evidence_id == evidence_id,
                PrivilegeLogEntry.tenant_id == tenant.tenant_id,
            )
        )
        return list(result.scalars().all())


class ProductionRepository(BaseRepository):
    """Repository for Production and ProductionDocument records."""

    async def add(self, production: Production) -> Production:
        return await self._add(production)

    async def get_by_id(
        self, production_id: uuid.UUID, tenant: TenantContext, for_update: bool = False
    ) -> Production | None:
        """Load a production.

        With ``for_update`` the row is locked and any copy already held in
        the session's identity map is overwritten with the committed state.
        """
        query = select(Production).where(
            Production.id == production_id,
            Production.tenant_id == tenant.tenant_id,
        )
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_by_case(self, case_id: uuid.UUID, tenant: TenantContext) -> list[Production]:
        result = await self.session.execute(
            select(Production)
            .where(Production.case_id == case_id, Production.tenant_id == tenant.tenant_id)
            .order_by(Production.created_at)
        )
        return list(result.scalars().all())

    async def list_by_case_and_prefix(
        self, case_id: uuid.UUID, bates_prefix: str, tenant: TenantContext
    ) -> list[Production]:
        result = await self.session.execute(
            select(Production)
            .where(
                Production.case_id == case_id,
                Production.bates_prefix == bates_prefix,
                Production.tenant_id == tenant.tenant_id,
            )
            .order_by(Production.bates_start_number)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def add_document(self, document: ProductionDocument) -> ProductionDocument:
        return await self._add(document)

    async def list_documents(self, production_id: uuid.UUID, tenant: TenantContext) -> list[ProductionDocument]:
        result = await self.session.execute(
            select(ProductionDocument)
            .where(
                ProductionDocument.production_id == production_id,
                ProductionDocument.tenant_id == tenant.tenant_id,
            )
            .order_by(ProductionDocument.bates_sequence)
        )
        return list(result.scalars().all())


class DocumentReviewRepository(BaseRepository):
    """Repository for DocumentReview records."""

    async def add(self, review: DocumentReview) -> DocumentReview:
        return await self._add(review)

    async def get_by_id(self, review_id: uuid.UUID, tenant: TenantContext) -> DocumentReview | None:
        result = await self.session.execute(
            select(DocumentReview).where(
                DocumentReview.id == review_id,
                DocumentReview.tenant_id == tenant.tenant_id,
            )
        )
        return result.scalar_one_or_none()

    async def search(
        self,
        tenant: TenantContext,
        case_id: uuid.UUID | None = None,
        assigned_to: str | None = None,
        review_status: str | None = None,
        batch_id: str | None = None,
    ) -> list[DocumentReview]:
        query = select(DocumentReview).where(DocumentReview.tenant_id == tenant.tenant_id)
        if case_id is not None:
            query = query.where(DocumentReview.case_id == case_id)
        if assigned_to is not None:
            query = query.where(DocumentReview.assigned_to == assigned_to)
        if review_status is not None:
            query = query.where(DocumentReview.review_status == review_status)
        if batch_id is not None:
            query = query.where(DocumentReview.batch_id == batch_id)
        result = await self.session.execute(query.order_by(DocumentReview.assigned_at))
        return list(result.scalars().all())


class SequenceRepository(BaseRepository):
    """Atomic counters implemented as an upsert-increment."""

    async def next_value(self, scope: str, tenant: TenantContext) -> int:
        now = utcnow()
        statement = (
            insert(NumberSequence)
            .values(
                id=uuid.uuid4(),
                tenant_id=tenant.tenant_id,
                scope=scope,
                last_value=1,
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_update(
                index_elements=[NumberSequence.tenant_id, NumberSequence.scope],
                set_={"last_value": NumberSequence.last_value + 1, "updated_at": now},
            )
            .returning(NumberSequence.last_value)
        )
        result = await self.session.execute(statement)
        return result.scalar_one()


class SqlUnitOfWork:
    """Unit of work over the request session.

    A uniqueness violation at commit means another writer claimed the same
    number or link first; it is reported as an invalid transition.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def commit(self) -> None:
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise InvalidTransitionError(f"Conflicting concurrent update: {exc.orig}") from exc

    @asynccontextmanager
    async def savepoint(self) -> AsyncIterator[None]:
        async with self.session.begin_nested():
            yield
