"""Human-readable record numbers (EVD-2024-00001, HOLD-2024-001, REV-2024-00001, ...).

Numbers come from per-tenant, per-year counters, so two records can never
be issued the same number.
"""

from ediscovery_custody.core.interfaces import ISequenceRepository
from ediscovery_custody.core.tenancy import TenantContext
from ediscovery_custody.database import utcnow

# prefix -> zero-padded width of the counter
_NUMBER_FORMATS: dict[str, int] = {
    "EVD": 5,
    "HOLD": 3,
    "PROD": 3,
    "PRIV": 4,
    "REV": 5,
}


class IdentifierGenerator:
    """Allocates record numbers from the sequence repository.

    Args:
        sequences: Atomic counter storage.
    """

    def __init__(self, sequences: ISequenceRepository) -> None:
        self._sequences = sequences

    async def next_number(self, prefix: str, tenant: TenantContext) -> str:
        """Allocate the next number for ``prefix`` in the current year.

        Counters wider than the nominal width keep growing rather than
        wrapping, e.g. ``HOLD-2024-1000``.
        """
        width = _NUMBER_FORMATS[prefix]
        scope = f"{prefix}-{utcnow().year}"
        value = await self._sequences.next_value(scope, tenant)
        return f"{scope}-{str(value).zfill(width)}"

    async def evidence_number(self, tenant: TenantContext) -> str:
        return await self.next_number("EVD", tenant)

    async def hold_number(self, tenant: TenantContext) -> str:
        return await self.next_number("HOLD", tenant)

    async def production_number(self, tenant: TenantContext) -> str:
        return await self.next_number("PROD", tenant)

    async def privilege_log_number(self, tenant: TenantContext) -> str:
        return await self.next_number("PRIV", tenant)

    async def review_number(self, tenant: TenantContext) -> str:
        return await self.next_number("REV", tenant)
