"""Bates number formatting and per-(case, prefix) allocation leases."""

import asyncio
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


def format_bates(prefix: str, sequence: int, padding: int) -> str:
    """Format a Bates number such as ``ABC000001``.

    Args:
        prefix: Upper-cased Bates prefix.
        sequence: Positive sequence number.
        padding: Minimum digit count; longer numbers are not truncated.

    Returns:
        The formatted Bates number string.
    """
    return f"{prefix}{str(sequence).zfill(padding)}"


def normalize_prefix(prefix: str) -> str:
    """Strip and upper-case a Bates prefix."""
    return prefix.strip().upper()


class BatesLeaseRegistry:
    """Serializes Bates allocation per (tenant, case, prefix).

    Holders of a lease may read the current high-water mark, issue numbers
    and commit without another allocation for the same key interleaving.
    Allocations for different keys proceed concurrently.
    """

    def __init__(self) -> None:
        self._locks: dict[tuple[uuid.UUID, uuid.UUID, str], asyncio.Lock] = {}

    def _lock_for(self, tenant_id: uuid.UUID, case_id: uuid.UUID, prefix: str) -> asyncio.Lock:
        key = (tenant_id, case_id, normalize_prefix(prefix))
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def lease(
        self, tenant_id: uuid.UUID, case_id: uuid.UUID, prefix: str
    ) -> AsyncIterator[None]:
        """Hold the allocation lease for one case and prefix."""
        async with self._lock_for(tenant_id, case_id, prefix):
            yield


# Process-wide registry shared by every request handled by this worker.
bates_leases = BatesLeaseRegistry()
