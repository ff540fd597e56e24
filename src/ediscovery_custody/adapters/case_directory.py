"""Read-only client for case metadata held by the practice-management suite."""

import logging
import uuid
from typing import Any

import httpx

from ediscovery_custody.core.tenancy import TenantContext

logger = logging.getLogger(__name__)


class HttpCaseDirectory:
    """Looks up case metadata (case number, title) over HTTP.

    Case data is only used to fill display fields, so lookup failures are
    logged and reported as a missing case.
    """

    def __init__(self, base_url: str, http_client: httpx.AsyncClient, timeout: float = 5.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = http_client
        self._timeout = timeout

    async def get_case(self, case_id: uuid.UUID, tenant: TenantContext) -> dict[str, Any] | None:
        try:
            response = await self._client.get(
                f"{self._base_url}/cases/{case_id}",
                headers={"X-Tenant-ID": str(tenant.tenant_id)},
                timeout=self._timeout,
            )
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json().get("data", {})
        except (httpx.HTTPError, ValueError, AttributeError) as exc:
            logger.warning("Case lookup failed", extra={"case_id": str(case_id), "error": str(exc)})
            return None
