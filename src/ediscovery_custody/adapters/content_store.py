"""HTTP client for the external content store.

The content store owns evidence bytes and text extraction. This adapter
stores uploads and requests extracted text; every failure surfaces as a
ContentStoreError so callers never see transport or decoding exceptions.
"""

import hashlib
import logging

import httpx

from ediscovery_custody.core.errors import ContentStoreError
from ediscovery_custody.core.interfaces import StoredContent
from ediscovery_custody.core.tenancy import TenantContext

logger = logging.getLogger(__name__)

# Raised while decoding a 2xx reply: bad JSON, a missing key or a non-object body.
_MALFORMED_REPLY = (ValueError, KeyError, TypeError, AttributeError)


class HttpContentStore:
    """Content store reached over HTTP.

    Args:
        base_url: Root URL of the content store API.
        http_client: Shared AsyncClient owned by the application.
        timeout: Per-request timeout in seconds.
    """

    def __init__(self, base_url: str, http_client: httpx.AsyncClient, timeout: float = 10.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = http_client
        self._timeout = timeout

    @staticmethod
    def _headers(tenant: TenantContext) -> dict[str, str]:
        return {"X-Tenant-ID": str(tenant.tenant_id)}

    async def store_bytes(self, content: bytes, filename: str, tenant: TenantContext) -> StoredContent:
        """Upload raw bytes and return the content reference.

        Raises:
            ContentStoreError: On transport failure, timeout, error status
                or a reply without a storage reference.
        """
        try:
            response = await self._client.post(
                f"{self._base_url}/objects",
                headers=self._headers(tenant),
                files={"file": (filename, content, "application/octet-stream")},
                timeout=self._timeout,
            )
            response.raise_for_status()
            body = response.json()
            return StoredContent(
                storage_ref=str(body["storage_ref"]),
                size=int(body.get("size", len(content))),
                checksum=body.get("checksum") or hashlib.sha256(content).hexdigest(),
            )
        except httpx.HTTPError as exc:
            logger.error("Content store upload failed", extra={"filename": filename, "error": str(exc)})
            raise ContentStoreError(f"Failed to store content: {exc}") from exc
        except _MALFORMED_REPLY as exc:
            logger.error(
                "Content store returned a malformed upload reply",
                extra={"filename": filename, "error": repr(exc)},
            )
            raise ContentStoreError(f"Malformed reply from content store for {filename}") from exc

    async def extract_text(self, storage_ref: str, tenant: TenantContext) -> str:
        """Ask the content store for the extracted text of stored content.

        Raises:
            ContentStoreError: On transport failure, timeout, error status
                or a reply that is not a JSON object.
        """
        try:
            response = await self._client.post(
                f"{self._base_url}/objects/{storage_ref}/extract-text",
                headers=self._headers(tenant),
                timeout=self._timeout,
            )
            response.raise_for_status()
            text = response.json().get("text") or ""
            if not isinstance(text, str):
                raise TypeError(f"text is {type(text).__name__}")
            return text
        except httpx.HTTPError as exc:
            logger.error(
                "Content store text extraction failed",
                extra={"storage_ref": storage_ref, "error": str(exc)},
            )
            raise ContentStoreError(f"Text extraction failed for {storage_ref}: {exc}") from exc
        except _MALFORMED_REPLY as exc:
            logger.error(
                "Content store returned a malformed extraction reply",
                extra={"storage_ref": storage_ref, "error": repr(exc)},
            )
            raise ContentStoreError(f"Malformed extraction reply for {storage_ref}") from exc
