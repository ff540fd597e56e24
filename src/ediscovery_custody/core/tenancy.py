"""Tenant context passed through every service and repository call."""

import uuid
from dataclasses import dataclass


@dataclass(frozen=True)
class TenantContext:
    """Identifies the tenant (and optionally the acting user) for a request.

    Attributes:
        tenant_id: Tenant that owns every record touched by the request.
        user_id: Authenticated user, when known.
    """

    tenant_id: uuid.UUID
    user_id: uuid.UUID | None = None
