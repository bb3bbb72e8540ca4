"""
Tenant context resolution and access guard

Per request the context moves UNRESOLVED -> RESOLVED -> VALIDATED and ends
ALLOWED or DENIED. The guard only compares identities; it never touches the
database, so a cross-tenant request is refused before any tenant-scoped
query can be issued.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional
import uuid

import structlog

from rms_tenancy.core.exceptions import ForbiddenError, UnauthorizedError

logger = structlog.get_logger(__name__)


class ContextState(str, Enum):
    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"
    VALIDATED = "validated"
    ALLOWED = "allowed"
    DENIED = "denied"


@dataclass(frozen=True)
class Identity:
    """Verified claims of the caller's token"""
    user_id: str
    role: str
    tenant_id: Optional[uuid.UUID] = None

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "Identity":
        user_id = claims.get("sub")
        if not user_id:
            raise UnauthorizedError("Token carries no subject")
        raw_tenant = claims.get("tenant_id")
        try:
            tenant_id = uuid.UUID(str(raw_tenant)) if raw_tenant else None
        except ValueError:
            raise UnauthorizedError("Token carries a malformed tenant claim")
        return cls(user_id=str(user_id), role=str(claims.get("role") or ""), tenant_id=tenant_id)


@dataclass
class RequestContext:
    """Ephemeral, one per request, never persisted"""
    caller_tenant_id: Optional[uuid.UUID] = None
    resource_tenant_id: Optional[uuid.UUID] = None
    authenticated_user_id: Optional[str] = None
    role: Optional[str] = None
    state: ContextState = ContextState.UNRESOLVED
    schema_name: Optional[str] = field(default=None)

    def audit_fields(self) -> Dict[str, Any]:
        return {
            "caller_tenant_id": str(self.caller_tenant_id) if self.caller_tenant_id else None,
            "resource_tenant_id": str(self.resource_tenant_id) if self.resource_tenant_id else None,
            "user_id": self.authenticated_user_id,
            "role": self.role,
        }


class TenantContextResolver:
    """Builds a RequestContext from the verified identity and the addressed resource"""

    def resolve(
        self,
        identity: Optional[Identity],
        resource_tenant_id: Optional[uuid.UUID] = None,
        header_tenant_id: Optional[str] = None,
    ) -> RequestContext:
        context = RequestContext()

        if identity is None or identity.tenant_id is None:
            logger.warning(
                "Tenant context missing",
                event_type="missing_tenant_context",
                user_id=identity.user_id if identity else None,
            )
            raise UnauthorizedError("Tenant context required")

        # The forwarded header is gateway-authoritative; it must agree with the token
        if header_tenant_id and header_tenant_id.strip().lower() != str(identity.tenant_id):
            logger.warning(
                "Tenant header does not match token",
                event_type="cross_tenant_attempt",
                caller_tenant_id=str(identity.tenant_id),
                header_tenant_id=header_tenant_id,
                user_id=identity.user_id,
            )
            raise ForbiddenError("Access denied to tenant resources")

        context.caller_tenant_id = identity.tenant_id
        context.authenticated_user_id = identity.user_id
        context.role = identity.role
        context.resource_tenant_id = resource_tenant_id or identity.tenant_id
        context.state = ContextState.RESOLVED
        return context


class AccessGuard:
    """Caller tenant must equal the addressed resource's tenant"""

    def check(self, context: RequestContext) -> RequestContext:
        if context.state != ContextState.RESOLVED:
            raise UnauthorizedError("Tenant context required")
        context.state = ContextState.VALIDATED

        if context.caller_tenant_id != context.resource_tenant_id:
            context.state = ContextState.DENIED
            logger.warning(
                "Cross-tenant access denied",
                event_type="cross_tenant_attempt",
                **context.audit_fields(),
            )
            raise ForbiddenError("Access denied to tenant resources")

        context.state = ContextState.ALLOWED
        return context

    def deny_unknown_tenant(self, context: RequestContext, reason: str = "unknown") -> None:
        """Registry could not resolve the tenant; refuse like a cross-tenant attempt"""
        context.state = ContextState.DENIED
        logger.warning(
            "Access to unknown tenant denied",
            event_type="unknown_tenant",
            reason=reason,
            **context.audit_fields(),
        )
        raise ForbiddenError("Access denied to tenant resources")
