"""
Authentication and tenant-guard dependencies for FastAPI
"""

from typing import Optional
import uuid

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.engine import Engine
from sqlmodel import Session
import structlog

from rms_tenancy.core.auth import identity_from_token
from rms_tenancy.core.config import Settings, get_settings
from rms_tenancy.core.database import get_engine, get_session
from rms_tenancy.core.exceptions import ForbiddenError, TenantNotFoundError, UnauthorizedError
from rms_tenancy.core.permissions import Permission, get_permissions_for_role, has_permission
from rms_tenancy.core.tenant_context import (
    AccessGuard,
    Identity,
    RequestContext,
    TenantContextResolver,
)
from rms_tenancy.core.tenant_scope import TenantScope
from rms_tenancy.models.tenant import TenantRecord, TenantStatus
from rms_tenancy.services.onboarding import TenantOnboarding
from rms_tenancy.services.provisioner import SchemaProvisioner
from rms_tenancy.services.registry import TenantRegistry

logger = structlog.get_logger(__name__)
security = HTTPBearer(auto_error=False)

resolver = TenantContextResolver()
access_guard = AccessGuard()


async def get_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Identity:
    """Verified identity from the bearer token"""
    identity = identity_from_token(credentials.credentials if credentials else None)
    logger.debug(f"User authenticated: {identity.user_id}")
    return identity


async def require_gateway_tenant(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> uuid.UUID:
    """The gateway-forwarded tenant header is mandatory on protected routes"""
    raw = request.headers.get(settings.TENANT_HEADER)
    if not raw:
        logger.warning(
            "Protected request without tenant header",
            event_type="missing_tenant_context",
            path=request.url.path,
        )
        raise UnauthorizedError("Tenant context required")
    try:
        return uuid.UUID(raw)
    except ValueError:
        raise UnauthorizedError("Malformed tenant context")


async def guard_tenant_access(
    tenant_id: uuid.UUID,
    request: Request,
    identity: Identity = Depends(get_identity),
    header_tenant_id: uuid.UUID = Depends(require_gateway_tenant),
) -> RequestContext:
    """Resolve the caller's tenant and compare it with the path tenant; no queries"""
    context = resolver.resolve(
        identity,
        resource_tenant_id=tenant_id,
        header_tenant_id=str(header_tenant_id),
    )
    context = access_guard.check(context)
    request.state.tenant_context = context
    return context


def require_permission(required_permission: Permission):
    """Dependency factory to check role permissions"""
    async def check_permission(identity: Identity = Depends(get_identity)) -> Identity:
        if not has_permission(required_permission, get_permissions_for_role(identity.role)):
            raise ForbiddenError(f"Permission required: {required_permission.value}")
        return identity
    return check_permission


def get_registry(
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> TenantRegistry:
    return TenantRegistry(session, settings)


def get_provisioner(engine: Engine = Depends(get_engine)) -> SchemaProvisioner:
    return SchemaProvisioner(engine)


def get_onboarding(
    engine: Engine = Depends(get_engine),
    provisioner: SchemaProvisioner = Depends(get_provisioner),
    settings: Settings = Depends(get_settings),
) -> TenantOnboarding:
    return TenantOnboarding(engine, provisioner, settings)


def get_guarded_tenant(
    context: RequestContext = Depends(guard_tenant_access),
    registry: TenantRegistry = Depends(get_registry),
) -> TenantRecord:
    """Registry lookup for a tenant whose access was already allowed"""
    try:
        record = registry.get(context.resource_tenant_id)
    except TenantNotFoundError:
        record = None
    if record is None:
        access_guard.deny_unknown_tenant(context)
    elif not record.is_usable():
        access_guard.deny_unknown_tenant(context, reason=f"status {TenantStatus(record.status).value}")
    context.schema_name = record.schema_name
    return record


def get_tenant_scope(record: TenantRecord = Depends(get_guarded_tenant)) -> TenantScope:
    return TenantScope(record.schema_name)

