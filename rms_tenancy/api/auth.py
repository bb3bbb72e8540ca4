"""
Auth API endpoints - Login and token management
"""

from fastapi import APIRouter, Depends
import structlog

from rms_tenancy.core.auth import create_access_token
from rms_tenancy.core.dependencies import get_identity, get_registry
from rms_tenancy.core.exceptions import TenantNotFoundError, UnauthorizedError
from rms_tenancy.core.tenant_context import Identity
from rms_tenancy.core.tenant_scope import TenantScope
from rms_tenancy.models.tenant import TenantStatus
from rms_tenancy.schemas.token import (
    LoginRequest,
    RefreshResponse,
    StaffSummary,
    TokenIdentity,
    TokenResponse,
    TokenValidation,
)
from rms_tenancy.services.registry import TenantRegistry
from rms_tenancy.services.staff import authenticate

logger = structlog.get_logger(__name__)
router = APIRouter()

INVALID_CREDENTIALS = "Invalid tenant, email or password"


@router.post("/login", response_model=TokenResponse)
def login(
    credentials: LoginRequest,
    registry: TenantRegistry = Depends(get_registry),
):
    """Authenticate tenant staff and issue an access token"""
    try:
        tenant = registry.get(credentials.tenant_id)
    except TenantNotFoundError:
        raise UnauthorizedError(INVALID_CREDENTIALS)
    if tenant.status != TenantStatus.ACTIVE:
        logger.warning(f"Login attempt for inactive tenant {tenant.tenant_id}")
        raise UnauthorizedError(INVALID_CREDENTIALS)

    scope = TenantScope(tenant.schema_name)
    user = authenticate(registry.session, scope, credentials.email, credentials.password)
    if user is None:
        logger.warning(f"Failed login for tenant {tenant.tenant_id}")
        raise UnauthorizedError(INVALID_CREDENTIALS)

    token = create_access_token(user_id=user["id"], tenant_id=tenant.tenant_id, role=user["role"])
    logger.info(f"User logged in: {user['id']}", tenant_id=str(tenant.tenant_id))
    return TokenResponse(
        access_token=token,
        user=StaffSummary(
            id=user["id"],
            tenant_id=tenant.tenant_id,
            first_name=user["first_name"],
            last_name=user["last_name"],
            email=user["email"],
            role=user["role"],
        ),
    )


@router.get("/validate", response_model=TokenValidation)
async def validate_token(identity: Identity = Depends(get_identity)):
    """Claims of a valid bearer token"""
    return TokenValidation(
        user=TokenIdentity(id=identity.user_id, tenant_id=identity.tenant_id, role=identity.role)
    )


@router.post("/refresh", response_model=RefreshResponse)
def refresh_token(
    identity: Identity = Depends(get_identity),
    registry: TenantRegistry = Depends(get_registry),
):
    """Issue a fresh token for the same identity; tenant users need an ACTIVE tenant"""
    if identity.tenant_id is not None:
        try:
            tenant = registry.get(identity.tenant_id)
        except TenantNotFoundError:
            raise UnauthorizedError("Tenant is not active")
        if tenant.status != TenantStatus.ACTIVE:
            logger.warning(f"Token refresh for inactive tenant {tenant.tenant_id}")
            raise UnauthorizedError("Tenant is not active")

    token = create_access_token(user_id=identity.user_id, tenant_id=identity.tenant_id, role=identity.role)
    logger.info(f"Token refreshed: {identity.user_id}")
    return RefreshResponse(access_token=token)
