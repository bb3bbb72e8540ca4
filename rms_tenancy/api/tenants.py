"""
Tenant API endpoints
"""

import asyncio
from typing import Any, Dict, Optional
import uuid

from fastapi import APIRouter, Body, Depends, Query, Response, status
from fastapi.concurrency import run_in_threadpool
import structlog

from rms_tenancy.core.config import Settings, get_settings
from rms_tenancy.core.dependencies import (
    get_guarded_tenant,
    get_onboarding,
    get_registry,
    get_tenant_scope,
    guard_tenant_access,
    require_permission,
)
from rms_tenancy.core.permissions import Permission
from rms_tenancy.core.tenant_context import RequestContext
from rms_tenancy.core.tenant_scope import TenantScope
from rms_tenancy.models.tenant import TenantRecord, TenantStatus, features_for
from rms_tenancy.schemas.tenant import (
    MessageResponse,
    TenantConfig,
    TenantCreate,
    TenantCreated,
    TenantPage,
    TenantResponse,
    TenantStats,
    PageMeta,
)
from rms_tenancy.services.onboarding import TenantOnboarding
from rms_tenancy.services.outlets import OutletRepository
from rms_tenancy.services.registry import TenantRegistry
from rms_tenancy.services.staff import count_active_staff

logger = structlog.get_logger(__name__)
router = APIRouter()


def _log_background_failure(tenant_id: uuid.UUID):
    def callback(task: "asyncio.Future") -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Background provisioning failed for tenant {tenant_id}: {exc}")
    return callback


@router.post(
    "/",
    response_model=TenantCreated,
    status_code=status.HTTP_201_CREATED,
    responses={202: {"model": TenantCreated, "description": "Provisioning still in progress"}},
)
async def create_tenant(
    candidate: TenantCreate,
    response: Response,
    onboarding: TenantOnboarding = Depends(get_onboarding),
    settings: Settings = Depends(get_settings),
):
    """Register a tenant and provision its schema (public route)"""
    record = await run_in_threadpool(onboarding.register, candidate)

    # The provisioning transaction always runs to commit or rollback, even past the timeout
    task = asyncio.ensure_future(
        run_in_threadpool(onboarding.complete, record.tenant_id, candidate.admin_user)
    )
    try:
        record = await asyncio.wait_for(
            asyncio.shield(task), timeout=settings.TENANT_CREATION_TIMEOUT_SECONDS
        )
    except asyncio.TimeoutError:
        task.add_done_callback(_log_background_failure(record.tenant_id))
        logger.warning(f"Tenant creation still pending after timeout: {record.tenant_id}")
        response.status_code = status.HTTP_202_ACCEPTED
        return TenantCreated(
            tenant_id=record.tenant_id,
            schema_name=record.schema_name,
            status=TenantStatus.PENDING,
        )

    logger.info(f"Tenant created: {record.tenant_id}")
    return TenantCreated(
        tenant_id=record.tenant_id,
        schema_name=record.schema_name,
        status=record.status,
    )


@router.get("/", response_model=TenantPage)
def list_tenants(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status_filter: Optional[TenantStatus] = Query(None, alias="status"),
    _operator=Depends(require_permission(Permission.TENANT_LIST)),
    registry: TenantRegistry = Depends(get_registry),
):
    """List all tenants (operators only)"""
    records, total = registry.list(page=page, limit=limit, status_filter=status_filter)
    return TenantPage(
        data=[TenantResponse.from_record(record) for record in records],
        meta=PageMeta.build(total=total, page=page, limit=limit),
    )


@router.get("/{tenant_id}", response_model=TenantResponse)
def get_tenant(
    tenant_id: uuid.UUID,
    context: RequestContext = Depends(guard_tenant_access),
    _identity=Depends(require_permission(Permission.TENANT_VIEW)),
    registry: TenantRegistry = Depends(get_registry),
):
    """Get tenant by ID"""
    return TenantResponse.from_record(registry.get(context.resource_tenant_id))


@router.put("/{tenant_id}", response_model=TenantResponse)
def update_tenant(
    tenant_id: uuid.UUID,
    patch: Dict[str, Any] = Body(...),
    context: RequestContext = Depends(guard_tenant_access),
    _identity=Depends(require_permission(Permission.TENANT_UPDATE)),
    registry: TenantRegistry = Depends(get_registry),
):
    """Partially update tenant"""
    record = registry.update(context.resource_tenant_id, patch)
    return TenantResponse.from_record(record)


@router.delete("/{tenant_id}", response_model=MessageResponse)
def delete_tenant(
    tenant_id: uuid.UUID,
    context: RequestContext = Depends(guard_tenant_access),
    _identity=Depends(require_permission(Permission.TENANT_DELETE)),
    registry: TenantRegistry = Depends(get_registry),
):
    """Deactivate tenant (soft delete, schema retained)"""
    registry.deactivate(context.resource_tenant_id)
    return MessageResponse(message="Tenant deactivated successfully")


@router.get("/{tenant_id}/config", response_model=TenantConfig)
def get_tenant_config(
    tenant_id: uuid.UUID,
    _identity=Depends(require_permission(Permission.TENANT_VIEW)),
    record: TenantRecord = Depends(get_guarded_tenant),
    scope: TenantScope = Depends(get_tenant_scope),
    registry: TenantRegistry = Depends(get_registry),
):
    """Tenant record with plan features and usage stats"""
    session = registry.session
    return TenantConfig(
        tenant=TenantResponse.from_record(record),
        features=features_for(record.subscription_plan),
        stats=TenantStats(
            outlet_count=OutletRepository(session, scope).count_active(),
            staff_count=count_active_staff(session, scope),
        ),
    )
