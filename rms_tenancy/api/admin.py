"""
Operator endpoints - suspension, schema purge and stale tenant reconciliation
"""

from typing import Dict, Optional
import uuid

from fastapi import APIRouter, Depends, Query
import structlog

from rms_tenancy.core.config import Settings, get_settings
from rms_tenancy.core.dependencies import get_provisioner, get_registry, require_permission
from rms_tenancy.core.exceptions import ConflictError
from rms_tenancy.core.permissions import Permission
from rms_tenancy.models.tenant import TenantStatus
from rms_tenancy.schemas.tenant import MessageResponse, TenantResponse
from rms_tenancy.services.provisioner import SchemaProvisioner
from rms_tenancy.services.reconciler import ACTIONS, reconcile_stale_tenants
from rms_tenancy.services.registry import TenantRegistry

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/tenants/{tenant_id}/suspend", response_model=TenantResponse)
def suspend_tenant(
    tenant_id: uuid.UUID,
    operator=Depends(require_permission(Permission.TENANT_SUSPEND)),
    registry: TenantRegistry = Depends(get_registry),
):
    """Suspend an active tenant; its data becomes unreachable until resumed"""
    record = registry.suspend(tenant_id)
    logger.info(f"Tenant {tenant_id} suspended by operator {operator.user_id}")
    return TenantResponse.from_record(record)


@router.post("/tenants/{tenant_id}/resume", response_model=TenantResponse)
def resume_tenant(
    tenant_id: uuid.UUID,
    operator=Depends(require_permission(Permission.TENANT_SUSPEND)),
    registry: TenantRegistry = Depends(get_registry),
):
    """Resume a suspended tenant"""
    record = registry.resume(tenant_id)
    logger.info(f"Tenant {tenant_id} resumed by operator {operator.user_id}")
    return TenantResponse.from_record(record)


@router.delete("/tenants/{tenant_id}/schema", response_model=MessageResponse)
def purge_tenant_schema(
    tenant_id: uuid.UUID,
    operator=Depends(require_permission(Permission.TENANT_PURGE)),
    registry: TenantRegistry = Depends(get_registry),
    provisioner: SchemaProvisioner = Depends(get_provisioner),
):
    """Drop a deactivated tenant's schema and all of its data"""
    record = registry.get(tenant_id, include_deactivated=True)
    if record.status != TenantStatus.DEACTIVATED:
        raise ConflictError("Tenant must be deactivated before its schema is dropped")

    provisioner.deprovision(record.schema_name)
    logger.warning(
        f"Tenant schema purged by operator {operator.user_id}",
        tenant_id=str(tenant_id),
        schema_name=record.schema_name,
    )
    return MessageResponse(message=f"Schema {record.schema_name} dropped")


@router.post("/tenants/reconcile")
def reconcile_tenants(
    action: Optional[str] = Query(None, pattern=f"^({'|'.join(ACTIONS)})$"),
    _operator=Depends(require_permission(Permission.TENANT_RECONCILE)),
    registry: TenantRegistry = Depends(get_registry),
    provisioner: SchemaProvisioner = Depends(get_provisioner),
    settings: Settings = Depends(get_settings),
) -> Dict[str, int]:
    """Apply the stale PENDING policy once"""
    return reconcile_stale_tenants(registry.session, provisioner, settings=settings, action=action)
