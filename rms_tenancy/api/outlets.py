"""
Outlets API endpoints (tenant-scoped)
"""

from typing import List
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session
import structlog

from rms_tenancy.core.database import get_session
from rms_tenancy.core.dependencies import get_guarded_tenant, get_tenant_scope, require_permission
from rms_tenancy.core.permissions import Permission
from rms_tenancy.core.tenant_scope import TenantScope
from rms_tenancy.models.tenant import TenantRecord
from rms_tenancy.schemas.outlet import OutletCreate, OutletResponse, OutletUpdate
from rms_tenancy.schemas.tenant import MessageResponse
from rms_tenancy.services.outlets import OutletRepository

logger = structlog.get_logger(__name__)
router = APIRouter()


def get_outlet_repository(
    scope: TenantScope = Depends(get_tenant_scope),
    session: Session = Depends(get_session),
) -> OutletRepository:
    return OutletRepository(session, scope)


@router.get("/", response_model=List[OutletResponse])
def list_outlets(
    tenant_id: uuid.UUID,
    include_inactive: bool = False,
    _identity=Depends(require_permission(Permission.OUTLET_VIEW)),
    outlets: OutletRepository = Depends(get_outlet_repository),
):
    """List outlets of the tenant"""
    return [OutletResponse.model_validate(dict(row)) for row in outlets.list(include_inactive)]


@router.post("/", response_model=OutletResponse, status_code=status.HTTP_201_CREATED)
def create_outlet(
    tenant_id: uuid.UUID,
    outlet_data: OutletCreate,
    _identity=Depends(require_permission(Permission.OUTLET_EDIT)),
    tenant: TenantRecord = Depends(get_guarded_tenant),
    outlets: OutletRepository = Depends(get_outlet_repository),
):
    """Create an outlet, subject to the plan's outlet limit"""
    return OutletResponse.model_validate(dict(outlets.create(tenant, outlet_data)))


@router.get("/{outlet_id}", response_model=OutletResponse)
def get_outlet(
    tenant_id: uuid.UUID,
    outlet_id: uuid.UUID,
    _identity=Depends(require_permission(Permission.OUTLET_VIEW)),
    outlets: OutletRepository = Depends(get_outlet_repository),
):
    """Get outlet by ID"""
    return OutletResponse.model_validate(dict(outlets.get(outlet_id)))


@router.put("/{outlet_id}", response_model=OutletResponse)
def update_outlet(
    tenant_id: uuid.UUID,
    outlet_id: uuid.UUID,
    outlet_data: OutletUpdate,
    _identity=Depends(require_permission(Permission.OUTLET_EDIT)),
    outlets: OutletRepository = Depends(get_outlet_repository),
):
    """Update outlet"""
    return OutletResponse.model_validate(dict(outlets.update(outlet_id, outlet_data)))


@router.delete("/{outlet_id}", response_model=MessageResponse)
def delete_outlet(
    tenant_id: uuid.UUID,
    outlet_id: uuid.UUID,
    _identity=Depends(require_permission(Permission.OUTLET_EDIT)),
    outlets: OutletRepository = Depends(get_outlet_repository),
):
    """Delete outlet"""
    outlets.delete(outlet_id)
    return MessageResponse(message="Outlet deleted successfully")
