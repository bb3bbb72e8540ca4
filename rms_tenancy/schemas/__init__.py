"""
Schemas module
"""

from rms_tenancy.schemas.tenant import (
    TenantCreate,
    TenantUpdate,
    TenantResponse,
    TenantCreated,
    TenantPage,
    TenantConfig,
    MessageResponse,
)
from rms_tenancy.schemas.outlet import OutletCreate, OutletUpdate, OutletResponse
from rms_tenancy.schemas.token import LoginRequest, TokenPayload, TokenResponse

__all__ = [
    "TenantCreate",
    "TenantUpdate",
    "TenantResponse",
    "TenantCreated",
    "TenantPage",
    "TenantConfig",
    "MessageResponse",
    "OutletCreate",
    "OutletUpdate",
    "OutletResponse",
    "LoginRequest",
    "TokenPayload",
    "TokenResponse",
]
