"""
Pydantic schemas for authentication and tokens
"""

from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime, timezone
import uuid

from rms_tenancy.schemas.tenant import CamelModel


class TokenPayload(BaseModel):
    """JWT token payload"""
    sub: str = Field(..., description="User ID")
    tenant_id: Optional[str] = Field(default=None, description="Tenant ID (absent for operators)")
    role: str = Field(..., description="User role")
    exp: datetime = Field(..., description="Expiration time")
    iat: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Issued at")


class LoginRequest(CamelModel):
    """Tenant staff login"""
    tenant_id: uuid.UUID
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=100)


class StaffSummary(CamelModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    role: str


class TokenResponse(CamelModel):
    """Token response"""
    access_token: str
    token_type: str = "bearer"
    user: StaffSummary


class TokenIdentity(CamelModel):
    id: str
    tenant_id: Optional[uuid.UUID] = None
    role: str


class TokenValidation(CamelModel):
    valid: bool = True
    user: TokenIdentity


class RefreshResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
