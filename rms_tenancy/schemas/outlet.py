"""
Pydantic schemas for outlets (tenant-scoped)
"""

from datetime import datetime
from typing import Any, Dict, Optional
import uuid

from pydantic import ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from rms_tenancy.schemas.tenant import CamelModel, PHONE_PATTERN


class OutletCreate(CamelModel):
    name: str = Field(..., min_length=2, max_length=100)
    address: str = Field(..., min_length=5, max_length=500)
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    email: Optional[EmailStr] = None
    operating_hours: Dict[str, Any] = Field(default_factory=dict)
    tax_config: Dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True


class OutletUpdate(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    address: Optional[str] = Field(default=None, min_length=5, max_length=500)
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    email: Optional[EmailStr] = None
    operating_hours: Optional[Dict[str, Any]] = None
    tax_config: Optional[Dict[str, Any]] = None
    is_active: Optional[bool] = None


class OutletResponse(CamelModel):
    id: uuid.UUID
    name: str
    address: str
    phone: Optional[str] = None
    email: Optional[str] = None
    operating_hours: Dict[str, Any]
    tax_config: Dict[str, Any]
    is_active: bool
    created_at: datetime
    updated_at: datetime
