"""
Pydantic schemas for tenant registration, update and responses
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
import uuid

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from rms_tenancy.models.tenant import (
    FeatureLimits,
    SubscriptionPlan,
    TenantRecord,
    TenantStatus,
)

PHONE_PATTERN = r"^[+]?[1-9][\d\s\-()]{7,15}$"


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Address(CamelModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    zip_code: Optional[str] = None


class ContactInfo(CamelModel):
    email: EmailStr
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    address: Optional[Address] = None


class AdminUserCreate(CamelModel):
    """Initial tenant admin account created inside the tenant schema"""
    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=100)


class TenantCreate(CamelModel):
    """Tenant registration candidate"""
    business_name: str = Field(..., max_length=100)
    contact_info: ContactInfo
    subscription_plan: SubscriptionPlan = SubscriptionPlan.BASIC
    admin_user: Optional[AdminUserCreate] = None

    @field_validator("business_name")
    @classmethod
    def business_name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Business name must not be empty")
        return value

    @field_validator("subscription_plan", mode="before")
    @classmethod
    def default_missing_plan(cls, value: Any) -> Any:
        return SubscriptionPlan.BASIC if value is None else value


class TenantUpdate(CamelModel):
    """Whitelisted mutable tenant fields"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    business_name: Optional[str] = Field(default=None, max_length=100)
    contact_info: Optional[ContactInfo] = None
    subscription_plan: Optional[SubscriptionPlan] = None

    @field_validator("business_name")
    @classmethod
    def business_name_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("Business name must not be empty")
        return value


class TenantResponse(CamelModel):
    tenant_id: uuid.UUID
    business_name: str
    contact_info: Dict[str, Any]
    subscription_plan: SubscriptionPlan
    schema_name: str
    status: TenantStatus
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: TenantRecord) -> "TenantResponse":
        return cls(
            tenant_id=record.tenant_id,
            business_name=record.business_name,
            contact_info=record.contact_info,
            subscription_plan=record.subscription_plan,
            schema_name=record.schema_name,
            status=record.status,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class TenantCreated(CamelModel):
    tenant_id: uuid.UUID
    schema_name: str
    status: TenantStatus


class PageMeta(CamelModel):
    total: int
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "PageMeta":
        total_pages = (total + limit - 1) // limit if limit else 0
        return cls(
            total=total,
            page=page,
            limit=limit,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


class TenantPage(CamelModel):
    data: List[TenantResponse]
    meta: PageMeta


class TenantStats(CamelModel):
    outlet_count: int
    staff_count: int


class TenantConfig(CamelModel):
    tenant: TenantResponse
    features: FeatureLimits
    stats: TenantStats


class MessageResponse(BaseModel):
    message: str
