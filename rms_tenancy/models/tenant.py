"""
Tenant registry model - system-wide source of truth for tenant identity,
plan, schema name and lifecycle status
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
import uuid

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy import JSON, Column, DateTime, String
from sqlalchemy import Enum as SAEnum
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SubscriptionPlan(str, Enum):
    """Subscription plans with fixed feature limits"""
    BASIC = "BASIC"
    PREMIUM = "PREMIUM"
    ENTERPRISE = "ENTERPRISE"


class TenantStatus(str, Enum):
    """Lifecycle status of a tenant"""
    PENDING = "PENDING"           # Registered, schema not yet confirmed
    ACTIVE = "ACTIVE"             # Schema committed, tenant usable
    SUSPENDED = "SUSPENDED"       # Visible, data access blocked
    DEACTIVATED = "DEACTIVATED"   # Soft deleted, kept for audit


class TenantRecord(SQLModel, table=True):
    """One row per tenant in the system-wide registry"""

    __tablename__ = "tenant_registry"

    tenant_id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    # Business info
    business_name: str = Field(max_length=255, nullable=False)
    contact_email: str = Field(index=True, max_length=255, nullable=False)
    contact_phone: Optional[str] = Field(default=None, max_length=50)
    contact_address: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))

    subscription_plan: SubscriptionPlan = Field(
        default=SubscriptionPlan.BASIC,
        sa_column=Column(
            SAEnum(SubscriptionPlan, native_enum=False, length=20),
            nullable=False,
        ),
    )

    # Derived from tenant_id, never reused
    schema_name: str = Field(sa_column=Column(String(63), nullable=False, unique=True, index=True))

    status: TenantStatus = Field(
        default=TenantStatus.PENDING,
        sa_column=Column(
            SAEnum(TenantStatus, native_enum=False, length=20),
            nullable=False,
            index=True,
        ),
    )

    # Timestamps
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )

    @property
    def contact_info(self) -> Dict[str, Any]:
        return {
            "email": self.contact_email,
            "phone": self.contact_phone,
            "address": self.contact_address,
        }

    def can_transition_to(self, new_status: TenantStatus) -> bool:
        valid_transitions = {
            TenantStatus.PENDING: [TenantStatus.ACTIVE, TenantStatus.DEACTIVATED],
            TenantStatus.ACTIVE: [TenantStatus.SUSPENDED, TenantStatus.DEACTIVATED],
            TenantStatus.SUSPENDED: [TenantStatus.ACTIVE, TenantStatus.DEACTIVATED],
            TenantStatus.DEACTIVATED: [],  # Final state
        }
        return new_status in valid_transitions.get(self.status, [])

    def _transition(self, new_status: TenantStatus) -> None:
        if not self.can_transition_to(new_status):
            raise ValueError(
                f"Cannot transition tenant from {TenantStatus(self.status).value} to {new_status.value}"
            )
        self.status = new_status
        self.updated_at = utc_now()

    def transition_to_active(self) -> None:
        """PENDING -> ACTIVE after schema creation, or SUSPENDED -> ACTIVE"""
        self._transition(TenantStatus.ACTIVE)

    def transition_to_suspended(self) -> None:
        self._transition(TenantStatus.SUSPENDED)

    def transition_to_deactivated(self) -> None:
        self._transition(TenantStatus.DEACTIVATED)

    def is_usable(self) -> bool:
        """Tenant-scoped data may only be touched for ACTIVE tenants"""
        return self.status == TenantStatus.ACTIVE


class FeatureLimits(BaseModel):
    """Plan limits; None means unlimited"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    max_outlets: Optional[int]
    max_staff: Optional[int]
    max_menu_items: Optional[int]
    custom_reports: bool
    api_access: bool
    analytics_retention_days: int
    support_level: str


PLAN_FEATURES: Dict[SubscriptionPlan, FeatureLimits] = {
    SubscriptionPlan.BASIC: FeatureLimits(
        max_outlets=1,
        max_staff=10,
        max_menu_items=100,
        custom_reports=False,
        api_access=False,
        analytics_retention_days=30,
        support_level="email",
    ),
    SubscriptionPlan.PREMIUM: FeatureLimits(
        max_outlets=5,
        max_staff=50,
        max_menu_items=500,
        custom_reports=True,
        api_access=True,
        analytics_retention_days=90,
        support_level="priority",
    ),
    SubscriptionPlan.ENTERPRISE: FeatureLimits(
        max_outlets=None,
        max_staff=None,
        max_menu_items=None,
        custom_reports=True,
        api_access=True,
        analytics_retention_days=365,
        support_level="dedicated",
    ),
}


def features_for(plan: SubscriptionPlan) -> FeatureLimits:
    """Map a subscription plan to its feature limits"""
    return PLAN_FEATURES[SubscriptionPlan(plan)]
