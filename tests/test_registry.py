"""
Tenant registry tests against an in-memory database
"""

from datetime import datetime, timedelta, timezone
import uuid

import pytest
from structlog.testing import capture_logs

from rms_tenancy.core.config import get_settings
from rms_tenancy.core.exceptions import ConflictError, TenantNotFoundError, ValidationError
from rms_tenancy.models.tenant import SubscriptionPlan, TenantRecord, TenantStatus
from rms_tenancy.services.registry import TenantRegistry

from conftest import tenant_payload


@pytest.fixture
def registry(db):
    return TenantRegistry(db)


def test_register_creates_pending_record(registry):
    with capture_logs() as logs:
        record = registry.register(tenant_payload())

    assert record.status == TenantStatus.PENDING
    assert record.business_name == "Pizza Palace"
    assert record.contact_email == "owner@pizzapalace.com"
    assert record.subscription_plan == SubscriptionPlan.BASIC
    assert record.schema_name == "tenant_" + str(record.tenant_id).replace("-", "_")
    assert any(entry.get("event_type") == "tenant_registered" for entry in logs)


def test_register_stores_timezone_aware_timestamps(registry, db):
    before = datetime.now(timezone.utc)
    record = registry.register(tenant_payload())

    for column in ("created_at", "updated_at"):
        assert TenantRecord.__table__.c[column].type.timezone is True

    stored = db.get(TenantRecord, record.tenant_id)
    created_at = stored.created_at
    if created_at.tzinfo is None:
        # SQLite hands back naive values; they are still UTC
        created_at = created_at.replace(tzinfo=timezone.utc)
    assert before - timedelta(seconds=1) <= created_at <= datetime.now(timezone.utc)


def test_register_defaults_plan_to_basic(registry):
    record = registry.register(tenant_payload(plan=None))
    assert record.subscription_plan == SubscriptionPlan.BASIC


def test_register_rejects_blank_business_name(registry):
    with pytest.raises(ValidationError):
        registry.register(tenant_payload(business_name="   "))


def test_register_rejects_bad_email(registry):
    with pytest.raises(ValidationError) as exc_info:
        registry.register(tenant_payload(email="not-an-email"))
    assert any("email" in detail["field"] for detail in exc_info.value.details)


def test_register_rejects_unknown_plan(registry):
    with pytest.raises(ValidationError):
        registry.register(tenant_payload(plan="GOLD"))


def test_duplicate_email_of_active_tenant_conflicts(registry):
    first = registry.register(tenant_payload())
    registry.activate(first.tenant_id)

    with pytest.raises(ConflictError):
        registry.register(tenant_payload(business_name="Pizza Palace 2", email="OWNER@pizzapalace.com"))


def test_duplicate_email_allowed_by_policy(db):
    settings = get_settings().model_copy(update={"DUPLICATE_EMAIL_POLICY": "allow"})
    registry = TenantRegistry(db, settings)
    first = registry.register(tenant_payload())
    registry.activate(first.tenant_id)

    second = registry.register(tenant_payload(business_name="Pizza Palace Uptown"))
    assert second.tenant_id != first.tenant_id
    assert second.schema_name != first.schema_name


def test_activate_is_idempotent(registry):
    record = registry.register(tenant_payload())
    registry.activate(record.tenant_id)
    assert registry.activate(record.tenant_id).status == TenantStatus.ACTIVE


def test_get_unknown_tenant(registry):
    with pytest.raises(TenantNotFoundError):
        registry.get(uuid.uuid4())


def test_update_applies_whitelisted_fields(registry):
    record = registry.register(tenant_payload())
    registry.activate(record.tenant_id)

    updated = registry.update(
        record.tenant_id,
        {"businessName": "Pizza Palace Deluxe", "subscriptionPlan": "PREMIUM"},
    )
    assert updated.business_name == "Pizza Palace Deluxe"
    assert updated.subscription_plan == SubscriptionPlan.PREMIUM
    assert updated.schema_name == record.schema_name


def test_update_with_empty_patch_is_rejected(registry):
    record = registry.register(tenant_payload())
    with pytest.raises(ValidationError):
        registry.update(record.tenant_id, {})


@pytest.mark.parametrize("field", ["tenantId", "schemaName", "schema_name"])
def test_update_rejects_immutable_fields(registry, field):
    record = registry.register(tenant_payload())
    with pytest.raises(ValidationError):
        registry.update(record.tenant_id, {field: "tenant_other"})


def test_update_rejects_unknown_fields(registry):
    record = registry.register(tenant_payload())
    with pytest.raises(ValidationError):
        registry.update(record.tenant_id, {"status": "ACTIVE"})


def test_deactivate_is_idempotent(registry):
    record = registry.register(tenant_payload())
    registry.activate(record.tenant_id)

    first = registry.deactivate(record.tenant_id)
    second = registry.deactivate(record.tenant_id)

    assert first.status == second.status == TenantStatus.DEACTIVATED
    with pytest.raises(TenantNotFoundError):
        registry.get(record.tenant_id)
    assert registry.get(record.tenant_id, include_deactivated=True).status == TenantStatus.DEACTIVATED


def test_deactivated_tenant_cannot_be_reactivated(registry):
    record = registry.register(tenant_payload())
    registry.deactivate(record.tenant_id)
    with pytest.raises(ConflictError):
        registry.activate(record.tenant_id)


def test_suspend_and_resume(registry):
    record = registry.register(tenant_payload())
    registry.activate(record.tenant_id)

    assert registry.suspend(record.tenant_id).status == TenantStatus.SUSPENDED
    assert registry.suspend(record.tenant_id).status == TenantStatus.SUSPENDED
    assert registry.resume(record.tenant_id).status == TenantStatus.ACTIVE


def test_pending_tenant_cannot_be_suspended(registry):
    record = registry.register(tenant_payload())
    with pytest.raises(ConflictError):
        registry.suspend(record.tenant_id)


def test_resume_requires_suspended(registry):
    record = registry.register(tenant_payload())
    registry.activate(record.tenant_id)
    with pytest.raises(ConflictError):
        registry.resume(record.tenant_id)


def test_list_paginates_and_filters(registry):
    for i in range(5):
        record = registry.register(tenant_payload(business_name=f"Cafe {i}", email=f"cafe{i}@example.com"))
        if i % 2 == 0:
            registry.activate(record.tenant_id)

    page, total = registry.list(page=1, limit=2)
    assert total == 5
    assert len(page) == 2

    last_page, _ = registry.list(page=3, limit=2)
    assert len(last_page) == 1

    active, active_total = registry.list(status_filter=TenantStatus.ACTIVE)
    assert active_total == 3
    assert all(record.status == TenantStatus.ACTIVE for record in active)


def test_list_rejects_bad_paging(registry):
    with pytest.raises(ValidationError):
        registry.list(page=0)
    with pytest.raises(ValidationError):
        registry.list(limit=101)


def test_find_stale_pending_and_reap(registry, db):
    stale = registry.register(tenant_payload(business_name="Stale", email="stale@example.com"))
    fresh = registry.register(tenant_payload(business_name="Fresh", email="fresh@example.com"))
    stale.created_at = datetime.now(timezone.utc) - timedelta(hours=1)
    db.add(stale)
    db.commit()

    found = registry.find_stale_pending(datetime.now(timezone.utc) - timedelta(minutes=10))
    assert [record.tenant_id for record in found] == [stale.tenant_id]

    assert registry.reap(stale.tenant_id).status == TenantStatus.DEACTIVATED
    with pytest.raises(ConflictError):
        registry.reap(stale.tenant_id)
    assert registry.get(fresh.tenant_id).status == TenantStatus.PENDING
