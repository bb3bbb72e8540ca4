"""
Stale PENDING tenant reconciliation tests
"""

from datetime import datetime, timedelta, timezone

import pytest
from structlog.testing import capture_logs

from rms_tenancy.core.config import get_settings
from rms_tenancy.models.tenant import TenantStatus
from rms_tenancy.scripts import reap_stale_tenants
from rms_tenancy.services.reconciler import reconcile_stale_tenants
from rms_tenancy.services.registry import TenantRegistry

from conftest import tenant_payload


def register_pending(db, name, age_minutes):
    registry = TenantRegistry(db)
    record = registry.register(tenant_payload(business_name=name, email=f"{name.lower()}@example.com"))
    record.created_at = datetime.now(timezone.utc) - timedelta(minutes=age_minutes)
    db.add(record)
    db.commit()
    return record


def test_nothing_to_do(db, provisioner):
    results = reconcile_stale_tenants(db, provisioner, action="retry")
    assert results == {
        "processed": 0,
        "reported": 0,
        "activated": 0,
        "without_admin": 0,
        "reaped": 0,
        "failed": 0,
    }


def test_report_only_logs(db, provisioner):
    stale = register_pending(db, "Stale", age_minutes=60)
    register_pending(db, "Fresh", age_minutes=1)

    with capture_logs() as logs:
        results = reconcile_stale_tenants(db, provisioner, action="report")

    assert results["processed"] == 1
    assert results["reported"] == 1
    assert provisioner.provisioned == []
    assert TenantRegistry(db).get(stale.tenant_id).status == TenantStatus.PENDING
    events = [entry for entry in logs if entry.get("event_type") == "stale_pending_tenant"]
    assert len(events) == 1
    assert events[0]["schema_name"] == stale.schema_name


def test_retry_provisions_and_activates(db, provisioner):
    stale = register_pending(db, "Stale", age_minutes=60)

    results = reconcile_stale_tenants(db, provisioner, action="retry")

    assert results["activated"] == 1
    assert provisioner.provisioned == [stale.schema_name]
    assert TenantRegistry(db).get(stale.tenant_id).status == TenantStatus.ACTIVE


def test_retry_warns_when_tenant_has_no_admin(db, provisioner):
    stale = register_pending(db, "Stale", age_minutes=60)

    with capture_logs() as logs:
        results = reconcile_stale_tenants(db, provisioner, action="retry")

    assert results["activated"] == 1
    assert results["without_admin"] == 1
    events = [entry for entry in logs if entry.get("event_type") == "tenant_without_admin"]
    assert len(events) == 1
    assert events[0]["schema_name"] == stale.schema_name


def test_retry_failure_keeps_tenant_pending(db, provisioner):
    first = register_pending(db, "First", age_minutes=60)
    second = register_pending(db, "Second", age_minutes=90)
    provisioner.fail_with = "connection reset"

    results = reconcile_stale_tenants(db, provisioner, action="retry")

    assert results["processed"] == 2
    assert results["failed"] == 2
    registry = TenantRegistry(db)
    assert registry.get(first.tenant_id).status == TenantStatus.PENDING
    assert registry.get(second.tenant_id).status == TenantStatus.PENDING


def test_reap_drops_schema_and_retires_record(db, provisioner):
    stale = register_pending(db, "Stale", age_minutes=60)

    results = reconcile_stale_tenants(db, provisioner, action="reap")

    assert results["reaped"] == 1
    assert provisioner.dropped == [stale.schema_name]
    record = TenantRegistry(db).get(stale.tenant_id, include_deactivated=True)
    assert record.status == TenantStatus.DEACTIVATED
    assert record.schema_name == stale.schema_name


def test_threshold_comes_from_settings(db, provisioner):
    register_pending(db, "Stale", age_minutes=30)
    settings = get_settings().model_copy(update={"STALE_PENDING_MINUTES": 45})

    results = reconcile_stale_tenants(db, provisioner, settings=settings, action="report")
    assert results["processed"] == 0


def test_unknown_action_rejected(db, provisioner):
    with pytest.raises(ValueError):
        reconcile_stale_tenants(db, provisioner, action="delete")


def test_cron_entry_point(engine, provisioner, monkeypatch):
    monkeypatch.setattr(reap_stale_tenants, "get_engine", lambda: engine)
    monkeypatch.setattr(reap_stale_tenants, "SchemaProvisioner", lambda _engine: provisioner)
    monkeypatch.setattr(reap_stale_tenants, "setup_logging", lambda debug: None)

    assert reap_stale_tenants.main(["--action", "report"]) == 0
