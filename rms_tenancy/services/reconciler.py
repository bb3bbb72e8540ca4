"""
Reconciliation of tenants stuck in PENDING

A tenant stays PENDING when provisioning rolled back or the process died
between provision and activate. Past the configured threshold one of three
actions applies: report (log only), retry (idempotent re-provision then
activate) or reap (drop any leftover schema and retire the record).
"""

from datetime import datetime, timedelta
from typing import Dict, Optional

from sqlmodel import Session
import structlog

from rms_tenancy.core.config import Settings, get_settings
from rms_tenancy.core.exceptions import RMSError
from rms_tenancy.core.tenant_scope import TenantScope
from rms_tenancy.models.tenant import utc_now
from rms_tenancy.services.provisioner import SchemaProvisioner
from rms_tenancy.services.registry import TenantRegistry
from rms_tenancy.services.staff import count_active_staff

logger = structlog.get_logger(__name__)

ACTIONS = ("report", "retry", "reap")


def reconcile_stale_tenants(
    session: Session,
    provisioner: SchemaProvisioner,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
    action: Optional[str] = None,
) -> Dict[str, int]:
    """Apply the stale-PENDING policy once and return counts"""
    settings = settings or get_settings()
    action = action or settings.STALE_PENDING_ACTION
    if action not in ACTIONS:
        raise ValueError(f"Unknown stale PENDING action: {action}")

    cutoff = (now or utc_now()) - timedelta(minutes=settings.STALE_PENDING_MINUTES)
    registry = TenantRegistry(session, settings)
    stale = registry.find_stale_pending(cutoff)

    results = {
        "processed": len(stale),
        "reported": 0,
        "activated": 0,
        "without_admin": 0,
        "reaped": 0,
        "failed": 0,
    }
    if not stale:
        logger.info("No stale PENDING tenants found")
        return results

    for record in stale:
        tenant_id = record.tenant_id
        schema_name = record.schema_name
        try:
            if action == "report":
                logger.warning(
                    f"Tenant {tenant_id} PENDING since {record.created_at.isoformat()}",
                    event_type="stale_pending_tenant",
                    schema_name=schema_name,
                )
                results["reported"] += 1
            elif action == "retry":
                provisioner.provision(tenant_id, schema_name, recovery=True)
                registry.activate(tenant_id)
                results["activated"] += 1
                # The admin password is never stored, so a rolled-back seed cannot be replayed
                if count_active_staff(session, TenantScope(schema_name)) == 0:
                    logger.warning(
                        f"Tenant {tenant_id} activated without an admin account; a password reset is required",
                        event_type="tenant_without_admin",
                        schema_name=schema_name,
                    )
                    results["without_admin"] += 1
            else:
                provisioner.deprovision(schema_name)
                registry.reap(tenant_id)
                results["reaped"] += 1
        except RMSError as e:
            logger.error(f"Failed to reconcile tenant {tenant_id}: {e.message}")
            results["failed"] += 1
            continue

    logger.info(f"Stale tenant reconciliation complete: {results}", action=action)
    return results
