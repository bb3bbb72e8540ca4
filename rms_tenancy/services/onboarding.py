"""
Tenant creation flow

register (PENDING, committed) -> provision (one DDL transaction) -> activate.
The steps are strictly sequenced for one tenant; flows for different tenants
share nothing, since every schema name is derived from its own tenant id.
"""

from typing import Optional
import uuid

from sqlalchemy.engine import Engine
from sqlmodel import Session
import structlog

from rms_tenancy.core.config import Settings, get_settings
from rms_tenancy.models.tenant import TenantRecord, TenantStatus
from rms_tenancy.schemas.tenant import AdminUserCreate, TenantCreate
from rms_tenancy.services.provisioner import SchemaProvisioner
from rms_tenancy.services.registry import TenantRegistry
from rms_tenancy.services.staff import admin_seed

logger = structlog.get_logger(__name__)


class TenantOnboarding:
    """Owns its sessions so it can outlive the request that started it"""

    def __init__(
        self,
        engine: Engine,
        provisioner: SchemaProvisioner,
        settings: Optional[Settings] = None,
    ):
        self.engine = engine
        self.provisioner = provisioner
        self.settings = settings or get_settings()

    def register(self, candidate: TenantCreate) -> TenantRecord:
        with Session(self.engine) as session:
            return TenantRegistry(session, self.settings).register(candidate)

    def complete(
        self,
        tenant_id: uuid.UUID,
        admin_user: Optional[AdminUserCreate] = None,
        recovery: bool = False,
    ) -> TenantRecord:
        """Provision the schema, then activate. A failed provision leaves the tenant PENDING"""
        with Session(self.engine) as session:
            registry = TenantRegistry(session, self.settings)
            record = registry.get(tenant_id)
            if record.status != TenantStatus.PENDING:
                return record

            seed = admin_seed(tenant_id, admin_user) if admin_user else None
            self.provisioner.provision(tenant_id, record.schema_name, seed=seed, recovery=recovery)
            return registry.activate(tenant_id)

    def create_tenant(self, candidate: TenantCreate) -> TenantRecord:
        record = self.register(candidate)
        return self.complete(record.tenant_id, candidate.admin_user)
