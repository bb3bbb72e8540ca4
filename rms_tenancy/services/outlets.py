"""
Outlet operations inside a tenant schema

Callers must already have passed the access guard; every statement here is
qualified with the guarded tenant's schema.
"""

from typing import Any, Dict, List, Mapping
import uuid

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session
import structlog

from rms_tenancy.core.exceptions import (
    DatabaseError,
    PlanLimitExceededError,
    ResourceNotFoundError,
    ValidationError,
)
from rms_tenancy.core.tenant_scope import TenantScope
from rms_tenancy.models.tenant import TenantRecord, features_for, utc_now
from rms_tenancy.models.tenant_tables import outlets
from rms_tenancy.schemas.outlet import OutletCreate, OutletUpdate

logger = structlog.get_logger(__name__)


class OutletRepository:
    def __init__(self, session: Session, scope: TenantScope):
        self.session = session
        self.scope = scope

    def _run(self, statement, action: str):
        try:
            return self.scope.execute(self.session, statement)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Outlet {action} failed in {self.scope.schema_name}: {e}")
            raise DatabaseError(f"Failed to {action} outlet", str(e))

    def list(self, include_inactive: bool = False) -> List[Mapping[str, Any]]:
        query = select(outlets).order_by(outlets.c.created_at)
        if not include_inactive:
            query = query.where(outlets.c.is_active.is_(True))
        return list(self._run(query, "list").mappings().all())

    def get(self, outlet_id: uuid.UUID) -> Mapping[str, Any]:
        row = self._run(select(outlets).where(outlets.c.id == outlet_id), "get").mappings().first()
        if row is None:
            raise ResourceNotFoundError("Outlet", outlet_id)
        return row

    def count_active(self) -> int:
        return self._run(
            select(func.count()).select_from(outlets).where(outlets.c.is_active.is_(True)),
            "count",
        ).scalar_one()

    def create(self, tenant: TenantRecord, data: OutletCreate) -> Mapping[str, Any]:
        limits = features_for(tenant.subscription_plan)
        if limits.max_outlets is not None and self.count_active() >= limits.max_outlets:
            raise PlanLimitExceededError(
                f"Outlet limit reached for plan {tenant.subscription_plan}",
                {"maxOutlets": limits.max_outlets},
            )

        outlet_id = uuid.uuid4()
        values = data.model_dump()
        values["email"] = str(values["email"]) if values.get("email") else None
        self._run(insert(outlets).values(id=outlet_id, **values), "create")
        self.session.commit()
        logger.info(f"Outlet created: {outlet_id}", schema_name=self.scope.schema_name)
        return self.get(outlet_id)

    def update(self, outlet_id: uuid.UUID, data: OutletUpdate) -> Mapping[str, Any]:
        changes: Dict[str, Any] = data.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No valid fields to update")
        if changes.get("email"):
            changes["email"] = str(changes["email"])

        self.get(outlet_id)
        changes["updated_at"] = utc_now()
        self._run(update(outlets).where(outlets.c.id == outlet_id).values(**changes), "update")
        self.session.commit()
        logger.info(f"Outlet updated: {outlet_id}", schema_name=self.scope.schema_name)
        return self.get(outlet_id)

    def delete(self, outlet_id: uuid.UUID) -> None:
        self.get(outlet_id)
        self._run(delete(outlets).where(outlets.c.id == outlet_id), "delete")
        self.session.commit()
        logger.info(f"Outlet deleted: {outlet_id}", schema_name=self.scope.schema_name)
