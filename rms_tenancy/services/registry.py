"""
Tenant registry service

Authoritative mapping of tenant identity to metadata, plan, schema name and
status. Records are never physically removed; deactivated tenants are hidden
from normal lookups but stay in storage for audit.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union
import uuid

import pydantic
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select
import structlog

from rms_tenancy.core.config import Settings, get_settings
from rms_tenancy.core.exceptions import (
    ConflictError,
    DatabaseError,
    TenantNotFoundError,
    ValidationError,
)
from rms_tenancy.core.identifiers import schema_name_for
from rms_tenancy.models.tenant import TenantRecord, TenantStatus, utc_now
from rms_tenancy.schemas.tenant import TenantCreate, TenantUpdate

logger = structlog.get_logger(__name__)

IMMUTABLE_FIELDS = {"tenantId", "tenant_id", "schemaName", "schema_name", "id"}


def _validation_error(message: str, exc: pydantic.ValidationError) -> ValidationError:
    return ValidationError(
        message,
        [
            {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ],
    )


class TenantRegistry:
    """Registry operations bound to one database session"""

    def __init__(self, session: Session, settings: Optional[Settings] = None):
        self.session = session
        self.settings = settings or get_settings()

    def _load(self, tenant_id: uuid.UUID) -> TenantRecord:
        record = self.session.get(TenantRecord, tenant_id)
        if record is None:
            raise TenantNotFoundError(tenant_id)
        return record

    def _commit(self, record: TenantRecord, action: str) -> TenantRecord:
        try:
            self.session.add(record)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to {action} tenant {record.tenant_id}: {e}")
            raise DatabaseError(f"Failed to {action} tenant", str(e))
        self.session.refresh(record)
        return record

    def register(self, candidate: Union[TenantCreate, Dict[str, Any]]) -> TenantRecord:
        """Validate a candidate and insert it as PENDING"""
        if not isinstance(candidate, TenantCreate):
            try:
                candidate = TenantCreate.model_validate(candidate)
            except pydantic.ValidationError as e:
                raise _validation_error("Invalid tenant registration", e)

        email = str(candidate.contact_info.email).lower()
        if self.settings.DUPLICATE_EMAIL_POLICY == "reject":
            existing = self.session.exec(
                select(TenantRecord).where(
                    TenantRecord.contact_email == email,
                    TenantRecord.status == TenantStatus.ACTIVE,
                )
            ).first()
            if existing is not None:
                logger.info(f"Registration rejected, email already owns tenant {existing.tenant_id}")
                raise ConflictError("A tenant is already registered with this contact email")

        tenant_id = uuid.uuid4()
        address = candidate.contact_info.address
        record = TenantRecord(
            tenant_id=tenant_id,
            business_name=candidate.business_name,
            contact_email=email,
            contact_phone=candidate.contact_info.phone,
            contact_address=address.model_dump(by_alias=True) if address else None,
            subscription_plan=candidate.subscription_plan,
            schema_name=schema_name_for(tenant_id, self.settings.TENANT_SCHEMA_PREFIX),
            status=TenantStatus.PENDING,
        )

        try:
            self.session.add(record)
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise ConflictError("Tenant identity collision", str(e.orig))
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError("Failed to register tenant", str(e))
        self.session.refresh(record)

        logger.info(
            "Tenant registered",
            event_type="tenant_registered",
            tenant_id=str(record.tenant_id),
            schema_name=record.schema_name,
            plan=record.subscription_plan,
        )
        return record

    def activate(self, tenant_id: uuid.UUID) -> TenantRecord:
        """PENDING -> ACTIVE; only after the schema is committed"""
        record = self._load(tenant_id)
        if record.status == TenantStatus.ACTIVE:
            return record
        if record.status != TenantStatus.PENDING:
            raise ConflictError(f"Cannot activate tenant in status {TenantStatus(record.status).value}")
        record.transition_to_active()
        record = self._commit(record, "activate")
        logger.info("Tenant activated", event_type="tenant_activated", tenant_id=str(tenant_id))
        return record

    def get(self, tenant_id: uuid.UUID, include_deactivated: bool = False) -> TenantRecord:
        record = self._load(tenant_id)
        if record.status == TenantStatus.DEACTIVATED and not include_deactivated:
            raise TenantNotFoundError(tenant_id)
        return record

    def update(self, tenant_id: uuid.UUID, patch: Union[TenantUpdate, Dict[str, Any]]) -> TenantRecord:
        """Apply a partial update restricted to business name, contact info and plan"""
        if isinstance(patch, dict):
            immutable = sorted(IMMUTABLE_FIELDS.intersection(patch))
            if immutable:
                raise ValidationError(f"Field(s) cannot be changed: {', '.join(immutable)}")
            if not patch:
                raise ValidationError("No valid fields to update")
            try:
                patch = TenantUpdate.model_validate(patch)
            except pydantic.ValidationError as e:
                raise _validation_error("Invalid tenant update", e)

        changes = patch.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise ValidationError("No valid fields to update")

        record = self.get(tenant_id)

        if "business_name" in changes:
            record.business_name = patch.business_name
        if "contact_info" in changes:
            contact = patch.contact_info
            record.contact_email = str(contact.email).lower()
            record.contact_phone = contact.phone
            record.contact_address = contact.address.model_dump(by_alias=True) if contact.address else None
        if "subscription_plan" in changes:
            record.subscription_plan = patch.subscription_plan

        record.updated_at = utc_now()
        record = self._commit(record, "update")
        logger.info(f"Tenant updated: {tenant_id}", fields=sorted(changes))
        return record

    def deactivate(self, tenant_id: uuid.UUID) -> TenantRecord:
        """Soft delete; the schema is retained. Repeating it is a no-op"""
        record = self._load(tenant_id)
        if record.status == TenantStatus.DEACTIVATED:
            logger.debug(f"Tenant already deactivated: {tenant_id}")
            return record
        record.transition_to_deactivated()
        record = self._commit(record, "deactivate")
        logger.info("Tenant deactivated", event_type="tenant_deactivated", tenant_id=str(tenant_id))
        return record

    def suspend(self, tenant_id: uuid.UUID) -> TenantRecord:
        record = self.get(tenant_id)
        if record.status == TenantStatus.SUSPENDED:
            return record
        try:
            record.transition_to_suspended()
        except ValueError as e:
            raise ConflictError(str(e))
        record = self._commit(record, "suspend")
        logger.info("Tenant suspended", event_type="tenant_suspended", tenant_id=str(tenant_id))
        return record

    def resume(self, tenant_id: uuid.UUID) -> TenantRecord:
        record = self.get(tenant_id)
        if record.status != TenantStatus.SUSPENDED:
            raise ConflictError(f"Cannot resume tenant in status {TenantStatus(record.status).value}")
        record.transition_to_active()
        record = self._commit(record, "resume")
        logger.info("Tenant resumed", event_type="tenant_resumed", tenant_id=str(tenant_id))
        return record

    def list(
        self,
        page: int = 1,
        limit: int = 20,
        status_filter: Optional[TenantStatus] = None,
    ) -> Tuple[List[TenantRecord], int]:
        """Paginated enumeration for operators"""
        if page < 1 or not 1 <= limit <= 100:
            raise ValidationError("page must be >= 1 and limit between 1 and 100")

        query = select(TenantRecord)
        count_query = select(func.count()).select_from(TenantRecord)
        if status_filter is not None:
            query = query.where(TenantRecord.status == status_filter)
            count_query = count_query.where(TenantRecord.status == status_filter)

        total = self.session.exec(count_query).one()
        records = self.session.exec(
            query.order_by(TenantRecord.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()
        return list(records), total

    def find_stale_pending(self, older_than: datetime) -> List[TenantRecord]:
        """PENDING records created before the cutoff"""
        return list(
            self.session.exec(
                select(TenantRecord).where(
                    TenantRecord.status == TenantStatus.PENDING,
                    TenantRecord.created_at < older_than,
                )
            ).all()
        )

    def reap(self, tenant_id: uuid.UUID) -> TenantRecord:
        """Abandon a PENDING tenant; its schema name stays retired"""
        record = self._load(tenant_id)
        if record.status != TenantStatus.PENDING:
            raise ConflictError(f"Only PENDING tenants can be reaped, got {TenantStatus(record.status).value}")
        record.transition_to_deactivated()
        record = self._commit(record, "reap")
        logger.info("Stale tenant reaped", event_type="tenant_reaped", tenant_id=str(tenant_id))
        return record
