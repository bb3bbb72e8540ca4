"""
Tenant staff accounts used for login

Staff rows live in the tenant's own schema. The initial tenant admin is
seeded inside the provisioning transaction.
"""

from typing import Any, Mapping, Optional
import uuid

from sqlalchemy import func, insert, select
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session
import structlog

from rms_tenancy.core.auth import hash_password, verify_password
from rms_tenancy.core.exceptions import DatabaseError
from rms_tenancy.core.permissions import Role
from rms_tenancy.core.tenant_scope import TenantScope
from rms_tenancy.models.tenant_tables import staff
from rms_tenancy.schemas.tenant import AdminUserCreate

logger = structlog.get_logger(__name__)


def admin_seed(tenant_id: uuid.UUID, admin_user: AdminUserCreate):
    """Seed callback that inserts the tenant admin during provisioning"""

    def seed(conn: Connection, scope: TenantScope) -> None:
        scope.execute(
            conn,
            insert(staff).values(
                id=uuid.uuid4(),
                employee_id=f"ADMIN-{str(tenant_id)[:8]}",
                first_name=admin_user.first_name,
                last_name=admin_user.last_name,
                email=str(admin_user.email).lower(),
                role=Role.TENANT_ADMIN.value,
                password_hash=hash_password(admin_user.password),
                permissions={},
                is_active=True,
            ),
        )
        logger.info(f"Tenant admin seeded in {scope.schema_name}")

    return seed


def authenticate(
    session: Session,
    scope: TenantScope,
    email: str,
    password: str,
) -> Optional[Mapping[str, Any]]:
    """Return the active staff row for valid credentials, else None"""
    try:
        row = scope.execute(
            session,
            select(staff).where(
                staff.c.email == email.lower(),
                staff.c.is_active.is_(True),
            ),
        ).mappings().first()
    except SQLAlchemyError as e:
        logger.error(f"Staff lookup failed in {scope.schema_name}: {e}")
        raise DatabaseError("Authentication failed", str(e))

    if row is None or not verify_password(password, row["password_hash"]):
        return None
    return row


def count_active_staff(session: Session, scope: TenantScope) -> int:
    return scope.execute(
        session,
        select(func.count()).select_from(staff).where(staff.c.is_active.is_(True)),
    ).scalar_one()
