"""
Schema provisioner - the only component that runs DDL

Provisioning happens on one connection inside one transaction: the schema,
every table of the fixed table set, their indexes and any seed rows commit
together or not at all. PostgreSQL DDL is transactional, so a failure at any
step leaves no partial schema behind.
"""

from typing import Callable, List, Optional
import uuid

from sqlalchemy import MetaData, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.schema import CreateIndex, CreateTable
import structlog

from rms_tenancy.core.exceptions import DatabaseError
from rms_tenancy.core.identifiers import quote_identifier, validate_identifier
from rms_tenancy.core.tenant_scope import TenantScope
from rms_tenancy.models.tenant_tables import tenant_metadata

logger = structlog.get_logger(__name__)

SeedCallback = Callable[[Connection, TenantScope], None]


class SchemaProvisioner:
    """Creates and drops per-tenant schemas"""

    def __init__(self, engine: Engine, metadata: MetaData = tenant_metadata):
        self.engine = engine
        self.metadata = metadata

    def provision(
        self,
        tenant_id: uuid.UUID,
        schema_name: str,
        seed: Optional[SeedCallback] = None,
        recovery: bool = False,
    ) -> None:
        """
        Create the tenant schema with its full table set.

        ``recovery`` switches every statement to IF NOT EXISTS so a retry after
        a crashed attempt succeeds over objects that already exist. The normal
        path creates everything fresh and fails on any pre-existing object.
        """
        schema_name = validate_identifier(schema_name)
        scope = TenantScope(schema_name)
        if_not_exists = "IF NOT EXISTS " if recovery else ""

        logger.info(
            "Provisioning tenant schema",
            tenant_id=str(tenant_id),
            schema_name=schema_name,
            recovery=recovery,
        )
        try:
            with self.engine.begin() as conn:
                conn.execute(text(f"CREATE SCHEMA {if_not_exists}{quote_identifier(schema_name)}"))
                self._create_objects(conn, scope, recovery)
                if seed is not None:
                    seed(conn, scope)
        except SQLAlchemyError as e:
            logger.error(
                "Schema provisioning rolled back",
                tenant_id=str(tenant_id),
                schema_name=schema_name,
                error=str(e),
            )
            raise DatabaseError(f"Failed to provision tenant schema: {schema_name}", str(e))

        logger.info(
            "Tenant schema provisioned",
            event_type="schema_provisioned",
            tenant_id=str(tenant_id),
            schema_name=schema_name,
        )

    def _create_objects(self, conn: Connection, scope: TenantScope, recovery: bool) -> None:
        options = scope.execution_options
        for table in self.metadata.sorted_tables:
            conn.execute(CreateTable(table, if_not_exists=recovery), execution_options=options)
        for table in self.metadata.sorted_tables:
            for index in sorted(table.indexes, key=lambda ix: ix.name):
                conn.execute(CreateIndex(index, if_not_exists=recovery), execution_options=options)

    def deprovision(self, schema_name: str) -> None:
        """DROP SCHEMA ... CASCADE; privileged hard delete only"""
        schema_name = validate_identifier(schema_name)
        try:
            with self.engine.begin() as conn:
                conn.execute(text(f"DROP SCHEMA IF EXISTS {quote_identifier(schema_name)} CASCADE"))
        except SQLAlchemyError as e:
            logger.error(f"Failed to drop schema {schema_name}: {e}")
            raise DatabaseError(f"Failed to drop tenant schema: {schema_name}", str(e))
        logger.warning("Tenant schema dropped", event_type="schema_deprovisioned", schema_name=schema_name)

    def schema_exists(self, schema_name: str) -> bool:
        schema_name = validate_identifier(schema_name)
        with self.engine.connect() as conn:
            found = conn.execute(
                text("SELECT 1 FROM information_schema.schemata WHERE schema_name = :name"),
                {"name": schema_name},
            ).first()
        return found is not None

    def list_tables(self, schema_name: str) -> List[str]:
        schema_name = validate_identifier(schema_name)
        with self.engine.connect() as conn:
            rows = conn.execute(
                text(
                    "SELECT table_name FROM information_schema.tables "
                    "WHERE table_schema = :name ORDER BY table_name"
                ),
                {"name": schema_name},
            ).all()
        return [row[0] for row in rows]
