"""
Test configuration for pytest
"""

import os

# Test environment variables (before any settings are loaded)
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret"
os.environ["ENVIRONMENT"] = "test"

from datetime import timedelta
import threading
from typing import Dict, Generator, List, Optional
import uuid

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.schema import CreateTable
from sqlmodel import Session, SQLModel, create_engine
import structlog

from rms_tenancy.core.auth import create_access_token
from rms_tenancy.core.database import get_engine
from rms_tenancy.core.dependencies import get_provisioner
from rms_tenancy.core.exceptions import DatabaseError
from rms_tenancy.core.permissions import Role
from rms_tenancy.core.tenant_scope import TenantScope
import rms_tenancy.gateway.main  # noqa: F401
from rms_tenancy.main import app
from rms_tenancy.services.provisioner import SchemaProvisioner

# Both apps configure logging at import; let structlog.testing.capture_logs see every logger
structlog.configure(cache_logger_on_first_use=False)


class StubProvisioner(SchemaProvisioner):
    """
    Records provisioning calls and emulates tenant schemas on SQLite by
    attaching one in-memory database per schema name. Only tables are
    created; indexes and real DDL atomicity are covered by the PostgreSQL
    suite.
    """

    def __init__(self, engine: Engine):
        super().__init__(engine)
        self.provisioned: List[str] = []
        self.dropped: List[str] = []
        self.attached: set = set()
        self.fail_with: Optional[str] = None
        self.gate: Optional[threading.Event] = None

    def provision(self, tenant_id, schema_name, seed=None, recovery=False):
        if self.gate is not None:
            self.gate.wait(timeout=10)
        if self.fail_with:
            raise DatabaseError(f"Failed to provision tenant schema: {schema_name}", self.fail_with)

        scope = TenantScope(schema_name)
        with self.engine.begin() as conn:
            if schema_name not in self.attached:
                conn.exec_driver_sql(f"ATTACH DATABASE ':memory:' AS {schema_name}")
                self.attached.add(schema_name)
            for table in self.metadata.sorted_tables:
                conn.execute(
                    CreateTable(table, if_not_exists=True),
                    execution_options=scope.execution_options,
                )
            if seed is not None:
                seed(conn, scope)
        self.provisioned.append(schema_name)

    def deprovision(self, schema_name):
        self.dropped.append(schema_name)


class QueryCounter:
    """Counts statements sent to the database"""

    def __init__(self, engine: Engine):
        self.engine = engine
        self.statements: List[str] = []
        event.listen(engine, "before_cursor_execute", self._record)

    def _record(self, conn, cursor, statement, parameters, context, executemany):
        self.statements.append(statement)

    @property
    def count(self) -> int:
        return len(self.statements)

    def reset(self) -> None:
        self.statements.clear()

    def remove(self) -> None:
        event.remove(self.engine, "before_cursor_execute", self._record)


@pytest.fixture(scope="function")
def engine() -> Generator[Engine, None, None]:
    """In-memory SQLite shared by every session of one test"""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(test_engine)
    yield test_engine
    SQLModel.metadata.drop_all(test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def db(engine: Engine) -> Generator[Session, None, None]:
    """Create a clean database session for each test"""
    with Session(engine) as session:
        yield session


@pytest.fixture
def provisioner(engine: Engine) -> StubProvisioner:
    return StubProvisioner(engine)


@pytest.fixture
def client(engine: Engine, provisioner: StubProvisioner) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_provisioner] = lambda: provisioner
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def query_counter(engine: Engine) -> Generator[QueryCounter, None, None]:
    counter = QueryCounter(engine)
    yield counter
    counter.remove()


def auth_headers(
    tenant_id: Optional[uuid.UUID],
    role: str = Role.TENANT_ADMIN.value,
    user_id: Optional[uuid.UUID] = None,
    expires_delta: Optional[timedelta] = None,
    tenant_header: bool = True,
) -> Dict[str, str]:
    """Bearer token plus the tenant header the gateway would forward"""
    token = create_access_token(
        user_id=user_id or uuid.uuid4(),
        tenant_id=tenant_id,
        role=role,
        expires_delta=expires_delta,
    )
    headers = {"Authorization": f"Bearer {token}"}
    if tenant_header and tenant_id is not None:
        headers["x-tenant-id"] = str(tenant_id)
    return headers


def operator_headers() -> Dict[str, str]:
    return auth_headers(None, role=Role.SYSTEM_ADMIN.value)


def tenant_payload(
    business_name: str = "Pizza Palace",
    email: str = "owner@pizzapalace.com",
    plan: Optional[str] = "BASIC",
    admin_user: Optional[dict] = None,
) -> dict:
    payload = {
        "businessName": business_name,
        "contactInfo": {
            "email": email,
            "phone": "+1 555 123 4567",
            "address": {"street": "1 Main St", "city": "Springfield", "country": "US"},
        },
    }
    if plan is not None:
        payload["subscriptionPlan"] = plan
    if admin_user is not None:
        payload["adminUser"] = admin_user
    return payload


ADMIN_USER = {
    "firstName": "Mario",
    "lastName": "Rossi",
    "email": "mario@pizzapalace.com",
    "password": "s3cret-pass",
}


@pytest.fixture
def create_tenant(client: TestClient):
    """Factory posting a registration and returning the response body"""

    def _create(**kwargs) -> dict:
        response = client.post("/api/v1/tenants/", json=tenant_payload(**kwargs))
        assert response.status_code == 201, response.text
        return response.json()

    return _create
