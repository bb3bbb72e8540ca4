"""
Schema-qualified execution for tenant tables

A TenantScope binds the tenant schema to each statement it executes (through
``schema_translate_map``), never to the connection. Pooled connections
therefore carry no tenant state between units of work.
"""

from typing import Any, Dict, Optional

from sqlalchemy.engine import Connection, Result
from sqlalchemy.sql import Executable
from sqlmodel import Session

from rms_tenancy.core.identifiers import validate_identifier


class TenantScope:
    def __init__(self, schema_name: str):
        self.schema_name = validate_identifier(schema_name)

    @property
    def execution_options(self) -> Dict[str, Any]:
        return {"schema_translate_map": {None: self.schema_name}}

    def execute(
        self,
        target: Any,
        statement: Executable,
        params: Optional[Dict[str, Any]] = None,
    ) -> Result:
        """Execute on a Session (joining its transaction) or a Connection"""
        connection: Connection = target.connection() if isinstance(target, Session) else target
        return connection.execute(statement, params, execution_options=self.execution_options)

    def __repr__(self) -> str:
        return f"TenantScope({self.schema_name!r})"
