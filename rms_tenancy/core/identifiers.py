"""
SQL identifier handling for per-tenant schemas

Identifiers cannot be bound as query parameters, so every schema name that
reaches SQL text goes through an allow-list check first. Only lowercase
alphanumerics and underscore are accepted.
"""

import re
import uuid
from typing import Union

from rms_tenancy.core.exceptions import ValidationError

SCHEMA_NAME_PATTERN = re.compile(r"^[a-z_][a-z0-9_]{0,62}$")
_NON_IDENTIFIER_CHARS = re.compile(r"[^a-z0-9]")


def schema_name_for(tenant_id: Union[uuid.UUID, str], prefix: str = "tenant_") -> str:
    """Derive the schema name for a tenant (pure function of the tenant id)"""
    sanitized = _NON_IDENTIFIER_CHARS.sub("_", str(tenant_id).lower())
    return validate_identifier(f"{prefix}{sanitized}")


def validate_identifier(name: str) -> str:
    """Return name unchanged if it is a safe SQL identifier, raise otherwise"""
    if not isinstance(name, str) or not SCHEMA_NAME_PATTERN.match(name):
        raise ValidationError(f"Unsafe SQL identifier: {name!r}")
    return name


def quote_identifier(name: str) -> str:
    """Validate and double-quote an identifier for inclusion in SQL text"""
    return f'"{validate_identifier(name)}"'
