"""
Unit tests for schema name derivation and identifier validation
"""

import uuid

import pytest

from rms_tenancy.core.exceptions import ValidationError
from rms_tenancy.core.identifiers import (
    quote_identifier,
    schema_name_for,
    validate_identifier,
)


def test_schema_name_derived_from_tenant_id():
    tenant_id = uuid.UUID("3f2c1a9e-8b7d-4c6e-9f01-23456789abcd")
    assert schema_name_for(tenant_id) == "tenant_3f2c1a9e_8b7d_4c6e_9f01_23456789abcd"


def test_schema_name_is_deterministic():
    tenant_id = uuid.uuid4()
    assert schema_name_for(tenant_id) == schema_name_for(str(tenant_id))


def test_schema_names_are_pairwise_distinct():
    names = {schema_name_for(uuid.uuid4()) for _ in range(500)}
    assert len(names) == 500


def test_schema_name_fits_postgres_identifier_limit():
    assert len(schema_name_for(uuid.uuid4())) <= 63


@pytest.mark.parametrize(
    "name",
    [
        "tenant_abc",
        "_private",
        "a",
        "t" * 63,
    ],
)
def test_validate_identifier_accepts_safe_names(name):
    assert validate_identifier(name) == name


@pytest.mark.parametrize(
    "name",
    [
        "",
        "Tenant_abc",
        "1tenant",
        "tenant-abc",
        'tenant"; DROP SCHEMA public CASCADE; --',
        "tenant abc",
        "tenant.abc",
        "t" * 64,
        None,
    ],
)
def test_validate_identifier_rejects_unsafe_names(name):
    with pytest.raises(ValidationError):
        validate_identifier(name)


def test_quote_identifier():
    assert quote_identifier("tenant_abc") == '"tenant_abc"'


def test_quote_identifier_rejects_injected_name():
    with pytest.raises(ValidationError):
        quote_identifier('tenant_abc"; DROP SCHEMA public CASCADE; --')
