"""
Tenant-scoped outlet API tests
"""

import uuid

import pytest

from conftest import auth_headers, operator_headers

TENANTS = "/api/v1/tenants"

OUTLET = {
    "name": "Downtown",
    "address": "12 Market Street",
    "phone": "+1 555 987 6543",
    "email": "downtown@pizzapalace.com",
    "operatingHours": {"mon": "10:00-22:00"},
    "taxConfig": {"vat": 0.2},
}


@pytest.fixture
def tenant(create_tenant):
    created = create_tenant(plan="PREMIUM")
    tenant_id = uuid.UUID(created["tenantId"])
    return {"id": tenant_id, "url": f"{TENANTS}/{tenant_id}/outlets", "headers": auth_headers(tenant_id)}


def test_outlet_crud(client, tenant):
    response = client.post(f"{tenant['url']}/", json=OUTLET, headers=tenant["headers"])
    assert response.status_code == 201
    outlet = response.json()
    assert outlet["name"] == "Downtown"
    assert outlet["operatingHours"] == {"mon": "10:00-22:00"}
    assert outlet["isActive"] is True

    response = client.get(f"{tenant['url']}/", headers=tenant["headers"])
    assert [item["id"] for item in response.json()] == [outlet["id"]]

    response = client.put(
        f"{tenant['url']}/{outlet['id']}",
        json={"name": "Downtown Central"},
        headers=tenant["headers"],
    )
    assert response.status_code == 200
    assert response.json()["name"] == "Downtown Central"
    assert response.json()["address"] == OUTLET["address"]

    response = client.get(f"{tenant['url']}/{outlet['id']}", headers=tenant["headers"])
    assert response.json()["name"] == "Downtown Central"

    assert client.delete(f"{tenant['url']}/{outlet['id']}", headers=tenant["headers"]).status_code == 200
    assert client.get(f"{tenant['url']}/{outlet['id']}", headers=tenant["headers"]).status_code == 404


def test_empty_outlet_update_is_400(client, tenant):
    outlet = client.post(f"{tenant['url']}/", json=OUTLET, headers=tenant["headers"]).json()
    response = client.put(f"{tenant['url']}/{outlet['id']}", json={}, headers=tenant["headers"])
    assert response.status_code == 400


def test_basic_plan_outlet_limit(client, create_tenant):
    tenant_id = uuid.UUID(create_tenant(plan="BASIC")["tenantId"])
    url = f"{TENANTS}/{tenant_id}/outlets/"
    headers = auth_headers(tenant_id)

    assert client.post(url, json=OUTLET, headers=headers).status_code == 201
    response = client.post(url, json={**OUTLET, "name": "Uptown"}, headers=headers)

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "PLAN_LIMIT_EXCEEDED"
    assert response.json()["error"]["details"] == {"maxOutlets": 1}


def test_staff_cannot_create_outlets(client, tenant):
    response = client.post(
        f"{tenant['url']}/",
        json=OUTLET,
        headers=auth_headers(tenant["id"], role="staff"),
    )
    assert response.status_code == 403


def test_outlets_are_isolated_between_tenants(client, create_tenant):
    first = uuid.UUID(create_tenant(business_name="First", email="first@example.com")["tenantId"])
    second = uuid.UUID(create_tenant(business_name="Second", email="second@example.com")["tenantId"])

    client.post(f"{TENANTS}/{first}/outlets/", json=OUTLET, headers=auth_headers(first))
    client.post(
        f"{TENANTS}/{second}/outlets/",
        json={**OUTLET, "name": "Harbour"},
        headers=auth_headers(second),
    )

    first_names = [o["name"] for o in client.get(f"{TENANTS}/{first}/outlets/", headers=auth_headers(first)).json()]
    second_names = [o["name"] for o in client.get(f"{TENANTS}/{second}/outlets/", headers=auth_headers(second)).json()]
    assert first_names == ["Downtown"]
    assert second_names == ["Harbour"]


@pytest.mark.parametrize("method", ["get", "post"])
def test_cross_tenant_outlet_access_issues_no_queries(client, tenant, query_counter, method):
    query_counter.reset()

    kwargs = {"json": OUTLET} if method == "post" else {}
    response = getattr(client, method)(
        f"{tenant['url']}/", headers=auth_headers(uuid.uuid4()), **kwargs
    )

    assert response.status_code == 403
    assert query_counter.count == 0


def test_cross_tenant_outlet_by_id_issues_no_queries(client, tenant, query_counter):
    outlet = client.post(f"{tenant['url']}/", json=OUTLET, headers=tenant["headers"]).json()
    query_counter.reset()

    intruder = auth_headers(uuid.uuid4(), role="tenant_admin")
    assert client.get(f"{tenant['url']}/{outlet['id']}", headers=intruder).status_code == 403
    assert client.delete(f"{tenant['url']}/{outlet['id']}", headers=intruder).status_code == 403
    assert query_counter.count == 0


def test_suspended_tenant_data_is_unreachable(client, tenant):
    client.post(f"/api/v1/admin/tenants/{tenant['id']}/suspend", headers=operator_headers())

    response = client.get(f"{tenant['url']}/", headers=tenant["headers"])
    assert response.status_code == 403

    client.post(f"/api/v1/admin/tenants/{tenant['id']}/resume", headers=operator_headers())
    assert client.get(f"{tenant['url']}/", headers=tenant["headers"]).status_code == 200


@pytest.mark.parametrize("method", ["get", "post"])
def test_outlet_routes_require_tenant_header(client, tenant, query_counter, method):
    query_counter.reset()

    kwargs = {"json": OUTLET} if method == "post" else {}
    response = getattr(client, method)(
        f"{tenant['url']}/", headers=auth_headers(tenant["id"], tenant_header=False), **kwargs
    )

    assert response.status_code == 401
    assert query_counter.count == 0
