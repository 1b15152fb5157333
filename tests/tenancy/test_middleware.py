# (c) Copyright Datacraft, 2026
"""Tests for request-time tenant resolution."""
import pytest
from httpx import ASGITransport, AsyncClient

from alumnet.app import create_app
from alumnet.core.config import DeploymentMode
from alumnet.core.features.tenants.db.orm import TenantStatus


@pytest.fixture
def app(settings, engine, session_factory, dispatch):
    return create_app(settings, engine=engine, session_factory=session_factory, dispatch=dispatch)


def client_for(app, host: str) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url=f"http://{host}")


@pytest.mark.asyncio
async def test_unknown_host_is_not_found(app, make_tenant):
    await make_tenant("acme")
    async with client_for(app, "unknown.example.org") as client:
        response = await client.get("/tenants/current")
    assert response.status_code == 404
    assert response.json() == {"detail": "Tenant not found"}


@pytest.mark.asyncio
async def test_bare_ip_is_not_found(app, make_tenant):
    await make_tenant("acme")
    async with client_for(app, "10.0.0.1:8000") as client:
        response = await client.get("/alumni")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_custom_domain_is_case_insensitive(app, make_tenant):
    tenant = await make_tenant("acme", domains=["acme.example.com"])
    async with client_for(app, "ACME.EXAMPLE.COM") as client:
        response = await client.get("/tenants/current")
    assert response.status_code == 200
    body = response.json()
    assert body["slug"] == "acme"
    assert body["id"] == str(tenant.id)
    assert body["domain"] == "acme.example.com"


@pytest.mark.asyncio
async def test_subdomain_of_base_domain(app, make_tenant):
    await make_tenant("acme")
    async with client_for(app, "acme.alumnet.test:8000") as client:
        response = await client.get("/tenants/current")
    assert response.status_code == 200
    assert response.json()["slug"] == "acme"


@pytest.mark.asyncio
async def test_tenant_headers(app, make_tenant):
    tenant = await make_tenant("acme")
    async with client_for(app, "api.internal") as client:
        by_slug = await client.get("/tenants/current", headers={"X-Tenant-Slug": "acme"})
        by_id = await client.get("/tenants/current", headers={"X-Tenant-ID": str(tenant.id)})
        bad_id = await client.get("/tenants/current", headers={"X-Tenant-ID": "not-a-uuid"})
    assert by_slug.json()["slug"] == "acme"
    assert by_id.json()["slug"] == "acme"
    assert bad_id.status_code == 404


@pytest.mark.asyncio
async def test_suspended_tenant_is_forbidden(app, lifecycle, make_tenant):
    tenant = await make_tenant("acme")
    await lifecycle.suspend_tenant(tenant.id)
    async with client_for(app, "acme.alumnet.test") as client:
        response = await client.get("/alumni")
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_provisioning_tenant_is_forbidden(app, make_registry_tenant):
    await make_registry_tenant("acme", status=TenantStatus.PROVISIONING.value)
    async with client_for(app, "acme.alumnet.test") as client:
        response = await client.get("/alumni")
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_deleted_tenant_is_not_found(app, lifecycle, make_tenant):
    tenant = await make_tenant("acme")
    await lifecycle.delete_tenant(tenant.id)
    async with client_for(app, "acme.alumnet.test") as client:
        response = await client.get("/alumni")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_health_needs_no_tenant(app):
    async with client_for(app, "10.0.0.1") as client:
        response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_requests_are_isolated(app, make_tenant):
    await make_tenant("acme")
    await make_tenant("globex")
    alumnus = {"first_name": "Ada", "last_name": "Lovelace", "email": "ada@example.com"}

    async with client_for(app, "acme.alumnet.test") as acme:
        created = await acme.post("/alumni", json=alumnus)
        duplicate = await acme.post("/alumni", json=alumnus)
        acme_list = await acme.get("/alumni")
    async with client_for(app, "globex.alumnet.test") as globex:
        globex_list = await globex.get("/alumni")
        globex_created = await globex.post("/alumni", json=alumnus)

    assert created.status_code == 201
    assert duplicate.status_code == 409
    assert [a["email"] for a in acme_list.json()] == ["ada@example.com"]
    assert globex_list.json() == []
    assert globex_created.status_code == 201


@pytest.mark.asyncio
async def test_single_tenant_mode_binds_every_request(
    settings, engine, session_factory, dispatch, make_tenant
):
    await make_tenant("alma-mater")
    single = settings.model_copy(update={
        "deployment_mode": DeploymentMode.SINGLE_TENANT,
        "default_tenant_slug": "alma-mater",
    })
    app = create_app(single, engine=engine, session_factory=session_factory, dispatch=dispatch)

    async with client_for(app, "anything.example.org") as client:
        response = await client.get("/tenants/current")
    assert response.status_code == 200
    assert response.json()["slug"] == "alma-mater"
