from unittest.mock import AsyncMock

import pytest
from fastapi import status
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import async_sessionmaker

from rbac_service import main
from rbac_service.config import settings
from rbac_service.main import app
from rbac_service.services import permission_service, role_service


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "ok"
    assert data["environment"] == "testing"
    assert data["components"]["database"]["status"] == "ok"


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"

    generated = await client.get("/admin/permissions")
    assert generated.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_store_failure_does_not_leak_detail(client: AsyncClient, monkeypatch):
    async def broken(*args, **kwargs):
        raise OperationalError("SELECT secret FROM internals", {}, Exception("boom"))

    monkeypatch.setattr(permission_service, "get_stats", broken)

    response = await client.get("/admin/permissions/stats")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"detail": "A database error occurred", "kind": "store_failure"}


def test_admin_routes_are_mounted():
    paths = app.openapi()["paths"]
    assert "/admin/permissions/{action}/{resource}" in paths
    assert "/admin/roles/{role_id}/permissions/set" in paths
    assert "/admin/users/{user_id}/roles/assign" in paths


@pytest.mark.asyncio
async def test_startup_bootstrap_is_opt_in(db_engine, db_session, monkeypatch):
    monkeypatch.setattr(
        main, "AsyncSessionLocal", async_sessionmaker(bind=db_engine, expire_on_commit=False)
    )
    monkeypatch.setattr(main, "dispose_engine", AsyncMock())

    async with main.lifespan(app):
        pass
    assert (await role_service.list_roles(db_session)).total == 0

    monkeypatch.setattr(settings, "BOOTSTRAP_ON_STARTUP", True)
    async with main.lifespan(app):
        pass
    admin = await role_service.get_role_by_name(db_session, "admin")
    assert admin.permissions
