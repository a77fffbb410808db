"""
Client fixtures for testing.
Provides HTTP clients and dependency overrides for FastAPI application testing.
"""
from typing import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_service.db import get_db
from rbac_service.main import app as fastapi_app

# Ensure the root_path is set to empty string for tests
fastapi_app.root_path = ""


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Provides an HTTP client for making requests to the FastAPI app.
    It overrides the `get_db` dependency to use the test session, committing
    on success and rolling back on database errors the same way the real
    dependency does.
    """

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except SQLAlchemyError:
            await db_session.rollback()
            raise

    fastapi_app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=fastapi_app)

    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
    finally:
        del fastapi_app.dependency_overrides[get_db]
