"""
Shared pytest fixtures available to every test file automatically.
No imports needed in test files; pytest discovers this by convention.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.testclient import TestClient
from tortoise import Tortoise

from rentals.deps import (
    can_manage_catalog,
    can_read_booking,
    can_view_dashboard,
    can_write_booking,
    get_current_user,
)
from rentals.exceptions import register_exception_handlers
from rentals.main import MODELS_MODULES, include_routers

from .factories import make_admin, make_customer

# ---------------------------------------------------------------------------
# App builder: used by all client fixtures
# ---------------------------------------------------------------------------


def _bare_app() -> FastAPI:
    app = FastAPI()
    include_routers(app)
    register_exception_handlers(app)
    return app


def build_app(current_user) -> FastAPI:
    """
    Fresh FastAPI app with auth/scope dependencies overridden to return
    `current_user` unconditionally. No database: patch the engine / catalog.
    """
    app = _bare_app()

    async def _user():
        return current_user

    for dep in (
        can_read_booking,
        can_write_booking,
        can_manage_catalog,
        can_view_dashboard,
        get_current_user,
    ):
        app.dependency_overrides[dep] = _user

    return app


# ---------------------------------------------------------------------------
# Reusable client fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def customer_client():
    return TestClient(build_app(make_customer()), raise_server_exceptions=True)


@pytest.fixture()
def admin_client():
    return TestClient(build_app(make_admin()), raise_server_exceptions=True)


@pytest.fixture()
def anon_app():
    """
    Bare app with NO dependency overrides.
    Use this when you want real scope/auth deps to run so you can assert 401/403/422.
    """
    return _bare_app()


@pytest.fixture()
def client_factory():
    def _make(current_user) -> TestClient:
        return TestClient(build_app(current_user), raise_server_exceptions=True)

    return _make


# ---------------------------------------------------------------------------
# Database: fresh in-memory SQLite per test
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture()
async def db():
    await Tortoise.init(
        db_url="sqlite://:memory:",
        modules=MODELS_MODULES,
        use_tz=True,
        timezone="UTC",
    )
    await Tortoise.generate_schemas()
    # keep the engine away from redis
    with patch("rentals.engine.invalidate_slots_cache", new=AsyncMock()) as invalidate:
        yield invalidate
    await Tortoise.close_connections()
