"""Shared fixtures for API route tests."""

import pytest
from httpx import ASGITransport, AsyncClient

from mitplan.api.app import create_app
from mitplan.api.deps import set_dependencies, verify_api_key
from mitplan.session import SessionRegistry


@pytest.fixture
def registry(catalogue):
    registry = SessionRegistry()
    set_dependencies(registry=registry, catalogue=catalogue)
    return registry


@pytest.fixture
def plan_body(events):
    """Request body for POST /api/plans using the shared test timeline."""
    return {
        "planId": "p1",
        "events": [e.model_dump(mode="json", by_alias=True) for e in events],
        "selectedJobs": ["WAR", "PLD", "SCH", "WHM"],
    }


@pytest.fixture
async def client(registry):
    """Test client with auth overridden."""
    app = create_app()
    app.dependency_overrides[verify_api_key] = lambda: None
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def plan(client, plan_body):
    resp = await client.post("/api/plans", json=plan_body)
    assert resp.status_code == 201
    return resp.json()["planId"]
