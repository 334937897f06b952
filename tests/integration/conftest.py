"""
Integration test fixtures. Overrides get_db and get_clock for API tests with an
in-memory DB and a frozen clock.
"""
import pytest


@pytest.fixture
def override_get_db(session_factory):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    return _get_db


@pytest.fixture
def api_client(override_get_db, clock):
    """FastAPI TestClient with in-memory DB and frozen clock overrides."""
    from fastapi.testclient import TestClient
    from pacer.api import app
    from pacer.config import get_db
    from pacer.utils.clock import get_clock
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_client(api_client, test_user):
    """API client signed in as test_user via the access_token cookie."""
    from pacer.schemas.auth_schemas import AuthTokenPayload
    from pacer.utils.auth import create_access_token
    api_client.cookies.set("access_token", create_access_token(AuthTokenPayload(sub=test_user.email)))
    return api_client


@pytest.fixture
def agent_headers():
    return {"x-agent-api-key": "test-agent-key"}
