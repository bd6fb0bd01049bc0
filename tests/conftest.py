import pytest
from fastapi.testclient import TestClient

from intranet.api.app import app
from intranet.auth.dependencies import get_jwt_handler, get_supabase_client
from intranet.auth.jwt_handler import JWTHandler
from intranet.taxonomy.service import TaxonomyService
from intranet.taxonomy.store import TaxonomyStore

from .fakes import FakeSupabase


@pytest.fixture
def fake_client():
    """In-memory Supabase client with the taxonomy constraints"""
    return FakeSupabase()


@pytest.fixture
def store(fake_client):
    return TaxonomyStore(fake_client, retry_attempts=5, delete_policy="reject")


@pytest.fixture
def cascade_store(fake_client):
    return TaxonomyStore(fake_client, retry_attempts=5, delete_policy="cascade")


@pytest.fixture
def service(store):
    return TaxonomyService(store)


@pytest.fixture
def jwt_handler():
    return JWTHandler(
        secret_key="test-secret-key-for-testing-only-0123456789",
        algorithm="HS256",
        access_token_expire_minutes=15,
    )


@pytest.fixture
def admin_token(jwt_handler):
    return jwt_handler.create_access_token("admin-1", "admin@example.com", "ADMIN", "Admin")


@pytest.fixture
def member_token(jwt_handler):
    return jwt_handler.create_access_token("user-1", "staff@example.com", "MEMBER", "Staff")


@pytest.fixture
def client(fake_client, jwt_handler):
    """TestClient wired to the fake database; lifespan is not run."""
    app.dependency_overrides[get_supabase_client] = lambda: fake_client
    app.dependency_overrides[get_jwt_handler] = lambda: jwt_handler
    yield TestClient(app)
    app.dependency_overrides = {}
