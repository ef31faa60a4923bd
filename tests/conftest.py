"""
Pytest configuration and shared fixtures for testing.
Sets up the environment, fresh in-memory stores and the test client.
"""

import os

# Configure the app before any app imports
os.environ["SKIP_ENV_FILE"] = "1"
os.environ["APP_ENV"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce noise in test output
os.environ["LOG_FILE"] = ""
os.environ["ENABLE_METRICS"] = "true"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key-minimum-32-characters"
os.environ["BCRYPT_ROUNDS"] = "4"  # Minimum work factor keeps the suite fast

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.main import app
from app.crud import CredentialStore, TodoRepository
from app.dependencies import get_credential_store, get_todo_repository


@pytest.fixture
def credential_store():
    """An empty credential store per test."""
    return CredentialStore()


@pytest.fixture
def todo_repository():
    """An empty todo repository per test."""
    return TodoRepository()


@pytest_asyncio.fixture
async def client(credential_store, todo_repository):
    """Create a test HTTP client wired to the per-test stores."""
    app.dependency_overrides[get_credential_store] = lambda: credential_store
    app.dependency_overrides[get_todo_repository] = lambda: todo_repository
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def sample_user():
    """Sample user data for testing."""
    return {
        "name": "Alice",
        "email": "alice@example.com",
        "password": "secret123"
    }


@pytest.fixture
def other_user():
    return {
        "name": "Bob",
        "email": "bob@example.com",
        "password": "hunter22"
    }


async def register(client: AsyncClient, user: dict) -> dict:
    """Register through the API and return the response body."""
    response = await client.post("/api/auth/register", json=user)
    assert response.status_code == 200, response.text
    return response.json()


@pytest_asyncio.fixture
async def auth_headers(client, sample_user):
    """Authorization headers for a freshly registered sample user."""
    body = await register(client, sample_user)
    return {"Authorization": f"Bearer {body['token']}"}


@pytest_asyncio.fixture
async def other_auth_headers(client, other_user):
    body = await register(client, other_user)
    return {"Authorization": f"Bearer {body['token']}"}
