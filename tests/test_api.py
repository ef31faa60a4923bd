"""
Integration tests for Todo Microservice API endpoints.
Tests authentication, todo CRUD, ownership isolation and the error envelope.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from httpx import ASGITransport, AsyncClient

from app.auth import create_access_token
from app.main import app
from conftest import register


# ============================================================================
# GET /api/health
# ============================================================================

@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "API is running"}


# ============================================================================
# POST /api/auth/register
# ============================================================================

@pytest.mark.asyncio
async def test_register_success(client, sample_user):
    response = await client.post("/api/auth/register", json=sample_user)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["token"]
    assert data["user"] == {"id": 1, "name": "Alice", "email": "alice@example.com"}


@pytest.mark.asyncio
async def test_register_name_defaults_to_email_local_part(client):
    response = await client.post("/api/auth/register", json={
        "email": "carol@example.com",
        "password": "secret123",
    })

    assert response.status_code == 200
    assert response.json()["user"]["name"] == "carol"


@pytest.mark.asyncio
async def test_register_duplicate_email(client, sample_user):
    first = await register(client, sample_user)

    response = await client.post("/api/auth/register", json=sample_user)

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Email already registered"}

    # First user unaffected
    login = await client.post("/api/auth/login", json={
        "email": sample_user["email"],
        "password": sample_user["password"],
    })
    assert login.json()["user"]["id"] == first["user"]["id"]


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    {"email": "a@x.com"},
    {"password": "secret123"},
    {"email": "", "password": "secret123"},
    {},
])
async def test_register_missing_fields(client, body):
    response = await client.post("/api/auth/register", json=body)

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Email and password required"}


@pytest.mark.asyncio
async def test_register_wrong_field_type(client):
    response = await client.post("/api/auth/register", json={"email": 123, "password": "secret123"})

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Invalid request"}


@pytest.mark.asyncio
async def test_register_response_never_contains_password(client, sample_user):
    response = await client.post("/api/auth/register", json=sample_user)

    assert "password" not in response.text
    assert sample_user["password"] not in response.text


# ============================================================================
# POST /api/auth/login
# ============================================================================

@pytest.mark.asyncio
async def test_login_round_trip(client):
    registered = await register(client, {"name": "Alice", "email": "a@x.com", "password": "secret123"})

    response = await client.post("/api/auth/login", json={"email": "a@x.com", "password": "secret123"})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["user"] == registered["user"]
    assert data["token"]


@pytest.mark.asyncio
async def test_login_wrong_password_and_unknown_email_look_alike(client, sample_user):
    await register(client, sample_user)

    wrong_password = await client.post("/api/auth/login", json={
        "email": sample_user["email"],
        "password": "wrong-password",
    })
    unknown_email = await client.post("/api/auth/login", json={
        "email": "nobody@example.com",
        "password": sample_user["password"],
    })

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json() == {
        "success": False,
        "error": "Invalid credentials",
    }


@pytest.mark.asyncio
async def test_login_missing_fields(client):
    response = await client.post("/api/auth/login", json={})

    assert response.status_code == 401
    assert response.json()["error"] == "Invalid credentials"


# ============================================================================
# GET /api/auth/me
# ============================================================================

@pytest.mark.asyncio
async def test_me_returns_current_user(client, auth_headers):
    response = await client.get("/api/auth/me", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "user": {"id": 1, "name": "Alice", "email": "alice@example.com"},
    }


@pytest.mark.asyncio
async def test_me_without_token(client):
    response = await client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Access token required"}
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_me_with_non_bearer_scheme(client):
    response = await client.get("/api/auth/me", headers={"Authorization": "Basic dXNlcjpwYXNz"})

    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Access token required"}


@pytest.mark.asyncio
async def test_bearer_scheme_published_in_openapi(client):
    response = await client.get("/openapi.json")

    schemes = response.json()["components"]["securitySchemes"]
    assert schemes["HTTPBearer"]["scheme"] == "bearer"


@pytest.mark.asyncio
async def test_me_with_invalid_token(client):
    response = await client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 403
    assert response.json() == {"success": False, "error": "Invalid or expired token"}


@pytest.mark.asyncio
async def test_me_with_expired_token(client, sample_user):
    body = await register(client, sample_user)
    issued = datetime.now(timezone.utc) - timedelta(days=8)
    token = create_access_token(body["user"]["id"], sample_user["email"], now=issued)

    response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 403
    assert response.json() == {"success": False, "error": "Invalid or expired token"}


@pytest.mark.asyncio
async def test_me_for_user_that_does_not_exist(client):
    """A correctly signed token is accepted even if no account backs it."""
    token = create_access_token(404, "ghost@example.com")

    response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "User not found"}


# ============================================================================
# /api/todos
# ============================================================================

@pytest.mark.asyncio
async def test_todos_require_token(client):
    for method, url in [
        ("GET", "/api/todos"),
        ("POST", "/api/todos"),
        ("PUT", "/api/todos/1"),
        ("DELETE", "/api/todos/1"),
    ]:
        response = await client.request(method, url, json={"text": "x"})
        assert response.status_code == 401, (method, url)
        assert response.json()["error"] == "Access token required"


@pytest.mark.asyncio
async def test_list_todos_empty(client, auth_headers):
    response = await client.get("/api/todos", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {"success": True, "todos": []}


@pytest.mark.asyncio
async def test_create_todo(client, auth_headers):
    response = await client.post("/api/todos", json={"text": "  Buy milk  "}, headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    todo = data["todo"]
    assert todo["id"] == 1
    assert todo["userId"] == 1
    assert todo["text"] == "Buy milk"
    assert todo["completed"] is False
    assert "createdAt" in todo


@pytest.mark.asyncio
async def test_create_then_list(client, auth_headers):
    created = await client.post("/api/todos", json={"text": "first"}, headers=auth_headers)
    await client.post("/api/todos", json={"text": "second"}, headers=auth_headers)

    response = await client.get("/api/todos", headers=auth_headers)

    todos = response.json()["todos"]
    assert [t["text"] for t in todos] == ["first", "second"]
    assert todos[0] == created.json()["todo"]


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{"text": "   "}, {"text": ""}, {}])
async def test_create_todo_blank_text(client, auth_headers, body):
    response = await client.post("/api/todos", json=body, headers=auth_headers)

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Todo text required"}

    listing = await client.get("/api/todos", headers=auth_headers)
    assert listing.json()["todos"] == []


@pytest.mark.asyncio
async def test_update_todo_partial(client, auth_headers):
    created = await client.post("/api/todos", json={"text": "draft"}, headers=auth_headers)
    todo_id = created.json()["todo"]["id"]

    response = await client.put(f"/api/todos/{todo_id}", json={"completed": True}, headers=auth_headers)

    assert response.status_code == 200
    todo = response.json()["todo"]
    assert todo["completed"] is True
    assert todo["text"] == "draft"

    response = await client.put(f"/api/todos/{todo_id}", json={"text": "final"}, headers=auth_headers)
    todo = response.json()["todo"]
    assert todo["text"] == "final"
    assert todo["completed"] is True


@pytest.mark.asyncio
async def test_update_todo_not_found(client, auth_headers):
    response = await client.put("/api/todos/999", json={"completed": True}, headers=auth_headers)

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Todo not found"}


@pytest.mark.asyncio
async def test_non_integer_id_is_not_found(client, auth_headers):
    """An id that cannot name a todo looks exactly like a missing one."""
    created = await client.post("/api/todos", json={"text": "keep"}, headers=auth_headers)

    update = await client.put("/api/todos/abc", json={"completed": True}, headers=auth_headers)
    delete = await client.delete("/api/todos/1.5", headers=auth_headers)

    assert update.status_code == delete.status_code == 404
    assert update.json() == delete.json() == {"success": False, "error": "Todo not found"}

    listing = await client.get("/api/todos", headers=auth_headers)
    assert listing.json()["todos"] == [created.json()["todo"]]


@pytest.mark.asyncio
async def test_delete_todo(client, auth_headers):
    created = await client.post("/api/todos", json={"text": "temp"}, headers=auth_headers)
    todo_id = created.json()["todo"]["id"]

    response = await client.delete(f"/api/todos/{todo_id}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Todo deleted"}

    listing = await client.get("/api/todos", headers=auth_headers)
    assert listing.json()["todos"] == []

    again = await client.delete(f"/api/todos/{todo_id}", headers=auth_headers)
    assert again.status_code == 404
    assert again.json()["error"] == "Todo not found"


# ============================================================================
# Ownership isolation
# ============================================================================

@pytest.mark.asyncio
async def test_users_only_see_their_own_todos(client, auth_headers, other_auth_headers):
    await client.post("/api/todos", json={"text": "alice 1"}, headers=auth_headers)
    await client.post("/api/todos", json={"text": "bob 1"}, headers=other_auth_headers)
    await client.post("/api/todos", json={"text": "alice 2"}, headers=auth_headers)

    alice = (await client.get("/api/todos", headers=auth_headers)).json()["todos"]
    bob = (await client.get("/api/todos", headers=other_auth_headers)).json()["todos"]

    assert [t["text"] for t in alice] == ["alice 1", "alice 2"]
    assert [t["text"] for t in bob] == ["bob 1"]
    assert {t["userId"] for t in alice} == {1}
    assert {t["userId"] for t in bob} == {2}


@pytest.mark.asyncio
async def test_cannot_touch_another_users_todo(client, auth_headers, other_auth_headers):
    created = await client.post("/api/todos", json={"text": "private"}, headers=auth_headers)
    todo_id = created.json()["todo"]["id"]

    update = await client.put(f"/api/todos/{todo_id}", json={"text": "hijacked"}, headers=other_auth_headers)
    delete = await client.delete(f"/api/todos/{todo_id}", headers=other_auth_headers)
    missing = await client.put("/api/todos/999", json={"text": "x"}, headers=other_auth_headers)

    # Indistinguishable from a todo that does not exist
    assert update.status_code == delete.status_code == missing.status_code == 404
    assert update.json() == missing.json()
    assert "private" not in update.text

    alice = (await client.get("/api/todos", headers=auth_headers)).json()["todos"]
    assert alice[0]["text"] == "private"


# ============================================================================
# Error envelope
# ============================================================================

@pytest.mark.asyncio
async def test_unknown_route(client):
    response = await client.get("/api/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Not found"}


@pytest.mark.asyncio
async def test_unexpected_error_hides_details(client, sample_user):
    """Uncaught failures become a generic 500; the store overrides from `client` stay active."""
    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as ac:
        with patch("app.services.create_access_token", side_effect=RuntimeError("signing exploded")):
            response = await ac.post("/api/auth/register", json=sample_user)

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Internal server error"}
    assert "exploded" not in response.text


@pytest.mark.asyncio
async def test_unexpected_error_keeps_response_headers(client, sample_user):
    """The generic 500 still carries the request id, hardening and CORS headers."""
    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as ac:
        with patch("app.services.create_access_token", side_effect=RuntimeError("signing exploded")):
            response = await ac.post(
                "/api/auth/register",
                json=sample_user,
                headers={"Origin": "http://example.com", "X-Request-ID": "req-500"},
            )

    assert response.status_code == 500
    assert response.headers["X-Request-ID"] == "req-500"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["Cache-Control"] == "no-store"
    assert response.headers["access-control-allow-origin"] == "*"
