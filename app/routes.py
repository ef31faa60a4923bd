# API route definitions (HTTP layer)
# Defines ENDPOINTS

from fastapi import APIRouter, Depends
from .schemas import (
    AuthResponse,
    MessageResponse,
    TodoCreate,
    TodoListResponse,
    TodoResponse,
    TodoUpdate,
    UserIdentity,
    UserLogin,
    UserRegister,
    UserResponse,
)
from .crud import CredentialStore, TodoRepository
from .dependencies import get_credential_store, get_current_identity, get_todo_repository
from . import services


router = APIRouter(prefix="/api")


@router.get("/health", response_model=MessageResponse)
async def health_check():
    """Liveness check for load balancers and the web client."""
    return MessageResponse(message="API is running")


# ============================================================================
# Authentication Endpoints
# ============================================================================

@router.post("/auth/register", response_model=AuthResponse)
async def register(
    user: UserRegister,
    store: CredentialStore = Depends(get_credential_store),
):
    """Register a new user and return a session token.

    Raises:
        400: Missing email/password or email already registered
    """
    return await services.register_user(store, user)


@router.post("/auth/login", response_model=AuthResponse)
async def login(
    credentials: UserLogin,
    store: CredentialStore = Depends(get_credential_store),
):
    """Authenticate a user and return a session token.

    Raises:
        401: Invalid credentials
    """
    return await services.authenticate_user(store, credentials)


@router.get("/auth/me", response_model=UserResponse)
async def get_current_user(
    identity: UserIdentity = Depends(get_current_identity),
    store: CredentialStore = Depends(get_credential_store),
):
    """Get the profile of the user the bearer token belongs to.

    Raises:
        401: Missing token
        403: Invalid or expired token
        404: Account no longer exists
    """
    return await services.get_profile(store, identity)


# ============================================================================
# Todo Endpoints
# ============================================================================

@router.get("/todos", response_model=TodoListResponse)
async def list_todos(
    identity: UserIdentity = Depends(get_current_identity),
    repo: TodoRepository = Depends(get_todo_repository),
):
    return await services.list_todos(repo, identity)


@router.post("/todos", response_model=TodoResponse)
async def create_todo(
    todo: TodoCreate,
    identity: UserIdentity = Depends(get_current_identity),
    repo: TodoRepository = Depends(get_todo_repository),
):
    return await services.create_todo(repo, identity, todo)


@router.put("/todos/{todo_id}", response_model=TodoResponse)
async def update_todo(
    todo_id: str,
    patch: TodoUpdate,
    identity: UserIdentity = Depends(get_current_identity),
    repo: TodoRepository = Depends(get_todo_repository),
):
    return await services.update_todo(repo, identity, todo_id, patch)


@router.delete("/todos/{todo_id}", response_model=MessageResponse)
async def delete_todo(
    todo_id: str,
    identity: UserIdentity = Depends(get_current_identity),
    repo: TodoRepository = Depends(get_todo_repository),
):
    return await services.delete_todo(repo, identity, todo_id)
