"""Business logic layer for authentication and todo operations.

Each function takes the store it works on, calls into it, logs the outcome
and shapes the response envelope. Domain errors raised by the stores and the
token service propagate to the exception handlers unchanged.
"""

from .schemas import (
    AuthResponse,
    MessageResponse,
    TodoCreate,
    TodoListResponse,
    TodoOut,
    TodoResponse,
    TodoUpdate,
    UserIdentity,
    UserLogin,
    UserOut,
    UserRegister,
    UserResponse,
)
from .crud import CredentialStore, TodoRepository
from .auth import create_access_token
from .errors import DuplicateEmail, InvalidCredentials, NotFound
from .models import Todo
from .logger import logger
from .utils import parse_todo_id

# ==================== Helper Functions ====================


def _convert_to_todo_out(todo: Todo) -> TodoOut:
    """Convert an in-memory Todo record to the TodoOut schema."""
    return TodoOut(
        id=todo.id,
        owner_id=todo.owner_id,
        text=todo.text,
        completed=todo.completed,
        created_at=todo.created_at,
    )


def _resolve_todo_id(todo_id: int | str) -> int:
    """Path ids that are not integers can never match, so they are simply not found."""
    if isinstance(todo_id, int):
        return todo_id
    parsed = parse_todo_id(todo_id)
    if parsed is None:
        raise NotFound("Todo not found", detail=f"non-integer todo id {todo_id!r}")
    return parsed


def _issue_session(user: UserOut) -> AuthResponse:
    token = create_access_token(user.id, user.email)
    return AuthResponse(token=token, user=user)

# ==================== Authentication ====================


async def register_user(store: CredentialStore, data: UserRegister) -> AuthResponse:
    """Register a new user and open a session for them."""
    logger.info(f"Registering new user: {data.email}")

    try:
        user = await store.register(data.name, data.email, data.password)
    except DuplicateEmail:
        logger.warning(f"Registration failed - email already exists: {data.email}")
        raise

    logger.info(f"User registered successfully: id={user.id} email={user.email}")
    return _issue_session(user)


async def authenticate_user(store: CredentialStore, data: UserLogin) -> AuthResponse:
    """Authenticate a user and return a fresh session token."""
    logger.info(f"Authentication attempt for user: {data.email}")

    try:
        user = await store.verify(data.email, data.password)
    except InvalidCredentials as e:
        logger.warning(f"Authentication failed for {data.email}: {e.detail}")
        raise

    logger.info(f"Authentication successful for user: {data.email} (id={user.id})")
    return _issue_session(user)


async def get_profile(store: CredentialStore, identity: UserIdentity) -> UserResponse:
    """Profile of the user a verified token belongs to."""
    try:
        user = await store.get_by_id(identity.user_id)
    except NotFound:
        # Tokens stay valid after the fact; the account may be gone
        logger.warning(f"Token subject has no account: id={identity.user_id}")
        raise
    return UserResponse(user=user)

# ==================== Todo Operations ====================


async def list_todos(repo: TodoRepository, identity: UserIdentity) -> TodoListResponse:
    todos = repo.list_todos(identity.user_id)
    logger.debug(f"Listing todos: owner={identity.user_id} count={len(todos)}")
    return TodoListResponse(todos=[_convert_to_todo_out(t) for t in todos])


async def create_todo(repo: TodoRepository, identity: UserIdentity, data: TodoCreate) -> TodoResponse:
    todo = repo.add_todo(identity.user_id, data.text)
    logger.info(f"Todo created: id={todo.id} owner={identity.user_id}")
    return TodoResponse(todo=_convert_to_todo_out(todo))


async def update_todo(
    repo: TodoRepository,
    identity: UserIdentity,
    todo_id: int | str,
    data: TodoUpdate,
) -> TodoResponse:
    """Apply a partial update; only fields sent by the client are touched."""
    patch = data.model_dump(exclude_unset=True)
    try:
        todo = repo.update_todo(identity.user_id, _resolve_todo_id(todo_id), patch)
    except NotFound:
        logger.warning(f"Cannot update - todo not found: id={todo_id} owner={identity.user_id}")
        raise

    logger.info(f"Todo updated: id={todo_id} owner={identity.user_id} fields={sorted(patch)}")
    return TodoResponse(todo=_convert_to_todo_out(todo))


async def delete_todo(repo: TodoRepository, identity: UserIdentity, todo_id: int | str) -> MessageResponse:
    try:
        repo.remove_todo(identity.user_id, _resolve_todo_id(todo_id))
    except NotFound:
        logger.warning(f"Cannot delete - todo not found: id={todo_id} owner={identity.user_id}")
        raise

    logger.info(f"Todo deleted: id={todo_id} owner={identity.user_id}")
    return MessageResponse(message="Todo deleted")
