"""In-memory storage for users and todos.

Both stores own their collection outright: callers only ever receive copies
or output views of the records. Mutations are serialized with one lock per
collection, and the lock is never held across an ``await``.
"""

import threading
from dataclasses import replace
from starlette.concurrency import run_in_threadpool

from .auth import BCRYPT_MAX_PASSWORD_BYTES, dummy_password_hash, hash_password, verify_password
from .errors import DuplicateEmail, InvalidCredentials, InvalidInput, NotFound
from .logger import logger
from .models import Todo, User
from .schemas import UserOut
from .utils import default_display_name, normalize_todo_text


# ==================== Helper Functions ====================

def _to_user_out(user: User) -> UserOut:
    """Public view of a user record, without the password hash."""
    return UserOut(id=user.id, name=user.name, email=user.email)


def _check_dummy_password(password: str) -> None:
    verify_password(password, dummy_password_hash())


# ==================== Credential Store ====================


class CredentialStore:
    """Registered users keyed by exact (case-sensitive) email."""

    def __init__(self):
        self._users_by_email: dict[str, User] = {}
        self._users_by_id: dict[int, User] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def count(self) -> int:
        with self._lock:
            return len(self._users_by_id)

    async def register(self, name: str | None, email: str | None, password: str | None) -> UserOut:
        """Create a user with a bcrypt-hashed password. Raises InvalidInput or DuplicateEmail."""
        if not email or not password:
            raise InvalidInput("Email and password required")
        if len(password.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
            raise InvalidInput(f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes")

        with self._lock:
            if email in self._users_by_email:
                raise DuplicateEmail(detail=f"duplicate email: {email}")

        hashed_password = await run_in_threadpool(hash_password, password)

        with self._lock:
            # Another registration for this email may have finished while hashing
            if email in self._users_by_email:
                raise DuplicateEmail(detail=f"duplicate email: {email}")
            display_name = name.strip() if name and name.strip() else default_display_name(email)
            user = User(
                id=self._next_id,
                name=display_name,
                email=email,
                hashed_password=hashed_password,
            )
            self._next_id += 1
            self._users_by_email[email] = user
            self._users_by_id[user.id] = user

        logger.debug(f"User inserted: id={user.id}")
        return _to_user_out(user)

    async def verify(self, email: str | None, password: str | None) -> UserOut:
        """Check a login. Unknown email and wrong password raise the same InvalidCredentials."""
        if not email or not password:
            raise InvalidCredentials(detail="email or password missing")

        with self._lock:
            user = self._users_by_email.get(email)
            user = replace(user) if user else None

        if user is None:
            # Spend the same bcrypt time as a real comparison
            await run_in_threadpool(_check_dummy_password, password)
            raise InvalidCredentials(detail=f"no user with email {email}")

        if not await run_in_threadpool(verify_password, password, user.hashed_password):
            raise InvalidCredentials(detail=f"password mismatch for user id={user.id}")

        return _to_user_out(user)

    async def get_by_id(self, user_id: int) -> UserOut:
        """Retrieve a user by ID. Raises NotFound if absent."""
        with self._lock:
            user = self._users_by_id.get(user_id)
            if user is None:
                raise NotFound("User not found", detail=f"user id={user_id} does not exist")
            return _to_user_out(user)


# ==================== Todo Repository ====================


class TodoRepository:
    """Todos in creation order. Every lookup is scoped to the owner."""

    _PATCHABLE_FIELDS = ("text", "completed")

    def __init__(self):
        self._todos: list[Todo] = []
        self._next_id = 1
        self._lock = threading.Lock()

    def count(self) -> int:
        with self._lock:
            return len(self._todos)

    def _find(self, owner_id: int, todo_id: int) -> int:
        """Index of the owner's todo. Another owner's todo is reported as missing."""
        for index, todo in enumerate(self._todos):
            if todo.id == todo_id and todo.owner_id == owner_id:
                return index
        raise NotFound("Todo not found", detail=f"todo id={todo_id} not found for owner id={owner_id}")

    def list_todos(self, owner_id: int) -> list[Todo]:
        with self._lock:
            return [replace(todo) for todo in self._todos if todo.owner_id == owner_id]

    def add_todo(self, owner_id: int, text: str | None) -> Todo:
        """Store a new todo with trimmed text. Raises InvalidInput on blank text."""
        cleaned = normalize_todo_text(text)
        if cleaned is None:
            raise InvalidInput("Todo text required")

        with self._lock:
            todo = Todo(id=self._next_id, owner_id=owner_id, text=cleaned, completed=False)
            self._next_id += 1
            self._todos.append(todo)
            return replace(todo)

    def update_todo(self, owner_id: int, todo_id: int, patch: dict) -> Todo:
        """Apply only the fields present in `patch`; explicit None values are written through."""
        with self._lock:
            todo = self._todos[self._find(owner_id, todo_id)]
            for field_name in self._PATCHABLE_FIELDS:
                if field_name in patch:
                    setattr(todo, field_name, patch[field_name])
            return replace(todo)

    def remove_todo(self, owner_id: int, todo_id: int) -> None:
        with self._lock:
            del self._todos[self._find(owner_id, todo_id)]


# Constructed once per process; nothing is persisted across restarts
credential_store = CredentialStore()
todo_repository = TodoRepository()
