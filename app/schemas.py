"""Pydantic schemas for request/response validation and serialization."""

from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime


# ==================== Error Schemas ====================

class ErrorResponse(BaseModel):
    """Error envelope returned for every failed request."""
    success: bool = False
    error: str


class MessageResponse(BaseModel):
    success: bool = True
    message: str


# ==================== User Schemas ====================

class UserOut(BaseModel):
    """User output schema without password."""
    id: int
    name: str
    email: str


class UserIdentity(BaseModel):
    """Identity resolved from a verified session token."""
    user_id: int
    email: str


# ==================== Authentication Schemas ====================

class UserRegister(BaseModel):
    """Registration payload. Presence of email and password is checked by the credential store."""
    name: str | None = Field(None, description="Display name, defaults to the email's local part")
    email: str | None = Field(None, description="User's email address, used as the login key")
    password: str | None = Field(None, description="User's password")


class UserLogin(BaseModel):
    """Schema for user login credentials."""
    email: str | None = Field(None, description="User's email address")
    password: str | None = Field(None, description="User's password")


class AuthResponse(BaseModel):
    """Returned by register and login: a fresh token plus the user's profile."""
    success: bool = True
    token: str
    user: UserOut


class UserResponse(BaseModel):
    success: bool = True
    user: UserOut


# ==================== Todo Schemas ====================

class TodoCreate(BaseModel):
    text: str | None = None


class TodoUpdate(BaseModel):
    """Partial update. Only fields present in the request body are applied.

    A field sent as an explicit null counts as present and is written through.
    """
    text: str | None = None
    completed: bool | None = None


class TodoOut(BaseModel):
    """Todo output schema, serialized with the camelCase keys clients expect."""
    model_config = ConfigDict(populate_by_name=True)

    id: int
    owner_id: int = Field(..., alias="userId")
    text: str | None
    completed: bool | None
    created_at: datetime = Field(..., alias="createdAt")


class TodoResponse(BaseModel):
    success: bool = True
    todo: TodoOut


class TodoListResponse(BaseModel):
    success: bool = True
    todos: list[TodoOut]
