"""FastAPI dependencies for authentication and authorization."""

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from .auth import decode_access_token
from .crud import CredentialStore, TodoRepository, credential_store, todo_repository
from .errors import TokenMissing, TokenRejected
from .logger import logger
from .schemas import UserIdentity


# ==================== Store Dependencies ====================

def get_credential_store() -> CredentialStore:
    return credential_store


def get_todo_repository() -> TodoRepository:
    return todo_repository


# ==================== Authentication Dependencies ====================

security = HTTPBearer(auto_error=False)


def authorize(credentials: HTTPAuthorizationCredentials | None) -> UserIdentity:
    """Resolve bearer credentials from the ``Authorization`` header to a user identity.

    Raises TokenMissing when there is no bearer token at all; TokenInvalid and
    TokenExpired from the token service propagate unchanged and render as the
    same 403 "Invalid or expired token" response.
    """
    if credentials is None:
        raise TokenMissing(detail="No bearer credentials in Authorization header")
    if credentials.scheme.lower() != "bearer" or not credentials.credentials.strip():
        raise TokenMissing(detail="Authorization header is not a bearer token")

    return decode_access_token(credentials.credentials.strip())


async def get_current_identity(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> UserIdentity:
    """Authorize the request and attach the identity to ``request.state``."""
    request_id = getattr(request.state, "request_id", "unknown")
    try:
        identity = authorize(credentials)
    except TokenMissing:
        logger.info(f"[{request_id}] Rejected request without bearer token")
        raise
    except TokenRejected as e:
        logger.warning(f"[{request_id}] Rejected token: {e.detail}")
        raise

    request.state.identity = identity
    return identity
