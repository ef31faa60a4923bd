"""Authentication utilities for password hashing and JWT token management."""

from datetime import datetime, timedelta, timezone
from functools import lru_cache
from jose import JWTError, jwt
import bcrypt
from .config import settings
from .errors import TokenExpired, TokenInvalid, TokenMissing
from .schemas import UserIdentity

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_PASSWORD_BYTES = 72


# ==================== Password Hashing ====================

def hash_password(password: str) -> str:
    """Hash a plain text password using bcrypt for secure storage."""
    # bcrypt requires bytes and returns bytes
    password_bytes = password.encode('utf-8')
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain text password against a hashed password."""
    password_bytes = plain_password.encode('utf-8')
    hashed_bytes = hashed_password.encode('utf-8')
    try:
        return bcrypt.checkpw(password_bytes, hashed_bytes)
    except ValueError:
        # Over-long password or a corrupt hash can never match
        return False


@lru_cache(maxsize=1)
def dummy_password_hash() -> str:
    """Hash compared against when a login names an unknown email."""
    return hash_password("dummy-password-for-unknown-users")


# ==================== JWT Token Management ====================

def create_access_token(user_id: int, email: str, now: datetime | None = None) -> str:
    """Issue a signed token for a user, valid for JWT_EXPIRATION_MINUTES from `now`."""
    issued_at = now or datetime.now(timezone.utc)
    expire = issued_at + timedelta(minutes=settings.JWT_EXPIRATION_MINUTES)

    to_encode = {
        "sub": str(user_id),
        "email": email,
        "iat": int(issued_at.timestamp()),
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str | None, now: datetime | None = None) -> UserIdentity:
    """Verify a token and return the identity it carries.

    Verification is stateless: only the signature, the claims and the expiry
    are checked, the user store is never consulted.

    Raises:
        TokenMissing: no token supplied
        TokenInvalid: bad signature, malformed token or malformed claims
        TokenExpired: current time is at or past the `exp` claim
    """
    if not token:
        raise TokenMissing()

    try:
        # Expiry is checked below so that a token is rejected exactly at `exp`
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_exp": False},
        )
    except JWTError as e:
        raise TokenInvalid(detail=f"Token validation failed: {e}") from e

    sub = payload.get("sub")
    email = payload.get("email")
    exp = payload.get("exp")

    if not isinstance(sub, str) or not sub.isdigit():
        raise TokenInvalid(detail="Missing or malformed subject (sub) in token")
    if not isinstance(email, str) or not email:
        raise TokenInvalid(detail="Missing email claim in token")
    if not isinstance(exp, int) or isinstance(exp, bool):
        raise TokenInvalid(detail="Missing or malformed expiry (exp) in token")

    current = now or datetime.now(timezone.utc)
    if current.timestamp() >= exp:
        raise TokenExpired(detail="Token has expired")

    return UserIdentity(user_id=int(sub), email=email)
