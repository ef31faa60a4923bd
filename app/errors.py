"""Domain error taxonomy shared by the stores, token service and authorizer.

Each error carries the HTTP status it maps to and a caller-safe message.
The exception handlers in ``main.py`` turn them into the standard
``{"success": false, "error": ...}`` envelope.
"""


class TodoServiceError(Exception):
    """Base class for every error the service reports to callers."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: str | None = None, detail: str | None = None):
        self.message = message or self.message
        # Internal detail for logs only, never rendered to the client
        self.detail = detail or self.message
        super().__init__(self.message)


class InvalidInput(TodoServiceError):
    """Malformed or missing required fields."""
    status_code = 400
    message = "Invalid request"


class DuplicateEmail(TodoServiceError):
    status_code = 400
    message = "Email already registered"


class InvalidCredentials(TodoServiceError):
    """Unknown email or wrong password; deliberately indistinguishable."""
    status_code = 401
    message = "Invalid credentials"


class TokenMissing(TodoServiceError):
    status_code = 401
    message = "Access token required"


class TokenRejected(TodoServiceError):
    """A token was supplied but cannot be trusted."""
    status_code = 403
    message = "Invalid or expired token"


class TokenInvalid(TokenRejected):
    pass


class TokenExpired(TokenRejected):
    pass


class NotFound(TodoServiceError):
    status_code = 404
    message = "Not found"
