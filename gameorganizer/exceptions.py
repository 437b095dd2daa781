"""
Domain exceptions for the Game Organizer.

Services raise these; the API layer maps them to HTTP responses in
gameorganizer.api.middleware.error_handler.
"""


class GameOrganizerException(Exception):
    """Base exception for Game Organizer errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        detail: str = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


class NotFoundError(GameOrganizerException):
    """Resource not found."""

    def __init__(self, resource: str, identifier):
        super().__init__(
            message=f"{resource} not found",
            code="NOT_FOUND",
            status_code=404,
            detail=f"No {resource} with identifier '{identifier}' exists",
        )


class EmailNotFoundError(GameOrganizerException):
    """No account is registered under the email."""

    def __init__(self, email: str):
        super().__init__(
            message="Email not found",
            code="EMAIL_NOT_FOUND",
            status_code=404,
            detail=f"No account registered with email '{email}'",
        )


class ValidationError(GameOrganizerException):
    """Input validation failed."""

    def __init__(self, message: str, detail: str = None):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=400,
            detail=detail,
        )


class InvalidOperationError(GameOrganizerException):
    """The operation is not allowed in the resource's current state."""

    def __init__(self, message: str, detail: str = None):
        super().__init__(
            message=message,
            code="INVALID_OPERATION",
            status_code=400,
            detail=detail,
        )


class InvalidPasswordError(GameOrganizerException):
    """Password failed verification or the strength rules."""

    def __init__(self, message: str = "Invalid password"):
        super().__init__(
            message=message,
            code="INVALID_PASSWORD",
            status_code=400,
        )


class InvalidTokenError(GameOrganizerException):
    """Password reset token is unknown or expired."""

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(
            message=message,
            code="INVALID_TOKEN",
            status_code=400,
        )


class UnauthenticatedError(GameOrganizerException):
    """No valid credentials were presented."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            message=message,
            code="UNAUTHENTICATED",
            status_code=401,
        )


class InvalidCredentialsError(GameOrganizerException):
    """Login failed."""

    def __init__(self):
        super().__init__(
            message="Invalid credentials",
            code="INVALID_CREDENTIALS",
            status_code=401,
        )


class ForbiddenError(GameOrganizerException):
    """Authenticated, but not allowed to act on the resource."""

    def __init__(self, message: str = "Access denied"):
        super().__init__(
            message=message,
            code="FORBIDDEN",
            status_code=403,
        )


class ConflictError(GameOrganizerException):
    """A concurrent change won; the caller should reload and retry."""

    def __init__(self, message: str, detail: str = None):
        super().__init__(
            message=message,
            code="CONFLICT",
            status_code=409,
            detail=detail,
        )


class RateLimitError(GameOrganizerException):
    """Rate limit exceeded."""

    def __init__(self, limit: int, window: str):
        super().__init__(
            message="Rate limit exceeded",
            code="RATE_LIMIT_EXCEEDED",
            status_code=429,
            detail=f"Maximum {limit} requests per {window}",
        )
