"""Application error taxonomy.

Every error carries a stable machine-readable ``code`` next to the
human-readable ``detail``; the handler in ``app.main`` renders both.
"""

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    code = "INTERNAL_ERROR"

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class UnauthorizedError(AppException):
    """No valid session."""

    code = "UNAUTHORIZED"

    def __init__(self, detail: str = "Authentication required") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ForbiddenError(AppException):
    """Authenticated but not allowed for this role or ownership."""

    code = "FORBIDDEN"

    def __init__(self, detail: str = "You don't have permission to access this resource") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFoundError(AppException):
    code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource", detail: str | None = None) -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail or f"{resource} not found")


class InvalidTransitionError(AppException):
    """Requested status is not a legal move from the current one."""

    code = "INVALID_TRANSITION"

    def __init__(self, detail: str = "This status change is not allowed") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ValidationError(AppException):
    code = "VALIDATION_ERROR"

    def __init__(self, detail: str = "Validation failed", errors: list[dict] | None = None) -> None:
        self.errors = errors
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ConflictError(AppException):
    """Scheduling collision or duplicate record."""

    code = "CONFLICT"

    def __init__(self, detail: str = "Resource already exists") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
