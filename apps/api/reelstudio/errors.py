"""Application exception types."""

from reelstudio.schemas.error import ErrorResponse


class ApiError(Exception):
    """Structured API error that maps directly to contract error payloads."""

    def __init__(self, status_code: int, code: str, message: str, details: dict | None = None) -> None:
        self.status_code = status_code
        self.payload = ErrorResponse(code=code, message=message, details=details)
        super().__init__(message)


class InsufficientFundsError(ApiError):
    """Raised when a reservation would exceed the available balance."""

    def __init__(self, *, required: int, available: int) -> None:
        super().__init__(
            status_code=402,
            code="INSUFFICIENT_FUNDS",
            message="Available balance is lower than the required amount.",
            details={"required": required, "available": available},
        )


class ReindexConflictError(ApiError):
    """Raised when a reindex request cannot produce a unique ordering."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(status_code=409, code="REINDEX_CONFLICT", message=message, details=details)


def not_found() -> ApiError:
    return ApiError(status_code=404, code="RESOURCE_NOT_FOUND", message="Resource not found")


__all__ = ["ApiError", "InsufficientFundsError", "ReindexConflictError", "not_found"]
