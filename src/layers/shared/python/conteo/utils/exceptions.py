"""Custom exception classes for Conteo ingestion."""


class ConteoError(Exception):
    """Base exception for all Conteo errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int = 500,
        details: dict | None = None,
    ):
        """Initialize ConteoError.

        Args:
            message: Human-readable error message.
            error_code: Machine-readable error code.
            status_code: HTTP status code for API responses.
            details: Additional error details.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "INTERNAL_ERROR"
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert exception to dictionary for API response."""
        result = {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class ValidationError(ConteoError):
    """Raised when a request body is malformed or misses required fields."""

    def __init__(
        self,
        message: str = "Validation failed",
        errors: list[dict] | None = None,
    ):
        """Initialize ValidationError.

        Args:
            message: Error message.
            errors: List of validation errors with field and message.
        """
        self.errors = errors or []
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=400,
            details={"errors": self.errors} if self.errors else None,
        )

    @classmethod
    def from_pydantic(cls, exc: Exception) -> "ValidationError":
        """Create ValidationError from Pydantic ValidationError."""
        errors = []
        if hasattr(exc, "errors"):
            for error in exc.errors():
                errors.append(
                    {
                        "field": ".".join(str(loc) for loc in error.get("loc", [])),
                        "message": error.get("msg", "Invalid value"),
                        "type": error.get("type", "unknown"),
                    }
                )
        return cls(message="Validation failed", errors=errors)


class UnauthorizedError(ConteoError):
    """Raised when the presented site credential cannot be resolved."""

    def __init__(self, message: str = "Invalid API key"):
        """Initialize UnauthorizedError."""
        super().__init__(
            message=message,
            error_code="UNAUTHORIZED",
            status_code=401,
        )


class ForbiddenError(ConteoError):
    """Raised when the request origin does not belong to the site."""

    def __init__(
        self,
        message: str = "Invalid domain",
        origin: str | None = None,
    ):
        """Initialize ForbiddenError."""
        super().__init__(
            message=message,
            error_code="FORBIDDEN",
            status_code=403,
            details={"origin": origin} if origin else None,
        )


class RateLimitError(ConteoError):
    """Raised when rate limit is exceeded."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: int | None = None,
    ):
        """Initialize RateLimitError."""
        self.retry_after = retry_after
        details = {}
        if retry_after:
            details["retry_after_seconds"] = retry_after

        super().__init__(
            message=message,
            error_code="RATE_LIMITED",
            status_code=429,
            details=details if details else None,
        )


class PersistenceError(ConteoError):
    """Raised when the backing store rejects or fails a write."""

    def __init__(
        self,
        operation: str,
        message: str | None = None,
        original_error: str | None = None,
    ):
        """Initialize PersistenceError."""
        self.operation = operation
        super().__init__(
            message=message or f"Failed to {operation}",
            error_code="PERSISTENCE_ERROR",
            status_code=500,
            details={"operation": operation},
        )
        self.original_error = original_error
