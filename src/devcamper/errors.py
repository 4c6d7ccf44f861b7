class DevcamperError(Exception):
    """Base exception for all Devcamper errors.

    Carries the HTTP status the error stage answers with and any extra
    response headers it should set.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.headers = headers or {}
        super().__init__(message)


class ErrorResponse(DevcamperError):
    """Raised by route groups with an explicit status."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message, status_code)


class MalformedInputError(DevcamperError):
    status_code = 400


class ValidationFailedError(DevcamperError):
    status_code = 400


class AuthenticationError(DevcamperError):
    status_code = 401

    def __init__(self, message: str = "Not authorized to access this route") -> None:
        super().__init__(message)


class ResourceNotFoundError(DevcamperError):
    status_code = 404

    def __init__(self, resource: str, identifier: object) -> None:
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found with id of {identifier}")


class PayloadTooLargeError(DevcamperError):
    status_code = 413


class RateLimitExceededError(DevcamperError):
    status_code = 429

    def __init__(self, retry_after: int) -> None:
        self.retry_after = retry_after
        super().__init__(
            "Too many requests, please try again later.",
            headers={"Retry-After": str(retry_after)},
        )


class ConfigurationError(DevcamperError):
    """Required configuration is missing; the process cannot start."""


class StoreConnectionError(DevcamperError):
    """The backing store is unreachable at startup; the process cannot start."""
