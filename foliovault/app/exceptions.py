"""Custom exceptions for the FolioVault application."""


class FolioVaultException(Exception):
    """Base class for application exceptions with HTTP status code.

    All custom exceptions should inherit from this class and define
    their specific status_code for consistent HTTP response handling.
    """
    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str = "Internal server error"):
        self.message = message
        super().__init__(message)


class AuthenticationError(FolioVaultException):
    """Raised when bearer token authentication fails.

    Maps to HTTP 401 Unauthorized.
    """
    status_code = 401
    error_code = "authentication_failed"

    def __init__(self, detail: str = "Unauthorized"):
        self.detail = detail
        super().__init__(detail)


class RateLimitExceededError(FolioVaultException):
    """Raised by request handlers when the limiter rejects a call.

    The limiter itself never raises; handlers turn a rejected
    RateLimitResult into this exception. Maps to HTTP 429.
    """
    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(
        self,
        retry_after_seconds: int,
        reset_at: int,
        message: str = "Rate limit exceeded. Please try again later.",
    ):
        self.retry_after_seconds = retry_after_seconds
        self.reset_at = reset_at
        super().__init__(message)


class ValidationFailedError(FolioVaultException):
    """Raised when request parameters fail validation.

    Maps to HTTP 400 Bad Request.
    """
    status_code = 400
    error_code = "validation_failed"

    def __init__(self, message: str = "Validation failed", details: list[str] | None = None):
        self.details = details or []
        super().__init__(message)


class NoCredentialsConfiguredError(FolioVaultException):
    """Raised when a user has no active exchange key matching the request.

    Maps to HTTP 400 Bad Request.
    """
    status_code = 400
    error_code = "no_credentials"

    def __init__(
        self,
        message: str = "No Binance API keys configured. Please add your API keys in settings.",
    ):
        super().__init__(message)


class NotFoundError(FolioVaultException):
    """Maps to HTTP 404 Not Found."""
    status_code = 404
    error_code = "not_found"


class ConflictError(FolioVaultException):
    """Maps to HTTP 409 Conflict."""
    status_code = 409
    error_code = "conflict"


class EncryptionConfigError(FolioVaultException):
    """Raised when the encryption key is missing or malformed."""
    status_code = 500
    error_code = "internal_error"


class DecryptionError(FolioVaultException):
    """Raised when stored ciphertext cannot be decrypted.

    Covers corrupt ciphertext and wrong key material. Never recovered
    from within a request.
    """
    status_code = 500
    error_code = "internal_error"


class ExchangeClientError(FolioVaultException):
    """Raised when the exchange answers with an error or garbage.

    Attributes:
        code: Binance error code (or HTTP status when no code was sent)
        original_message: Raw message returned by the exchange

    Maps to HTTP 502 Bad Gateway.
    """
    status_code = 502
    error_code = "exchange_error"

    def __init__(self, code: int, message: str, original_message: str = ""):
        self.code = code
        self.original_message = original_message
        super().__init__(message)
