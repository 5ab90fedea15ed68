"""Error taxonomy for Valtify.

Every failure a caller can act on is one of the VaultError subclasses below.
The HTTP layer renders them as ``{"error": code, "detail": message}`` with the
matching status code; messages are fixed strings so that no store or
infrastructure detail reaches the client.
"""


class VaultError(Exception):
    """Base class for caller-facing errors."""

    status_code = 500
    code = "internal_error"
    default_detail = "Internal error"
    retryable = False

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def headers(self) -> dict[str, str] | None:
        return None


class InvalidInput(VaultError):
    status_code = 400
    code = "invalid_input"
    default_detail = "Invalid input"


class Conflict(VaultError):
    status_code = 409
    code = "conflict"
    default_detail = "Email already registered"


class Unauthorized(VaultError):
    status_code = 401
    code = "unauthorized"
    default_detail = "Unauthorized"

    def headers(self) -> dict[str, str]:
        return {"WWW-Authenticate": "Bearer"}


class NotFound(VaultError):
    # Same error whether the record is missing or owned by someone else.
    status_code = 404
    code = "not_found"
    default_detail = "Item not found"


class Unavailable(VaultError):
    status_code = 503
    code = "unavailable"
    default_detail = "Storage temporarily unavailable, retry later"
    retryable = True

    def headers(self) -> dict[str, str]:
        return {"Retry-After": "1"}


class PayloadError(VaultError):
    """A stored payload could not be decrypted (tampered, truncated or foreign)."""

    code = "payload_error"
    default_detail = "Stored item could not be decrypted"


class ConfigurationError(RuntimeError):
    """Raised at startup when required configuration is missing or invalid."""
