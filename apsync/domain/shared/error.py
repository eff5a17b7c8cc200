"""Error hierarchy shared by all domains.

Every error carries a human-readable ``message`` and a stable machine ``code``.
The HTTP layer maps error classes to status codes in one place
(``apsync.application.api.v1.errors``).
"""


class ApsyncError(Exception):
    """Base class for all apsync errors."""

    default_code = "error"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


# =============================================================================
# Domain errors
# =============================================================================


class DomainError(ApsyncError):
    """A request that the domain refuses to carry out."""


class ValidationError(DomainError):
    """Malformed input, rejected before any resolution work."""

    default_code = "validation_error"

    def __init__(self, message: str, *, field: str | None = None, code: str | None = None) -> None:
        super().__init__(message, code=code)
        self.field = field


class NotFoundError(DomainError):
    default_code = "not_found"


class InvalidStateError(DomainError):
    default_code = "invalid_state"


class ConflictError(DomainError):
    default_code = "conflict"


class SessionExpiredError(InvalidStateError):
    """A linking session token is unknown, expired or already consumed.

    The three causes are deliberately reported with one message.
    """

    default_code = "session_expired"

    def __init__(self) -> None:
        super().__init__(
            "This link has expired or was already used. Please start the connection again."
        )


class DuplicateTokenError(ConflictError):
    default_code = "duplicate_token"


class NoAudienceError(DomainError):
    """The authorized account has no audience to sync contacts into."""

    default_code = "no_audience"

    def __init__(self) -> None:
        super().__init__(
            "Your Mailchimp account doesn't have any audiences yet. "
            "Create an audience in Mailchimp first, then try again."
        )


# =============================================================================
# Infrastructure errors
# =============================================================================


class InfrastructureError(ApsyncError):
    """A dependency outside the process failed."""

    default_code = "infrastructure_error"


class ExternalServiceError(InfrastructureError):
    default_code = "external_service_error"


class UpstreamAuthError(ExternalServiceError):
    """The marketing platform rejected or failed the authorization exchange."""

    default_code = "upstream_auth_failed"


class StorageError(InfrastructureError):
    """A database operation failed; the enclosing transaction was rolled back."""

    default_code = "storage_error"
