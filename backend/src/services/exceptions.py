"""
Shared exceptions for service layer operations.

Every failure a caller can act on is a ServiceError subclass. The API layer
maps each class to an HTTP status (see api/exception_handlers.py); anything
that is not a ServiceError is treated as an internal error.
"""


class ServiceError(Exception):
    """Base class for expected, user-facing failures."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(ServiceError):
    """Raised for malformed or out-of-range input, before any storage access."""


class UnauthorizedError(ServiceError):
    """Raised when no credential was presented for an operation that requires one."""

    def __init__(self, message: str = "Access token required") -> None:
        super().__init__(message)


class ForbiddenError(ServiceError):
    """Raised when a credential is present but insufficient (wrong owner, private resource)."""

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(message)


class NotFoundError(ServiceError):
    """Raised when a referenced entity does not exist (or is not visible to the caller)."""

    def __init__(self, entity: str) -> None:
        self.entity = entity
        super().__init__(f"{entity} not found")


class ConflictError(ServiceError):
    """Raised on a uniqueness violation."""


class DuplicateBookmarkError(ConflictError):
    """Raised when a bookmark with the same URL already exists for the owner."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"A bookmark with URL '{url}' already exists")


class TagAlreadyExistsError(ConflictError):
    """Raised when creating a tag the owner already has."""

    def __init__(self, tag_name: str) -> None:
        self.tag_name = tag_name
        super().__init__(f"Tag '{tag_name}' already exists")


class UserAlreadyExistsError(ConflictError):
    """Raised when registering with a username or email that is taken."""

    def __init__(self) -> None:
        super().__init__("Username or email already exists")


class WeakPasswordError(ValidationError):
    """Raised when a password fails the strength policy."""


class InvalidCredentialsError(ServiceError):
    """
    Raised when a login or password re-verification fails.

    Deliberately does not say whether the account exists.
    """

    def __init__(self, message: str = "Invalid email or password") -> None:
        super().__init__(message)


class InvalidOrExpiredTokenError(ServiceError):
    """The only failure the token service produces."""

    def __init__(self, message: str = "Invalid or expired token") -> None:
        super().__init__(message)


class UpstreamDegradedError(ServiceError):
    """
    Raised inside the metadata fetcher when the remote page can't be used.

    Never escapes the fetcher: it is always replaced by fallback metadata.
    """
