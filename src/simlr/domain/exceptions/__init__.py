"""Domain exceptions.

Every exception here maps to exactly one HTTP status in
``simlr.api.exception_handlers``. Raise the most specific subclass so the
handler can pick the right status; never raise ``DomainException`` directly.
"""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, message is stored as an attribute so handlers can return it
    # without parsing str(exception).
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EntityNotFoundException(DomainException):
    """Raised when an entity is not found.

    HTTP Status: 404
    """

    def __init__(
        self, entity_type: str, entity_id: Any, message: str | None = None
    ) -> None:
        super().__init__(message or f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class AlbumIdentifierNotRecognized(EntityNotFoundException):
    """Raised when an album identifier matches neither known ID format.

    HTTP Status: 404
    """

    def __init__(self, identifier: str) -> None:
        super().__init__(
            "Album",
            identifier,
            message=f"Album identifier '{identifier}' is not a MusicBrainz or Spotify ID",
        )


class DuplicateEntityException(DomainException):
    """Raised when a uniqueness rule is violated (username taken, email registered).

    HTTP Status: 409
    """

    def __init__(
        self, entity_type: str, entity_id: Any, message: str | None = None
    ) -> None:
        super().__init__(message or f"{entity_type} with id {entity_id} already exists")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ValidationException(DomainException):
    """Raised when input fails a domain validation rule.

    HTTP Status: 400
    """

    pass


class BusinessRuleViolation(DomainException):
    """A business rule was violated.

    Raised for self-loop similarity edges, albums that must be upserted first,
    comment parents from another post, and similar rule breaks.

    HTTP Status: 400

    Example:
        raise BusinessRuleViolation("Source and target must be different albums")
    """

    pass


class AuthenticationError(DomainException):
    """User is not authenticated or the token is invalid/expired.

    HTTP Status: 401
    """

    pass


class AuthorizationError(DomainException):
    """User is authenticated but a gate condition is unmet.

    HTTP Status: 403

    Example:
        raise AuthorizationError("You must rate the source album before adding Simlrs.")
    """

    pass


class ExternalServiceError(DomainException):
    """External service (MusicBrainz, Cover Art Archive, Spotify) failed.

    Raised after retries are exhausted or on a non-retryable error status.

    HTTP Status: 500
    """

    def __init__(
        self, service: str, message: str, status_code: int | None = None
    ) -> None:
        super().__init__(f"{service} error: {message}")
        self.service = service
        self.status_code = status_code


class ConfigurationError(DomainException):
    """Application misconfiguration.

    HTTP Status: 500
    """

    pass


__all__ = [
    "DomainException",
    "EntityNotFoundException",
    "AlbumIdentifierNotRecognized",
    "DuplicateEntityException",
    "ValidationException",
    "BusinessRuleViolation",
    "AuthenticationError",
    "AuthorizationError",
    "ExternalServiceError",
    "ConfigurationError",
]
