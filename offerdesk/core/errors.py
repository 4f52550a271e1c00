"""
core/errors.py
--------------
Domain error taxonomy.

Services raise these; main.py turns them into structured JSON responses
of the form {"detail": <message>, "code": <CODE>}. Routers never catch them.

Tenant-boundary violations are reported as NotFound, with the same message
whether the row is absent or owned by another organisation.
"""

from typing import Optional

from fastapi import status


class DomainError(Exception):
    code: str = "DOMAIN_ERROR"
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request could not be processed"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class Unauthenticated(DomainError):
    code = "UNAUTHENTICATED"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Could not validate credentials"


class MissingOrganization(DomainError):
    """Valid session, but the account was never attached to an organisation."""

    code = "MISSING_ORGANIZATION"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "No organization is assigned to this account"


class Forbidden(DomainError):
    code = "FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Admin privileges required"


class NotFound(DomainError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"

    @classmethod
    def for_entity(cls, entity: str) -> "NotFound":
        return cls(f"{entity} not found")


class ValidationError(DomainError):
    code = "VALIDATION_ERROR"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "The submitted data is invalid"


class SlugConflict(DomainError):
    code = "SLUG_CONFLICT"
    status_code = status.HTTP_409_CONFLICT
    default_message = "A template with this slug already exists in your organization"


class InvalidTransition(DomainError):
    code = "INVALID_TRANSITION"
    status_code = status.HTTP_409_CONFLICT
    default_message = "This offer status change is not allowed"


class AllowlistLookupFailure(DomainError):
    """Internal only: the allowlist could not be read. Callers fail closed."""

    code = "ALLOWLIST_LOOKUP_FAILURE"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Admin allowlist lookup failed"


class EmailNotAllowed(Forbidden):
    code = "EMAIL_NOT_ALLOWED"
    default_message = "This email is not allowed to create an account. Contact an administrator."


class RateLimited(DomainError):
    code = "RATE_LIMITED"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests. Please retry shortly."

    def __init__(self, retry_after: int, message: Optional[str] = None) -> None:
        self.retry_after = max(1, int(retry_after))
        super().__init__(message)


class ServiceUnavailable(DomainError):
    code = "SERVICE_UNAVAILABLE"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "This feature is not available"


class EmailAlreadyRegistered(DomainError):
    code = "EMAIL_ALREADY_REGISTERED"
    status_code = status.HTTP_409_CONFLICT
    default_message = "This email is already registered"


class ConfigurationError(DomainError):
    code = "CONFIGURATION_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server configuration error"
