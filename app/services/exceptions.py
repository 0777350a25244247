"""Custom exceptions for the service layer."""

from typing import Any


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, code: str = "SERVICE_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(ServiceError):
    """Resource not found error."""

    def __init__(self, resource_type: str, resource_id: Any):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(
            message=f"{resource_type} with ID {resource_id} not found",
            code=f"{resource_type.upper()}_NOT_FOUND"
        )


class UserNotFoundError(NotFoundError):
    """User not found error."""

    def __init__(self, user_id: Any):
        super().__init__("User", user_id)


class ReimbursementNotFoundError(NotFoundError):
    """Reimbursement not found error."""

    def __init__(self, reimbursement_id: int):
        super().__init__("Reimbursement", reimbursement_id)


class OOONotFoundError(NotFoundError):
    """Out-of-office record not found error."""

    def __init__(self, ooo_id: int):
        super().__init__("OOO", ooo_id)


class InvalidStateError(ServiceError):
    """Operation not permitted in the resource's current state."""

    def __init__(self, message: str):
        super().__init__(message=message, code="INVALID_STATE")


class DomainNotAllowedError(ServiceError):
    """Email address outside the allowed organization domain."""

    def __init__(self, email: str, allowed_domain: str):
        self.email = email
        self.allowed_domain = allowed_domain
        super().__init__(
            message=f"Only {allowed_domain} email addresses are allowed",
            code="DOMAIN_NOT_ALLOWED"
        )


class IdentityProviderError(ServiceError):
    """The identity provider rejected a request or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message=message, code="IDENTITY_PROVIDER_ERROR")


class PersistenceError(ServiceError):
    """A database operation failed and was rolled back."""

    def __init__(self, message: str):
        super().__init__(message=message, code="PERSISTENCE_ERROR")


class ReconciliationError(ServiceError):
    """Creating or updating a user from a provider profile failed."""

    def __init__(self, message: str):
        super().__init__(
            message=f"Failed to create or update user: {message}",
            code="RECONCILIATION_FAILED"
        )
