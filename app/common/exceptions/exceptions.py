# app/common/exceptions/exceptions.py
# =============================================================================
# Custom exceptions for EventHub Platform
# =============================================================================


class EventHubException(Exception):
    """Base exception for EventHub platform"""
    pass


class AuthorizationError(EventHubException):
    """Raised when authorization fails"""
    pass


class ValidationError(EventHubException):
    """Raised when validation fails"""
    pass


class NotFoundError(EventHubException):
    """Raised when a resource is not found"""
    pass


# Alias for compatibility
ResourceNotFoundError = NotFoundError


class ConflictError(EventHubException):
    """Raised when there's a conflict (e.g., concurrent modification)"""
    pass


class DomainError(EventHubException):
    """Raised for domain-specific errors"""
    pass


class InfrastructureError(EventHubException):
    """Raised for infrastructure errors"""
    pass
