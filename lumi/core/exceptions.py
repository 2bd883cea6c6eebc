"""
Custom exceptions for the application.
"""


class LumiException(Exception):
    """Base exception for all Lumi application exceptions."""
    pass


class ValidationError(LumiException):
    """Raised when validation fails."""
    pass


class StateError(LumiException):
    """Raised when an operation is not allowed in the current state."""
    pass


class NotFoundError(LumiException):
    """Raised when a requested resource is not found."""
    pass


class ConflictError(LumiException):
    """Raised when there's a conflict (e.g., duplicate entry)."""
    pass


class AuthenticationError(LumiException):
    """Raised when authentication fails."""
    pass


class AuthorizationError(LumiException):
    """Raised when authorization fails."""
    pass


class PersistenceError(LumiException):
    """Raised when a write against the database fails; the action can be retried."""
    pass
