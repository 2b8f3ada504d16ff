class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a slot, session, student or attendance row does not exist."""


class ConflictError(DomainError):
    """Raised on overlapping time slots, duplicate sessions or repeated check-ins."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class InvalidTransitionError(DomainError):
    """Raised when a terminal session (or its attendance) would be mutated."""
