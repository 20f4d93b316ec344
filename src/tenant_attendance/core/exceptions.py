class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class InvalidReason(ValidationError):
    """Raised when a correction reason or review note is too short."""


class InvalidRequestType(ValidationError):
    """Raised when a correction request type is not one of the known kinds."""


class ConflictError(DomainError):
    """Raised when an operation conflicts with the current state of a record."""


class AlreadyCheckedIn(ConflictError):
    pass


class AlreadyCheckedOut(ConflictError):
    pass


class NotCheckedIn(ConflictError):
    pass


class AttendanceClosed(ConflictError):
    pass


class DuplicatePending(ConflictError):
    pass


class NotPending(ConflictError):
    pass


class NotFoundError(DomainError):
    """Raised when a referenced tenant, employee, attendance or correction does not exist."""


class AuthenticationError(DomainError):
    """Raised when the caller cannot be identified."""


class AuthorizationError(DomainError):
    """Raised when a principal lacks permission for an action."""
