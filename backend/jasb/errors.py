"""Ledger error taxonomy.

Every business-rule violation is raised as one of these before the write it
guards, so the surrounding transaction rolls back with nothing applied.
"""


class LedgerError(Exception):
    """Base exception for ledger errors."""

    kind = "Internal"
    status_code = 500
    retryable = False

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class UnauthorizedError(LedgerError):
    """No session, or the session has expired."""

    kind = "Unauthorized"
    status_code = 401


class ForbiddenError(LedgerError):
    """Authenticated but not entitled to the operation."""

    kind = "Forbidden"
    status_code = 403


class NotFoundError(LedgerError):
    """An identifier did not resolve."""

    kind = "NotFound"
    status_code = 404


class BadRequestError(LedgerError):
    """Malformed or out-of-range input."""

    kind = "BadRequest"
    status_code = 400


class ConflictError(LedgerError):
    """The request conflicts with the current state of an entity."""

    kind = "Conflict"
    status_code = 409


class VersionConflictError(ConflictError):
    """The entity changed since the caller read it. Reload and retry."""

    retryable = True

    def __init__(self, entity: str, expected: int, actual: int | None = None):
        if actual is None:
            message = f"{entity} was modified concurrently (expected version {expected})."
        else:
            message = f"{entity} is at version {actual}, not {expected}."
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class InvalidStateError(ConflictError):
    """The operation is not legal in the bet's current progress."""


class InsufficientFundsError(LedgerError):
    """The debit would exceed the debt ceiling."""

    kind = "InsufficientFunds"
    status_code = 400


class InternalError(LedgerError):
    """Unexpected failure."""
