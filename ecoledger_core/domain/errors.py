"""Base exceptions shared by the EcoLedger domain services.

Service-specific failures live next to the service that raises them and
derive from ``EcoLedgerError`` so callers can tell every rejection apart.
"""


class EcoLedgerError(Exception):
    """Base exception for all domain failures."""

    pass


class ValidationError(EcoLedgerError):
    """Raised when input is rejected before anything is persisted."""

    pass


class ConflictError(EcoLedgerError):
    """Raised when a consistency check rejects an otherwise valid request."""

    pass


class NotFoundError(EcoLedgerError):
    """Raised when a referenced entity does not exist."""

    pass


class PersistenceError(EcoLedgerError):
    """Raised when the store fails; the operation left no partial writes.

    Retriable by the caller.
    """

    pass
