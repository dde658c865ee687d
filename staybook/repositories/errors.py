"""Error kinds raised by the data-access layer.

Lookups that simply find nothing return ``None`` or an empty list; these
exceptions are reserved for contract violations and store failures. The HTTP
layer maps each kind to its own status code.
"""


class DataAccessError(Exception):
    """Base class for data-access errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidArgumentError(DataAccessError):
    """Raised for missing or invalid constructor and parameter input."""


class NotFoundError(DataAccessError):
    """Raised when an operation requires an entity that does not exist."""

    def __init__(self, message: str, entity: str | None = None, entity_id: int | None = None) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(message)


class ConflictError(DataAccessError):
    """Raised when a transaction is requested while one is already open."""


class MultipleResultsError(DataAccessError):
    """Raised when a single-result query matches more than one row."""


class PersistenceError(DataAccessError):
    """Raised when the underlying store fails; the driver error is chained as ``__cause__``."""
