class PageTurnerError(Exception):
    """Base class for errors raised by the reader core."""


class InvalidArgumentError(PageTurnerError, ValueError):
    """Raised before any I/O when an argument is unusable (e.g. chunk size <= 0)."""


class StoreUnavailableError(PageTurnerError):
    """Raised when the document store cannot be reached or fails mid-query.

    Distinct from a not-found result: callers decide whether to retry.
    """


class IngestFailedError(StoreUnavailableError):
    """Raised when a document and its chunks could not be written together."""


class DocumentLimitExceededError(PageTurnerError):
    """Raised when the owner already holds as many documents as allowed."""


class UserAlreadyExistsError(PageTurnerError):
    """Raised when a registration collides with an existing reader."""
