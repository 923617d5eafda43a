"""Exceptions raised by the Shorty store and API layer.

Classes:
    ShortyError:
        Base class for every error this package raises on purpose.

    ValidationError:
        Raised when a short key or target URL is syntactically invalid.
        Always raised before the store is touched.

    StorageError:
        Base class for failures reported by a storage backend.

    NotFoundError:
        Raised when no shortlink matches the requested short key.

    DuplicateError:
        Raised when the store's uniqueness constraint on `short` rejects a write.

    UnexpectedError:
        Raised for any other store failure (connectivity, timeout, driver errors).

Example:
    >>> from shorty.errors import NotFoundError
    >>> raise NotFoundError("shortlink not found")
    Traceback (most recent call last):
        ...
    shorty.errors.NotFoundError: shortlink not found
"""


class ShortyError(Exception):
    """Base class for Shorty errors."""

    pass


class ValidationError(ShortyError):
    """Malformed short key or URL."""

    pass


class StorageError(ShortyError):
    """Generic base class for storage backend errors."""

    pass


class NotFoundError(StorageError):
    """No shortlink matches the given short key."""

    pass


class DuplicateError(StorageError):
    """A shortlink with the same short key already exists."""

    pass


class UnexpectedError(StorageError):
    """Any other failure in the store, e.g. connection issues or timeouts."""

    pass
