"""
Base storage interface for Shorty.

Purpose:
    Define a small, stable contract that multiple storage backends
    (in-memory, MongoDB, PostgreSQL) implement without requiring
    changes to the manager or the routes.

Contract:
    - Every mutating call is a single atomic operation against the backend:
      no read-modify-write split across two round trips.
    - Uniqueness of `short` is enforced by the backend itself (unique index,
      UNIQUE constraint, or a lock), never by a separate existence check.
    - Failures surface as `NotFoundError`, `DuplicateError` or
      `UnexpectedError` from `shorty.errors`; nothing is retried.
    - Calls are bounded by the backend's timeout, except `clear()`, which is
      an administrative operation and runs unbounded.

Testing & Coverage:
    These are abstract methods and are not executed directly in tests.
    We annotate them with `# pragma: no cover` so coverage tools don't
    penalize the project for un-runnable abstract declarations.
"""

from abc import ABC, abstractmethod
from typing import List

from ..models import Shortlink


class BaseStorage(ABC):
    """Abstract base class for storage backends."""

    def connect(self) -> None:
        """
        Establish connectivity and create the uniqueness constraint on `short`.

        Called once at startup. Must be idempotent. Backends without a remote
        side keep this no-op.

        Raises:
            UnexpectedError: If the store is unreachable or the constraint
                cannot be created. The service must not start in that case.
        """

    def close(self) -> None:
        """Best-effort disconnect; called on shutdown."""

    @abstractmethod  # pragma: no cover
    def list_shortlinks(self) -> List[Shortlink]:
        """Return every shortlink in natural store order; [] when empty."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def get_shortlink(self, short: str) -> Shortlink:
        """
        Retrieve a shortlink by its short key.

        Raises:
            NotFoundError: If no shortlink matches.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def create_shortlink(self, short: str, long: str, description: str = "") -> Shortlink:
        """
        Insert a new shortlink. The backend assigns id, created_at == updated_at
        and access_count = 0.

        Returns:
            Shortlink: The fully populated entity.

        Raises:
            DuplicateError: If `short` is already taken.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def update_shortlink(self, short: str, new_short: str, long: str, description: str = "") -> Shortlink:
        """
        Replace short/long/description of the shortlink keyed by `short` and
        refresh updated_at, atomically. access_count and created_at are kept.

        Returns:
            Shortlink: The entity after the update.

        Raises:
            NotFoundError: If no shortlink matches `short`.
            DuplicateError: If `new_short` belongs to a different shortlink.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def delete_shortlink(self, short: str) -> int:
        """Delete every shortlink matching `short`; return how many were removed (0 or 1)."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def resolve_redirect(self, short: str) -> str:
        """
        Atomically increment access_count and return the target URL.
        updated_at is not modified.

        Raises:
            NotFoundError: If no shortlink matches.
        """
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def is_free(self, short: str) -> bool:
        """True if no shortlink uses `short`."""
        raise NotImplementedError

    @abstractmethod  # pragma: no cover
    def clear(self) -> None:
        """Remove every shortlink. Administrative; runs without a timeout."""
        raise NotImplementedError
