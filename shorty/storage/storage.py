"""
Storage module for Shorty (in-memory implementation).

Responsibilities:
    - Keep shortlinks keyed by their short key
    - Enforce uniqueness of `short` on create and on rename
    - Count redirects without lost updates under concurrent requests

Design:
    - In-memory reference implementation of the BaseStorage contract.
    - A single lock guards the dict, so each operation is atomic the same way
      a find-and-modify is atomic in a real store.
    - Used by the test-suite and for local development
      (SHORTY_STORAGE_BACKEND=memory).
"""

import threading
import uuid
from typing import Any, Dict, List

from ..errors import DuplicateError, NotFoundError
from ..models import Shortlink, utcnow
from .base import BaseStorage


class Storage(BaseStorage):
    def __init__(self):
        """
        Initialize empty storage dictionary.

        Internal schema:
            self.shortlinks = {
                short: {
                    "id": str,
                    "short": str,
                    "long": str,
                    "descr": str,
                    "access_count": int,
                    "created_at": datetime,
                    "updated_at": datetime,
                }
            }
        """
        self.shortlinks: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _to_model(record: Dict[str, Any]) -> Shortlink:
        return Shortlink(**record)

    def list_shortlinks(self) -> List[Shortlink]:
        with self._lock:
            return [self._to_model(record) for record in self.shortlinks.values()]

    def get_shortlink(self, short: str) -> Shortlink:
        with self._lock:
            record = self.shortlinks.get(short)
            if record is None:
                raise NotFoundError("shortlink not found")
            return self._to_model(record)

    def create_shortlink(self, short: str, long: str, description: str = "") -> Shortlink:
        """
        Insert a new shortlink.

        Rules:
            - `short` must not be used by any record (no short duplicates).
            - created_at and updated_at share one timestamp.
        """
        with self._lock:
            now = utcnow()
            if short in self.shortlinks:
                raise DuplicateError("shortlink already exists")
            record = {
                "id": uuid.uuid4().hex,
                "short": short,
                "long": long,
                "descr": description,
                "access_count": 0,
                "created_at": now,
                "updated_at": now,
            }
            self.shortlinks[short] = record
            return self._to_model(record)

    def update_shortlink(self, short: str, new_short: str, long: str, description: str = "") -> Shortlink:
        """
        Replace the mutable fields of `short`, renaming it to `new_short`.

        Rules:
            - Missing `short` -> NotFoundError (checked first, like a filter that matches nothing).
            - `new_short` taken by another record -> DuplicateError, nothing changes.
            - id, access_count and created_at are carried over.
        """
        with self._lock:
            now = utcnow()
            record = self.shortlinks.get(short)
            if record is None:
                raise NotFoundError("shortlink not found")
            if new_short != short and new_short in self.shortlinks:
                raise DuplicateError("shortlink already exists")

            updated = dict(record, short=new_short, long=long, descr=description, updated_at=now)
            del self.shortlinks[short]
            self.shortlinks[new_short] = updated
            return self._to_model(updated)

    def delete_shortlink(self, short: str) -> int:
        with self._lock:
            return 1 if self.shortlinks.pop(short, None) is not None else 0

    def resolve_redirect(self, short: str) -> str:
        with self._lock:
            record = self.shortlinks.get(short)
            if record is None:
                raise NotFoundError("shortlink not found")
            record["access_count"] += 1
            return record["long"]

    def is_free(self, short: str) -> bool:
        with self._lock:
            return short not in self.shortlinks

    def clear(self) -> None:
        with self._lock:
            self.shortlinks.clear()
