"""
MongoStorage - MongoDB-backed storage for Shorty
================================================

Persists shortlinks as documents in one collection and adheres to the
`BaseStorage` contract, so it can replace the in-memory Storage without
touching the manager or the routes.

Key Design Points
-----------------
- **Uniqueness**: a unique index on `short` is created idempotently in
  `connect()`. Inserts and renames rely on it (`DuplicateKeyError`); there is
  no separate existence check before writing.
- **Atomicity**: update and redirect each use one `find_one_and_update`
  returning the new document, so concurrent redirects never lose an increment.
- **Timeouts**: every call runs inside `pymongo.timeout(self.timeout)`.
  `clear()` uses `pymongo.timeout(None)` (unbounded) for administrative use.
- **Connections**: one `MongoClient` per storage instance. The client pools
  connections internally and is safe to share across request threads.
- **Timestamps**: BSON dates have millisecond precision, so timestamps are
  truncated to milliseconds before writing; the entity returned by create and
  update then equals what a later read returns.

Document shape
--------------
    {"_id": ObjectId, "short": str, "long": str, "descr": str,
     "access_count": int, "created_at": datetime, "updated_at": datetime}

Example
-------
>>> storage = MongoStorage("mongodb://127.0.0.1:27017", db_name="shorty")
>>> storage.connect()
>>> storage.create_shortlink("ex", "http://example.com").access_count
0
>>> storage.resolve_redirect("ex")
'http://example.com'
"""

import contextlib
import logging
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

import pymongo
from bson import ObjectId
from pymongo import ASCENDING, MongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..config import DEFAULT_COLLECTION, DEFAULT_DB, DEFAULT_TIMEOUT
from ..errors import DuplicateError, NotFoundError, UnexpectedError
from ..models import Shortlink, utcnow
from .base import BaseStorage

logger = logging.getLogger(__name__)


def _millis(ts: datetime) -> datetime:
    return ts.replace(microsecond=ts.microsecond - ts.microsecond % 1000)


class MongoStorage(BaseStorage):
    """MongoDB implementation of the Shorty storage contract.

    Parameters
    ----------
    uri : str
        MongoDB connection URI. Empty means the driver default (localhost:27017).
    db_name : str
        Database holding the collection.
    collection_name : str
        Collection holding the shortlink documents.
    timeout : float
        Seconds allowed for each operation.
    client : MongoClient, optional
        Pre-built client (tests inject a stand-in here).
    """

    def __init__(
        self,
        uri: str = "",
        db_name: str = DEFAULT_DB,
        collection_name: str = DEFAULT_COLLECTION,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[MongoClient] = None,
    ) -> None:
        self.timeout = timeout
        self.client = client if client is not None else MongoClient(uri or None, tz_aware=True)
        self.collection = self.client[db_name][collection_name]

    # ---- Internal helpers -------------------------------------------------

    @contextlib.contextmanager
    def _op(self, action: str, bounded: bool = True) -> Iterator[None]:
        """Run one store call under the timeout and translate driver errors."""
        try:
            with pymongo.timeout(self.timeout if bounded else None):
                yield
        except DuplicateKeyError as exc:
            logger.info("Duplicate short while %s: %s", action, exc)
            raise DuplicateError("shortlink already exists") from exc
        except PyMongoError as exc:
            logger.error("Unexpected error %s: %s", action, exc)
            raise UnexpectedError(str(exc)) from exc

    @staticmethod
    def _to_model(doc: Dict[str, Any]) -> Shortlink:
        return Shortlink(
            id=str(doc["_id"]),
            short=doc["short"],
            long=doc["long"],
            descr=doc.get("descr", ""),
            access_count=doc.get("access_count", 0),
            created_at=doc["created_at"],
            updated_at=doc["updated_at"],
        )

    # ---- Lifecycle --------------------------------------------------------

    def connect(self) -> None:
        """Ping the server and create the unique index on `short`."""
        try:
            with self._op("connecting"):
                self.client.admin.command("ping")
                self.collection.create_index([("short", ASCENDING)], unique=True)
        except UnexpectedError:
            logger.error("Could not set up MongoDB, disconnecting")
            self.close()
            raise
        logger.info("Connected to MongoDB (%s.%s)", self.collection.database.name, self.collection.name)

    def close(self) -> None:
        logger.info("Disconnecting MongoDB")
        self.client.close()

    # ---- Contract methods -------------------------------------------------

    def list_shortlinks(self) -> List[Shortlink]:
        with self._op("listing shortlinks"):
            docs = list(self.collection.find({}))
        return [self._to_model(doc) for doc in docs]

    def get_shortlink(self, short: str) -> Shortlink:
        with self._op("finding shortlink"):
            doc = self.collection.find_one({"short": short})
        if doc is None:
            logger.info("Shortlink %r not found", short)
            raise NotFoundError("shortlink not found")
        return self._to_model(doc)

    def create_shortlink(self, short: str, long: str, description: str = "") -> Shortlink:
        now = _millis(utcnow())
        doc = {
            "_id": ObjectId(),
            "short": short,
            "long": long,
            "descr": description,
            "access_count": 0,
            "created_at": now,
            "updated_at": now,
        }
        with self._op("creating shortlink"):
            self.collection.insert_one(doc)
        return self._to_model(doc)

    def update_shortlink(self, short: str, new_short: str, long: str, description: str = "") -> Shortlink:
        update = {
            "$set": {
                "short": new_short,
                "long": long,
                "descr": description,
                "updated_at": _millis(utcnow()),
            }
        }
        with self._op("updating shortlink"):
            doc = self.collection.find_one_and_update(
                {"short": short},
                update,
                upsert=False,
                return_document=ReturnDocument.AFTER,
            )
        if doc is None:
            logger.info("Shortlink %r not found for update", short)
            raise NotFoundError("shortlink not found")
        return self._to_model(doc)

    def delete_shortlink(self, short: str) -> int:
        with self._op("deleting shortlink"):
            result = self.collection.delete_many({"short": short})
        return result.deleted_count

    def resolve_redirect(self, short: str) -> str:
        with self._op("redirecting"):
            doc = self.collection.find_one_and_update(
                {"short": short},
                {"$inc": {"access_count": 1}},
                projection={"long": 1},
                upsert=False,
                return_document=ReturnDocument.AFTER,
            )
        if doc is None:
            logger.info("No redirect for %r", short)
            raise NotFoundError("shortlink not found")
        return doc["long"]

    def is_free(self, short: str) -> bool:
        with self._op("checking for free"):
            doc = self.collection.find_one({"short": short}, projection={"_id": 1})
        return doc is None

    def clear(self) -> None:
        with self._op("clearing shortlinks", bounded=False):
            self.collection.delete_many({})
