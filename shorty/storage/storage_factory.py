"""
Storage factory - switch storage backend from config (lazy env version)
=======================================================================

This module centralizes selection of the storage backend so the rest of the
app can stay ignorant of where data lives.

- Reads environment **at call time** (via `load_settings()`) to avoid stale
  values in tests.
- Imports driver-backed backends **only if** selected.
- Builds the backend but does not connect it; `connect()` runs at app startup.

Environment variables
---------------------
- SHORTY_STORAGE_BACKEND: "mongo" (default), "postgres" or "memory"
- MONGO_URL, SHORTY_DB, SHORTY_COLLECTION: used by "mongo"
- SHORTY_DB_DSN, SHORTY_COLLECTION:        used by "postgres"
- SHORTY_TIMEOUT:                          per-operation timeout (seconds)
"""

import logging
from typing import Optional

from shorty.config import load_settings
from shorty.storage.base import BaseStorage
from shorty.storage.storage import Storage

logger = logging.getLogger(__name__)


def get_storage(backend: Optional[str] = None, **kwargs) -> BaseStorage:
    """
    Return a BaseStorage implementation based on configuration.

    Parameters
    ----------
    backend : str, optional
        "mongo", "postgres" or "memory". If omitted, reads SHORTY_STORAGE_BACKEND.
    kwargs : dict
        Overrides passed to the backend constructor
        (mongo: uri, db_name, collection_name, timeout; postgres: dsn, table, timeout).

    Returns
    -------
    BaseStorage-compatible instance

    Raises
    ------
    ValueError
        Unknown backend, or postgres selected without a DSN.
    """
    settings = load_settings()
    be = (backend or settings.STORAGE_BACKEND).strip().lower()
    logger.info("Selected storage backend: %r", be)

    if be == "memory":
        return Storage()

    if be == "mongo":
        from shorty.storage.mongo_storage import MongoStorage

        return MongoStorage(
            uri=kwargs.get("uri", settings.MONGO_URL),
            db_name=kwargs.get("db_name", settings.DB_NAME),
            collection_name=kwargs.get("collection_name", settings.COLLECTION_NAME),
            timeout=kwargs.get("timeout", settings.TIMEOUT),
        )

    if be == "postgres":
        dsn = kwargs.get("dsn") or settings.DB_DSN
        if not dsn:
            raise ValueError("DB_DSN is required for postgres backend (env SHORTY_DB_DSN)")
        from shorty.storage.db_storage import DBStorage

        return DBStorage(
            dsn=dsn,
            table=kwargs.get("table", settings.COLLECTION_NAME),
            timeout=kwargs.get("timeout", settings.TIMEOUT),
        )

    raise ValueError(f"Unknown storage backend: {be!r}")
