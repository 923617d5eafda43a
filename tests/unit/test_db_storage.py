import contextlib
from datetime import datetime, timezone

import psycopg.errors
import psycopg.rows
import pytest
from psycopg_pool import PoolTimeout

from shorty.errors import DuplicateError, NotFoundError, UnexpectedError
from shorty.storage.db_storage import DBStorage

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_row(short="ex", **extra):
    row = {
        "id": 7,
        "short": short,
        "long": "http://example.com",
        "descr": "Example item",
        "access_count": 0,
        "created_at": NOW,
        "updated_at": NOW,
    }
    row.update(extra)
    return row


class DummyCursor:
    def __init__(self, results=None, rowcount=1, raises=None, row_factory=None):
        # results is a list of dicts (dict_row) or tuples
        self._results = list(results or [])
        self.rowcount = rowcount
        self.raises = raises
        self.row_factory = row_factory
        self.queries = []

    def execute(self, query, params=None):
        self.queries.append((query, params))
        if self.raises is not None:
            raise self.raises
        return self

    def fetchone(self):
        return self._results.pop(0) if self._results else None

    def fetchall(self):
        rows, self._results = self._results, []
        return rows

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class DummyConnection:
    def __init__(self, results=None, rowcount=1, raises=None):
        self.results = results
        self.rowcount = rowcount
        self.raises = raises
        self.executed = []
        self.cursors = []

    def execute(self, query, params=None):
        self.executed.append((query, params))

    def cursor(self, row_factory=None):
        cur = DummyCursor(results=self.results, rowcount=self.rowcount, raises=self.raises, row_factory=row_factory)
        self.cursors.append(cur)
        return cur


class DummyPool:
    def __init__(self, conn=None, open_raises=None):
        self.conn = conn or DummyConnection()
        self.open_raises = open_raises
        self.timeouts = []
        self.opened = False
        self.closed = False

    def open(self, wait=False, timeout=30.0):
        if self.open_raises is not None:
            raise self.open_raises
        self.opened = True

    def close(self):
        self.closed = True

    @contextlib.contextmanager
    def connection(self, timeout=None):
        self.timeouts.append(timeout)
        yield self.conn


def make_storage(conn=None, **pool_kwargs):
    pool = DummyPool(conn=conn, **pool_kwargs)
    return DBStorage("fake", table="shorts", timeout=2.0, pool=pool), pool


# ---------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------

def test_connect_opens_pool_and_creates_schema():
    storage, pool = make_storage()

    storage.connect()

    assert pool.opened is True
    statements = [q for q, _ in pool.conn.executed]
    # set_config, CREATE TABLE, CREATE UNIQUE INDEX
    assert len(statements) == 3
    assert pool.closed is False


def test_connect_failure_closes_pool():
    storage, pool = make_storage(open_raises=PoolTimeout("couldn't get a connection"))

    with pytest.raises(UnexpectedError):
        storage.connect()
    assert pool.closed is True


def test_every_call_sets_statement_timeout():
    storage, pool = make_storage(conn=DummyConnection(results=[]))

    storage.list_shortlinks()

    query, params = pool.conn.executed[0]
    assert "statement_timeout" in query
    assert params == ("2000ms",)
    assert pool.timeouts == [2.0]


def test_clear_is_unbounded():
    storage, pool = make_storage()

    storage.clear()

    assert pool.timeouts == [None]
    assert len(pool.conn.executed) == 1
    assert "statement_timeout" not in str(pool.conn.executed[0][0])


# ---------------------------------------------------------------------
# Contract methods
# ---------------------------------------------------------------------

def test_list_shortlinks():
    storage, _ = make_storage(conn=DummyConnection(results=[make_row("a"), make_row("b")]))

    assert [s.short for s in storage.list_shortlinks()] == ["a", "b"]


def test_get_shortlink_uses_dict_rows():
    conn = DummyConnection(results=[make_row(access_count=4)])
    storage, _ = make_storage(conn=conn)

    shortlink = storage.get_shortlink("ex")

    assert conn.cursors[0].row_factory is psycopg.rows.dict_row
    assert conn.cursors[0].queries[0][1] == ("ex",)
    assert shortlink.id == "7"
    assert shortlink.access_count == 4
    assert shortlink.description == "Example item"


def test_get_shortlink_missing():
    storage, _ = make_storage(conn=DummyConnection(results=[]))
    with pytest.raises(NotFoundError, match="shortlink not found"):
        storage.get_shortlink("ex")


def test_create_shortlink_returns_inserted_row():
    conn = DummyConnection(results=[make_row()])
    storage, _ = make_storage(conn=conn)

    shortlink = storage.create_shortlink("ex", "http://example.com", "Example item")

    params = conn.cursors[0].queries[0][1]
    assert params[:3] == ("ex", "http://example.com", "Example item")
    assert params[3] == params[4]
    assert shortlink.short == "ex"


def test_create_shortlink_duplicate():
    conn = DummyConnection(raises=psycopg.errors.UniqueViolation("duplicate key value"))
    storage, _ = make_storage(conn=conn)

    with pytest.raises(DuplicateError, match="shortlink already exists"):
        storage.create_shortlink("ex", "http://example.com")


def test_update_shortlink():
    conn = DummyConnection(results=[make_row("excom", access_count=2)])
    storage, _ = make_storage(conn=conn)

    shortlink = storage.update_shortlink("ex", "excom", "http://example.com", "d")

    params = conn.cursors[0].queries[0][1]
    assert params[0] == "excom"
    assert params[-1] == "ex"
    assert shortlink.short == "excom"
    assert shortlink.access_count == 2


def test_update_shortlink_missing():
    storage, _ = make_storage(conn=DummyConnection(results=[]))
    with pytest.raises(NotFoundError):
        storage.update_shortlink("ex", "excom", "http://example.com")


def test_update_shortlink_duplicate():
    conn = DummyConnection(raises=psycopg.errors.UniqueViolation("duplicate key value"))
    storage, _ = make_storage(conn=conn)
    with pytest.raises(DuplicateError):
        storage.update_shortlink("ex", "taken", "http://example.com")


def test_delete_shortlink_returns_rowcount():
    storage, _ = make_storage(conn=DummyConnection(rowcount=1))
    assert storage.delete_shortlink("ex") == 1

    storage, _ = make_storage(conn=DummyConnection(rowcount=0))
    assert storage.delete_shortlink("ex") == 0


def test_resolve_redirect():
    storage, _ = make_storage(conn=DummyConnection(results=[("http://example.com",)]))
    assert storage.resolve_redirect("ex") == "http://example.com"


def test_resolve_redirect_missing():
    storage, _ = make_storage(conn=DummyConnection(results=[]))
    with pytest.raises(NotFoundError):
        storage.resolve_redirect("ex")


def test_is_free():
    storage, _ = make_storage(conn=DummyConnection(results=[(True,)]))
    assert storage.is_free("ex") is False

    storage, _ = make_storage(conn=DummyConnection(results=[(False,)]))
    assert storage.is_free("ex") is True


def test_driver_error_is_unexpected():
    conn = DummyConnection(raises=psycopg.OperationalError("server closed the connection"))
    storage, _ = make_storage(conn=conn)

    with pytest.raises(UnexpectedError, match="server closed"):
        storage.list_shortlinks()
