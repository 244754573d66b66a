import psycopg
import pytest

from app.db.helpers import DatabaseError, execute_query, fetch_all, with_db_retry


class FakeCursor:
    def __init__(self, rows=None, rowcount=0, error=None):
        self.rows = rows or []
        self.rowcount = rowcount
        self.error = error
        self.executed = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def execute(self, query, params):
        if self.error:
            raise self.error
        self.executed.append((query, params))

    async def fetchall(self):
        return list(self.rows)


class FakeConnection:
    def __init__(self, cursor):
        self._cursor = cursor

    def cursor(self):
        return self._cursor


@pytest.mark.asyncio
async def test_fetch_all_uses_supplied_connection():
    cursor = FakeCursor(rows=[{"id": 1}, {"id": 2}])
    conn = FakeConnection(cursor)

    assert await fetch_all("SELECT id FROM t WHERE id > %s", (0,), connection=conn) == [
        {"id": 1},
        {"id": 2},
    ]
    assert cursor.executed[0] == ("SELECT id FROM t WHERE id > %s", (0,))


@pytest.mark.asyncio
async def test_execute_query_returns_rowcount():
    conn = FakeConnection(FakeCursor(rowcount=3))

    assert await execute_query("UPDATE t SET x = 1", connection=conn) == 3


@pytest.mark.asyncio
async def test_driver_errors_become_database_errors():
    conn = FakeConnection(FakeCursor(error=psycopg.errors.UndefinedTable("no such table")))

    with pytest.raises(DatabaseError) as exc_info:
        await fetch_all("SELECT * FROM missing", connection=conn)

    assert exc_info.value.operation == "fetch_all"
    assert isinstance(exc_info.value.__cause__, psycopg.Error)


@pytest.mark.asyncio
async def test_retry_recovers_from_transient_failure():
    calls = []

    @with_db_retry(max_retries=2, base_delay=0)
    async def flaky():
        calls.append(1)
        if len(calls) < 2:
            raise psycopg.OperationalError("connection reset")
        return "ok"

    assert await flaky() == "ok"
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_retry_gives_up_and_marks_unrecoverable():
    @with_db_retry(max_retries=1, base_delay=0)
    async def always_down():
        raise psycopg.OperationalError("server closed the connection")

    with pytest.raises(DatabaseError) as exc_info:
        await always_down()

    assert exc_info.value.recoverable is False


@pytest.mark.asyncio
async def test_non_transient_errors_are_not_retried():
    calls = []

    @with_db_retry(max_retries=3, base_delay=0)
    async def broken():
        calls.append(1)
        raise DatabaseError("syntax error", operation="fetch_all")

    with pytest.raises(DatabaseError):
        await broken()

    assert len(calls) == 1
