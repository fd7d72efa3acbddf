"""
Tests for the database gateway.
"""

import pytest

from estate_assistant.database import Database
from estate_assistant.exceptions import PersistenceError


async def test_execute_query_with_named_binds(database):
    await database.execute_query("CREATE TABLE notes (id INTEGER PRIMARY KEY, body TEXT)")
    inserted = await database.execute_query("INSERT INTO notes (body) VALUES (:body)", {"body": "x'); DROP TABLE notes;--"})

    result = await database.execute_query("SELECT body FROM notes WHERE id = :id", {"id": 1})

    assert inserted.rowcount == 1
    assert result.first() == {"body": "x'); DROP TABLE notes;--"}
    assert database.last_query_at is not None


async def test_transaction_rolls_back_on_error(database):
    await database.execute_query("CREATE TABLE counters (name TEXT PRIMARY KEY, value INTEGER)")

    with pytest.raises(RuntimeError):
        async with database.transaction() as tx:
            await tx.execute_query("INSERT INTO counters VALUES (:name, :value)", {"name": "a", "value": 1})
            raise RuntimeError("abort")

    async with database.transaction() as tx:
        await tx.execute_query("INSERT INTO counters VALUES (:name, :value)", {"name": "b", "value": 2})

    rows = (await database.execute_query("SELECT name FROM counters")).rows
    assert rows == [{"name": "b"}]


async def test_driver_errors_become_persistence_errors(database):
    with pytest.raises(PersistenceError) as exc_info:
        await database.execute_query("SELECT * FROM missing_table", operation="broken-select")

    assert exc_info.value.details["operation"] == "broken-select"
    assert "missing_table" in exc_info.value.details["error"]


async def test_procedure_name_is_validated(database):
    with pytest.raises(PersistenceError):
        await database.execute_procedure("drop table; --", {})


async def test_health_status(database):
    health = await database.get_health_status()

    assert health["connected"] is True
    assert health["status"] == "healthy"
    assert health["backend"] == "sqlite"
    assert health["lastQuery"]


async def test_health_status_before_connect(tmp_path):
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'idle.db'}")

    health = await database.get_health_status()

    assert health["connected"] is False
    assert health["status"] == "disconnected"


async def test_close_then_reconnect(database):
    await database.close()
    assert not database.is_connected

    result = await database.execute_query("SELECT 1 AS one")

    assert result.first() == {"one": 1}
    assert database.is_connected
