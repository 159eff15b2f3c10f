"""Mongo connection singleton: index setup (Motor mocked)."""
import pytest
from unittest.mock import AsyncMock, MagicMock

from database import Database


def _database_with_orders(create_index):
    db = Database()
    db.db = MagicMock()
    db.db.orders.create_index = create_index
    return db


def test_get_db_before_connect_is_none():
    assert Database().get_db() is None


@pytest.mark.asyncio
async def test_creates_unique_order_id_index():
    create_index = AsyncMock()
    db = _database_with_orders(create_index)

    await db._create_indexes()

    create_index.assert_any_await("order_id", unique=True)
    create_index.assert_any_await("payment_session_id", sparse=True)


@pytest.mark.asyncio
async def test_unique_index_failure_propagates():
    db = _database_with_orders(AsyncMock(side_effect=RuntimeError("index conflict")))

    with pytest.raises(RuntimeError):
        await db._create_indexes()


@pytest.mark.asyncio
async def test_secondary_index_failure_is_tolerated():
    create_index = AsyncMock(side_effect=[None, RuntimeError("exists with different options")])
    db = _database_with_orders(create_index)

    await db._create_indexes()

    assert create_index.await_count == 2
