"""Общие фикстуры: чистая БД на каждый тест и записывающие хуки уведомлений."""
from datetime import datetime

import aiosqlite
import pytest
import pytest_asyncio

import db


class RecordingHook:
    """Хук уведомления для тестов: запоминает заказы, может вернуть False или упасть."""

    def __init__(self, result: bool = True, error: Exception | None = None):
        self.result = result
        self.error = error
        self.calls = []

    async def __call__(self, order):
        self.calls.append(order)
        if self.error is not None:
            raise self.error
        return self.result


def make_payload(**overrides) -> dict:
    payload = {
        "customerExternalId": "424242",
        "customerName": "Jean Dupont",
        "customerPhone": "555-0101",
        "lineItems": [
            {"productId": "a", "productName": "Oeufs", "quantity": 2, "unitPrice": 3.50},
            {"productId": "b", "productName": "Miel", "quantity": 1, "unitPrice": 5.00},
        ],
        "total": 12.00,
    }
    payload.update(overrides)
    return payload


async def set_created_at(order_id: str, created_at: datetime) -> None:
    async with aiosqlite.connect(db.DB_PATH) as conn:
        await conn.execute(
            "UPDATE orders SET created_at = ? WHERE id = ?",
            (created_at.isoformat(timespec="microseconds"), order_id),
        )
        await conn.commit()


@pytest_asyncio.fixture
async def store(tmp_path, monkeypatch):
    monkeypatch.setattr(db, "DB_PATH", str(tmp_path / "orders.db"))
    await db.create_table()
    yield db


@pytest.fixture
def notify_customer():
    return RecordingHook()


@pytest.fixture
def notify_staff():
    return RecordingHook()
