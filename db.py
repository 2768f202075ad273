"""Работа с базой данных SQLite."""
import json
import logging
import re
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal
from typing import Optional

import aiosqlite

from config import DB_PATH
from errors import StoreError
from models import LineItem, Order, OrderStatus

logger = logging.getLogger(__name__)

ORDER_COLUMNS = """
    id,
    customer_external_id,
    customer_name,
    customer_phone,
    line_items,
    total,
    status,
    created_at,
    updated_at,
    comment,
    handled_by
"""

SHORT_ID_LEN = 6
# 6 цифр или "#" + 6 hex-символов — это хвост id, а не имя клиента
SHORT_ID_RE = re.compile(r"^(\d{6}|#[0-9a-fA-F]{6})$")


def normalize_for_search(text: str) -> str:
    """
    Нормализация строки для регистронезависимого поиска (латиница с акцентами тоже).
    Используется только для поиска, не меняет данные в БД.
    """
    if not text:
        return ""
    return " ".join(text.split()).casefold()


def _ts(dt: datetime) -> str:
    # фиксированный формат, чтобы строки в БД сравнивались как даты
    return dt.isoformat(timespec="microseconds")


def _dump_items(items: list[LineItem]) -> str:
    return json.dumps(
        [
            {
                "product_id": it.product_id,
                "product_name": it.product_name,
                "quantity": it.quantity,
                "unit_price": str(it.unit_price),
            }
            for it in items
        ],
        ensure_ascii=False,
    )


def _row_to_order(row: aiosqlite.Row) -> Order:
    return Order(
        id=row["id"],
        customer_external_id=row["customer_external_id"],
        customer_name=row["customer_name"],
        customer_phone=row["customer_phone"],
        line_items=[LineItem.model_validate(it) for it in json.loads(row["line_items"] or "[]")],
        total=Decimal(row["total"]),
        status=OrderStatus(row["status"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]) if row["updated_at"] else None,
        comment=row["comment"] or "",
        handled_by=row["handled_by"] or "",
    )


@asynccontextmanager
async def connect():
    """Соединение с БД; ошибки sqlite превращаются в StoreError."""
    try:
        async with aiosqlite.connect(DB_PATH) as db:
            db.row_factory = aiosqlite.Row
            yield db
    except aiosqlite.Error as e:
        logger.error(f"Ошибка базы данных ({DB_PATH}): {e}", exc_info=True)
        raise StoreError() from e


async def create_table() -> None:
    """Создаёт таблицу orders и индексы."""
    async with connect() as db:
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS orders (
                id TEXT PRIMARY KEY,
                customer_external_id TEXT NOT NULL,
                customer_name TEXT NOT NULL,
                customer_phone TEXT NOT NULL,
                line_items TEXT NOT NULL,
                total TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending',
                created_at TEXT NOT NULL,
                updated_at TEXT,
                comment TEXT DEFAULT '',
                handled_by TEXT DEFAULT ''
            )
            """
        )
        await db.execute("CREATE INDEX IF NOT EXISTS idx_orders_status ON orders(status)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_orders_created_at ON orders(created_at)")
        await db.commit()


async def insert_order(order: Order) -> Order:
    """Вставляет заказ в БД и возвращает его копию с id и датой создания."""
    now = datetime.now()
    stored = order.model_copy(
        update={"id": uuid.uuid4().hex, "created_at": now, "updated_at": now}
    )
    async with connect() as db:
        await db.execute(
            f"""
            INSERT INTO orders ({ORDER_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                stored.id,
                stored.customer_external_id,
                stored.customer_name,
                stored.customer_phone,
                _dump_items(stored.line_items),
                str(stored.total),
                stored.status.value,
                _ts(stored.created_at),
                _ts(stored.updated_at),
                stored.comment,
                stored.handled_by,
            ),
        )
        await db.commit()
    return stored


async def get_order_by_id(order_id: str) -> Optional[Order]:
    """Возвращает заказ по id."""
    async with connect() as db:
        cursor = await db.execute(
            f"SELECT {ORDER_COLUMNS} FROM orders WHERE id = ?", (order_id,)
        )
        row = await cursor.fetchone()
        if row:
            return _row_to_order(row)
        return None


async def get_all_orders() -> list[Order]:
    """Возвращает все заказы, новые сверху."""
    async with connect() as db:
        cursor = await db.execute(
            f"SELECT {ORDER_COLUMNS} FROM orders ORDER BY created_at DESC, rowid DESC"
        )
        rows = await cursor.fetchall()
        return [_row_to_order(row) for row in rows]


async def get_orders_by_status(status: OrderStatus) -> list[Order]:
    """Возвращает список заказов с указанным статусом, отсортированных по created_at DESC."""
    async with connect() as db:
        cursor = await db.execute(
            f"""
            SELECT {ORDER_COLUMNS}
            FROM orders
            WHERE status = ?
            ORDER BY created_at DESC, rowid DESC
            """,
            (status.value,),
        )
        rows = await cursor.fetchall()
        return [_row_to_order(row) for row in rows]


async def get_orders_for_period(start: datetime, end: datetime) -> list[Order]:
    """Возвращает заказы с created_at в [start, end], новые сверху."""
    async with connect() as db:
        cursor = await db.execute(
            f"""
            SELECT {ORDER_COLUMNS}
            FROM orders
            WHERE created_at >= ? AND created_at <= ?
            ORDER BY created_at DESC, rowid DESC
            """,
            (_ts(start), _ts(end)),
        )
        rows = await cursor.fetchall()
        return [_row_to_order(row) for row in rows]


async def count_orders_by_status() -> dict[OrderStatus, int]:
    """Количество заказов по каждому статусу (все статусы, включая нулевые)."""
    counts = {status: 0 for status in OrderStatus}
    async with connect() as db:
        cursor = await db.execute("SELECT status, COUNT(*) FROM orders GROUP BY status")
        for status_raw, count in await cursor.fetchall():
            try:
                counts[OrderStatus(status_raw)] = count
            except ValueError:
                logger.warning(f"count_orders_by_status: неизвестный статус {status_raw!r} в БД")
    return counts


async def update_order_status(
    order_id: str,
    new_status: OrderStatus,
    handled_by: Optional[str] = None,
) -> bool:
    """
    Обновляет статус заказа по order_id.
    handled_by записывается только если он не пустой, иначе остаётся прежний.
    """
    now_str = _ts(datetime.now())
    async with connect() as db:
        if handled_by:
            cursor = await db.execute(
                "UPDATE orders SET status = ?, handled_by = ?, updated_at = ? WHERE id = ?",
                (new_status.value, handled_by, now_str, order_id),
            )
        else:
            cursor = await db.execute(
                "UPDATE orders SET status = ?, updated_at = ? WHERE id = ?",
                (new_status.value, now_str, order_id),
            )
        await db.commit()
        return cursor.rowcount > 0


async def update_order_comment(order_id: str, comment: str) -> bool:
    """Перезаписывает комментарий заказа."""
    async with connect() as db:
        cursor = await db.execute(
            "UPDATE orders SET comment = ?, updated_at = ? WHERE id = ?",
            (comment or "", _ts(datetime.now()), order_id),
        )
        await db.commit()
        return cursor.rowcount > 0


async def search_orders(query: str, limit: Optional[int] = None) -> tuple[list[Order], bool]:
    """
    Поиск заказов.
    Запрос из 6 цифр (или "#" + 6 hex) сравнивается с хвостом id,
    иначе — подстрока в имени клиента без учёта регистра.
    Возвращает (страница, есть_ещё).
    """
    q_raw = (query or "").strip()
    if not q_raw:
        logger.info("🔎 search_orders: пустой запрос, возвращаем пустой список")
        return [], False

    all_orders = await get_all_orders()

    if SHORT_ID_RE.match(q_raw):
        suffix = q_raw.lstrip("#").lower()
        filtered = [o for o in all_orders if (o.id or "")[-SHORT_ID_LEN:].lower() == suffix]
    else:
        q_norm = normalize_for_search(q_raw)
        filtered = [o for o in all_orders if q_norm in normalize_for_search(o.customer_name)]

    has_more = False
    if limit is not None and len(filtered) > limit:
        filtered = filtered[:limit]
        has_more = True

    logger.info(
        "📊 search_orders: query=%r total_rows=%d matched_rows=%d has_more=%s",
        query, len(all_orders), len(filtered), has_more,
    )
    return filtered, has_more
