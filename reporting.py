"""Отчёты по заказам: поиск, статистика за период, рейтинги клиентов и товаров."""
import logging
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Optional

import db
from config import SEARCH_PAGE_SIZE
from models import Order, OrderStatus

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1)


class Period(str, Enum):
    TODAY = "today"
    THIS_WEEK = "thisWeek"
    THIS_MONTH = "thisMonth"
    ALL_TIME = "allTime"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Period":
        """Понимает и ключи, и французские слова из команд (/stats semaine)."""
        text = (value or "").strip().casefold()
        if not text:
            return cls.TODAY
        for period in cls:
            if text == period.value.casefold() or text in PERIOD_ALIASES[period]:
                return period
        raise ValueError(f"Неизвестный период: {value!r}")

    @property
    def label(self) -> str:
        return PERIOD_LABELS[self]


PERIOD_ALIASES = {
    Period.TODAY: ("jour", "aujourd'hui", "today"),
    Period.THIS_WEEK: ("semaine", "week"),
    Period.THIS_MONTH: ("mois", "month"),
    Period.ALL_TIME: ("tout", "all", "total"),
}

PERIOD_LABELS = {
    Period.TODAY: "Aujourd'hui",
    Period.THIS_WEEK: "Cette semaine",
    Period.THIS_MONTH: "Ce mois-ci",
    Period.ALL_TIME: "Depuis le début",
}


@dataclass
class ClientTotal:
    customer_external_id: str
    customer_name: str
    total: Decimal
    order_count: int


@dataclass
class ProductTotal:
    product_id: str
    product_name: str
    quantity: int
    revenue: Decimal


@dataclass
class PeriodStats:
    period: Period
    start: datetime
    end: datetime
    order_count: int
    revenue: Decimal
    by_status: dict[OrderStatus, int] = field(default_factory=dict)


@dataclass
class SearchResult:
    orders: list[Order]
    has_more: bool


def period_window(period: Period, now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    """
    Границы периода (включительно):
    today — от полуночи до полуночи, неделя — с воскресенья до now,
    месяц — с 1-го числа до now, всё время — с 1970 до now.
    """
    now = now or datetime.now()
    midnight = datetime.combine(now.date(), time.min)

    if period == Period.TODAY:
        return midnight, midnight + timedelta(days=1) - timedelta(microseconds=1)
    if period == Period.THIS_WEEK:
        # weekday(): понедельник = 0, воскресенье = 6
        days_since_sunday = (now.weekday() + 1) % 7
        return midnight - timedelta(days=days_since_sunday), now
    if period == Period.THIS_MONTH:
        return midnight.replace(day=1), now
    return EPOCH, now


def top_clients(orders: list[Order], n: int) -> list[ClientTotal]:
    """Клиенты по сумме заказов; при равенстве — в порядке первого появления."""
    groups: dict[tuple[str, str], ClientTotal] = {}
    for order in orders:
        key = (order.customer_external_id, order.customer_name)
        entry = groups.get(key)
        if entry is None:
            entry = groups[key] = ClientTotal(key[0], key[1], Decimal("0"), 0)
        entry.total += order.total
        entry.order_count += 1

    # sorted() стабилен, поэтому порядок вставки работает как вторичный ключ
    ranked = sorted(groups.values(), key=lambda c: c.total, reverse=True)
    return ranked[:max(n, 0)]


def top_products(orders: list[Order], n: int) -> list[ProductTotal]:
    """Товары по проданному количеству; позиции с quantity <= 0 не учитываются."""
    groups: dict[str, ProductTotal] = {}
    for order in orders:
        for item in order.line_items:
            if item.quantity <= 0:
                continue
            entry = groups.get(item.product_id)
            if entry is None:
                entry = groups[item.product_id] = ProductTotal(
                    item.product_id, item.product_name, 0, Decimal("0")
                )
            entry.quantity += item.quantity
            entry.revenue += item.subtotal

    ranked = sorted(groups.values(), key=lambda p: p.quantity, reverse=True)
    return ranked[:max(n, 0)]


def summarize(orders: list[Order], period: Period, start: datetime, end: datetime) -> PeriodStats:
    by_status = {status: 0 for status in OrderStatus}
    revenue = Decimal("0")
    for order in orders:
        by_status[order.status] += 1
        revenue += order.total
    return PeriodStats(period, start, end, len(orders), revenue, by_status)


async def find_by_status(status) -> list[Order]:
    return await db.get_orders_by_status(OrderStatus.parse(status))


async def find_by_date_range(start: datetime, end: datetime) -> list[Order]:
    return await db.get_orders_for_period(start, end)


async def orders_today(now: Optional[datetime] = None) -> list[Order]:
    start, end = period_window(Period.TODAY, now)
    return await db.get_orders_for_period(start, end)


async def search(term: str, page_size: int = SEARCH_PAGE_SIZE) -> SearchResult:
    orders, has_more = await db.search_orders(term, limit=page_size)
    return SearchResult(orders, has_more)


async def count_by_status() -> dict[OrderStatus, int]:
    return await db.count_orders_by_status()


async def get_top_clients(n: int) -> list[ClientTotal]:
    # get_all_orders отдаёт новые сверху; для "порядка вставки" идём от старых
    orders = list(reversed(await db.get_all_orders()))
    return top_clients(orders, n)


async def get_top_products(n: int) -> list[ProductTotal]:
    orders = list(reversed(await db.get_all_orders()))
    return top_products(orders, n)


async def get_period_stats(period, now: Optional[datetime] = None) -> PeriodStats:
    period = period if isinstance(period, Period) else Period.parse(period)
    start, end = period_window(period, now)
    orders = await db.get_orders_for_period(start, end)
    stats = summarize(orders, period, start, end)
    logger.info(
        f"📈 Статистика {period.value}: {stats.order_count} заказов, выручка {stats.revenue}"
    )
    return stats
