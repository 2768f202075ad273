from datetime import datetime, timedelta
from decimal import Decimal

import pytest

import reporting
from conftest import make_payload, set_created_at
from models import LineItem, Order, OrderStatus
from reporting import Period, period_window, summarize, top_clients, top_products
from services import OrderService, StatusController


def order(ext_id, name, items, status=OrderStatus.PENDING) -> Order:
    line_items = [
        LineItem(product_id=pid, product_name=pid.upper(), quantity=q, unit_price=Decimal(p))
        for pid, q, p in items
    ]
    total = sum((it.subtotal for it in line_items if it.quantity > 0), Decimal("0"))
    return Order(
        customer_external_id=ext_id,
        customer_name=name,
        customer_phone="555",
        line_items=line_items,
        total=total,
        status=status,
    )


async def _noop(order):
    return True


# Среда, 21 октября 2026
WEDNESDAY = datetime(2026, 10, 21, 15, 30)


def test_today_window_is_whole_day():
    start, end = period_window(Period.TODAY, WEDNESDAY)
    assert start == datetime(2026, 10, 21)
    assert end == datetime(2026, 10, 21, 23, 59, 59, 999999)


def test_week_starts_on_sunday():
    start, end = period_window(Period.THIS_WEEK, WEDNESDAY)
    assert start == datetime(2026, 10, 18)
    assert end == WEDNESDAY

    sunday = datetime(2026, 10, 18, 9, 0)
    assert period_window(Period.THIS_WEEK, sunday)[0] == datetime(2026, 10, 18)


def test_month_and_all_time_windows():
    assert period_window(Period.THIS_MONTH, WEDNESDAY) == (datetime(2026, 10, 1), WEDNESDAY)
    assert period_window(Period.ALL_TIME, WEDNESDAY) == (datetime(1970, 1, 1), WEDNESDAY)


@pytest.mark.parametrize(
    "raw, expected",
    [(None, Period.TODAY), ("semaine", Period.THIS_WEEK), ("thisMonth", Period.THIS_MONTH), ("TOUT", Period.ALL_TIME)],
)
def test_period_parse(raw, expected):
    assert Period.parse(raw) == expected


def test_period_parse_unknown():
    with pytest.raises(ValueError):
        Period.parse("année")


def test_top_clients_sums_and_sorts():
    orders = [
        order("1", "Anne", [("a", 1, "10")]),
        order("2", "Bruno", [("a", 3, "10")]),
        order("1", "Anne", [("b", 1, "25")]),
        order("3", "Chloé", [("a", 1, "5")]),
    ]

    ranked = top_clients(orders, 2)

    assert [(c.customer_name, c.total, c.order_count) for c in ranked] == [
        ("Anne", Decimal("35"), 2),
        ("Bruno", Decimal("30"), 1),
    ]


def test_top_clients_ties_keep_first_seen_order():
    orders = [
        order("2", "Bruno", [("a", 1, "10")]),
        order("1", "Anne", [("a", 1, "10")]),
    ]
    assert [c.customer_name for c in top_clients(orders, 5)] == ["Bruno", "Anne"]


def test_top_clients_groups_by_id_and_name():
    orders = [
        order("1", "Anne", [("a", 1, "10")]),
        order("1", "Anne M.", [("a", 1, "10")]),
    ]
    assert len(top_clients(orders, 5)) == 2


def test_top_products_ignores_non_positive_quantities():
    orders = [
        order("1", "Anne", [("eggs", 2, "3.50"), ("honey", 0, "100"), ("jam", -3, "4")]),
        order("2", "Bruno", [("honey", 1, "5"), ("eggs", 4, "3.50")]),
    ]

    ranked = top_products(orders, 5)

    assert [(p.product_id, p.quantity, p.revenue) for p in ranked] == [
        ("eggs", 6, Decimal("21.00")),
        ("honey", 1, Decimal("5")),
    ]


def test_top_n_limits_results():
    orders = [order(str(i), f"C{i}", [(f"p{i}", i + 1, "1")]) for i in range(5)]
    assert len(top_clients(orders, 3)) == 3
    assert len(top_products(orders, 0)) == 0


def test_summarize_counts_every_status():
    orders = [
        order("1", "Anne", [("a", 1, "10")], OrderStatus.DELIVERED),
        order("2", "Bruno", [("a", 2, "10")], OrderStatus.PENDING),
    ]
    start, end = period_window(Period.ALL_TIME, WEDNESDAY)

    stats = summarize(orders, Period.ALL_TIME, start, end)

    assert stats.order_count == 2
    assert stats.revenue == Decimal("30")
    assert stats.by_status[OrderStatus.DELIVERED] == 1
    assert stats.by_status[OrderStatus.PENDING] == 1
    assert stats.by_status[OrderStatus.READY] == 0


@pytest.mark.asyncio
async def test_today_stats_grow_with_new_orders(store):
    service = OrderService(_noop, _noop)

    await service.submit_order(make_payload())
    first = await reporting.get_period_stats("today")
    await service.submit_order(make_payload())
    second = await reporting.get_period_stats(Period.TODAY)

    assert first.order_count == 1
    assert second.order_count == 2
    assert second.revenue == Decimal("24.00")
    assert second.by_status[OrderStatus.PENDING] == 2


@pytest.mark.asyncio
async def test_old_orders_are_outside_today(store):
    service = OrderService(_noop, _noop)
    old = (await service.submit_order(make_payload())).order
    await set_created_at(old.id, datetime.now() - timedelta(days=40))
    await service.submit_order(make_payload())

    assert len(await reporting.orders_today()) == 1
    assert (await reporting.get_period_stats(Period.ALL_TIME)).order_count == 2


@pytest.mark.asyncio
async def test_find_by_status_and_leaderboards_from_store(store):
    service = OrderService(_noop, _noop)
    controller = StatusController(_noop)
    big = (await service.submit_order(make_payload(
        customerExternalId="7",
        customerName="Gros Client",
        lineItems=[{"productId": "b", "productName": "Miel", "quantity": 10, "unitPrice": 5}],
        total=50,
    ))).order
    await service.submit_order(make_payload())
    await controller.transition(big.id, "ready", "Alice")

    ready = await reporting.find_by_status("Terminée")
    assert [o.id for o in ready] == [big.id]

    clients = await reporting.get_top_clients(1)
    assert [(c.customer_name, c.total) for c in clients] == [("Gros Client", Decimal("50"))]

    products = await reporting.get_top_products(5)
    assert [(p.product_id, p.quantity) for p in products] == [("b", 11), ("a", 2)]


@pytest.mark.asyncio
async def test_search_returns_page_and_flag(store):
    service = OrderService(_noop, _noop)
    for _ in range(3):
        await service.submit_order(make_payload(customerName="Famille Dupré"))

    result = await reporting.search("dupré", page_size=2)

    assert len(result.orders) == 2
    assert result.has_more
