import io
from datetime import datetime
from decimal import Decimal

import openpyxl

from exports import HEADERS, build_orders_pdf, build_orders_xlsx
from models import LineItem, Order, OrderStatus


def make_orders() -> list[Order]:
    return [
        Order(
            id="f" * 26 + "00000" + str(i),
            customer_external_id=str(100 + i),
            customer_name=f"Client <{i}>",
            customer_phone="555-0101",
            line_items=[
                LineItem(product_id="a", product_name="Oeufs & miel", quantity=i + 1, unit_price=Decimal("2.50")),
                LineItem(product_id="b", product_name="Retiré", quantity=0, unit_price=Decimal("9")),
            ],
            total=Decimal("2.50") * (i + 1),
            status=OrderStatus.READY,
            created_at=datetime(2026, 10, 19, 9, i),
            handled_by="Alice",
        )
        for i in range(3)
    ]


def test_xlsx_has_header_and_one_row_per_order():
    content = build_orders_xlsx(make_orders(), "Commandes du mois de octobre 2026 - ferme")

    wb = openpyxl.load_workbook(io.BytesIO(content))
    ws = wb.active
    assert len(ws.title) <= 31
    assert [c.value for c in ws[1]] == HEADERS
    assert ws.max_row == 4

    row = [c.value for c in ws[2]]
    assert row[0] == "000000"
    assert row[5] == "Oeufs & miel x1"
    assert row[6] == 2.5
    assert row[7] == "Terminée"


def test_pdf_is_generated():
    content = build_orders_pdf(make_orders(), "Commandes - Aujourd'hui")
    assert content.startswith(b"%PDF")
