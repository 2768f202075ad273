"""Выгрузка заказов в Excel и PDF."""
import io
from html import escape
import logging

import openpyxl
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from models import Order

logger = logging.getLogger(__name__)

HEADERS = [
    "ID",
    "Date",
    "Client",
    "Téléphone",
    "ID client",
    "Produits",
    "Total",
    "Statut",
    "Traitée par",
    "Commentaire",
]


def _products_text(order: Order) -> str:
    return ", ".join(
        f"{it.product_name or it.product_id} x{it.quantity}"
        for it in order.line_items
        if it.quantity > 0
    )


def _order_row(order: Order) -> list:
    return [
        order.short_id,
        order.created_at.strftime("%d/%m/%Y %H:%M"),
        order.customer_name,
        order.customer_phone,
        order.customer_external_id,
        _products_text(order),
        float(order.total),
        order.status.label,
        order.handled_by,
        order.comment,
    ]


def build_orders_xlsx(orders: list[Order], sheet_title: str = "Commandes") -> bytes:
    """Excel-отчёт: одна строка на заказ, шапка с заливкой, автоширина."""
    wb = openpyxl.Workbook()
    ws = wb.active
    # Excel ограничивает имя листа 31 символом
    ws.title = sheet_title[:31]

    header_fill = PatternFill(start_color="CCCCCC", end_color="CCCCCC", fill_type="solid")
    header_font = Font(bold=True)
    border = Border(
        left=Side(style="thin"),
        right=Side(style="thin"),
        top=Side(style="thin"),
        bottom=Side(style="thin"),
    )

    # Заголовки
    for col_num, header in enumerate(HEADERS, 1):
        cell = ws.cell(row=1, column=col_num)
        cell.value = header
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = Alignment(horizontal="center", vertical="center")
        cell.border = border

    # Данные
    for row_num, order in enumerate(orders, 2):
        for col_num, value in enumerate(_order_row(order), 1):
            cell = ws.cell(row=row_num, column=col_num)
            cell.value = value
            cell.border = border
            if HEADERS[col_num - 1] == "Total":
                cell.number_format = "0.00"

    # Автоширина
    for col in ws.columns:
        max_length = 0
        column = col[0].column_letter
        for cell in col:
            if cell.value is not None:
                max_length = max(max_length, len(str(cell.value)))
        ws.column_dimensions[column].width = min(max_length + 2, 50)

    buffer = io.BytesIO()
    wb.save(buffer)
    xlsx_bytes = buffer.getvalue()
    buffer.close()
    logger.info(f"Excel-отчёт '{sheet_title}' сформирован, записей: {len(orders)}")
    return xlsx_bytes


def build_orders_pdf(orders: list[Order], title: str = "Commandes") -> bytes:
    """PDF-отчёт: таблица заказов на A4 альбомной ориентации."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=landscape(A4))
    styles = getSampleStyleSheet()

    story = [
        Paragraph(title, styles["Title"]),
        Spacer(1, 10 * mm),
    ]

    cell_style = styles["BodyText"]
    cell_style.fontSize = 7
    cell_style.leading = 9

    data = [HEADERS[:-1]]
    for order in orders:
        row = _order_row(order)[:-1]
        row[6] = f"{row[6]:.2f} $"
        # длинный список товаров переносится внутри ячейки
        row[5] = Paragraph(escape(row[5]), cell_style)
        data.append(row)

    table = Table(data, repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
                ("ALIGN", (0, 0), (-1, 0), "CENTER"),
                ("FONTSIZE", (0, 0), (-1, 0), 9),
                ("BOTTOMPADDING", (0, 0), (-1, 0), 8),
                ("TEXTCOLOR", (0, 1), (-1, -1), colors.black),
                ("FONTSIZE", (0, 1), (-1, -1), 7),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
                ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.lightgrey]),
            ]
        )
    )

    story.append(table)
    doc.build(story)

    pdf_bytes = buffer.getvalue()
    buffer.close()
    logger.info(f"PDF-отчёт '{title}' сформирован, записей: {len(orders)}")
    return pdf_bytes
