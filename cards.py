"""Текстовые карточки заказов для Telegram (HTML parse mode)."""
from datetime import datetime
from decimal import Decimal
from html import escape

from models import Order, OrderStatus

STATUS_ICONS = {
    OrderStatus.PENDING: "🕓",
    OrderStatus.ACCEPTED: "👌",
    OrderStatus.PREPARING: "🧺",
    OrderStatus.READY: "✅",
    OrderStatus.OUT_FOR_DELIVERY: "🚚",
    OrderStatus.DELIVERED: "📦",
}


def format_money(value: Decimal) -> str:
    return f"{value:.2f} $"


def format_date(dt: datetime) -> str:
    return dt.strftime("%d/%m/%Y %H:%M")


def status_display(status: OrderStatus) -> str:
    return f"{STATUS_ICONS.get(status, '')} {status.label}".strip()


def format_order_card(order: Order) -> str:
    """Полная карточка заказа: для клиента в личку и для канала фермеров."""
    lines = [
        f"<b>Commande #{escape(order.short_id)} - {escape(order.status.label)}</b>",
        "Ferme O'Neil - Suivi de commande",
        "",
        f"👤 Client: {escape(order.customer_name)}",
        f"📞 Téléphone: {escape(order.customer_phone)}",
        f"🆔 ID client: {escape(order.customer_external_id)}",
    ]

    products = [it for it in order.line_items if it.quantity > 0]
    if products:
        lines.append("")
        lines.append("🧺 Produits commandés:")
        for it in products:
            lines.append(
                f"• {escape(it.product_name or it.product_id)}: {it.quantity} x "
                f"{format_money(it.unit_price)} = {format_money(it.subtotal)}"
            )

    lines += [
        "",
        f"💰 Total: {format_money(order.total)}",
        f"📅 Date: {format_date(order.created_at)}",
        f"📊 Statut: {status_display(order.status)}",
    ]

    if order.handled_by:
        lines.append(f"🤝 Traitée par: {escape(order.handled_by)}")

    if order.comment:
        lines.append(f"💬 Commentaire: {escape(order.comment)}")

    return "\n".join(lines)


def format_order_line(order: Order) -> str:
    """Короткая строка заказа для списков и поиска."""
    now = datetime.now()
    if order.created_at.date() == now.date():
        date_str = f"aujourd'hui {order.created_at.strftime('%H:%M')}"
    else:
        date_str = order.created_at.strftime("%d/%m %H:%M")

    name = order.customer_name
    # Обрезаем длинные поля
    if len(name) > 30:
        name = name[:30] + "..."

    parts = [
        f"#{order.short_id}",
        STATUS_ICONS.get(order.status, ""),
        escape(name),
        escape(order.customer_phone),
        format_money(order.total),
        date_str,
        escape(order.handled_by),
    ]

    # Убираем пустые части
    parts = [p for p in parts if p]

    return " • ".join(parts)
