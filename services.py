"""Приём заказов и смена статусов."""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

import pydantic

import db
from config import TOTAL_TOLERANCE
from errors import NotFoundError, ValidationError
from models import Order, OrderStatus, OrderSubmission, compute_total
from notifications import NotifyHook

logger = logging.getLogger(__name__)


@dataclass
class SubmitResult:
    order: Order
    customer_notified: bool
    staff_notified: bool


@dataclass
class TransitionResult:
    order: Order
    customer_notified: bool


async def _safe_notify(hook: NotifyHook, order: Order, what: str) -> bool:
    """Вызывает хук уведомления; любая ошибка хука — это просто False."""
    try:
        return bool(await hook(order))
    except Exception as e:
        logger.error(f"Уведомление '{what}' для заказа #{order.short_id} упало: {e}", exc_info=True)
        return False


def _validation_message(error: pydantic.ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts)


async def get_order(order_id: str) -> Order:
    order = await db.get_order_by_id(order_id)
    if order is None:
        raise NotFoundError()
    return order


class OrderService:
    """Проверяет заявку с сайта, сохраняет заказ и рассылает уведомления."""

    def __init__(self, notify_customer: NotifyHook, notify_staff: NotifyHook):
        self.notify_customer = notify_customer
        self.notify_staff = notify_staff

    @staticmethod
    def validate(payload: Any) -> Order:
        """
        Разбирает заявку и строит заказ в статусе "En attente".
        Итог всегда пересчитывается на сервере; присланный total
        допускается только если совпадает с точностью до копейки.
        """
        try:
            submission = (
                payload if isinstance(payload, OrderSubmission)
                else OrderSubmission.model_validate(payload)
            )
        except pydantic.ValidationError as e:
            raise ValidationError(_validation_message(e)) from e

        total = compute_total(submission.line_items)
        if submission.total is not None and abs(submission.total - total) > Decimal(TOTAL_TOLERANCE):
            raise ValidationError(f"Total incorrect: reçu {submission.total}, attendu {total}")

        return Order(
            customer_external_id=submission.customer_external_id,
            customer_name=submission.customer_name,
            customer_phone=submission.customer_phone,
            line_items=submission.line_items,
            total=total,
            status=OrderStatus.PENDING,
        )

    async def submit_order(self, payload: Any) -> SubmitResult:
        order = await db.insert_order(self.validate(payload))
        logger.info(
            f"🆕 Заказ #{order.short_id} создан: {order.customer_name}, "
            f"{len(order.line_items)} поз., итого {order.total}"
        )

        customer_notified = await _safe_notify(self.notify_customer, order, "client")
        staff_notified = await _safe_notify(self.notify_staff, order, "fermiers")
        return SubmitResult(order, customer_notified, staff_notified)

    async def list_orders(self) -> list[Order]:
        return await db.get_all_orders()

    async def get_order(self, order_id: str) -> Order:
        return await get_order(order_id)

    async def set_comment(self, order_id: str, comment: Optional[str]) -> Order:
        if not await db.update_order_comment(order_id, comment or ""):
            raise NotFoundError()
        logger.info(f"💬 Комментарий заказа {order_id} обновлён")
        return await get_order(order_id)


class StatusController:
    """
    Смена статуса заказа. Переход возможен из любого статуса в любой:
    фермеру нужно уметь откатить случайное нажатие.
    """

    def __init__(self, notify_customer: NotifyHook):
        self.notify_customer = notify_customer

    async def transition(
        self,
        order_id: str,
        new_status: Any,
        actor_label: Optional[str] = None,
    ) -> TransitionResult:
        await get_order(order_id)
        status = OrderStatus.parse(new_status)
        actor = (actor_label or "").strip()

        if not await db.update_order_status(order_id, status, actor or None):
            raise NotFoundError()

        order = await get_order(order_id)
        logger.info(f"📊 Заказ #{order.short_id}: статус → {status.value} ({actor or 'без исполнителя'})")

        customer_notified = await _safe_notify(self.notify_customer, order, "client")
        return TransitionResult(order, customer_notified)
