"""Уведомления клиента и фермеров через Telegram."""
import asyncio
import logging
from typing import Awaitable, Callable

from aiogram import Bot

from cards import format_order_card
from keyboards import get_status_keyboard
from models import Order

logger = logging.getLogger(__name__)

# Хук уведомления: заказ -> удалось ли доставить
NotifyHook = Callable[[Order], Awaitable[bool]]


class TelegramNotifier:
    """
    Два независимых уведомления:
    - notify_customer: карточка заказа клиенту в личку;
    - notify_staff: карточка с кнопками статусов в канал фермеров.

    Оба метода никогда не бросают исключений: ошибка логируется, возвращается False.
    """

    def __init__(self, bot: Bot, staff_chat_id: str | int | None, timeout: float = 10.0):
        self.bot = bot
        self.staff_chat_id = staff_chat_id
        self.timeout = timeout

    async def _send(self, chat_id, text: str, **kwargs) -> None:
        await asyncio.wait_for(
            self.bot.send_message(chat_id=chat_id, text=text, **kwargs),
            timeout=self.timeout,
        )

    async def notify_customer(self, order: Order) -> bool:
        try:
            await self._send(order.customer_external_id, format_order_card(order))
            logger.info(f"📨 Клиент {order.customer_external_id} уведомлён о заказе #{order.short_id}")
            return True
        except asyncio.TimeoutError:
            logger.error(
                f"Таймаут при отправке личного сообщения клиенту {order.customer_external_id} "
                f"(заказ #{order.short_id})"
            )
            return False
        except Exception as e:
            logger.error(
                f"Ошибка при уведомлении клиента {order.customer_external_id} "
                f"(заказ #{order.short_id}): {e}",
                exc_info=True,
            )
            return False

    async def notify_staff(self, order: Order) -> bool:
        if not self.staff_chat_id:
            logger.error("Канал фермеров не настроен (STAFF_CHAT_ID)")
            return False
        try:
            await self._send(
                self.staff_chat_id,
                format_order_card(order),
                reply_markup=get_status_keyboard(order.id, order.status),
            )
            logger.info(f"📨 Заказ #{order.short_id} отправлен в канал фермеров")
            return True
        except asyncio.TimeoutError:
            logger.error(f"Таймаут при отправке заказа #{order.short_id} в канал фермеров")
            return False
        except Exception as e:
            logger.error(
                f"Ошибка при уведомлении фермеров о заказе #{order.short_id}: {e}",
                exc_info=True,
            )
            return False
