"""Кнопки статусов под карточками заказов и правка заказов фермерами."""
import logging
from typing import Optional

from aiogram import F, Router
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command, CommandObject
from aiogram.types import CallbackQuery, Message, User

import db
from cards import format_order_card
from config import STAFF_CHAT_ID
from errors import InvalidStatusError, NotFoundError
from keyboards import STATUS_CALLBACK_PREFIX, get_status_keyboard, order_id_from_keyboard, parse_status_callback
from models import Order, OrderStatus
from services import OrderService, StatusController

logger = logging.getLogger(__name__)
router = Router()

FULL_ID_LEN = 32


def is_staff_chat(chat_id) -> bool:
    """Если канал фермеров задан, служебные команды работают только в нём."""
    return not STAFF_CHAT_ID or str(chat_id) == str(STAFF_CHAT_ID)


def actor_label(user: Optional[User]) -> str:
    """Кто нажал кнопку: имя в Telegram или @username."""
    if user is None:
        return ""
    if user.full_name:
        return user.full_name
    return f"@{user.username}" if user.username else str(user.id)


async def resolve_order_id(raw: str) -> Optional[str]:
    """Полный id или короткий (последние 6 символов) → полный id, если он однозначен."""
    raw = raw.strip().lstrip("#").lower()
    if len(raw) == FULL_ID_LEN:
        return raw
    if len(raw) != 6:
        return None
    orders, _ = await db.search_orders(f"#{raw}" if not raw.isdigit() else raw, limit=2)
    if len(orders) == 1:
        return orders[0].id
    return None


async def refresh_card(message: Message, order: Order) -> None:
    """Перерисовывает карточку заказа в канале фермеров."""
    try:
        await message.edit_text(
            format_order_card(order),
            reply_markup=get_status_keyboard(order.id, order.status),
        )
    except TelegramBadRequest as e:
        # "message is not modified" при повторном нажатии той же кнопки
        logger.warning(f"Не удалось обновить карточку заказа #{order.short_id}: {e}")


@router.callback_query(F.data.startswith(f"{STATUS_CALLBACK_PREFIX}:"))
async def handle_status_callback(callback: CallbackQuery, status_controller: StatusController) -> None:
    """Обработка нажатия на inline-кнопку статуса."""
    try:
        order_id, action = parse_status_callback(callback.data)
    except ValueError:
        await callback.answer("⚠️ Action non reconnue", show_alert=True)
        return

    try:
        result = await status_controller.transition(
            order_id, action.target_status, actor_label(callback.from_user)
        )
    except NotFoundError:
        await callback.answer("⚠️ Commande introuvable", show_alert=True)
        return
    except Exception as e:
        logger.error(f"Ошибка при обработке callback {callback.data!r}: {e}", exc_info=True)
        await callback.answer(
            "⚠️ Une erreur est survenue lors du traitement de votre demande.", show_alert=True
        )
        return

    order = result.order
    if callback.message is not None:
        await refresh_card(callback.message, order)

    await callback.answer(
        f"Statut de la commande #{order.short_id} mis à jour: {order.status.label}"
    )


@router.message(Command("statut"))
async def cmd_set_status(message: Message, command: CommandObject, status_controller: StatusController) -> None:
    """Команда для изменения статуса заказа: /statut <id> <statut>."""
    if not is_staff_chat(message.chat.id):
        return
    parts = (command.args or "").split(maxsplit=1)
    if len(parts) < 2:
        await message.reply(
            "⚠️ Utilisation: /statut &lt;id&gt; &lt;statut&gt;\n"
            f"Statuts: {', '.join(s.value for s in OrderStatus)}"
        )
        return

    try:
        order_id = await resolve_order_id(parts[0])
        if order_id is None:
            await message.reply(f"⚠️ Commande #{parts[0]} introuvable ou ambiguë")
            return

        result = await status_controller.transition(order_id, parts[1], actor_label(message.from_user))
        await message.reply(
            f"✅ Statut de la commande #{result.order.short_id}: {result.order.status.label}"
        )
    except InvalidStatusError:
        await message.reply(
            f"⚠️ Statut inconnu. Disponibles: {', '.join(s.value for s in OrderStatus)}"
        )
    except NotFoundError:
        await message.reply(f"⚠️ Commande #{parts[0]} introuvable")
    except Exception as e:
        logger.error(f"Ошибка при изменении статуса: {e}", exc_info=True)
        await message.reply("⚠️ Une erreur est survenue lors du changement de statut")


@router.message(F.text & F.reply_to_message & ~F.text.startswith("/"))
async def handle_reply(message: Message, order_service: OrderService) -> None:
    """Reply на карточку заказа в канале фермеров — новый комментарий к заказу."""
    if not is_staff_chat(message.chat.id):
        return

    card = message.reply_to_message
    order_id = order_id_from_keyboard(card.reply_markup)
    if not order_id:
        return

    try:
        order = await order_service.set_comment(order_id, message.text.strip())
    except NotFoundError:
        await message.reply("⚠️ Commande introuvable")
        return
    except Exception as e:
        logger.error(f"Ошибка при сохранении комментария: {e}", exc_info=True)
        await message.reply("⚠️ Une erreur est survenue lors de l'ajout du commentaire")
        return

    await refresh_card(card, order)
    await message.reply(f"💬 Commentaire ajouté à la commande #{order.short_id}")
