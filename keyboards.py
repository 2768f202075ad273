"""Клавиатуры для бота."""
from aiogram.types import (
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    ReplyKeyboardMarkup,
)

from models import OrderStatus, StaffAction

BUTTON_COUNTS = "📈 Commandes"
BUTTON_TODAY = "📅 Aujourd'hui"
BUTTON_STATS = "📊 Stats du mois"
BUTTON_TOP_CLIENTS = "🏆 Top clients"
BUTTON_TOP_PRODUCTS = "🥕 Top produits"
BUTTON_HELP = "❓ Aide"

STATUS_CALLBACK_PREFIX = "status"


def get_main_keyboard() -> ReplyKeyboardMarkup:
    """Возвращает основную reply-клавиатуру чата фермеров."""
    return ReplyKeyboardMarkup(
        keyboard=[
            [
                KeyboardButton(text=BUTTON_COUNTS),
                KeyboardButton(text=BUTTON_TODAY),
            ],
            [KeyboardButton(text=BUTTON_STATS)],
            [
                KeyboardButton(text=BUTTON_TOP_CLIENTS),
                KeyboardButton(text=BUTTON_TOP_PRODUCTS),
            ],
            [KeyboardButton(text=BUTTON_HELP)],
        ],
        resize_keyboard=True,
        is_persistent=True,
    )


def status_callback_data(order_id: str, action: StaffAction) -> str:
    return f"{STATUS_CALLBACK_PREFIX}:{order_id}:{action.value}"


def parse_status_callback(data: str) -> tuple[str, StaffAction]:
    """Разбирает "status:<id>:<action>". ValueError при неверном формате или действии."""
    parts = (data or "").split(":")
    if len(parts) != 3 or parts[0] != STATUS_CALLBACK_PREFIX or not parts[1]:
        raise ValueError(f"Неверный формат callback: {data!r}")
    return parts[1], StaffAction(parts[2])


def get_status_keyboard(order_id: str, current_status: OrderStatus = OrderStatus.PENDING) -> InlineKeyboardMarkup:
    """Кнопки смены статуса под карточкой заказа, текущий статус отмечен галочкой."""
    buttons: list[list[InlineKeyboardButton]] = [[], []]

    for i, action in enumerate(StaffAction):
        prefix = "✓ " if action.target_status == current_status else ""
        buttons[0 if i < 3 else 1].append(
            InlineKeyboardButton(
                text=f"{prefix}{action.button_text}",
                callback_data=status_callback_data(order_id, action),
            )
        )

    return InlineKeyboardMarkup(inline_keyboard=buttons)


def order_id_from_keyboard(markup) -> str | None:
    """Достаёт id заказа из кнопок карточки (для reply на карточку)."""
    if not markup or not getattr(markup, "inline_keyboard", None):
        return None
    for row in markup.inline_keyboard:
        for button in row:
            try:
                order_id, _ = parse_status_callback(button.callback_data or "")
                return order_id
            except ValueError:
                continue
    return None
