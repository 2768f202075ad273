"""Pydantic модели для заказов."""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, StringConstraints
from pydantic.alias_generators import to_camel

from errors import InvalidStatusError

# В JSON деньги уходят числами, внутри остаются Decimal
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]
RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

CENTS = Decimal("0.01")
# Пределы позиции: сумма заказа должна помещаться в точность Decimal
MAX_QUANTITY = 1_000_000
MAX_UNIT_PRICE = Decimal("1000000")


class OrderStatus(str, Enum):
    """Статусы заказа в порядке жизненного цикла."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"

    @property
    def label(self) -> str:
        return STATUS_DISPLAY[self]

    @classmethod
    def parse(cls, value) -> "OrderStatus":
        """
        Принимает ключ ("ready"), имя ("READY") или французскую подпись ("Terminée").
        Всё остальное — InvalidStatusError.
        """
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().casefold()
        for status in cls:
            if text in (status.value, status.name.casefold(), status.label.casefold()):
                return status
        raise InvalidStatusError(f"Statut inconnu: {value!r}")


STATUS_DISPLAY = {
    OrderStatus.PENDING: "En attente",
    OrderStatus.ACCEPTED: "Acceptée",
    OrderStatus.PREPARING: "En préparation",
    OrderStatus.READY: "Terminée",
    OrderStatus.OUT_FOR_DELIVERY: "En attente de livraison",
    OrderStatus.DELIVERED: "Livrée",
}


class StaffAction(str, Enum):
    """Кнопки под карточкой заказа в канале фермеров."""

    ACCEPT = "accept"
    PREPARE = "prepare"
    FINISH = "finish"
    SHIP = "ship"
    DELIVER = "deliver"

    @property
    def target_status(self) -> OrderStatus:
        return ACTION_TO_STATUS[self]

    @property
    def button_text(self) -> str:
        return ACTION_BUTTONS[self]


ACTION_TO_STATUS = {
    StaffAction.ACCEPT: OrderStatus.ACCEPTED,
    StaffAction.PREPARE: OrderStatus.PREPARING,
    StaffAction.FINISH: OrderStatus.READY,
    StaffAction.SHIP: OrderStatus.OUT_FOR_DELIVERY,
    StaffAction.DELIVER: OrderStatus.DELIVERED,
}

ACTION_BUTTONS = {
    StaffAction.ACCEPT: "Accepter",
    StaffAction.PREPARE: "En préparation",
    StaffAction.FINISH: "Terminée",
    StaffAction.SHIP: "En livraison",
    StaffAction.DELIVER: "Livrée",
}


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )


class LineItem(CamelModel):
    """Позиция заказа."""

    product_id: str
    product_name: str = ""
    quantity: int
    unit_price: Money

    @property
    def subtotal(self) -> Decimal:
        return Decimal(self.quantity) * self.unit_price


class Order(CamelModel):
    """Модель заказа."""

    id: Optional[str] = None
    customer_external_id: str
    customer_name: str
    customer_phone: str
    line_items: list[LineItem]
    total: Money
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: Optional[datetime] = None
    comment: str = ""
    handled_by: str = ""

    @property
    def short_id(self) -> str:
        return (self.id or "")[-6:]


class SubmittedLineItem(LineItem):
    product_id: RequiredText
    quantity: int = Field(ge=1, le=MAX_QUANTITY)
    unit_price: Money = Field(ge=0, le=MAX_UNIT_PRICE)


class OrderSubmission(CamelModel):
    """Заказ в том виде, в каком его присылает форма сайта."""

    customer_external_id: RequiredText
    customer_name: RequiredText
    customer_phone: RequiredText
    line_items: list[SubmittedLineItem] = Field(min_length=1)
    total: Optional[Decimal] = None


def compute_total(items: list[LineItem]) -> Decimal:
    """Сумма quantity × unit_price по позициям с положительным количеством."""
    total = sum((it.subtotal for it in items if it.quantity > 0), Decimal("0"))
    return total.quantize(CENTS)


class StatusUpdate(CamelModel):
    """Тело PATCH /:id/status."""

    model_config = ConfigDict(coerce_numbers_to_str=False)

    status: Optional[str] = None
    actor_label: Optional[str] = None


class CommentUpdate(CamelModel):
    """Тело PATCH /:id/comment."""

    model_config = ConfigDict(coerce_numbers_to_str=False)

    comment: Optional[str] = None
