# app/schemas/order.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, Field, field_validator

from app.schemas.base import APIModel

OrderStatus = Literal[
    "PENDING",
    "CONFIRMED",
    "PREPARING",
    "SHIPPED",
    "DELIVERED",
    "CANCELLED",
]
PaymentMethod = Literal[
    "CASH_USD",
    "PAGO_MOVIL",
    "ZELLE",
    "TRANSFER_BS",
    "BINANCE",
    "CRYPTO",
]


class OrderCreate(APIModel):
    """
    Payload for registering an order placed through checkout.

    Backend derives:
      - business_id from token
      - status = 'PENDING'
    """

    model_config = ConfigDict(extra="forbid")

    customer_id: uuid.UUID
    total_cents: int = Field(ge=0)
    payment_method: PaymentMethod
    shipping_cost_cents: int | None = Field(default=None, ge=0)
    delivery_address: str | None = None
    notes: str | None = None

    @field_validator("delivery_address", "notes")
    @classmethod
    def normalize_optional_text(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class OrderRead(APIModel):
    """
    Representation of an order.
    """

    id: uuid.UUID
    business_id: uuid.UUID
    customer_id: uuid.UUID
    total_cents: int
    payment_method: PaymentMethod
    status: OrderStatus
    shipping_cost_cents: int | None
    delivery_address: str | None
    notes: str | None
    created_at: datetime
    updated_at: datetime


class OrderStatusUpdate(APIModel):
    """
    Merchant payload to change order status.
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus
