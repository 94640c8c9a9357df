# app/schemas/delivery.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import AliasChoices, ConfigDict, Field, field_validator

from app.schemas.base import APIModel

DeliveryStatus = Literal["ASSIGNED", "DELIVERED", "CANCELLED"]


# ---- Requests ----


class AssignDeliveryRequest(APIModel):
    """Body of POST /delivery/orders/{order_id}/assign."""

    model_config = ConfigDict(extra="forbid")

    delivery_person_id: uuid.UUID


class ConfirmOtpRequest(APIModel):
    """
    Body of POST /delivery/orders/{order_id}/confirm-otp.

    The delivery app sends `otpCode`; older clients send `otp`.
    """

    model_config = ConfigDict(extra="forbid")

    otp_code: str = Field(
        pattern=r"^[0-9]{6}$",
        validation_alias=AliasChoices("otpCode", "otp_code", "otp"),
    )
    delivery_person_id: uuid.UUID | None = None

    @field_validator("otp_code", mode="before")
    @classmethod
    def strip_code(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v


class DeliveryRatingCreate(APIModel):
    """Public rating submitted by the customer after delivery."""

    model_config = ConfigDict(extra="forbid")

    rating: int = Field(ge=1, le=5)
    comment: str | None = Field(default=None, max_length=500)


# ---- Responses ----


class DeliveryPersonRead(APIModel):
    id: uuid.UUID
    name: str
    phone: str | None
    vehicle_type: str | None
    plate_number: str | None
    is_available: bool
    completed_orders: int
    total_deliveries: int
    rating: float | None


class DeliveryPersonList(APIModel):
    persons: list[DeliveryPersonRead]


class DeliveryOrderRead(APIModel):
    id: uuid.UUID
    order_id: uuid.UUID
    business_id: uuid.UUID
    delivery_person_id: uuid.UUID
    status: DeliveryStatus
    otp_code: str
    pickup_address: str
    delivery_address: str
    delivery_fee: float
    assigned_at: datetime
    delivered_at: datetime | None
    cancelled_at: datetime | None


class DeliveryOrderEnvelope(APIModel):
    delivery_order: DeliveryOrderRead | None


class DeliveryOrderResult(APIModel):
    success: bool = True
    delivery_order: DeliveryOrderRead


class RatingResult(APIModel):
    success: bool = True
    message: str
