# app/models/delivery.py
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlmodel import SQLModel, Field


class DeliveryPerson(SQLModel, table=True):
    """
    Driver scoped to one business.

    Counters only ever go up; `is_available` is cleared while the driver
    holds an ASSIGNED delivery and set again on confirmation/cancellation.
    """

    __tablename__ = "delivery_persons"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    business_id: uuid.UUID = Field(
        foreign_key="businesses.id",
        index=True,
    )

    name: str
    phone: str | None = None
    vehicle_type: str | None = None
    plate_number: str | None = None

    is_active: bool = Field(default=True, index=True)
    is_available: bool = Field(default=True)

    completed_orders: int = Field(default=0, ge=0)
    total_deliveries: int = Field(default=0, ge=0)

    # Average of DeliveryRating.rating, None until first rating
    rating: float | None = Field(default=None)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class DeliveryOrder(SQLModel, table=True):
    """
    One delivery attempt for one Order.

    ASSIGNED -> DELIVERED, or ASSIGNED -> CANCELLED.
    The unique index on order_id is what serializes concurrent assignments.
    """

    __tablename__ = "delivery_orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        unique=True,
        index=True,
    )

    delivery_person_id: uuid.UUID = Field(
        foreign_key="delivery_persons.id",
        index=True,
    )

    # Denormalized from the order for tenant-scoped queries
    business_id: uuid.UUID = Field(
        foreign_key="businesses.id",
        index=True,
    )

    status: str = Field(
        default="ASSIGNED",
        index=True,
        description="ASSIGNED | DELIVERED | CANCELLED",
    )

    otp_code: str = Field(
        min_length=6,
        max_length=6,
        description="6-digit handoff code",
    )
    otp_attempts: int = Field(default=0, description="Failed code submissions")
    otp_expires_at: datetime | None = Field(default=None)

    pickup_address: str
    delivery_address: str

    delivery_fee: Decimal = Field(
        default=Decimal("0.00"),
        max_digits=10,
        decimal_places=2,
        description="Shipping cost of the order in USD",
    )

    assigned_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    delivered_at: datetime | None = Field(default=None)
    cancelled_at: datetime | None = Field(default=None)


class DeliveryRating(SQLModel, table=True):
    """
    Customer rating for a completed delivery (one per delivery order).
    """

    __tablename__ = "delivery_ratings"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    delivery_order_id: uuid.UUID = Field(
        foreign_key="delivery_orders.id",
        unique=True,
        index=True,
    )

    delivery_person_id: uuid.UUID = Field(
        foreign_key="delivery_persons.id",
        index=True,
    )

    customer_id: uuid.UUID

    rating: int = Field(ge=1, le=5)
    comment: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
