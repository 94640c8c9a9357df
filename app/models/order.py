# app/models/order.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Customer order placed against one business (tenant).

    Created PENDING by checkout; afterwards `status` is only changed
    through `OrderLifecycle`. `total_cents` never changes after creation.
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    business_id: uuid.UUID = Field(
        foreign_key="businesses.id",
        index=True,
    )

    # Customers are owned by the customer-account service
    customer_id: uuid.UUID = Field(index=True)

    total_cents: int = Field(
        ge=0,
        description="Order total in USD cents",
    )

    # CASH_USD | PAGO_MOVIL | ZELLE | TRANSFER_BS | BINANCE | CRYPTO
    payment_method: str = Field(description="Payment method chosen at checkout")

    # PENDING | CONFIRMED | PREPARING | SHIPPED | DELIVERED | CANCELLED
    status: str = Field(
        default="PENDING",
        index=True,
        description="Order status lifecycle",
    )

    shipping_cost_cents: int | None = Field(
        default=None,
        ge=0,
        description="Shipping cost in USD cents, if the order ships",
    )

    delivery_address: str | None = Field(
        default=None,
        description="Customer delivery address",
    )

    notes: str | None = Field(default=None)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last status change (UTC)",
    )
