# app/models/business.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Business(SQLModel, table=True):
    """
    Tenant (merchant). Managed by onboarding; this service only reads it
    for the store pickup address.
    """

    __tablename__ = "businesses"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str
    slug: str = Field(unique=True, index=True)

    store_address: str | None = Field(
        default=None,
        description="Pickup address for deliveries",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
