# app/services/delivery_assignment.py
import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.core.errors import (
    DriverNotFound,
    DuplicateAssignment,
    InvalidTransition,
    OrderNotFound,
)
from app.models.delivery import DeliveryOrder
from app.repositories.delivery_repo import DeliveryRepository
from app.repositories.order_repo import OrderRepository
from app.services.driver_availability import DriverAvailabilityTracker
from app.services.order_lifecycle import CONFIRMED, PREPARING, SHIPPED, OrderLifecycle

logger = logging.getLogger(__name__)

DEFAULT_PICKUP_ADDRESS = "Tienda Principal"
DEFAULT_DELIVERY_ADDRESS = "Dirección del cliente"

# Order statuses a delivery may be created from
DISPATCHABLE_STATUSES = (CONFIRMED, PREPARING)

OTP_MIN = 100000
OTP_MAX = 999999


def generate_otp() -> str:
    """Uniform 6-digit code in [100000, 999999] (never a leading zero)."""
    return str(secrets.randbelow(OTP_MAX - OTP_MIN + 1) + OTP_MIN)


def delivery_fee_from_cents(shipping_cost_cents: int | None) -> Decimal:
    if not shipping_cost_cents:
        return Decimal("0.00")
    return (Decimal(shipping_cost_cents) / 100).quantize(Decimal("0.01"))


class DeliveryAssignmentService:
    """
    Binds a driver to a dispatch-ready order.

    One transaction:
      1. Insert the DeliveryOrder (status ASSIGNED, fresh OTP).
      2. Advance the order to SHIPPED through the lifecycle.
      3. Mark the driver as busy.

    A concurrent assignment of the same order loses on the unique index
    over delivery_orders.order_id and surfaces as DuplicateAssignment.
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        delivery_repo: DeliveryRepository,
        lifecycle: OrderLifecycle,
        availability: DriverAvailabilityTracker,
        assignable_statuses: tuple[str, ...] | list[str] = DISPATCHABLE_STATUSES,
        otp_ttl_minutes: int | None = None,
    ):
        self.order_repo = order_repo
        self.delivery_repo = delivery_repo
        self.lifecycle = lifecycle
        self.availability = availability
        self.assignable_statuses = tuple(assignable_statuses)
        if not self.assignable_statuses or not set(self.assignable_statuses) <= set(
            DISPATCHABLE_STATUSES
        ):
            raise ValueError(
                "assignable_statuses must be a non-empty subset of "
                f"{DISPATCHABLE_STATUSES}, got {self.assignable_statuses}"
            )
        self.otp_ttl_minutes = otp_ttl_minutes

    def assign(
        self,
        session: Session,
        business_id: uuid.UUID,
        order_id: uuid.UUID,
        delivery_person_id: uuid.UUID,
    ) -> DeliveryOrder:
        """
        Create the delivery record for `order_id` and hand it to a driver.

        Raises:
            OrderNotFound: order missing or owned by another business.
            DriverNotFound: driver missing or from another business.
            DuplicateAssignment: order already has a delivery order.
            InvalidTransition: order is not ready for dispatch.
            DriverUnavailable: driver busy and the policy is strict.
        """
        order = self.order_repo.get_for_business(session, business_id, order_id)
        if order is None:
            raise OrderNotFound()

        person = self.delivery_repo.get_person(session, delivery_person_id)
        if person is None or person.business_id != order.business_id:
            raise DriverNotFound()

        # Checked before the status: a dispatched order is already SHIPPED.
        if self.delivery_repo.get_by_order_id(session, order.id) is not None:
            raise DuplicateAssignment()

        if order.status not in self.assignable_statuses:
            raise InvalidTransition(
                order.status,
                SHIPPED,
                f"Order is {order.status}; only {', '.join(self.assignable_statuses)} "
                "orders can be dispatched",
            )

        self.availability.ensure_can_accept(person)

        business = self.order_repo.get_business(session, order.business_id)
        now = datetime.now(timezone.utc)
        expires_at = None
        if self.otp_ttl_minutes:
            expires_at = now + timedelta(minutes=self.otp_ttl_minutes)

        delivery_order = DeliveryOrder(
            order_id=order.id,
            delivery_person_id=person.id,
            business_id=order.business_id,
            status="ASSIGNED",
            otp_code=generate_otp(),
            otp_expires_at=expires_at,
            pickup_address=(business.store_address if business else None)
            or DEFAULT_PICKUP_ADDRESS,
            delivery_address=order.delivery_address or DEFAULT_DELIVERY_ADDRESS,
            delivery_fee=delivery_fee_from_cents(order.shipping_cost_cents),
            assigned_at=now,
        )

        try:
            delivery_order = self.delivery_repo.create_delivery_order(
                session, delivery_order
            )
            changes = self.lifecycle.advance_to(session, order, SHIPPED)
            self.availability.mark_assigned(session, person)
            session.commit()
        except IntegrityError:
            session.rollback()
            logger.info("Lost assignment race for order %s", order_id)
            raise DuplicateAssignment()
        except Exception:
            session.rollback()
            raise

        session.refresh(delivery_order)
        logger.info(
            "Assigned order %s to delivery person %s (delivery order %s)",
            order_id,
            delivery_person_id,
            delivery_order.id,
        )

        self.lifecycle.publish(changes)
        return delivery_order
