# app/services/delivery_confirmation.py
import hmac
import logging
import uuid
from datetime import datetime, timezone

from sqlmodel import Session

from app.core.errors import (
    AlreadyDelivered,
    DeliveryForbidden,
    DeliveryNotActive,
    DeliveryOrderNotFound,
    OrderNotFound,
    OtpExpired,
    OtpInvalid,
    OtpLocked,
)
from app.models.delivery import DeliveryOrder
from app.repositories.delivery_repo import DeliveryRepository
from app.repositories.order_repo import OrderRepository
from app.services.driver_availability import DriverAvailabilityTracker
from app.services.order_lifecycle import DELIVERED, OrderLifecycle

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class DeliveryConfirmationService:
    """
    Closes a delivery once the driver enters the customer's code.

    Checks run before any write. A wrong code only bumps the attempt
    counter. On a match, the ASSIGNED -> DELIVERED update is conditional and
    runs first, so two simultaneous confirmations increment the driver's
    counters once.
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        delivery_repo: DeliveryRepository,
        lifecycle: OrderLifecycle,
        availability: DriverAvailabilityTracker,
        max_otp_attempts: int = 5,
    ):
        self.order_repo = order_repo
        self.delivery_repo = delivery_repo
        self.lifecycle = lifecycle
        self.availability = availability
        self.max_otp_attempts = max_otp_attempts

    def confirm(
        self,
        session: Session,
        delivery_order_id: uuid.UUID,
        submitted_otp: str,
        delivery_person_id: uuid.UUID | None = None,
        business_id: uuid.UUID | None = None,
    ) -> DeliveryOrder:
        """
        Validate `submitted_otp` and mark the delivery and its order DELIVERED.

        Raises:
            DeliveryOrderNotFound, DeliveryForbidden, AlreadyDelivered,
            DeliveryNotActive, OtpLocked, OtpExpired, OtpInvalid.
        """
        delivery_order = self.delivery_repo.get_delivery_order(session, delivery_order_id)
        if delivery_order is None or (
            business_id is not None and delivery_order.business_id != business_id
        ):
            raise DeliveryOrderNotFound()

        if (
            delivery_person_id is not None
            and delivery_order.delivery_person_id != delivery_person_id
        ):
            raise DeliveryForbidden()

        if delivery_order.status == "DELIVERED":
            raise AlreadyDelivered()
        if delivery_order.status != "ASSIGNED":
            raise DeliveryNotActive()

        if self.max_otp_attempts and delivery_order.otp_attempts >= self.max_otp_attempts:
            raise OtpLocked()

        if delivery_order.otp_expires_at is not None and datetime.now(
            timezone.utc
        ) > _as_utc(delivery_order.otp_expires_at):
            raise OtpExpired()

        if not hmac.compare_digest(
            delivery_order.otp_code.encode(), submitted_otp.encode()
        ):
            # Attempts are only tracked when a lockout applies
            if self.max_otp_attempts:
                self.delivery_repo.increment_otp_attempts(session, delivery_order.id)
                session.commit()
            logger.warning("Incorrect delivery code for delivery order %s", delivery_order.id)
            raise OtpInvalid()

        now = datetime.now(timezone.utc)
        try:
            if not self.delivery_repo.transition_status(
                session, delivery_order.id, "ASSIGNED", "DELIVERED", now
            ):
                raise AlreadyDelivered()

            order = self.order_repo.get_by_id(session, delivery_order.order_id)
            if order is None:
                raise OrderNotFound()
            change = self.lifecycle.apply_transition(session, order, DELIVERED)

            self.availability.record_delivery(session, delivery_order.delivery_person_id)
            session.commit()
        except Exception:
            session.rollback()
            raise

        session.refresh(delivery_order)
        logger.info(
            "Delivery order %s confirmed by delivery person %s",
            delivery_order.id,
            delivery_order.delivery_person_id,
        )

        self.lifecycle.publish([change])
        return delivery_order
