# app/services/delivery_service.py
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.core.errors import (
    AlreadyRated,
    DeliveryNotActive,
    DeliveryOrderNotFound,
    OrderNotFound,
)
from app.models.delivery import DeliveryOrder, DeliveryPerson, DeliveryRating
from app.repositories.delivery_repo import DeliveryRepository
from app.repositories.order_repo import OrderRepository
from app.schemas.delivery import DeliveryRatingCreate
from app.services.driver_availability import DriverAvailabilityTracker

logger = logging.getLogger(__name__)


class DeliveryService:
    """
    Read side of delivery plus the smaller write flows:

      - list a business's active drivers
      - look up the delivery order of an order
      - cancel an active delivery (part of order cancellation)
      - customer rating of a finished delivery
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        delivery_repo: DeliveryRepository,
        availability: DriverAvailabilityTracker,
    ):
        self.order_repo = order_repo
        self.delivery_repo = delivery_repo
        self.availability = availability

    def list_persons(
        self,
        session: Session,
        business_id: uuid.UUID,
    ) -> list[DeliveryPerson]:
        return self.delivery_repo.list_active_persons(session, business_id)

    def get_for_order(
        self,
        session: Session,
        business_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> DeliveryOrder | None:
        """
        Delivery order attached to `order_id`, or None if not dispatched yet.

        Raises:
            OrderNotFound: if the order does not belong to this business.
        """
        order = self.order_repo.get_for_business(session, business_id, order_id)
        if order is None:
            raise OrderNotFound()
        return self.delivery_repo.get_by_order_id(session, order.id)

    def require_for_order(
        self,
        session: Session,
        business_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> DeliveryOrder:
        delivery_order = self.get_for_order(session, business_id, order_id)
        if delivery_order is None:
            raise DeliveryOrderNotFound()
        return delivery_order

    def cancel_for_order(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> DeliveryOrder | None:
        """
        Cancel the ASSIGNED delivery of an order and free its driver.

        No commit: runs inside the order cancellation transaction.
        Returns the delivery order if one was cancelled.
        """
        delivery_order = self.delivery_repo.get_by_order_id(session, order_id)
        if delivery_order is None or delivery_order.status != "ASSIGNED":
            return None

        cancelled = self.delivery_repo.transition_status(
            session,
            delivery_order.id,
            "ASSIGNED",
            "CANCELLED",
            datetime.now(timezone.utc),
        )
        if not cancelled:
            return None

        self.availability.release(session, delivery_order.delivery_person_id)
        logger.info(
            "Cancelled delivery order %s; delivery person %s released",
            delivery_order.id,
            delivery_order.delivery_person_id,
        )
        return delivery_order

    def rate(
        self,
        session: Session,
        order_id: uuid.UUID,
        payload: DeliveryRatingCreate,
    ) -> DeliveryRating:
        """
        Record the customer's rating and refresh the driver's average.

        Raises:
            DeliveryOrderNotFound: order was never dispatched.
            DeliveryNotActive: delivery not completed yet.
            AlreadyRated: a rating already exists for this delivery.
        """
        delivery_order = self.delivery_repo.get_by_order_id(session, order_id)
        if delivery_order is None:
            raise DeliveryOrderNotFound()

        if delivery_order.status != "DELIVERED":
            raise DeliveryNotActive("Only delivered orders can be rated")

        if self.delivery_repo.get_rating_for_delivery(session, delivery_order.id):
            raise AlreadyRated()

        order = self.order_repo.get_by_id(session, order_id)
        if order is None:
            raise OrderNotFound()

        rating = DeliveryRating(
            delivery_order_id=delivery_order.id,
            delivery_person_id=delivery_order.delivery_person_id,
            customer_id=order.customer_id,
            rating=payload.rating,
            comment=payload.comment,
        )

        try:
            self.delivery_repo.create_rating(session, rating)
            average = self.delivery_repo.average_rating(
                session, delivery_order.delivery_person_id
            )
            if average is not None:
                self.delivery_repo.set_person_rating(
                    session, delivery_order.delivery_person_id, round(average, 2)
                )
            session.commit()
        except IntegrityError:
            session.rollback()
            raise AlreadyRated()
        except Exception:
            session.rollback()
            raise

        session.refresh(rating)
        return rating
