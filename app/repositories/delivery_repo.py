# app/repositories/delivery_repo.py
import uuid
from datetime import datetime

from sqlalchemy import func, update
from sqlmodel import Session, select

from app.models.delivery import DeliveryOrder, DeliveryPerson, DeliveryRating


class DeliveryRepository:
    """
    Data access layer for delivery persons, delivery orders and ratings.

    Responsibilities:
      - Pure DB operations (queries + guarded updates)
      - No commits; the calling service owns the transaction
    """

    # ---- Delivery persons ----

    def get_person(
        self,
        session: Session,
        person_id: uuid.UUID,
    ) -> DeliveryPerson | None:
        return session.get(DeliveryPerson, person_id)

    def list_active_persons(
        self,
        session: Session,
        business_id: uuid.UUID,
    ) -> list[DeliveryPerson]:
        stmt = (
            select(DeliveryPerson)
            .where(
                DeliveryPerson.business_id == business_id,
                DeliveryPerson.is_active == True,  # noqa: E712
            )
            .order_by(DeliveryPerson.name.asc())
        )
        return session.exec(stmt).all()

    def set_person_available(
        self,
        session: Session,
        person_id: uuid.UUID,
        available: bool,
    ) -> None:
        session.execute(
            update(DeliveryPerson)
            .where(DeliveryPerson.id == person_id)
            .values(is_available=available)
        )

    def increment_person_counters(
        self,
        session: Session,
        person_id: uuid.UUID,
    ) -> None:
        """
        Bump completed/total deliveries in SQL (`col = col + 1`) so two
        writers never overwrite each other's count, and free the driver.
        """
        session.execute(
            update(DeliveryPerson)
            .where(DeliveryPerson.id == person_id)
            .values(
                completed_orders=DeliveryPerson.completed_orders + 1,
                total_deliveries=DeliveryPerson.total_deliveries + 1,
                is_available=True,
            )
        )

    def set_person_rating(
        self,
        session: Session,
        person_id: uuid.UUID,
        rating: float,
    ) -> None:
        session.execute(
            update(DeliveryPerson)
            .where(DeliveryPerson.id == person_id)
            .values(rating=rating)
        )

    # ---- Delivery orders ----

    def get_delivery_order(
        self,
        session: Session,
        delivery_order_id: uuid.UUID,
    ) -> DeliveryOrder | None:
        return session.get(DeliveryOrder, delivery_order_id)

    def get_by_order_id(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> DeliveryOrder | None:
        stmt = select(DeliveryOrder).where(DeliveryOrder.order_id == order_id)
        return session.exec(stmt).first()

    def create_delivery_order(
        self,
        session: Session,
        delivery_order: DeliveryOrder,
    ) -> DeliveryOrder:
        """
        Insert without committing. The flush is where a concurrent
        assignment on the same order hits the unique index.
        """
        session.add(delivery_order)
        session.flush()
        return delivery_order

    def transition_status(
        self,
        session: Session,
        delivery_order_id: uuid.UUID,
        from_status: str,
        to_status: str,
        at: datetime,
    ) -> bool:
        """
        Conditional status write: only succeeds while the row is still in
        `from_status`. Returns False if another writer got there first.
        """
        values: dict = {"status": to_status}
        if to_status == "DELIVERED":
            values["delivered_at"] = at
        elif to_status == "CANCELLED":
            values["cancelled_at"] = at

        result = session.execute(
            update(DeliveryOrder)
            .where(
                DeliveryOrder.id == delivery_order_id,
                DeliveryOrder.status == from_status,
            )
            .values(**values)
        )
        return result.rowcount == 1

    def increment_otp_attempts(
        self,
        session: Session,
        delivery_order_id: uuid.UUID,
    ) -> None:
        session.execute(
            update(DeliveryOrder)
            .where(DeliveryOrder.id == delivery_order_id)
            .values(otp_attempts=DeliveryOrder.otp_attempts + 1)
        )

    # ---- Ratings ----

    def get_rating_for_delivery(
        self,
        session: Session,
        delivery_order_id: uuid.UUID,
    ) -> DeliveryRating | None:
        stmt = select(DeliveryRating).where(
            DeliveryRating.delivery_order_id == delivery_order_id
        )
        return session.exec(stmt).first()

    def create_rating(
        self,
        session: Session,
        rating: DeliveryRating,
    ) -> DeliveryRating:
        session.add(rating)
        session.flush()
        return rating

    def average_rating(
        self,
        session: Session,
        person_id: uuid.UUID,
    ) -> float | None:
        stmt = select(func.avg(DeliveryRating.rating)).where(
            DeliveryRating.delivery_person_id == person_id
        )
        value = session.exec(stmt).one()
        return float(value) if value is not None else None
