# app/repositories/order_repo.py
import uuid

from sqlmodel import Session, select

from app.models.business import Business
from app.models.order import Order


class OrderRepository:
    """
    Data access layer for orders (and the business row they hang off).

    NOTE:
      - No commits here; status changes are part of multi-table
        transactions. The service is responsible for calling session.commit().
    """

    # ---- Orders ----

    def list_for_business(
        self,
        session: Session,
        business_id: uuid.UUID,
        status: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = select(Order).where(Order.business_id == business_id)
        if status is not None:
            stmt = stmt.where(Order.status == status)
        stmt = stmt.order_by(Order.created_at.desc()).offset(skip).limit(limit)
        return session.exec(stmt).all()

    def get_by_id(self, session: Session, order_id: uuid.UUID) -> Order | None:
        return session.get(Order, order_id)

    def get_for_business(
        self,
        session: Session,
        business_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> Order | None:
        """Tenant-scoped lookup; another business's order reads as missing."""
        order = session.get(Order, order_id)
        if order is None or order.business_id != business_id:
            return None
        return order

    def create_order(self, session: Session, order: Order) -> Order:
        """
        Insert an Order without committing, but ensure id is populated.
        """
        session.add(order)
        session.flush()  # Assign PK
        session.refresh(order)
        return order

    def update_order(self, session: Session, order: Order) -> Order:
        session.add(order)
        session.flush()
        return order

    # ---- Businesses ----

    def get_business(
        self,
        session: Session,
        business_id: uuid.UUID,
    ) -> Business | None:
        return session.get(Business, business_id)
