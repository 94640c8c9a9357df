# app/services/order_service.py
import logging
import uuid

from sqlmodel import Session

from app.core.errors import InvalidTransition, OrderNotFound
from app.core.events import NEW_ORDER, EventBus
from app.models.order import Order
from app.repositories.delivery_repo import DeliveryRepository
from app.repositories.order_repo import OrderRepository
from app.schemas.order import OrderCreate, OrderRead, OrderStatusUpdate
from app.services.delivery_service import DeliveryService
from app.services.order_lifecycle import CANCELLED, DELIVERED, OrderLifecycle

logger = logging.getLogger(__name__)


class OrderService:
    """
    Business logic for orders.

    Responsibilities:
      - Register orders coming out of checkout (status PENDING)
      - Tenant-scoped listing and lookup
      - Merchant status changes through OrderLifecycle
      - Cancel the active delivery when an order is cancelled
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        delivery_repo: DeliveryRepository,
        lifecycle: OrderLifecycle,
        delivery_service: DeliveryService,
        events: EventBus,
    ):
        self.order_repo = order_repo
        self.delivery_repo = delivery_repo
        self.lifecycle = lifecycle
        self.delivery_service = delivery_service
        self.events = events

    def create_order(
        self,
        session: Session,
        business_id: uuid.UUID,
        payload: OrderCreate,
    ) -> Order:
        """
        Insert a PENDING order and notify the dashboard (`new_order`).
        """
        order = Order(
            business_id=business_id,
            customer_id=payload.customer_id,
            total_cents=payload.total_cents,
            payment_method=payload.payment_method,
            status="PENDING",
            shipping_cost_cents=payload.shipping_cost_cents,
            delivery_address=payload.delivery_address,
            notes=payload.notes,
        )
        order = self.order_repo.create_order(session, order)
        session.commit()
        session.refresh(order)

        logger.info("Order %s created for business %s", order.id, business_id)
        self.events.emit_to_business(
            business_id,
            NEW_ORDER,
            OrderRead.model_validate(order).model_dump(mode="json", by_alias=True),
        )
        return order

    def list_orders(
        self,
        session: Session,
        business_id: uuid.UUID,
        status: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        return self.order_repo.list_for_business(session, business_id, status, skip, limit)

    def get_order(
        self,
        session: Session,
        business_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> Order:
        order = self.order_repo.get_for_business(session, business_id, order_id)
        if order is None:
            raise OrderNotFound()
        return order

    def update_status(
        self,
        session: Session,
        business_id: uuid.UUID,
        order_id: uuid.UUID,
        payload: OrderStatusUpdate,
    ) -> Order:
        """
        Merchant status change.

          - Same status: no-op.
          - CANCELLED: also cancels an ASSIGNED delivery and frees the driver.
          - DELIVERED while a delivery is ASSIGNED: rejected, the delivery
            must be closed with its code.

        Any other illegal move raises InvalidTransition (409).
        """
        order = self.get_order(session, business_id, order_id)

        current = order.status
        new = payload.status

        if current == new:
            return order

        if new == DELIVERED:
            delivery_order = self.delivery_repo.get_by_order_id(session, order.id)
            if delivery_order is not None and delivery_order.status == "ASSIGNED":
                raise InvalidTransition(
                    current,
                    new,
                    "Order has an active delivery; confirm it with the delivery code",
                )

        try:
            change = self.lifecycle.apply_transition(session, order, new)
            if new == CANCELLED:
                self.delivery_service.cancel_for_order(session, order.id)
            session.commit()
        except Exception:
            session.rollback()
            raise

        session.refresh(order)
        self.lifecycle.publish([change])
        return order
