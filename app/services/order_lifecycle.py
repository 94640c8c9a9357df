# app/services/order_lifecycle.py
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlmodel import Session

from app.core.errors import InvalidTransition
from app.core.events import ORDER_STATUS_CHANGED, EventBus
from app.models.order import Order
from app.repositories.order_repo import OrderRepository

logger = logging.getLogger(__name__)

PENDING = "PENDING"
CONFIRMED = "CONFIRMED"
PREPARING = "PREPARING"
SHIPPED = "SHIPPED"
DELIVERED = "DELIVERED"
CANCELLED = "CANCELLED"

# Forward path, in order. CANCELLED sits outside it.
STATUS_SEQUENCE: tuple[str, ...] = (PENDING, CONFIRMED, PREPARING, SHIPPED, DELIVERED)
TERMINAL_STATUSES: frozenset[str] = frozenset({DELIVERED, CANCELLED})


@dataclass(frozen=True)
class StatusChange:
    order_id: uuid.UUID
    business_id: uuid.UUID
    previous_status: str
    status: str


def next_status(current: str) -> str | None:
    """Immediate successor of `current` on the forward path, if any."""
    if current not in STATUS_SEQUENCE:
        return None
    idx = STATUS_SEQUENCE.index(current)
    if idx + 1 >= len(STATUS_SEQUENCE):
        return None
    return STATUS_SEQUENCE[idx + 1]


class OrderLifecycle:
    """
    State machine for Order.status:

      PENDING -> CONFIRMED -> PREPARING -> SHIPPED -> DELIVERED
      any non-terminal state -> CANCELLED

    DELIVERED and CANCELLED are terminal.

    Transitions are written inside the caller's transaction (flush only);
    `publish` is called by the caller once that transaction has committed.
    """

    def __init__(self, order_repo: OrderRepository, events: EventBus):
        self.order_repo = order_repo
        self.events = events

    @staticmethod
    def can_transition(current: str, target: str) -> bool:
        if current in TERMINAL_STATUSES:
            return False
        if target == CANCELLED:
            return True
        return next_status(current) == target

    def apply_transition(
        self,
        session: Session,
        order: Order,
        target: str,
    ) -> StatusChange:
        """
        Move `order` to `target`.

        Raises:
            InvalidTransition: if `target` is not legal from the current
            status. The order is left untouched.
        """
        current = order.status
        if not self.can_transition(current, target):
            raise InvalidTransition(current, target)

        order.status = target
        order.updated_at = datetime.now(timezone.utc)
        self.order_repo.update_order(session, order)

        return StatusChange(
            order_id=order.id,
            business_id=order.business_id,
            previous_status=current,
            status=target,
        )

    def advance_to(
        self,
        session: Session,
        order: Order,
        target: str,
    ) -> list[StatusChange]:
        """
        Walk the forward path one legal step at a time until `target`.

        Used where a single business action (e.g. dispatching a CONFIRMED
        order) spans more than one lifecycle step.
        """
        if target not in STATUS_SEQUENCE or order.status not in STATUS_SEQUENCE:
            return [self.apply_transition(session, order, target)]

        if STATUS_SEQUENCE.index(target) <= STATUS_SEQUENCE.index(order.status):
            raise InvalidTransition(order.status, target)

        changes: list[StatusChange] = []
        while order.status != target:
            changes.append(
                self.apply_transition(session, order, next_status(order.status))
            )
        return changes

    def publish(self, changes: list[StatusChange]) -> None:
        """
        Emit `order_status_changed` for committed changes.

        Best-effort: an emit failure is logged and never undoes the
        status change.
        """
        for change in changes:
            try:
                self.events.emit_to_business(
                    change.business_id,
                    ORDER_STATUS_CHANGED,
                    {
                        "orderId": str(change.order_id),
                        "status": change.status,
                        "previousStatus": change.previous_status,
                    },
                )
            except Exception:
                logger.exception(
                    "Failed to publish status change for order %s", change.order_id
                )
