# app/routers/orders.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import AuthContext, require_merchant
from app.database import get_session
from app.routers.deps import order_service
from app.schemas.order import (
    OrderCreate,
    OrderRead,
    OrderStatus,
    OrderStatusUpdate,
)

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post(
    "",
    response_model=OrderRead,
    status_code=status.HTTP_201_CREATED,
)
def create_order(
    payload: OrderCreate,
    session: Session = Depends(get_session),
    auth: AuthContext = Depends(require_merchant),
):
    """
    Register an order for the current business (status PENDING).

    Emits `new_order` to the business dashboard.
    """
    return order_service.create_order(session, auth.business_id, payload)


@router.get(
    "",
    response_model=list[OrderRead],
)
def list_orders(
    status: OrderStatus | None = None,
    skip: int = 0,
    limit: int = 50,
    session: Session = Depends(get_session),
    auth: AuthContext = Depends(require_merchant),
):
    """
    List the business's orders, newest first, optionally by status.
    """
    return order_service.list_orders(session, auth.business_id, status, skip, limit)


@router.get(
    "/{order_id}",
    response_model=OrderRead,
)
def get_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    auth: AuthContext = Depends(require_merchant),
):
    """
    Get a single order of the current business.
    """
    return order_service.get_order(session, auth.business_id, order_id)


@router.patch(
    "/{order_id}/status",
    response_model=OrderRead,
)
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
    auth: AuthContext = Depends(require_merchant),
):
    """
    Update order status through the lifecycle.

      PENDING -> CONFIRMED -> PREPARING -> SHIPPED -> DELIVERED

      any non-terminal status -> CANCELLED

    """
    return order_service.update_status(session, auth.business_id, order_id, payload)
