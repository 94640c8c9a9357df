# app/routers/delivery.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import AuthContext, require_merchant
from app.database import get_session
from app.routers.deps import (
    assignment_service,
    confirmation_service,
    delivery_service,
)
from app.schemas.delivery import (
    AssignDeliveryRequest,
    ConfirmOtpRequest,
    DeliveryOrderEnvelope,
    DeliveryOrderRead,
    DeliveryOrderResult,
    DeliveryPersonList,
    DeliveryPersonRead,
    DeliveryRatingCreate,
    RatingResult,
)

router = APIRouter(prefix="/delivery", tags=["Delivery"])

# Customer-facing endpoints (no merchant token)
public_router = APIRouter(prefix="/delivery", tags=["Delivery (public)"])


# -------- Merchant / dispatcher endpoints --------


@router.get("/persons", response_model=DeliveryPersonList)
def list_delivery_persons(
    session: Session = Depends(get_session),
    auth: AuthContext = Depends(require_merchant),
):
    """
    Active delivery persons of the current business, by name.
    """
    persons = delivery_service.list_persons(session, auth.business_id)
    return DeliveryPersonList(
        persons=[DeliveryPersonRead.model_validate(p) for p in persons]
    )


@router.get("/orders/{order_id}", response_model=DeliveryOrderEnvelope)
def get_delivery_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    auth: AuthContext = Depends(require_merchant),
):
    """
    Delivery order of an order; `deliveryOrder` is null until dispatched.
    """
    delivery_order = delivery_service.get_for_order(session, auth.business_id, order_id)
    if delivery_order is None:
        return DeliveryOrderEnvelope(delivery_order=None)
    return DeliveryOrderEnvelope(
        delivery_order=DeliveryOrderRead.model_validate(delivery_order)
    )


@router.post(
    "/orders/{order_id}/assign",
    response_model=DeliveryOrderResult,
    status_code=status.HTTP_201_CREATED,
)
def assign_delivery(
    order_id: uuid.UUID,
    payload: AssignDeliveryRequest,
    session: Session = Depends(get_session),
    auth: AuthContext = Depends(require_merchant),
):
    """
    Assign a driver to a confirmed order.

    Creates the delivery order with its 6-digit code and moves the order
    to SHIPPED.
    """
    delivery_order = assignment_service.assign(
        session,
        auth.business_id,
        order_id,
        payload.delivery_person_id,
    )
    return DeliveryOrderResult(
        delivery_order=DeliveryOrderRead.model_validate(delivery_order)
    )


@router.post("/orders/{order_id}/confirm-otp", response_model=DeliveryOrderResult)
def confirm_delivery_otp(
    order_id: uuid.UUID,
    payload: ConfirmOtpRequest,
    session: Session = Depends(get_session),
    auth: AuthContext = Depends(require_merchant),
):
    """
    Confirm the handoff with the customer's code.

    A wrong code answers 400 with code `DELIVERY_OTP_INVALID`.
    """
    delivery_order = delivery_service.require_for_order(session, auth.business_id, order_id)
    delivery_order = confirmation_service.confirm(
        session,
        delivery_order.id,
        payload.otp_code,
        delivery_person_id=payload.delivery_person_id,
        business_id=auth.business_id,
    )
    return DeliveryOrderResult(
        delivery_order=DeliveryOrderRead.model_validate(delivery_order)
    )


# -------- Customer endpoints --------


@public_router.post(
    "/orders/{order_id}/rating",
    response_model=RatingResult,
    status_code=status.HTTP_201_CREATED,
)
def rate_delivery(
    order_id: uuid.UUID,
    payload: DeliveryRatingCreate,
    session: Session = Depends(get_session),
):
    """
    Rate a completed delivery (one rating per delivery).
    """
    delivery_service.rate(session, order_id, payload)
    return RatingResult(message="Rating submitted")
