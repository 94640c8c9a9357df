import uuid
from datetime import datetime, timedelta, timezone

import pytest

from app.core.errors import (
    AlreadyDelivered,
    DeliveryForbidden,
    DeliveryNotActive,
    DeliveryOrderNotFound,
    OtpExpired,
    OtpInvalid,
    OtpLocked,
)
from app.models.delivery import DeliveryOrder
from app.repositories.delivery_repo import DeliveryRepository
from app.repositories.order_repo import OrderRepository
from app.schemas.order import OrderStatusUpdate
from app.services.delivery_confirmation import DeliveryConfirmationService
from app.services.driver_availability import DriverAvailabilityTracker
from app.services.order_lifecycle import OrderLifecycle


@pytest.fixture
def assigned(session, services, business, driver, make_order):
    """Scenario A: a CONFIRMED $25 order with $3 shipping, dispatched."""
    order = make_order(business, total_cents=2500, shipping_cost_cents=300)
    delivery_order = services.assignment.assign(session, business.id, order.id, driver.id)
    return order, delivery_order


def wrong_code(code: str) -> str:
    return "000000" if code != "000000" else "111111"


def test_confirm_with_correct_code(session, services, driver, assigned):
    order, delivery_order = assigned

    confirmed = services.confirmation.confirm(session, delivery_order.id, delivery_order.otp_code)

    session.refresh(order)
    session.refresh(driver)
    assert confirmed.status == "DELIVERED"
    assert confirmed.delivered_at is not None
    assert order.status == "DELIVERED"
    assert driver.completed_orders == 1
    assert driver.total_deliveries == 1
    assert driver.is_available is True


def test_confirm_publishes_delivered(session, services, bus, assigned):
    order, delivery_order = assigned

    services.confirmation.confirm(session, delivery_order.id, delivery_order.otp_code)

    assert bus.events("order_status_changed")[-1] == {
        "orderId": str(order.id),
        "status": "DELIVERED",
        "previousStatus": "SHIPPED",
    }


def test_wrong_code_changes_nothing_but_the_attempt_count(session, services, driver, assigned):
    order, delivery_order = assigned

    with pytest.raises(OtpInvalid) as exc:
        services.confirmation.confirm(session, delivery_order.id, wrong_code(delivery_order.otp_code))

    assert exc.value.code == "DELIVERY_OTP_INVALID"
    session.refresh(order)
    session.refresh(delivery_order)
    session.refresh(driver)
    assert order.status == "SHIPPED"
    assert delivery_order.status == "ASSIGNED"
    assert delivery_order.delivered_at is None
    assert delivery_order.otp_attempts == 1
    assert driver.completed_orders == 0


def test_confirm_twice_counts_once(session, services, driver, assigned):
    _, delivery_order = assigned
    code = delivery_order.otp_code

    services.confirmation.confirm(session, delivery_order.id, code)
    with pytest.raises(AlreadyDelivered):
        services.confirmation.confirm(session, delivery_order.id, code)

    session.refresh(driver)
    assert driver.completed_orders == 1
    assert driver.total_deliveries == 1


def test_conditional_update_guards_stale_reads(session, services, driver, assigned):
    _, delivery_order = assigned
    repo = DeliveryRepository()
    now = datetime.now(timezone.utc)

    assert repo.transition_status(session, delivery_order.id, "ASSIGNED", "DELIVERED", now)
    assert not repo.transition_status(session, delivery_order.id, "ASSIGNED", "DELIVERED", now)
    session.rollback()


def test_unknown_delivery_order(session, services):
    with pytest.raises(DeliveryOrderNotFound):
        services.confirmation.confirm(session, uuid.uuid4(), "123456")


def test_delivery_order_of_another_business(session, services, other_business, assigned):
    _, delivery_order = assigned

    with pytest.raises(DeliveryOrderNotFound):
        services.confirmation.confirm(
            session,
            delivery_order.id,
            delivery_order.otp_code,
            business_id=other_business.id,
        )


def test_other_driver_cannot_confirm(session, services, assigned):
    order, delivery_order = assigned

    with pytest.raises(DeliveryForbidden):
        services.confirmation.confirm(
            session,
            delivery_order.id,
            delivery_order.otp_code,
            delivery_person_id=uuid.uuid4(),
        )

    session.refresh(order)
    assert order.status == "SHIPPED"


def test_cancelled_delivery_cannot_be_confirmed(session, services, business, assigned):
    order, delivery_order = assigned
    services.orders.update_status(
        session, business.id, order.id, OrderStatusUpdate(status="CANCELLED")
    )

    with pytest.raises(DeliveryNotActive):
        services.confirmation.confirm(session, delivery_order.id, delivery_order.otp_code)


def test_code_locks_after_max_attempts(session, bus, assigned):
    _, delivery_order = assigned
    order_repo = OrderRepository()
    delivery_repo = DeliveryRepository()
    service = DeliveryConfirmationService(
        order_repo,
        delivery_repo,
        OrderLifecycle(order_repo, bus),
        DriverAvailabilityTracker(delivery_repo),
        max_otp_attempts=2,
    )
    code = delivery_order.otp_code

    for _ in range(2):
        with pytest.raises(OtpInvalid):
            service.confirm(session, delivery_order.id, wrong_code(code))

    with pytest.raises(OtpLocked):
        service.confirm(session, delivery_order.id, code)

    session.refresh(delivery_order)
    assert delivery_order.status == "ASSIGNED"


def test_unlimited_attempts_when_lockout_disabled(session, bus, assigned):
    _, delivery_order = assigned
    order_repo = OrderRepository()
    delivery_repo = DeliveryRepository()
    service = DeliveryConfirmationService(
        order_repo,
        delivery_repo,
        OrderLifecycle(order_repo, bus),
        DriverAvailabilityTracker(delivery_repo),
        max_otp_attempts=0,
    )
    code = delivery_order.otp_code

    for _ in range(8):
        with pytest.raises(OtpInvalid):
            service.confirm(session, delivery_order.id, wrong_code(code))

    assert service.confirm(session, delivery_order.id, code).status == "DELIVERED"


def test_wrong_code_is_not_counted_when_lockout_disabled(session, bus, assigned):
    _, delivery_order = assigned
    order_repo = OrderRepository()
    delivery_repo = DeliveryRepository()
    service = DeliveryConfirmationService(
        order_repo,
        delivery_repo,
        OrderLifecycle(order_repo, bus),
        DriverAvailabilityTracker(delivery_repo),
        max_otp_attempts=0,
    )

    with pytest.raises(OtpInvalid):
        service.confirm(session, delivery_order.id, wrong_code(delivery_order.otp_code))

    session.refresh(delivery_order)
    assert delivery_order.otp_attempts == 0
    assert delivery_order.status == "ASSIGNED"


def test_expired_code(session, services, assigned):
    order, delivery_order = assigned
    row = session.get(DeliveryOrder, delivery_order.id)
    row.otp_expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
    session.add(row)
    session.commit()

    with pytest.raises(OtpExpired):
        services.confirmation.confirm(session, delivery_order.id, delivery_order.otp_code)

    session.refresh(order)
    assert order.status == "SHIPPED"
