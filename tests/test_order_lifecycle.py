import pytest

from app.core.errors import InvalidTransition
from app.services.order_lifecycle import OrderLifecycle, next_status

ALL_STATUSES = ["PENDING", "CONFIRMED", "PREPARING", "SHIPPED", "DELIVERED", "CANCELLED"]

FORWARD = {
    ("PENDING", "CONFIRMED"),
    ("CONFIRMED", "PREPARING"),
    ("PREPARING", "SHIPPED"),
    ("SHIPPED", "DELIVERED"),
}
CANCELLABLE = {"PENDING", "CONFIRMED", "PREPARING", "SHIPPED"}


@pytest.mark.parametrize("current", ALL_STATUSES)
@pytest.mark.parametrize("target", ALL_STATUSES)
def test_can_transition_matches_lifecycle_graph(current, target):
    expected = (current, target) in FORWARD or (
        target == "CANCELLED" and current in CANCELLABLE
    )
    assert OrderLifecycle.can_transition(current, target) is expected


def test_next_status_stops_at_delivered():
    assert next_status("SHIPPED") == "DELIVERED"
    assert next_status("DELIVERED") is None
    assert next_status("CANCELLED") is None


def test_apply_transition_persists_and_reports_change(session, services, business, make_order):
    order = make_order(business, status="PENDING")

    change = services.lifecycle.apply_transition(session, order, "CONFIRMED")
    session.commit()
    session.refresh(order)

    assert order.status == "CONFIRMED"
    assert change.previous_status == "PENDING"
    assert change.status == "CONFIRMED"
    assert change.business_id == business.id


def test_apply_transition_rejects_skip_without_side_effects(session, services, business, make_order):
    order = make_order(business, status="PENDING")
    before = order.updated_at

    with pytest.raises(InvalidTransition) as exc:
        services.lifecycle.apply_transition(session, order, "SHIPPED")

    assert exc.value.current == "PENDING"
    assert exc.value.target == "SHIPPED"
    assert "PENDING" in exc.value.message and "SHIPPED" in exc.value.message
    assert order.status == "PENDING"
    assert order.updated_at == before


@pytest.mark.parametrize("terminal", ["DELIVERED", "CANCELLED"])
def test_terminal_orders_cannot_be_cancelled(session, services, business, make_order, terminal):
    order = make_order(business, status=terminal)

    with pytest.raises(InvalidTransition):
        services.lifecycle.apply_transition(session, order, "CANCELLED")


def test_advance_to_walks_each_step(session, services, business, make_order):
    order = make_order(business, status="CONFIRMED")

    changes = services.lifecycle.advance_to(session, order, "SHIPPED")

    assert [(c.previous_status, c.status) for c in changes] == [
        ("CONFIRMED", "PREPARING"),
        ("PREPARING", "SHIPPED"),
    ]
    assert order.status == "SHIPPED"


def test_advance_to_refuses_going_backwards(session, services, business, make_order):
    order = make_order(business, status="SHIPPED")

    with pytest.raises(InvalidTransition):
        services.lifecycle.advance_to(session, order, "PREPARING")


def test_publish_emits_status_changed(session, services, bus, business, make_order):
    order = make_order(business, status="PENDING")
    change = services.lifecycle.apply_transition(session, order, "CONFIRMED")
    session.commit()

    services.lifecycle.publish([change])

    assert bus.events("order_status_changed") == [
        {"orderId": str(order.id), "status": "CONFIRMED", "previousStatus": "PENDING"}
    ]


def test_publish_failure_does_not_undo_transition(session, services, bus, business, make_order, monkeypatch):
    order = make_order(business, status="PENDING")
    change = services.lifecycle.apply_transition(session, order, "CONFIRMED")
    session.commit()

    def boom(*args, **kwargs):
        raise RuntimeError("socket server down")

    monkeypatch.setattr(bus, "emit_to_business", boom)
    services.lifecycle.publish([change])

    session.refresh(order)
    assert order.status == "CONFIRMED"
