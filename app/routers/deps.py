# app/routers/deps.py
"""
Wiring of repositories and services shared by the routers.

Everything is built once per process from explicit constructor arguments;
the DB session is still injected per request via `get_session`.
"""

from app.core.config import get_settings
from app.core.events import event_bus
from app.repositories.delivery_repo import DeliveryRepository
from app.repositories.order_repo import OrderRepository
from app.services.delivery_assignment import DeliveryAssignmentService
from app.services.delivery_confirmation import DeliveryConfirmationService
from app.services.delivery_service import DeliveryService
from app.services.driver_availability import DriverAvailabilityTracker
from app.services.order_lifecycle import OrderLifecycle
from app.services.order_service import OrderService

settings = get_settings()

order_repo = OrderRepository()
delivery_repo = DeliveryRepository()

lifecycle = OrderLifecycle(order_repo, event_bus)
availability = DriverAvailabilityTracker(
    delivery_repo,
    require_available=settings.DELIVERY_REQUIRE_AVAILABLE_DRIVER,
)

delivery_service = DeliveryService(order_repo, delivery_repo, availability)
order_service = OrderService(order_repo, delivery_repo, lifecycle, delivery_service, event_bus)

assignment_service = DeliveryAssignmentService(
    order_repo,
    delivery_repo,
    lifecycle,
    availability,
    assignable_statuses=settings.DELIVERY_ASSIGNABLE_STATUSES,
    otp_ttl_minutes=settings.DELIVERY_OTP_TTL_MINUTES,
)
confirmation_service = DeliveryConfirmationService(
    order_repo,
    delivery_repo,
    lifecycle,
    availability,
    max_otp_attempts=settings.DELIVERY_OTP_MAX_ATTEMPTS,
)
