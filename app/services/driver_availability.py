# app/services/driver_availability.py
import logging
import uuid

from sqlmodel import Session

from app.core.errors import DriverUnavailable
from app.models.delivery import DeliveryPerson
from app.repositories.delivery_repo import DeliveryRepository

logger = logging.getLogger(__name__)


class DriverAvailabilityTracker:
    """
    Tracks whether a delivery person may take new work.

    With `require_available=False` a busy driver can still be assigned and
    only a warning is logged; set it to True to refuse the assignment.
    """

    def __init__(self, delivery_repo: DeliveryRepository, require_available: bool = False):
        self.delivery_repo = delivery_repo
        self.require_available = require_available

    def ensure_can_accept(self, person: DeliveryPerson) -> None:
        if person.is_available:
            return
        if self.require_available:
            raise DriverUnavailable()
        logger.warning(
            "Delivery person %s is not available; assigning anyway", person.id
        )

    def mark_assigned(self, session: Session, person: DeliveryPerson) -> None:
        person.is_available = False
        session.add(person)
        session.flush()

    def release(self, session: Session, person_id: uuid.UUID) -> None:
        self.delivery_repo.set_person_available(session, person_id, True)

    def record_delivery(self, session: Session, person_id: uuid.UUID) -> None:
        """Count one completed delivery and free the driver."""
        self.delivery_repo.increment_person_counters(session, person_id)
