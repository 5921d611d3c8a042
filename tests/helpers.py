"""Factories and fakes used across the test modules."""

import uuid
from datetime import date, datetime, timedelta

from sqlalchemy.orm import Session

from skytour.core.exceptions import ExternalServiceError
from skytour.core.security import create_operator_token
from skytour.core.timeutil import flight_datetime
from skytour.models.course import Course
from skytour.models.heliport import Heliport
from skytour.models.slot import Slot
from skytour.models.reservation import Reservation
from skytour.services.email_service import EmailResult, OutgoingEmail
from skytour.services.payment_gateway import RefundResult
from skytour.services.reservation_service import confirm_payment, create_reservation
from skytour.services.settings_service import DEFAULT_OPERATING_HOURS


class FakeMailer:
    def __init__(self, fail_for: set[str] | None = None):
        self.fail_for = set(fail_for or ())
        self.sent: list[OutgoingEmail] = []

    def send(self, message: OutgoingEmail) -> EmailResult:
        if message.to in self.fail_for:
            return EmailResult(success=False, error="mailbox unavailable")
        self.sent.append(message)
        return EmailResult(success=True, message_id=f"fake-{len(self.sent)}")


class FakeGateway:
    def __init__(self, error: ExternalServiceError | None = None):
        self.error = error
        self.calls: list[tuple[str, int]] = []

    def refund(self, *, reservation_id: str, amount: int, reason: str = "") -> RefundResult:
        self.calls.append((reservation_id, amount))
        if self.error:
            raise self.error
        return RefundResult(refund_id=f"rf_{len(self.calls)}", status="succeeded")


def make_course(db: Session, title: str = "Tokyo Bay Cruise", price: int = 10000, max_pax: int = 3) -> Course:
    heliport = Heliport(id=str(uuid.uuid4()), name="Tokyo Heliport", address="Koto-ku, Tokyo", active=True)
    course = Course(
        id=str(uuid.uuid4()),
        heliport_id=heliport.id,
        title=title,
        price=price,
        duration_minutes=15,
        max_pax=max_pax,
        min_pax=1,
        flight_times="10:00,10:30,11:00",
        is_active=True,
    )
    db.add_all([heliport, course])
    db.commit()
    return course


def make_slot(db: Session, course: Course, on_date: date, at: str = "10:00", max_pax: int | None = None) -> Slot:
    slot = Slot(
        id=str(uuid.uuid4()),
        course_id=course.id,
        heliport_id=course.heliport_id,
        slot_date=on_date,
        slot_time=at,
        max_pax=max_pax if max_pax is not None else course.max_pax,
        current_pax=0,
    )
    db.add(slot)
    db.commit()
    return slot


def before_flight(slot: Slot, days: int = 10, hours: int = 0) -> datetime:
    """A UTC instant ``days`` (and ``hours``) ahead of the slot's departure."""
    return flight_datetime(slot.slot_date, slot.slot_time) - timedelta(days=days, hours=hours)


def book(db: Session, slot: Slot, pax: int = 1, email: str = "guest@example.com", now: datetime | None = None) -> Reservation:
    return create_reservation(
        db,
        course_id=slot.course_id,
        slot_id=slot.id,
        pax=pax,
        customer_email=email,
        customer_name="Guest",
        hours=DEFAULT_OPERATING_HOURS,
        now=now or before_flight(slot),
    )


def book_confirmed(db: Session, slot: Slot, pax: int = 1, email: str = "guest@example.com", now: datetime | None = None) -> Reservation:
    now = now or before_flight(slot)
    r = book(db, slot, pax=pax, email=email, now=now)
    r, _ = confirm_payment(db, r.id, payment_ref=f"pay_{r.booking_number}", now=now + timedelta(minutes=5))
    return r


def auth_header(role: str = "admin", subject: str = "op-1") -> dict:
    token = create_operator_token(subject, role, email=f"{role}@skytour.example")
    return {"Authorization": f"Bearer {token}"}
