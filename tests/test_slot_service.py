from datetime import date

import pytest

from skytour.core.exceptions import NotFoundError, OperatingHoursClosedError, ValidationError
from skytour.models.enums import CancellationCause, PaymentStatus, ReservationStatus, SlotStatus
from skytour.models.reservation import Reservation
from skytour.models.slot import Slot
from skytour.services.slot_service import close_slot, generate_slots

from tests.helpers import before_flight, book, book_confirmed, make_course, make_slot

START = date(2026, 10, 1)


def test_generate_uses_course_times(db):
    course = make_course(db)

    created = generate_slots(db, course.id, START, 3, actor="admin")

    assert created == 9
    slots = db.query(Slot).filter(Slot.course_id == course.id).order_by(Slot.slot_date, Slot.slot_time).all()
    assert [s.slot_time for s in slots[:3]] == ["10:00", "10:30", "11:00"]
    assert all(s.max_pax == course.max_pax and s.current_pax == 0 for s in slots)
    assert all(s.status == SlotStatus.OPEN for s in slots)


def test_generate_is_idempotent(db):
    course = make_course(db)
    generate_slots(db, course.id, START, 2)

    assert generate_slots(db, course.id, START, 3) == 3
    assert db.query(Slot).filter(Slot.course_id == course.id).count() == 9


def test_generate_with_explicit_times(db):
    course = make_course(db)

    assert generate_slots(db, course.id, START, 1, times=["14:00", "15:30"]) == 2


@pytest.mark.parametrize("days, times", [(0, None), (121, None), (1, ["25:00"])])
def test_generate_validates_input(db, days, times):
    course = make_course(db)

    with pytest.raises(ValidationError):
        generate_slots(db, course.id, START, days, times=times)


def test_generate_unknown_course(db):
    with pytest.raises(NotFoundError):
        generate_slots(db, "missing", START, 1)


def test_close_slot_suspends_paid_and_cancels_unpaid(db):
    course = make_course(db)
    slot = make_slot(db, course, START)
    paid = book_confirmed(db, slot, pax=2, email="paid@example.com")
    held = book(db, slot, pax=1, email="held@example.com")

    result = close_slot(db, slot.id, reason="typhoon warning", actor="ops", now=before_flight(slot, days=1))

    assert result["suspended"] == [paid.id]
    assert result["cancelled"] == [held.id]
    db.expire_all()
    paid = db.get(Reservation, paid.id)
    held = db.get(Reservation, held.id)
    assert paid.status == ReservationStatus.SUSPENDED
    assert paid.refund_due == paid.total_price
    assert held.status == ReservationStatus.CANCELLED
    assert held.cancellation_cause == CancellationCause.WEATHER
    assert held.payment_status == PaymentStatus.UNPAID
    closed = db.get(Slot, slot.id)
    assert closed.status == SlotStatus.CLOSED
    assert closed.current_pax == 0


def test_closed_slot_takes_no_bookings(db):
    course = make_course(db)
    slot = make_slot(db, course, START)
    close_slot(db, slot.id, reason="maintenance", actor="ops", cause=CancellationCause.MECHANICAL)

    with pytest.raises(OperatingHoursClosedError) as exc:
        book(db, slot)

    assert exc.value.details["reason"] == "slot_closed"


def test_close_requires_reason_and_operator_cause(db):
    course = make_course(db)
    slot = make_slot(db, course, START)

    with pytest.raises(ValidationError):
        close_slot(db, slot.id, reason="", actor="ops")
    with pytest.raises(ValidationError):
        close_slot(db, slot.id, reason="x", actor="ops", cause=CancellationCause.CUSTOMER)
