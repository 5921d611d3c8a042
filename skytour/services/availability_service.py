"""
Slot availability.

Read-only: capacity is recomputed from live reservation aggregates on every
call instead of trusting ``slots.current_pax``, and operating-hours settings
are passed in by the caller.
"""

from dataclasses import dataclass
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from skytour.core.exceptions import NotFoundError
from skytour.models.course import Course
from skytour.models.enums import SEAT_HOLDING_STATUSES, SlotStatus
from skytour.models.reservation import Reservation
from skytour.models.slot import Slot
from skytour.services.settings_service import OperatingHours


@dataclass(frozen=True)
class SlotAvailability:
    slot_id: str
    course_id: str
    heliport_id: str | None
    slot_date: date
    slot_time: str
    max_pax: int
    current_pax: int
    status: SlotStatus
    course_title: str = ""
    price: int = 0

    @property
    def available_pax(self) -> int:
        return max(self.max_pax - self.current_pax, 0)


def booked_pax_by_slot(db: Session, slot_ids: list[str]) -> dict[str, int]:
    if not slot_ids:
        return {}
    rows = db.execute(
        select(Reservation.slot_id, func.coalesce(func.sum(Reservation.pax), 0))
        .where(
            Reservation.slot_id.in_(slot_ids),
            Reservation.status.in_(SEAT_HOLDING_STATUSES),
        )
        .group_by(Reservation.slot_id)
    ).all()
    return {slot_id: int(total) for slot_id, total in rows}


def _derive_status(slot: Slot, current_pax: int, hours: OperatingHours) -> SlotStatus:
    if slot.status == SlotStatus.CLOSED or not hours.allows(slot.slot_time):
        return SlotStatus.CLOSED
    if current_pax >= slot.max_pax:
        return SlotStatus.FULL
    return SlotStatus.OPEN


def _to_view(slot: Slot, course: Course | None, current_pax: int, hours: OperatingHours) -> SlotAvailability:
    return SlotAvailability(
        slot_id=slot.id,
        course_id=slot.course_id,
        heliport_id=slot.heliport_id,
        slot_date=slot.slot_date,
        slot_time=slot.slot_time,
        max_pax=slot.max_pax,
        current_pax=current_pax,
        status=_derive_status(slot, current_pax, hours),
        course_title=course.title if course else "",
        price=course.price if course else 0,
    )


def list_available_slots(
    db: Session,
    on_date: date,
    hours: OperatingHours,
    course_id: str | None = None,
    dedupe: bool = False,
) -> list[SlotAvailability]:
    """Open slots with free seats on a date, sorted by time.

    With ``dedupe`` one entry per wall-clock time is kept (the one with the most
    free seats), for heliport-level views where several courses share a time.
    """
    if hours.holiday_mode:
        return []

    q = (
        select(Slot, Course)
        .join(Course, Course.id == Slot.course_id)
        .where(Slot.slot_date == on_date, Course.is_active.is_(True), Slot.status != SlotStatus.CLOSED)
    )
    if course_id:
        q = q.where(Slot.course_id == course_id)
    rows = db.execute(q.order_by(Slot.slot_time, Slot.id)).all()
    counts = booked_pax_by_slot(db, [s.id for s, _ in rows])

    views = []
    for slot, course in rows:
        view = _to_view(slot, course, counts.get(slot.id, 0), hours)
        if view.status != SlotStatus.OPEN:
            continue
        views.append(view)

    if dedupe:
        best: dict[str, SlotAvailability] = {}
        for v in views:
            cur = best.get(v.slot_time)
            if cur is None or (v.available_pax, cur.slot_id) > (cur.available_pax, v.slot_id):
                best[v.slot_time] = v
        views = list(best.values())

    return sorted(views, key=lambda v: (v.slot_time, v.slot_id))


def get_slot_availability(db: Session, slot_id: str, hours: OperatingHours) -> SlotAvailability:
    slot = db.get(Slot, slot_id)
    if not slot:
        raise NotFoundError("Slot not found", details={"slotId": slot_id})
    course = db.get(Course, slot.course_id)
    current = booked_pax_by_slot(db, [slot.id]).get(slot.id, 0)
    return _to_view(slot, course, current, hours)
