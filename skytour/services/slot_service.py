import logging
import uuid
from datetime import date, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from skytour.core.exceptions import InvalidTransitionError, NotFoundError, ValidationError
from skytour.core.timeutil import utcnow
from skytour.models.course import Course
from skytour.models.enums import AuditStatus, CancellationCause, ReservationStatus, SlotStatus
from skytour.models.reservation import Reservation
from skytour.models.slot import Slot
from skytour.services.audit_service import log_audit
from skytour.services.reservation_service import cancel_reservation, suspend_reservation
from skytour.services.settings_service import HHMM_RE

logger = logging.getLogger(__name__)

MAX_GENERATE_DAYS = 120


def generate_slots(
    db: Session,
    course_id: str,
    start: date,
    days: int,
    actor: str = "system",
    times: list[str] | None = None,
) -> int:
    """Create open slots for each of the course's flight times; existing slots are left alone."""
    course = db.get(Course, course_id)
    if not course:
        raise NotFoundError("Course not found", details={"courseId": course_id})
    if not 1 <= days <= MAX_GENERATE_DAYS:
        raise ValidationError(f"days must be between 1 and {MAX_GENERATE_DAYS}", details={"field": "days"})
    times = [t.strip() for t in (times if times is not None else course.times) if t.strip()]
    bad = [t for t in times if not HHMM_RE.match(t)]
    if bad:
        raise ValidationError(f"Invalid time format: {', '.join(bad)}. Use HH:MM", details={"field": "times"})

    end = start + timedelta(days=days)
    existing = {
        (d, t) for d, t in db.execute(
            select(Slot.slot_date, Slot.slot_time).where(
                Slot.course_id == course.id, Slot.slot_date >= start, Slot.slot_date < end
            )
        ).all()
    }

    created = 0
    for i in range(days):
        d = start + timedelta(days=i)
        for t in times:
            if (d, t) in existing:
                continue
            existing.add((d, t))
            db.add(Slot(
                id=str(uuid.uuid4()),
                course_id=course.id,
                heliport_id=course.heliport_id,
                slot_date=d,
                slot_time=t,
                max_pax=course.max_pax,
                current_pax=0,
                status=SlotStatus.OPEN,
            ))
            created += 1

    log_audit(
        db, "Slots Generated", "slot", "courses", course.id, actor=actor,
        message=f"{created} slots created for {course.title} from {start} ({days} days)",
        new_values={"start": start.isoformat(), "days": days, "times": times, "created": created},
    )
    db.commit()
    logger.info("Generated %s slots for course %s starting %s", created, course.id, start)
    return created


def close_slot(
    db: Session,
    slot_id: str,
    reason: str,
    actor: str,
    cause: CancellationCause = CancellationCause.WEATHER,
    now: datetime | None = None,
) -> dict:
    """Stop sales on a slot. Confirmed bookings are suspended and unpaid holds cancelled."""
    now = now or utcnow()
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("Reason is required", details={"field": "reason"})
    cause = CancellationCause(cause)
    if cause == CancellationCause.CUSTOMER:
        raise ValidationError("A slot cannot be closed for a customer cause", details={"field": "cause"})

    slot = db.execute(select(Slot).where(Slot.id == slot_id).with_for_update()).scalar_one_or_none()
    if not slot:
        raise NotFoundError("Slot not found", details={"slotId": slot_id})
    before = slot.status.value
    slot.status = SlotStatus.CLOSED
    slot.suspended_reason = reason
    log_audit(
        db, "Slot Closed", "slot", "slots", slot.id, actor=actor,
        message=f"Slot {slot.slot_date} {slot.slot_time} closed ({cause.value}): {reason}",
        old_values={"status": before}, new_values={"status": "closed", "reason": reason},
    )
    db.commit()

    affected = db.execute(
        select(Reservation.id, Reservation.status).where(
            Reservation.slot_id == slot_id,
            Reservation.status.in_((ReservationStatus.PENDING, ReservationStatus.CONFIRMED)),
        )
    ).all()

    suspended, cancelled, skipped = [], [], []
    for rid, status in affected:
        try:
            if status == ReservationStatus.CONFIRMED:
                suspend_reservation(db, rid, reason=reason, actor=actor, cause=cause, now=now)
                suspended.append(rid)
            else:
                cancel_reservation(db, rid, cause=cause, reason=reason, actor=actor, now=now)
                cancelled.append(rid)
        except InvalidTransitionError:
            # changed state since the scan
            skipped.append(rid)

    if skipped:
        log_audit(
            db, "Slot Close Incomplete", "slot", "slots", slot_id, actor=actor,
            status=AuditStatus.WARNING,
            message=f"{len(skipped)} reservations changed state while the slot was closing",
            new_values={"skipped": skipped},
        )
        db.commit()
    logger.info(
        "Slot %s closed: %s suspended, %s cancelled, %s skipped",
        slot_id, len(suspended), len(cancelled), len(skipped),
    )
    return {"slotId": slot_id, "suspended": suspended, "cancelled": cancelled, "skipped": skipped}
