"""
Reservation state machine.

Every lifecycle change goes through this module. Seat counts on ``slots`` are
only touched with conditional UPDATEs so two concurrent bookings can never
both take the last seats, and status changes are compare-and-set on the
current status so webhook retries and overlapping jobs stay idempotent.
"""

import logging
import secrets
import string
import uuid
from datetime import date, datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from skytour.core.config import settings
from skytour.core.exceptions import (
    CapacityExceededError,
    InvalidTransitionError,
    NotFoundError,
    OperatingHoursClosedError,
    ValidationError,
)
from skytour.core.security import make_mypage_token
from skytour.core.timeutil import as_aware, flight_datetime, utcnow
from skytour.models.course import Course
from skytour.models.customer import Customer
from skytour.models.enums import (
    AuditStatus,
    CancellationCause,
    PaymentStatus,
    ReservationStatus,
    SlotStatus,
    TERMINAL_STATUSES,
)
from skytour.models.payment import Payment
from skytour.models.reservation import Reservation
from skytour.models.slot import Slot
from skytour.services.audit_service import log_audit
from skytour.services.availability_service import booked_pax_by_slot
from skytour.services.cancellation_policy import CancellationPolicy, CancellationQuote
from skytour.services.settings_service import OperatingHours

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    ReservationStatus.PENDING: {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED},
    ReservationStatus.CONFIRMED: {
        ReservationStatus.CANCELLED,
        ReservationStatus.SUSPENDED,
        ReservationStatus.COMPLETED,
    },
}

_BOOKING_ALPHABET = string.ascii_uppercase + string.digits


def default_policy() -> CancellationPolicy:
    return CancellationPolicy.from_config(settings.CANCELLATION_TIERS)


def make_booking_number() -> str:
    return f"{settings.BOOKING_NUMBER_PREFIX}-" + "".join(secrets.choice(_BOOKING_ALPHABET) for _ in range(6))


def _snapshot(r: Reservation) -> dict:
    return {
        "status": r.status.value,
        "paymentStatus": r.payment_status.value,
        "pax": r.pax,
        "slotId": r.slot_id,
    }


# ----------------------------------------------------------------------------
# seat accounting
# ----------------------------------------------------------------------------

def _claim_seats(db: Session, slot_id: str, pax: int) -> bool:
    result = db.execute(
        update(Slot)
        .where(
            Slot.id == slot_id,
            Slot.status != SlotStatus.CLOSED,
            Slot.current_pax + pax <= Slot.max_pax,
        )
        .values(current_pax=Slot.current_pax + pax)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return False
    db.execute(
        update(Slot)
        .where(Slot.id == slot_id, Slot.status == SlotStatus.OPEN, Slot.current_pax >= Slot.max_pax)
        .values(status=SlotStatus.FULL)
        .execution_options(synchronize_session=False)
    )
    return True


def _release_seats(db: Session, slot_id: str, pax: int) -> None:
    result = db.execute(
        update(Slot)
        .where(Slot.id == slot_id, Slot.current_pax >= pax)
        .values(current_pax=Slot.current_pax - pax)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        # Counter drifted below what this reservation held; rebuild it from reservations
        db.flush()
        actual = booked_pax_by_slot(db, [slot_id]).get(slot_id, 0)
        logger.error("Seat counter drift on slot %s while releasing %s pax; resetting to %s", slot_id, pax, actual)
        db.execute(
            update(Slot)
            .where(Slot.id == slot_id)
            .values(current_pax=actual)
            .execution_options(synchronize_session=False)
        )
    db.execute(
        update(Slot)
        .where(Slot.id == slot_id, Slot.status == SlotStatus.FULL, Slot.current_pax < Slot.max_pax)
        .values(status=SlotStatus.OPEN)
        .execution_options(synchronize_session=False)
    )


def recount_slot(db: Session, slot_id: str, actor: str = "system") -> Slot:
    """Rebuild ``current_pax`` from reservation aggregates."""
    slot = db.execute(select(Slot).where(Slot.id == slot_id).with_for_update()).scalar_one_or_none()
    if not slot:
        raise NotFoundError("Slot not found", details={"slotId": slot_id})
    before = slot.current_pax
    actual = min(booked_pax_by_slot(db, [slot_id]).get(slot_id, 0), slot.max_pax)
    slot.current_pax = actual
    if slot.status != SlotStatus.CLOSED:
        slot.status = SlotStatus.FULL if actual >= slot.max_pax else SlotStatus.OPEN
    if before != actual:
        logger.warning("Slot %s current_pax corrected from %s to %s", slot_id, before, actual)
    log_audit(
        db, "Slot Recounted", "slot", "slots", slot_id, actor=actor,
        status=AuditStatus.SUCCESS if before == actual else AuditStatus.WARNING,
        message=f"current_pax {before} -> {actual}",
        old_values={"currentPax": before}, new_values={"currentPax": actual},
    )
    db.commit()
    db.refresh(slot)
    return slot


# ----------------------------------------------------------------------------
# helpers
# ----------------------------------------------------------------------------

def _lock_reservation(db: Session, reservation_id: str) -> Reservation:
    r = db.execute(
        select(Reservation).where(Reservation.id == reservation_id).with_for_update()
    ).scalar_one_or_none()
    if not r:
        raise NotFoundError("Reservation not found", details={"reservationId": reservation_id})
    return r


def _ensure_transition(db: Session, r: Reservation, target: ReservationStatus) -> None:
    if target not in ALLOWED_TRANSITIONS.get(r.status, set()):
        current = r.status.value
        db.rollback()
        raise InvalidTransitionError(r.id, current, target.value)


def _compare_and_set(db: Session, r: Reservation, expected: ReservationStatus, **values) -> bool:
    result = db.execute(
        update(Reservation)
        .where(Reservation.id == r.id, Reservation.status == expected)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    db.expire(r)
    return result.rowcount == 1


def _lost_race(db: Session, r: Reservation, target: ReservationStatus) -> InvalidTransitionError:
    db.rollback()
    fresh = db.get(Reservation, r.id)
    return InvalidTransitionError(r.id, fresh.status.value if fresh else "unknown", target.value)


def get_or_create_customer(db: Session, email: str, name: str = "", phone: str = "", lang: str = "ja", now: datetime | None = None) -> Customer:
    now = now or utcnow()
    email = email.strip().lower()
    c = db.query(Customer).filter(Customer.email == email).first()
    if not c:
        c = Customer(id=str(uuid.uuid4()), email=email, name=name or "", phone=phone or "", preferred_lang=lang or "ja")
        db.add(c)
    expires = as_aware(c.mypage_token_expires_at)
    if not c.mypage_token or not expires or expires <= now:
        c.mypage_token = make_mypage_token()
        c.mypage_token_expires_at = now + timedelta(days=settings.MYPAGE_TOKEN_DAYS)
    return c


# ----------------------------------------------------------------------------
# (none) -> pending
# ----------------------------------------------------------------------------

def create_reservation(
    db: Session,
    *,
    course_id: str,
    slot_id: str,
    pax: int,
    customer_email: str,
    customer_name: str = "",
    customer_phone: str = "",
    preferred_lang: str = "ja",
    customer_notes: str | None = None,
    hours: OperatingHours,
    now: datetime | None = None,
) -> Reservation:
    now = now or utcnow()

    if pax < 1:
        raise ValidationError("pax must be >= 1", details={"constraint": "invalid_pax", "pax": pax})

    course = db.get(Course, course_id)
    if not course:
        raise NotFoundError("Course not found", details={"courseId": course_id})
    if not course.is_active:
        raise ValidationError("Course is not available", details={"constraint": "course_inactive", "courseId": course_id})
    if pax > course.max_pax:
        raise ValidationError(
            f"pax must be <= {course.max_pax} for this course",
            details={"constraint": "invalid_pax", "pax": pax, "maxPax": course.max_pax},
        )

    slot = db.get(Slot, slot_id)
    if not slot or slot.course_id != course.id:
        raise NotFoundError("Slot not found", details={"slotId": slot_id})

    reason = hours.closed_reason(slot.slot_time)
    if reason:
        raise OperatingHoursClosedError("Slot is outside operating hours", reason=reason, slotId=slot.id, slotTime=slot.slot_time)
    if slot.status == SlotStatus.CLOSED:
        raise OperatingHoursClosedError("Slot is not available", reason="slot_closed", slotId=slot.id)
    if flight_datetime(slot.slot_date, slot.slot_time) <= now:
        raise ValidationError("Slot has already departed", details={"constraint": "departed", "slotId": slot.id})

    if not _claim_seats(db, slot.id, pax):
        db.rollback()
        slot = db.get(Slot, slot_id)
        if slot is not None and slot.status == SlotStatus.CLOSED:
            raise OperatingHoursClosedError("Slot is not available", reason="slot_closed", slotId=slot_id)
        available = slot.available_pax if slot else 0
        logger.info("Booking rejected for slot %s: requested %s, available %s", slot_id, pax, available)
        raise CapacityExceededError(slot_id, pax, available)

    customer = get_or_create_customer(db, customer_email, customer_name, customer_phone, preferred_lang, now)

    subtotal = int(course.price) * pax
    tax = subtotal * settings.TAX_RATE_PERCENT // 100

    # booking_number must be unique
    for _ in range(10):
        number = make_booking_number()
        exists = db.query(Reservation.id).filter(Reservation.booking_number == number).first()
        if not exists:
            break
    else:
        db.rollback()
        raise RuntimeError("could not allocate booking number")

    r = Reservation(
        id=str(uuid.uuid4()),
        booking_number=number,
        customer_id=customer.id,
        course_id=course.id,
        slot_id=slot.id,
        reservation_date=slot.slot_date,
        reservation_time=slot.slot_time,
        pax=pax,
        subtotal=subtotal,
        tax=tax,
        total_price=subtotal + tax,
        status=ReservationStatus.PENDING,
        payment_status=PaymentStatus.UNPAID,
        hold_expires_at=now + timedelta(minutes=settings.HOLD_MINUTES),
        booked_at=now,
        customer_notes=customer_notes,
    )
    db.add(r)
    log_audit(
        db, "Booking Created", "reservation", "reservations", r.id,
        actor=customer.email,
        message=f"Reservation {number} created for {pax} pax on {slot.slot_date} {slot.slot_time}",
        new_values={**_snapshot(r), "bookingNumber": number, "totalPrice": r.total_price},
    )
    db.commit()
    db.refresh(r)
    logger.info("Reservation %s created (slot %s, pax %s)", r.booking_number, slot.id, pax)
    return r


# ----------------------------------------------------------------------------
# payment callbacks
# ----------------------------------------------------------------------------

def confirm_payment(
    db: Session,
    reservation_id: str,
    payment_ref: str | None = None,
    amount: int | None = None,
    now: datetime | None = None,
) -> tuple[Reservation, bool]:
    """pending -> confirmed. Returns ``(reservation, changed)``; redeliveries are no-ops."""
    now = now or utcnow()
    r = _lock_reservation(db, reservation_id)

    if r.status == ReservationStatus.PENDING and _compare_and_set(
        db, r, ReservationStatus.PENDING,
        status=ReservationStatus.CONFIRMED,
        payment_status=PaymentStatus.PAID,
        payment_ref=payment_ref,
        confirmed_at=now,
        hold_expires_at=None,
    ):
        db.add(Payment(
            id=str(uuid.uuid4()),
            reservation_id=r.id,
            kind="charge",
            amount=int(amount if amount is not None else r.total_price),
            status="succeeded",
            provider_ref=payment_ref or "",
        ))
        log_audit(
            db, "Payment Confirmed", "payment", "reservations", r.id, actor="payment_gateway",
            message=f"Reservation {r.booking_number} confirmed after payment",
            old_values={"status": "pending", "paymentStatus": "unpaid"},
            new_values={"status": "confirmed", "paymentStatus": "paid", "paymentRef": payment_ref},
        )
        db.commit()
        db.refresh(r)
        logger.info("Reservation %s confirmed after payment", r.booking_number)
        return r, True

    db.rollback()
    r = db.get(Reservation, reservation_id)
    if r.status in (ReservationStatus.CONFIRMED, ReservationStatus.COMPLETED) and r.payment_status == PaymentStatus.PAID:
        logger.info("Duplicate payment callback for %s ignored", r.booking_number)
        log_audit(
            db, "Duplicate Payment Callback", "payment", "reservations", r.id, actor="payment_gateway",
            status=AuditStatus.INFO, message="Reservation already confirmed; callback ignored",
            new_values={"paymentRef": payment_ref},
        )
        db.commit()
        return r, False

    logger.warning(
        "Payment callback for reservation %s rejected: status is %s", r.booking_number, r.status.value
    )
    current = r.status.value
    before = _snapshot(r)
    collected = _record_late_charge(db, r, payment_ref, amount)
    log_audit(
        db, "Late Payment Callback", "payment", "reservations", r.id, actor="payment_gateway",
        status=AuditStatus.WARNING,
        message=(
            f"Payment succeeded for a reservation in status {current}; "
            + (f"{collected} queued for refund" if collected is not None else "manual review required")
        ),
        old_values=before, new_values={"paymentRef": payment_ref, "amount": amount, "refundDue": collected},
    )
    db.commit()
    raise InvalidTransitionError(r.id, current, ReservationStatus.CONFIRMED.value)


def _record_late_charge(db: Session, r: Reservation, payment_ref: str | None, amount: int | None) -> int | None:
    """Book money collected for a reservation that had already ended so it shows up as a refund candidate.

    Returns the amount queued for refund, or ``None`` when the reservation already carries a payment.
    """
    if r.status not in TERMINAL_STATUSES or r.payment_status in (PaymentStatus.PAID, PaymentStatus.REFUNDED):
        return None
    collected = int(amount if amount is not None else r.total_price)
    result = db.execute(
        update(Reservation)
        .where(
            Reservation.id == r.id,
            Reservation.status == r.status,
            Reservation.payment_status == r.payment_status,
        )
        .values(
            payment_status=PaymentStatus.PAID,
            payment_ref=payment_ref,
            cancellation_fee=0,
            refund_due=collected,
        )
        .execution_options(synchronize_session=False)
    )
    db.expire(r)
    if result.rowcount != 1:
        # a concurrent redelivery got here first
        return None
    db.add(Payment(
        id=str(uuid.uuid4()),
        reservation_id=r.id,
        kind="charge",
        amount=collected,
        status="succeeded",
        provider_ref=payment_ref or "",
    ))
    return collected


def fail_payment(db: Session, reservation_id: str, now: datetime | None = None) -> tuple[Reservation, bool]:
    """pending -> cancelled with payment_status failed; seats are released."""
    now = now or utcnow()
    r = _lock_reservation(db, reservation_id)
    if r.status == ReservationStatus.CANCELLED:
        db.rollback()
        return r, False
    _ensure_transition(db, r, ReservationStatus.CANCELLED)
    if r.status != ReservationStatus.PENDING:
        # A failed charge never undoes a confirmed booking
        current = r.status.value
        db.rollback()
        logger.warning("Payment failure for %s ignored: status is %s", reservation_id, current)
        raise InvalidTransitionError(reservation_id, current, ReservationStatus.CANCELLED.value)

    slot_id, pax = r.slot_id, r.pax
    if not _compare_and_set(
        db, r, ReservationStatus.PENDING,
        status=ReservationStatus.CANCELLED,
        payment_status=PaymentStatus.FAILED,
        cancelled_at=now,
        cancelled_by="payment_gateway",
        cancellation_cause=CancellationCause.CUSTOMER,
        cancellation_reason="payment_failed",
        hold_expires_at=None,
    ):
        raise _lost_race(db, r, ReservationStatus.CANCELLED)
    _release_seats(db, slot_id, pax)
    log_audit(
        db, "Payment Failed", "payment", "reservations", r.id, actor="payment_gateway",
        status=AuditStatus.FAILURE, message="Payment failed; reservation cancelled and seats released",
        old_values={"status": "pending"}, new_values={"status": "cancelled", "paymentStatus": "failed"},
    )
    db.commit()
    db.refresh(r)
    return r, True


# ----------------------------------------------------------------------------
# cancellation / suspension / completion
# ----------------------------------------------------------------------------

def quote_cancellation(
    db: Session,
    reservation_id: str,
    now: datetime | None = None,
    cause: CancellationCause = CancellationCause.CUSTOMER,
    policy: CancellationPolicy | None = None,
) -> CancellationQuote:
    now = now or utcnow()
    r = get_reservation(db, reservation_id)
    if ReservationStatus.CANCELLED not in ALLOWED_TRANSITIONS.get(r.status, set()):
        raise InvalidTransitionError(r.id, r.status.value, ReservationStatus.CANCELLED.value)
    policy = policy or default_policy()
    return policy.quote(r.total_price, flight_datetime(r.reservation_date, r.reservation_time), now, cause)


def cancel_reservation(
    db: Session,
    reservation_id: str,
    *,
    cause: CancellationCause = CancellationCause.CUSTOMER,
    reason: str = "",
    actor: str = "customer",
    now: datetime | None = None,
    policy: CancellationPolicy | None = None,
    require_reason: bool = False,
) -> tuple[Reservation, CancellationQuote | None]:
    """pending|confirmed -> cancelled. Records the refund owed; never calls the gateway."""
    now = now or utcnow()
    cause = CancellationCause(cause)
    reason = (reason or "").strip()
    if require_reason and not reason:
        raise ValidationError("Cancellation reason is required", details={"field": "reason"})

    r = _lock_reservation(db, reservation_id)
    _ensure_transition(db, r, ReservationStatus.CANCELLED)

    expected = r.status
    quote = None
    fee = refund_due = 0
    if expected == ReservationStatus.CONFIRMED:
        quote = (policy or default_policy()).quote(
            r.total_price, flight_datetime(r.reservation_date, r.reservation_time), now, cause
        )
        fee, refund_due = quote.cancellation_fee, quote.refund_amount

    slot_id, pax, before = r.slot_id, r.pax, _snapshot(r)
    if not _compare_and_set(
        db, r, expected,
        status=ReservationStatus.CANCELLED,
        cancelled_at=now,
        cancelled_by=actor,
        cancellation_cause=cause,
        cancellation_reason=reason or None,
        cancellation_fee=fee,
        refund_due=refund_due,
        hold_expires_at=None,
    ):
        raise _lost_race(db, r, ReservationStatus.CANCELLED)
    _release_seats(db, slot_id, pax)
    log_audit(
        db, "Reservation Cancelled", "reservation", "reservations", r.id, actor=actor,
        message=f"Cancelled ({cause.value}): fee {fee}, refund due {refund_due}" + (f". Reason: {reason}" if reason else ""),
        old_values=before,
        new_values={
            "status": "cancelled",
            "cause": cause.value,
            "reason": reason,
            "cancellationFee": fee,
            "refundDue": refund_due,
            "feePercentage": quote.fee_percentage if quote else 0,
            "daysBeforeFlight": quote.days_before_flight if quote else None,
        },
    )
    db.commit()
    db.refresh(r)
    logger.info("Reservation %s cancelled by %s (fee %s, refund due %s)", r.booking_number, actor, fee, refund_due)
    return r, quote


def suspend_reservation(
    db: Session,
    reservation_id: str,
    *,
    reason: str,
    actor: str,
    cause: CancellationCause = CancellationCause.WEATHER,
    now: datetime | None = None,
) -> Reservation:
    """confirmed -> suspended. Operator stoppage: the full price is owed back."""
    now = now or utcnow()
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("Suspension reason is required", details={"field": "reason"})
    cause = CancellationCause(cause)
    if cause == CancellationCause.CUSTOMER:
        raise ValidationError("Suspension cannot be customer-caused", details={"field": "cause"})

    r = _lock_reservation(db, reservation_id)
    _ensure_transition(db, r, ReservationStatus.SUSPENDED)
    slot_id, pax, before = r.slot_id, r.pax, _snapshot(r)
    refund_due = r.total_price
    if not _compare_and_set(
        db, r, ReservationStatus.CONFIRMED,
        status=ReservationStatus.SUSPENDED,
        suspended_at=now,
        suspended_reason=reason,
        cancellation_cause=cause,
        cancellation_fee=0,
        refund_due=refund_due,
    ):
        raise _lost_race(db, r, ReservationStatus.SUSPENDED)
    _release_seats(db, slot_id, pax)
    log_audit(
        db, "Reservation Suspended", "reservation", "reservations", r.id, actor=actor,
        message=f"Suspended ({cause.value}): {reason}",
        old_values=before,
        new_values={"status": "suspended", "cause": cause.value, "reason": reason, "refundDue": refund_due},
    )
    db.commit()
    db.refresh(r)
    return r


def complete_reservation(
    db: Session,
    reservation_id: str,
    now: datetime | None = None,
    actor: str = "system",
) -> Reservation:
    """confirmed -> completed. No seat or payment effect."""
    now = now or utcnow()
    r = _lock_reservation(db, reservation_id)
    _ensure_transition(db, r, ReservationStatus.COMPLETED)
    if not _compare_and_set(db, r, ReservationStatus.CONFIRMED, status=ReservationStatus.COMPLETED, completed_at=now):
        raise _lost_race(db, r, ReservationStatus.COMPLETED)
    log_audit(
        db, "Reservation Completed", "reservation", "reservations", r.id, actor=actor,
        old_values={"status": "confirmed"}, new_values={"status": "completed"},
    )
    db.commit()
    db.refresh(r)
    return r


def record_refund(
    db: Session,
    reservation_id: str,
    amount: int,
    actor: str,
    now: datetime | None = None,
    provider_ref: str = "",
) -> Reservation:
    """payment_status paid -> refunded once the gateway confirmed the refund."""
    now = now or utcnow()
    r = _lock_reservation(db, reservation_id)
    if r.payment_status != PaymentStatus.PAID:
        current = r.payment_status.value
        db.rollback()
        raise InvalidTransitionError(reservation_id, current, PaymentStatus.REFUNDED.value)
    if r.status not in (ReservationStatus.CANCELLED, ReservationStatus.SUSPENDED):
        current = r.status.value
        db.rollback()
        raise InvalidTransitionError(reservation_id, current, PaymentStatus.REFUNDED.value)
    if amount <= 0 or amount > r.total_price:
        total = r.total_price
        db.rollback()
        raise ValidationError(
            f"Refund amount must be between 1 and {total}",
            details={"field": "amount", "amount": amount, "totalPrice": total},
        )

    result = db.execute(
        update(Reservation)
        .where(Reservation.id == r.id, Reservation.payment_status == PaymentStatus.PAID)
        .values(
            payment_status=PaymentStatus.REFUNDED,
            refunded_at=now,
            refunded_by=actor,
            refunded_amount=amount,
        )
        .execution_options(synchronize_session=False)
    )
    db.expire(r)
    if result.rowcount != 1:
        db.rollback()
        raise InvalidTransitionError(reservation_id, "refunded", PaymentStatus.REFUNDED.value)
    db.add(Payment(
        id=str(uuid.uuid4()),
        reservation_id=r.id,
        kind="refund",
        amount=amount,
        status="succeeded",
        provider_ref=provider_ref,
    ))
    log_audit(
        db, "Refund Processed", "refund", "reservations", r.id, actor=actor,
        message=f"Refund of {amount} yen recorded for {r.booking_number}",
        old_values={"paymentStatus": "paid"},
        new_values={"paymentStatus": "refunded", "refundedAmount": amount, "providerRef": provider_ref},
    )
    db.commit()
    db.refresh(r)
    return r


# ----------------------------------------------------------------------------
# sweeps
# ----------------------------------------------------------------------------

def expire_pending_holds(db: Session, now: datetime | None = None) -> int:
    """Cancel pending reservations whose payment hold ran out and free their seats."""
    now = now or utcnow()
    ids = [
        rid for (rid,) in db.execute(
            select(Reservation.id).where(
                Reservation.status == ReservationStatus.PENDING,
                Reservation.hold_expires_at.is_not(None),
                Reservation.hold_expires_at < now,
            )
        ).all()
    ]
    expired = 0
    for rid in ids:
        try:
            cancel_reservation(db, rid, cause=CancellationCause.CUSTOMER, reason="hold_expired", actor="system", now=now)
            expired += 1
        except InvalidTransitionError:
            # confirmed by a payment callback in the meantime
            continue
    return expired


def sweep_stale_confirmed(db: Session, today: date, older_than_days: int) -> int:
    """Complete confirmed reservations whose flight is older than the thank-you window."""
    cutoff = today - timedelta(days=older_than_days)
    ids = [
        rid for (rid,) in db.execute(
            select(Reservation.id).where(
                Reservation.status == ReservationStatus.CONFIRMED,
                Reservation.reservation_date < cutoff,
            )
        ).all()
    ]
    done = 0
    for rid in ids:
        try:
            complete_reservation(db, rid, actor="sweep")
            done += 1
        except InvalidTransitionError:
            continue
    if done:
        logger.info("Completed %s stale confirmed reservations older than %s", done, cutoff)
    return done


# ----------------------------------------------------------------------------
# lookups
# ----------------------------------------------------------------------------

def get_reservation(db: Session, reservation_id: str) -> Reservation:
    r = db.get(Reservation, reservation_id)
    if not r:
        raise NotFoundError("Reservation not found", details={"reservationId": reservation_id})
    return r


def get_by_booking_number(db: Session, booking_number: str) -> Reservation:
    r = db.query(Reservation).filter(Reservation.booking_number == booking_number.strip().upper()).first()
    if not r:
        raise NotFoundError("Reservation not found", details={"bookingNumber": booking_number})
    return r


def customer_for_token(db: Session, token: str, now: datetime | None = None) -> Customer:
    now = now or utcnow()
    c = db.query(Customer).filter(Customer.mypage_token == token).first() if token else None
    expires = as_aware(c.mypage_token_expires_at) if c else None
    if not c or not expires or expires <= now:
        raise NotFoundError("Invalid or expired token")
    return c


def list_for_customer_token(db: Session, token: str, now: datetime | None = None) -> tuple[Customer, list[Reservation]]:
    c = customer_for_token(db, token, now)
    items = (
        db.query(Reservation)
        .filter(Reservation.customer_id == c.id)
        .order_by(Reservation.reservation_date.desc(), Reservation.reservation_time.desc())
        .all()
    )
    return c, items
