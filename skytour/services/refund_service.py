import logging
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

from skytour.core.exceptions import ExternalServiceError, ValidationError
from skytour.core.timeutil import utcnow
from skytour.models.enums import AuditStatus, PaymentStatus, ReservationStatus
from skytour.models.reservation import Reservation
from skytour.services.audit_service import log_audit
from skytour.services.payment_gateway import PaymentGatewayClient
from skytour.services.reservation_service import get_reservation, record_refund

logger = logging.getLogger(__name__)

REFUND_CANDIDATE_STATUSES = (ReservationStatus.CANCELLED, ReservationStatus.SUSPENDED)


def list_refund_candidates(db: Session, limit: int = 20, offset: int = 0) -> tuple[list[Reservation], int]:
    """Cancelled or suspended reservations whose payment was collected and not yet returned."""
    q = db.query(Reservation).filter(
        Reservation.status.in_(REFUND_CANDIDATE_STATUSES),
        Reservation.payment_status == PaymentStatus.PAID,
    )
    total = q.count()
    items = (
        q.order_by(
            func.coalesce(Reservation.cancelled_at, Reservation.suspended_at, Reservation.booked_at).asc(),
            Reservation.id.asc(),
        )
        .offset(offset)
        .limit(limit)
        .all()
    )
    return items, total


def issue_refund(
    db: Session,
    gateway: PaymentGatewayClient,
    reservation_id: str,
    actor: str,
    amount: int | None = None,
    reason: str = "",
    now: datetime | None = None,
) -> Reservation:
    """Call the gateway's refund command, then record the refund on success."""
    now = now or utcnow()
    r = get_reservation(db, reservation_id)
    if r.payment_status != PaymentStatus.PAID or r.status not in REFUND_CANDIDATE_STATUSES:
        raise ValidationError(
            "Reservation is not awaiting a refund",
            details={"status": r.status.value, "paymentStatus": r.payment_status.value},
        )
    amount = int(amount if amount is not None else r.refund_due)
    if amount <= 0 or amount > r.total_price:
        raise ValidationError(
            f"Refund amount must be between 1 and {r.total_price}",
            details={"field": "amount", "amount": amount, "refundDue": r.refund_due},
        )

    try:
        result = gateway.refund(reservation_id=r.id, amount=amount, reason=reason)
    except ExternalServiceError as e:
        logger.error("Refund of %s for %s failed: %s", amount, r.booking_number, e.message)
        log_audit(
            db, "Refund Failed", "refund", "reservations", r.id, actor=actor,
            status=AuditStatus.FAILURE, message=e.message,
            new_values={"amount": amount, "retryable": e.retryable},
        )
        db.commit()
        raise

    return record_refund(db, r.id, amount, actor=actor, now=now, provider_ref=result.refund_id)
