import json
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from skytour.api.deps import Operator, get_payment_gateway, require_roles
from skytour.core.exceptions import DomainError
from skytour.db.session import get_db
from skytour.models.enums import CancellationCause
from skytour.models.reservation import Reservation
from skytour.schemas.admin import (
    AdminCancelIn,
    AuditLogOut,
    OperatingHoursIn,
    OperatingHoursOut,
    RefundCandidateOut,
    RefundIn,
    SuspendIn,
)
from skytour.schemas.reservation import CancelOut, CancellationQuoteOut, ReservationOut
from skytour.schemas.slot import SlotCloseIn, SlotGenerateIn
from skytour.services import reservation_service, slot_service
from skytour.services.audit_service import list_audit_logs
from skytour.services.payment_gateway import PaymentGatewayClient
from skytour.services.refund_service import issue_refund, list_refund_candidates
from skytour.services.settings_service import load_operating_hours, save_operating_hours

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

WRITE_ROLES = ("admin", "staff")
READ_ROLES = ("admin", "staff", "viewer")


def _cause(raw: str) -> CancellationCause:
    try:
        return CancellationCause(raw)
    except ValueError:
        allowed = ", ".join(c.value for c in CancellationCause)
        raise HTTPException(status_code=400, detail=f"cause must be one of: {allowed}")


def _candidate_out(r: Reservation) -> RefundCandidateOut:
    return RefundCandidateOut(
        id=r.id,
        bookingNumber=r.booking_number,
        status=r.status.value,
        paymentStatus=r.payment_status.value,
        totalPrice=r.total_price,
        cancellationFee=r.cancellation_fee or 0,
        refundDue=r.refund_due or 0,
        cancellationCause=r.cancellation_cause.value if r.cancellation_cause else None,
        reason=r.cancellation_reason or r.suspended_reason,
        cancelledAt=r.cancelled_at.isoformat() if r.cancelled_at else None,
        suspendedAt=r.suspended_at.isoformat() if r.suspended_at else None,
        date=r.reservation_date.isoformat(),
        time=r.reservation_time,
    )


# -------------------------
# RESERVATIONS
# -------------------------
@router.get("/reservations/{reservation_id}", response_model=ReservationOut)
def admin_get_reservation(reservation_id: str, db: Session = Depends(get_db),
                          me: Operator = Depends(require_roles(*READ_ROLES))):
    try:
        return ReservationOut.from_model(reservation_service.get_reservation(db, reservation_id))
    except DomainError as e:
        raise e.to_http_exception()


@router.post("/reservations/{reservation_id}/cancel", response_model=CancelOut)
def admin_cancel(reservation_id: str, body: AdminCancelIn, db: Session = Depends(get_db),
                 me: Operator = Depends(require_roles(*WRITE_ROLES))):
    cause = _cause(body.cause)
    try:
        r, quote = reservation_service.cancel_reservation(
            db, reservation_id, cause=cause, reason=body.reason, actor=me.name, require_reason=True,
        )
    except DomainError as e:
        raise e.to_http_exception()
    return CancelOut(
        reservation=ReservationOut.from_model(r),
        quote=CancellationQuoteOut.from_quote(quote) if quote else None,
    )


@router.post("/reservations/{reservation_id}/suspend", response_model=ReservationOut)
def admin_suspend(reservation_id: str, body: SuspendIn, db: Session = Depends(get_db),
                  me: Operator = Depends(require_roles(*WRITE_ROLES))):
    cause = _cause(body.cause)
    try:
        r = reservation_service.suspend_reservation(db, reservation_id, reason=body.reason, actor=me.name, cause=cause)
    except DomainError as e:
        raise e.to_http_exception()
    return ReservationOut.from_model(r)


@router.post("/reservations/{reservation_id}/refund", response_model=ReservationOut)
def admin_refund(reservation_id: str, body: RefundIn, db: Session = Depends(get_db),
                 gateway: PaymentGatewayClient = Depends(get_payment_gateway),
                 me: Operator = Depends(require_roles("admin"))):
    try:
        r = issue_refund(db, gateway, reservation_id, actor=me.name, amount=body.amount, reason=body.reason)
    except DomainError as e:
        raise e.to_http_exception()
    return ReservationOut.from_model(r)


@router.get("/refunds/candidates")
def admin_refund_candidates(limit: int = 20, offset: int = 0, db: Session = Depends(get_db),
                            me: Operator = Depends(require_roles(*READ_ROLES))):
    limit = max(1, min(limit, 100))
    items, total = list_refund_candidates(db, limit=limit, offset=max(offset, 0))
    return {"items": [_candidate_out(r) for r in items], "total": total, "limit": limit, "offset": offset}


# -------------------------
# AUDIT
# -------------------------
@router.get("/audit-logs")
def admin_audit_logs(logType: str | None = None, targetId: str | None = None, status: str | None = None,
                     limit: int = 50, offset: int = 0, db: Session = Depends(get_db),
                     me: Operator = Depends(require_roles(*READ_ROLES))):
    limit = max(1, min(limit, 200))
    try:
        items, total = list_audit_logs(db, log_type=logType, target_id=targetId, status=status,
                                       limit=limit, offset=max(offset, 0))
    except ValueError:
        raise HTTPException(status_code=400, detail="invalid status")
    return {
        "items": [
            AuditLogOut(
                id=a.id,
                logType=a.log_type,
                status=a.status.value,
                action=a.action,
                message=a.message or "",
                targetTable=a.target_table,
                targetId=a.target_id,
                actor=a.actor,
                oldValues=json.loads(a.old_values_json or "{}"),
                newValues=json.loads(a.new_values_json or "{}"),
                createdAt=a.created_at.isoformat() if a.created_at else None,
            )
            for a in items
        ],
        "total": total,
    }


# -------------------------
# SETTINGS
# -------------------------
@router.get("/settings/operating-hours", response_model=OperatingHoursOut)
def admin_get_operating_hours(db: Session = Depends(get_db), me: Operator = Depends(require_roles(*READ_ROLES))):
    hours = load_operating_hours(db)
    return OperatingHoursOut(activeHours=sorted(hours.active_hours), holidayMode=hours.holiday_mode,
                             isDefault=hours.is_default)


@router.put("/settings/operating-hours", response_model=OperatingHoursOut)
def admin_update_operating_hours(body: OperatingHoursIn, db: Session = Depends(get_db),
                                 me: Operator = Depends(require_roles("admin"))):
    if body.activeHours is None and body.holidayMode is None:
        raise HTTPException(status_code=400, detail="activeHours or holidayMode required")
    try:
        hours = save_operating_hours(db, actor=me.name, active_hours=body.activeHours, holiday_mode=body.holidayMode)
    except DomainError as e:
        raise e.to_http_exception()
    return OperatingHoursOut(activeHours=sorted(hours.active_hours), holidayMode=hours.holiday_mode,
                             isDefault=hours.is_default)


# -------------------------
# SLOTS
# -------------------------
@router.post("/slots/generate")
def admin_generate_slots(body: SlotGenerateIn, db: Session = Depends(get_db),
                         me: Operator = Depends(require_roles(*WRITE_ROLES))):
    try:
        created = slot_service.generate_slots(db, body.courseId, body.startDate, body.days, actor=me.name,
                                              times=body.times)
    except DomainError as e:
        raise e.to_http_exception()
    return {"ok": True, "created": created}


@router.post("/slots/{slot_id}/close")
def admin_close_slot(slot_id: str, body: SlotCloseIn, db: Session = Depends(get_db),
                     me: Operator = Depends(require_roles(*WRITE_ROLES))):
    cause = _cause(body.cause)
    try:
        return slot_service.close_slot(db, slot_id, reason=body.reason, actor=me.name, cause=cause)
    except DomainError as e:
        raise e.to_http_exception()


@router.post("/slots/{slot_id}/recount")
def admin_recount_slot(slot_id: str, db: Session = Depends(get_db),
                       me: Operator = Depends(require_roles("admin"))):
    try:
        slot = reservation_service.recount_slot(db, slot_id, actor=me.name)
    except DomainError as e:
        raise e.to_http_exception()
    return {"slotId": slot.id, "currentPax": slot.current_pax, "maxPax": slot.max_pax, "status": slot.status.value}
