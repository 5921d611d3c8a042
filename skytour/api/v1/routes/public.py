import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from skytour.api.deps import get_operating_hours
from skytour.core.exceptions import DomainError
from skytour.db.session import get_db
from skytour.models.customer import Customer
from skytour.models.enums import CancellationCause
from skytour.schemas.admin import OperatingHoursOut
from skytour.schemas.reservation import (
    CancelIn,
    CancelOut,
    CancellationQuoteOut,
    CreatedReservationOut,
    MypageOut,
    ReservationCreate,
    ReservationOut,
)
from skytour.schemas.slot import SlotOut
from skytour.services import reservation_service
from skytour.services.availability_service import list_available_slots
from skytour.services.settings_service import OperatingHours

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/public", tags=["public"])


@router.get("/slots/available", response_model=list[SlotOut])
def available_slots(
    date: date,
    courseId: str | None = None,
    dedupe: bool = False,
    db: Session = Depends(get_db),
    hours: OperatingHours = Depends(get_operating_hours),
):
    views = list_available_slots(db, date, hours, course_id=courseId, dedupe=dedupe)
    return [SlotOut.from_view(v) for v in views]


@router.get("/settings/operating-hours", response_model=OperatingHoursOut)
def operating_hours(hours: OperatingHours = Depends(get_operating_hours)):
    return OperatingHoursOut(
        activeHours=sorted(hours.active_hours),
        holidayMode=hours.holiday_mode,
        isDefault=hours.is_default,
    )


@router.post("/reservations", response_model=CreatedReservationOut, status_code=201)
def create_reservation(
    req: ReservationCreate,
    db: Session = Depends(get_db),
    hours: OperatingHours = Depends(get_operating_hours),
):
    if not req.customerEmail.strip():
        raise HTTPException(status_code=400, detail="customerEmail required")
    try:
        r = reservation_service.create_reservation(
            db,
            course_id=req.courseId,
            slot_id=req.slotId,
            pax=req.pax,
            customer_email=req.customerEmail,
            customer_name=req.customerName,
            customer_phone=req.customerPhone,
            preferred_lang=req.preferredLang,
            customer_notes=req.customerNotes,
            hours=hours,
        )
    except DomainError as e:
        raise e.to_http_exception()
    customer = db.get(Customer, r.customer_id)
    out = ReservationOut.from_model(r).model_dump()
    return CreatedReservationOut(**out, mypageToken=customer.mypage_token if customer else None)


@router.get("/reservations/by-number/{booking_number}", response_model=ReservationOut)
def get_by_number(booking_number: str, db: Session = Depends(get_db)):
    try:
        return ReservationOut.from_model(reservation_service.get_by_booking_number(db, booking_number))
    except DomainError as e:
        raise e.to_http_exception()


@router.get("/reservations/{reservation_id}", response_model=ReservationOut)
def get_reservation(reservation_id: str, db: Session = Depends(get_db)):
    try:
        return ReservationOut.from_model(reservation_service.get_reservation(db, reservation_id))
    except DomainError as e:
        raise e.to_http_exception()


@router.get("/mypage", response_model=MypageOut)
def mypage(token: str, db: Session = Depends(get_db)):
    try:
        customer, items = reservation_service.list_for_customer_token(db, token)
    except DomainError as e:
        raise e.to_http_exception()
    return MypageOut(
        email=customer.email,
        name=customer.name or "",
        reservations=[ReservationOut.from_model(r) for r in items],
    )


def _owned_reservation(db: Session, reservation_id: str, token: str):
    customer = reservation_service.customer_for_token(db, token)
    r = reservation_service.get_reservation(db, reservation_id)
    if r.customer_id != customer.id:
        # don't reveal that the reservation exists
        raise HTTPException(status_code=404, detail="Reservation not found")
    return customer, r


@router.get("/reservations/{reservation_id}/cancel", response_model=CancellationQuoteOut)
def cancellation_quote(reservation_id: str, token: str, db: Session = Depends(get_db)):
    """Fee and refund the customer would get if they cancelled now."""
    try:
        _owned_reservation(db, reservation_id, token)
        quote = reservation_service.quote_cancellation(db, reservation_id)
    except DomainError as e:
        raise e.to_http_exception()
    return CancellationQuoteOut.from_quote(quote)


@router.post("/reservations/{reservation_id}/cancel", response_model=CancelOut)
def cancel_reservation(reservation_id: str, token: str, body: CancelIn | None = None, db: Session = Depends(get_db)):
    try:
        customer, _ = _owned_reservation(db, reservation_id, token)
        r, quote = reservation_service.cancel_reservation(
            db,
            reservation_id,
            cause=CancellationCause.CUSTOMER,
            reason=body.reason if body else "",
            actor=customer.email,
        )
    except DomainError as e:
        raise e.to_http_exception()
    return CancelOut(
        reservation=ReservationOut.from_model(r),
        quote=CancellationQuoteOut.from_quote(quote) if quote else None,
    )
