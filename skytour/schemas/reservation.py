from pydantic import BaseModel, Field
from typing import List, Optional

from skytour.models.reservation import Reservation
from skytour.services.cancellation_policy import CancellationQuote


class ReservationCreate(BaseModel):
    courseId: str
    slotId: str
    pax: int = 1
    customerEmail: str  # plain str to allow .local and other dev domains
    customerName: str = ""
    customerPhone: str = ""
    preferredLang: str = "ja"
    customerNotes: Optional[str] = Field(default=None, max_length=2000)


class ReservationOut(BaseModel):
    id: str
    bookingNumber: str
    courseId: str
    slotId: str
    date: str
    time: str
    pax: int
    subtotal: int
    tax: int
    totalPrice: int
    status: str
    paymentStatus: str
    holdExpiresAt: Optional[str] = None
    bookedAt: Optional[str] = None
    confirmedAt: Optional[str] = None
    cancelledAt: Optional[str] = None
    cancellationCause: Optional[str] = None
    cancellationReason: Optional[str] = None
    cancellationFee: int = 0
    refundDue: int = 0
    suspendedAt: Optional[str] = None
    suspendedReason: Optional[str] = None
    completedAt: Optional[str] = None
    refundedAt: Optional[str] = None
    refundedAmount: Optional[int] = None

    @classmethod
    def from_model(cls, r: Reservation) -> "ReservationOut":
        def iso(dt):
            return dt.isoformat() if dt else None

        return cls(
            id=r.id,
            bookingNumber=r.booking_number,
            courseId=r.course_id,
            slotId=r.slot_id,
            date=r.reservation_date.isoformat(),
            time=r.reservation_time,
            pax=r.pax,
            subtotal=r.subtotal,
            tax=r.tax,
            totalPrice=r.total_price,
            status=r.status.value,
            paymentStatus=r.payment_status.value,
            holdExpiresAt=iso(r.hold_expires_at),
            bookedAt=iso(r.booked_at),
            confirmedAt=iso(r.confirmed_at),
            cancelledAt=iso(r.cancelled_at),
            cancellationCause=r.cancellation_cause.value if r.cancellation_cause else None,
            cancellationReason=r.cancellation_reason,
            cancellationFee=r.cancellation_fee or 0,
            refundDue=r.refund_due or 0,
            suspendedAt=iso(r.suspended_at),
            suspendedReason=r.suspended_reason,
            completedAt=iso(r.completed_at),
            refundedAt=iso(r.refunded_at),
            refundedAmount=r.refunded_amount,
        )


class CreatedReservationOut(ReservationOut):
    mypageToken: Optional[str] = None


class CancellationQuoteOut(BaseModel):
    totalPrice: int
    feePercentage: int
    refundPercentage: int
    cancellationFee: int
    refundAmount: int
    daysBeforeFlight: int

    @classmethod
    def from_quote(cls, q: CancellationQuote) -> "CancellationQuoteOut":
        return cls(
            totalPrice=q.total_price,
            feePercentage=q.fee_percentage,
            refundPercentage=q.refund_percentage,
            cancellationFee=q.cancellation_fee,
            refundAmount=q.refund_amount,
            daysBeforeFlight=q.days_before_flight,
        )


class CancelIn(BaseModel):
    reason: str = ""


class CancelOut(BaseModel):
    reservation: ReservationOut
    quote: Optional[CancellationQuoteOut] = None


class MypageOut(BaseModel):
    email: str
    name: str = ""
    reservations: List[ReservationOut]
