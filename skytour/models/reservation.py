from sqlalchemy import String, Integer, Date, DateTime, Text, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column
from datetime import date, datetime, timezone
from skytour.db.session import Base
from skytour.models.enums import CancellationCause, PaymentStatus, ReservationStatus, str_enum

class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        CheckConstraint("pax > 0", name="ck_reservation_pax_positive"),
        CheckConstraint(
            "refunded_amount IS NULL OR refunded_amount <= total_price",
            name="ck_reservation_refund_le_price",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    booking_number: Mapped[str] = mapped_column(String(20), unique=True, index=True)

    customer_id: Mapped[str] = mapped_column(String(36), index=True)
    course_id: Mapped[str] = mapped_column(String(36), index=True)
    slot_id: Mapped[str] = mapped_column(String(36), index=True)

    # Copied from the slot at booking time
    reservation_date: Mapped[date] = mapped_column(Date, index=True)
    reservation_time: Mapped[str] = mapped_column(String(5))

    pax: Mapped[int] = mapped_column(Integer)

    # Price snapshot, never recomputed
    subtotal: Mapped[int] = mapped_column(Integer, default=0)
    tax: Mapped[int] = mapped_column(Integer, default=0)
    total_price: Mapped[int] = mapped_column(Integer, default=0)

    status: Mapped[ReservationStatus] = mapped_column(
        str_enum(ReservationStatus), default=ReservationStatus.PENDING, index=True
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        str_enum(PaymentStatus), default=PaymentStatus.UNPAID, index=True
    )
    payment_ref: Mapped[str | None] = mapped_column(String(120), nullable=True)

    hold_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    booked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_by: Mapped[str | None] = mapped_column(String(120), nullable=True)
    cancellation_cause: Mapped[CancellationCause | None] = mapped_column(str_enum(CancellationCause), nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    cancellation_fee: Mapped[int] = mapped_column(Integer, default=0)
    # Amount owed back to the customer once cancelled/suspended
    refund_due: Mapped[int] = mapped_column(Integer, default=0)

    suspended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    suspended_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    refunded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    refunded_by: Mapped[str | None] = mapped_column(String(120), nullable=True)
    refunded_amount: Mapped[int | None] = mapped_column(Integer, nullable=True)

    customer_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
