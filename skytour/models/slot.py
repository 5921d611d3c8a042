from sqlalchemy import String, Date, Integer, DateTime, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column
from datetime import date, datetime, timezone
from skytour.db.session import Base
from skytour.models.enums import SlotStatus, str_enum

class Slot(Base):
    __tablename__ = "slots"
    __table_args__ = (
        UniqueConstraint("course_id", "slot_date", "slot_time", name="uq_slot_course_date_time"),
        CheckConstraint("current_pax >= 0", name="ck_slot_current_pax_nonnegative"),
        CheckConstraint("current_pax <= max_pax", name="ck_slot_current_pax_le_max"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    course_id: Mapped[str] = mapped_column(String(36), index=True)
    heliport_id: Mapped[str | None] = mapped_column(String(36), index=True, nullable=True)

    slot_date: Mapped[date] = mapped_column(Date, index=True)
    slot_time: Mapped[str] = mapped_column(String(5))  # HH:MM

    max_pax: Mapped[int] = mapped_column(Integer)
    # Maintained only through conditional UPDATEs in reservation_service
    current_pax: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[SlotStatus] = mapped_column(str_enum(SlotStatus, 12), default=SlotStatus.OPEN)
    suspended_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    @property
    def available_pax(self) -> int:
        return self.max_pax - self.current_pax
