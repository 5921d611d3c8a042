from sqlalchemy import String, Integer, DateTime, Boolean
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from skytour.db.session import Base

class Course(Base):
    __tablename__ = "courses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    heliport_id: Mapped[str | None] = mapped_column(String(36), index=True, nullable=True)
    title: Mapped[str] = mapped_column(String(200))
    price: Mapped[int] = mapped_column(Integer)  # per passenger, JPY, tax excluded
    duration_minutes: Mapped[int] = mapped_column(Integer, default=15)
    max_pax: Mapped[int] = mapped_column(Integer, default=3)
    min_pax: Mapped[int] = mapped_column(Integer, default=1)
    # comma-separated start times used by slot generation
    flight_times: Mapped[str] = mapped_column(String(400), default="")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    @property
    def times(self):
        return [t.strip() for t in (self.flight_times or "").split(",") if t.strip()]
