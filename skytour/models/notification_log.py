from sqlalchemy import String, DateTime, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from skytour.db.session import Base
from skytour.models.enums import NotificationKind, NotificationStatus, str_enum

class NotificationLog(Base):
    """Persisted outcome of one scheduled message per reservation and kind."""

    __tablename__ = "notification_logs"
    __table_args__ = (
        UniqueConstraint("reservation_id", "kind", name="uq_notification_reservation_kind"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    reservation_id: Mapped[str] = mapped_column(String(36), index=True)
    kind: Mapped[NotificationKind] = mapped_column(str_enum(NotificationKind))
    recipient: Mapped[str] = mapped_column(String(320))
    subject: Mapped[str] = mapped_column(String(200), default="")
    status: Mapped[NotificationStatus] = mapped_column(str_enum(NotificationStatus, 12), default=NotificationStatus.SENDING)
    attempts: Mapped[int] = mapped_column(Integer, default=0)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
