from sqlalchemy import String, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from skytour.db.session import Base
from skytour.models.enums import AuditStatus, str_enum

class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    log_type: Mapped[str] = mapped_column(String(40), index=True)  # reservation, payment, refund, slot, settings, notification
    status: Mapped[AuditStatus] = mapped_column(str_enum(AuditStatus, 12), default=AuditStatus.SUCCESS)
    action: Mapped[str] = mapped_column(String(80), index=True)  # e.g. Booking Created
    message: Mapped[str] = mapped_column(Text, default="")
    target_table: Mapped[str] = mapped_column(String(40), index=True)
    target_id: Mapped[str] = mapped_column(String(36), index=True)
    actor: Mapped[str] = mapped_column(String(120), default="system")
    old_values_json: Mapped[str] = mapped_column(Text, default="{}")
    new_values_json: Mapped[str] = mapped_column(Text, default="{}")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)
