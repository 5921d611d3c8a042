from sqlalchemy import String, Boolean
from sqlalchemy.orm import Mapped, mapped_column
from skytour.db.session import Base

class Heliport(Base):
    __tablename__ = "heliports"
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    address: Mapped[str] = mapped_column(String(300), default="")
    google_map_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean(), default=True)
