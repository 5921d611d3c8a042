from datetime import date
from pydantic import BaseModel, Field
from typing import List, Optional

from skytour.services.availability_service import SlotAvailability


class SlotOut(BaseModel):
    id: str
    courseId: str
    courseTitle: str = ""
    heliportId: Optional[str] = None
    date: str
    time: str
    maxPax: int
    currentPax: int
    availablePax: int
    price: int = 0
    status: str

    @classmethod
    def from_view(cls, v: SlotAvailability) -> "SlotOut":
        return cls(
            id=v.slot_id,
            courseId=v.course_id,
            courseTitle=v.course_title,
            heliportId=v.heliport_id,
            date=v.slot_date.isoformat(),
            time=v.slot_time,
            maxPax=v.max_pax,
            currentPax=v.current_pax,
            availablePax=v.available_pax,
            price=v.price,
            status=v.status.value,
        )


class SlotGenerateIn(BaseModel):
    courseId: str
    startDate: date
    days: int = Field(default=30, ge=1, le=120)
    # defaults to the course's flight times
    times: Optional[List[str]] = None


class SlotCloseIn(BaseModel):
    reason: str
    cause: str = "weather"
