from pydantic import BaseModel
from typing import List, Optional


class AdminCancelIn(BaseModel):
    reason: str
    cause: str = "customer"


class SuspendIn(BaseModel):
    reason: str
    cause: str = "weather"


class RefundIn(BaseModel):
    # defaults to the reservation's refund_due
    amount: Optional[int] = None
    reason: str = ""


class RefundCandidateOut(BaseModel):
    id: str
    bookingNumber: str
    status: str
    paymentStatus: str
    totalPrice: int
    cancellationFee: int
    refundDue: int
    cancellationCause: Optional[str] = None
    reason: Optional[str] = None
    cancelledAt: Optional[str] = None
    suspendedAt: Optional[str] = None
    date: str
    time: str


class OperatingHoursIn(BaseModel):
    activeHours: Optional[List[str]] = None
    holidayMode: Optional[bool] = None


class OperatingHoursOut(BaseModel):
    activeHours: List[str]
    holidayMode: bool
    isDefault: bool = False


class AuditLogOut(BaseModel):
    id: str
    logType: str
    status: str
    action: str
    message: str
    targetTable: str
    targetId: str
    actor: str
    oldValues: dict
    newValues: dict
    createdAt: Optional[str] = None
