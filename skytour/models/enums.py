from enum import Enum

import sqlalchemy as sa


class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    REFUNDED = "refunded"
    FAILED = "failed"


class SlotStatus(str, Enum):
    OPEN = "open"
    FULL = "full"
    CLOSED = "closed"


class CancellationCause(str, Enum):
    CUSTOMER = "customer"
    WEATHER = "weather"
    MECHANICAL = "mechanical"
    OPERATOR = "operator"
    OTHER = "other"


class AuditStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    WARNING = "warning"
    INFO = "info"


class NotificationKind(str, Enum):
    THANKYOU = "thankyou"
    REMINDER_3DAY = "reminder_3day"
    REMINDER_1DAY = "reminder_1day"


class NotificationStatus(str, Enum):
    SENDING = "sending"
    SENT = "sent"
    FAILED = "failed"


# Reservations holding seats on their slot
SEAT_HOLDING_STATUSES = (
    ReservationStatus.PENDING,
    ReservationStatus.CONFIRMED,
    ReservationStatus.COMPLETED,
)

TERMINAL_STATUSES = (
    ReservationStatus.CANCELLED,
    ReservationStatus.COMPLETED,
    ReservationStatus.SUSPENDED,
)


def str_enum(enum_cls: type[Enum], length: int = 20) -> sa.Enum:
    """Store enum values (not member names) as plain strings."""
    return sa.Enum(
        enum_cls,
        native_enum=False,
        create_constraint=False,
        length=length,
        values_callable=lambda e: [m.value for m in e],
    )
