from pydantic import BaseModel, Field
from typing import Literal, Optional


class PaymentWebhookIn(BaseModel):
    reservationId: str
    outcome: Literal["succeeded", "failed"]
    paymentRef: Optional[str] = Field(default=None, max_length=120)
    amount: Optional[int] = None
