import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError as PayloadError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from skytour.core.config import settings
from skytour.core.exceptions import DomainError, NotFoundError
from skytour.core.security import verify_signature
from skytour.db.session import get_db
from skytour.schemas.payments import PaymentWebhookIn
from skytour.services import reservation_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])

SIGNATURE_HEADER = "X-Signature"


@router.post("/webhook")
async def payment_webhook(request: Request, db: Session = Depends(get_db)):
    """Payment outcome callback.

    200 when the outcome was applied or had already been applied, 409 when the
    reservation can no longer take it, 503 when the store failed so the gateway
    redelivers.
    """
    body = await request.body()
    if settings.PAYMENT_WEBHOOK_SECRET:
        if not verify_signature(body, request.headers.get(SIGNATURE_HEADER), settings.PAYMENT_WEBHOOK_SECRET):
            logger.warning("Payment webhook rejected: bad signature")
            raise HTTPException(status_code=401, detail="Invalid signature")
    try:
        event = PaymentWebhookIn.model_validate(json.loads(body or b"{}"))
    except (ValueError, PayloadError):
        raise HTTPException(status_code=400, detail="Invalid payload")

    try:
        if event.outcome == "succeeded":
            r, changed = reservation_service.confirm_payment(
                db, event.reservationId, payment_ref=event.paymentRef, amount=event.amount
            )
        else:
            r, changed = reservation_service.fail_payment(db, event.reservationId)
    except NotFoundError as e:
        logger.warning("Payment webhook for unknown reservation %s", event.reservationId)
        raise e.to_http_exception()
    except DomainError as e:
        raise e.to_http_exception()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Payment webhook for %s failed to persist", event.reservationId)
        raise HTTPException(status_code=503, detail="Temporarily unavailable, retry later")

    return {
        "ok": True,
        "changed": changed,
        "reservationId": r.id,
        "status": r.status.value,
        "paymentStatus": r.payment_status.value,
    }
