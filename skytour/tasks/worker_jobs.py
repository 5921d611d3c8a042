import logging

from sqlalchemy.exc import ProgrammingError
from sqlalchemy.orm import Session

from skytour.core.config import settings
from skytour.core.timeutil import local_today
from skytour.db.session import SessionLocal
from skytour.services.email_service import Mailer
from skytour.services.notification_service import run_reminder_jobs, send_thank_you_emails
from skytour.services.reservation_service import expire_pending_holds, sweep_stale_confirmed

logger = logging.getLogger(__name__)


def expire_holds() -> dict:
    db: Session = SessionLocal()
    try:
        try:
            return {"expired": expire_pending_holds(db)}
        except ProgrammingError:
            # DB not migrated yet; don't crash the worker.
            db.rollback()
            return {"skipped": True, "reason": "missing_tables"}
    finally:
        db.close()


def send_thank_you() -> dict:
    db: Session = SessionLocal()
    try:
        try:
            return send_thank_you_emails(db, Mailer(), local_today()).to_dict()
        except ProgrammingError:
            db.rollback()
            return {"skipped": True, "reason": "missing_tables"}
    finally:
        db.close()


def send_reminders() -> dict:
    db: Session = SessionLocal()
    try:
        try:
            return run_reminder_jobs(db, Mailer(), local_today())
        except ProgrammingError:
            db.rollback()
            return {"skipped": True, "reason": "missing_tables"}
    finally:
        db.close()


def sweep_completed() -> dict:
    db: Session = SessionLocal()
    try:
        try:
            return {"completed": sweep_stale_confirmed(db, local_today(), settings.THANKYOU_LOOKBACK_DAYS)}
        except ProgrammingError:
            db.rollback()
            return {"skipped": True, "reason": "missing_tables"}
    finally:
        db.close()
