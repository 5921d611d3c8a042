"""
Scheduled customer communications.

Each job scans confirmed reservations in a date window and sends at most one
message per reservation and kind. The outcome of every attempt is stored in
``notification_logs`` before any state it gates (thank-you completion)
changes, so a re-run after a crash or partial failure re-sends only what did
not go out.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from skytour.core.config import settings
from skytour.core.exceptions import InvalidTransitionError
from skytour.core.timeutil import as_aware, utcnow
from skytour.models.course import Course
from skytour.models.customer import Customer
from skytour.models.enums import AuditStatus, NotificationKind, NotificationStatus, ReservationStatus
from skytour.models.heliport import Heliport
from skytour.models.notification_log import NotificationLog
from skytour.models.reservation import Reservation
from skytour.services.audit_service import log_audit
from skytour.services.email_service import EmailResult, OutgoingEmail
from skytour.services.email_templates import BookingFacts, render_reminder, render_thank_you
from skytour.services.reservation_service import complete_reservation

logger = logging.getLogger(__name__)

REMINDER_OFFSETS = {
    NotificationKind.REMINDER_3DAY: 3,
    NotificationKind.REMINDER_1DAY: 1,
}

# A "sending" marker younger than this belongs to a run still in progress
IN_FLIGHT_MINUTES = 10


@dataclass
class DispatchDetail:
    id: str
    booking_number: str
    kind: str
    email_sent: bool
    status_updated: bool
    skipped: bool = False
    error: str | None = None


@dataclass
class JobSummary:
    job: str
    sent: int = 0
    failed: int = 0
    status_updated: int = 0
    skipped: int = 0
    details: list[DispatchDetail] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.details)

    def add(self, detail: DispatchDetail) -> None:
        self.details.append(detail)
        if detail.skipped:
            self.skipped += 1
        elif detail.email_sent:
            self.sent += 1
        else:
            self.failed += 1
        if detail.status_updated:
            self.status_updated += 1

    def to_dict(self) -> dict:
        return {
            "job": self.job,
            "summary": {
                "sent": self.sent,
                "failed": self.failed,
                "statusUpdated": self.status_updated,
                "skipped": self.skipped,
                "total": self.total,
            },
            "details": [
                {
                    "id": d.id,
                    "bookingNumber": d.booking_number,
                    "kind": d.kind,
                    "emailSent": d.email_sent,
                    "statusUpdated": d.status_updated,
                    "skipped": d.skipped,
                    "error": d.error,
                }
                for d in self.details
            ],
        }


def _rows(db: Session, *date_filters):
    q = (
        select(Reservation, Customer, Course, Heliport)
        .join(Customer, Customer.id == Reservation.customer_id)
        .join(Course, Course.id == Reservation.course_id)
        .outerjoin(Heliport, Heliport.id == Course.heliport_id)
        .where(Reservation.status == ReservationStatus.CONFIRMED, *date_filters)
        .order_by(Reservation.reservation_date, Reservation.reservation_time, Reservation.id)
    )
    return db.execute(q).all()


def _facts(r: Reservation, c: Customer, course: Course, heliport: Heliport | None) -> BookingFacts:
    mypage_url = None
    if settings.CLIENT_BASE_URL and c.mypage_token:
        mypage_url = f"{settings.CLIENT_BASE_URL.rstrip('/')}/mypage?token={c.mypage_token}"
    return BookingFacts(
        to=c.email,
        customer_name=c.name or c.email,
        course_name=course.title,
        flight_date=r.reservation_date,
        flight_time=r.reservation_time,
        pax=r.pax,
        booking_number=r.booking_number,
        heliport_name=heliport.name if heliport else "",
        heliport_address=heliport.address if heliport else "",
        google_map_url=heliport.google_map_url if heliport else None,
        mypage_url=mypage_url,
    )


def _marker(db: Session, reservation_id: str, kind: NotificationKind) -> NotificationLog | None:
    return (
        db.query(NotificationLog)
        .filter(NotificationLog.reservation_id == reservation_id, NotificationLog.kind == kind)
        .first()
    )


def _in_flight(log: NotificationLog, now: datetime) -> bool:
    updated = as_aware(log.updated_at)
    return (
        log.status == NotificationStatus.SENDING
        and updated is not None
        and now - updated < timedelta(minutes=IN_FLIGHT_MINUTES)
    )


def _claim(db: Session, r: Reservation, kind: NotificationKind, message: OutgoingEmail, now: datetime) -> NotificationLog | None:
    """Persist a ``sending`` marker; ``None`` if the message already went out or another run owns it."""
    log = _marker(db, r.id, kind)
    if log is not None and (log.status == NotificationStatus.SENT or _in_flight(log, now)):
        return None
    if log is None:
        log = NotificationLog(
            id=str(uuid.uuid4()),
            reservation_id=r.id,
            kind=kind,
            recipient=message.to,
            subject=message.subject,
            attempts=0,
        )
        db.add(log)
    log.status = NotificationStatus.SENDING
    log.attempts = (log.attempts or 0) + 1
    log.updated_at = now
    try:
        db.commit()
    except IntegrityError:
        # another run inserted the marker first
        db.rollback()
        return None
    return log


def _record_outcome(db: Session, log: NotificationLog, result: EmailResult, now: datetime) -> None:
    if result.success:
        log.status = NotificationStatus.SENT
        log.sent_at = now
        log.last_error = None
    else:
        log.status = NotificationStatus.FAILED
        log.last_error = result.error
        log_audit(
            db, "Notification Failed", "notification", "reservations", log.reservation_id,
            status=AuditStatus.FAILURE, message=f"{log.kind.value} to {log.recipient}: {result.error}",
        )
    db.commit()



def _abandon(db: Session, claimed: NotificationLog | None, error: Exception) -> None:
    """Roll back the failed item and mark a marker this run claimed as failed so the next run retries it."""
    db.rollback()
    if claimed is None:
        return
    try:
        claimed.status = NotificationStatus.FAILED
        claimed.last_error = f"{error.__class__.__name__}: {error}"
        db.commit()
    except SQLAlchemyError:
        # left in "sending"; it is retried once the in-flight window passes
        db.rollback()
        logger.exception("Could not mark the %s marker as failed", error.__class__.__name__)


def send_thank_you_emails(
    db: Session,
    mailer,
    today: date,
    lookback_days: int | None = None,
    now: datetime | None = None,
) -> JobSummary:
    """Thank confirmed customers whose flight date has passed and mark the reservation completed."""
    now = now or utcnow()
    lookback = lookback_days if lookback_days is not None else settings.THANKYOU_LOOKBACK_DAYS
    summary = JobSummary(job="thankyou")
    kind = NotificationKind.THANKYOU

    rows = _rows(
        db,
        Reservation.reservation_date < today,
        Reservation.reservation_date >= today - timedelta(days=lookback),
    )
    for r, customer, course, heliport in rows:
        rid, number = r.id, r.booking_number
        claimed = None
        try:
            message = render_thank_you(_facts(r, customer, course, heliport))
            existing = _marker(db, rid, kind)
            if existing is not None and existing.status == NotificationStatus.SENT:
                # sent by an earlier run that stopped before completing the reservation
                updated = _complete(db, rid, now)
                summary.add(DispatchDetail(rid, number, kind.value, email_sent=False, status_updated=updated, skipped=True))
                continue

            claimed = _claim(db, r, kind, message, now)
            if claimed is None:
                summary.add(DispatchDetail(rid, number, kind.value, email_sent=False, status_updated=False, skipped=True))
                continue

            result = mailer.send(message)
            _record_outcome(db, claimed, result, now)
            claimed = None
            if not result.success:
                logger.error("Failed to send thank-you email for %s: %s", number, result.error)
                summary.add(DispatchDetail(rid, number, kind.value, email_sent=False, status_updated=False, error=result.error))
                continue

            updated = _complete(db, rid, now)
            summary.add(DispatchDetail(rid, number, kind.value, email_sent=True, status_updated=updated))
        except Exception as e:
            logger.exception("Thank-you dispatch failed for %s", number)
            _abandon(db, claimed, e)
            summary.add(DispatchDetail(rid, number, kind.value, email_sent=False, status_updated=False, error=str(e)))

    logger.info(
        "Thank-you job: sent=%s failed=%s statusUpdated=%s skipped=%s total=%s",
        summary.sent, summary.failed, summary.status_updated, summary.skipped, summary.total,
    )
    return summary


def _complete(db: Session, reservation_id: str, now: datetime) -> bool:
    try:
        complete_reservation(db, reservation_id, now=now, actor="thankyou_job")
        return True
    except InvalidTransitionError:
        # cancelled or completed by someone else after the send
        return False


def send_reminders(
    db: Session,
    mailer,
    today: date,
    kind: NotificationKind,
    now: datetime | None = None,
) -> JobSummary:
    """Remind confirmed customers whose flight is exactly ``REMINDER_OFFSETS[kind]`` days away."""
    now = now or utcnow()
    kind = NotificationKind(kind)
    days = REMINDER_OFFSETS[kind]
    summary = JobSummary(job=kind.value)

    for r, customer, course, heliport in _rows(db, Reservation.reservation_date == today + timedelta(days=days)):
        rid, number = r.id, r.booking_number
        claimed = None
        try:
            message = render_reminder(_facts(r, customer, course, heliport), days)
            claimed = _claim(db, r, kind, message, now)
            if claimed is None:
                summary.add(DispatchDetail(rid, number, kind.value, email_sent=False, status_updated=False, skipped=True))
                continue
            result = mailer.send(message)
            _record_outcome(db, claimed, result, now)
            claimed = None
            if not result.success:
                logger.error("Failed to send %s for %s: %s", kind.value, number, result.error)
            summary.add(DispatchDetail(rid, number, kind.value, email_sent=result.success, status_updated=False, error=result.error))
        except Exception as e:
            logger.exception("%s dispatch failed for %s", kind.value, number)
            _abandon(db, claimed, e)
            summary.add(DispatchDetail(rid, number, kind.value, email_sent=False, status_updated=False, error=str(e)))

    logger.info("%s job: sent=%s failed=%s skipped=%s total=%s", kind.value, summary.sent, summary.failed, summary.skipped, summary.total)
    return summary


def run_reminder_jobs(db: Session, mailer, today: date, now: datetime | None = None) -> dict:
    return {
        kind.value: send_reminders(db, mailer, today, kind, now=now).to_dict()
        for kind in REMINDER_OFFSETS
    }
