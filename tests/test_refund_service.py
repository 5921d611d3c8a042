from datetime import date, timedelta

import pytest

from skytour.core.exceptions import ExternalServiceError, ValidationError
from skytour.models.audit_log import AuditLog
from skytour.models.enums import AuditStatus, CancellationCause, PaymentStatus
from skytour.services.refund_service import issue_refund, list_refund_candidates
from skytour.services.reservation_service import cancel_reservation, record_refund, suspend_reservation

from tests.helpers import FakeGateway, before_flight, book, book_confirmed, make_course, make_slot

DAY = date(2026, 8, 10)


def _cancel(db, r, slot, days=8, cause=CancellationCause.CUSTOMER, offset_minutes=0):
    now = before_flight(slot, days=days) + timedelta(minutes=offset_minutes)
    r, _ = cancel_reservation(db, r.id, cause=cause, reason="test", actor="staff", now=now)
    return r


def test_only_paid_cancelled_or_suspended_are_candidates(db):
    course = make_course(db)
    slot = make_slot(db, course, DAY)
    paid_cancelled = _cancel(db, book_confirmed(db, slot, email="a@example.com"), slot)
    _cancel(db, book(db, slot, email="b@example.com"), slot, offset_minutes=1)
    suspended = book_confirmed(db, slot, email="c@example.com")
    suspend_reservation(db, suspended.id, reason="wind", actor="staff", now=before_flight(slot, days=1))
    refunded = _cancel(db, book_confirmed(db, slot, email="d@example.com"), slot, offset_minutes=2)
    record_refund(db, refunded.id, refunded.refund_due, actor="admin")
    book_confirmed(db, slot, email="e@example.com")

    items, total = list_refund_candidates(db)

    assert total == 2
    assert [r.id for r in items] == [paid_cancelled.id, suspended.id]


def test_zero_refund_cancellations_stay_visible(db):
    course = make_course(db)
    slot = make_slot(db, course, DAY)
    r = _cancel(db, book_confirmed(db, slot), slot, days=0)

    items, _ = list_refund_candidates(db)

    assert r.refund_due == 0
    assert [i.id for i in items] == [r.id]


def test_pagination_is_stable(db):
    course = make_course(db)
    slot = make_slot(db, course, DAY, max_pax=10)
    ids = [
        _cancel(db, book_confirmed(db, slot, email=f"p{i}@example.com"), slot, offset_minutes=i).id
        for i in range(5)
    ]

    first, total = list_refund_candidates(db, limit=2, offset=0)
    second, _ = list_refund_candidates(db, limit=2, offset=2)
    third, _ = list_refund_candidates(db, limit=2, offset=4)

    assert total == 5
    assert [r.id for r in first + second + third] == ids


def test_issue_refund_defaults_to_refund_due(db):
    course = make_course(db, price=10000)
    slot = make_slot(db, course, DAY)
    r = _cancel(db, book_confirmed(db, slot, pax=2), slot, days=5)
    gateway = FakeGateway()

    r = issue_refund(db, gateway, r.id, actor="admin@skytour.example")

    assert gateway.calls == [(r.id, 15400)]
    assert r.payment_status == PaymentStatus.REFUNDED
    assert r.refunded_amount == 15400
    assert list_refund_candidates(db) == ([], 0)


def test_gateway_failure_leaves_reservation_paid(db):
    course = make_course(db)
    slot = make_slot(db, course, DAY)
    r = _cancel(db, book_confirmed(db, slot), slot)
    gateway = FakeGateway(error=ExternalServiceError("payment", "Payment gateway timed out after 15s"))

    with pytest.raises(ExternalServiceError):
        issue_refund(db, gateway, r.id, actor="admin")

    db.expire_all()
    assert db.get(type(r), r.id).payment_status == PaymentStatus.PAID
    failed = db.query(AuditLog).filter(AuditLog.target_id == r.id, AuditLog.action == "Refund Failed").one()
    assert failed.status == AuditStatus.FAILURE


def test_issue_refund_needs_a_positive_amount(db):
    course = make_course(db)
    slot = make_slot(db, course, DAY)
    r = _cancel(db, book_confirmed(db, slot), slot, days=0)
    gateway = FakeGateway()

    with pytest.raises(ValidationError):
        issue_refund(db, gateway, r.id, actor="admin")

    assert gateway.calls == []


def test_issue_refund_rejects_active_reservation(db):
    course = make_course(db)
    slot = make_slot(db, course, DAY)
    r = book_confirmed(db, slot)

    with pytest.raises(ValidationError):
        issue_refund(db, FakeGateway(), r.id, actor="admin")
