"""HTTP surface: public booking flow, payment webhook, admin and cron routes."""

import json
from datetime import timedelta

import pytest

from skytour.core.config import settings
from skytour.core.security import sign_payload
from skytour.core.timeutil import local_today
from skytour.models.course import Course
from skytour.models.enums import PaymentStatus, ReservationStatus
from skytour.models.reservation import Reservation

from tests.helpers import auth_header, make_course, make_slot


@pytest.fixture
def future_slot(db):
    course = make_course(db, price=10000, max_pax=3)
    return make_slot(db, course, local_today() + timedelta(days=10))


def _reserve(client, slot, pax=1, email="guest@example.com"):
    return client.post("/api/v1/public/reservations", json={
        "courseId": slot.course_id,
        "slotId": slot.id,
        "pax": pax,
        "customerEmail": email,
        "customerName": "Guest",
    })


def _webhook(client, reservation_id, outcome="succeeded", ref="pay_1", headers=None):
    body = json.dumps({"reservationId": reservation_id, "outcome": outcome, "paymentRef": ref}).encode()
    return client.post("/api/v1/payments/webhook", content=body,
                       headers={"Content-Type": "application/json", **(headers or {})})


class TestPublic:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_available_slots(self, client, future_slot):
        res = client.get("/api/v1/public/slots/available", params={"date": future_slot.slot_date.isoformat()})

        assert res.status_code == 200
        body = res.json()
        assert [s["id"] for s in body] == [future_slot.id]
        assert body[0]["availablePax"] == 3

    def test_reserve_then_lookup(self, client, future_slot):
        res = _reserve(client, future_slot, pax=2)

        assert res.status_code == 201
        created = res.json()
        assert created["status"] == "pending"
        assert created["totalPrice"] == 22000
        assert created["mypageToken"]

        by_id = client.get(f"/api/v1/public/reservations/{created['id']}")
        by_number = client.get(f"/api/v1/public/reservations/by-number/{created['bookingNumber']}")
        assert by_id.json()["bookingNumber"] == created["bookingNumber"]
        assert by_number.json()["id"] == created["id"]

        mypage = client.get("/api/v1/public/mypage", params={"token": created["mypageToken"]})
        assert mypage.status_code == 200
        assert [r["id"] for r in mypage.json()["reservations"]] == [created["id"]]

    def test_full_slot_is_409(self, client, future_slot):
        assert _reserve(client, future_slot, pax=3).status_code == 201

        res = _reserve(client, future_slot, pax=1, email="late@example.com")

        assert res.status_code == 409
        assert res.json()["detail"]["details"]["constraint"] == "full"

    def test_invalid_pax_is_400(self, client, future_slot):
        res = _reserve(client, future_slot, pax=5)

        assert res.status_code == 400
        assert res.json()["detail"]["details"]["constraint"] == "invalid_pax"

    def test_closed_hours_is_409(self, client, db, future_slot):
        early = make_slot(db, db.get(Course, future_slot.course_id), future_slot.slot_date, at="08:00")

        res = _reserve(client, early)

        assert res.status_code == 409
        assert res.json()["detail"]["details"]["constraint"] == "closed"

    def test_unknown_reservation_is_404(self, client, db):
        assert client.get("/api/v1/public/reservations/nope").status_code == 404

    def test_customer_cancel_with_token(self, client, future_slot):
        created = _reserve(client, future_slot, pax=2).json()
        _webhook(client, created["id"])
        token = created["mypageToken"]

        quote = client.get(f"/api/v1/public/reservations/{created['id']}/cancel", params={"token": token})
        assert quote.status_code == 200
        assert quote.json()["refundPercentage"] == 100

        res = client.post(f"/api/v1/public/reservations/{created['id']}/cancel", params={"token": token},
                          json={"reason": "plans changed"})
        assert res.status_code == 200
        assert res.json()["reservation"]["status"] == "cancelled"
        assert res.json()["reservation"]["refundDue"] == 22000

    def test_cancel_with_someone_elses_token_is_404(self, client, future_slot):
        mine = _reserve(client, future_slot, email="me@example.com").json()
        theirs = _reserve(client, future_slot, email="them@example.com").json()

        res = client.post(f"/api/v1/public/reservations/{mine['id']}/cancel", params={"token": theirs["mypageToken"]})

        assert res.status_code == 404

    def test_operating_hours(self, client):
        body = client.get("/api/v1/public/settings/operating-hours").json()

        assert body["holidayMode"] is False
        assert "10:00" in body["activeHours"]


class TestPaymentWebhook:
    def test_success_then_redelivery(self, client, db, future_slot):
        created = _reserve(client, future_slot).json()

        first = _webhook(client, created["id"])
        second = _webhook(client, created["id"], ref="pay_1_retry")

        assert first.status_code == 200
        assert first.json()["changed"] is True
        assert second.status_code == 200
        assert second.json()["changed"] is False
        db.expire_all()
        r = db.get(Reservation, created["id"])
        assert r.status == ReservationStatus.CONFIRMED
        assert r.payment_status == PaymentStatus.PAID
        assert r.payment_ref == "pay_1"

    def test_failed_outcome_cancels(self, client, db, future_slot):
        created = _reserve(client, future_slot, pax=3).json()

        res = _webhook(client, created["id"], outcome="failed")

        assert res.status_code == 200
        assert res.json()["status"] == "cancelled"
        assert res.json()["paymentStatus"] == "failed"
        assert _reserve(client, future_slot, pax=3, email="next@example.com").status_code == 201

    def test_success_after_cancel_is_409(self, client, future_slot):
        created = _reserve(client, future_slot).json()
        client.post(f"/api/v1/public/reservations/{created['id']}/cancel", params={"token": created["mypageToken"]})

        res = _webhook(client, created["id"])

        assert res.status_code == 409

    def test_unknown_reservation_is_404(self, client):
        assert _webhook(client, "missing").status_code == 404

    def test_bad_payload_is_400(self, client):
        res = client.post("/api/v1/payments/webhook", content=b"{not json",
                          headers={"Content-Type": "application/json"})
        assert res.status_code == 400

    def test_signature_required_when_secret_set(self, client, future_slot, monkeypatch):
        monkeypatch.setattr(settings, "PAYMENT_WEBHOOK_SECRET", "whsec")
        created = _reserve(client, future_slot).json()
        body = json.dumps({"reservationId": created["id"], "outcome": "succeeded"}).encode()

        unsigned = client.post("/api/v1/payments/webhook", content=body, headers={"Content-Type": "application/json"})
        signed = client.post("/api/v1/payments/webhook", content=body, headers={
            "Content-Type": "application/json",
            "X-Signature": sign_payload(body, "whsec"),
        })

        assert unsigned.status_code == 401
        assert signed.status_code == 200


class TestAdmin:
    def test_requires_token(self, client):
        assert client.get("/api/v1/admin/refunds/candidates").status_code == 401

    def test_rejects_garbage_token(self, client):
        res = client.get("/api/v1/admin/refunds/candidates", headers={"Authorization": "Bearer nope"})
        assert res.status_code == 401

    def test_viewer_cannot_cancel(self, client, future_slot):
        created = _reserve(client, future_slot).json()

        res = client.post(f"/api/v1/admin/reservations/{created['id']}/cancel",
                          json={"reason": "x"}, headers=auth_header("viewer"))

        assert res.status_code == 403

    def test_cancel_requires_reason(self, client, future_slot):
        created = _reserve(client, future_slot).json()

        res = client.post(f"/api/v1/admin/reservations/{created['id']}/cancel",
                          json={"reason": " "}, headers=auth_header("staff"))

        assert res.status_code == 400

    def test_unknown_cause_is_400(self, client, future_slot):
        created = _reserve(client, future_slot).json()

        res = client.post(f"/api/v1/admin/reservations/{created['id']}/cancel",
                          json={"reason": "x", "cause": "aliens"}, headers=auth_header("staff"))

        assert res.status_code == 400

    def test_suspend_then_refund(self, client, gateway, future_slot):
        created = _reserve(client, future_slot, pax=2).json()
        _webhook(client, created["id"])

        suspended = client.post(f"/api/v1/admin/reservations/{created['id']}/suspend",
                                json={"reason": "strong wind"}, headers=auth_header("staff"))
        assert suspended.status_code == 200
        assert suspended.json()["status"] == "suspended"

        candidates = client.get("/api/v1/admin/refunds/candidates", headers=auth_header("viewer")).json()
        assert candidates["total"] == 1
        assert candidates["items"][0]["refundDue"] == 22000

        staff_refund = client.post(f"/api/v1/admin/reservations/{created['id']}/refund", json={},
                                   headers=auth_header("staff"))
        assert staff_refund.status_code == 403

        refunded = client.post(f"/api/v1/admin/reservations/{created['id']}/refund", json={},
                               headers=auth_header("admin"))
        assert refunded.status_code == 200
        assert refunded.json()["paymentStatus"] == "refunded"
        assert gateway.calls == [(created["id"], 22000)]

        logs = client.get("/api/v1/admin/audit-logs", params={"targetId": created["id"]},
                          headers=auth_header("viewer")).json()
        actions = {i["action"] for i in logs["items"]}
        assert {"Booking Created", "Payment Confirmed", "Reservation Suspended", "Refund Processed"} <= actions

    def test_operating_hours_update_takes_effect(self, client, future_slot):
        # warm the cache, then switch to holiday mode
        day = future_slot.slot_date.isoformat()
        assert client.get("/api/v1/public/slots/available", params={"date": day}).json()

        res = client.put("/api/v1/admin/settings/operating-hours", json={"holidayMode": True},
                         headers=auth_header("admin"))

        assert res.status_code == 200
        assert res.json()["holidayMode"] is True
        assert client.get("/api/v1/public/slots/available", params={"date": day}).json() == []
        assert _reserve(client, future_slot).status_code == 409

    def test_generate_and_close_slots(self, client, db, future_slot):
        start = (future_slot.slot_date + timedelta(days=1)).isoformat()
        gen = client.post("/api/v1/admin/slots/generate",
                          json={"courseId": future_slot.course_id, "startDate": start, "days": 2},
                          headers=auth_header("staff"))
        assert gen.status_code == 200
        assert gen.json()["created"] == 6

        created = _reserve(client, future_slot).json()
        _webhook(client, created["id"])
        closed = client.post(f"/api/v1/admin/slots/{future_slot.id}/close",
                             json={"reason": "maintenance", "cause": "mechanical"}, headers=auth_header("staff"))
        assert closed.status_code == 200
        assert closed.json()["suspended"] == [created["id"]]

        recount = client.post(f"/api/v1/admin/slots/{future_slot.id}/recount", headers=auth_header("admin"))
        assert recount.json()["currentPax"] == 0
        assert recount.json()["status"] == "closed"


class TestCron:
    def test_disabled_without_secret(self, client, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "")
        assert client.post("/api/v1/cron/thankyou").status_code == 503

    def test_wrong_secret(self, client, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "cron-s3cret")
        res = client.post("/api/v1/cron/thankyou", headers={"Authorization": "Bearer wrong"})
        assert res.status_code == 401

    def test_jobs_return_summaries(self, client, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "cron-s3cret")
        headers = {"Authorization": "Bearer cron-s3cret"}

        thankyou = client.post("/api/v1/cron/thankyou", headers=headers)
        reminders = client.post("/api/v1/cron/reminders", headers=headers)
        expire = client.post("/api/v1/cron/expire-holds", headers=headers)
        sweep = client.post("/api/v1/cron/sweep-completed", headers=headers)

        assert thankyou.status_code == 200
        assert thankyou.json()["summary"]["total"] == 0
        assert set(reminders.json()) == {"reminder_3day", "reminder_1day"}
        assert expire.json() == {"expired": 0}
        assert sweep.json() == {"completed": 0}
