from datetime import date

import pytest

from skytour.core.exceptions import NotFoundError, ValidationError
from skytour.models.audit_log import AuditLog
from skytour.models.enums import SlotStatus
from skytour.services.availability_service import get_slot_availability, list_available_slots
from skytour.services.settings_service import (
    DEFAULT_OPERATING_HOURS,
    OperatingHours,
    OperatingHoursCache,
    load_operating_hours,
    save_operating_hours,
)

from tests.helpers import book, make_course, make_slot

DAY = date(2026, 7, 1)


def test_lists_open_slots_sorted_by_time(db):
    course = make_course(db)
    make_slot(db, course, DAY, at="11:00")
    make_slot(db, course, DAY, at="10:00")
    make_slot(db, course, date(2026, 7, 2), at="10:00")

    views = list_available_slots(db, DAY, DEFAULT_OPERATING_HOURS)

    assert [v.slot_time for v in views] == ["10:00", "11:00"]
    assert all(v.status == SlotStatus.OPEN for v in views)


def test_empty_day_returns_empty_list(db):
    make_course(db)
    assert list_available_slots(db, DAY, DEFAULT_OPERATING_HOURS) == []


def test_full_and_closed_slots_are_hidden(db):
    course = make_course(db, max_pax=3)
    full = make_slot(db, course, DAY, at="10:00")
    closed = make_slot(db, course, DAY, at="10:30")
    make_slot(db, course, DAY, at="11:00")
    book(db, full, pax=3)
    closed.status = SlotStatus.CLOSED
    db.commit()

    views = list_available_slots(db, DAY, DEFAULT_OPERATING_HOURS)

    assert [v.slot_time for v in views] == ["11:00"]


def test_slots_outside_active_hours_are_hidden(db):
    course = make_course(db)
    make_slot(db, course, DAY, at="09:00")
    make_slot(db, course, DAY, at="10:00")
    hours = OperatingHours(frozenset({"09:00"}))

    views = list_available_slots(db, DAY, hours)

    assert [v.slot_time for v in views] == ["09:00"]


def test_holiday_mode_hides_everything(db):
    course = make_course(db)
    make_slot(db, course, DAY)
    hours = OperatingHours(DEFAULT_OPERATING_HOURS.active_hours, holiday_mode=True)

    assert list_available_slots(db, DAY, hours) == []


def test_counts_come_from_live_reservations(db):
    course = make_course(db, max_pax=3)
    slot = make_slot(db, course, DAY)
    book(db, slot, pax=2)
    # a stale counter does not leak into what customers see
    slot.current_pax = 0
    db.commit()

    view = get_slot_availability(db, slot.id, DEFAULT_OPERATING_HOURS)

    assert view.current_pax == 2
    assert view.available_pax == 1


def test_dedupe_keeps_the_emptiest_slot_per_time(db):
    busy = make_course(db, title="Bay Cruise")
    quiet = make_course(db, title="Skytree Flight")
    busy_slot = make_slot(db, busy, DAY, at="10:00")
    quiet_slot = make_slot(db, quiet, DAY, at="10:00")
    later = make_slot(db, busy, DAY, at="10:30")
    book(db, busy_slot, pax=1)

    views = list_available_slots(db, DAY, DEFAULT_OPERATING_HOURS, dedupe=True)

    assert [(v.slot_time, v.slot_id) for v in views] == [("10:00", quiet_slot.id), ("10:30", later.id)]
    assert len(list_available_slots(db, DAY, DEFAULT_OPERATING_HOURS)) == 3


def test_filter_by_course(db):
    a = make_course(db, title="Bay Cruise")
    b = make_course(db, title="Skytree Flight")
    make_slot(db, a, DAY)
    make_slot(db, b, DAY)

    views = list_available_slots(db, DAY, DEFAULT_OPERATING_HOURS, course_id=b.id)

    assert [v.course_id for v in views] == [b.id]


def test_inactive_course_is_hidden(db):
    course = make_course(db)
    make_slot(db, course, DAY)
    course.is_active = False
    db.commit()

    assert list_available_slots(db, DAY, DEFAULT_OPERATING_HOURS) == []


def test_single_slot_view_reports_closed_status(db):
    course = make_course(db)
    slot = make_slot(db, course, DAY, at="09:00")

    assert get_slot_availability(db, slot.id, DEFAULT_OPERATING_HOURS).status == SlotStatus.CLOSED
    with pytest.raises(NotFoundError):
        get_slot_availability(db, "missing", DEFAULT_OPERATING_HOURS)


class TestOperatingHoursSettings:
    def test_defaults_when_nothing_saved(self, db):
        hours = load_operating_hours(db)

        assert hours.is_default
        assert "10:00" in hours.active_hours
        assert "17:00" in hours.active_hours
        assert "09:30" not in hours.active_hours
        assert hours.holiday_mode is False

    def test_save_and_reload(self, db):
        save_operating_hours(db, actor="admin", active_hours=["13:00", "12:00", "12:00"], holiday_mode=True)

        hours = load_operating_hours(db)

        assert hours.active_hours == frozenset({"12:00", "13:00"})
        assert hours.holiday_mode is True
        assert db.query(AuditLog).filter(AuditLog.action == "Operating Hours Updated").count() == 1

    def test_rejects_bad_time_format(self, db):
        with pytest.raises(ValidationError):
            save_operating_hours(db, actor="admin", active_hours=["9:00"])

    def test_cache_serves_until_invalidated(self, db):
        now = [0.0]
        cache = OperatingHoursCache(ttl_seconds=60, clock=lambda: now[0])
        assert cache.get(db).holiday_mode is False

        save_operating_hours(db, actor="admin", holiday_mode=True)
        assert cache.get(db).holiday_mode is False

        now[0] = 61.0
        assert cache.get(db).holiday_mode is True

        save_operating_hours(db, actor="admin", holiday_mode=False)
        cache.invalidate()
        assert cache.get(db).holiday_mode is False
