import json
import re
import threading
import time
from dataclasses import dataclass

from sqlalchemy.orm import Session

from skytour.models.setting import Setting
from skytour.services.audit_service import log_audit
from skytour.core.config import settings
from skytour.core.exceptions import ValidationError

ACTIVE_HOURS_KEY = "active_hours"
HOLIDAY_MODE_KEY = "holiday_mode"

DEFAULT_ACTIVE_HOURS = (
    "10:00", "10:30", "11:00", "11:30", "12:00", "12:30",
    "13:00", "13:30", "14:00", "14:30", "15:00", "15:30",
    "16:00", "16:30", "17:00",
)

HHMM_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


@dataclass(frozen=True)
class OperatingHours:
    active_hours: frozenset[str]
    holiday_mode: bool = False
    is_default: bool = False

    def allows(self, slot_time: str) -> bool:
        if self.holiday_mode:
            return False
        return slot_time[:5] in self.active_hours

    def closed_reason(self, slot_time: str) -> str | None:
        if self.holiday_mode:
            return "holiday_mode"
        if slot_time[:5] not in self.active_hours:
            return "outside_active_hours"
        return None


DEFAULT_OPERATING_HOURS = OperatingHours(frozenset(DEFAULT_ACTIVE_HOURS), False, True)


def _get_json(db: Session, key: str):
    s = db.get(Setting, key)
    if not s or s.value_json is None:
        return None
    try:
        return json.loads(s.value_json)
    except (json.JSONDecodeError, TypeError):
        return None


def _set_json(db: Session, key: str, value) -> None:
    s = db.get(Setting, key)
    if not s:
        db.add(Setting(key=key, value_json=json.dumps(value)))
    else:
        s.value_json = json.dumps(value)


def load_operating_hours(db: Session) -> OperatingHours:
    hours = _get_json(db, ACTIVE_HOURS_KEY)
    holiday = _get_json(db, HOLIDAY_MODE_KEY)
    is_default = not isinstance(hours, list)
    active = frozenset(DEFAULT_ACTIVE_HOURS) if is_default else frozenset(str(h)[:5] for h in hours)
    return OperatingHours(
        active_hours=active,
        holiday_mode=holiday if isinstance(holiday, bool) else False,
        is_default=is_default,
    )


def save_operating_hours(
    db: Session,
    actor: str,
    active_hours: list[str] | None = None,
    holiday_mode: bool | None = None,
) -> OperatingHours:
    before = load_operating_hours(db)
    if active_hours is not None:
        bad = [h for h in active_hours if not HHMM_RE.match(h)]
        if bad:
            raise ValidationError(f"Invalid time format: {', '.join(bad)}. Use HH:MM", details={"field": "activeHours"})
        _set_json(db, ACTIVE_HOURS_KEY, sorted(set(active_hours)))
    if holiday_mode is not None:
        _set_json(db, HOLIDAY_MODE_KEY, bool(holiday_mode))
    db.flush()
    after = load_operating_hours(db)
    log_audit(
        db,
        action="Operating Hours Updated",
        log_type="settings",
        target_table="system_settings",
        target_id=ACTIVE_HOURS_KEY,
        actor=actor,
        old_values={"activeHours": sorted(before.active_hours), "holidayMode": before.holiday_mode},
        new_values={"activeHours": sorted(after.active_hours), "holidayMode": after.holiday_mode},
    )
    db.commit()
    operating_hours_cache.invalidate()
    return after


class OperatingHoursCache:
    """Process-wide cached copy of the operating-hours settings with explicit invalidation."""

    def __init__(self, ttl_seconds: float = 60.0, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._value: OperatingHours | None = None
        self._loaded_at = 0.0

    def get(self, db: Session) -> OperatingHours:
        with self._lock:
            if self._value is not None and self._clock() - self._loaded_at < self.ttl_seconds:
                return self._value
        value = load_operating_hours(db)
        with self._lock:
            self._value = value
            self._loaded_at = self._clock()
        return value

    def invalidate(self) -> None:
        with self._lock:
            self._value = None
            self._loaded_at = 0.0


operating_hours_cache = OperatingHoursCache(ttl_seconds=float(settings.OPERATING_HOURS_CACHE_SECONDS))
