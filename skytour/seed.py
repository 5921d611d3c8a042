import logging
import uuid

from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import ProgrammingError

from skytour.core.logging import setup_logging
from skytour.core.timeutil import local_today
from skytour.db.session import SessionLocal
from skytour.models.course import Course
from skytour.models.heliport import Heliport
from skytour.models.setting import Setting
from skytour.services.settings_service import ACTIVE_HOURS_KEY, DEFAULT_ACTIVE_HOURS, HOLIDAY_MODE_KEY
from skytour.services.slot_service import generate_slots

logger = logging.getLogger(__name__)

HELIPORT = {
    "name": "Tokyo Heliport",
    "address": "東京都江東区新木場4-7-25",
    "google_map_url": "https://maps.google.com/?q=Tokyo+Heliport",
}

# title, price per passenger (JPY, tax excluded), duration minutes, max pax
COURSES = [
    ("Tokyo Bay Cruise", 19800, 12, 3),
    ("Tokyo Skytree Flight", 32800, 20, 3),
    ("Mt. Fuji Premium", 98000, 60, 3),
]

SEED_DAYS = 60


def ensure_heliport(db: Session) -> Heliport:
    h = db.query(Heliport).filter(Heliport.name == HELIPORT["name"]).first()
    if h:
        return h
    h = Heliport(id=str(uuid.uuid4()), active=True, **HELIPORT)
    db.add(h)
    db.commit()
    return h


def ensure_course(db: Session, heliport: Heliport, title: str, price: int, duration: int, max_pax: int) -> Course:
    c = db.query(Course).filter(Course.title == title).first()
    if c:
        return c
    c = Course(
        id=str(uuid.uuid4()),
        heliport_id=heliport.id,
        title=title,
        price=price,
        duration_minutes=duration,
        max_pax=max_pax,
        min_pax=1,
        flight_times=",".join(DEFAULT_ACTIVE_HOURS),
        is_active=True,
    )
    db.add(c)
    db.commit()
    return c


def ensure_setting(db: Session, key: str, value_json: str) -> None:
    if not db.get(Setting, key):
        db.add(Setting(key=key, value_json=value_json))
        db.commit()


def run(db=None):
    if db is None:
        db = SessionLocal()
    try:
        # If migrations haven't been applied yet, seeding must not crash the API.
        try:
            db.execute(text("SELECT 1 FROM courses LIMIT 1"))
        except ProgrammingError:
            db.rollback()
            logger.warning("courses table not found yet. Skipping seeding (run alembic upgrade head).")
            return

        ensure_setting(db, HOLIDAY_MODE_KEY, "false")
        ensure_setting(db, ACTIVE_HOURS_KEY, '["' + '","'.join(DEFAULT_ACTIVE_HOURS) + '"]')

        heliport = ensure_heliport(db)
        today = local_today()
        for title, price, duration, max_pax in COURSES:
            course = ensure_course(db, heliport, title, price, duration, max_pax)
            created = generate_slots(db, course.id, today, SEED_DAYS, actor="seed")
            logger.info("Seeded %s: %s new slots", title, created)
    finally:
        db.close()


if __name__ == "__main__":
    setup_logging()
    run()
