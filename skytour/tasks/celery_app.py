from urllib.parse import urlparse, urlunparse, parse_qs, urlencode

from celery import Celery
from celery.schedules import crontab
from skytour.core.config import settings
from skytour.core.logging import setup_logging


def _redis_url_for_celery(url: str) -> str:
    """Celery requires ssl_cert_reqs for rediss:// (e.g. Upstash TLS)."""
    if not url or not url.strip().lower().startswith("rediss://"):
        return url
    parsed = urlparse(url)
    qs = parse_qs(parsed.query)
    if "ssl_cert_reqs" not in qs:
        qs["ssl_cert_reqs"] = ["CERT_NONE"]
        new_query = urlencode(qs, doseq=True)
        return urlunparse(parsed._replace(query=new_query))
    return url


_redis_url = _redis_url_for_celery(settings.REDIS_URL)

setup_logging()

celery = Celery(
    "skytour",
    broker=_redis_url,
    backend=_redis_url,
    include=["skytour.tasks.jobs"],
)

# crontab entries below are heliport-local times
celery.conf.timezone = settings.TIMEZONE

celery.conf.beat_schedule = {
    "expire-holds-every-minute": {
        "task": "skytour.tasks.jobs.expire_holds",
        "schedule": 60.0,
    },
    "send-reminders-daily": {
        "task": "skytour.tasks.jobs.send_reminders",
        "schedule": crontab(hour=9, minute=0),
    },
    "send-thank-you-daily": {
        "task": "skytour.tasks.jobs.send_thank_you",
        "schedule": crontab(hour=10, minute=0),
    },
    "sweep-completed-daily": {
        "task": "skytour.tasks.jobs.sweep_completed",
        "schedule": crontab(hour=3, minute=0),
    },
}
