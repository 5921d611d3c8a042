from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from skytour.api.deps import get_mailer, require_cron_secret
from skytour.core.config import settings
from skytour.core.timeutil import local_today
from skytour.db.session import get_db
from skytour.services.email_service import Mailer
from skytour.services.notification_service import run_reminder_jobs, send_thank_you_emails
from skytour.services.reservation_service import expire_pending_holds, sweep_stale_confirmed

router = APIRouter(prefix="/cron", tags=["cron"], dependencies=[Depends(require_cron_secret)])


@router.post("/thankyou")
def cron_thankyou(db: Session = Depends(get_db), mailer: Mailer = Depends(get_mailer)):
    return send_thank_you_emails(db, mailer, local_today()).to_dict()


@router.post("/reminders")
def cron_reminders(db: Session = Depends(get_db), mailer: Mailer = Depends(get_mailer)):
    return run_reminder_jobs(db, mailer, local_today())


@router.post("/expire-holds")
def cron_expire_holds(db: Session = Depends(get_db)):
    return {"expired": expire_pending_holds(db)}


@router.post("/sweep-completed")
def cron_sweep_completed(db: Session = Depends(get_db)):
    return {"completed": sweep_stale_confirmed(db, local_today(), settings.THANKYOU_LOOKBACK_DAYS)}
