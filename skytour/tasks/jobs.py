from skytour.tasks.celery_app import celery
from skytour.tasks import worker_jobs

@celery.task(name="skytour.tasks.jobs.expire_holds")
def expire_holds():
    return worker_jobs.expire_holds()

@celery.task(name="skytour.tasks.jobs.send_thank_you")
def send_thank_you():
    return worker_jobs.send_thank_you()

@celery.task(name="skytour.tasks.jobs.send_reminders")
def send_reminders():
    return worker_jobs.send_reminders()

@celery.task(name="skytour.tasks.jobs.sweep_completed")
def sweep_completed():
    return worker_jobs.sweep_completed()
