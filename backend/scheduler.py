from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from config import APP_TIMEZONE, RECONCILE_HOUR
from tasks.reconcile_tasks import run_balance_check

scheduler = BackgroundScheduler()

# Daily at RECONCILE_HOUR:00 local time
scheduler.add_job(
    run_balance_check,
    CronTrigger(hour=RECONCILE_HOUR, minute=0, timezone=APP_TIMEZONE),
    id='balance_reconciliation_job',
)
