import os

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from models.audit_mixin import APP_TIMEZONE
from tasks.stock_tasks import run_stock_reconciliation

scheduler = BackgroundScheduler()

# Nightly cache-vs-ledger check, 11:30 PM local time by default
scheduler.add_job(
    run_stock_reconciliation,
    CronTrigger(
        hour=int(os.getenv("STOCK_RECONCILE_HOUR", "23")),
        minute=int(os.getenv("STOCK_RECONCILE_MINUTE", "30")),
        timezone=APP_TIMEZONE,
    ),
    id='stock_reconcile_job',
)
