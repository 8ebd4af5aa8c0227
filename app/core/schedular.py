import logging
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.core.config import settings
from app.core.database import SessionLocal
from app.services.entitlement import EntitlementService
from app.utils.mail_service import mail_service

logger = logging.getLogger(__name__)


async def run_renewal_sweep():
    """
    Scheduled task that expires overdue flat-price subscriptions.
    Runs every hour at the configured minute.
    """
    db = SessionLocal()
    try:
        result = await EntitlementService(db, mailer=mail_service).process_renewals()
        logger.info(
            f"[{datetime.now(timezone.utc)}] Renewal sweep completed. "
            f"Expired {result['processed']}, failed {result['failed']}."
        )
        return result
    except Exception as e:
        logger.error(f"Error during renewal sweep: {e}")
    finally:
        db.close()


def start_scheduler():
    """
    Initialize and start the APScheduler for the renewal sweep.
    """
    scheduler = AsyncIOScheduler()

    scheduler.add_job(
        run_renewal_sweep,
        trigger=CronTrigger(minute=settings.renewal_sweep_minute),
        id="live_class_renewal_sweep",
        name="Expire overdue live class subscriptions",
        replace_existing=True,
        max_instances=1,
    )

    scheduler.start()
    logger.info("Renewal scheduler started. Hourly sweep scheduled.")

    return scheduler


def shutdown_scheduler(scheduler: AsyncIOScheduler):
    """
    Gracefully shutdown the scheduler.
    """
    if scheduler:
        scheduler.shutdown()
        logger.info("Renewal scheduler shut down.")
