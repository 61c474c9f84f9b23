import logging
import os
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from examhall.core.config import settings
from examhall.core.constants import EXAM_SUBMITTED_EVENT
from examhall.core.database import SessionLocal
from examhall.services.auto_submission import auto_submission_service
from examhall.utils.events import event_bus
from examhall.utils.exam_timer import utcnow

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


async def run_auto_submission_check():
    db = SessionLocal()
    try:
        report = auto_submission_service.run_sweep(db, now=utcnow())
        logger.info(
            f"Auto-submission sweep: {report.checked} checked, {report.auto_submitted} submitted, "
            f"{report.deleted} deleted, {report.failed} failed"
        )
        for entry in report.results:
            if entry.notification:
                await event_bus.publish(EXAM_SUBMITTED_EVENT, entry.notification)
    except Exception as e:
        logger.error(f"Error running auto-submission sweep: {e}", exc_info=True)
    finally:
        db.close()


def start_scheduler():
    if os.getenv("TESTING") == "true":
        logger.info("Scheduler disabled in test environment")
        return

    if not scheduler.running:
        scheduler.add_job(
            run_auto_submission_check,
            'interval',
            seconds=settings.AUTO_SUBMIT_INTERVAL_SECONDS,
            id='exam_auto_submission',
            name='Close expired and abandoned exam sessions',
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        scheduler.start()
        logger.info(f"Scheduler started with auto-submission job every {settings.AUTO_SUBMIT_INTERVAL_SECONDS}s")


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler stopped")
