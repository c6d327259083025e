from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from app.core.database import SessionLocal
from app.core.config import settings
from app.services.article_cleanup import purge_deleted_articles
import logging

logger = logging.getLogger(__name__)


class PurgeScheduler:
    def __init__(self, session_factory=SessionLocal):
        self.scheduler = AsyncIOScheduler()
        self.session_factory = session_factory

    async def run_purge(self):
        """Purge soft-deleted articles past the retention window."""
        db = self.session_factory()
        try:
            result = purge_deleted_articles(db)
            logger.info(
                f"Scheduled purge completed: {result['purged_articles']} articles removed"
            )
        except Exception as e:
            logger.error(f"Error in scheduled purge: {str(e)}")
        finally:
            db.close()

    def start(self):
        """Start the scheduler."""
        self.scheduler.add_job(
            self.run_purge,
            trigger=IntervalTrigger(hours=settings.PURGE_INTERVAL_HOURS),
            id="purge_deleted_articles",
            name="Purge soft-deleted articles",
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info(
            f"Scheduler started with interval: {settings.PURGE_INTERVAL_HOURS} hours"
        )

    def shutdown(self):
        """Shutdown the scheduler."""
        self.scheduler.shutdown()
        logger.info("Scheduler shutdown")


# Global scheduler instance
scheduler = PurgeScheduler()
