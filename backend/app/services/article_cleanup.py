"""
Retention sweep for soft-deleted articles.

Articles stay restorable for ARTICLE_RETENTION_DAYS after a soft delete and
are then removed for good. Runs from the scheduler, never from a request.
"""

import logging
from datetime import datetime, timedelta
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.article import Article
from app.core.config import settings
from app.core.logging_config import log_security_event

logger = logging.getLogger(__name__)


class ArticleCleanupService:
    """Service for purging soft-deleted articles past the retention window."""

    def __init__(self, db: Session):
        self.db = db

    def _cutoff(self, retention_days: int) -> datetime:
        return datetime.utcnow() - timedelta(days=retention_days)

    def purge_deleted_articles(self, retention_days: int = None) -> dict:
        """
        Permanently delete articles soft-deleted before the cutoff.

        Each article is deleted and committed on its own, so one failing row
        is logged and skipped without aborting the rest of the batch.

        Args:
            retention_days: Days a soft-deleted article is kept
                (default: settings.ARTICLE_RETENTION_DAYS)

        Returns:
            dict with purge statistics
        """
        if retention_days is None:
            retention_days = settings.ARTICLE_RETENTION_DAYS

        cutoff_date = self._cutoff(retention_days)
        logger.info(f"Starting article purge (soft-deleted before {cutoff_date.isoformat()})")

        candidate_ids = [
            row.id
            for row in self.db.query(Article.id)
            .filter(Article.deleted_at.isnot(None), Article.deleted_at < cutoff_date)
            .all()
        ]

        purged_ids = []
        failed_ids = []
        for article_id in candidate_ids:
            try:
                deleted = (
                    self.db.query(Article)
                    .filter(Article.id == article_id, Article.deleted_at < cutoff_date)
                    .delete(synchronize_session="fetch")
                )
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                failed_ids.append(article_id)
                logger.error(f"Failed to purge article {article_id}: {e}")
                continue

            if deleted:
                purged_ids.append(article_id)

        if purged_ids:
            log_security_event(
                event_type="article.purge",
                message=f"Purged {len(purged_ids)} soft-deleted articles",
                event_category="data",
                article_ids=purged_ids,
            )
        logger.info(
            f"Article purge finished: {len(purged_ids)} deleted, {len(failed_ids)} failed"
        )

        return {
            "purged_articles": len(purged_ids),
            "article_ids": purged_ids,
            "failed_ids": failed_ids,
            "cutoff_date": cutoff_date.isoformat(),
        }

    def get_purge_stats(self, retention_days: int = None) -> dict:
        """Count what a purge would remove (dry run)."""
        if retention_days is None:
            retention_days = settings.ARTICLE_RETENTION_DAYS

        cutoff_date = self._cutoff(retention_days)

        deleted_query = self.db.query(Article).filter(Article.deleted_at.isnot(None))
        expired = deleted_query.filter(Article.deleted_at < cutoff_date).count()

        return {
            "cutoff_date": cutoff_date.isoformat(),
            "articles_to_purge": expired,
            "soft_deleted_kept": deleted_query.count() - expired,
            "retention_days": retention_days,
        }


def purge_deleted_articles(db: Session, retention_days: int = None) -> dict:
    """
    Convenience function to run the retention sweep.

    Args:
        db: Database session
        retention_days: Days a soft-deleted article is kept

    Returns:
        dict with purge results
    """
    service = ArticleCleanupService(db)
    return service.purge_deleted_articles(retention_days)
