import logging

from app.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    name="app.tasks.reviews.auto_trigger_overdue_reviews", ignore_result=True
)
def auto_trigger_overdue_reviews() -> dict | None:
    """Periodic task moving approved documents past their review date to under_review.

    Runs as the configured system actor. Per-document failures are logged and
    reported; they never stop the batch.
    """
    from app.config import settings
    from app.db import SessionLocal
    from app.services.review_scheduler import ReviewScheduler

    db = SessionLocal()
    try:
        result = ReviewScheduler.auto_trigger_overdue_reviews(
            db, settings.system_actor_id
        )
        if result["failed"]:
            logger.warning(
                "Overdue reviews not triggered for: %s",
                ", ".join(str(doc_id) for doc_id in result["failed"]),
            )
        return {
            "triggered": [str(doc_id) for doc_id in result["triggered"]],
            "failed": [str(doc_id) for doc_id in result["failed"]],
        }
    except Exception as e:
        logger.exception("Failed to run overdue review batch: %s", e)
        return None
    finally:
        db.close()
