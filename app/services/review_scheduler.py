import logging
import math
import uuid
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.db import as_utc, utcnow
from app.models.document_control import (
    AuditAction,
    AuditEntityType,
    Document,
    DocumentStatus,
)
from app.observability import OVERDUE_REVIEW_TRIGGERS
from app.services.audit_log import AuditLedger
from app.services.common import coerce_uuid, unit_of_work
from app.services.errors import (
    DocumentControlError,
    NotFoundError,
    PreconditionFailed,
    ValidationError,
)
from app.services.event import EventType, publish_event

logger = logging.getLogger(__name__)

_DAY = timedelta(days=1)

# ISO 9001/45001 recommended review cadence per document category
RECOMMENDED_FREQUENCIES = {
    "Quality Policy": 365,
    "Safety Policy": 365,
    "Procedure": 180,
    "Work Instruction": 90,
    "Form": 90,
    "Record": 365,
    "Manual": 180,
    "Standard": 365,
}

OVERDUE_BUCKETS = ("0-7", "8-30", "31-90", "90+")


def calculate_next_review_date(effective_date: datetime, frequency_days: int) -> datetime:
    """Calendar days, not business days."""
    if frequency_days is None or frequency_days <= 0:
        raise ValidationError("Review frequency must be a positive number of days")
    return effective_date + timedelta(days=frequency_days)


def is_overdue(next_review_date: datetime | None, now: datetime | None = None) -> bool:
    if next_review_date is None:
        return False
    now = now or utcnow()
    return as_utc(next_review_date) < as_utc(now)


def days_overdue(next_review_date: datetime, now: datetime | None = None) -> int:
    now = now or utcnow()
    return math.ceil((as_utc(now) - as_utc(next_review_date)) / _DAY)


def days_until_review(next_review_date: datetime, now: datetime | None = None) -> int:
    now = now or utcnow()
    return math.ceil((as_utc(next_review_date) - as_utc(now)) / _DAY)


def overdue_bucket(days: int) -> str:
    if days <= 7:
        return "0-7"
    if days <= 30:
        return "8-30"
    if days <= 90:
        return "31-90"
    return "90+"


def recommended_review_frequency(category: str | None) -> int:
    if not category:
        return settings.default_review_frequency_days
    return RECOMMENDED_FREQUENCIES.get(category, settings.default_review_frequency_days)


def _schedule_info(document: Document, now: datetime) -> dict:
    until = days_until_review(document.next_review_date, now)
    return {
        "document_id": document.id,
        "title": document.title,
        "next_review_date": document.next_review_date,
        "days_until_review": until,
        "is_overdue": is_overdue(document.next_review_date, now),
        "days_overdue": max(days_overdue(document.next_review_date, now), 0),
    }


class ReviewScheduler:
    @staticmethod
    def overdue_documents(db: Session, now: datetime | None = None) -> list[Document]:
        now = as_utc(now or utcnow())
        stmt = (
            select(Document)
            .where(
                Document.status == DocumentStatus.approved,
                Document.next_review_date.is_not(None),
                Document.next_review_date < now,
            )
            .order_by(Document.next_review_date.asc())
        )
        return db.scalars(stmt).all()

    @staticmethod
    def overdue_review_documents(db: Session, now: datetime | None = None) -> list[dict]:
        now = as_utc(now or utcnow())
        return [
            _schedule_info(doc, now)
            for doc in ReviewScheduler.overdue_documents(db, now)
        ]

    @staticmethod
    def documents_due_for_review(
        db: Session, days_ahead: int | None = None, now: datetime | None = None
    ) -> list[dict]:
        """Approved documents whose review falls within ``days_ahead`` (or is past)."""
        now = as_utc(now or utcnow())
        if days_ahead is None:
            days_ahead = settings.review_upcoming_days
        if days_ahead < 0:
            raise ValidationError("days_ahead must not be negative")
        horizon = now + timedelta(days=days_ahead)
        stmt = (
            select(Document)
            .where(
                Document.status == DocumentStatus.approved,
                Document.next_review_date.is_not(None),
                Document.next_review_date <= horizon,
            )
            .order_by(Document.next_review_date.asc())
        )
        return [_schedule_info(doc, now) for doc in db.scalars(stmt).all()]

    @staticmethod
    def review_schedule_summary(db: Session, now: datetime | None = None) -> dict:
        now = as_utc(now or utcnow())
        one_week = now + timedelta(days=7)
        one_month = now + timedelta(days=30)
        scheduled = db.scalars(
            select(Document).where(
                Document.status == DocumentStatus.approved,
                Document.next_review_date.is_not(None),
            )
        ).all()
        dates = [doc.next_review_date for doc in scheduled]
        return {
            "total_scheduled": len(dates),
            "overdue": sum(1 for d in dates if d < now),
            "due_this_week": sum(1 for d in dates if now <= d <= one_week),
            "due_this_month": sum(1 for d in dates if now <= d <= one_month),
            "upcoming": sum(1 for d in dates if d > one_month),
        }

    @staticmethod
    def update_review_schedule(
        db: Session,
        document_id: str,
        review_frequency_days: int,
        actor_id: str,
    ) -> Document:
        if review_frequency_days is None or review_frequency_days <= 0:
            raise ValidationError("Review frequency must be a positive number of days")
        doc_id = coerce_uuid(document_id, "document_id")
        actor = coerce_uuid(actor_id, "actor_id")
        with unit_of_work(db):
            document = db.get(
                Document, doc_id, with_for_update=True, populate_existing=True
            )
            if not document:
                raise NotFoundError("Document not found")
            if not document.effective_date:
                raise PreconditionFailed(
                    "Document must have an effective date to schedule reviews"
                )
            previous = document.next_review_date
            document.review_frequency_days = review_frequency_days
            document.next_review_date = calculate_next_review_date(
                document.effective_date, review_frequency_days
            )
            AuditLedger.append(
                db,
                AuditEntityType.document,
                document.id,
                actor,
                AuditAction.update,
                {
                    "change": "review_schedule",
                    "review_frequency_days": review_frequency_days,
                    "previous_next_review_date": _iso(previous),
                    "next_review_date": _iso(document.next_review_date),
                },
                document_id=document.id,
            )
        db.refresh(document)
        logger.info(
            "Updated review schedule of document %s to every %d days",
            document.id,
            review_frequency_days,
        )
        _rescheduled(document, actor)
        return document

    @staticmethod
    def reschedule_review(
        db: Session,
        document_id: str,
        actor_id: str,
        from_date: datetime | None = None,
    ) -> Document:
        doc_id = coerce_uuid(document_id, "document_id")
        actor = coerce_uuid(actor_id, "actor_id")
        with unit_of_work(db):
            document = db.get(
                Document, doc_id, with_for_update=True, populate_existing=True
            )
            if not document:
                raise NotFoundError("Document not found")
            if not document.review_frequency_days:
                raise PreconditionFailed("Document must have a review frequency set")
            if not document.effective_date:
                raise PreconditionFailed(
                    "Document must have an effective date to schedule reviews"
                )
            base = from_date or utcnow()
            previous = document.next_review_date
            document.next_review_date = calculate_next_review_date(
                base, document.review_frequency_days
            )
            AuditLedger.append(
                db,
                AuditEntityType.document,
                document.id,
                actor,
                AuditAction.update,
                {
                    "change": "reschedule_review",
                    "previous_next_review_date": _iso(previous),
                    "next_review_date": _iso(document.next_review_date),
                },
                document_id=document.id,
            )
        db.refresh(document)
        logger.info("Rescheduled review of document %s", document.id)
        _rescheduled(document, actor)
        return document

    @staticmethod
    def auto_trigger_overdue_reviews(
        db: Session, system_actor_id: str | uuid.UUID, now: datetime | None = None
    ) -> dict:
        """Move every overdue approved document to under_review.

        Best effort: each document runs in its own unit of work, and a
        failure is recorded without stopping the batch.
        """
        from app.services.document_lifecycle import DocumentLifecycle

        actor = coerce_uuid(system_actor_id, "system_actor_id")
        now = as_utc(now or utcnow())
        candidate_ids = db.scalars(
            select(Document.id)
            .where(
                Document.status == DocumentStatus.approved,
                Document.next_review_date.is_not(None),
                Document.next_review_date < now,
            )
            .order_by(Document.next_review_date.asc())
        ).all()
        # Release the read snapshot before the per-document transactions.
        db.rollback()

        triggered: list[uuid.UUID] = []
        failed: list[uuid.UUID] = []
        for document_id in candidate_ids:
            try:
                DocumentLifecycle.trigger_review(db, document_id, actor)
                triggered.append(document_id)
            except (DocumentControlError, SQLAlchemyError) as exc:
                logger.warning(
                    "Failed to trigger review for document %s: %s", document_id, exc
                )
                failed.append(document_id)

        OVERDUE_REVIEW_TRIGGERS.labels(result="triggered").inc(len(triggered))
        OVERDUE_REVIEW_TRIGGERS.labels(result="failed").inc(len(failed))
        logger.info(
            "Overdue review batch: %d triggered, %d failed",
            len(triggered),
            len(failed),
        )
        return {"triggered": triggered, "failed": failed}


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _rescheduled(document: Document, actor_id: uuid.UUID) -> None:
    publish_event(
        EventType.review_rescheduled,
        entity_type="document",
        entity_id=document.id,
        actor_id=actor_id,
        document_id=document.id,
        payload={"next_review_date": _iso(document.next_review_date)},
    )


review_scheduler = ReviewScheduler()
