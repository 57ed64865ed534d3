"""Read-only reporting over documents, change requests and the audit log.

Nothing here writes; every figure is derived at read time.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.db import as_utc, utcnow
from app.models.document_control import (
    AuditLogEntry,
    ChangeRequest,
    ChangeRequestPriority,
    ChangeRequestStatus,
    Document,
    DocumentStatus,
)
from app.services.errors import ValidationError
from app.services.review_scheduler import (
    OVERDUE_BUCKETS,
    ReviewScheduler,
    days_overdue,
    overdue_bucket,
)

logger = logging.getLogger(__name__)

OPEN_CHANGE_REQUEST_STATES = (
    ChangeRequestStatus.draft,
    ChangeRequestStatus.submitted,
    ChangeRequestStatus.under_review,
    ChangeRequestStatus.approved,
)
COMPLETED_CHANGE_REQUEST_STATES = (
    ChangeRequestStatus.implemented,
    ChangeRequestStatus.rejected,
)
CLOSED_CHANGE_REQUEST_STATES = COMPLETED_CHANGE_REQUEST_STATES + (
    ChangeRequestStatus.cancelled,
)
TOP_CONTRIBUTORS = 10


def _percent(part: int, whole: int) -> float:
    return (part / whole) * 100 if whole else 0.0


def _count(db: Session, stmt) -> int:
    return db.scalar(stmt) or 0


def compliance_score(
    overdue_percentage: float,
    unscheduled_percentage: float,
    pending_percentage: float,
) -> float:
    """Start at 100 and deduct for overdue, unscheduled and pending documents."""
    score = 100.0
    score -= min(overdue_percentage * 0.5, 30)
    score -= min(unscheduled_percentage * 0.3, 20)
    score -= min(pending_percentage * 0.2, 10)
    return max(0.0, score)


class DocumentControlMetrics:
    @staticmethod
    def document_status_metrics(db: Session) -> dict:
        rows = db.execute(
            select(Document.status, func.count(Document.id)).group_by(Document.status)
        ).all()
        by_status = {status.value: 0 for status in DocumentStatus}
        for status, total in rows:
            by_status[status.value] = total
        total = sum(by_status.values())
        return {
            "total": total,
            "by_status": by_status,
            "percentages": {
                key: _percent(value, total) for key, value in by_status.items()
            },
        }

    @staticmethod
    def overdue_review_metrics(db: Session, now: datetime | None = None) -> dict:
        now = as_utc(now or utcnow())
        overdue = []
        for document in ReviewScheduler.overdue_documents(db, now):
            overdue.append(
                {
                    "id": document.id,
                    "title": document.title,
                    "owner_id": document.owner_id,
                    "next_review_date": document.next_review_date,
                    "days_overdue": days_overdue(document.next_review_date, now),
                }
            )
        approved = _count(
            db,
            select(func.count(Document.id)).where(
                Document.status == DocumentStatus.approved
            ),
        )
        by_days = {bucket: 0 for bucket in OVERDUE_BUCKETS}
        for item in overdue:
            by_days[overdue_bucket(item["days_overdue"])] += 1
        total_overdue = len(overdue)
        return {
            "total_overdue": total_overdue,
            "overdue_documents": overdue,
            "percentage_overdue": _percent(total_overdue, approved),
            "average_days_overdue": (
                sum(item["days_overdue"] for item in overdue) / total_overdue
                if total_overdue
                else 0.0
            ),
            "by_days_overdue": by_days,
        }

    @staticmethod
    def change_request_metrics(db: Session) -> dict:
        by_status = {status.value: 0 for status in ChangeRequestStatus}
        for status, total in db.execute(
            select(ChangeRequest.status, func.count(ChangeRequest.id)).group_by(
                ChangeRequest.status
            )
        ).all():
            by_status[status.value] = total

        by_priority = {priority.value: 0 for priority in ChangeRequestPriority}
        for priority, total in db.execute(
            select(ChangeRequest.priority, func.count(ChangeRequest.id)).group_by(
                ChangeRequest.priority
            )
        ).all():
            by_priority[priority.value] = total

        completed = db.execute(
            select(ChangeRequest.created_at, ChangeRequest.updated_at).where(
                ChangeRequest.status.in_(COMPLETED_CHANGE_REQUEST_STATES)
            )
        ).all()
        average_days = 0.0
        if completed:
            elapsed = sum(
                ((updated - created) for created, updated in completed), timedelta()
            )
            average_days = elapsed / len(completed) / timedelta(days=1)

        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "by_priority": by_priority,
            "open_requests": sum(
                by_status[status.value] for status in OPEN_CHANGE_REQUEST_STATES
            ),
            "average_completion_days": average_days,
        }

    @staticmethod
    def activity_metrics(db: Session, now: datetime | None = None) -> dict:
        now = as_utc(now or utcnow())

        def since(delta: timedelta) -> int:
            return _count(
                db,
                select(func.count(AuditLogEntry.id)).where(
                    AuditLogEntry.timestamp >= now - delta
                ),
            )

        window_start = now - timedelta(days=30)
        by_action = {
            action.value: total
            for action, total in db.execute(
                select(AuditLogEntry.action, func.count(AuditLogEntry.id))
                .where(AuditLogEntry.timestamp >= window_start)
                .group_by(AuditLogEntry.action)
            ).all()
        }
        action_count = func.count(AuditLogEntry.id).label("action_count")
        contributors = db.execute(
            select(AuditLogEntry.actor_id, action_count)
            .where(AuditLogEntry.timestamp >= window_start)
            .group_by(AuditLogEntry.actor_id)
            .order_by(action_count.desc(), AuditLogEntry.actor_id.asc())
            .limit(TOP_CONTRIBUTORS)
        ).all()
        return {
            "last_24_hours": since(timedelta(hours=24)),
            "last_7_days": since(timedelta(days=7)),
            "last_30_days": since(timedelta(days=30)),
            "by_action": by_action,
            "top_contributors": [
                {"actor_id": actor_id, "action_count": total}
                for actor_id, total in contributors
            ],
        }

    @staticmethod
    def compliance_metrics(db: Session, now: datetime | None = None) -> dict:
        now = as_utc(now or utcnow())
        documents = db.execute(
            select(
                Document.status,
                Document.next_review_date,
                Document.review_frequency_days,
            )
        ).all()
        total = len(documents)
        scheduled = sum(1 for _, next_review, _ in documents if next_review)
        unscheduled = sum(
            1
            for status, next_review, _ in documents
            if next_review is None and status != DocumentStatus.draft
        )
        approved = sum(
            1 for status, _, _ in documents if status == DocumentStatus.approved
        )
        pending = sum(
            1
            for status, _, _ in documents
            if status
            in (DocumentStatus.pending_review, DocumentStatus.pending_approval)
        )
        frequencies = [freq for _, _, freq in documents if freq is not None]
        overdue = len(ReviewScheduler.overdue_documents(db, now))

        return {
            "documents_with_scheduled_reviews": scheduled,
            "documents_without_scheduled_reviews": unscheduled,
            "approved_documents": approved,
            "documents_pending_approval": pending,
            "average_review_frequency": (
                sum(frequencies) / len(frequencies) if frequencies else 0.0
            ),
            "compliance_score": compliance_score(
                _percent(overdue, approved),
                _percent(unscheduled, total),
                _percent(pending, total),
            ),
        }

    @staticmethod
    def dashboard_metrics(db: Session, now: datetime | None = None) -> dict:
        now = as_utc(now or utcnow())
        return {
            "documents": DocumentControlMetrics.document_status_metrics(db),
            "overdue_reviews": DocumentControlMetrics.overdue_review_metrics(db, now),
            "change_requests": DocumentControlMetrics.change_request_metrics(db),
            "activity": DocumentControlMetrics.activity_metrics(db, now),
            "compliance": DocumentControlMetrics.compliance_metrics(db, now),
        }

    @staticmethod
    def metrics_for_period(db: Session, start: datetime, end: datetime) -> dict:
        start, end = as_utc(start), as_utc(end)
        if start > end:
            raise ValidationError("start must not be after end")
        return {
            "documents_created": _count(
                db,
                select(func.count(Document.id)).where(
                    Document.created_at >= start, Document.created_at <= end
                ),
            ),
            "documents_approved": _count(
                db,
                select(func.count(Document.id)).where(
                    Document.status == DocumentStatus.approved,
                    Document.effective_date >= start,
                    Document.effective_date <= end,
                ),
            ),
            "change_requests_created": _count(
                db,
                select(func.count(ChangeRequest.id)).where(
                    ChangeRequest.created_at >= start, ChangeRequest.created_at <= end
                ),
            ),
            "change_requests_completed": _count(
                db,
                select(func.count(ChangeRequest.id)).where(
                    ChangeRequest.status.in_(CLOSED_CHANGE_REQUEST_STATES),
                    ChangeRequest.updated_at >= start,
                    ChangeRequest.updated_at <= end,
                ),
            ),
            "total_activity": _count(
                db,
                select(func.count(AuditLogEntry.id)).where(
                    AuditLogEntry.timestamp >= start, AuditLogEntry.timestamp <= end
                ),
            ),
        }


document_control_metrics = DocumentControlMetrics()
