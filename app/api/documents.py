import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_actor_id, get_db
from app.config import settings
from app.schemas.common import ListResponse
from app.schemas.document_control import (
    ActorRolesRead,
    ApproveRequest,
    DocumentApprovalRead,
    DocumentCategoryCreate,
    DocumentCategoryRead,
    DocumentCreate,
    DocumentRead,
    DocumentVersionCreate,
    DocumentVersionRead,
    DuplicateVersionCheck,
    OverdueTriggerResult,
    RejectRequest,
    RescheduleReviewRequest,
    ReturnToDraftRequest,
    ReviewScheduleInfo,
    ReviewScheduleSummary,
    ReviewScheduleUpdate,
    SubmitForApprovalRequest,
    SubmitForReviewRequest,
    VersionComparisonRead,
    VersionHistorySummaryRead,
    VersionStatisticsRead,
    VersionTimelineEntry,
    WorkflowStageRead,
)
from app.services import document_lifecycle as lifecycle_service
from app.services import review_scheduler as scheduler_service
from app.services import version_history as version_service

router = APIRouter(prefix="/document-control", tags=["document-control"])


# ------------------------------------------------------------------
# Categories
# ------------------------------------------------------------------


@router.post(
    "/categories",
    response_model=DocumentCategoryRead,
    status_code=status.HTTP_201_CREATED,
)
def create_category(payload: DocumentCategoryCreate, db: Session = Depends(get_db)):
    return lifecycle_service.document_categories.create(db, payload)


@router.get("/categories", response_model=ListResponse[DocumentCategoryRead])
def list_categories(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return lifecycle_service.document_categories.list_response(db, limit, offset)


@router.get("/categories/{category_id}", response_model=DocumentCategoryRead)
def get_category(category_id: str, db: Session = Depends(get_db)):
    return lifecycle_service.document_categories.get(db, category_id)


# ------------------------------------------------------------------
# Documents
# ------------------------------------------------------------------


@router.post(
    "/documents", response_model=DocumentRead, status_code=status.HTTP_201_CREATED
)
def create_document(
    payload: DocumentCreate,
    db: Session = Depends(get_db),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    return lifecycle_service.document_lifecycle.create_document(db, payload, actor_id)


@router.get("/documents", response_model=ListResponse[DocumentRead])
def list_documents(
    status: str | None = None,
    owner_id: str | None = None,
    category_id: str | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return lifecycle_service.document_lifecycle.list_response(
        db, status, owner_id, category_id, order_by, order_dir, limit, offset
    )


@router.get("/documents/{document_id}", response_model=DocumentRead)
def get_document(document_id: str, db: Session = Depends(get_db)):
    return lifecycle_service.document_lifecycle.get(db, document_id)


@router.post(
    "/documents/{document_id}/versions",
    response_model=DocumentVersionRead,
    status_code=status.HTTP_201_CREATED,
)
def upload_version(
    document_id: str,
    payload: DocumentVersionCreate,
    db: Session = Depends(get_db),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    return lifecycle_service.document_lifecycle.upload_version(
        db, document_id, payload, actor_id
    )


@router.get(
    "/documents/{document_id}/versions", response_model=list[DocumentVersionRead]
)
def list_versions(document_id: str, db: Session = Depends(get_db)):
    return lifecycle_service.document_lifecycle.list_versions(db, document_id)


@router.get(
    "/documents/{document_id}/versions/compare",
    response_model=VersionComparisonRead,
)
def compare_versions(
    document_id: str,
    version_id: str,
    other_version_id: str,
    db: Session = Depends(get_db),
):
    return version_service.version_history.compare_versions(
        db, document_id, version_id, other_version_id
    )


@router.get(
    "/documents/{document_id}/versions/summary",
    response_model=VersionHistorySummaryRead,
)
def version_history_summary(document_id: str, db: Session = Depends(get_db)):
    return version_service.version_history.version_history_summary(db, document_id)


@router.get(
    "/documents/{document_id}/versions/timeline",
    response_model=list[VersionTimelineEntry],
)
def version_timeline(document_id: str, db: Session = Depends(get_db)):
    return version_service.version_history.version_timeline(db, document_id)


@router.get(
    "/documents/{document_id}/versions/statistics",
    response_model=VersionStatisticsRead,
)
def version_statistics(document_id: str, db: Session = Depends(get_db)):
    return version_service.version_history.version_statistics(db, document_id)


@router.get(
    "/documents/{document_id}/versions/duplicate",
    response_model=DuplicateVersionCheck,
)
def duplicate_check(
    document_id: str,
    file_hash: str = Query(min_length=1, max_length=128),
    db: Session = Depends(get_db),
):
    return version_service.version_history.duplicate_check(db, document_id, file_hash)


@router.get(
    "/documents/{document_id}/approvals", response_model=list[DocumentApprovalRead]
)
def list_approvals(
    document_id: str,
    version_id: str | None = None,
    db: Session = Depends(get_db),
):
    return lifecycle_service.document_lifecycle.list_approvals(
        db, document_id, version_id
    )


@router.get("/documents/{document_id}/workflow", response_model=WorkflowStageRead)
def get_workflow_stage(document_id: str, db: Session = Depends(get_db)):
    return lifecycle_service.document_lifecycle.get_workflow_stage(db, document_id)


@router.get("/documents/{document_id}/roles", response_model=ActorRolesRead)
def get_my_roles(
    document_id: str,
    role: str | None = None,
    db: Session = Depends(get_db),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    roles = lifecycle_service.document_lifecycle.actor_roles(db, document_id, actor_id)
    has_role = None
    if role is not None:
        has_role = lifecycle_service.document_lifecycle.has_role(
            db, document_id, actor_id, role
        )
    return {
        "document_id": document_id,
        "actor_id": actor_id,
        "roles": roles,
        "has_role": has_role,
    }


@router.get("/approvals/pending", response_model=list[DocumentApprovalRead])
def list_my_pending_approvals(
    db: Session = Depends(get_db),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    return lifecycle_service.document_lifecycle.pending_approvals_for(db, actor_id)


# ------------------------------------------------------------------
# Workflow operations
# ------------------------------------------------------------------


@router.post("/documents/{document_id}/submit-for-review", response_model=DocumentRead)
def submit_for_review(
    document_id: str,
    payload: SubmitForReviewRequest,
    db: Session = Depends(get_db),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    return lifecycle_service.document_lifecycle.submit_for_review(
        db, document_id, payload.reviewer_ids, actor_id
    )


@router.post(
    "/documents/{document_id}/submit-for-approval", response_model=DocumentRead
)
def submit_for_approval(
    document_id: str,
    payload: SubmitForApprovalRequest,
    db: Session = Depends(get_db),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    return lifecycle_service.document_lifecycle.submit_for_approval(
        db, document_id, payload.approver_ids, actor_id
    )


@router.post(
    "/documents/{document_id}/approvals/{approval_id}/approve",
    response_model=DocumentRead,
)
def approve(
    document_id: str,
    approval_id: str,
    payload: ApproveRequest,
    db: Session = Depends(get_db),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    return lifecycle_service.document_lifecycle.approve(
        db,
        document_id,
        approval_id,
        actor_id,
        notes=payload.notes,
        auto_approve=payload.auto_approve,
    )


@router.post(
    "/documents/{document_id}/approvals/{approval_id}/reject",
    response_model=DocumentRead,
)
def reject(
    document_id: str,
    approval_id: str,
    payload: RejectRequest,
    db: Session = Depends(get_db),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    return lifecycle_service.document_lifecycle.reject(
        db,
        document_id,
        approval_id,
        payload.notes,
        actor_id,
        request_changes=payload.request_changes,
    )


@router.post("/documents/{document_id}/trigger-review", response_model=DocumentRead)
def trigger_review(
    document_id: str,
    db: Session = Depends(get_db),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    return lifecycle_service.document_lifecycle.trigger_review(db, document_id, actor_id)


@router.post("/documents/{document_id}/archive", response_model=DocumentRead)
def archive(
    document_id: str,
    db: Session = Depends(get_db),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    return lifecycle_service.document_lifecycle.archive(db, document_id, actor_id)


@router.post("/documents/{document_id}/return-to-draft", response_model=DocumentRead)
def return_to_draft(
    document_id: str,
    payload: ReturnToDraftRequest,
    db: Session = Depends(get_db),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    return lifecycle_service.document_lifecycle.return_to_draft(
        db, document_id, actor_id, reason=payload.reason
    )


# ------------------------------------------------------------------
# Review schedule
# ------------------------------------------------------------------


@router.put("/documents/{document_id}/review-schedule", response_model=DocumentRead)
def update_review_schedule(
    document_id: str,
    payload: ReviewScheduleUpdate,
    db: Session = Depends(get_db),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    return scheduler_service.review_scheduler.update_review_schedule(
        db, document_id, payload.review_frequency_days, actor_id
    )


@router.post(
    "/documents/{document_id}/reschedule-review", response_model=DocumentRead
)
def reschedule_review(
    document_id: str,
    payload: RescheduleReviewRequest,
    db: Session = Depends(get_db),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    return scheduler_service.review_scheduler.reschedule_review(
        db, document_id, actor_id, from_date=payload.from_date
    )


@router.get("/reviews/overdue", response_model=list[ReviewScheduleInfo])
def list_overdue_reviews(db: Session = Depends(get_db)):
    return scheduler_service.review_scheduler.overdue_review_documents(db)


@router.get("/reviews/due", response_model=list[ReviewScheduleInfo])
def list_due_reviews(
    days_ahead: int = Query(default=settings.review_upcoming_days, ge=0, le=3650),
    db: Session = Depends(get_db),
):
    return scheduler_service.review_scheduler.documents_due_for_review(
        db, days_ahead=days_ahead
    )


@router.get("/reviews/summary", response_model=ReviewScheduleSummary)
def review_summary(db: Session = Depends(get_db)):
    return scheduler_service.review_scheduler.review_schedule_summary(db)


@router.post("/reviews/trigger-overdue", response_model=OverdueTriggerResult)
def trigger_overdue_reviews(
    db: Session = Depends(get_db),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    return scheduler_service.review_scheduler.auto_trigger_overdue_reviews(
        db, actor_id
    )
