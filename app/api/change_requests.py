import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_actor_id, get_db
from app.schemas.common import ListResponse
from app.schemas.document_control import (
    ChangeRequestApprovalRead,
    ChangeRequestCommentCreate,
    ChangeRequestCommentRead,
    ChangeRequestCreate,
    ChangeRequestDecisionRequest,
    ChangeRequestRead,
    ChangeRequestReasonRequest,
    ChangeRequestRejectRequest,
    ImplementChangeRequestRequest,
    SubmitChangeRequestRequest,
    WorkflowStageRead,
)
from app.services import change_request_workflow as cr_service

router = APIRouter(prefix="/document-control", tags=["change-requests"])


@router.post(
    "/change-requests",
    response_model=ChangeRequestRead,
    status_code=status.HTTP_201_CREATED,
)
def create_change_request(
    payload: ChangeRequestCreate,
    db: Session = Depends(get_db),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    return cr_service.change_request_workflow.create(db, payload, actor_id)


@router.get("/change-requests", response_model=ListResponse[ChangeRequestRead])
def list_change_requests(
    status: str | None = None,
    priority: str | None = None,
    document_id: str | None = None,
    requested_by: str | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return cr_service.change_request_workflow.list_response(
        db,
        status,
        priority,
        document_id,
        requested_by,
        order_by,
        order_dir,
        limit,
        offset,
    )


@router.get("/change-requests/{change_request_id}", response_model=ChangeRequestRead)
def get_change_request(change_request_id: str, db: Session = Depends(get_db)):
    return cr_service.change_request_workflow.get(db, change_request_id)


@router.get(
    "/change-requests/{change_request_id}/workflow", response_model=WorkflowStageRead
)
def get_workflow_stage(change_request_id: str, db: Session = Depends(get_db)):
    return cr_service.change_request_workflow.get_workflow_stage(db, change_request_id)


@router.get(
    "/change-requests/{change_request_id}/approvals",
    response_model=list[ChangeRequestApprovalRead],
)
def list_approvals(change_request_id: str, db: Session = Depends(get_db)):
    return cr_service.change_request_workflow.list_approvals(db, change_request_id)


# ------------------------------------------------------------------
# Comments
# ------------------------------------------------------------------


@router.post(
    "/change-requests/{change_request_id}/comments",
    response_model=ChangeRequestCommentRead,
    status_code=status.HTTP_201_CREATED,
)
def add_comment(
    change_request_id: str,
    payload: ChangeRequestCommentCreate,
    db: Session = Depends(get_db),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    return cr_service.change_request_workflow.add_comment(
        db, change_request_id, payload.comment, actor_id
    )


@router.get(
    "/change-requests/{change_request_id}/comments",
    response_model=list[ChangeRequestCommentRead],
)
def list_comments(change_request_id: str, db: Session = Depends(get_db)):
    return cr_service.change_request_workflow.list_comments(db, change_request_id)


# ------------------------------------------------------------------
# Workflow operations
# ------------------------------------------------------------------


@router.post(
    "/change-requests/{change_request_id}/submit", response_model=ChangeRequestRead
)
def submit(
    change_request_id: str,
    payload: SubmitChangeRequestRequest,
    db: Session = Depends(get_db),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    return cr_service.change_request_workflow.submit(
        db, change_request_id, payload.approver_ids, actor_id
    )


@router.post(
    "/change-requests/{change_request_id}/start-review",
    response_model=ChangeRequestRead,
)
def start_review(
    change_request_id: str,
    db: Session = Depends(get_db),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    return cr_service.change_request_workflow.start_review(
        db, change_request_id, actor_id
    )


@router.post(
    "/change-requests/{change_request_id}/approvals/{approval_id}/approve",
    response_model=ChangeRequestRead,
)
def approve(
    change_request_id: str,
    approval_id: str,
    payload: ChangeRequestDecisionRequest,
    db: Session = Depends(get_db),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    return cr_service.change_request_workflow.approve(
        db, change_request_id, approval_id, actor_id, notes=payload.notes
    )


@router.post(
    "/change-requests/{change_request_id}/approvals/{approval_id}/reject",
    response_model=ChangeRequestRead,
)
def reject(
    change_request_id: str,
    approval_id: str,
    payload: ChangeRequestRejectRequest,
    db: Session = Depends(get_db),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    return cr_service.change_request_workflow.reject(
        db, change_request_id, approval_id, payload.notes, actor_id
    )


@router.post(
    "/change-requests/{change_request_id}/cancel", response_model=ChangeRequestRead
)
def cancel(
    change_request_id: str,
    payload: ChangeRequestReasonRequest,
    db: Session = Depends(get_db),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    return cr_service.change_request_workflow.cancel(
        db, change_request_id, payload.reason, actor_id
    )


@router.post(
    "/change-requests/{change_request_id}/implement",
    response_model=ChangeRequestRead,
)
def mark_implemented(
    change_request_id: str,
    payload: ImplementChangeRequestRequest,
    db: Session = Depends(get_db),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    return cr_service.change_request_workflow.mark_implemented(
        db,
        change_request_id,
        payload.implementation_notes,
        actor_id,
        implemented_version_id=payload.implemented_version_id,
    )


@router.post(
    "/change-requests/{change_request_id}/return-to-draft",
    response_model=ChangeRequestRead,
)
def return_to_draft(
    change_request_id: str,
    payload: ChangeRequestReasonRequest,
    db: Session = Depends(get_db),
    actor_id: uuid.UUID = Depends(get_actor_id),
):
    return cr_service.change_request_workflow.return_to_draft(
        db, change_request_id, payload.reason, actor_id
    )
