from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db import utcnow
from app.models.document_control import (
    AuditAction,
    AuditEntityType,
    ChangeRequest,
    ChangeRequestApproval,
    ChangeRequestApprovalStatus,
    ChangeRequestComment,
    ChangeRequestPriority,
    ChangeRequestStatus,
    Document,
    DocumentVersion,
)
from app.observability import WORKFLOW_TRANSITIONS
from app.schemas.document_control import ChangeRequestCreate
from app.services.approval_aggregator import AggregateOutcome, aggregate
from app.services.audit_log import AuditLedger
from app.services.common import (
    apply_ordering,
    apply_pagination,
    coerce_uuid,
    coerce_uuid_list,
    unit_of_work,
)
from app.services.errors import (
    InvalidStateTransition,
    NotFoundError,
    PreconditionFailed,
    ValidationError,
)
from app.services.event import EventType, publish_event
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)

VALID_TRANSITIONS: dict[ChangeRequestStatus, tuple[ChangeRequestStatus, ...]] = {
    ChangeRequestStatus.draft: (
        ChangeRequestStatus.submitted,
        ChangeRequestStatus.cancelled,
    ),
    ChangeRequestStatus.submitted: (
        ChangeRequestStatus.under_review,
        ChangeRequestStatus.cancelled,
    ),
    ChangeRequestStatus.under_review: (
        ChangeRequestStatus.approved,
        ChangeRequestStatus.rejected,
        ChangeRequestStatus.draft,
    ),
    ChangeRequestStatus.approved: (ChangeRequestStatus.implemented,),
    ChangeRequestStatus.rejected: (
        ChangeRequestStatus.draft,
        ChangeRequestStatus.cancelled,
    ),
    ChangeRequestStatus.implemented: (),
    ChangeRequestStatus.cancelled: (),
}


CLOSED_STATES = frozenset(
    {ChangeRequestStatus.implemented, ChangeRequestStatus.cancelled}
)


def is_valid_transition(current, target) -> bool:
    current = ChangeRequestStatus(getattr(current, "value", current))
    target = ChangeRequestStatus(getattr(target, "value", target))
    return target in VALID_TRANSITIONS.get(current, ())


def _require_transition(change_request: ChangeRequest, target: ChangeRequestStatus):
    if not is_valid_transition(change_request.status, target):
        raise InvalidStateTransition(
            change_request.status.value, target.value, entity="change request"
        )


def _validate_priority(value) -> ChangeRequestPriority:
    try:
        return ChangeRequestPriority(getattr(value, "value", value))
    except ValueError:
        raise ValidationError(f"Invalid priority: {value}")


def _load(db: Session, change_request_id: uuid.UUID) -> ChangeRequest:
    change_request = db.get(
        ChangeRequest, change_request_id, with_for_update=True, populate_existing=True
    )
    if not change_request:
        raise NotFoundError("Change request not found")
    return change_request


def _load_approval(
    db: Session, change_request: ChangeRequest, approval_id: uuid.UUID
) -> ChangeRequestApproval:
    approval = db.get(ChangeRequestApproval, approval_id, populate_existing=True)
    if not approval or approval.change_request_id != change_request.id:
        raise NotFoundError("Approval not found")
    if approval.round_number != change_request.approval_round:
        raise PreconditionFailed(
            "Approval belongs to a superseded approval round",
            {"approval_id": str(approval.id)},
        )
    if approval.status != ChangeRequestApprovalStatus.pending:
        raise PreconditionFailed(
            f"Approval already decided: {approval.status.value}",
            {"approval_id": str(approval.id), "status": approval.status.value},
        )
    return approval


def _pending(db: Session, change_request: ChangeRequest) -> list[ChangeRequestApproval]:
    stmt = select(ChangeRequestApproval).where(
        ChangeRequestApproval.change_request_id == change_request.id,
        ChangeRequestApproval.status == ChangeRequestApprovalStatus.pending,
    )
    return db.scalars(stmt).all()


def _round(db: Session, change_request: ChangeRequest) -> list[ChangeRequestApproval]:
    stmt = select(ChangeRequestApproval).where(
        ChangeRequestApproval.change_request_id == change_request.id,
        ChangeRequestApproval.round_number == change_request.approval_round,
    )
    return db.scalars(stmt).all()


def _cancel_pending(
    db: Session, change_request: ChangeRequest, note: str
) -> list[str]:
    now = utcnow()
    cancelled = []
    for approval in _pending(db, change_request):
        approval.status = ChangeRequestApprovalStatus.rejected
        approval.notes = note
        approval.decided_at = now
        cancelled.append(str(approval.id))
    return cancelled


def _touch(change_request: ChangeRequest) -> None:
    change_request.updated_at = utcnow()


def _audit(
    db: Session,
    change_request: ChangeRequest,
    actor_id: uuid.UUID,
    action: AuditAction,
    details: dict | None = None,
):
    return AuditLedger.append(
        db,
        AuditEntityType.change_request,
        change_request.id,
        actor_id,
        action,
        details,
        document_id=change_request.document_id,
    )


def _committed(
    change_request: ChangeRequest,
    actor_id: uuid.UUID,
    action: AuditAction,
    event_type: EventType = EventType.change_request_status_changed,
    payload: dict | None = None,
) -> None:
    WORKFLOW_TRANSITIONS.labels(
        entity_type="change_request", action=action.value
    ).inc()
    publish_event(
        event_type,
        entity_type="change_request",
        entity_id=change_request.id,
        actor_id=actor_id,
        document_id=change_request.document_id,
        payload=payload or {"status": change_request.status.value},
    )


class ChangeRequestWorkflow(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: ChangeRequestCreate, actor_id: str) -> ChangeRequest:
        actor = coerce_uuid(actor_id, "actor_id")
        priority = _validate_priority(payload.priority)
        with unit_of_work(db):
            if payload.document_id is not None:
                if not db.get(Document, payload.document_id):
                    raise NotFoundError("Document not found")
            change_request = ChangeRequest(
                document_id=payload.document_id,
                title=payload.title,
                description=payload.description,
                requested_by=actor,
                priority=priority,
                status=ChangeRequestStatus.draft,
            )
            db.add(change_request)
            db.flush()
            _audit(
                db,
                change_request,
                actor,
                AuditAction.create,
                {"title": change_request.title, "priority": priority.value},
            )
        db.refresh(change_request)
        logger.info("Created change request %s", change_request.id)
        _committed(
            change_request, actor, AuditAction.create, EventType.change_request_created
        )
        return change_request

    @staticmethod
    def add_comment(
        db: Session, change_request_id: str, comment: str, actor_id: str
    ) -> ChangeRequestComment:
        if not comment or not comment.strip():
            raise ValidationError("Comment must not be empty")
        cr_id = coerce_uuid(change_request_id, "change_request_id")
        actor = coerce_uuid(actor_id, "actor_id")
        with unit_of_work(db):
            change_request = _load(db, cr_id)
            if change_request.status in CLOSED_STATES:
                raise PreconditionFailed(
                    "Closed change requests do not accept comments",
                    {"current_status": change_request.status.value},
                )
            record = ChangeRequestComment(
                change_request_id=change_request.id, user_id=actor, comment=comment
            )
            db.add(record)
            db.flush()
            _touch(change_request)
            _audit(
                db,
                change_request,
                actor,
                AuditAction.comment,
                {"comment_id": str(record.id)},
            )
        db.refresh(record)
        _committed(
            change_request,
            actor,
            AuditAction.comment,
            EventType.change_request_commented,
            {"comment_id": str(record.id)},
        )
        return record

    @staticmethod
    def submit(
        db: Session, change_request_id: str, approver_ids: list, actor_id: str
    ) -> ChangeRequest:
        cr_id = coerce_uuid(change_request_id, "change_request_id")
        actor = coerce_uuid(actor_id, "actor_id")
        approvers = coerce_uuid_list(approver_ids, "approver_ids")
        with unit_of_work(db):
            change_request = _load(db, cr_id)
            _require_transition(change_request, ChangeRequestStatus.submitted)
            change_request.approval_round += 1
            approvals = [
                ChangeRequestApproval(
                    change_request_id=change_request.id,
                    round_number=change_request.approval_round,
                    approver_id=approver_id,
                    status=ChangeRequestApprovalStatus.pending,
                )
                for approver_id in approvers
            ]
            db.add_all(approvals)
            change_request.status = ChangeRequestStatus.submitted
            _touch(change_request)
            db.flush()
            _audit(
                db,
                change_request,
                actor,
                AuditAction.submit,
                {
                    "approvers": [str(a) for a in approvers],
                    "approval_ids": [str(a.id) for a in approvals],
                    "round_number": change_request.approval_round,
                },
            )
        db.refresh(change_request)
        logger.info(
            "Change request %s submitted to %d approvers", cr_id, len(approvers)
        )
        _committed(change_request, actor, AuditAction.submit)
        return change_request

    @staticmethod
    def start_review(db: Session, change_request_id: str, actor_id: str) -> ChangeRequest:
        cr_id = coerce_uuid(change_request_id, "change_request_id")
        actor = coerce_uuid(actor_id, "actor_id")
        with unit_of_work(db):
            change_request = _load(db, cr_id)
            _require_transition(change_request, ChangeRequestStatus.under_review)
            change_request.status = ChangeRequestStatus.under_review
            _touch(change_request)
            _audit(db, change_request, actor, AuditAction.start_review)
        db.refresh(change_request)
        _committed(change_request, actor, AuditAction.start_review)
        return change_request

    @staticmethod
    def approve(
        db: Session,
        change_request_id: str,
        approval_id: str,
        actor_id: str,
        notes: str | None = None,
    ) -> ChangeRequest:
        cr_id = coerce_uuid(change_request_id, "change_request_id")
        appr_id = coerce_uuid(approval_id, "approval_id")
        actor = coerce_uuid(actor_id, "actor_id")
        with unit_of_work(db):
            change_request = _load(db, cr_id)
            if change_request.status != ChangeRequestStatus.under_review:
                raise InvalidStateTransition(
                    change_request.status.value,
                    ChangeRequestStatus.approved.value,
                    entity="change request",
                )
            approval = _load_approval(db, change_request, appr_id)
            approval.status = ChangeRequestApprovalStatus.approved
            approval.notes = notes
            approval.decided_at = utcnow()
            db.flush()

            outcome = aggregate(_round(db, change_request))
            previous = change_request.status
            if outcome == AggregateOutcome.approved:
                change_request.status = ChangeRequestStatus.approved
            elif outcome == AggregateOutcome.rejected:
                change_request.status = ChangeRequestStatus.rejected
            _touch(change_request)
            _audit(
                db,
                change_request,
                actor,
                AuditAction.approve,
                {
                    "approval_id": str(approval.id),
                    "notes": notes,
                    "outcome": outcome.value,
                    "previous_status": previous.value,
                    "new_status": change_request.status.value,
                },
            )
        db.refresh(change_request)
        logger.info(
            "Approval %s on change request %s recorded (%s)",
            appr_id,
            cr_id,
            change_request.status.value,
        )
        _committed(change_request, actor, AuditAction.approve)
        return change_request

    @staticmethod
    def reject(
        db: Session,
        change_request_id: str,
        approval_id: str,
        notes: str,
        actor_id: str,
    ) -> ChangeRequest:
        if not notes or not notes.strip():
            raise ValidationError("Rejection notes are required")
        cr_id = coerce_uuid(change_request_id, "change_request_id")
        appr_id = coerce_uuid(approval_id, "approval_id")
        actor = coerce_uuid(actor_id, "actor_id")
        with unit_of_work(db):
            change_request = _load(db, cr_id)
            if change_request.status != ChangeRequestStatus.under_review:
                raise InvalidStateTransition(
                    change_request.status.value,
                    ChangeRequestStatus.rejected.value,
                    entity="change request",
                )
            approval = _load_approval(db, change_request, appr_id)
            approval.status = ChangeRequestApprovalStatus.rejected
            approval.notes = notes
            approval.decided_at = utcnow()
            db.flush()
            closed = _cancel_pending(
                db, change_request, "Approval round closed by rejection"
            )
            change_request.status = ChangeRequestStatus.rejected
            _touch(change_request)
            _audit(
                db,
                change_request,
                actor,
                AuditAction.reject,
                {
                    "approval_id": str(approval.id),
                    "notes": notes,
                    "closed_approval_ids": closed,
                },
            )
        db.refresh(change_request)
        logger.info("Change request %s rejected on approval %s", cr_id, appr_id)
        _committed(change_request, actor, AuditAction.reject)
        return change_request

    @staticmethod
    def cancel(
        db: Session, change_request_id: str, reason: str, actor_id: str
    ) -> ChangeRequest:
        cr_id = coerce_uuid(change_request_id, "change_request_id")
        actor = coerce_uuid(actor_id, "actor_id")
        with unit_of_work(db):
            change_request = _load(db, cr_id)
            _require_transition(change_request, ChangeRequestStatus.cancelled)
            cancelled = _cancel_pending(
                db, change_request, f"Change request cancelled: {reason}"
            )
            change_request.status = ChangeRequestStatus.cancelled
            _touch(change_request)
            _audit(
                db,
                change_request,
                actor,
                AuditAction.cancel,
                {"reason": reason, "cancelled_approval_ids": cancelled},
            )
        db.refresh(change_request)
        logger.info("Change request %s cancelled", cr_id)
        _committed(change_request, actor, AuditAction.cancel)
        return change_request

    @staticmethod
    def mark_implemented(
        db: Session,
        change_request_id: str,
        implementation_notes: str,
        actor_id: str,
        implemented_version_id: str | None = None,
    ) -> ChangeRequest:
        if not implementation_notes or not implementation_notes.strip():
            raise ValidationError("Implementation notes are required")
        cr_id = coerce_uuid(change_request_id, "change_request_id")
        actor = coerce_uuid(actor_id, "actor_id")
        version_id = coerce_uuid(implemented_version_id, "implemented_version_id")
        with unit_of_work(db):
            change_request = _load(db, cr_id)
            _require_transition(change_request, ChangeRequestStatus.implemented)
            if version_id is not None:
                version = db.get(DocumentVersion, version_id)
                if not version:
                    raise NotFoundError("Document version not found")
                if version.document_id != change_request.document_id:
                    raise PreconditionFailed(
                        "Implemented version does not belong to the linked document"
                    )
                change_request.implemented_version_id = version.id
            db.add(
                ChangeRequestComment(
                    change_request_id=change_request.id,
                    user_id=actor,
                    comment=f"Implementation: {implementation_notes}",
                )
            )
            change_request.status = ChangeRequestStatus.implemented
            _touch(change_request)
            _audit(
                db,
                change_request,
                actor,
                AuditAction.implement,
                {
                    "implementation_notes": implementation_notes,
                    "implemented_version_id": str(version_id) if version_id else None,
                },
            )
        db.refresh(change_request)
        logger.info("Change request %s implemented", cr_id)
        _committed(change_request, actor, AuditAction.implement)
        return change_request

    @staticmethod
    def return_to_draft(
        db: Session, change_request_id: str, reason: str, actor_id: str
    ) -> ChangeRequest:
        cr_id = coerce_uuid(change_request_id, "change_request_id")
        actor = coerce_uuid(actor_id, "actor_id")
        with unit_of_work(db):
            change_request = _load(db, cr_id)
            previous = change_request.status
            _require_transition(change_request, ChangeRequestStatus.draft)
            cancelled = _cancel_pending(
                db, change_request, reason or "Returned to draft"
            )
            change_request.status = ChangeRequestStatus.draft
            _touch(change_request)
            _audit(
                db,
                change_request,
                actor,
                AuditAction.return_to_draft,
                {
                    "reason": reason,
                    "cancelled_approval_ids": cancelled,
                    "previous_status": previous.value,
                },
            )
        db.refresh(change_request)
        _committed(change_request, actor, AuditAction.return_to_draft)
        return change_request

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @staticmethod
    def get(db: Session, change_request_id: str) -> ChangeRequest:
        change_request = db.get(
            ChangeRequest, coerce_uuid(change_request_id, "change_request_id")
        )
        if not change_request:
            raise NotFoundError("Change request not found")
        return change_request

    @staticmethod
    def list(
        db: Session,
        status: str | None,
        priority: str | None,
        document_id: str | None,
        requested_by: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[ChangeRequest]:
        stmt = select(ChangeRequest)
        if status is not None:
            try:
                stmt = stmt.where(ChangeRequest.status == ChangeRequestStatus(status))
            except ValueError:
                raise ValidationError(f"Invalid status: {status}")
        if priority is not None:
            stmt = stmt.where(ChangeRequest.priority == _validate_priority(priority))
        if document_id is not None:
            stmt = stmt.where(
                ChangeRequest.document_id == coerce_uuid(document_id, "document_id")
            )
        if requested_by is not None:
            stmt = stmt.where(
                ChangeRequest.requested_by == coerce_uuid(requested_by, "requested_by")
            )
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {
                "created_at": ChangeRequest.created_at,
                "updated_at": ChangeRequest.updated_at,
                "title": ChangeRequest.title,
            },
        )
        return db.scalars(apply_pagination(stmt, limit, offset)).all()

    @staticmethod
    def list_comments(db: Session, change_request_id: str) -> list[ChangeRequestComment]:
        change_request = ChangeRequestWorkflow.get(db, change_request_id)
        stmt = (
            select(ChangeRequestComment)
            .where(ChangeRequestComment.change_request_id == change_request.id)
            .order_by(ChangeRequestComment.created_at.asc())
        )
        return db.scalars(stmt).all()

    @staticmethod
    def list_approvals(
        db: Session, change_request_id: str
    ) -> list[ChangeRequestApproval]:
        change_request = ChangeRequestWorkflow.get(db, change_request_id)
        stmt = (
            select(ChangeRequestApproval)
            .where(ChangeRequestApproval.change_request_id == change_request.id)
            .order_by(
                ChangeRequestApproval.round_number.asc(),
                ChangeRequestApproval.created_at.asc(),
            )
        )
        return db.scalars(stmt).all()

    @staticmethod
    def get_workflow_stage(db: Session, change_request_id: str) -> dict:
        change_request = ChangeRequestWorkflow.get(db, change_request_id)
        current = change_request.status
        approvals = [
            a
            for a in ChangeRequestWorkflow.list_approvals(db, change_request.id)
            if a.round_number == change_request.approval_round
        ]
        pending = [a for a in approvals if a.status == ChangeRequestApprovalStatus.pending]
        completed = [
            a for a in approvals if a.status != ChangeRequestApprovalStatus.pending
        ]
        next_actions = {
            ChangeRequestStatus.draft: ["Submit for approval"],
            ChangeRequestStatus.submitted: ["Start review"],
            ChangeRequestStatus.under_review: (
                ["Complete approvals"] if pending else ["Return to draft"]
            ),
            ChangeRequestStatus.approved: ["Mark implemented"],
            ChangeRequestStatus.rejected: ["Revise and resubmit"],
        }.get(current, [])
        return {
            "current_status": current.value,
            "pending_approvals": [_approval_summary(a) for a in pending],
            "completed_approvals": [_approval_summary(a) for a in completed],
            "next_actions": next_actions,
            "can_transition_to": [s.value for s in VALID_TRANSITIONS[current]],
        }


def _approval_summary(approval: ChangeRequestApproval) -> dict:
    return {
        "id": approval.id,
        "approver_id": approval.approver_id,
        "role": None,
        "status": approval.status.value,
        "notes": approval.notes,
        "created_at": approval.created_at,
        "decided_at": approval.decided_at,
    }


change_request_workflow = ChangeRequestWorkflow()
