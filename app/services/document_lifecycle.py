from __future__ import annotations

import logging
import uuid
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.config import settings
from app.db import utcnow
from app.models.document_control import (
    ApprovalRole,
    ApprovalStatus,
    AuditAction,
    AuditEntityType,
    Document,
    DocumentApproval,
    DocumentCategory,
    DocumentStatus,
    DocumentVersion,
    PermissionRole,
)
from app.observability import WORKFLOW_TRANSITIONS
from app.schemas.document_control import (
    DocumentCategoryCreate,
    DocumentCreate,
    DocumentVersionCreate,
)
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
from app.services.review_scheduler import (
    calculate_next_review_date,
    recommended_review_frequency,
)

logger = logging.getLogger(__name__)

# ISO 9001/45001 document workflow
VALID_TRANSITIONS: dict[DocumentStatus, tuple[DocumentStatus, ...]] = {
    DocumentStatus.draft: (DocumentStatus.pending_review,),
    DocumentStatus.pending_review: (
        DocumentStatus.draft,
        DocumentStatus.pending_approval,
        DocumentStatus.approved,  # only when approval is not required
    ),
    DocumentStatus.pending_approval: (DocumentStatus.draft, DocumentStatus.approved),
    DocumentStatus.approved: (DocumentStatus.under_review, DocumentStatus.archived),
    DocumentStatus.under_review: (DocumentStatus.pending_review, DocumentStatus.approved),
    DocumentStatus.archived: (),
}

# States in which approval decisions are accepted
DECISION_STATES = frozenset(
    {
        DocumentStatus.pending_review,
        DocumentStatus.pending_approval,
        DocumentStatus.under_review,
    }
)

# New versions may only be uploaded while the document is editable
EDITABLE_STATES = frozenset({DocumentStatus.draft, DocumentStatus.under_review})


def is_valid_transition(current, target) -> bool:
    current = DocumentStatus(getattr(current, "value", current))
    target = DocumentStatus(getattr(target, "value", target))
    return target in VALID_TRANSITIONS.get(current, ())


def _require_transition(document: Document, target: DocumentStatus) -> None:
    if not is_valid_transition(document.status, target):
        raise InvalidStateTransition(document.status.value, target.value)


def _load_document(db: Session, document_id: uuid.UUID) -> Document:
    # Row lock where supported; the version column covers the rest.
    document = db.get(
        Document, document_id, with_for_update=True, populate_existing=True
    )
    if not document:
        raise NotFoundError("Document not found")
    return document


def _load_approval(
    db: Session, document: Document, approval_id: uuid.UUID
) -> DocumentApproval:
    approval = db.get(DocumentApproval, approval_id, populate_existing=True)
    if not approval or approval.document_id != document.id:
        raise NotFoundError("Approval not found")
    return approval


def _require_open_decision(document: Document, approval: DocumentApproval) -> None:
    if (
        approval.version_id != document.current_version_id
        or approval.round_number != document.approval_round
    ):
        raise PreconditionFailed(
            "Approval belongs to a superseded approval round",
            {"approval_id": str(approval.id)},
        )
    if approval.status != ApprovalStatus.pending:
        raise PreconditionFailed(
            f"Approval already decided: {approval.status.value}",
            {"approval_id": str(approval.id), "status": approval.status.value},
        )


def _round_approvals(db: Session, document: Document) -> list[DocumentApproval]:
    """Approvals of the current round of the current version."""
    if document.current_version_id is None or document.approval_round == 0:
        return []
    stmt = (
        select(DocumentApproval)
        .where(
            DocumentApproval.document_id == document.id,
            DocumentApproval.version_id == document.current_version_id,
            DocumentApproval.round_number == document.approval_round,
        )
        .order_by(DocumentApproval.created_at.asc())
    )
    return db.scalars(stmt).all()


def _pending_for_version(db: Session, document: Document) -> list[DocumentApproval]:
    stmt = select(DocumentApproval).where(
        DocumentApproval.document_id == document.id,
        DocumentApproval.version_id == document.current_version_id,
        DocumentApproval.status == ApprovalStatus.pending,
    )
    return db.scalars(stmt).all()


def _close_pending(approvals: list[DocumentApproval], note: str) -> list[str]:
    now = utcnow()
    closed = []
    for approval in approvals:
        approval.status = ApprovalStatus.rejected
        approval.notes = note
        approval.decided_at = now
        closed.append(str(approval.id))
    return closed


def _open_round(
    db: Session,
    document: Document,
    decider_ids: list[uuid.UUID],
    role: ApprovalRole,
) -> list[DocumentApproval]:
    # Leftovers from an earlier round would give a decider two pending
    # approvals on the same version.
    superseded = _pending_for_version(db, document)
    document.approval_round += 1
    _close_pending(superseded, f"Superseded by approval round {document.approval_round}")
    approvals = [
        DocumentApproval(
            document_id=document.id,
            version_id=document.current_version_id,
            round_number=document.approval_round,
            approver_id=decider_id,
            role=role,
            status=ApprovalStatus.pending,
        )
        for decider_id in decider_ids
    ]
    db.add_all(approvals)
    return approvals


def _schedule_first_review(document: Document) -> None:
    effective_date = utcnow()
    frequency = document.review_frequency_days or settings.default_review_frequency_days
    document.effective_date = effective_date
    document.review_frequency_days = frequency
    document.next_review_date = calculate_next_review_date(effective_date, frequency)


def _touch(document: Document) -> None:
    # Forces an UPDATE so the optimistic version check runs on every write.
    document.updated_at = utcnow()


def _audit(
    db: Session,
    document: Document,
    actor_id: uuid.UUID,
    action: AuditAction,
    details: dict | None = None,
):
    return AuditLedger.append(
        db,
        AuditEntityType.document,
        document.id,
        actor_id,
        action,
        details,
        document_id=document.id,
    )


def _committed(
    document: Document,
    actor_id: uuid.UUID,
    action: AuditAction,
    event_type: EventType,
    payload: dict | None = None,
) -> None:
    WORKFLOW_TRANSITIONS.labels(entity_type="document", action=action.value).inc()
    publish_event(
        event_type,
        entity_type="document",
        entity_id=document.id,
        actor_id=actor_id,
        document_id=document.id,
        payload=payload,
    )


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


# ---------------------------------------------------------------------------
# DocumentCategories
# ---------------------------------------------------------------------------


class DocumentCategories(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: DocumentCategoryCreate) -> DocumentCategory:
        existing = db.scalar(
            select(DocumentCategory).where(DocumentCategory.name == payload.name)
        )
        if existing:
            raise ValidationError(f"Category already exists: {payload.name}")
        with unit_of_work(db):
            category = DocumentCategory(**payload.model_dump())
            db.add(category)
        db.refresh(category)
        logger.info("Created document category %s", category.id)
        return category

    @staticmethod
    def get(db: Session, category_id: str) -> DocumentCategory:
        category = db.get(DocumentCategory, coerce_uuid(category_id, "category_id"))
        if not category:
            raise NotFoundError("Category not found")
        return category

    @staticmethod
    def list(db: Session, limit: int, offset: int) -> list[DocumentCategory]:
        stmt = select(DocumentCategory).order_by(DocumentCategory.name.asc())
        return db.scalars(apply_pagination(stmt, limit, offset)).all()


# ---------------------------------------------------------------------------
# DocumentLifecycle
# ---------------------------------------------------------------------------


class DocumentLifecycle(ListResponseMixin):
    """Owns document status, approval rounds and first-review scheduling.

    Every mutating method is one unit of work: status, approval rows, the
    review schedule and the audit entry are committed together or not at all.
    """

    @staticmethod
    def create_document(
        db: Session, payload: DocumentCreate, actor_id: str
    ) -> Document:
        actor = coerce_uuid(actor_id, "actor_id")
        if payload.review_frequency_days is not None and payload.review_frequency_days <= 0:
            raise ValidationError("Review frequency must be a positive number of days")
        with unit_of_work(db):
            frequency = payload.review_frequency_days
            category = None
            if payload.category_id is not None:
                category = db.get(DocumentCategory, payload.category_id)
                if not category:
                    raise NotFoundError("Category not found")
                if frequency is None:
                    frequency = (
                        category.default_review_frequency_days
                        or recommended_review_frequency(category.name)
                    )
            document = Document(
                title=payload.title,
                description=payload.description,
                category_id=payload.category_id,
                owner_id=payload.owner_id or actor,
                status=DocumentStatus.draft,
                review_frequency_days=frequency,
            )
            db.add(document)
            db.flush()
            _audit(
                db,
                document,
                actor,
                AuditAction.create,
                {"title": document.title, "review_frequency_days": frequency},
            )
        db.refresh(document)
        logger.info("Created document %s", document.id)
        _committed(document, actor, AuditAction.create, EventType.document_created)
        return document

    @staticmethod
    def upload_version(
        db: Session,
        document_id: str,
        payload: DocumentVersionCreate,
        actor_id: str,
    ) -> DocumentVersion:
        doc_id = coerce_uuid(document_id, "document_id")
        actor = coerce_uuid(actor_id, "actor_id")
        with unit_of_work(db):
            document = _load_document(db, doc_id)
            if document.status not in EDITABLE_STATES:
                raise PreconditionFailed(
                    f"Cannot upload a new version while {document.status.value}"
                )
            latest = db.scalar(
                select(func.max(DocumentVersion.version_number)).where(
                    DocumentVersion.document_id == document.id
                )
            )
            version = DocumentVersion(
                id=uuid.uuid4(),
                document_id=document.id,
                version_number=(latest or 0) + 1,
                file_name=payload.file_name,
                file_hash=payload.file_hash,
                file_size=payload.file_size,
                mime_type=payload.mime_type,
                notes=payload.notes,
                uploaded_by=actor,
            )
            db.add(version)
            db.flush()
            document.current_version_id = version.id
            _touch(document)
            _audit(
                db,
                document,
                actor,
                AuditAction.upload_version,
                {
                    "version_id": str(version.id),
                    "version_number": version.version_number,
                    "file_hash": version.file_hash,
                    "file_size": version.file_size,
                },
            )
        db.refresh(version)
        logger.info(
            "Uploaded version %d of document %s", version.version_number, doc_id
        )
        _committed(
            document,
            actor,
            AuditAction.upload_version,
            EventType.version_uploaded,
            {"version_number": version.version_number},
        )
        return version

    @staticmethod
    def submit_for_review(
        db: Session, document_id: str, reviewer_ids: list, actor_id: str
    ) -> Document:
        return DocumentLifecycle._submit(
            db,
            document_id,
            reviewer_ids,
            actor_id,
            role=ApprovalRole.reviewer,
            target=DocumentStatus.pending_review,
            action=AuditAction.submit_for_review,
            field="reviewer_ids",
        )

    @staticmethod
    def submit_for_approval(
        db: Session, document_id: str, approver_ids: list, actor_id: str
    ) -> Document:
        return DocumentLifecycle._submit(
            db,
            document_id,
            approver_ids,
            actor_id,
            role=ApprovalRole.approver,
            target=DocumentStatus.pending_approval,
            action=AuditAction.submit_for_approval,
            field="approver_ids",
        )

    @staticmethod
    def _submit(
        db: Session,
        document_id: str,
        decider_ids: list,
        actor_id: str,
        role: ApprovalRole,
        target: DocumentStatus,
        action: AuditAction,
        field: str,
    ) -> Document:
        doc_id = coerce_uuid(document_id, "document_id")
        actor = coerce_uuid(actor_id, "actor_id")
        deciders = coerce_uuid_list(decider_ids, field)
        with unit_of_work(db):
            document = _load_document(db, doc_id)
            previous = document.status
            # A completed review round leaves the document in pending_approval
            # waiting for its approvers; assigning them is not a transition.
            assigning_approvers = (
                target == DocumentStatus.pending_approval
                and previous == DocumentStatus.pending_approval
            )
            if not assigning_approvers:
                _require_transition(document, target)
            if not document.current_version_id:
                raise PreconditionFailed(
                    "Document must have a version before it can be submitted"
                )
            if target == DocumentStatus.pending_approval and any(
                a.status == ApprovalStatus.pending
                for a in _round_approvals(db, document)
            ):
                raise PreconditionFailed("The open approval round is not complete")

            approvals = _open_round(db, document, deciders, role)
            document.status = target
            _touch(document)
            db.flush()
            _audit(
                db,
                document,
                actor,
                action,
                {
                    field.removesuffix("_ids") + "s": [str(d) for d in deciders],
                    "approval_ids": [str(a.id) for a in approvals],
                    "version_id": str(document.current_version_id),
                    "round_number": document.approval_round,
                    "previous_status": previous.value,
                },
            )
        db.refresh(document)
        logger.info(
            "Document %s submitted to %d %ss (round %d)",
            document.id,
            len(deciders),
            role.value,
            document.approval_round,
        )
        _committed(
            document,
            actor,
            action,
            EventType.approval_requested,
            {"approver_ids": [str(d) for d in deciders], "role": role.value},
        )
        return document

    @staticmethod
    def approve(
        db: Session,
        document_id: str,
        approval_id: str,
        actor_id: str,
        notes: str | None = None,
        auto_approve: bool = False,
    ) -> Document:
        doc_id = coerce_uuid(document_id, "document_id")
        appr_id = coerce_uuid(approval_id, "approval_id")
        actor = coerce_uuid(actor_id, "actor_id")
        with unit_of_work(db):
            document = _load_document(db, doc_id)
            previous = document.status
            if previous not in DECISION_STATES:
                raise InvalidStateTransition(
                    previous.value, DocumentStatus.approved.value
                )
            approval = _load_approval(db, document, appr_id)
            _require_open_decision(document, approval)

            approval.status = ApprovalStatus.approved
            approval.notes = notes
            approval.decided_at = utcnow()
            db.flush()

            # Re-read the whole round; no running counters.
            outcome = aggregate(_round_approvals(db, document))
            new_status = previous
            if outcome == AggregateOutcome.rejected:
                new_status = DocumentStatus.draft
            elif outcome == AggregateOutcome.approved:
                if previous == DocumentStatus.pending_review:
                    new_status = (
                        DocumentStatus.approved
                        if auto_approve
                        else DocumentStatus.pending_approval
                    )
                else:
                    new_status = DocumentStatus.approved

            if new_status != previous:
                _require_transition(document, new_status)
                document.status = new_status
                if new_status == DocumentStatus.approved:
                    _schedule_first_review(document)
            _touch(document)
            _audit(
                db,
                document,
                actor,
                AuditAction.approve,
                {
                    "approval_id": str(approval.id),
                    "role": approval.role.value,
                    "notes": notes,
                    "outcome": outcome.value,
                    "previous_status": previous.value,
                    "new_status": new_status.value,
                    "effective_date": _iso(document.effective_date)
                    if new_status == DocumentStatus.approved
                    else None,
                    "next_review_date": _iso(document.next_review_date)
                    if new_status == DocumentStatus.approved
                    else None,
                },
            )
        db.refresh(document)
        logger.info(
            "Approval %s on document %s recorded (%s -> %s)",
            appr_id,
            document.id,
            previous.value,
            document.status.value,
        )
        _committed(
            document,
            actor,
            AuditAction.approve,
            EventType.document_status_changed
            if document.status != previous
            else EventType.approval_decided,
            {"previous_status": previous.value, "new_status": document.status.value},
        )
        return document

    @staticmethod
    def reject(
        db: Session,
        document_id: str,
        approval_id: str,
        notes: str,
        actor_id: str,
        request_changes: bool = False,
    ) -> Document:
        if not notes or not notes.strip():
            raise ValidationError("Rejection notes are required")
        doc_id = coerce_uuid(document_id, "document_id")
        appr_id = coerce_uuid(approval_id, "approval_id")
        actor = coerce_uuid(actor_id, "actor_id")
        action = AuditAction.request_changes if request_changes else AuditAction.reject
        with unit_of_work(db):
            document = _load_document(db, doc_id)
            previous = document.status
            _require_transition(document, DocumentStatus.draft)
            approval = _load_approval(db, document, appr_id)
            _require_open_decision(document, approval)

            approval.status = (
                ApprovalStatus.changes_requested
                if request_changes
                else ApprovalStatus.rejected
            )
            approval.notes = notes
            approval.decided_at = utcnow()
            db.flush()
            # A single veto ends the round; remaining deciders are not awaited.
            closed = _close_pending(
                _pending_for_version(db, document), "Approval round closed by rejection"
            )
            document.status = DocumentStatus.draft
            _touch(document)
            _audit(
                db,
                document,
                actor,
                action,
                {
                    "approval_id": str(approval.id),
                    "role": approval.role.value,
                    "notes": notes,
                    "closed_approval_ids": closed,
                    "previous_status": previous.value,
                    "new_status": DocumentStatus.draft.value,
                },
            )
        db.refresh(document)
        logger.info(
            "Document %s returned to draft by %s on approval %s",
            document.id,
            action.value,
            appr_id,
        )
        _committed(
            document,
            actor,
            action,
            EventType.document_status_changed,
            {"previous_status": previous.value, "new_status": document.status.value},
        )
        return document

    @staticmethod
    def trigger_review(db: Session, document_id: str, actor_id: str) -> Document:
        doc_id = coerce_uuid(document_id, "document_id")
        actor = coerce_uuid(actor_id, "actor_id")
        with unit_of_work(db):
            document = _load_document(db, doc_id)
            if document.status != DocumentStatus.approved:
                raise PreconditionFailed(
                    "Only approved documents can be put under review",
                    {"current_status": document.status.value},
                )
            previous_next_review = document.next_review_date
            document.status = DocumentStatus.under_review
            _touch(document)
            _audit(
                db,
                document,
                actor,
                AuditAction.trigger_review,
                {"previous_next_review_date": _iso(previous_next_review)},
            )
        db.refresh(document)
        logger.info("Triggered periodic review of document %s", document.id)
        _committed(
            document, actor, AuditAction.trigger_review, EventType.review_triggered
        )
        return document

    @staticmethod
    def archive(db: Session, document_id: str, actor_id: str) -> Document:
        doc_id = coerce_uuid(document_id, "document_id")
        actor = coerce_uuid(actor_id, "actor_id")
        with unit_of_work(db):
            document = _load_document(db, doc_id)
            previous = document.status
            _require_transition(document, DocumentStatus.archived)
            document.status = DocumentStatus.archived
            _touch(document)
            _audit(
                db,
                document,
                actor,
                AuditAction.archive,
                {"previous_status": previous.value},
            )
        db.refresh(document)
        logger.info("Archived document %s", document.id)
        _committed(
            document,
            actor,
            AuditAction.archive,
            EventType.document_status_changed,
            {"previous_status": previous.value, "new_status": "archived"},
        )
        return document

    @staticmethod
    def return_to_draft(
        db: Session, document_id: str, actor_id: str, reason: str | None = None
    ) -> Document:
        doc_id = coerce_uuid(document_id, "document_id")
        actor = coerce_uuid(actor_id, "actor_id")
        with unit_of_work(db):
            document = _load_document(db, doc_id)
            previous = document.status
            _require_transition(document, DocumentStatus.draft)
            cancelled = _close_pending(
                _pending_for_version(db, document), reason or "Returned to draft"
            )
            document.status = DocumentStatus.draft
            _touch(document)
            _audit(
                db,
                document,
                actor,
                AuditAction.return_to_draft,
                {
                    "reason": reason,
                    "cancelled_approval_ids": cancelled,
                    "previous_status": previous.value,
                },
            )
        db.refresh(document)
        logger.info(
            "Document %s returned to draft, %d approvals cancelled",
            document.id,
            len(cancelled),
        )
        _committed(
            document,
            actor,
            AuditAction.return_to_draft,
            EventType.document_status_changed,
            {"previous_status": previous.value, "new_status": "draft"},
        )
        return document

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @staticmethod
    def get(db: Session, document_id: str) -> Document:
        document = db.get(Document, coerce_uuid(document_id, "document_id"))
        if not document:
            raise NotFoundError("Document not found")
        return document

    @staticmethod
    def list(
        db: Session,
        status: str | None,
        owner_id: str | None,
        category_id: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[Document]:
        stmt = select(Document)
        if status is not None:
            try:
                stmt = stmt.where(Document.status == DocumentStatus(status))
            except ValueError:
                raise ValidationError(f"Invalid status: {status}")
        if owner_id is not None:
            stmt = stmt.where(Document.owner_id == coerce_uuid(owner_id, "owner_id"))
        if category_id is not None:
            stmt = stmt.where(
                Document.category_id == coerce_uuid(category_id, "category_id")
            )
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {
                "created_at": Document.created_at,
                "updated_at": Document.updated_at,
                "title": Document.title,
                "next_review_date": Document.next_review_date,
            },
        )
        return db.scalars(apply_pagination(stmt, limit, offset)).all()

    @staticmethod
    def list_versions(db: Session, document_id: str) -> list[DocumentVersion]:
        document = DocumentLifecycle.get(db, document_id)
        stmt = (
            select(DocumentVersion)
            .where(DocumentVersion.document_id == document.id)
            .order_by(DocumentVersion.version_number.desc())
        )
        return db.scalars(stmt).all()

    @staticmethod
    def list_approvals(
        db: Session, document_id: str, version_id: str | None = None
    ) -> list[DocumentApproval]:
        document = DocumentLifecycle.get(db, document_id)
        stmt = select(DocumentApproval).where(
            DocumentApproval.document_id == document.id
        )
        if version_id is not None:
            stmt = stmt.where(
                DocumentApproval.version_id == coerce_uuid(version_id, "version_id")
            )
        stmt = stmt.order_by(
            DocumentApproval.round_number.asc(), DocumentApproval.created_at.asc()
        )
        return db.scalars(stmt).all()

    @staticmethod
    def pending_approvals_for(db: Session, approver_id: str) -> list[DocumentApproval]:
        """Open decisions waiting on one person, across all documents."""
        stmt = (
            select(DocumentApproval)
            .join(Document, Document.id == DocumentApproval.document_id)
            .where(
                DocumentApproval.approver_id == coerce_uuid(approver_id, "approver_id"),
                DocumentApproval.status == ApprovalStatus.pending,
                DocumentApproval.version_id == Document.current_version_id,
                DocumentApproval.round_number == Document.approval_round,
                Document.status.in_(DECISION_STATES),
            )
            .order_by(DocumentApproval.created_at.asc())
        )
        return db.scalars(stmt).all()

    @staticmethod
    def actor_roles(
        db: Session, document_id: str, actor_id: str
    ) -> list[PermissionRole]:
        """Roles an actor holds on one document.

        Derived from ownership and approval assignments on any version;
        every identified actor is at least a viewer.
        """
        document = DocumentLifecycle.get(db, document_id)
        actor = coerce_uuid(actor_id, "actor_id")
        assigned = set(
            db.scalars(
                select(DocumentApproval.role)
                .where(
                    DocumentApproval.document_id == document.id,
                    DocumentApproval.approver_id == actor,
                )
                .distinct()
            ).all()
        )
        roles = []
        if document.owner_id == actor:
            roles.append(PermissionRole.owner)
        if ApprovalRole.approver in assigned:
            roles.append(PermissionRole.approver)
        if ApprovalRole.reviewer in assigned:
            roles.append(PermissionRole.reviewer)
        roles.append(PermissionRole.viewer)
        return roles

    @staticmethod
    def has_role(db: Session, document_id: str, actor_id: str, role: str) -> bool:
        try:
            wanted = PermissionRole(role)
        except ValueError:
            raise ValidationError(f"Invalid role: {role}")
        return wanted in DocumentLifecycle.actor_roles(db, document_id, actor_id)

    @staticmethod
    def get_workflow_stage(db: Session, document_id: str) -> dict:
        document = DocumentLifecycle.get(db, document_id)
        current = document.status
        approvals = []
        if document.current_version_id:
            approvals = DocumentLifecycle.list_approvals(
                db, document.id, document.current_version_id
            )
        open_round = current in DECISION_STATES
        pending = [
            a
            for a in approvals
            if a.status == ApprovalStatus.pending
            and open_round
            and a.round_number == document.approval_round
        ]
        completed = [a for a in approvals if a.status != ApprovalStatus.pending]

        next_actions: list[str] = []
        if current == DocumentStatus.draft:
            next_actions.append("Submit for review")
        elif current == DocumentStatus.pending_review:
            next_actions.append("Complete reviews" if pending else "Submit for approval")
        elif current == DocumentStatus.pending_approval:
            next_actions.append("Complete approvals" if pending else "Assign approvers")
        elif current == DocumentStatus.approved:
            next_actions.append("Scheduled for review")
        elif current == DocumentStatus.under_review:
            next_actions.append("Submit for re-review")

        return {
            "current_status": current.value,
            "pending_approvals": [_approval_summary(a) for a in pending],
            "completed_approvals": [_approval_summary(a) for a in completed],
            "next_actions": next_actions,
            "can_transition_to": [s.value for s in VALID_TRANSITIONS[current]],
        }


def _approval_summary(approval: DocumentApproval) -> dict:
    return {
        "id": approval.id,
        "approver_id": approval.approver_id,
        "role": approval.role.value,
        "status": approval.status.value,
        "notes": approval.notes,
        "created_at": approval.created_at,
        "decided_at": approval.decided_at,
    }


document_categories = DocumentCategories()
document_lifecycle = DocumentLifecycle()
