import uuid
from datetime import timedelta

import pytest
from sqlalchemy import event, text

from app.models.document_control import (
    ApprovalRole,
    ApprovalStatus,
    AuditAction,
    AuditLogEntry,
    DocumentApproval,
    DocumentStatus,
)
from app.schemas.document_control import DocumentCategoryCreate, DocumentCreate
from app.services.audit_log import AuditLedger
from app.services.document_lifecycle import (
    DECISION_STATES,
    VALID_TRANSITIONS,
    DocumentCategories,
    DocumentLifecycle,
    is_valid_transition,
)
from app.services.errors import (
    ConcurrentModification,
    InvalidStateTransition,
    NotFoundError,
    PreconditionFailed,
    ValidationError,
)


def _audit_actions(db_session, document_id):
    return [
        e.action for e in reversed(AuditLedger.for_entity(db_session, document_id))
    ]


def _set_status(db_session, document, status):
    document.status = status
    db_session.commit()
    db_session.refresh(document)


def _drive_to(db_session, make_document, owner_id, state):
    document = make_document()
    if state == DocumentStatus.draft:
        return document
    reviewer = uuid.uuid4()
    DocumentLifecycle.submit_for_review(db_session, document.id, [reviewer], owner_id)
    if state == DocumentStatus.pending_review:
        return DocumentLifecycle.get(db_session, document.id)
    approval_id = DocumentLifecycle.list_approvals(db_session, document.id)[0].id
    if state == DocumentStatus.pending_approval:
        return DocumentLifecycle.approve(db_session, document.id, approval_id, reviewer)
    document = DocumentLifecycle.approve(
        db_session, document.id, approval_id, reviewer, auto_approve=True
    )
    if state == DocumentStatus.under_review:
        return DocumentLifecycle.trigger_review(db_session, document.id, owner_id)
    if state == DocumentStatus.archived:
        return DocumentLifecycle.archive(db_session, document.id, owner_id)
    return document


OPERATIONS = {
    "submit_for_review": lambda db, doc, actor: DocumentLifecycle.submit_for_review(
        db, doc.id, [uuid.uuid4()], actor
    ),
    "submit_for_approval": lambda db, doc, actor: (
        DocumentLifecycle.submit_for_approval(db, doc.id, [uuid.uuid4()], actor)
    ),
    "approve": lambda db, doc, actor: DocumentLifecycle.approve(
        db, doc.id, uuid.uuid4(), actor
    ),
    "reject": lambda db, doc, actor: DocumentLifecycle.reject(
        db, doc.id, uuid.uuid4(), "Wrong", actor
    ),
    "trigger_review": lambda db, doc, actor: DocumentLifecycle.trigger_review(
        db, doc.id, actor
    ),
    "archive": lambda db, doc, actor: DocumentLifecycle.archive(db, doc.id, actor),
    "return_to_draft": lambda db, doc, actor: DocumentLifecycle.return_to_draft(
        db, doc.id, actor
    ),
}


def _allowed(state, operation) -> bool:
    if operation == "submit_for_review":
        return is_valid_transition(state, DocumentStatus.pending_review)
    if operation == "submit_for_approval":
        # Assigning approvers after the review round is not a transition.
        return state == DocumentStatus.pending_approval or is_valid_transition(
            state, DocumentStatus.pending_approval
        )
    if operation == "approve":
        return state in DECISION_STATES
    if operation == "trigger_review":
        return state == DocumentStatus.approved
    if operation == "archive":
        return is_valid_transition(state, DocumentStatus.archived)
    return is_valid_transition(state, DocumentStatus.draft)


ILLEGAL_CALLS = [
    (state, operation)
    for state in DocumentStatus
    for operation in OPERATIONS
    if not _allowed(state, operation)
]


class TestTransitionTable:
    def test_every_pair_matches_table(self) -> None:
        for current in DocumentStatus:
            for target in DocumentStatus:
                assert is_valid_transition(current, target) == (
                    target in VALID_TRANSITIONS[current]
                )

    def test_archived_is_terminal(self) -> None:
        assert VALID_TRANSITIONS[DocumentStatus.archived] == ()

    def test_accepts_strings(self) -> None:
        assert is_valid_transition("draft", "pending_review") is True
        assert is_valid_transition("draft", "approved") is False

    @pytest.mark.parametrize(
        "state,operation",
        ILLEGAL_CALLS,
        ids=[f"{s.value}-{op}" for s, op in ILLEGAL_CALLS],
    )
    def test_illegal_call_leaves_document_untouched(
        self, db_session, make_document, owner_id, state, operation
    ):
        document = _drive_to(db_session, make_document, owner_id, state)
        assert document.status == state
        audit_count = len(AuditLedger.for_entity(db_session, document.id))

        expected = InvalidStateTransition
        if operation == "trigger_review":
            expected = PreconditionFailed
        with pytest.raises(expected):
            OPERATIONS[operation](db_session, document, owner_id)

        assert DocumentLifecycle.get(db_session, document.id).status == state
        assert len(AuditLedger.for_entity(db_session, document.id)) == audit_count


class TestCreateAndUpload:
    def test_create_document_starts_in_draft(self, db_session, owner_id):
        doc = DocumentLifecycle.create_document(
            db_session, DocumentCreate(title="Quality Manual"), owner_id
        )
        assert doc.status == DocumentStatus.draft
        assert doc.owner_id == owner_id
        assert doc.current_version_id is None
        assert doc.approval_round == 0
        assert _audit_actions(db_session, doc.id) == [AuditAction.create]

    def test_create_uses_category_frequency(self, db_session, owner_id):
        category = DocumentCategories.create(
            db_session,
            DocumentCategoryCreate(name="Work Instruction", default_review_frequency_days=45),
        )
        doc = DocumentLifecycle.create_document(
            db_session,
            DocumentCreate(title="WI-1", category_id=category.id),
            owner_id,
        )
        assert doc.review_frequency_days == 45

    def test_create_falls_back_to_recommended_frequency(self, db_session, owner_id):
        category = DocumentCategories.create(
            db_session, DocumentCategoryCreate(name="Quality Policy")
        )
        doc = DocumentLifecycle.create_document(
            db_session,
            DocumentCreate(title="QP", category_id=category.id),
            owner_id,
        )
        assert doc.review_frequency_days == 365

    def test_create_with_unknown_category(self, db_session, owner_id):
        with pytest.raises(NotFoundError):
            DocumentLifecycle.create_document(
                db_session,
                DocumentCreate(title="X", category_id=uuid.uuid4()),
                owner_id,
            )
        assert db_session.query(AuditLogEntry).count() == 0

    def test_duplicate_category(self, db_session):
        DocumentCategories.create(db_session, DocumentCategoryCreate(name="Form"))
        with pytest.raises(ValidationError):
            DocumentCategories.create(db_session, DocumentCategoryCreate(name="Form"))

    def test_upload_numbers_versions(self, db_session, owner_id, make_document, upload_version):
        doc = make_document(with_version=False)
        first = upload_version(doc, owner_id)
        second = upload_version(doc, owner_id, name="procedure-v2.pdf")
        assert (first.version_number, second.version_number) == (1, 2)
        assert doc.current_version_id == second.id
        versions = DocumentLifecycle.list_versions(db_session, doc.id)
        assert [v.version_number for v in versions] == [2, 1]

    def test_upload_not_allowed_while_pending(
        self, db_session, document, owner_id, upload_version
    ):
        DocumentLifecycle.submit_for_review(
            db_session, document.id, [uuid.uuid4()], owner_id
        )
        with pytest.raises(PreconditionFailed):
            upload_version(document, owner_id)

    def test_get_missing(self, db_session):
        with pytest.raises(NotFoundError):
            DocumentLifecycle.get(db_session, uuid.uuid4())

    def test_get_invalid_id(self, db_session):
        with pytest.raises(ValidationError):
            DocumentLifecycle.get(db_session, "not-a-uuid")


class TestSubmitForReview:
    def test_creates_pending_reviewer_approvals(self, db_session, document, owner_id):
        r1, r2 = uuid.uuid4(), uuid.uuid4()
        doc = DocumentLifecycle.submit_for_review(
            db_session, document.id, [r1, r2], owner_id
        )
        assert doc.status == DocumentStatus.pending_review
        assert doc.approval_round == 1
        approvals = DocumentLifecycle.list_approvals(db_session, doc.id)
        assert {a.approver_id for a in approvals} == {r1, r2}
        assert all(a.status == ApprovalStatus.pending for a in approvals)
        assert all(a.role == ApprovalRole.reviewer for a in approvals)
        assert all(a.version_id == doc.current_version_id for a in approvals)

        entry = AuditLedger.for_entity(db_session, doc.id)[0]
        assert entry.action == AuditAction.submit_for_review
        assert set(entry.details["reviewers"]) == {str(r1), str(r2)}

    def test_requires_current_version(self, db_session, make_document, owner_id):
        doc = make_document(with_version=False)
        with pytest.raises(PreconditionFailed):
            DocumentLifecycle.submit_for_review(
                db_session, doc.id, [uuid.uuid4()], owner_id
            )
        assert DocumentLifecycle.get(db_session, doc.id).status == DocumentStatus.draft

    def test_rejects_empty_reviewers(self, db_session, document, owner_id):
        with pytest.raises(ValidationError):
            DocumentLifecycle.submit_for_review(db_session, document.id, [], owner_id)

    def test_rejects_duplicate_reviewers(self, db_session, document, owner_id):
        reviewer = uuid.uuid4()
        with pytest.raises(ValidationError):
            DocumentLifecycle.submit_for_review(
                db_session, document.id, [reviewer, reviewer], owner_id
            )

    def test_illegal_from_approved(self, db_session, document, owner_id):
        _set_status(db_session, document, DocumentStatus.approved)
        with pytest.raises(InvalidStateTransition):
            DocumentLifecycle.submit_for_review(
                db_session, document.id, [uuid.uuid4()], owner_id
            )
        assert DocumentLifecycle.get(db_session, document.id).status == (
            DocumentStatus.approved
        )
        assert db_session.query(DocumentApproval).count() == 0


class TestApprovalScenarios:
    def test_two_reviewers_then_single_approver_rejects(
        self, db_session, document, owner_id, approval_for
    ):
        r1, r2, a1 = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        DocumentLifecycle.submit_for_review(db_session, document.id, [r1, r2], owner_id)

        doc = DocumentLifecycle.approve(
            db_session, document.id, approval_for(document, r1).id, r1
        )
        assert doc.status == DocumentStatus.pending_review

        doc = DocumentLifecycle.approve(
            db_session, document.id, approval_for(document, r2).id, r2
        )
        assert doc.status == DocumentStatus.pending_approval
        assert doc.effective_date is None

        doc = DocumentLifecycle.submit_for_approval(
            db_session, document.id, [a1], owner_id
        )
        assert doc.status == DocumentStatus.pending_approval
        assert doc.approval_round == 2

        doc = DocumentLifecycle.reject(
            db_session, document.id, approval_for(document, a1).id, "needs rework", a1
        )
        assert doc.status == DocumentStatus.draft
        assert approval_for(document, a1).status == ApprovalStatus.rejected
        assert approval_for(document, a1).notes == "needs rework"

    def test_final_approval_sets_effective_and_review_dates(
        self, db_session, document, owner_id, approval_for
    ):
        a1 = uuid.uuid4()
        _to_pending_approval(db_session, document, owner_id, approval_for)
        DocumentLifecycle.submit_for_approval(db_session, document.id, [a1], owner_id)

        doc = DocumentLifecycle.approve(
            db_session, document.id, approval_for(document, a1).id, a1, notes="ok"
        )

        assert doc.status == DocumentStatus.approved
        assert doc.effective_date is not None
        assert doc.next_review_date == doc.effective_date + timedelta(days=90)
        entry = AuditLedger.for_entity(db_session, doc.id)[0]
        assert entry.action == AuditAction.approve
        assert entry.details["new_status"] == "approved"

    def test_default_frequency_when_unset(
        self, db_session, make_document, owner_id, approval_for
    ):
        doc = make_document(review_frequency_days=None)
        assert doc.review_frequency_days is None
        reviewer = uuid.uuid4()
        DocumentLifecycle.submit_for_review(db_session, doc.id, [reviewer], owner_id)
        doc = DocumentLifecycle.approve(
            db_session,
            doc.id,
            approval_for(doc, reviewer).id,
            reviewer,
            auto_approve=True,
        )
        assert doc.status == DocumentStatus.approved
        assert doc.review_frequency_days == 90
        assert doc.next_review_date == doc.effective_date + timedelta(days=90)

    def test_unanimity_fires_once_in_any_order(
        self, db_session, document, owner_id, approval_for
    ):
        reviewers = [uuid.uuid4() for _ in range(3)]
        DocumentLifecycle.submit_for_review(db_session, document.id, reviewers, owner_id)
        statuses = []
        for reviewer in reversed(reviewers):
            doc = DocumentLifecycle.approve(
                db_session, document.id, approval_for(document, reviewer).id, reviewer
            )
            statuses.append(doc.status)
        assert statuses == [
            DocumentStatus.pending_review,
            DocumentStatus.pending_review,
            DocumentStatus.pending_approval,
        ]

    def test_rejection_dominates_after_partial_approval(
        self, db_session, document, owner_id, approval_for
    ):
        r1, r2, r3 = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        DocumentLifecycle.submit_for_review(
            db_session, document.id, [r1, r2, r3], owner_id
        )
        DocumentLifecycle.approve(
            db_session, document.id, approval_for(document, r1).id, r1
        )
        doc = DocumentLifecycle.reject(
            db_session,
            document.id,
            approval_for(document, r2).id,
            "missing section 4",
            r2,
            request_changes=True,
        )
        assert doc.status == DocumentStatus.draft
        assert approval_for(document, r2).status == ApprovalStatus.changes_requested
        assert approval_for(document, r3).status == ApprovalStatus.rejected
        assert AuditLedger.for_entity(db_session, doc.id)[0].action == (
            AuditAction.request_changes
        )

    def test_reject_requires_notes(self, db_session, document, owner_id, approval_for):
        reviewer = uuid.uuid4()
        DocumentLifecycle.submit_for_review(db_session, document.id, [reviewer], owner_id)
        with pytest.raises(ValidationError):
            DocumentLifecycle.reject(
                db_session, document.id, approval_for(document, reviewer).id, "  ", reviewer
            )

    def test_auto_approve_skips_approver_stage(
        self, db_session, document, owner_id, approval_for
    ):
        reviewer = uuid.uuid4()
        DocumentLifecycle.submit_for_review(db_session, document.id, [reviewer], owner_id)
        doc = DocumentLifecycle.approve(
            db_session,
            document.id,
            approval_for(document, reviewer).id,
            reviewer,
            auto_approve=True,
        )
        assert doc.status == DocumentStatus.approved
        assert doc.next_review_date is not None


class TestApprovalPreconditions:
    def test_already_decided_approval(self, db_session, document, owner_id, approval_for):
        r1, r2 = uuid.uuid4(), uuid.uuid4()
        DocumentLifecycle.submit_for_review(db_session, document.id, [r1, r2], owner_id)
        approval_id = approval_for(document, r1).id
        DocumentLifecycle.approve(db_session, document.id, approval_id, r1)
        with pytest.raises(PreconditionFailed):
            DocumentLifecycle.approve(db_session, document.id, approval_id, r1)

    def test_unknown_approval(self, db_session, document, owner_id):
        DocumentLifecycle.submit_for_review(
            db_session, document.id, [uuid.uuid4()], owner_id
        )
        with pytest.raises(NotFoundError):
            DocumentLifecycle.approve(db_session, document.id, uuid.uuid4(), owner_id)

    def test_approval_of_other_document(
        self, db_session, document, make_document, owner_id, approval_for
    ):
        other = make_document()
        reviewer = uuid.uuid4()
        DocumentLifecycle.submit_for_review(db_session, other.id, [reviewer], owner_id)
        DocumentLifecycle.submit_for_review(
            db_session, document.id, [uuid.uuid4()], owner_id
        )
        with pytest.raises(NotFoundError):
            DocumentLifecycle.approve(
                db_session, document.id, approval_for(other, reviewer).id, reviewer
            )

    def test_approve_in_draft_is_illegal(
        self, db_session, document, owner_id, approval_for
    ):
        reviewer = uuid.uuid4()
        DocumentLifecycle.submit_for_review(db_session, document.id, [reviewer], owner_id)
        approval_id = approval_for(document, reviewer).id
        DocumentLifecycle.return_to_draft(db_session, document.id, owner_id)
        with pytest.raises(InvalidStateTransition):
            DocumentLifecycle.approve(db_session, document.id, approval_id, reviewer)


class TestVersionScoping:
    def test_old_round_does_not_count(
        self, db_session, document, owner_id, approval_for, upload_version
    ):
        reviewer = uuid.uuid4()
        DocumentLifecycle.submit_for_review(db_session, document.id, [reviewer], owner_id)
        old_approval = approval_for(document, reviewer)
        old_version_id = document.current_version_id
        DocumentLifecycle.return_to_draft(db_session, document.id, owner_id, "typo")

        upload_version(document, owner_id, name="procedure-v2.pdf")
        DocumentLifecycle.submit_for_review(db_session, document.id, [reviewer], owner_id)
        new_approval = approval_for(document, reviewer)

        assert new_approval.version_id != old_version_id
        assert old_approval.version_id == old_version_id
        with pytest.raises(PreconditionFailed):
            DocumentLifecycle.approve(db_session, document.id, old_approval.id, reviewer)

        doc = DocumentLifecycle.approve(
            db_session, document.id, new_approval.id, reviewer
        )
        assert doc.status == DocumentStatus.pending_approval
        db_session.refresh(old_approval)
        assert old_approval.status == ApprovalStatus.rejected
        assert old_approval.notes == "typo"

    def test_approver_round_waits_for_reviewers(
        self, db_session, document, owner_id, approval_for
    ):
        r1, r2, a1 = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        DocumentLifecycle.submit_for_review(db_session, document.id, [r1, r2], owner_id)
        DocumentLifecycle.approve(
            db_session, document.id, approval_for(document, r1).id, r1
        )
        with pytest.raises(PreconditionFailed):
            DocumentLifecycle.submit_for_approval(
                db_session, document.id, [a1], owner_id
            )
        assert approval_for(document, r2).status == ApprovalStatus.pending
        assert DocumentLifecycle.get(db_session, document.id).approval_round == 1

    def test_submit_for_approval_blocked_by_open_round(
        self, db_session, document, owner_id, approval_for
    ):
        a1, a2 = uuid.uuid4(), uuid.uuid4()
        _to_pending_approval(db_session, document, owner_id, approval_for)
        DocumentLifecycle.submit_for_approval(db_session, document.id, [a1], owner_id)
        with pytest.raises(PreconditionFailed):
            DocumentLifecycle.submit_for_approval(
                db_session, document.id, [a2], owner_id
            )


class TestReviewAndArchive:
    def test_trigger_review_records_previous_date(
        self, db_session, document, owner_id, approval_for
    ):
        _approve_document(db_session, document, owner_id, approval_for)
        next_review = DocumentLifecycle.get(db_session, document.id).next_review_date

        doc = DocumentLifecycle.trigger_review(db_session, document.id, owner_id)

        assert doc.status == DocumentStatus.under_review
        entry = AuditLedger.for_entity(db_session, doc.id)[0]
        assert entry.action == AuditAction.trigger_review
        assert entry.details["previous_next_review_date"] == next_review.isoformat()

    def test_trigger_review_requires_approved(self, db_session, document, owner_id):
        with pytest.raises(PreconditionFailed):
            DocumentLifecycle.trigger_review(db_session, document.id, owner_id)

    def test_review_cycle_returns_to_approved(
        self, db_session, document, owner_id, approval_for, upload_version
    ):
        _approve_document(db_session, document, owner_id, approval_for)
        DocumentLifecycle.trigger_review(db_session, document.id, owner_id)
        upload_version(document, owner_id, name="procedure-2026.pdf")
        reviewer = uuid.uuid4()
        doc = DocumentLifecycle.submit_for_review(
            db_session, document.id, [reviewer], owner_id
        )
        assert doc.status == DocumentStatus.pending_review

    def test_archive_from_approved_is_terminal(
        self, db_session, document, owner_id, approval_for
    ):
        _approve_document(db_session, document, owner_id, approval_for)
        doc = DocumentLifecycle.archive(db_session, document.id, owner_id)
        assert doc.status == DocumentStatus.archived
        with pytest.raises(InvalidStateTransition):
            DocumentLifecycle.submit_for_review(
                db_session, document.id, [uuid.uuid4()], owner_id
            )
        with pytest.raises(InvalidStateTransition):
            DocumentLifecycle.archive(db_session, document.id, owner_id)

    def test_archive_from_draft_is_illegal(self, db_session, document, owner_id):
        with pytest.raises(InvalidStateTransition) as exc_info:
            DocumentLifecycle.archive(db_session, document.id, owner_id)
        assert exc_info.value.details == {
            "current_status": "draft",
            "target_status": "archived",
        }

    def test_return_to_draft_cancels_pending(
        self, db_session, document, owner_id, approval_for
    ):
        r1, r2 = uuid.uuid4(), uuid.uuid4()
        DocumentLifecycle.submit_for_review(db_session, document.id, [r1, r2], owner_id)
        DocumentLifecycle.approve(
            db_session, document.id, approval_for(document, r1).id, r1
        )

        doc = DocumentLifecycle.return_to_draft(
            db_session, document.id, owner_id, reason="scope changed"
        )

        assert doc.status == DocumentStatus.draft
        assert approval_for(document, r1).status == ApprovalStatus.approved
        cancelled = approval_for(document, r2)
        assert cancelled.status == ApprovalStatus.rejected
        assert cancelled.notes == "scope changed"
        entry = AuditLedger.for_entity(db_session, doc.id)[0]
        assert entry.details["cancelled_approval_ids"] == [str(cancelled.id)]

    def test_return_to_draft_from_draft_is_illegal(self, db_session, document, owner_id):
        with pytest.raises(InvalidStateTransition):
            DocumentLifecycle.return_to_draft(db_session, document.id, owner_id)


class TestAuditCompleteness:
    def test_every_operation_writes_an_entry(
        self, db_session, document, owner_id, approval_for
    ):
        reviewer, approver = uuid.uuid4(), uuid.uuid4()
        DocumentLifecycle.submit_for_review(db_session, document.id, [reviewer], owner_id)
        DocumentLifecycle.approve(
            db_session, document.id, approval_for(document, reviewer).id, reviewer
        )
        DocumentLifecycle.submit_for_approval(
            db_session, document.id, [approver], owner_id
        )
        DocumentLifecycle.approve(
            db_session, document.id, approval_for(document, approver).id, approver
        )
        DocumentLifecycle.trigger_review(db_session, document.id, owner_id)

        assert _audit_actions(db_session, document.id) == [
            AuditAction.create,
            AuditAction.upload_version,
            AuditAction.submit_for_review,
            AuditAction.approve,
            AuditAction.submit_for_approval,
            AuditAction.approve,
            AuditAction.trigger_review,
        ]

    def test_failed_operation_writes_nothing(self, db_session, document, owner_id):
        before = db_session.query(AuditLogEntry).count()
        with pytest.raises(InvalidStateTransition):
            DocumentLifecycle.archive(db_session, document.id, owner_id)
        assert db_session.query(AuditLogEntry).count() == before

    def test_events_published_after_commit(
        self, db_session, document, owner_id, published_events
    ):
        published_events.reset_mock()
        DocumentLifecycle.submit_for_review(
            db_session, document.id, [uuid.uuid4()], owner_id
        )
        published_events.assert_called_once()
        assert published_events.call_args.kwargs["event_type"] == "approval.requested"


class TestConcurrency:
    def test_stale_write_surfaces_as_concurrent_modification(
        self, db_session, document, owner_id, approval_for
    ):
        _approve_document(db_session, document, owner_id, approval_for)
        audit_before = db_session.query(AuditLogEntry).count()

        def _concurrent_writer(session, flush_context, instances):
            session.connection().execute(
                text(
                    "UPDATE documents SET lock_version = lock_version + 1 "
                    "WHERE id = :id"
                ),
                {"id": document.id.hex},
            )

        event.listen(db_session, "before_flush", _concurrent_writer, once=True)
        with pytest.raises(ConcurrentModification):
            DocumentLifecycle.trigger_review(db_session, document.id, owner_id)

        assert DocumentLifecycle.get(db_session, document.id).status == (
            DocumentStatus.approved
        )
        assert db_session.query(AuditLogEntry).count() == audit_before


class TestQueries:
    def test_list_filters_by_status(self, db_session, make_document, owner_id):
        draft = make_document()
        submitted = make_document()
        DocumentLifecycle.submit_for_review(
            db_session, submitted.id, [uuid.uuid4()], owner_id
        )
        result = DocumentLifecycle.list_response(
            db_session, "pending_review", None, None, "created_at", "desc", 50, 0
        )
        assert [d.id for d in result["items"]] == [submitted.id]
        assert draft.id not in [d.id for d in result["items"]]

    def test_list_rejects_bad_status(self, db_session):
        with pytest.raises(ValidationError):
            DocumentLifecycle.list(
                db_session, "bogus", None, None, "created_at", "desc", 50, 0
            )

    def test_list_rejects_bad_ordering(self, db_session):
        with pytest.raises(ValidationError):
            DocumentLifecycle.list(db_session, None, None, None, "owner", "asc", 50, 0)

    def test_pending_approvals_for(self, db_session, document, owner_id):
        reviewer = uuid.uuid4()
        DocumentLifecycle.submit_for_review(db_session, document.id, [reviewer], owner_id)
        pending = DocumentLifecycle.pending_approvals_for(db_session, reviewer)
        assert [a.document_id for a in pending] == [document.id]

        DocumentLifecycle.return_to_draft(db_session, document.id, owner_id)
        assert DocumentLifecycle.pending_approvals_for(db_session, reviewer) == []

    def test_workflow_stage(self, db_session, document, owner_id, approval_for):
        r1, r2 = uuid.uuid4(), uuid.uuid4()
        DocumentLifecycle.submit_for_review(db_session, document.id, [r1, r2], owner_id)
        DocumentLifecycle.approve(
            db_session, document.id, approval_for(document, r1).id, r1
        )

        stage = DocumentLifecycle.get_workflow_stage(db_session, document.id)

        assert stage["current_status"] == "pending_review"
        assert [a["approver_id"] for a in stage["pending_approvals"]] == [r2]
        assert [a["approver_id"] for a in stage["completed_approvals"]] == [r1]
        assert stage["next_actions"] == ["Complete reviews"]
        assert set(stage["can_transition_to"]) == {
            "draft",
            "pending_approval",
            "approved",
        }


def _to_pending_approval(db_session, document, owner_id, approval_for):
    reviewer = uuid.uuid4()
    DocumentLifecycle.submit_for_review(db_session, document.id, [reviewer], owner_id)
    return DocumentLifecycle.approve(
        db_session, document.id, approval_for(document, reviewer).id, reviewer
    )


def _approve_document(db_session, document, owner_id, approval_for):
    reviewer = uuid.uuid4()
    DocumentLifecycle.submit_for_review(db_session, document.id, [reviewer], owner_id)
    return DocumentLifecycle.approve(
        db_session,
        document.id,
        approval_for(document, reviewer).id,
        reviewer,
        auto_approve=True,
    )
