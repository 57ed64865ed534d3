from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.document_control import (
    ApprovalRole,
    ApprovalStatus,
    AuditAction,
    AuditEntityType,
    ChangeRequestApprovalStatus,
    ChangeRequestPriority,
    ChangeRequestStatus,
    DocumentStatus,
    PermissionRole,
)


# ---------------------------------------------------------------------------
# DocumentCategory
# ---------------------------------------------------------------------------


class DocumentCategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    default_review_frequency_days: int | None = Field(default=None, gt=0)


class DocumentCategoryRead(DocumentCategoryCreate):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------


class DocumentCreate(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    description: str | None = None
    category_id: UUID | None = None
    owner_id: UUID | None = None
    review_frequency_days: int | None = Field(default=None, gt=0)


class DocumentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str | None = None
    category_id: UUID | None = None
    status: DocumentStatus
    owner_id: UUID
    current_version_id: UUID | None = None
    effective_date: datetime | None = None
    review_frequency_days: int | None = None
    next_review_date: datetime | None = None
    approval_round: int
    lock_version: int
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# DocumentVersion
# ---------------------------------------------------------------------------


class DocumentVersionCreate(BaseModel):
    file_name: str = Field(min_length=1, max_length=500)
    file_hash: str = Field(min_length=1, max_length=128)
    file_size: int = Field(ge=0)
    mime_type: str | None = Field(default=None, max_length=255)
    notes: str | None = None


class DocumentVersionRead(DocumentVersionCreate):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_id: UUID
    version_number: int
    uploaded_by: UUID
    created_at: datetime


class VersionUploaders(BaseModel):
    old: UUID
    new: UUID
    same_user: bool


class VersionComparisonRead(BaseModel):
    old_version: DocumentVersionRead
    new_version: DocumentVersionRead
    version_diff: int
    seconds_between: float
    days_between: int
    size_change: int
    size_change_percent: float
    hash_changed: bool
    uploaded_by: VersionUploaders


class VersionHistorySummaryRead(BaseModel):
    total_versions: int
    current_version: int | None = None
    first_version: DocumentVersionRead | None = None
    latest_version: DocumentVersionRead | None = None
    average_days_between_versions: float
    total_size_change: int
    unique_contributors: int
    versions_by_user: dict[str, int]


class VersionTimelineEntry(BaseModel):
    version: DocumentVersionRead
    is_current_version: bool
    previous_version_id: UUID | None = None
    days_since_previous: int | None = None
    size_change: int | None = None


class VersionContributor(BaseModel):
    user_id: UUID
    version_count: int


class VersionStatisticsRead(BaseModel):
    total_versions: int
    average_file_size: float
    min_file_size: int
    max_file_size: int
    average_days_between_versions: float
    most_active_contributor: VersionContributor | None = None
    version_frequency: dict[str, int]


class DuplicateVersionCheck(BaseModel):
    is_duplicate: bool
    existing_version: DocumentVersionRead | None = None


# ---------------------------------------------------------------------------
# DocumentApproval
# ---------------------------------------------------------------------------


class DocumentApprovalRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_id: UUID
    version_id: UUID
    round_number: int
    approver_id: UUID
    role: ApprovalRole
    status: ApprovalStatus
    notes: str | None = None
    decided_at: datetime | None = None
    created_at: datetime


# ---------------------------------------------------------------------------
# Document workflow requests
# ---------------------------------------------------------------------------


class SubmitForReviewRequest(BaseModel):
    reviewer_ids: list[UUID] = Field(min_length=1)


class SubmitForApprovalRequest(BaseModel):
    approver_ids: list[UUID] = Field(min_length=1)


class ApproveRequest(BaseModel):
    notes: str | None = None
    auto_approve: bool = False


class RejectRequest(BaseModel):
    notes: str = Field(min_length=1)
    request_changes: bool = False


class ReturnToDraftRequest(BaseModel):
    reason: str | None = None


class ReviewScheduleUpdate(BaseModel):
    review_frequency_days: int = Field(gt=0)


class RescheduleReviewRequest(BaseModel):
    from_date: datetime | None = None


class WorkflowApprovalSummary(BaseModel):
    id: UUID
    approver_id: UUID
    role: str | None = None
    status: str
    notes: str | None = None
    created_at: datetime
    decided_at: datetime | None = None


class WorkflowStageRead(BaseModel):
    current_status: str
    pending_approvals: list[WorkflowApprovalSummary]
    completed_approvals: list[WorkflowApprovalSummary]
    next_actions: list[str]
    can_transition_to: list[str]


class ActorRolesRead(BaseModel):
    document_id: UUID
    actor_id: UUID
    roles: list[PermissionRole]
    has_role: bool | None = None


# ---------------------------------------------------------------------------
# Review schedule
# ---------------------------------------------------------------------------


class ReviewScheduleInfo(BaseModel):
    document_id: UUID
    title: str
    next_review_date: datetime
    days_until_review: int
    is_overdue: bool
    days_overdue: int


class ReviewScheduleSummary(BaseModel):
    total_scheduled: int
    overdue: int
    due_this_week: int
    due_this_month: int
    upcoming: int


class OverdueTriggerResult(BaseModel):
    triggered: list[UUID]
    failed: list[UUID]


# ---------------------------------------------------------------------------
# ChangeRequest
# ---------------------------------------------------------------------------


class ChangeRequestCreate(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    description: str = Field(min_length=1)
    document_id: UUID | None = None
    priority: str = "medium"


class ChangeRequestRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_id: UUID | None = None
    title: str
    description: str
    requested_by: UUID
    priority: ChangeRequestPriority
    status: ChangeRequestStatus
    approval_round: int
    implemented_version_id: UUID | None = None
    lock_version: int
    created_at: datetime
    updated_at: datetime


class ChangeRequestApprovalRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    change_request_id: UUID
    round_number: int
    approver_id: UUID
    status: ChangeRequestApprovalStatus
    notes: str | None = None
    decided_at: datetime | None = None
    created_at: datetime


class ChangeRequestCommentCreate(BaseModel):
    comment: str = Field(min_length=1)


class ChangeRequestCommentRead(ChangeRequestCommentCreate):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    change_request_id: UUID
    user_id: UUID
    created_at: datetime


class SubmitChangeRequestRequest(BaseModel):
    approver_ids: list[UUID] = Field(min_length=1)


class ChangeRequestDecisionRequest(BaseModel):
    notes: str | None = None


class ChangeRequestRejectRequest(BaseModel):
    notes: str = Field(min_length=1)


class ChangeRequestReasonRequest(BaseModel):
    reason: str = Field(min_length=1)


class ImplementChangeRequestRequest(BaseModel):
    implementation_notes: str = Field(min_length=1)
    implemented_version_id: UUID | None = None


# ---------------------------------------------------------------------------
# Audit log
# ---------------------------------------------------------------------------


class AuditLogEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    entity_type: AuditEntityType
    entity_id: UUID
    document_id: UUID | None = None
    actor_id: UUID
    action: AuditAction
    details: dict[str, Any] | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    timestamp: datetime


class AuditStatisticsRead(BaseModel):
    total_actions: int
    action_counts: dict[str, int]
    unique_actors: int
    first_action: datetime | None = None
    last_action: datetime | None = None
