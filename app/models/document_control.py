import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Enum,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base, UTCDateTime, utcnow


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class DocumentStatus(enum.Enum):
    draft = "draft"
    pending_review = "pending_review"
    pending_approval = "pending_approval"
    approved = "approved"
    under_review = "under_review"
    archived = "archived"


class ApprovalRole(enum.Enum):
    reviewer = "reviewer"
    approver = "approver"


class ApprovalStatus(enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    changes_requested = "changes_requested"


class PermissionRole(enum.Enum):
    owner = "owner"
    approver = "approver"
    reviewer = "reviewer"
    viewer = "viewer"


class ChangeRequestStatus(enum.Enum):
    draft = "draft"
    submitted = "submitted"
    under_review = "under_review"
    approved = "approved"
    rejected = "rejected"
    implemented = "implemented"
    cancelled = "cancelled"


class ChangeRequestPriority(enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class ChangeRequestApprovalStatus(enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class AuditEntityType(enum.Enum):
    document = "document"
    change_request = "change_request"


class AuditAction(enum.Enum):
    create = "create"
    update = "update"
    upload_version = "upload_version"
    submit_for_review = "submit_for_review"
    submit_for_approval = "submit_for_approval"
    approve = "approve"
    reject = "reject"
    request_changes = "request_changes"
    return_to_draft = "return_to_draft"
    trigger_review = "trigger_review"
    archive = "archive"
    submit = "submit"
    start_review = "start_review"
    cancel = "cancel"
    implement = "implement"
    comment = "comment"


# ---------------------------------------------------------------------------
# Document Categories
# ---------------------------------------------------------------------------


class DocumentCategory(Base):
    __tablename__ = "document_categories"
    __table_args__ = (UniqueConstraint("name", name="uq_document_categories_name"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    default_review_frequency_days: Mapped[int | None] = mapped_column(Integer)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    documents = relationship("Document", back_populates="category")


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_owner_id", "owner_id"),
        Index("ix_documents_status", "status"),
        Index("ix_documents_next_review_date", "next_review_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    category_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("document_categories.id")
    )
    status: Mapped[DocumentStatus] = mapped_column(
        Enum(DocumentStatus), nullable=False, default=DocumentStatus.draft
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    # Set after the first version is uploaded
    current_version_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey(
            "document_versions.id",
            use_alter=True,
            name="fk_documents_current_version_id",
        ),
    )
    effective_date: Mapped[datetime | None] = mapped_column(UTCDateTime)
    review_frequency_days: Mapped[int | None] = mapped_column(Integer)
    next_review_date: Mapped[datetime | None] = mapped_column(UTCDateTime)
    approval_round: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lock_version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, onupdate=utcnow
    )

    __mapper_args__ = {"version_id_col": lock_version}

    category = relationship("DocumentCategory", back_populates="documents")
    current_version = relationship(
        "DocumentVersion", foreign_keys=[current_version_id], post_update=True
    )
    versions = relationship(
        "DocumentVersion",
        foreign_keys="DocumentVersion.document_id",
        back_populates="document",
        order_by="DocumentVersion.version_number.desc()",
    )
    approvals = relationship("DocumentApproval", back_populates="document")
    change_requests = relationship("ChangeRequest", back_populates="document")


# ---------------------------------------------------------------------------
# Document Versions (immutable, no updated_at)
# ---------------------------------------------------------------------------


class DocumentVersion(Base):
    __tablename__ = "document_versions"
    __table_args__ = (
        UniqueConstraint(
            "document_id",
            "version_number",
            name="uq_document_versions_doc_version",
        ),
        Index("ix_document_versions_document_id", "document_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("documents.id"), nullable=False
    )
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    file_name: Mapped[str] = mapped_column(String(500), nullable=False)
    file_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    mime_type: Mapped[str | None] = mapped_column(String(255))
    uploaded_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    # No updated_at: immutable record

    document = relationship(
        "Document",
        foreign_keys=[document_id],
        back_populates="versions",
    )


# ---------------------------------------------------------------------------
# Document Approvals
# ---------------------------------------------------------------------------


class DocumentApproval(Base):
    __tablename__ = "document_approvals"
    __table_args__ = (
        UniqueConstraint(
            "version_id",
            "round_number",
            "approver_id",
            name="uq_document_approvals_version_round_approver",
        ),
        Index("ix_document_approvals_document_id", "document_id"),
        Index("ix_document_approvals_approver_id", "approver_id"),
        Index("ix_document_approvals_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("documents.id"), nullable=False
    )
    version_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("document_versions.id"), nullable=False
    )
    round_number: Mapped[int] = mapped_column(Integer, nullable=False)
    approver_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    role: Mapped[ApprovalRole] = mapped_column(Enum(ApprovalRole), nullable=False)
    status: Mapped[ApprovalStatus] = mapped_column(
        Enum(ApprovalStatus), nullable=False, default=ApprovalStatus.pending
    )
    notes: Mapped[str | None] = mapped_column(Text)
    decided_at: Mapped[datetime | None] = mapped_column(UTCDateTime)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    document = relationship("Document", back_populates="approvals")
    version = relationship("DocumentVersion")


# ---------------------------------------------------------------------------
# Change Requests
# ---------------------------------------------------------------------------


class ChangeRequest(Base):
    __tablename__ = "change_requests"
    __table_args__ = (
        Index("ix_change_requests_document_id", "document_id"),
        Index("ix_change_requests_status", "status"),
        Index("ix_change_requests_requested_by", "requested_by"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("documents.id")
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    requested_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    priority: Mapped[ChangeRequestPriority] = mapped_column(
        Enum(ChangeRequestPriority),
        nullable=False,
        default=ChangeRequestPriority.medium,
    )
    status: Mapped[ChangeRequestStatus] = mapped_column(
        Enum(ChangeRequestStatus), nullable=False, default=ChangeRequestStatus.draft
    )
    approval_round: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    implemented_version_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("document_versions.id")
    )
    lock_version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, onupdate=utcnow
    )

    __mapper_args__ = {"version_id_col": lock_version}

    document = relationship("Document", back_populates="change_requests")
    implemented_version = relationship("DocumentVersion")
    approvals = relationship("ChangeRequestApproval", back_populates="change_request")
    comments = relationship(
        "ChangeRequestComment",
        back_populates="change_request",
        order_by="ChangeRequestComment.created_at",
    )


class ChangeRequestApproval(Base):
    __tablename__ = "change_request_approvals"
    __table_args__ = (
        UniqueConstraint(
            "change_request_id",
            "round_number",
            "approver_id",
            name="uq_change_request_approvals_round_approver",
        ),
        Index("ix_change_request_approvals_change_request_id", "change_request_id"),
        Index("ix_change_request_approvals_approver_id", "approver_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    change_request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("change_requests.id"), nullable=False
    )
    round_number: Mapped[int] = mapped_column(Integer, nullable=False)
    approver_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    status: Mapped[ChangeRequestApprovalStatus] = mapped_column(
        Enum(ChangeRequestApprovalStatus),
        nullable=False,
        default=ChangeRequestApprovalStatus.pending,
    )
    notes: Mapped[str | None] = mapped_column(Text)
    decided_at: Mapped[datetime | None] = mapped_column(UTCDateTime)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    change_request = relationship("ChangeRequest", back_populates="approvals")


class ChangeRequestComment(Base):
    __tablename__ = "change_request_comments"
    __table_args__ = (
        Index("ix_change_request_comments_change_request_id", "change_request_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    change_request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("change_requests.id"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    comment: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    change_request = relationship("ChangeRequest", back_populates="comments")


# ---------------------------------------------------------------------------
# Audit Log (append-only)
# ---------------------------------------------------------------------------


class AuditLogEntry(Base):
    __tablename__ = "document_audit_log"
    __table_args__ = (
        Index("ix_document_audit_log_entity", "entity_type", "entity_id"),
        Index("ix_document_audit_log_document_id", "document_id"),
        Index("ix_document_audit_log_actor_id", "actor_id"),
        Index("ix_document_audit_log_timestamp", "timestamp"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    entity_type: Mapped[AuditEntityType] = mapped_column(
        Enum(AuditEntityType), nullable=False
    )
    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    document_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("documents.id")
    )
    actor_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    action: Mapped[AuditAction] = mapped_column(Enum(AuditAction), nullable=False)
    details: Mapped[dict | None] = mapped_column(JSON)
    ip_address: Mapped[str | None] = mapped_column(String(64))
    user_agent: Mapped[str | None] = mapped_column(String(512))

    timestamp: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow
    )
    # No updated_at: append-only


class ImmutableRecordError(RuntimeError):
    pass


@event.listens_for(AuditLogEntry, "before_update")
def _prevent_audit_update(mapper, connection, target):
    raise ImmutableRecordError(f"Audit log entry {target.id} cannot be modified")


@event.listens_for(AuditLogEntry, "before_delete")
def _prevent_audit_delete(mapper, connection, target):
    raise ImmutableRecordError(f"Audit log entry {target.id} cannot be deleted")


@event.listens_for(DocumentVersion, "before_update")
def _prevent_version_update(mapper, connection, target):
    raise ImmutableRecordError(f"Document version {target.id} is immutable")


@event.listens_for(DocumentVersion, "before_delete")
def _prevent_version_delete(mapper, connection, target):
    raise ImmutableRecordError(f"Document version {target.id} cannot be deleted")
