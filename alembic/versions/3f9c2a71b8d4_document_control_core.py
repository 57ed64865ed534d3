"""document control core: documents, approvals, change requests, audit log

Revision ID: 3f9c2a71b8d4
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from alembic import op
import sqlalchemy as sa

revision = "3f9c2a71b8d4"
down_revision = None
branch_labels = None
depends_on = None

_ENUMS = {
    "documentstatus": (
        "draft",
        "pending_review",
        "pending_approval",
        "approved",
        "under_review",
        "archived",
    ),
    "approvalrole": ("reviewer", "approver"),
    "approvalstatus": ("pending", "approved", "rejected", "changes_requested"),
    "changerequeststatus": (
        "draft",
        "submitted",
        "under_review",
        "approved",
        "rejected",
        "implemented",
        "cancelled",
    ),
    "changerequestpriority": ("low", "medium", "high", "critical"),
    "changerequestapprovalstatus": ("pending", "approved", "rejected"),
    "auditentitytype": ("document", "change_request"),
    "auditaction": (
        "create",
        "update",
        "upload_version",
        "submit_for_review",
        "submit_for_approval",
        "approve",
        "reject",
        "request_changes",
        "return_to_draft",
        "trigger_review",
        "archive",
        "submit",
        "start_review",
        "cancel",
        "implement",
        "comment",
    ),
}


def _enum(name: str) -> sa.Enum:
    return sa.Enum(*_ENUMS[name], name=name, create_type=False)


def upgrade() -> None:
    # --- Enums ---
    for name, values in _ENUMS.items():
        sa.Enum(*values, name=name).create(op.get_bind(), checkfirst=True)

    # --- Categories ---
    op.create_table(
        "document_categories",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("default_review_frequency_days", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_document_categories_name"),
    )

    # --- Documents ---
    op.create_table(
        "documents",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category_id", sa.UUID(), nullable=True),
        sa.Column("status", _enum("documentstatus"), nullable=False),
        sa.Column("owner_id", sa.UUID(), nullable=False),
        sa.Column("current_version_id", sa.UUID(), nullable=True),
        sa.Column("effective_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("review_frequency_days", sa.Integer(), nullable=True),
        sa.Column("next_review_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approval_round", sa.Integer(), nullable=False),
        sa.Column("lock_version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["category_id"], ["document_categories.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_documents_owner_id", "documents", ["owner_id"])
    op.create_index("ix_documents_status", "documents", ["status"])
    op.create_index("ix_documents_next_review_date", "documents", ["next_review_date"])

    op.create_table(
        "document_versions",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("document_id", sa.UUID(), nullable=False),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("file_name", sa.String(length=500), nullable=False),
        sa.Column("file_hash", sa.String(length=128), nullable=False),
        sa.Column("file_size", sa.BigInteger(), nullable=False),
        sa.Column("mime_type", sa.String(length=255), nullable=True),
        sa.Column("uploaded_by", sa.UUID(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "document_id", "version_number", name="uq_document_versions_doc_version"
        ),
    )
    op.create_index(
        "ix_document_versions_document_id", "document_versions", ["document_id"]
    )

    # --- Circular FK: documents.current_version_id -> document_versions.id ---
    op.create_foreign_key(
        "fk_documents_current_version_id",
        "documents",
        "document_versions",
        ["current_version_id"],
        ["id"],
    )

    op.create_table(
        "document_approvals",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("document_id", sa.UUID(), nullable=False),
        sa.Column("version_id", sa.UUID(), nullable=False),
        sa.Column("round_number", sa.Integer(), nullable=False),
        sa.Column("approver_id", sa.UUID(), nullable=False),
        sa.Column("role", _enum("approvalrole"), nullable=False),
        sa.Column("status", _enum("approvalstatus"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"]),
        sa.ForeignKeyConstraint(["version_id"], ["document_versions.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "version_id",
            "round_number",
            "approver_id",
            name="uq_document_approvals_version_round_approver",
        ),
    )
    op.create_index(
        "ix_document_approvals_document_id", "document_approvals", ["document_id"]
    )
    op.create_index(
        "ix_document_approvals_approver_id", "document_approvals", ["approver_id"]
    )
    op.create_index("ix_document_approvals_status", "document_approvals", ["status"])

    # --- Change requests ---
    op.create_table(
        "change_requests",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("document_id", sa.UUID(), nullable=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("requested_by", sa.UUID(), nullable=False),
        sa.Column("priority", _enum("changerequestpriority"), nullable=False),
        sa.Column("status", _enum("changerequeststatus"), nullable=False),
        sa.Column("approval_round", sa.Integer(), nullable=False),
        sa.Column("implemented_version_id", sa.UUID(), nullable=True),
        sa.Column("lock_version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"]),
        sa.ForeignKeyConstraint(["implemented_version_id"], ["document_versions.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_change_requests_document_id", "change_requests", ["document_id"]
    )
    op.create_index("ix_change_requests_status", "change_requests", ["status"])
    op.create_index(
        "ix_change_requests_requested_by", "change_requests", ["requested_by"]
    )

    op.create_table(
        "change_request_approvals",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("change_request_id", sa.UUID(), nullable=False),
        sa.Column("round_number", sa.Integer(), nullable=False),
        sa.Column("approver_id", sa.UUID(), nullable=False),
        sa.Column("status", _enum("changerequestapprovalstatus"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["change_request_id"], ["change_requests.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "change_request_id",
            "round_number",
            "approver_id",
            name="uq_change_request_approvals_round_approver",
        ),
    )
    op.create_index(
        "ix_change_request_approvals_change_request_id",
        "change_request_approvals",
        ["change_request_id"],
    )
    op.create_index(
        "ix_change_request_approvals_approver_id",
        "change_request_approvals",
        ["approver_id"],
    )

    op.create_table(
        "change_request_comments",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("change_request_id", sa.UUID(), nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["change_request_id"], ["change_requests.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_change_request_comments_change_request_id",
        "change_request_comments",
        ["change_request_id"],
    )

    # --- Audit log (append-only) ---
    op.create_table(
        "document_audit_log",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("entity_type", _enum("auditentitytype"), nullable=False),
        sa.Column("entity_id", sa.UUID(), nullable=False),
        sa.Column("document_id", sa.UUID(), nullable=True),
        sa.Column("actor_id", sa.UUID(), nullable=False),
        sa.Column("action", _enum("auditaction"), nullable=False),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["document_id"], ["documents.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_document_audit_log_entity",
        "document_audit_log",
        ["entity_type", "entity_id"],
    )
    op.create_index(
        "ix_document_audit_log_document_id", "document_audit_log", ["document_id"]
    )
    op.create_index(
        "ix_document_audit_log_actor_id", "document_audit_log", ["actor_id"]
    )
    op.create_index(
        "ix_document_audit_log_timestamp", "document_audit_log", ["timestamp"]
    )


def downgrade() -> None:
    op.drop_index("ix_document_audit_log_timestamp", table_name="document_audit_log")
    op.drop_index("ix_document_audit_log_actor_id", table_name="document_audit_log")
    op.drop_index(
        "ix_document_audit_log_document_id", table_name="document_audit_log"
    )
    op.drop_index("ix_document_audit_log_entity", table_name="document_audit_log")
    op.drop_table("document_audit_log")

    op.drop_index(
        "ix_change_request_comments_change_request_id",
        table_name="change_request_comments",
    )
    op.drop_table("change_request_comments")

    op.drop_index(
        "ix_change_request_approvals_approver_id",
        table_name="change_request_approvals",
    )
    op.drop_index(
        "ix_change_request_approvals_change_request_id",
        table_name="change_request_approvals",
    )
    op.drop_table("change_request_approvals")

    op.drop_index("ix_change_requests_requested_by", table_name="change_requests")
    op.drop_index("ix_change_requests_status", table_name="change_requests")
    op.drop_index("ix_change_requests_document_id", table_name="change_requests")
    op.drop_table("change_requests")

    op.drop_index("ix_document_approvals_status", table_name="document_approvals")
    op.drop_index("ix_document_approvals_approver_id", table_name="document_approvals")
    op.drop_index("ix_document_approvals_document_id", table_name="document_approvals")
    op.drop_table("document_approvals")

    op.drop_constraint(
        "fk_documents_current_version_id", "documents", type_="foreignkey"
    )

    op.drop_index("ix_document_versions_document_id", table_name="document_versions")
    op.drop_table("document_versions")

    op.drop_index("ix_documents_next_review_date", table_name="documents")
    op.drop_index("ix_documents_status", table_name="documents")
    op.drop_index("ix_documents_owner_id", table_name="documents")
    op.drop_table("documents")

    op.drop_table("document_categories")

    for enum_name in _ENUMS:
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
