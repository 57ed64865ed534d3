from app.models.document_control import (  # noqa: F401
    ApprovalRole,
    ApprovalStatus,
    AuditAction,
    AuditEntityType,
    AuditLogEntry,
    ChangeRequest,
    ChangeRequestApproval,
    ChangeRequestApprovalStatus,
    ChangeRequestComment,
    ChangeRequestPriority,
    ChangeRequestStatus,
    Document,
    DocumentApproval,
    DocumentCategory,
    DocumentStatus,
    DocumentVersion,
    ImmutableRecordError,
    PermissionRole,
)
