"""Typed failures raised by the lifecycle engines.

Every failure aborts the enclosing unit of work; nothing is committed when
one of these escapes an operation.
"""


class DocumentControlError(Exception):
    code = "document_control_error"
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: str | None = None, details: dict | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class NotFoundError(DocumentControlError):
    code = "not_found"
    status_code = 404
    default_message = "Resource not found"


class InvalidStateTransition(DocumentControlError):
    code = "invalid_state_transition"
    status_code = 409
    default_message = "This action is not allowed in the current state"

    def __init__(self, current: str, target: str, entity: str = "document"):
        super().__init__(
            f"Cannot move {entity} from {current} to {target}",
            {"current_status": current, "target_status": target},
        )
        self.current = current
        self.target = target


class PreconditionFailed(DocumentControlError):
    code = "precondition_failed"
    status_code = 412
    default_message = "Precondition failed"


class ConcurrentModification(DocumentControlError):
    code = "concurrent_modification"
    status_code = 409
    default_message = "This record was modified by another user. Please refresh and retry."


class ValidationError(DocumentControlError):
    code = "validation_error"
    status_code = 400
    default_message = "Invalid input"
