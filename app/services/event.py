import enum
import logging
import uuid

logger = logging.getLogger(__name__)


class EventType(enum.Enum):
    document_created = "document.created"
    document_status_changed = "document.status_changed"
    version_uploaded = "version.uploaded"
    approval_requested = "approval.requested"
    approval_decided = "approval.decided"
    review_triggered = "document.review_triggered"
    review_rescheduled = "document.review_rescheduled"

    change_request_created = "change_request.created"
    change_request_status_changed = "change_request.status_changed"
    change_request_commented = "change_request.commented"


def publish_event(
    event_type: EventType,
    entity_type: str,
    entity_id: str | uuid.UUID,
    actor_id: str | uuid.UUID | None = None,
    document_id: str | uuid.UUID | None = None,
    payload: dict | None = None,
) -> None:
    """Fire-and-forget event publishing, called after a successful commit.

    Queues a Celery task; notification delivery is handled downstream.
    Never raises; failures are logged.
    """
    try:
        from app.tasks.events import process_event

        process_event.delay(
            event_type=event_type.value,
            entity_type=entity_type,
            entity_id=str(entity_id),
            actor_id=str(actor_id) if actor_id else None,
            document_id=str(document_id) if document_id else None,
            payload=payload or {},
        )
        logger.debug(
            "Published event %s for %s/%s", event_type.value, entity_type, entity_id
        )
    except Exception as e:
        logger.exception("Failed to publish event %s: %s", event_type.value, e)
