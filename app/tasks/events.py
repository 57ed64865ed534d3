import logging

from app.celery_app import celery_app

logger = logging.getLogger(__name__)

# Events that put a decision in front of someone
_ACTIONABLE = {
    "approval.requested",
    "document.review_triggered",
    "change_request.status_changed",
}


@celery_app.task(name="app.tasks.events.process_event", ignore_result=True)
def process_event(
    event_type: str,
    entity_type: str,
    entity_id: str,
    actor_id: str | None = None,
    document_id: str | None = None,
    payload: dict | None = None,
) -> None:
    """Downstream hook for committed lifecycle events.

    Notification delivery lives outside this service; the task records the
    event so subscribers of the log stream can pick it up.
    """
    payload = payload or {}
    logger.info(
        "Processing event %s for %s/%s (actor=%s, document=%s)",
        event_type,
        entity_type,
        entity_id,
        actor_id,
        document_id,
    )
    if event_type in _ACTIONABLE:
        _notify(event_type, entity_type, entity_id, payload)


def _notify(event_type: str, entity_type: str, entity_id: str, payload: dict) -> None:
    recipients = payload.get("approver_ids") or []
    if recipients:
        for recipient in recipients:
            logger.info(
                "Notify %s: %s on %s/%s", recipient, event_type, entity_type, entity_id
            )
    else:
        logger.info("Notify owner: %s on %s/%s", event_type, entity_type, entity_id)
