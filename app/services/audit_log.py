from __future__ import annotations

import logging
import uuid
from datetime import datetime

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from app.models.document_control import AuditAction, AuditEntityType, AuditLogEntry
from app.services.common import apply_pagination, coerce_uuid
from app.services.errors import ValidationError
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)

_ACTION_LABELS = {
    AuditAction.create: "Created",
    AuditAction.update: "Updated",
    AuditAction.upload_version: "Uploaded new version",
    AuditAction.submit_for_review: "Submitted for review",
    AuditAction.submit_for_approval: "Submitted for approval",
    AuditAction.approve: "Approved",
    AuditAction.reject: "Rejected",
    AuditAction.request_changes: "Requested changes",
    AuditAction.return_to_draft: "Returned to draft",
    AuditAction.trigger_review: "Triggered review",
    AuditAction.archive: "Archived",
    AuditAction.submit: "Submitted",
    AuditAction.start_review: "Started review",
    AuditAction.cancel: "Cancelled",
    AuditAction.implement: "Marked implemented",
    AuditAction.comment: "Commented",
}


def _coerce_actions(actions) -> list[AuditAction] | None:
    if not actions:
        return None
    try:
        return [AuditAction(getattr(a, "value", a)) for a in actions]
    except ValueError as exc:
        raise ValidationError(f"Invalid audit action: {exc}")


def _apply_filters(stmt, actions, start, end):
    actions = _coerce_actions(actions)
    if actions:
        stmt = stmt.where(AuditLogEntry.action.in_(actions))
    if start is not None:
        stmt = stmt.where(AuditLogEntry.timestamp >= start)
    if end is not None:
        stmt = stmt.where(AuditLogEntry.timestamp <= end)
    return stmt


def _newest_first(stmt):
    # id breaks ties between entries written in the same transaction tick
    return stmt.order_by(AuditLogEntry.timestamp.desc(), AuditLogEntry.id.desc())


class AuditLedger(ListResponseMixin):
    """Append-only record of every state-changing action.

    ``append`` only flushes: the caller's unit of work decides whether the
    entry is committed together with the mutation it describes.
    """

    @staticmethod
    def append(
        db: Session,
        entity_type: AuditEntityType,
        entity_id: uuid.UUID,
        actor_id: uuid.UUID,
        action: AuditAction,
        details: dict | None = None,
        document_id: uuid.UUID | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuditLogEntry:
        entry = AuditLogEntry(
            entity_type=entity_type,
            entity_id=coerce_uuid(entity_id),
            document_id=coerce_uuid(document_id),
            actor_id=coerce_uuid(actor_id, "actor_id"),
            action=action,
            details=details or {},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        db.add(entry)
        db.flush()
        logger.debug(
            "Audit %s on %s/%s by %s",
            action.value,
            entity_type.value,
            entry.entity_id,
            entry.actor_id,
        )
        return entry

    @staticmethod
    def list(
        db: Session,
        entity_type: str | None,
        entity_id: str | None,
        actions: list[str] | None,
        start: datetime | None,
        end: datetime | None,
        limit: int,
        offset: int,
    ) -> list[AuditLogEntry]:
        stmt = select(AuditLogEntry)
        if entity_type is not None:
            try:
                stmt = stmt.where(
                    AuditLogEntry.entity_type == AuditEntityType(entity_type)
                )
            except ValueError:
                raise ValidationError(f"Invalid entity_type: {entity_type}")
        if entity_id is not None:
            stmt = stmt.where(AuditLogEntry.entity_id == coerce_uuid(entity_id))
        stmt = _apply_filters(stmt, actions, start, end)
        stmt = _newest_first(stmt)
        return db.scalars(apply_pagination(stmt, limit, offset)).all()

    @staticmethod
    def for_entity(
        db: Session,
        entity_id: str | uuid.UUID,
        actions: list | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[AuditLogEntry]:
        stmt = select(AuditLogEntry).where(
            AuditLogEntry.entity_id == coerce_uuid(entity_id)
        )
        stmt = _newest_first(_apply_filters(stmt, actions, start, end))
        if limit is not None:
            stmt = apply_pagination(stmt, limit, offset)
        return db.scalars(stmt).all()

    @staticmethod
    def for_document(
        db: Session,
        document_id: str | uuid.UUID,
        actions: list | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[AuditLogEntry]:
        """Entries about the document itself and about its change requests."""
        doc_id = coerce_uuid(document_id)
        stmt = select(AuditLogEntry).where(
            or_(AuditLogEntry.document_id == doc_id, AuditLogEntry.entity_id == doc_id)
        )
        stmt = _newest_first(_apply_filters(stmt, actions, None, None))
        if limit is not None:
            stmt = apply_pagination(stmt, limit, offset)
        return db.scalars(stmt).all()

    @staticmethod
    def for_actor(
        db: Session, actor_id: str | uuid.UUID, limit: int = 100
    ) -> list[AuditLogEntry]:
        stmt = select(AuditLogEntry).where(
            AuditLogEntry.actor_id == coerce_uuid(actor_id, "actor_id")
        )
        return db.scalars(_newest_first(stmt).limit(limit)).all()

    @staticmethod
    def recent_activity(
        db: Session, limit: int = 50, actions: list | None = None
    ) -> list[AuditLogEntry]:
        if limit < 1:
            raise ValidationError("limit must be positive")
        stmt = _newest_first(_apply_filters(select(AuditLogEntry), actions, None, None))
        return db.scalars(stmt.limit(limit)).all()

    @staticmethod
    def statistics(db: Session, entity_id: str | uuid.UUID) -> dict:
        entries = AuditLedger.for_entity(db, entity_id)
        action_counts: dict[str, int] = {}
        actors = set()
        for entry in entries:
            action_counts[entry.action.value] = (
                action_counts.get(entry.action.value, 0) + 1
            )
            actors.add(entry.actor_id)
        return {
            "total_actions": len(entries),
            "action_counts": action_counts,
            "unique_actors": len(actors),
            "first_action": entries[-1].timestamp if entries else None,
            "last_action": entries[0].timestamp if entries else None,
        }

    @staticmethod
    def format_action(action: AuditAction | str) -> str:
        try:
            action = AuditAction(getattr(action, "value", action))
        except ValueError:
            return str(action)
        return _ACTION_LABELS.get(action, action.value)


audit_ledger = AuditLedger()
