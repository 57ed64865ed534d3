from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.config import settings
from app.schemas.common import ListResponse
from app.schemas.document_control import AuditLogEntryRead, AuditStatisticsRead
from app.services import audit_log as audit_service

router = APIRouter(prefix="/document-control/audit", tags=["document-control-audit"])


@router.get("/entries", response_model=ListResponse[AuditLogEntryRead])
def list_audit_entries(
    entity_type: str | None = None,
    entity_id: str | None = None,
    actions: list[str] | None = Query(default=None),
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return audit_service.audit_ledger.list_response(
        db, entity_type, entity_id, actions, start, end, limit, offset
    )


@router.get("/recent", response_model=list[AuditLogEntryRead])
def recent_activity(
    limit: int = Query(default=settings.recent_activity_limit, ge=1, le=500),
    actions: list[str] | None = Query(default=None),
    db: Session = Depends(get_db),
):
    return audit_service.audit_ledger.recent_activity(db, limit=limit, actions=actions)


@router.get("/documents/{document_id}", response_model=list[AuditLogEntryRead])
def document_history(
    document_id: str,
    actions: list[str] | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return audit_service.audit_ledger.for_document(
        db, document_id, actions=actions, limit=limit, offset=offset
    )


@router.get("/actors/{actor_id}", response_model=list[AuditLogEntryRead])
def actor_history(
    actor_id: str,
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return audit_service.audit_ledger.for_actor(db, actor_id, limit=limit)


@router.get("/entities/{entity_id}/statistics", response_model=AuditStatisticsRead)
def entity_statistics(entity_id: str, db: Session = Depends(get_db)):
    return audit_service.audit_ledger.statistics(db, entity_id)
