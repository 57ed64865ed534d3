from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.services import metrics as metrics_service

router = APIRouter(
    prefix="/document-control/metrics", tags=["document-control-metrics"]
)


@router.get("/dashboard")
def dashboard(db: Session = Depends(get_db)):
    return metrics_service.document_control_metrics.dashboard_metrics(db)


@router.get("/documents")
def document_status(db: Session = Depends(get_db)):
    return metrics_service.document_control_metrics.document_status_metrics(db)


@router.get("/overdue-reviews")
def overdue_reviews(db: Session = Depends(get_db)):
    return metrics_service.document_control_metrics.overdue_review_metrics(db)


@router.get("/change-requests")
def change_requests(db: Session = Depends(get_db)):
    return metrics_service.document_control_metrics.change_request_metrics(db)


@router.get("/activity")
def activity(db: Session = Depends(get_db)):
    return metrics_service.document_control_metrics.activity_metrics(db)


@router.get("/compliance")
def compliance(db: Session = Depends(get_db)):
    return metrics_service.document_control_metrics.compliance_metrics(db)


@router.get("/period")
def period(start: datetime, end: datetime, db: Session = Depends(get_db)):
    return metrics_service.document_control_metrics.metrics_for_period(db, start, end)
