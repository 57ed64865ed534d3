import os

# Must be set before app.config is imported.
os.environ.setdefault("DATABASE_URL", "sqlite://")

import uuid
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.db import Base
from app.schemas.document_control import DocumentCreate, DocumentVersionCreate
from app.services.document_lifecycle import DocumentLifecycle


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def db_session(engine):
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def published_events():
    with patch("app.tasks.events.process_event.delay") as mock_delay:
        yield mock_delay


@pytest.fixture()
def client(db_session):
    from app.api.deps import get_db
    from app.main import app

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def owner_id():
    return uuid.uuid4()


@pytest.fixture()
def auth_headers(owner_id):
    return {"X-Actor-Id": str(owner_id)}


def _upload(db_session, document, actor_id, name="procedure.pdf"):
    return DocumentLifecycle.upload_version(
        db_session,
        document.id,
        DocumentVersionCreate(
            file_name=name,
            file_hash=uuid.uuid4().hex,
            file_size=2048,
            mime_type="application/pdf",
        ),
        actor_id,
    )


@pytest.fixture()
def upload_version(db_session):
    def _make(document, actor_id, name="procedure.pdf"):
        version = _upload(db_session, document, actor_id, name)
        db_session.refresh(document)
        return version

    return _make


@pytest.fixture()
def make_document(db_session, owner_id):
    def _make(review_frequency_days=90, with_version=True):
        document = DocumentLifecycle.create_document(
            db_session,
            DocumentCreate(
                title=f"SOP-{uuid.uuid4().hex[:6]}",
                review_frequency_days=review_frequency_days,
            ),
            owner_id,
        )
        if with_version:
            _upload(db_session, document, owner_id)
            db_session.refresh(document)
        return document

    return _make


@pytest.fixture()
def document(make_document):
    return make_document()


@pytest.fixture()
def approval_for(db_session):
    """Latest approval of ``approver_id`` on the document's current version."""

    def _find(document, approver_id):
        approvals = DocumentLifecycle.list_approvals(
            db_session, document.id, document.current_version_id
        )
        return [a for a in approvals if a.approver_id == approver_id][-1]

    return _find
