import logging
import uuid
from unittest.mock import MagicMock, patch

from app.services.event import EventType, publish_event


class TestEventType:
    def test_all_event_types_have_dotted_values(self) -> None:
        for et in EventType:
            assert "." in et.value, f"{et.name} value should contain a dot"

    def test_event_type_count(self) -> None:
        assert len(EventType) == 10

    def test_document_events(self) -> None:
        assert EventType.document_created.value == "document.created"
        assert EventType.document_status_changed.value == "document.status_changed"
        assert EventType.review_triggered.value == "document.review_triggered"
        assert EventType.review_rescheduled.value == "document.review_rescheduled"

    def test_approval_events(self) -> None:
        assert EventType.approval_requested.value == "approval.requested"
        assert EventType.approval_decided.value == "approval.decided"

    def test_change_request_events(self) -> None:
        assert EventType.change_request_created.value == "change_request.created"
        assert (
            EventType.change_request_status_changed.value
            == "change_request.status_changed"
        )


class TestPublishEvent:
    @patch("app.tasks.events.process_event.delay")
    def test_publish_event_calls_delay(self, mock_delay: MagicMock) -> None:
        entity_id = uuid.uuid4()
        actor_id = uuid.uuid4()
        doc_id = uuid.uuid4()
        publish_event(
            EventType.document_created,
            entity_type="document",
            entity_id=entity_id,
            actor_id=actor_id,
            document_id=doc_id,
            payload={"key": "value"},
        )
        mock_delay.assert_called_once_with(
            event_type="document.created",
            entity_type="document",
            entity_id=str(entity_id),
            actor_id=str(actor_id),
            document_id=str(doc_id),
            payload={"key": "value"},
        )

    @patch("app.tasks.events.process_event.delay")
    def test_publish_event_none_actor_and_document(self, mock_delay: MagicMock) -> None:
        entity_id = uuid.uuid4()
        publish_event(
            EventType.change_request_created,
            entity_type="change_request",
            entity_id=entity_id,
        )
        mock_delay.assert_called_once_with(
            event_type="change_request.created",
            entity_type="change_request",
            entity_id=str(entity_id),
            actor_id=None,
            document_id=None,
            payload={},
        )

    @patch("app.tasks.events.process_event.delay", side_effect=RuntimeError("down"))
    def test_publish_event_never_raises(self, mock_delay: MagicMock) -> None:
        publish_event(
            EventType.document_created,
            entity_type="document",
            entity_id=uuid.uuid4(),
        )
        # Should not raise


class TestProcessEventTask:
    def test_notifies_each_approver(self, caplog) -> None:
        from app.tasks.events import process_event

        with caplog.at_level(logging.INFO, logger="app.tasks.events"):
            process_event(
                event_type="approval.requested",
                entity_type="document",
                entity_id="doc1",
                actor_id="actor1",
                document_id="doc1",
                payload={"approver_ids": ["r1", "r2"], "role": "reviewer"},
            )
        notices = [r.getMessage() for r in caplog.records if "Notify" in r.getMessage()]
        assert notices == [
            "Notify r1: approval.requested on document/doc1",
            "Notify r2: approval.requested on document/doc1",
        ]

    def test_notifies_owner_without_recipients(self, caplog) -> None:
        from app.tasks.events import process_event

        with caplog.at_level(logging.INFO, logger="app.tasks.events"):
            process_event(
                event_type="document.review_triggered",
                entity_type="document",
                entity_id="doc1",
            )
        assert any(
            r.getMessage() == "Notify owner: document.review_triggered on document/doc1"
            for r in caplog.records
        )

    def test_informational_events_are_only_logged(self, caplog) -> None:
        from app.tasks.events import process_event

        with caplog.at_level(logging.INFO, logger="app.tasks.events"):
            process_event(
                event_type="version.uploaded",
                entity_type="document",
                entity_id="doc1",
                payload={"version_number": 2},
            )
        assert not any("Notify" in r.getMessage() for r in caplog.records)
        assert any("version.uploaded" in r.getMessage() for r in caplog.records)
