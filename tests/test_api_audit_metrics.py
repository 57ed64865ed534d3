import uuid

AUDIT = "/document-control/audit"
METRICS = "/document-control/metrics"


class TestAuditEndpoints:
    def test_document_history(self, client, document):
        entries = client.get(f"{AUDIT}/documents/{document.id}").json()
        assert [e["action"] for e in entries] == ["upload_version", "create"]

    def test_entries_filtered_by_action(self, client, document):
        body = client.get(
            f"{AUDIT}/entries",
            params={
                "entity_type": "document",
                "entity_id": str(document.id),
                "actions": ["create"],
            },
        ).json()
        assert body["count"] == 1
        assert body["items"][0]["action"] == "create"

    def test_unknown_action_filter(self, client):
        response = client.get(f"{AUDIT}/entries", params={"actions": ["explode"]})
        assert response.status_code == 400

    def test_recent_and_actor(self, client, document, owner_id):
        recent = client.get(f"{AUDIT}/recent", params={"limit": 1}).json()
        assert len(recent) == 1
        mine = client.get(f"{AUDIT}/actors/{owner_id}").json()
        assert {e["entity_id"] for e in mine} == {str(document.id)}

    def test_statistics(self, client, document, owner_id):
        stats = client.get(f"{AUDIT}/entities/{document.id}/statistics").json()
        assert stats["total_actions"] == 2
        assert stats["unique_actors"] == 1
        assert stats["action_counts"] == {"create": 1, "upload_version": 1}

    def test_versioned_prefix(self, client, document):
        response = client.get(f"/api/v1{AUDIT}/documents/{document.id}")
        assert response.status_code == 200


class TestMetricsEndpoints:
    def test_dashboard(self, client, document):
        body = client.get(f"{METRICS}/dashboard").json()
        assert body["documents"]["total"] == 1
        assert body["compliance"]["compliance_score"] == 100.0

    def test_sections(self, client, document):
        for section in (
            "documents",
            "overdue-reviews",
            "change-requests",
            "activity",
            "compliance",
        ):
            assert client.get(f"{METRICS}/{section}").status_code == 200

    def test_period(self, client, document):
        response = client.get(
            f"{METRICS}/period",
            params={"start": "2000-01-01T00:00:00Z", "end": "2100-01-01T00:00:00Z"},
        )
        body = response.json()
        assert body["documents_created"] == 1
        assert body["total_activity"] == 2

    def test_period_inverted(self, client):
        response = client.get(
            f"{METRICS}/period",
            params={"start": "2025-02-01T00:00:00Z", "end": "2025-01-01T00:00:00Z"},
        )
        assert response.status_code == 400

    def test_overdue_reviews_empty(self, client):
        body = client.get(f"{METRICS}/overdue-reviews").json()
        assert body["total_overdue"] == 0
        assert body["overdue_documents"] == []

    def test_change_request_metrics(self, client, auth_headers):
        client.post(
            "/document-control/change-requests",
            json={"title": "X", "description": "Y", "priority": "high"},
            headers=auth_headers,
        )
        body = client.get(f"{METRICS}/change-requests").json()
        assert body["by_priority"]["high"] == 1
        assert body["open_requests"] == 1

    def test_activity_contributors(self, client, document, owner_id):
        body = client.get(f"{METRICS}/activity").json()
        assert body["top_contributors"] == [
            {"actor_id": str(owner_id), "action_count": 2}
        ]
        assert uuid.UUID(body["top_contributors"][0]["actor_id"]) == owner_id
