"""Tests for the Flask API."""

import pytest

import main
from payroll_engine import PayrollService


class TestFlaskApi:
    """Test the HTTP routes end to end."""

    @pytest.fixture
    def client(self, catalog_store, monkeypatch):
        monkeypatch.setattr(main, "service", PayrollService(catalog_store))
        main.app.config["TESTING"] = True
        return main.app.test_client()

    @pytest.fixture
    def saved_batch(self, client, normal_extracts):
        response = client.post("/reconcile/normal", json={"extracts": normal_extracts, "batch_name": "March"})
        assert response.status_code == 200
        return response.get_json()

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.get_json()["status"] == "healthy"

    def test_api_info(self, client):
        body = client.get("/api").get_json()
        assert body["status"] == "ok"
        assert "reconcile" in body["endpoints"]

    def test_dry_run(self, client, normal_extracts):
        """A dry run returns the draft without saving a batch."""
        response = client.post("/reconcile/normal", json={"extracts": normal_extracts, "dry_run": True})
        body = response.get_json()

        assert response.status_code == 200
        assert body["is_draft"] is True
        assert body["matched_rows"] == 2
        assert client.get("/batches").get_json() == []

    def test_reconcile_and_save(self, saved_batch):
        ann = next(line for line in saved_batch["lines"] if line["agent_id"] == "agent-ann")

        assert saved_batch["is_draft"] is False
        assert saved_batch["name"] == "March"
        assert ann["personal_total"] == 150.0
        assert ann["upfront_value"] == 90.0
        assert ann["details"][0]["entry"]["kind"] == "normal"

    def test_save_without_name(self, client, normal_extracts):
        response = client.post("/reconcile/normal", json={"extracts": normal_extracts})
        assert response.status_code == 400
        assert response.get_json()["status"] == "validation_failed"

    def test_unknown_channel(self, client, normal_extracts):
        response = client.post("/reconcile/retail", json={"extracts": normal_extracts, "dry_run": True})
        assert response.status_code == 400

    def test_empty_body(self, client):
        response = client.post("/reconcile/normal", data="")
        assert response.status_code == 400

    def test_batch_lines_include_sales(self, client, saved_batch):
        body = client.get(f"/batches/{saved_batch['id']}/lines").get_json()
        ann = next(line for line in body["lines"] if line["agent_id"] == "agent-ann")

        assert ann["details"][0]["sale"]["order_number"] == "1001"
        assert "is_overdue" in ann["details"][0]["sale"]

    def test_toggle_line_and_entry(self, client, saved_batch):
        ann = next(line for line in saved_batch["lines"] if line["agent_id"] == "agent-ann")

        paid = client.post(f"/lines/{ann['id']}/toggle", json={"dimension": "frontend"}).get_json()
        assert paid["frontend_is_paid"] is True

        entry = ann["details"][0]["entry"]
        demoted = client.post(
            f"/lines/{ann['id']}/entries/toggle", json={"dimension": "frontend", "entry": entry}
        ).get_json()
        assert demoted["frontend_is_paid"] is False

    def test_toggle_bad_dimension(self, client, saved_batch):
        line_id = saved_batch["lines"][0]["id"]
        response = client.post(f"/lines/{line_id}/toggle", json={"dimension": "sideways"})
        assert response.status_code == 400

    def test_rename_and_delete(self, client, saved_batch):
        renamed = client.patch(f"/batches/{saved_batch['id']}", json={"batch_name": "April"})
        assert renamed.get_json()["name"] == "April"

        assert client.delete(f"/batches/{saved_batch['id']}").status_code == 200
        assert client.get("/batches").get_json() == []

    def test_adjustment_lifecycle(self, client):
        created = client.post("/adjustments", json={"agent_id": "agent-ann", "kind": "deduction", "amount": 25})
        assert created.status_code == 201
        adjustment = created.get_json()
        assert adjustment["signed_amount"] == -25.0

        done = client.post(f"/adjustments/{adjustment['id']}/complete", json={}).get_json()
        assert done["is_completed"] is True

        reopened = client.post(f"/adjustments/{adjustment['id']}/reopen").get_json()
        assert reopened["is_completed"] is False

        listed = client.get("/adjustments?agent_id=agent-ann").get_json()
        assert [a["id"] for a in listed] == [adjustment["id"]]

    def test_agent_earnings(self, client, saved_batch):
        """Lines saved today count toward both the month and the year."""
        body = client.get("/agents/agent-ann/earnings").get_json()

        assert body["agent_id"] == "agent-ann"
        assert body["monthly_total"] == 150.0
        assert body["yearly_total"] == 150.0

    def test_adjustment_bad_amount(self, client):
        response = client.post("/adjustments", json={"agent_id": "agent-ann", "amount": "abc"})
        assert response.status_code == 400
        assert response.get_json()["status"] == "validation_failed"

    def test_store_failure_is_generic(self, client, monkeypatch, normal_extracts):
        """Store errors return a generic message."""
        from payroll_engine.store import RecordStoreError

        def fail(*args, **kwargs):
            raise RecordStoreError("connection reset")

        monkeypatch.setattr(main.service.processor, "reconcile", fail)
        response = client.post("/reconcile/normal", json={"extracts": normal_extracts, "dry_run": True})

        assert response.status_code == 500
        assert response.get_json()["error"] == "could not generate report"
