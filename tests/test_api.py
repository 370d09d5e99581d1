"""Summary: API integration tests.

Importance: Validates FastAPI endpoints against core quote and automation workflows.
Alternatives: Use manual curl testing only.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from autoquote.api import create_app
from autoquote.config import AppConfig


def _build_config(db_path: str, api_key: str = "") -> AppConfig:
    """Summary: Build an AppConfig for API tests.

    Importance: Ensures tests use isolated storage.
    Alternatives: Load AppConfig from environment variables.
    """

    return AppConfig(
        db_path=db_path,
        company_name="Acme",
        expiry_days=30,
        quote_prefix="PRV",
        log_cap=200,
        currency_symbol="€",
        api_host="127.0.0.1",
        api_port=8000,
        api_key=api_key,
    )


def _create_quote(client: TestClient, issue_date: str = "2026-03-04") -> dict:
    response = client.post(
        "/quotes",
        json={
            "client_name": "Mario Rossi",
            "items": [{"description": "Sito", "quantity": 1, "unit_price": 800, "tax_rate": 22}],
            "issue_date": issue_date,
        },
    )
    assert response.status_code == 200
    return response.json()


def test_api_create_and_get_quote(tmp_path: Path) -> None:
    """Summary: Verify quotes are created as numbered drafts with derived expiry.

    Importance: Confirms the HTTP layer wires into the quote service and storage.
    Alternatives: Validate only the CLI workflow.
    """

    client = TestClient(create_app(_build_config(str(tmp_path / "test.db"))))
    created = _create_quote(client)
    assert created["number"] == "PRV-2026-001"
    assert created["status"] == "draft"
    assert created["expiry_date"] == "2026-04-03"
    assert created["total"] == 976.0
    fetched = client.get(f"/quotes/{created['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["client_name"] == "Mario Rossi"
    assert client.get("/quotes/missing").status_code == 404
    assert len(client.get("/quotes", params={"status": "draft"}).json()) == 1
    assert client.delete(f"/quotes/{created['id']}").json() == {"status": "deleted"}
    assert client.delete(f"/quotes/{created['id']}").status_code == 404


def test_api_status_transitions(tmp_path: Path) -> None:
    client = TestClient(create_app(_build_config(str(tmp_path / "test.db"))))
    quote_id = _create_quote(client)["id"]
    strict = client.post(f"/quotes/{quote_id}/status", json={"status": "accepted", "strict": True})
    assert strict.status_code == 409
    assert client.post(f"/quotes/{quote_id}/status", json={"status": "bogus"}).status_code == 400
    sent = client.post(f"/quotes/{quote_id}/status", json={"status": "sent", "strict": True})
    assert sent.json()["status"] == "sent"


def test_api_acceptance_and_payment_log_events(tmp_path: Path) -> None:
    """Summary: Verify acceptance and full payment produce log entries.

    Importance: Event rules fire when the user acts, not in the daily pass.
    Alternatives: Poll for status changes.
    """

    client = TestClient(create_app(_build_config(str(tmp_path / "test.db"))))
    quote_id = _create_quote(client)["id"]
    client.post(f"/quotes/{quote_id}/status", json={"status": "sent"})
    client.post(f"/quotes/{quote_id}/status", json={"status": "accepted"})
    assert client.post(f"/quotes/{quote_id}/payment", json={}).status_code == 400
    no_amount = client.post(f"/quotes/{quote_id}/payment", json={"status": "partial"})
    assert no_amount.status_code == 400
    partial = client.post(f"/quotes/{quote_id}/payment", json={"amount": 100})
    assert partial.json()["payment_status"] == "partial"
    paid = client.post(f"/quotes/{quote_id}/payment", json={"status": "paid"})
    assert paid.json()["paid_amount"] == pytest.approx(976.0)
    rule_ids = {entry["rule_id"] for entry in client.get("/automations/log").json()}
    assert rule_ids == {"rule_accepted_notify", "rule_payment_received"}
    stats = client.get("/stats/payments").json()
    assert stats["payments"]["paid"] == 976.0
    assert stats["statuses"]["accepted"] == 1


def test_api_run_automations_is_gated(tmp_path: Path) -> None:
    client = TestClient(create_app(_build_config(str(tmp_path / "test.db"))))
    quote_id = _create_quote(client)["id"]
    client.post(f"/quotes/{quote_id}/status", json={"status": "sent"})
    first = client.post("/automations/run", json={"today": "2026-03-11"})
    assert first.status_code == 200
    assert first.json()["skipped"] is False
    assert [entry["rule_id"] for entry in first.json()["entries"]] == ["rule_followup_7d"]
    second = client.post("/automations/run", json={"today": "2026-03-11"})
    assert second.json() == {"skipped": True, "entries": []}
    log = client.get("/automations/log", params={"status": "pending"}).json()
    assert len(log) == 1
    assert client.get("/automations/log", params={"status": "nope"}).status_code == 400
    assert client.delete("/automations/log").json() == {"status": "cleared"}
    assert client.get("/automations/log").json() == []


def test_api_rule_updates(tmp_path: Path) -> None:
    client = TestClient(create_app(_build_config(str(tmp_path / "test.db"))))
    rules = client.get("/automations/rules").json()
    assert len(rules) == 9
    updated = client.patch(
        "/automations/rules/rule_weekly_report", json={"enabled": True, "channel": "internal"}
    )
    assert updated.status_code == 200
    assert updated.json()["enabled"] is True
    assert client.patch("/automations/rules/rule_weekly_report", json={}).status_code == 400
    assert client.patch("/automations/rules/missing", json={"enabled": False}).status_code == 404
    invalid = client.patch("/automations/rules/rule_expired", json={"channel": "sms"})
    assert invalid.status_code == 400


def test_api_reminders(tmp_path: Path) -> None:
    client = TestClient(create_app(_build_config(str(tmp_path / "test.db"))))
    assert client.get("/reminders").json() == []


def test_api_key_required(tmp_path: Path) -> None:
    """Summary: Verify API key enforcement when configured.

    Importance: Prevents unauthenticated access on shared hosts.
    Alternatives: Rely on network isolation alone.
    """

    client = TestClient(create_app(_build_config(str(tmp_path / "test.db"), api_key="k")))
    assert client.get("/health").status_code == 200
    assert client.get("/quotes").status_code == 401
    assert client.get("/quotes", headers={"X-API-Key": "k"}).status_code == 200
