from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import structlog.testing
from fastapi.testclient import TestClient

from subsense import services
from subsense.main import app

client = TestClient(app)


@pytest.fixture(autouse=True)
def reset_manager_state():
    services.manager = services.SubscriptionManager()
    yield
    services.manager = services.SubscriptionManager()


def create(payload: dict, user: str = "alice") -> dict:
    response = client.post("/subscriptions", json=payload, headers={"X-User-Id": user})
    assert response.status_code == 201, response.text
    return response.json()


def test_create_subscription_scores_it():
    data = create(
        {
            "name": "Todoist",
            "category": "Productivity",
            "monthly_cost": 10,
            "usage_frequency": "daily",
            "importance": "high",
        }
    )
    assert data["roi_score"] == 93
    assert data["status"] == "good"
    assert data["billing_cycle"] == "monthly"
    assert data["usage_scope"] == "personal"


def test_duplicate_names_are_rejected_case_insensitively():
    payload = {"name": "Netflix", "monthly_cost": 15, "usage_frequency": "weekly", "importance": "low"}
    create(payload)
    response = client.post(
        "/subscriptions", json={**payload, "name": "NETFLIX"}, headers={"X-User-Id": "alice"}
    )
    assert response.status_code == 409

    # Another user may track the same service.
    create(payload, user="bob")


def test_invalid_payload_is_rejected():
    response = client.post(
        "/subscriptions",
        json={"name": "Bad", "monthly_cost": -5, "usage_frequency": "daily", "importance": "high"},
    )
    assert response.status_code == 422

    response = client.post(
        "/subscriptions",
        json={"name": "Bad", "monthly_cost": 5, "usage_frequency": "hourly", "importance": "high"},
    )
    assert response.status_code == 422


def test_update_recomputes_score_and_status():
    created = create(
        {
            "name": "Todoist",
            "category": "Productivity",
            "monthly_cost": 10,
            "usage_frequency": "daily",
            "importance": "high",
        }
    )
    response = client.patch(
        f"/subscriptions/{created['id']}",
        json={"usage_frequency": "rare", "importance": "low", "monthly_cost": 60},
        headers={"X-User-Id": "alice"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["roi_score"] == 14
    assert data["status"] == "cut"
    assert data["created_at"] == created["created_at"]


def test_update_ignores_derived_fields():
    created = create(
        {"name": "Todoist", "category": "Productivity", "monthly_cost": 10, "usage_frequency": "daily", "importance": "high"}
    )
    response = client.patch(
        f"/subscriptions/{created['id']}",
        json={"roi_score": 1, "status": "cut"},
        headers={"X-User-Id": "alice"},
    )
    assert response.status_code == 200
    assert response.json()["roi_score"] == 93
    assert response.json()["status"] == "good"


def test_subscriptions_are_scoped_to_their_user():
    created = create({"name": "Slack", "monthly_cost": 8, "usage_frequency": "daily", "importance": "high"})
    assert client.get(f"/subscriptions/{created['id']}", headers={"X-User-Id": "bob"}).status_code == 404
    assert client.get("/subscriptions", headers={"X-User-Id": "bob"}).json() == []
    assert len(client.get("/subscriptions", headers={"X-User-Id": "alice"}).json()) == 1


def test_delete_subscription():
    created = create({"name": "Slack", "monthly_cost": 8, "usage_frequency": "daily", "importance": "high"})
    response = client.delete(f"/subscriptions/{created['id']}", headers={"X-User-Id": "alice"})
    assert response.status_code == 204
    assert client.get(f"/subscriptions/{created['id']}", headers={"X-User-Id": "alice"}).status_code == 404
    assert client.delete("/subscriptions/999", headers={"X-User-Id": "alice"}).status_code == 404


def test_breakdown_endpoint():
    created = create(
        {"name": "Todoist", "category": "Productivity", "monthly_cost": 10, "usage_frequency": "daily", "importance": "high"}
    )
    response = client.get(f"/subscriptions/{created['id']}/breakdown", headers={"X-User-Id": "alice"})
    assert response.status_code == 200
    data = response.json()
    assert data["roi_score"] == 93
    assert data["recommendation"] == "keep"
    assert data["breakdown"] == {
        "usage_value": 100,
        "cost_efficiency": 93,
        "replacement_risk": 70,
        "cancellation_friction": 100,
    }
    assert data["explanations"]


def test_action_queue_and_snooze():
    created = create(
        {
            "name": "Streaming Box",
            "category": "Entertainment",
            "monthly_cost": 50,
            "usage_frequency": "rare",
            "importance": "low",
        }
    )
    assert created["status"] == "cut"

    queue = client.get("/actions", headers={"X-User-Id": "alice"}).json()
    assert queue["total_count"] == 1
    action = queue["actions"][0]
    assert action["id"] == f"cancel-{created['id']}"
    assert action["priority"] == "high"
    assert queue["potential_savings"] == {"monthly": 50.0, "annual": 600.0}

    response = client.post(f"/actions/{action['id']}/snooze", json={"days": 3}, headers={"X-User-Id": "alice"})
    assert response.status_code == 200
    assert client.get("/actions", headers={"X-User-Id": "alice"}).json()["actions"] == []

    # Snooze outlives a rescan triggered by an edit.
    client.patch(f"/subscriptions/{created['id']}", json={"monthly_cost": 55}, headers={"X-User-Id": "alice"})
    assert client.get("/actions", headers={"X-User-Id": "alice"}).json()["actions"] == []

    response = client.delete(f"/actions/{action['id']}/snooze", headers={"X-User-Id": "alice"})
    assert response.status_code == 204
    assert client.get("/actions", headers={"X-User-Id": "alice"}).json()["total_count"] == 1


def test_expired_snooze_no_longer_hides_the_action():
    created = create(
        {"name": "Streaming Box", "category": "Entertainment", "monthly_cost": 50, "usage_frequency": "rare", "importance": "low"}
    )
    past = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
    client.post(f"/actions/cancel-{created['id']}/snooze", json={"until": past}, headers={"X-User-Id": "alice"})
    assert client.get("/actions", headers={"X-User-Id": "alice"}).json()["total_count"] == 1


def test_trial_ending_action_from_api():
    trial_end = (datetime.now(timezone.utc) + timedelta(days=2)).isoformat()
    created = create(
        {
            "name": "Shiny App",
            "category": "Productivity",
            "monthly_cost": 12,
            "usage_frequency": "daily",
            "importance": "high",
            "billing_cycle": "trial",
            "trial_end_date": trial_end,
        }
    )
    assert created["roi_score"] == 72
    actions = client.get("/actions", headers={"X-User-Id": "alice"}).json()["actions"]
    assert [a["id"] for a in actions] == [f"trial-{created['id']}"]
    assert actions[0]["priority"] == "high"


def test_kpis_and_dashboard():
    create({"name": "Todoist", "category": "Productivity", "monthly_cost": 10, "usage_frequency": "daily", "importance": "high"})
    create({"name": "Streaming Box", "category": "Entertainment", "monthly_cost": 50, "usage_frequency": "rare", "importance": "low"})
    create(
        {
            "name": "Magazine",
            "category": "Entertainment",
            "monthly_cost": 100,
            "billing_cycle": "annual",
            "usage_frequency": "weekly",
            "importance": "medium",
            "renewal_date": (datetime.now(timezone.utc) + timedelta(days=5)).isoformat(),
        }
    )

    kpis = client.get("/subscriptions/kpis", headers={"X-User-Id": "alice"}).json()
    assert kpis == {
        "total_monthly_spend": 160.0,
        "subscription_count": 3,
        "estimated_waste": 50.0,
        "optimization_opportunities": 2,
    }

    dashboard = client.get("/dashboard", headers={"X-User-Id": "alice"}).json()
    assert dashboard["kpis"] == kpis
    assert [r["name"] for r in dashboard["upcoming_renewals"]] == ["Magazine"]
    assert {a["type"] for a in dashboard["actions"]} == {"cancel", "renewal_reminder"}


def test_vendor_feedback_updates_confidence():
    vendor = client.post(
        "/vendors",
        json={"name": "Hulu", "domain": "hulu.com", "billing_url": "https://secure.hulu.com/account"},
    ).json()
    assert vendor["confidence"] == "low"
    assert vendor["last_verified_at"] is None

    url = f"/vendors/{vendor['id']}/feedback"
    outcome = client.post(url, json={"result": "fail"}).json()
    assert outcome["confidence"] == "low"
    assert outcome["last_verified_at"] is None

    for _ in range(3):
        outcome = client.post(url, json={"result": "success"}).json()
    assert outcome["confidence"] == "medium"
    assert outcome["last_verified_at"] is not None

    client.post(url, json={"result": "skip"})
    assert client.get(f"/vendors/{vendor['id']}").json()["confidence"] == "medium"

    client.post(url, json={"result": "success"})
    assert client.get(f"/vendors/{vendor['id']}").json()["confidence"] == "high"


def test_vendor_errors():
    assert client.post("/vendors/42/feedback", json={"result": "success"}).status_code == 404
    assert client.get("/vendors/42").status_code == 404
    vendor = client.post("/vendors", json={"name": "Hulu", "domain": "hulu.com"}).json()
    assert client.post(f"/vendors/{vendor['id']}/feedback", json={"result": "maybe"}).status_code == 422


def test_cancel_link_endpoint():
    vendor = client.post(
        "/vendors",
        json={"name": "Hulu", "domain": "hulu.com", "billing_url": "https://secure.hulu.com/account"},
    ).json()
    created = create(
        {
            "name": "Hulu",
            "category": "Entertainment",
            "monthly_cost": 18,
            "usage_frequency": "weekly",
            "importance": "low",
            "vendor_id": vendor["id"],
        }
    )
    link = client.get(f"/subscriptions/{created['id']}/cancel-link", headers={"X-User-Id": "alice"}).json()
    assert link["source"] == "vendor_billing"
    assert link["url"] == "https://secure.hulu.com/account"
    assert link["show_feedback"] is True
    assert link["confidence"] == "low"


def test_rename_onto_an_existing_name_conflicts():
    netflix = create({"name": "Netflix", "monthly_cost": 15, "usage_frequency": "weekly", "importance": "low"})
    hulu = create({"name": "Hulu", "monthly_cost": 8, "usage_frequency": "weekly", "importance": "low"})

    response = client.patch(f"/subscriptions/{hulu['id']}", json={"name": "nEtFlIx"}, headers={"X-User-Id": "alice"})
    assert response.status_code == 409

    response = client.patch(f"/subscriptions/{netflix['id']}", json={"name": "NETFLIX"}, headers={"X-User-Id": "alice"})
    assert response.status_code == 200
    assert response.json()["name"] == "NETFLIX"
    names = sorted(s["name"] for s in client.get("/subscriptions", headers={"X-User-Id": "alice"}).json())
    assert names == ["Hulu", "NETFLIX"]


class DeletedMidRequestManager(services.SubscriptionManager):
    """Removes the row just before each write, as a concurrent DELETE would."""

    def update_subscription(self, user_id, subscription_id, payload):
        self._subscriptions.delete(subscription_id)
        return super().update_subscription(user_id, subscription_id, payload)

    def delete_subscription(self, user_id, subscription_id):
        self._subscriptions.delete(subscription_id)
        return super().delete_subscription(user_id, subscription_id)


def test_row_vanishing_during_a_write_is_a_404():
    services.manager = DeletedMidRequestManager()
    created = create({"name": "Slack", "monthly_cost": 8, "usage_frequency": "daily", "importance": "high"})

    response = client.patch(f"/subscriptions/{created['id']}", json={"monthly_cost": 9}, headers={"X-User-Id": "alice"})
    assert response.status_code == 404
    assert response.json() == {"detail": "Subscription not found"}

    created = create({"name": "Zoom", "monthly_cost": 8, "usage_frequency": "daily", "importance": "high"})
    response = client.delete(f"/subscriptions/{created['id']}", headers={"X-User-Id": "alice"})
    assert response.status_code == 404


def test_cancel_guide_endpoint():
    netflix = create({"name": "Netflix", "monthly_cost": 15, "usage_frequency": "weekly", "importance": "low"})
    data = client.get(f"/subscriptions/{netflix['id']}/cancel-guide", headers={"X-User-Id": "alice"}).json()
    assert data["subscription_id"] == netflix["id"]
    assert data["guide"]["service_name"] == "Netflix"
    assert data["guide"]["difficulty"] == "easy"
    assert data["guide"]["steps"][0] == {
        "step_number": 1,
        "instruction": "Go to netflix.com/cancelplan",
        "link": "https://netflix.com/cancelplan",
    }
    assert len(data["generic_tips"]) == 6

    lowercase = create({"name": "netflix", "monthly_cost": 15, "usage_frequency": "weekly", "importance": "low"}, user="bob")
    data = client.get(f"/subscriptions/{lowercase['id']}/cancel-guide", headers={"X-User-Id": "bob"}).json()
    assert data["guide"] is None
    assert len(data["generic_tips"]) == 6

    assert client.get(f"/subscriptions/{netflix['id']}/cancel-guide", headers={"X-User-Id": "bob"}).status_code == 404


class BrokenDashboardManager(services.SubscriptionManager):
    def dashboard(self, user_id, now=None):
        raise RuntimeError("storage offline")


def test_unhandled_errors_become_logged_500s():
    services.manager = BrokenDashboardManager()
    with structlog.testing.capture_logs() as logs:
        response = client.get("/dashboard", headers={"X-User-Id": "alice"})
    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}
    [entry] = [entry for entry in logs if entry["event"] == "unhandled_error"]
    assert entry["path"] == "/dashboard"
    assert entry["error"] == "storage offline"
