from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from app.features.attention.domain import AttentionFeed, AttentionType, SourceType
from app.features.attention.pipeline.ranking import build_sections
from app.main import app

from attention_builders import NOW, build_item

ROUTER = "app.features.dashboard.api.router"

client = TestClient(app)


def _feed() -> AttentionFeed:
    items = [
        build_item(
            source_type=SourceType.LIST_SUGGESTION,
            source_id="s-1",
            attention_type=AttentionType.DECISION_REQUIRED,
            reason_code="suggestion_pending",
        ),
        build_item(source_id="d-1", due_at=NOW + timedelta(days=10)),
    ]
    sections, counts = build_sections(items)
    return AttentionFeed(
        generated_at=NOW,
        window_start=NOW - timedelta(hours=24),
        window_hours=24,
        sections=sections,
        counts=counts,
        failed_collectors=["notifications"],
    )


@pytest.fixture
def authed(apply_auth_override):
    apply_auth_override(app)


def test_dashboard_bands_both_streams(authed):
    body = {
        "decision_items": [
            {
                "id": "de-1",
                "kind": "proposal",
                "surface": "action",
                "severity": "orange",
                "title": "Buy ACME",
                "created_at": "2026-01-01T00:00:00",
                "context": {"portfolio_id": "pf-1", "trade_idea_id": "ti-1"},
            },
            {
                "id": "de-2",
                "kind": "ev_signal",
                "surface": "intel",
                "severity": "blue",
                "title": "EV gap",
            },
        ],
        "group_by": "type",
    }
    with patch(f"{ROUTER}.attention_service.run", new=AsyncMock(return_value=_feed())):
        response = client.post("/dashboard", json=body)

    assert response.status_code == 200
    data = response.json()
    now_ids = [item["id"] for item in data["now"]]
    assert "de-1" in now_ids
    assert len(data["now"]) == 2
    assert len(data["soon"]) == 1
    assert [item["id"] for item in data["aware"]] == ["de-2"]
    assert data["today"]["decisions"] == 2
    assert {g["key"] for g in data["groups"]} == {"DECISION", "PROJECT", "SIGNAL"}
    assert data["failed_collectors"] == ["notifications"]


def test_dashboard_urgent_only(authed):
    body = {
        "decision_items": [
            {
                "id": "de-2",
                "kind": "ev_signal",
                "surface": "intel",
                "severity": "blue",
                "title": "EV gap",
            }
        ],
        "urgent_only": True,
    }
    with patch(f"{ROUTER}.attention_service.run", new=AsyncMock(return_value=_feed())):
        response = client.post("/dashboard", json=body)

    data = response.json()
    assert data["aware"] == []
    assert data["soon"] == []
    assert len(data["now"]) == 1
    assert data["today"] == {"decisions": 1, "work_items": 0, "risk_signals": 0}
    counts = {s["band"]: s["count"] for s in data["band_summaries"]}
    assert counts == {"NOW": 1, "SOON": 0, "AWARE": 0}


def test_dashboard_rejects_unknown_kind(authed):
    body = {
        "decision_items": [
            {"id": "x", "kind": "mystery", "surface": "action", "severity": "red", "title": "?"}
        ]
    }

    assert client.post("/dashboard", json=body).status_code == 422
