from datetime import timedelta

from app.features.attention.domain import AttentionType, ItemStatus, Severity, SourceType
from app.features.attention.pipeline.collection.collectors import (
    as_utc,
    build_alignment_items,
    build_deliverable_items,
    build_notification_items,
    build_own_thought_items,
    build_project_items,
    build_suggestion_items,
    build_teammate_thought_items,
    build_trade_items,
    own_thought_trigger,
)
from app.features.attention.pipeline.collection.repository import (
    DeliverableRow,
    NotificationRow,
    ProjectRow,
    SuggestionRow,
    ThoughtRow,
    TradeRow,
    UserRelationships,
)

from attention_builders import NOW, USER

WINDOW_START = NOW - timedelta(hours=24)


def _deliverable(**overrides):
    row = DeliverableRow(
        id="d-1",
        project_id="p-1",
        title="Write model",
        description="Build the DCF",
        assigned_to=USER,
        due_date=None,
        created_at=NOW - timedelta(days=3),
        updated_at=NOW - timedelta(hours=2),
        project_title="Coverage",
        project_status="in_progress",
        project_priority="medium",
        project_created_by="owner-1",
    )
    for key, value in overrides.items():
        setattr(row, key, value)
    return row


def _project(**overrides):
    row = ProjectRow(
        id="p-1",
        title="Coverage",
        description=None,
        status="in_progress",
        priority="medium",
        context_type="asset",
        created_by=USER,
        due_date=None,
        blocked_reason=None,
        created_at=NOW - timedelta(days=20),
        updated_at=NOW - timedelta(hours=1),
    )
    for key, value in overrides.items():
        setattr(row, key, value)
    return row


def _trade(**overrides):
    row = TradeRow(
        id="t-1",
        action="buy",
        urgency="urgent",
        rationale="Earnings beat",
        asset_id="a-1",
        asset_symbol="ACME",
        portfolio_id="pf-1",
        portfolio_name="Growth",
        created_by="analyst-1",
        created_at=NOW - timedelta(days=1),
        updated_at=NOW - timedelta(hours=6),
        expires_at=None,
    )
    for key, value in overrides.items():
        setattr(row, key, value)
    return row


def _thought(**overrides):
    row = ThoughtRow(
        id="q-1",
        content="Margins look stretched",
        idea_type="observation",
        date_type=None,
        sentiment="bearish",
        visibility="team",
        is_archived=False,
        created_by=USER,
        revisit_date=None,
        expires_at=None,
        asset_id="a-1",
        asset_symbol="ACME",
        project_id=None,
        project_title=None,
        portfolio_id=None,
        portfolio_name=None,
        created_at=NOW - timedelta(hours=3),
        updated_at=NOW - timedelta(hours=3),
    )
    for key, value in overrides.items():
        setattr(row, key, value)
    return row


def test_as_utc_handles_dates_and_naive_values():
    assert as_utc(None) is None
    assert as_utc(NOW.date()).tzinfo is not None
    assert as_utc(NOW.replace(tzinfo=None)) == NOW


# ---------------------------------------------------------------------------
# Deliverables and projects
# ---------------------------------------------------------------------------


def test_deliverable_relevance_rules():
    mine = _deliverable(id="d-1", assigned_to=USER)
    unassigned_on_my_project = _deliverable(id="d-2", assigned_to=None, project_id="p-2")
    created_project = _deliverable(id="d-3", assigned_to="other", project_created_by=USER)
    unrelated = _deliverable(id="d-4", assigned_to="other", project_created_by="other")

    items = build_deliverable_items(
        [mine, unassigned_on_my_project, created_project, unrelated], USER, {"p-2"}, NOW
    )

    assert [i.source_id for i in items] == ["d-1", "d-2", "d-3"]
    assert all(i.attention_type == AttentionType.ACTION_REQUIRED for i in items)


def test_deliverable_severity_follows_project_priority_until_overdue():
    (urgent,) = build_deliverable_items([_deliverable(project_priority="urgent")], USER, set(), NOW)
    (overdue,) = build_deliverable_items(
        [_deliverable(project_priority="low", due_date=(NOW - timedelta(days=1)).date())],
        USER,
        set(),
        NOW,
    )

    assert urgent.severity == Severity.HIGH
    assert overdue.severity == Severity.HIGH
    assert "overdue" in overdue.reason_text


def test_project_reasons():
    blocked = _project(id="p-1", status="blocked", blocked_reason="Waiting on data")
    overdue = _project(id="p-2", due_date=NOW - timedelta(days=2))
    due_soon = _project(id="p-3", due_date=NOW + timedelta(days=3), priority="high")
    quiet = _project(id="p-4", due_date=NOW + timedelta(days=30))
    not_mine = _project(id="p-5", status="blocked", created_by="other")

    items = build_project_items([blocked, overdue, due_soon, quiet, not_mine], USER, NOW)

    by_id = {i.source_id: i for i in items}
    assert set(by_id) == {"p-1", "p-2", "p-3"}
    assert by_id["p-1"].reason_code == "project_blocked"
    assert by_id["p-1"].status == ItemStatus.BLOCKED
    assert by_id["p-1"].blocker_reason == "Waiting on data"
    assert by_id["p-2"].reason_code == "project_overdue"
    assert by_id["p-2"].severity == Severity.HIGH
    assert by_id["p-3"].reason_code == "project_due_soon"
    assert by_id["p-3"].severity == Severity.MEDIUM


def test_project_assignee_counts_as_relevant():
    row = _project(status="blocked", created_by="other", assignee_ids=[USER])

    (item,) = build_project_items([row], USER, NOW)

    assert USER in item.participant_user_ids


# ---------------------------------------------------------------------------
# Trades, suggestions, notifications
# ---------------------------------------------------------------------------


def test_urgent_trade_without_vote_is_critical_decision():
    (item,) = build_trade_items([_trade()], USER)

    assert item.attention_type == AttentionType.DECISION_REQUIRED
    assert item.severity == Severity.CRITICAL
    assert item.title == "BUY ACME"
    assert item.context.portfolio_id == "pf-1"


def test_trade_already_voted_is_skipped():
    assert build_trade_items([_trade(voter_ids=[USER])], USER) == []


def test_unknown_trade_urgency_defaults_to_medium():
    (item,) = build_trade_items([_trade(urgency=None)], USER)

    assert item.severity == Severity.MEDIUM


def test_suggestion_is_low_severity_decision():
    row = SuggestionRow(
        id="s-1",
        list_id="l-1",
        list_name="Watchlist",
        asset_id="a-1",
        asset_symbol="ACME",
        suggestion_type="remove",
        notes=None,
        suggested_by="peer-1",
        created_at=NOW,
    )

    (item,) = build_suggestion_items([row], USER)

    assert item.attention_type == AttentionType.DECISION_REQUIRED
    assert item.severity == Severity.LOW
    assert item.title == "Remove ACME"
    assert item.source_url == "/list/l-1"


def test_notification_links_by_context():
    rows = [
        NotificationRow("n-1", "note_shared", "Shared", "msg", "note", "x-1", "peer", NOW),
        NotificationRow("n-2", "workflow_started", "Run", None, "workflow", "w-1", None, NOW),
        NotificationRow("n-3", "misc", "Hello", None, None, None, None, NOW),
    ]

    items = build_notification_items(rows, USER)

    assert [i.source_url for i in items] == ["/note/x-1", "/workflows", "/"]
    assert all(i.attention_type == AttentionType.INFORMATIONAL for i in items)
    assert items[0].reason_code == "note_shared"


# ---------------------------------------------------------------------------
# Quick thoughts
# ---------------------------------------------------------------------------


def test_own_thought_triggers():
    assert own_thought_trigger(_thought(idea_type="thesis"), NOW) == (
        "thesis_needs_development",
        Severity.MEDIUM,
    )
    assert own_thought_trigger(
        _thought(date_type="revisit", revisit_date=NOW - timedelta(hours=1)), NOW
    ) == ("thought_revisit_due", Severity.LOW)
    assert own_thought_trigger(
        _thought(date_type="alert", revisit_date=NOW - timedelta(hours=1)), NOW
    ) == ("thought_alert_triggered", Severity.MEDIUM)
    assert own_thought_trigger(
        _thought(date_type="expiration", expires_at=NOW + timedelta(hours=12)), NOW
    ) == ("thought_expiring", Severity.HIGH)


def test_own_thought_without_fired_hook_is_skipped():
    not_yet = _thought(date_type="revisit", revisit_date=NOW + timedelta(days=2))
    no_date = _thought(date_type="alert", revisit_date=None)
    far_expiry = _thought(date_type="expiration", expires_at=NOW + timedelta(days=3))
    archived = _thought(idea_type="thesis", is_archived=True)

    assert build_own_thought_items([not_yet, no_date, far_expiry, archived], USER, NOW) == []


def test_teammate_thought_requires_shared_context():
    relationships = UserRelationships(asset_ids={"a-1"})
    shared = _thought(id="q-1", created_by="peer")
    private = _thought(id="q-2", created_by="peer", visibility="private")
    elsewhere = _thought(id="q-3", created_by="peer", asset_id="a-9")
    old = _thought(id="q-4", created_by="peer", created_at=NOW - timedelta(days=3))
    mine = _thought(id="q-5")

    items = build_teammate_thought_items(
        [shared, private, elsewhere, old, mine], USER, relationships, WINDOW_START
    )

    (item,) = items
    assert item.source_id == "q-1"
    assert item.attention_type == AttentionType.INFORMATIONAL
    assert item.reason_text == "New thought shared on ACME"


# ---------------------------------------------------------------------------
# Alignment
# ---------------------------------------------------------------------------


def test_alignment_needs_two_contributors_including_user():
    team = _project(id="p-1", created_by="lead", assignee_ids=[USER, "lead"])
    solo = _project(id="p-2", created_by=USER)
    outsider = _project(id="p-3", created_by="lead", assignee_ids=["peer"])
    quiet = _project(
        id="p-4", created_by="lead", assignee_ids=[USER], updated_at=NOW - timedelta(days=2)
    )

    items = build_alignment_items([team, solo, outsider, quiet], USER, WINDOW_START)

    (item,) = items
    assert item.source_id == "p-1"
    assert item.attention_type == AttentionType.ALIGNMENT
    assert item.participant_user_ids == ["lead", USER]
    assert item.source_type == SourceType.PROJECT
