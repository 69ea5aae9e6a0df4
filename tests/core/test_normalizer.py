"""Tests for the meeting payload normalizer."""

from collections import Counter

import pytest

from quorum.core.normalizer import (
    DEFAULT_OBJECTIVE,
    ensure_id,
    normalize_meeting_payload,
    normalize_revision,
    normalize_string_list,
)


class TestNormalizeRevision:
    """Tests for revision coercion."""

    @pytest.mark.parametrize("value,expected", [(3, 3), (2.9, 2), (1, 1), (7.0, 7)])
    def test_accepts_positive_numbers(self, value, expected):
        assert normalize_revision(value) == expected

    @pytest.mark.parametrize("value", [0, -4, float("nan"), float("inf"), "5", None, True])
    def test_rejects_everything_else(self, value):
        assert normalize_revision(value) == 1


def test_string_list_trims_and_deduplicates():
    assert normalize_string_list([" a ", "b", "a", "", 3, "  "]) == ["a", "b"]
    assert normalize_string_list("a,b") == []


def test_ensure_id_derives_from_position():
    assert ensure_id("  D-9 ", "D", 0) == "D-9"
    assert ensure_id("", "D", 0) == "D-1"
    assert ensure_id(None, "A", 4) == "A-5"


def test_non_object_payload_is_rejected():
    assert normalize_meeting_payload("M1", None) is None
    assert normalize_meeting_payload("M1", ["title"]) is None
    assert normalize_meeting_payload("M1", "meeting") is None


def test_empty_payload_gets_defaults():
    meeting = normalize_meeting_payload("M1", {})

    assert meeting.title == "Meeting M1"
    assert meeting.team == "Workspace"
    assert meeting.owner == "Workspace User"
    assert meeting.objective == DEFAULT_OBJECTIVE
    assert meeting.state == "scheduled"
    assert meeting.digest == "pending"
    assert meeting.locked is False
    assert meeting.revision == 1
    assert meeting.last_sent_label == "Not sent yet"
    assert meeting.decisions == []
    assert meeting.digest_options.include_notes is True


def test_owner_defaults_to_first_attendee():
    meeting = normalize_meeting_payload(
        "M1", {"attendees": [{"name": "  Priya "}, {"name": "Sam"}]}
    )
    assert meeting.owner == "Priya"
    assert meeting.attendees[0].id == "u-1"
    assert meeting.attendees[1].role == "Participant"


def test_enums_fall_back_to_defaults():
    meeting = normalize_meeting_payload(
        "M1",
        {
            "state": "archived",
            "digest": "SENT",
            "actions": [{"title": "Call vendor", "status": "waiting", "priority": "urgent"}],
            "decisions": [{"title": "Use Postgres", "status": "maybe"}],
        },
    )
    assert meeting.state == "scheduled"
    assert meeting.digest == "pending"
    assert meeting.actions[0].status == "open"
    assert meeting.actions[0].priority == "medium"
    assert meeting.actions[0].due_label == "No due date"
    assert meeting.decisions[0].status == "proposed"
    assert meeting.decisions[0].rationale == "Rationale to be added."


def test_malformed_items_are_dropped_and_counted():
    dropped = Counter()
    meeting = normalize_meeting_payload(
        "M1",
        {
            "actions": [
                {"id": "A-1", "title": "Send summary"},
                {"id": "A-2", "title": "   "},
                "not an object",
                {"id": "A-4", "title": "Book room"},
            ],
            "decisions": [{"rationale": "no title"}],
            "notes": [{"heading": "", "content": ""}, {"content": "Loose note"}],
        },
        dropped,
    )

    assert [a.id for a in meeting.actions] == ["A-1", "A-4"]
    assert meeting.decisions == []
    assert len(meeting.notes) == 1
    assert meeting.notes[0].heading == "Notes 2"
    assert dropped == Counter({"actions": 2, "decisions": 1, "notes": 1})


def test_digest_recipients_enabled_by_position():
    meeting = normalize_meeting_payload(
        "M1",
        {
            "digestRecipients": [
                {"label": "Leads"},
                {"label": "Design"},
                {"label": "Sales"},
                {"label": "Ops", "enabled": True},
            ]
        },
    )
    assert [r.enabled for r in meeting.digest_recipients] == [True, True, False, True]


def test_snapshot_uses_camel_case_keys():
    meeting = normalize_meeting_payload("M1", {"timeLabel": "Mon 10:00", "openQuestions": []})
    snapshot = meeting.to_snapshot()

    assert snapshot["timeLabel"] == "Mon 10:00"
    assert "openQuestions" in snapshot
    assert "digestOptions" in snapshot
    assert normalize_meeting_payload("M1", snapshot) == meeting
