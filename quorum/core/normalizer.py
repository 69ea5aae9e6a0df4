"""
Payload normalizer.

Turns an untrusted meeting payload into a structurally complete
``MeetingPayload``. Strings are trimmed, enums are constrained to closed sets,
missing values take documented defaults, and list items without their
identifying text are dropped rather than failing the request.
"""

import math
from collections import Counter
from typing import Any, Callable, TypeVar

from quorum.schemas.meeting import (
    AgendaItem,
    Attendee,
    DigestOptions,
    DigestRecipient,
    MeetingAction,
    MeetingDecision,
    MeetingPayload,
    NoteSection,
    OpenQuestion,
)

T = TypeVar("T")

MEETING_STATES = {"scheduled", "inProgress", "completed"}
DIGEST_STATES = {"pending", "sent"}
AGENDA_STATES = {"queued", "inProgress", "done"}
QUESTION_STATES = {"open", "resolved"}
DECISION_STATES = {"proposed", "accepted", "superseded", "rejected"}
ACTION_STATES = {"open", "blocked", "done"}
ACTION_PRIORITIES = {"high", "medium", "low"}

DEFAULT_OBJECTIVE = "Capture outcomes, decisions, actions, and open questions from this meeting."
NO_DUE_DATE = "No due date"
UNASSIGNED = "Unassigned"


def normalize_text(value: Any) -> str:
    """Trim strings; anything else becomes the empty string."""
    return value.strip() if isinstance(value, str) else ""


def normalize_boolean(value: Any, fallback: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    return fallback


def normalize_revision(value: Any, fallback: int = 1) -> int:
    """Accept a positive finite number, floored to an int >= 1."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return fallback
    if not math.isfinite(value) or value <= 0:
        return fallback
    return max(1, math.floor(value))


def normalize_enum(value: Any, allowed: set[str], fallback: str) -> str:
    normalized = normalize_text(value)
    return normalized if normalized in allowed else fallback


def normalize_string_list(value: Any) -> list[str]:
    """Trimmed, de-duplicated non-empty strings in first-seen order."""
    if not isinstance(value, list):
        return []
    unique: dict[str, None] = {}
    for entry in value:
        normalized = normalize_text(entry)
        if normalized:
            unique[normalized] = None
    return list(unique)


def ensure_id(value: Any, prefix: str, index: int) -> str:
    """Keep a supplied id, or derive ``<prefix>-<1-based index>``."""
    return normalize_text(value) or f"{prefix}-{index + 1}"


def _parse_list(
    value: Any,
    key: str,
    parse_item: Callable[[dict[str, Any], int], T | None],
    dropped: Counter | None,
) -> list[T]:
    if not isinstance(value, list):
        return []

    parsed: list[T] = []
    for index, entry in enumerate(value):
        item = parse_item(entry, index) if isinstance(entry, dict) else None
        if item is None:
            if dropped is not None:
                dropped[key] += 1
            continue
        parsed.append(item)
    return parsed


def _parse_attendee(candidate: dict[str, Any], index: int) -> Attendee | None:
    name = normalize_text(candidate.get("name"))
    if not name:
        return None
    return Attendee(
        id=ensure_id(candidate.get("id"), "u", index),
        name=name,
        role=normalize_text(candidate.get("role")) or "Participant",
        required=normalize_boolean(candidate.get("required"), True),
        present=normalize_boolean(candidate.get("present"), True),
    )


def _parse_agenda_item(candidate: dict[str, Any], index: int) -> AgendaItem | None:
    title = normalize_text(candidate.get("title"))
    if not title:
        return None
    return AgendaItem(
        id=ensure_id(candidate.get("id"), "ag", index),
        title=title,
        state=normalize_enum(candidate.get("state"), AGENDA_STATES, "queued"),
    )


def _parse_note(candidate: dict[str, Any], index: int) -> NoteSection | None:
    heading = normalize_text(candidate.get("heading"))
    content = normalize_text(candidate.get("content"))
    if not heading and not content:
        return None
    return NoteSection(
        id=ensure_id(candidate.get("id"), "n", index),
        heading=heading or f"Notes {index + 1}",
        content=content,
    )


def _parse_open_question(candidate: dict[str, Any], index: int) -> OpenQuestion | None:
    question = normalize_text(candidate.get("question"))
    if not question:
        return None
    return OpenQuestion(
        id=ensure_id(candidate.get("id"), "Q", index),
        question=question,
        owner=normalize_text(candidate.get("owner")) or UNASSIGNED,
        due_label=normalize_text(candidate.get("dueLabel")) or NO_DUE_DATE,
        status=normalize_enum(candidate.get("status"), QUESTION_STATES, "open"),
    )


def _parse_decision(candidate: dict[str, Any], index: int) -> MeetingDecision | None:
    title = normalize_text(candidate.get("title"))
    if not title:
        return None
    return MeetingDecision(
        id=ensure_id(candidate.get("id"), "D", index),
        title=title,
        owner=normalize_text(candidate.get("owner")) or UNASSIGNED,
        status=normalize_enum(candidate.get("status"), DECISION_STATES, "proposed"),
        rationale=normalize_text(candidate.get("rationale")) or "Rationale to be added.",
        tags=normalize_string_list(candidate.get("tags")),
    )


def _parse_action(candidate: dict[str, Any], index: int) -> MeetingAction | None:
    title = normalize_text(candidate.get("title"))
    if not title:
        return None
    return MeetingAction(
        id=ensure_id(candidate.get("id"), "A", index),
        title=title,
        owner=normalize_text(candidate.get("owner")) or UNASSIGNED,
        due_label=normalize_text(candidate.get("dueLabel")) or NO_DUE_DATE,
        priority=normalize_enum(candidate.get("priority"), ACTION_PRIORITIES, "medium"),
        status=normalize_enum(candidate.get("status"), ACTION_STATES, "open"),
        project=normalize_text(candidate.get("project")),
        blocked_reason=normalize_text(candidate.get("blockedReason")),
        notes=normalize_text(candidate.get("notes")),
    )


def _parse_digest_recipient(candidate: dict[str, Any], index: int) -> DigestRecipient | None:
    label = normalize_text(candidate.get("label"))
    if not label:
        return None
    return DigestRecipient(
        id=ensure_id(candidate.get("id"), "r", index),
        label=label,
        # First two recipients are opted in unless stated otherwise
        enabled=normalize_boolean(candidate.get("enabled"), index < 2),
    )


def _parse_digest_options(value: Any) -> DigestOptions:
    if not isinstance(value, dict):
        return DigestOptions()
    return DigestOptions(
        include_notes=normalize_boolean(value.get("includeNotes"), True),
        include_open_questions=normalize_boolean(value.get("includeOpenQuestions"), True),
        include_action_owners=normalize_boolean(value.get("includeActionOwners"), True),
    )


def normalize_meeting_payload(
    meeting_id: str,
    value: Any,
    dropped: Counter | None = None,
) -> MeetingPayload | None:
    """
    Normalize a raw meeting payload.

    Args:
        meeting_id: Id of the target meeting, used for the default title
        value: Untrusted payload (decoded JSON)
        dropped: Optional counter receiving, per list key, the number of
            malformed items that were discarded

    Returns:
        A default-filled MeetingPayload, or None if ``value`` is not an object
    """
    if not isinstance(value, dict):
        return None

    attendees = _parse_list(value.get("attendees"), "attendees", _parse_attendee, dropped)
    agenda = _parse_list(value.get("agenda"), "agenda", _parse_agenda_item, dropped)
    notes = _parse_list(value.get("notes"), "notes", _parse_note, dropped)
    open_questions = _parse_list(
        value.get("openQuestions"), "openQuestions", _parse_open_question, dropped
    )
    decisions = _parse_list(value.get("decisions"), "decisions", _parse_decision, dropped)
    actions = _parse_list(value.get("actions"), "actions", _parse_action, dropped)
    digest_recipients = _parse_list(
        value.get("digestRecipients"), "digestRecipients", _parse_digest_recipient, dropped
    )

    default_owner = attendees[0].name if attendees else "Workspace User"

    return MeetingPayload(
        title=normalize_text(value.get("title")) or f"Meeting {meeting_id}",
        team=normalize_text(value.get("team")) or "Workspace",
        owner=normalize_text(value.get("owner")) or default_owner,
        time_label=normalize_text(value.get("timeLabel")) or "Date TBD",
        duration=normalize_text(value.get("duration")) or "45 min",
        location=normalize_text(value.get("location")) or "TBD",
        objective=normalize_text(value.get("objective")) or DEFAULT_OBJECTIVE,
        state=normalize_enum(value.get("state"), MEETING_STATES, "scheduled"),
        digest=normalize_enum(value.get("digest"), DIGEST_STATES, "pending"),
        locked=normalize_boolean(value.get("locked"), False),
        revision=normalize_revision(value.get("revision"), 1),
        last_sent_label=normalize_text(value.get("lastSentLabel")) or "Not sent yet",
        attendees=attendees,
        agenda=agenda,
        notes=notes,
        open_questions=open_questions,
        decisions=decisions,
        actions=actions,
        digest_recipients=digest_recipients,
        digest_options=_parse_digest_options(value.get("digestOptions")),
    )
