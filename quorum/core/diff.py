"""Diff engine for normalized meeting snapshots."""

from quorum.models.meeting import RevisionEventType
from quorum.schemas.meeting import MeetingPayload

# (payload attribute, changed-field label) in reporting order.
# ``revision`` is deliberately absent: it is bookkeeping, not content.
TRACKED_FIELDS: list[tuple[str, str]] = [
    ("title", "title"),
    ("team", "team"),
    ("owner", "owner"),
    ("time_label", "time"),
    ("duration", "duration"),
    ("location", "location"),
    ("objective", "objective"),
    ("state", "state"),
    ("digest", "digest"),
    ("locked", "lock"),
    ("last_sent_label", "sent label"),
    ("attendees", "attendees"),
    ("agenda", "agenda"),
    ("notes", "notes"),
    ("open_questions", "open questions"),
    ("decisions", "decisions"),
    ("actions", "actions"),
    ("digest_recipients", "digest recipients"),
    ("digest_options", "digest options"),
]

INITIAL_CAPTURE = "initial capture"
RESTORED_SNAPSHOT = "restored snapshot"


def _field_value(payload: MeetingPayload, attribute: str):
    value = getattr(payload, attribute)
    if isinstance(value, list):
        return [item.model_dump() for item in value]
    if hasattr(value, "model_dump"):
        return value.model_dump()
    return value


def list_changed_fields(previous: MeetingPayload, next_: MeetingPayload) -> list[str]:
    """Labels of top-level fields that differ, order-sensitive for lists."""
    return [
        label
        for attribute, label in TRACKED_FIELDS
        if _field_value(previous, attribute) != _field_value(next_, attribute)
    ]


def payloads_equal(previous: MeetingPayload, next_: MeetingPayload) -> bool:
    """True when nothing meaningful changed between two snapshots."""
    return not list_changed_fields(previous, next_)


def summarize_changed_fields(changed_fields: list[str], event_type: str) -> str:
    """Human summary of a revision's changed fields."""
    if event_type == RevisionEventType.RESTORED:
        return "Restored meeting from a previous revision."

    created = event_type == RevisionEventType.CREATED
    if not changed_fields:
        return "Captured initial meeting revision." if created else "Updated meeting."

    verb = "Created" if created else "Updated"
    if len(changed_fields) <= 3:
        return f"{verb} {', '.join(changed_fields)}."

    head = ", ".join(changed_fields[:3])
    return f"{verb} {head} and {len(changed_fields) - 3} more fields."
