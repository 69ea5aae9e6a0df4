"""Meeting record schemas.

``MeetingPayload`` is the normalized meeting snapshot: every field present,
every enum constrained. It is serialized with camelCase aliases, which is
also the shape stored in the meeting root and in revision snapshots.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MeetingState = Literal["scheduled", "inProgress", "completed"]
DigestState = Literal["pending", "sent"]
AgendaState = Literal["queued", "inProgress", "done"]
QuestionStatus = Literal["open", "resolved"]
DecisionStatus = Literal["proposed", "accepted", "superseded", "rejected"]
ActionStatus = Literal["open", "blocked", "done"]
ActionPriority = Literal["high", "medium", "low"]


class CamelModel(BaseModel):
    """Base model exchanging camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Attendee(CamelModel):
    id: str
    name: str
    role: str = "Participant"
    required: bool = True
    present: bool = True


class AgendaItem(CamelModel):
    id: str
    title: str
    state: AgendaState = "queued"


class NoteSection(CamelModel):
    id: str
    heading: str
    content: str = ""


class OpenQuestion(CamelModel):
    id: str
    question: str
    owner: str = "Unassigned"
    due_label: str = "No due date"
    status: QuestionStatus = "open"


class MeetingDecision(CamelModel):
    """Ephemeral copy of a decision embedded in a meeting."""

    id: str
    title: str
    owner: str = "Unassigned"
    status: DecisionStatus = "proposed"
    rationale: str = "Rationale to be added."
    tags: list[str] = Field(default_factory=list)


class MeetingAction(CamelModel):
    """Ephemeral copy of an action embedded in a meeting."""

    id: str
    title: str
    owner: str = "Unassigned"
    due_label: str = "No due date"
    priority: ActionPriority = "medium"
    status: ActionStatus = "open"
    project: str = ""
    blocked_reason: str = ""
    notes: str = ""


class DigestRecipient(CamelModel):
    id: str
    label: str
    enabled: bool = False


class DigestOptions(CamelModel):
    include_notes: bool = True
    include_open_questions: bool = True
    include_action_owners: bool = True


class MeetingPayload(CamelModel):
    """Normalized meeting snapshot."""

    title: str
    team: str
    owner: str
    time_label: str
    duration: str
    location: str
    objective: str
    state: MeetingState = "scheduled"
    digest: DigestState = "pending"
    locked: bool = False
    revision: int = 1
    last_sent_label: str = "Not sent yet"
    attendees: list[Attendee] = Field(default_factory=list)
    agenda: list[AgendaItem] = Field(default_factory=list)
    notes: list[NoteSection] = Field(default_factory=list)
    open_questions: list[OpenQuestion] = Field(default_factory=list)
    decisions: list[MeetingDecision] = Field(default_factory=list)
    actions: list[MeetingAction] = Field(default_factory=list)
    digest_recipients: list[DigestRecipient] = Field(default_factory=list)
    digest_options: DigestOptions = Field(default_factory=DigestOptions)

    def to_snapshot(self) -> dict[str, Any]:
        """Serialize to the stored camelCase shape."""
        return self.model_dump(by_alias=True)


class MeetingResponse(MeetingPayload):
    """Meeting record as returned by the API."""

    id: str


class MeetingEnvelope(CamelModel):
    """Response for reading a meeting."""

    meeting: MeetingResponse


class MeetingUpdateResponse(CamelModel):
    """Response for the meeting update / restore entry point."""

    ok: bool = True
    meeting: MeetingResponse
    noop: bool = False
    revision_id: str = ""
    restored_from_revision_id: str = ""
    changed_fields: list[str] = Field(default_factory=list)
    dropped_items: dict[str, int] = Field(default_factory=dict)


class RevisionSummary(CamelModel):
    """One row of a meeting's revision log."""

    id: str
    source: str
    event_type: str
    changed_fields: list[str]
    summary: str
    meeting_revision: int
    actor_uid: str
    actor_name: str
    captured_at: datetime
    restored_from_revision_id: str = ""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class RevisionListResponse(CamelModel):
    """Response for listing revisions."""

    revisions: list[RevisionSummary]
    total: int
