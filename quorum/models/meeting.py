"""Meeting record and revision log models."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import String, DateTime, Text, Integer, Boolean, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from quorum.services.database import Base, JSONType


class RevisionSource(str, Enum):
    """What produced a meeting revision."""

    MEETING_UPDATE = "meetingUpdate"
    RESTORE = "restore"


class RevisionEventType(str, Enum):
    """Kind of change a meeting revision records."""

    CREATED = "created"
    UPDATED = "updated"
    RESTORED = "restored"


class MeetingRecord(Base):
    """Editable meeting scratchpad.

    Scalar fields are columns; embedded lists are stored as JSON in the same
    camelCase shape the API exchanges, so ``snapshot()`` can be handed to the
    normalizer unchanged.
    """

    __tablename__ = "meetings"

    workspace_id: Mapped[str] = mapped_column(ForeignKey("workspaces.id"), primary_key=True)
    id: Mapped[str] = mapped_column(String(255), primary_key=True)

    # Scalar fields
    title: Mapped[str] = mapped_column(String(500))
    team: Mapped[str] = mapped_column(String(255))
    owner: Mapped[str] = mapped_column(String(255))
    time_label: Mapped[str] = mapped_column(String(255))
    duration: Mapped[str] = mapped_column(String(100))
    location: Mapped[str] = mapped_column(String(255))
    objective: Mapped[str] = mapped_column(Text)
    state: Mapped[str] = mapped_column(String(20), default="scheduled")
    digest: Mapped[str] = mapped_column(String(20), default="pending")
    locked: Mapped[bool] = mapped_column(Boolean, default=False)
    revision: Mapped[int] = mapped_column(Integer, default=1)
    last_sent_label: Mapped[str] = mapped_column(String(255))

    # Embedded lists
    attendees: Mapped[list] = mapped_column(JSONType, default=list)
    agenda: Mapped[list] = mapped_column(JSONType, default=list)
    notes: Mapped[list] = mapped_column(JSONType, default=list)
    open_questions: Mapped[list] = mapped_column(JSONType, default=list)
    decisions: Mapped[list] = mapped_column(JSONType, default=list)
    actions: Mapped[list] = mapped_column(JSONType, default=list)
    digest_recipients: Mapped[list] = mapped_column(JSONType, default=list)
    digest_options: Mapped[dict] = mapped_column(JSONType, default=dict)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    created_by: Mapped[str] = mapped_column(String(128), default="")
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_by: Mapped[str] = mapped_column(String(128), default="")

    def snapshot(self) -> dict[str, Any]:
        """Return the stored meeting in its wire (camelCase) shape."""
        return {
            "title": self.title,
            "team": self.team,
            "owner": self.owner,
            "timeLabel": self.time_label,
            "duration": self.duration,
            "location": self.location,
            "objective": self.objective,
            "state": self.state,
            "digest": self.digest,
            "locked": self.locked,
            "revision": self.revision,
            "lastSentLabel": self.last_sent_label,
            "attendees": self.attendees or [],
            "agenda": self.agenda or [],
            "notes": self.notes or [],
            "openQuestions": self.open_questions or [],
            "decisions": self.decisions or [],
            "actions": self.actions or [],
            "digestRecipients": self.digest_recipients or [],
            "digestOptions": self.digest_options or {},
        }

    def apply_snapshot(self, data: dict[str, Any]) -> None:
        """Overwrite every content field from a wire-shaped snapshot."""
        self.title = data["title"]
        self.team = data["team"]
        self.owner = data["owner"]
        self.time_label = data["timeLabel"]
        self.duration = data["duration"]
        self.location = data["location"]
        self.objective = data["objective"]
        self.state = data["state"]
        self.digest = data["digest"]
        self.locked = data["locked"]
        self.revision = data["revision"]
        self.last_sent_label = data["lastSentLabel"]
        self.attendees = data["attendees"]
        self.agenda = data["agenda"]
        self.notes = data["notes"]
        self.open_questions = data["openQuestions"]
        self.decisions = data["decisions"]
        self.actions = data["actions"]
        self.digest_recipients = data["digestRecipients"]
        self.digest_options = data["digestOptions"]


class MeetingRevision(Base):
    """Immutable, append-only snapshot of a meeting at one revision."""

    __tablename__ = "meeting_revisions"

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=lambda: uuid.uuid4().hex
    )
    workspace_id: Mapped[str] = mapped_column(String(64), index=True)
    meeting_id: Mapped[str] = mapped_column(String(255), index=True)

    source: Mapped[str] = mapped_column(String(32))
    event_type: Mapped[str] = mapped_column(String(32))
    changed_fields: Mapped[list] = mapped_column(JSONType, default=list)
    summary: Mapped[str] = mapped_column(String(500))
    meeting_revision: Mapped[int] = mapped_column(Integer)

    actor_uid: Mapped[str] = mapped_column(String(128))
    actor_name: Mapped[str] = mapped_column(String(255))
    captured_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    restored_from_revision_id: Mapped[str] = mapped_column(String(64), default="")

    # Full normalized meeting payload at this revision
    meeting: Mapped[dict] = mapped_column(JSONType)

    __table_args__ = (
        Index("ix_meeting_revisions_meeting", "workspace_id", "meeting_id", "meeting_revision"),
    )
