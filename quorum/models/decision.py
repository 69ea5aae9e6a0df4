"""Canonical decision model."""

from datetime import datetime
from enum import Enum

from sqlalchemy import String, DateTime, Text, Boolean, ForeignKey, Enum as SQLEnum, Index
from sqlalchemy.orm import Mapped, mapped_column

from quorum.services.database import Base, JSONType


class DecisionStatus(str, Enum):
    """Decision lifecycle status."""

    PROPOSED = "proposed"
    ACCEPTED = "accepted"
    SUPERSEDED = "superseded"
    REJECTED = "rejected"


class DecisionVisibility(str, Enum):
    """Who can see a decision."""

    WORKSPACE = "workspace"
    TEAM = "team"  # Restricted to allowed_team_ids
    PRIVATE = "private"


class Decision(Base):
    """Durable, independently addressable decision."""

    __tablename__ = "decisions"

    workspace_id: Mapped[str] = mapped_column(ForeignKey("workspaces.id"), primary_key=True)
    id: Mapped[str] = mapped_column(String(255), primary_key=True)

    # Content
    title: Mapped[str] = mapped_column(String(500))
    statement: Mapped[str] = mapped_column(Text, default="")
    rationale: Mapped[str] = mapped_column(Text, default="")
    owner: Mapped[str] = mapped_column(String(255), default="Unassigned")
    owner_uid: Mapped[str] = mapped_column(String(128), default="")
    status: Mapped[DecisionStatus] = mapped_column(
        SQLEnum(DecisionStatus, values_callable=lambda x: [e.value for e in x]),
        default=DecisionStatus.PROPOSED,
        index=True,
    )
    tags: Mapped[list] = mapped_column(JSONType, default=list)

    # Visibility
    visibility: Mapped[DecisionVisibility] = mapped_column(
        SQLEnum(DecisionVisibility, values_callable=lambda x: [e.value for e in x]),
        default=DecisionVisibility.WORKSPACE,
    )
    team_label: Mapped[str] = mapped_column(String(255), default="")
    allowed_team_ids: Mapped[list] = mapped_column(JSONType, default=list)

    # Provenance and links
    meeting_id: Mapped[str] = mapped_column(String(255), default="", index=True)
    supersedes_decision_id: Mapped[str] = mapped_column(String(255), default="")
    superseded_by_decision_id: Mapped[str] = mapped_column(String(255), default="")
    superseded_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Archival (never hard-deleted)
    archived: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    archived_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    archived_by: Mapped[str] = mapped_column(String(128), default="")

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    created_by: Mapped[str] = mapped_column(String(128), default="")
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_by: Mapped[str] = mapped_column(String(128), default="")

    __table_args__ = (
        Index("ix_decisions_workspace_meeting", "workspace_id", "meeting_id"),
    )

    def archive(self, uid: str, now: datetime) -> None:
        """Retire the decision from canonical views."""
        self.archived = True
        self.archived_at = now
        self.archived_by = uid
        self.updated_at = now
        self.updated_by = uid

    def unarchive(self, uid: str, now: datetime) -> None:
        """Bring an archived decision back."""
        self.archived = False
        self.archived_at = None
        self.archived_by = ""
        self.updated_at = now
        self.updated_by = uid
