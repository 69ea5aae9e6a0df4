"""Canonical action item model."""

from datetime import datetime
from enum import Enum

from sqlalchemy import String, DateTime, Text, Boolean, ForeignKey, Enum as SQLEnum, Index
from sqlalchemy.orm import Mapped, mapped_column

from quorum.services.database import Base


class ActionStatus(str, Enum):
    """Action status."""

    OPEN = "open"
    BLOCKED = "blocked"
    DONE = "done"


class ActionPriority(str, Enum):
    """Action priority level."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ActionItem(Base):
    """Durable, independently addressable action item."""

    __tablename__ = "actions"

    workspace_id: Mapped[str] = mapped_column(ForeignKey("workspaces.id"), primary_key=True)
    id: Mapped[str] = mapped_column(String(255), primary_key=True)

    # Content
    title: Mapped[str] = mapped_column(String(500))
    description: Mapped[str] = mapped_column(Text, default="")  # Longer text owned by the action
    owner: Mapped[str] = mapped_column(String(255), default="Unassigned")
    owner_uid: Mapped[str] = mapped_column(String(128), default="")
    status: Mapped[ActionStatus] = mapped_column(
        SQLEnum(ActionStatus, values_callable=lambda x: [e.value for e in x]),
        default=ActionStatus.OPEN,
        index=True,
    )
    priority: Mapped[ActionPriority] = mapped_column(
        SQLEnum(ActionPriority, values_callable=lambda x: [e.value for e in x]),
        default=ActionPriority.MEDIUM,
    )
    project: Mapped[str] = mapped_column(String(255), default="")

    # Timing
    due_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    due_label: Mapped[str] = mapped_column(String(255), default="No due date")
    due_soon: Mapped[bool] = mapped_column(Boolean, default=False)

    blocked_reason: Mapped[str] = mapped_column(Text, default="")
    notes: Mapped[str] = mapped_column(Text, default="")

    # Provenance
    meeting_id: Mapped[str] = mapped_column(String(255), default="", index=True)
    decision_id: Mapped[str] = mapped_column(String(255), default="")

    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

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
        Index("ix_actions_workspace_meeting", "workspace_id", "meeting_id"),
        Index("ix_actions_status_due", "status", "due_at"),
    )

    def archive(self, uid: str, now: datetime) -> None:
        """Retire the action from canonical views."""
        self.archived = True
        self.archived_at = now
        self.archived_by = uid
        self.updated_at = now
        self.updated_by = uid

    def unarchive(self, uid: str, now: datetime) -> None:
        """Bring an archived action back."""
        self.archived = False
        self.archived_at = None
        self.archived_by = ""
        self.updated_at = now
        self.updated_by = uid
