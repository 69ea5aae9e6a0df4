"""Append-only history log for canonical entities."""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import String, DateTime, Text, Index
from sqlalchemy.orm import Mapped, mapped_column

from quorum.services.database import Base, JSONType


class CanonicalEntityType(str, Enum):
    """Entity kinds reconciled against meetings."""

    DECISION = "decision"
    ACTION = "action"


class HistoryEventType(str, Enum):
    """What happened to a canonical entity."""

    CREATED = "created"
    UPDATED = "updated"
    ARCHIVED = "archived"
    RESTORED = "restored"


class HistorySource(str, Enum):
    """Where a history event originated."""

    MEETING_SYNC = "meetingSync"
    MANUAL = "manual"


class EntityHistoryEvent(Base):
    """A single write-once event on a decision or action."""

    __tablename__ = "entity_history"

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=lambda: uuid.uuid4().hex
    )
    workspace_id: Mapped[str] = mapped_column(String(64), index=True)
    entity: Mapped[str] = mapped_column(String(20))
    entity_id: Mapped[str] = mapped_column(String(255))

    event_type: Mapped[str] = mapped_column(String(20))
    source: Mapped[str] = mapped_column(String(20))
    actor_uid: Mapped[str] = mapped_column(String(128))
    actor_name: Mapped[str] = mapped_column(String(255))
    message: Mapped[str] = mapped_column(Text)
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSONType, nullable=True)
    at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_entity_history_entity", "workspace_id", "entity", "entity_id", "at"),
    )
