"""Mention notification inbox model."""

from datetime import datetime

from sqlalchemy import String, DateTime, Text, Index
from sqlalchemy.orm import Mapped, mapped_column

from quorum.services.database import Base


class Notification(Base):
    """A mention notification addressed to one workspace member.

    The id is deterministic per (workspace, entity), so repeated mentions of
    the same person on the same entity update a single row.
    """

    __tablename__ = "notifications"

    recipient_uid: Mapped[str] = mapped_column(String(128), primary_key=True)
    id: Mapped[str] = mapped_column(String(255), primary_key=True)

    type: Mapped[str] = mapped_column(String(32), default="mention")
    status: Mapped[str] = mapped_column(String(20), default="unread")
    read_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    workspace_id: Mapped[str] = mapped_column(String(64))
    workspace_slug: Mapped[str] = mapped_column(String(120))
    workspace_name: Mapped[str] = mapped_column(String(255))

    entity_type: Mapped[str] = mapped_column(String(20))
    entity_id: Mapped[str] = mapped_column(String(255))
    entity_title: Mapped[str] = mapped_column(String(500))
    entity_path: Mapped[str] = mapped_column(String(500))
    preview: Mapped[str] = mapped_column(Text, default="")

    mentioned_by_uid: Mapped[str] = mapped_column(String(128))
    mentioned_by_name: Mapped[str] = mapped_column(String(255))
    recipient_email: Mapped[str] = mapped_column(String(255), default="")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_notifications_recipient_status", "recipient_uid", "status"),
    )
