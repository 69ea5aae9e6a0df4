"""Workspace and membership models."""

from datetime import datetime
from enum import Enum

from sqlalchemy import String, DateTime, ForeignKey, Enum as SQLEnum, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quorum.services.database import Base


class MemberRole(str, Enum):
    """Workspace member role."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"  # Read-only access


class Workspace(Base):
    """A collaboration workspace holding meetings, decisions and actions."""

    __tablename__ = "workspaces"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    slug: Mapped[str] = mapped_column(String(120), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    members: Mapped[list["WorkspaceMember"]] = relationship(back_populates="workspace")


class WorkspaceMember(Base):
    """Membership of a user in a workspace."""

    __tablename__ = "workspace_members"

    workspace_id: Mapped[str] = mapped_column(ForeignKey("workspaces.id"), primary_key=True)
    uid: Mapped[str] = mapped_column(String(128), primary_key=True)
    workspace: Mapped["Workspace"] = relationship(back_populates="members")

    email: Mapped[str] = mapped_column(String(255), default="")
    display_name: Mapped[str] = mapped_column(String(255), default="")
    role: Mapped[MemberRole] = mapped_column(
        SQLEnum(MemberRole, values_callable=lambda x: [e.value for e in x]),
        default=MemberRole.MEMBER,
    )

    joined_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_workspace_members_email", "workspace_id", "email"),
    )
