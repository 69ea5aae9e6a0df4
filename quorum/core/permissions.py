"""Role checks for meeting and canonical entity operations."""

from dataclasses import dataclass
from typing import Any

from quorum.models.workspace import MemberRole

MANAGER_ROLES = {MemberRole.OWNER, MemberRole.ADMIN}


@dataclass(frozen=True)
class ActorContext:
    """Resolved caller identity within a workspace."""

    uid: str
    role: MemberRole
    display_name: str = ""


def parse_member_role(value: Any, fallback: MemberRole = MemberRole.MEMBER) -> MemberRole:
    """Parse a stored role, falling back for unknown values."""
    if isinstance(value, MemberRole):
        return value
    if isinstance(value, str):
        try:
            return MemberRole(value.strip().lower())
        except ValueError:
            pass
    return fallback


def is_manager_role(role: MemberRole) -> bool:
    return role in MANAGER_ROLES


def can_edit_meetings(role: MemberRole) -> bool:
    return role != MemberRole.VIEWER


def can_restore_meeting_revisions(role: MemberRole) -> bool:
    return is_manager_role(role)


def can_edit_entities(role: MemberRole) -> bool:
    return role != MemberRole.VIEWER


def can_archive_restore_entities(role: MemberRole) -> bool:
    return is_manager_role(role)
