"""Database models."""

from quorum.models.workspace import Workspace, WorkspaceMember, MemberRole
from quorum.models.meeting import MeetingRecord, MeetingRevision, RevisionSource, RevisionEventType
from quorum.models.decision import Decision, DecisionStatus, DecisionVisibility
from quorum.models.action import ActionItem, ActionStatus, ActionPriority
from quorum.models.history import (
    EntityHistoryEvent,
    CanonicalEntityType,
    HistoryEventType,
    HistorySource,
)
from quorum.models.notification import Notification

__all__ = [
    "Workspace",
    "WorkspaceMember",
    "MemberRole",
    "MeetingRecord",
    "MeetingRevision",
    "RevisionSource",
    "RevisionEventType",
    "Decision",
    "DecisionStatus",
    "DecisionVisibility",
    "ActionItem",
    "ActionStatus",
    "ActionPriority",
    "EntityHistoryEvent",
    "CanonicalEntityType",
    "HistoryEventType",
    "HistorySource",
    "Notification",
]
