"""
Canonical sync engine.

Reconciles the decisions and actions embedded in a meeting against the
workspace's canonical entities:

- ids new to the workspace are created with the meeting as provenance
- existing entities are partially merged and written only when their
  normalized content changed, or when they were archived (editing an item
  from its meeting un-archives it)
- entities whose provenance is this meeting but which the meeting no longer
  lists are archived (the orphan sweep)

Which side owns each field is declared in a merge-policy table per entity
kind. Meeting-owned fields always follow the meeting copy, so clearing one
in the meeting clears it canonically. Fields where an empty meeting value
means "not supplied" keep the stored value instead. Canonical-owned fields
keep the stored value and take the meeting-derived value only when empty.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quorum.config import Settings, get_settings
from quorum.core.due_dates import is_due_soon_date, is_due_soon_label, parse_due_at
from quorum.core.history import HistoryEntry, HistoryWriter
from quorum.core.mentions import MentionNotifier, MentionRequest
from quorum.core.normalizer import normalize_string_list
from quorum.core.permissions import ActorContext
from quorum.models.action import ActionItem, ActionPriority, ActionStatus
from quorum.models.decision import Decision, DecisionStatus, DecisionVisibility
from quorum.models.history import CanonicalEntityType, HistoryEventType, HistorySource
from quorum.models.workspace import Workspace
from quorum.schemas.meeting import MeetingAction, MeetingDecision, MeetingPayload

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", Decision, ActionItem)
ItemT = TypeVar("ItemT", bound=BaseModel)


class FieldOwner(str, Enum):
    """Which side is authoritative for a canonical field."""

    MEETING = "meeting"
    MEETING_IF_SET = "meeting_if_set"  # Empty meeting value keeps the stored one
    CANONICAL = "canonical"


DECISION_MERGE_POLICY: dict[str, FieldOwner] = {
    "title": FieldOwner.MEETING,
    "statement": FieldOwner.MEETING,
    "rationale": FieldOwner.MEETING,
    "owner": FieldOwner.MEETING,
    "status": FieldOwner.MEETING,
    "tags": FieldOwner.MEETING,
    "owner_uid": FieldOwner.CANONICAL,
    "visibility": FieldOwner.CANONICAL,
    "team_label": FieldOwner.CANONICAL,
    "allowed_team_ids": FieldOwner.CANONICAL,
    "meeting_id": FieldOwner.CANONICAL,
    "supersedes_decision_id": FieldOwner.CANONICAL,
    "superseded_by_decision_id": FieldOwner.CANONICAL,
}

ACTION_MERGE_POLICY: dict[str, FieldOwner] = {
    "title": FieldOwner.MEETING,
    "owner": FieldOwner.MEETING,
    "status": FieldOwner.MEETING,
    "priority": FieldOwner.MEETING,
    "project": FieldOwner.MEETING_IF_SET,
    "due_label": FieldOwner.MEETING,
    "due_at": FieldOwner.MEETING,
    "blocked_reason": FieldOwner.MEETING_IF_SET,
    "notes": FieldOwner.MEETING,
    "description": FieldOwner.CANONICAL,
    "owner_uid": FieldOwner.CANONICAL,
    "meeting_id": FieldOwner.CANONICAL,
    "decision_id": FieldOwner.CANONICAL,
}


def _present(value: Any) -> bool:
    return value is not None and value != "" and value != []


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, list):
        return normalize_string_list(value)
    return value


def merge_fields(
    policy: dict[str, FieldOwner],
    proposed: dict[str, Any],
    current: dict[str, Any],
    defaults: dict[str, Any],
) -> dict[str, Any]:
    """
    Merge meeting-derived values with stored values according to ``policy``.

    Args:
        policy: Field ownership table
        proposed: Values derived from the meeting copy
        current: Normalized stored values ({} for a new entity)
        defaults: Last-resort values when neither side has one

    Returns:
        Merged values for every field in the policy
    """
    merged: dict[str, Any] = {}
    for name, owner in policy.items():
        offered = proposed.get(name)
        stored = current.get(name)
        if owner is FieldOwner.MEETING:
            value = offered
        elif owner is FieldOwner.MEETING_IF_SET:
            value = offered if _present(offered) else stored
        else:
            value = stored if _present(stored) else offered
        if not _present(value):
            value = defaults.get(name, value)
        merged[name] = value
    return merged


@dataclass
class SyncContext:
    """Per-call values shared by both entity kinds."""

    workspace_id: str
    meeting_id: str
    meeting: MeetingPayload
    actor: ActorContext
    actor_name: str
    now: datetime
    settings: Settings


@dataclass
class EntitySyncCounts:
    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    restored: list[str] = field(default_factory=list)
    archived: list[str] = field(default_factory=list)

    @property
    def writes(self) -> int:
        # An un-archive with content change is one write, counted in both lists
        return len(self.created) + len(set(self.updated) | set(self.restored)) + len(self.archived)


@dataclass
class SyncReport:
    """What a sync pass wrote."""

    decisions: EntitySyncCounts = field(default_factory=EntitySyncCounts)
    actions: EntitySyncCounts = field(default_factory=EntitySyncCounts)

    @property
    def writes(self) -> int:
        return self.decisions.writes + self.actions.writes


class CanonicalAdapter(ABC, Generic[ModelT, ItemT]):
    """Entity-kind specific rules used by the sync engine."""

    entity_type: CanonicalEntityType
    model: type
    merge_policy: dict[str, FieldOwner]
    # Fields written on top of the merge policy
    derived_fields: tuple[str, ...] = ()
    collection: str

    @abstractmethod
    def items(self, meeting: MeetingPayload) -> list[ItemT]:
        """The meeting's embedded copies of this entity kind."""

    @abstractmethod
    def propose(self, item: ItemT, ctx: SyncContext) -> dict[str, Any]:
        """Values the meeting copy implies for each policy field."""

    @abstractmethod
    def defaults(self, item: ItemT, ctx: SyncContext) -> dict[str, Any]:
        """Fallback values when neither side has one."""

    def finalize(self, merged: dict[str, Any], current: dict[str, Any], ctx: SyncContext) -> None:
        """Compute derived fields after the merge."""

    @abstractmethod
    def mention_text(self, values: dict[str, Any]) -> str:
        """Text scanned for @mentions."""

    @abstractmethod
    def apply(self, entity: ModelT, values: dict[str, Any], ctx: SyncContext) -> None:
        """Write merged values onto the model."""

    def current_values(self, entity: ModelT | None) -> dict[str, Any]:
        if entity is None:
            return {}
        names = list(self.merge_policy) + list(self.derived_fields)
        return {name: _plain(getattr(entity, name)) for name in names}

    @property
    def compared_fields(self) -> list[str]:
        return list(self.merge_policy) + list(self.derived_fields)


class DecisionAdapter(CanonicalAdapter[Decision, MeetingDecision]):
    entity_type = CanonicalEntityType.DECISION
    model = Decision
    merge_policy = DECISION_MERGE_POLICY
    collection = "decisions"

    def items(self, meeting: MeetingPayload) -> list[MeetingDecision]:
        return meeting.decisions

    def propose(self, item: MeetingDecision, ctx: SyncContext) -> dict[str, Any]:
        statement = item.rationale or item.title
        return {
            "title": item.title,
            "statement": statement,
            "rationale": item.rationale or statement,
            "owner": item.owner,
            "status": item.status,
            "tags": list(item.tags),
            "owner_uid": ctx.actor.uid,
            "visibility": DecisionVisibility.WORKSPACE.value,
            "team_label": ctx.meeting.team,
            "allowed_team_ids": [],
            "meeting_id": ctx.meeting_id,
            "supersedes_decision_id": "",
            "superseded_by_decision_id": "",
        }

    def defaults(self, item: MeetingDecision, ctx: SyncContext) -> dict[str, Any]:
        return {
            "title": f"Decision {item.id}",
            "statement": "Decision statement pending.",
            "owner": "Unassigned",
            "tags": [],
            "allowed_team_ids": [],
            "supersedes_decision_id": "",
            "superseded_by_decision_id": "",
        }

    def finalize(self, merged: dict[str, Any], current: dict[str, Any], ctx: SyncContext) -> None:
        if merged["visibility"] not in {v.value for v in DecisionVisibility}:
            merged["visibility"] = DecisionVisibility.WORKSPACE.value
        if merged["visibility"] == DecisionVisibility.TEAM.value:
            stored_teams = current.get("allowed_team_ids") or []
            team_label = merged["team_label"]
            merged["allowed_team_ids"] = stored_teams or ([team_label] if team_label else [])
        else:
            merged["allowed_team_ids"] = []

    def mention_text(self, values: dict[str, Any]) -> str:
        return "\n".join(values.get(name) or "" for name in ("title", "statement", "rationale"))

    def apply(self, entity: Decision, values: dict[str, Any], ctx: SyncContext) -> None:
        for name, value in values.items():
            if name == "status":
                value = DecisionStatus(value)
            elif name == "visibility":
                value = DecisionVisibility(value)
            setattr(entity, name, value)


class ActionAdapter(CanonicalAdapter[ActionItem, MeetingAction]):
    entity_type = CanonicalEntityType.ACTION
    model = ActionItem
    merge_policy = ACTION_MERGE_POLICY
    derived_fields = ("due_soon",)
    collection = "actions"

    def items(self, meeting: MeetingPayload) -> list[MeetingAction]:
        return meeting.actions

    def propose(self, item: MeetingAction, ctx: SyncContext) -> dict[str, Any]:
        return {
            "title": item.title,
            "owner": item.owner,
            "status": item.status,
            "priority": item.priority,
            "project": item.project,
            "due_label": item.due_label,
            "due_at": parse_due_at(item.due_label, ctx.now, ctx.settings.due_default_hour),
            "blocked_reason": item.blocked_reason,
            "notes": item.notes,
            "description": item.title,
            "owner_uid": ctx.actor.uid,
            "meeting_id": ctx.meeting_id,
            "decision_id": "",
        }

    def defaults(self, item: MeetingAction, ctx: SyncContext) -> dict[str, Any]:
        return {
            "title": f"Action {item.id}",
            "owner": "Unassigned",
            "project": ctx.meeting.team or "Workspace",
            "due_label": "No due date",
            "blocked_reason": "Blocked in meeting record.",
            "notes": "",
            "decision_id": "",
        }

    def finalize(self, merged: dict[str, Any], current: dict[str, Any], ctx: SyncContext) -> None:
        if merged["status"] != ActionStatus.BLOCKED.value:
            merged["blocked_reason"] = ""

        # Relative labels resolve against the first sync that saw them
        if current and current.get("due_label") == merged["due_label"]:
            merged["due_at"] = current.get("due_at")
        else:
            merged["due_at"] = parse_due_at(
                merged["due_label"], ctx.now, ctx.settings.due_default_hour
            )

        window = timedelta(hours=ctx.settings.due_soon_window_hours)
        due_at = merged["due_at"]
        merged["due_soon"] = merged["status"] == ActionStatus.OPEN.value and (
            is_due_soon_date(due_at, ctx.now, window)
            if due_at is not None
            else is_due_soon_label(merged["due_label"])
        )

    def mention_text(self, values: dict[str, Any]) -> str:
        return "\n".join(
            values.get(name) or "" for name in ("title", "description", "blocked_reason", "notes")
        )

    def apply(self, entity: ActionItem, values: dict[str, Any], ctx: SyncContext) -> None:
        for name, value in values.items():
            if name == "status":
                value = ActionStatus(value)
            elif name == "priority":
                value = ActionPriority(value)
            setattr(entity, name, value)

        if entity.status == ActionStatus.DONE:
            entity.completed_at = entity.completed_at or ctx.now
        else:
            entity.completed_at = None


class CanonicalSyncEngine:
    """Reconciles one meeting's decision and action lists with canonical entities."""

    def __init__(
        self,
        session: AsyncSession,
        workspace: Workspace,
        history_writer: HistoryWriter,
        notifier: MentionNotifier,
        settings: Settings | None = None,
    ):
        self.session = session
        # Plain copies: ORM attributes expire if a best-effort step rolls back
        self.workspace_id = workspace.id
        self.workspace_slug = workspace.slug
        self.history_writer = history_writer
        self.notifier = notifier
        self.settings = settings or get_settings()
        self.adapters: list[CanonicalAdapter] = [DecisionAdapter(), ActionAdapter()]

    async def sync(
        self,
        meeting_id: str,
        meeting: MeetingPayload,
        actor: ActorContext,
        actor_name: str,
        now: datetime | None = None,
    ) -> SyncReport:
        """
        Reconcile the meeting against canonical entities.

        Each entity is read, merged and committed on its own; a failure part
        way through leaves earlier entity writes in place.
        """
        ctx = SyncContext(
            workspace_id=self.workspace_id,
            meeting_id=meeting_id,
            meeting=meeting,
            actor=actor,
            actor_name=actor_name,
            now=now or datetime.utcnow(),
            settings=self.settings,
        )
        report = SyncReport()

        for adapter in self.adapters:
            counts: EntitySyncCounts = getattr(report, adapter.collection)
            for item in adapter.items(meeting):
                await self._reconcile_item(adapter, item, ctx, counts)
            await self._sweep_orphans(adapter, ctx, counts)

        logger.info(
            f"Synced meeting {meeting_id}: {report.writes} canonical writes "
            f"(decisions created={len(report.decisions.created)} updated={len(report.decisions.updated)} "
            f"archived={len(report.decisions.archived)}; actions created={len(report.actions.created)} "
            f"updated={len(report.actions.updated)} archived={len(report.actions.archived)})"
        )
        return report

    async def _load(self, adapter: CanonicalAdapter, entity_id: str):
        return await self.session.get(adapter.model, (self.workspace_id, entity_id))

    async def _reconcile_item(
        self,
        adapter: CanonicalAdapter,
        item: Any,
        ctx: SyncContext,
        counts: EntitySyncCounts,
    ) -> None:
        entity = await self._load(adapter, item.id)
        existed = entity is not None
        current = adapter.current_values(entity)

        merged = merge_fields(
            adapter.merge_policy,
            adapter.propose(item, ctx),
            current,
            adapter.defaults(item, ctx),
        )
        adapter.finalize(merged, current, ctx)

        content_changed = not existed or any(
            merged.get(name) != current.get(name) for name in adapter.compared_fields
        )
        was_archived = existed and entity.archived
        if not content_changed and not was_archived:
            return

        if entity is None:
            entity = adapter.model(
                workspace_id=self.workspace_id,
                id=item.id,
                archived=False,
                created_at=ctx.now,
                created_by=ctx.actor.uid,
            )
            self.session.add(entity)

        adapter.apply(entity, merged, ctx)
        entity.unarchive(ctx.actor.uid, ctx.now)

        kind = adapter.entity_type.value
        if not existed:
            await self._history(adapter, item.id, HistoryEventType.CREATED, ctx,
                                f"Created {kind} {item.id} from meeting {ctx.meeting_id}.")
            counts.created.append(item.id)
        else:
            if content_changed:
                await self._history(adapter, item.id, HistoryEventType.UPDATED, ctx,
                                    f"Synced {kind} {item.id} from meeting {ctx.meeting_id}.")
                counts.updated.append(item.id)
            if was_archived:
                await self._history(adapter, item.id, HistoryEventType.RESTORED, ctx,
                                    f"Restored {kind} {item.id} via meeting {ctx.meeting_id}.")
                counts.restored.append(item.id)

        await self.session.commit()

        if content_changed:
            await self._notify_mentions(adapter, item.id, merged, current, ctx)

    async def _sweep_orphans(
        self,
        adapter: CanonicalAdapter,
        ctx: SyncContext,
        counts: EntitySyncCounts,
    ) -> None:
        listed_ids = {item.id for item in adapter.items(ctx.meeting)}
        model = adapter.model
        result = await self.session.execute(
            select(model).where(
                model.workspace_id == self.workspace_id,
                model.meeting_id == ctx.meeting_id,
            )
        )
        for entity in result.scalars().all():
            if entity.id in listed_ids or entity.archived:
                continue

            entity.archive(ctx.actor.uid, ctx.now)
            kind = adapter.entity_type.value
            await self._history(adapter, entity.id, HistoryEventType.ARCHIVED, ctx,
                                f"Archived {kind} {entity.id} removed from meeting {ctx.meeting_id}.")
            await self.session.commit()
            counts.archived.append(entity.id)

    async def _history(
        self,
        adapter: CanonicalAdapter,
        entity_id: str,
        event_type: HistoryEventType,
        ctx: SyncContext,
        message: str,
    ) -> None:
        await self.history_writer.write(
            HistoryEntry(
                workspace_id=self.workspace_id,
                entity=adapter.entity_type.value,
                entity_id=entity_id,
                event_type=event_type.value,
                source=HistorySource.MEETING_SYNC.value,
                actor_uid=ctx.actor.uid,
                actor_name=ctx.actor_name,
                message=message,
                at=ctx.now,
                metadata={"meetingId": ctx.meeting_id},
            )
        )

    async def _notify_mentions(
        self,
        adapter: CanonicalAdapter,
        entity_id: str,
        merged: dict[str, Any],
        current: dict[str, Any],
        ctx: SyncContext,
    ) -> None:
        request = MentionRequest(
            entity_type=adapter.entity_type.value,
            entity_id=entity_id,
            title=merged["title"],
            path=f"/{self.workspace_slug}/{adapter.collection}/{entity_id}",
            mention_text=adapter.mention_text(merged),
            previous_mention_text=adapter.mention_text(current),
            actor_uid=ctx.actor.uid,
            actor_name=ctx.actor_name,
            timestamp=ctx.now,
        )
        try:
            await self.notifier.emit(request)
        except Exception as e:
            # Best effort: the entity write above is already committed
            logger.warning(f"Mention notifications failed for {request.entity_type} {entity_id}: {e}")
            await self.session.rollback()
