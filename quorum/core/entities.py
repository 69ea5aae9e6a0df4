"""
Canonical decision and action service.

Reads, manual create/edit and manual archive/restore of canonical entities.
Manual writes record history with source ``manual`` and notify newly
mentioned members the same way meeting sync does.
"""

import logging
import random
import time
import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quorum.config import Settings, get_settings
from quorum.core.due_dates import format_due_label, is_due_soon_date, is_due_soon_label, parse_due_at
from quorum.core.errors import AccessDenied, NotFound, ValidationFailure
from quorum.core.history import DatabaseHistoryWriter, HistoryEntry, HistoryWriter
from quorum.core.mentions import DatabaseMentionNotifier, MentionNotifier, MentionRequest
from quorum.core.normalizer import normalize_string_list
from quorum.core.permissions import ActorContext, can_archive_restore_entities, can_edit_entities
from quorum.core.sync import ActionAdapter, CanonicalAdapter, DecisionAdapter
from quorum.models.action import ActionItem, ActionPriority, ActionStatus
from quorum.models.decision import Decision, DecisionStatus, DecisionVisibility
from quorum.models.history import (
    CanonicalEntityType,
    EntityHistoryEvent,
    HistoryEventType,
    HistorySource,
)
from quorum.models.workspace import Workspace

logger = logging.getLogger(__name__)

ENTITY_MODELS = {
    CanonicalEntityType.DECISION: Decision,
    CanonicalEntityType.ACTION: ActionItem,
}

ID_ATTEMPTS = 5


def generate_entity_id(prefix: str) -> str:
    """Short readable id such as ``D-482913417``."""
    timestamp = str(int(time.time() * 1000))[-6:]
    return f"{prefix}-{timestamp}{random.randint(100, 999)}"


class EntityRules:
    """Field rules for manually written entities of one kind."""

    id_prefix: str
    # Fields whose change counts as a content change
    compared_fields: tuple[str, ...]
    # compared_fields plus the derived fields resolve() returns
    resolved_fields: tuple[str, ...]
    adapter: CanonicalAdapter

    def resolve(
        self,
        values: dict[str, Any],
        current: dict[str, Any],
        actor_name: str,
        now: datetime,
        settings: Settings,
        workspace_name: str,
    ) -> dict[str, Any]:
        raise NotImplementedError


class DecisionRules(EntityRules):
    id_prefix = "D"
    compared_fields = (
        "title",
        "statement",
        "rationale",
        "owner",
        "status",
        "visibility",
        "team_label",
        "allowed_team_ids",
        "tags",
        "meeting_id",
        "supersedes_decision_id",
        "superseded_by_decision_id",
    )
    resolved_fields = compared_fields + ("superseded_at",)
    adapter = DecisionAdapter()

    def resolve(self, values, current, actor_name, now, settings, workspace_name):
        title = values.get("title") or ""
        statement = values.get("statement") or ""
        if not title:
            raise ValidationFailure("Decision title is required.")
        if not statement:
            raise ValidationFailure("Decision statement is required.")

        status = DecisionStatus(values.get("status") or DecisionStatus.PROPOSED)
        visibility = DecisionVisibility(values.get("visibility") or DecisionVisibility.WORKSPACE)
        team_label = (values.get("team_label") or "") if visibility == DecisionVisibility.TEAM else ""

        return {
            "title": title,
            "statement": statement,
            "rationale": values.get("rationale") or statement,
            "owner": values.get("owner") or actor_name,
            "status": status,
            "visibility": visibility,
            "team_label": team_label,
            "allowed_team_ids": [team_label] if team_label else [],
            "tags": normalize_string_list(values.get("tags") or []),
            "meeting_id": values.get("meeting_id") or "",
            "supersedes_decision_id": values.get("supersedes_decision_id") or "",
            "superseded_by_decision_id": values.get("superseded_by_decision_id") or "",
            "superseded_at": (
                current.get("superseded_at") or now if status == DecisionStatus.SUPERSEDED else None
            ),
        }


class ActionRules(EntityRules):
    id_prefix = "A"
    compared_fields = (
        "title",
        "description",
        "owner",
        "status",
        "priority",
        "project",
        "due_at",
        "due_label",
        "meeting_id",
        "decision_id",
        "blocked_reason",
        "notes",
    )
    resolved_fields = compared_fields + ("due_soon", "completed_at")
    adapter = ActionAdapter()

    def resolve(self, values, current, actor_name, now, settings, workspace_name):
        title = values.get("title") or ""
        if not title:
            raise ValidationFailure("Action title is required.")

        status = ActionStatus(values.get("status") or ActionStatus.OPEN)
        priority = ActionPriority(values.get("priority") or ActionPriority.MEDIUM)

        due_at = values.get("due_at")
        due_label = values.get("due_label") or ""
        if due_at is None and due_label:
            due_at = parse_due_at(due_label, now, settings.due_default_hour)
        if due_at is not None and due_at.tzinfo is not None:
            due_at = due_at.replace(tzinfo=None) - (due_at.utcoffset() or timedelta(0))
        if not due_label:
            due_label = format_due_label(due_at) if due_at else "No due date"

        window = timedelta(hours=settings.due_soon_window_hours)
        due_soon = status == ActionStatus.OPEN and (
            is_due_soon_date(due_at, now, window) if due_at else is_due_soon_label(due_label)
        )

        return {
            "title": title,
            "description": values.get("description") or title,
            "owner": values.get("owner") or actor_name,
            "status": status,
            "priority": priority,
            "project": values.get("project") or workspace_name or "Workspace",
            "due_at": due_at,
            "due_label": due_label,
            "due_soon": due_soon,
            "meeting_id": values.get("meeting_id") or "",
            "decision_id": values.get("decision_id") or "",
            "blocked_reason": (values.get("blocked_reason") or "") if status == ActionStatus.BLOCKED else "",
            "notes": values.get("notes") or "",
            "completed_at": current.get("completed_at") or now if status == ActionStatus.DONE else None,
        }


ENTITY_RULES: dict[CanonicalEntityType, EntityRules] = {
    CanonicalEntityType.DECISION: DecisionRules(),
    CanonicalEntityType.ACTION: ActionRules(),
}


class CanonicalEntityService:
    """Workspace-scoped access to one canonical entity kind."""

    def __init__(
        self,
        session: AsyncSession,
        workspace: Workspace,
        entity_type: CanonicalEntityType,
        history_writer: HistoryWriter | None = None,
        notifier: MentionNotifier | None = None,
        settings: Settings | None = None,
    ):
        self.session = session
        # Plain copies: ORM attributes expire if a best-effort step rolls back
        self.workspace_id = workspace.id
        self.workspace_slug = workspace.slug
        self.workspace_name = workspace.name
        self.entity_type = entity_type
        self.model = ENTITY_MODELS[entity_type]
        self.rules = ENTITY_RULES[entity_type]
        self.settings = settings or get_settings()
        self.history_writer = history_writer or DatabaseHistoryWriter(session)
        self.notifier = notifier or DatabaseMentionNotifier(session, workspace, self.settings)

    @property
    def kind(self) -> str:
        return self.entity_type.value

    # =========================================================================
    # Reads
    # =========================================================================

    async def list_entities(
        self,
        include_archived: bool = False,
        meeting_id: str | None = None,
        status: Enum | None = None,
    ) -> list:
        model = self.model
        query = select(model).where(model.workspace_id == self.workspace_id)
        if not include_archived:
            query = query.where(model.archived.is_(False))
        if meeting_id:
            query = query.where(model.meeting_id == meeting_id)
        if status:
            query = query.where(model.status == status)
        query = query.order_by(model.updated_at.desc(), model.id)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get(self, entity_id: str):
        entity = await self.session.get(self.model, (self.workspace_id, entity_id))
        if entity is None:
            raise NotFound(f"{self.kind.capitalize()} not found.")
        return entity

    async def history(self, entity_id: str) -> list[EntityHistoryEvent]:
        """History events of one entity, newest first."""
        await self.get(entity_id)
        result = await self.session.execute(
            select(EntityHistoryEvent)
            .where(
                EntityHistoryEvent.workspace_id == self.workspace_id,
                EntityHistoryEvent.entity == self.kind,
                EntityHistoryEvent.entity_id == entity_id,
            )
            .order_by(EntityHistoryEvent.at.desc())
        )
        return list(result.scalars().all())

    # =========================================================================
    # Manual writes
    # =========================================================================

    async def create(
        self,
        values: dict[str, Any],
        actor: ActorContext,
        now: datetime | None = None,
    ):
        """
        Create an entity by hand under a freshly generated id.

        Args:
            values: Field values from the request (``model_dump()`` of the create schema)
            actor: Authorized caller
            now: Timestamp for the write

        Returns:
            The stored entity

        Raises:
            AccessDenied: viewer caller
            ValidationFailure: a required field is blank
        """
        if not can_edit_entities(actor.role):
            raise AccessDenied(f"Viewers cannot create {self.kind}s.")

        now = now or datetime.utcnow()
        actor_name = actor.display_name or "Workspace User"
        resolved = self.rules.resolve(
            values, {}, actor_name, now, self.settings, self.workspace_name
        )

        entity_id = await self._new_entity_id()
        entity = self.model(
            workspace_id=self.workspace_id,
            id=entity_id,
            owner_uid=actor.uid,
            archived=False,
            archived_by="",
            created_at=now,
            created_by=actor.uid,
            updated_at=now,
            updated_by=actor.uid,
        )
        for name, value in resolved.items():
            setattr(entity, name, value)
        self.session.add(entity)

        await self._history(
            entity_id, HistoryEventType.CREATED, actor, actor_name,
            f"Created {self.kind} {entity_id}.", now, resolved["meeting_id"],
        )
        await self.session.commit()
        logger.info(f"Created {self.kind} {entity_id} by hand. Actor: {actor.uid}")

        await self._notify_mentions(entity_id, resolved, {}, actor, actor_name, now)
        return await self.get(entity_id)

    async def update(
        self,
        entity_id: str,
        values: dict[str, Any],
        actor: ActorContext,
        now: datetime | None = None,
    ):
        """
        Edit an entity by hand. Only the supplied fields change.

        An edit that leaves every field as it was writes nothing.
        """
        if not can_edit_entities(actor.role):
            raise AccessDenied(f"Viewers cannot edit {self.kind}s.")

        entity = await self.get(entity_id)
        now = now or datetime.utcnow()
        actor_name = actor.display_name or "Workspace User"

        supplied = {name: value for name, value in values.items() if value is not None or name == "due_at"}
        current = {name: getattr(entity, name) for name in self.rules.resolved_fields}
        merged = {**current, **supplied}
        # A new label is parsed again; a new timestamp gets a fresh label
        if (
            "due_label" in supplied
            and "due_at" not in supplied
            and supplied["due_label"] != current.get("due_label")
        ):
            merged["due_at"] = None
        if "due_at" in supplied and "due_label" not in supplied:
            merged["due_label"] = ""

        resolved = self.rules.resolve(
            merged, current, actor_name, now, self.settings, self.workspace_name
        )
        if all(resolved[name] == current[name] for name in self.rules.compared_fields):
            return entity

        for name, value in resolved.items():
            setattr(entity, name, value)
        entity.owner_uid = actor.uid
        entity.updated_at = now
        entity.updated_by = actor.uid

        await self._history(
            entity_id, HistoryEventType.UPDATED, actor, actor_name,
            f"Updated {self.kind} {entity_id}.", now, resolved["meeting_id"],
        )
        await self.session.commit()
        logger.info(f"Updated {self.kind} {entity_id} by hand. Actor: {actor.uid}")

        await self._notify_mentions(entity_id, resolved, current, actor, actor_name, now)
        return await self.get(entity_id)

    async def set_archived(
        self,
        entity_id: str,
        archived: bool,
        actor: ActorContext,
        now: datetime | None = None,
    ):
        """
        Archive or restore an entity by hand.

        A call that matches the current state writes nothing.
        """
        if not can_archive_restore_entities(actor.role):
            raise AccessDenied(
                f"Only owners and admins can archive or restore {self.kind}s."
            )

        entity = await self.get(entity_id)
        if entity.archived == archived:
            return entity

        now = now or datetime.utcnow()
        if archived:
            entity.archive(actor.uid, now)
            event_type = HistoryEventType.ARCHIVED
            message = f"Archived {self.kind} {entity_id}."
        else:
            entity.unarchive(actor.uid, now)
            event_type = HistoryEventType.RESTORED
            message = f"Restored {self.kind} {entity_id}."

        await self._history(
            entity_id, event_type, actor, actor.display_name, message, now, entity.meeting_id
        )
        await self.session.commit()

        logger.info(f"{message} Actor: {actor.uid}")
        return entity

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _new_entity_id(self) -> str:
        for _ in range(ID_ATTEMPTS):
            entity_id = generate_entity_id(self.rules.id_prefix)
            if await self.session.get(self.model, (self.workspace_id, entity_id)) is None:
                return entity_id
        return f"{self.rules.id_prefix}-{uuid.uuid4().hex[:12]}"

    async def _history(
        self,
        entity_id: str,
        event_type: HistoryEventType,
        actor: ActorContext,
        actor_name: str,
        message: str,
        now: datetime,
        meeting_id: str,
    ) -> None:
        await self.history_writer.write(
            HistoryEntry(
                workspace_id=self.workspace_id,
                entity=self.kind,
                entity_id=entity_id,
                event_type=event_type.value,
                source=HistorySource.MANUAL.value,
                actor_uid=actor.uid,
                actor_name=actor_name,
                message=message,
                at=now,
                metadata={"meetingId": meeting_id},
            )
        )

    async def _notify_mentions(
        self,
        entity_id: str,
        values: dict[str, Any],
        previous: dict[str, Any],
        actor: ActorContext,
        actor_name: str,
        now: datetime,
    ) -> None:
        adapter = self.rules.adapter
        request = MentionRequest(
            entity_type=self.kind,
            entity_id=entity_id,
            title=values["title"],
            path=f"/{self.workspace_slug}/{adapter.collection}/{entity_id}",
            mention_text=adapter.mention_text(values),
            previous_mention_text=adapter.mention_text(previous),
            actor_uid=actor.uid,
            actor_name=actor_name,
            timestamp=now,
        )
        try:
            await self.notifier.emit(request)
        except Exception as e:
            # Best effort: the entity write above is already committed
            logger.warning(f"Mention notifications failed for {self.kind} {entity_id}: {e}")
            await self.session.rollback()
