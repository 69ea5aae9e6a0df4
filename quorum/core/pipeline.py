"""
Meeting update pipeline.

Single entry point for meeting writes:

    normalize -> diff -> (no-op short-circuit) -> record revision -> sync canonical

Restores take the same path after the restore orchestrator has planned the
new revision from a stored snapshot.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from quorum.config import Settings, get_settings
from quorum.core.diff import INITIAL_CAPTURE, list_changed_fields, payloads_equal
from quorum.core.errors import (
    AccessDenied,
    InternalSyncFailure,
    MeetingSyncError,
    NotFound,
    ValidationFailure,
)
from quorum.core.history import DatabaseHistoryWriter, HistoryWriter
from quorum.core.mentions import DatabaseMentionNotifier, MentionNotifier
from quorum.core.normalizer import normalize_meeting_payload, normalize_text
from quorum.core.permissions import (
    ActorContext,
    can_edit_meetings,
    can_restore_meeting_revisions,
)
from quorum.core.restore import RestoreOrchestrator
from quorum.core.revisions import PlannedRevision, RevisionRecorder
from quorum.core.sync import CanonicalSyncEngine, SyncReport
from quorum.models.meeting import MeetingRecord, MeetingRevision, RevisionEventType, RevisionSource
from quorum.models.workspace import Workspace
from quorum.schemas.meeting import MeetingPayload

logger = logging.getLogger(__name__)


@dataclass
class MeetingUpdateResult:
    """Outcome of one call to ``MeetingUpdatePipeline.update``."""

    meeting: MeetingPayload
    noop: bool = False
    revision_id: str = ""
    restored_from_revision_id: str = ""
    changed_fields: list[str] = field(default_factory=list)
    dropped_items: dict[str, int] = field(default_factory=dict)
    sync_report: SyncReport | None = None


class MeetingUpdatePipeline:
    """Applies meeting updates and restores for one workspace."""

    def __init__(
        self,
        session: AsyncSession,
        workspace: Workspace,
        history_writer: HistoryWriter | None = None,
        notifier: MentionNotifier | None = None,
        settings: Settings | None = None,
    ):
        self.session = session
        self.workspace_id = workspace.id
        self.settings = settings or get_settings()
        self.recorder = RevisionRecorder(session, workspace.id)
        self.restorer = RestoreOrchestrator(self.recorder)
        self.sync_engine = CanonicalSyncEngine(
            session,
            workspace,
            history_writer or DatabaseHistoryWriter(session),
            notifier or DatabaseMentionNotifier(session, workspace, self.settings),
            self.settings,
        )

    # =========================================================================
    # Reads
    # =========================================================================

    async def load_record(self, meeting_id: str) -> MeetingRecord | None:
        return await self.session.get(MeetingRecord, (self.workspace_id, meeting_id))

    async def get_meeting(self, meeting_id: str) -> MeetingPayload:
        """Current normalized meeting, or NotFound."""
        record = await self.load_record(meeting_id)
        if record is None:
            raise NotFound("Meeting not found.")

        meeting = normalize_meeting_payload(meeting_id, record.snapshot())
        if meeting is None:
            raise InternalSyncFailure("Meeting payload is invalid.")
        return meeting

    async def list_revisions(self, meeting_id: str, limit: int = 50) -> list[MeetingRevision]:
        if await self.load_record(meeting_id) is None:
            raise NotFound("Meeting not found.")
        return await self.recorder.list_for_meeting(meeting_id, limit)

    # =========================================================================
    # Writes
    # =========================================================================

    async def update(
        self,
        meeting_id: str,
        actor: ActorContext,
        body: Any,
        now: datetime | None = None,
    ) -> MeetingUpdateResult:
        """
        Create, update or restore a meeting.

        Args:
            meeting_id: Target meeting
            actor: Authorized caller
            body: Request body with ``meeting`` or ``restoreFromRevisionId``
                (the restore wins when both are present)
            now: Timestamp for every write of this call

        Returns:
            MeetingUpdateResult describing the resulting meeting

        Raises:
            ValidationFailure, AccessDenied, NotFound: before any write
            InternalSyncFailure: a write failed; earlier writes stay committed
        """
        if not isinstance(body, dict):
            raise ValidationFailure("Request body must be a JSON object.")

        restore_id = normalize_text(body.get("restoreFromRevisionId"))
        if not restore_id and "meeting" not in body:
            raise ValidationFailure("Provide a meeting payload or restoreFromRevisionId.")

        if not can_edit_meetings(actor.role):
            raise AccessDenied("Viewers cannot edit meetings.")
        if restore_id and not can_restore_meeting_revisions(actor.role):
            raise AccessDenied("Only owners and admins can restore meeting revisions.")

        record = await self.load_record(meeting_id)
        existing = normalize_meeting_payload(meeting_id, record.snapshot()) if record else None

        dropped: Counter = Counter()
        if restore_id:
            plan = await self.restorer.plan(meeting_id, restore_id, existing)
        else:
            incoming = normalize_meeting_payload(meeting_id, body.get("meeting"), dropped)
            if incoming is None:
                raise ValidationFailure("Meeting payload is required.")
            if dropped:
                logger.info(f"Dropped malformed items from meeting {meeting_id}: {dict(dropped)}")

            if existing is not None and payloads_equal(existing, incoming):
                logger.debug(f"No meaningful changes for meeting {meeting_id}")
                return MeetingUpdateResult(
                    meeting=existing, noop=True, dropped_items=dict(dropped)
                )
            plan = self._plan_update(existing, incoming)

        self._check_lock(existing, plan)

        now = now or datetime.utcnow()
        actor_name = actor.display_name or plan.meeting.owner or "Workspace User"

        try:
            revision_id, report = await self._apply(record, meeting_id, plan, actor, actor_name, now)
        except MeetingSyncError:
            raise
        except Exception as e:
            logger.exception(f"Failed to apply update to meeting {meeting_id}")
            await self.session.rollback()
            raise InternalSyncFailure() from e

        return MeetingUpdateResult(
            meeting=plan.meeting,
            revision_id=revision_id,
            restored_from_revision_id=plan.restored_from_revision_id,
            changed_fields=plan.changed_fields,
            dropped_items=dict(dropped),
            sync_report=report,
        )

    def _plan_update(
        self,
        existing: MeetingPayload | None,
        incoming: MeetingPayload,
    ) -> PlannedRevision:
        if existing is None:
            return PlannedRevision(
                meeting=incoming.model_copy(update={"revision": max(incoming.revision, 1)}),
                changed_fields=[INITIAL_CAPTURE],
                event_type=RevisionEventType.CREATED.value,
                source=RevisionSource.MEETING_UPDATE.value,
            )

        # The client's revision is advisory; the stored counter is authoritative
        next_meeting = incoming.model_copy(update={"revision": existing.revision + 1})
        return PlannedRevision(
            meeting=next_meeting,
            changed_fields=list_changed_fields(existing, next_meeting),
            event_type=RevisionEventType.UPDATED.value,
            source=RevisionSource.MEETING_UPDATE.value,
        )

    def _check_lock(self, existing: MeetingPayload | None, plan: PlannedRevision) -> None:
        """A locked meeting only accepts an update that unlocks it."""
        if existing is None or not existing.locked:
            return
        if plan.source == RevisionSource.RESTORE.value or plan.changed_fields != ["lock"]:
            raise AccessDenied("Meeting is locked. Unlock it before making changes.")

    async def _apply(
        self,
        record: MeetingRecord | None,
        meeting_id: str,
        plan: PlannedRevision,
        actor: ActorContext,
        actor_name: str,
        now: datetime,
    ) -> tuple[str, SyncReport]:
        if record is None:
            record = MeetingRecord(
                workspace_id=self.workspace_id,
                id=meeting_id,
                created_at=now,
                created_by=actor.uid,
            )
            self.session.add(record)

        record.apply_snapshot(plan.meeting.to_snapshot())
        record.updated_at = now
        record.updated_by = actor.uid
        await self.session.commit()

        revision = await self.recorder.append(
            meeting_id=meeting_id,
            meeting=plan.meeting,
            actor=actor,
            actor_name=actor_name,
            now=now,
            source=plan.source,
            event_type=plan.event_type,
            changed_fields=plan.changed_fields,
            restored_from_revision_id=plan.restored_from_revision_id,
        )
        revision_id = revision.id

        report = await self.sync_engine.sync(meeting_id, plan.meeting, actor, actor_name, now)
        return revision_id, report
