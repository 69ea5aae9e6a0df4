"""Revision recorder: the per-meeting, append-only audit log."""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quorum.core.diff import summarize_changed_fields
from quorum.core.permissions import ActorContext
from quorum.models.meeting import MeetingRevision
from quorum.schemas.meeting import MeetingPayload

logger = logging.getLogger(__name__)


@dataclass
class PlannedRevision:
    """A meeting state ready to be recorded, with its audit details."""

    meeting: MeetingPayload
    changed_fields: list[str]
    event_type: str
    source: str
    restored_from_revision_id: str = ""


class RevisionRecorder:
    """
    Appends immutable meeting snapshots.

    The recorder only ever inserts rows; there is no update or delete path.
    Restores are recorded as new rows pointing back at their source.
    """

    def __init__(self, session: AsyncSession, workspace_id: str):
        self.session = session
        self.workspace_id = workspace_id

    async def append(
        self,
        meeting_id: str,
        meeting: MeetingPayload,
        actor: ActorContext,
        actor_name: str,
        now: datetime,
        source: str,
        event_type: str,
        changed_fields: list[str],
        restored_from_revision_id: str = "",
    ) -> MeetingRevision:
        """
        Append one revision row and commit it.

        Args:
            meeting_id: Meeting the snapshot belongs to
            meeting: Normalized meeting at its freshly incremented revision
            actor: Caller performing the change
            actor_name: Display name recorded on the row
            now: Capture timestamp
            source: meetingUpdate or restore
            event_type: created, updated or restored
            changed_fields: Changed-field labels from the diff engine
            restored_from_revision_id: Source revision for restores

        Returns:
            The persisted MeetingRevision
        """
        revision = MeetingRevision(
            workspace_id=self.workspace_id,
            meeting_id=meeting_id,
            source=source,
            event_type=event_type,
            changed_fields=list(changed_fields),
            summary=summarize_changed_fields(changed_fields, event_type),
            meeting_revision=meeting.revision,
            actor_uid=actor.uid,
            actor_name=actor_name,
            captured_at=now,
            restored_from_revision_id=restored_from_revision_id,
            meeting=meeting.to_snapshot(),
        )
        self.session.add(revision)
        await self.session.commit()

        logger.info(
            f"Recorded revision {meeting.revision} ({event_type}) for meeting {meeting_id}"
        )
        return revision

    async def get(self, meeting_id: str, revision_id: str) -> MeetingRevision | None:
        result = await self.session.execute(
            select(MeetingRevision).where(
                MeetingRevision.id == revision_id,
                MeetingRevision.workspace_id == self.workspace_id,
                MeetingRevision.meeting_id == meeting_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_meeting(self, meeting_id: str, limit: int = 50) -> list[MeetingRevision]:
        """Revisions of a meeting, newest first."""
        result = await self.session.execute(
            select(MeetingRevision)
            .where(
                MeetingRevision.workspace_id == self.workspace_id,
                MeetingRevision.meeting_id == meeting_id,
            )
            .order_by(MeetingRevision.meeting_revision.desc(), MeetingRevision.captured_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
