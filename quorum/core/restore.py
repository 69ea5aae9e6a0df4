"""Restore orchestrator: re-applies a historical snapshot as a new revision."""

import logging

from quorum.core.diff import RESTORED_SNAPSHOT, list_changed_fields
from quorum.core.errors import InternalSyncFailure, NotFound
from quorum.core.normalizer import normalize_meeting_payload
from quorum.core.revisions import PlannedRevision, RevisionRecorder
from quorum.models.meeting import RevisionEventType, RevisionSource
from quorum.schemas.meeting import MeetingPayload

logger = logging.getLogger(__name__)


def next_restore_revision(current: MeetingPayload | None, restored: MeetingPayload) -> int:
    """Revision number for a restore; always past both the live and stored numbers."""
    if current is None:
        return max(restored.revision + 1, 1)
    return max(current.revision + 1, restored.revision + 1, 1)


class RestoreOrchestrator:
    """
    Plans restores of stored revisions.

    The restored snapshot is diffed against the live meeting, not against the
    revision that preceded it, so the new audit row describes what the restore
    actually changed. Prior revision rows are never touched.
    """

    def __init__(self, recorder: RevisionRecorder):
        self.recorder = recorder

    async def plan(
        self,
        meeting_id: str,
        revision_id: str,
        current: MeetingPayload | None,
    ) -> PlannedRevision:
        revision = await self.recorder.get(meeting_id, revision_id)
        if revision is None:
            raise NotFound("Revision not found.")

        restored = normalize_meeting_payload(meeting_id, revision.meeting)
        if restored is None:
            raise InternalSyncFailure("Revision snapshot is invalid.")

        next_meeting = restored.model_copy(
            update={"revision": next_restore_revision(current, restored)}
        )
        changed_fields = list_changed_fields(current, next_meeting) if current else []
        if not changed_fields:
            changed_fields = [RESTORED_SNAPSHOT]

        logger.info(
            f"Restoring meeting {meeting_id} from revision {revision_id} "
            f"(stored r{restored.revision}) as r{next_meeting.revision}"
        )
        return PlannedRevision(
            meeting=next_meeting,
            changed_fields=changed_fields,
            event_type=RevisionEventType.RESTORED.value,
            source=RevisionSource.RESTORE.value,
            restored_from_revision_id=revision_id,
        )
