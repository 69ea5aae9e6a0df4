"""Meeting API endpoints: read, update, restore and revision log."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from quorum.api.auth import get_actor, get_workspace, raise_http_error
from quorum.core.errors import MeetingSyncError
from quorum.core.permissions import ActorContext
from quorum.core.pipeline import MeetingUpdatePipeline
from quorum.models.workspace import Workspace
from quorum.schemas.meeting import (
    MeetingEnvelope,
    MeetingPayload,
    MeetingResponse,
    MeetingUpdateResponse,
    RevisionListResponse,
    RevisionSummary,
)
from quorum.services.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


def meeting_to_response(meeting_id: str, meeting: MeetingPayload) -> MeetingResponse:
    return MeetingResponse(id=meeting_id, **meeting.model_dump())


@router.get("/{meeting_id}", response_model=MeetingEnvelope)
async def get_meeting(
    meeting_id: str,
    workspace: Annotated[Workspace, Depends(get_workspace)],
    actor: Annotated[ActorContext, Depends(get_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MeetingEnvelope:
    """Get the current meeting record."""
    pipeline = MeetingUpdatePipeline(db, workspace)
    try:
        meeting = await pipeline.get_meeting(meeting_id)
    except MeetingSyncError as e:
        raise_http_error(e)

    return MeetingEnvelope(meeting=meeting_to_response(meeting_id, meeting))


@router.patch("/{meeting_id}", response_model=MeetingUpdateResponse)
async def update_meeting(
    meeting_id: str,
    workspace: Annotated[Workspace, Depends(get_workspace)],
    actor: Annotated[ActorContext, Depends(get_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
    body: Annotated[Any, Body()] = None,
) -> MeetingUpdateResponse:
    """
    Update a meeting, or restore it from a revision.

    The body carries either ``meeting`` (a full meeting payload) or
    ``restoreFromRevisionId``. Embedded decisions and actions are synced to
    the workspace's canonical entities.
    """
    pipeline = MeetingUpdatePipeline(db, workspace)
    try:
        result = await pipeline.update(meeting_id, actor, body)
    except MeetingSyncError as e:
        raise_http_error(e)

    return MeetingUpdateResponse(
        meeting=meeting_to_response(meeting_id, result.meeting),
        noop=result.noop,
        revision_id=result.revision_id,
        restored_from_revision_id=result.restored_from_revision_id,
        changed_fields=result.changed_fields,
        dropped_items=result.dropped_items,
    )


@router.get("/{meeting_id}/revisions", response_model=RevisionListResponse)
async def list_revisions(
    meeting_id: str,
    workspace: Annotated[Workspace, Depends(get_workspace)],
    actor: Annotated[ActorContext, Depends(get_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: int = Query(default=50, ge=1, le=200),
) -> RevisionListResponse:
    """List a meeting's revisions, newest first."""
    pipeline = MeetingUpdatePipeline(db, workspace)
    try:
        revisions = await pipeline.list_revisions(meeting_id, limit)
    except MeetingSyncError as e:
        raise_http_error(e)

    return RevisionListResponse(
        revisions=[RevisionSummary.model_validate(r) for r in revisions],
        total=len(revisions),
    )
