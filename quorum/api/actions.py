"""Canonical action API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from quorum.api.auth import get_actor, get_workspace, raise_http_error
from quorum.core.entities import CanonicalEntityService
from quorum.core.errors import MeetingSyncError
from quorum.core.permissions import ActorContext
from quorum.models.action import ActionStatus
from quorum.models.history import CanonicalEntityType
from quorum.models.workspace import Workspace
from quorum.schemas.canonical import (
    ActionCreate,
    ActionListResponse,
    ActionResponse,
    ActionUpdate,
    HistoryEventResponse,
    HistoryListResponse,
)
from quorum.services.database import get_db

router = APIRouter()


def get_service(
    workspace: Annotated[Workspace, Depends(get_workspace)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CanonicalEntityService:
    return CanonicalEntityService(db, workspace, CanonicalEntityType.ACTION)


@router.get("", response_model=ActionListResponse)
async def list_actions(
    actor: Annotated[ActorContext, Depends(get_actor)],
    service: Annotated[CanonicalEntityService, Depends(get_service)],
    status: ActionStatus | None = None,
    meeting_id: str | None = None,
    include_archived: bool = False,
) -> ActionListResponse:
    """List actions; archived ones only on request."""
    actions = await service.list_entities(
        include_archived=include_archived,
        meeting_id=meeting_id,
        status=status,
    )
    return ActionListResponse(
        actions=[ActionResponse.model_validate(a) for a in actions],
        total=len(actions),
    )


@router.post("", response_model=ActionResponse, status_code=201)
async def create_action(
    action_data: ActionCreate,
    actor: Annotated[ActorContext, Depends(get_actor)],
    service: Annotated[CanonicalEntityService, Depends(get_service)],
) -> ActionResponse:
    """Create an action by hand."""
    try:
        action = await service.create(action_data.model_dump(), actor)
    except MeetingSyncError as e:
        raise_http_error(e)
    return ActionResponse.model_validate(action)


@router.get("/{action_id}", response_model=ActionResponse)
async def get_action(
    action_id: str,
    actor: Annotated[ActorContext, Depends(get_actor)],
    service: Annotated[CanonicalEntityService, Depends(get_service)],
) -> ActionResponse:
    """Get a specific action."""
    try:
        action = await service.get(action_id)
    except MeetingSyncError as e:
        raise_http_error(e)
    return ActionResponse.model_validate(action)


@router.patch("/{action_id}", response_model=ActionResponse)
async def update_action(
    action_id: str,
    update_data: ActionUpdate,
    actor: Annotated[ActorContext, Depends(get_actor)],
    service: Annotated[CanonicalEntityService, Depends(get_service)],
) -> ActionResponse:
    """Edit an action; fields left out of the body keep their values."""
    try:
        action = await service.update(action_id, update_data.model_dump(exclude_unset=True), actor)
    except MeetingSyncError as e:
        raise_http_error(e)
    return ActionResponse.model_validate(action)


@router.get("/{action_id}/history", response_model=HistoryListResponse)
async def get_action_history(
    action_id: str,
    actor: Annotated[ActorContext, Depends(get_actor)],
    service: Annotated[CanonicalEntityService, Depends(get_service)],
) -> HistoryListResponse:
    """Get an action's history, newest first."""
    try:
        events = await service.history(action_id)
    except MeetingSyncError as e:
        raise_http_error(e)
    return HistoryListResponse(
        events=[HistoryEventResponse.model_validate(event) for event in events],
        total=len(events),
    )


@router.post("/{action_id}/archive", response_model=ActionResponse)
async def archive_action(
    action_id: str,
    actor: Annotated[ActorContext, Depends(get_actor)],
    service: Annotated[CanonicalEntityService, Depends(get_service)],
) -> ActionResponse:
    """Archive an action."""
    try:
        action = await service.set_archived(action_id, True, actor)
    except MeetingSyncError as e:
        raise_http_error(e)
    return ActionResponse.model_validate(action)


@router.post("/{action_id}/restore", response_model=ActionResponse)
async def restore_action(
    action_id: str,
    actor: Annotated[ActorContext, Depends(get_actor)],
    service: Annotated[CanonicalEntityService, Depends(get_service)],
) -> ActionResponse:
    """Restore an archived action."""
    try:
        action = await service.set_archived(action_id, False, actor)
    except MeetingSyncError as e:
        raise_http_error(e)
    return ActionResponse.model_validate(action)
