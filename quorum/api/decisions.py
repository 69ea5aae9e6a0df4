"""Canonical decision API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from quorum.api.auth import get_actor, get_workspace, raise_http_error
from quorum.core.entities import CanonicalEntityService
from quorum.core.errors import MeetingSyncError
from quorum.core.permissions import ActorContext
from quorum.models.decision import DecisionStatus
from quorum.models.history import CanonicalEntityType
from quorum.models.workspace import Workspace
from quorum.schemas.canonical import (
    DecisionCreate,
    DecisionListResponse,
    DecisionResponse,
    DecisionUpdate,
    HistoryEventResponse,
    HistoryListResponse,
)
from quorum.services.database import get_db

router = APIRouter()


def get_service(
    workspace: Annotated[Workspace, Depends(get_workspace)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CanonicalEntityService:
    return CanonicalEntityService(db, workspace, CanonicalEntityType.DECISION)


@router.get("", response_model=DecisionListResponse)
async def list_decisions(
    actor: Annotated[ActorContext, Depends(get_actor)],
    service: Annotated[CanonicalEntityService, Depends(get_service)],
    status: DecisionStatus | None = None,
    meeting_id: str | None = None,
    include_archived: bool = False,
) -> DecisionListResponse:
    """List decisions; archived ones only on request."""
    decisions = await service.list_entities(
        include_archived=include_archived,
        meeting_id=meeting_id,
        status=status,
    )
    return DecisionListResponse(
        decisions=[DecisionResponse.model_validate(d) for d in decisions],
        total=len(decisions),
    )


@router.post("", response_model=DecisionResponse, status_code=201)
async def create_decision(
    decision_data: DecisionCreate,
    actor: Annotated[ActorContext, Depends(get_actor)],
    service: Annotated[CanonicalEntityService, Depends(get_service)],
) -> DecisionResponse:
    """Create a decision by hand."""
    try:
        decision = await service.create(decision_data.model_dump(), actor)
    except MeetingSyncError as e:
        raise_http_error(e)
    return DecisionResponse.model_validate(decision)


@router.get("/{decision_id}", response_model=DecisionResponse)
async def get_decision(
    decision_id: str,
    actor: Annotated[ActorContext, Depends(get_actor)],
    service: Annotated[CanonicalEntityService, Depends(get_service)],
) -> DecisionResponse:
    """Get a specific decision."""
    try:
        decision = await service.get(decision_id)
    except MeetingSyncError as e:
        raise_http_error(e)
    return DecisionResponse.model_validate(decision)


@router.patch("/{decision_id}", response_model=DecisionResponse)
async def update_decision(
    decision_id: str,
    update_data: DecisionUpdate,
    actor: Annotated[ActorContext, Depends(get_actor)],
    service: Annotated[CanonicalEntityService, Depends(get_service)],
) -> DecisionResponse:
    """Edit a decision; fields left out of the body keep their values."""
    try:
        decision = await service.update(decision_id, update_data.model_dump(exclude_unset=True), actor)
    except MeetingSyncError as e:
        raise_http_error(e)
    return DecisionResponse.model_validate(decision)


@router.get("/{decision_id}/history", response_model=HistoryListResponse)
async def get_decision_history(
    decision_id: str,
    actor: Annotated[ActorContext, Depends(get_actor)],
    service: Annotated[CanonicalEntityService, Depends(get_service)],
) -> HistoryListResponse:
    """Get a decision's history, newest first."""
    try:
        events = await service.history(decision_id)
    except MeetingSyncError as e:
        raise_http_error(e)
    return HistoryListResponse(
        events=[HistoryEventResponse.model_validate(event) for event in events],
        total=len(events),
    )


@router.post("/{decision_id}/archive", response_model=DecisionResponse)
async def archive_decision(
    decision_id: str,
    actor: Annotated[ActorContext, Depends(get_actor)],
    service: Annotated[CanonicalEntityService, Depends(get_service)],
) -> DecisionResponse:
    """Archive a decision."""
    try:
        decision = await service.set_archived(decision_id, True, actor)
    except MeetingSyncError as e:
        raise_http_error(e)
    return DecisionResponse.model_validate(decision)


@router.post("/{decision_id}/restore", response_model=DecisionResponse)
async def restore_decision(
    decision_id: str,
    actor: Annotated[ActorContext, Depends(get_actor)],
    service: Annotated[CanonicalEntityService, Depends(get_service)],
) -> DecisionResponse:
    """Restore an archived decision."""
    try:
        decision = await service.set_archived(decision_id, False, actor)
    except MeetingSyncError as e:
        raise_http_error(e)
    return DecisionResponse.model_validate(decision)
