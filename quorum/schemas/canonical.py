"""Pydantic schemas for canonical decisions, actions and their history."""

from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from quorum.models.decision import DecisionStatus, DecisionVisibility
from quorum.models.action import ActionStatus, ActionPriority


class DecisionResponse(BaseModel):
    """Canonical decision."""

    id: str
    title: str
    statement: str
    rationale: str
    owner: str
    owner_uid: str
    status: DecisionStatus
    visibility: DecisionVisibility
    team_label: str
    allowed_team_ids: list[str] = []
    tags: list[str] = []
    meeting_id: str
    supersedes_decision_id: str = ""
    superseded_by_decision_id: str = ""
    superseded_at: Optional[datetime] = None
    archived: bool
    archived_at: Optional[datetime] = None
    archived_by: str = ""
    created_at: datetime
    created_by: str
    updated_at: datetime
    updated_by: str

    model_config = ConfigDict(from_attributes=True)


class DecisionListResponse(BaseModel):
    """Response for listing decisions."""

    decisions: list[DecisionResponse]
    total: int


class ActionResponse(BaseModel):
    """Canonical action item."""

    id: str
    title: str
    description: str
    owner: str
    owner_uid: str
    status: ActionStatus
    priority: ActionPriority
    project: str
    due_at: Optional[datetime] = None
    due_label: str
    due_soon: bool
    blocked_reason: str = ""
    notes: str = ""
    meeting_id: str
    decision_id: str = ""
    completed_at: Optional[datetime] = None
    archived: bool
    archived_at: Optional[datetime] = None
    archived_by: str = ""
    created_at: datetime
    created_by: str
    updated_at: datetime
    updated_by: str

    model_config = ConfigDict(from_attributes=True)


class ActionListResponse(BaseModel):
    """Response for listing actions."""

    actions: list[ActionResponse]
    total: int


class HistoryEventResponse(BaseModel):
    """A history event on a canonical entity."""

    id: str
    entity: str
    entity_id: str
    event_type: str
    source: str
    actor_uid: str
    actor_name: str
    message: str
    metadata: Optional[dict[str, Any]] = Field(
        default=None, validation_alias=AliasChoices("metadata_", "metadata")
    )
    at: datetime

    model_config = ConfigDict(from_attributes=True)


class HistoryListResponse(BaseModel):
    """Response for listing an entity's history."""

    events: list[HistoryEventResponse]
    total: int


class DecisionCreate(BaseModel):
    """Schema for creating a decision by hand."""

    title: str = Field("", max_length=500)
    statement: str = ""
    rationale: str = ""
    owner: str = ""
    status: DecisionStatus = DecisionStatus.PROPOSED
    visibility: DecisionVisibility = DecisionVisibility.WORKSPACE
    team_label: str = ""
    tags: list[str] = []
    meeting_id: str = ""
    supersedes_decision_id: str = ""
    superseded_by_decision_id: str = ""

    model_config = ConfigDict(str_strip_whitespace=True)


class DecisionUpdate(BaseModel):
    """Schema for editing a decision; only supplied fields change."""

    title: Optional[str] = Field(None, max_length=500)
    statement: Optional[str] = None
    rationale: Optional[str] = None
    owner: Optional[str] = None
    status: Optional[DecisionStatus] = None
    visibility: Optional[DecisionVisibility] = None
    team_label: Optional[str] = None
    tags: Optional[list[str]] = None
    meeting_id: Optional[str] = None
    supersedes_decision_id: Optional[str] = None
    superseded_by_decision_id: Optional[str] = None

    model_config = ConfigDict(str_strip_whitespace=True)


class ActionCreate(BaseModel):
    """Schema for creating an action by hand."""

    title: str = Field("", max_length=500)
    description: str = ""
    owner: str = ""
    status: ActionStatus = ActionStatus.OPEN
    priority: ActionPriority = ActionPriority.MEDIUM
    project: str = ""
    due_at: Optional[datetime] = None
    due_label: str = ""
    meeting_id: str = ""
    decision_id: str = ""
    blocked_reason: str = ""
    notes: str = ""

    model_config = ConfigDict(str_strip_whitespace=True)


class ActionUpdate(BaseModel):
    """Schema for editing an action; only supplied fields change."""

    title: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    owner: Optional[str] = None
    status: Optional[ActionStatus] = None
    priority: Optional[ActionPriority] = None
    project: Optional[str] = None
    due_at: Optional[datetime] = None
    due_label: Optional[str] = None
    meeting_id: Optional[str] = None
    decision_id: Optional[str] = None
    blocked_reason: Optional[str] = None
    notes: Optional[str] = None

    model_config = ConfigDict(str_strip_whitespace=True)
