"""Entity history writer."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from quorum.models.history import EntityHistoryEvent

logger = logging.getLogger(__name__)


@dataclass
class HistoryEntry:
    """A history event to append to a canonical entity's log."""

    workspace_id: str
    entity: str
    entity_id: str
    event_type: str
    source: str
    actor_uid: str
    actor_name: str
    message: str
    at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)


class HistoryWriter(Protocol):
    async def write(self, entry: HistoryEntry) -> None: ...


def _sanitize_metadata(value: dict[str, Any] | None) -> dict[str, Any] | None:
    if not value:
        return None
    cleaned = {key: item for key, item in value.items() if item is not None}
    return cleaned or None


class DatabaseHistoryWriter:
    """Appends history rows to the caller's session.

    Rows are added but not committed: the sync engine commits each entity
    write together with its history events.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def write(self, entry: HistoryEntry) -> None:
        event = EntityHistoryEvent(
            workspace_id=entry.workspace_id,
            entity=entry.entity,
            entity_id=entry.entity_id,
            event_type=entry.event_type,
            source=entry.source,
            actor_uid=entry.actor_uid.strip(),
            actor_name=entry.actor_name.strip() or "Workspace User",
            message=entry.message.strip() or f"{entry.entity} {entry.event_type}",
            metadata_=_sanitize_metadata(entry.metadata),
            at=entry.at,
        )
        self.session.add(event)
        logger.debug(f"History {entry.entity} {entry.entity_id}: {entry.event_type}")
