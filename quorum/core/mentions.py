"""
Mention notifications.

People are mentioned in decision and action text as ``@person@example.com``.
When an entity's text changes, members mentioned in the new text but not in
the previous text are notified. Delivery transport is out of scope: the
database notifier writes one inbox row per recipient.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quorum.config import Settings, get_settings
from quorum.models.notification import Notification
from quorum.models.workspace import Workspace, WorkspaceMember

logger = logging.getLogger(__name__)

MENTION_EMAIL_PATTERN = re.compile(
    r"(^|[\s(])@([A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,})\b"
)


@dataclass
class MentionRequest:
    """Input to the mention notification emitter."""

    entity_type: str
    entity_id: str
    title: str
    path: str
    mention_text: str
    previous_mention_text: str
    actor_uid: str
    actor_name: str
    timestamp: datetime


@dataclass(frozen=True)
class MemberIdentity:
    uid: str
    email: str
    display_name: str


@dataclass
class MentionResult:
    delivered_count: int = 0
    mentioned_uids: list[str] = field(default_factory=list)


class MentionNotifier(Protocol):
    async def emit(self, request: MentionRequest) -> MentionResult: ...


def extract_mentioned_emails(text: str) -> list[str]:
    """Lower-cased, de-duplicated emails mentioned in ``text``."""
    if not text:
        return []
    unique: dict[str, None] = {}
    for match in MENTION_EMAIL_PATTERN.finditer(text):
        email = match.group(2).strip().lower()
        if email:
            unique[email] = None
    return list(unique)


def build_notification_id(workspace_id: str, entity_type: str, entity_id: str) -> str:
    raw = f"mention_{workspace_id}_{entity_type}_{entity_id}"
    return re.sub(r"[^a-zA-Z0-9_-]", "_", raw)


def build_preview(text: str, limit: int = 180) -> str:
    compact = " ".join(text.split())
    if len(compact) <= limit:
        return compact
    return f"{compact[: limit - 3]}..."


def normalize_path(path: str) -> str:
    if not path:
        return ""
    return path if path.startswith("/") else f"/{path}"


class DatabaseMentionNotifier:
    """Resolves mentions against workspace members and writes inbox rows."""

    def __init__(
        self,
        session: AsyncSession,
        workspace: Workspace,
        settings: Settings | None = None,
    ):
        self.session = session
        self.workspace_id = workspace.id
        self.workspace_slug = workspace.slug
        self.workspace_name = workspace.name
        self.settings = settings or get_settings()
        self._members_by_email: dict[str, MemberIdentity] | None = None

    async def _load_members(self) -> dict[str, MemberIdentity]:
        if self._members_by_email is None:
            result = await self.session.execute(
                select(WorkspaceMember).where(WorkspaceMember.workspace_id == self.workspace_id)
            )
            self._members_by_email = {}
            for member in result.scalars().all():
                email = (member.email or "").strip().lower()
                if not email:
                    continue
                self._members_by_email[email] = MemberIdentity(
                    uid=member.uid,
                    email=email,
                    display_name=(member.display_name or "").strip() or email,
                )
        return self._members_by_email

    def _resolve_uids(self, emails: list[str], members: dict[str, MemberIdentity]) -> list[str]:
        unique: dict[str, None] = {}
        for email in emails:
            member = members.get(email)
            if member is not None:
                unique[member.uid] = None
        return list(unique)

    async def emit(self, request: MentionRequest) -> MentionResult:
        next_emails = extract_mentioned_emails(request.mention_text)
        if not next_emails:
            return MentionResult()

        members = await self._load_members()
        mentioned_uids = self._resolve_uids(next_emails, members)
        if not mentioned_uids:
            return MentionResult()

        previous_uids = set(
            self._resolve_uids(extract_mentioned_emails(request.previous_mention_text), members)
        )
        newly_mentioned = [uid for uid in mentioned_uids if uid not in previous_uids]
        if not newly_mentioned:
            return MentionResult(mentioned_uids=mentioned_uids)

        members_by_uid = {member.uid: member for member in members.values()}
        notification_id = build_notification_id(
            self.workspace_id, request.entity_type, request.entity_id
        )
        preview = build_preview(
            request.mention_text.strip() or request.title.strip(),
            self.settings.mention_preview_length,
        )

        delivered = 0
        pending_writes = 0
        for uid in newly_mentioned:
            target = members_by_uid.get(uid)
            if target is None or target.uid == request.actor_uid:
                continue

            notification = await self.session.get(Notification, (target.uid, notification_id))
            if notification is None:
                notification = Notification(
                    recipient_uid=target.uid,
                    id=notification_id,
                    created_at=request.timestamp,
                )
                self.session.add(notification)

            notification.type = "mention"
            notification.status = "unread"
            notification.read_at = None
            notification.workspace_id = self.workspace_id
            notification.workspace_slug = self.workspace_slug
            notification.workspace_name = self.workspace_name
            notification.entity_type = request.entity_type
            notification.entity_id = request.entity_id
            notification.entity_title = (
                request.title.strip() or f"{request.entity_type} {request.entity_id}"
            )
            notification.entity_path = normalize_path(request.path)
            notification.preview = preview
            notification.mentioned_by_uid = request.actor_uid
            notification.mentioned_by_name = request.actor_name.strip() or "Workspace User"
            notification.recipient_email = target.email
            notification.updated_at = request.timestamp

            delivered += 1
            pending_writes += 1
            if pending_writes >= self.settings.mention_batch_size:
                await self.session.commit()
                pending_writes = 0

        if pending_writes:
            await self.session.commit()

        logger.info(
            f"Mention notifications for {request.entity_type} {request.entity_id}: "
            f"{delivered} delivered"
        )
        return MentionResult(delivered_count=delivered, mentioned_uids=mentioned_uids)
