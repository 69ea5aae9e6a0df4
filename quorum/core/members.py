"""Workspace member lookup used to authorize callers."""

import logging
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from quorum.core.errors import AccessDenied, AuthenticationMissing
from quorum.core.permissions import ActorContext, parse_member_role
from quorum.models.workspace import Workspace, WorkspaceMember

logger = logging.getLogger(__name__)


class MemberDirectory(Protocol):
    async def resolve(self, workspace: Workspace, uid: str) -> ActorContext: ...


class DatabaseMemberDirectory:
    """Resolves callers from the workspace_members table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def resolve(self, workspace: Workspace, uid: str) -> ActorContext:
        uid = (uid or "").strip()
        if not uid:
            raise AuthenticationMissing()

        member = await self.session.get(WorkspaceMember, (workspace.id, uid))
        if member is None:
            logger.info(f"Rejected non-member {uid} in workspace {workspace.slug}")
            raise AccessDenied("You are not a member of this workspace.")

        return ActorContext(
            uid=uid,
            role=parse_member_role(member.role),
            display_name=(member.display_name or "").strip() or (member.email or "").strip(),
        )
