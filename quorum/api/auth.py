"""Bearer token authentication and workspace membership dependencies."""

from datetime import datetime, timedelta
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quorum.config import get_settings
from quorum.core.errors import AuthenticationMissing, MeetingSyncError
from quorum.core.members import DatabaseMemberDirectory
from quorum.core.permissions import ActorContext
from quorum.models.workspace import Workspace
from quorum.services.database import get_db

settings = get_settings()

# Missing credentials are answered with 401 below rather than HTTPBearer's 403
security = HTTPBearer(auto_error=False)


def create_access_token(uid: str) -> tuple[str, int]:
    """Create JWT access token."""
    expires_delta = timedelta(minutes=settings.jwt_expire_minutes)
    expire = datetime.utcnow() + expires_delta
    to_encode = {"sub": uid, "exp": expire}
    encoded_jwt = jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)
    return encoded_jwt, settings.jwt_expire_minutes * 60


def raise_http_error(error: MeetingSyncError) -> None:
    """Translate a pipeline error into the HTTP response."""
    headers = {"WWW-Authenticate": "Bearer"} if error.status_code == 401 else None
    raise HTTPException(status_code=error.status_code, detail=error.message, headers=headers)


async def get_current_uid(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str:
    """Get the caller's uid from the JWT bearer token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise_http_error(AuthenticationMissing())

    try:
        payload = jwt.decode(
            credentials.credentials, settings.secret_key, algorithms=[settings.jwt_algorithm]
        )
    except JWTError:
        raise credentials_exception

    uid = payload.get("sub")
    if not isinstance(uid, str) or not uid.strip():
        raise credentials_exception
    return uid.strip()


async def get_workspace(
    workspace_slug: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Workspace:
    """Resolve the workspace named in the URL."""
    result = await db.execute(select(Workspace).where(Workspace.slug == workspace_slug))
    workspace = result.scalar_one_or_none()
    if workspace is None:
        raise HTTPException(status_code=404, detail="Workspace not found.")
    return workspace


async def get_actor(
    workspace: Annotated[Workspace, Depends(get_workspace)],
    uid: Annotated[str, Depends(get_current_uid)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ActorContext:
    """Resolve the caller's membership in the workspace."""
    try:
        return await DatabaseMemberDirectory(db).resolve(workspace, uid)
    except MeetingSyncError as e:
        raise_http_error(e)
