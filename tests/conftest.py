"""Pytest configuration and fixtures."""

from typing import AsyncGenerator

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from quorum.api.auth import create_access_token
from quorum.core.permissions import ActorContext
from quorum.main import app
from quorum.models.workspace import MemberRole, Workspace, WorkspaceMember
from quorum.services.database import Base, get_db


# Create in-memory SQLite for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

MEMBERS = [
    ("u-owner", "olivia@example.com", "Olivia Owner", MemberRole.OWNER),
    ("u-admin", "adam@example.com", "Adam Admin", MemberRole.ADMIN),
    ("u-member", "mia@example.com", "Mia Member", MemberRole.MEMBER),
    ("u-viewer", "victor@example.com", "Victor Viewer", MemberRole.VIEWER),
]


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database bound to the running test's event loop."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield test_engine
    await test_engine.dispose()


@pytest.fixture(autouse=True)
async def setup_database(engine: AsyncEngine):
    """Create tables before each test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Get a test database session."""
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
def override_get_db(db_session: AsyncSession):
    """Override the get_db dependency."""
    async def _override_get_db():
        yield db_session
    return _override_get_db


@pytest.fixture
async def client(override_get_db) -> AsyncGenerator[AsyncClient, None]:
    """Get async test client."""
    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def workspace(db_session: AsyncSession) -> Workspace:
    """A workspace with one member per role."""
    workspace = Workspace(id="ws-1", slug="acme", name="Acme Corp")
    db_session.add(workspace)
    for uid, email, name, role in MEMBERS:
        db_session.add(
            WorkspaceMember(
                workspace_id=workspace.id,
                uid=uid,
                email=email,
                display_name=name,
                role=role,
            )
        )
    await db_session.commit()
    return workspace


@pytest.fixture
def actors() -> dict[str, ActorContext]:
    """Actor contexts keyed by role name."""
    return {
        role.value: ActorContext(uid=uid, role=role, display_name=name)
        for uid, _, name, role in MEMBERS
    }


def auth_headers(uid: str) -> dict[str, str]:
    token, _ = create_access_token(uid)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def owner_headers() -> dict[str, str]:
    return auth_headers("u-owner")


@pytest.fixture
def member_headers() -> dict[str, str]:
    return auth_headers("u-member")


@pytest.fixture
def viewer_headers() -> dict[str, str]:
    return auth_headers("u-viewer")


@pytest.fixture
def stranger_headers() -> dict[str, str]:
    """Valid token for a user outside the workspace."""
    return auth_headers("u-stranger")


@pytest.fixture
def sample_meeting_data():
    """Sample meeting payload for tests."""
    return {
        "title": "Weekly Product Sync",
        "team": "Product",
        "owner": "Olivia Owner",
        "timeLabel": "Mon 10:00",
        "duration": "30 min",
        "location": "Room 4",
        "objective": "Agree on the launch plan.",
        "state": "inProgress",
        "attendees": [
            {"id": "u-1", "name": "Olivia Owner", "role": "Host"},
            {"id": "u-2", "name": "Mia Member"},
        ],
        "agenda": [{"id": "ag-1", "title": "Launch checklist", "state": "queued"}],
        "notes": [{"id": "n-1", "heading": "Summary", "content": "Launch is on track."}],
        "decisions": [
            {
                "id": "D-1",
                "title": "Ship on Friday",
                "owner": "Olivia Owner",
                "status": "accepted",
                "rationale": "QA signed off.",
                "tags": ["launch"],
            }
        ],
        "actions": [
            {
                "id": "A-1",
                "title": "Send summary",
                "owner": "Alice",
                "status": "open",
                "dueLabel": "No due date",
            }
        ],
    }
