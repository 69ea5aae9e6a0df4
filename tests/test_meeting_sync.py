"""Test the meeting update pipeline against a real database session."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from quorum.core.entities import CanonicalEntityService
from quorum.core.errors import AccessDenied, InternalSyncFailure, NotFound, ValidationFailure
from quorum.core.mentions import MentionRequest, MentionResult
from quorum.core.pipeline import MeetingUpdatePipeline
from quorum.models.action import ActionItem, ActionStatus
from quorum.models.decision import Decision, DecisionStatus
from quorum.models.history import CanonicalEntityType, EntityHistoryEvent
from quorum.models.meeting import MeetingRecord, MeetingRevision
from quorum.models.notification import Notification


async def count_revisions(db: AsyncSession, meeting_id: str = "M1") -> int:
    result = await db.execute(
        select(func.count()).select_from(MeetingRevision).where(MeetingRevision.meeting_id == meeting_id)
    )
    return result.scalar_one()


async def history_for(db: AsyncSession, entity_id: str) -> list[EntityHistoryEvent]:
    result = await db.execute(
        select(EntityHistoryEvent)
        .where(EntityHistoryEvent.entity_id == entity_id)
        .order_by(EntityHistoryEvent.at, EntityHistoryEvent.event_type)
    )
    return list(result.scalars().all())


class FailingHistoryWriter:
    async def write(self, entry):
        raise RuntimeError("history store unavailable")


class FailingNotifier:
    async def emit(self, request: MentionRequest) -> MentionResult:
        raise RuntimeError("notification store unavailable")


@pytest.mark.asyncio
async def test_first_update_creates_meeting_and_entities(db_session, workspace, actors, sample_meeting_data):
    """Test the first update captures revision 1 and creates canonical entities."""
    pipeline = MeetingUpdatePipeline(db_session, workspace)

    result = await pipeline.update("M1", actors["member"], {"meeting": sample_meeting_data})

    assert result.noop is False
    assert result.meeting.revision == 1
    assert result.changed_fields == ["initial capture"]
    assert result.revision_id

    revision = await db_session.get(MeetingRevision, result.revision_id)
    assert revision.event_type == "created"
    assert revision.source == "meetingUpdate"
    assert revision.meeting["title"] == "Weekly Product Sync"

    decision = await db_session.get(Decision, ("ws-1", "D-1"))
    assert decision.status == DecisionStatus.ACCEPTED
    assert decision.statement == "QA signed off."
    assert decision.meeting_id == "M1"
    assert decision.owner_uid == "u-member"

    action = await db_session.get(ActionItem, ("ws-1", "A-1"))
    assert action.title == "Send summary"
    assert action.owner == "Alice"
    assert action.project == "Product"
    assert action.archived is False

    events = await history_for(db_session, "A-1")
    assert [e.event_type for e in events] == ["created"]
    assert events[0].message == "Created action A-1 from meeting M1."
    assert events[0].source == "meetingSync"
    assert events[0].metadata_ == {"meetingId": "M1"}


@pytest.mark.asyncio
async def test_identical_update_is_noop(db_session, workspace, actors, sample_meeting_data):
    """Test applying the same payload twice records a single revision."""
    pipeline = MeetingUpdatePipeline(db_session, workspace)

    await pipeline.update("M1", actors["member"], {"meeting": sample_meeting_data})
    second = await pipeline.update("M1", actors["member"], {"meeting": sample_meeting_data})

    assert second.noop is True
    assert second.changed_fields == []
    assert second.revision_id == ""
    assert second.meeting.revision == 1
    assert await count_revisions(db_session) == 1
    assert len(await history_for(db_session, "A-1")) == 1


@pytest.mark.asyncio
async def test_revision_increases_by_one_per_update(db_session, workspace, actors, sample_meeting_data):
    """Test the revision counter ignores the client's revision number."""
    pipeline = MeetingUpdatePipeline(db_session, workspace)
    await pipeline.update("M1", actors["member"], {"meeting": sample_meeting_data})

    for index, revision in enumerate([1, 50, 2], start=2):
        payload = {**sample_meeting_data, "title": f"Sync #{index}", "revision": revision}
        result = await pipeline.update("M1", actors["member"], {"meeting": payload})
        assert result.meeting.revision == index
        assert result.changed_fields == ["title"]

    assert await count_revisions(db_session) == 4


@pytest.mark.asyncio
async def test_unchanged_entities_are_not_rewritten(db_session, workspace, actors, sample_meeting_data):
    """Test a meeting change that leaves an entity alone writes nothing for it."""
    pipeline = MeetingUpdatePipeline(db_session, workspace)
    await pipeline.update("M1", actors["member"], {"meeting": sample_meeting_data})

    payload = {**sample_meeting_data, "location": "Room 9"}
    result = await pipeline.update("M1", actors["member"], {"meeting": payload})

    assert result.changed_fields == ["location"]
    assert result.sync_report.writes == 0
    assert len(await history_for(db_session, "D-1")) == 1


@pytest.mark.asyncio
async def test_worked_example_orphan_archival(db_session, workspace, actors):
    """Test removing an action from its meeting archives the canonical action."""
    pipeline = MeetingUpdatePipeline(db_session, workspace)
    meeting = {
        "revision": 3,
        "actions": [{"id": "A-1", "title": "Send summary", "owner": "Alice", "status": "open"}],
    }
    created = await pipeline.update("M1", actors["member"], {"meeting": meeting})
    assert created.meeting.revision == 3

    result = await pipeline.update("M1", actors["member"], {"meeting": {**meeting, "actions": []}})

    assert result.meeting.revision == 4
    assert result.changed_fields == ["actions"]

    revision = await db_session.get(MeetingRevision, result.revision_id)
    assert revision.changed_fields == ["actions"]
    assert revision.summary == "Updated actions."

    action = await db_session.get(ActionItem, ("ws-1", "A-1"))
    assert action.archived is True
    assert action.archived_by == "u-member"

    events = await history_for(db_session, "A-1")
    archived = [e for e in events if e.event_type == "archived"]
    assert len(archived) == 1
    assert archived[0].entity == "action"
    assert archived[0].message == "Archived action A-1 removed from meeting M1."


@pytest.mark.asyncio
async def test_orphan_sweep_only_touches_own_meeting(db_session, workspace, actors):
    """Test entities from other meetings survive the sweep."""
    pipeline = MeetingUpdatePipeline(db_session, workspace)
    await pipeline.update("M1", actors["member"], {"meeting": {"actions": [{"id": "A-1", "title": "One"}]}})
    await pipeline.update("M2", actors["member"], {"meeting": {"actions": [{"id": "A-2", "title": "Two"}]}})

    await pipeline.update("M1", actors["member"], {"meeting": {"actions": []}})

    assert (await db_session.get(ActionItem, ("ws-1", "A-1"))).archived is True
    assert (await db_session.get(ActionItem, ("ws-1", "A-2"))).archived is False


@pytest.mark.asyncio
async def test_relisting_unarchives(db_session, workspace, actors):
    """Test an archived action comes back when its meeting lists it again."""
    pipeline = MeetingUpdatePipeline(db_session, workspace)
    listed = {"actions": [{"id": "A-1", "title": "Send summary"}]}

    await pipeline.update("M1", actors["member"], {"meeting": listed})
    await pipeline.update("M1", actors["member"], {"meeting": {"actions": []}})
    result = await pipeline.update("M1", actors["member"], {"meeting": listed})

    assert result.sync_report.actions.restored == ["A-1"]
    action = await db_session.get(ActionItem, ("ws-1", "A-1"))
    assert action.archived is False
    assert action.archived_at is None

    events = await history_for(db_session, "A-1")
    assert [e.event_type for e in events] == ["created", "archived", "restored"]
    assert events[-1].message == "Restored action A-1 via meeting M1."


@pytest.mark.asyncio
async def test_canonical_owned_fields_survive_sync(db_session, workspace, actors):
    """Test a canonical description edit is kept when the meeting copy changes."""
    pipeline = MeetingUpdatePipeline(db_session, workspace)
    await pipeline.update("M1", actors["member"], {"meeting": {"actions": [{"id": "A-1", "title": "Draft"}]}})

    action = await db_session.get(ActionItem, ("ws-1", "A-1"))
    assert action.description == "Draft"
    service = CanonicalEntityService(db_session, workspace, CanonicalEntityType.ACTION)
    await service.update("A-1", {"description": "Full plan written on the action page."}, actors["member"])

    await pipeline.update(
        "M1",
        actors["member"],
        {"meeting": {"actions": [{"id": "A-1", "title": "Draft v2", "status": "done"}]}},
    )

    action = await db_session.get(ActionItem, ("ws-1", "A-1"))
    assert action.title == "Draft v2"
    assert action.status == ActionStatus.DONE
    assert action.completed_at is not None
    assert action.description == "Full plan written on the action page."


@pytest.mark.asyncio
async def test_meeting_can_clear_fields_it_owns(db_session, workspace, actors):
    """Test clearing decision tags and action notes in the meeting clears them canonically."""
    pipeline = MeetingUpdatePipeline(db_session, workspace)
    decision = {"id": "D-1", "title": "Ship on Friday", "tags": ["launch"]}
    action = {"id": "A-1", "title": "Send summary", "notes": "call vendor"}
    await pipeline.update("M1", actors["member"], {"meeting": {"decisions": [decision], "actions": [action]}})

    result = await pipeline.update(
        "M1",
        actors["member"],
        {"meeting": {"decisions": [{**decision, "tags": []}], "actions": [{**action, "notes": ""}]}},
    )

    assert result.sync_report.decisions.updated == ["D-1"]
    assert result.sync_report.actions.updated == ["A-1"]
    assert (await db_session.get(Decision, ("ws-1", "D-1"))).tags == []
    assert (await db_session.get(ActionItem, ("ws-1", "A-1"))).notes == ""

    # Saving the cleared copy again changes nothing
    result = await pipeline.update(
        "M1",
        actors["member"],
        {"meeting": {"decisions": [{**decision, "tags": []}], "actions": [{**action, "notes": "", "title": "Send summary v2"}]}},
    )
    assert result.sync_report.decisions.updated == []
    assert result.sync_report.actions.updated == ["A-1"]


@pytest.mark.asyncio
async def test_empty_project_keeps_stored_project(db_session, workspace, actors):
    """Test an action without a project in the meeting keeps its stored project."""
    pipeline = MeetingUpdatePipeline(db_session, workspace)
    await pipeline.update(
        "M1",
        actors["member"],
        {"meeting": {"team": "Ops", "actions": [{"id": "A-1", "title": "Renew cert", "project": "Infra"}]}},
    )

    await pipeline.update(
        "M1",
        actors["member"],
        {"meeting": {"team": "Ops", "actions": [{"id": "A-1", "title": "Renew cert now"}]}},
    )

    action = await db_session.get(ActionItem, ("ws-1", "A-1"))
    assert action.title == "Renew cert now"
    assert action.project == "Infra"


@pytest.mark.asyncio
async def test_removed_decision_is_archived(db_session, workspace, actors):
    """Test dropping a decision from its meeting archives it and leaves the others alone."""
    pipeline = MeetingUpdatePipeline(db_session, workspace)
    first = {"id": "D-1", "title": "Ship on Friday"}
    second = {"id": "D-2", "title": "Freeze scope"}
    await pipeline.update("M1", actors["member"], {"meeting": {"decisions": [first, second]}})

    result = await pipeline.update("M1", actors["member"], {"meeting": {"decisions": [first]}})

    assert result.sync_report.decisions.archived == ["D-2"]
    assert result.sync_report.decisions.updated == []

    removed = await db_session.get(Decision, ("ws-1", "D-2"))
    assert removed.archived is True
    assert removed.archived_at is not None
    events = await history_for(db_session, "D-2")
    assert [e.event_type for e in events] == ["created", "archived"]
    assert events[-1].message == "Archived decision D-2 removed from meeting M1."

    kept = await db_session.get(Decision, ("ws-1", "D-1"))
    assert kept.archived is False
    assert [e.event_type for e in await history_for(db_session, "D-1")] == ["created"]


@pytest.mark.asyncio
async def test_relisting_with_edit_updates_and_unarchives(db_session, workspace, actors):
    """Test an archived action re-listed with a new title is updated and restored in one write."""
    pipeline = MeetingUpdatePipeline(db_session, workspace)
    await pipeline.update("M1", actors["member"], {"meeting": {"actions": [{"id": "A-1", "title": "Send summary"}]}})
    await pipeline.update("M1", actors["member"], {"meeting": {"actions": []}})

    result = await pipeline.update(
        "M1", actors["member"], {"meeting": {"actions": [{"id": "A-1", "title": "Send full summary"}]}}
    )

    assert result.sync_report.actions.updated == ["A-1"]
    assert result.sync_report.actions.restored == ["A-1"]
    assert result.sync_report.writes == 1

    action = await db_session.get(ActionItem, ("ws-1", "A-1"))
    assert action.archived is False
    assert action.title == "Send full summary"

    event_types = [e.event_type for e in await history_for(db_session, "A-1")]
    assert event_types[:2] == ["created", "archived"]
    assert sorted(event_types[2:]) == ["restored", "updated"]


@pytest.mark.asyncio
async def test_malformed_items_are_dropped(db_session, workspace, actors):
    """Test malformed list items are skipped without failing the update."""
    pipeline = MeetingUpdatePipeline(db_session, workspace)

    result = await pipeline.update(
        "M1",
        actors["member"],
        {"meeting": {"actions": [{"id": "A-1", "title": "Valid"}, {"id": "A-2", "title": ""}, "junk"]}},
    )

    assert [a.id for a in result.meeting.actions] == ["A-1"]
    assert result.dropped_items == {"actions": 2}
    assert await db_session.get(ActionItem, ("ws-1", "A-2")) is None


@pytest.mark.asyncio
async def test_restore_appends_new_revision(db_session, workspace, actors):
    """Test restoring an old revision moves forward and keeps history intact."""
    pipeline = MeetingUpdatePipeline(db_session, workspace)
    first = await pipeline.update("M1", actors["member"], {"meeting": {"title": "A"}})
    await pipeline.update("M1", actors["member"], {"meeting": {"title": "B"}})
    await pipeline.update("M1", actors["member"], {"meeting": {"title": "C"}})

    result = await pipeline.update(
        "M1", actors["admin"], {"restoreFromRevisionId": first.revision_id}
    )

    assert result.meeting.title == "A"
    assert result.meeting.revision == 4
    assert result.changed_fields == ["title"]
    assert result.restored_from_revision_id == first.revision_id

    revision = await db_session.get(MeetingRevision, result.revision_id)
    assert revision.event_type == "restored"
    assert revision.source == "restore"
    assert revision.restored_from_revision_id == first.revision_id

    original = await db_session.get(MeetingRevision, first.revision_id)
    assert original.meeting["title"] == "A"
    assert original.meeting_revision == 1
    assert await count_revisions(db_session) == 4

    record = await db_session.get(MeetingRecord, ("ws-1", "M1"))
    assert record.title == "A"
    assert record.revision == 4


@pytest.mark.asyncio
async def test_restore_of_current_state_uses_sentinel(db_session, workspace, actors):
    """Test a restore that changes nothing is still audited."""
    pipeline = MeetingUpdatePipeline(db_session, workspace)
    latest = await pipeline.update("M1", actors["member"], {"meeting": {"title": "A"}})

    result = await pipeline.update("M1", actors["owner"], {"restoreFromRevisionId": latest.revision_id})

    assert result.noop is False
    assert result.meeting.revision == 2
    assert result.changed_fields == ["restored snapshot"]
    assert await count_revisions(db_session) == 2


@pytest.mark.asyncio
async def test_restore_resyncs_canonical_entities(db_session, workspace, actors):
    """Test restoring a revision brings back its archived actions."""
    pipeline = MeetingUpdatePipeline(db_session, workspace)
    first = await pipeline.update(
        "M1", actors["member"], {"meeting": {"actions": [{"id": "A-1", "title": "Send summary"}]}}
    )
    await pipeline.update("M1", actors["member"], {"meeting": {"actions": []}})
    assert (await db_session.get(ActionItem, ("ws-1", "A-1"))).archived is True

    await pipeline.update("M1", actors["admin"], {"restoreFromRevisionId": first.revision_id})

    assert (await db_session.get(ActionItem, ("ws-1", "A-1"))).archived is False


@pytest.mark.asyncio
async def test_restore_unknown_revision(db_session, workspace, actors):
    """Test restoring a missing revision is NotFound."""
    pipeline = MeetingUpdatePipeline(db_session, workspace)
    await pipeline.update("M1", actors["member"], {"meeting": {"title": "A"}})

    with pytest.raises(NotFound):
        await pipeline.update("M1", actors["owner"], {"restoreFromRevisionId": "missing"})


@pytest.mark.asyncio
async def test_role_checks_happen_before_writes(db_session, workspace, actors, sample_meeting_data):
    """Test viewers cannot edit and members cannot restore."""
    pipeline = MeetingUpdatePipeline(db_session, workspace)

    with pytest.raises(AccessDenied):
        await pipeline.update("M1", actors["viewer"], {"meeting": sample_meeting_data})
    assert await db_session.get(MeetingRecord, ("ws-1", "M1")) is None

    first = await pipeline.update("M1", actors["member"], {"meeting": sample_meeting_data})
    with pytest.raises(AccessDenied):
        await pipeline.update("M1", actors["member"], {"restoreFromRevisionId": first.revision_id})
    assert await count_revisions(db_session) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [None, [], "meeting", {}, {"meeting": "not an object"}])
async def test_invalid_bodies(db_session, workspace, actors, body):
    """Test unusable bodies are validation failures."""
    pipeline = MeetingUpdatePipeline(db_session, workspace)

    with pytest.raises(ValidationFailure):
        await pipeline.update("M1", actors["member"], body)


@pytest.mark.asyncio
async def test_locked_meeting_rejects_changes_until_unlocked(db_session, workspace, actors):
    """Test a locked meeting only accepts an unlock."""
    pipeline = MeetingUpdatePipeline(db_session, workspace)
    first = await pipeline.update("M1", actors["member"], {"meeting": {"title": "A"}})
    locked = await pipeline.update("M1", actors["member"], {"meeting": {"title": "A", "locked": True}})
    assert locked.changed_fields == ["lock"]

    with pytest.raises(AccessDenied):
        await pipeline.update("M1", actors["member"], {"meeting": {"title": "B", "locked": True}})
    with pytest.raises(AccessDenied):
        await pipeline.update("M1", actors["owner"], {"restoreFromRevisionId": first.revision_id})

    unlocked = await pipeline.update("M1", actors["member"], {"meeting": {"title": "A", "locked": False}})
    assert unlocked.changed_fields == ["lock"]
    assert unlocked.meeting.revision == 3

    edited = await pipeline.update("M1", actors["member"], {"meeting": {"title": "B"}})
    assert edited.meeting.revision == 4


@pytest.mark.asyncio
async def test_write_failure_is_internal_error(db_session, workspace, actors):
    """Test a failing history write surfaces one generic error."""
    pipeline = MeetingUpdatePipeline(db_session, workspace, history_writer=FailingHistoryWriter())

    with pytest.raises(InternalSyncFailure) as exc_info:
        await pipeline.update(
            "M1", actors["member"], {"meeting": {"actions": [{"id": "A-1", "title": "Send summary"}]}}
        )

    assert exc_info.value.message == "Failed to update meeting."
    assert exc_info.value.status_code == 500
    # The meeting and its revision were committed before the sync step
    assert await count_revisions(db_session) == 1
    assert await db_session.get(ActionItem, ("ws-1", "A-1")) is None


@pytest.mark.asyncio
async def test_mentions_notify_new_members_only(db_session, workspace, actors):
    """Test mentions notify members once and never the actor."""
    pipeline = MeetingUpdatePipeline(db_session, workspace)
    action = {"id": "A-1", "title": "Review launch copy", "notes": "@mia@example.com @olivia@example.com please check"}

    await pipeline.update("M1", actors["owner"], {"meeting": {"actions": [action]}})

    result = await db_session.execute(select(Notification))
    notifications = list(result.scalars().all())
    assert [n.recipient_uid for n in notifications] == ["u-member"]

    notification = notifications[0]
    assert notification.id == "mention_ws-1_action_A-1"
    assert notification.entity_path == "/acme/actions/A-1"
    assert notification.mentioned_by_uid == "u-owner"
    assert notification.mentioned_by_name == "Olivia Owner"
    assert notification.status == "unread"
    assert notification.workspace_slug == "acme"

    # Editing other text keeps the same mentions: no new notification
    await pipeline.update(
        "M1",
        actors["owner"],
        {"meeting": {"actions": [{**action, "title": "Review launch copy v2"}]}},
    )
    result = await db_session.execute(select(func.count()).select_from(Notification))
    assert result.scalar_one() == 1


@pytest.mark.asyncio
async def test_mention_failure_does_not_fail_update(db_session, workspace, actors):
    """Test notification errors are logged and the sync carries on."""
    pipeline = MeetingUpdatePipeline(db_session, workspace, notifier=FailingNotifier())

    result = await pipeline.update(
        "M1",
        actors["owner"],
        {
            "meeting": {
                "actions": [
                    {"id": "A-1", "title": "Ping @mia@example.com"},
                    {"id": "A-2", "title": "Ping @adam@example.com"},
                ]
            }
        },
    )

    assert result.sync_report.actions.created == ["A-1", "A-2"]
    assert await db_session.get(ActionItem, ("ws-1", "A-1")) is not None
    assert await db_session.get(ActionItem, ("ws-1", "A-2")) is not None
