"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-16

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create workspaces table
    op.create_table(
        'workspaces',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('slug', sa.String(length=120), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_workspaces_slug', 'workspaces', ['slug'], unique=True)

    # Create workspace_members table
    op.create_table(
        'workspace_members',
        sa.Column('workspace_id', sa.String(length=64), nullable=False),
        sa.Column('uid', sa.String(length=128), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('display_name', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('role', sa.Enum('owner', 'admin', 'member', 'viewer', name='memberrole'), nullable=False, server_default='member'),
        sa.Column('joined_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id'], ),
        sa.PrimaryKeyConstraint('workspace_id', 'uid')
    )
    op.create_index('ix_workspace_members_email', 'workspace_members', ['workspace_id', 'email'], unique=False)

    # Create meetings table
    op.create_table(
        'meetings',
        sa.Column('workspace_id', sa.String(length=64), nullable=False),
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('team', sa.String(length=255), nullable=False),
        sa.Column('owner', sa.String(length=255), nullable=False),
        sa.Column('time_label', sa.String(length=255), nullable=False),
        sa.Column('duration', sa.String(length=100), nullable=False),
        sa.Column('location', sa.String(length=255), nullable=False),
        sa.Column('objective', sa.Text(), nullable=False),
        sa.Column('state', sa.String(length=20), nullable=False, server_default='scheduled'),
        sa.Column('digest', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('locked', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('revision', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('last_sent_label', sa.String(length=255), nullable=False),
        sa.Column('attendees', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('agenda', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('notes', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('open_questions', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('decisions', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('actions', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('digest_recipients', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('digest_options', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('created_by', sa.String(length=128), nullable=False, server_default=''),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_by', sa.String(length=128), nullable=False, server_default=''),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id'], ),
        sa.PrimaryKeyConstraint('workspace_id', 'id')
    )

    # Create meeting_revisions table
    op.create_table(
        'meeting_revisions',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('workspace_id', sa.String(length=64), nullable=False),
        sa.Column('meeting_id', sa.String(length=255), nullable=False),
        sa.Column('source', sa.String(length=32), nullable=False),
        sa.Column('event_type', sa.String(length=32), nullable=False),
        sa.Column('changed_fields', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('summary', sa.String(length=500), nullable=False),
        sa.Column('meeting_revision', sa.Integer(), nullable=False),
        sa.Column('actor_uid', sa.String(length=128), nullable=False),
        sa.Column('actor_name', sa.String(length=255), nullable=False),
        sa.Column('captured_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('restored_from_revision_id', sa.String(length=64), nullable=False, server_default=''),
        sa.Column('meeting', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_meeting_revisions_workspace_id', 'meeting_revisions', ['workspace_id'], unique=False)
    op.create_index('ix_meeting_revisions_meeting_id', 'meeting_revisions', ['meeting_id'], unique=False)
    op.create_index('ix_meeting_revisions_meeting', 'meeting_revisions', ['workspace_id', 'meeting_id', 'meeting_revision'], unique=False)

    # Create decisions table
    op.create_table(
        'decisions',
        sa.Column('workspace_id', sa.String(length=64), nullable=False),
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('statement', sa.Text(), nullable=False, server_default=''),
        sa.Column('rationale', sa.Text(), nullable=False, server_default=''),
        sa.Column('owner', sa.String(length=255), nullable=False, server_default='Unassigned'),
        sa.Column('owner_uid', sa.String(length=128), nullable=False, server_default=''),
        sa.Column('status', sa.Enum('proposed', 'accepted', 'superseded', 'rejected', name='decisionstatus'), nullable=False, server_default='proposed'),
        sa.Column('tags', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('visibility', sa.Enum('workspace', 'team', 'private', name='decisionvisibility'), nullable=False, server_default='workspace'),
        sa.Column('team_label', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('allowed_team_ids', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('meeting_id', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('supersedes_decision_id', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('superseded_by_decision_id', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('superseded_at', sa.DateTime(), nullable=True),
        sa.Column('archived', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('archived_at', sa.DateTime(), nullable=True),
        sa.Column('archived_by', sa.String(length=128), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('created_by', sa.String(length=128), nullable=False, server_default=''),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_by', sa.String(length=128), nullable=False, server_default=''),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id'], ),
        sa.PrimaryKeyConstraint('workspace_id', 'id')
    )
    op.create_index('ix_decisions_status', 'decisions', ['status'], unique=False)
    op.create_index('ix_decisions_meeting_id', 'decisions', ['meeting_id'], unique=False)
    op.create_index('ix_decisions_archived', 'decisions', ['archived'], unique=False)
    op.create_index('ix_decisions_workspace_meeting', 'decisions', ['workspace_id', 'meeting_id'], unique=False)

    # Create actions table
    op.create_table(
        'actions',
        sa.Column('workspace_id', sa.String(length=64), nullable=False),
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('owner', sa.String(length=255), nullable=False, server_default='Unassigned'),
        sa.Column('owner_uid', sa.String(length=128), nullable=False, server_default=''),
        sa.Column('status', sa.Enum('open', 'blocked', 'done', name='actionstatus'), nullable=False, server_default='open'),
        sa.Column('priority', sa.Enum('high', 'medium', 'low', name='actionpriority'), nullable=False, server_default='medium'),
        sa.Column('project', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('due_at', sa.DateTime(), nullable=True),
        sa.Column('due_label', sa.String(length=255), nullable=False, server_default='No due date'),
        sa.Column('due_soon', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('blocked_reason', sa.Text(), nullable=False, server_default=''),
        sa.Column('notes', sa.Text(), nullable=False, server_default=''),
        sa.Column('meeting_id', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('decision_id', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('archived', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('archived_at', sa.DateTime(), nullable=True),
        sa.Column('archived_by', sa.String(length=128), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('created_by', sa.String(length=128), nullable=False, server_default=''),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_by', sa.String(length=128), nullable=False, server_default=''),
        sa.ForeignKeyConstraint(['workspace_id'], ['workspaces.id'], ),
        sa.PrimaryKeyConstraint('workspace_id', 'id')
    )
    op.create_index('ix_actions_status', 'actions', ['status'], unique=False)
    op.create_index('ix_actions_due_at', 'actions', ['due_at'], unique=False)
    op.create_index('ix_actions_meeting_id', 'actions', ['meeting_id'], unique=False)
    op.create_index('ix_actions_archived', 'actions', ['archived'], unique=False)
    op.create_index('ix_actions_workspace_meeting', 'actions', ['workspace_id', 'meeting_id'], unique=False)
    op.create_index('ix_actions_status_due', 'actions', ['status', 'due_at'], unique=False)

    # Create entity_history table
    op.create_table(
        'entity_history',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('workspace_id', sa.String(length=64), nullable=False),
        sa.Column('entity', sa.String(length=20), nullable=False),
        sa.Column('entity_id', sa.String(length=255), nullable=False),
        sa.Column('event_type', sa.String(length=20), nullable=False),
        sa.Column('source', sa.String(length=20), nullable=False),
        sa.Column('actor_uid', sa.String(length=128), nullable=False),
        sa.Column('actor_name', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_entity_history_workspace_id', 'entity_history', ['workspace_id'], unique=False)
    op.create_index('ix_entity_history_entity', 'entity_history', ['workspace_id', 'entity', 'entity_id', 'at'], unique=False)

    # Create notifications table
    op.create_table(
        'notifications',
        sa.Column('recipient_uid', sa.String(length=128), nullable=False),
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False, server_default='mention'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='unread'),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        sa.Column('workspace_id', sa.String(length=64), nullable=False),
        sa.Column('workspace_slug', sa.String(length=120), nullable=False),
        sa.Column('workspace_name', sa.String(length=255), nullable=False),
        sa.Column('entity_type', sa.String(length=20), nullable=False),
        sa.Column('entity_id', sa.String(length=255), nullable=False),
        sa.Column('entity_title', sa.String(length=500), nullable=False),
        sa.Column('entity_path', sa.String(length=500), nullable=False),
        sa.Column('preview', sa.Text(), nullable=False, server_default=''),
        sa.Column('mentioned_by_uid', sa.String(length=128), nullable=False),
        sa.Column('mentioned_by_name', sa.String(length=255), nullable=False),
        sa.Column('recipient_email', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('recipient_uid', 'id')
    )
    op.create_index('ix_notifications_recipient_status', 'notifications', ['recipient_uid', 'status'], unique=False)


def downgrade() -> None:
    op.drop_table('notifications')
    op.drop_table('entity_history')
    op.drop_table('actions')
    op.drop_table('decisions')
    op.drop_table('meeting_revisions')
    op.drop_table('meetings')
    op.drop_table('workspace_members')
    op.drop_table('workspaces')

    # Drop enums
    op.execute('DROP TYPE IF EXISTS actionpriority')
    op.execute('DROP TYPE IF EXISTS actionstatus')
    op.execute('DROP TYPE IF EXISTS decisionvisibility')
    op.execute('DROP TYPE IF EXISTS decisionstatus')
    op.execute('DROP TYPE IF EXISTS memberrole')
