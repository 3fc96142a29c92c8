"""create moderation schema

Revision ID: 20261017_001
Revises:
Create Date: 2026-10-17
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261017_001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TERM_CHECK = (
    "(is_permanent AND expiration_date IS NULL) "
    "OR (NOT is_permanent AND expiration_date IS NOT NULL)"
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _exactly_one(*columns: str) -> str:
    return " + ".join(f"(CASE WHEN {c} IS NOT NULL THEN 1 ELSE 0 END)" for c in columns) + " = 1"


def upgrade() -> None:
    # Mirror of the account service, read for reporter eligibility
    op.create_table(
        'members',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('username', sa.String(50), nullable=False, unique=True),
        sa.Column('reputation_score', sa.Integer(), server_default='0', nullable=False),
        *_timestamps(),
    )

    # Mirror of the content service, read for target existence and authorship
    op.create_table(
        'content_items',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('kind', sa.String(20), nullable=False),
        sa.Column('author_id', sa.String(36), sa.ForeignKey('members.id', ondelete='CASCADE'), nullable=False),
        sa.Column('community_id', sa.String(36), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_content_items_author_id', 'content_items', ['author_id'])
    op.create_index('ix_content_items_community_id', 'content_items', ['community_id'])
    op.create_index('ix_content_items_kind', 'content_items', ['kind', 'id'])

    # Reports - exactly one target column set
    op.create_table(
        'reports',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('reporter_id', sa.String(36), nullable=False),
        sa.Column('topic_id', sa.String(36), nullable=True),
        sa.Column('reply_id', sa.String(36), nullable=True),
        sa.Column('post_id', sa.String(36), nullable=True),
        sa.Column('comment_id', sa.String(36), nullable=True),
        sa.Column('violation_category', sa.String(30), nullable=False),
        sa.Column('severity_level', sa.String(10), nullable=False),
        sa.Column('status', sa.String(20), server_default='pending', nullable=False),
        sa.Column('explanation', sa.Text(), nullable=True),
        sa.Column('community_id', sa.String(36), nullable=True),
        sa.Column('reviewed_by', sa.String(36), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolution_note', sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            _exactly_one('topic_id', 'reply_id', 'post_id', 'comment_id'),
            name='ck_reports_exactly_one_target',
        ),
    )
    op.create_index('ix_reports_reporter_id', 'reports', ['reporter_id'])
    op.create_index('ix_reports_reporter_created', 'reports', ['reporter_id', 'created_at'])
    op.create_index('ix_reports_severity_level', 'reports', ['severity_level'])
    op.create_index('ix_reports_status', 'reports', ['status'])
    op.create_index('ix_reports_community_id', 'reports', ['community_id'])

    # Content removals - active_key is unique while the removal is in force
    op.create_table(
        'moderation_actions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('report_id', sa.String(36), sa.ForeignKey('reports.id', ondelete='SET NULL'), nullable=True),
        sa.Column('target_kind', sa.String(20), nullable=False),
        sa.Column('target_id', sa.String(36), nullable=False),
        sa.Column('target_author_id', sa.String(36), nullable=False),
        sa.Column('community_id', sa.String(36), nullable=True),
        sa.Column('moderator_id', sa.String(36), nullable=False),
        sa.Column('action_type', sa.String(20), nullable=False),
        sa.Column('removal_type', sa.String(20), nullable=False),
        sa.Column('reason_category', sa.String(30), nullable=False),
        sa.Column('reason_text', sa.Text(), nullable=False),
        sa.Column('internal_notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), server_default='completed', nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('active_key', sa.String(120), nullable=True, unique=True),
        sa.Column('version', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('length(reason_text) > 0', name='ck_moderation_actions_reason'),
    )
    op.create_index('ix_moderation_actions_report_id', 'moderation_actions', ['report_id'])
    op.create_index('ix_moderation_actions_target', 'moderation_actions', ['target_kind', 'target_id'])
    op.create_index('ix_moderation_actions_target_author_id', 'moderation_actions', ['target_author_id'])
    op.create_index('ix_moderation_actions_moderator_id', 'moderation_actions', ['moderator_id'])

    # Community bans
    op.create_table(
        'community_bans',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('member_id', sa.String(36), nullable=False),
        sa.Column('community_id', sa.String(36), nullable=False),
        sa.Column('issued_by', sa.String(36), nullable=False),
        sa.Column('report_id', sa.String(36), sa.ForeignKey('reports.id', ondelete='SET NULL'), nullable=True),
        sa.Column('reason_category', sa.String(30), nullable=False),
        sa.Column('reason_text', sa.Text(), nullable=False),
        sa.Column('is_permanent', sa.Boolean(), nullable=False),
        sa.Column('expiration_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('is_appealable', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('active_key', sa.String(120), nullable=True, unique=True),
        sa.Column('version', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(TERM_CHECK, name='ck_community_bans_term'),
    )
    op.create_index('ix_community_bans_member_id', 'community_bans', ['member_id'])
    op.create_index('ix_community_bans_community_id', 'community_bans', ['community_id'])
    op.create_index('ix_community_bans_member_community', 'community_bans', ['member_id', 'community_id'])

    # Platform suspensions
    op.create_table(
        'platform_suspensions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('member_id', sa.String(36), nullable=False),
        sa.Column('issued_by', sa.String(36), nullable=False),
        sa.Column('report_id', sa.String(36), sa.ForeignKey('reports.id', ondelete='SET NULL'), nullable=True),
        sa.Column('reason_category', sa.String(30), nullable=False),
        sa.Column('reason_text', sa.Text(), nullable=False),
        sa.Column('is_permanent', sa.Boolean(), nullable=False),
        sa.Column('expiration_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('is_appealable', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('active_key', sa.String(120), nullable=True, unique=True),
        sa.Column('version', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(TERM_CHECK, name='ck_platform_suspensions_term'),
    )
    op.create_index('ix_platform_suspensions_member_id', 'platform_suspensions', ['member_id'])

    # Appeals - open_sanction_key allows one open appeal per sanction
    op.create_table(
        'appeals',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('appellant_id', sa.String(36), nullable=False),
        sa.Column(
            'moderation_action_id', sa.String(36),
            sa.ForeignKey('moderation_actions.id', ondelete='CASCADE'), nullable=True,
        ),
        sa.Column(
            'community_ban_id', sa.String(36),
            sa.ForeignKey('community_bans.id', ondelete='CASCADE'), nullable=True,
        ),
        sa.Column(
            'platform_suspension_id', sa.String(36),
            sa.ForeignKey('platform_suspensions.id', ondelete='CASCADE'), nullable=True,
        ),
        sa.Column('appeal_type', sa.String(30), nullable=False),
        sa.Column('appeal_text', sa.Text(), nullable=False),
        sa.Column('status', sa.String(20), server_default='pending', nullable=False),
        sa.Column('decision', sa.String(20), nullable=True),
        sa.Column('decision_explanation', sa.Text(), nullable=True),
        sa.Column('penalty_modification', sa.JSON(), nullable=True),
        sa.Column('reviewed_by', sa.String(36), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_escalated', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('escalation_note', sa.Text(), nullable=True),
        sa.Column('expected_resolution_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('open_sanction_key', sa.String(36), nullable=True, unique=True),
        sa.Column('version', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            _exactly_one('moderation_action_id', 'community_ban_id', 'platform_suspension_id'),
            name='ck_appeals_exactly_one_sanction',
        ),
    )
    op.create_index('ix_appeals_appellant_id', 'appeals', ['appellant_id'])
    op.create_index('ix_appeals_moderation_action_id', 'appeals', ['moderation_action_id'])
    op.create_index('ix_appeals_community_ban_id', 'appeals', ['community_ban_id'])
    op.create_index('ix_appeals_platform_suspension_id', 'appeals', ['platform_suspension_id'])
    op.create_index('ix_appeals_status', 'appeals', ['status'])
    op.create_index('ix_appeals_status_created', 'appeals', ['status', 'created_at'])

    # Audit trail
    op.create_table(
        'moderation_audit_log',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('actor_id', sa.String(36), nullable=False),
        sa.Column('actor_role', sa.String(20), nullable=False),
        sa.Column('event', sa.String(50), nullable=False),
        sa.Column('entity_type', sa.String(30), nullable=False),
        sa.Column('entity_id', sa.String(36), nullable=False),
        sa.Column('details', sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_moderation_audit_log_actor_id', 'moderation_audit_log', ['actor_id'])
    op.create_index('ix_moderation_audit_log_event', 'moderation_audit_log', ['event'])
    op.create_index(
        'ix_moderation_audit_log_entity', 'moderation_audit_log', ['entity_type', 'entity_id', 'created_at']
    )


def downgrade() -> None:
    op.drop_table('moderation_audit_log')
    op.drop_table('appeals')
    op.drop_table('platform_suspensions')
    op.drop_table('community_bans')
    op.drop_table('moderation_actions')
    op.drop_table('reports')
    op.drop_table('content_items')
    op.drop_table('members')
