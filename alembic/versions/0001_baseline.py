"""Baseline migration - users, pipelines, candidates, imports, merge and audit

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19

Portable DDL (PostgreSQL in production, SQLite for local runs).
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _ts(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def _user_fk(name: str) -> sa.Column:
    return sa.Column(name, sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True)


def _candidate_fk(name: str = 'candidate_id') -> sa.Column:
    return sa.Column(
        name, sa.Uuid(), sa.ForeignKey('candidates.id', ondelete='CASCADE'), nullable=False
    )


def upgrade() -> None:
    """Create all tables."""

    # ==========================================================================
    # Users
    # ==========================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('display_name', sa.String(255), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('token_version', sa.Integer(), nullable=False),
        _ts('created_at'),
    )

    # ==========================================================================
    # Pipelines
    # ==========================================================================
    op.create_table(
        'pipelines',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        _ts('created_at'),
    )
    op.create_table(
        'pipeline_stages',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'pipeline_id', sa.Uuid(),
            sa.ForeignKey('pipelines.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('color', sa.String(7), nullable=False),
        sa.Column('order_index', sa.Integer(), nullable=False),
        sa.Column('is_default', sa.Boolean(), nullable=False),
        _ts('created_at'),
    )
    op.create_index('idx_stage_pipeline_order', 'pipeline_stages', ['pipeline_id', 'order_index'])

    # ==========================================================================
    # Candidates
    # ==========================================================================
    op.create_table(
        'candidates',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'pipeline_id', sa.Uuid(),
            sa.ForeignKey('pipelines.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column(
            'stage_id', sa.Uuid(),
            sa.ForeignKey('pipeline_stages.id', ondelete='RESTRICT'), nullable=False,
        ),
        _user_fk('assigned_to_user_id'),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone_e164', sa.String(32), nullable=True),
        sa.Column('source', sa.String(20), nullable=True),
        sa.Column('extracted_text', sa.Text(), nullable=True),
        sa.Column('parsing_confidence', sa.Integer(), nullable=True),
        sa.Column('is_rejected', sa.Boolean(), nullable=False),
        _ts('deleted_at', nullable=True),
        sa.Column(
            'merged_into_id', sa.Uuid(),
            sa.ForeignKey('candidates.id', ondelete='SET NULL'), nullable=True,
        ),
        _ts('created_at'),
        _ts('updated_at'),
    )
    op.create_index('idx_candidates_pipeline_stage', 'candidates', ['pipeline_id', 'stage_id'])
    op.create_index('idx_candidates_email', 'candidates', ['email'])
    op.create_index('idx_candidates_phone', 'candidates', ['phone_e164'])
    op.create_index('idx_candidates_merged_into', 'candidates', ['merged_into_id'])

    op.create_table(
        'candidate_stage_history',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _candidate_fk(),
        sa.Column(
            'from_stage_id', sa.Uuid(),
            sa.ForeignKey('pipeline_stages.id', ondelete='SET NULL'), nullable=True,
        ),
        sa.Column(
            'to_stage_id', sa.Uuid(),
            sa.ForeignKey('pipeline_stages.id', ondelete='CASCADE'), nullable=False,
        ),
        _user_fk('moved_by_user_id'),
        _ts('moved_at'),
    )
    op.create_index(
        'idx_stage_history_candidate', 'candidate_stage_history', ['candidate_id', 'moved_at']
    )

    op.create_table(
        'tags',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(50), nullable=False, unique=True),
        sa.Column('color', sa.String(7), nullable=False),
        _ts('created_at'),
    )
    op.create_table(
        'candidate_tags',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _candidate_fk(),
        sa.Column('tag_id', sa.Uuid(), sa.ForeignKey('tags.id', ondelete='CASCADE'), nullable=False),
        _ts('created_at'),
        sa.UniqueConstraint('candidate_id', 'tag_id', name='uq_candidate_tag'),
    )

    op.create_table(
        'notes',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _candidate_fk(),
        _user_fk('author_user_id'),
        sa.Column('body', sa.Text(), nullable=False),
        _ts('created_at'),
        _ts('updated_at'),
    )
    op.create_index('idx_notes_candidate', 'notes', ['candidate_id', 'created_at'])

    op.create_table(
        'attachments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _candidate_fk(),
        _user_fk('uploaded_by_user_id'),
        sa.Column('filename', sa.String(255), nullable=False),
        sa.Column('storage_key', sa.String(512), nullable=False),
        sa.Column('content_type', sa.String(100), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        _ts('created_at'),
    )
    op.create_index('idx_attachments_candidate', 'attachments', ['candidate_id'])

    op.create_table(
        'email_logs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _candidate_fk(),
        _user_fk('sent_by_user_id'),
        sa.Column('recipient_email', sa.String(255), nullable=False),
        sa.Column('subject', sa.String(500), nullable=False),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        _ts('sent_at', nullable=True),
        _ts('created_at'),
    )
    op.create_index('idx_email_logs_candidate', 'email_logs', ['candidate_id', 'created_at'])

    op.create_table(
        'merge_logs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _candidate_fk('target_candidate_id'),
        _candidate_fk('source_candidate_id'),
        _user_fk('merged_by_user_id'),
        _ts('created_at'),
    )
    op.create_index('idx_merge_logs_target', 'merge_logs', ['target_candidate_id'])
    op.create_index('idx_merge_logs_source', 'merge_logs', ['source_candidate_id'])

    # ==========================================================================
    # CV import
    # ==========================================================================
    op.create_table(
        'import_batches',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'pipeline_id', sa.Uuid(),
            sa.ForeignKey('pipelines.id', ondelete='CASCADE'), nullable=False,
        ),
        _user_fk('created_by_user_id'),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('default_country_code', sa.String(2), nullable=False),
        sa.Column('total_files', sa.Integer(), nullable=False),
        sa.Column('processed_count', sa.Integer(), nullable=False),
        sa.Column('success_count', sa.Integer(), nullable=False),
        sa.Column('failed_count', sa.Integer(), nullable=False),
        _ts('created_at'),
        _ts('completed_at', nullable=True),
    )
    op.create_index(
        'idx_import_batches_pipeline_created', 'import_batches', ['pipeline_id', 'created_at']
    )
    op.create_index('idx_import_batches_status', 'import_batches', ['status'])

    op.create_table(
        'import_items',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'batch_id', sa.Uuid(),
            sa.ForeignKey('import_batches.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column(
            'candidate_id', sa.Uuid(),
            sa.ForeignKey('candidates.id', ondelete='SET NULL'), nullable=True,
        ),
        sa.Column('filename', sa.String(255), nullable=False),
        sa.Column('storage_key', sa.String(512), nullable=False),
        sa.Column('content_type', sa.String(100), nullable=True),
        sa.Column('file_size', sa.Integer(), nullable=True),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        _ts('created_at'),
        _ts('processed_at', nullable=True),
    )
    op.create_index('idx_import_items_batch_status', 'import_items', ['batch_id', 'status'])

    # ==========================================================================
    # Audit
    # ==========================================================================
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        _user_fk('actor_user_id'),
        sa.Column('event_type', sa.String(50), nullable=False),
        sa.Column('target_type', sa.String(50), nullable=True),
        sa.Column('target_id', sa.Uuid(), nullable=True),
        sa.Column(
            'details',
            sa.JSON().with_variant(postgresql.JSONB(), 'postgresql'),
            nullable=True,
        ),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('user_agent', sa.String(500), nullable=True),
        _ts('created_at'),
    )
    op.create_index('idx_audit_event_created', 'audit_logs', ['event_type', 'created_at'])
    op.create_index('idx_audit_target', 'audit_logs', ['target_type', 'target_id'])


def downgrade() -> None:
    """Drop all tables (reverse dependency order)."""
    for table in (
        'audit_logs',
        'import_items',
        'import_batches',
        'merge_logs',
        'email_logs',
        'attachments',
        'notes',
        'candidate_tags',
        'tags',
        'candidate_stage_history',
        'candidates',
        'pipeline_stages',
        'pipelines',
        'users',
    ):
        op.drop_table(table)
