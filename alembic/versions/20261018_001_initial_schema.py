"""Initial schema with projects, audits, pages, rules and issues tables.

Revision ID: 001
Revises:
Create Date: 2026-10-18

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
    # Create projects table
    op.create_table(
        'projects',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('domain', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_projects_domain', 'projects', ['domain'], unique=False)

    # Create rules table (synced from the code catalog at startup)
    op.create_table(
        'rules',
        sa.Column('id', sa.String(length=100), nullable=False),
        sa.Column('category', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('weight', sa.Integer(), nullable=False),
        sa.Column('scope', sa.String(length=20), nullable=False, server_default='page'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.PrimaryKeyConstraint('id')
    )

    # Create audits table
    op.create_table(
        'audits',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('url', sa.String(length=2048), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='queued'),
        sa.Column('total_score', sa.Integer(), nullable=True),
        sa.Column('technical_score', sa.Integer(), nullable=True),
        sa.Column('onpage_score', sa.Integer(), nullable=True),
        sa.Column('structured_data_score', sa.Integer(), nullable=True),
        sa.Column('performance_score', sa.Integer(), nullable=True),
        sa.Column('local_seo_score', sa.Integer(), nullable=True),
        sa.Column('performance_data', postgresql.JSON(astext_type=sa.Text()), nullable=True),
        sa.Column('metadata', postgresql.JSON(astext_type=sa.Text()), nullable=False, server_default='{}'),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_audits_project_id', 'audits', ['project_id'], unique=False)
    op.create_index('ix_audits_status', 'audits', ['status'], unique=False)
    op.create_index('ix_audits_started_at', 'audits', ['started_at'], unique=False)

    # Create pages table
    op.create_table(
        'pages',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('audit_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('url', sa.String(length=2048), nullable=False),
        sa.Column('final_url', sa.String(length=2048), nullable=True),
        sa.Column('status_code', sa.Integer(), nullable=False),
        sa.Column('load_time', sa.Float(), nullable=True),
        sa.Column('page_size', sa.Integer(), nullable=True),
        sa.Column('headers', postgresql.JSON(astext_type=sa.Text()), nullable=False, server_default='{}'),
        sa.Column('html', sa.Text(), nullable=True),
        sa.Column('resources', postgresql.JSON(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('internal_links', postgresql.JSON(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('external_links', postgresql.JSON(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('json_ld', postgresql.JSON(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('console_errors', postgresql.JSON(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('crawled_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['audit_id'], ['audits.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_pages_audit_id', 'pages', ['audit_id'], unique=False)

    # Create issues table
    op.create_table(
        'issues',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('audit_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('page_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('rule_id', sa.String(length=100), nullable=False),
        sa.Column('severity', sa.String(length=20), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('recommendation', sa.Text(), nullable=False, server_default=''),
        sa.Column('metadata', postgresql.JSON(astext_type=sa.Text()), nullable=False, server_default='{}'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['audit_id'], ['audits.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['page_id'], ['pages.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['rule_id'], ['rules.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_issues_audit_id', 'issues', ['audit_id'], unique=False)
    op.create_index('ix_issues_severity', 'issues', ['severity'], unique=False)


def downgrade() -> None:
    # Drop tables in reverse order due to foreign key constraints
    op.drop_index('ix_issues_severity', table_name='issues')
    op.drop_index('ix_issues_audit_id', table_name='issues')
    op.drop_table('issues')

    op.drop_index('ix_pages_audit_id', table_name='pages')
    op.drop_table('pages')

    op.drop_index('ix_audits_started_at', table_name='audits')
    op.drop_index('ix_audits_status', table_name='audits')
    op.drop_index('ix_audits_project_id', table_name='audits')
    op.drop_table('audits')

    op.drop_table('rules')

    op.drop_index('ix_projects_domain', table_name='projects')
    op.drop_table('projects')
