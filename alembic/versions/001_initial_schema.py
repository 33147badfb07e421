"""Initial schema: project tree, people, work logs and notes.

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'departments',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('name', sa.String(255), nullable=False, unique=True),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('department_id', sa.Uuid, sa.ForeignKey('departments.id', ondelete='SET NULL')),
        sa.Column('team', sa.String(255)),
        sa.Column('position', sa.String(255)),
        sa.Column('category', sa.String(100)),
        sa.Column('employment_rate', sa.Numeric(4, 2)),
        sa.Column('work_format', sa.String(50)),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_users_full_name', 'users', ['full_name'])
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_department_id', 'users', ['department_id'])
    op.create_index('ix_users_is_active', 'users', ['is_active'])

    op.create_table(
        'clients',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('name', sa.String(255), nullable=False, unique=True),
    )

    op.create_table(
        'projects',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text),
        sa.Column('manager_id', sa.Uuid, sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('lead_engineer_id', sa.Uuid, sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('client_id', sa.Uuid, sa.ForeignKey('clients.id', ondelete='SET NULL')),
        sa.Column(
            'status',
            sa.Enum('active', 'archived', 'paused', 'canceled', name='projectstatus'),
            nullable=False,
            server_default='active',
        ),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('name', name='uq_projects_name'),
    )
    op.create_index('ix_projects_name', 'projects', ['name'])
    op.create_index('ix_projects_manager_id', 'projects', ['manager_id'])
    op.create_index('ix_projects_lead_engineer_id', 'projects', ['lead_engineer_id'])

    op.create_table(
        'stages',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text),
        sa.Column('project_id', sa.Uuid, sa.ForeignKey('projects.id'), nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('project_id', 'name', name='uq_stages_project_name'),
    )
    op.create_index('ix_stages_name', 'stages', ['name'])
    op.create_index('ix_stages_project_id', 'stages', ['project_id'])

    op.create_table(
        'objects',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text),
        sa.Column('stage_id', sa.Uuid, sa.ForeignKey('stages.id'), nullable=False),
        sa.Column('project_id', sa.Uuid, sa.ForeignKey('projects.id'), nullable=False),
        sa.Column('responsible_id', sa.Uuid, sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('start_date', sa.Date),
        sa.Column('end_date', sa.Date),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('stage_id', 'name', name='uq_objects_stage_name'),
        sa.CheckConstraint('start_date IS NULL OR end_date IS NULL OR start_date <= end_date', name='ck_objects_date_range'),
    )
    op.create_index('ix_objects_name', 'objects', ['name'])
    op.create_index('ix_objects_stage_id', 'objects', ['stage_id'])
    op.create_index('ix_objects_project_id', 'objects', ['project_id'])
    op.create_index('ix_objects_responsible_id', 'objects', ['responsible_id'])

    op.create_table(
        'sections',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text),
        sa.Column('type', sa.String(100)),
        sa.Column('object_id', sa.Uuid, sa.ForeignKey('objects.id'), nullable=False),
        sa.Column('project_id', sa.Uuid, sa.ForeignKey('projects.id'), nullable=False),
        sa.Column('responsible_id', sa.Uuid, sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('start_date', sa.Date),
        sa.Column('end_date', sa.Date),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('object_id', 'name', name='uq_sections_object_name'),
        sa.CheckConstraint('start_date IS NULL OR end_date IS NULL OR start_date <= end_date', name='ck_sections_date_range'),
    )
    op.create_index('ix_sections_name', 'sections', ['name'])
    op.create_index('ix_sections_object_id', 'sections', ['object_id'])
    op.create_index('ix_sections_project_id', 'sections', ['project_id'])
    op.create_index('ix_sections_responsible_id', 'sections', ['responsible_id'])

    op.create_table(
        'loadings',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('section_id', sa.Uuid, sa.ForeignKey('sections.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Uuid, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('rate', sa.Numeric(4, 2), nullable=False, server_default='1'),
        sa.Column('start_date', sa.Date),
        sa.Column('end_date', sa.Date),
    )
    op.create_index('ix_loadings_section_id', 'loadings', ['section_id'])
    op.create_index('ix_loadings_user_id', 'loadings', ['user_id'])

    op.create_table(
        'work_logs',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('section_id', sa.Uuid, sa.ForeignKey('sections.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Uuid, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date, nullable=False),
        sa.Column('hours', sa.Numeric(6, 2), nullable=False, server_default='0'),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('description', sa.Text),
    )
    op.create_index('ix_work_logs_section_id', 'work_logs', ['section_id'])
    op.create_index('ix_work_logs_user_id', 'work_logs', ['user_id'])
    op.create_index('ix_work_logs_date', 'work_logs', ['date'])

    op.create_table(
        'section_comments',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('section_id', sa.Uuid, sa.ForeignKey('sections.id', ondelete='CASCADE'), nullable=False),
        sa.Column('author_id', sa.Uuid, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('content', sa.Text, nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_section_comments_section_id', 'section_comments', ['section_id'])
    op.create_index('ix_section_comments_created_at', 'section_comments', ['created_at'])

    op.create_table(
        'notes',
        sa.Column('id', sa.Uuid, primary_key=True),
        sa.Column('author_id', sa.Uuid, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('content', sa.Text, nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_notes_author_id', 'notes', ['author_id'])


def downgrade() -> None:
    # Drop tables, children first
    op.drop_table('notes')
    op.drop_table('section_comments')
    op.drop_table('work_logs')
    op.drop_table('loadings')
    op.drop_table('sections')
    op.drop_table('objects')
    op.drop_table('stages')
    op.drop_table('projects')
    op.drop_table('clients')
    op.drop_table('users')
    op.drop_table('departments')

    # Drop enums
    op.execute('DROP TYPE IF EXISTS projectstatus')
