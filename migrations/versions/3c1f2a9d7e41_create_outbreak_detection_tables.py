"""create outbreak detection tables

Revision ID: 3c1f2a9d7e41
Revises:
Create Date: 2026-10-17 09:12:44.318204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa



revision: str = '3c1f2a9d7e41'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:

    op.create_table('geographic_units',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('name', sa.String(length=255), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_table('accounts',
    sa.Column('id', sa.String(length=36), nullable=False),
    sa.Column('role', sa.String(length=50), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_accounts_role'), 'accounts', ['role'], unique=False)
    op.create_table('disease_cases',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('geographic_unit_id', sa.Integer(), nullable=True),
    sa.Column('disease_type', sa.String(length=50), nullable=False),
    sa.Column('custom_disease_name', sa.String(length=255), nullable=True, comment="Only set when disease_type is 'other'"),
    sa.Column('diagnosis_date', sa.Date(), nullable=False),
    sa.Column('severity', sa.String(length=20), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
    sa.ForeignKeyConstraint(['geographic_unit_id'], ['geographic_units.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_case_status_type_date', 'disease_cases', ['status', 'disease_type', 'diagnosis_date'], unique=False)
    op.create_index(op.f('ix_disease_cases_diagnosis_date'), 'disease_cases', ['diagnosis_date'], unique=False)
    op.create_index(op.f('ix_disease_cases_disease_type'), 'disease_cases', ['disease_type'], unique=False)
    op.create_index(op.f('ix_disease_cases_geographic_unit_id'), 'disease_cases', ['geographic_unit_id'], unique=False)
    op.create_index(op.f('ix_disease_cases_status'), 'disease_cases', ['status'], unique=False)
    op.create_table('disease_statistics',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('disease_type', sa.String(length=50), nullable=False),
    sa.Column('custom_disease_name', sa.String(length=255), nullable=True),
    sa.Column('geographic_unit_id', sa.Integer(), nullable=True),
    sa.Column('record_date', sa.Date(), nullable=False),
    sa.Column('case_count', sa.Integer(), nullable=False),
    sa.Column('severity', sa.String(length=20), nullable=True),
    sa.Column('source', sa.String(length=100), nullable=True, comment='Ex: DOH bulletin, CHO records'),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
    sa.ForeignKeyConstraint(['geographic_unit_id'], ['geographic_units.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_disease_statistics_disease_type'), 'disease_statistics', ['disease_type'], unique=False)
    op.create_index(op.f('ix_disease_statistics_geographic_unit_id'), 'disease_statistics', ['geographic_unit_id'], unique=False)
    op.create_index(op.f('ix_disease_statistics_record_date'), 'disease_statistics', ['record_date'], unique=False)
    op.create_table('notifications',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.String(length=36), nullable=False),
    sa.Column('type', sa.String(length=50), nullable=False),
    sa.Column('title', sa.String(length=255), nullable=False),
    sa.Column('message', sa.Text(), nullable=False),
    sa.Column('data', sa.JSON(), nullable=True),
    sa.Column('read', sa.Boolean(), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
    sa.ForeignKeyConstraint(['user_id'], ['accounts.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_notification_dedup', 'notifications', ['user_id', 'title', 'created_at'], unique=False)
    op.create_index(op.f('ix_notifications_user_id'), 'notifications', ['user_id'], unique=False)


def downgrade() -> None:

    op.drop_index(op.f('ix_notifications_user_id'), table_name='notifications')
    op.drop_index('idx_notification_dedup', table_name='notifications')
    op.drop_table('notifications')
    op.drop_index(op.f('ix_disease_statistics_record_date'), table_name='disease_statistics')
    op.drop_index(op.f('ix_disease_statistics_geographic_unit_id'), table_name='disease_statistics')
    op.drop_index(op.f('ix_disease_statistics_disease_type'), table_name='disease_statistics')
    op.drop_table('disease_statistics')
    op.drop_index(op.f('ix_disease_cases_status'), table_name='disease_cases')
    op.drop_index(op.f('ix_disease_cases_geographic_unit_id'), table_name='disease_cases')
    op.drop_index(op.f('ix_disease_cases_disease_type'), table_name='disease_cases')
    op.drop_index(op.f('ix_disease_cases_diagnosis_date'), table_name='disease_cases')
    op.drop_index('idx_case_status_type_date', table_name='disease_cases')
    op.drop_table('disease_cases')
    op.drop_index(op.f('ix_accounts_role'), table_name='accounts')
    op.drop_table('accounts')
    op.drop_table('geographic_units')
