"""create_attendance_performance_tables

Revision ID: 3c1f8e2a9b47
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3c1f8e2a9b47'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

fee_category_enum = postgresql.ENUM('paid', 'free', name='fee_category_enum', create_type=False)
participation_status_enum = postgresql.ENUM('active', 'terminated', name='participation_status_enum', create_type=False)
record_kind_enum = postgresql.ENUM('individual', 'bulk', name='record_kind_enum', create_type=False)


def upgrade() -> None:
    """Upgrade schema - roster, attendance and performance tables."""
    bind = op.get_bind()
    fee_category_enum.create(bind, checkfirst=True)
    participation_status_enum.create(bind, checkfirst=True)
    record_kind_enum.create(bind, checkfirst=True)

    op.create_table(
        'members',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('gender', sa.String(), nullable=True),
        sa.Column('birth_date', sa.String(length=10), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('fee_category', fee_category_enum, nullable=True),
        sa.Column('status', participation_status_enum, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_members_name', 'members', ['name'])

    op.create_table(
        'sub_program_enrollments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('member_id', sa.String(length=32), nullable=False),
        sa.Column('sub_program_name', sa.String(), nullable=False),
        sa.ForeignKeyConstraint(['member_id'], ['members.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('member_id', 'sub_program_name', name='uq_enrollment_member_sub_program')
    )
    op.create_index('ix_sub_program_enrollments_member_id', 'sub_program_enrollments', ['member_id'])
    op.create_index('ix_sub_program_enrollments_sub_program_name', 'sub_program_enrollments', ['sub_program_name'])

    op.create_table(
        'program_structures',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('sub_program_name', sa.String(), nullable=False),
        sa.Column('team', sa.String(), nullable=True),
        sa.Column('function', sa.String(), nullable=True),
        sa.Column('unit', sa.String(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sub_program_name')
    )

    op.create_table(
        'attendance_records',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('record_date', sa.String(length=10), nullable=False),
        sa.Column('sub_program_name', sa.String(), nullable=False),
        sa.Column('member_id', sa.String(length=32), nullable=False),
        sa.Column('function', sa.String(), nullable=True),
        sa.Column('team', sa.String(), nullable=True),
        sa.Column('unit', sa.String(), nullable=True),
        sa.Column('member_name', sa.String(), nullable=False),
        sa.Column('gender', sa.String(), nullable=True),
        sa.Column('birth_date', sa.String(length=10), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('fee_category', fee_category_enum, nullable=True),
        sa.Column('attended', sa.Boolean(), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('session_count', sa.Integer(), nullable=False),
        sa.Column('case_count', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('record_date', 'sub_program_name', 'member_id', name='uq_attendance_date_sub_program_member')
    )
    op.create_index('ix_attendance_records_record_date', 'attendance_records', ['record_date'])
    op.create_index('ix_attendance_records_sub_program_name', 'attendance_records', ['sub_program_name'])
    op.create_index('ix_attendance_records_member_id', 'attendance_records', ['member_id'])

    op.create_table(
        'performance_records',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('record_kind', record_kind_enum, nullable=False),
        sa.Column('record_date', sa.String(length=10), nullable=False),
        sa.Column('sub_program_name', sa.String(), nullable=False),
        sa.Column('function', sa.String(), nullable=True),
        sa.Column('team', sa.String(), nullable=True),
        sa.Column('unit', sa.String(), nullable=True),
        sa.Column('member_id', sa.String(length=32), nullable=True),
        sa.Column('member_name', sa.String(), nullable=True),
        sa.Column('gender', sa.String(), nullable=True),
        sa.Column('attended', sa.Boolean(), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('fee_category', fee_category_enum, nullable=True),
        sa.Column('session_count', sa.Integer(), nullable=False),
        sa.Column('registered_count', sa.Integer(), nullable=False),
        sa.Column('actual_count', sa.Integer(), nullable=False),
        sa.Column('visit_count', sa.Integer(), nullable=False),
        sa.Column('case_count', sa.Integer(), nullable=False),
        sa.Column('remark', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('record_date', 'sub_program_name', 'member_id', name='uq_performance_individual_key')
    )
    op.create_index('ix_performance_records_record_kind', 'performance_records', ['record_kind'])
    op.create_index('ix_performance_records_record_date', 'performance_records', ['record_date'])
    op.create_index('ix_performance_records_sub_program_name', 'performance_records', ['sub_program_name'])
    op.create_index(
        'uq_performance_bulk_row',
        'performance_records',
        [
            'record_date', 'sub_program_name', 'unit', 'registered_count',
            'actual_count', 'visit_count', 'case_count', 'remark',
        ],
        unique=True,
        postgresql_where=sa.text("record_kind = 'bulk'"),
    )


def downgrade() -> None:
    """Downgrade schema - drop all tables and enum types."""
    op.drop_index('uq_performance_bulk_row', table_name='performance_records')
    op.drop_index('ix_performance_records_sub_program_name', table_name='performance_records')
    op.drop_index('ix_performance_records_record_date', table_name='performance_records')
    op.drop_index('ix_performance_records_record_kind', table_name='performance_records')
    op.drop_table('performance_records')
    op.drop_index('ix_attendance_records_member_id', table_name='attendance_records')
    op.drop_index('ix_attendance_records_sub_program_name', table_name='attendance_records')
    op.drop_index('ix_attendance_records_record_date', table_name='attendance_records')
    op.drop_table('attendance_records')
    op.drop_table('program_structures')
    op.drop_index('ix_sub_program_enrollments_sub_program_name', table_name='sub_program_enrollments')
    op.drop_index('ix_sub_program_enrollments_member_id', table_name='sub_program_enrollments')
    op.drop_table('sub_program_enrollments')
    op.drop_index('ix_members_name', table_name='members')
    op.drop_table('members')

    record_kind_enum.drop(op.get_bind(), checkfirst=True)
    participation_status_enum.drop(op.get_bind(), checkfirst=True)
    fee_category_enum.drop(op.get_bind(), checkfirst=True)
