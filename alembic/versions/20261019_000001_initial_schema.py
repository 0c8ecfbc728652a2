"""initial schema: profiles, patients, appointments

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261019_000001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'profiles',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('full_name', sa.String(120), nullable=False, server_default=''),
        sa.Column('role', sa.String(16), nullable=False, server_default='PSYCHOLOGIST'),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('email_confirmed', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        'patients',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, server_default=''),
        sa.Column('phone', sa.String(30), nullable=False, server_default=''),
        sa.Column('notes', sa.Text()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('id', 'user_id', name='uq_patients_id_user_id'),
    )
    op.create_index('ix_patients_user_id', 'patients', ['user_id'], unique=False)

    # No unique (user_id, date, time): double booking is allowed
    op.create_table(
        'appointments',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('patient_id', sa.String(36), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('time', sa.Time(), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False, server_default='50'),
        sa.Column('type', sa.String(16), nullable=False, server_default='ONLINE'),
        sa.Column('status', sa.String(16), nullable=False, server_default='SCHEDULED'),
        sa.Column('notes', sa.Text()),
        sa.Column('summary', sa.Text()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('duration > 0', name='ck_appointments_duration_positive'),
        sa.ForeignKeyConstraint(
            ['patient_id', 'user_id'], ['patients.id', 'patients.user_id'],
            name='fk_appointments_patient_owner', ondelete='CASCADE',
        ),
    )
    op.create_index('ix_appointments_user_id', 'appointments', ['user_id'], unique=False)
    op.create_index('ix_appointments_date_time', 'appointments', ['date', 'time'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_appointments_date_time', table_name='appointments')
    op.drop_index('ix_appointments_user_id', table_name='appointments')
    op.drop_table('appointments')
    op.drop_index('ix_patients_user_id', table_name='patients')
    op.drop_table('patients')
    op.drop_table('profiles')
