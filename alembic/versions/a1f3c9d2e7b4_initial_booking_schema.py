"""initial booking schema

Revision ID: a1f3c9d2e7b4
Revises:
Create Date: 2026-10-18 09:12:40.518204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'a1f3c9d2e7b4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

USER_ROLES = ('USER', 'VENDOR_OWNER', 'WORKER', 'SUPER_ADMIN')
VENDOR_STATUSES = ('ACTIVE', 'PENDING_APPROVAL', 'REJECTED', 'SUSPENDED')
APPOINTMENT_STATUSES = (
    'PENDING', 'CONFIRMED', 'REJECTED', 'CANCELLED_BY_USER', 'CANCELLED_BY_VENDOR', 'COMPLETED', 'NO_SHOW'
)


def upgrade() -> None:
    """Upgrade schema."""

    # uuid "=" inside the gist exclusion constraint
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist;")

    # 1. Users (mirror of identity provider accounts)
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('external_id', sa.String(255), nullable=False, unique=True),
        sa.Column('email', sa.String(255), nullable=True, unique=True),
        sa.Column('phone_number', sa.String(30), nullable=True, unique=True),
        sa.Column('first_name', sa.String(255), nullable=True),
        sa.Column('last_name', sa.String(255), nullable=True),
        sa.Column('role', sa.Enum(*USER_ROLES, name='userrole'), nullable=False, server_default='USER'),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.text('true')),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False)
    )
    op.create_index('ix_users_external_id', 'users', ['external_id'])
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_role', 'users', ['role'])

    # 2. Vendors
    op.create_table(
        'vendors',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('address', sa.String(255), nullable=True),
        sa.Column('phone_number', sa.String(30), nullable=True),
        sa.Column('owner_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False, unique=True),
        sa.Column('operating_hours', sa.JSON, nullable=True),
        sa.Column('timezone', sa.String(50), nullable=False, server_default='UTC'),
        sa.Column('status', sa.Enum(*VENDOR_STATUSES, name='vendorstatus'), nullable=False, server_default='ACTIVE'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'))
    )
    op.create_index('ix_vendors_owner_id', 'vendors', ['owner_id'])

    # 3. Services
    op.create_table(
        'services',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('vendor_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('vendors.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('duration', sa.Integer, nullable=False),
        sa.Column('active', sa.Boolean, nullable=False, server_default=sa.text('true')),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.CheckConstraint('duration > 0', name='ck_services_duration_positive')
    )
    op.create_index('ix_services_vendor_id', 'services', ['vendor_id'])
    op.create_index('ix_services_active', 'services', ['active'])

    # 4. Workers and their qualifications
    op.create_table(
        'workers',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('vendor_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('vendors.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, unique=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('email', sa.String(255), nullable=True, unique=True),
        sa.Column('phone_number', sa.String(30), nullable=True),
        sa.Column('bio', sa.Text, nullable=True),
        sa.Column('photo_url', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'))
    )
    op.create_index('ix_workers_vendor_id', 'workers', ['vendor_id'])

    op.create_table(
        'worker_services',
        sa.Column('worker_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('workers.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('service_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('services.id', ondelete='CASCADE'), primary_key=True)
    )

    # 5. Worker schedules
    op.create_table(
        'worker_availabilities',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('worker_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('workers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('day_of_week', sa.Integer, nullable=False),
        sa.Column('start_time', sa.String(5), nullable=False),
        sa.Column('end_time', sa.String(5), nullable=False),
        sa.Column('is_available', sa.Boolean, nullable=False, server_default=sa.text('true')),
        sa.UniqueConstraint('worker_id', 'day_of_week', name='uq_worker_availability_day'),
        sa.CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_worker_availability_day_range')
    )
    op.create_index('ix_worker_availabilities_worker_id', 'worker_availabilities', ['worker_id'])

    op.create_table(
        'worker_schedule_overrides',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('worker_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('workers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date, nullable=False),
        sa.Column('is_day_off', sa.Boolean, nullable=False, server_default=sa.text('false')),
        sa.Column('start_time', sa.String(5), nullable=True),
        sa.Column('end_time', sa.String(5), nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        sa.UniqueConstraint('worker_id', 'date', name='uq_worker_override_date')
    )
    op.create_index('ix_worker_schedule_overrides_worker_id', 'worker_schedule_overrides', ['worker_id'])

    # 6. Appointments
    op.create_table(
        'appointments',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('vendor_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('vendors.id', ondelete='CASCADE'), nullable=False),
        sa.Column('service_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('services.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('worker_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('workers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('status', sa.Enum(*APPOINTMENT_STATUSES, name='appointmentstatus'), nullable=False, server_default='PENDING'),
        sa.Column('booking_source', sa.String(20), nullable=True, server_default='web'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('end_time > start_time', name='ck_appointments_interval')
    )
    op.create_index('ix_appointments_user_id', 'appointments', ['user_id'])
    op.create_index('ix_appointments_vendor_id', 'appointments', ['vendor_id'])
    op.create_index('ix_appointments_service_id', 'appointments', ['service_id'])
    op.create_index('ix_appointments_worker_id', 'appointments', ['worker_id'])
    op.create_index('ix_appointments_start_time', 'appointments', ['start_time'])
    op.create_index('ix_appointments_status', 'appointments', ['status'])

    # One worker can never hold two overlapping PENDING/CONFIRMED appointments
    op.execute(
        "ALTER TABLE appointments ADD CONSTRAINT ex_appointments_worker_overlap "
        "EXCLUDE USING gist (worker_id WITH =, tstzrange(start_time, end_time, '[)') WITH &&) "
        "WHERE (worker_id IS NOT NULL AND status IN ('PENDING', 'CONFIRMED'))"
    )

    # 7. Background task audit
    op.create_table(
        'task_logs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('task_name', sa.String(100), nullable=False),
        sa.Column('task_id', sa.String(200), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('result', sa.JSON, nullable=True),
        sa.Column('error_message', sa.Text, nullable=True),
        sa.Column('execution_time_ms', sa.Integer, nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'))
    )


def downgrade() -> None:
    """Downgrade schema."""

    # Drop tables in reverse order (due to foreign keys)
    op.drop_table('task_logs')

    op.execute("ALTER TABLE appointments DROP CONSTRAINT IF EXISTS ex_appointments_worker_overlap;")
    op.drop_table('appointments')

    op.drop_table('worker_schedule_overrides')
    op.drop_table('worker_availabilities')
    op.drop_table('worker_services')
    op.drop_table('workers')
    op.drop_table('services')
    op.drop_table('vendors')
    op.drop_table('users')

    op.execute("DROP TYPE IF EXISTS appointmentstatus;")
    op.execute("DROP TYPE IF EXISTS vendorstatus;")
    op.execute("DROP TYPE IF EXISTS userrole;")
