"""Create seminar, attendance, makeup, ledger and certificate tables"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = 'a3f9c2e71d04'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Users (mirrored from the identity provider)
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('external_id', sa.String(255), nullable=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('role', sa.String(50), nullable=False, server_default='customer'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('external_id'),
        sa.UniqueConstraint('email')
    )
    op.create_index(op.f('ix_users_external_id'), 'users', ['external_id'])
    op.create_index(op.f('ix_users_email'), 'users', ['email'])

    # Seminars
    op.create_table(
        'seminars',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=True),
        sa.Column('capacity', sa.Integer(), nullable=True),
        sa.Column('venue', sa.String(255), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('total_sessions', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('credits_per_session', sa.Numeric(5, 2), nullable=False, server_default='2'),
        sa.Column('total_credits', sa.Numeric(6, 2), nullable=False, server_default='20'),
        sa.Column('status', sa.String(50), nullable=False, server_default='draft'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug')
    )
    op.create_index(op.f('ix_seminars_slug'), 'seminars', ['slug'])
    op.create_index(op.f('ix_seminars_year'), 'seminars', ['year'])
    op.create_index(op.f('ix_seminars_status'), 'seminars', ['status'])

    # Seminar sessions
    op.create_table(
        'seminar_sessions',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('seminar_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('session_number', sa.Integer(), nullable=False),
        sa.Column('session_date', sa.Date(), nullable=False),
        sa.Column('session_time_start', sa.Time(), nullable=True),
        sa.Column('session_time_end', sa.Time(), nullable=True),
        sa.Column('topic', sa.String(500), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('capacity', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['seminar_id'], ['seminars.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('seminar_id', 'session_number', name='uq_seminar_sessions_number')
    )
    op.create_index(op.f('ix_seminar_sessions_seminar_id'), 'seminar_sessions', ['seminar_id'])
    op.create_index(op.f('ix_seminar_sessions_session_date'), 'seminar_sessions', ['session_date'])

    # Registrations
    op.create_table(
        'seminar_registrations',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('seminar_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('order_id', sa.String(255), nullable=True),
        sa.Column('registration_date', sa.Date(), nullable=True),
        sa.Column('start_session_date', sa.Date(), nullable=True),
        sa.Column('sessions_completed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sessions_remaining', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('makeup_used', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('status', sa.String(50), nullable=False, server_default='active'),
        sa.Column('qr_code', sa.String(100), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['seminar_id'], ['seminars.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('qr_code')
    )
    op.create_index(op.f('ix_seminar_registrations_user_id'), 'seminar_registrations', ['user_id'])
    op.create_index(op.f('ix_seminar_registrations_seminar_id'), 'seminar_registrations', ['seminar_id'])
    op.create_index(op.f('ix_seminar_registrations_status'), 'seminar_registrations', ['status'])
    op.create_index(
        'uq_seminar_registrations_user_seminar',
        'seminar_registrations',
        ['user_id', 'seminar_id'],
        unique=True,
        postgresql_where=sa.text("status != 'cancelled'"),
        sqlite_where=sa.text("status != 'cancelled'")
    )

    # Attendance
    op.create_table(
        'seminar_attendance',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('registration_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('session_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('seminar_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('is_makeup', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('credits_awarded', sa.Numeric(5, 2), nullable=False, server_default='2'),
        sa.Column('check_in_method', sa.String(20), nullable=False, server_default='manual'),
        sa.Column('checked_in_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('checked_in_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['registration_id'], ['seminar_registrations.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['session_id'], ['seminar_sessions.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['seminar_id'], ['seminars.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['checked_in_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('registration_id', 'session_id', name='uq_seminar_attendance_registration_session')
    )
    op.create_index(op.f('ix_seminar_attendance_registration_id'), 'seminar_attendance', ['registration_id'])
    op.create_index(op.f('ix_seminar_attendance_session_id'), 'seminar_attendance', ['session_id'])
    op.create_index(op.f('ix_seminar_attendance_user_id'), 'seminar_attendance', ['user_id'])

    # Reminder claims
    op.create_table(
        'session_reminders',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('session_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('registration_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['seminar_sessions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['registration_id'], ['seminar_registrations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('session_id', 'registration_id', name='uq_session_reminders_session_registration')
    )

    # Makeup requests
    op.create_table(
        'seminar_makeup_requests',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('registration_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('seminar_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('missed_session_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('requested_session_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(50), nullable=False, server_default='pending'),
        sa.Column('reviewed_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('denial_reason', sa.Text(), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['registration_id'], ['seminar_registrations.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['seminar_id'], ['seminars.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['missed_session_id'], ['seminar_sessions.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['requested_session_id'], ['seminar_sessions.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['reviewed_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_seminar_makeup_requests_registration_id'), 'seminar_makeup_requests', ['registration_id'])
    op.create_index(op.f('ix_seminar_makeup_requests_user_id'), 'seminar_makeup_requests', ['user_id'])
    op.create_index(op.f('ix_seminar_makeup_requests_seminar_id'), 'seminar_makeup_requests', ['seminar_id'])
    op.create_index(op.f('ix_seminar_makeup_requests_status'), 'seminar_makeup_requests', ['status'])
    op.create_index(
        'uq_makeup_requests_outstanding',
        'seminar_makeup_requests',
        ['registration_id'],
        unique=True,
        postgresql_where=sa.text("status IN ('pending', 'approved')"),
        sqlite_where=sa.text("status IN ('pending', 'approved')")
    )

    # CE credit ledger
    op.create_table(
        'ce_ledger',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('event_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('seminar_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('session_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('credits', sa.Numeric(6, 2), nullable=False),
        sa.Column('source', sa.String(100), nullable=False),
        sa.Column('transaction_type', sa.String(50), nullable=False, server_default='earned'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('awarded_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['seminar_id'], ['seminars.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['session_id'], ['seminar_sessions.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_ce_ledger_user_id'), 'ce_ledger', ['user_id'])
    op.create_index(op.f('ix_ce_ledger_event_id'), 'ce_ledger', ['event_id'])
    op.create_index(op.f('ix_ce_ledger_seminar_id'), 'ce_ledger', ['seminar_id'])
    op.create_index(op.f('ix_ce_ledger_awarded_at'), 'ce_ledger', ['awarded_at'])

    # Certificates
    op.create_table(
        'certificates',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('certificate_code', sa.String(50), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('seminar_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('period', sa.String(20), nullable=True),
        sa.Column('year', sa.Integer(), nullable=True),
        sa.Column('sessions_attended', sa.Integer(), nullable=True),
        sa.Column('event_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('attendee_name', sa.String(255), nullable=False),
        sa.Column('program_title', sa.String(255), nullable=True),
        sa.Column('ce_credits', sa.Numeric(6, 2), nullable=True),
        sa.Column('pdf_url', sa.String(500), nullable=True),
        sa.Column('generated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['seminar_id'], ['seminars.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('certificate_code'),
        sa.UniqueConstraint('user_id', 'seminar_id', 'period', 'year', name='uq_certificates_seminar_period'),
        sa.UniqueConstraint('user_id', 'event_id', name='uq_certificates_event')
    )
    op.create_index(op.f('ix_certificates_certificate_code'), 'certificates', ['certificate_code'])
    op.create_index(op.f('ix_certificates_user_id'), 'certificates', ['user_id'])

    # Activity logs
    op.create_table(
        'activity_logs',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('actor_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('action', sa.String(100), nullable=False),
        sa.Column('resource_type', sa.String(50), nullable=True),
        sa.Column('resource_id', sa.String(64), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['actor_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_activity_logs_actor_id'), 'activity_logs', ['actor_id'])
    op.create_index(op.f('ix_activity_logs_action'), 'activity_logs', ['action'])


def downgrade():
    op.drop_table('activity_logs')
    op.drop_table('certificates')
    op.drop_table('ce_ledger')
    op.drop_index('uq_makeup_requests_outstanding', table_name='seminar_makeup_requests')
    op.drop_table('seminar_makeup_requests')
    op.drop_table('session_reminders')
    op.drop_table('seminar_attendance')
    op.drop_index('uq_seminar_registrations_user_seminar', table_name='seminar_registrations')
    op.drop_table('seminar_registrations')
    op.drop_table('seminar_sessions')
    op.drop_table('seminars')
    op.drop_table('users')
