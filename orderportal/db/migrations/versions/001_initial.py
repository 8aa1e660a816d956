"""Initial schema: users, orders, status history, alert settings, system logs

Revision ID: 001_initial
Revises:
Create Date: 2025-11-03

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=100), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('company_name', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=True, server_default='client'),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username'),
    )
    op.create_index('ix_users_id', 'users', ['id'])

    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('po_number', sa.String(length=100), nullable=False),
        sa.Column('date_required', sa.Date(), nullable=False),
        sa.Column('client_name', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=False, server_default='pending'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('last_checked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_status_change_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'po_number', name='uq_orders_user_po'),
        sa.CheckConstraint(
            "status IN ('pending', 'processing', 'shipped', 'received')",
            name='ck_orders_status',
        ),
    )
    op.create_index('ix_orders_id', 'orders', ['id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_date_required', 'orders', ['date_required'])
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])

    op.create_table(
        'status_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('old_status', sa.String(length=50), nullable=True),
        sa.Column('new_status', sa.String(length=50), nullable=False),
        sa.Column('changed_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_status_history_id', 'status_history', ['id'])
    op.create_index('ix_status_history_order_changed', 'status_history', ['order_id', 'changed_at'])

    op.create_table(
        'email_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('setting_key', sa.String(length=100), nullable=False),
        sa.Column('setting_value', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('setting_key'),
    )
    op.create_index('ix_email_settings_id', 'email_settings', ['id'])

    op.create_table(
        'alert_recipients',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_index('ix_alert_recipients_id', 'alert_recipients', ['id'])

    op.create_table(
        'system_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('log_type', sa.String(length=50), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('created_by', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_system_logs_id', 'system_logs', ['id'])
    op.create_index('ix_system_logs_log_type', 'system_logs', ['log_type'])
    op.create_index('ix_system_logs_created_at', 'system_logs', ['created_at'])

    # Default alert/scheduling settings
    settings_table = sa.table(
        'email_settings',
        sa.column('setting_key', sa.String),
        sa.column('setting_value', sa.Text),
    )
    op.bulk_insert(settings_table, [
        {'setting_key': 'alert_days_threshold', 'setting_value': '5'},
        {'setting_key': 'check_frequency_minutes', 'setting_value': '5'},
        {'setting_key': 'daily_check_times', 'setting_value': '["09:00", "17:00"]'},
    ])


def downgrade() -> None:
    op.drop_index('ix_system_logs_created_at', table_name='system_logs')
    op.drop_index('ix_system_logs_log_type', table_name='system_logs')
    op.drop_index('ix_system_logs_id', table_name='system_logs')
    op.drop_table('system_logs')

    op.drop_index('ix_alert_recipients_id', table_name='alert_recipients')
    op.drop_table('alert_recipients')

    op.drop_index('ix_email_settings_id', table_name='email_settings')
    op.drop_table('email_settings')

    op.drop_index('ix_status_history_order_changed', table_name='status_history')
    op.drop_index('ix_status_history_id', table_name='status_history')
    op.drop_table('status_history')

    op.drop_index('ix_orders_user_id', table_name='orders')
    op.drop_index('ix_orders_date_required', table_name='orders')
    op.drop_index('ix_orders_status', table_name='orders')
    op.drop_index('ix_orders_id', table_name='orders')
    op.drop_table('orders')

    op.drop_index('ix_users_id', table_name='users')
    op.drop_table('users')
