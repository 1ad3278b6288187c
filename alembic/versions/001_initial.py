# alembic/versions/001_initial.py

"""Initial schema

Revision ID: 001
Revises: 
Create Date: 2026-10-16
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


plan_name = postgresql.ENUM('silver', 'gold', 'platinum', name='plan_name', create_type=False)
request_type = postgresql.ENUM('deposit', 'withdrawal', name='request_type', create_type=False)
history_type = postgresql.ENUM('deposit', 'withdrawal', 'investment', name='history_type', create_type=False)
request_status = postgresql.ENUM('pending', 'approved', 'rejected', name='request_status', create_type=False)
verification_status = postgresql.ENUM(
    'unverified', 'pending', 'verified', 'rejected', name='verification_status', create_type=False
)

ENUMS = (plan_name, request_type, history_type, request_status, verification_status)

MONEY = sa.Numeric(precision=18, scale=6)
RATE = sa.Numeric(precision=10, scale=4)


def upgrade():
    bind = op.get_bind()
    # Shared enum types are created once, up front
    for enum_type in ENUMS:
        enum_type.create(bind, checkfirst=True)

    # Plan catalog
    op.create_table('plans',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', plan_name, nullable=False),
        sa.Column('min_investment', MONEY, nullable=True),
        sa.Column('max_investment', MONEY, nullable=True),
        sa.Column('min_return_rate', RATE, nullable=True),
        sa.Column('max_return_rate', RATE, nullable=True),
        sa.Column('features', sa.JSON(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )
    op.create_index('ix_plans_name', 'plans', ['name'])

    # User directory
    op.create_table('users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('verification_status', verification_status, nullable=False, server_default='unverified'),
        sa.Column('trust_wallet_address', sa.String(length=128), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # Deposit / withdrawal requests
    op.create_table('requests',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('type', request_type, nullable=False),
        sa.Column('plan', plan_name, nullable=False),
        sa.Column('wallet_address', sa.String(length=128), nullable=False),
        sa.Column('wallet_tx_id', sa.String(length=256), nullable=True),
        sa.Column('transaction_image', sa.Text(), nullable=True),
        sa.Column('status', request_status, nullable=False, server_default='pending'),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('decided_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_requests_user_id', 'requests', ['user_id'])
    op.create_index('ix_requests_status_created', 'requests', ['status', 'created_at'])
    op.create_index('ix_requests_user_created', 'requests', ['user_id', 'created_at'])

    # Investment requests
    op.create_table('investment_requests',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('plan', plan_name, nullable=False),
        sa.Column('wallet_address', sa.String(length=128), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('status', request_status, nullable=False, server_default='pending'),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('decided_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_investment_requests_user_id', 'investment_requests', ['user_id'])
    op.create_index('ix_investment_requests_status_created', 'investment_requests', ['status', 'created_at'])

    # Portfolio aggregate
    op.create_table('portfolios',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('total_invested', MONEY, nullable=False, server_default='0'),
        sa.Column('current_value', MONEY, nullable=False, server_default='0'),
        sa.Column('total_returns', MONEY, nullable=False, server_default='0'),
        sa.Column('total_returns_percentage', MONEY, nullable=False, server_default='0'),
        sa.Column('referral_rewards', MONEY, nullable=False, server_default='0'),
        sa.Column('referral_amount', MONEY, nullable=False, server_default='0'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_portfolios_user_id', 'portfolios', ['user_id'], unique=True)

    # Per-plan buckets
    op.create_table('portfolio_plans',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('portfolio_id', sa.String(length=36), nullable=False),
        sa.Column('plan_name', plan_name, nullable=False),
        sa.Column('invested', MONEY, nullable=False, server_default='0'),
        sa.Column('current_value', MONEY, nullable=False, server_default='0'),
        sa.Column('returns', MONEY, nullable=False, server_default='0'),
        sa.Column('return_rate_min', RATE, nullable=True),
        sa.Column('return_rate_max', RATE, nullable=True),
        sa.Column('admin_return_rate', RATE, nullable=True),
        sa.Column('last_accrual_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['portfolio_id'], ['portfolios.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('portfolio_id', 'plan_name', name='uq_portfolio_plans_portfolio_plan')
    )
    op.create_index('ix_portfolio_plans_admin_rate', 'portfolio_plans', ['admin_return_rate'])

    # Price history (insert-only)
    op.create_table('portfolio_price_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('portfolio_plan_id', sa.Integer(), nullable=False),
        sa.Column('value', MONEY, nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['portfolio_plan_id'], ['portfolio_plans.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_portfolio_price_history_portfolio_plan_id', 'portfolio_price_history', ['portfolio_plan_id'])

    # History projection
    op.create_table('transaction_history',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('type', history_type, nullable=False),
        sa.Column('status', request_status, nullable=False, server_default='pending'),
        sa.Column('txn_req_id', sa.String(length=36), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('txn_req_id')
    )
    op.create_index('ix_transaction_history_user_id', 'transaction_history', ['user_id'])
    op.create_index('ix_transaction_history_status_created', 'transaction_history', ['status', 'created_at'])
    op.create_index('ix_transaction_history_user_created', 'transaction_history', ['user_id', 'created_at'])

    # Referrals
    op.create_table('referrals',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('referrer_id', sa.String(length=36), nullable=False),
        sa.Column('referred_id', sa.String(length=36), nullable=False),
        sa.Column('reward_expires_at', sa.DateTime(), nullable=False),
        sa.Column('reward_claimed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['referrer_id'], ['users.id']),
        sa.ForeignKeyConstraint(['referred_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('referred_id')
    )
    op.create_index('ix_referrals_referrer_id', 'referrals', ['referrer_id'])

    op.create_table('referral_transactions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('referrer_id', sa.String(length=36), nullable=False),
        sa.Column('referred_id', sa.String(length=36), nullable=False),
        sa.Column('referred_plan', plan_name, nullable=False),
        sa.Column('referred_deposit_amount', MONEY, nullable=False),
        sa.Column('reward_amount', MONEY, nullable=False),
        sa.Column('status', request_status, nullable=False, server_default='pending'),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('approved_by', sa.String(length=100), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('transaction_request_id', sa.String(length=36), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['referrer_id'], ['users.id']),
        sa.ForeignKeyConstraint(['referred_id'], ['users.id']),
        sa.ForeignKeyConstraint(['transaction_request_id'], ['requests.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_referral_transactions_referred_id', 'referral_transactions', ['referred_id'])
    op.create_index('ix_referral_transactions_referrer_status', 'referral_transactions', ['referrer_id', 'status'])
    op.create_index('ix_referral_transactions_status_created', 'referral_transactions', ['status', 'created_at'])

    # Notification inbox
    op.create_table('notifications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('audience', sa.String(length=10), nullable=False, server_default='user'),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        sa.Column('title', sa.String(length=200), nullable=True),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])


def downgrade():
    op.drop_table('notifications')
    op.drop_table('referral_transactions')
    op.drop_table('referrals')
    op.drop_table('transaction_history')
    op.drop_table('portfolio_price_history')
    op.drop_table('portfolio_plans')
    op.drop_table('portfolios')
    op.drop_table('investment_requests')
    op.drop_table('requests')
    op.drop_table('users')
    op.drop_table('plans')

    bind = op.get_bind()
    for enum_type in reversed(ENUMS):
        enum_type.drop(bind, checkfirst=True)
