"""Create paper trading tables

Revision ID: 0001_paper_trading
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_paper_trading'
down_revision = None
branch_labels = None
depends_on = None

# Enum labels are the Python member names, matching SQLEnum on the models
ORDER_TYPE = sa.Enum('MARKET', 'LIMIT', 'STOP', name='ordertype')
ORDER_SIDE = sa.Enum('BUY', 'SELL', name='orderside')
ORDER_STATUS = sa.Enum('PENDING', 'FILLED', 'PARTIAL', 'CANCELED', 'REJECTED', name='orderstatus')


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]


def upgrade() -> None:
    # Create assets table
    op.create_table('assets',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_timestamps(),
        sa.Column('symbol', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('current_price', sa.Float(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_assets_id'), 'assets', ['id'], unique=False)
    op.create_index(op.f('ix_assets_symbol'), 'assets', ['symbol'], unique=True)

    # Create paper trading accounts table
    op.create_table('paper_trading_accounts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_timestamps(),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('cash_balance', sa.Float(), nullable=False),
        sa.Column('initial_balance', sa.Float(), nullable=False),
        sa.Column('total_equity', sa.Float(), nullable=False),
        sa.Column('total_pnl', sa.Float(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_paper_trading_accounts_id'), 'paper_trading_accounts', ['id'], unique=False)
    op.create_index(op.f('ix_paper_trading_accounts_user_id'), 'paper_trading_accounts', ['user_id'], unique=False)
    op.create_index(op.f('ix_paper_trading_accounts_is_active'), 'paper_trading_accounts', ['is_active'], unique=False)

    # Create paper orders table
    op.create_table('paper_orders',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_timestamps(),
        sa.Column('paper_account_id', sa.Integer(), nullable=False),
        sa.Column('asset_id', sa.Integer(), nullable=False),
        sa.Column('order_type', ORDER_TYPE, nullable=False),
        sa.Column('side', ORDER_SIDE, nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('status', ORDER_STATUS, nullable=False),
        sa.Column('limit_price', sa.Float(), nullable=True),
        sa.Column('stop_price', sa.Float(), nullable=True),
        sa.Column('filled_quantity', sa.Integer(), nullable=False),
        sa.Column('filled_price', sa.Float(), nullable=True),
        sa.Column('filled_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['paper_account_id'], ['paper_trading_accounts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['asset_id'], ['assets.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_paper_orders_id'), 'paper_orders', ['id'], unique=False)
    op.create_index(op.f('ix_paper_orders_paper_account_id'), 'paper_orders', ['paper_account_id'], unique=False)
    op.create_index(op.f('ix_paper_orders_asset_id'), 'paper_orders', ['asset_id'], unique=False)
    op.create_index(op.f('ix_paper_orders_status'), 'paper_orders', ['status'], unique=False)

    # Create paper positions table, one row per (account, asset)
    op.create_table('paper_positions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_timestamps(),
        sa.Column('paper_account_id', sa.Integer(), nullable=False),
        sa.Column('asset_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('average_cost', sa.Float(), nullable=False),
        sa.Column('current_price', sa.Float(), nullable=True),
        sa.Column('multiplier', sa.Integer(), server_default='1', nullable=False),
        sa.Column('unrealized_pnl', sa.Float(), nullable=False),
        sa.Column('realized_pnl', sa.Float(), nullable=False),
        sa.Column('last_updated', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['paper_account_id'], ['paper_trading_accounts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['asset_id'], ['assets.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('paper_account_id', 'asset_id', name='uq_paper_positions_account_asset')
    )
    op.create_index(op.f('ix_paper_positions_id'), 'paper_positions', ['id'], unique=False)
    op.create_index(op.f('ix_paper_positions_paper_account_id'), 'paper_positions', ['paper_account_id'], unique=False)
    op.create_index(op.f('ix_paper_positions_asset_id'), 'paper_positions', ['asset_id'], unique=False)


def downgrade() -> None:
    op.drop_table('paper_positions')
    op.drop_table('paper_orders')
    op.drop_table('paper_trading_accounts')
    op.drop_table('assets')

    bind = op.get_bind()
    for enum_type in (ORDER_STATUS, ORDER_SIDE, ORDER_TYPE):
        enum_type.drop(bind, checkfirst=True)
