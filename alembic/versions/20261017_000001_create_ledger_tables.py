"""create ledger tables

Revision ID: 20261017_000001
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261017_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _amount(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.Numeric(78, 0), nullable=nullable)


def _event_ref() -> list[sa.Column]:
    return [
        sa.Column('chain_id', sa.Integer(), nullable=False),
        sa.Column('tx_hash', sa.String(66), nullable=False),
        sa.Column('log_index', sa.Integer(), nullable=False),
        sa.Column('block_number', sa.BigInteger(), nullable=False),
    ]


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Create checkpoint, idempotency and ledger tables."""
    op.create_table(
        'sync_checkpoints',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('chain_id', sa.Integer(), nullable=False),
        sa.Column('contract_address', sa.String(42), nullable=False),
        sa.Column('contract_kind', sa.String(32), nullable=False),
        sa.Column('last_block', sa.BigInteger(), nullable=False),
        sa.Column('last_sync_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(16), nullable=False),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('error_count', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('chain_id', 'contract_address', name='uq_sync_checkpoint_contract'),
    )
    op.create_index('ix_sync_checkpoints_chain_id', 'sync_checkpoints', ['chain_id'])

    op.create_table(
        'processed_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_event_ref(),
        sa.Column('contract_address', sa.String(42), nullable=False),
        sa.Column('contract_kind', sa.String(32), nullable=False),
        sa.Column('event_name', sa.String(64), nullable=False),
        sa.Column('status', sa.String(16), nullable=False),
        sa.Column('detail', sa.Text(), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tx_hash', 'log_index', 'chain_id', name='uq_processed_event_log'),
    )
    op.create_index('ix_processed_events_chain_id', 'processed_events', ['chain_id'])
    op.create_index('ix_processed_events_contract_address', 'processed_events', ['contract_address'])

    # Staking
    op.create_table(
        'stakes',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('chain_id', sa.Integer(), nullable=False),
        sa.Column('pool_kind', sa.String(16), nullable=False),
        sa.Column('pool_address', sa.String(42), nullable=False),
        sa.Column('fundraiser_id', sa.BigInteger(), nullable=True),
        sa.Column('staker', sa.String(42), nullable=False),
        _amount('principal'),
        sa.Column('dao_share', sa.Integer(), nullable=False),
        sa.Column('staker_share', sa.Integer(), nullable=False),
        sa.Column('platform_share', sa.Integer(), nullable=False),
        _amount('pending_yield'),
        _amount('claimed_yield'),
        _amount('pending_reward'),
        _amount('claimed_reward'),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('staked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('unstaked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('first_tx_hash', sa.String(66), nullable=True),
        sa.Column('last_block', sa.BigInteger(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('chain_id', 'pool_address', 'staker', name='uq_stake_pool_staker'),
    )
    op.create_index('ix_stakes_chain_id', 'stakes', ['chain_id'])
    op.create_index('ix_stakes_pool_kind', 'stakes', ['pool_kind'])
    op.create_index('ix_stakes_pool_address', 'stakes', ['pool_address'])
    op.create_index('ix_stakes_staker', 'stakes', ['staker'])

    op.create_table(
        'pool_harvests',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_event_ref(),
        sa.Column('pool_kind', sa.String(16), nullable=False),
        sa.Column('pool_address', sa.String(42), nullable=False),
        sa.Column('fundraiser_id', sa.BigInteger(), nullable=True),
        _amount('total_yield'),
        _amount('dao_amount'),
        _amount('staker_amount'),
        _amount('platform_amount'),
        _amount('distributed_amount'),
        _amount('retained_amount'),
        sa.Column('recipients', sa.Integer(), nullable=False),
        sa.Column('harvested_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tx_hash', 'log_index', 'chain_id', name='uq_pool_harvest_log'),
    )
    op.create_index('ix_pool_harvests_chain_id', 'pool_harvests', ['chain_id'])
    op.create_index('ix_pool_harvests_pool_address', 'pool_harvests', ['pool_address'])

    op.create_table(
        'yield_harvest_records',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_event_ref(),
        sa.Column('stake_id', sa.Integer(), nullable=False),
        sa.Column('pool_harvest_id', sa.Integer(), nullable=False),
        _amount('principal_at_harvest'),
        _amount('total_yield'),
        _amount('dao_amount'),
        _amount('staker_amount'),
        _amount('platform_amount'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['stake_id'], ['stakes.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['pool_harvest_id'], ['pool_harvests.id'], ondelete='CASCADE'),
        sa.UniqueConstraint(
            'stake_id', 'tx_hash', 'log_index', 'chain_id', name='uq_yield_harvest_stake_log'
        ),
    )
    op.create_index('ix_yield_harvest_records_chain_id', 'yield_harvest_records', ['chain_id'])
    op.create_index('ix_yield_harvest_records_stake_id', 'yield_harvest_records', ['stake_id'])
    op.create_index(
        'ix_yield_harvest_records_pool_harvest_id', 'yield_harvest_records', ['pool_harvest_id']
    )

    op.create_table(
        'pool_stats',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('chain_id', sa.Integer(), nullable=False),
        sa.Column('pool_kind', sa.String(16), nullable=False),
        sa.Column('pool_address', sa.String(42), nullable=False),
        _amount('total_staked_principal'),
        sa.Column('stakers_count', sa.Integer(), nullable=False),
        _amount('total_yield_harvested'),
        _amount('total_yield_distributed'),
        _amount('total_yield_retained'),
        _amount('total_yield_claimed'),
        sa.Column('last_harvest_block', sa.BigInteger(), nullable=True),
        sa.Column('last_harvest_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('chain_id', 'pool_address', name='uq_pool_stats_pool'),
    )

    # Treasury
    op.create_table(
        'platform_fees',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_event_ref(),
        sa.Column('treasury_address', sa.String(42), nullable=False),
        sa.Column('source_contract', sa.String(42), nullable=False),
        sa.Column('source_type', sa.String(32), nullable=False),
        sa.Column('source_label', sa.String(128), nullable=False),
        _amount('amount'),
        sa.Column('is_staked', sa.Boolean(), nullable=False),
        sa.Column('staked_tx_hash', sa.String(66), nullable=True),
        sa.Column('staked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tx_hash', 'log_index', 'chain_id', name='uq_platform_fee_log'),
    )
    op.create_index('ix_platform_fees_chain_id', 'platform_fees', ['chain_id'])
    op.create_index('ix_platform_fees_treasury_address', 'platform_fees', ['treasury_address'])

    op.create_table(
        'fee_stakes',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_event_ref(),
        sa.Column('treasury_address', sa.String(42), nullable=False),
        _amount('amount'),
        _amount('endowment_amount'),
        _amount('operational_amount'),
        sa.Column('fees_marked', sa.Integer(), nullable=False),
        sa.Column('staked_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tx_hash', 'log_index', 'chain_id', name='uq_fee_stake_log'),
    )
    op.create_index('ix_fee_stakes_chain_id', 'fee_stakes', ['chain_id'])
    op.create_index('ix_fee_stakes_treasury_address', 'fee_stakes', ['treasury_address'])

    op.create_table(
        'treasury_stats',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('chain_id', sa.Integer(), nullable=False),
        sa.Column('treasury_address', sa.String(42), nullable=False),
        _amount('total_fees_collected'),
        _amount('pending_fees_to_stake'),
        _amount('total_fees_staked'),
        _amount('operational_funds'),
        _amount('endowment_principal'),
        _amount('endowment_lifetime_yield'),
        _amount('total_yield_distributed'),
        sa.Column('last_fee_staked_block', sa.BigInteger(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('chain_id', 'treasury_address', name='uq_treasury_stats_treasury'),
    )

    # Wealth-building
    op.create_table(
        'wealth_donations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_event_ref(),
        sa.Column('contract_address', sa.String(42), nullable=False),
        sa.Column('donor', sa.String(42), nullable=False),
        sa.Column('fundraiser_id', sa.BigInteger(), nullable=False),
        _amount('total_amount'),
        _amount('direct_amount'),
        _amount('endowment_amount'),
        _amount('platform_fee'),
        sa.Column('donated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tx_hash', 'log_index', 'chain_id', name='uq_wealth_donation_log'),
    )
    op.create_index('ix_wealth_donations_chain_id', 'wealth_donations', ['chain_id'])
    op.create_index('ix_wealth_donations_contract_address', 'wealth_donations', ['contract_address'])
    op.create_index('ix_wealth_donations_donor', 'wealth_donations', ['donor'])
    op.create_index('ix_wealth_donations_fundraiser_id', 'wealth_donations', ['fundraiser_id'])

    op.create_table(
        'endowment_records',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('chain_id', sa.Integer(), nullable=False),
        sa.Column('contract_address', sa.String(42), nullable=False),
        sa.Column('donor', sa.String(42), nullable=False),
        sa.Column('fundraiser_id', sa.BigInteger(), nullable=False),
        _amount('principal'),
        _amount('lifetime_yield'),
        _amount('cause_yield_paid'),
        _amount('donor_yield_earned'),
        _amount('donor_stock_value'),
        sa.Column('donations_count', sa.Integer(), nullable=False),
        sa.Column('last_donation_block', sa.BigInteger(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'chain_id', 'contract_address', 'donor', 'fundraiser_id',
            name='uq_endowment_donor_fundraiser',
        ),
    )
    op.create_index('ix_endowment_records_chain_id', 'endowment_records', ['chain_id'])
    op.create_index('ix_endowment_records_donor', 'endowment_records', ['donor'])
    op.create_index('ix_endowment_records_fundraiser_id', 'endowment_records', ['fundraiser_id'])

    op.create_table(
        'endowment_harvests',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_event_ref(),
        sa.Column('endowment_id', sa.Integer(), nullable=False),
        _amount('total_yield'),
        _amount('cause_amount'),
        _amount('donor_amount'),
        _amount('retained_amount'),
        sa.Column('harvested_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['endowment_id'], ['endowment_records.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('tx_hash', 'log_index', 'chain_id', name='uq_endowment_harvest_log'),
    )
    op.create_index('ix_endowment_harvests_chain_id', 'endowment_harvests', ['chain_id'])
    op.create_index('ix_endowment_harvests_endowment_id', 'endowment_harvests', ['endowment_id'])

    op.create_table(
        'fundraiser_endowments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('chain_id', sa.Integer(), nullable=False),
        sa.Column('contract_address', sa.String(42), nullable=False),
        sa.Column('fundraiser_id', sa.BigInteger(), nullable=False),
        _amount('raised_amount'),
        _amount('endowment_principal'),
        _amount('endowment_yield'),
        _amount('cause_yield_paid'),
        _amount('platform_fees'),
        sa.Column('donors_count', sa.Integer(), nullable=False),
        sa.Column('donations_count', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'chain_id', 'contract_address', 'fundraiser_id', name='uq_fundraiser_endowment'
        ),
    )

    op.create_table(
        'stock_purchases',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_event_ref(),
        sa.Column('contract_address', sa.String(42), nullable=False),
        sa.Column('donor', sa.String(42), nullable=False),
        sa.Column('stock_token', sa.String(42), nullable=False),
        _amount('usdc_amount'),
        _amount('stock_amount'),
        sa.Column('purchased_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tx_hash', 'log_index', 'chain_id', name='uq_stock_purchase_log'),
    )
    op.create_index('ix_stock_purchases_chain_id', 'stock_purchases', ['chain_id'])
    op.create_index('ix_stock_purchases_donor', 'stock_purchases', ['donor'])

    op.create_table(
        'stock_portfolios',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('chain_id', sa.Integer(), nullable=False),
        sa.Column('contract_address', sa.String(42), nullable=False),
        sa.Column('donor', sa.String(42), nullable=False),
        sa.Column('stock_token', sa.String(42), nullable=False),
        _amount('stock_balance'),
        _amount('cost_basis'),
        sa.Column('purchases_count', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'chain_id', 'contract_address', 'donor', 'stock_token',
            name='uq_stock_portfolio_holding',
        ),
    )
    op.create_index('ix_stock_portfolios_donor', 'stock_portfolios', ['donor'])

    # Vesting
    op.create_table(
        'vesting_schedules',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('chain_id', sa.Integer(), nullable=False),
        sa.Column('contract_address', sa.String(42), nullable=False),
        sa.Column('schedule_id', sa.BigInteger(), nullable=False),
        sa.Column('recipient', sa.String(42), nullable=False),
        sa.Column('vesting_type', sa.String(32), nullable=False),
        _amount('total_amount'),
        _amount('released_amount'),
        sa.Column('start_time', sa.BigInteger(), nullable=False),
        sa.Column('duration', sa.BigInteger(), nullable=False),
        sa.Column('is_fully_vested', sa.Boolean(), nullable=False),
        sa.Column('is_fully_claimed', sa.Boolean(), nullable=False),
        sa.Column('tx_hash', sa.String(66), nullable=False),
        sa.Column('block_number', sa.BigInteger(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'chain_id', 'contract_address', 'schedule_id', name='uq_vesting_schedule'
        ),
    )
    op.create_index('ix_vesting_schedules_chain_id', 'vesting_schedules', ['chain_id'])
    op.create_index('ix_vesting_schedules_recipient', 'vesting_schedules', ['recipient'])

    op.create_table(
        'vesting_claims',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_event_ref(),
        sa.Column('schedule_pk', sa.Integer(), nullable=False),
        sa.Column('recipient', sa.String(42), nullable=False),
        _amount('amount'),
        sa.Column('claimed_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['schedule_pk'], ['vesting_schedules.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('tx_hash', 'log_index', 'chain_id', name='uq_vesting_claim_log'),
    )
    op.create_index('ix_vesting_claims_chain_id', 'vesting_claims', ['chain_id'])
    op.create_index('ix_vesting_claims_schedule_pk', 'vesting_claims', ['schedule_pk'])

    op.create_table(
        'token_burns',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        *_event_ref(),
        sa.Column('contract_address', sa.String(42), nullable=False),
        sa.Column('account', sa.String(42), nullable=False),
        _amount('amount'),
        sa.Column('burned_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tx_hash', 'log_index', 'chain_id', name='uq_token_burn_log'),
    )
    op.create_index('ix_token_burns_chain_id', 'token_burns', ['chain_id'])
    op.create_index('ix_token_burns_account', 'token_burns', ['account'])


def downgrade() -> None:
    """Drop all ledger tables; indexes go with their tables."""
    for table in (
        'token_burns',
        'vesting_claims',
        'vesting_schedules',
        'stock_portfolios',
        'stock_purchases',
        'fundraiser_endowments',
        'endowment_harvests',
        'endowment_records',
        'wealth_donations',
        'treasury_stats',
        'fee_stakes',
        'platform_fees',
        'pool_stats',
        'yield_harvest_records',
        'pool_harvests',
        'stakes',
        'processed_events',
        'sync_checkpoints',
    ):
        op.drop_table(table)
