"""Create matrix placement and commission tables.

Revision ID: 20260301_000001
Revises:
Create Date: 2026-03-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20260301_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create tiers, users, investments, matrix positions and commissions."""

    op.create_table(
        'membership_tiers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(50), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.Column('direct_referral_rate', sa.DECIMAL(5, 2), nullable=False, server_default='0'),
        sa.Column('level2_rate', sa.DECIMAL(5, 2), nullable=False, server_default='0'),
        sa.Column('level3_rate', sa.DECIMAL(5, 2), nullable=False, server_default='0'),
        sa.Column('max_commission_level', sa.Integer(), nullable=False, server_default='1', comment='Deepest matrix level this tier is paid for'),
        sa.Column('min_investment', sa.DECIMAL(18, 2), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sa.CheckConstraint('direct_referral_rate >= 0 AND direct_referral_rate <= 100', name='check_tier_direct_rate_range'),
        sa.CheckConstraint('level2_rate >= 0 AND level2_rate <= 100', name='check_tier_level2_rate_range'),
        sa.CheckConstraint('level3_rate >= 0 AND level3_rate <= 100', name='check_tier_level3_rate_range'),
        sa.CheckConstraint('max_commission_level >= 0 AND max_commission_level <= 3', name='check_tier_max_commission_level_range'),
        sa.CheckConstraint('min_investment >= 0', name='check_tier_min_investment_non_negative'),
    )
    op.create_index('ix_membership_tiers_order', 'membership_tiers', ['order'])

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('username', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('referrer_id', sa.Integer(), nullable=True),
        sa.Column('membership_tier_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('downline_count', sa.Integer(), nullable=False, server_default='0', comment='Active positions within the 3-level matrix window'),
        sa.Column('downline_volume', sa.DECIMAL(18, 2), nullable=False, server_default='0', comment='Eligible investment volume within the 3-level matrix window'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['referrer_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['membership_tier_id'], ['membership_tiers.id'], ondelete='SET NULL'),
        sa.CheckConstraint('referrer_id IS NULL OR referrer_id <> id', name='check_user_not_self_referred'),
        sa.CheckConstraint('downline_count >= 0', name='check_user_downline_count_non_negative'),
        sa.CheckConstraint('downline_volume >= 0', name='check_user_downline_volume_non_negative'),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_referrer_id', 'users', ['referrer_id'])
    op.create_index('ix_users_membership_tier_id', 'users', ['membership_tier_id'])

    op.create_table(
        'investments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.DECIMAL(18, 2), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.CheckConstraint('amount >= 0', name='check_investment_amount_non_negative'),
    )
    op.create_index('ix_investments_user_id', 'investments', ['user_id'])
    op.create_index('ix_investments_status', 'investments', ['status'])

    op.create_table(
        'matrix_positions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('sponsor_id', sa.Integer(), nullable=True, comment='Placement parent, NULL for network roots'),
        sa.Column('level', sa.Integer(), nullable=False, comment='Absolute depth, 0 = root'),
        sa.Column('position', sa.Integer(), nullable=False, comment='Slot 1-3 under the sponsor'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('placement_type', sa.String(20), nullable=False, server_default='direct'),
        sa.Column('spillover_from_id', sa.Integer(), nullable=True),
        sa.Column('placed_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('deactivated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['sponsor_id'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['spillover_from_id'], ['users.id'], ondelete='SET NULL'),
        sa.CheckConstraint('position >= 1 AND position <= 3', name='check_matrix_position_slot_range'),
        sa.CheckConstraint(
            '(sponsor_id IS NULL AND level = 0) OR (sponsor_id IS NOT NULL AND level >= 1)',
            name='check_matrix_position_root_level'
        ),
        sa.CheckConstraint('sponsor_id IS NULL OR sponsor_id <> user_id', name='check_matrix_position_not_self_sponsored'),
    )
    op.create_index('ix_matrix_positions_user_id', 'matrix_positions', ['user_id'])
    op.create_index('idx_matrix_positions_sponsor_level', 'matrix_positions', ['sponsor_id', 'level'])
    op.create_index('idx_matrix_positions_spillover_from', 'matrix_positions', ['spillover_from_id'])

    # One active position per user, three active slots per sponsor
    op.create_index(
        'uq_matrix_positions_active_user',
        'matrix_positions',
        ['user_id'],
        unique=True,
        postgresql_where=sa.text('is_active'),
        sqlite_where=sa.text('is_active = 1'),
    )
    op.create_index(
        'uq_matrix_positions_active_slot',
        'matrix_positions',
        ['sponsor_id', 'level', 'position'],
        unique=True,
        postgresql_where=sa.text('is_active'),
        sqlite_where=sa.text('is_active = 1'),
    )

    op.create_table(
        'commission_records',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('referrer_id', sa.Integer(), nullable=False),
        sa.Column('referee_id', sa.Integer(), nullable=False),
        sa.Column('investment_id', sa.Integer(), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('amount', sa.DECIMAL(18, 2), nullable=False),
        sa.Column('percentage_applied', sa.DECIMAL(5, 2), nullable=False, comment='Tier rate snapshot'),
        sa.Column('position_multiplier', sa.DECIMAL(4, 2), nullable=False),
        sa.Column('matrix_position', sa.Integer(), nullable=False, comment="Investor's slot number"),
        sa.Column('tier_name', sa.String(50), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('commission_type', sa.String(20), nullable=False, server_default='matrix'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['referrer_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['referee_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['investment_id'], ['investments.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('investment_id', 'referrer_id', 'level', name='uq_commission_investment_referrer_level'),
        sa.CheckConstraint('level >= 1 AND level <= 3', name='check_commission_level_range'),
        sa.CheckConstraint('amount > 0', name='check_commission_amount_positive'),
    )
    op.create_index('ix_commission_records_referrer_id', 'commission_records', ['referrer_id'])
    op.create_index('ix_commission_records_referee_id', 'commission_records', ['referee_id'])
    op.create_index('ix_commission_records_investment_id', 'commission_records', ['investment_id'])
    op.create_index('idx_commission_referrer_status', 'commission_records', ['referrer_id', 'status'])


def downgrade() -> None:
    """Drop matrix tables."""
    op.drop_table('commission_records')
    op.drop_index('uq_matrix_positions_active_slot', table_name='matrix_positions')
    op.drop_index('uq_matrix_positions_active_user', table_name='matrix_positions')
    op.drop_table('matrix_positions')
    op.drop_table('investments')
    op.drop_table('users')
    op.drop_table('membership_tiers')
