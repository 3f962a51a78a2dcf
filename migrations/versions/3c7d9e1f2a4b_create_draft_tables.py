"""create user and draft tables

Revision ID: 3c7d9e1f2a4b
Revises:
Create Date: 2026-01-12 10:20:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c7d9e1f2a4b'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.String(length=256), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_user_username', 'user', ['username'], unique=True)

    op.create_table(
        'draft_session',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('room_code', sa.String(length=4), nullable=False),
        sa.Column('host_id', sa.String(length=64), nullable=False),
        sa.Column('cube_id', sa.String(length=128), nullable=False),
        sa.Column('game_id', sa.String(length=32), nullable=False),
        sa.Column('mode', sa.String(length=32), nullable=False),
        sa.Column('player_count', sa.Integer(), nullable=False),
        sa.Column('cards_per_player', sa.Integer(), nullable=False),
        sa.Column('pack_size', sa.Integer(), nullable=False),
        sa.Column('burned_per_pack', sa.Integer(), nullable=False),
        sa.Column('timer_seconds', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('paused', sa.Boolean(), nullable=False),
        sa.Column('current_pack', sa.Integer(), nullable=False),
        sa.Column('current_pick', sa.Integer(), nullable=False),
        sa.Column('direction', sa.String(length=8), nullable=False),
        sa.Column('pack_data', sa.Text(), nullable=True),
        sa.Column('pick_started_at', sa.Float(), nullable=True),
        sa.Column('paused_at', sa.Float(), nullable=True),
        sa.Column('time_remaining_at_pause', sa.Integer(), nullable=True),
        sa.Column('resume_at', sa.Float(), nullable=True),
        sa.Column('created_at', sa.Float(), nullable=False),
        sa.Column('started_at', sa.Float(), nullable=True),
        sa.Column('completed_at', sa.Float(), nullable=True),
        sa.Column('current_grid', sa.Integer(), nullable=True),
        sa.Column('current_selector_seat', sa.Integer(), nullable=True),
        sa.Column('grid_data', sa.Text(), nullable=True),
        sa.Column('auction_state', sa.Text(), nullable=True),
        sa.Column('selection_started_at', sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_draft_session_room_code', 'draft_session', ['room_code'], unique=True)
    op.create_index('ix_draft_session_status', 'draft_session', ['status'], unique=False)

    op.create_table(
        'draft_player',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('seat_position', sa.Integer(), nullable=False),
        sa.Column('is_host', sa.Boolean(), nullable=False),
        sa.Column('is_bot', sa.Boolean(), nullable=False),
        sa.Column('is_connected', sa.Boolean(), nullable=True),
        sa.Column('current_hand', sa.Text(), nullable=True),
        sa.Column('pick_made', sa.Boolean(), nullable=False),
        sa.Column('last_seen_at', sa.Float(), nullable=True),
        sa.Column('bidding_points', sa.Integer(), nullable=False),
        sa.Column('cards_acquired_this_grid', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['draft_session.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('session_id', 'user_id', name='uq_draft_player_user'),
        sa.UniqueConstraint('session_id', 'seat_position', name='uq_draft_player_seat'),
    )
    op.create_index('ix_draft_player_session_id', 'draft_player', ['session_id'], unique=False)

    op.create_table(
        'draft_pick',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=False),
        sa.Column('player_id', sa.Integer(), nullable=False),
        sa.Column('card_id', sa.Integer(), nullable=False),
        sa.Column('pack_number', sa.Integer(), nullable=False),
        sa.Column('pick_number', sa.Integer(), nullable=False),
        sa.Column('pick_time_seconds', sa.Integer(), nullable=True),
        sa.Column('was_auto_pick', sa.Boolean(), nullable=False),
        sa.Column('picked_at', sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['draft_session.id']),
        sa.ForeignKeyConstraint(['player_id'], ['draft_player.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('session_id', 'card_id', name='uq_draft_pick_card'),
        sa.UniqueConstraint('session_id', 'player_id', 'pack_number', 'pick_number', name='uq_draft_pick_slot'),
    )
    op.create_index('ix_draft_pick_session_id', 'draft_pick', ['session_id'], unique=False)
    op.create_index('ix_draft_pick_player_id', 'draft_pick', ['player_id'], unique=False)

    op.create_table(
        'draft_burned_card',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=False),
        sa.Column('card_id', sa.Integer(), nullable=False),
        sa.Column('pack_number', sa.Integer(), nullable=False),
        sa.Column('burned_from_seat', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['session_id'], ['draft_session.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_draft_burned_card_session_id', 'draft_burned_card', ['session_id'], unique=False)

    op.create_table(
        'auction_bid',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=False),
        sa.Column('grid_number', sa.Integer(), nullable=False),
        sa.Column('card_id', sa.Integer(), nullable=False),
        sa.Column('player_id', sa.Integer(), nullable=False),
        sa.Column('bid_amount', sa.Integer(), nullable=True),
        sa.Column('is_pass', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['draft_session.id']),
        sa.ForeignKeyConstraint(['player_id'], ['draft_player.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_auction_bid_session_id', 'auction_bid', ['session_id'], unique=False)


def downgrade():
    op.drop_index('ix_auction_bid_session_id', table_name='auction_bid')
    op.drop_table('auction_bid')
    op.drop_index('ix_draft_burned_card_session_id', table_name='draft_burned_card')
    op.drop_table('draft_burned_card')
    op.drop_index('ix_draft_pick_player_id', table_name='draft_pick')
    op.drop_index('ix_draft_pick_session_id', table_name='draft_pick')
    op.drop_table('draft_pick')
    op.drop_index('ix_draft_player_session_id', table_name='draft_player')
    op.drop_table('draft_player')
    op.drop_index('ix_draft_session_status', table_name='draft_session')
    op.drop_index('ix_draft_session_room_code', table_name='draft_session')
    op.drop_table('draft_session')
    op.drop_index('ix_user_username', table_name='user')
    op.drop_table('user')
