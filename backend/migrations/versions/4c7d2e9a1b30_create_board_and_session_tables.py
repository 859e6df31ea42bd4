"""create board catalog, session, player and move tables

Revision ID: 4c7d2e9a1b30
Revises:
Create Date: 2026-10-18 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c7d2e9a1b30'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.String(length=256), nullable=False),
    )
    op.create_index('ix_user_username', 'user', ['username'], unique=True)

    op.create_table(
        'board_template',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=128), nullable=False, unique=True),
        sa.Column('grid_size', sa.Integer(), nullable=False),
        sa.Column('initial_layout', sa.Text(), nullable=False),
        sa.Column('puzzle_mode', sa.String(length=32), nullable=False),
        sa.Column('win_condition', sa.Text(), nullable=False),
        sa.Column('difficulty', sa.String(length=16), nullable=False),
        sa.Column('supported_modes', sa.Text(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
    )

    op.create_table(
        'game_session',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('mode', sa.String(length=16), nullable=False),
        sa.Column('puzzle_mode', sa.String(length=32), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('outcome', sa.String(length=16), nullable=True),
        sa.Column('winner_user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        sa.Column('board_id', sa.Integer(), sa.ForeignKey('board_template.id'), nullable=True),
        sa.Column('board_state', sa.Text(), nullable=False),
        sa.Column('win_condition', sa.Text(), nullable=False),
        sa.Column('matchmaking_type', sa.String(length=16), nullable=True),
        sa.Column('invite_code', sa.String(length=12), nullable=True),
        sa.Column('is_live_match', sa.Boolean(), nullable=False),
        sa.Column('turn_timer_seconds', sa.Integer(), nullable=True),
        sa.Column('max_players', sa.Integer(), nullable=False),
        sa.Column('current_turn_index', sa.Integer(), nullable=False),
        sa.Column('current_turn_started_at', sa.Float(), nullable=True),
        sa.Column('turns_remaining', sa.Integer(), nullable=True),
        sa.Column('invalid_attempts', sa.Integer(), nullable=False),
        sa.Column('consecutive_timeouts', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.Float(), nullable=True),
        sa.Column('completed_at', sa.Float(), nullable=True),
    )
    op.create_index('ix_game_session_status', 'game_session', ['status'])
    op.create_index('ix_game_session_invite_code', 'game_session', ['invite_code'], unique=True)

    op.create_table(
        'session_player',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('session_id', sa.Integer(), sa.ForeignKey('game_session.id'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('seat', sa.Integer(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('is_current_turn', sa.Boolean(), nullable=False),
        sa.Column('joined_at', sa.Float(), nullable=True),
        sa.UniqueConstraint('session_id', 'user_id', name='uq_session_player_user'),
    )
    op.create_index('ix_session_player_session_id', 'session_player', ['session_id'])

    op.create_table(
        'move',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('session_id', sa.Integer(), sa.ForeignKey('game_session.id'), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('word', sa.String(length=32), nullable=False),
        sa.Column('positions', sa.Text(), nullable=False),
        sa.Column('score_awarded', sa.Integer(), nullable=False),
        sa.Column('turn_index', sa.Integer(), nullable=False),
        sa.Column('effects', sa.Text(), nullable=True),
        sa.Column('created_at', sa.Float(), nullable=False),
    )
    op.create_index('ix_move_session_id', 'move', ['session_id'])


def downgrade():
    op.drop_index('ix_move_session_id', table_name='move')
    op.drop_table('move')
    op.drop_index('ix_session_player_session_id', table_name='session_player')
    op.drop_table('session_player')
    op.drop_index('ix_game_session_invite_code', table_name='game_session')
    op.drop_index('ix_game_session_status', table_name='game_session')
    op.drop_table('game_session')
    op.drop_table('board_template')
    op.drop_index('ix_user_username', table_name='user')
    op.drop_table('user')
