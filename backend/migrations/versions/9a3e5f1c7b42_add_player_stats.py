"""add player stats table

Revision ID: 9a3e5f1c7b42
Revises: 4c7d2e9a1b30
Create Date: 2026-10-18 12:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '9a3e5f1c7b42'
down_revision = '4c7d2e9a1b30'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'player_stats',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('total_games_played', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_wins', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_losses', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('highest_score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('current_streak', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('longest_streak', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_words_formed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('experience_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('level', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('updated_at', sa.Float(), nullable=True),
        sa.UniqueConstraint('user_id', name='uq_player_stats_user_id'),
    )
    op.create_index('ix_game_session_winner_user_id', 'game_session', ['winner_user_id'])


def downgrade():
    op.drop_index('ix_game_session_winner_user_id', table_name='game_session')
    op.drop_table('player_stats')
