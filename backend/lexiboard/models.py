from lexiboard import db
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
import json
import time

from lexiboard.services.games.board import Board, PuzzleMode
from lexiboard.services.games.evaluator import (
    WinCondition, cleared_vault_count, hidden_phrase_tiles, territory_counts,
)

# Session lifecycle
STATUS_WAITING = 'waiting'
STATUS_ACTIVE = 'active'
STATUS_COMPLETED = 'completed'

OUTCOME_WON = 'won'
OUTCOME_LOST = 'lost'
OUTCOME_ABANDONED = 'abandoned'


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
        }


class PlayerStats(db.Model):
    """Lifetime results for one user, updated when a session completes."""
    __tablename__ = 'player_stats'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), unique=True, nullable=False)
    total_games_played = db.Column(db.Integer, default=0, nullable=False)
    total_wins = db.Column(db.Integer, default=0, nullable=False)
    total_losses = db.Column(db.Integer, default=0, nullable=False)
    highest_score = db.Column(db.Integer, default=0, nullable=False)
    current_streak = db.Column(db.Integer, default=0, nullable=False)
    longest_streak = db.Column(db.Integer, default=0, nullable=False)
    total_words_formed = db.Column(db.Integer, default=0, nullable=False)
    experience_points = db.Column(db.Integer, default=0, nullable=False)
    level = db.Column(db.Integer, default=1, nullable=False)
    updated_at = db.Column(db.Float, nullable=True)
    user = db.relationship('User')

    def __init__(self, **kwargs):
        super(PlayerStats, self).__init__(**kwargs)
        # Column defaults only apply on insert; start counters at zero in memory too
        for column in ('total_games_played', 'total_wins', 'total_losses', 'highest_score',
                       'current_streak', 'longest_streak', 'total_words_formed', 'experience_points'):
            if getattr(self, column) is None:
                setattr(self, column, 0)
        if self.level is None:
            self.level = 1

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'username': self.user.username if self.user else None,
            'total_games_played': self.total_games_played,
            'total_wins': self.total_wins,
            'total_losses': self.total_losses,
            'highest_score': self.highest_score,
            'current_streak': self.current_streak,
            'longest_streak': self.longest_streak,
            'total_words_formed': self.total_words_formed,
            'experience_points': self.experience_points,
            'level': self.level,
        }


class BoardTemplate(db.Model):
    """Catalog entry used to seed new session boards."""
    __tablename__ = 'board_template'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), unique=True, nullable=False)
    grid_size = db.Column(db.Integer, nullable=False)
    initial_layout = db.Column(db.Text, nullable=False)  # JSON rows of tile dicts
    puzzle_mode = db.Column(db.String(32), nullable=False)
    win_condition = db.Column(db.Text, nullable=False)  # JSON
    difficulty = db.Column(db.String(16), nullable=False, default='Easy')
    supported_modes = db.Column(db.Text, nullable=False, default='["solo", "multiplayer"]')
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    @property
    def layout(self):
        return json.loads(self.initial_layout)

    @property
    def win_spec(self):
        return WinCondition.from_dict(json.loads(self.win_condition))

    def supports(self, mode):
        return mode in json.loads(self.supported_modes or '[]')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'grid_size': self.grid_size,
            'puzzle_mode': self.puzzle_mode,
            'win_condition': self.win_spec.to_dict(),
            'difficulty': self.difficulty,
            'supported_modes': json.loads(self.supported_modes or '[]'),
        }


class SessionPlayer(db.Model):
    __tablename__ = 'session_player'
    __table_args__ = (db.UniqueConstraint('session_id', 'user_id', name='uq_session_player_user'),)
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('game_session.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    seat = db.Column(db.Integer, nullable=False)
    score = db.Column(db.Integer, default=0, nullable=False)
    is_current_turn = db.Column(db.Boolean, default=False, nullable=False)
    joined_at = db.Column(db.Float, nullable=True)
    session = db.relationship('GameSession', back_populates='players')
    user = db.relationship('User')

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'username': self.user.username if self.user else None,
            'seat': self.seat,
            'score': self.score,
            'is_current_turn': self.is_current_turn,
        }


class Move(db.Model):
    __tablename__ = 'move'
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('game_session.id'), nullable=False, index=True)
    sequence = db.Column(db.Integer, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    word = db.Column(db.String(32), nullable=False)
    positions = db.Column(db.Text, nullable=False)  # JSON list of [row, col]
    score_awarded = db.Column(db.Integer, nullable=False, default=0)
    turn_index = db.Column(db.Integer, nullable=False)
    effects = db.Column(db.Text, nullable=True)  # JSON list of effect dicts
    created_at = db.Column(db.Float, nullable=False)
    session = db.relationship('GameSession', back_populates='moves')

    def to_dict(self):
        return {
            'sequence': self.sequence,
            'user_id': self.user_id,
            'word': self.word,
            'positions': [{'row': r, 'col': c} for r, c in json.loads(self.positions)],
            'score_awarded': self.score_awarded,
            'turn_index': self.turn_index,
            'effects': json.loads(self.effects) if self.effects else [],
            'created_at': self.created_at,
        }


class GameSession(db.Model):
    __tablename__ = 'game_session'
    id = db.Column(db.Integer, primary_key=True)
    mode = db.Column(db.String(16), nullable=False)  # solo, multiplayer
    puzzle_mode = db.Column(db.String(32), nullable=False)
    status = db.Column(db.String(16), default=STATUS_WAITING, nullable=False, index=True)
    outcome = db.Column(db.String(16), nullable=True)  # won, lost, abandoned
    winner_user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True, index=True)
    board_id = db.Column(db.Integer, db.ForeignKey('board_template.id'), nullable=True)
    board_state = db.Column(db.Text, nullable=False)  # JSON
    win_condition = db.Column(db.Text, nullable=False)  # JSON
    matchmaking_type = db.Column(db.String(16), nullable=True)  # solo, random, private
    invite_code = db.Column(db.String(12), unique=True, index=True, nullable=True)
    is_live_match = db.Column(db.Boolean, default=False, nullable=False)
    turn_timer_seconds = db.Column(db.Integer, nullable=True)
    max_players = db.Column(db.Integer, default=2, nullable=False)
    current_turn_index = db.Column(db.Integer, default=0, nullable=False)
    current_turn_started_at = db.Column(db.Float, nullable=True)
    turns_remaining = db.Column(db.Integer, nullable=True)
    invalid_attempts = db.Column(db.Integer, default=0, nullable=False)
    consecutive_timeouts = db.Column(db.Integer, default=0, nullable=False)
    created_at = db.Column(db.Float, nullable=True)
    completed_at = db.Column(db.Float, nullable=True)
    players = db.relationship('SessionPlayer', back_populates='session', order_by='SessionPlayer.seat',
                              cascade='all, delete-orphan')
    moves = db.relationship('Move', back_populates='session', order_by='Move.sequence',
                            cascade='all, delete-orphan')

    def __init__(self, **kwargs):
        super(GameSession, self).__init__(**kwargs)
        if self.created_at is None:
            self.created_at = time.time()

    @property
    def board(self):
        return Board.from_dict(json.loads(self.board_state))

    @board.setter
    def board(self, value):
        self.board_state = json.dumps(value.to_dict())

    @property
    def win_spec(self):
        return WinCondition.from_dict(json.loads(self.win_condition))

    @win_spec.setter
    def win_spec(self, value):
        self.win_condition = json.dumps(value.to_dict())

    @property
    def current_player(self):
        if self.status != STATUS_ACTIVE or not self.players:
            return None
        return self.players[self.current_turn_index]

    def player_for(self, user_id):
        return next((p for p in self.players if p.user_id == user_id), None)

    def turn_time_remaining(self, now=None):
        if not (self.is_live_match and self.turn_timer_seconds and self.current_turn_started_at):
            return None
        if self.status != STATUS_ACTIVE:
            return None
        now = time.time() if now is None else now
        return max(0.0, self.turn_timer_seconds - (now - self.current_turn_started_at))

    def progress(self, board=None):
        board = board or self.board
        mode = PuzzleMode(self.puzzle_mode)
        if mode is PuzzleMode.VAULT_BREAK:
            return {'vault_tiles_cleared': cleared_vault_count(board)}
        if mode is PuzzleMode.HIDDEN_PHRASE:
            return {'phrase_tiles_hidden': hidden_phrase_tiles(board)}
        if mode is PuzzleMode.TERRITORY_CONTROL:
            return {'territory': {str(owner): n for owner, n in territory_counts(board).items()}}
        return {'high_score': max((p.score for p in self.players), default=0)}

    def to_dict(self, include_moves=True, now=None):
        board = self.board
        current = self.current_player
        data = {
            'id': self.id,
            'mode': self.mode,
            'puzzle_mode': self.puzzle_mode,
            'status': self.status,
            'outcome': self.outcome,
            'winner_user_id': self.winner_user_id,
            'board_id': self.board_id,
            'board': board.to_dict(hide_covered=True),
            'win_condition': self.win_spec.to_dict(),
            'progress': self.progress(board),
            'matchmaking_type': self.matchmaking_type,
            'invite_code': self.invite_code,
            'is_live_match': self.is_live_match,
            'turn_timer_seconds': self.turn_timer_seconds,
            'max_players': self.max_players,
            'players': [p.to_dict() for p in self.players],
            'current_turn_index': self.current_turn_index,
            'current_user_id': current.user_id if current else None,
            'current_turn_started_at': self.current_turn_started_at,
            'turn_time_remaining': self.turn_time_remaining(now),
            'turns_remaining': self.turns_remaining,
            'created_at': self.created_at,
            'completed_at': self.completed_at,
        }
        if include_moves:
            data['moves'] = [m.to_dict() for m in self.moves]
        return data
