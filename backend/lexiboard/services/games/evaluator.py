"""Puzzle evaluation: one win check per puzzle mode.

Every check shares the ``(board, win_condition, stats) -> bool`` signature;
``evaluate`` picks the check by mode and layers the solo turn limit on top.
Evaluation reads only its inputs, so repeating it gives the same verdict.
"""

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from .board import Board, PuzzleMode, TileKind


class Verdict(str, Enum):
    PLAYING = 'playing'
    WIN = 'win'
    LOSS = 'loss'


class GameMode(str, Enum):
    SOLO = 'solo'
    MULTIPLAYER = 'multiplayer'


@dataclass(frozen=True)
class WinCondition:
    target: Optional[int] = None
    required_vault_tiles: Optional[int] = None
    target_control_percentage: Optional[float] = None
    turn_limit: Optional[int] = None
    description: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'target': self.target,
            'required_vault_tiles': self.required_vault_tiles,
            'target_control_percentage': self.target_control_percentage,
            'turn_limit': self.turn_limit,
            'description': self.description,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'WinCondition':
        data = data or {}
        return cls(
            target=data.get('target'),
            required_vault_tiles=data.get('required_vault_tiles'),
            target_control_percentage=data.get('target_control_percentage'),
            turn_limit=data.get('turn_limit'),
            description=data.get('description', ''),
        )


@dataclass(frozen=True)
class SessionStats:
    cumulative_score: int = 0
    moves_made: int = 0
    turns_remaining: Optional[int] = None


def cleared_vault_count(board: Board) -> int:
    return sum(1 for _, tile in board.cells() if tile.meta('vault_cleared'))


def hidden_phrase_tiles(board: Board) -> int:
    return sum(1 for _, tile in board.cells() if tile.meta('phrase') and tile.meta('covered'))


def territory_counts(board: Board) -> Counter:
    return Counter(
        tile.meta('territory')
        for _, tile in board.cells(TileKind.OBJECTIVE)
        if tile.meta('territory') is not None
    )


def territory_leader(board: Board):
    counts = territory_counts(board)
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def _score_target(board, win, stats):
    return win.target is not None and stats.cumulative_score >= win.target


def _vault_break(board, win, stats):
    return win.required_vault_tiles is not None and cleared_vault_count(board) >= win.required_vault_tiles


def _hidden_phrase(board, win, stats):
    # A board without phrase tiles has nothing to uncover and cannot be won
    phrase_tiles = [tile for _, tile in board.cells() if tile.meta('phrase')]
    return bool(phrase_tiles) and not any(tile.meta('covered') for tile in phrase_tiles)


def _territory_control(board, win, stats):
    total = sum(1 for _ in board.cells(TileKind.OBJECTIVE))
    if not total or win.target_control_percentage is None:
        return False
    counts = territory_counts(board)
    return any(100.0 * owned / total >= win.target_control_percentage for owned in counts.values())


_WIN_CHECKS = {
    PuzzleMode.SCORE_TARGET: _score_target,
    PuzzleMode.VAULT_BREAK: _vault_break,
    PuzzleMode.HIDDEN_PHRASE: _hidden_phrase,
    PuzzleMode.TERRITORY_CONTROL: _territory_control,
}


def evaluate(board: Board, puzzle_mode, win_condition: WinCondition, cumulative_score: int,
             moves_made: int, mode, turns_remaining: Optional[int]) -> Verdict:
    stats = SessionStats(cumulative_score, moves_made, turns_remaining)
    if _WIN_CHECKS[PuzzleMode(puzzle_mode)](board, win_condition, stats):
        return Verdict.WIN
    # Multiplayer sessions never lose on turns
    if GameMode(mode) is GameMode.SOLO and turns_remaining is not None and turns_remaining <= 0:
        return Verdict.LOSS
    return Verdict.PLAYING
