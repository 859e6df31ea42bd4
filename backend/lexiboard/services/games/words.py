from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from .board import Board, Effect, EffectSpec, Position
from .errors import NotAWord

WordOracle = Callable[[str], bool]
ScoreFn = Callable[[str, Sequence[Position], Board], int]


@dataclass
class Resolution:
    word: str
    positions: List[Position]
    score: int
    board: Board
    effects: List[Effect]


def resolve_word(board: Board, path, is_valid_word: WordOracle, score_fn: ScoreFn, puzzle_mode,
                 effect_spec: Optional[EffectSpec] = None, player_id=None, rng=None) -> Resolution:
    """Check a submitted path, score it and apply its board effect.

    Raises ``TooShort``, ``InvalidSelection``, ``Repeated`` or ``NonAdjacent``
    for structural problems and ``NotAWord`` when the oracle rejects the
    word. In every failure case the input board is left untouched.
    """
    cells = board.validate_path(path)
    word = board.word_for(cells)
    if not is_valid_word(word):
        raise NotAWord(word)
    score = int(score_fn(word, cells, board))
    if score < 0:
        raise ValueError(f'score function returned {score} for {word}')
    new_board, effects = board.apply_effect(cells, puzzle_mode, effect_spec, player_id=player_id, rng=rng)
    return Resolution(word=word, positions=cells, score=score, board=new_board, effects=effects)
