"""Board catalog: seed entries and session board construction."""

import json
import random
from typing import Dict, List, Optional, Sequence, Tuple

from lexiboard import db
from lexiboard.models import BoardTemplate
from .board import Board, PuzzleMode, TileKind
from .errors import BoardNotFound, InvalidRequest


def blank_layout(size: int, specials: Optional[Dict[Tuple[int, int], dict]] = None) -> List[List[dict]]:
    """Plain letter tiles (letters drawn at session start) plus ``specials``."""
    specials = specials or {}
    return [[dict(specials.get((r, c), {'kind': TileKind.LETTER.value})) for c in range(size)] for r in range(size)]


def layout_from_rows(rows: Sequence[str], specials: Optional[Dict[Tuple[int, int], dict]] = None) -> List[List[dict]]:
    """Fixed-letter layout; ``#`` marks a locked tile, ``.`` a random letter."""
    specials = specials or {}
    layout = []
    for r, row in enumerate(rows):
        out = []
        for c, ch in enumerate(row):
            if ch == '#':
                tile = {'kind': TileKind.LOCKED.value}
            else:
                tile = {'kind': TileKind.LETTER.value, 'letter': None if ch == '.' else ch}
            extra = specials.get((r, c))
            if extra:
                tile = dict(tile, **extra)
            out.append(tile)
        layout.append(out)
    return layout


def _vault(breaks=1, vault_id=None):
    return {'kind': TileKind.PUZZLE.value, 'metadata': {'breaks_remaining': breaks, 'vault_id': vault_id}}


def _territory():
    return {'kind': TileKind.OBJECTIVE.value, 'metadata': {'territory': None}}


SEED_BOARDS = [
    {
        'name': 'First Steps',
        'grid_size': 7,
        'layout': blank_layout(7, {(0, 0): {'kind': 'locked'}, (6, 6): {'kind': 'locked'}}),
        'puzzle_mode': PuzzleMode.SCORE_TARGET.value,
        'win_condition': {'target': 400, 'turn_limit': 15, 'description': 'Reach 400 points'},
        'difficulty': 'Easy',
        'supported_modes': ['solo', 'multiplayer'],
    },
    {
        'name': 'Vault Row',
        'grid_size': 7,
        'layout': blank_layout(7, {
            (2, 1): _vault(1, 0), (2, 3): _vault(2, 1), (4, 2): _vault(1, 2),
            (4, 4): _vault(2, 3), (3, 3): {'kind': 'locked'},
        }),
        'puzzle_mode': PuzzleMode.VAULT_BREAK.value,
        'win_condition': {'required_vault_tiles': 3, 'turn_limit': 20, 'description': 'Break 3 vaults'},
        'difficulty': 'Medium',
        'supported_modes': ['solo', 'multiplayer'],
    },
    {
        'name': 'Morning Fog',
        'grid_size': 7,
        'layout': layout_from_rows(
            ['.......', '.......', '.STONE.', '.......', '.......', '.......', '.......'],
            {(2, c): {'kind': 'objective', 'metadata': {'covered': True, 'phrase': True}} for c in range(1, 6)},
        ),
        'puzzle_mode': PuzzleMode.HIDDEN_PHRASE.value,
        'win_condition': {'turn_limit': 18, 'description': 'Uncover the hidden word'},
        'difficulty': 'Medium',
        'supported_modes': ['solo'],
    },
    {
        'name': 'Border Dispute',
        'grid_size': 9,
        'layout': blank_layout(9, {(r, c): _territory() for r in range(2, 7) for c in range(2, 7)}),
        'puzzle_mode': PuzzleMode.TERRITORY_CONTROL.value,
        'win_condition': {'target_control_percentage': 60, 'description': 'Control 60% of the territory'},
        'difficulty': 'Hard',
        'supported_modes': ['multiplayer'],
    },
]


def add_template(entry: dict) -> BoardTemplate:
    template = BoardTemplate(
        name=entry['name'],
        grid_size=entry['grid_size'],
        initial_layout=json.dumps(entry['layout']),
        puzzle_mode=entry['puzzle_mode'],
        win_condition=json.dumps(entry['win_condition']),
        difficulty=entry.get('difficulty', 'Easy'),
        supported_modes=json.dumps(entry.get('supported_modes', ['solo', 'multiplayer'])),
    )
    db.session.add(template)
    return template


def seed_catalog() -> List[BoardTemplate]:
    templates = [add_template(entry) for entry in SEED_BOARDS]
    db.session.commit()
    return templates


def load_template(board_id, mode: str) -> BoardTemplate:
    template = db.session.get(BoardTemplate, board_id) if board_id is not None else None
    if template is None or not template.is_active:
        raise BoardNotFound(f'Board {board_id} not found')
    if not template.supports(mode):
        raise InvalidRequest(f'Board {template.name} does not support {mode} play')
    return template


def build_board(template: BoardTemplate, rng: Optional[random.Random] = None) -> Board:
    """A fresh board instance for one session; never shared."""
    return Board.from_layout(template.grid_size, template.layout, rng)


def list_templates() -> List[BoardTemplate]:
    return BoardTemplate.query.filter_by(is_active=True).order_by(BoardTemplate.id).all()
