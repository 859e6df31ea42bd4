"""Board model.

A board is a square grid of tiles that is never mutated in place: every
effect produces a new ``Board``. Tile metadata carries the per-mode state:

- ``breaks_remaining`` / ``vault_cleared`` on vault (``puzzle``) tiles
- ``covered`` / ``phrase`` on fogged tiles of a hidden phrase board
- ``territory`` / ``fortified`` on claimable ``objective`` tiles
"""

from dataclasses import dataclass, field, replace
from enum import Enum
import random
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from .errors import InvalidSelection, NonAdjacent, Repeated, TooShort

GRID_SIZES = (7, 9)
MIN_PATH_LENGTH = 3

Position = Tuple[int, int]


class TileKind(str, Enum):
    LETTER = 'letter'
    LOCKED = 'locked'
    PUZZLE = 'puzzle'
    OBJECTIVE = 'objective'


class PuzzleMode(str, Enum):
    SCORE_TARGET = 'score_target'
    VAULT_BREAK = 'vault_break'
    HIDDEN_PHRASE = 'hidden_phrase'
    TERRITORY_CONTROL = 'territory_control'


# Weighted tile distribution used to fill layout cells that carry no letter
LETTER_DISTRIBUTION = {
    'E': 12, 'A': 9, 'I': 9, 'O': 8, 'N': 6, 'R': 6, 'T': 6, 'L': 4, 'S': 4,
    'U': 4, 'D': 4, 'G': 3, 'B': 2, 'C': 2, 'M': 2, 'P': 2, 'F': 2, 'H': 2,
    'V': 2, 'W': 2, 'Y': 2, 'K': 1, 'J': 1, 'X': 1, 'Q': 1, 'Z': 1,
}
LETTER_POOL = ''.join(letter * count for letter, count in LETTER_DISTRIBUTION.items())


def parse_position(raw) -> Position:
    """Accept ``{'row': r, 'col': c}`` or ``[r, c]``."""
    try:
        if isinstance(raw, dict):
            return int(raw['row']), int(raw['col'])
        row, col = raw
        return int(row), int(col)
    except (KeyError, TypeError, ValueError):
        raise InvalidSelection(f'Malformed position: {raw!r}')


def is_adjacent(a: Position, b: Position) -> bool:
    return a != b and abs(a[0] - b[0]) <= 1 and abs(a[1] - b[1]) <= 1


@dataclass(frozen=True)
class Tile:
    kind: TileKind = TileKind.LETTER
    letter: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def meta(self, key: str, default=None):
        return self.metadata.get(key, default)

    def with_changes(self, kind: Optional[TileKind] = None, **metadata) -> 'Tile':
        merged = dict(self.metadata)
        merged.update(metadata)
        return replace(self, kind=kind or self.kind, metadata=merged)

    def to_dict(self, hide_covered: bool = False) -> Dict[str, Any]:
        letter = None if hide_covered and self.meta('covered') else self.letter
        return {'kind': self.kind.value, 'letter': letter, 'metadata': dict(self.metadata)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Tile':
        # Catalog layouts spell the kind as ``type``
        kind = TileKind(data.get('kind') or data.get('type') or TileKind.LETTER.value)
        letter = data.get('letter')
        return cls(kind=kind, letter=letter.upper() if letter else None, metadata=dict(data.get('metadata') or {}))


@dataclass(frozen=True)
class Effect:
    kind: str
    count: int
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind, 'count': self.count, 'description': self.description}


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"


@dataclass(frozen=True)
class EffectSpec:
    """Effect strength per tier; ``None`` means unlimited."""
    thresholds: Tuple[int, int] = (5, 7)
    vault_breaks: Tuple[Optional[int], Optional[int], Optional[int]] = (1, 2, None)
    reveal_limits: Tuple[Optional[int], Optional[int], Optional[int]] = (2, 4, None)

    def tier_for(self, length: int) -> int:
        tier = 0
        for threshold in self.thresholds:
            if length >= threshold:
                tier += 1
        return tier

    @classmethod
    def from_config(cls, thresholds: str) -> 'EffectSpec':
        parts = sorted(int(p) for p in str(thresholds).split(',') if p.strip())
        if len(parts) != 2:
            raise ValueError(f'EFFECT_TIER_THRESHOLDS needs two lengths, got {thresholds!r}')
        return cls(thresholds=(parts[0], parts[1]))


class Board:
    def __init__(self, grid_size: int, tiles: Sequence[Sequence[Tile]]):
        if grid_size not in GRID_SIZES:
            raise ValueError(f'grid_size must be one of {GRID_SIZES}, got {grid_size}')
        if len(tiles) != grid_size or any(len(row) != grid_size for row in tiles):
            raise ValueError(f'board must be a {grid_size}x{grid_size} grid')
        self.grid_size = grid_size
        self.tiles: Tuple[Tuple[Tile, ...], ...] = tuple(tuple(row) for row in tiles)

    def __eq__(self, other):
        if not isinstance(other, Board):
            return NotImplemented
        return self.grid_size == other.grid_size and self.tiles == other.tiles

    def __repr__(self):
        rows = [''.join((t.letter or '.') if t.kind is not TileKind.LOCKED else '#' for t in row) for row in self.tiles]
        return f"Board({self.grid_size}, {'/'.join(rows)})"

    def in_bounds(self, pos: Position) -> bool:
        row, col = pos
        return 0 <= row < self.grid_size and 0 <= col < self.grid_size

    def tile(self, pos: Position) -> Tile:
        if not self.in_bounds(pos):
            raise InvalidSelection(f'Position {pos} is outside the board')
        return self.tiles[pos[0]][pos[1]]

    def is_selectable(self, pos: Position) -> bool:
        return self.in_bounds(pos) and self.tiles[pos[0]][pos[1]].kind is not TileKind.LOCKED

    def cells(self, kind: Optional[TileKind] = None) -> Iterator[Tuple[Position, Tile]]:
        for r, row in enumerate(self.tiles):
            for c, tile in enumerate(row):
                if kind is None or tile.kind is kind:
                    yield (r, c), tile

    def validate_path(self, path: Iterable) -> List[Position]:
        """Return the path as positions or raise an ``InvalidSelection``."""
        cells = [parse_position(p) for p in path]
        if len(cells) < MIN_PATH_LENGTH:
            raise TooShort()
        for pos in cells:
            if not self.in_bounds(pos):
                raise InvalidSelection(f'Position {pos} is outside the board')
            if not self.is_selectable(pos):
                raise InvalidSelection(f'Tile at {pos} is locked')
            if not self.tiles[pos[0]][pos[1]].letter:
                raise InvalidSelection(f'Tile at {pos} has no letter')
        if len(set(cells)) != len(cells):
            raise Repeated()
        for prev, nxt in zip(cells, cells[1:]):
            if not is_adjacent(prev, nxt):
                raise NonAdjacent(f'{nxt} does not touch {prev}')
        return cells

    def word_for(self, path: Sequence[Position]) -> str:
        return ''.join(self.tile(pos).letter or '' for pos in path)

    def replace_tiles(self, changes: Dict[Position, Tile]) -> 'Board':
        if not changes:
            return self
        rows = [list(row) for row in self.tiles]
        for (r, c), tile in changes.items():
            rows[r][c] = tile
        return Board(self.grid_size, rows)

    def apply_effect(self, path, puzzle_mode, effect_spec: Optional[EffectSpec] = None,
                     player_id=None, rng: Optional[random.Random] = None) -> Tuple['Board', List[Effect]]:
        """Apply the puzzle mode's effect for a word traced along ``path``.

        Only tiles on the path are ever replaced. Longer words land in a
        higher tier of ``effect_spec`` and hit harder. Used letter tiles are
        then refilled from ``LETTER_POOL``; vault and phrase tiles keep
        their letters.
        """
        spec = effect_spec or EffectSpec()
        cells = self.validate_path(path)
        handler = _EFFECT_HANDLERS.get(PuzzleMode(puzzle_mode))
        changes, effects = {}, []
        if handler is not None:
            changes, effects = handler(self, cells, spec.tier_for(len(cells)), spec, player_id)
        rng = rng or random.Random()
        for pos in cells:
            tile = changes.get(pos, self.tile(pos))
            if _refillable(tile):
                changes[pos] = replace(tile, letter=rng.choice(LETTER_POOL))
        return self.replace_tiles(changes), effects

    def to_dict(self, hide_covered: bool = False) -> Dict[str, Any]:
        """``hide_covered`` blanks the letters of covered tiles for clients."""
        return {
            'grid_size': self.grid_size,
            'tiles': [[tile.to_dict(hide_covered) for tile in row] for row in self.tiles],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Board':
        return cls(int(data['grid_size']), [[Tile.from_dict(t) for t in row] for row in data['tiles']])

    @classmethod
    def from_layout(cls, grid_size: int, layout, rng: Optional[random.Random] = None) -> 'Board':
        """Build a playable board from a catalog layout, filling blank letters."""
        rng = rng or random.Random()
        rows = []
        for raw_row in layout:
            row = []
            for raw in raw_row:
                tile = Tile.from_dict(raw or {})
                if tile.kind is not TileKind.LOCKED and not tile.letter:
                    tile = replace(tile, letter=rng.choice(LETTER_POOL))
                row.append(tile)
            rows.append(row)
        return cls(grid_size, rows)


def _refillable(tile: Tile) -> bool:
    if tile.kind in (TileKind.LOCKED, TileKind.PUZZLE):
        return False
    return not (tile.meta('vault_cleared') or tile.meta('phrase'))


def _break_vaults(board, cells, tier, spec, player_id):
    per_tile = spec.vault_breaks[tier]
    changes = {}
    broken = weakened = 0
    for pos in cells:
        tile = board.tile(pos)
        if tile.kind is not TileKind.PUZZLE:
            continue
        remaining = int(tile.meta('breaks_remaining', 1))
        remaining = 0 if per_tile is None else max(0, remaining - per_tile)
        if remaining == 0:
            changes[pos] = tile.with_changes(kind=TileKind.LETTER, breaks_remaining=0, vault_cleared=True)
            broken += 1
        else:
            changes[pos] = tile.with_changes(breaks_remaining=remaining)
            weakened += 1
    effects = []
    if broken:
        effects.append(Effect('vault_broken', broken, f"{_plural(broken, 'vault tile')} broken"))
    if weakened:
        effects.append(Effect('vault_weakened', weakened, f"{_plural(weakened, 'vault tile')} weakened"))
    return changes, effects


def _reveal_tiles(board, cells, tier, spec, player_id):
    limit = spec.reveal_limits[tier]
    changes = {}
    for pos in cells:
        if limit is not None and len(changes) >= limit:
            break
        tile = board.tile(pos)
        if tile.meta('covered'):
            changes[pos] = tile.with_changes(covered=False)
    effects = []
    if changes:
        effects.append(Effect('tiles_revealed', len(changes), f"{_plural(len(changes), 'tile')} revealed"))
        phrase = sum(1 for tile in changes.values() if tile.meta('phrase'))
        if phrase:
            effects.append(Effect('phrase_revealed', phrase, f"{_plural(phrase, 'phrase letter')} uncovered"))
    return changes, effects


def _claim_territory(board, cells, tier, spec, player_id):
    if player_id is None:
        raise ValueError('territory claims need a player')
    changes = {}
    claimed = captured = fortified = 0
    for pos in cells:
        tile = board.tile(pos)
        if tile.kind is not TileKind.OBJECTIVE:
            continue
        owner = tile.meta('territory')
        if owner == player_id:
            if tier >= 2 and not tile.meta('fortified'):
                changes[pos] = tile.with_changes(fortified=True)
                fortified += 1
            continue
        if owner is None:
            claimed += 1
        elif tier >= 1 or not tile.meta('fortified'):
            captured += 1
        else:
            continue
        changes[pos] = tile.with_changes(territory=player_id, fortified=tier >= 2)
    effects = []
    if claimed:
        effects.append(Effect('territory_claimed', claimed, f"{_plural(claimed, 'territory tile')} claimed"))
    if captured:
        effects.append(Effect('territory_captured', captured, f"{_plural(captured, 'territory tile')} captured"))
    if fortified:
        effects.append(Effect('territory_fortified', fortified, f"{_plural(fortified, 'territory tile')} fortified"))
    return changes, effects


_EFFECT_HANDLERS = {
    PuzzleMode.VAULT_BREAK: _break_vaults,
    PuzzleMode.HIDDEN_PHRASE: _reveal_tiles,
    PuzzleMode.TERRITORY_CONTROL: _claim_territory,
}
