import random

import pytest

from conftest import ROWS, FixedLetters
from lexiboard.services.games.board import (
    Board, EffectSpec, LETTER_POOL, PuzzleMode, Tile, TileKind, is_adjacent, parse_position,
)
from lexiboard.services.games.catalog import blank_layout, layout_from_rows
from lexiboard.services.games.errors import InvalidSelection, NonAdjacent, Repeated, TooShort


def board_with(specials=None):
    return Board.from_layout(7, layout_from_rows(ROWS, specials))


def vault(breaks=1):
    return {'kind': 'puzzle', 'metadata': {'breaks_remaining': breaks}}


def covered(phrase=False):
    return {'kind': 'objective', 'metadata': {'covered': True, 'phrase': phrase}}


def territory(owner=None, fortified=False):
    return {'kind': 'objective', 'metadata': {'territory': owner, 'fortified': fortified}}


def row_path(r, n, start=0):
    return [(r, c) for c in range(start, start + n)]


def off_path_unchanged(before, after, path):
    on_path = set(path)
    for (pos, tile) in before.cells():
        if pos not in on_path:
            assert after.tile(pos) == tile, pos


def test_is_selectable():
    board = board_with({(0, 3): {'kind': 'locked'}})
    assert board.is_selectable((0, 0))
    assert not board.is_selectable((0, 3))
    assert not board.is_selectable((7, 0))
    assert not board.is_selectable((-1, 2))


def test_grid_must_be_square_and_supported_size():
    with pytest.raises(ValueError):
        Board(5, [[Tile(letter='A')] * 5] * 5)
    with pytest.raises(ValueError):
        Board(7, [[Tile(letter='A')] * 7] * 6)


def test_validate_path_errors():
    board = board_with({(1, 1): {'kind': 'locked'}})
    with pytest.raises(TooShort):
        board.validate_path([(0, 0), (0, 1)])
    with pytest.raises(InvalidSelection):
        board.validate_path([(0, 0), (1, 1), (2, 2)])
    with pytest.raises(Repeated):
        board.validate_path([(0, 0), (0, 1), (0, 0)])
    with pytest.raises(NonAdjacent):
        board.validate_path([(0, 0), (0, 1), (0, 5)])
    with pytest.raises(InvalidSelection):
        board.validate_path([(0, 5), (0, 6), (0, 7)])


def test_structural_errors_are_invalid_selections():
    assert issubclass(TooShort, InvalidSelection)
    assert issubclass(NonAdjacent, InvalidSelection)
    assert issubclass(Repeated, InvalidSelection)


def test_parse_position_forms():
    assert parse_position({'row': 2, 'col': '3'}) == (2, 3)
    assert parse_position([4, 5]) == (4, 5)
    with pytest.raises(InvalidSelection):
        parse_position({'row': 1})
    assert is_adjacent((1, 1), (2, 2))
    assert not is_adjacent((1, 1), (1, 1))
    assert not is_adjacent((1, 1), (1, 3))


def test_word_for_diagonal_path():
    board = board_with()
    assert board.word_for([(0, 0), (1, 1), (2, 2)]) == 'CAT'


def test_used_letters_are_refilled():
    board = board_with()
    path = row_path(0, 3)
    after, effects = board.apply_effect(path, PuzzleMode.SCORE_TARGET, rng=FixedLetters('Q'))
    assert effects == []
    assert after.word_for(path) == 'QQQ'
    assert board.word_for(path) == 'CAT'
    assert all(after.tile(p).kind is TileKind.LETTER for p in path)
    off_path_unchanged(board, after, path)

    again, _ = after.apply_effect(path, PuzzleMode.SCORE_TARGET, rng=FixedLetters('Z'))
    assert again.word_for(path) == 'ZZZ'


def test_refill_skips_vault_and_phrase_tiles():
    board = board_with({(1, 0): vault(1), (1, 1): vault(2), (1, 2): covered(phrase=True)})
    path = row_path(1, 3)
    after, _ = board.apply_effect(path, PuzzleMode.VAULT_BREAK, rng=FixedLetters('Q'))
    assert after.word_for(path) == 'BAT'

    seeded, _ = board.apply_effect(row_path(0, 3), PuzzleMode.SCORE_TARGET, rng=random.Random(11))
    assert seeded == board.apply_effect(row_path(0, 3), PuzzleMode.SCORE_TARGET, rng=random.Random(11))[0]


def test_vault_tiles_break_and_convert():
    board = board_with({(1, 0): vault(1), (1, 1): vault(2)})
    path = row_path(1, 3)
    after, effects = board.apply_effect(path, PuzzleMode.VAULT_BREAK)

    cleared = after.tile((1, 0))
    assert cleared.kind is TileKind.LETTER
    assert cleared.meta('vault_cleared') is True
    assert cleared.letter == 'B'
    weakened = after.tile((1, 1))
    assert weakened.kind is TileKind.PUZZLE
    assert weakened.meta('breaks_remaining') == 1
    assert [e.kind for e in effects] == ['vault_broken', 'vault_weakened']
    assert effects[0].description == '1 vault tile broken'
    off_path_unchanged(board, after, path)


def test_long_words_break_vaults_harder():
    board = board_with({(3, 0): vault(5), (3, 1): vault(2)})
    # five letters: tier 1 removes two breaks per tile
    after, _ = board.apply_effect(row_path(3, 5), PuzzleMode.VAULT_BREAK)
    assert after.tile((3, 0)).meta('breaks_remaining') == 3
    assert after.tile((3, 1)).kind is TileKind.LETTER

    # seven letters: tier 2 clears whatever is left
    board = board_with({(4, 0): vault(9)})
    after, effects = board.apply_effect(row_path(4, 7), PuzzleMode.VAULT_BREAK)
    assert after.tile((4, 0)).meta('vault_cleared') is True
    assert effects[0].count == 1


def test_hidden_phrase_reveal_is_capped_by_tier():
    specials = {(4, c): covered(phrase=c < 2) for c in range(7)}
    board = board_with(specials)
    path = row_path(4, 3)
    after, effects = board.apply_effect(path, PuzzleMode.HIDDEN_PHRASE)
    assert [after.tile(p).meta('covered') for p in path] == [False, False, True]
    assert {e.kind: e.count for e in effects} == {'tiles_revealed': 2, 'phrase_revealed': 2}
    off_path_unchanged(board, after, path)

    after, _ = board.apply_effect(row_path(4, 7), PuzzleMode.HIDDEN_PHRASE)
    assert not any(after.tile(p).meta('covered') for p in row_path(4, 7))


def test_territory_tiers():
    specials = {(4, 0): territory(), (4, 1): territory(owner=2), (4, 2): territory(owner=2, fortified=True),
                (4, 3): territory(owner=1)}
    board = board_with(specials)

    after, effects = board.apply_effect(row_path(4, 3), PuzzleMode.TERRITORY_CONTROL, player_id=1)
    assert after.tile((4, 0)).meta('territory') == 1
    assert after.tile((4, 1)).meta('territory') == 1
    assert after.tile((4, 2)).meta('territory') == 2
    assert [e.kind for e in effects] == ['territory_claimed', 'territory_captured']

    # five letters break fortification
    after, effects = board.apply_effect(row_path(4, 5), PuzzleMode.TERRITORY_CONTROL, player_id=1)
    assert after.tile((4, 2)).meta('territory') == 1
    assert after.tile((4, 2)).meta('fortified') is False
    assert {e.kind: e.count for e in effects} == {'territory_claimed': 1, 'territory_captured': 2}

    after, effects = board.apply_effect(row_path(4, 7), PuzzleMode.TERRITORY_CONTROL, player_id=1)
    assert after.tile((4, 2)).meta('territory') == 1
    assert all(after.tile(p).meta('fortified') for p in row_path(4, 4))
    assert {e.kind: e.count for e in effects} == {
        'territory_claimed': 1, 'territory_captured': 2, 'territory_fortified': 1,
    }


def test_short_word_captures_opponent_territory():
    board = board_with({(0, c): territory(owner=1) for c in range(3)})
    after, effects = board.apply_effect(row_path(0, 3), PuzzleMode.TERRITORY_CONTROL, player_id=2)
    assert [after.tile(p).meta('territory') for p in row_path(0, 3)] == [2, 2, 2]
    assert [(e.kind, e.count) for e in effects] == [('territory_captured', 3)]


def test_territory_requires_a_player():
    board = board_with({(4, 0): territory()})
    with pytest.raises(ValueError):
        board.apply_effect(row_path(4, 3), PuzzleMode.TERRITORY_CONTROL)


@pytest.mark.parametrize('mode', list(PuzzleMode))
def test_effects_never_touch_tiles_off_the_path(mode):
    rng = random.Random(7)
    kinds = [vault(1), vault(3), covered(True), territory(), territory(owner=9)]
    specials = {(r, c): rng.choice(kinds) for r in range(7) for c in range(7) if rng.random() < 0.5}
    board = board_with(specials)
    for path in (row_path(0, 3), row_path(3, 5), row_path(5, 7), [(2, 0), (3, 1), (4, 2), (5, 3)]):
        after, _ = board.apply_effect(path, mode, player_id=1)
        off_path_unchanged(board, after, path)


def test_apply_effect_rejects_locked_tiles():
    board = board_with({(0, 1): {'kind': 'locked'}, (0, 0): vault(1)})
    with pytest.raises(InvalidSelection):
        board.apply_effect(row_path(0, 3), PuzzleMode.VAULT_BREAK)
    assert board.tile((0, 0)).kind is TileKind.PUZZLE


def test_client_view_hides_covered_letters():
    shown = {'kind': 'objective', 'metadata': {'covered': False, 'phrase': True}}
    board = board_with({(3, 0): covered(phrase=True), (3, 1): shown})
    client_row = board.to_dict(hide_covered=True)['tiles'][3]
    assert [t['letter'] for t in client_row[:3]] == [None, 'T', 'O']
    assert client_row[0]['metadata']['covered'] is True
    assert board.to_dict()['tiles'][3][0]['letter'] == 'S'


def test_board_dict_round_trip():
    board = board_with({(1, 0): vault(2), (4, 4): covered(True), (5, 5): territory(owner=3)})
    assert Board.from_dict(board.to_dict()) == board


def test_from_layout_fills_blank_letters():
    layout = blank_layout(9, {(0, 0): {'kind': 'locked'}, (1, 1): {'kind': 'puzzle', 'metadata': {'vault_id': 0}}})
    board = Board.from_layout(9, layout, random.Random(3))
    assert board.tile((0, 0)).letter is None
    assert board.tile((1, 1)).kind is TileKind.PUZZLE
    assert all(t.letter in LETTER_POOL for p, t in board.cells() if t.kind is not TileKind.LOCKED)
    assert Board.from_layout(9, layout, random.Random(3)) == board


def test_effect_spec_tiers():
    spec = EffectSpec.from_config('7,5')
    assert spec.thresholds == (5, 7)
    assert [spec.tier_for(n) for n in (3, 4, 5, 6, 7, 9)] == [0, 0, 1, 1, 2, 2]
    with pytest.raises(ValueError):
        EffectSpec.from_config('5')
