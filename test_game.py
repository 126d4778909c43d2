"""
Tests for the Azul rules engine.

Run with: pytest, or python test_game.py
"""

import random

import pytest

from azul.constants import TileColor, PATTERN_LINES, TOTAL_TILES, FLOOR_ROW
from azul.errors import IllegalMoveError, IllegalStateError, InvalidConfigurationError
from azul.game import AzulState
from azul.supply import FixedSupplier

B, Y, R, K, W = TileColor.colors()

MONOCHROME = ["BBBB", "YYYY", "RRRR", "KKKK", "WWWW"]


def fixed_game(*deals, num_players=2):
    return AzulState(num_players=num_players, supplier=FixedSupplier(deals), seed=0)


def play_monochrome_round(state, refill=True):
    """Empties a MONOCHROME deal without anyone touching the table."""
    state.apply_move(1, 'B', 3)                            # p0: 4 B fill row 3
    state.apply_move(2, 'Y', 3)                            # p1: 4 Y fill row 3
    state.apply_move(3, 'R', 2)                            # p0: 3 R + 1 floor
    state.apply_move(4, 'K', 2)                            # p1: 3 K + 1 floor
    return state.apply_move(5, 'W', 4, refill=refill)      # p0: 4 W of 5


def test_game_initialization():
    """Test basic game initialization."""
    game = AzulState(num_players=2, seed=42)

    assert game.num_players == 2
    assert game.num_displays == 5
    assert len(game.locations) == 6
    assert game.current_player == 0
    assert game.last_player == -1
    assert not game.game_over
    assert game.winners() == set()

    assert game.table.is_empty()
    assert game.table.has_first_player
    assert all(display.count() == 4 for display in game.displays)
    assert game.bag.remaining() == TOTAL_TILES - 20
    assert game.tile_total() == TOTAL_TILES


@pytest.mark.parametrize("num_players, displays", [(2, 5), (3, 7), (4, 9)])
def test_display_count_per_player_count(num_players, displays):
    game = AzulState(num_players=num_players, seed=1)
    assert len(game.displays) == displays == 2 * num_players + 1


@pytest.mark.parametrize("num_players", [0, 1, 5])
def test_invalid_player_count(num_players):
    with pytest.raises(InvalidConfigurationError):
        AzulState(num_players=num_players)


def test_invalid_configuration_is_a_value_error():
    with pytest.raises(ValueError):
        AzulState(num_players=7)


def test_malformed_initial_deal():
    with pytest.raises(InvalidConfigurationError):
        fixed_game(["BBBB", "YYYY", "RRRR", "KKKK"])
    with pytest.raises(InvalidConfigurationError):
        fixed_game(["BBBB", "YYYY", "RRRR", "KKKK", "WWWX"])
    # 28 blue tiles do not exist
    with pytest.raises(InvalidConfigurationError):
        fixed_game(["BBBB"] * 7, num_players=3)


def test_legal_actions():
    """Test legal action generation."""
    game = AzulState(num_players=2, seed=42)
    actions = game.get_legal_actions()

    assert len(actions) > 0
    for location, color, dest in actions:
        assert 0 <= location < len(game.locations)
        assert 0 <= color < 5
        assert FLOOR_ROW <= dest < PATTERN_LINES
        assert game.locations[location].has_color(color)

    # Every row is open, so floor moves are pruned
    assert all(dest != FLOOR_ROW for _, _, dest in actions)

    all_actions = game.get_legal_actions(floor_only_if_forced=False)
    assert len(all_actions) > len(actions)
    assert set(actions) < set(all_actions)


def test_floor_move_offered_when_forced():
    game = fixed_game(MONOCHROME)
    board = game.player_boards[0]
    for row in range(PATTERN_LINES):
        board.pattern_lines[row] = (0, Y)

    blue_moves = [a for a in game.get_legal_actions() if a[1] == B]
    assert blue_moves == [(1, B, FLOOR_ROW)]


def test_take_from_display():
    game = fixed_game(MONOCHROME)
    result = game.apply_move(1, 'B', 3)

    assert result['tiles_taken'] == 4
    assert result['tiles_to_floor'] == 0
    assert not result['round_ended']
    assert game.player_boards[0].pattern_lines[3] == (4, B)
    assert game.locations[1].is_empty()
    assert game.table.is_empty()
    assert game.current_player == 1
    assert game.last_player == 0
    assert game.last_action == (1, B, 3)


def test_display_leftovers_move_to_table():
    game = fixed_game(["BBYR", "YYYY", "RRRR", "KKKK", "WWWW"])
    game.apply_move(1, B, 0)

    board = game.player_boards[0]
    assert board.pattern_lines[0] == (1, B)
    assert board.floor_line == [B]
    assert game.locations[1].is_empty()
    assert game.table.tiles == {Y: 1, R: 1}


def test_taking_from_table_claims_marker():
    game = fixed_game(["BBYR", "YYYY", "RRRR", "KKKK", "WWWW"])
    game.apply_move(1, B, 1)
    result = game.apply_move(0, Y, 0)

    assert result['took_first_player']
    board = game.player_boards[1]
    assert board.pattern_lines[0] == (1, Y)
    assert board.floor_line == [TileColor.FIRST_PLAYER]
    assert not game.table.has_first_player
    assert game.next_round_first_player == 1
    assert game.table.tiles == {R: 1}

    # Only the first taker gets the marker
    result = game.apply_move(0, R, 2)
    assert not result['took_first_player']
    assert game.player_boards[0].floor_line == []


def test_illegal_moves_leave_state_unchanged():
    game = fixed_game(MONOCHROME)
    game.apply_move(1, 'B', 3)
    game.apply_move(2, 'Y', 3)

    before = game.get_state()
    text_before = str(game)

    illegal = [
        (9, 'R', 0),    # no such location
        (-1, 'R', 0),
        (0, 'R', 0),    # table is empty
        (1, 'B', 0),    # display already taken
        (3, 'Q', 0),    # not a color
        (3, 'B', 0),    # color not on display
        (3, 'R', 5),    # row out of range
        (3, 'R', -2),
        (3, 'R', 3),    # row 3 already holds blue
    ]
    for move in illegal:
        with pytest.raises(IllegalMoveError):
            game.apply_move(*move)
        assert game.get_state() == before
        assert str(game) == text_before


def test_move_matching_wall_color_is_illegal():
    game = fixed_game(MONOCHROME)
    board = game.player_boards[0]
    board.wall[2, 2] = True  # blue's column in row 2

    before = game.get_state()
    with pytest.raises(IllegalMoveError, match="not legal"):
        game.apply_move(1, B, 2)
    assert game.get_state() == before


def test_round_completion_and_refill():
    game = fixed_game(MONOCHROME, MONOCHROME)
    result = play_monochrome_round(game)

    assert result['round_ended']
    assert not result['game_over']
    assert game.round_number == 2

    p0, p1 = game.player_boards
    # Two isolated wall tiles each, one floor tile each
    assert p0.score == 1
    assert p1.score == 1
    assert p0.wall[3, 3] and p0.wall[2, 4]
    assert p1.wall[3, 4] and p1.wall[2, 0]
    assert p0.pattern_lines[4] == (4, W)
    assert p0.floor_line == [] and p1.floor_line == []

    # 3 B + 2 R + 1 R from p0, 3 Y + 2 K + 1 K from p1
    assert game.bag.lid == {B: 3, R: 3, Y: 3, K: 3}

    # Nobody took the marker, so turn order just continues
    assert game.current_player == 1
    assert game.next_round_first_player is None
    assert game.table.has_first_player
    assert all(display.count() == 4 for display in game.displays)
    assert game.tile_total() == TOTAL_TILES


def test_first_player_marker_sets_next_starter():
    game = fixed_game(["BBYY", "RRKK", "WWWW", "BBBB", "YYYY"], MONOCHROME)
    game.apply_move(1, B, 1)   # p0, Y Y to table
    game.apply_move(0, Y, 1)   # p1 claims the marker
    game.apply_move(2, R, 0)   # p0, K K to table
    game.apply_move(0, K, 0)   # p1
    game.apply_move(3, W, 4)   # p0
    game.apply_move(4, B, 3)   # p1
    result = game.apply_move(5, Y, 3)  # p0 ends the round

    assert result['round_ended']
    assert game.current_player == 1
    assert game.table.has_first_player
    assert game.next_round_first_player is None
    assert all(board.score >= 0 for board in game.player_boards)
    assert game.tile_total() == TOTAL_TILES


def test_deferred_refill():
    game = fixed_game(MONOCHROME, MONOCHROME)
    play_monochrome_round(game, refill=False)

    assert game.is_round_over
    assert game.needs_refill
    assert game.table.has_first_player
    assert game.get_legal_actions() == []
    assert game.legal_successors() == []
    assert game.winners() == set()

    game.refill_displays()
    assert not game.needs_refill
    assert all(display.count() == 4 for display in game.displays)


def test_refill_with_external_deal_after_deferral():
    game = AzulState(num_players=2, seed=5)
    for _ in range(200):
        if game.needs_refill:
            break
        game.take_action(game.get_legal_actions()[0], refill=False)
    assert game.needs_refill

    with pytest.raises(InvalidConfigurationError):
        game.refill_displays(FixedSupplier([["BBBB"]]))
    assert game.needs_refill

    game.refill_displays(FixedSupplier([["KKKK", "KKKW", "KKWW", "KWWW", "WWWW"]]))
    assert [display.tiles for display in game.displays] == [
        {K: 4}, {K: 3, W: 1}, {K: 2, W: 2}, {K: 1, W: 3}, {W: 4}
    ]
    assert game.tile_total() == TOTAL_TILES


def test_rejected_deal_rolls_back_round_ending_move():
    game = fixed_game(MONOCHROME, ["BBBB"] * 4 + ["BBBX"])
    game.apply_move(1, 'B', 3)
    game.apply_move(2, 'Y', 3)
    game.apply_move(3, 'R', 2)
    game.apply_move(4, 'K', 2)
    before = game.get_state()
    rng_before = game.rng.getstate()

    with pytest.raises(InvalidConfigurationError):
        game.apply_move(5, 'W', 4)

    assert game.get_state() == before
    assert game.rng.getstate() == rng_before
    assert game.last_action == (4, K, 2)
    assert len(game.supplier.deals) == 1

    # The same move goes through with a valid deal
    result = game.apply_move(5, 'W', 4, supplier=FixedSupplier([MONOCHROME]))
    assert result['round_ended']
    assert game.round_number == 2
    assert all(display.count() == 4 for display in game.displays)


def test_missing_deal_rolls_back_round_ending_move():
    game = fixed_game(MONOCHROME)
    game.apply_move(1, 'B', 3)
    game.apply_move(2, 'Y', 3)
    game.apply_move(3, 'R', 2)
    game.apply_move(4, 'K', 2)
    before = game.get_state()

    with pytest.raises(IllegalStateError):
        game.apply_move(5, 'W', 4)
    assert game.get_state() == before

    play_result = game.apply_move(5, 'W', 4, refill=False)
    assert play_result['round_ended']
    assert game.needs_refill


def test_refill_while_tiles_in_play_is_illegal_state():
    game = AzulState(num_players=2, seed=3)
    before = game.get_state()
    with pytest.raises(IllegalStateError):
        game.refill_displays()
    assert game.get_state() == before


def test_tile_conservation_and_round_invariants():
    """Random games keep every tile accounted for."""
    for num_players in (2, 3, 4):
        for seed in range(3):
            game = AzulState(num_players=num_players, seed=seed)
            rng = random.Random(seed)

            for _ in range(300):
                if game.game_over:
                    break
                actions = game.get_legal_actions(floor_only_if_forced=False)
                if not actions:
                    break
                result = game.take_action(rng.choice(actions))
                assert game.tile_total() == TOTAL_TILES
                assert all(board.score >= 0 for board in game.player_boards)

                if result['round_ended'] and not result['game_over']:
                    assert game.table.has_first_player
                    assert all(not display.is_empty() for display in game.displays)


def test_full_game():
    """Test playing a complete game."""
    game = AzulState(num_players=2, seed=42)

    move_count = 0
    while not game.game_over:
        actions = game.get_legal_actions()
        if not actions:
            break
        game.take_action(actions[0])
        move_count += 1
        assert move_count <= 500, "Game didn't complete in reasonable time"

    assert game.game_over
    assert any(board.has_complete_row() for board in game.player_boards)
    winners = game.winners()
    assert winners
    best = max(game.final_scores())
    assert all(game.final_scores()[i] == best for i in winners)


def test_winners_empty_until_a_row_is_complete():
    game = AzulState(num_players=2, seed=0)
    game.player_boards[0].wall[0, :4] = True
    assert game.winners() == set()


def test_tied_players_both_win():
    game = AzulState(num_players=2, seed=0)
    for board in game.player_boards:
        board.wall[0, :] = True
        board.score = 4

    assert game.game_over
    assert game.winners() == {0, 1}


def test_tie_broken_by_completed_rows():
    game = AzulState(num_players=3, seed=0)
    p0, p1, p2 = game.player_boards
    p0.wall[0, :] = True
    p0.score = 6           # 6 + 2
    p1.wall[0, :] = True
    p1.wall[1, :] = True
    p1.score = 4           # 4 + 4
    p2.score = 7

    assert game.final_scores() == [8, 8, 7]
    assert game.winners() == {1}


def test_copy_is_independent():
    game = fixed_game(MONOCHROME, MONOCHROME)
    before = game.get_state()

    clone = game.copy()
    assert clone.get_state() == before
    play_monochrome_round(clone)

    assert game.get_state() == before
    assert clone.player_boards[0].wall is not game.player_boards[0].wall
    assert clone.bag is not game.bag
    assert len(game.supplier.deals) == 1


def test_copy_leaves_random_stream_alone():
    game = AzulState(num_players=2, seed=11)
    rng_before = game.rng.getstate()

    first, second = game.copy(), game.copy()
    game.legal_successors()

    assert game.rng.getstate() == rng_before
    assert first.rng.getstate() != second.rng.getstate()

    # Seeded games still copy reproducibly
    again = AzulState(num_players=2, seed=11).copy()
    assert again.rng.getstate() == first.rng.getstate()


def test_legal_successors():
    game = AzulState(num_players=3, seed=11)
    before = game.get_state()
    actions = game.get_legal_actions()

    successors = game.legal_successors()

    assert len(successors) == len(actions)
    assert [s.last_action for s in successors] == actions
    assert all(s.last_player == game.current_player for s in successors)
    assert game.get_state() == before


def test_random_successor_deals_at_round_boundary():
    game = fixed_game(MONOCHROME, MONOCHROME)
    play_monochrome_round(game, refill=False)

    successor = game.random_successor()

    assert game.needs_refill
    assert successor.last_player == game.current_player
    assert successor.last_action is not None
    assert successor.tile_total() == TOTAL_TILES
    # The queued deal is only for the real game
    assert len(game.supplier.deals) == 1


def test_random_successor_on_finished_game():
    game = AzulState(num_players=2, seed=0)
    game.player_boards[1].wall[2, :] = True
    with pytest.raises(IllegalStateError):
        game.random_successor()


def test_text_rendering_is_deterministic():
    game = fixed_game(["BBYR", "YYYY", "RRRR", "KKKK", "WWWW"])
    text = str(game)

    assert text == str(game.copy())
    assert "Table" in text
    assert "Display: B:2 Y:1 R:1" in text
    assert "Player 1" in text


def run_all_tests():
    """Run the tests without pytest."""
    print("\n" + "=" * 50)
    print("AZUL GAME TESTS")
    print("=" * 50 + "\n")

    tests = [
        test_game_initialization,
        test_legal_actions,
        test_take_from_display,
        test_display_leftovers_move_to_table,
        test_taking_from_table_claims_marker,
        test_illegal_moves_leave_state_unchanged,
        test_round_completion_and_refill,
        test_first_player_marker_sets_next_starter,
        test_deferred_refill,
        test_rejected_deal_rolls_back_round_ending_move,
        test_tile_conservation_and_round_invariants,
        test_full_game,
        test_tied_players_both_win,
        test_copy_is_independent,
        test_copy_leaves_random_stream_alone,
        test_legal_successors,
    ]

    passed = 0
    failed = 0

    for test in tests:
        try:
            test()
            print(f"✓ {test.__name__}")
            passed += 1
        except Exception as e:
            print(f"✗ {test.__name__} FAILED: {e}")
            failed += 1

    print("\n" + "=" * 50)
    print(f"RESULTS: {passed} passed, {failed} failed")
    print("=" * 50)

    return failed == 0


if __name__ == "__main__":
    success = run_all_tests()
    exit(0 if success else 1)
