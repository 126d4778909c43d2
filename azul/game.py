"""
Core game logic for Azul board game.
"""

import logging
import random
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

import numpy as np

from azul.constants import (
    TileColor, PATTERN_LINES, WALL_SIZE, FLOOR_LINE_SIZE,
    FLOOR_PENALTIES, FLOOR_ROW, BONUS_COMPLETE_ROW,
    BONUS_COMPLETE_COLUMN, BONUS_COMPLETE_COLOR, DISPLAYS_BY_PLAYERS,
    MIN_PLAYERS, MAX_PLAYERS, TABLE_LOCATION, get_wall_position,
    get_color_at_wall_position
)
from azul.errors import (
    AzulError, IllegalMoveError, IllegalStateError, InvalidConfigurationError
)
from azul.supply import RandomSupplier, TileSupplier
from azul.tiles import (
    ColorLike, TileBag, TileCounts, TileLocation, add_tiles, count_tiles,
    parse_color
)
from mcts.state import GameState

logger = logging.getLogger(__name__)

Action = Tuple[int, TileColor, int]

_RANDOM_SUPPLIER = RandomSupplier()


@dataclass
class PlayerBoard:
    """Represents a single player's board state."""

    # Pattern lines: list of (current_count, color) for each row
    # Row i can hold i+1 tiles
    pattern_lines: List[Tuple[int, Optional[TileColor]]] = field(default_factory=list)

    # Wall: 5x5 grid, True if tile placed
    wall: np.ndarray = field(default_factory=lambda: np.zeros((WALL_SIZE, WALL_SIZE), dtype=bool))

    # Floor line: list of tile colors (including FIRST_PLAYER marker)
    floor_line: List[TileColor] = field(default_factory=list)

    # Current score
    score: int = 0

    def __post_init__(self):
        if not self.pattern_lines:
            self.pattern_lines = [(0, None) for _ in range(PATTERN_LINES)]

    def is_legal_placement(self, color: TileColor, row: int) -> bool:
        """
        Check if tiles of given color may be put on pattern line row.

        A full row is still legal: the tiles simply overflow to the floor.
        """
        if row < 0 or row >= PATTERN_LINES:
            return False

        _, current_color = self.pattern_lines[row]
        if current_color is not None and current_color != color:
            return False

        _, wall_col = get_wall_position(row, color)
        return not self.wall[row, wall_col]

    def place_tiles(self, count: int, color: TileColor, row: int) -> int:
        """
        Put tiles on a pattern line (or straight on the floor for row -1).

        Returns the number of tiles that did not fit on the floor line
        either; the caller sends those to the lid.
        """
        if row == FLOOR_ROW:
            return self.add_to_floor(color, count)

        current_count, _ = self.pattern_lines[row]
        max_capacity = row + 1

        tiles_to_place = min(count, max_capacity - current_count)
        self.pattern_lines[row] = (current_count + tiles_to_place, color)

        return self.add_to_floor(color, count - tiles_to_place)

    def add_to_floor(self, color: TileColor, count: int) -> int:
        """Add tiles to the floor line, returning how many did not fit."""
        fits = max(0, min(count, FLOOR_LINE_SIZE - len(self.floor_line)))
        self.floor_line.extend([color] * fits)
        return count - fits

    def add_first_player_marker(self) -> None:
        if len(self.floor_line) < FLOOR_LINE_SIZE:
            self.floor_line.append(TileColor.FIRST_PLAYER)

    def score_tile_placement(self, row: int, col: int) -> int:
        """Calculate score for placing a tile at wall position."""
        # Count horizontal adjacent tiles
        h_count = 1
        for c in range(col - 1, -1, -1):
            if not self.wall[row, c]:
                break
            h_count += 1
        for c in range(col + 1, WALL_SIZE):
            if not self.wall[row, c]:
                break
            h_count += 1

        # Count vertical adjacent tiles
        v_count = 1
        for r in range(row - 1, -1, -1):
            if not self.wall[r, col]:
                break
            v_count += 1
        for r in range(row + 1, WALL_SIZE):
            if not self.wall[r, col]:
                break
            v_count += 1

        points = (h_count if h_count > 1 else 0) + (v_count if v_count > 1 else 0)
        return max(points, 1)

    def end_round_scoring(self) -> TileCounts:
        """
        Process end of round: move tiles to wall, calculate scores.

        Returns the tiles that go back to the box lid.
        """
        tiles_to_lid: TileCounts = {}

        for row in range(PATTERN_LINES):
            count, color = self.pattern_lines[row]
            max_capacity = row + 1

            if count == max_capacity and color is not None:
                # Line is complete - move one tile to wall
                wall_row, wall_col = get_wall_position(row, color)
                self.wall[wall_row, wall_col] = True
                self.score += self.score_tile_placement(wall_row, wall_col)

                add_tiles(tiles_to_lid, color, count - 1)
                self.pattern_lines[row] = (0, None)

        # The marker takes a penalty slot but is not a tile
        for i, tile in enumerate(self.floor_line):
            self.score += FLOOR_PENALTIES[i]
            if tile != TileColor.FIRST_PLAYER:
                add_tiles(tiles_to_lid, tile, 1)

        self.score = max(0, self.score)
        self.floor_line = []

        return tiles_to_lid

    def completed_rows(self) -> int:
        return int(self.wall.all(axis=1).sum())

    def has_complete_row(self) -> bool:
        """Check if player has completed any horizontal row."""
        return bool(self.wall.all(axis=1).any())

    def calculate_end_game_bonus(self) -> int:
        """Calculate end-game bonus points."""
        bonus = BONUS_COMPLETE_ROW * self.completed_rows()
        bonus += BONUS_COMPLETE_COLUMN * int(self.wall.all(axis=0).sum())

        for color in TileColor.colors():
            if all(self.wall[get_wall_position(row, color)] for row in range(WALL_SIZE)):
                bonus += BONUS_COMPLETE_COLOR

        return bonus

    def final_score(self) -> int:
        """Running score plus end-game bonuses (does not modify the score)."""
        return self.score + self.calculate_end_game_bonus()

    def tile_count(self) -> int:
        """Tiles physically on this board, marker excluded."""
        staged = sum(count for count, _ in self.pattern_lines)
        floor = sum(1 for t in self.floor_line if t != TileColor.FIRST_PLAYER)
        return staged + int(self.wall.sum()) + floor

    def copy(self) -> 'PlayerBoard':
        """Create a deep copy of this board."""
        new_board = PlayerBoard()
        new_board.pattern_lines = self.pattern_lines.copy()
        new_board.wall = self.wall.copy()
        new_board.floor_line = self.floor_line.copy()
        new_board.score = self.score
        return new_board

    def __str__(self) -> str:
        lines = [f"Score: {self.score}"]
        for row in range(PATTERN_LINES):
            count, color = self.pattern_lines[row]
            filled = color.symbol * count if color is not None else ''
            staged = ' ' * (PATTERN_LINES - 1 - row) + '.' * (row + 1 - count) + filled
            wall = ''.join(
                get_color_at_wall_position(row, col).symbol if self.wall[row, col] else '.'
                for col in range(WALL_SIZE)
            )
            lines.append(f"  {staged} | {wall}")
        floor = ''.join(t.symbol for t in self.floor_line)
        floor += '.' * (FLOOR_LINE_SIZE - len(self.floor_line))
        lines.append(f"  Floor: [{floor}]")
        return '\n'.join(lines)


class AzulState(GameState):
    """
    Core Azul game logic.

    Location 0 is the table; locations 1..2N+1 are the displays. The end of
    a round is a leaf for tree search: the displays are only refilled when a
    refill is explicitly asked for (or when simulating via
    ``random_successor``), since the branching over possible deals is far
    too wide to expand.
    """

    def __init__(
        self,
        num_players: int = 2,
        supplier: Optional[TileSupplier] = None,
        seed: Optional[int] = None
    ):
        if num_players < MIN_PLAYERS or num_players > MAX_PLAYERS:
            raise InvalidConfigurationError(
                f"Tried to start a game with {num_players} players "
                f"({MIN_PLAYERS}-{MAX_PLAYERS} required)"
            )

        self.num_players = num_players
        self.num_displays = DISPLAYS_BY_PLAYERS[num_players]
        self.supplier = supplier if supplier is not None else RandomSupplier()
        self.rng = random.Random(seed)
        self._copies = 0

        self.reset()

    def reset(self) -> None:
        """Reset game to initial state and deal the first round."""
        self.bag = TileBag()
        self.locations: List[TileLocation] = [TileLocation.table()] + [
            TileLocation.display() for _ in range(self.num_displays)
        ]
        self.player_boards: List[PlayerBoard] = [
            PlayerBoard() for _ in range(self.num_players)
        ]

        self._last_player: int = -1
        self.last_action: Optional[Action] = None
        self.current_player: int = 0
        self.next_round_first_player: Optional[int] = None
        self.round_number: int = 1

        self.refill_displays()

    @property
    def table(self) -> TileLocation:
        return self.locations[TABLE_LOCATION]

    @property
    def displays(self) -> List[TileLocation]:
        return self.locations[TABLE_LOCATION + 1:]

    @property
    def last_player(self) -> int:
        return self._last_player

    @property
    def is_round_over(self) -> bool:
        """All locations are out of tiles (the marker does not count)."""
        return all(location.is_empty() for location in self.locations)

    @property
    def game_over(self) -> bool:
        return any(board.has_complete_row() for board in self.player_boards)

    @property
    def needs_refill(self) -> bool:
        """True at a round boundary whose displays have not been dealt yet."""
        return self.is_round_over and not self.game_over

    def refill_displays(self, supplier: Optional[TileSupplier] = None) -> None:
        """
        Deal tiles onto every display for a new round.

        Raises:
            IllegalStateError: if any location still holds tiles
            InvalidConfigurationError: if a supplied deal is malformed or
                not available in the bag (the state is unchanged)
        """
        if not self.is_round_over:
            raise IllegalStateError("Tried to refill displays while tiles are still in play")

        supplier = supplier if supplier is not None else self.supplier
        dealt = supplier.deal(self.bag, self.num_displays, self.rng)
        for display, tiles in zip(self.displays, dealt):
            display.add_tiles(tiles)

        logger.debug(
            "Round %d dealt; %d tiles left in bag, %d in lid",
            self.round_number, self.bag.remaining(), self.bag.lid_count()
        )

    def get_legal_actions(self, floor_only_if_forced: bool = True) -> List[Action]:
        """
        Get all legal actions for current player.

        Returns list of (location, color, pattern_line) tuples where:
        - location: 0 for the table, 1..2N+1 for a display
        - color: TileColor to pick
        - pattern_line: row index (0-4) or -1 for floor

        With ``floor_only_if_forced`` a floor move is only listed for a
        (location, color) pair that no pattern line accepts.
        """
        if self.is_round_over:
            return []

        actions = []
        player_board = self.player_boards[self.current_player]

        for location_idx, location in enumerate(self.locations):
            for color in sorted(location.tiles):
                rows = [
                    row for row in range(PATTERN_LINES)
                    if player_board.is_legal_placement(color, row)
                ]
                actions.extend((location_idx, color, row) for row in rows)

                if not rows or not floor_only_if_forced:
                    actions.append((location_idx, color, FLOOR_ROW))

        return actions

    def _validate_move(self, location: int, color: ColorLike, row: int) -> TileColor:
        """Check every rule for a move without touching the state."""
        if not isinstance(location, (int, np.integer)) or not 0 <= location < len(self.locations):
            raise IllegalMoveError(
                f"Tried to make a move from tile location {location} "
                f"(0-{len(self.locations) - 1} required)"
            )

        tile_location = self.locations[location]
        if tile_location.is_empty():
            raise IllegalMoveError(
                f"Tried to take a tile from an empty tile location ({location})"
            )

        try:
            tile_color = parse_color(color)
        except InvalidConfigurationError as e:
            raise IllegalMoveError(str(e)) from None

        if not tile_location.has_color(tile_color):
            raise IllegalMoveError(
                f"Tried to take {tile_color.symbol} from tile location {location}, "
                f"but there is no such tile there"
            )

        if not isinstance(row, (int, np.integer)) or not FLOOR_ROW <= row < PATTERN_LINES:
            raise IllegalMoveError(
                f"Tried to add tiles to row {row} "
                f"(0-{PATTERN_LINES - 1} required, or -1 for the floor line)"
            )

        board = self.player_boards[self.current_player]
        if row != FLOOR_ROW and not board.is_legal_placement(tile_color, row):
            raise IllegalMoveError(
                f"Tried to add the color {tile_color.symbol} to row {row}, "
                f"but it is not legal to do so"
            )

        return tile_color

    def _ends_round(self, location: int, color: TileColor) -> bool:
        """Whether taking ``color`` from ``location`` empties every location."""
        return all(
            set(other.tiles) == {color} if i == location else other.is_empty()
            for i, other in enumerate(self.locations)
        )

    def _checkpoint(self) -> Dict[str, Any]:
        return {
            'bag': self.bag.copy(),
            'locations': [location.copy() for location in self.locations],
            'player_boards': [pb.copy() for pb in self.player_boards],
            '_last_player': self._last_player,
            'last_action': self.last_action,
            'current_player': self.current_player,
            'next_round_first_player': self.next_round_first_player,
            'round_number': self.round_number,
            'rng_state': self.rng.getstate(),
        }

    def _restore(self, checkpoint: Dict[str, Any]) -> None:
        """Put back everything a move may have changed."""
        checkpoint = dict(checkpoint)
        self.rng.setstate(checkpoint.pop('rng_state'))
        for name, value in checkpoint.items():
            setattr(self, name, value)

    def apply_move(
        self,
        location: int,
        color: ColorLike,
        row: int,
        supplier: Optional[TileSupplier] = None,
        refill: bool = True
    ) -> Dict[str, Any]:
        """
        Execute a move for the current player.

        If the move takes the last tiles of the round, every board is scored
        and, unless the game is over, the table gets the first player marker
        back and the displays are dealt for the next round.

        Args:
            location: 0 for the table, 1..2N+1 for a display
            color: TileColor or one of the symbols B, Y, R, K, W
            row: pattern line (0-4) or -1 for the floor line
            supplier: deals the next round (defaults to the state's supplier)
            refill: set to False to leave the next round undealt

        Returns:
            Dict with action results

        Raises:
            IllegalMoveError: if the move breaks a rule; nothing is changed
            InvalidConfigurationError: if the supplier's deal is rejected;
                the move is rolled back and nothing is changed
            IllegalStateError: if the supplier has no deal to give; the
                move is rolled back as well
        """
        tile_color = self._validate_move(location, color, row)

        checkpoint = None
        if refill and self._ends_round(location, tile_color):
            checkpoint = self._checkpoint()

        player = self.current_player
        player_board = self.player_boards[player]
        tile_location = self.locations[location]

        tiles_taken = tile_location.take_all(tile_color)
        floor_before = len(player_board.floor_line)
        excess = player_board.place_tiles(tiles_taken, tile_color, row)
        tiles_to_floor = len(player_board.floor_line) - floor_before
        if excess:
            self.bag.return_to_lid(tile_color, excess)

        took_first_player = False
        if tile_location.is_table:
            if tile_location.take_first_player_marker():
                player_board.add_first_player_marker()
                self.next_round_first_player = player
                took_first_player = True
        else:
            # Leftovers from a display slide to the table
            self.table.add_tiles(tile_location.take_everything())

        result = {
            'player': player,
            'action': (location, tile_color, row),
            'tiles_taken': tiles_taken,
            'tiles_to_floor': tiles_to_floor,
            'tiles_to_lid': excess,
            'took_first_player': took_first_player,
            'round_ended': False,
            'game_over': False,
        }

        self._last_player = player
        self.last_action = result['action']

        if not self.is_round_over:
            self.current_player = (player + 1) % self.num_players
            return result

        result['round_ended'] = True
        try:
            self._end_round(supplier, refill)
        except AzulError:
            if checkpoint is not None:
                self._restore(checkpoint)
            raise

        if self.game_over:
            result['game_over'] = True
            result['winners'] = self.winners()
            result['final_scores'] = self.final_scores()

        return result

    def take_action(self, action: Action, **kwargs) -> Dict[str, Any]:
        """Execute an action given as a (location, color, row) tuple."""
        location, color, row = action
        return self.apply_move(location, color, row, **kwargs)

    def _end_round(self, supplier: Optional[TileSupplier], refill: bool) -> None:
        """Score every board and set up the next round if the game goes on."""
        for player_board in self.player_boards:
            self.bag.add_to_lid(player_board.end_round_scoring())

        if self.next_round_first_player is not None:
            self.current_player = self.next_round_first_player
        else:
            self.current_player = (self.current_player + 1) % self.num_players

        logger.debug(
            "Round %d scored: %s", self.round_number,
            [board.score for board in self.player_boards]
        )

        if self.game_over:
            logger.debug(
                "Game over after round %d: final scores %s",
                self.round_number, self.final_scores()
            )
            return

        self.round_number += 1
        self.next_round_first_player = None
        self.table.add_first_player_marker()

        if refill:
            self.refill_displays(supplier)

    def legal_successors(self) -> List['AzulState']:
        """One undealt successor per legal move; empty at a round boundary."""
        successors = []
        for action in self.get_legal_actions():
            child = self.copy()
            child.take_action(action, refill=False)
            successors.append(child)
        return successors

    def random_successor(self) -> 'AzulState':
        """
        Apply one random legal move to a copy of this state.

        A round boundary is dealt randomly first, whatever supplier the
        state was created with.
        """
        if self.game_over:
            raise IllegalStateError("The game is over; there is no successor")

        state = self.copy()
        if state.is_round_over:
            state.refill_displays(_RANDOM_SUPPLIER)

        actions = state.get_legal_actions()
        if not actions:
            raise IllegalStateError("No tiles left to deal; the game cannot continue")

        action = actions[state.rng.randrange(len(actions))]
        state.take_action(action, refill=False)
        return state

    def winners(self) -> Set[int]:
        """
        Winning players once a wall row is complete.

        Highest final score wins; ties go to the most completed wall rows and
        players still level on both share the win.
        """
        if not self.game_over:
            return set()

        ranking = [
            (board.final_score(), board.completed_rows())
            for board in self.player_boards
        ]
        best = max(ranking)
        return {i for i, rank in enumerate(ranking) if rank == best}

    def final_scores(self) -> List[int]:
        return [board.final_score() for board in self.player_boards]

    def tile_total(self) -> int:
        """Tiles in the bag, lid, locations and on boards (marker excluded)."""
        return (
            self.bag.total()
            + count_tiles(self.locations)
            + sum(board.tile_count() for board in self.player_boards)
        )

    def get_state(self) -> Dict[str, Any]:
        """Get complete game state as a dictionary."""
        return {
            'num_players': self.num_players,
            'current_player': self.current_player,
            'last_player': self._last_player,
            'next_round_first_player': self.next_round_first_player,
            'round_number': self.round_number,
            'game_over': self.game_over,
            'bag': dict(self.bag.bag),
            'lid': dict(self.bag.lid),
            'locations': [dict(location.tiles) for location in self.locations],
            'table_has_first_player': self.table.has_first_player,
            'player_boards': [
                {
                    'pattern_lines': pb.pattern_lines.copy(),
                    'wall': pb.wall.tolist(),
                    'floor_line': pb.floor_line.copy(),
                    'score': pb.score
                }
                for pb in self.player_boards
            ],
        }

    def copy(self) -> 'AzulState':
        """
        Create an independent deep copy of the game state.

        The copy gets its own random stream, seeded from this state's stream
        and a count of copies made so far. Sibling copies therefore differ,
        and this state's own stream is not advanced.
        """
        self._copies += 1
        new_state = AzulState.__new__(AzulState)
        new_state.num_players = self.num_players
        new_state.num_displays = self.num_displays
        new_state.supplier = deepcopy(self.supplier)
        new_state.rng = random.Random(hash((self.rng.getstate()[1], self._copies)))
        new_state._copies = 0

        new_state.bag = self.bag.copy()
        new_state.locations = [location.copy() for location in self.locations]
        new_state.player_boards = [pb.copy() for pb in self.player_boards]

        new_state._last_player = self._last_player
        new_state.last_action = self.last_action
        new_state.current_player = self.current_player
        new_state.next_round_first_player = self.next_round_first_player
        new_state.round_number = self.round_number

        return new_state

    def __str__(self) -> str:
        rule = '=' * 60
        lines = [
            rule,
            f"Round {self.round_number}",
            f"Last Player = {self._last_player}",
            f"Current Player = {self.current_player}",
            f"Player to start next round = {self.next_round_first_player}",
            str(self.bag),
        ]
        lines.extend(f"[{i}] {location}" for i, location in enumerate(self.locations))
        for i, board in enumerate(self.player_boards):
            lines.append(rule)
            lines.append(f"Player {i}")
            lines.append(str(board))
        return '\n'.join(lines)
