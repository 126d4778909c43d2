"""
Constants for the Azul board game.
"""

from enum import IntEnum
from typing import Dict, List, Tuple

# Number of players (standard game supports 2-4)
MIN_PLAYERS = 2
MAX_PLAYERS = 4

# Tile colors
class TileColor(IntEnum):
    BLUE = 0
    YELLOW = 1
    RED = 2
    BLACK = 3
    WHITE = 4
    # Special marker (first player token)
    FIRST_PLAYER = 5
    # Empty/no tile
    EMPTY = 6

    @property
    def symbol(self) -> str:
        return TILE_SYMBOLS[self]

    @classmethod
    def colors(cls) -> List['TileColor']:
        """The five real tile colors, in canonical order."""
        return [cls(c) for c in range(NUM_TILE_COLORS)]


NUM_TILE_COLORS = 5  # Excluding FIRST_PLAYER and EMPTY

# One-letter symbols used by the text rendering and by externally supplied deals
TILE_SYMBOLS: Dict[TileColor, str] = {
    TileColor.BLUE: 'B',
    TileColor.YELLOW: 'Y',
    TileColor.RED: 'R',
    TileColor.BLACK: 'K',
    TileColor.WHITE: 'W',
    TileColor.FIRST_PLAYER: '1',
    TileColor.EMPTY: '.',
}
SYMBOL_TO_COLOR: Dict[str, TileColor] = {
    TILE_SYMBOLS[color]: color for color in TileColor.colors()
}

# Total tiles per color in the bag
TILES_PER_COLOR = 20
TOTAL_TILES = TILES_PER_COLOR * NUM_TILE_COLORS

# Displays: 2N + 1 for N players, plus the table at location 0
DISPLAYS_BY_PLAYERS = {
    2: 5,
    3: 7,
    4: 9
}
TILES_PER_DISPLAY = 4
TABLE_LOCATION = 0

# Player board dimensions
PATTERN_LINES = 5  # 5 rows (1-5 spaces each)
WALL_SIZE = 5      # 5x5 wall grid
FLOOR_ROW = -1     # row choice that sends tiles straight to the floor line

# Floor line (penalty area)
FLOOR_LINE_SIZE = 7
FLOOR_PENALTIES = [-1, -1, -2, -2, -2, -3, -3]

# Wall pattern: row i is the base order shifted right by i
WALL_PATTERN: List[List[TileColor]] = [
    [TileColor((col - row) % WALL_SIZE) for col in range(WALL_SIZE)]
    for row in range(WALL_SIZE)
]

# Bonus points at end of game
BONUS_COMPLETE_ROW = 2
BONUS_COMPLETE_COLUMN = 7
BONUS_COMPLETE_COLOR = 10


def get_wall_position(row: int, color: TileColor) -> Tuple[int, int]:
    """Get the column position for a color in a specific wall row."""
    if not 0 <= color < NUM_TILE_COLORS:
        raise ValueError(f"Color {color} has no wall position")
    return (row, (row + int(color)) % WALL_SIZE)


def get_color_at_wall_position(row: int, col: int) -> TileColor:
    """Get the color at a specific wall position."""
    return WALL_PATTERN[row][col]
