"""
Tile bookkeeping for Azul: the bag/lid pool and the places tiles are taken from.

Tile collections are plain ``{TileColor: count}`` dicts. A color is only ever
present with a positive count, so ``not tiles`` means "no tiles here".
"""

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Union

from azul.constants import (
    TileColor, TILES_PER_COLOR, SYMBOL_TO_COLOR, NUM_TILE_COLORS
)
from azul.errors import IllegalMoveError, IllegalStateError, InvalidConfigurationError

logger = logging.getLogger(__name__)

TileCounts = Dict[TileColor, int]
ColorLike = Union[TileColor, int, str]


def parse_color(value: ColorLike) -> TileColor:
    """
    Convert a color given as TileColor, int or one-letter symbol.

    Raises:
        InvalidConfigurationError: if the value is not one of the five colors
    """
    if isinstance(value, str):
        color = SYMBOL_TO_COLOR.get(value.strip().upper())
        if color is None:
            raise InvalidConfigurationError(
                f"Invalid tile {value!r} (one of B, Y, R, K, W required)"
            )
        return color

    try:
        color = TileColor(value)
    except ValueError:
        raise InvalidConfigurationError(f"Invalid tile color {value!r}") from None
    if color >= NUM_TILE_COLORS:
        raise InvalidConfigurationError(f"{color.name} is not a tile color")
    return color


def parse_tiles(text: str) -> TileCounts:
    """Parse a tile string such as ``"BBYK"`` into color counts."""
    counts: TileCounts = {}
    for char in text.replace(" ", ""):
        add_tiles(counts, parse_color(char), 1)
    return counts


def add_tiles(counts: TileCounts, color: TileColor, count: int) -> None:
    """Add ``count`` tiles of ``color`` to a tile mapping in place."""
    if count <= 0:
        return
    counts[color] = counts.get(color, 0) + count


def format_tiles(counts: TileCounts) -> str:
    """Deterministic one-line rendering, e.g. ``B:2 K:1``."""
    if not counts:
        return "(empty)"
    return " ".join(
        f"{color.symbol}:{counts[color]}" for color in sorted(counts)
    )


class TileBag:
    """
    The bag tiles are drawn from plus the box lid discarded tiles wait in.

    When the bag runs dry the lid is tipped back into it.
    """

    def __init__(self, bag: TileCounts = None, lid: TileCounts = None):
        if bag is None:
            bag = {color: TILES_PER_COLOR for color in TileColor.colors()}
        self.bag: TileCounts = {c: n for c, n in bag.items() if n > 0}
        self.lid: TileCounts = {c: n for c, n in (lid or {}).items() if n > 0}

    def remaining(self) -> int:
        """Number of tiles currently drawable from the bag."""
        return sum(self.bag.values())

    def lid_count(self) -> int:
        return sum(self.lid.values())

    def total(self) -> int:
        """Tiles held by the pool, bag and lid together."""
        return self.remaining() + self.lid_count()

    def refill_from_lid(self) -> None:
        """Move every tile in the lid back into the bag."""
        if not self.lid:
            return
        logger.debug("Returning %d tiles from the lid to the bag", self.lid_count())
        for color, count in self.lid.items():
            add_tiles(self.bag, color, count)
        self.lid = {}

    def draw_random(self, rng: random.Random) -> TileColor:
        """
        Draw one tile uniformly over tile instances (not over colors).

        Raises:
            IllegalStateError: if both bag and lid are empty
        """
        if not self.bag:
            self.refill_from_lid()
        if not self.bag:
            raise IllegalStateError("Tried to draw a tile, but the bag and lid are empty")

        pick = rng.randrange(self.remaining())
        for color in sorted(self.bag):
            count = self.bag[color]
            if pick < count:
                if count == 1:
                    del self.bag[color]
                else:
                    self.bag[color] = count - 1
                return color
            pick -= count

        raise IllegalStateError("Tile bag counts are inconsistent")

    def return_to_lid(self, color: TileColor, count: int) -> None:
        add_tiles(self.lid, color, count)

    def add_to_lid(self, tiles: TileCounts) -> None:
        for color, count in tiles.items():
            add_tiles(self.lid, color, count)

    def remove_exact(self, tiles: TileCounts) -> None:
        """
        Withdraw exactly the given tiles from the bag.

        Every color is checked before anything is removed, so a failed call
        leaves the bag untouched. The lid is never consulted here.

        Raises:
            InvalidConfigurationError: if any requested count is unavailable
        """
        for color, count in tiles.items():
            available = self.bag.get(color, 0)
            if count > available:
                raise InvalidConfigurationError(
                    f"Tried to take {count} {color.name} tile(s) from the bag, "
                    f"but only {available} remain"
                )

        for color, count in tiles.items():
            if count <= 0:
                continue
            left = self.bag[color] - count
            if left:
                self.bag[color] = left
            else:
                del self.bag[color]

    def withdraw_exact(self, tiles: TileCounts) -> None:
        """
        Withdraw a whole deal, tipping the lid into the bag first if needed.

        A multi-color withdrawal cannot refill halfway through, so the lid is
        emptied up front whenever the bag alone holds fewer tiles than the
        deal. Feasibility is checked before either step mutates anything.
        """
        if self.remaining() >= sum(tiles.values()):
            self.remove_exact(tiles)
            return

        for color, count in tiles.items():
            available = self.bag.get(color, 0) + self.lid.get(color, 0)
            if count > available:
                raise InvalidConfigurationError(
                    f"Tried to take {count} {color.name} tile(s), "
                    f"but only {available} remain in the bag and lid"
                )
        self.refill_from_lid()
        self.remove_exact(tiles)

    def copy(self) -> 'TileBag':
        return TileBag(self.bag, self.lid)

    def __str__(self) -> str:
        return f"Bag: {format_tiles(self.bag)}\nLid: {format_tiles(self.lid)}"


class LocationKind(Enum):
    DISPLAY = "display"
    TABLE = "table"


@dataclass
class TileLocation:
    """
    A place players take tiles from: a display or the table.

    Only the table ever carries the first player marker.
    """

    kind: LocationKind
    tiles: TileCounts = field(default_factory=dict)
    has_first_player: bool = False

    @classmethod
    def display(cls) -> 'TileLocation':
        return cls(LocationKind.DISPLAY)

    @classmethod
    def table(cls) -> 'TileLocation':
        return cls(LocationKind.TABLE, has_first_player=True)

    @property
    def is_table(self) -> bool:
        return self.kind is LocationKind.TABLE

    def is_empty(self) -> bool:
        """True when no tiles are here (the marker does not count)."""
        return not self.tiles

    def has_color(self, color: TileColor) -> bool:
        return color in self.tiles

    def count(self, color: TileColor = None) -> int:
        if color is None:
            return sum(self.tiles.values())
        return self.tiles.get(color, 0)

    def add_tiles(self, tiles: TileCounts) -> None:
        for color, count in tiles.items():
            add_tiles(self.tiles, color, count)

    def take_all(self, color: TileColor) -> int:
        """
        Remove and return every tile of ``color``.

        Raises:
            IllegalMoveError: if the color is not here
        """
        if color not in self.tiles:
            raise IllegalMoveError(f"There is no {color.name} tile at this {self.kind.value}")
        return self.tiles.pop(color)

    def take_everything(self) -> TileCounts:
        """Remove and return all tiles here."""
        tiles, self.tiles = self.tiles, {}
        return tiles

    def add_first_player_marker(self) -> None:
        if not self.is_table:
            raise IllegalStateError("Only the table can hold the first player marker")
        self.has_first_player = True

    def take_first_player_marker(self) -> bool:
        """Clear the marker; returns whether it was present."""
        had_marker = self.has_first_player
        self.has_first_player = False
        return had_marker

    def copy(self) -> 'TileLocation':
        return TileLocation(self.kind, dict(self.tiles), self.has_first_player)

    def __str__(self) -> str:
        if self.is_table:
            marker = " + first player marker" if self.has_first_player else ""
            return f"Table: {format_tiles(self.tiles)}{marker}"
        return f"Display: {format_tiles(self.tiles)}"


def count_tiles(locations: Iterable[TileLocation]) -> int:
    return sum(location.count() for location in locations)
