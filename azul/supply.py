"""
Refill suppliers: how displays get their tiles at the start of a round.

The rules engine never reads input itself. A driver that wants to replay a
physical deal passes in a supplier that knows the tiles; everything else uses
random draws from the bag.
"""

import logging
import random
from abc import ABC, abstractmethod
from collections import deque
from typing import Iterable, List, Sequence

from azul.constants import TILES_PER_DISPLAY
from azul.errors import IllegalStateError, InvalidConfigurationError
from azul.tiles import TileBag, TileCounts, add_tiles, parse_tiles

logger = logging.getLogger(__name__)


class TileSupplier(ABC):
    """Produces the contents of every display for a new round."""

    @abstractmethod
    def deal(
        self, bag: TileBag, num_displays: int, rng: random.Random
    ) -> List[TileCounts]:
        """
        Withdraw tiles from ``bag`` and return one tile mapping per display.

        Implementations must leave ``bag`` untouched when they raise.
        """


class RandomSupplier(TileSupplier):
    """Draws every display's tiles at random from the bag."""

    def deal(
        self, bag: TileBag, num_displays: int, rng: random.Random
    ) -> List[TileCounts]:
        displays = []
        for _ in range(num_displays):
            tiles: TileCounts = {}
            for _ in range(TILES_PER_DISPLAY):
                if bag.total() == 0:
                    logger.warning("Bag and lid are exhausted; display left short")
                    break
                add_tiles(tiles, bag.draw_random(rng), 1)
            displays.append(tiles)
        return displays

    def __repr__(self) -> str:
        return "RandomSupplier()"


def parse_deal(deal: Sequence[str], num_displays: int) -> List[TileCounts]:
    """
    Validate a deal given as one tile string per display, e.g. ``["BBYR", ...]``.

    Raises:
        InvalidConfigurationError: wrong number of displays, a display that
            does not hold exactly four tiles, or an unknown tile symbol
    """
    if len(deal) != num_displays:
        raise InvalidConfigurationError(
            f"Deal names {len(deal)} displays ({num_displays} required)"
        )

    displays = []
    for i, text in enumerate(deal):
        tiles = parse_tiles(text)
        if sum(tiles.values()) != TILES_PER_DISPLAY:
            raise InvalidConfigurationError(
                f"Display {i + 1} was given {text!r} "
                f"({TILES_PER_DISPLAY} tiles required)"
            )
        displays.append(tiles)
    return displays


class FixedSupplier(TileSupplier):
    """
    Replays known deals, one per refill, in the order they were queued.

    A deal is consumed only once it has been withdrawn from the bag, so a
    rejected deal can be corrected and retried.
    """

    def __init__(self, deals: Iterable[Sequence[str]] = ()):
        self.deals = deque(list(deal) for deal in deals)

    def add_deal(self, deal: Sequence[str]) -> None:
        self.deals.append(list(deal))

    def deal(
        self, bag: TileBag, num_displays: int, rng: random.Random
    ) -> List[TileCounts]:
        if not self.deals:
            raise IllegalStateError("No queued deal left to refill the displays with")

        displays = parse_deal(self.deals[0], num_displays)
        total: TileCounts = {}
        for tiles in displays:
            for color, count in tiles.items():
                add_tiles(total, color, count)

        bag.withdraw_exact(total)
        self.deals.popleft()
        logger.debug("Applied fixed deal %s", displays)
        return displays

    def __repr__(self) -> str:
        return f"FixedSupplier(pending={len(self.deals)})"
