"""
Azul Board Game - rules engine

A faithful implementation of the Azul board game for 2-4 players, usable
as a Monte Carlo Tree Search state and as a PettingZoo environment.
"""

from azul.constants import TileColor
from azul.errors import (
    AzulError, IllegalMoveError, IllegalStateError, InvalidConfigurationError
)
from azul.env import AzulEnv
from azul.game import AzulState, PlayerBoard
from azul.supply import FixedSupplier, RandomSupplier, TileSupplier
from azul.tiles import LocationKind, TileBag, TileLocation

__version__ = "0.1.0"
__all__ = [
    "AzulEnv",
    "AzulState",
    "PlayerBoard",
    "TileColor",
    "TileBag",
    "TileLocation",
    "LocationKind",
    "TileSupplier",
    "RandomSupplier",
    "FixedSupplier",
    "AzulError",
    "IllegalMoveError",
    "IllegalStateError",
    "InvalidConfigurationError",
]
