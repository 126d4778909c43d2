"""
The game state contract the search engine works against.

The search never looks inside a state: it only asks who moved last, what the
continuations are, and whether anyone has won.
"""

from abc import ABC, abstractmethod
from typing import Sequence, Set


class GameState(ABC):
    """Abstract game state for Monte Carlo Tree Search."""

    @property
    @abstractmethod
    def last_player(self) -> int:
        """Index of the player whose move produced this state (-1 before any move)."""

    @abstractmethod
    def legal_successors(self) -> Sequence['GameState']:
        """
        Every state reachable with one legal move.

        An empty result marks a leaf: the game is over, or the state sits at
        a point the tree does not branch through (for example a chance step).
        """

    @abstractmethod
    def random_successor(self) -> 'GameState':
        """A single successor chosen at random, resolving any chance step first."""

    @abstractmethod
    def winners(self) -> Set[int]:
        """Winning player indices; empty until the game is over."""
