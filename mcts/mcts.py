"""
Monte Carlo Tree Search algorithm implementation.

The search is game-agnostic: it only talks to states through the
``GameState`` contract (``last_player``, ``legal_successors``,
``random_successor``, ``winners``).
"""

import logging
import math
from typing import Optional, Set, Union

import numpy as np

from mcts.node import MCTSNode
from mcts.state import GameState

logger = logging.getLogger(__name__)

SeedLike = Union[None, int, np.random.Generator]


class MCTS:
    """
    Plain UCT search with random playouts.

    Every iteration selects down the tree by UCB1, expands the leaf it
    reaches, plays random successors from there until someone wins, and
    credits the result back up the path.
    """

    def __init__(
        self,
        num_simulations: int = 1000,
        exploration: float = math.sqrt(2),
        max_rollout_moves: Optional[int] = None,
        seed: SeedLike = None
    ):
        """
        Initialize MCTS.

        Args:
            num_simulations: Number of iterations per search
            exploration: UCB1 exploration constant
            max_rollout_moves: Optional cap on playout length; a capped
                playout counts as a result with no winner
            seed: Seed or Generator for the final move choice
        """
        if num_simulations < 1:
            raise ValueError("num_simulations must be at least 1")

        self.num_simulations = num_simulations
        self.exploration = exploration
        self.max_rollout_moves = max_rollout_moves
        self.rng = np.random.default_rng(seed)

        self.root: Optional[MCTSNode] = None

    def search(self, state: GameState) -> MCTSNode:
        """
        Perform MCTS search from given game state.

        Args:
            state: Current game state to search from (never modified)

        Returns:
            Root node after search

        Raises:
            ValueError: if the state has no legal successors
        """
        self.root = MCTSNode(state)
        self.root.expand()
        if not self.root.children:
            raise ValueError("Cannot search from a state with no legal successors")

        for _ in range(self.num_simulations):
            node = self.root

            # Selection: traverse tree to leaf
            while node.is_expanded and node.children:
                node = node.select_child(self.exploration)

            # Expansion: round boundaries and finished games stay leaves
            if not node.is_expanded:
                node.expand()
                if node.children:
                    node = node.select_child(self.exploration)

            # Simulation
            winners = self._rollout(node)

            # Backpropagation
            node.backpropagate(winners)

        logger.debug(
            "Search finished: %d iterations, root children %s",
            self.num_simulations, [c.visit_count for c in self.root.children]
        )
        return self.root

    def _rollout(self, node: MCTSNode) -> Set[int]:
        """Play random successors from the node's state until the game ends."""
        if node.is_terminal:
            return node.winners

        state = node.state
        winners = state.winners()
        moves = 0
        while not winners:
            if self.max_rollout_moves is not None and moves >= self.max_rollout_moves:
                return set()
            state = state.random_successor()
            winners = state.winners()
            moves += 1

        return winners

    def get_next_state(self, state: GameState, temperature: float = 0.0) -> GameState:
        """
        Search and return the recommended successor state.

        Args:
            state: Current game state
            temperature: 0 picks the most visited successor, > 0 samples
        """
        root = self.search(state)
        return root.best_child(temperature, self.rng).state

    def get_visit_distribution(
        self, state: GameState, temperature: float = 1.0
    ) -> np.ndarray:
        """Search and return selection probabilities over the root's successors."""
        root = self.search(state)
        return root.get_visit_distribution(temperature)


def search(state: GameState, iterations: int, **kwargs) -> GameState:
    """Run ``iterations`` MCTS iterations and return the best successor of ``state``."""
    return MCTS(num_simulations=iterations, **kwargs).get_next_state(state)


class MCTSPlayer:
    """
    A player that uses MCTS to choose its next state.

    Wrapper class for easy use from game drivers.
    """

    def __init__(
        self,
        num_simulations: int = 1000,
        exploration: float = math.sqrt(2),
        temperature: float = 0.0,
        max_rollout_moves: Optional[int] = None,
        seed: SeedLike = None
    ):
        """
        Initialize MCTS player.

        Args:
            num_simulations: Number of MCTS iterations per move
            exploration: UCB1 exploration constant
            temperature: Temperature for move selection (0 = greedy)
            max_rollout_moves: Optional cap on playout length
            seed: Seed or Generator for reproducible choices
        """
        self.mcts = MCTS(
            num_simulations=num_simulations,
            exploration=exploration,
            max_rollout_moves=max_rollout_moves,
            seed=seed
        )
        self.temperature = temperature

    def select_state(self, state: GameState) -> GameState:
        """Return the successor of ``state`` this player moves to."""
        return self.mcts.get_next_state(state, self.temperature)

    def reset(self) -> None:
        """Drop the last search tree."""
        self.mcts.root = None

    def __str__(self) -> str:
        return f"MCTS({self.mcts.num_simulations})"
