"""
MCTS Node implementation.
"""

import math
import numpy as np
from typing import Optional, List, Set

from mcts.state import GameState


class MCTSNode:
    """
    Node in the Monte Carlo Tree Search tree.

    Each node holds the state reached by one move and the statistics of the
    player who made that move (``state.last_player``).
    """

    def __init__(self, state: GameState, parent: Optional['MCTSNode'] = None):
        """
        Initialize MCTS node.

        Args:
            state: Game state at this node (owned by the node)
            parent: Parent node (None for root)
        """
        self.state = state
        self.parent = parent

        # Statistics
        self.visit_count: int = 0
        self.value_sum: float = 0.0
        self.children: List['MCTSNode'] = []

        self._winners: Optional[Set[int]] = None
        self._is_expanded: bool = False

    @property
    def winners(self) -> Set[int]:
        """Winners of this state (cached)."""
        if self._winners is None:
            self._winners = self.state.winners()
        return self._winners

    @property
    def is_terminal(self) -> bool:
        """Check if this node represents a finished game."""
        return bool(self.winners)

    @property
    def is_expanded(self) -> bool:
        """Check if node has been expanded."""
        return self._is_expanded

    @property
    def q_value(self) -> float:
        """Average reward of this node for the player who moved into it."""
        if self.visit_count == 0:
            return 0.0
        return self.value_sum / self.visit_count

    def ucb_score(self, exploration: float = math.sqrt(2)) -> float:
        """
        UCB1 score: Q + c * sqrt(ln(N_parent) / N).

        Unvisited nodes score infinity so every child is tried once.
        """
        if self.visit_count == 0:
            return float('inf')
        if self.parent is None:
            return self.q_value

        exploration_term = exploration * math.sqrt(
            math.log(self.parent.visit_count) / self.visit_count
        )
        return self.q_value + exploration_term

    def expand(self) -> None:
        """Create a child for every legal successor of this state."""
        if self._is_expanded:
            return

        if not self.is_terminal:
            self.children = [
                MCTSNode(successor, parent=self)
                for successor in self.state.legal_successors()
            ]

        self._is_expanded = True

    def select_child(self, exploration: float = math.sqrt(2)) -> 'MCTSNode':
        """
        Select the child with highest UCB score.

        Raises:
            ValueError: if the node has no children
        """
        if not self.children:
            raise ValueError("Cannot select child from a node without children")

        best_score = float('-inf')
        best_child = None

        for child in self.children:
            score = child.ucb_score(exploration)
            if score > best_score:
                best_score = score
                best_child = child

        return best_child

    def backpropagate(self, winners: Set[int]) -> None:
        """
        Record a playout result on this node and every ancestor.

        A node earns 1 when the player who moved into it won outright and
        1/k when k players share the win.
        """
        share = 1.0 / len(winners) if winners else 0.0
        node = self
        while node is not None:
            node.visit_count += 1
            if node.state.last_player in winners:
                node.value_sum += share
            node = node.parent

    def get_visit_distribution(self, temperature: float = 1.0) -> np.ndarray:
        """
        Child selection probabilities based on visit counts.

        Args:
            temperature: 0 puts all mass on the most visited child,
                larger values flatten the distribution
        """
        if not self.children:
            return np.zeros(0)

        visit_counts = np.array([c.visit_count for c in self.children], dtype=float)

        if visit_counts.sum() == 0:
            return np.ones(len(self.children)) / len(self.children)
        if temperature == 0:
            probs = np.zeros(len(self.children))
            probs[np.argmax(visit_counts)] = 1.0
            return probs

        counts_temp = np.power(visit_counts, 1.0 / temperature)
        return counts_temp / counts_temp.sum()

    def best_child(
        self,
        temperature: float = 0.0,
        rng: Optional[np.random.Generator] = None
    ) -> 'MCTSNode':
        """
        Select the recommended child based on visit counts.

        Args:
            temperature: 0 = greedy (most visited), > 0 = sample
                proportionally to visit_count^(1/temperature)
            rng: Generator used when sampling
        """
        if not self.children:
            raise ValueError("No children to select from")

        probs = self.get_visit_distribution(temperature)
        if temperature == 0:
            return self.children[int(np.argmax(probs))]

        rng = rng if rng is not None else np.random.default_rng()
        return self.children[int(rng.choice(len(self.children), p=probs))]

    def __repr__(self) -> str:
        return (
            f"MCTSNode(player={self.state.last_player}, "
            f"visits={self.visit_count}, "
            f"q={self.q_value:.3f}, "
            f"children={len(self.children)})"
        )
