"""
Monte Carlo Tree Search over any state implementing the GameState contract.
"""

from mcts.state import GameState
from mcts.node import MCTSNode
from mcts.mcts import MCTS, MCTSPlayer, search

__all__ = ["GameState", "MCTSNode", "MCTS", "MCTSPlayer", "search"]
