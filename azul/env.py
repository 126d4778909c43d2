"""
PettingZoo wrapper around ``AzulState``.

Each agent sees the shared tile locations, its own board in full and the
walls and scores of its opponents. Actions are flat indices over
(location, color, destination); an ``action_mask`` entry marks the legal ones.
"""

import functools
from typing import Any, Dict, Optional, Tuple

import numpy as np
from gymnasium import spaces
from pettingzoo import AECEnv

from azul.constants import (
    TileColor, NUM_TILE_COLORS, PATTERN_LINES, WALL_SIZE, FLOOR_LINE_SIZE,
    FLOOR_ROW, DISPLAYS_BY_PLAYERS, TILES_PER_DISPLAY, TOTAL_TILES,
    MIN_PLAYERS, MAX_PLAYERS
)
from azul.errors import InvalidConfigurationError
from azul.game import AzulState, Action
from azul.tiles import TileCounts

WIN_BONUS = 50
INVALID_ACTION_PENALTY = -10
MAX_SCORE = 500

# Pattern line rows 0-4, then the floor
NUM_DESTINATIONS = PATTERN_LINES + 1


def _count_vector(tiles: TileCounts) -> np.ndarray:
    counts = np.zeros(NUM_TILE_COLORS, dtype=np.int8)
    for color, count in tiles.items():
        counts[color] = count
    return counts


class AzulEnv(AECEnv):
    """
    Azul as an agent-environment-cycle game for 2-4 agents.

    Observation (dict):
        displays          (num_displays, 5) tile counts per display
        table             (5,) tile counts on the table
        table_has_first   1 while the first player marker is on the table
        my_pattern_lines  (5, 2) rows of (count, color), color -1 when empty
        my_wall           (5, 5) 0/1
        my_floor          (7,) tile colors, -1 for a free slot, 5 for the marker
        my_score          (1,)
        opponent_walls    (num_players - 1, 5, 5) in seat order after me
        opponent_scores   (num_players - 1,)
        action_mask       (num_actions,) 0/1

    Action:
        location * 30 + color * 6 + destination, where location 0 is the
        table, destination 5 is the floor.

    Reward:
        change in running score after every move, plus ``WIN_BONUS`` for
        each winner at the end and ``INVALID_ACTION_PENALTY`` for an
        illegal choice (the first legal move is played instead).
    """

    metadata = {
        "name": "azul_v0",
        "render_modes": ["human", "ansi"],
        "is_parallelizable": False,
    }

    def __init__(
        self,
        num_players: int = 2,
        render_mode: Optional[str] = None,
        seed: Optional[int] = None
    ):
        super().__init__()

        if num_players not in DISPLAYS_BY_PLAYERS:
            raise InvalidConfigurationError(
                f"Azul supports {MIN_PLAYERS}-{MAX_PLAYERS} players, got {num_players}"
            )

        self.num_players = num_players
        self.num_displays = DISPLAYS_BY_PLAYERS[num_players]
        self.num_actions = (self.num_displays + 1) * NUM_TILE_COLORS * NUM_DESTINATIONS
        self.render_mode = render_mode
        self._seed = seed

        self.possible_agents = [f"player_{i}" for i in range(num_players)]
        self.agent_name_mapping = {
            name: seat for seat, name in enumerate(self.possible_agents)
        }

        self._action_space = spaces.Discrete(self.num_actions)
        self._observation_space = self._build_observation_space()

        self.game: Optional[AzulState] = None

    def _build_observation_space(self) -> spaces.Dict:
        opponents = self.num_players - 1

        def box(shape, low, high, dtype=np.int8):
            return spaces.Box(low=low, high=high, shape=shape, dtype=dtype)

        return spaces.Dict({
            "displays": box((self.num_displays, NUM_TILE_COLORS), 0, TILES_PER_DISPLAY),
            "table": box((NUM_TILE_COLORS,), 0, TOTAL_TILES),
            "table_has_first": spaces.Discrete(2),
            "my_pattern_lines": box((PATTERN_LINES, 2), -1, NUM_TILE_COLORS),
            "my_wall": box((WALL_SIZE, WALL_SIZE), 0, 1),
            "my_floor": box((FLOOR_LINE_SIZE,), -1, NUM_TILE_COLORS),
            "my_score": box((1,), 0, MAX_SCORE, np.int32),
            "opponent_walls": box((opponents, WALL_SIZE, WALL_SIZE), 0, 1),
            "opponent_scores": box((opponents,), 0, MAX_SCORE, np.int32),
            "action_mask": box((self.num_actions,), 0, 1),
        })

    @functools.lru_cache(maxsize=None)
    def observation_space(self, agent: str) -> spaces.Space:
        return self._observation_space

    @functools.lru_cache(maxsize=None)
    def action_space(self, agent: str) -> spaces.Space:
        return self._action_space

    def reset(
        self,
        seed: Optional[int] = None,
        options: Optional[Dict] = None
    ) -> None:
        if seed is not None:
            self._seed = seed

        self.game = AzulState(num_players=self.num_players, seed=self._seed)

        self.agents = list(self.possible_agents)
        self.rewards = dict.fromkeys(self.agents, 0)
        self._cumulative_rewards = dict.fromkeys(self.agents, 0)
        self.terminations = dict.fromkeys(self.agents, False)
        self.truncations = dict.fromkeys(self.agents, False)
        self.infos: Dict[str, Dict[str, Any]] = {agent: {} for agent in self.agents}

        self._sync_agent_selection()

    def step(self, action: Optional[int]) -> None:
        agent = self.agent_selection
        if self.terminations[agent] or self.truncations[agent]:
            self._was_dead_step(action)
            return

        game_action = self.decode_action(action)
        legal_actions = self.game.get_legal_actions(floor_only_if_forced=False)

        penalty = 0
        if game_action not in legal_actions:
            penalty = INVALID_ACTION_PENALTY
            game_action = legal_actions[0]

        scores_before = [board.score for board in self.game.player_boards]
        self.game.take_action(game_action)

        self.rewards = {
            name: board.score - before
            for name, board, before in zip(
                self.agents, self.game.player_boards, scores_before
            )
        }
        self.rewards[agent] += penalty

        if self.game.game_over:
            self._finish_game()

        self._accumulate_rewards()
        self._sync_agent_selection()

        if self.render_mode == "human":
            self.render()

    def _finish_game(self) -> None:
        winners = self.game.winners()
        final_scores = self.game.final_scores()

        for seat, name in enumerate(self.agents):
            self.terminations[name] = True
            self.infos[name] = {
                "final_score": final_scores[seat],
                "winner": seat in winners,
            }
            if seat in winners:
                self.rewards[name] += WIN_BONUS

    def _sync_agent_selection(self) -> None:
        self.agent_selection = self.possible_agents[self.game.current_player]

    def observe(self, agent: str) -> Optional[Dict[str, Any]]:
        if self.game is None:
            return None

        seat = self.agent_name_mapping[agent]
        board = self.game.player_boards[seat]
        opponents = [
            self.game.player_boards[(seat + offset) % self.num_players]
            for offset in range(1, self.num_players)
        ]

        pattern_lines = np.array(
            [
                (count, -1 if color is None else int(color))
                for count, color in board.pattern_lines
            ],
            dtype=np.int8
        )
        floor = np.full(FLOOR_LINE_SIZE, -1, dtype=np.int8)
        floor[:len(board.floor_line)] = [int(tile) for tile in board.floor_line]

        return {
            "displays": np.stack([
                _count_vector(display.tiles) for display in self.game.displays
            ]),
            "table": _count_vector(self.game.table.tiles),
            "table_has_first": int(self.game.table.has_first_player),
            "my_pattern_lines": pattern_lines,
            "my_wall": board.wall.astype(np.int8),
            "my_floor": floor,
            "my_score": np.array([board.score], dtype=np.int32),
            "opponent_walls": np.stack([o.wall.astype(np.int8) for o in opponents]),
            "opponent_scores": np.array([o.score for o in opponents], dtype=np.int32),
            "action_mask": self.action_mask(),
        }

    def encode_action(self, action: Action) -> int:
        """Flat index of a game ``(location, color, row)`` move."""
        location, color, row = action
        destination = PATTERN_LINES if row == FLOOR_ROW else row
        return (int(location) * NUM_TILE_COLORS + int(color)) * NUM_DESTINATIONS + destination

    def decode_action(self, index: int) -> Action:
        """Game ``(location, color, row)`` move for a flat index."""
        rest, destination = divmod(int(index), NUM_DESTINATIONS)
        location, color = divmod(rest, NUM_TILE_COLORS)
        row = FLOOR_ROW if destination == PATTERN_LINES else destination
        return (location, TileColor(color), row)

    def action_mask(self) -> np.ndarray:
        mask = np.zeros(self.num_actions, dtype=np.int8)
        for action in self.game.get_legal_actions(floor_only_if_forced=False):
            mask[self.encode_action(action)] = 1
        return mask

    def render(self) -> Optional[str]:
        if self.render_mode is None:
            return None
        if self.game is None:
            return "Game not initialized"

        text = str(self.game)
        if self.render_mode == "human":
            print(text)
        return text

    def close(self) -> None:
        pass
