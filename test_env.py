"""
Tests for the PettingZoo environment wrapper.

Run with: pytest test_env.py
"""

import numpy as np
import pytest

from azul.constants import TileColor, FLOOR_ROW
from azul.env import AzulEnv, INVALID_ACTION_PENALTY
from azul.errors import InvalidConfigurationError


def test_env_creation():
    """Test PettingZoo environment creation."""
    env = AzulEnv(num_players=2)
    env.reset()

    assert len(env.agents) == 2
    assert env.agent_selection == "player_0"

    obs = env.observe(env.agent_selection)
    assert "displays" in obs
    assert "table" in obs
    assert "my_wall" in obs
    assert "action_mask" in obs
    assert obs["displays"].shape == (5, 5)
    assert obs["displays"].sum() == 20
    assert obs["table_has_first"] == 1
    assert obs["opponent_walls"].shape == (1, 5, 5)


def test_env_rejects_bad_player_count():
    with pytest.raises(InvalidConfigurationError):
        AzulEnv(num_players=5)


def test_action_encoding():
    env = AzulEnv(num_players=3)
    env.reset(seed=0)
    assert env.num_actions == 8 * 5 * 6

    for action in env.game.get_legal_actions(floor_only_if_forced=False):
        assert env.decode_action(env.encode_action(action)) == action

    assert env.encode_action((0, TileColor.BLUE, FLOOR_ROW)) == 5
    assert env.decode_action(31) == (1, TileColor.BLUE, 1)


def test_action_mask_matches_legal_actions():
    env = AzulEnv(num_players=2)
    env.reset(seed=1)
    mask = env.observe(env.agent_selection)["action_mask"]
    assert mask.sum() == len(env.game.get_legal_actions(floor_only_if_forced=False))


def test_invalid_action_is_penalized():
    env = AzulEnv(num_players=2)
    env.reset(seed=3)
    mask = env.observe(env.agent_selection)["action_mask"]
    invalid = int(np.flatnonzero(mask == 0)[0])

    env.step(invalid)

    assert env.game.last_player == 0
    assert env.rewards["player_0"] == INVALID_ACTION_PENALTY
    assert env.agent_selection == "player_1"


def test_env_gameplay():
    """Test playing through environment."""
    env = AzulEnv(num_players=2)
    env.reset(seed=42)

    move_count = 0
    for agent in env.agent_iter():
        obs, reward, term, trunc, info = env.last()

        if term or trunc:
            action = None
        else:
            valid_actions = np.flatnonzero(obs["action_mask"])
            action = int(valid_actions[0])

        env.step(action)
        move_count += 1

        if move_count > 1000:
            break

    assert env.game.game_over
    assert env.agents == []
    env.close()
