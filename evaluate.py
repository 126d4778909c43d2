"""
Evaluation script for the Azul MCTS player.

Plays the MCTS player against simple baselines (Random, Greedy) or against
an MCTS player with a different iteration budget, and reports win rates with
a Wilson confidence interval.

Usage examples:
    python evaluate.py --opponent random --games 20
    python evaluate.py --opponent greedy --simulations 500 --games 50
    python evaluate.py --opponent mcts --opponent-simulations 100 --games 20
"""

import argparse
import logging
from typing import Dict, List, Optional

import numpy as np
from tqdm import tqdm

from azul.game import AzulState, Action
from mcts.mcts import MCTSPlayer

logger = logging.getLogger(__name__)

MAX_MOVES = 500  # Safety limit per game


class RandomPlayer:
    """
    Baseline player that selects uniformly random legal actions.

    This is the weakest possible player - any search should beat it.
    """

    def __init__(self, seed: Optional[int] = None):
        self.rng = np.random.default_rng(seed)

    def select_action(self, game: AzulState) -> Optional[Action]:
        """Select a random legal action."""
        actions = game.get_legal_actions()
        if not actions:
            return None
        return actions[self.rng.integers(len(actions))]

    def __str__(self):
        return "Random"


class GreedyPlayer:
    """
    Baseline player using simple hand-crafted heuristics.

    Strategy:
    - Prefers actions that complete pattern lines
    - Avoids overflow to the floor line
    - Slightly avoids taking the first player marker
    """

    def select_action(self, game: AzulState) -> Optional[Action]:
        """Select the best action according to simple heuristics."""
        actions = game.get_legal_actions()
        if not actions:
            return None
        return max(actions, key=lambda action: self._evaluate_action(game, action))

    def _evaluate_action(self, game: AzulState, action: Action) -> float:
        """
        Heuristic scoring:
        - +10 for completing a pattern line (guaranteed wall tile)
        - -2 per tile that overflows to floor
        - -5 for putting tiles directly on floor
        - -1 for taking first player marker
        """
        location, color, dest = action
        player = game.player_boards[game.current_player]
        tiles = game.locations[location].count(color)

        score = 0.0
        if dest >= 0:
            count, _ = player.pattern_lines[dest]
            remaining = dest + 1 - count

            if tiles >= remaining:
                score += 10.0 + dest * 0.5

            score -= max(0, tiles - remaining) * 2.0
        else:
            score -= 5.0 + tiles * 1.0

        if game.locations[location].is_table and game.table.has_first_player:
            score -= 1.0

        return score

    def __str__(self):
        return "Greedy"


class MCTSAgent:
    """Adapts ``MCTSPlayer`` (which returns states) to the action interface."""

    def __init__(self, num_simulations: int, seed: Optional[int] = None):
        self.player = MCTSPlayer(num_simulations=num_simulations, seed=seed)

    def select_action(self, game: AzulState) -> Optional[Action]:
        if not game.get_legal_actions():
            return None
        return self.player.select_state(game).last_action

    def __str__(self):
        return str(self.player)


def play_game(players: List, seed: Optional[int] = None) -> AzulState:
    """Play one game; ``players[i]`` controls seat i."""
    game = AzulState(num_players=len(players), seed=seed)
    move_count = 0

    while not game.game_over and move_count < MAX_MOVES:
        action = players[game.current_player].select_action(game)
        if action is None:
            break
        game.take_action(action)
        move_count += 1

    if not game.game_over:
        logger.warning("Game stopped after %d moves without finishing", move_count)

    return game


def play_match(
    player1,
    player2,
    num_games: int = 20,
    seed: Optional[int] = None,
    verbose: bool = False
) -> Dict:
    """
    Play two-player games between two players, alternating seats.

    Returns:
        Dictionary with match statistics:
        - player1_wins / player2_wins / draws
        - player1_scores / player2_scores: final scores per game
        - game_lengths: rounds played per game
    """
    results = {
        "player1_wins": 0,
        "player2_wins": 0,
        "draws": 0,
        "player1_scores": [],
        "player2_scores": [],
        "game_lengths": []
    }

    for game_idx in tqdm(range(num_games), desc=f"{player1} vs {player2}"):
        # Alternate who moves first
        swapped = game_idx % 2 == 1
        seats = [player2, player1] if swapped else [player1, player2]
        game_seed = None if seed is None else seed + game_idx

        game = play_game(seats, seed=game_seed)

        scores = game.final_scores()
        winners = game.winners()
        p1_seat, p2_seat = (1, 0) if swapped else (0, 1)

        results["player1_scores"].append(scores[p1_seat])
        results["player2_scores"].append(scores[p2_seat])
        results["game_lengths"].append(game.round_number)

        if winners == {p1_seat}:
            results["player1_wins"] += 1
        elif winners == {p2_seat}:
            results["player2_wins"] += 1
        else:
            results["draws"] += 1

        if verbose:
            print(f"Game {game_idx + 1}: {scores[p1_seat]} - {scores[p2_seat]}")

    return results


def calculate_statistics(results: Dict) -> Dict:
    """
    Calculate detailed statistics from match results.

    Returns:
        Dictionary with win rates (percent), average scores and a 95%
        Wilson score interval for player 1's win rate
    """
    total = results["player1_wins"] + results["player2_wins"] + results["draws"]
    if total == 0:
        return {"total_games": 0}

    p1_scores = np.array(results["player1_scores"])
    p2_scores = np.array(results["player2_scores"])

    n = total
    p = results["player1_wins"] / total
    z = 1.96  # 95% confidence

    denominator = 1 + z**2 / n
    center = (p + z**2 / (2*n)) / denominator
    margin = z * np.sqrt((p * (1-p) + z**2 / (4*n)) / n) / denominator

    return {
        "total_games": total,
        "p1_wins": results["player1_wins"],
        "p2_wins": results["player2_wins"],
        "draws": results["draws"],
        "p1_winrate": p * 100,
        "p2_winrate": results["player2_wins"] / total * 100,
        "draw_rate": results["draws"] / total * 100,
        "p1_avg_score": float(np.mean(p1_scores)),
        "p2_avg_score": float(np.mean(p2_scores)),
        "avg_margin": float(np.mean(p1_scores - p2_scores)),
        "ci_low": max(0.0, center - margin) * 100,
        "ci_high": min(1.0, center + margin) * 100,
        "avg_rounds": float(np.mean(results["game_lengths"])),
    }


def print_results(player1, player2, results: Dict) -> None:
    """Print formatted match results with statistics."""
    stats = calculate_statistics(results)

    print("\n" + "=" * 65)
    print(f"📊 MATCH RESULTS: {player1} vs {player2}")
    print("=" * 65)

    if stats["total_games"] == 0:
        print("\nNo games completed!")
        return

    print(f"\n{'Player':<25} {'Wins':>8} {'Win %':>10} {'Avg Score':>10}")
    print("-" * 60)
    print(f"{str(player1):<25} {stats['p1_wins']:>8} {stats['p1_winrate']:>9.1f}% "
          f"{stats['p1_avg_score']:>10.1f}")
    print(f"{str(player2):<25} {stats['p2_wins']:>8} {stats['p2_winrate']:>9.1f}% "
          f"{stats['p2_avg_score']:>10.1f}")
    print(f"{'Draws':<25} {stats['draws']:>8} {stats['draw_rate']:>9.1f}%")

    print(f"\n   Average score margin: {stats['avg_margin']:+.1f} points")
    print(f"   95% CI for P1 win rate: [{stats['ci_low']:.1f}%, {stats['ci_high']:.1f}%]")
    print(f"   Average game length: {stats['avg_rounds']:.1f} rounds")
    print("=" * 65)


def main():
    parser = argparse.ArgumentParser(description="Evaluate the Azul MCTS player")
    parser.add_argument("--games", type=int, default=20, help="Number of games")
    parser.add_argument("--simulations", type=int, default=200,
                        help="MCTS iterations per move")
    parser.add_argument("--opponent", choices=["random", "greedy", "mcts"],
                        default="random", help="Opponent type")
    parser.add_argument("--opponent-simulations", type=int, default=50,
                        help="MCTS iterations per move for an MCTS opponent")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--verbose", action="store_true", help="Print every game")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])

    args = parser.parse_args()
    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s"
    )

    player1 = MCTSAgent(args.simulations, seed=args.seed)
    if args.opponent == "random":
        player2 = RandomPlayer(seed=args.seed)
    elif args.opponent == "greedy":
        player2 = GreedyPlayer()
    else:
        player2 = MCTSAgent(args.opponent_simulations, seed=args.seed)

    results = play_match(player1, player2, args.games, seed=args.seed, verbose=args.verbose)
    print_results(player1, player2, results)


if __name__ == "__main__":
    main()
