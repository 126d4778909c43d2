"""
Interactive play script for Azul.

Allows human vs AI, AI vs AI, or human vs human gameplay. With
``--deal-from-input`` the display contents are typed in each round, so the
AI can play along with a physical game.
"""

import argparse
import logging
import random
import sys
import time
from typing import List, Optional

from azul.constants import TILES_PER_DISPLAY, FLOOR_ROW
from azul.errors import AzulError
from azul.game import AzulState, Action
from azul.supply import TileSupplier, parse_deal
from azul.tiles import TileBag, TileCounts
from mcts.mcts import MCTSPlayer

COLOR_NAMES = ['Blue', 'Yellow', 'Red', 'Black', 'White']


class ConsoleSupplier(TileSupplier):
    """Asks at the console which tiles were drawn for each display."""

    def deal(
        self, bag: TileBag, num_displays: int, rng: random.Random
    ) -> List[TileCounts]:
        print("Refilling displays from input...")

        # The bag cannot be refilled halfway through typed-in draws
        if bag.remaining() < TILES_PER_DISPLAY * num_displays:
            bag.refill_from_lid()

        displays = []
        for i in range(1, num_displays + 1):
            while True:
                text = input(f"Display {i}: ").strip().upper()
                try:
                    tiles = parse_deal([text], 1)[0]
                    bag.remove_exact(tiles)
                except AzulError as e:
                    print(e)
                    continue
                displays.append(tiles)
                break
        return displays


def describe_action(action: Action) -> str:
    location, color, dest = action
    source_name = f"Display {location}" if location > 0 else "Table"
    dest_name = f"Row {dest}" if dest != FLOOR_ROW else "Floor"
    return f"{COLOR_NAMES[color]} from {source_name} → {dest_name}"


def get_human_action(state: AzulState) -> Action:
    """Get action input from human player."""
    legal_actions = state.get_legal_actions(floor_only_if_forced=False)

    print("\n📋 LEGAL ACTIONS:")
    for i, action in enumerate(legal_actions):
        print(f"  [{i}] Take {describe_action(action)}")

    while True:
        try:
            choice = input("\nEnter action number: ").strip()
            idx = int(choice)
            if 0 <= idx < len(legal_actions):
                return legal_actions[idx]
            print("Invalid choice. Try again.")
        except ValueError:
            print("Please enter a number.")
        except KeyboardInterrupt:
            print("\nGame aborted.")
            sys.exit(0)


def print_final_scores(state: AzulState) -> None:
    winners = state.winners()
    print("\nFinal Scores:")
    for i, score in enumerate(state.final_scores()):
        winner_mark = " 🥇" if i in winners else ""
        print(f"  Player {i}: {score} points{winner_mark}")

    if len(winners) == 1:
        print(f"\n🎉 Player {next(iter(winners))} wins! 🎉")
    else:
        print(f"\n🤝 It's a tie between players {sorted(winners)}!")


def play_game(
    num_players: int = 2,
    human_players: Optional[List[int]] = None,
    mcts_simulations: int = 1000,
    deal_from_input: bool = False,
    seed: Optional[int] = None
) -> None:
    """
    Play a game of Azul.

    Args:
        num_players: Number of players (2-4)
        human_players: List of player indices that are human-controlled
        mcts_simulations: Number of MCTS iterations for AI
        deal_from_input: Read each round's display contents from the console
        seed: Seed for random deals and search
    """
    if human_players is None:
        human_players = [0]

    supplier = ConsoleSupplier() if deal_from_input else None
    state = AzulState(num_players=num_players, supplier=supplier, seed=seed)
    ai_player = MCTSPlayer(num_simulations=mcts_simulations, seed=seed)

    print("\n🎮 AZUL GAME START 🎮")
    print(f"Players: {num_players}")
    print(f"Human players: {human_players}")
    print("-" * 40)

    while not state.game_over:
        if state.needs_refill:
            print("\n🔄 ROUND ENDED - Scoring...\n")
            state.refill_displays()

        print(state)
        current = state.current_player

        if current in human_players:
            state.take_action(get_human_action(state), refill=False)
        else:
            print(f"🤖 AI Player {current} is thinking...")
            state = ai_player.select_state(state)
            print(f"   AI chooses: {describe_action(state.last_action)}")

    print("\n" + "=" * 60)
    print("🏆 GAME OVER! 🏆")
    print("=" * 60)
    print(state)
    print_final_scores(state)


def watch_ai_game(
    num_players: int = 2,
    mcts_simulations: int = 1000,
    delay: float = 1.0,
    seed: Optional[int] = None
) -> None:
    """Watch AI players play against each other."""
    state = AzulState(num_players=num_players, seed=seed)
    ai_player = MCTSPlayer(num_simulations=mcts_simulations, seed=seed)

    print("\n🤖 AI VS AI GAME 🤖")
    print("-" * 40)

    move_count = 0
    while not state.game_over:
        if state.needs_refill:
            state.refill_displays()

        print(state)
        current = state.current_player
        print(f"🤖 AI Player {current} is thinking...")

        state = ai_player.select_state(state)
        move_count += 1
        print(f"   Move {move_count}: {describe_action(state.last_action)}")

        time.sleep(delay)

    print("\n🏆 GAME OVER! 🏆")
    print_final_scores(state)


def main():
    parser = argparse.ArgumentParser(description="Play Azul")
    parser.add_argument(
        "--mode",
        choices=["human", "watch", "pvp"],
        default="human",
        help="Game mode: human (vs AI), watch (AI vs AI), pvp (human vs human)"
    )
    parser.add_argument(
        "--players",
        type=int,
        default=2,
        choices=[2, 3, 4],
        help="Number of players"
    )
    parser.add_argument(
        "--ai-player",
        type=int,
        default=1,
        help="Seat of the AI in human mode; every other seat is human"
    )
    parser.add_argument(
        "--simulations",
        type=int,
        default=1000,
        help="MCTS iterations for AI"
    )
    parser.add_argument(
        "--deal-from-input",
        action="store_true",
        help="Type in the display contents each round instead of drawing randomly"
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=1.0,
        help="Delay between AI moves in watch mode"
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity"
    )

    args = parser.parse_args()
    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s"
    )

    if args.mode == "human":
        if not 0 <= args.ai_player < args.players:
            parser.error(f"--ai-player must be between 0 and {args.players - 1}")
        play_game(
            num_players=args.players,
            human_players=[i for i in range(args.players) if i != args.ai_player],
            mcts_simulations=args.simulations,
            deal_from_input=args.deal_from_input,
            seed=args.seed
        )
    elif args.mode == "watch":
        watch_ai_game(
            num_players=args.players,
            mcts_simulations=args.simulations,
            delay=args.delay,
            seed=args.seed
        )
    elif args.mode == "pvp":
        play_game(
            num_players=args.players,
            human_players=list(range(args.players)),
            mcts_simulations=args.simulations,
            deal_from_input=args.deal_from_input,
            seed=args.seed
        )


if __name__ == "__main__":
    main()
