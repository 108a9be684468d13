"""
Training script for the Q-learning chess season.

Plays a season of games between the learning agent (White) and the
heuristic opponent (Black), printing progress as the value table grows.
The learned table lives only for the season; --stats-out saves the game
history, not the table.

Usage:
    python -m chess_season.train_season                    # 20-game season
    python -m chess_season.train_season --games 50         # Longer season
    python -m chess_season.train_season --seed 7           # Reproducible run
    python -m chess_season.train_season --stats-out season.json
    python -m chess_season.train_season --config season_config.json
"""

import argparse
import json
import logging
import signal
import sys
import time

from chess_season.config import SeasonConfig
from chess_season.opponents import OPPONENTS
from chess_season.season import GameRecord, SeasonDriver, SeasonListener


class ProgressPrinter(SeasonListener):
    """Prints a status line every `log_interval` games."""

    def __init__(self, log_interval: int = 1):
        self.log_interval = max(1, log_interval)
        self.stats = None

    def on_stats(self, stats, epsilon, table_size):
        self.stats = stats

    def on_game_end(self, record: GameRecord):
        if record.game_number % self.log_interval != 0 or self.stats is None:
            return
        stats = self.stats
        print(
            f"Game {record.game_number} | "
            f"Result: {record.winner.value} ({record.termination.value}) | "
            f"Moves: {record.moves} | "
            f"Reward: {record.total_reward:.0f} | "
            f"W/L/D: {stats.wins}/{stats.losses}/{stats.draws} | "
            f"Table: {record.table_size} | "
            f"Explore: {record.epsilon:.1%}")


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='chess-season',
        description='Run a Q-learning chess season against a heuristic player'
    )
    parser.add_argument(
        '--config', type=str, default=None,
        help='Load settings from a saved SeasonConfig JSON file')
    parser.add_argument(
        '--games', type=int, default=None,
        help='Number of games in the season (default: 20)')
    parser.add_argument(
        '--max-moves', type=int, default=None,
        help='Max half-moves per game (default: 120)')
    parser.add_argument(
        '--advantage-threshold', type=int, default=None,
        help='Material lead that ends a game as a win (default: 4)')
    parser.add_argument(
        '--opponent', type=str, default=None,
        choices=list(OPPONENTS.keys()),
        help='Opponent to play against (default: heuristic)')
    parser.add_argument(
        '--seed', type=int, default=None,
        help='Random seed for agent and opponent')
    parser.add_argument(
        '--move-delay', type=float, default=None,
        help='Pause between moves in seconds (default: 0)')
    parser.add_argument(
        '--game-delay', type=float, default=None,
        help='Pause between games in seconds (default: 0)')
    parser.add_argument(
        '--log-interval', type=int, default=1,
        help='Print stats every N games (default: 1)')
    parser.add_argument(
        '--stats-out', type=str, default=None,
        help='Write season statistics to this JSON file')
    parser.add_argument(
        '--verbose', '-v', action='store_true',
        help='Verbose (debug) logging')
    return parser


def build_config(args) -> SeasonConfig:
    config = SeasonConfig.load(args.config) if args.config \
        else SeasonConfig.from_env()

    overrides = {
        'total_games': args.games,
        'max_moves': args.max_moves,
        'advantage_win_threshold': args.advantage_threshold,
        'opponent': args.opponent,
        'seed': args.seed,
        'move_delay': args.move_delay,
        'game_delay': args.game_delay,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)
    return config.validate()


def main(argv=None):
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    try:
        config = build_config(args)
    except (ValueError, OSError) as e:
        print(f"Error: {e}")
        return 1

    driver = SeasonDriver(config, listeners=[ProgressPrinter(args.log_interval)])

    def handle_interrupt(signum, frame):
        print("\nCancelling season after the current move...")
        driver.cancel()

    previous_handler = signal.signal(signal.SIGINT, handle_interrupt)

    print("=" * 70)
    print("CHESS SEASON - Q-learning agent vs heuristic player")
    print("=" * 70)
    print(f"  Games:      {config.total_games}")
    print(f"  Move cap:   {config.max_moves}")
    print(f"  Advantage:  +{config.advantage_win_threshold}")
    print(f"  Opponent:   {config.opponent}")
    print(f"  Seed:       {config.seed}")
    print()

    start_time = time.time()
    try:
        stats = driver.run_season()
    finally:
        signal.signal(signal.SIGINT, previous_handler)
    elapsed = time.time() - start_time

    agent_stats = driver.agent.get_stats()
    print(f"\n{'=' * 60}")
    print("SEASON COMPLETE" if not driver.cancelled else "SEASON CANCELLED")
    print(f"{'=' * 60}")
    print(f"  Games played:     {stats.total_games}")
    print(f"  Wins:             {stats.wins}")
    print(f"  Losses:           {stats.losses}")
    print(f"  Draws:            {stats.draws}")
    print(f"  Win rate:         {stats.win_rate():.1%}")
    print(f"  Mean reward:      {stats.mean_reward():.0f}")
    print(f"  Mean moves:       {stats.mean_moves():.0f}")
    print(f"  States seen:      {agent_stats['states_seen']}")
    print(f"  Table entries:    {agent_stats['table_size']}")
    print(f"  Exploration rate: {agent_stats['exploration_rate']:.1%}")
    print(f"  Elapsed time:     {elapsed:.1f}s")

    if args.stats_out:
        with open(args.stats_out, 'w') as f:
            json.dump(stats.to_dict(), f, indent=2)
        print(f"\n  Stats saved to: {args.stats_out}")

    return 0


if __name__ == '__main__':
    sys.exit(main() or 0)
