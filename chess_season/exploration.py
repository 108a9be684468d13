"""
Exploration schedule — owns the agent's epsilon for one season.

Epsilon starts at 1.0 (pure exploration) and follows a linear, clamped
schedule indexed by game number:

    epsilon = max(min_rate, 1.0 - (game_index / (total_games - 1)) * slope)

With the defaults (slope 1.5, floor 0.05) a 20-game season drops below
0.5 at game index 7 and sits at the floor from index 13 on.
"""

import random


class EpsilonSchedule:
    """Explore-vs-exploit decision plus the per-game decay."""

    def __init__(self, initial_rate: float = 1.0, min_rate: float = 0.05,
                 slope: float = 1.5):
        self.initial_rate = initial_rate
        self.min_rate = min_rate
        self.slope = slope
        self.exploration_rate = initial_rate

    def should_explore(self, rng: random.Random = None) -> bool:
        """Decide whether to explore or exploit"""
        rng = rng or random
        return rng.random() < self.exploration_rate

    def rate_for(self, game_index: int, total_games: int) -> float:
        if game_index < 0:
            raise ValueError(f"game_index must be >= 0, got {game_index}")
        if total_games <= 1:
            progress = 0.0
        else:
            progress = game_index / (total_games - 1)
        rate = self.initial_rate - progress * self.slope
        return max(self.min_rate, min(self.initial_rate, rate))

    def decay_exploration(self, game_index: int, total_games: int) -> float:
        """Set epsilon for the game about to start and return it."""
        self.exploration_rate = self.rate_for(game_index, total_games)
        return self.exploration_rate

    def reset(self):
        self.exploration_rate = self.initial_rate
