"""
Season Configuration — Tunables for the learner, the reward shaping and
the season loop.

Defaults reproduce the reference season: 20 games, 120 half-move cap,
technical resignation at +4 material, alpha=0.9, gamma=0.8.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, Any, Optional
import os
import json

import chess


@dataclass
class LearningConfig:
    """Q-learning and exploration settings"""
    learning_rate: float = 0.9        # alpha
    discount_factor: float = 0.8      # gamma
    initial_exploration: float = 1.0
    min_exploration: float = 0.05
    exploration_decay: float = 1.5    # epsilon slope over the season
    directed_exploration: float = 0.8  # chance to prefer promo/capture/check


def _default_capture_rewards() -> Dict[str, int]:
    return {'p': 200, 'n': 600, 'b': 600, 'r': 1000, 'q': 3000}


@dataclass
class RewardConfig:
    """Reward shaping for agent moves"""
    win_reward: float = 50000
    terminal_penalty: float = -20000
    # Keyed by lowercase piece symbol
    capture_rewards: Dict[str, int] = field(
        default_factory=_default_capture_rewards)
    promotion_bonus: float = 5000
    check_bonus: float = 500
    material_weight: float = 100


@dataclass
class SeasonConfig:
    """Master configuration for a season"""
    total_games: int = 20
    max_moves: int = 120              # half-moves per game
    advantage_win_threshold: int = 4  # technical resignation
    opponent: str = "heuristic"

    # Pacing between moves/games, seconds (0 = run flat out)
    move_delay: float = 0.0
    game_delay: float = 0.0

    seed: Optional[int] = None
    start_fen: Optional[str] = None

    learning: LearningConfig = field(default_factory=LearningConfig)
    rewards: RewardConfig = field(default_factory=RewardConfig)

    @classmethod
    def from_env(cls) -> 'SeasonConfig':
        """Load from environment variables"""
        return cls(
            total_games=int(os.getenv('SEASON_GAMES', 20)),
            max_moves=int(os.getenv('SEASON_MAX_MOVES', 120)),
            advantage_win_threshold=int(
                os.getenv('SEASON_ADVANTAGE_THRESHOLD', 4)),
            seed=int(os.getenv('SEASON_SEED'))
            if os.getenv('SEASON_SEED') else None,
            move_delay=float(os.getenv('SEASON_MOVE_DELAY', 0.0)),
            game_delay=float(os.getenv('SEASON_GAME_DELAY', 0.0)),
        )

    def validate(self) -> 'SeasonConfig':
        """Raise ValueError on settings the season loop cannot run with."""
        if self.total_games < 1:
            raise ValueError(f"total_games must be >= 1, got {self.total_games}")
        if self.max_moves < 1:
            raise ValueError(f"max_moves must be >= 1, got {self.max_moves}")
        if self.advantage_win_threshold < 1:
            raise ValueError(
                f"advantage_win_threshold must be >= 1, "
                f"got {self.advantage_win_threshold}")
        if self.move_delay < 0 or self.game_delay < 0:
            raise ValueError("delays must be non-negative")
        if self.start_fen is not None:
            # The agent plays White and moves first
            board = chess.Board(self.start_fen)
            if board.turn != chess.WHITE:
                raise ValueError(
                    f"start_fen must have White to move: {self.start_fen}")
            if board.is_game_over():
                raise ValueError(
                    f"start_fen is already a finished game: {self.start_fen}")

        lc = self.learning
        if not 0.0 < lc.learning_rate <= 1.0:
            raise ValueError(
                f"learning_rate must be in (0, 1], got {lc.learning_rate}")
        if not 0.0 <= lc.discount_factor <= 1.0:
            raise ValueError(
                f"discount_factor must be in [0, 1], got {lc.discount_factor}")
        if not 0.0 <= lc.min_exploration <= lc.initial_exploration <= 1.0:
            raise ValueError(
                "exploration bounds must satisfy "
                "0 <= min_exploration <= initial_exploration <= 1")
        if not 0.0 <= lc.directed_exploration <= 1.0:
            raise ValueError("directed_exploration must be in [0, 1]")
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Serialize configuration"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SeasonConfig':
        data = dict(data)
        learning = LearningConfig(**data.pop('learning', {}))
        rewards = RewardConfig(**data.pop('rewards', {}))
        return cls(learning=learning, rewards=rewards, **data)

    def save(self, filepath: str):
        """Save configuration to file"""
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, filepath: str) -> 'SeasonConfig':
        """Load configuration from file"""
        with open(filepath, 'r') as f:
            data = json.load(f)
        return cls.from_dict(data)
