"""
Chess Season — Tabular Q-learning agent vs a heuristic chess player.

A season is a fixed run of games (20 by default). The agent plays White,
keeps one value table for the whole season and explores less with every
game. Chess rules come from a RulesProvider (python-chess by default).

- QLearningAgent: state abstraction, epsilon-greedy move choice, Q update
- HeuristicPlayer: mate-in-one > best capture > random check > random
- SeasonDriver: game loop, reward shaping, season statistics
"""

from chess_season.config import LearningConfig, RewardConfig, SeasonConfig
from chess_season.rules import ChessRules, MoveInfo, MoveRejected, RulesProvider
from chess_season.state_encoder import (
    AbstractedState, GamePhase, MaterialCategory, QueenPresence, StateEncoder,
    abstract_layout, material_balance, PIECE_VALUES,
)
from chess_season.exploration import EpsilonSchedule
from chess_season.q_agent import QLearningAgent, ValueTable
from chess_season.opponents import HeuristicPlayer, OPPONENTS, make_opponent
from chess_season.rewards import compute_reward
from chess_season.season import (
    GameRecord, SeasonDriver, SeasonListener, SeasonStats, Termination, Winner,
)

__all__ = [
    "LearningConfig",
    "RewardConfig",
    "SeasonConfig",
    "ChessRules",
    "MoveInfo",
    "MoveRejected",
    "RulesProvider",
    "AbstractedState",
    "GamePhase",
    "MaterialCategory",
    "QueenPresence",
    "StateEncoder",
    "abstract_layout",
    "material_balance",
    "PIECE_VALUES",
    "EpsilonSchedule",
    "QLearningAgent",
    "ValueTable",
    "HeuristicPlayer",
    "OPPONENTS",
    "make_opponent",
    "compute_reward",
    "GameRecord",
    "SeasonDriver",
    "SeasonListener",
    "SeasonStats",
    "Termination",
    "Winner",
]
