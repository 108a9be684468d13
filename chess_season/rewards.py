"""
Reward shaping for the agent's own moves.

Terminal outcomes dominate: a win is worth 50000 and any other game end
-20000. Non-terminal moves earn small additive bonuses for captures,
promotion, giving check and the resulting material balance.
"""

import chess

from chess_season.config import RewardConfig
from chess_season.rules import MoveInfo


def capture_reward(move: MoveInfo, config: RewardConfig) -> float:
    if not move.is_capture:
        return 0
    symbol = chess.piece_symbol(move.captured)
    return config.capture_rewards.get(symbol, 0)


def compute_reward(move: MoveInfo, won: bool, game_over: bool,
                   material_balance: int,
                   config: RewardConfig = None) -> float:
    """
    Reward for one agent move.

    `game_over` is whether the game ended with this move for any reason;
    it only matters when `won` is False.
    """
    config = config or RewardConfig()
    if won:
        return config.win_reward
    if game_over:
        return config.terminal_penalty

    reward = capture_reward(move, config)
    if move.is_promotion:
        reward += config.promotion_bonus
    if move.gives_check:
        reward += config.check_bonus
    reward += material_balance * config.material_weight
    return reward
