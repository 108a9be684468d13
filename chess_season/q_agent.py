"""
Q-Learning Agent — Tabular learner that plays White for a whole season.

Instead of a neural network, this agent:
1. Abstracts the position into a 3-feature key (material, queens, phase)
2. Looks up per-move values for that key in a ValueTable
3. Explores with probability epsilon, preferring forcing moves
   (promotions, then the most valuable capture, then checks)
4. Learns after every one of its own moves with a one-step Q update:

       Q(s,a) <- Q(s,a) + alpha * (r + gamma * max_a' Q(s',a') - Q(s,a))

Actions are identified by SAN, so the same move string in two positions
that share an abstracted state shares one table entry.
"""

import logging
import random
from typing import Dict, Iterable, List, Optional, Sequence

import chess

from chess_season.config import LearningConfig
from chess_season.exploration import EpsilonSchedule
from chess_season.rules import MoveInfo, RulesProvider
from chess_season.state_encoder import (
    AbstractedState, PIECE_VALUES, StateEncoder
)

logger = logging.getLogger(__name__)


class ValueTable:
    """
    AbstractedState -> {action id -> value}.

    Reads never create entries; only set() does. Absent entries are 0.
    """

    def __init__(self):
        self.rows: Dict[AbstractedState, Dict[str, float]] = {}

    def get(self, state: AbstractedState, action_id: str) -> float:
        row = self.rows.get(state)
        if row is None:
            return 0.0
        return row.get(action_id, 0.0)

    def row(self, state: AbstractedState) -> Optional[Dict[str, float]]:
        return self.rows.get(state)

    def set(self, state: AbstractedState, action_id: str, value: float):
        self.rows.setdefault(state, {})[action_id] = value

    def max_value(self, state: AbstractedState,
                  action_ids: Iterable[str]) -> float:
        """Best value among `action_ids` in `state`; 0 if none known."""
        row = self.rows.get(state)
        action_ids = list(action_ids)
        if row is None or not action_ids:
            return 0.0
        return max(row.get(a, 0.0) for a in action_ids)

    def size(self) -> int:
        return sum(len(row) for row in self.rows.values())

    def clear(self):
        self.rows.clear()

    def __len__(self) -> int:
        return len(self.rows)

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return {state.key: dict(row) for state, row in self.rows.items()}


def _capture_value(move: MoveInfo) -> int:
    return PIECE_VALUES.get(move.captured, 0) if move.is_capture else 0


def most_valuable_capture(moves: Sequence[MoveInfo]) -> Optional[MoveInfo]:
    """Capture of the highest-value piece; ties go to the earliest move."""
    best = None
    best_value = -1
    for move in moves:
        if not move.is_capture:
            continue
        value = _capture_value(move)
        if value > best_value:
            best_value = value
            best = move
    return best


class QLearningAgent:
    """
    Season-long learner. Owns the value table and the exploration rate.

    The driver calls decay_exploration() once before each game,
    select_move() on each White turn and update() after each White move.
    """

    def __init__(self, rules: RulesProvider,
                 config: LearningConfig = None,
                 color: chess.Color = chess.WHITE,
                 rng: random.Random = None):
        self.rules = rules
        self.config = config or LearningConfig()
        self.color = color
        self.rng = rng or random.Random()

        self.encoder = StateEncoder(rules, color)
        self.table = ValueTable()
        self.explorer = EpsilonSchedule(
            initial_rate=self.config.initial_exploration,
            min_rate=self.config.min_exploration,
            slope=self.config.exploration_decay,
        )

        self.learning_rate = self.config.learning_rate
        self.discount_factor = self.config.discount_factor

    @property
    def epsilon(self) -> float:
        return self.explorer.exploration_rate

    @epsilon.setter
    def epsilon(self, value: float):
        self.explorer.exploration_rate = value

    def abstract(self, position) -> AbstractedState:
        return self.encoder.encode(position)

    def value(self, state: AbstractedState, action_id: str) -> float:
        """Read-only lookup."""
        return self.table.get(state, action_id)

    # ── Action selection ──────────────────────────────────────────────

    def select_move(self, position, legal_moves: List[MoveInfo]) -> MoveInfo:
        if not legal_moves:
            raise ValueError("select_move called with no legal moves")

        if self.explorer.should_explore(self.rng):
            return self._explore(legal_moves)
        return self._exploit(position, legal_moves)

    def _explore(self, legal_moves: List[MoveInfo]) -> MoveInfo:
        """Directed exploration: forcing moves first, else uniform."""
        if self.rng.random() < self.config.directed_exploration:
            promotions = [m for m in legal_moves if m.is_promotion]
            if promotions:
                return self.rng.choice(promotions)

            capture = most_valuable_capture(legal_moves)
            if capture is not None:
                return capture

            checks = [m for m in legal_moves if m.gives_check]
            if checks:
                return self.rng.choice(checks)

        return self.rng.choice(legal_moves)

    def _exploit(self, position, legal_moves: List[MoveInfo]) -> MoveInfo:
        state = self.abstract(position)
        row = self.table.row(state)

        if not row:
            # Nothing learned here yet
            for move in legal_moves:
                if move.is_capture:
                    return move
            return self.rng.choice(legal_moves)

        best_move = legal_moves[0]
        best_q = float('-inf')
        for move in legal_moves:
            q = row.get(move.san, 0.0)
            if q > best_q:
                best_q = q
                best_move = move
        return best_move

    # ── Learning ──────────────────────────────────────────────────────

    def update(self, prev_position, action_id: str, reward: float,
               next_position, next_legal_action_ids: Sequence[str]) -> float:
        """One-step Q update. Returns the new Q(s, a)."""
        s1 = self.abstract(prev_position)
        s2 = self.abstract(next_position)

        old_q = self.table.get(s1, action_id)
        max_next_q = self.table.max_value(s2, next_legal_action_ids)

        new_q = old_q + self.learning_rate * (
            reward + self.discount_factor * max_next_q - old_q)
        self.table.set(s1, action_id, new_q)

        logger.debug(f"Q[{s1.key}][{action_id}] {old_q:.1f} -> {new_q:.1f} "
                     f"(r={reward:.0f}, next={max_next_q:.1f})")
        return new_q

    def decay_exploration(self, game_index: int, total_games: int) -> float:
        return self.explorer.decay_exploration(game_index, total_games)

    def table_size(self) -> int:
        return self.table.size()

    def reset(self):
        """Forget everything; called at season start."""
        self.table.clear()
        self.explorer.reset()

    def get_stats(self) -> Dict:
        """Get current learning statistics."""
        return {
            'states_seen': len(self.table),
            'table_size': self.table_size(),
            'exploration_rate': self.epsilon,
        }
