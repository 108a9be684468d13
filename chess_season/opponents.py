"""
Chess Opponents — Fixed players for the learning agent to face.

All implement: best_move(position, legal_moves) → MoveInfo

- HeuristicPlayer: mate-in-one, else best capture, else a random check,
  else a random move
"""

import random
from typing import List, Optional

from chess_season.q_agent import most_valuable_capture
from chess_season.rules import MoveInfo, RulesProvider


class HeuristicPlayer:
    """
    Beginner-strength rule-of-thumb player. Holds no game state.

    Checkmate and check are tested by applying each candidate to a clone of
    the position, never to the live one.
    """

    def __init__(self, rules: RulesProvider, rng: random.Random = None):
        self.rules = rules
        self.rng = rng or random.Random()

    def _after(self, position, move: MoveInfo):
        scratch = self.rules.clone(position)
        return self.rules.apply(scratch, move)

    def best_move(self, position,
                  legal_moves: List[MoveInfo]) -> Optional[MoveInfo]:
        if not legal_moves:
            return None

        # 1. Mate in one
        for move in legal_moves:
            if self.rules.is_checkmate(self._after(position, move)):
                return move

        # 2. Most valuable capture
        capture = most_valuable_capture(legal_moves)
        if capture is not None:
            return capture

        # 3. Any check
        checks = [m for m in legal_moves
                  if self.rules.is_check(self._after(position, m))]
        if checks:
            return self.rng.choice(checks)

        # 4. Anything
        return self.rng.choice(legal_moves)


OPPONENTS = {
    'heuristic': HeuristicPlayer,
}


def make_opponent(name: str, rules: RulesProvider,
                  rng: random.Random = None):
    factory = OPPONENTS.get(name)
    if factory is None:
        raise ValueError(
            f"Unknown opponent: {name}. Options: {list(OPPONENTS.keys())}")
    return factory(rules, rng=rng)
