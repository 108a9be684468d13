"""
State Encoder — Reduces a chess position to the small discrete key the
Q-learning agent learns over.

Three independent categorical features, seen from the agent's side:
- Material: own minus opponent non-king piece count
  (>2 Strong, >0 Lead, =0 Equal, else Behind)
- Queens: own queen present x opponent queen present (YY, YN, NY, NN)
- Phase: total non-king piece count (>20 Early, >10 Mid, else Late)

Also home to the piece values used for material balance and capture ranking.
"""

import chess
from enum import Enum
from typing import NamedTuple, Optional, Sequence


# Standard piece values (in pawns)
PIECE_VALUES = {
    chess.PAWN: 1,
    chess.KNIGHT: 3,
    chess.BISHOP: 3,
    chess.ROOK: 5,
    chess.QUEEN: 9,
    chess.KING: 0,
}


class MaterialCategory(str, Enum):
    STRONG = "Strong"
    LEAD = "Lead"
    EQUAL = "Equal"
    BEHIND = "Behind"


class QueenPresence(str, Enum):
    BOTH = "YY"
    OWN_ONLY = "YN"
    OPPONENT_ONLY = "NY"
    NEITHER = "NN"


class GamePhase(str, Enum):
    EARLY = "Early"
    MID = "Mid"
    LATE = "Late"


class AbstractedState(NamedTuple):
    """Hashable value-table key."""
    material: MaterialCategory
    queens: QueenPresence
    phase: GamePhase

    @property
    def key(self) -> str:
        return (f"m:{self.material.value}_q:{self.queens.value}"
                f"_p:{self.phase.value}")

    def __str__(self) -> str:
        return self.key


Layout = Sequence[Optional[chess.Piece]]


def material_category(diff: int) -> MaterialCategory:
    if diff > 2:
        return MaterialCategory.STRONG
    if diff > 0:
        return MaterialCategory.LEAD
    if diff == 0:
        return MaterialCategory.EQUAL
    return MaterialCategory.BEHIND


def queen_presence(own: bool, opponent: bool) -> QueenPresence:
    if own and opponent:
        return QueenPresence.BOTH
    if own:
        return QueenPresence.OWN_ONLY
    if opponent:
        return QueenPresence.OPPONENT_ONLY
    return QueenPresence.NEITHER


def game_phase(total_pieces: int) -> GamePhase:
    if total_pieces > 20:
        return GamePhase.EARLY
    if total_pieces > 10:
        return GamePhase.MID
    return GamePhase.LATE


def abstract_layout(layout: Layout,
                    color: chess.Color = chess.WHITE) -> AbstractedState:
    """Compute the AbstractedState of a piece layout for `color`."""
    own = opp = 0
    own_queen = opp_queen = False
    for piece in layout:
        if piece is None or piece.piece_type == chess.KING:
            continue
        if piece.color == color:
            own += 1
            own_queen = own_queen or piece.piece_type == chess.QUEEN
        else:
            opp += 1
            opp_queen = opp_queen or piece.piece_type == chess.QUEEN

    return AbstractedState(
        material=material_category(own - opp),
        queens=queen_presence(own_queen, opp_queen),
        phase=game_phase(own + opp),
    )


def material_balance(layout: Layout, color: chess.Color = chess.WHITE) -> int:
    """Signed material sum; positive favours `color`."""
    score = 0
    for piece in layout:
        if piece is None:
            continue
        value = PIECE_VALUES.get(piece.piece_type, 0)
        score += value if piece.color == color else -value
    return score


class StateEncoder:
    """Maps provider positions to AbstractedState for one side."""

    def __init__(self, rules, color: chess.Color = chess.WHITE):
        self.rules = rules
        self.color = color

    def encode(self, position) -> AbstractedState:
        return abstract_layout(self.rules.piece_layout(position), self.color)

    def material_balance(self, position) -> int:
        return material_balance(self.rules.piece_layout(position), self.color)
