"""
Rules Provider — the chess-rules collaborator used by the season core.

The learning agent, the heuristic opponent and the season driver never
generate moves or detect checkmate themselves. They talk to a RulesProvider:

- new_game() → position
- legal_moves(position) → ordered list of MoveInfo
- apply(position, move) → position (raises MoveRejected)
- is_game_over / is_checkmate / is_check
- clone(position) → independent copy for lookahead
- piece_layout(position) → 64 squares, each a chess.Piece or None

ChessRules implements the contract on top of python-chess.
"""

import chess
from dataclasses import dataclass
from typing import List, Optional


class MoveRejected(ValueError):
    """Raised when a move cannot be applied to the given position."""


@dataclass(frozen=True)
class MoveInfo:
    """A legal move plus everything the core needs to reason about it."""
    move: chess.Move
    from_square: str
    to_square: str
    san: str
    promotion: Optional[int] = None   # chess.QUEEN, chess.ROOK, ...
    captured: Optional[int] = None    # piece type taken, pawn for en passant
    gives_check: bool = False

    @property
    def is_capture(self) -> bool:
        return self.captured is not None

    @property
    def is_promotion(self) -> bool:
        return self.promotion is not None

    @property
    def uci(self) -> str:
        return self.move.uci()

    def __str__(self) -> str:
        return self.san


class RulesProvider:
    """Base contract for chess-rules implementations."""

    def new_game(self):
        raise NotImplementedError

    def legal_moves(self, position) -> List[MoveInfo]:
        raise NotImplementedError

    def apply(self, position, move: MoveInfo):
        raise NotImplementedError

    def is_game_over(self, position) -> bool:
        raise NotImplementedError

    def is_checkmate(self, position) -> bool:
        raise NotImplementedError

    def is_check(self, position) -> bool:
        raise NotImplementedError

    def clone(self, position):
        raise NotImplementedError

    def piece_layout(self, position) -> List[Optional[chess.Piece]]:
        raise NotImplementedError

    def turn(self, position) -> chess.Color:
        raise NotImplementedError

    def fen(self, position) -> str:
        raise NotImplementedError


class ChessRules(RulesProvider):
    """
    RulesProvider backed by python-chess.

    Positions are chess.Board objects. apply() pushes onto the board it is
    given, so lookahead must always go through clone() first.
    """

    def __init__(self, start_fen: Optional[str] = None):
        self.start_fen = start_fen or chess.STARTING_FEN
        # Raises ValueError on a malformed FEN
        chess.Board(self.start_fen)

    def new_game(self) -> chess.Board:
        return chess.Board(self.start_fen)

    def legal_moves(self, board: chess.Board) -> List[MoveInfo]:
        return [self.describe(board, move) for move in board.legal_moves]

    def describe(self, board: chess.Board, move: chess.Move) -> MoveInfo:
        """Build the MoveInfo view of a move in this position."""
        captured = None
        if board.is_en_passant(move):
            captured = chess.PAWN
        elif board.is_capture(move):
            piece = board.piece_at(move.to_square)
            captured = piece.piece_type if piece else None

        return MoveInfo(
            move=move,
            from_square=chess.square_name(move.from_square),
            to_square=chess.square_name(move.to_square),
            san=board.san(move),
            promotion=move.promotion,
            captured=captured,
            gives_check=board.gives_check(move),
        )

    def apply(self, board: chess.Board, move) -> chess.Board:
        chess_move = move.move if isinstance(move, MoveInfo) else move
        if not isinstance(chess_move, chess.Move) or \
                not board.is_legal(chess_move):
            raise MoveRejected(
                f"Illegal move {move} in position {board.fen()}")
        board.push(chess_move)
        return board

    def is_game_over(self, board: chess.Board) -> bool:
        # Threefold repetition and the fifty-move rule end the game once
        # they have occurred, not when the next move could claim them
        return (board.is_game_over() or board.is_repetition(3)
                or board.is_fifty_moves())

    def is_checkmate(self, board: chess.Board) -> bool:
        return board.is_checkmate()

    def is_check(self, board: chess.Board) -> bool:
        return board.is_check()

    def clone(self, board: chess.Board) -> chess.Board:
        return board.copy()

    def piece_layout(self, board: chess.Board) -> List[Optional[chess.Piece]]:
        return [board.piece_at(sq) for sq in chess.SQUARES]

    def turn(self, board: chess.Board) -> chess.Color:
        return board.turn

    def fen(self, board: chess.Board) -> str:
        return board.fen()
