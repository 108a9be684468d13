"""
Season Driver — Runs a fixed-length season of games between the
Q-learning agent (White) and a fixed opponent (Black).

Each game:
1. Fresh position, epsilon decayed for this game index
2. Alternate moves until game over, the half-move cap, a win or a cancel
3. After every agent move: material balance, win check (checkmate or
   technical resignation at +4), reward, Q update
4. One GameRecord appended to the SeasonStats

Everything runs on one thread, one game and one move at a time. cancel()
may be called from another thread; it is observed before every game and
every move.
"""

import logging
import random
import threading
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional

import chess
import numpy as np

from chess_season.config import SeasonConfig
from chess_season.opponents import make_opponent
from chess_season.q_agent import QLearningAgent
from chess_season.rewards import compute_reward
from chess_season.rules import ChessRules, MoveInfo, MoveRejected, RulesProvider

logger = logging.getLogger(__name__)

AGENT_COLOR = chess.WHITE


class Winner(str, Enum):
    AGENT = "agent"
    OPPONENT = "opponent"
    DRAW = "draw"


class Termination(str, Enum):
    CHECKMATE = "checkmate"       # either side mated
    ADVANTAGE = "advantage"       # technical resignation
    GAME_OVER = "game_over"       # stalemate, repetition, 50-move, material
    MOVE_CAP = "move_cap"
    NO_MOVES = "no_moves"         # provider returned nothing to play
    ABORTED = "aborted"           # move rejected
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class GameRecord:
    """Outcome of one completed game"""
    game_index: int
    winner: Winner
    moves: int
    total_reward: float
    table_size: int
    epsilon: float                # at game start
    termination: Termination

    @property
    def game_number(self) -> int:
        return self.game_index + 1

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['winner'] = self.winner.value
        data['termination'] = self.termination.value
        data['game_number'] = self.game_number
        return data


@dataclass
class SeasonStats:
    """Running totals plus the ordered game history"""
    total_games: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0
    history: List[GameRecord] = field(default_factory=list)

    def record(self, game: GameRecord):
        self.total_games += 1
        if game.winner == Winner.AGENT:
            self.wins += 1
        elif game.winner == Winner.OPPONENT:
            self.losses += 1
        else:
            self.draws += 1
        self.history.append(game)

    def reset(self):
        self.total_games = 0
        self.wins = 0
        self.losses = 0
        self.draws = 0
        self.history = []

    def _window(self, last: Optional[int] = None) -> List[GameRecord]:
        if last is None:
            return self.history
        if last <= 0:
            return []
        return self.history[-last:]

    def _rate(self, winner: Winner, last: Optional[int] = None) -> float:
        games = self._window(last)
        if not games:
            return 0.0
        return float(np.mean([1.0 if g.winner == winner else 0.0
                              for g in games]))

    def win_rate(self, last: Optional[int] = None) -> float:
        return self._rate(Winner.AGENT, last)

    def draw_rate(self, last: Optional[int] = None) -> float:
        return self._rate(Winner.DRAW, last)

    def loss_rate(self, last: Optional[int] = None) -> float:
        return self._rate(Winner.OPPONENT, last)

    def mean_reward(self, last: Optional[int] = None) -> float:
        games = self._window(last)
        if not games:
            return 0.0
        return float(np.mean([g.total_reward for g in games]))

    def mean_moves(self, last: Optional[int] = None) -> float:
        games = self._window(last)
        if not games:
            return 0.0
        return float(np.mean([g.moves for g in games]))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_games': self.total_games,
            'wins': self.wins,
            'losses': self.losses,
            'draws': self.draws,
            'win_rate': self.win_rate(),
            'mean_reward': self.mean_reward(),
            'history': [g.to_dict() for g in self.history],
        }


class SeasonListener:
    """
    Reporting sink. Override any hook; all default to no-ops.

    Positions handed to listeners are live: copy them if they are kept.
    """

    def on_season_start(self, total_games: int):
        pass

    def on_game_start(self, game_index: int, epsilon: float):
        pass

    def on_move(self, position, move: MoveInfo, game_index: int,
                move_number: int):
        pass

    def on_game_end(self, record: GameRecord):
        pass

    def on_stats(self, stats: SeasonStats, epsilon: float, table_size: int):
        pass

    def on_season_end(self, stats: SeasonStats):
        pass


class SeasonDriver:
    """
    Owns the season: the agent, the opponent, the stats and the cancel flag.
    """

    def __init__(self, config: SeasonConfig = None,
                 rules: RulesProvider = None,
                 agent: QLearningAgent = None,
                 opponent=None,
                 listeners: List[SeasonListener] = None):
        self.config = (config or SeasonConfig()).validate()
        self.rules = rules or ChessRules(self.config.start_fen)

        seed_rng = random.Random(self.config.seed)
        self.agent = agent or QLearningAgent(
            self.rules, self.config.learning, color=AGENT_COLOR,
            rng=random.Random(seed_rng.getrandbits(64)))
        self.opponent = opponent or make_opponent(
            self.config.opponent, self.rules,
            rng=random.Random(seed_rng.getrandbits(64)))

        self.listeners: List[SeasonListener] = list(listeners or [])
        self.stats = SeasonStats()
        self._cancel = threading.Event()

    # ── Cancellation ──────────────────────────────────────────────────

    def cancel(self):
        """Ask the running season to stop after the current move."""
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def _pause(self, seconds: float):
        if seconds > 0:
            self._cancel.wait(seconds)

    def add_listener(self, listener: SeasonListener):
        self.listeners.append(listener)

    def _emit(self, hook: str, *args):
        for listener in self.listeners:
            getattr(listener, hook)(*args)

    def _emit_stats(self):
        self._emit('on_stats', self.stats, self.agent.epsilon,
                   self.agent.table_size())

    # ── Season ────────────────────────────────────────────────────────

    def run_season(self, total_games: int = None) -> SeasonStats:
        if total_games is None:
            total_games = self.config.total_games
        if total_games < 1:
            raise ValueError(f"total_games must be >= 1, got {total_games}")

        self._cancel.clear()
        self.agent.reset()
        self.stats.reset()

        logger.info(f"Season started: {total_games} games vs "
                    f"{type(self.opponent).__name__}")
        self._emit('on_season_start', total_games)
        self._emit_stats()

        for game_index in range(total_games):
            if self.cancelled:
                logger.info(f"Season cancelled before game {game_index + 1}")
                break
            self.play_game(game_index, total_games)
            if game_index < total_games - 1:
                self._pause(self.config.game_delay)

        logger.info(f"Season finished: {self.stats.wins}W "
                    f"{self.stats.losses}L {self.stats.draws}D "
                    f"over {self.stats.total_games} games")
        self._emit('on_season_end', self.stats)
        return self.stats

    # ── Game ──────────────────────────────────────────────────────────

    def play_game(self, game_index: int, total_games: int) -> GameRecord:
        rules = self.rules
        position = rules.new_game()
        epsilon = self.agent.decay_exploration(game_index, total_games)
        self._emit('on_game_start', game_index, epsilon)

        move_count = 0
        total_reward = 0.0
        won = False
        termination = None

        while not rules.is_game_over(position):
            if move_count >= self.config.max_moves:
                termination = Termination.MOVE_CAP
                break
            if self.cancelled:
                termination = Termination.CANCELLED
                break

            legal = rules.legal_moves(position)
            if not legal:
                termination = Termination.NO_MOVES
                break

            agent_turn = rules.turn(position) == self.agent.color
            prev_position = rules.clone(position) if agent_turn else None
            if agent_turn:
                move = self.agent.select_move(position, legal)
            else:
                move = self.opponent.best_move(position, legal)

            try:
                position = rules.apply(position, move)
            except MoveRejected as e:
                logger.warning(f"Game {game_index + 1} aborted: {e}")
                termination = Termination.ABORTED
                break

            move_count += 1
            self._emit('on_move', position, move, game_index, move_count)

            if agent_turn:
                balance = self.agent.encoder.material_balance(position)
                mated = rules.is_checkmate(position)
                advantage = balance >= self.config.advantage_win_threshold
                won = mated or advantage
                game_over = won or rules.is_game_over(position)

                reward = compute_reward(move, won, game_over, balance,
                                        self.config.rewards)
                total_reward += reward
                next_ids = [m.san for m in rules.legal_moves(position)]
                self.agent.update(prev_position, move.san, reward,
                                  position, next_ids)
                logger.debug(f"Game {game_index + 1} move {move_count}: "
                             f"agent {move.san} reward {reward:.0f} "
                             f"balance {balance:+d} | {rules.fen(position)}")
                self._emit_stats()

                if won:
                    termination = (Termination.CHECKMATE if mated
                                   else Termination.ADVANTAGE)
                    break
            else:
                logger.debug(f"Game {game_index + 1} move {move_count}: "
                             f"opponent {move.san}")

            self._pause(self.config.move_delay)

        if termination is None:
            termination = (Termination.CHECKMATE
                           if rules.is_checkmate(position)
                           else Termination.GAME_OVER)

        if won:
            winner = Winner.AGENT
        elif termination == Termination.CHECKMATE:
            winner = Winner.OPPONENT
        else:
            winner = Winner.DRAW

        record = GameRecord(
            game_index=game_index,
            winner=winner,
            moves=move_count,
            total_reward=total_reward,
            table_size=self.agent.table_size(),
            epsilon=epsilon,
            termination=termination,
        )
        self.stats.record(record)

        logger.info(f"Game {record.game_number}/{total_games}: "
                    f"{winner.value} ({termination.value}) in "
                    f"{move_count} moves | reward {total_reward:.0f} | "
                    f"table {record.table_size} | eps {epsilon:.2f}")
        self._emit('on_game_end', record)
        self._emit_stats()
        return record
