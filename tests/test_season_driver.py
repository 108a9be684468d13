"""
Tests for the season driver.

Tests cover:
- Season bookkeeping and reset between seasons
- Win by technical resignation and by checkmate
- Loss by checkmate, stalemate penalty
- Move cap, cancellation, rejected moves, empty move lists
- Listener hooks and the command-line entry point
"""

import json
import os
import tempfile

import pytest
import chess

from chess_season.config import SeasonConfig
from chess_season.q_agent import QLearningAgent
from chess_season.rules import ChessRules, MoveInfo
from chess_season.season import (
    SeasonDriver, SeasonListener, SeasonStats, GameRecord, Termination, Winner,
)
from chess_season import train_season


# Rxd5 leaves White exactly +4
ADVANTAGE_FEN = "7k/p7/8/3n4/8/8/8/3R2K1 w - - 0 1"
# Ra8# is mate
MATE_FEN = "6k1/2p2ppp/8/8/8/6q1/5P2/R3K3 w - - 0 1"
# After a3 Black mates with Re1#
BACK_RANK_FEN = "4r1k1/8/8/8/8/8/P4PPP/6K1 w - - 0 1"
# Kb6 stalemates Black
STALEMATE_FEN = "k7/P7/8/1K6/8/8/8/8 w - - 0 1"


class ScriptedAgent(QLearningAgent):
    """Plays the given SAN moves in order, then the first legal move."""

    def __init__(self, rules, script):
        super().__init__(rules)
        self.script = list(script)

    def select_move(self, position, legal_moves):
        if self.script:
            san = self.script.pop(0)
            return next(m for m in legal_moves if m.san == san)
        return legal_moves[0]


class ScriptedOpponent:
    """Plays the given SAN moves in order."""

    def __init__(self, script):
        self.script = list(script)

    def best_move(self, position, legal_moves):
        san = self.script.pop(0)
        return next(m for m in legal_moves if m.san == san)


class IllegalAgent(QLearningAgent):
    """Always answers with a move the position does not allow."""

    def select_move(self, position, legal_moves):
        return MoveInfo(move=chess.Move.from_uci("e2e5"), from_square="e2",
                        to_square="e5", san="e5")


class NoMovesRules(ChessRules):
    def legal_moves(self, board):
        return []


class RecordingListener(SeasonListener):
    def __init__(self):
        self.events = []
        self.moves = []
        self.records = []
        self.stats_calls = 0

    def on_season_start(self, total_games):
        self.events.append(('season_start', total_games))

    def on_game_start(self, game_index, epsilon):
        self.events.append(('game_start', game_index, epsilon))

    def on_move(self, position, move, game_index, move_number):
        self.moves.append((game_index, move_number, move.from_square,
                           move.to_square))

    def on_game_end(self, record):
        self.records.append(record)

    def on_stats(self, stats, epsilon, table_size):
        self.stats_calls += 1

    def on_season_end(self, stats):
        self.events.append(('season_end', stats.total_games))


class CancelAfter(SeasonListener):
    def __init__(self, driver, moves):
        self.driver = driver
        self.remaining = moves

    def on_move(self, position, move, game_index, move_number):
        self.remaining -= 1
        if self.remaining == 0:
            self.driver.cancel()


def _scripted_driver(fen, script, **overrides):
    config = SeasonConfig(start_fen=fen, seed=0, **overrides)
    rules = ChessRules(fen)
    return SeasonDriver(config, rules=rules,
                        agent=ScriptedAgent(rules, script))


# ── Season bookkeeping ────────────────────────────────────────────────────

class TestSeason:
    def test_history_matches_game_count(self):
        driver = SeasonDriver(SeasonConfig(total_games=3, max_moves=16,
                                           seed=1))
        stats = driver.run_season()

        assert stats.total_games == 3
        assert len(stats.history) == 3
        assert [g.game_index for g in stats.history] == [0, 1, 2]
        assert stats.wins + stats.losses + stats.draws == 3
        for game in stats.history:
            assert isinstance(game, GameRecord)
            assert game.moves <= 16

    def test_epsilon_recorded_per_game(self):
        driver = SeasonDriver(SeasonConfig(total_games=4, max_moves=6,
                                           seed=2))
        stats = driver.run_season()
        eps = [g.epsilon for g in stats.history]
        assert eps[0] == 1.0
        assert eps[-1] == 0.05
        assert all(a >= b for a, b in zip(eps, eps[1:]))

    def test_table_grows_within_season(self):
        driver = SeasonDriver(SeasonConfig(total_games=3, max_moves=10,
                                           seed=3))
        stats = driver.run_season()
        sizes = [g.table_size for g in stats.history]
        assert sizes[0] > 0
        assert all(a <= b for a, b in zip(sizes, sizes[1:]))

    def test_new_season_resets(self):
        driver = SeasonDriver(SeasonConfig(total_games=2, max_moves=6,
                                           seed=4))
        driver.run_season()
        stats = driver.run_season()
        assert stats.total_games == 2
        assert len(stats.history) == 2
        assert stats.history[0].epsilon == 1.0

    def test_run_season_override_count(self):
        driver = SeasonDriver(SeasonConfig(max_moves=4, seed=5))
        stats = driver.run_season(total_games=2)
        assert stats.total_games == 2
        with pytest.raises(ValueError):
            driver.run_season(total_games=0)

    def test_seeded_seasons_repeat(self):
        def play():
            driver = SeasonDriver(SeasonConfig(total_games=2, max_moves=20,
                                               seed=42))
            return [(g.winner, g.moves, g.total_reward)
                    for g in driver.run_season().history]
        assert play() == play()

    def test_stats_export(self):
        driver = SeasonDriver(SeasonConfig(total_games=2, max_moves=4,
                                           seed=6))
        data = driver.run_season().to_dict()
        assert data['total_games'] == 2
        assert [g['game_number'] for g in data['history']] == [1, 2]
        assert data['history'][0]['winner'] in ('agent', 'opponent', 'draw')
        json.dumps(data)


# ── Game outcomes ─────────────────────────────────────────────────────────

class TestGameOutcomes:
    def test_win_by_advantage(self):
        driver = _scripted_driver(ADVANTAGE_FEN, ["Rxd5"], total_games=1)
        record = driver.run_season().history[0]

        assert record.winner == Winner.AGENT
        assert record.termination == Termination.ADVANTAGE
        assert record.moves == 1
        assert record.total_reward == 50000
        assert record.table_size == 1

    def test_advantage_threshold_is_configurable(self):
        driver = _scripted_driver(ADVANTAGE_FEN, ["Rxd5"], total_games=1,
                                  max_moves=2, advantage_win_threshold=5)
        record = driver.run_season().history[0]
        assert record.winner == Winner.DRAW
        assert record.termination == Termination.MOVE_CAP
        assert record.moves == 2

    def test_win_by_checkmate(self):
        driver = _scripted_driver(MATE_FEN, ["Ra8#"], total_games=1)
        record = driver.run_season().history[0]

        assert record.winner == Winner.AGENT
        assert record.termination == Termination.CHECKMATE
        assert record.moves == 1
        assert record.total_reward == 50000
        assert driver.stats.wins == 1

    def test_loss_by_checkmate(self):
        driver = _scripted_driver(BACK_RANK_FEN, ["a3"], total_games=1)
        record = driver.run_season().history[0]

        assert record.winner == Winner.OPPONENT
        assert record.termination == Termination.CHECKMATE
        assert record.moves == 2
        # a3: no capture, no check, material -1
        assert record.total_reward == -100
        assert driver.stats.losses == 1

    def test_stalemate_is_penalised_draw(self):
        driver = _scripted_driver(STALEMATE_FEN, ["Kb6"], total_games=1)
        record = driver.run_season().history[0]

        assert record.winner == Winner.DRAW
        assert record.termination == Termination.GAME_OVER
        assert record.total_reward == -20000

    def test_threefold_repetition_ends_after_third_occurrence(self):
        rules = ChessRules()
        driver = SeasonDriver(
            SeasonConfig(total_games=1, max_moves=9, seed=0), rules=rules,
            agent=ScriptedAgent(rules, ["Nf3", "Ng1", "Nf3", "Ng1", "Nf3"]),
            opponent=ScriptedOpponent(["Nf6", "Ng8", "Nf6", "Ng8"]))
        record = driver.run_season().history[0]

        # Black's second Ng8 repeats the start position a third time
        assert record.moves == 8
        assert record.winner == Winner.DRAW
        assert record.termination == Termination.GAME_OVER
        # No agent move ended the game, so no terminal penalty
        assert record.total_reward == 0

    def test_move_cap(self):
        driver = SeasonDriver(SeasonConfig(total_games=1, max_moves=2,
                                           seed=7))
        record = driver.run_season().history[0]
        assert record.moves == 2
        assert record.winner == Winner.DRAW
        assert record.termination == Termination.MOVE_CAP


# ── Failure paths ─────────────────────────────────────────────────────────

class TestDriverErrors:
    def test_cancel_mid_game(self):
        driver = SeasonDriver(SeasonConfig(total_games=5, max_moves=50,
                                           seed=8))
        driver.add_listener(CancelAfter(driver, moves=3))
        stats = driver.run_season()

        assert driver.cancelled
        assert stats.total_games == 1
        record = stats.history[0]
        assert record.moves == 3
        assert record.winner == Winner.DRAW
        assert record.termination == Termination.CANCELLED

    def test_rejected_move_aborts_game(self):
        rules = ChessRules()
        driver = SeasonDriver(SeasonConfig(total_games=2, seed=9),
                              rules=rules, agent=IllegalAgent(rules))
        stats = driver.run_season()

        assert stats.total_games == 2
        assert stats.draws == 2
        for record in stats.history:
            assert record.termination == Termination.ABORTED
            assert record.moves == 0
            assert record.table_size == 0

    def test_empty_move_list_is_draw(self):
        driver = SeasonDriver(SeasonConfig(total_games=1, seed=10),
                              rules=NoMovesRules())
        record = driver.run_season().history[0]
        assert record.winner == Winner.DRAW
        assert record.termination == Termination.NO_MOVES
        assert record.moves == 0

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            SeasonDriver(SeasonConfig(total_games=0))

    def test_start_position_must_let_agent_move_first(self):
        with pytest.raises(ValueError):
            SeasonDriver(SeasonConfig(
                start_fen="6k1/8/8/8/8/8/5PPP/R5K1 b - - 0 1"))
        with pytest.raises(ValueError):
            # Black is already mated
            SeasonDriver(SeasonConfig(
                start_fen="R5k1/5ppp/8/8/8/8/8/6K1 b - - 0 1"))


# ── Reporting ─────────────────────────────────────────────────────────────

class TestListeners:
    def test_hooks_fire(self):
        listener = RecordingListener()
        driver = SeasonDriver(SeasonConfig(total_games=2, max_moves=6,
                                           seed=11),
                              listeners=[listener])
        stats = driver.run_season()

        assert listener.events[0] == ('season_start', 2)
        assert listener.events[-1] == ('season_end', 2)
        assert [e[1] for e in listener.events if e[0] == 'game_start'] == \
            [0, 1]
        assert listener.records == stats.history
        assert len(listener.moves) == sum(g.moves for g in stats.history)
        # One per agent move, one per game end, one at season start
        agent_moves = sum((g.moves + 1) // 2 for g in stats.history)
        assert listener.stats_calls == agent_moves + 2 + 1

    def test_move_squares_exposed(self):
        listener = RecordingListener()
        driver = _scripted_driver(ADVANTAGE_FEN, ["Rxd5"], total_games=1)
        driver.add_listener(listener)
        driver.run_season()
        assert listener.moves == [(0, 1, 'd1', 'd5')]


class TestSeasonStats:
    def test_rates(self):
        stats = SeasonStats()
        for i, winner in enumerate([Winner.AGENT, Winner.DRAW,
                                    Winner.AGENT, Winner.OPPONENT]):
            stats.record(GameRecord(
                game_index=i, winner=winner, moves=10 * (i + 1),
                total_reward=100.0 * i, table_size=i, epsilon=1.0,
                termination=Termination.MOVE_CAP))

        assert (stats.wins, stats.losses, stats.draws) == (2, 1, 1)
        assert stats.win_rate() == 0.5
        assert stats.draw_rate() == 0.25
        assert stats.loss_rate(last=1) == 1.0
        assert stats.mean_reward() == 150.0
        assert stats.mean_moves(last=2) == 35.0

    def test_empty(self):
        stats = SeasonStats()
        assert stats.win_rate() == 0.0
        assert stats.mean_reward() == 0.0

    def test_empty_window(self):
        stats = SeasonStats()
        stats.record(GameRecord(
            game_index=0, winner=Winner.AGENT, moves=12, total_reward=500.0,
            table_size=3, epsilon=1.0, termination=Termination.ADVANTAGE))

        assert stats.win_rate(last=0) == 0.0
        assert stats.mean_reward(last=0) == 0.0
        assert stats.mean_moves(last=0) == 0.0
        assert stats.win_rate(last=5) == 1.0


# ── Command line ──────────────────────────────────────────────────────────

class TestCommandLine:
    def test_short_season_writes_stats(self, capsys):
        with tempfile.TemporaryDirectory() as tmpdir:
            out = os.path.join(tmpdir, 'season.json')
            code = train_season.main([
                '--games', '2', '--max-moves', '6', '--seed', '1',
                '--stats-out', out])
            with open(out, 'r') as f:
                data = json.load(f)

        assert code == 0
        assert data['total_games'] == 2
        assert 'SEASON COMPLETE' in capsys.readouterr().out

    def test_loads_config_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, 'config.json')
            SeasonConfig(total_games=3, max_moves=8).save(path)
            args = train_season.create_parser().parse_args(
                ['--config', path, '--max-moves', '4'])
            config = train_season.build_config(args)

        assert config.total_games == 3
        assert config.max_moves == 4

    def test_bad_arguments(self, capsys):
        assert train_season.main(['--games', '0']) == 1
        assert 'Error' in capsys.readouterr().out
