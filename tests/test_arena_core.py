from __future__ import annotations

from pathlib import Path

import pytest

from misparia.arena import MODE_SESSIONS, GameArena
from misparia.arithmetic import SeededRng
from misparia.clock import FakeClock
from misparia.feed import ImmediateFeed
from misparia.game_core import Phase
from misparia.models import Difficulty, GameMode, Topic
from misparia.persistence import LocalStore
from misparia.problem_generator import ProblemGenerator
from misparia.quiz_modes import QuizSession, SpeedRunSession
from misparia.stats import UserStats


def _arena(tmp_path: Path | None = None, clock: FakeClock | None = None) -> GameArena:
    return GameArena(
        clock=clock or FakeClock(),
        feed=ImmediateFeed(ProblemGenerator(rng=SeededRng(10))),
        store=LocalStore(tmp_path / "db.sqlite3") if tmp_path is not None else None,
        seed=10,
    )


def test_every_mode_has_a_session() -> None:
    assert set(MODE_SESSIONS) == set(GameMode)
    for mode, cls in MODE_SESSIONS.items():
        assert cls.mode is mode


def test_defaults_and_topic_toggling_never_empty() -> None:
    arena = _arena()
    assert arena.topics == {Topic.ADDITION}
    assert arena.difficulty is Difficulty.BEGINNER
    assert arena.phase is Phase.IDLE

    assert arena.toggle_topic(Topic.ADDITION) is False
    assert arena.topics == {Topic.ADDITION}

    assert arena.toggle_topic(Topic.FRACTIONS) is True
    assert arena.toggle_topic(Topic.ADDITION) is True
    assert arena.topics == {Topic.FRACTIONS}

    arena.set_difficulty(Difficulty.ADVANCED)
    assert arena.difficulty is Difficulty.ADVANCED


@pytest.mark.parametrize("mode", list(GameMode))
def test_each_mode_starts_with_selected_topics(mode: GameMode) -> None:
    arena = _arena()
    arena.toggle_topic(Topic.MULTIPLICATION)
    session = arena.start(mode)
    assert isinstance(session, MODE_SESSIONS[mode])
    assert session.topics == {Topic.ADDITION, Topic.MULTIPLICATION}
    assert arena.phase is not Phase.IDLE
    arena.exit()
    assert arena.session is None
    assert arena.phase is Phase.IDLE


def test_answers_fold_into_stats_and_persist(tmp_path: Path) -> None:
    arena = _arena(tmp_path)
    session = arena.start(GameMode.QUIZ)
    assert isinstance(session, QuizSession)
    problem = session.current_problem
    assert problem is not None
    session.submit_answer(problem.correct_answer)

    stats = arena.stats
    assert stats.games_played == 1
    assert stats.correct_answers == 1
    assert stats.xp in (20, 50)
    assert stats.coins == 10
    assert stats.topic_performance.get(Topic.ADDITION).correct == 1

    assert LocalStore(tmp_path / "db.sqlite3").load_stats() == stats
    assert _arena(tmp_path).stats == stats


def test_switching_modes_records_abandoned_session(tmp_path: Path) -> None:
    arena = _arena(tmp_path)
    first = arena.start(GameMode.TOWER)
    arena.start(GameMode.MEMORY)

    assert first.phase is Phase.ENDED
    assert arena.last_result is not None
    assert arena.last_result.mode is GameMode.TOWER
    assert arena.last_result.completed is False
    assert LocalStore(tmp_path / "db.sqlite3").session_count("tower") == 1


def test_update_drives_the_active_session() -> None:
    clock = FakeClock()
    arena = _arena(clock=clock)
    session = arena.start(GameMode.SPEED_RUN, duration_s=5)
    assert isinstance(session, SpeedRunSession)
    clock.advance(5.0)
    arena.update()
    assert session.phase is Phase.ENDED
    assert arena.last_result is not None
    assert arena.last_result.completed is True


def test_reset_progress_clears_store(tmp_path: Path) -> None:
    arena = _arena(tmp_path)
    session = arena.start(GameMode.QUIZ)
    assert isinstance(session, QuizSession)
    session.submit_answer("not an option")
    assert arena.stats.games_played == 1

    arena.reset_progress()
    assert arena.stats == UserStats()
    assert LocalStore(tmp_path / "db.sqlite3").load_stats() == UserStats()
