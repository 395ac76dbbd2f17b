"""Multiple-choice answer-cycle modes: Quiz, Speed-Run, Tower and Balance.

All four share one loop (load a problem, take an answer, show feedback,
advance after a pause) and differ in timers, rewards and side state.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from .game_core import Feedback, GameSession, Phase, SessionSnapshot, Ticker
from .models import GameMode, Problem


@dataclass(frozen=True, slots=True)
class QuizConfig:
    xp_correct: int = 20
    xp_challenge: int = 50
    coins_correct: int = 10
    score_correct: int = 100
    score_challenge: int = 500
    challenge_probability: float = 0.2
    correct_delay_s: float = 1.2
    incorrect_delay_s: float = 1.2


# Wrong answers move on faster to keep pace.
SPEED_RUN_CONFIG = QuizConfig(challenge_probability=0.0, incorrect_delay_s=0.8)


@dataclass(frozen=True, slots=True)
class TowerPayload:
    height: int


@dataclass(frozen=True, slots=True)
class BalancePayload:
    known_pan: str
    choices: tuple[str, ...]


class AnswerCycleSession(GameSession):
    """Quiz loop. Subclasses adjust the timer, rewards and side state."""

    mode = GameMode.QUIZ

    def __init__(self, *, config: QuizConfig | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._config = config or QuizConfig()
        self._ticker = Ticker(self._clock, 1.0)
        self._timer_s = 0
        self._current: Problem | None = None
        self._selected: str | None = None
        self._advance_handle: int | None = None

    @property
    def current_problem(self) -> Problem | None:
        return self._current

    @property
    def timer_s(self) -> int:
        return self._timer_s

    def submit_answer(self, answer: str) -> bool:
        """Answer the current problem. Returns True if the answer was taken."""

        if self._phase is not Phase.AWAITING_ANSWER or self._current is None:
            return False

        problem = self._current
        correct = problem.is_correct(answer)
        self._selected = answer
        self._feedback = Feedback.CORRECT if correct else Feedback.INCORRECT
        self._phase = Phase.FEEDBACK

        cfg = self._config
        if correct:
            self._score += cfg.score_challenge if problem.is_challenge else cfg.score_correct
            xp = cfg.xp_challenge if problem.is_challenge else cfg.xp_correct
            self._credit(problem.topic, True, xp_gain=xp, coin_gain=cfg.coins_correct)
        else:
            self._credit(problem.topic, False)
        self._after_answer(correct)

        delay = cfg.correct_delay_s if correct else cfg.incorrect_delay_s
        self._advance_handle = self._scheduler.call_later(delay, self._load_next)
        return True

    def next(self) -> bool:
        """Skip the rest of the feedback pause."""

        if self._phase is not Phase.FEEDBACK:
            return False
        self._scheduler.cancel(self._advance_handle)
        self._load_next()
        return True

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            mode=self.mode,
            phase=self._phase,
            feedback=self._feedback,
            score=self._score,
            timer_s=self._timer_s,
            problem=self._current,
            selected_answer=self._selected,
            payload=self._payload(),
        )

    def _begin(self) -> None:
        self._ticker.reset()
        self._load_next()

    def _load_next(self) -> None:
        self._advance_handle = None
        self._current = None
        self._selected = None
        self._feedback = Feedback.NONE
        self._phase = Phase.LOADING
        self._request_problem(self._present)

    def _present(self, problem: Problem) -> None:
        if self._config.challenge_probability > 0 and self._rng.random() < self._config.challenge_probability:
            problem = replace(problem, is_challenge=True)
        self._current = problem
        self._phase = Phase.AWAITING_ANSWER

    def _on_update(self) -> None:
        for _ in range(self._ticker.advance(active=self._timer_running())):
            self._on_second()
            if self._phase is Phase.ENDED:
                return

    def _timer_running(self) -> bool:
        return self._phase is Phase.AWAITING_ANSWER

    def _on_second(self) -> None:
        self._timer_s += 1

    def _after_answer(self, correct: bool) -> None:
        return

    def _payload(self) -> object | None:
        return None


class QuizSession(AnswerCycleSession):
    mode = GameMode.QUIZ


class SpeedRunSession(AnswerCycleSession):
    """60-second countdown; the session ends the moment it reaches zero."""

    mode = GameMode.SPEED_RUN

    def __init__(self, *, config: QuizConfig | None = None, duration_s: int = 60, **kwargs: Any) -> None:
        if duration_s <= 0:
            raise ValueError("duration_s must be > 0")
        super().__init__(config=config or SPEED_RUN_CONFIG, **kwargs)
        self._duration_s = int(duration_s)

    def _begin(self) -> None:
        self._timer_s = self._duration_s
        super()._begin()

    def _timer_running(self) -> bool:
        return self._phase in (Phase.LOADING, Phase.AWAITING_ANSWER)

    def _on_second(self) -> None:
        self._timer_s = max(0, self._timer_s - 1)
        if self._timer_s == 0:
            self._end()


class TowerSession(AnswerCycleSession):
    """Quiz scoring plus a tower that grows on hits and shrinks on misses."""

    mode = GameMode.TOWER

    def __init__(self, *, config: QuizConfig | None = None, **kwargs: Any) -> None:
        super().__init__(config=config or QuizConfig(challenge_probability=0.0), **kwargs)
        self._height = 0

    @property
    def tower_height(self) -> int:
        return self._height

    def _after_answer(self, correct: bool) -> None:
        self._height = self._height + 1 if correct else max(0, self._height - 1)

    def _payload(self) -> object | None:
        return TowerPayload(height=self._height)


class BalanceSession(AnswerCycleSession):
    """Quiz cycle shown as a balance scale: the question on one pan, the options as weights."""

    mode = GameMode.BALANCE

    def __init__(self, *, config: QuizConfig | None = None, **kwargs: Any) -> None:
        super().__init__(config=config or QuizConfig(challenge_probability=0.0), **kwargs)

    def _payload(self) -> object | None:
        if self._current is None:
            return None
        return BalancePayload(known_pan=self._current.question, choices=self._current.options)
