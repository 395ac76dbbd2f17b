"""Shared session machinery for every game mode.

Each session walks ``IDLE -> LOADING -> AWAITING_ANSWER -> FEEDBACK ->
(LOADING | ENDED)``. Time only enters through the injected ``Clock``: the
host calls ``update()`` every frame and the session turns elapsed time into
whole ticks and due callbacks.
"""

from __future__ import annotations

import heapq
import logging
from collections.abc import Callable, Collection
from dataclasses import dataclass
from enum import Enum

from .arithmetic import SeededRng
from .clock import Clock
from .feed import ProblemFeed
from .models import Difficulty, GameMode, Problem, Topic

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    AWAITING_ANSWER = "awaiting_answer"
    FEEDBACK = "feedback"
    ENDED = "ended"


class Feedback(str, Enum):
    NONE = "none"
    CORRECT = "correct"
    INCORRECT = "incorrect"


@dataclass(frozen=True, slots=True)
class AnswerEvent:
    topic: Topic
    correct: bool
    xp_gain: int
    coin_gain: int


@dataclass(frozen=True, slots=True)
class SessionResult:
    mode: GameMode
    score: int
    answered: int
    correct: int
    duration_s: float
    completed: bool  # False when the player left before the session ended


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """View model for the UI (pure data)."""

    mode: GameMode
    phase: Phase
    feedback: Feedback
    score: int
    timer_s: int | None
    problem: Problem | None = None
    selected_answer: str | None = None
    payload: object | None = None


AnswerSink = Callable[[AnswerEvent], None]
EndSink = Callable[[SessionResult], None]


class Scheduler:
    """Deferred callbacks against an injected clock."""

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._queue: list[tuple[float, int, Callable[[], None]]] = []
        self._cancelled: set[int] = set()
        self._seq = 0

    def call_later(self, delay_s: float, fn: Callable[[], None]) -> int:
        self._seq += 1
        heapq.heappush(self._queue, (self._clock.now() + max(0.0, float(delay_s)), self._seq, fn))
        return self._seq

    def cancel(self, handle: int | None) -> None:
        if handle is not None and any(h == handle for _, h, _ in self._queue):
            self._cancelled.add(handle)

    def clear(self) -> None:
        self._queue.clear()
        self._cancelled.clear()

    def run_due(self) -> None:
        now = self._clock.now()
        while self._queue and self._queue[0][0] <= now:
            _, handle, fn = heapq.heappop(self._queue)
            if handle in self._cancelled:
                self._cancelled.discard(handle)
                continue
            fn()


class Ticker:
    """Turns clock time into whole ticks of ``period_s``.

    Time only accumulates while ``advance`` is told the ticker is active, and
    each elapsed period is reported exactly once.
    """

    def __init__(self, clock: Clock, period_s: float) -> None:
        if period_s <= 0:
            raise ValueError("period_s must be > 0")
        self._clock = clock
        self._period_s = float(period_s)
        self._last = clock.now()
        self._acc = 0.0

    def reset(self) -> None:
        self._last = self._clock.now()
        self._acc = 0.0

    def advance(self, *, active: bool) -> int:
        now = self._clock.now()
        dt = max(0.0, now - self._last)
        self._last = now
        if not active:
            return 0
        self._acc += dt
        # Small epsilon so 10 x 0.1s counts as a full second.
        ticks = int((self._acc + 1e-9) // self._period_s)
        self._acc = max(0.0, self._acc - ticks * self._period_s)
        return ticks


class GameSession:
    """Base for all modes: scheduling, problem requests, crediting, ending."""

    mode: GameMode

    def __init__(
        self,
        *,
        clock: Clock,
        feed: ProblemFeed,
        topics: Collection[Topic],
        difficulty: Difficulty,
        rng: SeededRng | None = None,
        on_answer: AnswerSink | None = None,
        on_end: EndSink | None = None,
    ) -> None:
        if not topics:
            raise ValueError("topics must not be empty")
        self._clock = clock
        self._feed = feed
        self._topics = frozenset(topics)
        self._difficulty = difficulty
        self._rng = rng or SeededRng()
        self._on_answer = on_answer
        self._on_end = on_end

        self._scheduler = Scheduler(clock)
        self._phase = Phase.IDLE
        self._feedback = Feedback.NONE
        self._score = 0
        self._answered = 0
        self._correct = 0
        self._started_at_s: float | None = None
        self._result: SessionResult | None = None

        self._request_seq = 0
        self._outstanding: set[int] = set()

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def feedback(self) -> Feedback:
        return self._feedback

    @property
    def score(self) -> int:
        return self._score

    @property
    def topics(self) -> frozenset[Topic]:
        return self._topics

    @property
    def result(self) -> SessionResult | None:
        return self._result

    @property
    def is_over(self) -> bool:
        return self._phase is Phase.ENDED

    def start(self) -> None:
        if self._phase is not Phase.IDLE:
            return
        self._started_at_s = self._clock.now()
        logger.info("%s session started", self.mode.value)
        self._begin()

    def update(self) -> None:
        if self._phase in (Phase.IDLE, Phase.ENDED):
            return
        self._on_update()
        if self._phase is not Phase.ENDED:
            self._scheduler.run_due()

    def stop(self) -> None:
        """Player left: stop timers and ignore any late deliveries."""

        if self._phase is Phase.ENDED:
            return
        self._finish(completed=False)

    def snapshot(self) -> SessionSnapshot:
        raise NotImplementedError

    # Hooks for subclasses.

    def _begin(self) -> None:
        raise NotImplementedError

    def _on_update(self) -> None:
        return

    # Helpers.

    def _request_problem(self, deliver: Callable[[Problem], None]) -> None:
        self._request_seq += 1
        seq = self._request_seq
        self._outstanding.add(seq)
        self._feed.request(self._topics, self._difficulty, lambda p: self._receive(seq, p, deliver))

    def _receive(self, seq: int, problem: Problem, deliver: Callable[[Problem], None]) -> None:
        if seq not in self._outstanding or self._phase is Phase.ENDED:
            logger.debug("dropping stale problem for %s session", self.mode.value)
            return
        self._outstanding.discard(seq)
        deliver(problem)

    def _credit(self, topic: Topic, correct: bool, *, xp_gain: int = 0, coin_gain: int = 0) -> None:
        self._answered += 1
        if correct:
            self._correct += 1
        if self._on_answer is not None:
            self._on_answer(AnswerEvent(topic=topic, correct=correct, xp_gain=xp_gain, coin_gain=coin_gain))

    def _end(self) -> None:
        if self._phase is Phase.ENDED:
            return
        self._finish(completed=True)

    def _finish(self, *, completed: bool) -> None:
        self._phase = Phase.ENDED
        self._scheduler.clear()
        self._outstanding.clear()
        started = self._started_at_s if self._started_at_s is not None else self._clock.now()
        self._result = SessionResult(
            mode=self.mode,
            score=self._score,
            answered=self._answered,
            correct=self._correct,
            duration_s=max(0.0, self._clock.now() - started),
            completed=completed,
        )
        logger.info("%s session ended with score %d", self.mode.value, self._score)
        if self._on_end is not None:
            self._on_end(self._result)
