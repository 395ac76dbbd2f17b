from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from .game_core import Feedback, GameSession, Phase, SessionSnapshot, Ticker
from .models import GameMode, Problem


@dataclass(frozen=True, slots=True)
class SpaceDefenseConfig:
    tick_s: float = 0.1
    fall_per_tick: float = 0.01  # fraction of the field height
    spawn_interval_s: float = 3.0
    min_asteroids: int = 2
    max_asteroids: int = 6
    score_hit: int = 20
    xp_hit: int = 20
    coins_hit: int = 10


@dataclass(slots=True)
class Asteroid:
    id: int
    problem: Problem
    x: float  # 0..1 across the field
    y: float  # 0 at the top, gone once past 1


@dataclass(frozen=True, slots=True)
class SpaceDefensePayload:
    asteroids: tuple[Asteroid, ...]
    input_text: str
    destroyed: int
    escaped: int


class SpaceDefenseSession(GameSession):
    """Asteroids fall carrying problems; typing an answer shoots the matching one.

    The field is topped up whenever fewer than ``min_asteroids`` are on screen
    or in flight from the feed, and one extra asteroid is requested every
    ``spawn_interval_s``.
    """

    mode = GameMode.SPACE_DEFENSE

    def __init__(self, *, config: SpaceDefenseConfig | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._config = config or SpaceDefenseConfig()
        if self._config.min_asteroids < 1 or self._config.max_asteroids < self._config.min_asteroids:
            raise ValueError("need 1 <= min_asteroids <= max_asteroids")
        self._move_ticker = Ticker(self._clock, self._config.tick_s)
        self._spawn_ticker = Ticker(self._clock, self._config.spawn_interval_s)
        self._asteroids: list[Asteroid] = []
        self._incoming = 0
        self._next_id = 1
        self._input = ""
        self._destroyed = 0
        self._escaped = 0

    @property
    def asteroids(self) -> list[Asteroid]:
        return list(self._asteroids)

    @property
    def input_text(self) -> str:
        return self._input

    def set_input(self, text: str) -> bool:
        """Replace the shared input; returns True if it destroyed an asteroid."""

        if self._phase in (Phase.IDLE, Phase.ENDED):
            return False
        self._input = text
        value = text.strip()
        if value == "":
            return False

        hits = [a for a in self._asteroids if a.problem.correct_answer == value]
        if not hits:
            return False
        # Lowest asteroid first: it is closest to escaping.
        target = max(hits, key=lambda a: a.y)
        self._asteroids.remove(target)
        self._input = ""
        self._destroyed += 1
        self._score += self._config.score_hit
        self._feedback = Feedback.CORRECT
        self._credit(target.problem.topic, True, xp_gain=self._config.xp_hit, coin_gain=self._config.coins_hit)
        self._top_up()
        self._sync_phase()
        return True

    def type_text(self, chars: str) -> bool:
        return self.set_input(self._input + chars)

    def backspace(self) -> None:
        if self._phase not in (Phase.IDLE, Phase.ENDED):
            self._input = self._input[:-1]

    def submit(self) -> bool:
        """Enter pressed: a non-matching entry is a miss and is cleared."""

        if self.set_input(self._input):
            return True
        if self._input.strip() != "":
            self._feedback = Feedback.INCORRECT
        self._input = ""
        return False

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            mode=self.mode,
            phase=self._phase,
            feedback=self._feedback,
            score=self._score,
            timer_s=None,
            payload=SpaceDefensePayload(
                asteroids=tuple(replace(a) for a in self._asteroids),
                input_text=self._input,
                destroyed=self._destroyed,
                escaped=self._escaped,
            ),
        )

    def _begin(self) -> None:
        self._phase = Phase.LOADING
        self._move_ticker.reset()
        self._spawn_ticker.reset()
        self._top_up()

    def _on_update(self) -> None:
        for _ in range(self._move_ticker.advance(active=True)):
            self._move()
        for _ in range(self._spawn_ticker.advance(active=True)):
            if len(self._asteroids) + self._incoming < self._config.max_asteroids:
                self._spawn()
        self._top_up()
        self._sync_phase()

    def _move(self) -> None:
        kept: list[Asteroid] = []
        for a in self._asteroids:
            a.y += self._config.fall_per_tick
            if a.y > 1.0:
                self._escaped += 1
                self._feedback = Feedback.INCORRECT
                self._credit(a.problem.topic, False)
            else:
                kept.append(a)
        self._asteroids = kept

    def _top_up(self) -> None:
        while len(self._asteroids) + self._incoming < self._config.min_asteroids:
            self._spawn()

    def _spawn(self) -> None:
        self._incoming += 1
        self._request_problem(self._arrive)

    def _arrive(self, problem: Problem) -> None:
        self._incoming -= 1
        self._asteroids.append(
            Asteroid(id=self._next_id, problem=problem, x=0.1 + 0.8 * self._rng.random(), y=0.0)
        )
        self._next_id += 1
        self._sync_phase()

    def _sync_phase(self) -> None:
        if self._phase is Phase.ENDED:
            return
        self._phase = Phase.AWAITING_ANSWER if self._asteroids else Phase.LOADING
