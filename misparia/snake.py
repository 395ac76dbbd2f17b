"""Snake on a wrap-around grid where food cells carry answer values.

Every problem spawns one food cell per option; only the cell holding the
correct answer grows the snake. Eating a wrong value costs a tail segment.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .game_core import Feedback, GameSession, Phase, SessionSnapshot, Ticker
from .models import GameMode, Problem

Cell = tuple[int, int]

UP: Cell = (0, -1)
DOWN: Cell = (0, 1)
LEFT: Cell = (-1, 0)
RIGHT: Cell = (1, 0)


@dataclass(frozen=True, slots=True)
class SnakeConfig:
    grid_size: int = 15
    tick_s: float = 0.3
    start_length: int = 3
    score_food: int = 50
    xp_food: int = 20
    coins_food: int = 10
    feedback_s: float = 0.3


@dataclass(frozen=True, slots=True)
class FoodCell:
    cell: Cell
    value: str
    correct: bool


@dataclass(frozen=True, slots=True)
class SnakePayload:
    grid_size: int
    body: tuple[Cell, ...]
    direction: Cell
    food: tuple[FoodCell, ...]


class SnakeSession(GameSession):
    mode = GameMode.SNAKE

    def __init__(self, *, config: SnakeConfig | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._config = config or SnakeConfig()
        if self._config.grid_size < 4:
            raise ValueError("grid_size must be >= 4")
        if not (1 <= self._config.start_length < self._config.grid_size):
            raise ValueError("start_length must fit in one row")
        self._ticker = Ticker(self._clock, self._config.tick_s)

        mid = self._config.grid_size // 2
        self._body: list[Cell] = [(mid - i, mid) for i in range(self._config.start_length)]
        self._direction: Cell = RIGHT
        self._heading: Cell = RIGHT  # direction of the last completed move
        self._food: list[FoodCell] = []
        self._current: Problem | None = None

    @property
    def body(self) -> list[Cell]:
        return list(self._body)

    @property
    def head(self) -> Cell:
        return self._body[0]

    @property
    def direction(self) -> Cell:
        return self._direction

    @property
    def food(self) -> list[FoodCell]:
        return list(self._food)

    @property
    def current_problem(self) -> Problem | None:
        return self._current

    def steer(self, direction: Cell) -> bool:
        """Turn left/right relative to travel; reversals and no-ops are refused."""

        dx, dy = direction
        if abs(dx) + abs(dy) != 1:
            return False
        hx, hy = self._heading
        if (dx != 0 and hx != 0) or (dy != 0 and hy != 0):
            return False
        self._direction = (dx, dy)
        return True

    def step(self) -> None:
        """Advance the snake by one cell."""

        if self._phase is not Phase.AWAITING_ANSWER:
            return
        n = self._config.grid_size
        hx, hy = self._body[0]
        dx, dy = self._direction
        new_head = ((hx + dx) % n, (hy + dy) % n)
        self._heading = self._direction
        self._body.insert(0, new_head)

        eaten = next((f for f in self._food if f.cell == new_head), None)
        if eaten is None:
            self._body.pop()
            return

        assert self._current is not None
        if eaten.correct:
            # Keep the tail: the snake grows by one.
            self._food = []
            self._score += self._config.score_food
            self._feedback = Feedback.CORRECT
            self._credit(
                self._current.topic,
                True,
                xp_gain=self._config.xp_food,
                coin_gain=self._config.coins_food,
            )
            self._phase = Phase.FEEDBACK
            self._scheduler.call_later(self._config.feedback_s, self._load_next)
            return

        self._food.remove(eaten)
        self._body.pop()
        if len(self._body) > 1:
            self._body.pop()
        self._feedback = Feedback.INCORRECT
        self._credit(self._current.topic, False)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            mode=self.mode,
            phase=self._phase,
            feedback=self._feedback,
            score=self._score,
            timer_s=None,
            problem=self._current,
            payload=SnakePayload(
                grid_size=self._config.grid_size,
                body=tuple(self._body),
                direction=self._direction,
                food=tuple(self._food),
            ),
        )

    def _begin(self) -> None:
        self._ticker.reset()
        self._load_next()

    def _on_update(self) -> None:
        for _ in range(self._ticker.advance(active=self._phase is Phase.AWAITING_ANSWER)):
            self.step()
            if self._phase is not Phase.AWAITING_ANSWER:
                return

    def _load_next(self) -> None:
        self._current = None
        self._food = []
        self._phase = Phase.LOADING
        self._request_problem(self._present)

    def _present(self, problem: Problem) -> None:
        self._current = problem
        self._feedback = Feedback.NONE
        self._food = self._place_food(problem)
        self._phase = Phase.AWAITING_ANSWER

    def _place_food(self, problem: Problem) -> list[FoodCell]:
        n = self._config.grid_size
        taken = set(self._body)
        free = [(x, y) for y in range(n) for x in range(n) if (x, y) not in taken]
        # Correct value first so it always gets a cell.
        values = [problem.correct_answer] + [o for o in problem.options if o != problem.correct_answer]
        food: list[FoodCell] = []
        for value in values:
            if not free:
                break
            cell = self._rng.choice(free)
            free.remove(cell)
            food.append(FoodCell(cell=cell, value=value, correct=value == problem.correct_answer))
        return food
