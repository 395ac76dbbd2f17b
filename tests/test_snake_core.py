from __future__ import annotations

from collections.abc import Collection

from misparia.arithmetic import SeededRng
from misparia.clock import FakeClock
from misparia.feed import Deliver
from misparia.game_core import AnswerEvent, Feedback, Phase
from misparia.models import Difficulty, Problem, Topic
from misparia.snake import DOWN, LEFT, RIGHT, UP, SnakeConfig, SnakePayload, SnakeSession

PROBLEM = Problem("3 + 4", ("7", "6", "8", "9"), "7", "three plus four", Topic.ADDITION, Difficulty.BEGINNER)


class FixedFeed:
    def __init__(self) -> None:
        self.requests = 0

    def request(self, topics: Collection[Topic], difficulty: Difficulty, deliver: Deliver) -> None:
        self.requests += 1
        deliver(PROBLEM)

    def poll(self) -> None:
        return


def _session(
    seed: int,
    events: list[AnswerEvent] | None = None,
    feed: FixedFeed | None = None,
    clock: FakeClock | None = None,
) -> SnakeSession:
    return SnakeSession(
        clock=clock or FakeClock(),
        feed=feed or FixedFeed(),
        topics={Topic.ADDITION},
        difficulty=Difficulty.BEGINNER,
        rng=SeededRng(seed),
        on_answer=(events.append if events is not None else None),
    )


def _steer_toward(s: SnakeSession, target: tuple[int, int]) -> None:
    hx, _ = s.head
    tx, _ = target
    if hx != tx and s.direction[0] == 0:
        s.steer(RIGHT)
    elif hx == tx and s.direction[1] == 0:
        s.steer(DOWN)


def _drive_until_eat(s: SnakeSession, target: tuple[int, int]) -> tuple[int, int]:
    """Step toward ``target`` until some food is eaten; return the eaten cell."""
    for _ in range(100):
        before = {f.cell for f in s.food}
        _steer_toward(s, target)
        s.step()
        if s.head in before:
            return s.head
    raise AssertionError("snake never reached food")


def test_start_places_one_food_per_option_off_the_body() -> None:
    s = _session(1)
    s.start()
    assert s.phase is Phase.AWAITING_ANSWER
    food = s.food
    assert sorted(f.value for f in food) == sorted(PROBLEM.options)
    assert sum(1 for f in food if f.correct) == 1
    assert not {f.cell for f in food} & set(s.body)
    assert len(s.body) == 3


def test_steering_refuses_reversal_and_same_axis() -> None:
    s = _session(2)
    s.start()
    assert s.direction == RIGHT
    assert s.steer(LEFT) is False
    assert s.steer(RIGHT) is False
    assert s.steer((1, 1)) is False
    assert s.steer(UP) is True
    # No move yet: still heading right, so DOWN is a legal change of mind.
    assert s.steer(DOWN) is True
    s.step()
    assert s.steer(UP) is False


def test_movement_wraps_around_the_grid() -> None:
    wraps = 0
    for seed in range(1, 10):
        s = SnakeSession(
            clock=FakeClock(),
            feed=FixedFeed(),
            topics={Topic.ADDITION},
            difficulty=Difficulty.BEGINNER,
            rng=SeededRng(seed),
            config=SnakeConfig(grid_size=6, start_length=1),
        )
        s.start()
        for _ in range(6):
            if s.phase is not Phase.AWAITING_ANSWER:
                break
            x, y = s.head
            s.step()
            assert s.head == ((x + 1) % 6, y)
            if s.head[0] == 0:
                wraps += 1
    assert wraps > 0


def test_eating_food_applies_correct_or_wrong_outcome() -> None:
    for seed in range(1, 6):
        events: list[AnswerEvent] = []
        feed = FixedFeed()
        s = _session(seed, events, feed)
        s.start()
        correct_cell = next(f.cell for f in s.food if f.correct)
        length = len(s.body)

        eaten = _drive_until_eat(s, correct_cell)
        if eaten == correct_cell:
            assert len(s.body) == length + 1
            assert s.score == 50
            assert s.feedback is Feedback.CORRECT
            assert s.phase is Phase.FEEDBACK
            assert events == [AnswerEvent(Topic.ADDITION, True, 20, 10)]
            assert feed.requests == 1
        else:
            assert len(s.body) == length - 1
            assert s.score == 0
            assert s.feedback is Feedback.INCORRECT
            assert s.phase is Phase.AWAITING_ANSWER
            assert eaten not in {f.cell for f in s.food}
            assert len(s.food) == 3
            assert events == [AnswerEvent(Topic.ADDITION, False, 0, 0)]


def test_correct_food_loads_next_problem_after_feedback() -> None:
    for seed in range(1, 20):
        feed = FixedFeed()
        clock = FakeClock()
        s = _session(seed, feed=feed, clock=clock)
        s.start()
        correct_cell = next(f.cell for f in s.food if f.correct)
        if _drive_until_eat(s, correct_cell) != correct_cell:
            continue
        clock.advance(0.3)
        s.update()
        assert feed.requests == 2
        assert s.phase is Phase.AWAITING_ANSWER
        assert len(s.food) == 4
        return
    raise AssertionError("no seed reached the correct food first")


def test_tick_drives_steps_only_while_awaiting() -> None:
    clock = FakeClock()
    s = SnakeSession(
        clock=clock,
        feed=FixedFeed(),
        topics={Topic.ADDITION},
        difficulty=Difficulty.BEGINNER,
        rng=SeededRng(9),
    )
    s.start()
    start = s.head
    clock.advance(0.31)
    s.update()
    assert s.head != start
    payload = s.snapshot().payload
    assert isinstance(payload, SnakePayload)
    assert payload.body[0] == s.head
    assert payload.grid_size == 15


def test_snake_never_shrinks_below_one() -> None:
    s = SnakeSession(
        clock=FakeClock(),
        feed=FixedFeed(),
        topics={Topic.ADDITION},
        difficulty=Difficulty.BEGINNER,
        rng=SeededRng(3),
        config=SnakeConfig(grid_size=5, start_length=1),
    )
    s.start()
    for _ in range(200):
        s.step()
        assert len(s.body) >= 1
        if s.phase is not Phase.AWAITING_ANSWER:
            break
