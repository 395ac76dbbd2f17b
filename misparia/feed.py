from __future__ import annotations

import logging
from collections.abc import Callable, Collection
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Protocol

from .models import Difficulty, Problem, Topic
from .problem_generator import ProblemGenerator

logger = logging.getLogger(__name__)

Deliver = Callable[[Problem], None]


class ProblemFeed(Protocol):
    """Hands problems to sessions.

    ``deliver`` is always invoked on the thread that calls ``request`` or
    ``poll`` so session state is only touched from the UI thread.
    """

    def request(self, topics: Collection[Topic], difficulty: Difficulty, deliver: Deliver) -> None: ...

    def poll(self) -> None: ...


class ImmediateFeed:
    """Generates synchronously inside ``request``."""

    def __init__(self, generator: ProblemGenerator) -> None:
        self._generator = generator

    def request(self, topics: Collection[Topic], difficulty: Difficulty, deliver: Deliver) -> None:
        deliver(self._generator.generate(topics, difficulty))

    def poll(self) -> None:
        return


@dataclass(slots=True)
class _Pending:
    future: Future[Problem]
    topics: frozenset[Topic]
    difficulty: Difficulty
    deliver: Deliver


class BackgroundFeed:
    """Runs oracle round-trips on one worker thread; ``poll`` hands results back."""

    def __init__(self, generator: ProblemGenerator) -> None:
        self._generator = generator
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="misparia-feed")
        self._pending: list[_Pending] = []

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def request(self, topics: Collection[Topic], difficulty: Difficulty, deliver: Deliver) -> None:
        frozen = frozenset(topics)
        future = self._executor.submit(self._generator.generate, frozen, difficulty)
        self._pending.append(_Pending(future, frozen, difficulty, deliver))

    def poll(self) -> None:
        while self._pending and self._pending[0].future.done():
            item = self._pending.pop(0)
            try:
                problem = item.future.result()
            except Exception:
                logger.exception("problem worker failed, using local problem")
                problem = self._generator.local(item.topics, item.difficulty)
            item.deliver(problem)

    def shutdown(self) -> None:
        self._pending.clear()
        self._executor.shutdown(wait=False, cancel_futures=True)
