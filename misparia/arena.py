"""Dispatcher for the game modes.

Every mode is one ``GameSession`` subclass registered in ``MODE_SESSIONS``;
the arena owns the topic/difficulty selection, drives the active session
and folds its answer events into the user's stats.
"""

from __future__ import annotations

import logging
from typing import Any

from . import __version__
from .arithmetic import SeededRng
from .clock import Clock
from .feed import ProblemFeed
from .game_core import AnswerEvent, GameSession, Phase, SessionResult
from .memory_game import MemorySession
from .models import Difficulty, GameMode, Topic
from .persistence import LocalStore
from .quiz_modes import BalanceSession, QuizSession, SpeedRunSession, TowerSession
from .snake import SnakeSession
from .space_defense import SpaceDefenseSession
from .stats import UserStats, apply

logger = logging.getLogger(__name__)

MODE_SESSIONS: dict[GameMode, type[GameSession]] = {
    GameMode.QUIZ: QuizSession,
    GameMode.SPEED_RUN: SpeedRunSession,
    GameMode.TOWER: TowerSession,
    GameMode.MEMORY: MemorySession,
    GameMode.SNAKE: SnakeSession,
    GameMode.SPACE_DEFENSE: SpaceDefenseSession,
    GameMode.BALANCE: BalanceSession,
}


class GameArena:
    def __init__(
        self,
        *,
        clock: Clock,
        feed: ProblemFeed,
        store: LocalStore | None = None,
        stats: UserStats | None = None,
        seed: int | None = None,
    ) -> None:
        self._clock = clock
        self._feed = feed
        self._store = store
        if stats is not None:
            self._stats = stats
        elif store is not None:
            self._stats = store.load_stats()
        else:
            self._stats = UserStats()
        self._rng = SeededRng(seed)

        self._topics: set[Topic] = {Topic.ADDITION}
        self._difficulty = Difficulty.BEGINNER
        self._session: GameSession | None = None
        self._last_result: SessionResult | None = None

    @property
    def stats(self) -> UserStats:
        return self._stats

    @property
    def topics(self) -> frozenset[Topic]:
        return frozenset(self._topics)

    @property
    def difficulty(self) -> Difficulty:
        return self._difficulty

    @property
    def session(self) -> GameSession | None:
        return self._session

    @property
    def phase(self) -> Phase:
        return Phase.IDLE if self._session is None else self._session.phase

    @property
    def last_result(self) -> SessionResult | None:
        return self._last_result

    def toggle_topic(self, topic: Topic) -> bool:
        """Flip one topic in the selection; the last selected topic stays on."""

        if topic in self._topics:
            if len(self._topics) == 1:
                logger.debug("refusing to deselect the last topic %s", topic.value)
                return False
            self._topics.remove(topic)
        else:
            self._topics.add(topic)
        return True

    def set_difficulty(self, difficulty: Difficulty) -> None:
        self._difficulty = difficulty

    def start(self, mode: GameMode, **options: Any) -> GameSession:
        """Leave any running session and start ``mode``."""

        self.exit()
        session_cls = MODE_SESSIONS[mode]
        session = session_cls(
            clock=self._clock,
            feed=self._feed,
            topics=frozenset(self._topics),
            difficulty=self._difficulty,
            rng=SeededRng(self._rng.randint(1, 2**31 - 1)),
            on_answer=self._on_answer,
            on_end=self._on_end,
            **options,
        )
        self._session = session
        session.start()
        return session

    def update(self) -> None:
        self._feed.poll()
        if self._session is not None:
            self._session.update()

    def exit(self) -> None:
        if self._session is None:
            return
        self._session.stop()
        self._session = None

    def reset_progress(self) -> None:
        logger.info("resetting player progress")
        self._stats = UserStats()
        if self._store is not None:
            self._store.clear_stats()

    def _on_answer(self, event: AnswerEvent) -> None:
        self._stats = apply(self._stats, event.topic, event.correct, event.xp_gain, event.coin_gain)
        if self._store is not None:
            self._store.save_stats(self._stats)

    def _on_end(self, result: SessionResult) -> None:
        self._last_result = result
        if self._store is not None:
            self._store.record_session(result, app_version=__version__)
