from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from typing import Any

from .models import Topic


@dataclass(frozen=True, slots=True)
class TopicStats:
    correct: int = 0
    total: int = 0

    @property
    def accuracy_pct(self) -> int:
        return 0 if self.total <= 0 else int(round(self.correct * 100 / self.total))

    def record(self, correct: bool) -> TopicStats:
        return TopicStats(correct=self.correct + (1 if correct else 0), total=self.total + 1)


@dataclass(frozen=True, slots=True)
class TopicPerformance:
    """One entry per Topic, always present."""

    addition: TopicStats = field(default_factory=TopicStats)
    subtraction: TopicStats = field(default_factory=TopicStats)
    multiplication: TopicStats = field(default_factory=TopicStats)
    division: TopicStats = field(default_factory=TopicStats)
    fractions: TopicStats = field(default_factory=TopicStats)

    def get(self, topic: Topic) -> TopicStats:
        return getattr(self, topic.value)

    def with_result(self, topic: Topic, correct: bool) -> TopicPerformance:
        return replace(self, **{topic.value: self.get(topic).record(correct)})

    def items(self) -> Iterator[tuple[Topic, TopicStats]]:
        for topic in Topic:
            yield topic, self.get(topic)

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {t.value: {"correct": s.correct, "total": s.total} for t, s in self.items()}

    @classmethod
    def from_dict(cls, raw: Any) -> TopicPerformance:
        if not isinstance(raw, dict):
            return cls()
        values: dict[str, TopicStats] = {}
        for topic in Topic:
            item = raw.get(topic.value)
            if isinstance(item, dict):
                values[topic.value] = TopicStats(
                    correct=_non_negative(item.get("correct")),
                    total=_non_negative(item.get("total")),
                )
        return cls(**values)


@dataclass(frozen=True, slots=True)
class UserStats:
    xp: int = 0
    level: int = 1
    streak: int = 0
    coins: int = 0
    games_played: int = 0
    correct_answers: int = 0
    topic_performance: TopicPerformance = field(default_factory=TopicPerformance)

    @property
    def accuracy_pct(self) -> int:
        return 0 if self.games_played <= 0 else int(round(self.correct_answers * 100 / self.games_played))

    def to_dict(self) -> dict[str, Any]:
        return {
            "xp": self.xp,
            "level": self.level,
            "streak": self.streak,
            "coins": self.coins,
            "gamesPlayed": self.games_played,
            "correctAnswers": self.correct_answers,
            "topicPerformance": self.topic_performance.to_dict(),
        }

    @classmethod
    def from_dict(cls, raw: Any) -> UserStats:
        if not isinstance(raw, dict):
            raise ValueError("stats payload must be an object")
        return cls(
            xp=_non_negative(raw.get("xp")),
            level=max(1, _non_negative(raw.get("level", 1))),
            streak=_non_negative(raw.get("streak")),
            coins=_non_negative(raw.get("coins")),
            games_played=_non_negative(raw.get("gamesPlayed")),
            correct_answers=_non_negative(raw.get("correctAnswers")),
            topic_performance=TopicPerformance.from_dict(raw.get("topicPerformance")),
        )


def apply(stats: UserStats, topic: Topic, correct: bool, xp_gain: int, coin_gain: int) -> UserStats:
    """Fold one answer event into ``stats``.

    Additive only; ``level`` and ``streak`` pass through untouched.
    """

    if xp_gain < 0 or coin_gain < 0:
        raise ValueError("gains must be >= 0")
    return replace(
        stats,
        xp=stats.xp + xp_gain,
        coins=stats.coins + coin_gain,
        correct_answers=stats.correct_answers + (1 if correct else 0),
        games_played=stats.games_played + 1,
        topic_performance=stats.topic_performance.with_result(topic, correct),
    )


def accuracy_summary(stats: UserStats) -> str:
    return "\n".join(f"{t.hebrew_name}: {s.accuracy_pct}%" for t, s in stats.topic_performance.items())


def _non_negative(raw: Any) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(0, value)
