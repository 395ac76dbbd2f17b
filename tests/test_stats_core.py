from __future__ import annotations

import pytest

from misparia.models import Topic
from misparia.stats import TopicStats, UserStats, accuracy_summary, apply


def test_apply_accumulates_rewards_and_topic_counts() -> None:
    s = UserStats()
    s = apply(s, Topic.ADDITION, True, 20, 10)
    s = apply(s, Topic.ADDITION, False, 0, 0)
    s = apply(s, Topic.DIVISION, True, 50, 10)

    assert s.xp == 70
    assert s.coins == 20
    assert s.games_played == 3
    assert s.correct_answers == 2
    assert s.topic_performance.get(Topic.ADDITION) == TopicStats(correct=1, total=2)
    assert s.topic_performance.get(Topic.DIVISION) == TopicStats(correct=1, total=1)
    assert s.topic_performance.get(Topic.FRACTIONS) == TopicStats()


def test_apply_leaves_level_and_streak_alone() -> None:
    s = UserStats(level=4, streak=9)
    s = apply(s, Topic.SUBTRACTION, True, 20, 10)
    assert (s.level, s.streak) == (4, 9)


def test_apply_rejects_negative_gains() -> None:
    with pytest.raises(ValueError):
        apply(UserStats(), Topic.ADDITION, True, -1, 0)
    with pytest.raises(ValueError):
        apply(UserStats(), Topic.ADDITION, True, 0, -5)


def test_accuracy_percentages_round_and_handle_zero() -> None:
    assert TopicStats().accuracy_pct == 0
    assert TopicStats(correct=2, total=3).accuracy_pct == 67
    assert UserStats(games_played=4, correct_answers=1).accuracy_pct == 25


def test_dict_form_uses_stored_key_names() -> None:
    s = apply(UserStats(), Topic.FRACTIONS, True, 20, 10)
    d = s.to_dict()
    assert d["gamesPlayed"] == 1
    assert d["correctAnswers"] == 1
    assert d["topicPerformance"]["fractions"] == {"correct": 1, "total": 1}
    assert UserStats.from_dict(d) == s


def test_from_dict_tolerates_missing_and_bad_fields() -> None:
    s = UserStats.from_dict({"xp": "12", "coins": -4, "topicPerformance": {"addition": {"correct": "x", "total": 3}}})
    assert s.xp == 12
    assert s.coins == 0
    assert s.level == 1
    assert s.topic_performance.get(Topic.ADDITION) == TopicStats(correct=0, total=3)

    with pytest.raises(ValueError):
        UserStats.from_dict([1, 2, 3])


def test_accuracy_summary_lists_every_topic() -> None:
    s = apply(UserStats(), Topic.MULTIPLICATION, True, 0, 0)
    lines = accuracy_summary(s).splitlines()
    assert len(lines) == len(Topic)
    assert f"{Topic.MULTIPLICATION.hebrew_name}: 100%" in lines


def test_apply_order_does_not_change_totals() -> None:
    events = [
        (Topic.ADDITION, True, 20, 10),
        (Topic.DIVISION, False, 0, 0),
        (Topic.FRACTIONS, True, 50, 10),
        (Topic.SUBTRACTION, True, 20, 10),
    ]
    forward = UserStats()
    for e in events:
        forward = apply(forward, *e)
    backward = UserStats()
    for e in reversed(events):
        backward = apply(backward, *e)
    assert forward == backward
