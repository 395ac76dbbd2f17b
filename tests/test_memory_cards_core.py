from __future__ import annotations

from collections import Counter

import pytest

from misparia.arithmetic import SeededRng, evaluate_question
from misparia.memory_cards import MemorySetGenerator
from misparia.models import CardType, Topic


def test_deck_has_two_cards_per_pair_and_pairs_match() -> None:
    deck = MemorySetGenerator(SeededRng(11)).generate({Topic.ADDITION, Topic.MULTIPLICATION}, 6)

    assert len(deck) == 12
    assert len({c.id for c in deck}) == 12
    by_pair = Counter(c.pair_id for c in deck)
    assert set(by_pair.values()) == {2}

    for pair_id in by_pair:
        problem = next(c for c in deck if c.pair_id == pair_id and c.type is CardType.PROBLEM)
        answer = next(c for c in deck if c.pair_id == pair_id and c.type is CardType.ANSWER)
        assert problem.topic is answer.topic
        assert evaluate_question(problem.content) == int(answer.content)
        assert not problem.is_flipped and not problem.is_matched


def test_deck_is_deterministic_for_seed() -> None:
    a = MemorySetGenerator(SeededRng(3)).generate({Topic.DIVISION}, 4)
    b = MemorySetGenerator(SeededRng(3)).generate({Topic.DIVISION}, 4)
    assert [(c.id, c.content) for c in a] == [(c.id, c.content) for c in b]


def test_deck_is_shuffled() -> None:
    deck = MemorySetGenerator(SeededRng(21)).generate({Topic.ADDITION}, 8)
    assert [c.id for c in deck] != [f"pair-{i // 2}-{'pa'[i % 2]}" for i in range(16)]


@pytest.mark.parametrize("pairs", [0, -2])
def test_rejects_non_positive_pair_count(pairs: int) -> None:
    with pytest.raises(ValueError):
        MemorySetGenerator(SeededRng(0)).generate({Topic.ADDITION}, pairs)


def test_rejects_empty_topics() -> None:
    with pytest.raises(ValueError):
        MemorySetGenerator(SeededRng(0)).generate(set(), 3)


@pytest.mark.parametrize("seed", range(50))
def test_answer_faces_are_distinct(seed: int) -> None:
    deck = MemorySetGenerator(SeededRng(seed)).generate({Topic.ADDITION}, 6)
    answers = [c.content for c in deck if c.type is CardType.ANSWER]
    assert len(answers) == 6
    assert len(set(answers)) == 6


def test_fractions_only_deck_still_fills_every_pair() -> None:
    deck = MemorySetGenerator(SeededRng(5)).generate({Topic.FRACTIONS}, 3)
    assert len(deck) == 6
    assert {c.content for c in deck if c.type is CardType.ANSWER} == {"1"}
