"""Local arithmetic synthesis.

Used whenever the oracle is absent or fails, and always for memory decks.
All randomness flows through a ``SeededRng`` so a seed fully determines the
problem stream.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from dataclasses import dataclass
from fractions import Fraction
from typing import TypeVar

from .models import Difficulty, Problem, Topic

T = TypeVar("T")

# Distractors perturb the correct value by a nonzero offset in [-5, 5].
DISTRACTOR_OFFSETS = tuple(d for d in range(-5, 6) if d != 0)


class SeededRng:
    """Simple seeded RNG wrapper to keep deterministic streams explicit."""

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)

    def randint(self, a: int, b: int) -> int:
        return self._rng.randint(a, b)

    def choice(self, seq: Sequence[T]) -> T:
        return self._rng.choice(seq)

    def random(self) -> float:
        return self._rng.random()

    def shuffle(self, items: list[T]) -> None:
        self._rng.shuffle(items)


def lerp_int(a: int, b: int, t: float) -> int:
    """Linear interpolation in integer space (inclusive bounds)."""

    if t <= 0:
        return a
    if t >= 1:
        return b
    return int(round(a + (b - a) * t))


# (beginner max, advanced max) for each operand.
_OPERAND_MAX = {
    Topic.ADDITION: (10, 50),
    Topic.SUBTRACTION: (10, 50),
    Topic.MULTIPLICATION: (10, 12),
    Topic.DIVISION: (10, 12),
}


@dataclass(frozen=True, slots=True)
class ArithmeticPair:
    """A question and its answer before options are attached."""

    topic: Topic
    question: str
    answer: int
    explanation: str


class LocalSynthesizer:
    def __init__(self, rng: SeededRng) -> None:
        self._rng = rng

    @property
    def rng(self) -> SeededRng:
        return self._rng

    def operands(self, topic: Topic, difficulty: Difficulty) -> tuple[int, int]:
        lo_max, hi_max = _OPERAND_MAX[topic]
        top = lerp_int(lo_max, hi_max, difficulty.scale)
        return self._rng.randint(1, top), self._rng.randint(1, top)

    def pair(self, topic: Topic, difficulty: Difficulty = Difficulty.BEGINNER) -> ArithmeticPair:
        if topic is Topic.FRACTIONS:
            return ArithmeticPair(
                topic=topic,
                question="½ + ½",
                answer=1,
                explanation="חצי ועוד חצי זה שלם אחד.",
            )

        a, b = self.operands(topic, difficulty)
        return build_pair(topic, a, b)

    def problem(self, topics: Sequence[Topic], difficulty: Difficulty) -> Problem:
        if not topics:
            raise ValueError("topics must not be empty")
        topic = self._rng.choice(list(topics))
        pair = self.pair(topic, difficulty)
        return Problem(
            question=pair.question,
            options=tuple(self.options_for(pair.answer)),
            correct_answer=str(pair.answer),
            explanation=pair.explanation,
            topic=topic,
            difficulty=difficulty,
        )

    def options_for(self, correct: int, *, seed_options: Sequence[str] = ()) -> list[str]:
        """Four distinct shuffled options including ``str(correct)``."""

        options = [str(correct)]
        for raw in seed_options:
            if len(options) == 4:
                break
            if raw not in options:
                options.append(raw)
        while len(options) < 4:
            wrong = str(correct + self._rng.choice(DISTRACTOR_OFFSETS))
            if wrong not in options:
                options.append(wrong)
        self._rng.shuffle(options)
        return options


def build_pair(topic: Topic, a: int, b: int) -> ArithmeticPair:
    """Question/answer/explanation for operands ``a`` and ``b``."""

    if topic is Topic.ADDITION:
        ans = a + b
        return ArithmeticPair(topic, f"{a} + {b}", ans, f"אם מחברים {a} ועוד {b}, מקבלים {ans}.")
    if topic is Topic.SUBTRACTION:
        total = a + b
        return ArithmeticPair(topic, f"{total} - {a}", b, f"אם יש לך {total} ומורידים {a}, נשארים עם {b}.")
    if topic is Topic.MULTIPLICATION:
        ans = a * b
        return ArithmeticPair(topic, f"{a} × {b}", ans, f"כפל הוא חיבור חוזר. {a} פעמים {b} זה {ans}.")
    if topic is Topic.DIVISION:
        product = a * b
        return ArithmeticPair(topic, f"{product} ÷ {a}", b, f"{a} נכנס ב-{product} בדיוק {b} פעמים.")
    raise ValueError(f"no operand form for {topic.value}")


_HALF = "½"


def evaluate_question(text: str) -> Fraction:
    """Evaluate a two-operand question such as ``"6 × 7"`` or ``"½ + ½"``."""

    parts = text.split()
    if len(parts) != 3:
        raise ValueError(f"not a two-operand expression: {text!r}")
    left, op, right = parts
    x, y = _operand(left), _operand(right)
    if op == "+":
        return x + y
    if op == "-":
        return x - y
    if op in ("×", "*"):
        return x * y
    if op in ("÷", "/"):
        return x / y
    raise ValueError(f"unknown operator {op!r}")


def _operand(raw: str) -> Fraction:
    if raw == _HALF:
        return Fraction(1, 2)
    return Fraction(int(raw))
