from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Topic(str, Enum):
    ADDITION = "addition"
    SUBTRACTION = "subtraction"
    MULTIPLICATION = "multiplication"
    DIVISION = "division"
    FRACTIONS = "fractions"

    @property
    def hebrew_name(self) -> str:
        return _TOPIC_HEBREW[self]

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @classmethod
    def parse(cls, raw: object) -> Topic | None:
        """Resolve a topic from its code or Hebrew name; None if unknown."""

        text = str(raw).strip()
        for topic in cls:
            if text.lower() == topic.value or text == topic.hebrew_name:
                return topic
        return None


_TOPIC_HEBREW = {
    Topic.ADDITION: "חיבור",
    Topic.SUBTRACTION: "חיסור",
    Topic.MULTIPLICATION: "כפל",
    Topic.DIVISION: "חילוק",
    Topic.FRACTIONS: "שברים",
}


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

    @property
    def scale(self) -> float:
        """Difficulty as a 0..1 scalar for operand-range interpolation."""
        return {Difficulty.BEGINNER: 0.0, Difficulty.INTERMEDIATE: 0.5, Difficulty.ADVANCED: 1.0}[self]


class GameMode(str, Enum):
    QUIZ = "quiz"
    SPEED_RUN = "speed"
    TOWER = "tower"
    MEMORY = "memory"
    SNAKE = "snake"
    SPACE_DEFENSE = "space"
    BALANCE = "balance"


class CardType(str, Enum):
    PROBLEM = "problem"
    ANSWER = "answer"


@dataclass(frozen=True, slots=True)
class Problem:
    question: str
    options: tuple[str, ...]
    correct_answer: str
    explanation: str
    topic: Topic
    difficulty: Difficulty
    is_challenge: bool = False

    def __post_init__(self) -> None:
        if len(self.options) != 4:
            raise ValueError("a problem needs exactly 4 options")
        if len(set(self.options)) != 4:
            raise ValueError("problem options must be distinct")
        if self.correct_answer not in self.options:
            raise ValueError("correct_answer must be one of the options")

    def is_correct(self, answer: str) -> bool:
        return answer.strip() == self.correct_answer


@dataclass(slots=True)
class MemoryCard:
    id: str
    content: str
    type: CardType
    pair_id: str
    topic: Topic
    is_flipped: bool = False
    is_matched: bool = False
