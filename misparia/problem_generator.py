from __future__ import annotations

import logging
from collections.abc import Collection
from typing import Any

from .arithmetic import LocalSynthesizer, SeededRng
from .models import Difficulty, Problem, Topic
from .oracle import OracleError, OracleProvider

logger = logging.getLogger(__name__)

PROBLEM_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "question": {"type": "STRING"},
        "options": {"type": "ARRAY", "items": {"type": "STRING"}},
        "correctAnswer": {"type": "STRING"},
        "explanation": {"type": "STRING"},
        "topic": {"type": "STRING"},
    },
    "required": ["question", "options", "correctAnswer", "explanation", "topic"],
}


def problem_prompt(topics: list[Topic], difficulty: Difficulty) -> str:
    allowed = ", ".join(f"{t.value} ({t.hebrew_name})" for t in topics)
    return (
        "Create a fun math problem for a children's game.\n"
        f"Topics allowed: {allowed}. Pick one.\n"
        f"Difficulty: {difficulty.value}.\n"
        "Language: Hebrew.\n"
        "Return a JSON object with:\n"
        '- question (the math expression, e.g. "5 + 3")\n'
        "- options (array of 4 possible answers as strings)\n"
        "- correctAnswer (the correct answer string, must match one option)\n"
        "- explanation (a super short, fun explanation in Hebrew)\n"
        "- topic (the code of the topic you picked, e.g. \"addition\")\n"
    )


class ProblemGenerator:
    """Produces one multiple-choice problem per call.

    Asks the oracle when one is configured and synthesizes locally otherwise.
    Never raises for oracle trouble: every failure path ends in a local
    problem.
    """

    def __init__(self, *, rng: SeededRng | None = None, oracle: OracleProvider | None = None) -> None:
        self._rng = rng or SeededRng()
        self._synth = LocalSynthesizer(self._rng)
        self._oracle = oracle

    def generate(self, topics: Collection[Topic], difficulty: Difficulty) -> Problem:
        ordered = _ordered(topics)
        if self._oracle is not None and self._oracle.configured:
            try:
                return self._from_oracle(ordered, difficulty)
            except OracleError as err:
                logger.warning("oracle problem request failed, using local problem: %s", err)
        return self._synth.problem(ordered, difficulty)

    def local(self, topics: Collection[Topic], difficulty: Difficulty) -> Problem:
        return self._synth.problem(_ordered(topics), difficulty)

    def _from_oracle(self, topics: list[Topic], difficulty: Difficulty) -> Problem:
        assert self._oracle is not None
        data = self._oracle.client().generate_json(problem_prompt(topics, difficulty), schema=PROBLEM_SCHEMA)
        problem = self.repair_reply(data, topics, difficulty)
        if problem is None:
            logger.info("oracle reply unusable, using local problem")
            return self._synth.problem(topics, difficulty)
        return problem

    def repair_reply(self, data: dict[str, Any], topics: list[Topic], difficulty: Difficulty) -> Problem | None:
        """Coerce an oracle reply into a valid Problem, or None if it cannot be."""

        question = str(data.get("question", "")).strip()
        correct = str(data.get("correctAnswer", "")).strip()
        explanation = str(data.get("explanation", "")).strip()
        raw_options = data.get("options")
        if question == "" or correct == "" or not isinstance(raw_options, list):
            return None

        topic = Topic.parse(data.get("topic", ""))
        if topic not in topics:
            logger.info("oracle topic %r outside request, using %s", data.get("topic"), topics[0].value)
            topic = topics[0]

        options: list[str] = []
        for raw in raw_options:
            text = str(raw).strip()
            if text and text not in options:
                options.append(text)

        if correct in options and len(options) == 4:
            final = options
        else:
            try:
                correct_value = int(correct)
            except ValueError:
                return None
            correct = str(correct_value)
            others = [o for o in options if o != correct][:3]
            logger.info("repairing oracle options %r", raw_options)
            final = self._synth.options_for(correct_value, seed_options=others)

        return Problem(
            question=question,
            options=tuple(final),
            correct_answer=correct,
            explanation=explanation,
            topic=topic,
            difficulty=difficulty,
        )


def _ordered(topics: Collection[Topic]) -> list[Topic]:
    if not topics:
        raise ValueError("topics must not be empty")
    order = list(Topic)
    return sorted(set(topics), key=order.index)
