from __future__ import annotations

from collections.abc import Collection

from .arithmetic import ArithmeticPair, LocalSynthesizer, SeededRng
from .models import CardType, Difficulty, MemoryCard, Topic

MAX_REROLLS = 32


class MemorySetGenerator:
    """Builds shuffled problem/answer decks for the matching game.

    Local synthesis only; the deck is needed in full before the first flip.
    Answer faces are kept distinct so a correct sum never fails to match
    because another pair shows the same number. Topics with a single
    possible face (fractions) repeat once re-rolls run out.
    """

    def __init__(self, rng: SeededRng) -> None:
        self._rng = rng
        self._synth = LocalSynthesizer(rng)

    def generate(
        self,
        topics: Collection[Topic],
        pair_count: int,
        *,
        difficulty: Difficulty = Difficulty.BEGINNER,
    ) -> list[MemoryCard]:
        if not topics:
            raise ValueError("topics must not be empty")
        if pair_count <= 0:
            raise ValueError("pair_count must be > 0")

        ordered = sorted(topics, key=lambda t: list(Topic).index(t))
        cards: list[MemoryCard] = []
        faces: set[str] = set()
        for i in range(pair_count):
            topic, pair = self._fresh_pair(ordered, difficulty, faces)
            faces.add(str(pair.answer))
            pair_id = f"pair-{i}"
            cards.append(
                MemoryCard(
                    id=f"{pair_id}-p",
                    content=pair.question,
                    type=CardType.PROBLEM,
                    pair_id=pair_id,
                    topic=topic,
                )
            )
            cards.append(
                MemoryCard(
                    id=f"{pair_id}-a",
                    content=str(pair.answer),
                    type=CardType.ANSWER,
                    pair_id=pair_id,
                    topic=topic,
                )
            )

        self._rng.shuffle(cards)
        return cards

    def _fresh_pair(
        self, topics: list[Topic], difficulty: Difficulty, faces: set[str]
    ) -> tuple[Topic, ArithmeticPair]:
        for _ in range(MAX_REROLLS):
            topic = self._rng.choice(topics)
            pair = self._synth.pair(topic, difficulty)
            if str(pair.answer) not in faces:
                return topic, pair
        return topic, pair
