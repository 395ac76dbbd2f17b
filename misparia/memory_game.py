from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from .game_core import Feedback, GameSession, Phase, SessionSnapshot
from .memory_cards import MemorySetGenerator
from .models import GameMode, MemoryCard


@dataclass(frozen=True, slots=True)
class MemoryConfig:
    pair_count: int = 6
    match_delay_s: float = 0.6
    score_pair: int = 50
    xp_pair: int = 20
    coins_pair: int = 10


@dataclass(frozen=True, slots=True)
class MemoryPayload:
    cards: tuple[MemoryCard, ...]
    moves: int
    matched_pairs: int


class MemorySession(GameSession):
    """Matching pairs: flip two cards, keep them if the problem meets its answer.

    While a flipped pair is waiting for its match check the session sits in
    FEEDBACK and further clicks are ignored.
    """

    mode = GameMode.MEMORY

    def __init__(self, *, config: MemoryConfig | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._config = config or MemoryConfig()
        if self._config.pair_count <= 0:
            raise ValueError("pair_count must be > 0")
        self._deck = MemorySetGenerator(self._rng)
        self._cards: list[MemoryCard] = []
        self._open: list[MemoryCard] = []
        self._moves = 0

    @property
    def cards(self) -> list[MemoryCard]:
        return list(self._cards)

    def card(self, card_id: str) -> MemoryCard | None:
        for c in self._cards:
            if c.id == card_id:
                return c
        return None

    def flip(self, card_id: str) -> bool:
        """Flip a face-down card. Returns False when the click is ignored."""

        if self._phase is not Phase.AWAITING_ANSWER:
            return False
        c = self.card(card_id)
        if c is None or c.is_flipped or c.is_matched:
            return False

        c.is_flipped = True
        self._open.append(c)
        self._feedback = Feedback.NONE
        if len(self._open) == 2:
            self._moves += 1
            self._phase = Phase.FEEDBACK
            self._scheduler.call_later(self._config.match_delay_s, self._check_match)
        return True

    def snapshot(self) -> SessionSnapshot:
        matched = sum(1 for c in self._cards if c.is_matched) // 2
        return SessionSnapshot(
            mode=self.mode,
            phase=self._phase,
            feedback=self._feedback,
            score=self._score,
            timer_s=None,
            payload=MemoryPayload(
                cards=tuple(replace(c) for c in self._cards),
                moves=self._moves,
                matched_pairs=matched,
            ),
        )

    def _begin(self) -> None:
        self._phase = Phase.LOADING
        self._cards = self._deck.generate(self._topics, self._config.pair_count, difficulty=self._difficulty)
        self._open = []
        self._phase = Phase.AWAITING_ANSWER

    def _check_match(self) -> None:
        first, second = self._open
        self._open = []
        if first.pair_id == second.pair_id:
            first.is_matched = second.is_matched = True
            self._feedback = Feedback.CORRECT
            self._score += self._config.score_pair
            self._credit(first.topic, True, xp_gain=self._config.xp_pair, coin_gain=self._config.coins_pair)
        else:
            first.is_flipped = second.is_flipped = False
            self._feedback = Feedback.INCORRECT

        if all(c.is_matched for c in self._cards):
            self._end()
        else:
            self._phase = Phase.AWAITING_ANSWER
