"""Chat tutor and progress analysis backed by the oracle.

Both fall back to fixed Hebrew strings; neither raises for oracle trouble.
"""

from __future__ import annotations

import logging

from .oracle import ChatTurn, OracleError, OracleProvider, OracleUnavailable
from .stats import UserStats, accuracy_summary

logger = logging.getLogger(__name__)

GREETING = (
    "שלום! אני מספרי 🤖. אני כאן כדי לעזור לכם להבין חשבון בצורה כיפית. "
    "מה תרצו ללמוד היום? אפשר לשאול אותי על שברים, כפל, או סתם חידה!"
)
NO_KEY_REPLY = "היי! כדי שאוכל לענות, צריך להגדיר מפתח API בהגדרות."
EMPTY_REPLY = "Glitch in the matrix... נסה שוב?"
ERROR_REPLY = "Connection Error... נסה שוב."

NO_KEY_ANALYSIS = "חסר מפתח API. הגדר אותו כדי לקבל ניתוח חכם."
ERROR_ANALYSIS = "Error analyzing stats."

TUTOR_INSTRUCTION = (
    "You are 'Numbery', a gamer robot math tutor for children. "
    "Speak Hebrew. Use gamer slang (XP, Level Up, Quest). "
    "Keep it short and exciting."
)


class TutorChat:
    def __init__(self, provider: OracleProvider) -> None:
        self._provider = provider
        self._history: list[ChatTurn] = [ChatTurn(role="model", text=GREETING)]

    @property
    def history(self) -> list[ChatTurn]:
        return list(self._history)

    def send(self, message: str) -> str:
        """Append the user's message and the tutor's reply; return the reply."""

        message = message.strip()
        if message == "":
            return ""
        prior = _conversation(self._history)
        self._history.append(ChatTurn(role="user", text=message))
        reply = self._reply(prior, message)
        self._history.append(ChatTurn(role="model", text=reply))
        return reply

    def reset(self) -> None:
        self._history = [ChatTurn(role="model", text=GREETING)]

    def _reply(self, prior: list[ChatTurn], message: str) -> str:
        try:
            client = self._provider.client()
        except OracleUnavailable:
            return NO_KEY_REPLY
        try:
            text = client.chat(prior, message, system_instruction=TUTOR_INSTRUCTION)
        except OracleError as err:
            logger.warning("tutor request failed: %s", err)
            return ERROR_REPLY
        return text.strip() or EMPTY_REPLY


def analysis_prompt(stats: UserStats) -> str:
    return (
        "You are a Game Master analyzing a child's math game stats.\n"
        "Write a short, hype-filled report in Hebrew.\n"
        "Identify the strongest and weakest skills.\n"
        'Use terms like "Power Level", "Buff needed", "Critical Hit".\n\n'
        f"Stats:\n{accuracy_summary(stats)}\n"
    )


def analyze_progress(provider: OracleProvider, stats: UserStats) -> str:
    try:
        client = provider.client()
    except OracleUnavailable:
        return NO_KEY_ANALYSIS
    try:
        return client.generate_text(analysis_prompt(stats)).strip() or ERROR_ANALYSIS
    except OracleError as err:
        logger.warning("analysis request failed: %s", err)
        return ERROR_ANALYSIS


def _conversation(history: list[ChatTurn]) -> list[ChatTurn]:
    # The API expects the conversation to open with a user turn.
    turns = list(history)
    while turns and turns[0].role != "user":
        turns.pop(0)
    return turns
