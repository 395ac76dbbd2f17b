"""Client for the remote AI oracle (Gemini generateContent over REST).

The oracle is optional. Callers catch ``OracleError`` and degrade to local
behaviour; nothing here decides on fallbacks.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import httpx

from .config import OracleSettings

logger = logging.getLogger(__name__)


class OracleError(Exception):
    pass


class OracleUnavailable(OracleError):
    """No credential configured, or the oracle is switched off."""


class OracleRequestFailed(OracleError):
    """Transport, status or payload failure from a configured oracle."""


@dataclass(frozen=True, slots=True)
class ChatTurn:
    role: str  # "user" | "model"
    text: str


class OracleClient:
    def __init__(
        self,
        api_key: str,
        *,
        settings: OracleSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise OracleUnavailable("no API key configured")
        self._settings = settings or OracleSettings()
        self._api_key = api_key
        self._url = f"{self._settings.base_url}/models/{self._settings.model}:generateContent"
        self._client = httpx.Client(timeout=self._settings.timeout_s, transport=transport)

    @property
    def api_key(self) -> str:
        return self._api_key

    def generate_text(self, prompt: str) -> str:
        payload: dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        return self._post(payload)

    def generate_json(self, prompt: str, *, schema: dict[str, Any]) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": schema,
            },
        }
        text = self._post(payload)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as err:
            raise OracleRequestFailed(f"oracle returned invalid JSON: {text[:80]!r}") from err
        if not isinstance(data, dict):
            raise OracleRequestFailed("oracle JSON reply is not an object")
        return data

    def chat(self, history: Sequence[ChatTurn], message: str, *, system_instruction: str) -> str:
        contents = [{"role": turn.role, "parts": [{"text": turn.text}]} for turn in history]
        contents.append({"role": "user", "parts": [{"text": message}]})
        payload: dict[str, Any] = {
            "systemInstruction": {"parts": [{"text": system_instruction}]},
            "contents": contents,
        }
        return self._post(payload)

    def probe(self) -> None:
        """Minimal request used to validate a credential."""
        self.generate_text("Test")

    def close(self) -> None:
        self._client.close()

    def _post(self, payload: dict[str, Any]) -> str:
        try:
            r = self._client.post(self._url, params={"key": self._api_key}, json=payload)
            r.raise_for_status()
        except httpx.HTTPStatusError as err:
            raise OracleRequestFailed(f"oracle returned HTTP {err.response.status_code}") from err
        except httpx.HTTPError as err:
            raise OracleRequestFailed(f"oracle request failed: {err}") from err

        try:
            data = r.json()
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as err:
            raise OracleRequestFailed(f"unexpected oracle response: {r.text[:120]!r}") from err
        if not isinstance(text, str) or text == "":
            raise OracleRequestFailed("oracle returned no text")
        return text


class OracleProvider:
    """Owns the oracle client for one app context.

    The client is built when a credential becomes known and rebuilt only when
    the credential value changes.
    """

    def __init__(
        self,
        settings: OracleSettings | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings or OracleSettings()
        self._transport = transport
        self._key: str | None = None
        self._client: OracleClient | None = None

    @property
    def configured(self) -> bool:
        return self._client is not None

    def set_credential(self, key: str | None) -> None:
        key = (key or "").strip() or None
        if key == self._key:
            return
        self.close()
        self._key = key
        if key is None or self._settings.disabled:
            logger.info("oracle not configured; using local problems")
            return
        self._client = OracleClient(key, settings=self._settings, transport=self._transport)
        logger.info("oracle client built for model %s", self._settings.model)

    def client(self) -> OracleClient:
        if self._client is None:
            raise OracleUnavailable("no API key configured")
        return self._client

    def build_probe_client(self, key: str) -> OracleClient:
        return OracleClient(key, settings=self._settings, transport=self._transport)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
        self._client = None
