from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"


@dataclass(frozen=True, slots=True)
class OracleSettings:
    model: str = DEFAULT_GEMINI_MODEL
    base_url: str = DEFAULT_GEMINI_BASE_URL
    timeout_s: float = 20.0
    disabled: bool = False


@dataclass(frozen=True, slots=True)
class AppConfig:
    db_path: Path
    oracle: OracleSettings = field(default_factory=OracleSettings)
    env_api_key: str | None = None
    log_level: str = "WARNING"

    @staticmethod
    def default_db_path() -> Path:
        return Path.home() / ".misparia" / "misparia.sqlite3"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> AppConfig:
        env = os.environ if environ is None else environ

        raw_db = env.get("MISPARIA_DB_PATH", "").strip()
        db_path = Path(raw_db).expanduser() if raw_db else cls.default_db_path()

        try:
            timeout_s = float(env.get("MISPARIA_ORACLE_TIMEOUT_S", "20"))
        except ValueError:
            timeout_s = 20.0
        if timeout_s <= 0:
            timeout_s = 20.0

        oracle = OracleSettings(
            model=env.get("MISPARIA_GEMINI_MODEL", "").strip() or DEFAULT_GEMINI_MODEL,
            base_url=(env.get("MISPARIA_GEMINI_BASE_URL", "").strip() or DEFAULT_GEMINI_BASE_URL).rstrip("/"),
            timeout_s=timeout_s,
            disabled=env.get("MISPARIA_DISABLE_ORACLE", "0") == "1",
        )
        api_key = env.get("GEMINI_API_KEY", "").strip() or None
        log_level = env.get("MISPARIA_LOG_LEVEL", "").strip().upper() or "WARNING"
        return cls(db_path=db_path, oracle=oracle, env_api_key=api_key, log_level=log_level)
