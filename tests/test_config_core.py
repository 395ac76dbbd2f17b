from __future__ import annotations

from pathlib import Path

from misparia.config import DEFAULT_GEMINI_BASE_URL, DEFAULT_GEMINI_MODEL, AppConfig


def test_defaults_from_empty_environment() -> None:
    cfg = AppConfig.from_env({})
    assert cfg.db_path == AppConfig.default_db_path()
    assert cfg.oracle.model == DEFAULT_GEMINI_MODEL
    assert cfg.oracle.base_url == DEFAULT_GEMINI_BASE_URL
    assert cfg.oracle.timeout_s == 20.0
    assert cfg.oracle.disabled is False
    assert cfg.env_api_key is None
    assert cfg.log_level == "WARNING"


def test_environment_overrides(tmp_path: Path) -> None:
    cfg = AppConfig.from_env(
        {
            "MISPARIA_DB_PATH": str(tmp_path / "x.sqlite3"),
            "GEMINI_API_KEY": "  secret ",
            "MISPARIA_GEMINI_MODEL": "gemini-test",
            "MISPARIA_GEMINI_BASE_URL": "http://localhost:9999/v1/",
            "MISPARIA_ORACLE_TIMEOUT_S": "3.5",
            "MISPARIA_DISABLE_ORACLE": "1",
            "MISPARIA_LOG_LEVEL": "debug",
        }
    )
    assert cfg.db_path == tmp_path / "x.sqlite3"
    assert cfg.env_api_key == "secret"
    assert cfg.oracle.model == "gemini-test"
    assert cfg.oracle.base_url == "http://localhost:9999/v1"
    assert cfg.oracle.timeout_s == 3.5
    assert cfg.oracle.disabled is True
    assert cfg.log_level == "DEBUG"


def test_bad_timeout_falls_back() -> None:
    assert AppConfig.from_env({"MISPARIA_ORACLE_TIMEOUT_S": "soon"}).oracle.timeout_s == 20.0
    assert AppConfig.from_env({"MISPARIA_ORACLE_TIMEOUT_S": "-1"}).oracle.timeout_s == 20.0
