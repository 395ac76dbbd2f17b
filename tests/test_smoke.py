"""Smoke tests for the pygame UI.

These check that the main loop can initialise and run a few frames with
SDL's dummy video driver. They do not check rendering; they make sure the
pygame integration does not raise in a headless environment.
"""

from __future__ import annotations

import os
from pathlib import Path

# Use the dummy drivers before importing pygame or the application
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")
os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")


def test_app_runs_headless(tmp_path: Path) -> None:
    # Import inside the test so that environment variables take effect
    from misparia.app import run
    from misparia.config import AppConfig, OracleSettings

    cfg = AppConfig(db_path=tmp_path / "smoke.sqlite3", oracle=OracleSettings(disabled=True))
    assert run(max_frames=3, config=cfg) == 0
    assert cfg.db_path.exists()
