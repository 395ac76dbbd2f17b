from __future__ import annotations

import os
from pathlib import Path

from misparia.config import AppConfig, OracleSettings
from misparia.game_core import Phase, SessionResult
from misparia.models import GameMode
from misparia.stats import UserStats


def _headless_app(tmp_path: Path):
    os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
    os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

    import pygame

    from misparia.app import WINDOW_SIZE, App, AppContext

    pygame.init()
    ctx = AppContext(AppConfig(db_path=tmp_path / "ui.sqlite3", oracle=OracleSettings(disabled=True)))
    return App(pygame.Surface(WINDOW_SIZE), ctx)


def _press(app, key: int, unicode: str = "") -> None:
    import pygame

    app.handle_event(pygame.event.Event(pygame.KEYDOWN, {"key": key, "unicode": unicode}))


def test_hud_line_shows_level_xp_and_coins() -> None:
    from misparia.app import hud_line

    assert hud_line(UserStats(xp=240, level=3, coins=55)) == "LVL 3   XP 240   Coins 55"
    assert hud_line(UserStats()).startswith("LVL 1 ")


def test_game_over_screen_reads_best_score(tmp_path: Path) -> None:
    import pygame

    from misparia.app import GameScreen

    app = _headless_app(tmp_path)
    try:
        app.ctx.store.record_session(
            SessionResult(mode=GameMode.QUIZ, score=750, answered=5, correct=5, duration_s=30.0, completed=True),
            app_version="test",
        )
        app.push(GameScreen(app, GameMode.QUIZ))
        session = app.ctx.arena.session
        assert session is not None
        session.stop()
        assert session.phase is Phase.ENDED

        app.render()
        app.render()

        assert app.ctx.store.best_score(GameMode.QUIZ.value) == 750
        assert app.ctx.store.session_count(GameMode.QUIZ.value) == 2
    finally:
        app.ctx.close()
        pygame.quit()


def test_tutor_new_chat_key_restores_greeting(tmp_path: Path) -> None:
    import pygame

    from misparia.app import TutorScreen
    from misparia.tutor import GREETING, NO_KEY_REPLY

    app = _headless_app(tmp_path)
    try:
        app.push(TutorScreen(app))
        app.ctx.tutor.send("hi")
        assert [t.text for t in app.ctx.tutor.history] == [GREETING, "hi", NO_KEY_REPLY]

        _press(app, pygame.K_F2)
        app.render()

        assert [t.text for t in app.ctx.tutor.history] == [GREETING]
    finally:
        app.ctx.close()
        pygame.quit()


def test_lab_screen_renders_both_tools_at_the_limits(tmp_path: Path) -> None:
    import pygame

    from misparia.app import LabScreen

    app = _headless_app(tmp_path)
    try:
        app.push(LabScreen(app))
        for _ in range(15):
            _press(app, pygame.K_RIGHT)
        _press(app, pygame.K_DOWN)
        for _ in range(15):
            _press(app, pygame.K_RIGHT)
        app.render()

        _press(app, pygame.K_TAB)
        _press(app, pygame.K_DOWN)
        for _ in range(25):
            _press(app, pygame.K_RIGHT)
        app.render()
        for _ in range(25):
            _press(app, pygame.K_LEFT)
        app.render()
    finally:
        app.ctx.close()
        pygame.quit()
