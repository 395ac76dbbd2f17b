"""Pygame UI shell for Misparia.

Screens:
- Main menu -> Mission setup (topics, difficulty) and the seven game modes
- Progress (per-topic accuracy, AI analysis, reset)
- AI tutor chat
- Settings (API key)
- Number Lab (multiplication grid, fraction explorer)

Timers, scoring, problem synthesis and stats live in the core modules; this
file only turns session snapshots into pixels and key presses into calls.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Protocol

import pygame

from . import __version__
from .arena import GameArena
from .arithmetic import SeededRng
from .clock import RealClock
from .config import AppConfig
from .credentials import KeyManager
from .feed import BackgroundFeed
from .game_core import Feedback, Phase, SessionSnapshot
from .lab import LabTool, NumberLab
from .memory_game import MemoryPayload, MemorySession
from .models import CardType, Difficulty, GameMode, Topic
from .oracle import OracleProvider
from .persistence import LocalStore
from .problem_generator import ProblemGenerator
from .quiz_modes import AnswerCycleSession, BalancePayload, TowerPayload
from .snake import DOWN, LEFT, RIGHT, UP, SnakePayload, SnakeSession
from .space_defense import SpaceDefensePayload, SpaceDefenseSession
from .stats import UserStats
from .tutor import TutorChat, analyze_progress

logger = logging.getLogger(__name__)

WINDOW_SIZE = (960, 540)
TARGET_FPS = 60

BG = (11, 17, 38)
PANEL = (22, 31, 61)
PANEL_EDGE = (64, 84, 140)
TEXT = (236, 242, 255)
MUTED = (150, 163, 196)
ACCENT = (34, 211, 238)
GOOD = (34, 197, 94)
BAD = (239, 68, 68)
GOLD = (250, 204, 21)
PINK = (236, 72, 153)
SLATE = (51, 65, 85)

MODE_TITLES = {
    GameMode.QUIZ: "Quiz Mode",
    GameMode.SPEED_RUN: "Speed Run",
    GameMode.TOWER: "Sky Tower",
    GameMode.MEMORY: "Memory Match",
    GameMode.SNAKE: "Number Snake",
    GameMode.SPACE_DEFENSE: "Space Defense",
    GameMode.BALANCE: "Balance Scale",
}


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def update(self) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None]


class AppContext:
    """Everything the screens share; owns the oracle client lifecycle."""

    def __init__(self, config: AppConfig) -> None:
        self.config = config
        self.store = LocalStore(config.db_path)
        self.oracle = OracleProvider(config.oracle)
        self.keys = KeyManager(self.store, self.oracle, env_key=config.env_api_key)
        self.keys.activate()
        self.generator = ProblemGenerator(rng=SeededRng(), oracle=self.oracle)
        self.feed = BackgroundFeed(self.generator)
        self.arena = GameArena(clock=RealClock(), feed=self.feed, store=self.store)
        self.tutor = TutorChat(self.oracle)
        self.jobs = ThreadPoolExecutor(max_workers=1, thread_name_prefix="misparia-ui")

    def close(self) -> None:
        self.arena.exit()
        self.feed.shutdown()
        self.jobs.shutdown(wait=False, cancel_futures=True)
        self.oracle.close()


class App:
    def __init__(self, surface: pygame.Surface, ctx: AppContext) -> None:
        self._surface = surface
        self._ctx = ctx
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def ctx(self) -> AppContext:
        return self._ctx

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def pop(self) -> None:
        # Never pop the root screen; it handles its own quit.
        if len(self._screens) > 1:
            self._screens.pop()

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if self._screens:
            self._screens[-1].handle_event(event)

    def update(self) -> None:
        if self._screens:
            self._screens[-1].update()

    def render(self) -> None:
        if self._screens:
            self._screens[-1].render(self._surface)


def _fonts() -> dict[str, pygame.font.Font]:
    return {
        "title": pygame.font.Font(None, 48),
        "big": pygame.font.Font(None, 84),
        "mid": pygame.font.Font(None, 36),
        "small": pygame.font.Font(None, 26),
        "tiny": pygame.font.Font(None, 20),
    }


def _wrap(font: pygame.font.Font, text: str, width: int) -> list[str]:
    lines: list[str] = []
    for paragraph in text.split("\n"):
        line = ""
        for word in paragraph.split(" "):
            candidate = word if line == "" else f"{line} {word}"
            if font.size(candidate)[0] <= width or line == "":
                line = candidate
            else:
                lines.append(line)
                line = word
        lines.append(line)
    return lines


def _frame(surface: pygame.Surface, fonts: dict[str, pygame.font.Font], title: str, footer: str) -> pygame.Rect:
    """Draw the shared window chrome and return the content rect."""

    w, h = surface.get_size()
    surface.fill(BG)
    header = pygame.Rect(0, 0, w, 56)
    pygame.draw.rect(surface, PANEL, header)
    pygame.draw.line(surface, PANEL_EDGE, (0, header.bottom), (w, header.bottom), 1)
    t = fonts["title"].render(title, True, TEXT)
    surface.blit(t, t.get_rect(center=header.center))
    foot = fonts["tiny"].render(footer, True, MUTED)
    surface.blit(foot, foot.get_rect(midbottom=(w // 2, h - 8)))
    return pygame.Rect(24, header.bottom + 16, w - 48, h - header.bottom - 56)


def _future_text(future: Future[str] | None) -> str | None:
    if future is None or not future.done():
        return None
    return future.result()


def hud_line(stats: UserStats) -> str:
    return f"LVL {stats.level}   XP {stats.xp}   Coins {stats.coins}"


class MenuScreen:
    def __init__(self, app: App, title: str, items: list[MenuItem], *, is_root: bool = False) -> None:
        self._app = app
        self._title = title
        self._items = items
        self._selected = 0
        self._is_root = is_root
        self._fonts = _fonts()

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_UP, pygame.K_w):
            self._selected = (self._selected - 1) % len(self._items)
        elif event.key in (pygame.K_DOWN, pygame.K_s):
            self._selected = (self._selected + 1) % len(self._items)
        elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            self._items[self._selected].action()
        elif event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            if self._is_root:
                self._app.quit()
            else:
                self._app.pop()

    def update(self) -> None:
        return

    def render(self, surface: pygame.Surface) -> None:
        content = _frame(surface, self._fonts, self._title, "Up/Down: Move  |  Enter: Select  |  Esc: Back")
        stats = self._app.ctx.arena.stats
        hud = self._fonts["small"].render(hud_line(stats), True, GOLD)
        surface.blit(hud, (content.x, content.y - 4))

        row_h = min(44, max(28, (content.h - 30) // max(1, len(self._items))))
        y = content.y + 28
        for idx, item in enumerate(self._items):
            row = pygame.Rect(content.x + 120, y, content.w - 240, row_h - 6)
            selected = idx == self._selected
            pygame.draw.rect(surface, ACCENT if selected else PANEL, row, border_radius=8)
            pygame.draw.rect(surface, PANEL_EDGE, row, 1, border_radius=8)
            label = self._fonts["mid"].render(item.label, True, BG if selected else TEXT)
            surface.blit(label, label.get_rect(midleft=(row.x + 16, row.centery)))
            y += row_h


class MissionSetupScreen:
    """Topic toggles and difficulty selection for the next game."""

    def __init__(self, app: App) -> None:
        self._app = app
        self._rows: list[Topic | Difficulty | None] = [*Topic, *Difficulty, None]
        self._selected = 0
        self._fonts = _fonts()

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key == pygame.K_UP:
            self._selected = (self._selected - 1) % len(self._rows)
        elif event.key == pygame.K_DOWN:
            self._selected = (self._selected + 1) % len(self._rows)
        elif event.key in (pygame.K_RETURN, pygame.K_SPACE):
            row = self._rows[self._selected]
            arena = self._app.ctx.arena
            if isinstance(row, Topic):
                arena.toggle_topic(row)
            elif isinstance(row, Difficulty):
                arena.set_difficulty(row)
            else:
                self._app.pop()
        elif event.key == pygame.K_ESCAPE:
            self._app.pop()

    def update(self) -> None:
        return

    def render(self, surface: pygame.Surface) -> None:
        content = _frame(surface, self._fonts, "Mission Setup", "Enter: Toggle  |  Esc: Back")
        arena = self._app.ctx.arena
        y = content.y
        for idx, row in enumerate(self._rows):
            if isinstance(row, Topic):
                mark = "[x]" if row in arena.topics else "[ ]"
                text = f"{mark} {row.label}"
            elif isinstance(row, Difficulty):
                mark = "(o)" if row is arena.difficulty else "( )"
                text = f"{mark} {row.value.capitalize()}"
            else:
                text = "Done"
            color = ACCENT if idx == self._selected else TEXT
            surface.blit(self._fonts["mid"].render(text, True, color), (content.x + 160, y))
            y += 36


class GameScreen:
    """Hosts one game session and renders its snapshot."""

    def __init__(self, app: App, mode: GameMode) -> None:
        self._app = app
        self._mode = mode
        self._fonts = _fonts()
        self._option_boxes: list[tuple[pygame.Rect, str]] = []
        self._card_boxes: list[tuple[pygame.Rect, str]] = []
        self._cursor = 0
        self._best: int | None = None
        app.ctx.arena.start(mode)

    def _leave(self) -> None:
        self._app.ctx.arena.exit()
        self._app.pop()

    def handle_event(self, event: pygame.event.Event) -> None:
        session = self._app.ctx.arena.session
        if session is None:
            self._app.pop()
            return
        if event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
            self._leave()
            return
        if session.phase is Phase.ENDED:
            if event.type == pygame.KEYDOWN and event.key in (pygame.K_RETURN, pygame.K_SPACE):
                self._leave()
            return

        if isinstance(session, AnswerCycleSession):
            self._handle_answer_cycle(session, event)
        elif isinstance(session, MemorySession):
            self._handle_memory(session, event)
        elif isinstance(session, SnakeSession):
            self._handle_snake(session, event)
        elif isinstance(session, SpaceDefenseSession):
            self._handle_space(session, event)

    def _handle_answer_cycle(self, session: AnswerCycleSession, event: pygame.event.Event) -> None:
        problem = session.current_problem
        if event.type == pygame.KEYDOWN:
            if event.key in (pygame.K_RETURN, pygame.K_n):
                session.next()
            elif problem is not None and event.unicode in ("1", "2", "3", "4"):
                session.submit_answer(problem.options[int(event.unicode) - 1])
        elif event.type == pygame.MOUSEBUTTONDOWN and getattr(event, "button", 0) == 1:
            for rect, option in self._option_boxes:
                if rect.collidepoint(event.pos):
                    session.submit_answer(option)
                    return

    def _handle_memory(self, session: MemorySession, event: pygame.event.Event) -> None:
        cards = session.cards
        if event.type == pygame.KEYDOWN and cards:
            cols = 4
            moves = {pygame.K_LEFT: -1, pygame.K_RIGHT: 1, pygame.K_UP: -cols, pygame.K_DOWN: cols}
            if event.key in moves:
                self._cursor = (self._cursor + moves[event.key]) % len(cards)
            elif event.key in (pygame.K_RETURN, pygame.K_SPACE):
                session.flip(cards[self._cursor].id)
        elif event.type == pygame.MOUSEBUTTONDOWN and getattr(event, "button", 0) == 1:
            for rect, card_id in self._card_boxes:
                if rect.collidepoint(event.pos):
                    session.flip(card_id)
                    return

    def _handle_snake(self, session: SnakeSession, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        steering = {
            pygame.K_UP: UP,
            pygame.K_w: UP,
            pygame.K_DOWN: DOWN,
            pygame.K_s: DOWN,
            pygame.K_LEFT: LEFT,
            pygame.K_a: LEFT,
            pygame.K_RIGHT: RIGHT,
            pygame.K_d: RIGHT,
        }
        if event.key in steering:
            session.steer(steering[event.key])

    def _handle_space(self, session: SpaceDefenseSession, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key == pygame.K_BACKSPACE:
            session.backspace()
        elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            session.submit()
        elif event.unicode and (event.unicode.isdigit() or event.unicode == "-"):
            session.type_text(event.unicode)

    def update(self) -> None:
        self._app.ctx.arena.update()

    def render(self, surface: pygame.Surface) -> None:
        session = self._app.ctx.arena.session
        if session is None:
            return
        snap = session.snapshot()
        content = _frame(surface, self._fonts, MODE_TITLES[self._mode], "Esc: Leave game")
        self._render_hud(surface, content, snap)
        body = pygame.Rect(content.x, content.y + 40, content.w, content.h - 40)

        if snap.phase is Phase.ENDED:
            self._render_game_over(surface, body, snap)
        elif snap.phase is Phase.LOADING and snap.payload is None:
            msg = self._fonts["mid"].render("Loading level...", True, MUTED)
            surface.blit(msg, msg.get_rect(center=body.center))
        elif isinstance(snap.payload, MemoryPayload):
            self._render_memory(surface, body, snap.payload)
        elif isinstance(snap.payload, SnakePayload):
            self._render_snake(surface, body, snap)
        elif isinstance(snap.payload, SpaceDefensePayload):
            self._render_space(surface, body, snap.payload)
        else:
            self._render_answer_cycle(surface, body, snap)

    def _render_hud(self, surface: pygame.Surface, content: pygame.Rect, snap: SessionSnapshot) -> None:
        score = self._fonts["mid"].render(f"Score {snap.score:,}", True, GOLD)
        surface.blit(score, (content.right - score.get_width(), content.y))
        if snap.timer_s is not None:
            if self._mode is GameMode.SPEED_RUN:
                text = f"{snap.timer_s}s"
                color = BAD if snap.timer_s < 10 else ACCENT
            else:
                text = f"{snap.timer_s // 60}:{snap.timer_s % 60:02d}"
                color = ACCENT
            surface.blit(self._fonts["mid"].render(text, True, color), (content.x, content.y))

    def _render_game_over(self, surface: pygame.Surface, body: pygame.Rect, snap: SessionSnapshot) -> None:
        title = self._fonts["big"].render("GAME OVER", True, ACCENT)
        surface.blit(title, title.get_rect(center=(body.centerx, body.centery - 40)))
        score = self._fonts["mid"].render(f"Final score: {snap.score:,}  -  Enter to continue", True, TEXT)
        surface.blit(score, score.get_rect(center=(body.centerx, body.centery + 30)))
        if self._best is None:
            self._best = self._app.ctx.store.best_score(self._mode.value)
        best = self._fonts["small"].render(f"Best: {self._best:,}", True, GOLD)
        surface.blit(best, best.get_rect(center=(body.centerx, body.centery + 70)))

    def _render_answer_cycle(self, surface: pygame.Surface, body: pygame.Rect, snap: SessionSnapshot) -> None:
        problem = snap.problem
        self._option_boxes = []
        if problem is None:
            return

        top = body.y
        if isinstance(snap.payload, TowerPayload):
            floors = snap.payload.height
            for i in range(min(floors, 12)):
                block = pygame.Rect(body.x + 20, body.bottom - 24 - i * 18, 90, 16)
                pygame.draw.rect(surface, GOOD, block, border_radius=3)
            label = self._fonts["small"].render(f"{floors} floors", True, GOOD)
            surface.blit(label, (body.x + 20, body.y))
        if problem.is_challenge:
            boss = self._fonts["mid"].render("BOSS BATTLE", True, BAD)
            surface.blit(boss, boss.get_rect(midtop=(body.centerx, top)))
        top += 36

        if isinstance(snap.payload, BalancePayload):
            left = self._fonts["big"].render(snap.payload.known_pan, True, TEXT)
            right = self._fonts["big"].render("?", True, ACCENT)
            surface.blit(left, left.get_rect(center=(body.centerx - 180, top + 50)))
            surface.blit(right, right.get_rect(center=(body.centerx + 180, top + 50)))
            pygame.draw.line(surface, MUTED, (body.centerx - 260, top + 100), (body.centerx + 260, top + 100), 4)
        else:
            q = self._fonts["big"].render(problem.question, True, TEXT)
            surface.blit(q, q.get_rect(center=(body.centerx, top + 50)))

        box_w, box_h = 300, 56
        for idx, option in enumerate(problem.options):
            col, row = idx % 2, idx // 2
            rect = pygame.Rect(body.centerx - box_w - 10 + col * (box_w + 20), top + 130 + row * (box_h + 14), box_w, box_h)
            fill = PANEL
            if snap.selected_answer == option:
                fill = GOOD if snap.feedback is Feedback.CORRECT else BAD
            elif snap.feedback is Feedback.INCORRECT and option == problem.correct_answer:
                fill = (20, 83, 45)
            pygame.draw.rect(surface, fill, rect, border_radius=10)
            pygame.draw.rect(surface, PANEL_EDGE, rect, 1, border_radius=10)
            text = self._fonts["mid"].render(f"{idx + 1}.  {option}", True, TEXT)
            surface.blit(text, text.get_rect(center=rect.center))
            self._option_boxes.append((rect, option))

        if snap.feedback is not Feedback.NONE:
            word = "Excellent!" if snap.feedback is Feedback.CORRECT else "Mission failed!"
            color = GOOD if snap.feedback is Feedback.CORRECT else BAD
            y = top + 290
            surface.blit(self._fonts["mid"].render(word, True, color), (body.x + 40, y))
            for line in _wrap(self._fonts["small"], problem.explanation, body.w - 80)[:2]:
                y += 30
                surface.blit(self._fonts["small"].render(line, True, TEXT), (body.x + 40, y))

    def _render_memory(self, surface: pygame.Surface, body: pygame.Rect, payload: MemoryPayload) -> None:
        self._card_boxes = []
        cols = 4
        rows = max(1, (len(payload.cards) + cols - 1) // cols)
        card_w = min(180, (body.w - 40) // cols - 12)
        card_h = min(90, (body.h - 30) // rows - 10)
        for idx, card in enumerate(payload.cards):
            col, row = idx % cols, idx // cols
            rect = pygame.Rect(body.x + 20 + col * (card_w + 12), body.y + row * (card_h + 10), card_w, card_h)
            if card.is_matched:
                fill = (20, 83, 45)
            elif card.is_flipped:
                fill = (76, 29, 149) if card.type is CardType.PROBLEM else (30, 64, 175)
            else:
                fill = PANEL
            pygame.draw.rect(surface, fill, rect, border_radius=8)
            edge = ACCENT if idx == self._cursor else PANEL_EDGE
            pygame.draw.rect(surface, edge, rect, 2, border_radius=8)
            if card.is_flipped or card.is_matched:
                text = self._fonts["mid"].render(card.content, True, TEXT)
                surface.blit(text, text.get_rect(center=rect.center))
            self._card_boxes.append((rect, card.id))
        info = self._fonts["small"].render(f"Moves {payload.moves}   Pairs {payload.matched_pairs}", True, MUTED)
        surface.blit(info, (body.right - info.get_width(), body.bottom - 24))

    def _render_snake(self, surface: pygame.Surface, body: pygame.Rect, snap: SessionSnapshot) -> None:
        payload = snap.payload
        assert isinstance(payload, SnakePayload)
        n = payload.grid_size
        cell = max(8, min(body.h // n, (body.w - 320) // n))
        grid = pygame.Rect(body.x, body.y, cell * n, cell * n)
        pygame.draw.rect(surface, PANEL, grid)
        for food in payload.food:
            rect = pygame.Rect(grid.x + food.cell[0] * cell, grid.y + food.cell[1] * cell, cell, cell)
            pygame.draw.rect(surface, GOLD, rect, border_radius=4)
            val = self._fonts["tiny"].render(food.value, True, BG)
            surface.blit(val, val.get_rect(center=rect.center))
        for i, (x, y) in enumerate(payload.body):
            rect = pygame.Rect(grid.x + x * cell + 1, grid.y + y * cell + 1, cell - 2, cell - 2)
            pygame.draw.rect(surface, ACCENT if i == 0 else GOOD, rect, border_radius=3)
        if snap.problem is not None:
            q = self._fonts["mid"].render(snap.problem.question, True, TEXT)
            surface.blit(q, (grid.right + 30, grid.y + 20))
            hint = self._fonts["small"].render("Eat the right answer!", True, MUTED)
            surface.blit(hint, (grid.right + 30, grid.y + 60))

    def _render_space(self, surface: pygame.Surface, body: pygame.Rect, payload: SpaceDefensePayload) -> None:
        field = pygame.Rect(body.x, body.y, body.w, body.h - 44)
        pygame.draw.rect(surface, (5, 8, 22), field)
        for a in payload.asteroids:
            cx = field.x + int(a.x * field.w)
            cy = field.y + int(min(1.0, a.y) * field.h)
            pygame.draw.circle(surface, (120, 113, 108), (cx, cy), 34)
            q = self._fonts["small"].render(a.problem.question, True, TEXT)
            surface.blit(q, q.get_rect(center=(cx, cy)))
        entry = pygame.Rect(body.centerx - 120, body.bottom - 40, 240, 36)
        pygame.draw.rect(surface, PANEL, entry, border_radius=6)
        pygame.draw.rect(surface, ACCENT, entry, 1, border_radius=6)
        text = self._fonts["mid"].render(payload.input_text, True, TEXT)
        surface.blit(text, text.get_rect(center=entry.center))
        tally = self._fonts["small"].render(f"Hits {payload.destroyed}   Missed {payload.escaped}", True, MUTED)
        surface.blit(tally, (body.x, body.bottom - 30))


class ProgressScreen:
    def __init__(self, app: App) -> None:
        self._app = app
        self._fonts = _fonts()
        self._analysis: Future[str] | None = None
        self._confirm_reset = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        ctx = self._app.ctx
        if event.key == pygame.K_ESCAPE:
            self._app.pop()
        elif event.key == pygame.K_a and (self._analysis is None or self._analysis.done()):
            stats = ctx.arena.stats
            self._analysis = ctx.jobs.submit(analyze_progress, ctx.oracle, stats)
        elif event.key == pygame.K_r:
            if self._confirm_reset:
                ctx.arena.reset_progress()
                self._confirm_reset = False
            else:
                self._confirm_reset = True

    def update(self) -> None:
        return

    def render(self, surface: pygame.Surface) -> None:
        content = _frame(surface, self._fonts, "Progress", "A: AI analysis  |  R twice: Reset  |  Esc: Back")
        stats = self._app.ctx.arena.stats
        summary = f"XP {stats.xp}   Coins {stats.coins}   Answers {stats.games_played}   Accuracy {stats.accuracy_pct}%"
        surface.blit(self._fonts["mid"].render(summary, True, GOLD), (content.x, content.y))

        y = content.y + 50
        bar_max = content.w // 2
        for topic, ts in stats.topic_performance.items():
            pct = ts.accuracy_pct
            color = GOOD if pct > 80 else GOLD if pct > 50 else BAD
            surface.blit(self._fonts["small"].render(topic.label, True, TEXT), (content.x, y))
            bar = pygame.Rect(content.x + 170, y, max(2, bar_max * pct // 100), 20)
            pygame.draw.rect(surface, color, bar, border_radius=4)
            label = self._fonts["small"].render(f"{pct}%  ({ts.correct}/{ts.total})", True, MUTED)
            surface.blit(label, (content.x + 180 + bar_max, y))
            y += 32

        if self._confirm_reset:
            surface.blit(self._fonts["small"].render("Press R again to erase all progress.", True, BAD), (content.x, y + 10))
        if self._analysis is not None:
            text = _future_text(self._analysis) or "Analyzing..."
            for line in _wrap(self._fonts["small"], text, content.w)[:5]:
                y += 28
                surface.blit(self._fonts["small"].render(line, True, TEXT), (content.x, y + 20))


class TutorScreen:
    def __init__(self, app: App) -> None:
        self._app = app
        self._fonts = _fonts()
        self._input = ""
        self._pending: Future[str] | None = None

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key == pygame.K_ESCAPE:
            self._app.pop()
        elif event.key == pygame.K_F2:
            if self._pending is None or self._pending.done():
                self._app.ctx.tutor.reset()
                self._pending = None
        elif event.key == pygame.K_BACKSPACE:
            self._input = self._input[:-1]
        elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            if self._input.strip() and (self._pending is None or self._pending.done()):
                ctx = self._app.ctx
                self._pending = ctx.jobs.submit(ctx.tutor.send, self._input)
                self._input = ""
        elif event.unicode and event.unicode.isprintable():
            self._input += event.unicode

    def update(self) -> None:
        return

    def render(self, surface: pygame.Surface) -> None:
        content = _frame(surface, self._fonts, "Numbery - AI Tutor", "Type and press Enter  |  F2: New chat  |  Esc: Back")
        lines: list[tuple[str, tuple[int, int, int]]] = []
        for turn in self._app.ctx.tutor.history:
            color = ACCENT if turn.role == "user" else TEXT
            prefix = "You: " if turn.role == "user" else "Numbery: "
            for line in _wrap(self._fonts["small"], prefix + turn.text, content.w):
                lines.append((line, color))
        if self._pending is not None and not self._pending.done():
            lines.append(("Numbery is typing...", MUTED))

        visible = max(1, (content.h - 50) // 26)
        y = content.y
        for line, color in lines[-visible:]:
            surface.blit(self._fonts["small"].render(line, True, color), (content.x, y))
            y += 26

        entry = pygame.Rect(content.x, content.bottom - 36, content.w, 34)
        pygame.draw.rect(surface, PANEL, entry, border_radius=6)
        pygame.draw.rect(surface, PANEL_EDGE, entry, 1, border_radius=6)
        surface.blit(self._fonts["small"].render(self._input, True, TEXT), (entry.x + 10, entry.y + 8))


class SettingsScreen:
    """API key entry. The key is only stored after the oracle accepts it."""

    def __init__(self, app: App) -> None:
        self._app = app
        self._fonts = _fonts()
        self._input = ""
        self._validation: Future[bool] | None = None
        self._status = "idle"

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        keys = self._app.ctx.keys
        if event.key == pygame.K_ESCAPE:
            self._app.pop()
        elif event.key == pygame.K_DELETE:
            keys.clear()
            self._status = "cleared"
        elif event.key == pygame.K_BACKSPACE:
            self._input = self._input[:-1]
        elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            if self._input.strip() and self._status != "validating":
                self._validation = self._app.ctx.jobs.submit(keys.validate_and_store, self._input)
                self._status = "validating"
        elif event.unicode and event.unicode.isprintable():
            self._input += event.unicode

    def update(self) -> None:
        if self._validation is not None and self._validation.done():
            ok = self._validation.result()
            self._validation = None
            self._status = "valid" if ok else "invalid"
            if ok:
                self._input = ""

    def render(self, surface: pygame.Surface) -> None:
        content = _frame(surface, self._fonts, "Settings", "Enter: Save key  |  Del: Remove key  |  Esc: Back")
        keys = self._app.ctx.keys
        state = "A key is saved." if keys.has_stored_key() else "No key saved - local problems only."
        surface.blit(self._fonts["mid"].render(state, True, TEXT), (content.x, content.y))

        entry = pygame.Rect(content.x, content.y + 60, content.w, 40)
        pygame.draw.rect(surface, PANEL, entry, border_radius=6)
        edge = BAD if self._status == "invalid" else GOOD if self._status == "valid" else PANEL_EDGE
        pygame.draw.rect(surface, edge, entry, 2, border_radius=6)
        masked = "*" * len(self._input)
        surface.blit(self._fonts["mid"].render(masked, True, TEXT), (entry.x + 10, entry.y + 8))

        messages = {
            "validating": ("Checking key...", MUTED),
            "valid": ("Key saved.", GOOD),
            "invalid": ("Incorrect key.", BAD),
            "cleared": ("Key removed.", MUTED),
        }
        if self._status in messages:
            text, color = messages[self._status]
            surface.blit(self._fonts["small"].render(text, True, color), (content.x, entry.bottom + 12))


class LabScreen:
    """Number Lab: sliders on the left, the picture on the right."""

    def __init__(self, app: App) -> None:
        self._app = app
        self._fonts = _fonts()
        self._lab = NumberLab()

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key == pygame.K_ESCAPE:
            self._app.pop()
        elif event.key == pygame.K_TAB:
            self._lab.switch_tool()
        elif event.key in (pygame.K_UP, pygame.K_DOWN):
            self._lab.select(-1 if event.key == pygame.K_UP else 1)
        elif event.key in (pygame.K_LEFT, pygame.K_RIGHT):
            self._lab.adjust(-1 if event.key == pygame.K_LEFT else 1)

    def update(self) -> None:
        return

    def render(self, surface: pygame.Surface) -> None:
        lab = self._lab
        title = "Number Lab - Multiplication" if lab.tool is LabTool.MULTIPLICATION else "Number Lab - Fractions"
        content = _frame(
            surface, self._fonts, title, "Tab: Switch tool  |  Up/Down: Pick  |  Left/Right: Adjust  |  Esc: Back"
        )
        left = pygame.Rect(content.x, content.y, content.w // 2 - 12, content.h)
        right = pygame.Rect(content.centerx + 12, content.y, content.w // 2 - 12, content.h)

        y = left.y
        for idx, (label, value) in enumerate(lab.sliders()):
            color = ACCENT if idx == lab.slider else TEXT
            surface.blit(self._fonts["mid"].render(f"{label}: {value}", True, color), (left.x, y))
            y += 48

        if lab.tool is LabTool.MULTIPLICATION:
            eq = self._fonts["title"].render(lab.grid.equation, True, GOLD)
            surface.blit(eq, eq.get_rect(midleft=(left.x, left.centery + 40)))
            self._render_grid(surface, right)
        else:
            frac = lab.fraction
            text = f"{frac.numerator}/{frac.denominator} = {frac.decimal}"
            eq = self._fonts["title"].render(text, True, GOLD)
            surface.blit(eq, eq.get_rect(midleft=(left.x, left.centery + 40)))
            self._render_fraction(surface, right)

    def _render_grid(self, surface: pygame.Surface, area: pygame.Rect) -> None:
        grid = self._lab.grid
        gap = 4
        cell = max(6, min((area.w - gap * grid.cols) // grid.cols, (area.h - gap * grid.rows) // grid.rows))
        width = grid.cols * (cell + gap) - gap
        height = grid.rows * (cell + gap) - gap
        x0 = area.centerx - width // 2
        y0 = area.centery - height // 2
        for r in range(grid.rows):
            for c in range(grid.cols):
                block = pygame.Rect(x0 + c * (cell + gap), y0 + r * (cell + gap), cell, cell)
                pygame.draw.rect(surface, GOLD, block, border_radius=4)

    def _render_fraction(self, surface: pygame.Surface, area: pygame.Rect) -> None:
        frac = self._lab.fraction
        bar = pygame.Rect(area.x, area.centery - 30, area.w, 60)
        seg = bar.w / frac.denominator
        for i in range(frac.denominator):
            piece = pygame.Rect(int(bar.x + i * seg), bar.y, max(1, int(seg) - 2), bar.h)
            pygame.draw.rect(surface, PINK if i < frac.part else SLATE, piece, border_radius=4)
        legend = f"Part {frac.part}   Rest {frac.rest}"
        surface.blit(self._fonts["small"].render(legend, True, MUTED), (bar.x, bar.bottom + 12))


def run(
    *,
    max_frames: int | None = None,
    event_injector: Callable[[int], None] | None = None,
    config: AppConfig | None = None,
) -> int:
    cfg = config or AppConfig.from_env()
    logging.basicConfig(level=getattr(logging, cfg.log_level, logging.WARNING))

    pygame.init()
    pygame.display.set_caption(f"Misparia {__version__}")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)
    clock = pygame.time.Clock()

    ctx = AppContext(cfg)
    logger.info("store at %s, oracle %s", cfg.db_path, "configured" if ctx.oracle.configured else "off")
    app = App(surface, ctx)

    def open_game(mode: GameMode) -> Callable[[], None]:
        return lambda: app.push(GameScreen(app, mode))

    games_menu = MenuScreen(
        app,
        "Mission Control",
        [
            MenuItem("Mission Setup", lambda: app.push(MissionSetupScreen(app))),
            *[MenuItem(MODE_TITLES[mode], open_game(mode)) for mode in GameMode],
            MenuItem("Back", app.pop),
        ],
    )

    main_items = [
        MenuItem("Play", lambda: app.push(games_menu)),
        MenuItem("AI Tutor", lambda: app.push(TutorScreen(app))),
        MenuItem("Progress", lambda: app.push(ProgressScreen(app))),
        MenuItem("Settings", lambda: app.push(SettingsScreen(app))),
        MenuItem("Number Lab", lambda: app.push(LabScreen(app))),
        MenuItem("Quit", app.quit),
    ]
    app.push(MenuScreen(app, "Misparia", main_items, is_root=True))

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.update()
            app.render()
            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        ctx.close()
        pygame.quit()

    return 0
