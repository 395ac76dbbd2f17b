"""Misparia: arithmetic mini-games for children.

Deterministic game logic (timers, scoring, problem synthesis, stats) lives in
the core modules and never touches pygame; ``misparia.app`` is the UI shell.
"""

__version__ = "0.3.0"
