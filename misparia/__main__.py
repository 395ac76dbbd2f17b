from __future__ import annotations

import sys
from pathlib import Path


def _add_project_root() -> None:
    """Make ``misparia`` importable when this file is run as a plain script."""
    root = str(Path(__file__).resolve().parent.parent)
    if root not in sys.path:
        sys.path.insert(0, root)


try:
    # python -m misparia
    from .app import run
except ImportError:
    # python misparia/__main__.py
    _add_project_root()
    from misparia.app import run


def main() -> int:
    """Launch the game window."""
    return run()


if __name__ == "__main__":
    raise SystemExit(main())
