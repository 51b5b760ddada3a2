from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

LOG_LEVEL_ENV = "GEOMETRY_TRAINER_LOG_LEVEL"


def _ensure_repo_root_on_path() -> None:
    """Ensure the repository root (parent of this package) is on ``sys.path``.

    Running ``python geometry_trainer/__main__.py`` directly leaves the
    package undiscoverable; inserting its parent directory fixes that.
    """
    repo_root = str(Path(__file__).resolve().parent.parent)
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)


try:
    # python -m geometry_trainer
    from .app import run  # type: ignore[attr-defined]
except ImportError:
    # Executed as a plain script.
    _ensure_repo_root_on_path()
    from geometry_trainer.app import run  # type: ignore[attr-defined]


def _configure_logging() -> None:
    name = os.environ.get(LOG_LEVEL_ENV, "WARNING").strip().upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main() -> int:
    """Entry point for running the trainer from the command line."""
    _configure_logging()
    return run()


if __name__ == "__main__":
    raise SystemExit(main())
