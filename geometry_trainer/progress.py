from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .results import score_percentage

logger = logging.getLogger(__name__)

PROGRESS_STORE_ENV = "GEOMETRY_TRAINER_PROGRESS_PATH"

# Unlock order: a game opens once its predecessor has been completed.
GAME_ORDER: tuple[str, ...] = ("altitude", "median", "angle_bisector")

# (minimum total stars, title), checked top-down.
PROGRESS_LEVELS: tuple[tuple[int, str], ...] = (
    (15, "Geometry Master"),
    (10, "Shape Expert"),
    (5, "Advanced Explorer"),
    (0, "Eager Beginner"),
)


@dataclass(slots=True)
class GameProgress:
    completed: bool = False
    best_score: int = 0  # percentage
    stars: int = 0
    attempts: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "completed": bool(self.completed),
            "best_score": int(self.best_score),
            "stars": int(self.stars),
            "attempts": int(self.attempts),
        }

    @classmethod
    def from_dict(cls, data: object) -> "GameProgress":
        if not isinstance(data, dict):
            return cls()
        return cls(
            completed=bool(data.get("completed", False)),
            best_score=max(0, min(100, _as_int(data.get("best_score"), 0))),
            stars=max(0, min(3, _as_int(data.get("stars"), 0))),
            attempts=max(0, _as_int(data.get("attempts"), 0)),
        )


@dataclass(frozen=True, slots=True)
class ProgressSummary:
    total_games_completed: int
    total_stars: int
    average_score: float
    level: str


def _as_int(value: object, fallback: int) -> int:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return fallback


def progress_level(total_stars: int) -> str:
    for min_stars, title in PROGRESS_LEVELS:
        if total_stars >= min_stars:
            return title
    return PROGRESS_LEVELS[-1][1]


class ProgressStore:
    """Per-game progress persisted as a small JSON document.

    The file is read once when the store is created and rewritten whole on
    every change. Missing or unreadable files start from fresh defaults;
    write failures are logged and never raised into a running session.
    """

    _version = 1

    def __init__(self, path: Path, *, game_order: tuple[str, ...] = GAME_ORDER) -> None:
        if not game_order:
            raise ValueError("game_order must name at least one game")
        self._path = path
        self._game_order = tuple(game_order)
        self._games: dict[str, GameProgress] = {}
        self._reset_in_memory()
        self._load()

    @classmethod
    def default_path(cls) -> Path:
        explicit = os.environ.get(PROGRESS_STORE_ENV)
        if explicit:
            return Path(explicit).expanduser()
        return Path.home() / ".geometry_trainer_progress.json"

    @property
    def path(self) -> Path:
        return self._path

    @property
    def game_order(self) -> tuple[str, ...]:
        return self._game_order

    def _reset_in_memory(self) -> None:
        self._games = {game_id: GameProgress() for game_id in self._game_order}

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("progress file %s unreadable (%s); starting fresh", self._path, exc)
            return
        if not isinstance(payload, dict):
            logger.warning("progress file %s has unexpected shape; starting fresh", self._path)
            return

        raw_games = payload.get("games")
        if not isinstance(raw_games, dict):
            return
        for game_id, raw in raw_games.items():
            self._games[str(game_id)] = GameProgress.from_dict(raw)

    def save(self) -> None:
        payload = {
            "version": self._version,
            "games": {game_id: progress.to_dict() for game_id, progress in self._games.items()},
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(f"{self._path.suffix}.tmp")
            tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            tmp_path.replace(self._path)
        except OSError as exc:
            logger.warning("could not write progress file %s: %s", self._path, exc)

    def game(self, game_id: str) -> GameProgress:
        found = self._games.get(game_id)
        return GameProgress() if found is None else GameProgress.from_dict(found.to_dict())

    def record_result(self, game_id: str, *, score: int, total_rounds: int, stars: int) -> GameProgress:
        current = self._games.get(game_id) or GameProgress()
        updated = GameProgress(
            completed=True,
            best_score=max(current.best_score, score_percentage(score, total_rounds)),
            stars=max(current.stars, max(0, min(3, int(stars)))),
            attempts=current.attempts + 1,
        )
        self._games[game_id] = updated
        self.save()
        logger.info("recorded %s: %d/%d, %d stars", game_id, score, total_rounds, stars)
        return self.game(game_id)

    def is_unlocked(self, game_id: str) -> bool:
        """First game always; later ones once their predecessor is completed.

        Ids outside the unlock chain are never gated.
        """
        if game_id not in self._game_order:
            return True
        idx = self._game_order.index(game_id)
        if idx == 0:
            return True
        previous = self._games.get(self._game_order[idx - 1])
        return previous is not None and previous.completed

    def summary(self) -> ProgressSummary:
        games = list(self._games.values())
        total_stars = sum(g.stars for g in games)
        average = 0.0 if not games else sum(g.best_score for g in games) / len(games)
        return ProgressSummary(
            total_games_completed=sum(1 for g in games if g.completed),
            total_stars=total_stars,
            average_score=average,
            level=progress_level(total_stars),
        )

    def reset(self) -> None:
        self._reset_in_memory()
        self.save()
