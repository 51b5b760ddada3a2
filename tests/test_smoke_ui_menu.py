from __future__ import annotations

import os
from pathlib import Path


def _key(key: int) -> None:
    import pygame

    pygame.event.post(pygame.event.Event(pygame.KEYDOWN, {"key": key, "unicode": ""}))


def test_ui_smoke_open_altitude_game_click_and_quit(tmp_path: Path) -> None:
    # Headless SDL for CI.
    os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
    os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

    import pygame

    from geometry_trainer.app import run

    def inject(frame: int) -> None:
        # Main Menu -> Altitude -> Easy -> click + key pick -> hint marks -> Esc back to menu
        if frame == 1:
            _key(pygame.K_RETURN)
        elif frame == 2:
            _key(pygame.K_RETURN)
        elif frame == 4:
            pygame.event.post(pygame.event.Event(pygame.MOUSEBUTTONDOWN, {"button": 1, "pos": (480, 270)}))
        elif frame == 5:
            _key(pygame.K_2)
        elif frame == 6:
            _key(pygame.K_h)
        elif frame == 7:
            _key(pygame.K_ESCAPE)

    progress_path = tmp_path / "progress.json"
    assert run(max_frames=12, event_injector=inject, progress_path=progress_path) == 0
    # Aborted sessions are not recorded.
    assert not progress_path.exists()


def test_ui_smoke_locked_game_and_quit(tmp_path: Path) -> None:
    os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
    os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

    import pygame

    from geometry_trainer.app import run

    def inject(frame: int) -> None:
        # Median is locked on a fresh profile; Enter on it is a no-op, then Esc quits.
        if frame == 1:
            _key(pygame.K_DOWN)
        elif frame == 2:
            _key(pygame.K_RETURN)
        elif frame == 3:
            _key(pygame.K_ESCAPE)

    assert run(max_frames=50, event_injector=inject, progress_path=tmp_path / "progress.json") == 0
