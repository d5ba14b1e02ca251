"""Application preferences (persisted to disk)."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path

from .defaults import (
    DEFAULT_BURN_SPEED,
    DEFAULT_ENGRAVE_FEED,
    DEFAULT_ENGRAVE_TRAVEL,
    DEFAULT_PLATFORM_HEIGHT,
    DEFAULT_PLATFORM_WIDTH,
    DEFAULT_SCAN_TRAVEL,
)


@dataclass
class AppSettings:
    """User preferences, serialized to ~/.lasercam/settings.json.

    The platform size is used for scenes that do not declare one; the
    speeds and flip_y fill in options left off the command line.
    """

    platform_width: float = DEFAULT_PLATFORM_WIDTH
    platform_height: float = DEFAULT_PLATFORM_HEIGHT
    burn_speed: float = DEFAULT_BURN_SPEED
    scan_travel_speed: float = DEFAULT_SCAN_TRAVEL
    engrave_feed_rate: float = DEFAULT_ENGRAVE_FEED
    engrave_travel_speed: float = DEFAULT_ENGRAVE_TRAVEL
    flip_y: bool = False

    @staticmethod
    def _path() -> Path:
        return Path.home() / ".lasercam" / "settings.json"

    def save(self) -> None:
        p = self._path()
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(asdict(self), indent=2))

    @classmethod
    def load(cls) -> "AppSettings":
        p = cls._path()
        if p.exists():
            data = json.loads(p.read_text())
            return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})
        return cls()
