"""Scene files: layers, items and canvas/platform sizes as JSON.

Example::

    {
      "canvas": {"width": 400, "height": 300},
      "platform": {"width": 400, "height": 400},
      "layers": [{"id": "l1", "name": "Cut", "printingMethod": "engrave"}],
      "items": [{"type": "CIRCLE", "x": 50, "y": 50, "layerId": "l1",
                 "parameters": {"radius": 20}}]
    }
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..config.defaults import DEFAULT_PLATFORM_HEIGHT, DEFAULT_PLATFORM_WIDTH
from .items import DrawableItem, Group, RasterImage, item_from_dict, item_to_dict
from .layer import Layer

logger = logging.getLogger(__name__)


@dataclass
class Scene:
    """Everything the exporter needs from the design tool."""

    layers: list[Layer] = field(default_factory=list)
    items: list[DrawableItem] = field(default_factory=list)
    canvas_width: float = DEFAULT_PLATFORM_WIDTH
    canvas_height: float = DEFAULT_PLATFORM_HEIGHT
    platform_width: float = DEFAULT_PLATFORM_WIDTH
    platform_height: float = DEFAULT_PLATFORM_HEIGHT

    def layer(self, layer_id: str) -> Layer:
        for layer in self.layers:
            if layer.id == layer_id:
                return layer
        raise KeyError(f"No layer with id {layer_id!r}")

    @classmethod
    def from_dict(
        cls,
        d: dict,
        platform_width: float = DEFAULT_PLATFORM_WIDTH,
        platform_height: float = DEFAULT_PLATFORM_HEIGHT,
    ) -> Scene:
        """Build a scene; the platform arguments apply when *d* has none."""
        platform = d.get("platform") or {}
        pw = float(platform.get("width", platform_width))
        ph = float(platform.get("height", platform_height))
        canvas = d.get("canvas") or {}
        return cls(
            layers=[Layer.from_dict(l) for l in d.get("layers", [])],
            items=[item_from_dict(i) for i in d.get("items", [])],
            canvas_width=float(canvas.get("width", pw)),
            canvas_height=float(canvas.get("height", ph)),
            platform_width=pw,
            platform_height=ph,
        )

    def to_dict(self) -> dict:
        return {
            "canvas": {"width": self.canvas_width, "height": self.canvas_height},
            "platform": {"width": self.platform_width, "height": self.platform_height},
            "layers": [
                {
                    "id": l.id,
                    "name": l.name,
                    "printingMethod": l.printing_method.value,
                    "isVisible": l.is_visible,
                    "lineDensity": l.line_density,
                    "halftone": l.halftone,
                    "reverseMovementOffset": l.reverse_movement_offset,
                    "power": l.power,
                }
                for l in self.layers
            ],
            "items": [item_to_dict(i) for i in self.items],
        }


def load_scene(path: Path, platform_size: Optional[tuple[float, float]] = None) -> Scene:
    """Load a scene from a JSON file.

    Relative image paths are resolved against the scene file's directory.
    *platform_size* fills in a platform the file does not declare.

    Raises FileNotFoundError or ValueError on failure.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Scene file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Malformed scene file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Scene file {path} must contain a JSON object")

    scene = Scene.from_dict(data, *platform_size) if platform_size else Scene.from_dict(data)
    _resolve_image_paths(scene.items, path.parent)
    logger.info(
        "Loaded scene %s: %d layer(s), %d item(s)",
        path.name, len(scene.layers), len(scene.items),
    )
    return scene


def _resolve_image_paths(items: list[DrawableItem], base: Path) -> None:
    stack = list(items)
    while stack:
        item = stack.pop()
        if isinstance(item, Group):
            stack.extend(item.children)
        elif isinstance(item, RasterImage):
            href = item.href
            if isinstance(href, str) and href and not href.startswith("data:"):
                p = Path(href)
                if not p.is_absolute():
                    item.href = str(base / p)
            if item.vector_source is not None:
                stack.extend(item.vector_source.items)
