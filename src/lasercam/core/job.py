"""Job orchestrator: ties layers + items + platform together.

The Job class is the top-level entry point for the CLI.  Each export runs
one pipeline from scratch; nothing is cached between calls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..config.defaults import DEFAULT_PLATFORM_HEIGHT, DEFAULT_PLATFORM_WIDTH
from ..gcode.engrave_post import EngravePostProcessor
from ..gcode.scan_post import ScanPostProcessor
from .items import DrawableItem
from .layer import EngraveSettings, Layer, PrintingMethod, ScanSettings
from .scene import Scene, load_scene

logger = logging.getLogger(__name__)


@dataclass
class Job:
    """A complete export job: layers, their items and the machine platform."""

    layers: list[Layer] = field(default_factory=list)
    items: list[DrawableItem] = field(default_factory=list)
    canvas_width: float = DEFAULT_PLATFORM_WIDTH
    canvas_height: float = DEFAULT_PLATFORM_HEIGHT
    platform_width: float = DEFAULT_PLATFORM_WIDTH
    platform_height: float = DEFAULT_PLATFORM_HEIGHT

    @classmethod
    def from_scene(cls, scene: Scene) -> Job:
        return cls(
            layers=list(scene.layers),
            items=list(scene.items),
            canvas_width=scene.canvas_width,
            canvas_height=scene.canvas_height,
            platform_width=scene.platform_width,
            platform_height=scene.platform_height,
        )

    @classmethod
    def load(cls, path: Path, platform_size: Optional[tuple[float, float]] = None) -> Job:
        return cls.from_scene(load_scene(path, platform_size))

    def get_layer(self, layer_id: str) -> Layer:
        for layer in self.layers:
            if layer.id == layer_id:
                return layer
        raise KeyError(f"No layer with id {layer_id!r}")

    def export_layer_lines(
        self,
        layer_id: str,
        scan_settings: Optional[ScanSettings] = None,
        engrave_settings: Optional[EngraveSettings] = None,
    ) -> list[str]:
        """Run the pipeline matching the layer's printing method.

        Raises
        ------
        KeyError:
            If *layer_id* is unknown.
        EmptyLayerError:
            If the layer has nothing to process.
        ImageLoadError:
            If a scan layer image cannot be decoded.
        """
        layer = self.get_layer(layer_id)
        if layer.printing_method is PrintingMethod.SCAN:
            settings = scan_settings or ScanSettings.from_layer(layer)
            post = ScanPostProcessor(
                layer,
                settings,
                self.platform_width,
                self.platform_height,
                self.canvas_width,
                self.canvas_height,
            )
        else:
            eng = engrave_settings or EngraveSettings.from_layer(layer)
            post = EngravePostProcessor(layer, eng)

        logger.info("Exporting layer '%s' (%s)", layer.name, layer.printing_method.value)
        return post.get_lines(self.items)

    def export_layer(
        self,
        layer_id: str,
        scan_settings: Optional[ScanSettings] = None,
        engrave_settings: Optional[EngraveSettings] = None,
    ) -> str:
        """The layer's program as one newline-joined string."""
        return "\n".join(self.export_layer_lines(layer_id, scan_settings, engrave_settings))

    def export_all(
        self,
        scan_settings: Optional[ScanSettings] = None,
        engrave_settings: Optional[EngraveSettings] = None,
    ) -> dict[str, str]:
        """Export every visible layer, keyed by layer id.

        Explicit settings apply only to layers of the matching method.
        """
        return {
            layer.id: self.export_layer(layer.id, scan_settings, engrave_settings)
            for layer in self.layers
            if layer.is_visible
        }
