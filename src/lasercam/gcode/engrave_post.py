"""Engrave-layer program assembly."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from ..core.errors import EmptyLayerError
from ..core.items import DrawableItem
from ..core.layer import EngraveSettings, Layer, PrintingMethod
from ..core.toolpath.vector import VectorPathEmitter
from .gcode_writer import comment, fmt

logger = logging.getLogger(__name__)


class EngravePostProcessor:
    """Generate an outline-tracing program for one layer.

    With ``passes > 1`` the body is repeated, one commented block per pass.
    """

    def __init__(self, layer: Layer, settings: EngraveSettings):
        self.layer = layer
        self.settings = settings

    def layer_items(self, items: Sequence[DrawableItem]) -> list[DrawableItem]:
        return [it for it in items if it.layer_id == self.layer.id]

    def _body(self, layer_items: list[DrawableItem]) -> tuple[list[str], int]:
        emitter = VectorPathEmitter(self.settings)
        body: list[str] = []
        supported = 0
        for item in layer_items:
            paths = emitter.item_lines(item)
            if not paths:
                continue
            body.append(comment(f"Object: {item.type_name} at ({fmt(item.x)}, {fmt(item.y)})"))
            body.extend(paths)
            body.append("")
            # Comment-only output (text, bitmaps) does not count as engravable
            if any(not line.startswith(";") for line in paths):
                supported += 1
        return body, supported

    def get_lines(self, items: Sequence[DrawableItem]) -> list[str]:
        """Return the full program as a list of lines.

        Raises
        ------
        EmptyLayerError:
            If no item belongs to the layer.
        """
        if self.layer.printing_method is not PrintingMethod.ENGRAVE:
            raise ValueError(f"Layer '{self.layer.name}' is not an engrave layer")
        layer_items = self.layer_items(items)
        if not layer_items:
            raise EmptyLayerError(self.layer.name)

        s = self.settings
        body, supported = self._body(layer_items)

        lines = [
            comment(f"Engrave layer: {self.layer.name}"),
            comment(f"Total objects: {len(layer_items)}, engravable objects: {supported}"),
            "G21 ; Set units to mm",
            "G90 ; Use absolute positioning",
            f"G0 X0 Y0 F{fmt(s.travel_speed, 1)} ; Move to origin",
            "",
        ]
        if s.passes == 1:
            lines += body
        else:
            for n in range(1, s.passes + 1):
                lines.append(comment(f"Pass {n} of {s.passes}"))
                lines += body
        lines += [
            "M5 ; Ensure laser is off",
            "G0 X0 Y0 ; Return to origin",
            "M30 ; Program end",
        ]
        logger.info(
            "Engrave layer '%s': %d/%d objects engravable, %d pass(es)",
            self.layer.name, supported, len(layer_items), s.passes,
        )
        return lines

    def generate(self, items: Sequence[DrawableItem], output_path: Path) -> Path:
        """Write the program to *output_path*."""
        output_path = Path(output_path)
        lines = self.get_lines(items)
        output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return output_path
