"""Flatten groups and embedded vector sources into placed primitives.

Expansion walks an explicit work stack rather than recursing, so a deeply
nested imported document cannot exhaust the interpreter stack.  Containers
(groups, and images whose vector source is expanded) are yielded before
their children; ``depth`` tells consumers where a container's subtree ends.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator

from .items import DrawableItem, Group, RasterImage
from .transform import rotate_point

logger = logging.getLogger(__name__)

MAX_DEPTH = 64


@dataclass(frozen=True)
class Placement:
    """An item with its composed canvas position, rotation and scale."""
    item: DrawableItem
    x: float
    y: float
    rotation: float
    scale: float = 1.0
    depth: int = 0
    is_container: bool = False


def _is_container(item: DrawableItem, expand_vector_sources: bool) -> bool:
    if isinstance(item, Group):
        return True
    return expand_vector_sources and isinstance(item, RasterImage) and item.has_vector_source


def vector_source_scale(image: RasterImage) -> float:
    """Aspect-locked scale from the source document to the displayed image."""
    src = image.vector_source
    if src is None or src.original_width <= 0 or src.original_height <= 0:
        return 1.0
    return min(image.width / src.original_width, image.height / src.original_height)


def _children(p: Placement, expand_vector_sources: bool) -> list[Placement]:
    item = p.item
    if not p.is_container:
        return []
    if isinstance(item, Group):
        kids = item.children
        scale = p.scale
    else:
        kids = item.vector_source.items
        scale = p.scale * vector_source_scale(item)

    out = []
    for child in kids:
        cx, cy = rotate_point(
            p.x + child.x * scale, p.y + child.y * scale, p.x, p.y, p.rotation,
        )
        out.append(Placement(
            child, cx, cy, p.rotation + child.rotation, scale, p.depth + 1,
            _is_container(child, expand_vector_sources),
        ))
    return out


def expand_items(
    items: Iterable[DrawableItem],
    expand_vector_sources: bool = True,
) -> Iterator[Placement]:
    """Yield every item and nested child in document (pre-)order.

    Parameters
    ----------
    items:
        Top-level items, already filtered to one layer.
    expand_vector_sources:
        When False, images are leaves even if they carry vector geometry
        (the raster pipeline paints the bitmap instead).

    Raises
    ------
    ValueError:
        If nesting exceeds ``MAX_DEPTH`` levels.
    """
    stack = [
        Placement(it, it.x, it.y, it.rotation,
                  is_container=_is_container(it, expand_vector_sources))
        for it in reversed(list(items))
    ]
    while stack:
        p = stack.pop()
        if p.depth > MAX_DEPTH:
            raise ValueError(f"Item nesting deeper than {MAX_DEPTH} levels")
        yield p
        # Reversed so the first child is popped first
        stack.extend(reversed(_children(p, expand_vector_sources)))


def leaf_placements(
    items: Iterable[DrawableItem],
    expand_vector_sources: bool = True,
) -> list[Placement]:
    """Only the placements that carry their own geometry or bitmap."""
    return [p for p in expand_items(items, expand_vector_sources) if not p.is_container]
