"""Export failures.

Every failure is scoped to a single export call and surfaces to the caller
as one of these exceptions; nothing is retried.
"""

from __future__ import annotations


class ExportError(RuntimeError):
    """Base class for a rejected layer export."""


class EmptyLayerError(ExportError):
    """The layer holds no item the selected pipeline can process."""

    def __init__(self, layer_name: str, reason: str = "no drawable items"):
        super().__init__(f"Layer '{layer_name}' has {reason}")
        self.layer_name = layer_name


class ImageLoadError(ExportError):
    """An image on a scan layer could not be loaded or decoded."""

    def __init__(self, source: str, cause: Exception | None = None):
        msg = f"Could not load image: {source}"
        if cause is not None:
            msg += f" ({cause})"
        super().__init__(msg)
        self.source = source
