"""Backend protocol for page rendering."""

from __future__ import annotations

from typing import Any, Protocol


class RenderDocument(Protocol):
    """A document opened by a render backend."""

    def render_page(self, index: int, scale: float) -> Any:
        """Render zero-based page ``index`` and return a ``PIL.Image.Image``."""

    def close(self) -> None:
        """Release backend resources held for the document."""


class RenderBackend(Protocol):
    """Protocol defining the operations needed to rasterize pages."""

    name: str

    def load(self, data: bytes, password: str | None = None) -> RenderDocument:
        """Open ``data`` and return a renderable document."""
