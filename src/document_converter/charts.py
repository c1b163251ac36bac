"""Embedding opaque chart images produced by an external renderer."""

from __future__ import annotations

from html import escape
from typing import Any, Mapping, Protocol

from .errors import MalformedMarkup
from .images import sniff_image_type, to_data_uri

CHART_MIME_TYPES = frozenset({"image/png", "image/jpeg", "image/gif"})


class ChartRenderer(Protocol):
    def render(self, spec: Mapping[str, Any]) -> bytes:  # pragma: no cover - interface
        ...


def chart_figure(image: bytes, alt: str, caption: str | None = None) -> str:
    mime = sniff_image_type(image)
    if mime not in CHART_MIME_TYPES:
        raise MalformedMarkup("Chart renderer returned bytes that are not PNG, JPEG or GIF")
    caption_html = f"<figcaption>{escape(caption)}</figcaption>" if caption else ""
    return (
        f'<figure class="chart"><img src="{to_data_uri(image, mime)}" alt="{escape(alt, quote=True)}">'
        f"{caption_html}</figure>"
    )


def embed_chart(
    html: str,
    renderer: ChartRenderer,
    spec: Mapping[str, Any],
    alt: str,
    caption: str | None = None,
) -> str:
    """Render *spec* and place the image before ``</body>``, or at the end of a fragment."""

    figure = chart_figure(renderer.render(spec), alt, caption)
    lowered = html.lower()
    position = lowered.rfind("</body>")
    if position == -1:
        separator = "" if not html or html.endswith("\n") else "\n"
        return f"{html}{separator}{figure}\n"
    return f"{html[:position]}{figure}\n{html[position:]}"


__all__ = ["CHART_MIME_TYPES", "ChartRenderer", "chart_figure", "embed_chart"]
