"""Fixed-layout (PDF) output through pluggable typesetters, input through a preview collaborator."""

from __future__ import annotations

import importlib.util
import io
import re
import tempfile
import textwrap
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from pathlib import Path
from typing import Protocol
from xml.sax.saxutils import escape as xml_escape

from bs4 import NavigableString, Tag

from .errors import InvalidContainer
from .images import from_data_uri, image_size
from .models import ConversionOptions, ConversionWarning, DegradedRendering, PartialExtraction
from .transcoder import (
    BLOCK_TAGS,
    HEADING_LEVELS,
    SKIPPED_STRINGS,
    WHITESPACE_RE,
    MarkupTranscoder,
    document_title,
    parse_html,
)
from .utils import normalize_newlines

PDF_SIGNATURE = b"%PDF-"
PDF_TRAILER = b"%%EOF"
DEFAULT_TITLE = "Document"
DEFAULT_PREVIEW_TIMEOUT_S = 30.0
MARKUP_START_RE = re.compile(r"^\s*<(?:!doctype|html|head|body|[a-z][a-z0-9]*[\s>/])", re.IGNORECASE)

PAGE_SIZES: dict[str, tuple[float, float]] = {
    "a4": (595.28, 841.89),
    "letter": (612.0, 792.0),
    "legal": (612.0, 1008.0),
}

BACKENDS = ("auto", "reportlab", "placeholder")


def page_dimensions(name: str) -> tuple[float, float]:
    try:
        return PAGE_SIZES[name.strip().lower()]
    except KeyError as exc:
        raise ValueError(f"Unknown page size {name!r}; expected one of {sorted(PAGE_SIZES)}") from exc


def ensure_trailer(data: bytes) -> bytes:
    """Guarantee the document ends with exactly ``%%EOF\\n``."""

    position = data.rfind(PDF_TRAILER)
    if position == -1 or data[position + len(PDF_TRAILER) :].strip():
        return data.rstrip(b"\r\n") + b"\n" + PDF_TRAILER + b"\n"
    return data[: position + len(PDF_TRAILER)] + b"\n"


class Typesetter(Protocol):
    name: str
    degraded: bool

    def render(self, html: str, title: str, options: ConversionOptions) -> bytes:  # pragma: no cover - interface
        ...


class PlaceholderTypesetter:
    """Single-page PDF 1.4 carrying the title and as many body lines as fit."""

    name = "placeholder"
    degraded = True

    font_size = 11
    title_size = 18
    leading = 14
    margin = 72
    wrap_width = 90

    def __init__(self, page_size: str = "A4", transcoder: MarkupTranscoder | None = None) -> None:
        self._width, self._height = page_dimensions(page_size)
        self._transcoder = transcoder or MarkupTranscoder()

    def body_lines(self, html: str) -> list[str]:
        text = self._transcoder.hyper_to_text(html, ConversionOptions(preserve_formatting=True))
        lines: list[str] = []
        for paragraph in text.split("\n"):
            wrapped = textwrap.wrap(paragraph.replace("\t", "    "), self.wrap_width) if paragraph.strip() else [""]
            lines.extend(wrapped)
        available = int((self._height - 2 * self.margin - self.title_size * 2) // self.leading)
        return lines[: max(available, 0)]

    def render(self, html: str, title: str, options: ConversionOptions) -> bytes:
        top = self._height - self.margin
        commands = [
            "BT",
            f"/F2 {self.title_size} Tf",
            f"{self.margin} {top:.2f} Td",
            f"({_pdf_string(title)}) Tj",
            f"/F1 {self.font_size} Tf",
            f"{self.leading} TL",
            f"0 -{self.title_size * 2} Td",
        ]
        for line in self.body_lines(html):
            commands.append(f"({_pdf_string(line)}) Tj T*")
        commands.append("ET")
        stream = "\n".join(commands).encode("latin-1")

        objects = [
            b"<< /Type /Catalog /Pages 2 0 R >>",
            b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
            (
                f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 {self._width:.2f} {self._height:.2f}] "
                "/Resources << /Font << /F1 4 0 R /F2 5 0 R >> >> /Contents 6 0 R >>"
            ).encode("latin-1"),
            b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica /Encoding /WinAnsiEncoding >>",
            b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica-Bold /Encoding /WinAnsiEncoding >>",
            b"<< /Length " + str(len(stream)).encode("ascii") + b" >>\nstream\n" + stream + b"\nendstream",
            f"<< /Title ({_pdf_string(title)}) /Producer (document-converter) >>".encode("latin-1"),
        ]
        return _assemble_pdf(objects, info_ref=len(objects))


def _pdf_string(value: str) -> str:
    encoded = value.encode("latin-1", errors="replace").decode("latin-1")
    return encoded.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)").replace("\r", " ").replace("\n", " ")


def _assemble_pdf(objects: list[bytes], info_ref: int | None = None) -> bytes:
    buffer = io.BytesIO()
    buffer.write(b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n")
    offsets: list[int] = []
    for number, body in enumerate(objects, start=1):
        offsets.append(buffer.tell())
        buffer.write(f"{number} 0 obj\n".encode("ascii") + body + b"\nendobj\n")
    xref_offset = buffer.tell()
    buffer.write(f"xref\n0 {len(objects) + 1}\n".encode("ascii"))
    buffer.write(b"0000000000 65535 f \n")
    for offset in offsets:
        buffer.write(f"{offset:010d} 00000 n \n".encode("ascii"))
    info = f" /Info {info_ref} 0 R" if info_ref else ""
    buffer.write(f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R{info} >>\n".encode("ascii"))
    buffer.write(f"startxref\n{xref_offset}\n".encode("ascii"))
    buffer.write(PDF_TRAILER + b"\n")
    return buffer.getvalue()


class ReportlabTypesetter:
    """Paginated rendering on reportlab platypus flowables."""

    name = "reportlab"
    degraded = False

    def __init__(self, page_size: str = "A4") -> None:
        try:
            from reportlab.lib import colors
            from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
        except ModuleNotFoundError as exc:  # pragma: no cover - import guard
            raise RuntimeError("reportlab dependency is required for the full fixed-layout backend") from exc

        self._page_size = page_dimensions(page_size)
        self._frame_width = self._page_size[0] - 144
        styles = getSampleStyleSheet()
        quote = ParagraphStyle(
            "BlockQuote", parent=styles["BodyText"], leftIndent=18, textColor=colors.HexColor("#555555")
        )
        styles.add(quote)
        self._styles = styles

    def render(self, html: str, title: str, options: ConversionOptions) -> bytes:
        from reportlab.platypus import Paragraph, SimpleDocTemplate

        soup = parse_html(html)
        root = soup.body or soup
        buffer = io.BytesIO()
        document = SimpleDocTemplate(
            buffer,
            pagesize=self._page_size,
            title=title,
            author=options.metadata.get("author", ""),
            leftMargin=72,
            rightMargin=72,
            topMargin=72,
            bottomMargin=72,
        )
        flowables = self._flowables(root)
        if not flowables:
            flowables = [Paragraph(xml_escape(title), self._styles["Title"])]
        document.build(flowables)
        return buffer.getvalue()

    def _flowables(self, parent: Tag, style: str = "BodyText") -> list[object]:
        from reportlab.platypus import Paragraph

        flowables: list[object] = []
        inline: list[object] = []

        def flush() -> None:
            markup = "".join(self._markup(node) for node in inline).strip()
            inline.clear()
            if markup:
                flowables.append(Paragraph(markup, self._styles[style]))

        for child in parent.children:
            if isinstance(child, SKIPPED_STRINGS):
                continue
            if isinstance(child, Tag) and (child.name in BLOCK_TAGS or child.name == "img"):
                flush()
                flowables.extend(self._block(child, style))
            else:
                inline.append(child)
        flush()
        return flowables

    def _block(self, node: Tag, style: str) -> list[object]:
        from reportlab.lib import colors
        from reportlab.platypus import HRFlowable, ListFlowable, ListItem, Paragraph, Preformatted, Table, TableStyle

        name = node.name
        if name in HEADING_LEVELS:
            markup = self._children_markup(node).strip()
            return [Paragraph(markup, self._styles[f"Heading{HEADING_LEVELS[name]}"])] if markup else []
        if name == "p":
            markup = self._children_markup(node).strip()
            return [Paragraph(markup, self._styles[style])] if markup else []
        if name == "pre":
            return [Preformatted(node.get_text().rstrip("\n"), self._styles["Code"])]
        if name in ("ul", "ol"):
            items = []
            for item in node.find_all("li", recursive=False):
                content = self._flowables(item, style)
                if content:
                    items.append(ListItem(content))
            if not items:
                return []
            return [ListFlowable(items, bulletType="1" if name == "ol" else "bullet")]
        if name == "table":
            rows = [row for row in node.find_all("tr") if row.find_parent("table") is node]
            body = self._styles["BodyText"]
            data = [
                [
                    Paragraph(self._children_markup(cell).strip(), body)
                    for cell in row.find_all(["td", "th"], recursive=False)
                ]
                for row in rows
            ]
            data = [row for row in data if row]
            if not data:
                return []
            width = max(len(row) for row in data)
            data = [row + [""] * (width - len(row)) for row in data]
            table = Table(data, colWidths=[self._frame_width / width] * width)
            commands = [("GRID", (0, 0), (-1, -1), 0.5, colors.grey), ("VALIGN", (0, 0), (-1, -1), "TOP")]
            if rows and rows[0].find("th", recursive=False) is not None:
                commands.append(("BACKGROUND", (0, 0), (-1, 0), colors.whitesmoke))
            table.setStyle(TableStyle(commands))
            return [table]
        if name == "blockquote":
            return self._flowables(node, "BlockQuote")
        if name == "hr":
            return [HRFlowable(width="100%", color=colors.grey)]
        if name == "img":
            return self._image(node)
        return self._flowables(node, style)

    def _image(self, node: Tag) -> list[object]:
        from reportlab.platypus import Image

        decoded = from_data_uri(node.get("src") or "")
        if decoded is None:
            alt = node.get("alt") or ""
            return self._flowables_from_text(alt)
        _, data = decoded
        width, height = image_size(data)
        scale = min(1.0, self._frame_width / width) if width else 1.0
        return [Image(io.BytesIO(data), width=width * scale, height=height * scale)]

    def _flowables_from_text(self, text: str) -> list[object]:
        from reportlab.platypus import Paragraph

        return [Paragraph(xml_escape(text), self._styles["BodyText"])] if text.strip() else []

    def _children_markup(self, node: Tag) -> str:
        return "".join(self._markup(child) for child in node.children)

    def _markup(self, node: object) -> str:
        if isinstance(node, SKIPPED_STRINGS):
            return ""
        if isinstance(node, NavigableString):
            return xml_escape(WHITESPACE_RE.sub(" ", str(node)))
        if not isinstance(node, Tag):
            return ""
        name = node.name
        inner = self._children_markup(node)
        if name == "br":
            return "<br/>"
        if name in ("strong", "b"):
            return f"<b>{inner}</b>"
        if name in ("em", "i", "cite"):
            return f"<i>{inner}</i>"
        if name in ("u", "ins"):
            return f"<u>{inner}</u>"
        if name in ("s", "del", "strike"):
            return f"<strike>{inner}</strike>"
        if name in ("code", "kbd", "samp", "tt"):
            return f'<font face="Courier">{inner}</font>'
        if name == "a" and node.get("href"):
            return f'<a href="{xml_escape(node["href"], {chr(34): "&quot;"})}" color="blue">{inner}</a>'
        if name == "img":
            return xml_escape(node.get("alt") or "")
        return inner


def select_typesetter(preference: str = "auto", page_size: str = "A4") -> Typesetter:
    """Pick a typesetter by availability: ``auto``, ``reportlab`` or ``placeholder``."""

    choice = preference.strip().lower()
    if choice not in BACKENDS:
        raise ValueError(f"Unknown fixed-layout backend {preference!r}; expected one of {BACKENDS}")
    if choice == "placeholder":
        return PlaceholderTypesetter(page_size)
    if importlib.util.find_spec("reportlab") is not None:
        return ReportlabTypesetter(page_size)
    return PlaceholderTypesetter(page_size)


class PreviewCollaborator(Protocol):
    def preview(self, data: bytes, options: ConversionOptions) -> tuple[str, list[ConversionWarning]]:  # pragma: no cover - interface
        ...


class MarkitdownPreviewer:
    """Extracts text from a PDF with markitdown and renders it as hypertext."""

    min_text_length = 40

    def __init__(self, transcoder: MarkupTranscoder | None = None) -> None:
        try:
            from markitdown import MarkItDown
        except ModuleNotFoundError as exc:  # pragma: no cover - import guard
            raise RuntimeError("markitdown dependency is required for fixed-layout previews") from exc

        self._converter = MarkItDown()
        self._transcoder = transcoder or MarkupTranscoder()

    def preview(self, data: bytes, options: ConversionOptions) -> tuple[str, list[ConversionWarning]]:
        with tempfile.TemporaryDirectory(prefix="docconv-preview-") as tmp:
            source = Path(tmp) / "preview.pdf"
            source.write_bytes(data)
            result = self._converter.convert(str(source))

        if isinstance(result, str):
            text = result
        elif hasattr(result, "text_content"):
            text = str(result.text_content or "")
        else:
            raise RuntimeError("Unsupported markitdown return type")

        warnings: list[ConversionWarning] = []
        if len(text.strip()) < self.min_text_length:
            warnings.append(PartialExtraction("little or no extractable text; pages may be image-only"))
        markdown = normalize_newlines(text) if text.strip() else ""
        return self._transcoder.light_to_hyper(markdown, ConversionOptions()), warnings


class FixedLayoutCodec:
    def __init__(
        self,
        typesetter: Typesetter | None = None,
        previewer: PreviewCollaborator | None = None,
        *,
        transcoder: MarkupTranscoder | None = None,
        page_size: str = "A4",
        preview_timeout_s: float = DEFAULT_PREVIEW_TIMEOUT_S,
    ) -> None:
        self._transcoder = transcoder or MarkupTranscoder()
        self._typesetter = typesetter or select_typesetter("auto", page_size)
        self._fallback = PlaceholderTypesetter(page_size, self._transcoder)
        self._previewer = previewer if previewer is not None else MarkitdownPreviewer(self._transcoder)
        self._preview_timeout_s = preview_timeout_s

    @property
    def typesetter(self) -> Typesetter:
        return self._typesetter

    @property
    def previewer(self) -> PreviewCollaborator:
        return self._previewer

    def any_to_fixed_layout(
        self, source: str, options: ConversionOptions | None = None
    ) -> tuple[bytes, list[ConversionWarning]]:
        opts = options or ConversionOptions()
        if MARKUP_START_RE.match(source or ""):
            html = source
        else:
            html = self._transcoder.light_to_hyper(source, ConversionOptions())
        soup = parse_html(html)
        title = opts.title or document_title(html, soup.body or soup) or DEFAULT_TITLE

        warnings: list[ConversionWarning] = []
        if self._typesetter.degraded:
            data = self._typesetter.render(html, title, opts)
            warnings.append(DegradedRendering(f"{self._typesetter.name} typesetter in use; layout is approximate"))
        else:
            try:
                data = self._typesetter.render(html, title, opts)
            except Exception as exc:
                data = self._fallback.render(html, title, opts)
                reason = f"{self._typesetter.name} typesetter failed ({exc}); placeholder page emitted"
                warnings.append(DegradedRendering(reason))
        if not data.startswith(PDF_SIGNATURE):
            data = self._fallback.render(html, title, opts)
            warnings.append(DegradedRendering(f"{self._typesetter.name} typesetter produced no PDF signature"))
        return ensure_trailer(data), warnings

    def fixed_layout_to_hyper(
        self, data: bytes, options: ConversionOptions | None = None
    ) -> tuple[str, list[ConversionWarning]]:
        opts = options or ConversionOptions()
        if not isinstance(data, (bytes, bytearray)) or not bytes(data).startswith(PDF_SIGNATURE):
            raise InvalidContainer("Payload does not carry the %PDF- signature")

        timeout = opts.preview_timeout_s if opts.preview_timeout_s is not None else self._preview_timeout_s
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pdf-preview")
        try:
            future = executor.submit(self._previewer.preview, bytes(data), opts)
            try:
                html, warnings = future.result(timeout=timeout)
            except FuturesTimeout:
                future.cancel()
                return "", [PartialExtraction(f"timed out after {timeout:g}s waiting for the preview")]
        finally:
            executor.shutdown(wait=False)
        return html, list(warnings)


__all__ = [
    "DEFAULT_PREVIEW_TIMEOUT_S",
    "FixedLayoutCodec",
    "MarkitdownPreviewer",
    "PAGE_SIZES",
    "PlaceholderTypesetter",
    "PreviewCollaborator",
    "ReportlabTypesetter",
    "Typesetter",
    "ensure_trailer",
    "page_dimensions",
    "select_typesetter",
]
