from __future__ import annotations

import re
from dataclasses import dataclass, field
from html import escape
from typing import Iterator, Mapping

from lxml import etree

from ..errors import InvalidContainer
from ..images import mime_from_name, sniff_image_type, to_data_uri
from ..models import ConversionOptions, ConversionWarning, ImagesDropped
from .ooxml import (
    CORE_PART,
    DOCUMENT_PART,
    NUMBERING_PART,
    STYLES_PART,
    is_monospace,
    open_package,
    parse_xml,
    qn,
    read_relationships,
    resolve_target,
)

HEADING_STYLE_RE = re.compile(r"^heading\s*([1-6])$")
CODE_STYLES = frozenset({"sourcecode", "source code", "code", "html preformatted", "htmlpreformatted"})
QUOTE_STYLES = frozenset({"quote", "intense quote", "block text"})


@dataclass(slots=True)
class _Paragraph:
    kind: str
    html: str
    level: int = 0
    num_id: str | None = None
    ordered: bool = False
    text: str = ""


@dataclass(slots=True)
class _ReadContext:
    parts: Mapping[str, bytes]
    relationships: dict[str, dict[str, str]]
    styles: dict[str, str]
    numbering: dict[str, dict[int, str]]
    preserve_images: bool
    images_seen: int = 0
    warnings: list[ConversionWarning] = field(default_factory=list)


def _val(element: etree._Element | None, tag: str) -> str | None:
    if element is None:
        return None
    child = element.find(qn(tag))
    if child is None:
        return None
    return child.get(qn("w:val"))


def _is_on(element: etree._Element | None, tag: str) -> bool:
    if element is None:
        return False
    child = element.find(qn(tag))
    if child is None:
        return False
    return child.get(qn("w:val"), "true").lower() not in ("0", "false", "off", "none")


def _read_styles(parts: Mapping[str, bytes]) -> dict[str, str]:
    raw = parts.get(STYLES_PART)
    if raw is None:
        return {}
    root = parse_xml(raw, STYLES_PART)
    styles: dict[str, str] = {}
    for style in root.findall(qn("w:style")):
        style_id = style.get(qn("w:styleId"))
        if not style_id:
            continue
        styles[style_id] = (_val(style, "w:name") or style_id).lower()
    return styles


def _read_numbering(parts: Mapping[str, bytes]) -> dict[str, dict[int, str]]:
    raw = parts.get(NUMBERING_PART)
    if raw is None:
        return {}
    root = parse_xml(raw, NUMBERING_PART)
    abstract: dict[str, dict[int, str]] = {}
    for node in root.findall(qn("w:abstractNum")):
        levels: dict[int, str] = {}
        for lvl in node.findall(qn("w:lvl")):
            try:
                index = int(lvl.get(qn("w:ilvl"), "0"))
            except ValueError:
                continue
            levels[index] = _val(lvl, "w:numFmt") or "bullet"
        abstract[node.get(qn("w:abstractNumId"), "")] = levels
    numbering: dict[str, dict[int, str]] = {}
    for num in root.findall(qn("w:num")):
        abstract_id = _val(num, "w:abstractNumId")
        numbering[num.get(qn("w:numId"), "")] = abstract.get(abstract_id or "", {})
    return numbering


def read_core_properties(data: bytes) -> dict[str, str]:
    parts = open_package(data)
    raw = parts.get(CORE_PART)
    if raw is None:
        return {}
    root = parse_xml(raw, CORE_PART)
    properties: dict[str, str] = {}
    for element in root:
        if not isinstance(element.tag, str) or not element.text:
            continue
        local = etree.QName(element).localname
        properties[local] = element.text.strip()
    return properties


class ContainerReader:
    """Reads WordprocessingML packages into hypertext or plain text."""

    def container_to_hyper(
        self, data: bytes, options: ConversionOptions | None = None
    ) -> tuple[str, list[ConversionWarning]]:
        opts = options or ConversionOptions()
        parts = open_package(data)
        context = _ReadContext(
            parts=parts,
            relationships=read_relationships(parts),
            styles=_read_styles(parts),
            numbering=_read_numbering(parts),
            preserve_images=opts.preserve_images,
        )
        body = self._body(parts)
        blocks = self._render_blocks(self._iter_block_elements(body), context)
        if not opts.preserve_images and context.images_seen:
            context.warnings.append(ImagesDropped(context.images_seen))

        title = read_core_properties(data).get("title", "")
        head_title = f"<title>{escape(title)}</title>\n" if title else ""
        html = (
            "<!DOCTYPE html>\n<html>\n<head>\n<meta charset=\"utf-8\">\n"
            f"{head_title}</head>\n<body>\n" + "\n".join(blocks) + "\n</body>\n</html>\n"
        )
        return html, context.warnings

    def container_to_plain_text(self, data: bytes) -> str:
        parts = open_package(data)
        lines: list[str] = []
        for element in self._iter_block_elements(self._body(parts)):
            if element.tag == qn("w:p"):
                lines.append(self._paragraph_text(element))
            elif element.tag == qn("w:tbl"):
                for row in element.iter(qn("w:tr")):
                    cells = [
                        " ".join(self._paragraph_text(p) for p in cell.iter(qn("w:p"))).strip()
                        for cell in row.findall(qn("w:tc"))
                    ]
                    lines.append("\t".join(cells))
        text = "\n".join(line.rstrip() for line in lines).strip("\n")
        return f"{text}\n" if text else ""

    def _body(self, parts: Mapping[str, bytes]) -> etree._Element:
        root = parse_xml(parts[DOCUMENT_PART], DOCUMENT_PART)
        body = root.find(qn("w:body"))
        if body is None:
            raise InvalidContainer("Document part has no body")
        return body

    def _iter_block_elements(self, parent: etree._Element) -> Iterator[etree._Element]:
        for child in parent:
            if child.tag in (qn("w:p"), qn("w:tbl")):
                yield child
            elif child.tag in (qn("w:sdt"), qn("w:customXml")):
                content = child.find(qn("w:sdtContent"))
                yield from self._iter_block_elements(content if content is not None else child)

    def _paragraph_text(self, paragraph: etree._Element) -> str:
        pieces: list[str] = []
        for node in paragraph.iter(qn("w:t"), qn("w:tab"), qn("w:br"), qn("w:delText")):
            if node.tag == qn("w:t"):
                pieces.append(node.text or "")
            elif node.tag == qn("w:tab"):
                pieces.append("\t")
            elif node.tag == qn("w:br"):
                pieces.append("\n")
        return "".join(pieces)

    def _render_blocks(self, elements: Iterator[etree._Element], context: _ReadContext) -> list[str]:
        blocks: list[str] = []
        pending: list[_Paragraph] = []

        def flush() -> None:
            if pending:
                blocks.extend(self._group(pending))
                pending.clear()

        for element in elements:
            if element.tag == qn("w:tbl"):
                flush()
                blocks.append(self._table(element, context))
                continue
            paragraph = self._paragraph(element, context)
            if paragraph.kind in ("list", "code", "quote"):
                if pending and pending[-1].kind != paragraph.kind:
                    flush()
                pending.append(paragraph)
                continue
            flush()
            if paragraph.kind == "heading":
                blocks.append(f"<h{paragraph.level}>{paragraph.html}</h{paragraph.level}>")
            elif paragraph.html.strip():
                blocks.append(f"<p>{paragraph.html}</p>")
        flush()
        return blocks

    def _group(self, paragraphs: list[_Paragraph]) -> list[str]:
        kind = paragraphs[0].kind
        if kind == "code":
            code = "\n".join(p.text for p in paragraphs)
            return [f"<pre><code>{escape(code)}</code></pre>"]
        if kind == "quote":
            inner = "".join(f"<p>{p.html}</p>" for p in paragraphs if p.html.strip())
            return [f"<blockquote>{inner}</blockquote>"]
        return [self._list_html(paragraphs)]

    def _list_html(self, items: list[_Paragraph]) -> str:
        out: list[str] = []
        stack: list[str] = []
        for item in items:
            tag = "ol" if item.ordered else "ul"
            depth = item.level + 1
            while len(stack) > depth:
                out.append(f"</li></{stack.pop()}>")
            if len(stack) == depth and stack[-1] != tag:
                out.append(f"</li></{stack.pop()}>")
            if len(stack) == depth:
                out.append("</li>")
            while len(stack) < depth:
                stack.append(tag)
                out.append(f"<{tag}>")
            out.append(f"<li>{item.html}")
        while stack:
            out.append(f"</li></{stack.pop()}>")
        return "".join(out)

    def _paragraph(self, paragraph: etree._Element, context: _ReadContext) -> _Paragraph:
        ppr = paragraph.find(qn("w:pPr"))
        style_id = _val(ppr, "w:pStyle") or ""
        style_name = context.styles.get(style_id, style_id.lower())
        html = self._runs(paragraph, context)
        text = self._paragraph_text(paragraph)

        level = self._heading_level(style_id, style_name, ppr)
        if level:
            return _Paragraph(kind="heading", html=html.strip(), level=level, text=text)

        num_pr = ppr.find(qn("w:numPr")) if ppr is not None else None
        if num_pr is not None:
            num_id = _val(num_pr, "w:numId")
            if num_id and num_id != "0":
                try:
                    ilvl = int(_val(num_pr, "w:ilvl") or 0)
                except ValueError:
                    ilvl = 0
                fmt = context.numbering.get(num_id, {}).get(ilvl, "bullet")
                return _Paragraph(
                    kind="list", html=html, level=ilvl, num_id=num_id, ordered=fmt not in ("bullet", "none"), text=text
                )

        if style_name in CODE_STYLES or style_id.lower() in CODE_STYLES or self._all_monospace(paragraph, text):
            return _Paragraph(kind="code", html=html, text=text)
        if style_name in QUOTE_STYLES:
            return _Paragraph(kind="quote", html=html, text=text)
        return _Paragraph(kind="paragraph", html=html, text=text)

    def _heading_level(self, style_id: str, style_name: str, ppr: etree._Element | None) -> int:
        if style_name == "title" or style_id == "Title":
            return 1
        match = HEADING_STYLE_RE.match(style_name) or HEADING_STYLE_RE.match(style_id.lower())
        if match:
            return int(match.group(1))
        outline_level = _val(ppr, "w:outlineLvl")
        if outline_level is not None and outline_level.isdigit() and int(outline_level) < 6:
            return int(outline_level) + 1
        return 0

    def _all_monospace(self, paragraph: etree._Element, text: str) -> bool:
        if not text.strip():
            return False
        runs = [run for run in paragraph.iter(qn("w:r")) if run.find(qn("w:t")) is not None]
        return bool(runs) and all(self._run_format(run)["code"] for run in runs)

    def _run_format(self, run: etree._Element) -> dict[str, bool]:
        rpr = run.find(qn("w:rPr"))
        fonts = rpr.find(qn("w:rFonts")) if rpr is not None else None
        font = fonts.get(qn("w:ascii")) if fonts is not None else None
        underline = _val(rpr, "w:u")
        return {
            "bold": _is_on(rpr, "w:b"),
            "italic": _is_on(rpr, "w:i"),
            "underline": underline is not None and underline != "none",
            "strike": _is_on(rpr, "w:strike") or _is_on(rpr, "w:dstrike"),
            "code": is_monospace(font) or (_val(rpr, "w:rStyle") or "").lower() in ("code", "verbatimchar"),
        }

    def _runs(self, parent: etree._Element, context: _ReadContext) -> str:
        pieces: list[str] = []
        for child in parent:
            tag = child.tag
            if tag == qn("w:r"):
                pieces.append(self._run(child, context))
            elif tag == qn("w:hyperlink"):
                inner = self._runs(child, context)
                href = None
                rel_id = child.get(qn("r:id"))
                if rel_id and rel_id in context.relationships:
                    href = context.relationships[rel_id]["target"]
                elif child.get(qn("w:anchor")):
                    href = f"#{child.get(qn('w:anchor'))}"
                pieces.append(f'<a href="{escape(href, quote=True)}">{inner}</a>' if href else inner)
            elif tag in (qn("w:ins"), qn("w:smartTag"), qn("w:fldSimple"), qn("w:customXml")):
                pieces.append(self._runs(child, context))
            elif tag == qn("w:sdt"):
                content = child.find(qn("w:sdtContent"))
                if content is not None:
                    pieces.append(self._runs(content, context))
        return "".join(pieces)

    def _run(self, run: etree._Element, context: _ReadContext) -> str:
        fmt = self._run_format(run)
        pieces: list[str] = []
        for node in run:
            tag = node.tag
            if tag == qn("w:t"):
                pieces.append(escape(node.text or ""))
            elif tag == qn("w:tab"):
                pieces.append(" ")
            elif tag in (qn("w:br"), qn("w:cr")):
                pieces.append("<br>")
            elif tag in (qn("w:drawing"), qn("w:pict"), qn("w:object")):
                pieces.append(self._images(node, context))
        html = "".join(pieces)
        if not html.strip() or "<img" in html:
            return html
        if fmt["code"]:
            html = f"<code>{html}</code>"
        if fmt["strike"]:
            html = f"<s>{html}</s>"
        if fmt["underline"]:
            html = f"<u>{html}</u>"
        if fmt["italic"]:
            html = f"<em>{html}</em>"
        if fmt["bold"]:
            html = f"<strong>{html}</strong>"
        return html

    def _images(self, node: etree._Element, context: _ReadContext) -> str:
        rel_ids = [blip.get(qn("r:embed")) or blip.get(qn("r:link")) for blip in node.iter(qn("a:blip"))]
        rel_ids += [image.get(qn("r:id")) for image in node.iter(qn("v:imagedata"))]
        alt = ""
        doc_pr = next(node.iter(qn("wp:docPr")), None)
        if doc_pr is not None:
            alt = doc_pr.get("descr") or doc_pr.get("title") or doc_pr.get("name") or ""
        pieces: list[str] = []
        for rel_id in rel_ids:
            if not rel_id:
                continue
            context.images_seen += 1
            if not context.preserve_images:
                continue
            relationship = context.relationships.get(rel_id)
            if relationship is None or relationship["mode"] == "External":
                continue
            part = resolve_target(DOCUMENT_PART, relationship["target"])
            blob = context.parts.get(part)
            if blob is None:
                continue
            mime = sniff_image_type(blob) or mime_from_name(part)
            pieces.append(f'<img src="{to_data_uri(blob, mime)}" alt="{escape(alt, quote=True)}">')
        return "".join(pieces)

    def _table(self, table: etree._Element, context: _ReadContext) -> str:
        rows: list[str] = []
        for index, row in enumerate(table.findall(qn("w:tr"))):
            trpr = row.find(qn("w:trPr"))
            header = index == 0 and trpr is not None and trpr.find(qn("w:tblHeader")) is not None
            cell_tag = "th" if header else "td"
            cells = []
            for cell in row.findall(qn("w:tc")):
                content = "<br>".join(
                    html for html in (self._runs(p, context) for p in cell.findall(qn("w:p"))) if html.strip()
                )
                cells.append(f"<{cell_tag}>{content}</{cell_tag}>")
            rows.append(f"<tr>{''.join(cells)}</tr>")
        return f"<table>{''.join(rows)}</table>"


__all__ = ["ContainerReader", "read_core_properties"]
