"""Hypertext to WordprocessingML through placeholder-bearing blueprints."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterable, Mapping
from urllib.parse import unquote, urlparse

from bs4 import NavigableString, Tag
from lxml import etree

from ..errors import BindingError
from ..images import EXTENSIONS, from_data_uri, image_size, mime_from_name, sniff_image_type
from ..models import ConversionOptions, ConversionWarning
from ..transcoder import BLOCK_TAGS, HEADING_LEVELS, SKIPPED_STRINGS, WHITESPACE_RE, document_title, parse_html
from .blueprints import DEFAULT_BLUEPRINT, BlueprintStore, BuiltinBlueprintStore, numbering_levels
from .ooxml import (
    CONTENT_TYPES_PART,
    CORE_PART,
    CT_NUMBERING,
    DOCUMENT_PART,
    DOCUMENT_RELS_PART,
    NS,
    NUMBERING_PART,
    REL_HYPERLINK,
    REL_IMAGE,
    REL_NUMBERING,
    build_package,
    open_package,
    parse_xml,
    qn,
    serialize_xml,
)

PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z_][\w.-]*)\s*(?:\|\s*([^}]*?)\s*)?\}\}")
CONTENT_SLOT_RE = re.compile(r"^\s*\{\{\s*content\s*\}\}\s*$")
HEADER_FOOTER_RE = re.compile(r"^word/(?:header|footer)\d*\.xml$")

EMU_PER_PIXEL = 9525
MAX_IMAGE_WIDTH_EMU = 5486400
MAX_LIST_LEVEL = 8
TABLE_WIDTH_TWIPS = 9000

BUILD_NSMAP = {prefix: NS[prefix] for prefix in ("w", "r", "wp", "a", "pic")}
CT_NS = NS["ct"]
REL_NS = NS["rel"]


def _element(tag: str, attrs: Mapping[str, str] | None = None, parent: etree._Element | None = None) -> etree._Element:
    element = etree.Element(qn(tag), nsmap=BUILD_NSMAP) if parent is None else etree.SubElement(parent, qn(tag))
    for key, value in (attrs or {}).items():
        element.set(qn(key) if ":" in key else key, value)
    return element


def bind_placeholders(text: str, values: Mapping[str, str]) -> str:
    """Replace ``{{ name }}`` and ``{{ name | default }}`` occurrences in ``text``."""

    def substitute(match: re.Match[str]) -> str:
        name, default = match.group(1), match.group(2)
        if name in values:
            return str(values[name])
        if default is not None:
            return default
        raise BindingError(name)

    return PLACEHOLDER_RE.sub(substitute, text)


@dataclass(slots=True)
class _RunFormat:
    bold: bool = False
    italic: bool = False
    underline: bool = False
    strike: bool = False
    code: bool = False
    link: bool = False


class _PackageEditor:
    """Tracks relationships, media, content types and numbering added to a package."""

    def __init__(self, parts: dict[str, bytes], document: etree._Element) -> None:
        self.parts = parts
        rels_raw = parts.get(DOCUMENT_RELS_PART)
        self._rels = (
            parse_xml(rels_raw, DOCUMENT_RELS_PART)
            if rels_raw is not None
            else etree.Element(f"{{{REL_NS}}}Relationships", nsmap={None: REL_NS})
        )
        self._rel_ids = {rel.get("Id") for rel in self._rels}
        self._content_types = parse_xml(parts[CONTENT_TYPES_PART], CONTENT_TYPES_PART) if CONTENT_TYPES_PART in parts else None
        self._numbering: etree._Element | None = None
        self._numbering_created = False
        self._abstract_ids: dict[str, str] = {}
        self._bullet_num: str | None = None
        self._next_num = 0
        self._media_count = 0
        self._touched = False
        self.doc_pr_id = max(
            (int(node.get("id")) for node in document.iter(qn("wp:docPr")) if (node.get("id") or "").isdigit()),
            default=0,
        )

    def add_relationship(self, rel_type: str, target: str, *, external: bool = False) -> str:
        number = len(self._rel_ids) + 1
        while f"rId{number}" in self._rel_ids:
            number += 1
        rel_id = f"rId{number}"
        self._rel_ids.add(rel_id)
        rel = etree.SubElement(self._rels, f"{{{REL_NS}}}Relationship")
        rel.set("Id", rel_id)
        rel.set("Type", rel_type)
        rel.set("Target", target)
        if external:
            rel.set("TargetMode", "External")
        self._touched = True
        return rel_id

    def add_media(self, data: bytes, mime: str) -> str:
        extension = EXTENSIONS[mime]
        self._media_count += 1
        name = f"image{self._media_count}.{extension}"
        while f"word/media/{name}" in self.parts:
            self._media_count += 1
            name = f"image{self._media_count}.{extension}"
        self.parts[f"word/media/{name}"] = data
        self._ensure_default_content_type(extension, mime)
        return self.add_relationship(REL_IMAGE, f"media/{name}")

    def next_doc_pr_id(self) -> int:
        self.doc_pr_id += 1
        return self.doc_pr_id

    def list_num_id(self, ordered: bool, start: int = 1, level: int = 0) -> str:
        numbering = self._load_numbering()
        if not ordered and self._bullet_num is not None:
            return self._bullet_num
        abstract_id = self._abstract_id("decimal" if ordered else "bullet")
        self._next_num += 1
        num_id = str(self._next_num)
        num = _element("w:num", {"w:numId": num_id})
        _element("w:abstractNumId", {"w:val": abstract_id}, num)
        if ordered:
            override = _element("w:lvlOverride", {"w:ilvl": str(level)}, num)
            _element("w:startOverride", {"w:val": str(start)}, override)
        existing = numbering.findall(qn("w:num"))
        if existing:
            existing[-1].addnext(num)
        else:
            numbering.append(num)
        if not ordered:
            self._bullet_num = num_id
        return num_id

    def _abstract_id(self, fmt: str) -> str:
        if fmt in self._abstract_ids:
            return self._abstract_ids[fmt]
        numbering = self._load_numbering()
        used = [
            int(node.get(qn("w:abstractNumId")))
            for node in numbering.findall(qn("w:abstractNum"))
            if (node.get(qn("w:abstractNumId")) or "").isdigit()
        ]
        abstract_id = str(max(used, default=-1) + 1)
        abstract = etree.fromstring(
            f'<w:abstractNum xmlns:w="{NS["w"]}" w:abstractNumId="{abstract_id}">'
            f'<w:multiLevelType w:val="hybridMultilevel"/>{numbering_levels(fmt)}</w:abstractNum>'
        )
        anchors = numbering.findall(qn("w:abstractNum")) or numbering.findall(qn("w:numPicBullet"))
        if anchors:
            anchors[-1].addnext(abstract)
        else:
            numbering.insert(0, abstract)
        self._abstract_ids[fmt] = abstract_id
        return abstract_id

    def _load_numbering(self) -> etree._Element:
        if self._numbering is None:
            raw = self.parts.get(NUMBERING_PART)
            if raw is None:
                self._numbering = etree.Element(qn("w:numbering"), nsmap={"w": NS["w"]})
                self._numbering_created = True
            else:
                self._numbering = parse_xml(raw, NUMBERING_PART)
            ids = [
                int(node.get(qn("w:numId")))
                for node in self._numbering.findall(qn("w:num"))
                if (node.get(qn("w:numId")) or "").isdigit()
            ]
            self._next_num = max(ids, default=0)
        return self._numbering

    def _ensure_default_content_type(self, extension: str, mime: str) -> None:
        if self._content_types is None:
            return
        for node in self._content_types.findall(f"{{{CT_NS}}}Default"):
            if (node.get("Extension") or "").lower() == extension:
                return
        default = etree.Element(f"{{{CT_NS}}}Default")
        default.set("Extension", extension)
        default.set("ContentType", mime)
        self._content_types.insert(0, default)

    def _ensure_override(self, part_name: str, content_type: str) -> None:
        if self._content_types is None:
            return
        for node in self._content_types.findall(f"{{{CT_NS}}}Override"):
            if node.get("PartName") == part_name:
                return
        override = etree.SubElement(self._content_types, f"{{{CT_NS}}}Override")
        override.set("PartName", part_name)
        override.set("ContentType", content_type)

    def finalize(self) -> None:
        if self._numbering is not None:
            if self._numbering_created:
                self.add_relationship(REL_NUMBERING, "numbering.xml")
                self._ensure_override(f"/{NUMBERING_PART}", CT_NUMBERING)
            self.parts[NUMBERING_PART] = serialize_xml(self._numbering)
        if self._touched:
            self.parts[DOCUMENT_RELS_PART] = serialize_xml(self._rels)
        if self._content_types is not None:
            self.parts[CONTENT_TYPES_PART] = serialize_xml(self._content_types)


class _BodyBuilder:
    """Turns a parsed hypertext tree into WordprocessingML block elements."""

    def __init__(self, package: _PackageEditor, options: ConversionOptions) -> None:
        self._package = package
        self._options = options
        self._holder = _element("w:body")
        self._line_start = True
        self.warnings: list[ConversionWarning] = []

    def build(self, root: Tag) -> list[etree._Element]:
        elements = self._blocks(root)
        for element in elements:
            self._holder.remove(element)
        return elements

    def _blocks(self, parent: Tag, style: str | None = None) -> list[etree._Element]:
        elements: list[etree._Element] = []
        inline: list[object] = []

        def flush() -> None:
            if not inline:
                return
            paragraph = self._paragraph(style)
            self._inline_nodes(paragraph, inline, _RunFormat())
            inline.clear()
            if self._has_content(paragraph):
                elements.append(paragraph)
            else:
                self._holder.remove(paragraph)

        for child in parent.children:
            if isinstance(child, SKIPPED_STRINGS):
                continue
            if isinstance(child, Tag) and child.name in BLOCK_TAGS:
                flush()
                elements.extend(self._block(child, style))
            else:
                inline.append(child)
        flush()
        return elements

    def _block(self, node: Tag, style: str | None) -> list[etree._Element]:
        name = node.name
        if name in HEADING_LEVELS:
            paragraph = self._paragraph(f"Heading{HEADING_LEVELS[name]}")
            self._inline_nodes(paragraph, node.children, _RunFormat())
            return [paragraph]
        if name == "p":
            paragraph = self._paragraph(style)
            self._inline_nodes(paragraph, node.children, _RunFormat())
            if self._has_content(paragraph):
                return [paragraph]
            self._holder.remove(paragraph)
            return []
        if name in ("ul", "ol"):
            return self._list(node, 0)
        if name == "pre":
            return [self._code_block(node)]
        if name == "table":
            return [self._table(node)]
        if name == "blockquote":
            return self._blocks(node, "Quote")
        if name == "hr":
            paragraph = self._paragraph(style)
            ppr = self._paragraph_properties(paragraph)
            borders = _element("w:pBdr", parent=ppr)
            _element("w:bottom", {"w:val": "single", "w:sz": "6", "w:space": "1", "w:color": "auto"}, borders)
            return [paragraph]
        return self._blocks(node, style)

    def _paragraph(self, style: str | None = None, numbering: tuple[str, int] | None = None) -> etree._Element:
        return self._new_paragraph(self._holder, style, numbering)

    def _new_paragraph(
        self, parent: etree._Element, style: str | None = None, numbering: tuple[str, int] | None = None
    ) -> etree._Element:
        paragraph = _element("w:p", parent=parent)
        if style or numbering:
            ppr = _element("w:pPr", parent=paragraph)
            if style:
                _element("w:pStyle", {"w:val": style}, ppr)
            if numbering:
                num_pr = _element("w:numPr", parent=ppr)
                _element("w:ilvl", {"w:val": str(numbering[1])}, num_pr)
                _element("w:numId", {"w:val": numbering[0]}, num_pr)
        self._line_start = True
        return paragraph

    @staticmethod
    def _paragraph_properties(paragraph: etree._Element) -> etree._Element:
        ppr = paragraph.find(qn("w:pPr"))
        if ppr is None:
            ppr = _element("w:pPr")
            paragraph.insert(0, ppr)
        return ppr

    @staticmethod
    def _has_content(paragraph: etree._Element) -> bool:
        if any((node.text or "").strip() for node in paragraph.iter(qn("w:t"))):
            return True
        return next(paragraph.iter(qn("w:drawing")), None) is not None

    def _list(self, node: Tag, level: int) -> list[etree._Element]:
        ordered = node.name == "ol"
        try:
            start = int(node.get("start", 1)) if ordered else 1
        except (TypeError, ValueError):
            start = 1
        level = min(level, MAX_LIST_LEVEL)
        num_id = self._package.list_num_id(ordered, start, level)
        elements: list[etree._Element] = []
        for item in node.find_all("li", recursive=False):
            nested: list[Tag] = []
            inline: list[object] = []
            for child in item.children:
                if isinstance(child, Tag) and child.name in ("ul", "ol"):
                    nested.append(child)
                else:
                    inline.append(child)
            paragraph = self._paragraph("ListParagraph", (num_id, level))
            self._inline_nodes(paragraph, inline, _RunFormat())
            self._trim_trailing(paragraph)
            elements.append(paragraph)
            for child in nested:
                elements.extend(self._list(child, level + 1))
        return elements

    def _code_block(self, node: Tag) -> etree._Element:
        paragraph = self._paragraph("SourceCode")
        lines = node.get_text().rstrip("\n").split("\n")
        for index, line in enumerate(lines):
            run = self._run(paragraph, _RunFormat(code=True))
            if index:
                _element("w:br", parent=run)
            text = _element("w:t", {"xml:space": "preserve"}, run)
            text.text = line
        return paragraph

    def _table(self, node: Tag) -> etree._Element:
        rows = [row for row in node.find_all("tr") if row.find_parent("table") is node]
        columns = max((len(row.find_all(["td", "th"], recursive=False)) for row in rows), default=1) or 1
        table = _element("w:tbl", parent=self._holder)
        tbl_pr = _element("w:tblPr", parent=table)
        _element("w:tblStyle", {"w:val": "TableGrid"}, tbl_pr)
        _element("w:tblW", {"w:w": "0", "w:type": "auto"}, tbl_pr)
        grid = _element("w:tblGrid", parent=table)
        for _ in range(columns):
            _element("w:gridCol", {"w:w": str(TABLE_WIDTH_TWIPS // columns)}, grid)
        for row in rows:
            tr = _element("w:tr", parent=table)
            cells = row.find_all(["td", "th"], recursive=False)
            if cells and all(cell.name == "th" for cell in cells):
                tr_pr = _element("w:trPr", parent=tr)
                _element("w:tblHeader", parent=tr_pr)
            for cell in cells:
                tc = _element("w:tc", parent=tr)
                tc_pr = _element("w:tcPr", parent=tc)
                _element("w:tcW", {"w:w": str(TABLE_WIDTH_TWIPS // columns), "w:type": "dxa"}, tc_pr)
                paragraph = self._new_paragraph(tc)
                bold = cell.name == "th"
                self._inline_nodes(paragraph, cell.children, _RunFormat(bold=bold))
                self._trim_trailing(paragraph)
            for _ in range(columns - len(cells)):
                tc = _element("w:tc", parent=tr)
                _element("w:p", parent=tc)
        return table

    def _inline_nodes(self, container: etree._Element, nodes: Iterable[object], fmt: _RunFormat) -> None:
        for node in list(nodes):
            self._inline(container, node, fmt)
        if container.tag == qn("w:p"):
            self._trim_trailing(container)

    def _inline(self, container: etree._Element, node: object, fmt: _RunFormat) -> None:
        if isinstance(node, SKIPPED_STRINGS):
            return
        if isinstance(node, NavigableString):
            self._text(container, str(node), fmt)
            return
        if not isinstance(node, Tag):
            return
        name = node.name
        if name == "br":
            run = self._run(container, fmt)
            _element("w:br", parent=run)
            self._line_start = True
        elif name in ("strong", "b"):
            self._children(container, node, replace(fmt, bold=True))
        elif name in ("em", "i", "cite"):
            self._children(container, node, replace(fmt, italic=True))
        elif name in ("u", "ins"):
            self._children(container, node, replace(fmt, underline=True))
        elif name in ("s", "del", "strike"):
            self._children(container, node, replace(fmt, strike=True))
        elif name in ("code", "kbd", "samp", "tt"):
            self._children(container, node, replace(fmt, code=True))
        elif name == "a" and node.get("href") and container.tag != qn("w:hyperlink"):
            self._hyperlink(container, node, fmt)
        elif name == "img":
            self._image(container, node, fmt)
        elif name == "input" and node.get("type") == "checkbox":
            self._text(container, "☒ " if node.has_attr("checked") else "☐ ", fmt)
        else:
            self._children(container, node, fmt)

    def _children(self, container: etree._Element, node: Tag, fmt: _RunFormat) -> None:
        for child in list(node.children):
            self._inline(container, child, fmt)

    def _text(self, container: etree._Element, value: str, fmt: _RunFormat) -> None:
        text = WHITESPACE_RE.sub(" ", value)
        if self._line_start:
            text = text.lstrip(" ")
        if not text:
            return
        run = self._run(container, fmt)
        node = _element("w:t", {"xml:space": "preserve"}, run)
        node.text = text
        self._line_start = text.endswith(" ")

    def _run(self, container: etree._Element, fmt: _RunFormat) -> etree._Element:
        run = _element("w:r", parent=container)
        if fmt == _RunFormat():
            return run
        rpr = _element("w:rPr", parent=run)
        if fmt.link:
            _element("w:rStyle", {"w:val": "Hyperlink"}, rpr)
        if fmt.code:
            _element("w:rFonts", {"w:ascii": "Courier New", "w:hAnsi": "Courier New", "w:cs": "Courier New"}, rpr)
        if fmt.bold:
            _element("w:b", parent=rpr)
        if fmt.italic:
            _element("w:i", parent=rpr)
        if fmt.strike:
            _element("w:strike", parent=rpr)
        if fmt.underline:
            _element("w:u", {"w:val": "single"}, rpr)
        return run

    def _trim_trailing(self, paragraph: etree._Element) -> None:
        texts = list(paragraph.iter(qn("w:t")))
        if texts and texts[-1].text:
            texts[-1].text = texts[-1].text.rstrip(" ")

    def _hyperlink(self, container: etree._Element, node: Tag, fmt: _RunFormat) -> None:
        href = node["href"]
        if href.startswith("#"):
            link = _element("w:hyperlink", {"w:anchor": href[1:]}, container)
        else:
            rel_id = self._package.add_relationship(REL_HYPERLINK, href, external=True)
            link = _element("w:hyperlink", {"r:id": rel_id}, container)
        self._children(link, node, replace(fmt, link=True))

    def _resolve_image(self, src: str) -> tuple[str, bytes] | None:
        if src.startswith("data:"):
            decoded = from_data_uri(src)
            if decoded is None:
                return None
            mime, data = decoded
            return (sniff_image_type(data) or mime), data
        parsed = urlparse(src)
        if parsed.scheme not in ("", "file"):
            return None
        path = Path(unquote(parsed.path if parsed.scheme == "file" else src))
        if not path.is_absolute():
            if self._options.image_base_path is None:
                return None
            path = Path(self._options.image_base_path) / path
        try:
            data = path.read_bytes()
        except OSError:
            return None
        return (sniff_image_type(data) or mime_from_name(path.name)), data

    def _image(self, container: etree._Element, node: Tag, fmt: _RunFormat) -> None:
        src = (node.get("src") or "").strip()
        alt = node.get("alt") or ""
        resolved = self._resolve_image(src) if src else None
        if resolved is None or resolved[0] not in EXTENSIONS:
            shown = src if len(src) <= 60 else f"{src[:57]}..."
            self.warnings.append(ConversionWarning("IMAGE_UNRESOLVED", f"Image {shown!r} could not be embedded"))
            if alt:
                self._text(container, alt, fmt)
            return

        mime, data = resolved
        rel_id = self._package.add_media(data, mime)
        width, height = image_size(data)
        cx, cy = width * EMU_PER_PIXEL, height * EMU_PER_PIXEL
        if cx > MAX_IMAGE_WIDTH_EMU:
            cy = int(cy * MAX_IMAGE_WIDTH_EMU / cx)
            cx = MAX_IMAGE_WIDTH_EMU
        doc_pr_id = str(self._package.next_doc_pr_id())
        extent = {"cx": str(cx), "cy": str(cy)}

        run = self._run(container, _RunFormat())
        drawing = _element("w:drawing", parent=run)
        inline = _element("wp:inline", {"distT": "0", "distB": "0", "distL": "0", "distR": "0"}, drawing)
        _element("wp:extent", extent, inline)
        _element("wp:docPr", {"id": doc_pr_id, "name": f"Picture {doc_pr_id}", "descr": alt}, inline)
        frame = _element("wp:cNvGraphicFramePr", parent=inline)
        _element("a:graphicFrameLocks", {"noChangeAspect": "1"}, frame)
        graphic = _element("a:graphic", parent=inline)
        graphic_data = _element("a:graphicData", {"uri": NS["pic"]}, graphic)
        picture = _element("pic:pic", parent=graphic_data)
        nv_pic_pr = _element("pic:nvPicPr", parent=picture)
        _element("pic:cNvPr", {"id": doc_pr_id, "name": f"image{doc_pr_id}"}, nv_pic_pr)
        _element("pic:cNvPicPr", parent=nv_pic_pr)
        blip_fill = _element("pic:blipFill", parent=picture)
        _element("a:blip", {"r:embed": rel_id}, blip_fill)
        stretch = _element("a:stretch", parent=blip_fill)
        _element("a:fillRect", parent=stretch)
        sp_pr = _element("pic:spPr", parent=picture)
        xfrm = _element("a:xfrm", parent=sp_pr)
        _element("a:off", {"x": "0", "y": "0"}, xfrm)
        _element("a:ext", extent, xfrm)
        geometry = _element("a:prstGeom", {"prst": "rect"}, sp_pr)
        _element("a:avLst", parent=geometry)
        self._line_start = False


def _paragraph_text(paragraph: etree._Element) -> str:
    return "".join(node.text or "" for node in paragraph.iter(qn("w:t")))


def _bind_paragraphs(root: etree._Element, values: Mapping[str, str]) -> None:
    for paragraph in root.iter(qn("w:p")):
        texts = list(paragraph.iter(qn("w:t")))
        original = [node.text or "" for node in texts]
        joined = "".join(original)
        if "{{" not in joined or CONTENT_SLOT_RE.match(joined):
            continue
        found = len(PLACEHOLDER_RE.findall(joined))
        if not found:
            continue
        if found == sum(len(PLACEHOLDER_RE.findall(text)) for text in original):
            for node, text in zip(texts, original):
                if PLACEHOLDER_RE.search(text):
                    node.text = bind_placeholders(text, values)
                    node.set(qn("xml:space"), "preserve")
            continue
        # placeholder split across runs: the first run takes the bound text
        texts[0].text = bind_placeholders(joined, values)
        texts[0].set(qn("xml:space"), "preserve")
        for node in texts[1:]:
            node.text = ""


def _bind_core(root: etree._Element, values: Mapping[str, str]) -> None:
    for element in root.iter():
        if isinstance(element.tag, str) and element.text and "{{" in element.text:
            element.text = bind_placeholders(element.text, values)


class ContainerWriter:
    """Binds hypertext content into a blueprint and returns the DOCX bytes."""

    def __init__(self, store: BlueprintStore | None = None, default_reference: str = DEFAULT_BLUEPRINT) -> None:
        self._store = store or BuiltinBlueprintStore()
        self._default_reference = default_reference

    @property
    def default_reference(self) -> str:
        return self._default_reference

    def hyper_to_container(
        self, html: str, options: ConversionOptions | None = None
    ) -> tuple[bytes, list[ConversionWarning]]:
        opts = options or ConversionOptions()
        soup = parse_html(html)
        root = soup.body or soup

        reference = opts.template_reference or self._default_reference
        parts = dict(open_package(self._store.get_blueprint(reference)))
        document = parse_xml(parts[DOCUMENT_PART], DOCUMENT_PART)
        package = _PackageEditor(parts, document)

        values = dict(opts.metadata)
        values.setdefault("content", root.get_text(" ", strip=True))
        title = opts.title or document_title(html, root)
        if title:
            values.setdefault("title", title)

        slots = [p for p in document.iter(qn("w:p")) if CONTENT_SLOT_RE.match(_paragraph_text(p))]
        _bind_paragraphs(document, values)

        builder = _BodyBuilder(package, opts)
        for slot in slots:
            parent = slot.getparent()
            index = parent.index(slot)
            parent.remove(slot)
            for offset, element in enumerate(builder.build(root)):
                parent.insert(index + offset, element)
            if parent.tag == qn("w:tc") and parent.find(qn("w:p")) is None:
                _element("w:p", parent=parent)
        parts[DOCUMENT_PART] = serialize_xml(document)
        for name in sorted(parts):
            if HEADER_FOOTER_RE.match(name):
                part = parse_xml(parts[name], name)
                _bind_paragraphs(part, values)
                parts[name] = serialize_xml(part)
        if CORE_PART in parts:
            core = parse_xml(parts[CORE_PART], CORE_PART)
            _bind_core(core, values)
            parts[CORE_PART] = serialize_xml(core)

        package.finalize()
        return build_package(parts), builder.warnings


__all__ = ["ContainerWriter", "bind_placeholders"]
