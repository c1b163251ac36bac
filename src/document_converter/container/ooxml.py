"""WordprocessingML namespaces, part names and package helpers."""

from __future__ import annotations

import io
import posixpath
import zipfile
from typing import Mapping

from lxml import etree

from ..errors import InvalidContainer

NS = {
    "w": "http://schemas.openxmlformats.org/wordprocessingml/2006/main",
    "r": "http://schemas.openxmlformats.org/officeDocument/2006/relationships",
    "a": "http://schemas.openxmlformats.org/drawingml/2006/main",
    "pic": "http://schemas.openxmlformats.org/drawingml/2006/picture",
    "wp": "http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing",
    "v": "urn:schemas-microsoft-com:vml",
    "rel": "http://schemas.openxmlformats.org/package/2006/relationships",
    "ct": "http://schemas.openxmlformats.org/package/2006/content-types",
    "cp": "http://schemas.openxmlformats.org/package/2006/metadata/core-properties",
    "dc": "http://purl.org/dc/elements/1.1/",
    "dcterms": "http://purl.org/dc/terms/",
    "xml": "http://www.w3.org/XML/1998/namespace",
}

DOCUMENT_PART = "word/document.xml"
DOCUMENT_RELS_PART = "word/_rels/document.xml.rels"
NUMBERING_PART = "word/numbering.xml"
STYLES_PART = "word/styles.xml"
CORE_PART = "docProps/core.xml"
CONTENT_TYPES_PART = "[Content_Types].xml"

REL_IMAGE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/image"
REL_HYPERLINK = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/hyperlink"
REL_NUMBERING = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/numbering"
REL_STYLES = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/styles"
CT_NUMBERING = "application/vnd.openxmlformats-officedocument.wordprocessingml.numbering+xml"

MONOSPACE_FONTS = frozenset(
    {"courier", "courier new", "consolas", "menlo", "monaco", "lucida console", "source code pro", "monospace"}
)

_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=False)


def qn(tag: str) -> str:
    prefix, _, local = tag.partition(":")
    return f"{{{NS[prefix]}}}{local}"


def parse_xml(data: bytes, part: str) -> etree._Element:
    try:
        return etree.fromstring(data, _PARSER)
    except etree.XMLSyntaxError as exc:
        raise InvalidContainer(f"Malformed XML in part {part}: {exc}") from exc


def serialize_xml(element: etree._Element) -> bytes:
    return etree.tostring(element, xml_declaration=True, encoding="UTF-8", standalone=True)


def open_package(data: bytes) -> dict[str, bytes]:
    """Read every part of a ZIP container into memory."""

    if not isinstance(data, (bytes, bytearray)):
        raise InvalidContainer(f"Container payload must be bytes, got {type(data).__name__}")
    try:
        with zipfile.ZipFile(io.BytesIO(bytes(data))) as archive:
            parts = {info.filename: archive.read(info) for info in archive.infolist() if not info.is_dir()}
    except (zipfile.BadZipFile, zipfile.LargeZipFile, EOFError, OSError) as exc:
        raise InvalidContainer(f"Payload is not a readable ZIP container: {exc}") from exc
    if DOCUMENT_PART not in parts:
        raise InvalidContainer(f"Container has no {DOCUMENT_PART} part")
    return parts


def build_package(parts: Mapping[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    ordered = sorted(parts, key=lambda name: (name != CONTENT_TYPES_PART, name))
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name in ordered:
            archive.writestr(name, parts[name])
    return buffer.getvalue()


def resolve_target(base_part: str, target: str) -> str:
    if target.startswith("/"):
        return target.lstrip("/")
    return posixpath.normpath(posixpath.join(posixpath.dirname(base_part), target))


def read_relationships(parts: Mapping[str, bytes], rels_part: str = DOCUMENT_RELS_PART) -> dict[str, dict[str, str]]:
    raw = parts.get(rels_part)
    if raw is None:
        return {}
    root = parse_xml(raw, rels_part)
    relationships: dict[str, dict[str, str]] = {}
    for rel in root.findall(qn("rel:Relationship")):
        relationships[rel.get("Id", "")] = {
            "type": rel.get("Type", ""),
            "target": rel.get("Target", ""),
            "mode": rel.get("TargetMode", "Internal"),
        }
    return relationships


def is_monospace(font: str | None) -> bool:
    if not font:
        return False
    lowered = font.lower()
    return lowered in MONOSPACE_FONTS or "mono" in lowered or "code" in lowered


__all__ = [
    "CONTENT_TYPES_PART",
    "CORE_PART",
    "CT_NUMBERING",
    "DOCUMENT_PART",
    "DOCUMENT_RELS_PART",
    "NS",
    "NUMBERING_PART",
    "REL_HYPERLINK",
    "REL_IMAGE",
    "REL_NUMBERING",
    "REL_STYLES",
    "STYLES_PART",
    "build_package",
    "is_monospace",
    "open_package",
    "parse_xml",
    "qn",
    "read_relationships",
    "resolve_target",
    "serialize_xml",
]
