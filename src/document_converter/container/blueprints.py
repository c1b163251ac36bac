"""Container blueprint stores.

A blueprint is an existing DOCX package holding ``{{ name }}`` placeholders.
The engine only ever reads blueprints; binding happens on a copy.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Mapping, Protocol

from ..errors import MissingTemplate
from .ooxml import NS, REL_NUMBERING, REL_STYLES, build_package

DEFAULT_BLUEPRINT = "default"


class BlueprintStore(Protocol):
    def get_blueprint(self, reference: str) -> bytes:  # pragma: no cover - interface
        ...


class MappingBlueprintStore:
    def __init__(self, blueprints: Mapping[str, bytes]) -> None:
        self._blueprints = dict(blueprints)

    def get_blueprint(self, reference: str) -> bytes:
        try:
            return self._blueprints[reference]
        except KeyError as exc:
            raise MissingTemplate(reference) from exc


class DirectoryBlueprintStore:
    """Looks up ``<root>/<ref>.docx`` or ``<root>/<ref>/<ref>.docx``."""

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    def _candidates(self, reference: str) -> list[Path]:
        return [self._root / f"{reference}.docx", self._root / reference / f"{reference}.docx"]

    def get_blueprint(self, reference: str) -> bytes:
        root = self._root.resolve()
        for candidate in self._candidates(reference):
            resolved = candidate.resolve()
            if not resolved.is_relative_to(root):
                raise MissingTemplate(reference, f"Blueprint reference escapes the store: {reference!r}")
            if resolved.is_file():
                try:
                    return resolved.read_bytes()
                except OSError as exc:
                    raise MissingTemplate(reference, f"Blueprint {reference!r} unreadable: {exc}") from exc
        raise MissingTemplate(reference)


class BuiltinBlueprintStore:
    def get_blueprint(self, reference: str) -> bytes:
        if reference != DEFAULT_BLUEPRINT:
            raise MissingTemplate(reference)
        return default_blueprint()


class ChainedBlueprintStore:
    def __init__(self, *stores: BlueprintStore) -> None:
        self._stores = stores

    def get_blueprint(self, reference: str) -> bytes:
        for store in self._stores:
            try:
                return store.get_blueprint(reference)
            except MissingTemplate:
                continue
        raise MissingTemplate(reference)


_W = NS["w"]
_R = NS["r"]

_CONTENT_TYPES = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">
<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>
<Default Extension="xml" ContentType="application/xml"/>
<Default Extension="png" ContentType="image/png"/>
<Default Extension="jpeg" ContentType="image/jpeg"/>
<Default Extension="gif" ContentType="image/gif"/>
<Override PartName="/word/document.xml" ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>
<Override PartName="/word/styles.xml" ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.styles+xml"/>
<Override PartName="/word/numbering.xml" ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.numbering+xml"/>
<Override PartName="/docProps/core.xml" ContentType="application/vnd.openxmlformats-package.core-properties+xml"/>
</Types>"""

_PACKAGE_RELS = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">
<Relationship Id="rId1" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument" Target="word/document.xml"/>
<Relationship Id="rId2" Type="http://schemas.openxmlformats.org/package/2006/relationships/metadata/core-properties" Target="docProps/core.xml"/>
</Relationships>"""

_DOCUMENT_RELS = f"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">
<Relationship Id="rId1" Type="{REL_STYLES}" Target="styles.xml"/>
<Relationship Id="rId2" Type="{REL_NUMBERING}" Target="numbering.xml"/>
</Relationships>"""

_DOCUMENT = f"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<w:document xmlns:w="{_W}" xmlns:r="{_R}">
<w:body>
<w:p><w:pPr><w:pStyle w:val="Title"/></w:pPr><w:r><w:t>{{{{title}}}}</w:t></w:r></w:p>
<w:p><w:pPr><w:pStyle w:val="Subtitle"/></w:pPr><w:r><w:t xml:space="preserve">By {{{{author | Unknown Author}}}}</w:t></w:r></w:p>
<w:p><w:r><w:t>{{{{content}}}}</w:t></w:r></w:p>
<w:sectPr><w:pgSz w:w="11906" w:h="16838"/><w:pgMar w:top="1440" w:right="1440" w:bottom="1440" w:left="1440" w:header="708" w:footer="708" w:gutter="0"/></w:sectPr>
</w:body>
</w:document>"""


def _style(style_id: str, name: str, run: str = "", paragraph: str = "") -> str:
    ppr = f"<w:pPr>{paragraph}</w:pPr>" if paragraph else ""
    rpr = f"<w:rPr>{run}</w:rPr>" if run else ""
    return (
        f'<w:style w:type="paragraph" w:styleId="{style_id}"><w:name w:val="{name}"/>'
        f'<w:basedOn w:val="Normal"/><w:qFormat/>{ppr}{rpr}</w:style>'
    )


_HEADING_SIZES = {1: 32, 2: 28, 3: 26, 4: 24, 5: 22, 6: 22}

_STYLES = (
    f'<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n<w:styles xmlns:w="{_W}">'
    '<w:style w:type="paragraph" w:default="1" w:styleId="Normal"><w:name w:val="Normal"/><w:qFormat/>'
    '<w:pPr><w:spacing w:after="160"/></w:pPr><w:rPr><w:rFonts w:ascii="Calibri" w:hAnsi="Calibri"/>'
    '<w:sz w:val="22"/></w:rPr></w:style>'
    + _style("Title", "Title", '<w:b/><w:sz w:val="48"/>')
    + _style("Subtitle", "Subtitle", '<w:i/><w:color w:val="595959"/>')
    + "".join(
        _style(f"Heading{level}", f"heading {level}", f'<w:b/><w:sz w:val="{size}"/>',
               f'<w:keepNext/><w:outlineLvl w:val="{level - 1}"/>')
        for level, size in _HEADING_SIZES.items()
    )
    + _style("ListParagraph", "List Paragraph", paragraph='<w:ind w:left="720"/>')
    + _style("Quote", "Quote", '<w:i/>', '<w:ind w:left="720"/>')
    + _style("SourceCode", "Source Code", '<w:rFonts w:ascii="Courier New" w:hAnsi="Courier New"/><w:sz w:val="20"/>')
    + '<w:style w:type="character" w:styleId="Hyperlink"><w:name w:val="Hyperlink"/>'
    '<w:rPr><w:color w:val="0563C1"/><w:u w:val="single"/></w:rPr></w:style>'
    '<w:style w:type="table" w:styleId="TableGrid"><w:name w:val="Table Grid"/><w:tblPr><w:tblBorders>'
    '<w:top w:val="single" w:sz="4"/><w:left w:val="single" w:sz="4"/><w:bottom w:val="single" w:sz="4"/>'
    '<w:right w:val="single" w:sz="4"/><w:insideH w:val="single" w:sz="4"/><w:insideV w:val="single" w:sz="4"/>'
    "</w:tblBorders></w:tblPr></w:style>"
    "</w:styles>"
)


def numbering_levels(fmt: str) -> str:
    levels = []
    for level in range(9):
        text = "•" if fmt == "bullet" else f"%{level + 1}."
        levels.append(
            f'<w:lvl w:ilvl="{level}"><w:start w:val="1"/><w:numFmt w:val="{fmt}"/>'
            f'<w:lvlText w:val="{text}"/><w:lvlJc w:val="left"/>'
            f'<w:pPr><w:ind w:left="{720 * (level + 1)}" w:hanging="360"/></w:pPr></w:lvl>'
        )
    return "".join(levels)


_NUMBERING = (
    f'<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n<w:numbering xmlns:w="{_W}">'
    f'<w:abstractNum w:abstractNumId="0">{numbering_levels("bullet")}</w:abstractNum>'
    f'<w:abstractNum w:abstractNumId="1">{numbering_levels("decimal")}</w:abstractNum>'
    '<w:num w:numId="1"><w:abstractNumId w:val="0"/></w:num>'
    '<w:num w:numId="2"><w:abstractNumId w:val="1"/></w:num>'
    "</w:numbering>"
)

_CORE = f"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<cp:coreProperties xmlns:cp="{NS['cp']}" xmlns:dc="{NS['dc']}" xmlns:dcterms="{NS['dcterms']}">
<dc:title>{{{{title}}}}</dc:title>
<dc:creator>{{{{author | Unknown Author}}}}</dc:creator>
</cp:coreProperties>"""


@lru_cache(maxsize=1)
def default_blueprint() -> bytes:
    """The built-in blueprint: a title, an author line and the content body."""

    return build_package(
        {
            "[Content_Types].xml": _CONTENT_TYPES.encode("utf-8"),
            "_rels/.rels": _PACKAGE_RELS.encode("utf-8"),
            "word/document.xml": _DOCUMENT.encode("utf-8"),
            "word/_rels/document.xml.rels": _DOCUMENT_RELS.encode("utf-8"),
            "word/styles.xml": _STYLES.encode("utf-8"),
            "word/numbering.xml": _NUMBERING.encode("utf-8"),
            "docProps/core.xml": _CORE.encode("utf-8"),
        }
    )


__all__ = [
    "BlueprintStore",
    "BuiltinBlueprintStore",
    "ChainedBlueprintStore",
    "DEFAULT_BLUEPRINT",
    "DirectoryBlueprintStore",
    "MappingBlueprintStore",
    "default_blueprint",
    "numbering_levels",
]
