from __future__ import annotations

import io
import struct
import zipfile

import pytest

from document_converter.container import ContainerReader, ContainerWriter
from document_converter.fixed_layout import FixedLayoutCodec, PlaceholderTypesetter
from document_converter.models import ConversionOptions, ConversionWarning
from document_converter.router import ConversionRouter, build_default_transforms
from document_converter.transcoder import MarkupTranscoder

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
R_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
WP_NS = "http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing"
A_NS = "http://schemas.openxmlformats.org/drawingml/2006/main"
PIC_NS = "http://schemas.openxmlformats.org/drawingml/2006/picture"
IMAGE_REL = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/image"

CONTENT_TYPES = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">
<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>
<Default Extension="xml" ContentType="application/xml"/>
<Default Extension="png" ContentType="image/png"/>
<Override PartName="/word/document.xml" ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>
</Types>"""

PACKAGE_RELS = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">
<Relationship Id="rId1" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument" Target="word/document.xml"/>
</Relationships>"""


def png_bytes(width: int = 2, height: int = 3) -> bytes:
    """Header-only PNG: enough for sniffing and sizing."""

    return b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + struct.pack(">II", width, height) + b"\x08\x06\x00\x00\x00" + b"\x00" * 4


def drawing_xml(rel_id: str, number: int, alt: str = "") -> str:
    return (
        f'<w:r><w:drawing><wp:inline><wp:extent cx="19050" cy="28575"/>'
        f'<wp:docPr id="{number}" name="Picture {number}" descr="{alt}"/>'
        f'<a:graphic><a:graphicData uri="{PIC_NS}"><pic:pic><pic:blipFill>'
        f'<a:blip r:embed="{rel_id}"/></pic:blipFill></pic:pic></a:graphicData></a:graphic>'
        "</wp:inline></w:drawing></w:r>"
    )


def build_docx(body: str, *, media: dict[str, bytes] | None = None, extra_parts: dict[str, str] | None = None) -> bytes:
    """Assemble a minimal DOCX around ``body`` (the inner XML of ``w:body``)."""

    media = media or {}
    rels = "".join(
        f'<Relationship Id="{rel_id}" Type="{IMAGE_REL}" Target="media/{rel_id}.png"/>' for rel_id in media
    )
    document = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f'<w:document xmlns:w="{W_NS}" xmlns:r="{R_NS}" xmlns:wp="{WP_NS}" xmlns:a="{A_NS}" xmlns:pic="{PIC_NS}">'
        f"<w:body>{body}</w:body></w:document>"
    )
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("[Content_Types].xml", CONTENT_TYPES)
        archive.writestr("_rels/.rels", PACKAGE_RELS)
        archive.writestr("word/document.xml", document)
        archive.writestr(
            "word/_rels/document.xml.rels",
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
            f'<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">{rels}</Relationships>',
        )
        for rel_id, data in media.items():
            archive.writestr(f"word/media/{rel_id}.png", data)
        for name, content in (extra_parts or {}).items():
            archive.writestr(name, content)
    return buffer.getvalue()


class StubPreviewer:
    def __init__(self, html: str = "<p>Extracted text</p>", warnings: list[ConversionWarning] | None = None) -> None:
        self.html = html
        self.warnings = warnings or []
        self.calls = 0

    def preview(self, data: bytes, options: ConversionOptions) -> tuple[str, list[ConversionWarning]]:
        self.calls += 1
        return self.html, list(self.warnings)


@pytest.fixture
def transcoder() -> MarkupTranscoder:
    return MarkupTranscoder()


@pytest.fixture
def previewer() -> StubPreviewer:
    return StubPreviewer()


@pytest.fixture
def router(transcoder: MarkupTranscoder, previewer: StubPreviewer) -> ConversionRouter:
    fixed_layout = FixedLayoutCodec(PlaceholderTypesetter(transcoder=transcoder), previewer, transcoder=transcoder)
    transforms = build_default_transforms(
        transcoder=transcoder,
        reader=ContainerReader(),
        writer=ContainerWriter(),
        fixed_layout=fixed_layout,
    )
    return ConversionRouter(transforms)
