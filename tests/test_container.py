from __future__ import annotations

import base64
import io
import zipfile

import pytest

from conftest import build_docx, drawing_xml, png_bytes
from document_converter.container import (
    BuiltinBlueprintStore,
    ChainedBlueprintStore,
    ContainerReader,
    ContainerWriter,
    DirectoryBlueprintStore,
    MappingBlueprintStore,
    bind_placeholders,
    default_blueprint,
    read_core_properties,
)
from document_converter.errors import BindingError, InvalidContainer, MissingTemplate
from document_converter.models import ConversionOptions


def _parts(data: bytes) -> dict[str, bytes]:
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        return {name: archive.read(name) for name in archive.namelist()}


def _three_images() -> bytes:
    body = (
        "<w:p><w:r><w:t>Gallery</w:t></w:r></w:p>"
        "<w:p>" + "".join(drawing_xml(f"rId{n}", n, alt=f"picture {n}") for n in range(1, 4)) + "</w:p>"
    )
    return build_docx(body, media={f"rId{n}": png_bytes() for n in range(1, 4)})


def test_round_trip_keeps_title_author_and_structure():
    html = "<h1>Q4 Report</h1><p>Revenue <strong>grew</strong>.</p><ul><li>north</li><li>south</li></ul>"
    data, warnings = ContainerWriter().hyper_to_container(html, ConversionOptions(metadata={"author": "A. Smith"}))
    assert warnings == []

    properties = read_core_properties(data)
    assert properties["title"] == "Q4 Report"
    assert properties["creator"] == "A. Smith"

    back, _ = ContainerReader().container_to_hyper(data)
    assert "<title>Q4 Report</title>" in back
    assert "<h1>Q4 Report</h1>" in back
    assert "<p>By A. Smith</p>" in back
    assert "<p>Revenue <strong>grew</strong>.</p>" in back
    assert "<ul><li>north</li><li>south</li></ul>" in back


def test_bound_metadata_reads_back_as_plain_text():
    options = ConversionOptions(metadata={"title": "Q4 Report", "author": "A. Smith"})
    data, _ = ContainerWriter().hyper_to_container("<p>body</p>", options)
    assert ContainerReader().container_to_plain_text(data) == "Q4 Report\nBy A. Smith\nbody\n"


def test_author_falls_back_to_default():
    data, _ = ContainerWriter().hyper_to_container("<h1>Untitled work</h1>")
    assert read_core_properties(data)["creator"] == "Unknown Author"


def test_images_are_dropped_with_a_count():
    html, warnings = ContainerReader().container_to_hyper(_three_images(), ConversionOptions(preserve_images=False))
    assert "<img" not in html
    assert [(w.code, w.message) for w in warnings] == [("IMAGES_DROPPED", "3 embedded image(s) dropped")]


def test_images_are_inlined_when_preserved():
    html, warnings = ContainerReader().container_to_hyper(_three_images(), ConversionOptions(preserve_images=True))
    assert warnings == []
    assert html.count('<img src="data:image/png;base64,') == 3
    assert 'alt="picture 2"' in html


def test_headings_lists_code_quotes_and_tables_are_read():
    body = (
        '<w:p><w:pPr><w:pStyle w:val="Heading2"/></w:pPr><w:r><w:t>Section</w:t></w:r></w:p>'
        '<w:p><w:pPr><w:outlineLvl w:val="2"/></w:pPr><w:r><w:t>Outline level</w:t></w:r></w:p>'
        '<w:p><w:r><w:rPr><w:rFonts w:ascii="Courier New"/></w:rPr><w:t>x = 1</w:t></w:r></w:p>'
        '<w:p><w:r><w:rPr><w:rFonts w:ascii="Consolas"/></w:rPr><w:t>y = 2</w:t></w:r></w:p>'
        '<w:p><w:pPr><w:pStyle w:val="Quote"/></w:pPr><w:r><w:t>Wise words</w:t></w:r></w:p>'
        "<w:tbl><w:tr><w:trPr><w:tblHeader/></w:trPr><w:tc><w:p><w:r><w:t>Name</w:t></w:r></w:p></w:tc></w:tr>"
        "<w:tr><w:tc><w:p><w:r><w:t>Ada</w:t></w:r></w:p></w:tc></w:tr></w:tbl>"
    )
    html, _ = ContainerReader().container_to_hyper(build_docx(body))
    assert "<h2>Section</h2>" in html
    assert "<h3>Outline level</h3>" in html
    assert "<pre><code>x = 1\ny = 2</code></pre>" in html
    assert "<blockquote><p>Wise words</p></blockquote>" in html
    assert "<table><tr><th>Name</th></tr><tr><td>Ada</td></tr></table>" in html


def test_plain_text_extraction():
    body = (
        "<w:p><w:r><w:t>First</w:t></w:r><w:r><w:tab/><w:t>tabbed</w:t></w:r></w:p>"
        "<w:tbl><w:tr><w:tc><w:p><w:r><w:t>a</w:t></w:r></w:p></w:tc>"
        "<w:tc><w:p><w:r><w:t>b</w:t></w:r></w:p></w:tc></w:tr></w:tbl>"
    )
    assert ContainerReader().container_to_plain_text(build_docx(body)) == "First\ttabbed\na\tb\n"


@pytest.mark.parametrize("payload", [b"", b"PK\x03\x04 truncated", b"%PDF-1.4 not a zip"])
def test_unreadable_containers(payload):
    with pytest.raises(InvalidContainer):
        ContainerReader().container_to_hyper(payload)


def test_container_without_document_part():
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("other.xml", "<x/>")
    with pytest.raises(InvalidContainer):
        ContainerReader().container_to_plain_text(buffer.getvalue())


def test_malformed_document_xml():
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("word/document.xml", "<w:document><unclosed>")
    with pytest.raises(InvalidContainer):
        ContainerReader().container_to_hyper(buffer.getvalue())


def test_missing_template_reference():
    with pytest.raises(MissingTemplate) as exc:
        ContainerWriter().hyper_to_container("<p>x</p>", ConversionOptions(template_reference="letterhead"))
    assert exc.value.reference == "letterhead"


def test_required_title_without_any_source_is_a_binding_error():
    with pytest.raises(BindingError) as exc:
        ContainerWriter().hyper_to_container("")
    assert exc.value.placeholder == "title"


def test_explicit_title_option_wins():
    data, _ = ContainerWriter().hyper_to_container("<h1>Heading</h1>", ConversionOptions(title="Chosen"))
    assert read_core_properties(data)["title"] == "Chosen"


def test_placeholders_split_across_runs_are_bound():
    blueprint = build_docx(
        "<w:p><w:r><w:t>Dear {{cli</w:t></w:r><w:r><w:t>ent}},</w:t></w:r></w:p>"
        "<w:p><w:r><w:t>{{content}}</w:t></w:r></w:p>"
    )
    writer = ContainerWriter(MappingBlueprintStore({"letter": blueprint}), "letter")
    data, _ = writer.hyper_to_container("<p>Body {{client}} text</p>", ConversionOptions(metadata={"client": "ACME"}))
    text = ContainerReader().container_to_plain_text(data)
    assert text == "Dear ACME,\nBody {{client}} text\n"


def test_missing_required_placeholder():
    blueprint = build_docx("<w:p><w:r><w:t>Ref: {{reference}}</w:t></w:r></w:p>")
    writer = ContainerWriter(MappingBlueprintStore({"memo": blueprint}), "memo")
    with pytest.raises(BindingError) as exc:
        writer.hyper_to_container("<p>x</p>")
    assert exc.value.placeholder == "reference"


def test_headers_are_bound():
    blueprint = build_docx(
        "<w:p><w:r><w:t>{{content}}</w:t></w:r></w:p>",
        extra_parts={
            "word/header1.xml": (
                '<w:hdr xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
                "<w:p><w:r><w:t>{{company | Internal}}</w:t></w:r></w:p></w:hdr>"
            )
        },
    )
    writer = ContainerWriter(MappingBlueprintStore({"branded": blueprint}), "branded")
    data, _ = writer.hyper_to_container("<p>x</p>")
    assert b"Internal" in _parts(data)["word/header1.xml"]


def test_lists_create_numbering_when_blueprint_has_none():
    blueprint = build_docx("<w:p><w:r><w:t>{{content}}</w:t></w:r></w:p>")
    writer = ContainerWriter(MappingBlueprintStore({"bare": blueprint}), "bare")
    data, _ = writer.hyper_to_container("<ol start=\"4\"><li>four</li><li>five</li></ol><ul><li>dot</li></ul>")
    parts = _parts(data)
    assert "word/numbering.xml" in parts
    assert b"numbering.xml" in parts["word/_rels/document.xml.rels"]
    assert b"/word/numbering.xml" in parts["[Content_Types].xml"]
    assert b'<w:startOverride w:val="4"/>' in parts["word/numbering.xml"]

    html, _ = ContainerReader().container_to_hyper(data)
    assert "<ol><li>four</li><li>five</li></ol>" in html
    assert "<ul><li>dot</li></ul>" in html


def test_embedded_images_are_written(tmp_path):
    image = png_bytes(100, 50)
    (tmp_path / "chart.png").write_bytes(image)
    html = (
        f'<p><img src="data:image/png;base64,{base64.b64encode(image).decode()}" alt="inline"></p>'
        '<p><img src="chart.png" alt="local"></p>'
        '<p><img src="https://example.com/remote.png" alt="remote"></p>'
    )
    data, warnings = ContainerWriter().hyper_to_container(html, ConversionOptions(title="Pics", image_base_path=tmp_path))
    parts = _parts(data)
    media = sorted(name for name in parts if name.startswith("word/media/"))
    assert media == ["word/media/image1.png", "word/media/image2.png"]
    assert b'cx="952500" cy="476250"' in parts["word/document.xml"]
    assert [w.code for w in warnings] == ["IMAGE_UNRESOLVED"]

    text = ContainerReader().container_to_plain_text(data)
    assert "remote" in text


def test_code_blocks_become_source_code_paragraphs():
    data, _ = ContainerWriter().hyper_to_container("<h1>Code</h1><pre><code>a = 1\nb = 2</code></pre>")
    html, _ = ContainerReader().container_to_hyper(data)
    assert "<pre><code>a = 1\nb = 2</code></pre>" in html


def test_bind_placeholders_defaults():
    assert bind_placeholders("{{ name | friend }} / {{name}}", {"name": "Ana"}) == "Ana / Ana"
    assert bind_placeholders("Hi {{ name | friend }}", {}) == "Hi friend"
    with pytest.raises(BindingError):
        bind_placeholders("Hi {{name}}", {})


def test_blueprint_stores(tmp_path):
    (tmp_path / "report.docx").write_bytes(b"report-bytes")
    (tmp_path / "nested").mkdir()
    (tmp_path / "nested" / "nested.docx").write_bytes(b"nested-bytes")
    directory = DirectoryBlueprintStore(tmp_path)
    assert directory.get_blueprint("report") == b"report-bytes"
    assert directory.get_blueprint("nested") == b"nested-bytes"
    with pytest.raises(MissingTemplate):
        directory.get_blueprint("../outside")

    chained = ChainedBlueprintStore(directory, BuiltinBlueprintStore())
    assert chained.get_blueprint("default") == default_blueprint()
    with pytest.raises(MissingTemplate):
        chained.get_blueprint("absent")
