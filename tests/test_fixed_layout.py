from __future__ import annotations

import threading

import pytest

from conftest import StubPreviewer
from document_converter.errors import InvalidContainer
from document_converter.fixed_layout import (
    FixedLayoutCodec,
    MarkitdownPreviewer,
    PlaceholderTypesetter,
    ensure_trailer,
    page_dimensions,
    select_typesetter,
)
from document_converter.models import ConversionOptions, ConversionWarning


class FailingTypesetter:
    name = "broken"
    degraded = False

    def render(self, html, title, options):
        raise RuntimeError("font cache missing")


class SilentTypesetter:
    name = "silent"
    degraded = False

    def render(self, html, title, options):
        return b"not a pdf"


class SlowPreviewer:
    def __init__(self) -> None:
        self.release = threading.Event()

    def preview(self, data, options):
        self.release.wait(5)
        return "<p>late</p>", []


def _codec(typesetter=None, previewer=None, **kwargs) -> FixedLayoutCodec:
    return FixedLayoutCodec(typesetter or PlaceholderTypesetter(), previewer or StubPreviewer(), **kwargs)


def test_placeholder_output_is_a_valid_pdf_shell():
    data, warnings = _codec().any_to_fixed_layout("<h1>Quarterly</h1><p>Numbers went up.</p>")
    assert data.startswith(b"%PDF-")
    assert data.endswith(b"%%EOF\n")
    assert b"(Quarterly) Tj" in data
    assert b"(Numbers went up.) Tj" in data
    assert [w.code for w in warnings] == ["DEGRADED_RENDERING"]


def test_markdown_input_is_typeset_through_hypertext():
    data, _ = _codec().any_to_fixed_layout("# From markdown\n\nBody line")
    assert b"/Title (From markdown)" in data
    assert b"(Body line) Tj" in data


def test_title_option_and_default_title():
    data, _ = _codec().any_to_fixed_layout("<p>x</p>", ConversionOptions(title="Chosen (draft)"))
    assert b"/Title (Chosen \\(draft\\))" in data
    empty, _ = _codec().any_to_fixed_layout("")
    assert b"/Title (Document)" in empty


def test_failing_backend_falls_back_to_placeholder():
    data, warnings = _codec(FailingTypesetter()).any_to_fixed_layout("<p>content</p>")
    assert data.startswith(b"%PDF-")
    assert data.endswith(b"%%EOF\n")
    assert len(warnings) == 1
    assert warnings[0].code == "DEGRADED_RENDERING"
    assert "font cache missing" in warnings[0].message


def test_backend_without_signature_falls_back():
    data, warnings = _codec(SilentTypesetter()).any_to_fixed_layout("<p>content</p>")
    assert data.startswith(b"%PDF-")
    assert [w.code for w in warnings] == ["DEGRADED_RENDERING"]


def test_reading_requires_the_signature():
    with pytest.raises(InvalidContainer):
        _codec().fixed_layout_to_hyper(b"PK\x03\x04")


def test_reading_delegates_to_the_previewer():
    previewer = StubPreviewer("<p>hello</p>", [ConversionWarning("PARTIAL_EXTRACTION", "thin")])
    html, warnings = _codec(previewer=previewer).fixed_layout_to_hyper(b"%PDF-1.4\n%%EOF\n")
    assert html == "<p>hello</p>"
    assert [w.code for w in warnings] == ["PARTIAL_EXTRACTION"]
    assert previewer.calls == 1


def test_default_previewer_is_resolved_at_construction():
    pytest.importorskip("markitdown")
    codec = FixedLayoutCodec(PlaceholderTypesetter())
    previewer = codec.previewer
    assert isinstance(previewer, MarkitdownPreviewer)
    assert codec.previewer is previewer


def test_slow_preview_degrades_to_partial_extraction():
    previewer = SlowPreviewer()
    try:
        html, warnings = _codec(previewer=previewer).fixed_layout_to_hyper(
            b"%PDF-1.4\n%%EOF\n", ConversionOptions(preview_timeout_s=0.05)
        )
    finally:
        previewer.release.set()
    assert html == ""
    assert [w.code for w in warnings] == ["PARTIAL_EXTRACTION"]


def test_codec_default_timeout_is_used():
    previewer = SlowPreviewer()
    try:
        html, warnings = _codec(previewer=previewer, preview_timeout_s=0.05).fixed_layout_to_hyper(b"%PDF-1.7")
    finally:
        previewer.release.set()
    assert html == ""
    assert "0.05s" in warnings[0].message


def test_ensure_trailer():
    assert ensure_trailer(b"%PDF-1.4\nbody") == b"%PDF-1.4\nbody\n%%EOF\n"
    assert ensure_trailer(b"%PDF-1.4\n%%EOF") == b"%PDF-1.4\n%%EOF\n"
    assert ensure_trailer(b"%PDF-1.4\n%%EOF\r\n\r\n") == b"%PDF-1.4\n%%EOF\n"


def test_page_sizes_and_backend_selection():
    assert page_dimensions("Letter") == (612.0, 792.0)
    with pytest.raises(ValueError):
        page_dimensions("A0")
    assert isinstance(select_typesetter("placeholder"), PlaceholderTypesetter)
    with pytest.raises(ValueError):
        select_typesetter("latex")


def test_placeholder_body_is_clipped_to_one_page():
    html = "".join(f"<p>line {n}</p>" for n in range(500))
    lines = PlaceholderTypesetter().body_lines(html)
    assert 0 < len(lines) < 500


def test_reportlab_backend_renders_structure():
    pytest.importorskip("reportlab")
    from document_converter.fixed_layout import ReportlabTypesetter

    html = (
        "<h1>Report</h1><p>Intro with <strong>bold</strong> &amp; <a href='https://example.com'>link</a>.</p>"
        "<ul><li>one</li><li>two</li></ul><pre><code>x = 1</code></pre>"
        "<table><tr><th>A</th><th>B</th></tr><tr><td>1</td></tr></table><blockquote><p>quote</p></blockquote><hr>"
    )
    data, warnings = FixedLayoutCodec(ReportlabTypesetter("letter"), StubPreviewer()).any_to_fixed_layout(html)
    assert warnings == []
    assert data.startswith(b"%PDF-")
    assert data.endswith(b"%%EOF\n")
