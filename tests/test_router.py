from __future__ import annotations

import pytest

from conftest import build_docx, drawing_xml
from document_converter.errors import InvalidContainer, IoFailure, MalformedMarkup, UnsupportedConversion
from document_converter.logging import RunLogger, read_log
from document_converter.models import ConversionOptions, ConversionWarning, Format, Heading
from document_converter.router import ConversionRouter

TXT, MD, HTML, DOCX, PDF = Format


@pytest.mark.parametrize(
    ("fmt", "payload"),
    [
        (TXT, "plain words"),
        (MD, "# Title\n"),
        (HTML, "<p>kept</p>"),
        (DOCX, b"PK\x03\x04 not inspected"),
        (PDF, b"%PDF-1.4 not inspected"),
    ],
)
def test_identity_returns_payload_unchanged(router, previewer, fmt, payload):
    result = router.convert(payload, fmt, fmt)
    assert result.ok
    assert result.payload == payload
    assert result.hops == [fmt]
    assert result.warnings == []
    assert previewer.calls == 0


def test_every_distinct_pair_is_reachable(router):
    pairs = router.supported_pairs()
    assert len(pairs) == 20
    for source, target, path in pairs:
        assert path[0] is source
        assert path[-1] is target


@pytest.mark.parametrize(
    ("source", "target", "expected"),
    [
        (MD, HTML, [MD, HTML]),
        (TXT, HTML, [TXT, MD, HTML]),
        (TXT, DOCX, [TXT, MD, HTML, DOCX]),
        (DOCX, MD, [DOCX, HTML, MD]),
        (DOCX, TXT, [DOCX, TXT]),
        (PDF, TXT, [PDF, HTML, TXT]),
        (MD, TXT, [MD, HTML, TXT]),
        (HTML, PDF, [HTML, PDF]),
    ],
)
def test_plan_prefers_direct_then_hub(router, source, target, expected):
    assert router.plan(source, target) == expected


def test_unknown_format_name_is_rejected(router):
    with pytest.raises(ValueError):
        router.convert("x", "rtf", "md")


def test_light_to_hyper_scenario(router):
    result = router.convert("# Hello\n\nWorld", "md", "html")
    assert "<h1>Hello</h1>" in result.payload
    assert "<p>World</p>" in result.payload


def test_hyper_to_light_scenario(router):
    result = router.convert("<h2>Section</h2><p>Text</p>", "html", "md")
    assert result.payload == "## Section\n\nText\n"


def test_warnings_accumulate_across_hops():
    def first(payload, options):
        return payload + "!", [ConversionWarning("FIRST", "from the first hop")]

    def second(payload, options):
        return payload + "?", [ConversionWarning("SECOND", "from the second hop")]

    router = ConversionRouter({(TXT, HTML): first, (HTML, MD): second})
    result = router.convert("go", TXT, MD)
    assert result.payload == "go!?"
    assert result.hops == [TXT, HTML, MD]
    assert result.warning_codes == ["FIRST", "SECOND"]


def test_container_warnings_reach_the_caller(router):
    body = "<w:p>" + "".join(drawing_xml(f"rId{n}", n) for n in range(1, 4)) + "</w:p><w:p><w:r><w:t>Caption</w:t></w:r></w:p>"
    result = router.convert(build_docx(body), DOCX, MD)
    assert result.ok
    assert result.warning_codes == ["IMAGES_DROPPED"]
    assert "Caption" in result.payload


def test_unsupported_pair_in_a_restricted_table():
    router = ConversionRouter({(TXT, MD): lambda payload, options: (payload, [])})
    with pytest.raises(UnsupportedConversion):
        router.plan(MD, DOCX)
    result = router.convert("# Title", MD, DOCX)
    assert isinstance(result.error, UnsupportedConversion)
    assert result.error.code == "UNSUPPORTED_CONVERSION"
    assert result.payload is None


def test_stage_errors_are_annotated(router):
    result = router.convert(b"not a zip archive", DOCX, MD)
    error = result.error
    assert isinstance(error, InvalidContainer)
    assert error.stages == ["docx->html", "convert"]
    assert error.pair == (DOCX, HTML)
    assert error.describe().startswith("INVALID_CONTAINER [docx->html <- convert] (docx->html)")


def test_foreign_exceptions_are_wrapped_with_cause():
    def explode(payload, options):
        raise ValueError("bad input")

    router = ConversionRouter({(TXT, MD): explode})
    result = router.convert("x", TXT, MD)
    assert isinstance(result.error, MalformedMarkup)
    assert isinstance(result.error.__cause__, ValueError)
    assert result.error.stages == ["txt->md", "convert"]


def test_wrong_payload_type_is_a_result_error(router):
    result = router.convert(b"# bytes", MD, HTML)
    assert isinstance(result.error, MalformedMarkup)
    assert result.error.stages == ["validate", "convert"]

    result = router.convert("text", DOCX, HTML)
    assert isinstance(result.error, InvalidContainer)


def test_output_destination_is_written(router, tmp_path):
    destination = tmp_path / "out" / "note.html"
    result = router.convert("# Hi", MD, HTML, ConversionOptions(output_destination=destination))
    assert result.destination == destination
    assert destination.read_text(encoding="utf-8") == result.payload


def test_binary_destination_is_written(router, tmp_path):
    destination = tmp_path / "note.pdf"
    result = router.convert("# Hi", MD, PDF, ConversionOptions(output_destination=destination))
    assert destination.read_bytes() == result.payload
    assert destination.read_bytes().startswith(b"%PDF-")


def test_unwritable_destination_reports_io_failure(router, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory", encoding="utf-8")
    result = router.convert("# Hi", MD, HTML, ConversionOptions(output_destination=blocker / "note.html"))
    assert isinstance(result.error, IoFailure)
    assert result.error.stages == ["write", "convert"]
    assert result.payload is None


def test_run_logger_records_each_call(tmp_path):
    log_file = tmp_path / "log.jsonl"
    router = ConversionRouter(
        {(TXT, MD): lambda payload, options: (payload, [ConversionWarning("NOTE", "logged")])},
        run_logger=RunLogger(log_file),
    )
    router.convert("hello", TXT, MD)
    router.convert("hello", MD, TXT)

    entries = read_log(log_file)
    assert [entry["status"] for entry in entries] == ["success", "failure"]
    assert entries[0]["hops"] == ["txt", "md"]
    assert entries[0]["warnings"] == ["NOTE: logged"]
    assert entries[0]["size_bytes"] == 5
    assert entries[0]["timings"][0]["source"] == "txt"
    assert entries[1]["error_code"] == "UNSUPPORTED_CONVERSION"
    assert entries[1]["run_id"] != entries[0]["run_id"]


def test_structural_outline_from_markdown(router):
    outline = router.structural_outline("# Title\n\nOne sentence. Two sentences.\n\n## Part\n\nMore.", MD)
    assert outline.titles == ["Title", "Part"]
    assert outline.paragraph_count == 2
    assert outline.sentence_count == 3


def test_structural_outline_from_container_styles(router):
    body = (
        '<w:p><w:pPr><w:pStyle w:val="Title"/></w:pPr><w:r><w:t>Handbook</w:t></w:r></w:p>'
        '<w:p><w:pPr><w:pStyle w:val="Heading2"/></w:pPr><w:r><w:t>Setup</w:t></w:r></w:p>'
        "<w:p><w:r><w:t>Install it. Run it.</w:t></w:r></w:p>"
    )
    outline = router.structural_outline(build_docx(body), DOCX)
    assert outline.headings == (Heading(1, "Handbook"), Heading(2, "Setup"))
    assert outline.paragraph_count == 1
    assert outline.sentence_count == 2


def test_package_level_helpers():
    import document_converter

    result = document_converter.convert("# Hello\n\nWorld", "md", "html")
    assert "<h1>Hello</h1>" in result.payload
    assert document_converter.structural_outline("<h2>Only</h2>", "html").titles == ["Only"]
    assert document_converter.default_router() is document_converter.default_router()
