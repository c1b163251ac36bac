import pytest

from document_converter.detection import (
    DetectionError,
    detect_format,
    detect_format_from_content,
)
from document_converter.models import Format


def test_detect_format_html(tmp_path):
    sample = tmp_path / "sample.html"
    sample.write_text("<html><body>Hi</body></html>")
    result = detect_format(sample)
    assert result.format == Format.HYPER_MARKUP
    assert result.mime_type == "text/html"
    assert result.extension == ".html"


def test_detect_format_unknown_extension(tmp_path):
    sample = tmp_path / "sample.xyz"
    sample.write_text("dummy")
    with pytest.raises(DetectionError) as exc:
        detect_format(sample)
    assert "Unsupported file extension" in str(exc.value)


def test_detect_format_sniff_mismatch(tmp_path):
    sample = tmp_path / "fake.pdf"
    sample.write_text("just text")
    with pytest.raises(DetectionError) as exc:
        detect_format(sample)
    assert "Content sniff mismatch" in str(exc.value)


def test_detect_format_docx_requires_zip(tmp_path):
    sample = tmp_path / "report.docx"
    sample.write_bytes(b"plain bytes")
    with pytest.raises(DetectionError):
        detect_format(sample)


def test_markdown_extension_accepts_any_text(tmp_path):
    sample = tmp_path / "notes.markdown"
    sample.write_text("plain words")
    assert detect_format(sample).format == Format.LIGHT_MARKUP


@pytest.mark.parametrize(
    ("payload", "expected"),
    [
        (b"%PDF-1.7 ...", Format.FIXED_LAYOUT),
        (b"PK\x03\x04rest", Format.COMPOUND_CONTAINER),
        ("<!DOCTYPE html><html></html>", Format.HYPER_MARKUP),
        ("# Heading\n\ntext", Format.LIGHT_MARKUP),
        ("just some words", Format.PLAIN_TEXT),
        (b"\xff\xfe\x00\x01", Format.COMPOUND_CONTAINER),
    ],
)
def test_detect_format_from_content(payload, expected):
    assert detect_format_from_content(payload).format == expected


def test_content_guess_confidence_orders_signatures_first():
    assert detect_format_from_content(b"%PDF-1.4").confidence > detect_format_from_content("plain").confidence
