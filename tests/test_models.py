import pytest

from document_converter.errors import BindingError, IoFailure, MissingTemplate, UnsupportedConversion
from document_converter.models import (
    ConversionResult,
    DegradedRendering,
    Format,
    ImagesDropped,
    PartialExtraction,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [("md", Format.LIGHT_MARKUP), (".HTML", Format.HYPER_MARKUP), ("markdown", Format.LIGHT_MARKUP),
     ("word", Format.COMPOUND_CONTAINER), ("fixed_layout", Format.FIXED_LAYOUT), (Format.PLAIN_TEXT, Format.PLAIN_TEXT)],
)
def test_format_parse(value, expected):
    assert Format.parse(value) is expected


def test_format_properties():
    assert Format.COMPOUND_CONTAINER.is_binary
    assert Format.HYPER_MARKUP.is_textual
    assert Format.FIXED_LAYOUT.extension == ".pdf"
    assert Format.FIXED_LAYOUT.mime_type == "application/pdf"
    with pytest.raises(ValueError):
        Format.parse("odt")


def test_result_carries_payload_or_error():
    with pytest.raises(ValueError):
        ConversionResult(Format.PLAIN_TEXT, Format.LIGHT_MARKUP)
    error = UnsupportedConversion(Format.PLAIN_TEXT, Format.LIGHT_MARKUP)
    with pytest.raises(ValueError):
        ConversionResult(Format.PLAIN_TEXT, Format.LIGHT_MARKUP, payload="x", error=error)
    failed = ConversionResult(Format.PLAIN_TEXT, Format.LIGHT_MARKUP, error=error)
    assert not failed.ok
    with pytest.raises(UnsupportedConversion):
        failed.raise_for_error()


def test_warning_variants():
    assert str(ImagesDropped(3)) == "IMAGES_DROPPED: 3 embedded image(s) dropped"
    assert DegradedRendering().code == "DEGRADED_RENDERING"
    assert PartialExtraction("timed out").message == "timed out"


def test_error_tags_and_description():
    error = MissingTemplate("memo")
    error.annotate("html->docx", (Format.HYPER_MARKUP, Format.COMPOUND_CONTAINER))
    error.annotate("convert", (Format.LIGHT_MARKUP, Format.COMPOUND_CONTAINER))
    assert error.code == "MISSING_TEMPLATE"
    assert error.pair == (Format.HYPER_MARKUP, Format.COMPOUND_CONTAINER)
    assert error.describe() == (
        "MISSING_TEMPLATE [html->docx <- convert] (html->docx): Container blueprint not found: 'memo'"
    )
    assert BindingError("title").code == "BINDING_ERROR"
    assert IoFailure("/tmp/x").path.name == "x"
