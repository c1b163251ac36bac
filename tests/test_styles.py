from document_converter.styles import DEFAULT_STYLES, STYLE_MARKER, StyleInjector


def test_injection_is_idempotent():
    injector = StyleInjector()
    once = injector.inject("<html><head><title>x</title></head><body><p>hi</p></body></html>")
    twice = injector.inject(once)
    assert once == twice
    assert once.count(STYLE_MARKER) == 1


def test_reinjection_replaces_previous_overrides():
    injector = StyleInjector()
    first = injector.inject("<p>hi</p>", {"p": "color: red;"})
    second = injector.inject(first, {"p": "color: blue;"})
    assert "color: blue;" in second
    assert "color: red;" not in second
    assert second.count(STYLE_MARKER) == 1


def test_inserts_after_existing_head():
    html = StyleInjector().inject('<html><head lang="en"><meta charset="utf-8"></head><body></body></html>')
    assert html.index(STYLE_MARKER) > html.index("<head")
    assert html.index(STYLE_MARKER) < html.index("</head>")


def test_synthesises_head_inside_html():
    html = StyleInjector().inject("<html><body><p>x</p></body></html>")
    assert html.startswith("<html>\n<head>\n<style")
    assert "</head><body>" in html


def test_wraps_fragments_in_a_document():
    html = StyleInjector().inject("<p>fragment</p>")
    assert html.startswith("<!DOCTYPE html>")
    assert "<body>\n<p>fragment</p>\n</body>" in html


def test_user_styles_are_left_alone():
    html = "<html><head><style>p { margin: 0; }</style></head><body></body></html>"
    injected = StyleInjector().inject(html)
    assert "<style>p { margin: 0; }</style>" in injected
    assert injected.count("<style") == 2


def test_custom_defaults_and_merge():
    injector = StyleInjector({"body": "margin: 0;"})
    assert dict(injector.defaults) == {"body": "margin: 0;"}
    assert injector.merged({"h1": "color: red;"}) == {"body": "margin: 0;", "h1": "color: red;"}
    assert "body" in DEFAULT_STYLES
