"""Stylesheet injection for hypertext output."""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import Mapping

STYLE_MARKER = 'data-generator="document-converter"'

DEFAULT_STYLES: Mapping[str, str] = MappingProxyType(
    {
        "body": "font-family: Arial, sans-serif; line-height: 1.6; max-width: 800px; margin: 0 auto; padding: 20px;",
        "h1": "color: #2c3e50; border-bottom: 1px solid #eee; padding-bottom: 10px;",
        "h2": "color: #2c3e50; margin-top: 30px;",
        "h3": "color: #2c3e50;",
        "h4": "color: #2c3e50;",
        "h5": "color: #2c3e50;",
        "h6": "color: #2c3e50;",
        "p": "margin: 16px 0;",
        "a": "color: #3498db; text-decoration: none;",
        "a:hover": "text-decoration: underline;",
        "code": "background-color: #f7f7f7; padding: 2px 4px; border-radius: 4px; font-family: monospace;",
        "pre": "background-color: #f7f7f7; padding: 16px; border-radius: 4px; overflow-x: auto;",
        "pre code": "background-color: transparent; padding: 0;",
        "blockquote": "border-left: 4px solid #ddd; margin: 16px 0; padding-left: 16px; color: #666;",
        "table": "border-collapse: collapse; width: 100%;",
        "th, td": "border: 1px solid #ddd; padding: 8px; text-align: left;",
        "th": "background-color: #f2f2f2;",
        "img": "max-width: 100%; height: auto;",
    }
)

_EXISTING_BLOCK_RE = re.compile(
    r"<style\s+" + re.escape(STYLE_MARKER) + r"\s*>.*?</style>\n?", re.IGNORECASE | re.DOTALL
)
_HEAD_RE = re.compile(r"<head(\s[^>]*)?>", re.IGNORECASE)
_HTML_RE = re.compile(r"<html(\s[^>]*)?>", re.IGNORECASE)


class StyleInjector:
    def __init__(self, defaults: Mapping[str, str] | None = None) -> None:
        self._defaults = MappingProxyType(dict(DEFAULT_STYLES if defaults is None else defaults))

    @property
    def defaults(self) -> Mapping[str, str]:
        return self._defaults

    def merged(self, overrides: Mapping[str, str] | None = None) -> dict[str, str]:
        styles = dict(self._defaults)
        styles.update(overrides or {})
        return styles

    def stylesheet(self, overrides: Mapping[str, str] | None = None) -> str:
        rules = "".join(f"{selector} {{ {rule} }}\n" for selector, rule in self.merged(overrides).items())
        return f"<style {STYLE_MARKER}>\n{rules}</style>\n"

    def inject(self, html: str, overrides: Mapping[str, str] | None = None) -> str:
        block = self.stylesheet(overrides)
        # A previously generated block is replaced so injection never stacks.
        if _EXISTING_BLOCK_RE.search(html):
            return _EXISTING_BLOCK_RE.sub(lambda _: block, html, count=1)
        head = _HEAD_RE.search(html)
        if head:
            return f"{html[: head.end()]}\n{block}{html[head.end():]}"
        root = _HTML_RE.search(html)
        if root:
            return f"{html[: root.end()]}\n<head>\n{block}</head>{html[root.end():]}"
        return (
            "<!DOCTYPE html>\n<html>\n<head>\n<meta charset=\"utf-8\">\n"
            f"{block}</head>\n<body>\n{html}\n</body>\n</html>\n"
        )


__all__ = ["DEFAULT_STYLES", "STYLE_MARKER", "StyleInjector"]
