"""Bidirectional Markdown <-> HTML transcoding."""

from __future__ import annotations

import re
from html import unescape

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import Comment, Declaration, Doctype, ProcessingInstruction
from markdown_it import MarkdownIt
from mdit_py_plugins.tasklists import tasklists_plugin

from .errors import MalformedMarkup
from .models import ConversionOptions
from .styles import StyleInjector

WHITESPACE_RE = re.compile(r"\s+")
HORIZONTAL_SPACE_RE = re.compile(r"[^\S\n\t]+")
TITLE_RE = re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE | re.DOTALL)
SENTENCE_BREAK_RE = re.compile(r"([.!?])[ \t]+([A-Z])")
LANGUAGE_CLASS_PREFIX = "language-"
MARKDOWN_SPECIAL_RE = re.compile(r"([\\`*_\[\]<>~|&])")
LINE_MARKER_RE = re.compile(r"^(#{1,6}(?=\s|$)|[-+=])")
ORDERED_MARKER_RE = re.compile(r"^(\d{1,9})(?=[.)](?:\s|$))")

HEADING_LEVELS = {f"h{level}": level for level in range(1, 7)}
CONTAINER_TAGS = frozenset(
    {"html", "body", "div", "section", "article", "main", "header", "footer", "aside", "nav", "figure", "center"}
)
BLOCK_TAGS = frozenset(
    set(HEADING_LEVELS)
    | CONTAINER_TAGS
    | {"p", "ul", "ol", "li", "pre", "table", "tr", "blockquote", "hr", "dl", "dt", "dd", "figcaption"}
)
IGNORED_TAGS = ["head", "script", "style", "template", "noscript", "title"]
SKIPPED_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction)


def create_markdown_parser() -> MarkdownIt:
    parser = MarkdownIt("commonmark", {"html": True}).enable(["table", "strikethrough"])
    parser.use(tasklists_plugin)
    return parser


def parse_html(html: object) -> BeautifulSoup:
    if isinstance(html, (bytes, bytearray)):
        try:
            html = bytes(html).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedMarkup("Hypertext payload is not valid UTF-8") from exc
    if not isinstance(html, str):
        raise MalformedMarkup(f"Expected hypertext markup, got {type(html).__name__}")
    if "\x00" in html:
        raise MalformedMarkup("Hypertext payload contains NUL bytes")
    try:
        soup = BeautifulSoup(html, "html.parser")
    except Exception as exc:
        raise MalformedMarkup(f"Unable to parse hypertext markup: {exc}") from exc
    for node in soup.find_all(IGNORED_TAGS):
        node.decompose()
    return soup


def document_title(html: object, root: Tag, max_length: int = 80) -> str | None:
    """Best title for a document: ``<title>``, then the first heading, then the first line."""

    match = TITLE_RE.search(html) if isinstance(html, str) else None
    if match:
        title = WHITESPACE_RE.sub(" ", unescape(match.group(1))).strip()
        if title:
            return title
    heading = root.find(list(HEADING_LEVELS))
    if heading is not None:
        text = heading.get_text(" ", strip=True)
        if text:
            return text
    for line in root.get_text("\n").splitlines():
        if line.strip():
            return line.strip()[:max_length]
    return None


def _wrap(marker: str, content: str) -> str:
    inner = content.strip()
    if not inner:
        return content
    leading = content[: len(content) - len(content.lstrip())]
    trailing = content[len(content.rstrip()) :]
    return f"{leading}{marker}{inner}{marker}{trailing}"


def escape_markdown(text: str) -> str:
    return MARKDOWN_SPECIAL_RE.sub(r"\\\1", text)


def _escape_line_start(line: str) -> str:
    ordered = ORDERED_MARKER_RE.match(line)
    if ordered:
        return f"{ordered.group(1)}\\{line[ordered.end():]}"
    if LINE_MARKER_RE.match(line):
        return f"\\{line}"
    return line


def _fence_for(content: str) -> str:
    fence = "```"
    while fence in content:
        fence += "`"
    return fence


class _MarkdownWriter:
    """Walks a parsed document and renders Markdown blocks."""

    def render(self, root: Tag) -> str:
        blocks = [block for block in self._blocks(root) if block.strip()]
        if not blocks:
            return ""
        return "\n\n".join(blocks) + "\n"

    def _blocks(self, parent: Tag) -> list[str]:
        blocks: list[str] = []
        buffer: list[str] = []

        def flush() -> None:
            paragraph = self._clean_lines("".join(buffer))
            buffer.clear()
            if paragraph:
                blocks.append(paragraph)

        for child in parent.children:
            if isinstance(child, Tag) and child.name in BLOCK_TAGS:
                flush()
                blocks.extend(self._block(child))
            else:
                buffer.append(self._inline(child))
        flush()
        return blocks

    def _block(self, node: Tag) -> list[str]:
        name = node.name
        if name in HEADING_LEVELS:
            text = WHITESPACE_RE.sub(" ", self._inline_children(node)).strip()
            if text.endswith("#"):
                # a trailing run of # would read as a closing sequence
                text = f"{text[:-1]}\\#"
            return [f"{'#' * HEADING_LEVELS[name]} {text}"] if text else []
        if name == "p":
            text = self._clean_lines(self._inline_children(node))
            return [text] if text else []
        if name == "br":
            return []
        if name in ("ul", "ol"):
            return ["\n".join(self._list_lines(node))]
        if name == "pre":
            return [self._code_block(node)]
        if name == "table":
            return [str(node)]
        if name == "blockquote":
            inner = "\n\n".join(self._blocks(node))
            return ["\n".join(f"> {line}" if line else ">" for line in inner.splitlines())]
        if name == "hr":
            return ["---"]
        if name in CONTAINER_TAGS:
            return self._blocks(node)
        text = self._clean_lines(self._inline_children(node))
        return [text] if text else []

    def _code_block(self, node: Tag) -> str:
        elements = [child for child in node.children if isinstance(child, Tag)]
        stray_text = "".join(
            str(child) for child in node.children if isinstance(child, NavigableString)
        ).strip()
        language = ""
        if len(elements) == 1 and elements[0].name == "code" and not stray_text:
            code = elements[0]
            for token in code.get("class") or []:
                if token.startswith(LANGUAGE_CLASS_PREFIX):
                    language = token[len(LANGUAGE_CLASS_PREFIX) :]
                    break
            content = code.get_text()
        else:
            content = node.get_text()
        content = content.rstrip("\n")
        fence = _fence_for(content)
        return f"{fence}{language}\n{content}\n{fence}"

    def _list_lines(self, node: Tag) -> list[str]:
        ordered = node.name == "ol"
        try:
            start = int(node.get("start", 1)) if ordered else 1
        except (TypeError, ValueError):
            start = 1
        lines: list[str] = []
        for offset, item in enumerate(node.find_all("li", recursive=False)):
            marker = f"{start + offset}." if ordered else "-"
            pad = " " * (len(marker) + 1)
            texts: list[str] = []
            nested: list[str] = []
            inline: list[str] = []

            def flush() -> None:
                text = self._clean_lines("".join(inline))
                inline.clear()
                if text:
                    texts.append(text)

            for child in item.children:
                if isinstance(child, Tag) and child.name in ("ul", "ol"):
                    nested.extend(self._list_lines(child))
                elif isinstance(child, Tag) and child.name in BLOCK_TAGS:
                    flush()
                    # block output keeps its own indentation and blank lines
                    block = "\n\n".join(self._block(child))
                    if block.strip():
                        texts.append(block)
                else:
                    inline.append(self._inline(child))
            flush()
            first, *rest = texts or [""]
            item_lines = f"{marker} {first}".rstrip().splitlines() or [marker]
            lines.append(item_lines[0])
            lines.extend(f"{pad}{line}" if line else "" for line in item_lines[1:])
            for extra in rest:
                lines.append("")
                lines.extend(f"{pad}{line}" if line else "" for line in extra.splitlines())
            lines.extend(f"{pad}{line}" if line else "" for line in nested)
        return lines

    def _inline_children(self, node: Tag) -> str:
        return "".join(self._inline(child) for child in node.children)

    def _inline(self, node: object) -> str:
        if isinstance(node, SKIPPED_STRINGS):
            return ""
        if isinstance(node, NavigableString):
            return escape_markdown(WHITESPACE_RE.sub(" ", str(node)))
        if not isinstance(node, Tag):
            return ""
        name = node.name
        if name == "br":
            return "\n"
        if name in ("strong", "b"):
            return _wrap("**", self._inline_children(node))
        if name in ("em", "i"):
            return _wrap("*", self._inline_children(node))
        if name in ("del", "s", "strike"):
            return _wrap("~~", self._inline_children(node))
        if name == "code":
            text = node.get_text()
            tick = "``" if "`" in text else "`"
            return f"{tick}{text}{tick}" if text else ""
        if name == "a":
            text = self._inline_children(node).strip()
            href = node.get("href")
            if not href:
                return text
            return f"[{text or href}]({href})"
        if name == "img":
            src = node.get("src")
            if not src:
                return ""
            return f"![{escape_markdown(node.get('alt', ''))}]({src})"
        if name == "input" and node.get("type") == "checkbox":
            return "[x] " if node.has_attr("checked") else "[ ] "
        return self._inline_children(node)

    @staticmethod
    def _clean_lines(text: str) -> str:
        lines = [line.strip() for line in text.split("\n")]
        return "\n".join(_escape_line_start(line) for line in lines if line)


class MarkupTranscoder:
    def __init__(self, style_injector: StyleInjector | None = None) -> None:
        self._parser = create_markdown_parser()
        self._styles = style_injector or StyleInjector()

    @property
    def style_injector(self) -> StyleInjector:
        return self._styles

    def light_to_hyper(self, text: str, options: ConversionOptions | None = None) -> str:
        opts = options or ConversionOptions()
        if not isinstance(text, str):
            raise MalformedMarkup(f"Expected lightweight markup text, got {type(text).__name__}")
        try:
            html = self._parser.render(text)
        except Exception as exc:
            raise MalformedMarkup(f"Unable to parse lightweight markup: {exc}") from exc
        if opts.include_styles:
            html = self._styles.inject(html, opts.custom_styles)
        return html

    def hyper_to_light(self, html: str, options: ConversionOptions | None = None) -> str:
        soup = parse_html(html)
        root = soup.body or soup
        return _MarkdownWriter().render(root)

    def hyper_to_text(self, html: str, options: ConversionOptions | None = None) -> str:
        opts = options or ConversionOptions()
        soup = parse_html(html)
        root = soup.body or soup
        if not opts.preserve_formatting:
            return WHITESPACE_RE.sub(" ", root.get_text(" ")).strip()

        for br in root.find_all("br"):
            br.replace_with("\n")
        for cell in root.find_all(["td", "th"]):
            cell.insert_after("\t")
        for block in root.find_all(list(BLOCK_TAGS)):
            block.insert_before("\n\n")
            block.insert_after("\n\n")
        lines = [HORIZONTAL_SPACE_RE.sub(" ", line).strip(" ").rstrip("\t") for line in root.get_text().split("\n")]
        text = "\n".join(lines)
        text = re.sub(r"\n{3,}", "\n\n", text).strip()
        text = SENTENCE_BREAK_RE.sub(r"\1\n\n\2", text)
        return f"{text}\n" if text else ""


__all__ = ["MarkupTranscoder", "create_markdown_parser", "document_title", "escape_markdown", "parse_html"]
