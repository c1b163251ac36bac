from __future__ import annotations

import re

from bs4 import BeautifulSoup

from .models import Heading, StructuralOutline
from .transcoder import create_markdown_parser

HEADING_TAGS = {f"h{level}": level for level in range(1, 7)}
SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")
IGNORED_TAGS = ["head", "script", "style", "template"]


def count_sentences(text: str) -> int:
    return sum(1 for chunk in SENTENCE_SPLIT_RE.split(text) if chunk.strip())


def count_words(text: str) -> int:
    return len(text.split())


def outline_from_html(html: str) -> StructuralOutline:
    soup = BeautifulSoup(html, "html.parser")
    for node in soup.find_all(IGNORED_TAGS):
        node.decompose()

    headings = tuple(
        Heading(level=HEADING_TAGS[node.name], text=node.get_text(" ", strip=True))
        for node in soup.find_all(list(HEADING_TAGS))
        if node.get_text(strip=True)
    )
    paragraphs = [node for node in soup.find_all("p") if node.get_text(strip=True)]
    paragraph_count = len(paragraphs)

    for node in soup.find_all(list(HEADING_TAGS)):
        node.decompose()
    body_text = soup.get_text("\n")
    if not paragraph_count:
        paragraph_count = sum(1 for block in PARAGRAPH_SPLIT_RE.split(body_text) if block.strip())

    full_text = " ".join(heading.text for heading in headings) + " " + body_text
    return StructuralOutline(
        headings=headings,
        paragraph_count=paragraph_count,
        sentence_count=count_sentences(body_text),
        word_count=count_words(full_text),
    )


def outline_from_markdown(text: str) -> StructuralOutline:
    return outline_from_html(create_markdown_parser().render(text))


__all__ = [
    "count_sentences",
    "count_words",
    "outline_from_html",
    "outline_from_markdown",
]
