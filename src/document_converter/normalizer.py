"""Promote unstructured plain text into lightweight markup."""

from __future__ import annotations

import re

from .models import StructuralOutline
from .outline import outline_from_markdown

MAX_HEADING_LENGTH = 80
FENCE = "```"

LIST_MARKER_RE = re.compile(r"^(?:[-*+]|\d+[.)])\s")


def _is_indented(line: str) -> bool:
    return line.startswith("    ") or line.startswith("\t")


def _dedent_once(line: str) -> str:
    if line.startswith("\t"):
        return line[1:]
    return line[4:]


def to_light_markup(text: str) -> str:
    """Return *text* reshaped as Markdown.

    Lines are examined in order. Missing neighbours at the start and end of the
    input count as blank lines, so an input made of a single short line is
    promoted to a heading like any other isolated line.
    """

    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    count = len(lines)
    out: list[str] = []
    in_list = False
    in_code = False

    for index, line in enumerate(lines):
        stripped = line.strip()
        previous = lines[index - 1].strip() if index > 0 else ""
        following = lines[index + 1].strip() if index < count - 1 else ""

        if not stripped:
            if in_code:
                out.append(FENCE)
                in_code = False
            in_list = False
            out.append("")
            continue

        if in_code:
            if _is_indented(line):
                out.append(_dedent_once(line).rstrip())
                continue
            out.append(FENCE)
            in_code = False

        if LIST_MARKER_RE.match(stripped):
            out.append(line.rstrip())
            in_list = True
            continue

        if in_list:
            out.append(line.rstrip())
            continue

        if _is_indented(line) and not previous:
            out.append(FENCE)
            out.append(_dedent_once(line).rstrip())
            in_code = True
            continue

        if not previous and not following and len(stripped) <= MAX_HEADING_LENGTH:
            out.extend([f"## {stripped}", ""])
            continue

        out.append(stripped)

    if in_code:
        out.append(FENCE)

    return _join_blocks(out)


def _join_blocks(lines: list[str]) -> str:
    collapsed: list[str] = []
    for line in lines:
        if not line and (not collapsed or not collapsed[-1]):
            continue
        collapsed.append(line)
    while collapsed and not collapsed[-1]:
        collapsed.pop()
    if not collapsed:
        return ""
    return "\n".join(collapsed) + "\n"


def outline(text: str) -> StructuralOutline:
    return outline_from_markdown(to_light_markup(text))


__all__ = ["MAX_HEADING_LENGTH", "outline", "to_light_markup"]
