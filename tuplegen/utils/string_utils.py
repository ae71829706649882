"""
String Manipulation Utilities for tuplegen.

This module provides the text helpers the expander builds on: indentation,
line inspection and span-based text edits against the original source.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Tuple

from .constants import TEMPLATE_INDENT


# =============================================================================
# Text Formatting and Indentation
# =============================================================================

def indent_text(text: str, level: int = 1, indent_str: str = TEMPLATE_INDENT) -> str:
    """
    Indent text by the specified level.

    Args:
        text: Text to indent
        level: Indentation level (number of indent_str to prepend)
        indent_str: String to use for each indentation level

    Returns:
        Indented text
    """
    if not text:
        return text

    indent = indent_str * level
    lines = text.split('\n')
    indented_lines = [f"{indent}{line}" if line.strip() else line for line in lines]
    return '\n'.join(indented_lines)


# =============================================================================
# Line Inspection
# =============================================================================

def line_start(text: str, offset: int) -> int:
    """Return the offset of the first character of the line containing ``offset``."""
    return text.rfind("\n", 0, offset) + 1


def line_end(text: str, offset: int) -> int:
    """Return the offset of the newline ending the line containing ``offset``."""
    end = text.find("\n", offset)
    return len(text) if end == -1 else end


def leading_indent(text: str, offset: int) -> str:
    """
    Return the indentation of the line containing ``offset``.

    Only the whitespace run at the start of the line is returned, even when
    ``offset`` points past other code on that line.
    """
    start = line_start(text, offset)
    end = start
    while end < len(text) and text[end] in " \t":
        end += 1
    return text[start:end]


def stands_alone(text: str, start: int, end: int) -> bool:
    """Check whether ``text[start:end]`` is the only non-blank content of its lines."""
    before = text[line_start(text, start):start]
    after = text[end:line_end(text, end)]
    return not before.strip() and not after.strip()


# =============================================================================
# Span Edits
# =============================================================================

@dataclass(frozen=True)
class TextEdit:
    """Replacement of ``source[start:end]`` by ``replacement``."""

    start: int
    end: int
    replacement: str


def whole_line_removal(text: str, start: int, end: int) -> TextEdit:
    """
    Build an edit removing ``text[start:end]``.

    When the removed range is alone on its lines, the lines themselves
    (including one line break) are removed as well so no blank residue
    remains in the output.
    """
    if stands_alone(text, start, end):
        first = line_start(text, start)
        last = line_end(text, end)
        if last < len(text):
            return TextEdit(first, last + 1, "")
        if first > 0:
            return TextEdit(first - 1, last, "")
    return TextEdit(start, end, "")


def apply_edits(text: str, start: int, end: int, edits: Iterable[TextEdit]) -> str:
    """
    Apply non-overlapping edits to ``text[start:end]``.

    Edit offsets are absolute offsets into ``text``; edits outside the
    window are rejected.

    Args:
        text: Full source text
        start: Start of the window to render
        end: End of the window to render
        edits: Edits to apply

    Returns:
        The edited window

    Raises:
        ValueError: If edits overlap or fall outside the window
    """
    ordered: List[Tuple[int, int, str]] = sorted(
        (edit.start, edit.end, edit.replacement) for edit in edits
    )
    pieces: List[str] = []
    cursor = start
    for edit_start, edit_end, replacement in ordered:
        if edit_start < cursor or edit_end > end or edit_start > edit_end:
            raise ValueError(
                f"Edit [{edit_start}, {edit_end}) overlaps or leaves window [{start}, {end})"
            )
        pieces.append(text[cursor:edit_start])
        pieces.append(replacement)
        cursor = edit_end
    pieces.append(text[cursor:end])
    return "".join(pieces)
