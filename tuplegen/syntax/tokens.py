"""
Token tree representation.

The lexer turns source text into a tree of small tagged tokens: leaves
(identifiers, lifetimes, literals, punctuation) and delimited groups that
own their children. Every token remembers its span in the original text,
so rewritten output is always produced by slicing and editing the source
rather than by re-printing tokens.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Sequence


class Delimiter(Enum):
    """Delimiters of a token group."""

    PARENTHESIS = "()"
    BRACKET = "[]"
    BRACE = "{}"

    @property
    def open(self) -> str:
        return self.value[0]

    @property
    def close(self) -> str:
        return self.value[1]


@dataclass(frozen=True)
class Span:
    """Half-open character range ``[start, end)`` with the 1-based position of ``start``."""

    start: int
    end: int
    line: int
    column: int

    def to(self, other: "Span") -> "Span":
        """Return the span from the start of self to the end of ``other``."""
        return Span(self.start, other.end, self.line, self.column)


@dataclass
class TokenTree:
    """Base class of all tokens."""

    span: Span

    def is_ident(self, name: Optional[str] = None) -> bool:
        return False

    def is_punct(self, op: Optional[str] = None) -> bool:
        return False

    def is_group(self, delimiter: Optional[Delimiter] = None) -> bool:
        return False


@dataclass
class Ident(TokenTree):
    """Identifier or keyword."""

    text: str = ""

    def is_ident(self, name: Optional[str] = None) -> bool:
        return name is None or self.text == name


@dataclass
class Lifetime(TokenTree):
    text: str = ""


@dataclass
class Literal(TokenTree):
    """String, character or numeric literal, kept verbatim."""

    text: str = ""


@dataclass
class Punct(TokenTree):
    """Punctuation, possibly multi-character (``::``, ``->``, ``&&``)."""

    text: str = ""

    def is_punct(self, op: Optional[str] = None) -> bool:
        return op is None or self.text == op


@dataclass
class Group(TokenTree):
    """
    A delimited group.

    ``span`` covers both delimiters; ``inner_start`` and ``inner_end`` bound
    the text between them.
    """

    delimiter: Delimiter = Delimiter.PARENTHESIS
    tokens: List[TokenTree] = field(default_factory=list)

    @property
    def inner_start(self) -> int:
        return self.span.start + 1

    @property
    def inner_end(self) -> int:
        return self.span.end - 1

    def is_group(self, delimiter: Optional[Delimiter] = None) -> bool:
        return delimiter is None or self.delimiter is delimiter

    def inner_text(self, source: str) -> str:
        return source[self.inner_start:self.inner_end]


# =============================================================================
# Token Sequence Helpers
# =============================================================================

def text_of(source: str, tokens: Sequence[TokenTree]) -> str:
    """Return the source text covered by a contiguous token run."""
    if not tokens:
        return ""
    return source[tokens[0].span.start:tokens[-1].span.end]


def span_of(tokens: Sequence[TokenTree]) -> Span:
    """Return the span covering a non-empty contiguous token run."""
    return tokens[0].span.to(tokens[-1].span)


def iter_tokens(tokens: Sequence[TokenTree]) -> Iterator[TokenTree]:
    """Depth-first iteration over a token run, groups before their children."""
    for token in tokens:
        yield token
        if isinstance(token, Group):
            yield from iter_tokens(token.tokens)


def split_top_level(tokens: Sequence[TokenTree], separator: str = ",") -> List[List[TokenTree]]:
    """
    Split a token run at top-level separators.

    Separators nested in angle brackets (``HashMap<K, V>``) do not split.
    A trailing separator does not produce an empty trailing part.
    """
    parts: List[List[TokenTree]] = [[]]
    depth = 0
    for token in tokens:
        if token.is_punct("<"):
            depth += 1
        elif token.is_punct(">") and depth > 0:
            depth -= 1
        elif token.is_punct(separator) and depth == 0:
            parts.append([])
            continue
        parts[-1].append(token)
    if not parts[-1]:
        parts.pop()
    return parts


def find_top_level(tokens: Sequence[TokenTree], predicate, start: int = 0) -> int:
    """
    Return the index of the first token at angle depth 0 matching ``predicate``.

    Returns -1 when no token matches.
    """
    depth = 0
    for index in range(start, len(tokens)):
        token = tokens[index]
        if depth == 0 and predicate(token):
            return index
        if token.is_punct("<"):
            depth += 1
        elif token.is_punct(">") and depth > 0:
            depth -= 1
    return -1


def matching_angle(tokens: Sequence[TokenTree], start: int) -> int:
    """
    Return the index of the ``>`` closing the ``<`` at ``start``.

    Returns -1 when the angle bracket is never closed.
    """
    depth = 0
    for index in range(start, len(tokens)):
        token = tokens[index]
        if token.is_punct("<"):
            depth += 1
        elif token.is_punct(">"):
            depth -= 1
            if depth == 0:
                return index
    return -1
