"""
Lexer for Rust-style source text.

Produces the token tree used by the item parser and the expander.
Whitespace and comments are skipped; they survive in the output because
re-emission always slices the original text.
"""

from __future__ import annotations

import re
from typing import List, Tuple

from .tokens import Delimiter, Group, Ident, Lifetime, Literal, Punct, Span, TokenTree
from ..utils.exceptions import SourceSyntaxError

_TOKEN_SPEC = [
    ("WS",            r"\s+"),
    ("LINE_COMMENT",  r"//[^\n]*"),
    ("BLOCK_COMMENT", r"/\*"),  # opener; block comments nest, see _block_comment_end
    ("RAW_STRING",    r"b?r(?P<hashes>#*)\".*?\"(?P=hashes)"),
    ("STRING",        r"b?\"(?:\\.|[^\"\\])*\""),
    ("CHAR",          r"b?'(?:\\(?:x[0-9a-fA-F]{2}|u\{[0-9a-fA-F_]*\}|.)|[^'\\\n])'"),
    ("LIFETIME",      r"'[^\W\d]\w*"),
    ("NUMBER",        r"(?:0x[0-9a-fA-F_]+|0o[0-7_]+|0b[01_]+"
                      r"|[0-9][0-9_]*(?:\.[0-9][0-9_]*)?(?:[eE][+-]?[0-9_]+)?)"
                      r"(?:[^\W\d]\w*)?"),
    ("IDENT",         r"(?:r#)?[^\W\d]\w*"),
    ("PUNCT",         r"\.\.\.|\.\.=|\.\.|::|->|=>|==|!=|&&|\|\||\+=|-=|\*=|/=|%=|\^=|&=|\|="
                      r"|[+\-*/%^!&|=<>@.,;:#$?~]"),
    ("OPEN",          r"[(\[{]"),
    ("CLOSE",         r"[)\]}]"),
]
MASTER_RE = re.compile("|".join(f"(?P<{n}>{p})" for n, p in _TOKEN_SPEC), re.S)

_SKIPPED = frozenset({"WS", "LINE_COMMENT", "BLOCK_COMMENT"})
_LITERALS = frozenset({"RAW_STRING", "STRING", "CHAR", "NUMBER"})
_DELIMITERS = {"(": Delimiter.PARENTHESIS, "[": Delimiter.BRACKET, "{": Delimiter.BRACE}
_CLOSERS = {")": Delimiter.PARENTHESIS, "]": Delimiter.BRACKET, "}": Delimiter.BRACE}
_COMMENT_DELIMITER_RE = re.compile(r"/\*|\*/")


def _block_comment_end(source: str, span: Span) -> int:
    """Return the offset after the block comment opened at ``span``."""
    depth = 0
    for m in _COMMENT_DELIMITER_RE.finditer(source, span.start):
        depth += 1 if m.group() == "/*" else -1
        if depth == 0:
            return m.end()
    raise SourceSyntaxError("Unterminated block comment", span=span)


def tokenize(source: str) -> List[TokenTree]:
    """
    Tokenize ``source`` into a token tree.

    Args:
        source: Complete source text

    Returns:
        Top-level tokens; groups own their children

    Raises:
        SourceSyntaxError: On unknown characters or unbalanced delimiters
    """
    root: List[TokenTree] = []
    # Each frame: (open span, delimiter, children)
    stack: List[Tuple[Span, Delimiter, List[TokenTree]]] = []
    current = root
    line = col = 1
    pos = 0

    while pos < len(source):
        m = MASTER_RE.match(source, pos)
        if not m:
            raise SourceSyntaxError(
                f"Unexpected character {source[pos]!r}",
                span=Span(pos, pos + 1, line, col),
            )
        kind = m.lastgroup or ""
        lexeme = m.group(kind)
        start, end = pos, m.end()
        span = Span(start, end, line, col)

        if kind == "BLOCK_COMMENT":
            end = _block_comment_end(source, span)
            lexeme = source[start:end]

        if kind in _SKIPPED:
            pass
        elif kind == "IDENT":
            current.append(Ident(span, text=lexeme))
        elif kind == "LIFETIME":
            current.append(Lifetime(span, text=lexeme))
        elif kind in _LITERALS:
            current.append(Literal(span, text=lexeme))
        elif kind == "PUNCT":
            current.append(Punct(span, text=lexeme))
        elif kind == "OPEN":
            stack.append((span, _DELIMITERS[lexeme], current))
            current = []
        elif kind == "CLOSE":
            if not stack:
                raise SourceSyntaxError(f"Unmatched closing delimiter {lexeme!r}", span=span)
            open_span, delimiter, parent = stack.pop()
            if _CLOSERS[lexeme] is not delimiter:
                raise SourceSyntaxError(
                    f"Mismatched delimiter: {delimiter.open!r} closed by {lexeme!r}",
                    {"opened_at": f"{open_span.line}:{open_span.column}"},
                    span=span,
                )
            parent.append(Group(open_span.to(span), delimiter=delimiter, tokens=current))
            current = parent

        # Update position
        newlines = lexeme.count("\n")
        if newlines:
            line += newlines
            col = len(lexeme) - lexeme.rfind("\n")
        else:
            col += len(lexeme)
        pos = end

    if stack:
        open_span, delimiter, _ = stack[-1]
        raise SourceSyntaxError(f"Unclosed delimiter {delimiter.open!r}", span=open_span)

    return root
