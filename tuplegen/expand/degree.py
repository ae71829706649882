"""
Degree parser for the tuple annotation.

Reads the maximum arity ``N`` from ``#[tuple_impl(N)]``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from ..syntax.items import Attribute
from ..syntax.tokens import Delimiter, Literal, Span, span_of
from ..utils.constants import DEFAULT_MAX_DEGREE_LIMIT, INTEGER_SUFFIXES
from ..utils.exceptions import ConfigError

_INTEGER_RE = re.compile(r"(0x[0-9a-fA-F_]+|0o[0-7_]+|0b[01_]+|[0-9][0-9_]*)")
_BASES = {"0x": 16, "0o": 8, "0b": 2}


@dataclass(frozen=True)
class AnnotationConfig:
    """Configuration of one annotated site."""

    max_degree: int
    span: Optional[Span] = None

    @property
    def arities(self) -> range:
        """All generated arities, ``0..=max_degree``."""
        return range(self.max_degree + 1)


def parse_integer_literal(text: str) -> Optional[int]:
    """
    Parse an integer literal with optional ``_`` separators and suffix.

    Returns:
        The value, or None if ``text`` is not an integer literal
    """
    for suffix in INTEGER_SUFFIXES:
        if text.endswith(suffix):
            text = text[:-len(suffix)]
            break

    match = _INTEGER_RE.fullmatch(text)
    if not match:
        return None

    digits = text.replace("_", "")
    base = _BASES.get(digits[:2], 10)
    if base != 10:
        digits = digits[2:]
    if not digits:
        return None
    return int(digits, base)


def parse_degree(annotation: Attribute, max_degree_limit: int = DEFAULT_MAX_DEGREE_LIMIT) -> AnnotationConfig:
    """
    Extract the maximum tuple arity from the annotation.

    Args:
        annotation: The ``#[tuple_impl(...)]`` attribute
        max_degree_limit: Largest accepted degree

    Returns:
        AnnotationConfig for the site

    Raises:
        ConfigError: If the argument is missing, not a single integer
            literal, zero or above ``max_degree_limit``
    """
    arguments = annotation.arguments
    name = annotation.name

    if not arguments:
        raise ConfigError(
            f"missing degree argument, expected #[{name}(N)]", span=annotation.span
        )
    if len(arguments) != 1 or not arguments[0].is_group(Delimiter.PARENTHESIS):
        raise ConfigError(
            f"malformed degree argument, expected #[{name}(N)]", span=span_of(arguments)
        )

    group = arguments[0]
    if not group.tokens:
        raise ConfigError("empty degree argument, expected a positive integer", span=group.span)
    if len(group.tokens) != 1 or not isinstance(group.tokens[0], Literal):
        text = " ".join(getattr(token, "text", "...") for token in group.tokens)
        raise ConfigError(
            "degree must be a single positive integer literal",
            argument=text,
            span=span_of(group.tokens),
        )

    literal = group.tokens[0]
    value = parse_integer_literal(literal.text)
    if value is None:
        raise ConfigError("degree is not numeric", argument=literal.text, span=literal.span)
    if value < 1:
        raise ConfigError("degree must be a positive integer", argument=literal.text, span=literal.span)
    if value > max_degree_limit:
        raise ConfigError(
            f"degree exceeds the configured limit of {max_degree_limit}",
            argument=literal.text,
            span=literal.span,
        )

    return AnnotationConfig(max_degree=value, span=annotation.span)
