"""
Self-access rewriter.

Turns placeholder occurrences inside one repetition copy into accesses of
a concrete tuple element:

    Tuple.member   ->  self.<i>.member
    Tuple::member  ->  T<i>::member
    expr.Tuple     ->  expr.<i>
    Tuple          ->  T<i>
"""

from __future__ import annotations

from typing import List, Sequence

from ..syntax.tokens import Delimiter, Group, TokenTree
from ..utils.exceptions import MalformedDirectiveError, UnknownPlaceholderError
from ..utils.string_utils import TextEdit, apply_edits


class SelfAccessRewriter:
    """
    Rewrites placeholder accesses for a fixed tuple variant.

    The rewriter holds no state besides its construction arguments; calling
    :meth:`rewrite` with the same body and index always yields the same text.
    """

    def __init__(self, source: str, placeholder: str, element_types: Sequence[str], has_receiver: bool):
        """
        Args:
            source: Source text the tokens point into
            placeholder: Placeholder identifier of the site
            element_types: Element type names of the variant, ``T0..``
            has_receiver: Whether the enclosing method takes ``self``
        """
        self.source = source
        self.placeholder = placeholder
        self.element_types = list(element_types)
        self.has_receiver = has_receiver

    def rewrite(self, body: Group, index: int) -> str:
        """
        Rewrite the interior of ``body`` for tuple element ``index``.

        Returns:
            The rewritten text, stripped of surrounding whitespace
        """
        return self.rewrite_range(body.tokens, body.inner_start, body.inner_end, index).strip()

    def rewrite_range(self, tokens: Sequence[TokenTree], start: int, end: int, index: int) -> str:
        """Rewrite ``source[start:end]``, which must cover ``tokens``."""
        if not 0 <= index < len(self.element_types):
            raise IndexError(f"element index {index} out of range for arity {len(self.element_types)}")
        edits: List[TextEdit] = []
        self._collect(tokens, index, edits)
        return apply_edits(self.source, start, end, edits)

    def _collect(self, tokens: Sequence[TokenTree], index: int, edits: List[TextEdit]) -> None:
        for position, token in enumerate(tokens):
            if isinstance(token, Group):
                self._collect(token.tokens, index, edits)
                continue
            if not token.is_ident(self.placeholder):
                continue

            previous = tokens[position - 1] if position > 0 else None
            following = tokens[position + 1] if position + 1 < len(tokens) else None
            replacement = self._replacement(token, previous, following, index)
            edits.append(TextEdit(token.span.start, token.span.end, replacement))

    def _replacement(self, token, previous, following, index: int) -> str:
        if previous is not None and previous.is_punct("."):
            return str(index)

        if previous is not None and previous.is_punct("::"):
            raise UnknownPlaceholderError(
                "placeholder cannot be used as a path segment",
                identifier=self.placeholder,
                span=token.span,
            )

        if following is not None:
            if following.is_punct("."):
                if not self.has_receiver:
                    raise MalformedDirectiveError(
                        f"'{self.placeholder}.' instance access requires a method with a self receiver",
                        span=token.span,
                    )
                return f"self.{index}"
            if following.is_punct("!"):
                raise UnknownPlaceholderError(
                    "placeholder cannot be invoked as a macro",
                    identifier=self.placeholder,
                    span=token.span,
                )
            if following.is_group(Delimiter.PARENTHESIS):
                raise UnknownPlaceholderError(
                    "placeholder cannot be called, use 'Placeholder.method()' or 'Placeholder::function()'",
                    identifier=self.placeholder,
                    span=token.span,
                )
            if following.is_group(Delimiter.BRACE):
                raise UnknownPlaceholderError(
                    "placeholder cannot be constructed",
                    identifier=self.placeholder,
                    span=token.span,
                )

        return self.element_types[index]
