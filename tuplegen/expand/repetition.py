"""
Repetition directives.

Parses the content of a ``for_tuples!`` call into a
:class:`RepetitionDirective` and expands it for a given tuple arity. The
marker syntax is

    #( body ) [separator] *

optionally wrapped in a parenthesized tuple grouping, optionally followed
by ``else <default>`` and, at impl item position, prefixed by a ``type``,
``const`` or ``where`` item head.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Sequence, Tuple

from .rewriter import SelfAccessRewriter
from .walker import DirectiveContext, DirectiveSite, find_directive_marker, is_repetition_marker, mentions
from ..syntax.tokens import Group, Punct, Span, TokenTree, find_top_level, text_of
from ..utils.constants import REPETITION_TERMINATOR, ZERO_ARITY_DEFAULT_KEYWORD, Keyword
from ..utils.exceptions import (
    EmptyBodyOnZeroArityError,
    MalformedDirectiveError,
    UnknownPlaceholderError,
)
from ..utils.logging import ExpansionLogger
from ..utils.naming import tuple_type
from ..utils.string_utils import TextEdit, leading_indent, whole_line_removal

expansion_logger = ExpansionLogger(__name__)


class DirectivePosition(Enum):
    """Position a directive expands into."""

    TYPE = "type"
    EXPRESSION = "expression"
    STATEMENT = "statement"
    PREDICATE = "predicate"


@dataclass
class Repetition:
    """One ``#( body ) separator *`` marker."""

    marker: TokenTree
    body: Group
    separator: List[TokenTree]
    terminator: TokenTree

    @property
    def span(self) -> Span:
        return self.marker.span.to(self.terminator.span)

    @property
    def separator_text(self) -> str:
        return "".join(token.text for token in self.separator)


@dataclass
class RepetitionDirective:
    """A parsed ``for_tuples!`` call."""

    site: DirectiveSite
    position: DirectivePosition
    repetition: Repetition
    grouped: bool = False
    list_context: bool = False
    default: List[TokenTree] = field(default_factory=list)
    item_head: List[TokenTree] = field(default_factory=list)

    @property
    def span(self) -> Span:
        return self.site.span

    @property
    def separator(self) -> str:
        return self.repetition.separator_text

    def copies(self, rewriter: SelfAccessRewriter, arity: int) -> List[str]:
        """Produce the ``arity`` rewritten copies of the body, ascending."""
        return [rewriter.rewrite(self.repetition.body, index) for index in range(arity)]

    def join_expression(self, source: str, copies: Sequence[str]) -> str:
        """
        Join expression or type copies.

        Raises:
            EmptyBodyOnZeroArityError: If there are no copies, no ``else``
                default and the separator has no empty value
        """
        if self.grouped:
            return tuple_type(copies)

        separator = self.separator or ","
        if copies:
            if separator != ",":
                return f" {separator} ".join(copies)
            # a bare comma list is only valid inside an enclosing list
            return ", ".join(copies) if self.list_context else tuple_type(copies)

        if self.default:
            return text_of(source, self.default)
        if separator == ",":
            return "" if self.list_context else "()"
        raise EmptyBodyOnZeroArityError(separator, span=self.span)

    def join_statements(self, source: str, copies: Sequence[str]) -> str:
        """Join statement copies, one per line at the directive's indentation."""
        indent = leading_indent(source, self.site.span.start)
        lines = [copy if copy.endswith((";", "}")) else f"{copy};" for copy in copies]
        return f"\n{indent}".join(lines)

    def expand(self, source: str, rewriter: SelfAccessRewriter, arity: int) -> TextEdit:
        """
        Expand the directive at ``arity``.

        Returns:
            The edit replacing the ``for_tuples!`` call. Predicate directives
            are always removed; see :meth:`predicates`.
        """
        site = self.site
        if self.position is DirectivePosition.PREDICATE:
            return whole_line_removal(source, site.span.start, site.removal_end)

        copies = self.copies(rewriter, arity)
        expansion_logger.log_directive(self.position.value, arity, len(copies))

        if self.position is DirectivePosition.STATEMENT:
            if not copies:
                return whole_line_removal(source, site.span.start, site.removal_end)
            return TextEdit(site.span.start, site.removal_end, self.join_statements(source, copies))

        expression = self.join_expression(source, copies)
        if not expression and site.empty_removal is not None:
            return TextEdit(site.empty_removal[0], site.empty_removal[1], "")
        if self.item_head:
            return TextEdit(
                site.span.start,
                site.removal_end,
                f"{text_of(source, self.item_head)} {expression};",
            )
        return TextEdit(site.span.start, site.span.end, expression)

    def predicates(self, rewriter: SelfAccessRewriter, arity: int) -> List[str]:
        """Where-clause predicates contributed at ``arity``."""
        if self.position is not DirectivePosition.PREDICATE:
            return []
        copies = self.copies(rewriter, arity)
        expansion_logger.log_directive(self.position.value, arity, len(copies))
        return copies


# =============================================================================
# Parsing
# =============================================================================

class DirectiveParser:
    """
    Parses located directive calls of one implementation block.

    Args:
        placeholder: Placeholder identifier of the site
        macro_name: Name of the directive macro
    """

    def __init__(self, placeholder: str, macro_name: str):
        self.placeholder = placeholder
        self.macro_name = macro_name

    def parse(self, site: DirectiveSite) -> RepetitionDirective:
        """
        Parse the content of one ``for_tuples!`` call.

        Raises:
            MalformedDirectiveError: If the content is not a directive form
                accepted in the call's context
            UnknownPlaceholderError: If the placeholder appears outside the
                repetition body or the body does not mention it
        """
        tokens = site.group.tokens
        if not tokens:
            raise MalformedDirectiveError("empty directive", span=site.span)

        if site.context is DirectiveContext.ITEM:
            return self._parse_item(site, tokens)

        repetition, grouped, default = self._parse_expression(site, tokens)

        if site.context is DirectiveContext.TYPE:
            if not grouped:
                raise MalformedDirectiveError(
                    "only the tuple grouping form '( #( ... ),* )' is accepted in type position",
                    span=site.span,
                )
            return RepetitionDirective(site, DirectivePosition.TYPE, repetition, grouped=True)

        position = DirectivePosition.EXPRESSION
        if (
            site.context is DirectiveContext.STATEMENT
            and not grouped
            and not default
            and repetition.separator_text in ("", ";")
        ):
            position = DirectivePosition.STATEMENT

        return RepetitionDirective(
            site,
            position,
            repetition,
            grouped=grouped,
            list_context=site.context is DirectiveContext.LIST,
            default=default,
        )

    def _parse_item(self, site: DirectiveSite, tokens: Sequence[TokenTree]) -> RepetitionDirective:
        head = tokens[0]

        if head.is_ident(Keyword.WHERE.value):
            repetition, end = self._parse_marker(site, tokens, 1)
            if end != len(tokens):
                raise MalformedDirectiveError(
                    "unexpected tokens after where repetition", span=tokens[end].span
                )
            return RepetitionDirective(site, DirectivePosition.PREDICATE, repetition)

        if not (head.is_ident(Keyword.TYPE.value) or head.is_ident(Keyword.CONST.value)):
            raise MalformedDirectiveError(
                "only 'type', 'const' and 'where' items are accepted at item position",
                span=head.span,
            )

        content = list(tokens)
        if content[-1].is_punct(";"):
            content = content[:-1]
        equals = find_top_level(content, lambda t: t.is_punct("="))
        if equals == -1 or equals + 1 >= len(content):
            raise MalformedDirectiveError(f"expected '=' and a value after '{head.text}'", span=head.span)

        item_head = content[:equals + 1]
        self._reject_placeholder(item_head)
        repetition, grouped, default = self._parse_expression(site, content[equals + 1:])

        if head.is_ident(Keyword.TYPE.value):
            if not grouped:
                raise MalformedDirectiveError(
                    "associated types require the tuple grouping form '( #( ... ),* )'",
                    span=site.span,
                )
            return RepetitionDirective(
                site, DirectivePosition.TYPE, repetition, grouped=True, item_head=item_head
            )

        return RepetitionDirective(
            site,
            DirectivePosition.EXPRESSION,
            repetition,
            grouped=grouped,
            default=default,
            item_head=item_head,
        )

    def _parse_expression(
        self, site: DirectiveSite, tokens: Sequence[TokenTree]
    ) -> Tuple[Repetition, bool, List[TokenTree]]:
        """Parse a grouping or a bare repetition; returns (repetition, grouped, default)."""
        first = tokens[0]

        if isinstance(first, Group) and first.tokens and is_repetition_marker(first.tokens, 0):
            repetition, end = self._parse_marker(site, first.tokens, 0)
            if end != len(first.tokens):
                raise MalformedDirectiveError(
                    "unexpected tokens after repetition", span=first.tokens[end].span
                )
            if len(tokens) > 1:
                raise MalformedDirectiveError(
                    "unexpected tokens after tuple grouping", span=tokens[1].span
                )
            if repetition.separator_text not in ("", ","):
                raise MalformedDirectiveError(
                    f"tuple grouping requires ',' as separator, found '{repetition.separator_text}'",
                    span=repetition.span,
                )
            return repetition, True, []

        repetition, end = self._parse_marker(site, tokens, 0)
        default: List[TokenTree] = []
        rest = list(tokens[end:])
        if rest:
            if not rest[0].is_ident(ZERO_ARITY_DEFAULT_KEYWORD):
                raise MalformedDirectiveError("unexpected tokens after repetition", span=rest[0].span)
            default = rest[1:]
            if not default:
                raise MalformedDirectiveError(
                    f"expected a default value after '{ZERO_ARITY_DEFAULT_KEYWORD}'", span=rest[0].span
                )
            self._reject_placeholder(default)
        return repetition, False, default

    def _parse_marker(self, site: DirectiveSite, tokens: Sequence[TokenTree], start: int):
        """Parse ``#( body ) sep *`` at ``start``; returns (repetition, index after it)."""
        if start >= len(tokens) or not is_repetition_marker(tokens, start):
            span = tokens[start].span if start < len(tokens) else site.span
            raise MalformedDirectiveError("expected a repetition '#( ... ) *'", span=span)

        marker, body = tokens[start], tokens[start + 1]
        index = start + 2
        separator: List[TokenTree] = []

        # `#( ... )**` repeats with `*` as separator
        if (
            index + 1 < len(tokens)
            and tokens[index].is_punct(REPETITION_TERMINATOR)
            and tokens[index + 1].is_punct(REPETITION_TERMINATOR)
        ):
            separator.append(tokens[index])
            index += 1
        else:
            while index < len(tokens) and not tokens[index].is_punct(REPETITION_TERMINATOR):
                if not isinstance(tokens[index], Punct):
                    raise MalformedDirectiveError(
                        "repetition separator must be punctuation", span=tokens[index].span
                    )
                separator.append(tokens[index])
                index += 1

        if index >= len(tokens):
            raise MalformedDirectiveError(
                f"missing '{REPETITION_TERMINATOR}' after repetition", span=body.span
            )

        nested = find_directive_marker(body.tokens, self.macro_name)
        if nested is not None:
            raise MalformedDirectiveError("repetitions cannot be nested", span=nested.span)
        if not mentions(body.tokens, self.placeholder):
            raise UnknownPlaceholderError(
                f"repetition does not reference the placeholder '{self.placeholder}'",
                identifier=self.placeholder,
                span=body.span,
            )

        return Repetition(marker, body, separator, tokens[index]), index + 1

    def _reject_placeholder(self, tokens: Sequence[TokenTree]) -> None:
        for token in tokens:
            if mentions([token], self.placeholder):
                raise UnknownPlaceholderError(
                    "placeholder used outside of a repetition",
                    identifier=self.placeholder,
                    span=token.span,
                )
