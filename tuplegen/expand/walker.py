"""
Tree walker for implementation blocks.

Locates ``for_tuples!`` calls in an annotated implementation block together
with the syntactic context they appear in, and rejects placeholder
occurrences and repetition markers found outside of any call. The walker
does not interpret directive contents; that is left to
:mod:`tuplegen.expand.repetition`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from ..syntax.items import (
    ConstItem,
    ImplementationBlock,
    MacroItem,
    MethodItem,
    TypeItem,
)
from ..syntax.tokens import Delimiter, Group, Ident, Span, TokenTree, iter_tokens
from ..utils.constants import REPETITION_MARKER
from ..utils.exceptions import MalformedDirectiveError, UnknownPlaceholderError
from ..utils.logging import get_logger

logger = get_logger(__name__)


class DirectiveContext(Enum):
    """Syntactic context of a directive call."""

    ITEM = "item"            # directly in the impl body
    TYPE = "type"            # signatures, associated type values, const types
    STATEMENT = "statement"  # block, at the start of a statement
    VALUE = "value"          # block, any other expression position
    LIST = "list"            # inside a parenthesized or bracketed group


# Scan modes; a BLOCK scan decides between STATEMENT and VALUE per call
_TYPE = "type"
_BLOCK = "block"
_LIST = "list"
_VALUE = "value"


@dataclass
class DirectiveSite:
    """A located ``for_tuples!`` call."""

    name: Ident
    group: Group
    context: DirectiveContext
    method: Optional[MethodItem] = None
    terminator: Optional[TokenTree] = None
    # range dropped, with one neighbouring comma, when a list expansion is empty
    empty_removal: Optional[Tuple[int, int]] = None

    @property
    def span(self) -> Span:
        """Span of the call, ``for_tuples!(...)``."""
        return self.name.span.to(self.group.span)

    @property
    def removal_end(self) -> int:
        """End offset of the call including its trailing ``;``."""
        if self.terminator is not None:
            return self.terminator.span.end
        return self.group.span.end

    @property
    def has_receiver(self) -> bool:
        return self.method is not None and self.method.signature.has_receiver


def is_macro_call(tokens: Sequence[TokenTree], index: int, macro_name: str) -> bool:
    """Check whether ``tokens[index:]`` starts with ``macro_name!``."""
    return (
        tokens[index].is_ident(macro_name)
        and index + 1 < len(tokens)
        and tokens[index + 1].is_punct("!")
    )


def is_repetition_marker(tokens: Sequence[TokenTree], index: int) -> bool:
    """Check whether ``tokens[index:]`` starts with ``#(``."""
    return (
        tokens[index].is_punct(REPETITION_MARKER)
        and index + 1 < len(tokens)
        and tokens[index + 1].is_group(Delimiter.PARENTHESIS)
    )


def find_directive_marker(tokens: Sequence[TokenTree], macro_name: str) -> Optional[TokenTree]:
    """
    Return the first directive call or repetition marker in ``tokens``.

    Searches nested groups as well; returns None when there is none.
    """
    for index, token in enumerate(tokens):
        if is_macro_call(tokens, index, macro_name) or is_repetition_marker(tokens, index):
            return token
        if isinstance(token, Group):
            found = find_directive_marker(token.tokens, macro_name)
            if found is not None:
                return found
    return None


def mentions(tokens: Sequence[TokenTree], name: str) -> bool:
    """Check whether identifier ``name`` occurs anywhere in ``tokens``."""
    return any(token.is_ident(name) for token in iter_tokens(tokens))


def _list_removal(
    tokens: Sequence[TokenTree], index: int, after: int, macro_name: str
) -> Optional[Tuple[int, int]]:
    """
    Range covering the call at ``tokens[index:after]`` and one adjacent comma.

    The following comma and the whitespace behind it are taken when there
    is one, so ``f(a, call, b)`` becomes ``f(a, b)``. Otherwise the
    preceding comma is taken, unless it directly follows another call whose
    range already ends at this one. Ranges of neighbouring calls never
    overlap. Returns None when no comma can be taken.
    """
    start = tokens[index].span.start
    if after < len(tokens) and tokens[after].is_punct(","):
        if after + 1 < len(tokens):
            return start, tokens[after + 1].span.start
        return start, tokens[after].span.end
    if index > 0 and tokens[index - 1].is_punct(","):
        follows_call = index >= 4 and is_macro_call(tokens, index - 4, macro_name)
        if not follows_call:
            return tokens[index - 1].span.start, tokens[after - 1].span.end
    return None


class TreeWalker:
    """
    Walks an implementation block and collects its directive calls.

    Usage:
        sites = TreeWalker(block, "for_tuples").walk()
    """

    def __init__(self, block: ImplementationBlock, macro_name: str):
        self.block = block
        self.macro_name = macro_name
        self.placeholder = block.placeholder.text
        self._sites: List[DirectiveSite] = []

    def walk(self) -> List[DirectiveSite]:
        """
        Collect all directive calls of the block, in source order.

        Raises:
            MalformedDirectiveError: For calls in the impl header, calls
                without a delimited argument and stray ``#(`` markers
            UnknownPlaceholderError: For placeholder occurrences outside
                of any call
        """
        self._sites = []
        self._check_header()

        for item in self.block.items:
            self._visit_item(item)

        logger.debug(f"Found {len(self._sites)} directive(s) in {self.block.display_name}")
        return list(self._sites)

    # -------------------------------------------------------------------------
    # Items
    # -------------------------------------------------------------------------

    def _check_header(self) -> None:
        header: List[TokenTree] = list(self.block.trait_path) + list(self.block.where_clause)
        for param in self.block.generics:
            header.extend(param.tokens)

        marker = find_directive_marker(header, self.macro_name)
        if marker is not None:
            raise MalformedDirectiveError(
                "directives are not supported in the implementation header", span=marker.span
            )
        self._reject_placeholders(header)

    def _visit_item(self, item) -> None:
        if isinstance(item, MacroItem):
            if item.name.text == self.macro_name:
                self._sites.append(DirectiveSite(
                    name=item.name,
                    group=item.group,
                    context=DirectiveContext.ITEM,
                    terminator=item.terminator,
                ))
            else:
                self._scan(item.group.tokens, _LIST, None)
        elif isinstance(item, MethodItem):
            self._scan(item.signature.tokens, _TYPE, item)
            if item.body is not None:
                self._scan(item.body.tokens, _BLOCK, item)
        elif isinstance(item, TypeItem):
            self._scan(item.tokens, _TYPE, None)
        elif isinstance(item, ConstItem):
            value_start = len(item.tokens) - len(item.value) - 1
            self._scan(item.tokens[:value_start], _TYPE, None)
            self._scan(item.value, _VALUE, None)

    # -------------------------------------------------------------------------
    # Token scanning
    # -------------------------------------------------------------------------

    def _scan(self, tokens: Sequence[TokenTree], mode: str, method: Optional[MethodItem]) -> None:
        index = 0
        while index < len(tokens):
            token = tokens[index]

            if is_macro_call(tokens, index, self.macro_name):
                if index + 2 >= len(tokens) or not tokens[index + 2].is_group():
                    raise MalformedDirectiveError(
                        f"expected a delimited argument after '{self.macro_name}!'",
                        span=tokens[index + 1].span,
                    )
                index = self._record(tokens, index, mode, method)
                continue

            if is_repetition_marker(tokens, index):
                raise MalformedDirectiveError(
                    f"repetition marker outside of a '{self.macro_name}!' call", span=token.span
                )

            if token.is_ident(self.placeholder):
                raise UnknownPlaceholderError(
                    "placeholder used outside of a directive",
                    identifier=self.placeholder,
                    span=token.span,
                )

            if isinstance(token, Group):
                if mode == _TYPE:
                    child = _TYPE
                elif token.delimiter is Delimiter.BRACE:
                    child = _BLOCK
                else:
                    child = _LIST
                self._scan(token.tokens, child, method)
            index += 1

    def _record(self, tokens: Sequence[TokenTree], index: int, mode: str, method) -> int:
        """Record the call at ``index``; returns the index after it."""
        group = tokens[index + 2]
        after = index + 3
        terminator = None
        empty_removal = None

        if mode == _TYPE:
            context = DirectiveContext.TYPE
        elif mode == _LIST:
            context = DirectiveContext.LIST
            empty_removal = _list_removal(tokens, index, after, self.macro_name)
        elif mode == _VALUE:
            context = DirectiveContext.VALUE
        else:
            previous = tokens[index - 1] if index > 0 else None
            at_statement_start = (
                previous is None
                or previous.is_punct(";")
                or previous.is_group(Delimiter.BRACE)
            )
            context = DirectiveContext.STATEMENT if at_statement_start else DirectiveContext.VALUE
            if at_statement_start and after < len(tokens) and tokens[after].is_punct(";"):
                terminator = tokens[after]
                after += 1

        self._sites.append(DirectiveSite(
            name=tokens[index],
            group=group,
            context=context,
            method=method,
            terminator=terminator,
            empty_removal=empty_removal,
        ))
        return after

    def _reject_placeholders(self, tokens: Sequence[TokenTree]) -> None:
        for token in iter_tokens(tokens):
            if token.is_ident(self.placeholder):
                raise UnknownPlaceholderError(
                    "placeholder used outside of a directive",
                    identifier=self.placeholder,
                    span=token.span,
                )
