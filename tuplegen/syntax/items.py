"""
Item parser for annotated sites.

Locates items carrying the tuple annotation anywhere in a token tree and
parses them into read-only descriptions: trait declarations (full-automatic
mode) and trait implementation blocks (semi-automatic mode). Only the
structure the expander needs is parsed; everything else stays as token runs
pointing back into the source.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .tokens import (
    Delimiter,
    Group,
    Ident,
    Lifetime,
    Literal,
    Span,
    TokenTree,
    find_top_level,
    iter_tokens,
    matching_angle,
    span_of,
    split_top_level,
    text_of,
)
from ..utils.constants import FN_QUALIFIERS, ITEM_QUALIFIERS, Keyword
from ..utils.exceptions import (
    SourceSyntaxError,
    UnknownPlaceholderError,
    UnsupportedConstructError,
)
from ..utils.string_utils import leading_indent

_BRACE = Delimiter.BRACE


# =============================================================================
# Building Blocks
# =============================================================================

@dataclass
class Attribute:
    """An outer attribute ``#[...]``."""

    span: Span
    group: Group

    @property
    def name(self) -> Optional[str]:
        tokens = self.group.tokens
        if tokens and isinstance(tokens[0], Ident):
            return tokens[0].text
        return None

    @property
    def arguments(self) -> List[TokenTree]:
        """Tokens following the attribute name."""
        return list(self.group.tokens[1:])

    def text(self, source: str) -> str:
        return source[self.span.start:self.span.end]


@dataclass
class GenericParam:
    """One generic parameter: lifetime, type or const parameter."""

    tokens: List[TokenTree]

    @property
    def name(self) -> str:
        first = self.tokens[0]
        if isinstance(first, Lifetime):
            return first.text
        if first.is_ident(Keyword.CONST.value) and len(self.tokens) > 1:
            return self.tokens[1].text
        return first.text

    @property
    def is_lifetime(self) -> bool:
        return isinstance(self.tokens[0], Lifetime)

    def declaration(self, source: str) -> str:
        """Parameter text with any default (``T = u32``) removed."""
        cut = find_top_level(self.tokens, lambda t: t.is_punct("="))
        tokens = self.tokens if cut == -1 else self.tokens[:cut]
        return text_of(source, tokens)


@dataclass
class Param:
    """A non-receiver function parameter ``pattern: Type``."""

    pattern: List[TokenTree]
    ty: List[TokenTree]

    @property
    def binding_name(self) -> Optional[str]:
        """The bound identifier for ``x`` / ``mut x`` patterns, else None."""
        pattern = self.pattern
        if len(pattern) == 2 and pattern[0].is_ident(Keyword.MUT.value):
            pattern = pattern[1:]
        if len(pattern) == 1 and isinstance(pattern[0], Ident) and pattern[0].text != "_":
            return pattern[0].text
        return None


@dataclass
class Signature:
    """A method signature, from its first qualifier to the end of its where clause."""

    tokens: List[TokenTree]
    qualifiers: List[str]
    name: Ident
    generics: List[GenericParam]
    params_group: Group
    receiver: Optional[List[TokenTree]]
    params: List[Param]
    return_type: Optional[List[TokenTree]]
    where_clause: List[TokenTree]

    @property
    def span(self) -> Span:
        return span_of(self.tokens)

    @property
    def has_receiver(self) -> bool:
        return self.receiver is not None

    @property
    def is_async(self) -> bool:
        return Keyword.ASYNC.value in self.qualifiers

    def returns_unit(self, source: str) -> bool:
        if self.return_type is None:
            return True
        return "".join(text_of(source, self.return_type).split()) == "()"


@dataclass
class AssociatedItem:
    """Base class of the items inside a trait or impl body."""

    attributes: List[Attribute]
    tokens: List[TokenTree]

    @property
    def span(self) -> Span:
        return span_of(self.tokens)

    @property
    def kind(self) -> str:
        return "item"


@dataclass
class MethodItem(AssociatedItem):
    signature: Optional[Signature] = None
    body: Optional[Group] = None

    @property
    def kind(self) -> str:
        return "method"


@dataclass
class TypeItem(AssociatedItem):
    name: Optional[Ident] = None
    value: List[TokenTree] = field(default_factory=list)

    @property
    def kind(self) -> str:
        return "associated type"


@dataclass
class ConstItem(AssociatedItem):
    name: Optional[Ident] = None
    ty: List[TokenTree] = field(default_factory=list)
    value: List[TokenTree] = field(default_factory=list)

    @property
    def kind(self) -> str:
        return "associated const"


@dataclass
class MacroItem(AssociatedItem):
    name: Optional[Ident] = None
    group: Optional[Group] = None
    terminator: Optional[TokenTree] = None

    @property
    def kind(self) -> str:
        return "macro invocation"


# =============================================================================
# Annotated Nodes
# =============================================================================

@dataclass
class AnnotatedNode:
    """
    An item carrying the tuple annotation.

    ``span`` covers the whole site, from the first attribute to the closing
    brace of the body; it is the range replaced by the generated output.
    """

    source: str
    annotation: Attribute
    attributes: List[Attribute]
    span: Span
    tokens: List[TokenTree]
    unsafety: bool
    generics: List[GenericParam]
    where_clause: List[TokenTree]
    body: Group
    items: List[AssociatedItem]

    @property
    def display_name(self) -> str:
        """Short human readable name used in log messages."""
        return f"annotated item at line {self.span.line}"

    @property
    def indent(self) -> str:
        """Indentation of the line the site starts on."""
        return leading_indent(self.source, self.span.start)

    @property
    def text(self) -> str:
        return self.source[self.span.start:self.span.end]

    def text_of(self, tokens: Sequence[TokenTree]) -> str:
        return text_of(self.source, tokens)

    def identifiers(self) -> List[str]:
        """All identifiers of the site, in source order."""
        return [token.text for token in iter_tokens(self.tokens) if isinstance(token, Ident)]


@dataclass
class InterfaceDeclaration(AnnotatedNode):
    """A trait declaration; expanded in full-automatic mode."""

    name: Optional[Ident] = None
    supertraits: List[TokenTree] = field(default_factory=list)

    @property
    def display_name(self) -> str:
        return f"trait {self.name.text}"


@dataclass
class ImplementationBlock(AnnotatedNode):
    """A trait implementation for a placeholder type; expanded in semi-automatic mode."""

    trait_path: List[TokenTree] = field(default_factory=list)
    placeholder: Optional[Ident] = None

    @property
    def display_name(self) -> str:
        return f"impl {self.text_of(self.trait_path)} for {self.placeholder.text}"


# =============================================================================
# Site Discovery
# =============================================================================

def find_annotated_sites(source: str, tokens: List[TokenTree], attribute_name: str) -> List[AnnotatedNode]:
    """
    Find and parse every item annotated with ``#[attribute_name(...)]``.

    Items are searched at any nesting depth; the inside of an annotated item
    is not searched again.

    Args:
        source: Full source text
        tokens: Token tree of ``source``
        attribute_name: Name of the annotation attribute

    Returns:
        Parsed sites in source order
    """
    sites: List[AnnotatedNode] = []
    _scan(source, tokens, attribute_name, sites)
    return sites


def _scan(source: str, tokens: List[TokenTree], attribute_name: str, sites: List[AnnotatedNode]) -> None:
    index = 0
    while index < len(tokens):
        attributes, after = _collect_attributes(tokens, index)
        if attributes:
            annotations = [attr for attr in attributes if attr.name == attribute_name]
            if annotations:
                if len(annotations) > 1:
                    raise UnsupportedConstructError(
                        f"#[{attribute_name}]",
                        "the annotation may only appear once per item",
                        span=annotations[1].span,
                    )
                site, end = _parse_item(source, tokens, attributes, annotations[0], after)
                sites.append(site)
                index = end + 1
                continue
            index = after
            continue

        token = tokens[index]
        if isinstance(token, Group):
            _scan(source, token.tokens, attribute_name, sites)
        index += 1


def _collect_attributes(tokens: Sequence[TokenTree], index: int):
    """Collect a run of outer attributes starting at ``index``."""
    attributes: List[Attribute] = []
    while (
        index + 1 < len(tokens)
        and tokens[index].is_punct("#")
        and tokens[index + 1].is_group(Delimiter.BRACKET)
    ):
        group = tokens[index + 1]
        attributes.append(Attribute(tokens[index].span.to(group.span), group))
        index += 2
    return attributes, index


def _skip_qualifiers(tokens: Sequence[TokenTree], index: int, qualifiers) -> int:
    while index < len(tokens) and isinstance(tokens[index], Ident) and tokens[index].text in qualifiers:
        if tokens[index].is_ident(Keyword.EXTERN.value) and index + 1 < len(tokens) \
                and isinstance(tokens[index + 1], Literal):
            index += 1
        elif tokens[index].is_ident(Keyword.PUB.value) and index + 1 < len(tokens) \
                and tokens[index + 1].is_group(Delimiter.PARENTHESIS):
            index += 1
        index += 1
    return index


def _parse_item(source, tokens, attributes, annotation, start):
    """Parse the annotated item starting at ``start``; returns (node, index of body)."""
    keyword_index = _skip_qualifiers(tokens, start, ITEM_QUALIFIERS)
    if keyword_index >= len(tokens) or not (
        tokens[keyword_index].is_ident(Keyword.TRAIT.value)
        or tokens[keyword_index].is_ident(Keyword.IMPL.value)
    ):
        found = tokens[keyword_index] if keyword_index < len(tokens) else annotation
        construct = getattr(found, "text", "item")
        raise UnsupportedConstructError(
            construct,
            "the annotation can only be attached to a trait declaration or a trait implementation",
            span=annotation.span,
        )

    body_index = find_top_level(tokens, lambda t: t.is_group(_BRACE), keyword_index)
    if body_index == -1:
        raise SourceSyntaxError("Expected an item body in braces", span=tokens[keyword_index].span)

    body = tokens[body_index]
    item_tokens = list(tokens[start:body_index + 1])
    header = list(tokens[keyword_index + 1:body_index])
    unsafety = any(t.is_ident(Keyword.UNSAFE.value) for t in tokens[start:keyword_index])
    others = [attr for attr in attributes if attr is not annotation]

    common = dict(
        source=source,
        annotation=annotation,
        attributes=others,
        span=attributes[0].span.to(body.span),
        tokens=item_tokens,
        unsafety=unsafety,
        body=body,
    )

    if tokens[keyword_index].is_ident(Keyword.TRAIT.value):
        node = _parse_trait(header, common, tokens[keyword_index])
    else:
        node = _parse_impl(header, common, tokens[keyword_index])
    return node, body_index


def _split_generics(tokens: List[TokenTree], index: int):
    """Parse ``<...>`` at ``index`` if present; returns (params, next index)."""
    if index < len(tokens) and tokens[index].is_punct("<"):
        close = matching_angle(tokens, index)
        if close == -1:
            raise SourceSyntaxError("Unclosed generic parameter list", span=tokens[index].span)
        params = [GenericParam(part) for part in split_top_level(tokens[index + 1:close])]
        return params, close + 1
    return [], index


def _split_where(tokens: List[TokenTree]):
    """Split a header tail at a top-level ``where``; returns (before, where clause)."""
    where = find_top_level(tokens, lambda t: t.is_ident(Keyword.WHERE.value))
    if where == -1:
        return tokens, []
    return tokens[:where], tokens[where + 1:]


def _parse_trait(header: List[TokenTree], common: dict, keyword: TokenTree) -> InterfaceDeclaration:
    if not header or not isinstance(header[0], Ident):
        raise SourceSyntaxError("Expected a trait name", span=keyword.span)
    name = header[0]
    generics, index = _split_generics(header, 1)
    rest, where_clause = _split_where(header[index:])
    supertraits = rest[1:] if rest and rest[0].is_punct(":") else []

    body = common["body"]
    return InterfaceDeclaration(
        generics=generics,
        where_clause=where_clause,
        items=parse_associated_items(body),
        name=name,
        supertraits=supertraits,
        **common,
    )


def _parse_impl(header: List[TokenTree], common: dict, keyword: TokenTree) -> ImplementationBlock:
    generics, index = _split_generics(header, 0)
    rest, where_clause = _split_where(header[index:])

    if rest and rest[0].is_punct("!"):
        raise UnsupportedConstructError(
            "negative impl", "negative implementations cannot be expanded", span=rest[0].span
        )

    def is_for(token: TokenTree) -> bool:
        return token.is_ident(Keyword.FOR.value)

    for_index = find_top_level(rest, is_for)
    # Skip a leading higher-ranked `for<'a>` binder
    if for_index == 0 and len(rest) > 1 and rest[1].is_punct("<"):
        close = matching_angle(rest, 1)
        for_index = find_top_level(rest, is_for, close + 1) if close != -1 else -1
    if for_index <= 0:
        raise UnsupportedConstructError(
            "inherent impl",
            "the semi-automatic implementation is required to implement a trait",
            span=keyword.span,
        )

    trait_path = rest[:for_index]
    self_type = rest[for_index + 1:]
    if len(self_type) != 1 or not isinstance(self_type[0], Ident):
        span = span_of(self_type) if self_type else rest[for_index].span
        raise UnknownPlaceholderError(
            "Expected an identifier as tuple placeholder",
            identifier=text_of(common["source"], self_type) or None,
            span=span,
        )

    body = common["body"]
    return ImplementationBlock(
        generics=generics,
        where_clause=where_clause,
        items=parse_associated_items(body),
        trait_path=trait_path,
        placeholder=self_type[0],
        **common,
    )


# =============================================================================
# Associated Items
# =============================================================================

def parse_associated_items(body: Group) -> List[AssociatedItem]:
    """
    Split a trait or impl body into its items.

    Args:
        body: The brace group of the trait or impl

    Returns:
        Items in source order
    """
    tokens = body.tokens
    items: List[AssociatedItem] = []
    index = 0
    while index < len(tokens):
        attributes, index = _collect_inner_and_outer_attributes(tokens, index)
        if index >= len(tokens):
            break
        item, index = _parse_associated_item(tokens, index, attributes)
        items.append(item)
    return items


def _collect_inner_and_outer_attributes(tokens: Sequence[TokenTree], index: int):
    attributes: List[Attribute] = []
    while index < len(tokens) and tokens[index].is_punct("#"):
        bang = index + 1 < len(tokens) and tokens[index + 1].is_punct("!")
        group_index = index + 2 if bang else index + 1
        if group_index >= len(tokens) or not tokens[group_index].is_group(Delimiter.BRACKET):
            break
        attributes.append(Attribute(tokens[index].span.to(tokens[group_index].span), tokens[group_index]))
        index = group_index + 1
    return attributes, index


def _parse_associated_item(tokens: Sequence[TokenTree], start: int, attributes: List[Attribute]):
    fn_index = _skip_qualifiers(tokens, start, FN_QUALIFIERS)
    if fn_index < len(tokens) and tokens[fn_index].is_ident(Keyword.FN.value):
        end = _find_item_end(tokens, fn_index, allow_block=True)
        item_tokens = list(tokens[start:end + 1])
        body = None
        signature_tokens = item_tokens
        if item_tokens[-1].is_group(_BRACE):
            body = item_tokens[-1]
            signature_tokens = item_tokens[:-1]
        elif item_tokens[-1].is_punct(";"):
            signature_tokens = item_tokens[:-1]
        signature = parse_signature(signature_tokens)
        return MethodItem(attributes, item_tokens, signature=signature, body=body), end + 1

    kw_index = _skip_qualifiers(tokens, start, {Keyword.PUB.value, Keyword.DEFAULT.value})
    head = tokens[kw_index] if kw_index < len(tokens) else tokens[start]

    if head.is_ident(Keyword.TYPE.value):
        end = _find_item_end(tokens, kw_index, allow_block=False)
        item_tokens = list(tokens[start:end + 1])
        inner = list(tokens[kw_index + 1:end])
        equals = find_top_level(inner, lambda t: t.is_punct("="))
        value = inner[equals + 1:] if equals != -1 else []
        name = inner[0] if inner and isinstance(inner[0], Ident) else None
        return TypeItem(attributes, item_tokens, name=name, value=value), end + 1

    if head.is_ident(Keyword.CONST.value):
        end = _find_item_end(tokens, kw_index, allow_block=False)
        item_tokens = list(tokens[start:end + 1])
        inner = list(tokens[kw_index + 1:end])
        colon = find_top_level(inner, lambda t: t.is_punct(":"))
        equals = find_top_level(inner, lambda t: t.is_punct("="))
        ty_end = equals if equals != -1 else len(inner)
        ty = inner[colon + 1:ty_end] if colon != -1 else []
        value = inner[equals + 1:] if equals != -1 else []
        name = inner[0] if inner and isinstance(inner[0], Ident) else None
        return ConstItem(attributes, item_tokens, name=name, ty=ty, value=value), end + 1

    if (
        isinstance(head, Ident)
        and kw_index + 2 < len(tokens)
        and tokens[kw_index + 1].is_punct("!")
        and tokens[kw_index + 2].is_group()
    ):
        group = tokens[kw_index + 2]
        end = kw_index + 2
        terminator = None
        if end + 1 < len(tokens) and tokens[end + 1].is_punct(";"):
            end += 1
            terminator = tokens[end]
        item_tokens = list(tokens[start:end + 1])
        return MacroItem(attributes, item_tokens, name=head, group=group, terminator=terminator), end + 1

    raise SourceSyntaxError(f"Unexpected token {getattr(head, 'text', '')!r} in item body", span=head.span)


def _find_item_end(tokens: Sequence[TokenTree], start: int, allow_block: bool) -> int:
    def is_end(token: TokenTree) -> bool:
        return token.is_punct(";") or (allow_block and token.is_group(_BRACE))

    end = find_top_level(tokens, is_end, start)
    if end == -1:
        raise SourceSyntaxError("Unterminated item, expected ';'", span=tokens[start].span)
    return end


def parse_signature(tokens: List[TokenTree]) -> Signature:
    """
    Parse a method signature token run (without body or ``;``).

    Raises:
        SourceSyntaxError: If the run is not a well-formed signature
    """
    fn_index = next((i for i, t in enumerate(tokens) if t.is_ident(Keyword.FN.value)), -1)
    if fn_index == -1 or fn_index + 1 >= len(tokens) or not isinstance(tokens[fn_index + 1], Ident):
        raise SourceSyntaxError("Expected 'fn <name>'", span=tokens[0].span)

    qualifiers = [t.text for t in tokens[:fn_index] if isinstance(t, Ident)]
    name = tokens[fn_index + 1]
    generics, index = _split_generics(tokens, fn_index + 2)
    if index >= len(tokens) or not tokens[index].is_group(Delimiter.PARENTHESIS):
        raise SourceSyntaxError(f"Expected parameter list of '{name.text}'", span=name.span)
    params_group = tokens[index]
    rest, where_clause = _split_where(list(tokens[index + 1:]))

    return_type = None
    if rest and rest[0].is_punct("->"):
        return_type = rest[1:]

    receiver = None
    params: List[Param] = []
    for position, part in enumerate(split_top_level(params_group.tokens)):
        colon = find_top_level(part, lambda t: t.is_punct(":"))
        pattern = part if colon == -1 else part[:colon]
        if position == 0 and any(t.is_ident(Keyword.SELF_VALUE.value) for t in pattern):
            receiver = part
            continue
        if colon == -1:
            raise SourceSyntaxError("Expected 'pattern: Type' parameter", span=span_of(part))
        params.append(Param(pattern=part[:colon], ty=part[colon + 1:]))

    return Signature(
        tokens=list(tokens),
        qualifiers=qualifiers,
        name=name,
        generics=generics,
        params_group=params_group,
        receiver=receiver,
        params=params,
        return_type=return_type,
        where_clause=where_clause,
    )
