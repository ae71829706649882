"""
Mode dispatcher and expansion strategies.

An annotated trait declaration is expanded in full-automatic mode: every
required method gets a body forwarding the call to each tuple element. An
annotated trait implementation is expanded in semi-automatic mode: the
author's body is copied for every arity with its ``for_tuples!``
directives expanded.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from .degree import AnnotationConfig
from .emitter import ImplBuilder, TupleVariant
from .repetition import DirectiveParser, DirectivePosition, RepetitionDirective
from .rewriter import SelfAccessRewriter
from .walker import TreeWalker, find_directive_marker
from ..syntax.items import (
    AnnotatedNode,
    ConstItem,
    ImplementationBlock,
    InterfaceDeclaration,
    MacroItem,
    MethodItem,
    TypeItem,
)
from ..utils.config import TupleGenConfig, get_config
from ..utils.constants import ALLOW_UNUSED_ATTRIBUTE, Keyword
from ..utils.exceptions import MalformedDirectiveError, UnsupportedConstructError
from ..utils.logging import ExpansionLogger
from ..utils.naming import argument_name, choose_element_prefix
from ..utils.string_utils import TextEdit, apply_edits, indent_text

expansion_logger = ExpansionLogger(__name__)

FULL_AUTOMATIC = "full-automatic"
SEMI_AUTOMATIC = "semi-automatic"


class ExpansionStrategy(ABC):
    """
    Base class of the two expansion modes.

    A strategy is created per site; :meth:`validate` must succeed before
    :meth:`render` is called for any arity.
    """

    mode = ""

    def __init__(self, node: AnnotatedNode, annotation: AnnotationConfig, config: TupleGenConfig):
        self.node = node
        self.annotation = annotation
        self.expansion = config.expansion
        self.format = config.format
        self.element_prefix = choose_element_prefix(node.identifiers(), self.expansion.element_prefix)

    @property
    def source(self) -> str:
        return self.node.source

    @abstractmethod
    def validate(self) -> None:
        """Check the whole site; raises on the first unsupported construct."""
        pass

    @abstractmethod
    def render(self, variant: TupleVariant) -> str:
        """Render the declaration for one tuple variant."""
        pass

    def preamble(self) -> Optional[str]:
        """Text emitted before the declarations, if any."""
        return None

    def _builder(self, variant: TupleVariant, bound: str) -> ImplBuilder:
        builder = ImplBuilder(self.node.indent, self.format.indent)
        if self.expansion.emit_allow_unused:
            builder.add_attribute(ALLOW_UNUSED_ATTRIBUTE)
        builder.set_unsafe(self.node.unsafety)

        for param in self.node.generics:
            builder.add_generic(param.declaration(self.source))
        for element in variant.element_types:
            builder.add_generic(f"{element}: {bound}")

        builder.set_self_type(variant.tuple_type())
        if self.node.where_clause:
            builder.add_predicate(self.node.text_of(self.node.where_clause))
        return builder


# =============================================================================
# Full-automatic mode
# =============================================================================

@dataclass
class ForwardedMethod:
    """A trait method whose body forwards the call to every element."""

    name: str
    signature: str
    arguments: List[str]
    turbofish: str = ""
    has_receiver: bool = True
    is_async: bool = False
    is_unsafe: bool = False

    def call(self, index: int, element: str) -> str:
        """The forwarding statement for element ``index``."""
        target = f"self.{index}." if self.has_receiver else f"{element}::"
        expression = f"{target}{self.name}{self.turbofish}({', '.join(self.arguments)})"
        if self.is_async:
            expression += ".await"
        if self.is_unsafe:
            return f"unsafe {{ {expression}; }}"
        return f"{expression};"

    def render(self, variant: TupleVariant, indent_unit: str) -> str:
        statements = [self.call(index, element) for index, element in enumerate(variant.element_types)]
        if not statements:
            return f"{self.signature} {{}}"
        body = "\n".join(indent_text(statement, 1, indent_unit) for statement in statements)
        return f"{self.signature} {{\n{body}\n}}"


class FullAutomaticStrategy(ExpansionStrategy):
    """Expands a trait declaration with generated forwarding bodies."""

    mode = FULL_AUTOMATIC

    def __init__(self, node: InterfaceDeclaration, annotation: AnnotationConfig, config: TupleGenConfig):
        super().__init__(node, annotation, config)
        self.methods: List[ForwardedMethod] = []

    def validate(self) -> None:
        node = self.node
        marker = find_directive_marker(node.body.tokens, self.expansion.directive_macro)
        if marker is not None:
            raise MalformedDirectiveError(
                "directives are only supported in annotated implementation blocks",
                span=marker.span,
            )

        methods = []
        for item in node.items:
            if isinstance(item, (TypeItem, ConstItem, MacroItem)):
                name = item.name.text if item.name is not None else ""
                raise UnsupportedConstructError(
                    f"{item.kind} {name}".strip(),
                    "full-automatic mode cannot compose it, write a semi-automatic implementation",
                    span=item.span,
                )
            if not isinstance(item, MethodItem):
                continue

            signature = item.signature
            if item.body is not None:
                expansion_logger.log_skipped_method(signature.name.text, "has a default implementation")
                continue
            if not signature.returns_unit(self.source):
                raise UnsupportedConstructError(
                    f"fn {signature.name.text}",
                    "methods returning a value need a semi-automatic implementation",
                    span=signature.span,
                )
            methods.append(self._forward(item))
        self.methods = methods

    def _forward(self, item: MethodItem) -> ForwardedMethod:
        signature = item.signature
        used = set(self.node.identifiers())
        edits = []
        arguments = []
        for position, param in enumerate(signature.params):
            name = param.binding_name
            if name is None:
                name = argument_name(position, used)
                used.add(name)
                edits.append(TextEdit(param.pattern[0].span.start, param.pattern[-1].span.end, name))
            arguments.append(name)

        type_params = [param.name for param in signature.generics if not param.is_lifetime]
        return ForwardedMethod(
            name=signature.name.text,
            signature=apply_edits(self.source, signature.span.start, signature.span.end, edits),
            arguments=arguments,
            turbofish=f"::<{', '.join(type_params)}>" if type_params else "",
            has_receiver=signature.has_receiver,
            is_async=signature.is_async,
            is_unsafe=Keyword.UNSAFE.value in signature.qualifiers,
        )

    def trait_reference(self) -> str:
        """The trait as referenced from an impl, ``Name<A, B>``."""
        names = [param.name for param in self.node.generics]
        arguments = f"<{', '.join(names)}>" if names else ""
        return f"{self.node.name.text}{arguments}"

    def render(self, variant: TupleVariant) -> str:
        trait = self.trait_reference()
        builder = self._builder(variant, trait).set_trait(trait)
        for method in self.methods:
            builder.add_item(method.render(variant, self.format.indent))
        return builder.build()

    def preamble(self) -> str:
        """The trait declaration itself, without the annotation."""
        node = self.node
        parts = [attribute.text(self.source) for attribute in node.attributes]
        parts.append(self.source[node.tokens[0].span.start:node.span.end])
        return f"\n{node.indent}".join(parts)


# =============================================================================
# Semi-automatic mode
# =============================================================================

class SemiAutomaticStrategy(ExpansionStrategy):
    """Expands an implementation block and its ``for_tuples!`` directives."""

    mode = SEMI_AUTOMATIC

    def __init__(self, node: ImplementationBlock, annotation: AnnotationConfig, config: TupleGenConfig):
        super().__init__(node, annotation, config)
        self.placeholder = node.placeholder.text
        self.directives: List[RepetitionDirective] = []

    def validate(self) -> None:
        macro_name = self.expansion.directive_macro
        sites = TreeWalker(self.node, macro_name).walk()
        parser = DirectiveParser(self.placeholder, macro_name)
        self.directives = [parser.parse(site) for site in sites]

        # Rewriting and empty-tuple defaults are checked once up front
        for arity in (0, 1):
            self.render(TupleVariant.of(arity, self.element_prefix))

    def _rewriter(self, variant: TupleVariant, directive: RepetitionDirective) -> SelfAccessRewriter:
        return SelfAccessRewriter(
            self.source, self.placeholder, variant.element_types, directive.site.has_receiver
        )

    def render(self, variant: TupleVariant) -> str:
        node = self.node
        trait = node.text_of(node.trait_path)
        builder = self._builder(variant, trait).set_trait(trait)
        for attribute in node.attributes:
            builder.add_attribute(attribute.text(self.source))

        edits = []
        for directive in self.directives:
            rewriter = self._rewriter(variant, directive)
            edits.append(directive.expand(self.source, rewriter, variant.arity))
            if directive.position is DirectivePosition.PREDICATE:
                for predicate in directive.predicates(rewriter, variant.arity):
                    builder.add_predicate(predicate)

        body = node.body
        builder.set_raw_body(apply_edits(self.source, body.inner_start, body.inner_end, edits))
        return builder.build()


def dispatch(
    node: AnnotatedNode,
    annotation: AnnotationConfig,
    config: Optional[TupleGenConfig] = None,
) -> ExpansionStrategy:
    """
    Pick the expansion strategy for an annotated node.

    Args:
        node: Parsed annotated item
        annotation: Degree configuration of the site
        config: Tool configuration (default: global configuration)

    Returns:
        A strategy that still needs to be validated
    """
    config = config or get_config()
    if isinstance(node, InterfaceDeclaration):
        return FullAutomaticStrategy(node, annotation, config)
    if isinstance(node, ImplementationBlock):
        return SemiAutomaticStrategy(node, annotation, config)
    raise UnsupportedConstructError(type(node).__name__, "no expansion mode for this item", span=node.span)
