"""
Arity emitter.

Produces one concrete implementation per tuple arity ``0..=N`` for an
annotated site. Declarations are assembled with :class:`ImplBuilder`, a
small fluent builder for impl blocks; the mode strategies decide what goes
into each declaration.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Tuple

from .degree import AnnotationConfig
from ..utils.constants import DECLARATION_SEPARATOR
from ..utils.logging import ExpansionLogger
from ..utils.naming import element_names, tuple_type
from ..utils.string_utils import indent_text

if TYPE_CHECKING:
    from .modes import ExpansionStrategy

expansion_logger = ExpansionLogger(__name__)


@dataclass(frozen=True)
class TupleVariant:
    """One tuple arity and its element type parameters."""

    arity: int
    element_types: Tuple[str, ...]

    @classmethod
    def of(cls, arity: int, prefix: str) -> "TupleVariant":
        return cls(arity, tuple(element_names(prefix, arity)))

    def tuple_type(self) -> str:
        """Spell the tuple type: ``()``, ``(T0,)``, ``(T0, T1)``."""
        return tuple_type(self.element_types)


@dataclass(frozen=True)
class GeneratedDeclaration:
    """A fully substituted declaration for one arity."""

    variant: TupleVariant
    text: str

    @property
    def arity(self) -> int:
        return self.variant.arity


class ImplBuilder:
    """
    Builder for a single impl block.

    The first line of the result is not indented; every following line is
    prefixed with ``base_indent`` so the text can be spliced in place of the
    annotated item.

    Usage:
        text = (ImplBuilder("    ", "    ")
                .add_generic("T0: Trait")
                .set_trait("Trait")
                .set_self_type("(T0,)")
                .add_item("fn f(&self) {}")
                .build())
    """

    def __init__(self, base_indent: str = "", item_indent: str = "    "):
        self.base_indent = base_indent
        self.item_indent = item_indent
        self.reset()

    def reset(self) -> "ImplBuilder":
        """Reset the builder for a new declaration."""
        self._attributes: List[str] = []
        self._unsafe = False
        self._generics: List[str] = []
        self._trait = ""
        self._self_type = "()"
        self._predicates: List[str] = []
        self._items: List[str] = []
        self._raw_body: Optional[str] = None
        return self

    def add_attribute(self, attribute: str) -> "ImplBuilder":
        self._attributes.append(attribute)
        return self

    def set_unsafe(self, unsafe: bool = True) -> "ImplBuilder":
        self._unsafe = unsafe
        return self

    def add_generic(self, param: str) -> "ImplBuilder":
        self._generics.append(param)
        return self

    def set_trait(self, trait: str) -> "ImplBuilder":
        self._trait = trait
        return self

    def set_self_type(self, self_type: str) -> "ImplBuilder":
        self._self_type = self_type
        return self

    def add_predicate(self, predicate: str) -> "ImplBuilder":
        """Add a where-clause predicate; a trailing comma is dropped."""
        predicate = predicate.strip().rstrip(",").strip()
        if predicate:
            self._predicates.append(predicate)
        return self

    def add_item(self, item: str) -> "ImplBuilder":
        """Add an unindented item; it is indented one level inside the body."""
        self._items.append(item)
        return self

    def set_raw_body(self, body: str) -> "ImplBuilder":
        """Use ``body`` verbatim as the text between the braces."""
        self._raw_body = body
        return self

    def header(self) -> str:
        generics = f"<{', '.join(self._generics)}>" if self._generics else ""
        unsafe = "unsafe " if self._unsafe else ""
        header = f"{unsafe}impl{generics} {self._trait} for {self._self_type}"
        if self._predicates:
            header += " where " + ", ".join(self._predicates)
        return header

    def build(self) -> str:
        """Render the impl block."""
        lines = list(self._attributes) + [self.header()]
        text = f"\n{self.base_indent}".join(lines)

        if self._raw_body is not None:
            return f"{text} {{{self._raw_body}}}"
        if not self._items:
            return f"{text} {{}}"

        body = "\n\n".join(indent_text(item, 1, self.item_indent) for item in self._items)
        body = indent_text(body, 1, self.base_indent) if self.base_indent else body
        return f"{text} {{\n{body}\n{self.base_indent}}}"


class ArityEmitter:
    """
    Emits the declarations of one site.

    Args:
        strategy: Validated mode strategy of the site
        annotation: Degree configuration of the site
    """

    def __init__(self, strategy: "ExpansionStrategy", annotation: AnnotationConfig):
        self.strategy = strategy
        self.annotation = annotation

    def variants(self) -> List[TupleVariant]:
        """One variant per arity in ``0..=max_degree``, ascending."""
        prefix = self.strategy.element_prefix
        return [TupleVariant.of(arity, prefix) for arity in self.annotation.arities]

    def emit(self) -> List[GeneratedDeclaration]:
        """
        Build all declarations.

        Any error aborts the whole site; nothing is returned partially.
        """
        declarations: List[GeneratedDeclaration] = []
        for variant in self.variants():
            text = self.strategy.render(variant)
            declarations.append(GeneratedDeclaration(variant, text))
            expansion_logger.log_declaration(self.strategy.node.display_name, variant.arity)
        return declarations


def join_declarations(texts: List[str], base_indent: str) -> str:
    """Join rendered declarations for splicing at an item position."""
    return f"{DECLARATION_SEPARATOR}{base_indent}".join(texts)
