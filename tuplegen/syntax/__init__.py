"""
Syntax layer: lexer, token trees and the parser for annotated items.
"""

from .tokens import (
    Delimiter,
    Group,
    Ident,
    Lifetime,
    Literal,
    Punct,
    Span,
    TokenTree,
)
from .lexer import tokenize
from .items import (
    AnnotatedNode,
    Attribute,
    ImplementationBlock,
    InterfaceDeclaration,
    find_annotated_sites,
)

__all__ = [
    "Delimiter",
    "Group",
    "Ident",
    "Lifetime",
    "Literal",
    "Punct",
    "Span",
    "TokenTree",
    "tokenize",
    "AnnotatedNode",
    "Attribute",
    "ImplementationBlock",
    "InterfaceDeclaration",
    "find_annotated_sites",
]
