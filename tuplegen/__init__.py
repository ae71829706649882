"""
tuplegen: Tuple Implementation Generator

A build-time source rewriter that expands one annotated trait or trait
implementation into a concrete implementation for every tuple arity from
0 up to a configured maximum.

Key Features:
- Full-automatic mode: annotate a trait, get forwarding impls for tuples
- Semi-automatic mode: annotate an impl with for_tuples! directives
- Site-local errors with file:line:col locations
- Optional on-disk expansion cache

Usage:
    from tuplegen import expand_source

    result = expand_source(source_text, filename="lib.rs")
    print(result.output)
"""

__version__ = "0.1.0"
__author__ = "tuplegen Team"
__email__ = "tuplegen@example.com"

# Public API exports
from .expand import (
    AnnotationConfig,
    ExpansionResult,
    GeneratedDeclaration,
    SiteExpansion,
    TupleVariant,
    expand_file,
    expand_site,
    expand_source,
    parse_degree,
)

from .utils import (
    TupleGenConfig,
    TupleGenError,
    get_config,
)

__all__ = [
    "AnnotationConfig",
    "ExpansionResult",
    "GeneratedDeclaration",
    "SiteExpansion",
    "TupleVariant",
    "expand_file",
    "expand_site",
    "expand_source",
    "parse_degree",
    "TupleGenConfig",
    "TupleGenError",
    "get_config",
]
