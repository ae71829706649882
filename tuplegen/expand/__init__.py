"""
Expansion engine.

Degree parsing, mode dispatch, directive walking and expansion, and the
arity emitter, tied together by the pipeline.
"""

from .degree import AnnotationConfig, parse_degree
from .emitter import ArityEmitter, GeneratedDeclaration, ImplBuilder, TupleVariant
from .modes import (
    FULL_AUTOMATIC,
    SEMI_AUTOMATIC,
    ExpansionStrategy,
    FullAutomaticStrategy,
    SemiAutomaticStrategy,
    dispatch,
)
from .pipeline import ExpansionResult, SiteExpansion, expand_file, expand_site, expand_source
from .repetition import DirectiveParser, DirectivePosition, RepetitionDirective
from .rewriter import SelfAccessRewriter
from .walker import DirectiveContext, DirectiveSite, TreeWalker

__all__ = [
    "AnnotationConfig",
    "parse_degree",
    "ArityEmitter",
    "GeneratedDeclaration",
    "ImplBuilder",
    "TupleVariant",
    "FULL_AUTOMATIC",
    "SEMI_AUTOMATIC",
    "ExpansionStrategy",
    "FullAutomaticStrategy",
    "SemiAutomaticStrategy",
    "dispatch",
    "ExpansionResult",
    "SiteExpansion",
    "expand_file",
    "expand_site",
    "expand_source",
    "DirectiveParser",
    "DirectivePosition",
    "RepetitionDirective",
    "SelfAccessRewriter",
    "DirectiveContext",
    "DirectiveSite",
    "TreeWalker",
]
