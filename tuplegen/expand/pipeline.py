"""
Expansion pipeline.

Ties the stages together for one site (:func:`expand_site`), a complete
source text (:func:`expand_source`) and a file on disk
(:func:`expand_file`). Sites are expanded independently of each other:
neither the order of the sites nor the outcome of another site influences
a site's output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from .degree import AnnotationConfig, parse_degree
from .emitter import ArityEmitter, GeneratedDeclaration, TupleVariant, join_declarations
from .modes import dispatch
from ..syntax.items import AnnotatedNode, find_annotated_sites
from ..syntax.lexer import tokenize
from ..utils.caching import CachedDeclaration, CachedSite, ExpansionCache
from ..utils.config import TupleGenConfig, get_config
from ..utils.exceptions import SourceExpansionError, TupleGenError
from ..utils.logging import ExpansionLogger, get_logger
from ..utils.string_utils import TextEdit, apply_edits

logger = get_logger(__name__)
expansion_logger = ExpansionLogger(__name__)

DEFAULT_FILENAME = "<source>"


@dataclass
class SiteExpansion:
    """The generated output of one annotated site."""

    site: AnnotatedNode
    config: AnnotationConfig
    declarations: List[GeneratedDeclaration]
    preamble: Optional[str] = None

    @property
    def arities(self) -> List[int]:
        return [declaration.arity for declaration in self.declarations]

    def render(self) -> str:
        """Text replacing the annotated item."""
        texts = [declaration.text for declaration in self.declarations]
        if self.preamble is not None:
            texts.insert(0, self.preamble)
        return join_declarations(texts, self.site.indent)

    def cached_declarations(self) -> List[CachedDeclaration]:
        """Declarations in the form stored by the expansion cache."""
        return [(d.variant.arity, tuple(d.variant.element_types), d.text) for d in self.declarations]

    @classmethod
    def from_cache(cls, site: AnnotatedNode, config: AnnotationConfig, cached: CachedSite) -> "SiteExpansion":
        declarations = [
            GeneratedDeclaration(TupleVariant(arity, tuple(elements)), text)
            for arity, elements, text in cached.declarations
        ]
        return cls(site, config, declarations, cached.preamble)


@dataclass
class ExpansionResult:
    """Result of expanding a complete source text."""

    source: str
    output: str
    expansions: List[SiteExpansion] = field(default_factory=list)
    filename: str = DEFAULT_FILENAME
    cache_hits: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.expansions)


def expand_site(site: AnnotatedNode, config: Optional[TupleGenConfig] = None) -> SiteExpansion:
    """
    Expand one annotated site.

    Args:
        site: Parsed annotated item
        config: Tool configuration (default: global configuration)

    Returns:
        The site's N + 1 declarations

    Raises:
        TupleGenError: On the first error; nothing is produced for the site
    """
    config = config or get_config()
    annotation = parse_degree(site.annotation, config.expansion.max_degree_limit)
    return _expand_with(site, annotation, config)


def _expand_with(site: AnnotatedNode, annotation: AnnotationConfig, config: TupleGenConfig) -> SiteExpansion:
    strategy = dispatch(site, annotation, config)
    expansion_logger.log_expansion_start(site.display_name, strategy.mode, annotation.max_degree)

    strategy.validate()
    declarations = ArityEmitter(strategy, annotation).emit()
    return SiteExpansion(site, annotation, declarations, strategy.preamble())


def expand_source(
    source: str,
    config: Optional[TupleGenConfig] = None,
    filename: str = DEFAULT_FILENAME,
    cache: Optional[ExpansionCache] = None,
) -> ExpansionResult:
    """
    Expand every annotated site of a source text.

    Args:
        source: Source text
        config: Tool configuration (default: global configuration)
        filename: Name used in error locations and cache keys
        cache: Optional expansion cache

    Returns:
        ExpansionResult with the rewritten text

    Raises:
        SourceSyntaxError: If the text cannot be tokenized or an annotated
            item cannot be parsed
        SourceExpansionError: If any site fails; carries every site error
    """
    config = config or get_config()

    try:
        tokens = tokenize(source)
        sites = find_annotated_sites(source, tokens, config.expansion.attribute_name)
    except TupleGenError as e:
        raise e.with_filename(filename)

    logger.debug(f"Found {len(sites)} annotated site(s) in {filename}")

    expansions: List[SiteExpansion] = []
    errors: List[TupleGenError] = []
    cache_hits = 0
    fingerprint = config.fingerprint()

    for site in sites:
        try:
            annotation = parse_degree(site.annotation, config.expansion.max_degree_limit)
            degree = annotation.max_degree

            cached = cache.get_site(site, degree, fingerprint, filename) if cache is not None else None
            if cached is not None:
                expansion_logger.log_cache_hit(site.display_name, degree)
                expansions.append(SiteExpansion.from_cache(site, annotation, cached))
                cache_hits += 1
                continue

            if cache is not None:
                expansion_logger.log_cache_miss(site.display_name, degree)
            expansion = _expand_with(site, annotation, config)
            if cache is not None:
                cache.put_site(
                    site, degree, fingerprint, filename,
                    expansion.preamble, expansion.cached_declarations(),
                )
            expansions.append(expansion)
        except TupleGenError as e:
            e.with_filename(filename)
            expansion_logger.log_failure(site.display_name, e)
            errors.append(e)

    if errors:
        raise SourceExpansionError(errors, filename=filename)

    edits = [
        TextEdit(expansion.site.span.start, expansion.site.span.end, expansion.render())
        for expansion in expansions
    ]
    output = apply_edits(source, 0, len(source), edits)
    return ExpansionResult(source, output, expansions, filename, cache_hits)


def expand_file(
    path: Union[str, Path],
    output: Optional[Union[str, Path]] = None,
    config: Optional[TupleGenConfig] = None,
    cache: Optional[ExpansionCache] = None,
) -> ExpansionResult:
    """
    Expand a source file.

    Args:
        path: Input file
        output: Destination file; nothing is written when None
        config: Tool configuration (default: global configuration)
        cache: Optional expansion cache

    Returns:
        ExpansionResult of the file
    """
    path = Path(path)
    source = path.read_text(encoding="utf-8")
    result = expand_source(source, config=config, filename=str(path), cache=cache)

    if output is not None:
        Path(output).write_text(result.output, encoding="utf-8")
        logger.info(f"Wrote {len(result.expansions)} expanded site(s) to {output}")
    return result
