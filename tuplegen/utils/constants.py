"""
Constants and Enumerations for tuplegen.

This module consolidates the constant definitions used across the project:
default names of the annotation surface, formatting defaults and the
enumerations shared by the parser and the expander.
"""

from __future__ import annotations

from enum import Enum


# =============================================================================
# Annotation Surface
# =============================================================================

DEFAULT_ATTRIBUTE_NAME = "tuple_impl"
DEFAULT_DIRECTIVE_MACRO = "for_tuples"
DEFAULT_ELEMENT_PREFIX = "T"
DEFAULT_MAX_DEGREE_LIMIT = 128

REPETITION_MARKER = "#"
REPETITION_TERMINATOR = "*"
ZERO_ARITY_DEFAULT_KEYWORD = "else"
ALLOW_UNUSED_ATTRIBUTE = "#[allow(unused)]"

# Integer literal suffixes accepted in the degree argument
INTEGER_SUFFIXES = (
    "u8", "u16", "u32", "u64", "u128", "usize",
    "i8", "i16", "i32", "i64", "i128", "isize",
)


# =============================================================================
# Host Language Keywords
# =============================================================================

class Keyword(Enum):
    """Keywords the item parser and the walker look for."""

    TRAIT = "trait"
    IMPL = "impl"
    FOR = "for"
    WHERE = "where"
    FN = "fn"
    TYPE = "type"
    CONST = "const"
    PUB = "pub"
    UNSAFE = "unsafe"
    ASYNC = "async"
    AUTO = "auto"
    EXTERN = "extern"
    DEFAULT = "default"
    SELF_VALUE = "self"
    MUT = "mut"


# Qualifiers that may precede `fn` in a method signature
FN_QUALIFIERS = frozenset({"pub", "const", "async", "unsafe", "extern", "default"})

# Qualifiers that may precede `trait` / `impl` in an annotated item
ITEM_QUALIFIERS = frozenset({"pub", "unsafe", "auto", "default"})


# =============================================================================
# Formatting
# =============================================================================

DEFAULT_INDENT_SIZE = 4
DECLARATION_SEPARATOR = "\n\n"
TEMPLATE_INDENT = " " * DEFAULT_INDENT_SIZE

# Default configuration values
DEFAULT_CACHE_SIZE_MB = 64
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FILE = "tuplegen.log"
CONFIG_ENV_VAR = "TUPLEGEN_CONFIG"
CACHE_DIR_NAME = "tuplegen_cache"
