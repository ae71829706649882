"""
Naming Utilities for tuplegen.

This module provides identifier generation for the code the expander
emits: tuple element type parameters, tuple type spellings and fresh
argument names for forwarded parameters.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Sequence, Set

from .constants import DEFAULT_ELEMENT_PREFIX


# =============================================================================
# Core Naming Utilities
# =============================================================================

def generate_unique_name(base_name: str, used_names: Set[str], separator: str = "_") -> str:
    """Generate a unique name by appending a counter if needed."""
    if base_name not in used_names:
        return base_name

    counter = 1
    while True:
        candidate = f"{base_name}{separator}{counter}"
        if candidate not in used_names:
            return candidate
        counter += 1


def choose_element_prefix(used_names: Iterable[str], base_prefix: str = DEFAULT_ELEMENT_PREFIX) -> str:
    """
    Choose the prefix for tuple element type parameters.

    The prefix is ``base_prefix`` unless one of ``used_names`` already has
    the shape ``<prefix><digits>``; then underscores are appended until the
    generated names cannot clash. The choice only depends on ``used_names``,
    so the same site always gets the same prefix.

    Args:
        used_names: Identifiers already present in the annotated item
        base_prefix: Preferred prefix

    Returns:
        A prefix whose numbered names are free
    """
    names = set(used_names)
    prefix = base_prefix
    while any(re.fullmatch(re.escape(prefix) + r"\d+", name) for name in names):
        prefix += "_"
    return prefix


def element_names(prefix: str, arity: int) -> List[str]:
    """Return the element type parameter names ``prefix0 .. prefix(arity-1)``."""
    return [f"{prefix}{index}" for index in range(arity)]


def tuple_type(elements: Sequence[str]) -> str:
    """
    Spell the tuple of the given elements.

    The one-element tuple needs its trailing comma to stay a tuple.
    """
    if not elements:
        return "()"
    if len(elements) == 1:
        return f"({elements[0]},)"
    return "(" + ", ".join(elements) + ")"


def argument_name(position: int, used_names: Set[str]) -> str:
    """Return a fresh name for the parameter at ``position``."""
    return generate_unique_name(f"arg{position}", used_names)
