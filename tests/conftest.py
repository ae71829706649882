"""
Pytest configuration and shared fixtures for tuplegen tests.

This module provides common test fixtures, sample sources and assertion
helpers used across the test suite.
"""

import re
import shutil
import tempfile
from pathlib import Path
from typing import List

import pytest

from tuplegen.expand.degree import AnnotationConfig
from tuplegen.expand.modes import dispatch
from tuplegen.expand.pipeline import expand_site, expand_source
from tuplegen.syntax.items import find_annotated_sites
from tuplegen.syntax.lexer import tokenize
from tuplegen.utils.config import TupleGenConfig, set_config


# =============================================================================
# Sample sources
# =============================================================================

NOTIFY_TRAIT = """\
#[tuple_impl(2)]
trait Notify {
    fn notify(&self);
}
"""

GET_IMPL = """\
#[tuple_impl(3)]
impl Get for Tuple {
    for_tuples!( type Out = ( #( Tuple::Out ),* ); );

    fn get(&self) -> Self::Out {
        for_tuples!( ( #( Tuple.get() ),* ) )
    }
}
"""

HOOKS_IMPL = """\
#[tuple_impl(2)]
impl Hooks for Tuple {
    for_tuples!( where #( Tuple: Clone )* );
    for_tuples!( const WEIGHT: u32 = #( Tuple::WEIGHT )+* else 0; );

    fn on_start(&mut self, round: u32) {
        for_tuples!( #( Tuple.on_start(round); )* );
    }

    fn describe() -> Vec<&'static str> {
        vec![for_tuples!( #( Tuple::NAME ),* )]
    }
}
"""


# Test configuration
@pytest.fixture(scope="session")
def temp_test_dir():
    """Create temporary directory for test artifacts."""
    temp_dir = tempfile.mkdtemp(prefix="tuplegen_test_")
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def tuplegen_config():
    """Default configuration that ignores any configuration file."""
    return TupleGenConfig(data={})


@pytest.fixture(autouse=True)
def reset_global_config(monkeypatch):
    """Keep the process-wide configuration independent of the environment."""
    monkeypatch.delenv("TUPLEGEN_CONFIG", raising=False)
    monkeypatch.delenv("TUPLEGEN_DISABLE_CACHE", raising=False)
    set_config(TupleGenConfig(data={}))
    yield
    set_config(None)


@pytest.fixture
def notify_source():
    return NOTIFY_TRAIT


@pytest.fixture
def get_source():
    return GET_IMPL


@pytest.fixture
def hooks_source():
    return HOOKS_IMPL


# =============================================================================
# Helpers
# =============================================================================

def parse_sites(source: str, attribute_name: str = "tuple_impl"):
    """Tokenize ``source`` and return its annotated sites."""
    return find_annotated_sites(source, tokenize(source), attribute_name)


def parse_site(source: str):
    """Return the single annotated site of ``source``."""
    sites = parse_sites(source)
    assert len(sites) == 1, f"expected one annotated site, found {len(sites)}"
    return sites[0]


def declarations_of(source: str, config=None) -> List[str]:
    """Expand the single site of ``source`` and return the declaration texts."""
    expansion = expand_site(parse_site(source), config or TupleGenConfig(data={}))
    return [declaration.text for declaration in expansion.declarations]


def validated_strategy(source: str, max_degree: int = 2, config=None):
    """Dispatch and validate the single site of ``source``."""
    strategy = dispatch(parse_site(source), AnnotationConfig(max_degree), config or TupleGenConfig(data={}))
    strategy.validate()
    return strategy


def expand_text(source: str, config=None) -> str:
    """Expand ``source`` and return the rewritten text."""
    return expand_source(source, config=config or TupleGenConfig(data={})).output


def write_source(directory, name: str, content: str) -> Path:
    path = Path(directory) / name
    path.write_text(content, encoding="utf-8")
    return path


def assert_output_contains_pattern(code: str, pattern: str, description: str = ""):
    """
    Assert that generated code contains a specific pattern.

    Args:
        code: Generated code
        pattern: Regex pattern to match
        description: Description of what the pattern checks
    """
    if not re.search(pattern, code):
        pytest.fail(f"Output pattern check failed: {description}\nPattern: {pattern}\nOutput:\n{code}")


def assert_output_not_contains_pattern(code: str, pattern: str, description: str = ""):
    """
    Assert that generated code does NOT contain a specific pattern.

    Args:
        code: Generated code
        pattern: Regex pattern that should not match
        description: Description of what the pattern checks
    """
    if re.search(pattern, code):
        pytest.fail(f"Output negative pattern check failed: {description}\nPattern: {pattern}\nOutput:\n{code}")


# Pytest hooks for test collection and reporting
def pytest_collection_modifyitems(config, items):
    """Add markers based on the test directory."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "filecheck" in str(item.fspath):
            item.add_marker(pytest.mark.filecheck)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests for individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests for complete workflows"
    )
    config.addinivalue_line(
        "markers", "filecheck: FileCheck-style output validation tests"
    )
