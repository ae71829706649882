"""
Test package structure and basic imports.

This test module verifies that the package is properly structured
and all modules can be imported without errors.
"""

import sys
from pathlib import Path

# Add the project root to the path for testing
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


def test_main_package_import():
    """Test that the main tuplegen package can be imported."""
    import tuplegen

    # Check basic attributes
    assert hasattr(tuplegen, '__version__')
    assert hasattr(tuplegen, '__author__')
    assert hasattr(tuplegen, 'expand_source')
    assert hasattr(tuplegen, 'expand_file')
    for name in tuplegen.__all__:
        assert hasattr(tuplegen, name)


def test_syntax_imports():
    """Test that syntax submodules can be imported."""
    from tuplegen.syntax import (
        AnnotatedNode,
        ImplementationBlock,
        InterfaceDeclaration,
        find_annotated_sites,
        tokenize,
    )

    assert issubclass(InterfaceDeclaration, AnnotatedNode)
    assert issubclass(ImplementationBlock, AnnotatedNode)
    assert callable(tokenize)
    assert callable(find_annotated_sites)


def test_expand_imports():
    """Test that expansion submodules can be imported."""
    from tuplegen.expand import (
        ArityEmitter,
        DirectiveParser,
        ExpansionStrategy,
        FullAutomaticStrategy,
        SelfAccessRewriter,
        SemiAutomaticStrategy,
        TreeWalker,
        dispatch,
    )

    assert issubclass(FullAutomaticStrategy, ExpansionStrategy)
    assert issubclass(SemiAutomaticStrategy, ExpansionStrategy)
    assert ArityEmitter is not None
    assert DirectiveParser is not None
    assert SelfAccessRewriter is not None
    assert TreeWalker is not None
    assert callable(dispatch)


def test_utils_imports():
    """Test that utils submodules can be imported."""
    from tuplegen.utils import (
        TupleGenError,
        TupleGenConfig,
        ExpansionCache,
        ExpansionLogger,
        get_logger,
        tuple_type,
        apply_edits,
        DEFAULT_ATTRIBUTE_NAME,
    )

    assert issubclass(TupleGenError, Exception)
    assert DEFAULT_ATTRIBUTE_NAME == "tuple_impl"
    assert tuple_type(["A"]) == "(A,)"
    assert TupleGenConfig is not None
    assert ExpansionCache is not None
    assert ExpansionLogger is not None
    assert get_logger is not None
    assert apply_edits is not None


def test_cli_entry_point():
    """Test that the console script target exists."""
    from tuplegen.cli import main, build_parser

    assert callable(main)
    assert build_parser().prog == "tuplegen"
