"""
Unit tests for error handling and diagnostic reporting.

This module tests the exception hierarchy, the source locations errors
carry and the aggregation of site errors per source file.
"""

import pytest

from tuplegen.cli import format_error
from tuplegen.expand.pipeline import expand_source
from tuplegen.syntax.tokens import Span
from tuplegen.utils.exceptions import (
    ConfigError,
    EmptyBodyOnZeroArityError,
    MalformedDirectiveError,
    SourceExpansionError,
    SourceSyntaxError,
    TupleGenError,
    UnknownPlaceholderError,
    UnsupportedConstructError,
)


class TestTupleGenExceptions:
    """Test cases for custom exception classes."""

    def test_tuplegen_error_basic(self):
        """Test basic TupleGenError functionality."""
        error = TupleGenError("Test error message")
        assert str(error) == "Test error message"
        assert error.message == "Test error message"
        assert error.details == {}
        assert error.location == ""

    def test_tuplegen_error_with_details_and_location(self):
        """Test TupleGenError with details and a span."""
        error = TupleGenError("Test error", {"key1": "value1", "key2": 42}, Span(0, 1, 3, 7))

        assert error.location == "<source>:3:7"
        assert str(error) == "<source>:3:7: Test error (key1=value1, key2=42)"

    def test_with_filename_keeps_first_name(self):
        error = TupleGenError("e", span=Span(0, 1, 1, 1))
        error.with_filename("a.rs").with_filename("b.rs")
        assert error.location == "a.rs:1:1"

    def test_filename_without_span(self):
        error = TupleGenError("e", filename="a.rs")
        assert error.location == "a.rs"

    def test_hierarchy(self):
        """Test that every error is a TupleGenError."""
        for cls in (
            SourceSyntaxError,
            ConfigError,
            UnsupportedConstructError,
            MalformedDirectiveError,
            UnknownPlaceholderError,
            EmptyBodyOnZeroArityError,
            SourceExpansionError,
        ):
            assert issubclass(cls, TupleGenError)

    def test_config_error(self):
        error = ConfigError("degree is not numeric", argument="\"5\"")
        assert error.argument == "\"5\""
        assert error.details["argument"] == repr("\"5\"")

    def test_unsupported_construct_error(self):
        """Test UnsupportedConstructError functionality."""
        error = UnsupportedConstructError("associated type Item", "use an impl")
        assert error.construct == "associated type Item"
        assert error.reason == "use an impl"
        assert error.message == "Unsupported construct 'associated type Item': use an impl"

    def test_unknown_placeholder_error(self):
        error = UnknownPlaceholderError("placeholder used outside of a directive", identifier="Tuple")
        assert error.details == {"identifier": "Tuple"}

    def test_empty_body_error(self):
        error = EmptyBodyOnZeroArityError("+")
        assert error.separator == "+"
        assert "else <expr>" in error.message

    def test_source_expansion_error(self):
        errors = [MalformedDirectiveError("a"), MalformedDirectiveError("b")]
        error = SourceExpansionError(errors, filename="lib.rs")

        assert error.message == "2 annotated sites failed to expand"
        assert str(error).splitlines() == ["2 annotated sites failed to expand", "  a", "  b"]
        assert SourceExpansionError(errors[:1]).message == "1 annotated site failed to expand"


class TestSiteErrorAggregation:
    """Test that all failing sites of a file are reported."""

    SOURCE = (
        "#[tuple_impl(0)]\n"
        "trait A {\n"
        "    fn a(&self);\n"
        "}\n"
        "\n"
        "#[tuple_impl(2)]\n"
        "trait Fine {\n"
        "    fn fine(&self);\n"
        "}\n"
        "\n"
        "#[tuple_impl(2)]\n"
        "trait B {\n"
        "    type Item;\n"
        "}\n"
    )

    def test_every_failure_is_collected(self, tuplegen_config):
        with pytest.raises(SourceExpansionError) as exc_info:
            expand_source(self.SOURCE, config=tuplegen_config, filename="lib.rs")

        errors = exc_info.value.errors
        assert [type(e) for e in errors] == [ConfigError, UnsupportedConstructError]
        assert errors[0].location == "lib.rs:1:14"
        assert errors[1].location == "lib.rs:13:5"

    def test_format_error_lines(self, tuplegen_config):
        with pytest.raises(SourceExpansionError) as exc_info:
            expand_source(self.SOURCE, config=tuplegen_config, filename="lib.rs")

        lines = format_error(exc_info.value)
        assert lines[0] == "lib.rs:1:14: error: degree must be a positive integer (argument='0')"
        assert lines[1].startswith("lib.rs:13:5: error: Unsupported construct 'associated type Item'")

    def test_syntax_errors_are_not_aggregated(self, tuplegen_config):
        with pytest.raises(SourceSyntaxError) as exc_info:
            expand_source("#[tuple_impl(2)]\ntrait A {\n", config=tuplegen_config, filename="x.rs")
        assert exc_info.value.filename == "x.rs"

    def test_format_error_without_location(self):
        assert format_error(TupleGenError("plain")) == ["error: plain"]
