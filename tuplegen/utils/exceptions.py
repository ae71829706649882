"""
Custom exception definitions.

This module defines the exception hierarchy for tuplegen. Every error is
detected statically while an annotated site is expanded and carries the
source location of the offending annotation or directive.
"""

from typing import Optional, List, TYPE_CHECKING

if TYPE_CHECKING:
    from ..syntax.tokens import Span


class TupleGenError(Exception):
    """
    Base exception for all tuplegen errors.

    This is the root exception class for all tuplegen-specific errors,
    providing common formatting of the message, the optional details and
    the source location.
    """

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None,
        span: Optional["Span"] = None,
        filename: Optional[str] = None,
    ):
        """
        Initialize tuplegen error.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
            span: Optional source span of the offending construct
            filename: Optional name of the source file
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.span = span
        self.filename = filename

    @property
    def location(self) -> str:
        """Return ``file:line:col`` for the error, or an empty string."""
        if self.span is None:
            return self.filename or ""
        name = self.filename or "<source>"
        return f"{name}:{self.span.line}:{self.span.column}"

    def with_filename(self, filename: str) -> "TupleGenError":
        """Attach a file name if none is set yet and return self."""
        if self.filename is None:
            self.filename = filename
        return self

    def __str__(self) -> str:
        """Return formatted error message."""
        text = self.message
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            text = f"{text} ({detail_str})"
        if self.location:
            text = f"{self.location}: {text}"
        return text


class SourceSyntaxError(TupleGenError):
    """
    Raised when source text cannot be tokenized or an annotated item
    cannot be parsed.
    """


class ConfigError(TupleGenError):
    """
    Raised when the degree argument of the annotation is missing,
    non-numeric, non-positive or above the configured limit.
    """

    def __init__(self, message: str, argument: Optional[str] = None, span: Optional["Span"] = None):
        details = {}
        if argument is not None:
            details["argument"] = repr(argument)
        super().__init__(message, details, span)
        self.argument = argument


class UnsupportedConstructError(TupleGenError):
    """
    Raised when full-automatic mode meets an associated type, an
    associated constant or a method returning a non-unit value, or when
    the annotation is attached to an item it cannot expand.
    """

    def __init__(self, construct: str, reason: str = "", span: Optional["Span"] = None):
        """
        Initialize unsupported construct error.

        Args:
            construct: Short description of the rejected construct
            reason: Optional explanation for why it's unsupported
            span: Source span of the construct
        """
        message = f"Unsupported construct '{construct}'"
        if reason:
            message += f": {reason}"

        super().__init__(message, span=span)
        self.construct = construct
        self.reason = reason


class MalformedDirectiveError(TupleGenError):
    """
    Raised when a repetition directive lacks a matching delimiter, is
    nested inside another repetition, or is used in a position it does
    not support.
    """


class UnknownPlaceholderError(TupleGenError):
    """
    Raised when the placeholder identifier appears outside the recognized
    access shapes, or a directive does not reference the placeholder of
    its site.
    """

    def __init__(self, message: str, identifier: Optional[str] = None, span: Optional["Span"] = None):
        details = {}
        if identifier is not None:
            details["identifier"] = identifier
        super().__init__(message, details, span)
        self.identifier = identifier


class EmptyBodyOnZeroArityError(TupleGenError):
    """
    Raised when a directive has no natural value for the zero-element
    tuple and the author did not supply an explicit default.
    """

    def __init__(self, separator: str, span: Optional["Span"] = None):
        message = (
            f"repetition joined by '{separator}' has no value for the empty tuple; "
            f"add an explicit default with `else <expr>`"
        )
        super().__init__(message, {"separator": separator}, span)
        self.separator = separator


class ConfigurationFileError(TupleGenError):
    """Raised when a tuplegen configuration file cannot be read or parsed."""


class SourceExpansionError(TupleGenError):
    """
    Raised when one or more annotated sites of a source file failed.

    The individual site errors are kept in ``errors``; no output is
    produced for the file.
    """

    def __init__(self, errors: List[TupleGenError], filename: Optional[str] = None):
        count = len(errors)
        noun = "site" if count == 1 else "sites"
        super().__init__(f"{count} annotated {noun} failed to expand", filename=filename)
        self.errors = list(errors)

    def __str__(self) -> str:
        lines = [self.message]
        lines.extend(f"  {error}" for error in self.errors)
        return "\n".join(lines)
