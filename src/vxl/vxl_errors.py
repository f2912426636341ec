"""
Exceptions raised by the VXL parser.

Classes:
    ParseError:
        User-visible syntax error with source location and the grammar
        alternatives that were attempted at the failing position.
    ParseMismatch:
        Recoverable mismatch. An alternative did not match at the current
        position and a sibling alternative may still be tried.
    ParseFailure:
        Unrecoverable malformation found inside a construct whose outer shape
        already matched (e.g. an overflowing number). Aborts every enclosing
        alternative.
    OperatorError:
        Raised when an operator is built from an unknown symbol.
"""

from typing import Iterable


class ParseError(SyntaxError):
    """
    A syntax error located in VXL source text.

    Args:
        message (str): Human readable description.
        offset (int): UTF-8 byte offset of the failing position.
        line (int): 1-based line of the failing position.
        column (int): 1-based codepoint column of the failing position.
        expected (Iterable[str]): Labels of the alternatives tried there.
    """

    def __init__(
        self,
        message: str,
        offset: int = 0,
        line: int = 1,
        column: int = 1,
        expected: Iterable[str] = (),
    ):
        super().__init__(message)
        self.message = message
        self.offset = offset
        self.line = line
        self.column = column
        self.expected: tuple[str, ...] = tuple(sorted(set(expected)))

    def __str__(self) -> str:
        text = f"{self.message} at line {self.line}, column {self.column}"
        if self.expected:
            text += f" (expected one of: {', '.join(self.expected)})"
        return text

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.message!r}, offset={self.offset}, "
            f"line={self.line}, column={self.column})"
        )


class ParseMismatch(ParseError):
    """An alternative did not match; backtrack and try the next one."""


class ParseFailure(ParseError):
    """A malformed construct; no sibling alternative may retry the input."""


class OperatorError(ValueError):
    """Unrecognized operator symbol."""

    def __init__(self, symbol: str):
        super().__init__(f"unrecognized operator: {symbol}")
        self.symbol = symbol


__all__ = ["OperatorError", "ParseError", "ParseFailure", "ParseMismatch"]
