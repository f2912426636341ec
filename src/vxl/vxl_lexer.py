"""
Lexical layer of the VXL parser.

This module provides the components that read raw source text:

Classes:
    CharacterStream: Position tracker over the source with UTF-8 byte offset,
        line and codepoint column, plus mark/reset for backtracking.
    Lexer: Recognizers for the leaves of the grammar. Each returns a
        positioned `Node` and advances the stream, or raises `ParseMismatch`
        and leaves the stream where it was.

Recognized leaves:
    * Booleans (`true`/`false`, any case) and `none`
    * Numbers with `_` separators, fraction and exponent; percentages (`3%`)
    * Single-line double-quoted strings (escapes kept verbatim)
    * Addresses (`0x` + 40 hex digits)
    * Identifiers, including digit-prefixed ones such as `1inch`
    * Line comments (`# ...`)
    * Unary and binary operator symbols and keywords

Raises:
    ParseMismatch: The leaf is not present at the current position.
    ParseFailure: The leaf is present but malformed (e.g. number overflow).

Example:
    >>> lexer = Lexer(CharacterStream("1_000.5%"))
    >>> lexer.numeric().token
    Percentage(N(Decimal('1000.5')))
"""

import functools
import logging
from typing import Any, Callable, NamedTuple, TypeVar

from vxl.vxl_ast import (
    Address,
    Boolean,
    Identifier,
    LineComment,
    Node,
    NoneLiteral,
    Number,
    OperatorToken,
    Percentage,
    String,
    Token,
)
from vxl.vxl_constants import (
    ADDRESS_HEX_LENGTH,
    COMPARISON_CHARS,
    ESCAPABLE_CHARS,
    HEX_DIGITS,
    OTHER_OPERATOR_CHARS,
    Operator,
    arithmetic_chars,
    comparison_operators,
    logical_keywords,
    other_operators,
)
from vxl.vxl_errors import ParseFailure, ParseMismatch
from vxl.vxl_numeric import N, NumberRangeError

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def traced(rule: F) -> F:
    """
    Log entry and outcome of a grammar rule when the owner has `trace` set.

    The owner (Lexer or Parser) must expose `trace` and `stream`.
    """

    name = rule.__name__.removeprefix("parse_")

    @functools.wraps(rule)
    def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
        if not self.trace:
            return rule(self, *args, **kwargs)
        stream = self.stream
        logger.debug("-> %s at %d:%d %r", name, stream.line, stream.column, stream.preview())
        try:
            result = rule(self, *args, **kwargs)
        except ParseMismatch:
            logger.debug("<- %s mismatch", name)
            raise
        except ParseFailure as exc:
            logger.debug("<- %s failure: %s", name, exc.message)
            raise
        logger.debug("<- %s ok, now at %d:%d", name, stream.line, stream.column)
        return result

    return wrapper  # type: ignore[return-value]


def is_ident_start(ch: str) -> bool:
    return ch.isalpha() or ch == "_"


def is_ident_char(ch: str) -> bool:
    return ch != "" and (ch.isalnum() or ch in "_-")


def is_ascii_digit(ch: str) -> bool:
    return ch != "" and ch in "0123456789"


def is_ascii_alpha(ch: str) -> bool:
    return ch.isascii() and ch.isalpha()


class Mark(NamedTuple):
    """Saved stream state; restoring it undoes everything consumed since."""

    position: int
    offset: int
    line: int
    column: int


class CharacterStream:
    """
    A utility for reading characters from a string source with position tracking.

    Attributes:
        source (str): The input source string.
        position (int): Current codepoint index in the source.
        offset (int): Current UTF-8 byte offset.
        line (int): Current line number (1-indexed).
        column (int): Current codepoint column (1-indexed).
    """

    def __init__(
        self,
        source: str,
        position: int = 0,
        line: int = 1,
        column: int = 1,
        offset: int | None = None,
    ):
        self.source = source
        self.position = position
        self.line = line
        self.column = column
        self.offset = (
            len(source[:position].encode("utf-8")) if offset is None else offset
        )

    def next(self) -> str:
        """
        Consumes and returns the next character in the stream.

        Raises:
            EOFError: If reading past the end of the source.
        """
        if self.position >= len(self.source):
            raise EOFError(
                f"CharacterStreamError: Attempted to read past end of source at position=<{self.position}>, line=<{self.line}>"
            )
        char = self.source[self.position]
        if char == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        self.position += 1
        self.offset += len(char.encode("utf-8"))
        return char

    def peek(self, offset: int = 0) -> str:
        """Character `offset` places ahead, or "" when out of bounds."""
        index = self.position + offset
        if index < 0 or index >= len(self.source):
            return ""
        return self.source[index]

    def current(self) -> str | None:
        return self.source[self.position] if self.position < len(self.source) else None

    def end_of_file(self) -> bool:
        return self.position >= len(self.source)

    def mark(self) -> Mark:
        """Zero-width probe of the current location."""
        return Mark(self.position, self.offset, self.line, self.column)

    def reset(self, mark: Mark) -> None:
        self.position, self.offset, self.line, self.column = mark

    def startswith(self, text: str, ignore_case: bool = False) -> bool:
        chunk = self.source[self.position : self.position + len(text)]
        if ignore_case:
            return chunk.lower() == text.lower()
        return chunk == text

    def advance(self, count: int) -> str:
        """Consume `count` characters and return them."""
        return "".join(self.next() for _ in range(count))

    def take_while(self, predicate: Callable[[str], bool]) -> str:
        start = self.position
        while not self.end_of_file() and predicate(self.source[self.position]):
            self.next()
        return self.source[start : self.position]

    def skip_spaces(self) -> str:
        """Consume spaces and tabs (not newlines)."""
        return self.take_while(lambda ch: ch in " \t")

    def skip_whitespace(self) -> str:
        """Consume spaces, tabs, carriage returns and newlines."""
        return self.take_while(lambda ch: ch in " \t\r\n")

    def preview(self, width: int = 20) -> str:
        return self.source[self.position : self.position + width]


class Lexer:
    """
    Leaf recognizers for the VXL grammar.

    Every recognizer either returns a Node positioned at its first character
    and leaves the stream after the consumed text, or raises ParseMismatch
    with the stream restored to where it started.

    Attributes:
        stream (CharacterStream): The shared position tracker.
        trace (bool): Log every recognizer attempt at DEBUG level.
        furthest (Mark | None): Furthest position at which a mismatch occurred.
        expected (set[str]): Labels of the alternatives tried at `furthest`.
    """

    def __init__(self, stream: CharacterStream, trace: bool = False) -> None:
        self.stream = stream
        self.trace = trace
        self.furthest: Mark | None = None
        self.expected: set[str] = set()

    # Error helpers --------------------------------------------------------

    def mismatch(self, expected: str, start: Mark | None = None) -> ParseMismatch:
        """
        Build a ParseMismatch for `expected` at the current position, first
        rewinding to `start` when given. Also records the furthest failure.
        """
        at = self.stream.mark()
        if start is not None:
            self.stream.reset(start)
        if self.furthest is None or at.position > self.furthest.position:
            self.furthest = at
            self.expected = {expected}
        elif at.position == self.furthest.position:
            self.expected.add(expected)
        return ParseMismatch(f"expected {expected}", at.offset, at.line, at.column, [expected])

    def failure(self, message: str, at: Mark) -> ParseFailure:
        return ParseFailure(message, at.offset, at.line, at.column)

    def make_node(self, token: Token, start: Mark) -> Node:
        return Node(token, start.offset, start.line, start.column)

    def at_word_boundary(self) -> bool:
        return not is_ident_char(self.stream.peek())

    def keyword(self, word: str) -> bool:
        """Consume `word` (any case) if it is present as a whole word."""
        if not self.stream.startswith(word, ignore_case=True):
            return False
        if is_ident_char(self.stream.peek(len(word))):
            return False
        self.stream.advance(len(word))
        return True

    # Literals -------------------------------------------------------------

    @traced
    def boolean(self) -> Node:
        start = self.stream.mark()
        head = self.stream.peek()
        if head in ("t", "T") and self.keyword("true"):
            return self.make_node(Boolean(True), start)
        if head in ("f", "F") and self.keyword("false"):
            return self.make_node(Boolean(False), start)
        raise self.mismatch("boolean", start)

    @traced
    def none(self) -> Node:
        start = self.stream.mark()
        # only a lower-case head dispatches here
        if self.stream.peek() == "n" and self.keyword("none"):
            return self.make_node(NoneLiteral(), start)
        raise self.mismatch("none", start)

    def _digit_group(self, start: Mark) -> str:
        if not is_ascii_digit(self.stream.peek()):
            raise self.mismatch("digit", start)
        group = self.stream.take_while(lambda ch: is_ascii_digit(ch) or ch == "_")
        if group.endswith("_"):
            raise self.mismatch("digit", start)
        return group.replace("_", "")

    def _exponent(self) -> int | None:
        if self.stream.peek() not in ("e", "E"):
            return None
        exp_start = self.stream.mark()
        self.stream.next()
        negative = False
        if self.stream.peek() in ("-", "+"):
            negative = self.stream.next() == "-"
        digits = self.stream.take_while(lambda ch: is_ascii_digit(ch) or ch == "_")
        if not digits:
            self.stream.reset(exp_start)
            return None
        cleaned = digits.replace("_", "")
        if not cleaned:
            raise self.failure(f"malformed exponent: {digits!r}", exp_start)
        value = int(cleaned)
        return -value if negative else value

    @traced
    def n(self) -> N:
        """
        Parse a numeric value without wrapping it in a Node.

        The sign is applied after the exponent, so `-1e0_1` is `-(1e01)`.
        A number immediately followed by a letter (optionally after `e`) is a
        mismatch, which is what lets `1inch` parse as an identifier.
        """
        start = self.stream.mark()
        negative = False
        if self.stream.peek() in ("-", "+"):
            negative = self.stream.next() == "-"

        text = self._digit_group(start)
        if self.stream.peek() == "." and is_ascii_digit(self.stream.peek(1)):
            self.stream.next()
            text += "." + self._digit_group(start)

        lookahead = 1 if self.stream.peek() in ("e", "E") else 0
        if is_ascii_alpha(self.stream.peek(lookahead)):
            raise self.mismatch("number", start)

        try:
            value = N.from_str(text)
            exponent = self._exponent()
            if exponent is not None:
                value = value.apply_exponent(exponent)
        except NumberRangeError as exc:
            raise self.failure(str(exc), start) from exc

        return value.negate() if negative else value

    @traced
    def number(self) -> Node:
        start = self.stream.mark()
        return self.make_node(Number(self.n()), start)

    @traced
    def percentage(self) -> Node:
        start = self.stream.mark()
        value = self.n()
        if self.stream.peek() != "%":
            raise self.mismatch("%", start)
        self.stream.next()
        return self.make_node(Percentage(value), start)

    @traced
    def numeric(self) -> Node:
        """A percentage when `%` follows the number directly, else a number."""
        start = self.stream.mark()
        value = self.n()
        if self.stream.peek() == "%":
            self.stream.next()
            return self.make_node(Percentage(value), start)
        return self.make_node(Number(value), start)

    @traced
    def string(self) -> Node:
        start = self.stream.mark()
        if self.stream.peek() != '"':
            raise self.mismatch("string", start)
        self.stream.next()
        chars: list[str] = []
        while True:
            ch = self.stream.peek()
            if ch == "" or ch == "\n":
                raise self.mismatch('closing "', start)
            if ch == '"':
                self.stream.next()
                break
            if ch == "\\":
                escaped = self.stream.peek(1)
                if escaped == "" or escaped not in ESCAPABLE_CHARS:
                    raise self.mismatch("escape sequence", start)
                chars.append(self.stream.advance(2))
                continue
            chars.append(self.stream.next())
        return self.make_node(String("".join(chars)), start)

    @traced
    def literal(self) -> Node:
        """Dispatch on the first character: boolean, none, string or numeric."""
        head = self.stream.peek()
        if head in ("t", "T", "f", "F"):
            return self.boolean()
        if head == "n":
            return self.none()
        if head == '"':
            return self.string()
        if head == "-" or is_ascii_digit(head):
            return self.numeric()
        raise self.mismatch("literal")

    @traced
    def address(self) -> Node:
        start = self.stream.mark()
        if not self.stream.startswith("0x", ignore_case=True):
            raise self.mismatch("address", start)
        prefix = self.stream.advance(2)
        digits = self.stream.take_while(lambda ch: ch in HEX_DIGITS)
        if len(digits) != ADDRESS_HEX_LENGTH or not self.at_word_boundary():
            raise self.mismatch("address", start)
        return self.make_node(Address(prefix + digits), start)

    @traced
    def identifier(self) -> Node:
        """
        Two shapes, folded to lower case:
        `[alpha_][alnum_-]*` or `[0-9][alpha]+[alnum_-]*`.

        A `0x` head belongs to addresses only, so hex of the wrong length
        is an error rather than an identifier.
        """
        start = self.stream.mark()
        head = self.stream.peek()
        if is_ident_start(head):
            text = self.stream.next() + self.stream.take_while(is_ident_char)
        elif (
            is_ascii_digit(head)
            and self.stream.peek(1).isalpha()
            and not self.stream.startswith("0x", ignore_case=True)
        ):
            text = self.stream.next() + self.stream.take_while(str.isalpha)
            text += self.stream.take_while(is_ident_char)
        else:
            raise self.mismatch("identifier", start)
        return self.make_node(Identifier(text.lower()), start)

    @traced
    def line_comment(self) -> Node:
        start = self.stream.mark()
        if self.stream.peek() != "#":
            raise self.mismatch("comment", start)
        self.stream.next()
        text = self.stream.take_while(lambda ch: ch not in "\r\n")
        return self.make_node(LineComment(text), start)

    # Operators ------------------------------------------------------------

    def _operator_node(self, operator: Operator, start: Mark) -> Node:
        return self.make_node(OperatorToken(operator), start)

    @traced
    def sign(self) -> Node:
        start = self.stream.mark()
        head = self.stream.peek()
        if head not in ("-", "+"):
            raise self.mismatch("sign", start)
        self.stream.next()
        return self._operator_node(Operator.MINUS if head == "-" else Operator.PLUS, start)

    @traced
    def negation(self) -> Node:
        """`!` or the word `not` followed by mandatory whitespace."""
        start = self.stream.mark()
        if self.stream.peek() == "!":
            self.stream.next()
            return self._operator_node(Operator.NOT, start)
        if self.stream.startswith("not", ignore_case=True) and self.stream.peek(3) in (
            " ",
            "\t",
            "\r",
            "\n",
        ):
            self.stream.advance(3)
            self.stream.skip_whitespace()
            return self._operator_node(Operator.NOT, start)
        raise self.mismatch("negation", start)

    def unary_operator(self) -> Node:
        head = self.stream.peek()
        if head in ("-", "+"):
            return self.sign()
        return self.negation()

    def _scan_run(self, chars: str, table: dict[str, Operator], label: str) -> Node:
        start = self.stream.mark()
        run = self.stream.take_while(lambda ch: ch in chars)
        if run not in table:
            raise self.mismatch(label, start)
        return self._operator_node(table[run], start)

    def _other_operator(self) -> Node:
        return self._scan_run(OTHER_OPERATOR_CHARS, other_operators, "++, -- or |>")

    def _membership_operator(self) -> Node:
        start = self.stream.mark()
        if self.keyword("in"):
            return self._operator_node(Operator.IN, start)
        if self.stream.startswith("not", ignore_case=True):
            self.stream.advance(3)
            if self.stream.skip_spaces() and self.keyword("in"):
                return self._operator_node(Operator.NOT_IN, start)
        raise self.mismatch("in or not in", start)

    def _arithmetic_operator(self) -> Node:
        start = self.stream.mark()
        head = self.stream.peek()
        if head not in arithmetic_chars:
            raise self.mismatch("arithmetic operator", start)
        self.stream.next()
        return self._operator_node(arithmetic_chars[head], start)

    def _comparison_operator(self) -> Node:
        return self._scan_run(COMPARISON_CHARS, comparison_operators, "comparison operator")

    def _logic_operator(self) -> Node:
        start = self.stream.mark()
        for symbol in ("&&", "||"):
            if self.stream.startswith(symbol):
                self.stream.advance(2)
                return self._operator_node(logical_keywords[symbol], start)
        for word in ("and", "or"):
            if self.keyword(word):
                return self._operator_node(logical_keywords[word], start)
        raise self.mismatch("logical operator", start)

    @traced
    def binary_operator(self) -> Node:
        """
        Try, in order: `++ -- |>`, `in`/`not in`, single-character arithmetic,
        comparison, then logical operators. Longer spellings come first so
        that `++` is never read as `+`.
        """
        for recognize in (
            self._other_operator,
            self._membership_operator,
            self._arithmetic_operator,
            self._comparison_operator,
            self._logic_operator,
        ):
            try:
                return recognize()
            except ParseMismatch:
                continue
        raise self.mismatch("binary operator")


__all__ = ["CharacterStream", "Lexer", "Mark", "traced"]
