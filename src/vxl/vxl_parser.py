"""
VXL Language Parser

Parses VXL source text into an ordered list of positioned AST nodes.

The parser is scannerless: grammar rules read directly from a shared
`CharacterStream` and backtrack by restoring stream marks. Alternatives are
tried in a fixed order and the first match wins, so rule order is part of the
language definition.

Supported Constructs
--------------------
- Literals: booleans, `none`, numbers and percentages (exact int/decimal),
  strings, addresses, identifiers.
- Lists: `[1, 2, 3,]` (trailing comma allowed).
- Function calls: `name(args)`, `name.sub(args)`, `key=value` options and a
  trailing `...` spread on the last argument.
- Conditionals: `if(cond, a[, b])` and `cond ? a : b`.
- Comprehensions: `[for x in xs : body if cond]` and
  `{for k, v in m : key => value... if cond}`.
- Operations: one unary operator applied to a term, or one binary operator
  between two terms. Operations do not chain: `a + b + c` must be written
  `(a + b) + c`.
- Postfix access folded left to right: `.attr`, `[index]`, `.*`, `[*]`.
- Statements separated by `;` or newlines, with `#` line comments that are
  dropped from the result.

Entry Points
------------
- `parse(source)`: Parse a whole program.
- `Parser(source).parse_*()`: Run a single grammar rule at the start of the
  source (used by the tests to exercise sub-grammars).

Raises
------
ParseError
    When the input is not a valid program. Carries offset, line, column and
    the alternatives that were expected at the furthest failing position.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from vxl.vxl_ast import (
    Attribute,
    BinaryOp,
    Conditional,
    Function,
    LineComment,
    List,
    Node,
    ObjectForLoop,
    Option,
    OperatorToken,
    Tree,
    TupleForLoop,
    UnaryOp,
    Unknown,
)
from vxl.vxl_constants import Operator
from vxl.vxl_errors import ParseError, ParseFailure, ParseMismatch
from vxl.vxl_lexer import CharacterStream, Lexer, Mark, traced

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 32

Rule = Callable[[], Node]


class Parser:
    """
    VXL Parser Class

    Holds the position tracker for one source text and exposes each grammar
    rule as a `parse_*` method. Every rule returns a Node and leaves the
    stream after the consumed text, or raises ParseMismatch with the stream
    restored.

    Attributes
    ----------
    source : str
        The text being parsed.
    stream : CharacterStream
        Shared position tracker.
    lexer : Lexer
        Leaf recognizers reading from `stream`.
    max_depth : int
        Maximum nesting of expression terms before a ParseFailure.
    trace : bool
        Log every rule attempt at DEBUG level.
    """

    def __init__(
        self, source: str, max_depth: int = DEFAULT_MAX_DEPTH, trace: bool = False
    ) -> None:
        self.source = source
        self.stream = CharacterStream(source)
        self.lexer = Lexer(self.stream, trace=trace)
        self.max_depth = max_depth
        self.trace = trace
        self.depth = 0
        # expr_term results by start position; None marks a known mismatch
        self._terms: dict[int, tuple[Node, Mark] | None] = {}

    # Helpers --------------------------------------------------------------

    def mismatch(self, expected: str, start: Mark | None = None) -> ParseMismatch:
        return self.lexer.mismatch(expected, start)

    def expect(self, text: str, start: Mark | None = None) -> None:
        """Consume `text` exactly or raise a mismatch (rewinding to `start`)."""
        if not self.stream.startswith(text):
            raise self.mismatch(repr(text), start)
        self.stream.advance(len(text))

    def expect_space(self, start: Mark) -> None:
        """At least one space or tab."""
        if not self.stream.skip_spaces():
            raise self.mismatch("whitespace", start)

    def expect_keyword(self, word: str, start: Mark) -> None:
        if not self.lexer.keyword(word):
            raise self.mismatch(repr(word), start)

    def first_of(self, label: str, *rules: Rule) -> Node:
        """Ordered choice: return the first rule that matches."""
        start = self.stream.mark()
        for rule in rules:
            try:
                return rule()
            except ParseMismatch:
                self.stream.reset(start)
        raise self.mismatch(label)

    def optional(self, rule: Rule) -> Node | None:
        start = self.stream.mark()
        try:
            return rule()
        except ParseMismatch:
            self.stream.reset(start)
            return None

    def operator_node(self, operator: Operator, at: Mark) -> Node:
        return Node(OperatorToken(operator), at.offset, at.line, at.column)

    # Expression terms -----------------------------------------------------

    @traced
    def parse_expr_term(self) -> Node:
        """
        One term with its postfix accessors folded in.

        Head alternatives, in order: address, literal, for-loop, list,
        if-statement, function call, identifier, parenthesized expression.
        """
        start = self.stream.mark()
        if start.position in self._terms:
            cached = self._terms[start.position]
            if cached is None:
                raise self.mismatch("expression")
            term, end = cached
            self.stream.reset(end)
            return term

        if self.depth >= self.max_depth:
            raise self.lexer.failure(
                f"maximum nesting depth of {self.max_depth} exceeded", start
            )
        self.depth += 1
        try:
            head = self.first_of(
                "expression",
                self.lexer.address,
                self.lexer.literal,
                self.parse_for_loop,
                self.parse_collection,
                self.parse_if_statement,
                self.parse_function,
                self.lexer.identifier,
                self.parse_sub_expression,
            )
            term = self.fold_postfix(head)
        except ParseMismatch:
            self._terms[start.position] = None
            raise
        finally:
            self.depth -= 1

        self._terms[start.position] = (term, self.stream.mark())
        return term

    def fold_postfix(self, term: Node) -> Node:
        """
        Fold trailing accessors onto `term`, left to right.

        `.name` and `[expr]` build BinaryOp(term, op, operand); `.*` and `[*]`
        build UnaryOp(op, term). Each new node takes the position of the
        accumulated term.
        """
        while True:
            at = self.stream.mark()
            head, second = self.stream.peek(), self.stream.peek(1)
            if head == "." and second == "*":
                self.stream.advance(2)
                splat = UnaryOp(self.operator_node(Operator.ATTR_SPLAT, at), term)
                term = Node.from_node(splat, term)
            elif head == "[" and second == "*" and self.stream.peek(2) == "]":
                self.stream.advance(3)
                splat = UnaryOp(self.operator_node(Operator.FULL_SPLAT, at), term)
                term = Node.from_node(splat, term)
            elif head == ".":
                accessor = self.optional(self.parse_attr_access)
                if accessor is None:
                    return term
                term = self._fold_accessor(term, accessor)
            elif head == "[":
                accessor = self.optional(self.parse_index_access)
                if accessor is None:
                    return term
                term = self._fold_accessor(term, accessor)
            else:
                return term

    def _fold_accessor(self, term: Node, accessor: Node) -> Node:
        token = accessor.token
        assert isinstance(token, UnaryOp)
        return Node.from_node(BinaryOp(token.operator, term, token.operand), term)

    @traced
    def parse_attr_access(self) -> Node:
        """`.name` as UnaryOp(".", name), positioned at the dot."""
        start = self.stream.mark()
        self.expect(".", start)
        name = self.lexer.identifier()
        return Node(
            UnaryOp(self.operator_node(Operator.ATTR_ACCESS, start), name),
            start.offset,
            start.line,
            start.column,
        )

    @traced
    def parse_index_access(self) -> Node:
        """`[expr]` as UnaryOp("[", expr), positioned at the bracket."""
        start = self.stream.mark()
        self.expect("[", start)
        self.stream.skip_whitespace()
        index = self.parse_expression()
        self.stream.skip_whitespace()
        self.expect("]", start)
        return Node(
            UnaryOp(self.operator_node(Operator.INDEX_ACCESS, start), index),
            start.offset,
            start.line,
            start.column,
        )

    @traced
    def parse_sub_expression(self) -> Node:
        start = self.stream.mark()
        self.expect("(", start)
        self.stream.skip_whitespace()
        expr = self.parse_expression()
        self.stream.skip_whitespace()
        self.expect(")", start)
        return expr

    @traced
    def parse_expression(self) -> Node:
        return self.first_of("expression", self.parse_operation, self.parse_expr_term)

    # Operations -----------------------------------------------------------

    @traced
    def parse_operation(self) -> Node:
        return self.first_of(
            "operation",
            self.parse_unary_operation,
            self.parse_binary_operation,
            self.parse_ternary_operation,
        )

    @traced
    def parse_unary_operation(self) -> Node:
        """`<sign|!|not> term`"""
        op = self.lexer.unary_operator()
        self.stream.skip_spaces()
        operand = self.parse_expr_term()
        return Node.from_node(UnaryOp(op, operand), op)

    @traced
    def parse_binary_operation(self) -> Node:
        """`term <op> term`; both sides are single terms."""
        left = self.parse_expr_term()
        self.stream.skip_spaces()
        op = self.lexer.binary_operator()
        self.stream.skip_spaces()
        right = self.parse_expr_term()
        return Node.from_node(BinaryOp(op, left, right), left)

    @traced
    def parse_ternary_operation(self) -> Node:
        """`term ? term : term`"""
        start = self.stream.mark()
        condition = self.parse_expr_term()
        self.stream.skip_spaces()
        self.expect("?", start)
        self.stream.skip_spaces()
        if_true = self.parse_expr_term()
        self.stream.skip_spaces()
        self.expect(":", start)
        self.stream.skip_spaces()
        if_false = self.parse_expr_term()
        return Node.from_node(Conditional(condition, if_true, if_false), condition)

    # Compound constructs ----------------------------------------------------

    @traced
    def parse_option(self) -> Node:
        """`key=value` function argument; the value is a single term."""
        start = self.stream.mark()
        key = self.lexer.identifier()
        self.stream.skip_spaces()
        self.expect("=", start)
        self.stream.skip_spaces()
        value = self.parse_expr_term()
        return Node.from_node(Option(key, value), key)

    @traced
    def parse_attribute(self) -> Node:
        """`key = value` binding with an optional trailing newline."""
        start = self.stream.mark()
        key = self.lexer.identifier()
        self.stream.skip_spaces()
        self.expect("=", start)
        self.stream.skip_spaces()
        value = self.parse_expr_term()
        if self.stream.peek() == "\n":
            self.stream.next()
        return Node.from_node(Attribute(key, value), key)

    def parse_function_arg(self) -> Node:
        return self.first_of(
            "function argument",
            self.parse_option,
            self.parse_operation,
            self.parse_expr_term,
        )

    @traced
    def parse_function(self) -> Node:
        """
        `name(args)` or `name.sub(args)`.

        Arguments are comma separated and may span lines. A `...` right before
        the closing paren wraps the last argument in UnaryOp("...", arg).
        """
        start = self.stream.mark()
        name = self.lexer.identifier()
        subfunction = None
        if self.stream.peek() == ".":
            self.stream.next()
            subfunction = self.lexer.identifier()
        self.expect("(", start)

        args: list[Node] = []
        self.stream.skip_whitespace()
        first = self.optional(self.parse_function_arg)
        if first is not None:
            args.append(first)
            while True:
                before_sep = self.stream.mark()
                self.stream.skip_whitespace()
                if self.stream.peek() != ",":
                    self.stream.reset(before_sep)
                    break
                self.stream.next()
                self.stream.skip_whitespace()
                args.append(self.parse_function_arg())

        self.stream.skip_whitespace()
        if self.stream.startswith("..."):
            elipsis_at = self.stream.mark()
            if not args:
                raise self.mismatch("argument before '...'", start)
            self.stream.advance(3)
            spread = args.pop()
            args.append(
                Node.from_node(
                    UnaryOp(self.operator_node(Operator.ELIPSIS, elipsis_at), spread),
                    spread,
                )
            )
            self.stream.skip_whitespace()
        self.expect(")", start)

        return Node.from_node(Function(name, subfunction, tuple(args)), name)

    @traced
    def parse_if_statement(self) -> Node:
        """`if(condition, if_true[, if_false])`, keyword in any case."""
        start = self.stream.mark()
        if not self.stream.startswith("if", ignore_case=True):
            raise self.mismatch("if", start)
        self.stream.advance(2)
        self.expect("(", start)

        self.stream.skip_whitespace()
        condition = self.parse_expression()
        branches: list[Node] = []
        while len(branches) < 2:
            before_sep = self.stream.mark()
            self.stream.skip_whitespace()
            if self.stream.peek() != ",":
                self.stream.reset(before_sep)
                break
            self.stream.next()
            self.stream.skip_whitespace()
            branches.append(self.parse_expression())
        if not branches:
            raise self.mismatch("','", start)

        self.stream.skip_whitespace()
        self.expect(")", start)
        if_false = branches[1] if len(branches) > 1 else None
        return Node(
            Conditional(condition, branches[0], if_false),
            start.offset,
            start.line,
            start.column,
        )

    def _for_intro(self, start: Mark) -> tuple[tuple[Node, ...], Node]:
        """`for a[, b...] in expr :`"""
        self.stream.skip_whitespace()
        self.expect_keyword("for", start)
        self.expect_space(start)

        binds = [self.lexer.identifier()]
        while self.stream.peek() == ",":
            self.stream.next()
            self.stream.skip_spaces()
            binds.append(self.lexer.identifier())

        self.expect_space(start)
        self.expect_keyword("in", start)
        self.expect_space(start)
        expr = self.parse_expression()
        self.stream.skip_whitespace()
        self.expect(":", start)
        self.stream.skip_whitespace()
        return tuple(binds), expr

    def _for_cond(self) -> Node:
        start = self.stream.mark()
        if not self.stream.skip_whitespace():
            raise self.mismatch("whitespace", start)
        self.expect_keyword("if", start)
        self.expect_space(start)
        return self.parse_expression()

    @traced
    def parse_tuple_for_loop(self) -> Node:
        start = self.stream.mark()
        self.expect("[", start)
        binds, expr = self._for_intro(start)
        body = self.parse_expression()
        cond = self.optional(self._for_cond)
        self.stream.skip_whitespace()
        self.expect("]", start)
        return Node(
            TupleForLoop(binds, expr, body, cond), start.offset, start.line, start.column
        )

    @traced
    def parse_object_for_loop(self) -> Node:
        start = self.stream.mark()
        self.expect("{", start)
        binds, expr = self._for_intro(start)
        key = self.parse_expression()
        self.stream.skip_spaces()
        self.expect("=>", start)
        self.stream.skip_spaces()
        value = self.parse_expression()
        grouping = self.stream.startswith("...")
        if grouping:
            self.stream.advance(3)
        cond = self.optional(self._for_cond)
        self.stream.skip_whitespace()
        self.expect("}", start)
        return Node(
            ObjectForLoop(binds, expr, key, value, grouping, cond),
            start.offset,
            start.line,
            start.column,
        )

    @traced
    def parse_for_loop(self) -> Node:
        head = self.stream.peek()
        if head == "[":
            return self.parse_tuple_for_loop()
        if head == "{":
            return self.parse_object_for_loop()
        raise self.mismatch("for loop")

    @traced
    def parse_list(self) -> Node:
        """`[item, item, ...]`, items are expressions, trailing comma allowed."""
        start = self.stream.mark()
        self.expect("[", start)
        self.stream.skip_whitespace()
        if self.stream.peek() == "]":
            self.stream.next()
            return Node(List(), start.offset, start.line, start.column)

        items = [self.parse_expression()]
        while True:
            self.stream.skip_whitespace()
            if self.stream.peek() != ",":
                break
            self.stream.next()
            self.stream.skip_whitespace()
            if self.stream.peek() == "]":
                break
            items.append(self.parse_expression())
        self.stream.skip_whitespace()
        self.expect("]", start)
        return Node(List(tuple(items)), start.offset, start.line, start.column)

    @traced
    def parse_collection(self) -> Node:
        if self.stream.peek() == "[":
            return self.parse_list()
        raise self.mismatch("list")

    # Statements -------------------------------------------------------------

    def _statement(self) -> Node:
        return self.first_of("statement", self.parse_expression, self.lexer.line_comment)

    def _terminator(self) -> None:
        """
        One of: `;`; optional `;` then a trailing comment and optional newline;
        end of input; one or more newlines.
        """
        start = self.stream.mark()
        self.stream.skip_spaces()
        if self.stream.peek() == ";":
            self.stream.next()
            return
        if self.stream.peek() == "#":
            self.lexer.line_comment()
            self._line_ending()
            return
        if self.stream.end_of_file():
            return
        if not self._line_ending():
            raise self.mismatch("';', newline or end of input", start)
        while self._line_ending():
            pass

    def _line_ending(self) -> bool:
        if self.stream.peek() == "\n":
            self.stream.next()
            return True
        if self.stream.startswith("\r\n"):
            self.stream.advance(2)
            return True
        return False

    def parse(self) -> Tree:
        """
        Parse the whole source as a program.

        Returns:
            list[Node]: Top-level expressions in source order. Comments are
            recognized but not returned.

        Raises:
            ParseError: If any statement fails to parse or input remains.
        """
        started = time.perf_counter()
        try:
            tree = self._file()
        except ParseFailure as exc:
            raise ParseError(exc.message, exc.offset, exc.line, exc.column) from exc
        except RecursionError:
            at = self.stream.mark()
            raise ParseError(
                "expression nested too deeply", at.offset, at.line, at.column
            ) from None

        for top in tree:
            for child in top.walk():
                if isinstance(child.token, Unknown):
                    raise AssertionError(f"unknown token in parse result: {child!r}")

        logger.debug(
            "parsed %d top-level nodes from %d characters in %.3f ms",
            len(tree),
            len(self.source),
            (time.perf_counter() - started) * 1000,
        )
        return tree

    def _file(self) -> Tree:
        tree: Tree = []
        count = 0
        while True:
            start = self.stream.mark()
            try:
                self.stream.skip_whitespace()
                node = self._statement()
                self._terminator()
            except ParseMismatch:
                self.stream.reset(start)
                break
            count += 1
            if not isinstance(node.token, LineComment):
                tree.append(node)
            if self.stream.end_of_file():
                break

        self.stream.skip_whitespace()
        if count == 0 or not self.stream.end_of_file():
            raise self._unconsumed_error()
        return tree

    def _unconsumed_error(self) -> ParseError:
        at = self.lexer.furthest or self.stream.mark()
        expected = sorted(self.lexer.expected) if self.lexer.furthest else []
        if at.position >= len(self.source):
            message = "unexpected end of input"
        else:
            message = f"unexpected {self.source[at.position]!r}"
        return ParseError(message, at.offset, at.line, at.column, expected)


def parse(source: str, max_depth: int = DEFAULT_MAX_DEPTH, trace: bool = False) -> Tree:
    """
    Parse VXL source text into its top-level nodes.

    Args:
        source (str): Program text.
        max_depth (int): Maximum expression nesting.
        trace (bool): Log every grammar rule attempt at DEBUG level.

    Returns:
        list[Node]: Parsed top-level expressions in source order.

    Raises:
        ParseError: If the text is not a valid program.
    """
    return Parser(source, max_depth=max_depth, trace=trace).parse()


__all__ = ["DEFAULT_MAX_DEPTH", "Parser", "parse"]
