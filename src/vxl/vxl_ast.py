"""
Defines the abstract syntax tree (AST) node model for the VXL language.

Classes:
    Node:
        A token plus the source position of its first character. Every parser
        result is a Node; a parsed program is an ordered `list[Node]`.

    Token and its variants:
        The closed tagged union describing what a Node represents:
        Unknown, Identifier, Option, Address, Boolean, Number, Percentage,
        String, NoneLiteral, Function, Conditional, OperatorToken, BinaryOp,
        UnaryOp, List, TupleForLoop, ObjectForLoop, LineComment, Attribute.

    NodeDict:
        TypedDict shape of a serialized Node, suitable for JSON output.

Nodes are never mutated after construction. A node built earlier may become
the child of any number of later nodes (the postfix fold shares its left
operand this way); children are plain references, never copies.

Position is metadata: `Node.__eq__` compares tokens only, so expected trees in
tests can be built without positions. `Node.to_dict()` includes positions.

The lower-case builder functions at the end of the module (`ident`, `number`,
`function`, `binary_op`, ...) build position-less nodes for expected-value
fixtures and accept either Tokens or Nodes as children.
"""

from __future__ import annotations

import json
from decimal import Decimal
from typing import Any, ClassVar, Iterator, TypedDict, Union

from vxl.vxl_constants import Operator
from vxl.vxl_numeric import N


class NodeDict(TypedDict):
    """
    Serialized form of a Node.

    Fields:
        offset (int): UTF-8 byte offset of the node's first character.
        line (int): 1-based line number.
        column (int): 1-based codepoint column.
        token (Any): Externally tagged token, e.g. `{"identifier": "foo"}`.
    """

    offset: int
    line: int
    column: int
    token: Any


class Node:
    """
    A positioned instance of a Token.

    Args:
        token (Token): What this node represents.
        offset (int): UTF-8 byte offset of the first character.
        line (int): 1-based line number (0 when unknown).
        column (int): 1-based codepoint column (0 when unknown).
    """

    __slots__ = ("token", "offset", "line", "column")

    def __init__(self, token: Token, offset: int = 0, line: int = 0, column: int = 0):
        self.token = token
        self.offset = offset
        self.line = line
        self.column = column

    @classmethod
    def from_node(cls, token: Token, node: Node) -> Node:
        """Build a node at the same position as `node`."""
        return cls(token, node.offset, node.line, node.column)

    @property
    def position(self) -> tuple[int, int, int]:
        return (self.offset, self.line, self.column)

    def walk(self) -> Iterator[Node]:
        """Yield this node and all descendants, depth first, in source order."""
        yield self
        for child in self.token.children():
            yield from child.walk()

    def __repr__(self) -> str:
        return f"Node({self.token!r}, line={self.line}, column={self.column})"

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Node):
            return False
        return self.token == other.token

    def __hash__(self) -> int:
        return hash(self.token)

    def to_dict(self) -> NodeDict:
        return {
            "offset": self.offset,
            "line": self.line,
            "column": self.column,
            "token": self.token.to_dict(),
        }


Tree = list[Node]


def tree_to_json(tree: Tree, indent: int | None = 2) -> str:
    """Render a parsed tree as JSON. Numbers are emitted as decimal strings."""
    return json.dumps([node.to_dict() for node in tree], indent=indent, ensure_ascii=False)


def _optional(node: Node | None) -> NodeDict | None:
    return node.to_dict() if node is not None else None


class Token:
    """
    Base class of the token union.

    Subclasses set `kind` to their snake_case wire name and implement
    `_fields()` (the values that define equality) and `payload()` (the
    serialized value under the `kind` tag).
    """

    kind: ClassVar[str] = ""

    def _fields(self) -> tuple[Any, ...]:
        return ()

    def children(self) -> tuple[Node, ...]:
        return ()

    def payload(self) -> Any:
        raise NotImplementedError  # pragma: no cover

    def to_dict(self) -> Any:
        return {self.kind: self.payload()}

    def __eq__(self, other: Any) -> bool:
        return type(self) is type(other) and self._fields() == other._fields()

    def __hash__(self) -> int:
        return hash((self.kind, self._fields()))

    def __repr__(self) -> str:
        fields = ", ".join(repr(f) for f in self._fields())
        return f"{type(self).__name__}({fields})"


class _UnitToken(Token):
    """Variant without payload; serializes as its bare name."""

    def to_dict(self) -> Any:
        return self.kind


class Unknown(_UnitToken):
    """
    Sentinel for a default-constructed node. It must never appear in a
    successful parse result; finding one is an internal defect.
    """

    kind = "unknown"


class NoneLiteral(_UnitToken):
    kind = "none"


class _TextToken(Token):
    def __init__(self, value: str):
        self.value = value

    def _fields(self) -> tuple[Any, ...]:
        return (self.value,)

    def payload(self) -> Any:
        return self.value


class Identifier(_TextToken):
    """Identifier name, always lower case."""

    kind = "identifier"


class Address(_TextToken):
    kind = "address"


class String(_TextToken):
    """String contents exactly as written, escapes left in place."""

    kind = "string"


class LineComment(_TextToken):
    kind = "line_comment"


class Boolean(Token):
    kind = "boolean"

    def __init__(self, value: bool):
        self.value = value

    def _fields(self) -> tuple[Any, ...]:
        return (self.value,)

    def payload(self) -> Any:
        return self.value


class Number(Token):
    kind = "number"

    def __init__(self, value: N):
        self.value = value

    def _fields(self) -> tuple[Any, ...]:
        return (self.value,)

    def payload(self) -> Any:
        return self.value.to_dict()


class Percentage(Number):
    kind = "percentage"


class OperatorToken(Token):
    """An operator; serializes as its display symbol."""

    kind = "operator"

    def __init__(self, operator: Operator):
        self.operator = operator

    def _fields(self) -> tuple[Any, ...]:
        return (self.operator,)

    def payload(self) -> Any:
        return self.operator.symbol


class Option(Token):
    """A `key=value` function argument."""

    kind = "option"

    def __init__(self, key: Node, value: Node):
        self.key = key
        self.value = value

    def _fields(self) -> tuple[Any, ...]:
        return (self.key, self.value)

    def children(self) -> tuple[Node, ...]:
        return (self.key, self.value)

    def payload(self) -> Any:
        return {"key": self.key.to_dict(), "value": self.value.to_dict()}


class Attribute(Token):
    """A top-level `key = value` binding."""

    kind = "attribute"

    def __init__(self, ident: Node, expr: Node):
        self.ident = ident
        self.expr = expr

    def _fields(self) -> tuple[Any, ...]:
        return (self.ident, self.expr)

    def children(self) -> tuple[Node, ...]:
        return (self.ident, self.expr)

    def payload(self) -> Any:
        return {"ident": self.ident.to_dict(), "expr": self.expr.to_dict()}


class Function(Token):
    """A call `name.subfunction(args...)`; `subfunction` is optional."""

    kind = "function"

    def __init__(self, name: Node, subfunction: Node | None = None, args: tuple[Node, ...] = ()):
        self.name = name
        self.subfunction = subfunction
        self.args = tuple(args)

    def _fields(self) -> tuple[Any, ...]:
        return (self.name, self.subfunction, self.args)

    def children(self) -> tuple[Node, ...]:
        head = (self.name,) if self.subfunction is None else (self.name, self.subfunction)
        return head + self.args

    def payload(self) -> Any:
        return {
            "name": self.name.to_dict(),
            "subfunction": _optional(self.subfunction),
            "args": [arg.to_dict() for arg in self.args],
        }


class Conditional(Token):
    """Built by both `if(c, t[, f])` and `c ? t : f`."""

    kind = "conditional"

    def __init__(self, condition: Node, if_true: Node, if_false: Node | None = None):
        self.condition = condition
        self.if_true = if_true
        self.if_false = if_false

    def _fields(self) -> tuple[Any, ...]:
        return (self.condition, self.if_true, self.if_false)

    def children(self) -> tuple[Node, ...]:
        nodes = (self.condition, self.if_true)
        return nodes if self.if_false is None else nodes + (self.if_false,)

    def payload(self) -> Any:
        return {
            "condition": self.condition.to_dict(),
            "if_true": self.if_true.to_dict(),
            "if_false": _optional(self.if_false),
        }


class BinaryOp(Token):
    kind = "binary_op"

    def __init__(self, operator: Node, left: Node, right: Node):
        self.operator = operator
        self.left = left
        self.right = right

    def _fields(self) -> tuple[Any, ...]:
        return (self.operator, self.left, self.right)

    def children(self) -> tuple[Node, ...]:
        return (self.left, self.operator, self.right)

    def payload(self) -> Any:
        return {
            "operator": self.operator.to_dict(),
            "left": self.left.to_dict(),
            "right": self.right.to_dict(),
        }


class UnaryOp(Token):
    kind = "unary_op"

    def __init__(self, operator: Node, operand: Node):
        self.operator = operator
        self.operand = operand

    def _fields(self) -> tuple[Any, ...]:
        return (self.operator, self.operand)

    def children(self) -> tuple[Node, ...]:
        return (self.operator, self.operand)

    def payload(self) -> Any:
        return {"operator": self.operator.to_dict(), "operand": self.operand.to_dict()}


class List(Token):
    kind = "list"

    def __init__(self, items: tuple[Node, ...] = ()):
        self.items = tuple(items)

    def _fields(self) -> tuple[Any, ...]:
        return (self.items,)

    def children(self) -> tuple[Node, ...]:
        return self.items

    def payload(self) -> Any:
        return [item.to_dict() for item in self.items]


class ForLoop(Token):
    """
    Comprehension base. Serialized as `{"for_loop": {<variant>: {...}}}`.

    Attributes:
        binds (tuple[Node, ...]): Loop variable identifiers.
        expr (Node): The iterated expression.
        cond (Node | None): Optional `if` filter.
    """

    kind = "for_loop"
    variant: ClassVar[str] = ""

    def __init__(self, binds: tuple[Node, ...], expr: Node, cond: Node | None = None):
        self.binds = tuple(binds)
        self.expr = expr
        self.cond = cond

    def _body_payload(self) -> dict[str, Any]:
        raise NotImplementedError  # pragma: no cover

    def payload(self) -> Any:
        return {self.variant: self._body_payload()}


class TupleForLoop(ForLoop):
    """`[for x in xs : body if cond]`"""

    variant = "Tuple"

    def __init__(
        self, binds: tuple[Node, ...], expr: Node, body: Node, cond: Node | None = None
    ):
        super().__init__(binds, expr, cond)
        self.body = body

    def _fields(self) -> tuple[Any, ...]:
        return (self.binds, self.expr, self.body, self.cond)

    def children(self) -> tuple[Node, ...]:
        nodes = self.binds + (self.expr, self.body)
        return nodes if self.cond is None else nodes + (self.cond,)

    def _body_payload(self) -> dict[str, Any]:
        return {
            "binds": [b.to_dict() for b in self.binds],
            "expr": self.expr.to_dict(),
            "body": self.body.to_dict(),
            "cond": _optional(self.cond),
        }


class ObjectForLoop(ForLoop):
    """`{for k, v in m : key => value... if cond}`; `grouping` records `...`."""

    variant = "Object"

    def __init__(
        self,
        binds: tuple[Node, ...],
        expr: Node,
        key: Node,
        value: Node,
        grouping: bool = False,
        cond: Node | None = None,
    ):
        super().__init__(binds, expr, cond)
        self.key = key
        self.value = value
        self.grouping = grouping

    @property
    def body(self) -> tuple[Node, Node]:
        return (self.key, self.value)

    def _fields(self) -> tuple[Any, ...]:
        return (self.binds, self.expr, self.key, self.value, self.grouping, self.cond)

    def children(self) -> tuple[Node, ...]:
        nodes = self.binds + (self.expr, self.key, self.value)
        return nodes if self.cond is None else nodes + (self.cond,)

    def _body_payload(self) -> dict[str, Any]:
        return {
            "binds": [b.to_dict() for b in self.binds],
            "expr": self.expr.to_dict(),
            "body": [self.key.to_dict(), self.value.to_dict()],
            "cond": _optional(self.cond),
            "grouping": self.grouping,
        }


# Fixture builders ---------------------------------------------------------

NodeLike = Union[Node, Token]


def node(value: NodeLike) -> Node:
    """Wrap a Token in a position-less Node; Nodes pass through unchanged."""
    return value if isinstance(value, Node) else Node(value)


def _maybe(value: NodeLike | None) -> Node | None:
    return None if value is None else node(value)


def _n(value: Union[int, str, Decimal, N]) -> N:
    if isinstance(value, N):
        return value
    if isinstance(value, str):
        return N(Decimal(value)) if "." in value else N(int(value))
    return N(value)


def ident(name: str) -> Identifier:
    return Identifier(name)


def address(value: str) -> Address:
    return Address(value)


def boolean(value: bool) -> Boolean:
    return Boolean(value)


def none() -> NoneLiteral:
    return NoneLiteral()


def string(value: str) -> String:
    return String(value)


def number(value: Union[int, str, Decimal, N]) -> Number:
    """`number(47)` is Int; `number("1.23")` or `number(Decimal(...))` is Decimal."""
    return Number(_n(value))


def percentage(value: Union[int, str, Decimal, N]) -> Percentage:
    return Percentage(_n(value))


def operator(symbol: str) -> OperatorToken:
    """Build an operator token from its display symbol (raises OperatorError)."""
    return OperatorToken(Operator.from_symbol(symbol))


def line_comment(text: str) -> LineComment:
    return LineComment(text)


def option(key: str, value: NodeLike) -> Option:
    return Option(node(ident(key)), node(value))


def attribute(key: str, value: NodeLike) -> Attribute:
    return Attribute(node(ident(key)), node(value))


def function(name: str, subfunction: str | None = None, *args: NodeLike) -> Function:
    sub = node(ident(subfunction)) if subfunction is not None else None
    return Function(node(ident(name)), sub, tuple(node(a) for a in args))


def conditional(
    condition: NodeLike, if_true: NodeLike, if_false: NodeLike | None = None
) -> Conditional:
    return Conditional(node(condition), node(if_true), _maybe(if_false))


def binary_op(left: NodeLike, symbol: str, right: NodeLike) -> BinaryOp:
    return BinaryOp(node(operator(symbol)), node(left), node(right))


def unary_op(symbol: str, operand: NodeLike) -> UnaryOp:
    return UnaryOp(node(operator(symbol)), node(operand))


def list_(*items: NodeLike) -> List:
    return List(tuple(node(i) for i in items))


def tuple_for(
    binds: list[str], expr: NodeLike, body: NodeLike, cond: NodeLike | None = None
) -> TupleForLoop:
    return TupleForLoop(
        tuple(node(ident(b)) for b in binds), node(expr), node(body), _maybe(cond)
    )


def object_for(
    binds: list[str],
    expr: NodeLike,
    key: NodeLike,
    value: NodeLike,
    grouping: bool = False,
    cond: NodeLike | None = None,
) -> ObjectForLoop:
    return ObjectForLoop(
        tuple(node(ident(b)) for b in binds),
        node(expr),
        node(key),
        node(value),
        grouping,
        _maybe(cond),
    )


__all__ = [
    "Address",
    "Attribute",
    "BinaryOp",
    "Boolean",
    "Conditional",
    "ForLoop",
    "Function",
    "Identifier",
    "LineComment",
    "List",
    "Node",
    "NodeDict",
    "NoneLiteral",
    "Number",
    "ObjectForLoop",
    "Option",
    "OperatorToken",
    "Percentage",
    "String",
    "Token",
    "Tree",
    "TupleForLoop",
    "UnaryOp",
    "Unknown",
    "tree_to_json",
]
