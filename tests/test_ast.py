import json
from decimal import Decimal

import hypothesis.strategies as st
import pytest
from hypothesis import given

from vxl.vxl_ast import (
    Identifier,
    Node,
    NoneLiteral,
    Unknown,
    binary_op,
    boolean,
    conditional,
    function,
    ident,
    list_,
    node,
    none,
    number,
    object_for,
    operator,
    option,
    percentage,
    string,
    tree_to_json,
    tuple_for,
    unary_op,
)
from vxl.vxl_constants import Operator, operator_symbols
from vxl.vxl_errors import OperatorError


@given(st.text(), st.integers(), st.integers(), st.integers())  # type: ignore[misc]
def test_node_equality_ignores_position(name: str, offset: int, line: int, column: int) -> None:
    assert Node(Identifier(name), offset, line, column) == Node(Identifier(name))
    assert hash(Node(Identifier(name), offset, line, column)) == hash(Node(Identifier(name)))


def test_node_eq_non_node() -> None:
    assert Node(ident("x")) != "x"
    assert Node(ident("x")) != Node(ident("y"))
    assert Node(ident("x")) != Node(string("x"))


def test_node_to_dict() -> None:
    n = Node(ident("foo"), offset=4, line=2, column=3)
    assert n.to_dict() == {
        "offset": 4,
        "line": 2,
        "column": 3,
        "token": {"identifier": "foo"},
    }
    assert n.position == (4, 2, 3)
    assert "foo" in repr(n)


def test_from_node_copies_position() -> None:
    left = Node(ident("a"), 10, 2, 5)
    combined = Node.from_node(binary_op(left, "+", ident("b")), left)
    assert combined.position == left.position


def test_unit_tokens_serialize_as_strings() -> None:
    assert NoneLiteral().to_dict() == "none"
    assert Unknown().to_dict() == "unknown"
    assert NoneLiteral() == none()
    assert NoneLiteral() != Unknown()


@pytest.mark.parametrize(
    "token,expected",
    [
        (boolean(True), {"boolean": True}),
        (string('a\\"b'), {"string": 'a\\"b'}),
        (number(47), {"number": {"int": "47"}}),
        (number("1.23"), {"number": {"decimal": "1.23"}}),
        (number(Decimal("1.0")), {"number": {"decimal": "1.0"}}),
        (percentage(3), {"percentage": {"int": "3"}}),
        (operator(">="), {"operator": ">="}),
        (operator("not in"), {"operator": "not in"}),
    ],
)  # type: ignore[misc]
def test_leaf_serialization(token: object, expected: object) -> None:
    assert node(token).token.to_dict() == expected  # type: ignore[arg-type]


def test_number_variants_not_equal() -> None:
    assert number(1) != number("1.0")
    assert number(1) != percentage(1)


def test_function_serialization() -> None:
    fn = function("fun", "sub", number(1), option("foo", boolean(False)))
    payload = fn.to_dict()["function"]
    assert payload["name"]["token"] == {"identifier": "fun"}
    assert payload["subfunction"]["token"] == {"identifier": "sub"}
    assert payload["args"][1]["token"] == {
        "option": {
            "key": {"offset": 0, "line": 0, "column": 0, "token": {"identifier": "foo"}},
            "value": {"offset": 0, "line": 0, "column": 0, "token": {"boolean": False}},
        }
    }
    assert function("f").to_dict()["function"]["subfunction"] is None


def test_conditional_serialization() -> None:
    payload = conditional(ident("c"), number(1)).to_dict()["conditional"]
    assert payload["if_false"] is None
    assert payload["condition"]["token"] == {"identifier": "c"}


def test_binary_and_unary_serialization() -> None:
    payload = binary_op(ident("a"), "+", ident("b")).to_dict()["binary_op"]
    assert list(payload) == ["operator", "left", "right"]
    assert payload["operator"]["token"] == {"operator": "+"}
    unary = unary_op("...", list_()).to_dict()["unary_op"]
    assert unary["operator"]["token"] == {"operator": "..."}
    assert unary["operand"]["token"] == {"list": []}


def test_for_loop_serialization() -> None:
    tuple_payload = tuple_for(["x"], ident("xs"), ident("x")).to_dict()
    assert list(tuple_payload["for_loop"]) == ["Tuple"]
    assert tuple_payload["for_loop"]["Tuple"]["cond"] is None
    assert tuple_payload["for_loop"]["Tuple"]["binds"][0]["token"] == {"identifier": "x"}

    obj = object_for(["k", "v"], ident("m"), ident("k"), ident("v"), True, boolean(True))
    body = obj.to_dict()["for_loop"]["Object"]
    assert [b["token"] for b in body["body"]] == [{"identifier": "k"}, {"identifier": "v"}]
    assert body["grouping"] is True
    assert body["cond"]["token"] == {"boolean": True}
    assert obj.body == (node(ident("k")), node(ident("v")))


def test_walk_visits_all_descendants() -> None:
    tree = node(function("f", None, list_(number(1), number(2)), option("k", none())))
    kinds = [n.token.kind for n in tree.walk()]
    assert kinds == [
        "function",
        "identifier",
        "list",
        "number",
        "number",
        "option",
        "identifier",
        "none",
    ]


def test_tree_to_json() -> None:
    tree = [Node(number(47), 0, 1, 1), Node(string("é"), 3, 1, 4)]
    rendered = tree_to_json(tree)
    assert json.loads(rendered) == [
        {"offset": 0, "line": 1, "column": 1, "token": {"number": {"int": "47"}}},
        {"offset": 3, "line": 1, "column": 4, "token": {"string": "é"}},
    ]
    assert "é" in rendered
    assert "\n" not in tree_to_json(tree, indent=None)


def test_operator_from_symbol() -> None:
    assert Operator.from_symbol("|>") is Operator.PIPE
    assert str(Operator.NOT_IN) == "not in"
    assert all(operator_symbols[op.symbol] is op for op in Operator)


@pytest.mark.parametrize("symbol", ["", "=>", "**", "and"])  # type: ignore[misc]
def test_unknown_operator_symbol(symbol: str) -> None:
    with pytest.raises(OperatorError) as excinfo:
        operator(symbol)
    assert excinfo.value.symbol == symbol
    assert "unrecognized operator" in str(excinfo.value)


def test_tokens_are_hashable() -> None:
    seen = {node(ident("a")), node(ident("a")), node(number(1)), node(number("1.0"))}
    assert len(seen) == 3
