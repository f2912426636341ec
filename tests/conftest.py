from typing import Callable

import pytest

from vxl.vxl_ast import Node
from vxl.vxl_lexer import CharacterStream, Lexer
from vxl.vxl_parser import Parser


def run_rule(rule: str, source: str) -> Node:
    """Run one `Parser.parse_<rule>` method and require it to consume everything."""
    parser = Parser(source)
    result: Node = getattr(parser, f"parse_{rule}")()
    assert parser.stream.end_of_file(), f"unconsumed input: {parser.stream.preview()!r}"
    return result


def make_lexer(source: str) -> Lexer:
    return Lexer(CharacterStream(source))


@pytest.fixture  # type: ignore[misc]
def rule() -> Callable[[str, str], Node]:
    return run_rule


@pytest.fixture  # type: ignore[misc]
def lexer() -> Callable[[str], Lexer]:
    return make_lexer
