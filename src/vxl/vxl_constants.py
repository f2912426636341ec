"""
Operator vocabulary and character classes shared by the VXL lexer and parser.

Exports:
    Operator: closed enumeration of every operator kind, valued by its
        canonical display symbol.
    operator_symbols: symbol -> Operator reverse mapping.
"""

from enum import Enum

from vxl.vxl_errors import OperatorError


class Operator(Enum):
    """
    Every operator the grammar can produce.

    The enum value is the canonical display symbol, which is also the
    serialized form of an `operator` token.
    """

    # Arithmetic
    PLUS = "+"
    MINUS = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    MODULUS = "%"
    EXPONENT = "^"

    # Logical
    AND = "&&"
    OR = "||"
    NOT = "!"

    # Comparison
    EQUAL = "=="
    NOT_EQUAL = "!="
    GREATER = ">"
    LESS = "<"
    GREATER_EQUAL = ">="
    LESS_EQUAL = "<="

    # Membership
    IN = "in"
    NOT_IN = "not in"

    # Postfix
    ATTR_ACCESS = "."
    INDEX_ACCESS = "["
    ATTR_SPLAT = ".*"
    FULL_SPLAT = "[*]"
    ELIPSIS = "..."

    # List
    CONCATENATE = "++"
    SUBTRACT = "--"

    PIPE = "|>"

    def __str__(self) -> str:
        return self.value

    @property
    def symbol(self) -> str:
        return self.value

    @classmethod
    def from_symbol(cls, symbol: str) -> "Operator":
        """
        Look up an operator by its display symbol.

        Raises:
            OperatorError: If the symbol is not a known operator. This is a
                construction error, not a parse mismatch.
        """
        try:
            return operator_symbols[symbol]
        except KeyError:
            raise OperatorError(symbol) from None


operator_symbols: dict[str, Operator] = {op.value: op for op in Operator}

# Single-character arithmetic operators, tried after the two-character forms.
arithmetic_chars: dict[str, Operator] = {
    "+": Operator.PLUS,
    "-": Operator.MINUS,
    "*": Operator.MULTIPLY,
    "/": Operator.DIVIDE,
    "%": Operator.MODULUS,
    "^": Operator.EXPONENT,
}

# Runs scanned greedily from these character classes, then looked up whole.
OTHER_OPERATOR_CHARS = "+-|>"
other_operators: dict[str, Operator] = {
    "++": Operator.CONCATENATE,
    "--": Operator.SUBTRACT,
    "|>": Operator.PIPE,
}

COMPARISON_CHARS = "=!><"
comparison_operators: dict[str, Operator] = {
    "==": Operator.EQUAL,
    "!=": Operator.NOT_EQUAL,
    "<": Operator.LESS,
    ">": Operator.GREATER,
    "<=": Operator.LESS_EQUAL,
    ">=": Operator.GREATER_EQUAL,
}

# Keyword spellings are matched case-insensitively.
logical_keywords: dict[str, Operator] = {
    "&&": Operator.AND,
    "and": Operator.AND,
    "||": Operator.OR,
    "or": Operator.OR,
}

ESCAPABLE_CHARS = 'rnt"\\'
HEX_DIGITS = "0123456789abcdefABCDEF"
ADDRESS_HEX_LENGTH = 40
