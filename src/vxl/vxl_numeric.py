"""
Exact numeric values for VXL literals.

A VXL number is either an exact 64-bit integer or an arbitrary-precision
fixed-point decimal. The two are kept distinct all the way to the wire form so
that consumers can tell `1` from `1.0`.

Classes:
    N: Int-or-Decimal value with negation, exponent application and
       serialization.

Functions:
    fits_int64(value): Range check for the Int variant.
"""

from decimal import ROUND_HALF_EVEN, Context, Decimal, InvalidOperation
from typing import Literal, TypedDict, Union

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

# Decimal range: 96-bit coefficient, at most 28 fractional digits.
DECIMAL_COEFFICIENT_LIMIT = 2**96
MAX_SCALE = 28

_context = Context(prec=200, rounding=ROUND_HALF_EVEN)


class NumberRangeError(ValueError):
    """A numeric literal cannot be represented as Int or Decimal."""


NDict = TypedDict("NDict", {"int": str, "decimal": str}, total=False)


def fits_int64(value: int) -> bool:
    return INT64_MIN <= value <= INT64_MAX


def _check_decimal(value: Decimal) -> Decimal:
    exponent = value.as_tuple().exponent
    assert isinstance(exponent, int)
    if exponent < -MAX_SCALE:
        value = value.quantize(Decimal(1).scaleb(-MAX_SCALE), context=_context)
        exponent = -MAX_SCALE
    coefficient = int(value.copy_abs().scaleb(-min(exponent, 0), context=_context))
    if coefficient >= DECIMAL_COEFFICIENT_LIMIT:
        raise NumberRangeError(f"decimal out of range: {value}")
    if value.is_zero() and value.is_signed():
        value = value.copy_abs()
    return value


class N:
    """
    An exact VXL numeric value.

    Args:
        value (int | Decimal): Python int for the Int variant, `decimal.Decimal`
            for the Decimal variant. `bool` is rejected.

    Equality is variant-aware: `N(1) != N(Decimal("1.0"))` even though the
    Python values compare equal. Decimals compare numerically, so
    `N(Decimal("1.0")) == N(Decimal("1.00"))`.
    """

    def __init__(self, value: Union[int, Decimal]):
        if isinstance(value, bool) or not isinstance(value, (int, Decimal)):
            raise TypeError(f"N expects int or Decimal, got {type(value).__name__}")
        if isinstance(value, int) and not fits_int64(value):
            raise NumberRangeError(f"integer out of 64-bit range: {value}")
        if isinstance(value, Decimal):
            if not value.is_finite():
                raise NumberRangeError(f"decimal must be finite: {value}")
            value = _check_decimal(value)
        self.value: Union[int, Decimal] = value

    @classmethod
    def from_str(cls, text: str) -> "N":
        """
        Convert plain digits (optionally with one `.`) to a value.

        Integer text that fits 64 bits becomes Int. Anything else that is a
        valid fixed-point decimal within range becomes Decimal.

        Raises:
            NumberRangeError: If the text is not representable.
        """
        if "." not in text:
            try:
                as_int = int(text)
            except ValueError:
                raise NumberRangeError(f"invalid number: {text!r}") from None
            if fits_int64(as_int):
                return cls(as_int)
        try:
            return cls(Decimal(text))
        except InvalidOperation:
            raise NumberRangeError(f"invalid number: {text!r}") from None

    @property
    def kind(self) -> Literal["int", "decimal"]:
        return "int" if isinstance(self.value, int) else "decimal"

    def is_int(self) -> bool:
        return isinstance(self.value, int)

    def is_decimal(self) -> bool:
        return isinstance(self.value, Decimal)

    def as_int(self) -> int | None:
        return self.value if isinstance(self.value, int) else None

    def as_decimal(self) -> Decimal | None:
        return self.value if isinstance(self.value, Decimal) else None

    def negate(self) -> "N":
        return N(-self.value)

    def apply_exponent(self, exponent: int) -> "N":
        """
        Scale by `10 ** exponent`.

        Int base: a non-negative exponent stays Int; a negative exponent gives
        Decimal. Decimal base: a negative exponent stays Decimal; a
        non-negative exponent narrows to Int when the result has no
        fractional part and fits 64 bits.

        Raises:
            NumberRangeError: If the exponent magnitude exceeds the decimal
                scale limit or the result overflows.
        """
        if abs(exponent) > MAX_SCALE:
            raise NumberRangeError(f"exponent out of range: {exponent}")

        if isinstance(self.value, int):
            if exponent >= 0:
                return N(self.value * 10**exponent)
            return N(Decimal(self.value).scaleb(exponent, context=_context))

        scaled = self.value.scaleb(exponent, context=_context)
        if exponent >= 0 and scaled == scaled.to_integral_value():
            as_int = int(scaled)
            if fits_int64(as_int):
                return N(as_int)
        return N(scaled)

    def __str__(self) -> str:
        if isinstance(self.value, int):
            return str(self.value)
        # fixed-point, never scientific notation
        return format(self.value, "f")

    def __repr__(self) -> str:
        if isinstance(self.value, int):
            return f"N({self.value})"
        return f"N(Decimal('{self}'))"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, N):
            return NotImplemented
        return type(self.value) is type(other.value) and self.value == other.value

    def __hash__(self) -> int:
        return hash((self.kind, self.value))

    def to_dict(self) -> NDict:
        if isinstance(self.value, int):
            return {"int": str(self)}
        return {"decimal": str(self)}


__all__ = ["N", "NDict", "NumberRangeError", "fits_int64"]
