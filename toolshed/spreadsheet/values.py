"""Cell values of the spreadsheet and how they compare and print."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

INVALID = "#!INVALID"

_DECIMAL_RE = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_HEX_RE = re.compile(
    r"[+-]?0[xX](?:[0-9a-fA-F]+(?:\.[0-9a-fA-F]*)?|\.[0-9a-fA-F]+)[pP][+-]?[0-9]+"
)
_SPECIAL_RE = re.compile(r"[+-]?(?:inf|infinity)|nan", re.IGNORECASE)


class Unimplemented(NotImplementedError):
    """A spreadsheet function exists by name but has no implementation."""

    def __init__(self, message: str = "unimplemented") -> None:
        super().__init__(message)


def _parse_float(text: str) -> Optional[float]:
    """Parse a complete float literal; None if the text is not one or is out of range."""
    if _SPECIAL_RE.fullmatch(text):
        return float(text)
    try:
        if _DECIMAL_RE.fullmatch(text):
            number = float(text)
        elif _HEX_RE.fullmatch(text):
            number = float.fromhex(text)
        else:
            return None
    except OverflowError:
        return None
    return None if math.isinf(number) else number


def _format_float(value: float) -> str:
    """Shortest representation, switching to exponent form outside 1e-4 .. 1e6."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"

    sign, digit_tuple, exponent = Decimal(repr(value)).as_tuple()
    point = len(digit_tuple) + exponent
    digits = "".join(map(str, digit_tuple)).rstrip("0")
    count = len(digits)
    prefix = "-" if sign else ""

    exp10 = point - 1
    if exp10 < -4 or exp10 >= 6:
        mantissa = digits[0] + ("." + digits[1:] if count > 1 else "")
        exp_sign = "-" if exp10 < 0 else "+"
        return f"{prefix}{mantissa}e{exp_sign}{abs(exp10):02d}"
    if point <= 0:
        return f"{prefix}0.{'0' * -point}{digits}"
    if point >= count:
        return f"{prefix}{digits}{'0' * (point - count)}"
    return f"{prefix}{digits[:point]}.{digits[point:]}"


def _display(value: Any) -> str:
    """Render any cell value as text."""
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _format_float(value)
    return str(value)


def parse_value(text: str) -> "Value":
    """Read text as a number when it is one, otherwise keep it as a string."""
    number = _parse_float(text)
    return Value(number if number is not None else text)


@dataclass(frozen=True)
class Value:
    """The result of evaluating an expression: a float, an int, a string or nothing."""

    value: Any = None

    def is_number(self) -> bool:
        return isinstance(self.value, float)

    def is_string(self) -> bool:
        return isinstance(self.value, str)

    def as_int(self) -> int:
        if not isinstance(self.value, float):
            raise TypeError("value is not a number")
        if not math.isfinite(self.value):
            raise TypeError("value is not a finite number")
        return int(self.value)

    def is_zero(self) -> bool:
        """True for 0.0 and for any string."""
        if isinstance(self.value, float) and self.value == 0.0:
            return True
        return isinstance(self.value, str)

    def as_float(self) -> float:
        if isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
            raise TypeError("value is not a number")
        return float(self.value)

    def as_string(self) -> str:
        if isinstance(self.value, str):
            return self.value
        if self.value is not None:
            return _display(self.value)
        return ""

    def equals(self, other: "Value") -> bool:
        return _display(self.value) == _display(other.value)

    def coerced_equals(self, other: "Value") -> bool:
        return _display(self.value) == _display(other.value)

    def __str__(self) -> str:
        return _display(self.value)


@dataclass
class CellValue:
    """What a cell holds: the text typed in and, once evaluated, its value."""

    source: str
    value: Any = None

    def __str__(self) -> str:
        if self.value is not None:
            return _display(self.value)
        return self.source

    def current(self) -> Any:
        """The evaluated value if there is one, else the typed text."""
        if self.value is not None:
            return self.value
        return self.source