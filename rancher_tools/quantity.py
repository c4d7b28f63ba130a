"""Resource quantities such as ``500m`` CPU or ``128Mi`` of memory."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
from functools import total_ordering
from typing import Union

_NANO = 10**9

_DECIMAL_SUFFIXES = {
    "n": -9,
    "u": -6,
    "m": -3,
    "": 0,
    "k": 3,
    "M": 6,
    "G": 9,
    "T": 12,
    "P": 15,
    "E": 18,
}
_DECIMAL_BY_EXPONENT = {exp: suffix for suffix, exp in _DECIMAL_SUFFIXES.items()}

_BINARY_SUFFIXES = {"Ki": 10, "Mi": 20, "Gi": 30, "Ti": 40, "Pi": 50, "Ei": 60}
_BINARY_BY_STEP = ["", "Ki", "Mi", "Gi", "Ti", "Pi", "Ei"]

_NUMBER = re.compile(r"([+-]?)(\d+\.?\d*|\.\d+)(.*)", re.DOTALL)
_EXPONENT = re.compile(r"[eE]([+-]?\d+)")


class QuantityFormat(str, Enum):
    """How a quantity is rendered back to text."""

    DECIMAL_SI = "DecimalSI"
    BINARY_SI = "BinarySI"
    DECIMAL_EXPONENT = "DecimalExponent"


@total_ordering
@dataclass(frozen=True, eq=False)
class Quantity:
    """An exact quantity held in nano units, with a preferred text format."""

    nanos: int
    format: QuantityFormat = QuantityFormat.DECIMAL_SI

    @classmethod
    def parse(cls, text: Union[str, int, float]) -> "Quantity":
        """Parse a quantity string; precision beyond nano units is rounded up."""
        if isinstance(text, bool):
            raise ValueError(f"quantities must match the regular expression: {text!r}")
        if isinstance(text, (int, float)):
            text = str(text)
        match = _NUMBER.fullmatch(text)
        if match is None:
            raise ValueError(f"quantities must match the regular expression: {text!r}")
        sign, number, suffix = match.groups()
        value = Fraction(number)

        if suffix in _DECIMAL_SUFFIXES:
            value *= Fraction(10) ** _DECIMAL_SUFFIXES[suffix]
            fmt = QuantityFormat.DECIMAL_SI
        elif suffix in _BINARY_SUFFIXES:
            value *= 2 ** _BINARY_SUFFIXES[suffix]
            fmt = QuantityFormat.BINARY_SI
        else:
            exp_match = _EXPONENT.fullmatch(suffix)
            if exp_match is None:
                raise ValueError(f"unable to parse quantity's suffix: {text!r}")
            value *= Fraction(10) ** int(exp_match.group(1))
            fmt = QuantityFormat.DECIMAL_EXPONENT

        scaled = value * _NANO
        magnitude = -(-scaled.numerator // scaled.denominator)
        return cls(-magnitude if sign == "-" else magnitude, fmt)

    @classmethod
    def zero(cls, fmt: QuantityFormat) -> "Quantity":
        """A zero quantity that renders in the given format."""
        return cls(0, QuantityFormat(fmt))

    def __add__(self, other: object) -> "Quantity":
        if not isinstance(other, Quantity):
            return NotImplemented
        fmt = other.format if self.nanos == 0 else self.format
        return Quantity(self.nanos + other.nanos, fmt)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Quantity):
            return NotImplemented
        return self.nanos < other.nanos

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Quantity):
            return NotImplemented
        return self.nanos == other.nanos

    def __hash__(self) -> int:
        return hash(self.nanos)

    def __str__(self) -> str:
        if self.nanos == 0:
            return "0"
        fmt = self.format
        if fmt is QuantityFormat.BINARY_SI:
            if abs(self.nanos) < 1024 * _NANO or self.nanos % _NANO:
                fmt = QuantityFormat.DECIMAL_SI
            else:
                return self._binary_text()
        mantissa, exponent = self.nanos, -9
        while mantissa % 1000 == 0 and exponent < 18:
            mantissa //= 1000
            exponent += 3
        if fmt is QuantityFormat.DECIMAL_EXPONENT:
            return str(mantissa) if exponent == 0 else f"{mantissa}e{exponent}"
        return f"{mantissa}{_DECIMAL_BY_EXPONENT[exponent]}"

    def _binary_text(self) -> str:
        value = self.nanos // _NANO
        step = 0
        while value % 1024 == 0 and step < len(_BINARY_BY_STEP) - 1:
            value //= 1024
            step += 1
        return f"{value}{_BINARY_BY_STEP[step]}"


def quantity_max(a: Quantity, b: Quantity) -> Quantity:
    """Return the larger quantity, preferring ``a`` when they are equal."""
    return a if a >= b else b