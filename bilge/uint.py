"""Fixed-width unsigned integers and the bit pattern error."""

from __future__ import annotations

import operator
from dataclasses import dataclass
from functools import lru_cache, total_ordering

MAX_BITS = 128


class BitsError(ValueError):
    """Raised when a bit pattern does not describe a valid value."""

    def __init__(self, message: str = "unable to parse bit pattern") -> None:
        super().__init__(message)


@total_ordering
class UInt:
    """An unsigned integer value bound to a fixed bit width."""

    __slots__ = ("_type", "_value")

    def __init__(self, ty: UIntType, value) -> None:
        number = operator.index(value)
        if not 0 <= number <= ty.max_value:
            raise ValueError(f"value {number} does not fit in {ty.name}")
        self._type = ty
        self._value = number

    @property
    def type(self) -> UIntType:
        return self._type

    @property
    def bits(self) -> int:
        return self._type.bits

    @property
    def value(self) -> int:
        return self._value

    def __int__(self) -> int:
        return self._value

    def __index__(self) -> int:
        return self._value

    def __bool__(self) -> bool:
        return self._value != 0

    def _coerce(self, other):
        if isinstance(other, UInt):
            return other._value if other._type == self._type else None
        if isinstance(other, int):
            return other
        return None

    def __eq__(self, other) -> bool:
        number = self._coerce(other)
        if number is None:
            return NotImplemented
        return self._value == number

    def __lt__(self, other) -> bool:
        number = self._coerce(other)
        if number is None:
            return NotImplemented
        return self._value < number

    def __hash__(self) -> int:
        return hash(self._value)

    def __format__(self, spec: str) -> str:
        return format(self._value, spec)

    def __str__(self) -> str:
        return str(self._value)

    def __repr__(self) -> str:
        return f"{self._type.name}({self._value})"


@dataclass(frozen=True, repr=False)
class UIntType:
    """The type of unsigned integers that are exactly ``bits`` wide."""

    bits: int

    def __post_init__(self) -> None:
        if isinstance(self.bits, bool) or not isinstance(self.bits, int):
            raise ValueError(f"bit width must be an integer, not {self.bits!r}")
        if not 1 <= self.bits <= MAX_BITS:
            raise ValueError(f"bit width must be between 1 and {MAX_BITS}")

    @property
    def BITS(self) -> int:  # noqa: N802 - mirrors the Bitsized protocol
        return self.bits

    @property
    def name(self) -> str:
        return f"u{self.bits}"

    @property
    def max_value(self) -> int:
        return (1 << self.bits) - 1

    @property
    def MAX(self) -> UInt:  # noqa: N802 - mirrors the Bitsized protocol
        return UInt(self, self.max_value)

    def __call__(self, value) -> UInt:
        return UInt(self, value)

    def __repr__(self) -> str:
        return self.name


@lru_cache(maxsize=None)
def uint(bits: int) -> UIntType:
    """Return the unsigned integer type of the given width."""
    return UIntType(bits)