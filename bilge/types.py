"""Bit sizes, masks and validation of field types."""

from __future__ import annotations

import re
from dataclasses import dataclass

from .uint import UIntType

MAX_STRUCT_BIT_SIZE = 128
MAX_ENUM_BIT_SIZE = 64

_NUMBER = re.compile(r"\+?[0-9]+")


class DefinitionError(ValueError):
    """Raised when a bitfield or bit-sized enum is defined incorrectly."""


@dataclass(frozen=True)
class Array:
    """A field type of ``length`` consecutive elements of type ``elem``."""

    elem: object
    length: int

    def __post_init__(self) -> None:
        if isinstance(self.length, bool) or not isinstance(self.length, int):
            raise DefinitionError(f"array length must be an integer, not {self.length!r}")
        if self.length < 0:
            raise DefinitionError("array length must not be negative")


def validate_bitsize(value) -> int:
    """Check a declared bit size and return it."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise DefinitionError(
            "attribute value is not a number: "
            "you need to define the size like this: bitsize(32)"
        )
    if not 1 <= value <= MAX_STRUCT_BIT_SIZE:
        raise DefinitionError(
            "attribute value is not a valid number: "
            f"currently, numbers from 1 to {MAX_STRUCT_BIT_SIZE} are allowed"
        )
    return value


def _leaf_bits(ty) -> int | None:
    if ty is bool:
        return 1
    if isinstance(ty, UIntType):
        return ty.bits
    if isinstance(ty, type):
        bits = getattr(ty, "BITS", None)
        if isinstance(bits, int) and not isinstance(bits, bool):
            return bits
    return None


def type_bitsize(ty) -> int:
    """Return the number of bits a field type occupies."""
    if isinstance(ty, tuple):
        return sum(type_bitsize(elem) for elem in ty)
    if isinstance(ty, Array):
        return type_bitsize(ty.elem) * ty.length
    bits = _leaf_bits(ty)
    if bits is None:
        raise DefinitionError(f"{ty!r} is not a bit-sized type")
    return bits


def type_mask(ty) -> int:
    """Return the mask covering every bit of a field type, starting at bit 0."""
    if isinstance(ty, tuple):
        mask = 0
        offset = 0
        for elem in ty:
            mask |= type_mask(elem) << offset
            offset += type_bitsize(elem)
        return mask
    if isinstance(ty, Array):
        elem_mask = type_mask(ty.elem)
        elem_size = type_bitsize(ty.elem)
        mask = 0
        for i in range(ty.length):
            mask |= elem_mask << (i * elem_size)
        return mask
    return (1 << type_bitsize(ty)) - 1


def is_always_filled(ty) -> bool:
    """True for types where every bit pattern is valid: ``bool`` and ``uN``."""
    return ty is bool or isinstance(ty, UIntType)


def bitsize_from_type_name(name: str) -> int | None:
    """Extract the bit size from a type name equal to ``uN`` or ``bool``."""
    if name == "bool":
        return 1
    if not name.startswith("u"):
        return None
    suffix = name[1:]
    if not _NUMBER.fullmatch(suffix):
        return None
    bits = int(suffix)
    return bits if bits <= MAX_STRUCT_BIT_SIZE else None


def enum_fills_bitsize(bitsize: int, variants_count: int) -> bool:
    """True if the enum has exactly ``2**bitsize`` variants."""
    max_variants_count = 1 << bitsize
    if variants_count > max_variants_count:
        raise DefinitionError(
            "enum overflows its bitsize: "
            f"there should only be at most {max_variants_count} variants defined"
        )
    return variants_count == max_variants_count


def check_type_is_supported(ty) -> None:
    """Raise DefinitionError unless the field type can live in a bitfield."""
    if isinstance(ty, tuple):
        for elem in ty:
            check_type_is_supported(elem)
    elif isinstance(ty, Array):
        check_type_is_supported(ty.elem)
    elif _leaf_bits(ty) is None:
        raise DefinitionError(f"This field type is not supported: {ty!r}")