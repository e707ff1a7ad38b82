"""Reading, writing and validating field values inside a raw bit pattern.

Field types are ``bool``, ``uN`` types made by :func:`bilge.uint.uint`,
tuples of field types, :class:`bilge.types.Array` and classes that carry a
``BITS`` attribute.  Such classes convert from bits with a ``try_from_bits``
or ``from_bits`` classmethod taking a ``uN`` value. They convert back to bits
with ``int()``, and may offer a ``default`` classmethod.

Every function works on a raw integer whose bit 0 is the field's first bit.
The first element of a tuple or array occupies the lowest bits.
"""

from __future__ import annotations

import operator
from collections.abc import Sequence

from .types import Array, DefinitionError, type_bitsize, type_mask
from .uint import BitsError, UInt, UIntType, uint


def flatten_array(array: Array) -> tuple[int, object]:
    """Fold ``Array(Array(T, n), m)`` into its total length ``n * m`` and ``T``."""
    elem = array.elem
    if isinstance(elem, Array):
        child_length, child_elem = flatten_array(elem)
        return array.length * child_length, child_elem
    return array.length, elem


def _converter(ty):
    convert = getattr(ty, "try_from_bits", None) or getattr(ty, "from_bits", None)
    if convert is None:
        raise DefinitionError(f"{ty!r} cannot be built from bits")
    return convert


def _read_leaf(ty, raw: int):
    raw &= type_mask(ty)
    if ty is bool:
        return bool(raw)
    if isinstance(ty, UIntType):
        return ty(raw)
    return _converter(ty)(uint(type_bitsize(ty))(raw))


def read_value(ty, raw):
    """Decode the value of field type ``ty`` from the low bits of ``raw``."""
    raw = operator.index(raw)
    if raw < 0:
        raise ValueError("raw bit pattern must not be negative")
    if isinstance(ty, tuple):
        values = []
        offset = 0
        for elem in ty:
            values.append(read_value(elem, raw >> offset))
            offset += type_bitsize(elem)
        return tuple(values)
    if isinstance(ty, Array):
        size = type_bitsize(ty.elem)
        return [read_value(ty.elem, raw >> (i * size)) for i in range(ty.length)]
    return _read_leaf(ty, raw)


def _write_leaf(ty, value) -> int:
    if ty is bool:
        if not isinstance(value, bool):
            raise TypeError(f"expected bool, got {value!r}")
        return int(value)
    if isinstance(ty, UIntType):
        if isinstance(value, bool):
            raise TypeError(f"expected {ty.name}, got {value!r}")
        if isinstance(value, UInt) and value.type != ty:
            raise TypeError(f"expected {ty.name}, got {value!r}")
        return ty(value).value
    if not isinstance(value, ty):
        raise TypeError(f"expected {ty.__name__}, got {value!r}")
    number = int(value)
    if not 0 <= number <= type_mask(ty):
        raise ValueError(f"{value!r} does not fit in {type_bitsize(ty)} bits")
    return number


def _as_sequence(value, length: int, what: str) -> Sequence:
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise TypeError(f"expected a {what} of {length} elements, got {value!r}")
    if len(value) != length:
        raise ValueError(f"expected {length} elements, got {len(value)}")
    return value


def write_value(ty, value) -> int:
    """Encode ``value`` of field type ``ty`` into bits starting at bit 0."""
    if isinstance(ty, tuple):
        items = _as_sequence(value, len(ty), "tuple")
        result = 0
        offset = 0
        for elem, item in zip(ty, items):
            result |= write_value(elem, item) << offset
            offset += type_bitsize(elem)
        return result
    if isinstance(ty, Array):
        items = _as_sequence(value, ty.length, "sequence")
        size = type_bitsize(ty.elem)
        result = 0
        for i, item in enumerate(items):
            result |= write_value(ty.elem, item) << (i * size)
        return result
    return _write_leaf(ty, value)


def check_value(ty, raw) -> bool:
    """True if the low bits of ``raw`` form a valid value of field type ``ty``."""
    raw = operator.index(raw)
    if raw < 0:
        raise ValueError("raw bit pattern must not be negative")
    if isinstance(ty, tuple):
        offset = 0
        for elem in ty:
            if not check_value(elem, raw >> offset):
                return False
            offset += type_bitsize(elem)
        return True
    if isinstance(ty, Array):
        length, elem = flatten_array(ty)
        size = type_bitsize(elem)
        return all(check_value(elem, raw >> (i * size)) for i in range(length))
    if ty is bool or isinstance(ty, UIntType):
        return True
    try_from = getattr(ty, "try_from_bits", None)
    if try_from is None:
        _converter(ty)
        return True
    try:
        try_from(uint(type_bitsize(ty))(raw & type_mask(ty)))
    except BitsError:
        return False
    return True


def default_value(ty) -> int:
    """Return the raw bits of the default value of field type ``ty``."""
    if isinstance(ty, tuple):
        result = 0
        offset = 0
        for elem in ty:
            result |= default_value(elem) << offset
            offset += type_bitsize(elem)
        return result
    if isinstance(ty, Array):
        elem_default = default_value(ty.elem)
        size = type_bitsize(ty.elem)
        result = 0
        for i in range(ty.length):
            result |= elem_default << (i * size)
        return result
    if ty is bool or isinstance(ty, UIntType):
        return 0
    default = getattr(ty, "default", None)
    if callable(default):
        default = default()
    if not isinstance(default, ty):
        raise DefinitionError(f"{ty!r} has no default value")
    return _write_leaf(ty, default)