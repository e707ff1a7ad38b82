"""Bit-sized enums: discriminants, fallback variants and bit conversions.

A bit-sized enum is declared as a plain class whose public attributes are its
variants, in declaration order:

* ``enum.auto()`` declares a unit variant with the next discriminant;
* an ``int`` declares a unit variant with that discriminant;
* ``FallbackKind.UNIT`` declares the unit fallback variant, and
  ``(FallbackKind.UNIT, n)`` gives it the discriminant ``n``;
* ``FallbackKind.WITH_VALUE`` declares a fallback variant that keeps the raw
  value, also written ``(FallbackKind.WITH_VALUE, field_type)``;
* any other field type, or tuple of field types, declares a variant with
  fields, which the bit conversions reject.

Names starting with an underscore, functions and descriptors are not
variants. ``__default__`` may name the variant that ``default()`` returns.
"""

from __future__ import annotations

import enum
import operator
import types
import warnings
from dataclasses import dataclass
from typing import Iterable, Sequence

from .paths import matches_core_or_std, path_matches
from .types import (
    MAX_ENUM_BIT_SIZE,
    DefinitionError,
    enum_fills_bitsize,
    validate_bitsize,
)
from .uint import BitsError, UInt, UIntType, uint


class DiscriminantAssigner:
    """Hands out enum discriminants the way implicit numbering does."""

    def __init__(self, bitsize: int) -> None:
        self.bitsize = bitsize
        self._next_expected = 0

    @property
    def max_value(self) -> int:
        return (1 << self.bitsize) - 1

    def assign(self, name: str, explicit=None) -> int:
        """Return the discriminant of variant ``name``.

        ``explicit`` is the declared discriminant, or None for the next one.
        """
        if explicit is None:
            value = self._next_expected
        else:
            if (
                isinstance(explicit, bool)
                or not isinstance(explicit, int)
                or explicit < 0
            ):
                raise DefinitionError(
                    f"variant `{name}` is not a number: "
                    "only literal integers currently supported"
                )
            if explicit > self.max_value:
                raise DefinitionError(
                    f"Value of variant `{name}` exceeds the given number of bits"
                )
            value = explicit
        self._next_expected = value + 1
        return value


class FallbackKind(enum.Enum):
    """The two shapes a fallback variant can take."""

    UNIT = "unit"
    WITH_VALUE = "with_value"


@dataclass(frozen=True)
class Fallback:
    """The variant that every unmatched bit pattern converts to."""

    kind: FallbackKind
    name: str


@dataclass(frozen=True)
class _Variant:
    name: str
    discriminant: object
    is_fallback: bool
    fields: tuple


_NOT_VARIANT = (types.FunctionType, classmethod, staticmethod, property)


def _declared_variants(cls) -> list:
    return [
        (name, spec)
        for name, spec in vars(cls).items()
        if not name.startswith("_") and not isinstance(spec, _NOT_VARIANT)
    ]


def _parse_variant(name: str, spec, bitsize: int) -> _Variant:
    if isinstance(spec, enum.auto):
        return _Variant(name, None, False, ())
    if isinstance(spec, FallbackKind):
        fields = () if spec is FallbackKind.UNIT else (uint(bitsize),)
        return _Variant(name, None, True, fields)
    if isinstance(spec, tuple) and spec and isinstance(spec[0], FallbackKind):
        rest = spec[1:]
        if spec[0] is FallbackKind.UNIT:
            if len(rest) != 1:
                raise DefinitionError(
                    f"unit fallback `{name}` takes exactly one discriminant"
                )
            return _Variant(name, rest[0], True, ())
        return _Variant(name, None, True, tuple(rest))
    if isinstance(spec, tuple):
        return _Variant(name, None, False, spec)
    if isinstance(spec, (UIntType, type)):
        return _Variant(name, None, False, (spec,))
    return _Variant(name, spec, False, ())


def _fallback_from(variant: _Variant, bitsize: int, is_last: bool) -> Fallback:
    if not variant.fields:
        return Fallback(FallbackKind.UNIT, variant.name)
    if len(variant.fields) != 1:
        raise DefinitionError(
            "fallback variant must have exactly one field: "
            "use only one field or change to a unit variant"
        )
    if not is_last:
        raise DefinitionError(
            "value fallback is not the last variant: "
            "a fallback variant with value must be the last variant of the enum"
        )
    field = variant.fields[0]
    if field is bool:
        field_bits = 1
    elif isinstance(field, UIntType):
        field_bits = field.bits
    else:
        raise DefinitionError("fallback only supports arbitrary_int or bool types")
    if field_bits != bitsize:
        raise DefinitionError(
            f"bitsize of fallback field ({field_bits}) does not match "
            f"bitsize of enum ({bitsize})"
        )
    return Fallback(FallbackKind.WITH_VALUE, variant.name)


def find_fallback(variants: Iterable, bitsize: int) -> Fallback | None:
    """Find the single fallback among ``(name, declaration)`` pairs, if any."""
    parsed = [_parse_variant(name, spec, bitsize) for name, spec in variants]
    marked = [variant for variant in parsed if variant.is_fallback]
    if not marked:
        return None
    if len(marked) > 1:
        raise DefinitionError(
            "only one enum variant may be fallback: "
            "remove fallback markers until you only have one"
        )
    variant = marked[0]
    return _fallback_from(variant, bitsize, variant.name == parsed[-1].name)


def _rebuild_member(owner, name: str, payload):
    target = getattr(owner, name)
    if payload is None:
        return target
    return target(payload)


class _BitEnum:
    """Base of every class made by build_enum."""

    __slots__ = ("_name", "_discriminant", "_payload")

    @property
    def name(self) -> str:
        return self._name

    @property
    def payload(self) -> UInt | None:
        """The raw value kept by a fallback variant with value, else None."""
        return self._payload

    def __setattr__(self, key, value) -> None:
        raise AttributeError(f"{type(self).__name__} variants are immutable")

    def __int__(self) -> int:
        return enum_to_int(self).value

    def __index__(self) -> int:
        return enum_to_int(self).value

    def __eq__(self, other) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._name == other._name and self._payload == other._payload

    def __hash__(self) -> int:
        return hash((type(self), self._name, self._payload))

    def __reduce__(self):
        return (_rebuild_member, (type(self), self._name, self._payload))

    def __repr__(self) -> str:
        text = f"{type(self).__name__}.{self._name}"
        if self._payload is not None:
            text += f"({self._payload!r})"
        return text

    def __format__(self, spec: str) -> str:
        if not spec:
            return repr(self)
        return format(int(self), spec)


class _ValueVariant:
    """Constructor of a fallback variant that carries a value."""

    __slots__ = ("_owner", "_name")

    def __init__(self, owner, name: str) -> None:
        self._owner = owner
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def __call__(self, value):
        payload = _as_uint(uint(self._owner.BITS), value)
        return _make_member(self._owner, self._name, None, payload)

    def __repr__(self) -> str:
        return f"{self._owner.__name__}.{self._name}"


_RESERVED = frozenset(dir(_BitEnum)) | {"BITS", "MAX", "from_bits", "try_from_bits", "default"}


def _make_member(cls, name: str, discriminant, payload):
    member = object.__new__(cls)
    object.__setattr__(member, "_name", name)
    object.__setattr__(member, "_discriminant", discriminant)
    object.__setattr__(member, "_payload", payload)
    return member


def _as_uint(ty: UIntType, value) -> UInt:
    if isinstance(value, UInt) and value.type != ty:
        raise TypeError(f"expected {ty.name}, got {value!r}")
    return ty(operator.index(value))


def _check_enum_class(enum_cls) -> None:
    if not (isinstance(enum_cls, type) and issubclass(enum_cls, _BitEnum)):
        raise TypeError(f"{enum_cls!r} is not a bit-sized enum")


def _has_derive(derives: Sequence, name: str) -> bool:
    return any(path_matches(derive, ["bilge", name]) for derive in derives)


def _validate_units(variants, fallback: Fallback | None, try_from: bool) -> None:
    for variant in variants:
        if fallback is not None and variant.name == fallback.name:
            continue
        if variant.fields:
            if try_from:
                raise DefinitionError(
                    "TryFromBits only supports unit variants in enums: "
                    "change this variant to a unit"
                )
            hint = (
                "change this variant to a unit"
                if fallback is not None
                else "add a fallback variant or change this variant to a unit"
            )
            raise DefinitionError(
                "FromBits only supports unit variants for variants without "
                f"fallback: {hint}"
            )


def _assign_discriminants(variants, fallback: Fallback | None, bitsize: int) -> dict:
    assigner = DiscriminantAssigner(bitsize)
    assigned: dict = {}
    seen: dict = {}
    for variant in variants:
        if (
            fallback is not None
            and fallback.kind is FallbackKind.WITH_VALUE
            and variant.name == fallback.name
        ):
            continue
        value = assigner.assign(variant.name, variant.discriminant)
        if value > assigner.max_value:
            raise DefinitionError(
                f"Value of variant `{variant.name}` exceeds the given number of bits"
            )
        if value in seen:
            raise DefinitionError(
                f"discriminant value `{value}` assigned more than once"
            )
        seen[value] = variant.name
        assigned[variant.name] = value
    return assigned


def build_enum(cls, bitsize: int, derives: Iterable = ()):
    """Turn the variant declarations of ``cls`` into a bit-sized enum class."""
    bitsize = validate_bitsize(bitsize)
    if bitsize > MAX_ENUM_BIT_SIZE:
        raise DefinitionError(f"enum bitsize is limited to {MAX_ENUM_BIT_SIZE}")
    declared = _declared_variants(cls)
    if not declared:
        raise DefinitionError("empty enums are not supported")
    derives = tuple(derives)

    variants = [_parse_variant(name, spec, bitsize) for name, spec in declared]
    for variant in variants:
        if variant.name in _RESERVED:
            raise DefinitionError(f"variant name `{variant.name}` is reserved")
    if not any(variant.is_fallback for variant in variants):
        enum_fills_bitsize(bitsize, len(variants))

    if _has_derive(derives, "DebugBits"):
        raise DefinitionError("use derive(Debug) for enums")
    if _has_derive(derives, "DefaultBits"):
        raise DefinitionError("use derive(Default) for enums")
    has_from = _has_derive(derives, "FromBits")
    has_try = _has_derive(derives, "TryFromBits")
    if has_from and has_try:
        raise DefinitionError("an enum derives either FromBits or TryFromBits, not both")

    fallback = find_fallback(declared, bitsize)
    if fallback is not None and has_try:
        raise DefinitionError(
            "fallback is not allowed with TryFromBits: "
            "use FromBits or remove this fallback"
        )
    _validate_units(variants, fallback, has_try)

    filled = enum_fills_bitsize(bitsize, len(variants))
    if has_from:
        if not filled and fallback is None:
            raise DefinitionError(
                "enum doesn't fill its bitsize: you need to use TryFromBits "
                "instead, or specify one of the variants as fallback"
            )
        if filled and fallback is not None:
            raise DefinitionError(
                f"enum already has {len(variants)} variants: remove the fallback"
            )
    if has_try and filled:
        warnings.warn(
            f"enum {cls.__name__} fills its bitsize: you can use FromBits instead",
            UserWarning,
            stacklevel=2,
        )

    discriminants = _assign_discriminants(variants, fallback, bitsize)
    variant_names = {variant.name for variant in variants}

    namespace = {
        key: value
        for key, value in vars(cls).items()
        if key not in variant_names and key not in ("__dict__", "__weakref__", "__slots__")
    }
    namespace["__slots__"] = ()
    namespace["BITS"] = bitsize
    namespace["MAX"] = uint(bitsize).MAX
    if has_from:
        namespace["from_bits"] = classmethod(enum_from_bits)
        namespace["try_from_bits"] = classmethod(enum_try_from_bits)
    elif has_try:
        namespace["try_from_bits"] = classmethod(enum_try_from_bits)

    if any(matches_core_or_std(derive, ["default", "Default"]) for derive in derives):
        default_name = vars(cls).get("__default__")
        if default_name not in discriminants:
            raise DefinitionError(
                "no default declared: set __default__ to the name of a unit variant"
            )
        namespace["default"] = classmethod(lambda owner: getattr(owner, default_name))

    new_cls = type(cls.__name__, (_BitEnum,), namespace)

    by_value: dict = {}
    for variant in variants:
        if variant.name not in discriminants:
            setattr(new_cls, variant.name, _ValueVariant(new_cls, variant.name))
            continue
        value = discriminants[variant.name]
        member = _make_member(new_cls, variant.name, value, None)
        setattr(new_cls, variant.name, member)
        if not variant.is_fallback:
            by_value[value] = member

    new_cls._bilge_by_value = by_value
    new_cls._bilge_fallback = fallback
    new_cls._bilge_from = has_from
    new_cls._bilge_try_from = has_try
    return new_cls


def enum_from_bits(enum_cls, value):
    """Convert a raw value into a variant of a FromBits enum."""
    _check_enum_class(enum_cls)
    if not enum_cls._bilge_from:
        raise TypeError(f"{enum_cls.__name__} does not derive FromBits")
    number = _as_uint(uint(enum_cls.BITS), value)
    member = enum_cls._bilge_by_value.get(number.value)
    if member is not None:
        return member
    fallback = enum_cls._bilge_fallback
    if fallback is None:
        raise BitsError()
    target = getattr(enum_cls, fallback.name)
    if fallback.kind is FallbackKind.WITH_VALUE:
        return target(number)
    return target


def enum_try_from_bits(enum_cls, value):
    """Convert a raw value into a variant, raising BitsError if none matches."""
    _check_enum_class(enum_cls)
    if enum_cls._bilge_from:
        return enum_from_bits(enum_cls, value)
    if not enum_cls._bilge_try_from:
        raise TypeError(f"{enum_cls.__name__} derives neither FromBits nor TryFromBits")
    number = _as_uint(uint(enum_cls.BITS), value)
    member = enum_cls._bilge_by_value.get(number.value)
    if member is None:
        raise BitsError()
    return member


def enum_to_int(member) -> UInt:
    """Return the raw value of a variant as an unsigned integer of the enum's width."""
    if not isinstance(member, _BitEnum):
        raise TypeError(f"{member!r} is not a bit-sized enum variant")
    if member._payload is not None:
        return member._payload
    return uint(type(member).BITS)(member._discriminant)