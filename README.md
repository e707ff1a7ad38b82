# bilge

Building blocks for packed binary layouts: unsigned integers of any width
from 1 to 128 bits, enums whose variants map onto a fixed number of bits,
and functions that read, write and validate typed values inside a raw bit
pattern.

## Installing

```
pip install .
```

The tests use pytest, which the `test` extra installs (`pip install .[test]`).

## Modules

| Module        | Contents                                                              |
|---------------|-----------------------------------------------------------------------|
| `bilge.uint`  | `uint`, `UIntType`, `UInt`, `BitsError`                               |
| `bilge.types` | `Array`, `DefinitionError`, bit sizes, masks and type checks          |
| `bilge.codec` | `read_value`, `write_value`, `check_value`, `default_value`, `flatten_array` |
| `bilge.enums` | `build_enum`, `enum_from_bits`, `enum_try_from_bits`, `enum_to_int`, `FallbackKind`, `Fallback`, `find_fallback`, `DiscriminantAssigner` |
| `bilge.paths` | `path_matches`, `matches_core_or_std`, `is_custom_bitfield_derive`, `split_derives`, `SplitDerives` |

## Unsigned integers

`uint(bits)` returns the type of unsigned integers exactly `bits` wide; calling
it makes a value. A value that does not fit raises `ValueError`.

```python
from bilge.uint import uint

u4 = uint(4)
x = u4(0b1011)
x.value        # 11
int(x)         # 11
x == 11        # True
format(x, "04b")  # '1011'
u4.MAX         # u4(15)
u4(16)         # ValueError
```

`UInt` values compare with plain integers and with values of the same width.
`BitsError` (a `ValueError`) is raised when a bit pattern does not describe a
valid value.

## Field types

A field type is `bool`, a `uN` type, a tuple of field types, an
`Array(elem, length)`, or a class with a `BITS` attribute, such as an enum made
by `build_enum`. `bilge.types` gives:

- `type_bitsize(ty)` – the number of bits the type occupies;
- `type_mask(ty)` – a mask over all of those bits;
- `is_always_filled(ty)` – true for `bool` and `uN`, where every pattern is valid;
- `check_type_is_supported(ty)` – raises `DefinitionError` for anything else;
- `validate_bitsize(n)` – accepts 1 to 128, raises `DefinitionError` otherwise;
- `enum_fills_bitsize(bits, count)` – whether `count == 2**bits`, raising if greater;
- `bitsize_from_type_name(name)` – the width named by `"bool"` or `"uN"`.

## Encoding values

`bilge.codec` works on raw integers whose bit 0 is the first bit of the field.
The first element of a tuple or array takes the lowest bits.

```python
from bilge.codec import read_value, write_value, check_value
from bilge.types import Array
from bilge.uint import uint

ty = (uint(2), bool, Array(uint(4), 2))
raw = write_value(ty, (uint(2)(3), True, [uint(4)(1), uint(4)(15)]))
read_value(ty, raw)   # (u2(3), True, [u4(1), u4(15)])
check_value(ty, raw)  # True
```

`check_value` returns false when an enum inside the type rejects its bits.
`default_value(ty)` gives the raw bits of every element's default: zero for
`bool` and `uN`, the `default()` of a class. `flatten_array` folds nested
arrays into a total length and an element type.

## Bit-sized enums

`build_enum(cls, bitsize, derives)` turns a plain class of variant declarations
into an enum of up to 64 bits. Variants are declared in order with
`enum.auto()`, an explicit integer discriminant, or `FallbackKind.UNIT` /
`FallbackKind.WITH_VALUE` for the fallback variant. `derives` names
`"FromBits"` or `"TryFromBits"`, and `"Default"` together with a `__default__`
attribute naming the default variant.

```python
import enum
from bilge.enums import build_enum, FallbackKind

class Subclass:
    Mouse = enum.auto()
    Keyboard = enum.auto()
    Speakers = enum.auto()
    Reserved = FallbackKind.WITH_VALUE

Subclass = build_enum(Subclass, 32, ["FromBits"])
Subclass.from_bits(1)        # Subclass.Keyboard
Subclass.from_bits(42)       # Subclass.Reserved(u32(42))
int(Subclass.from_bits(42))  # 42

class Class:
    Mobile = enum.auto()
    Semimobile = enum.auto()
    Stationary = 3

Class = build_enum(Class, 2, ["TryFromBits"])
Class.try_from_bits(2)       # BitsError
```

Rules checked when the enum is built, each raising `DefinitionError`:

- no variants, or more than `2**bits` of them;
- a discriminant that exceeds the width or is given twice;
- a `FromBits` enum that neither fills its width nor has a fallback, or that
  fills it and has one;
- a fallback on a `TryFromBits` enum, or more than one fallback;
- a fallback with a value that is not the last variant or whose value is not as
  wide as the enum;
- variants with fields other than the fallback.

A `TryFromBits` enum that fills its width builds with a `UserWarning`. A unit
fallback converts back to its own discriminant; a fallback with a value
converts back to the value it kept. `enum_to_int(member)` returns the raw value
as a `uN`.

## Derive paths

`bilge.paths` matches derive names such as `"Default"`, `"fmt::Debug"` or
`"::core::fmt::Debug"` against fully qualified paths, and `split_derives`
sorts a list of derives into those whose names end in `Bits` and the rest,
rejecting `Debug` on structs and `zerocopy::FromBytes` without `FromBits`, and
turning `Default` on structs into `::bilge::DefaultBits`.

## What this package does not do

There is no bitfield struct class here: no decorator that packs named fields
into one integer with per-field accessors, constructors or `reserved`/`padding`
handling. Layouts are encoded with the functions in `bilge.codec` instead.
The package also offers no readable or binary printing of packed values, and
no conversion of them to or from plain data for serialization.