import copy
from enum import auto

import pytest

from bilge.codec import check_value, read_value, write_value
from bilge.enums import (
    DiscriminantAssigner,
    Fallback,
    FallbackKind,
    build_enum,
    enum_from_bits,
    enum_to_int,
    enum_try_from_bits,
    find_fallback,
)
from bilge.types import DefinitionError
from bilge.uint import BitsError, uint

u1, u2, u3, u5, u6, u7, u8, u11 = (uint(n) for n in (1, 2, 3, 5, 6, 7, 8, 11))
u32 = uint(32)


class Date:
    No = auto()
    Yes = auto()


Date = build_enum(Date, 1, ["FromBits"])


class Activity:
    Restaurant = auto()
    Skating = auto()
    Movies = auto()


Activity = build_enum(Activity, 2, ["TryFromBits"])


class BestPet:
    Cat = auto()
    Dog = auto()
    Parrot = (FallbackKind.WITH_VALUE, u11)


BestPet = build_enum(BestPet, 11, ["FromBits", "Debug"])


class NonDef:
    A = 1
    B = 3
    C = 5
    D = FallbackKind.UNIT


NonDef = build_enum(NonDef, 8, ["FromBits"])


def test_date_conversions():
    assert enum_to_int(Date.No) == u1(0)
    assert enum_to_int(Date.Yes) == u1(1)
    assert Date.from_bits(u1(0)) is Date.No
    assert Date.from_bits(u1(1)) is Date.Yes


def test_activity_try_from():
    expected = {0: Activity.Restaurant, 1: Activity.Skating, 2: Activity.Movies}
    for raw in range(4):
        value = u2(raw)
        if raw in expected:
            member = Activity.try_from_bits(value)
            assert member is expected[raw]
            assert enum_to_int(member) == value
        else:
            with pytest.raises(BitsError, match="unable to parse bit pattern"):
                Activity.try_from_bits(value)


def test_fallback_value_is_preserved():
    for raw in range(BestPet.MAX.value):
        original = u11(raw)
        assert enum_to_int(BestPet.from_bits(original)) == original


def test_fallback_value_variant():
    member = BestPet.from_bits(u11(9))
    assert member.name == "Parrot"
    assert member.payload == u11(9)
    assert member == BestPet.Parrot(u11(9))
    assert BestPet.from_bits(u11(1)) is BestPet.Dog


def test_non_default_ordinals():
    assert NonDef.from_bits(0) is NonDef.D
    assert NonDef.from_bits(5) is NonDef.C
    assert enum_to_int(NonDef.D) == u8(6)


@pytest.mark.parametrize("position,expected", [(0, 0), (1, 1), (2, 2)])
def test_different_unit_fallback_positions(position, expected):
    names = ["Foo", "Bar", "Baz"]
    body = {
        name: FallbackKind.UNIT if i == position else auto()
        for i, name in enumerate(names)
    }
    cls = build_enum(type("Unit", (), body), 5, ["FromBits"])
    fallback = getattr(cls, names[position])
    assert cls.from_bits(u5(4)) is fallback
    assert enum_to_int(fallback) == u5(expected)


def test_unit_fallback_discards_value():
    class UnitFallback:
        First = auto()
        Second = auto()
        Third = auto()
        Reserved = FallbackKind.UNIT

    UnitFallback = build_enum(UnitFallback, 7, ["FromBits"])
    converted = UnitFallback.from_bits(u7(7))
    assert converted is UnitFallback.Reserved
    assert enum_to_int(converted) == u7(3)


def test_value_fallback_keeps_value():
    class FallbackWithValue:
        First = auto()
        Second = auto()
        Third = auto()
        Reserved = FallbackKind.WITH_VALUE

    FallbackWithValue = build_enum(FallbackWithValue, 7, ["FromBits"])
    assert enum_to_int(FallbackWithValue.from_bits(u7(3))) == u7(3)
    assert enum_to_int(FallbackWithValue.from_bits(u7(9))) == u7(9)


def test_subclass_unit_and_value_fallback():
    class Subclass:
        Mouse = auto()
        Keyboard = auto()
        Speakers = auto()
        Reserved = FallbackKind.UNIT

    class Subclass2:
        Mouse = auto()
        Keyboard = auto()
        Speakers = auto()
        Reserved = (FallbackKind.WITH_VALUE, u32)

    Subclass = build_enum(Subclass, 32, ["FromBits"])
    Subclass2 = build_enum(Subclass2, 32, ["FromBits"])
    assert Subclass.from_bits(3) is Subclass.Reserved
    assert Subclass.from_bits(42) is Subclass.Reserved
    assert int(Subclass.from_bits(42)) == 3
    assert Subclass2.from_bits(3) == Subclass2.Reserved(3)
    assert Subclass2.from_bits(42) == Subclass2.Reserved(42)
    assert int(Subclass2.from_bits(42)) == 42


def test_implicit_discriminants_continue_after_explicit():
    class ChildEnum:
        A = 0b000
        B = 0x001
        C = auto()
        D = 0o003

    ChildEnum = build_enum(ChildEnum, 2, ["FromBits"])
    assert int(ChildEnum.C) == 2
    assert ChildEnum.from_bits(u2(3)) is ChildEnum.D


def test_try_from_with_gap():
    class NestedChildEnum:
        A = auto()
        B = 2
        C = auto()

    NestedChildEnum = build_enum(NestedChildEnum, 2, ["TryFromBits"])
    assert NestedChildEnum.try_from_bits(u2(3)) is NestedChildEnum.C
    with pytest.raises(BitsError):
        NestedChildEnum.try_from_bits(u2(1))


def test_from_bits_enum_try_from_never_fails():
    assert enum_try_from_bits(BestPet, u11(500)) == BestPet.Parrot(u11(500))


def test_from_bits_rejected_for_try_from_enum():
    with pytest.raises(TypeError):
        enum_from_bits(Activity, u2(0))


def test_from_bits_rejects_out_of_range_and_wrong_width():
    with pytest.raises(ValueError):
        Date.from_bits(2)
    with pytest.raises(TypeError):
        Date.from_bits(u2(1))


def test_int_index_and_repr():
    assert int(Date.Yes) == 1
    assert [10, 20][Date.Yes] == 20
    assert repr(Date.Yes) == "Date.Yes"
    assert repr(BestPet.Parrot(u11(5))) == "BestPet.Parrot(u11(5))"
    assert format(Activity.Movies, "02b") == "10"


def test_members_are_immutable_singletons():
    with pytest.raises(AttributeError):
        Date.Yes.foo = 1
    assert copy.deepcopy(Date.No) is Date.No
    assert {Date.No: "x"}[Date.No] == "x"


def test_codec_integration():
    assert read_value(Activity, 2) is Activity.Movies
    assert check_value(Activity, 3) is False
    assert check_value(Activity, 1) is True
    assert write_value(Activity, Activity.Skating) == 1
    assert write_value(BestPet, BestPet.Parrot(u11(77))) == 77


def test_default_variant():
    class HaveFun:
        No = auto()
        Yes = auto()
        Maybe = auto()
        __default__ = "Yes"

    HaveFun = build_enum(HaveFun, 2, ["TryFromBits", "Default"])
    assert HaveFun.default() is HaveFun.Yes


def test_default_requires_declaration():
    class Missing:
        A = auto()
        B = auto()

    with pytest.raises(DefinitionError, match="no default"):
        build_enum(Missing, 1, ["FromBits", "Default"])


def test_assigner():
    assigner = DiscriminantAssigner(3)
    assert assigner.assign("A", None) == 0
    assert assigner.assign("B", 5) == 5
    assert assigner.assign("C", None) == 6


@pytest.mark.parametrize("explicit", [4, "x", -1, True])
def test_assigner_rejects(explicit):
    with pytest.raises(DefinitionError):
        DiscriminantAssigner(2).assign("A", explicit)


def test_find_fallback_shapes():
    assert find_fallback([("A", auto()), ("B", 1)], 2) is None
    assert find_fallback([("A", auto()), ("R", FallbackKind.UNIT)], 2) == Fallback(
        FallbackKind.UNIT, "R"
    )
    assert find_fallback(
        [("A", auto()), ("R", FallbackKind.WITH_VALUE)], 2
    ) == Fallback(FallbackKind.WITH_VALUE, "R")


@pytest.mark.parametrize(
    "variants,bits,message",
    [
        (
            [("A", (FallbackKind.WITH_VALUE, u3)), ("B", auto()),
             ("C", FallbackKind.UNIT), ("D", auto())],
            15,
            "only one",
        ),
        ([("A", (FallbackKind.WITH_VALUE, uint(9))), ("B", auto())], 9, "not the last"),
        ([("A", auto()), ("H", (FallbackKind.WITH_VALUE, uint(100)))], 15, "does not match"),
        ([("A", auto()), ("T", (FallbackKind.WITH_VALUE, u8, u7))], 15, "exactly one field"),
        ([("A", auto()), ("F", (FallbackKind.WITH_VALUE, str))], 15, "only supports"),
    ],
)
def test_find_fallback_errors(variants, bits, message):
    with pytest.raises(DefinitionError, match=message):
        find_fallback(variants, bits)


def _make(bits, derives, **body):
    return build_enum(type("E", (), body), bits, derives)


@pytest.mark.parametrize(
    "bits,derives,body,message",
    [
        (4, ["FromBits"], {"B": auto(), "C": auto()}, "doesn't fill"),
        (2, ["FromBits"], {"B": auto(), "C": auto(), "D": auto(), "E": FallbackKind.UNIT},
         "already has 4 variants"),
        (2, ["TryFromBits"], {"M": auto(), "A": auto(), "S": u6}, "unit variants"),
        (2, ["TryFromBits"], {"I": auto(), "K": auto(), "E": (FallbackKind.WITH_VALUE, u2)},
         "fallback is not allowed"),
        (2, ["FromBits"], {"And": auto(), "This": auto(), "Is": u2, "Crazy": auto()},
         "add a fallback"),
        (3, ["FromBits"], {"So": u3, "Call": auto(), "Me": auto(),
                           "Maybe": (FallbackKind.WITH_VALUE, u3)}, "change this variant"),
        (1, ["FromBits"], {"NineNine": 1, "PlusPlus": 2}, "exceeds"),
        (1, ["FromBits"], {"A": "EXTERNAL", "B": auto()}, "not a number"),
        (1, ["FromBits"], {"A": 0, "B": 1, "C": FallbackKind.UNIT}, "overflows"),
        (1, ["FromBits"], {"A": 0, "B": 1, "C": 2}, "exceeds|overflows"),
        (2, ["FromBits"], {"A": 1, "B": 1, "C": auto(), "D": auto()}, "more than once"),
        (1, ["DebugBits"], {"A": auto(), "B": auto()}, "derive\\(Debug\\)"),
        (1, ["FromBits", "TryFromBits"], {"A": auto(), "B": auto()}, "not both"),
        (65, ["FromBits"], {"A": auto()}, "limited to 64"),
        (0, ["FromBits"], {"A": auto()}, "not a valid number"),
    ],
)
def test_build_enum_errors(bits, derives, body, message):
    with pytest.raises(DefinitionError, match=message):
        _make(bits, derives, **body)


def test_empty_enum_rejected():
    with pytest.raises(DefinitionError, match="empty enums"):
        _make(1, ["FromBits"])


def test_try_from_filled_warns():
    with pytest.warns(UserWarning, match="fills its bitsize"):
        cls = _make(1, ["TryFromBits"], A=auto(), B=auto())
    assert cls.try_from_bits(u1(1)) is cls.B