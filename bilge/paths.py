"""Matching of derive paths and splitting them around bitfield compression."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence, Union

from .types import DefinitionError

Path = Union[str, Sequence[str]]


def _segments(path: Path) -> list[str]:
    if isinstance(path, str):
        text = path.strip()
        if text.startswith("::"):
            text = text[2:]
        parts = [part.strip() for part in text.split("::")]
    else:
        parts = list(path)
    if not parts or not all(parts):
        raise ValueError(f"invalid path: {path!r}")
    return parts


def path_matches(path: Path, segments: Sequence[str]) -> bool:
    """Match a path against a fully qualified one, allowing a shorter path.

    ``Default`` and ``default::Default`` both match ``["std", "default", "Default"]``.
    """
    own = _segments(path)
    if len(own) > len(segments):
        return False
    return all(a == b for a, b in zip(reversed(own), reversed(list(segments))))


def matches_core_or_std(path: Path, segments: Sequence[str]) -> bool:
    """Like path_matches, with the first segment being either ``std`` or ``core``."""
    wanted = list(segments)
    if not wanted:
        return False
    if wanted[0] != "std":
        wanted.insert(0, "std")
    if path_matches(path, wanted):
        return True
    wanted[0] = "core"
    return path_matches(path, wanted)


def is_custom_bitfield_derive(path: Path) -> bool:
    """Derives whose name ends in ``Bits`` see the uncompressed fields."""
    return _segments(path)[-1].endswith("Bits")


@dataclass(frozen=True)
class SplitDerives:
    """Derives applied before and after the fields are compressed into one value."""

    before_compression: tuple
    after_compression: tuple


def split_derives(derives: Iterable[Path], is_struct: bool) -> SplitDerives:
    """Sort derives into those needing field information and the rest."""
    before: list = []
    after: list = []
    from_bytes = None
    has_frombits = False

    for derive in derives:
        segments = _segments(derive)
        if any("bitsize_internal" in segment for segment in segments):
            raise DefinitionError(
                "remove bitsize_internal: it can only be applied internally by bitsize"
            )
        if path_matches(derive, ["zerocopy", "FromBytes"]):
            from_bytes = derive
        elif path_matches(derive, ["bilge", "FromBits"]):
            has_frombits = True
        elif matches_core_or_std(derive, ["fmt", "Debug"]) and is_struct:
            raise DefinitionError("use derive(DebugBits) for structs")
        elif matches_core_or_std(derive, ["default", "Default"]) and is_struct:
            derive = "::bilge::DefaultBits"

        if is_custom_bitfield_derive(derive):
            before.append(derive)
        else:
            after.append(derive)

    if from_bytes is not None and not has_frombits:
        raise DefinitionError(
            "a bitfield with zerocopy::FromBytes also needs to have FromBits"
        )

    if not is_struct:
        before.extend(after)
        after = []

    return SplitDerives(tuple(before), tuple(after))