"""Encoding schemes, symbol shapes and default geometry.

Values match libdmtx's ``DmtxScheme`` and ``DmtxSymbolSize`` enums so they can be
handed to the native library unchanged.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Final


class Scheme(IntEnum):
    AUTO_FAST = -2
    AUTO_BEST = -1
    ASCII = 0
    C40 = 1
    TEXT = 2
    X12 = 3
    EDIFACT = 4
    BASE256 = 5


class Shape(IntEnum):
    RECT_AUTO = -3
    SQUARE_AUTO = -2
    SHAPE_AUTO = -1

    SQUARE_10X10 = 0
    SQUARE_12X12 = 1
    SQUARE_14X14 = 2
    SQUARE_16X16 = 3
    SQUARE_18X18 = 4
    SQUARE_20X20 = 5
    SQUARE_22X22 = 6
    SQUARE_24X24 = 7
    SQUARE_26X26 = 8
    SQUARE_32X32 = 9
    SQUARE_36X36 = 10
    SQUARE_40X40 = 11
    SQUARE_44X44 = 12
    SQUARE_48X48 = 13
    SQUARE_52X52 = 14
    SQUARE_64X64 = 15
    SQUARE_72X72 = 16
    SQUARE_80X80 = 17
    SQUARE_88X88 = 18
    SQUARE_96X96 = 19
    SQUARE_104X104 = 20
    SQUARE_120X120 = 21
    SQUARE_132X132 = 22
    SQUARE_144X144 = 23

    RECT_8X18 = 24
    RECT_8X32 = 25
    RECT_12X26 = 26
    RECT_12X36 = 27
    RECT_16X36 = 28
    RECT_16X48 = 29


def parse_scheme(name: str) -> Scheme:
    """Look up a scheme by case-insensitive name, e.g. ``"ascii"`` or ``"auto-best"``."""
    key = name.strip().upper().replace("-", "_")
    try:
        return Scheme[key]
    except KeyError:
        choices = ", ".join(s.name.lower() for s in Scheme)
        raise ValueError(f"Invalid scheme '{name}'. Use one of: {choices}.") from None


def parse_shape(name: str) -> Shape:
    """Look up a shape by case-insensitive name, e.g. ``"square-auto"`` or ``"rect_8x18"``."""
    key = name.strip().upper().replace("-", "_")
    try:
        return Shape[key]
    except KeyError:
        raise ValueError(f"Invalid shape '{name}'.") from None


DEFAULT_MODULE_SIZE: Final[int] = 5
DEFAULT_MARGIN_SIZE: Final[int] = 10
DEFAULT_SCHEME: Final[Scheme] = Scheme.ASCII
DEFAULT_SHAPE: Final[Shape] = Shape.SQUARE_AUTO
DEFAULT_GAP_SIZE: Final[int] = 10
