"""Decode adapter: a picker callback supplies pixels, the first decoded symbol comes back.

Rows are not scanned exhaustively. Starting at ``gap_size`` the scan moves down
``gap_size`` rows at a time and stops at the first row on which libdmtx decodes
a symbol. Smaller gaps are more thorough and slower; a gap taller than a
symbol can step over it entirely.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Tuple

import numpy as np

from . import native
from .constants import DEFAULT_GAP_SIZE
from .encoder import as_int
from .errors import DmtxAllocationError

logger = logging.getLogger(__name__)

RGB = Tuple[int, int, int]


def as_rgb(value: Any) -> RGB:
    try:
        r, g, b = value
    except (TypeError, ValueError):
        raise TypeError(f"picker must return a 3-tuple of integers, got {value!r}") from None
    rgb = (as_int("red", r), as_int("green", g), as_int("blue", b))
    for component in rgb:
        if not 0 <= component <= 255:
            raise ValueError(f"picker returned {rgb!r}; components must be in 0..255")
    return rgb


def _check_gap(gap_size: Any) -> int:
    gap_size = as_int("gap_size", gap_size)
    if gap_size < 1:
        raise ValueError(f"gap_size must be >= 1, got {gap_size}")
    return gap_size


def scan(pixels: bytes, width: int, height: int, gap_size: int) -> Optional[str]:
    """Sparse row scan over packed RGB ``pixels``; ``None`` when nothing decodes."""
    if width < native.MIN_SCAN_WIDTH:
        logger.debug("Image %dx%d too narrow to scan", width, height)
        return None

    with native.decoder(pixels, width, height) as handle:
        for row in range(gap_size, height, gap_size):
            found = native.scan_row(handle, row)
            if found is not None:
                logger.debug("Symbol decoded on row %d", row)
                return found.decode("utf-8", errors="replace")

    logger.debug("NO READ (%dx%d, gap_size=%d)", width, height, gap_size)
    return None


def decode(
    width: int,
    height: int,
    gap_size: int,
    picker: Callable[..., Any],
    context: Any = None,
) -> Optional[str]:
    """Pull a ``width`` x ``height`` image through ``picker`` and decode it.

    ``picker(col, row, context)`` is called once per pixel, row by row, and must
    return ``(r, g, b)``. Returns the first symbol's text, or ``None``.
    """
    width = as_int("width", width)
    height = as_int("height", height)
    gap_size = as_int("gap_size", gap_size)

    if picker is None or not callable(picker):
        raise TypeError("picker must be callable")
    gap_size = _check_gap(gap_size)
    if width < 1 or height < 1:
        raise ValueError(f"Image size must be positive, got {width}x{height}")

    try:
        pixels = bytearray(width * height * 3)
    except (MemoryError, OverflowError) as e:
        raise DmtxAllocationError(f"Could not allocate {width}x{height} image") from e

    offset = 0
    for row in range(height):
        for col in range(width):
            pixels[offset : offset + 3] = bytes(as_rgb(picker(col, row, context)))
            offset += 3

    return scan(bytes(pixels), width, height, gap_size)


def decode_array(image: Any, gap_size: int = DEFAULT_GAP_SIZE) -> Optional[str]:
    """Decode a whole image at once.

    ``image`` is anything ``numpy.asarray`` accepts (arrays, Pillow images) in
    grayscale ``(H, W)``, RGB ``(H, W, 3)`` or RGBA ``(H, W, 4)`` layout.
    Palette images should be converted to RGB first.
    """
    gap_size = _check_gap(gap_size)
    arr = np.asarray(image)

    if arr.dtype == np.bool_:
        arr = arr.astype(np.uint8) * 255
    if arr.ndim == 2:
        arr = np.repeat(arr[:, :, np.newaxis], 3, axis=2)
    elif arr.ndim == 3 and arr.shape[2] in (3, 4):
        arr = arr[:, :, :3]
    else:
        raise ValueError(f"Unsupported image shape {arr.shape}; expected (H, W), (H, W, 3) or (H, W, 4)")

    height, width = arr.shape[:2]
    if width < 1 or height < 1:
        raise ValueError(f"Image size must be positive, got {width}x{height}")

    if not np.issubdtype(arr.dtype, np.integer):
        raise ValueError(f"Unsupported pixel type {arr.dtype}; expected integers in 0..255")
    if arr.min() < 0 or arr.max() > 255:
        raise ValueError(f"Pixel values must be in 0..255, got {arr.min()}..{arr.max()}")

    pixels = np.ascontiguousarray(arr, dtype=np.uint8).tobytes()
    return scan(pixels, width, height, gap_size)
