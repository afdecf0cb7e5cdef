"""Encode adapter: payload bytes in, one plotter callback per output pixel out."""

from __future__ import annotations

import logging
import operator
from typing import Any, Callable, Optional, Union

import numpy as np

from . import native
from .constants import DEFAULT_MARGIN_SIZE, DEFAULT_MODULE_SIZE, DEFAULT_SCHEME, DEFAULT_SHAPE

logger = logging.getLogger(__name__)

Payload = Union[bytes, bytearray, memoryview, str]


def as_int(name: str, value: Any) -> int:
    try:
        return operator.index(value)
    except TypeError:
        raise TypeError(f"{name} must be an integer, not {type(value).__name__}") from None


def as_payload(data: Payload) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    raise TypeError(f"data must be bytes or str, not {type(data).__name__}")


def _optional_callback(name: str, cb: Any) -> Optional[Callable[..., Any]]:
    if cb is None:
        return None
    if not callable(cb):
        logger.warning("Ignoring %s callback: %r is not callable", name, cb)
        return None
    return cb


def encode(
    data: Payload,
    data_size: int,
    module_size: int,
    margin_size: int,
    scheme: int,
    shape: int,
    plotter: Callable[..., Any],
    start: Optional[Callable[..., Any]] = None,
    finish: Optional[Callable[..., Any]] = None,
    context: Any = None,
) -> None:
    """Encode ``data`` into a Data Matrix and stream the image through callbacks.

    Callbacks, in order:
      - ``start(width, height, context)`` once, if given
      - ``plotter(col, row, (r, g, b), context)`` for every pixel, row by row
      - ``finish(context)`` once, if given

    Return values of the callbacks are ignored. An exception raised by any of
    them aborts the encode and propagates after the native encoder is released.
    """
    payload = as_payload(data)
    data_size = as_int("data_size", data_size)
    module_size = as_int("module_size", module_size)
    margin_size = as_int("margin_size", margin_size)
    scheme = as_int("scheme", scheme)
    shape = as_int("shape", shape)

    if plotter is None or not callable(plotter):
        raise TypeError("plotter must be callable")
    if not 0 <= data_size <= len(payload):
        raise ValueError(f"data_size must be between 0 and {len(payload)}, got {data_size}")

    start_cb = _optional_callback("start", start)
    finish_cb = _optional_callback("finish", finish)

    with native.encoder(module_size, margin_size, scheme, shape) as handle:
        raster = native.encode_matrix(handle, payload, data_size)

        if start_cb is not None:
            start_cb(raster.width, raster.height, context)

        for row in range(raster.height):
            for col in range(raster.width):
                plotter(col, row, raster.pixel(col, row), context)

        if finish_cb is not None:
            finish_cb(context)


def encode_array(
    data: Payload,
    module_size: int = DEFAULT_MODULE_SIZE,
    margin_size: int = DEFAULT_MARGIN_SIZE,
    scheme: int = DEFAULT_SCHEME,
    shape: int = DEFAULT_SHAPE,
) -> np.ndarray:
    """Encode ``data`` and return the whole image as a ``(height, width, 3)`` uint8 array."""
    payload = as_payload(data)
    with native.encoder(
        as_int("module_size", module_size),
        as_int("margin_size", margin_size),
        as_int("scheme", scheme),
        as_int("shape", shape),
    ) as handle:
        raster = native.encode_matrix(handle, payload, len(payload))

    rows = np.frombuffer(raster.pixels, dtype=np.uint8).reshape(raster.height, raster.row_size)
    pixels = rows[:, : raster.width * raster.bytes_per_pixel].reshape(
        raster.height, raster.width, raster.bytes_per_pixel
    )
    return pixels[:, :, :3].copy()
