"""Scoped access to libdmtx through the ctypes bindings shipped with pylibdmtx.

Every native handle is acquired inside a context manager and destroyed on the
way out, whether the block finishes, returns early or raises. The wrapper
module is imported on first use so that ``import pydmtx`` works on machines
without the shared library.

Dependencies:
  pip install pylibdmtx
System:
  sudo apt install libdmtx0b libdmtx-dev
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from ctypes import byref, c_ubyte, string_at
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Tuple

from .errors import DmtxAllocationError, DmtxEncodeError, DmtxError, DmtxLibraryError

logger = logging.getLogger(__name__)

# DmtxPass from dmtx.h; pylibdmtx.wrapper does not export it.
DMTX_PASS = 1

# libdmtx asserts on scan grids narrower than this.
MIN_SCAN_WIDTH = 3

_wrapper: Any = None


def load() -> Any:
    """Import ``pylibdmtx.wrapper`` (which loads libdmtx) once and return it."""
    global _wrapper
    if _wrapper is None:
        try:
            from pylibdmtx import wrapper
        except (ImportError, OSError) as e:
            raise DmtxLibraryError(
                "libdmtx is not available. Install with: pip install pylibdmtx "
                "(system: sudo apt install libdmtx0b)"
            ) from e
        _wrapper = wrapper
        logger.debug("Loaded libdmtx %s", wrapper.dmtxVersion())
    return _wrapper


def version() -> str:
    found = load().dmtxVersion()
    # Older wrappers declare a c_char_p restype and hand back bytes.
    if isinstance(found, bytes):
        return found.decode("ascii")
    return found


@dataclass(frozen=True)
class Raster:
    """Snapshot of an image produced by the native encoder."""

    width: int
    height: int
    bytes_per_pixel: int
    row_size: int
    pixels: bytes

    def pixel(self, col: int, row: int) -> Tuple[int, int, int]:
        offset = row * self.row_size + col * self.bytes_per_pixel
        r, g, b = self.pixels[offset : offset + 3]
        return r, g, b


@contextmanager
def encoder(module_size: int, margin_size: int, scheme: int, shape: int) -> Iterator[Any]:
    """Yield a ``DmtxEncode`` handle configured with the given geometry."""
    lib = load()
    handle = lib.dmtxEncodeCreate()
    if not handle:
        raise DmtxAllocationError("Could not create encoder")
    try:
        for prop, value in (
            (lib.DmtxProperty.DmtxPropModuleSize, module_size),
            (lib.DmtxProperty.DmtxPropMarginSize, margin_size),
            (lib.DmtxProperty.DmtxPropScheme, scheme),
            (lib.DmtxProperty.DmtxPropSizeRequest, shape),
        ):
            if lib.dmtxEncodeSetProp(handle, prop, int(value)) != DMTX_PASS:
                raise DmtxError(f"Encoder rejected property {int(prop)} = {value}")
        logger.debug(
            "Encoder created: module_size=%d margin_size=%d scheme=%d shape=%d",
            module_size, margin_size, scheme, shape,
        )
        yield handle
    finally:
        lib.dmtxEncodeDestroy(byref(handle))
        logger.debug("Encoder destroyed")


def encode_matrix(handle: Any, payload: bytes, data_size: int) -> Raster:
    """Encode the first ``data_size`` bytes of ``payload`` and snapshot the image."""
    lib = load()
    # NUL-terminated copy; libdmtx only reads data_size bytes.
    buffer = (c_ubyte * (len(payload) + 1)).from_buffer_copy(payload + b"\0")
    if lib.dmtxEncodeDataMatrix(handle, data_size, buffer) != DMTX_PASS:
        raise DmtxEncodeError(
            "Could not encode data, possibly because the requested shape is too small to contain it"
        )

    image = handle[0].image
    width = lib.dmtxImageGetProp(image, lib.DmtxProperty.DmtxPropWidth)
    height = lib.dmtxImageGetProp(image, lib.DmtxProperty.DmtxPropHeight)
    bytes_per_pixel = lib.dmtxImageGetProp(image, lib.DmtxProperty.DmtxPropBytesPerPixel)
    row_size = lib.dmtxImageGetProp(image, lib.DmtxProperty.DmtxPropRowSizeBytes)
    pixels = string_at(image[0].pxl, row_size * height)
    logger.debug("Encoded %d bytes into %dx%d image", data_size, width, height)
    return Raster(width, height, bytes_per_pixel, row_size, pixels)


@contextmanager
def decoder(pixels: bytes, width: int, height: int) -> Iterator[Any]:
    """Wrap packed 24-bit RGB ``pixels`` in a native image and yield a fresh decoder."""
    lib = load()
    # libdmtx keeps a pointer to this buffer; it lives as long as this frame.
    buffer = (c_ubyte * len(pixels)).from_buffer_copy(pixels)
    image = lib.dmtxImageCreate(buffer, width, height, lib.DmtxPackOrder.DmtxPack24bppRGB)
    if not image:
        raise DmtxAllocationError("Could not create image")
    try:
        handle = lib.dmtxDecodeCreate(image, 1)
        if not handle:
            raise DmtxAllocationError("Could not create decoder")
        try:
            logger.debug("Decoder created for %dx%d image", width, height)
            yield handle
        finally:
            lib.dmtxDecodeDestroy(byref(handle))
            logger.debug("Decoder destroyed")
    finally:
        lib.dmtxImageDestroy(byref(image))


@contextmanager
def _region(lib: Any, handle: Any) -> Iterator[Any]:
    region = lib.dmtxRegionFindNext(handle, None)
    try:
        yield region
    finally:
        if region:
            lib.dmtxRegionDestroy(byref(region))


@contextmanager
def _message(lib: Any, handle: Any, region: Any) -> Iterator[Any]:
    message = lib.dmtxDecodeMatrixRegion(handle, region, lib.DmtxUndefined)
    try:
        yield message
    finally:
        if message:
            lib.dmtxMessageDestroy(byref(message))


def scan_row(handle: Any, row: int) -> Optional[bytes]:
    """Run the region finder along one row; return the first decoded message, if any.

    Rows must be visited in increasing order on a given decoder.
    """
    lib = load()
    # Ymax first so the window never inverts while rows increase.
    for prop in (lib.DmtxProperty.DmtxPropYmax, lib.DmtxProperty.DmtxPropYmin):
        if lib.dmtxDecodeSetProp(handle, prop, row) != DMTX_PASS:
            raise DmtxError(f"Decoder rejected scan row {row}")

    while True:
        with _region(lib, handle) as region:
            if not region:
                return None
            with _message(lib, handle, region) as message:
                if message:
                    return string_at(message[0].output)
