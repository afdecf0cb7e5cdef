from contextlib import contextmanager
from typing import Any, Iterator, List, Optional, Tuple

import pytest

from pydmtx import native
from pydmtx.errors import DmtxLibraryError
from pydmtx.native import Raster


def make_raster(width: int, height: int, row_pad: int = 0) -> Raster:
    """Raster whose pixel at (col, row) is (col, row, col + row), with optional row padding."""
    row_size = width * 3 + row_pad
    data = bytearray()
    for row in range(height):
        for col in range(width):
            data += bytes((col, row, col + row))
        data += b"\xee" * row_pad
    return Raster(width, height, 3, row_size, bytes(data))


class FakeNative:
    """Stands in for libdmtx.

    The decoder "finds" a symbol on any scanned row that contains a dark pixel
    and returns ``payload`` for it.
    """

    def __init__(self) -> None:
        self.raster = make_raster(4, 3)
        self.payload = b"HELLO"
        self.open_handles = 0
        self.encoder_args: Optional[Tuple[int, int, int, int]] = None
        self.encoded: Optional[bytes] = None
        self.image: Optional[Tuple[bytes, int, int]] = None
        self.scanned_rows: List[int] = []

    @contextmanager
    def encoder(self, module_size: int, margin_size: int, scheme: int, shape: int) -> Iterator[str]:
        self.encoder_args = (module_size, margin_size, scheme, shape)
        self.open_handles += 1
        try:
            yield "encoder"
        finally:
            self.open_handles -= 1

    def encode_matrix(self, handle: Any, payload: bytes, data_size: int) -> Raster:
        assert handle == "encoder"
        self.encoded = payload[:data_size]
        return self.raster

    @contextmanager
    def decoder(self, pixels: bytes, width: int, height: int) -> Iterator[str]:
        self.image = (pixels, width, height)
        self.open_handles += 1
        try:
            yield "decoder"
        finally:
            self.open_handles -= 1

    def scan_row(self, handle: Any, row: int) -> Optional[bytes]:
        assert handle == "decoder"
        assert self.image is not None
        self.scanned_rows.append(row)
        pixels, width, _ = self.image
        line = pixels[row * width * 3 : (row + 1) * width * 3]
        if any(v < 128 for v in line):
            return self.payload
        return None


@pytest.fixture
def fake_native(monkeypatch: pytest.MonkeyPatch) -> FakeNative:
    fake = FakeNative()
    for name in ("encoder", "encode_matrix", "decoder", "scan_row"):
        monkeypatch.setattr(native, name, getattr(fake, name))
    return fake


@pytest.fixture
def libdmtx() -> Any:
    try:
        return native.load()
    except DmtxLibraryError as e:
        pytest.skip(f"libdmtx not available: {e}")


def band_picker(first: int, last: int) -> Any:
    """Picker for a white image with a black band on rows first..last."""

    def picker(col: int, row: int, context: Any) -> Tuple[int, int, int]:
        return (0, 0, 0) if first <= row <= last else (255, 255, 255)

    return picker


@pytest.fixture
def band() -> Any:
    return band_picker


@pytest.fixture
def raster_factory() -> Any:
    return make_raster
