"""
pydmtx: Python binding for libdmtx.

encode() streams an encoded Data Matrix to a per-pixel plotter callback;
decode() pulls an image through a per-pixel picker callback and returns the
first decoded payload (or None). encode_array()/decode_array() exchange whole
numpy arrays instead.

Dependencies:
  pip install pylibdmtx numpy pillow
System:
  sudo apt install libdmtx0b libdmtx-dev
"""

from .constants import (
    DEFAULT_GAP_SIZE,
    DEFAULT_MARGIN_SIZE,
    DEFAULT_MODULE_SIZE,
    DEFAULT_SCHEME,
    DEFAULT_SHAPE,
    Scheme,
    Shape,
)
from .decoder import decode, decode_array
from .encoder import encode, encode_array
from .errors import DmtxAllocationError, DmtxEncodeError, DmtxError, DmtxLibraryError
from .image import DataMatrix
from .native import version as libdmtx_version

__version__ = "0.2.0"
__all__ = [
    "encode",
    "decode",
    "encode_array",
    "decode_array",
    "DataMatrix",
    "Scheme",
    "Shape",
    "DmtxError",
    "DmtxLibraryError",
    "DmtxAllocationError",
    "DmtxEncodeError",
    "libdmtx_version",
    "DEFAULT_MODULE_SIZE",
    "DEFAULT_MARGIN_SIZE",
    "DEFAULT_SCHEME",
    "DEFAULT_SHAPE",
    "DEFAULT_GAP_SIZE",
]
