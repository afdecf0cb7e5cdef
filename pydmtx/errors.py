"""Exceptions raised by the pydmtx binding."""

from __future__ import annotations


class DmtxError(Exception):
    """Base class for failures inside the libdmtx binding."""


class DmtxLibraryError(DmtxError, ImportError):
    """libdmtx (or its pylibdmtx ctypes wrapper) could not be loaded."""


class DmtxAllocationError(DmtxError, MemoryError):
    """A native create call returned NULL or an image buffer could not be allocated."""


class DmtxEncodeError(DmtxError):
    """The native encoder rejected the payload."""
