"""Error taxonomy for framefit.

Every failure raised by the crop/scale/convert pipeline derives from
``FrameFitError``. Each class also derives from the closest builtin so
callers that only catch ``ValueError`` or ``MemoryError`` keep working.
"""

from __future__ import annotations


class FrameFitError(Exception):
    """Base class for all framefit errors."""


class UnsupportedFormatError(FrameFitError, ValueError):
    """Source pixel format is not packed 8-bit RGBA/ARGB."""


class InvalidRegionError(FrameFitError, ValueError):
    """A crop rectangle or buffer layout does not fit inside the source."""


class DimensionMismatchError(FrameFitError, ValueError):
    """Non-positive dimensions, odd planar dimensions, or a buffer of the wrong size."""


class AllocationFailureError(FrameFitError, MemoryError):
    """An output buffer could not be allocated."""


__all__ = [
    "FrameFitError",
    "UnsupportedFormatError",
    "InvalidRegionError",
    "DimensionMismatchError",
    "AllocationFailureError",
]
