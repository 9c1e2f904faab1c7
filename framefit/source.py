"""Source image views and the Pillow-backed image source provider.

A ``SourceImage`` is a read-only, zero-copy view over pixel memory that
somebody else owns: a ``bytes`` object, a numpy array, a memory-mapped file
or a decoded bitmap. The pipeline only reads through the view and never
keeps it past the call.

``PillowSource`` is the provider side: it decodes (or wraps) a Pillow image,
normalizes orientation and pixel format, and lends out a ``SourceImage``
inside a ``with`` block. Leaving the block always releases the pixels,
including when validation fails inside it.

Usage:
    from framefit.source import PillowSource, SourceImage

    # Raw buffer with padded rows
    source = SourceImage.from_buffer(buf, width=640, height=480, stride=2592)

    # Decoded file
    with PillowSource("photo.jpg").lock() as source:
        frame = convert_to_planar_yuv(source, 640, 480)
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator

import numpy as np
from PIL import Image, ImageOps

from framefit.errors import (
    DimensionMismatchError,
    InvalidRegionError,
    UnsupportedFormatError,
)

BYTES_PER_PIXEL = 4


class PixelFormat(str, Enum):
    """Host bitmap pixel formats.

    Only the two packed 8-bit formats are accepted by the pipeline; the
    others exist so providers can report what they actually hold and get a
    precise rejection.
    """

    RGBA_8888 = "RGBA_8888"  # bytes R, G, B, A
    ARGB_8888 = "ARGB_8888"  # little-endian 0xAARRGGBB word: bytes B, G, R, A
    RGB_565 = "RGB_565"
    RGBA_4444 = "RGBA_4444"
    A_8 = "A_8"
    RGBA_F16 = "RGBA_F16"
    RGBA_1010102 = "RGBA_1010102"

    @property
    def is_supported(self) -> bool:
        return self in SUPPORTED_FORMATS

    @property
    def rgb_offsets(self) -> tuple[int, int, int]:
        """Byte offsets of (R, G, B) within one pixel."""
        if self is PixelFormat.RGBA_8888:
            return (0, 1, 2)
        if self is PixelFormat.ARGB_8888:
            return (2, 1, 0)
        raise UnsupportedFormatError(f"No packed 8-bit channel layout for {self.value}")


SUPPORTED_FORMATS = frozenset({PixelFormat.RGBA_8888, PixelFormat.ARGB_8888})


def ensure_supported(pixel_format: PixelFormat | str) -> PixelFormat:
    """Coerce ``pixel_format`` to a supported PixelFormat or raise UnsupportedFormatError."""
    if isinstance(pixel_format, str) and not isinstance(pixel_format, PixelFormat):
        pixel_format = pixel_format.upper()
    try:
        fmt = PixelFormat(pixel_format)
    except ValueError:
        raise UnsupportedFormatError(f"Unknown pixel format: {pixel_format!r}") from None
    if not fmt.is_supported:
        raise UnsupportedFormatError(
            f"Pixel format {fmt.value} is not supported; expected one of "
            f"{sorted(f.value for f in SUPPORTED_FORMATS)}"
        )
    return fmt


@dataclass(frozen=True, eq=False)
class SourceImage:
    """Read-only view over externally owned packed pixel memory.

    Attributes:
        data: Flat uint8 view of the pixel bytes (row 0 starts at index 0)
        width: Width in pixels
        height: Height in pixels
        stride: Bytes between the starts of consecutive rows
        pixel_format: Packed pixel format of ``data``
    """

    data: np.ndarray
    width: int
    height: int
    stride: int
    pixel_format: PixelFormat = PixelFormat.RGBA_8888

    def __post_init__(self) -> None:
        object.__setattr__(self, "pixel_format", ensure_supported(self.pixel_format))
        if self.width <= 0 or self.height <= 0:
            raise DimensionMismatchError(
                f"Source dimensions must be positive, got {self.width}x{self.height}"
            )
        row_bytes = self.width * BYTES_PER_PIXEL
        if self.stride < row_bytes:
            raise InvalidRegionError(
                f"Stride {self.stride} is smaller than one row of {self.width} pixels ({row_bytes} bytes)"
            )
        if not isinstance(self.data, np.ndarray):
            raise InvalidRegionError(
                f"Source data must be a numpy array, got {type(self.data).__name__}; "
                f"wrap raw buffers with SourceImage.from_buffer"
            )
        if self.data.ndim != 1 or self.data.dtype != np.uint8:
            raise InvalidRegionError(
                f"Source data must be a flat uint8 array, got {self.data.dtype} with shape {self.data.shape}"
            )
        if self.data.size < self.required_bytes:
            raise InvalidRegionError(
                f"Buffer holds {self.data.size} bytes but a {self.width}x{self.height} image "
                f"with stride {self.stride} needs {self.required_bytes}"
            )

    @property
    def required_bytes(self) -> int:
        """Smallest buffer that holds every pixel (the last row needs no padding)."""
        return (self.height - 1) * self.stride + self.width * BYTES_PER_PIXEL

    @property
    def size(self) -> tuple[int, int]:
        """(width, height), matching Pillow's convention."""
        return (self.width, self.height)

    @classmethod
    def from_buffer(
        cls,
        buffer,
        width: int,
        height: int,
        stride: int | None = None,
        pixel_format: PixelFormat | str = PixelFormat.RGBA_8888,
    ) -> SourceImage:
        """Wrap any buffer-protocol object without copying.

        Args:
            buffer: bytes, bytearray, memoryview, mmap or numpy array
            width: Width in pixels
            height: Height in pixels
            stride: Row stride in bytes. None = tightly packed (width * 4)
            pixel_format: Packed pixel format of the buffer

        Returns:
            SourceImage viewing ``buffer``
        """
        fmt = ensure_supported(pixel_format)
        if stride is None:
            stride = width * BYTES_PER_PIXEL
        try:
            data = np.frombuffer(buffer, dtype=np.uint8)
        except (BufferError, ValueError) as e:
            raise InvalidRegionError(f"Source buffer is not contiguous: {e}") from e
        return cls(data=data, width=int(width), height=int(height), stride=int(stride), pixel_format=fmt)

    @classmethod
    def from_array(
        cls,
        array: np.ndarray,
        pixel_format: PixelFormat | str = PixelFormat.RGBA_8888,
    ) -> SourceImage:
        """Wrap an [H, W, 4] uint8 array.

        Row-padded views (e.g. a column slice of a wider frame) are wrapped
        without copying by reading their row stride; any other layout is
        copied into a contiguous array first.
        """
        if array.ndim != 3 or array.shape[2] != BYTES_PER_PIXEL:
            raise UnsupportedFormatError(
                f"Expected an [H, W, 4] array, got shape {array.shape}"
            )
        if array.dtype != np.uint8:
            raise UnsupportedFormatError(
                f"Only 8-bit channels are supported, got dtype {array.dtype}"
            )
        height, width = array.shape[:2]
        if height == 0 or width == 0:
            raise DimensionMismatchError(f"Source dimensions must be positive, got {width}x{height}")
        row_stride, pixel_stride, channel_stride = array.strides
        if pixel_stride != BYTES_PER_PIXEL or channel_stride != 1 or row_stride < width * BYTES_PER_PIXEL:
            array = np.ascontiguousarray(array)
            row_stride = array.strides[0]
        length = (height - 1) * row_stride + width * BYTES_PER_PIXEL
        flat = np.lib.stride_tricks.as_strided(
            array, shape=(length,), strides=(1,), writeable=False,
        )
        return cls(data=flat, width=width, height=height, stride=row_stride, pixel_format=pixel_format)

    def as_array(self) -> np.ndarray:
        """Return an [H, W, 4] view of the pixels (no copy)."""
        return np.lib.stride_tricks.as_strided(
            self.data,
            shape=(self.height, self.width, BYTES_PER_PIXEL),
            strides=(self.stride, BYTES_PER_PIXEL, 1),
            writeable=False,
        )


class PillowSource:
    """Image source provider backed by Pillow.

    Decodes a file (or wraps an already-open ``PIL.Image.Image``), applies the
    EXIF orientation tag so the frame is upright, and converts it to packed
    RGBA. ``lock()`` lends the pixels as a ``SourceImage`` for the duration of
    a ``with`` block.

    Args:
        image: Path to an image file, or a PIL image
        convert: If True, convert any mode to RGBA. If False, anything other
            than an RGBA image is rejected with UnsupportedFormatError.
        apply_exif_orientation: If True, rotate/flip according to EXIF.

    Example:
        with PillowSource("photo.jpg").lock() as source:
            nv21 = convert_to_planar_yuv(source, 1280, 720)
    """

    def __init__(
        self,
        image: str | Path | Image.Image,
        convert: bool = True,
        apply_exif_orientation: bool = True,
    ) -> None:
        self.image = image
        self.convert = convert
        self.apply_exif_orientation = apply_exif_orientation

    def _prepare(self, image: Image.Image) -> Image.Image:
        if self.apply_exif_orientation:
            image = ImageOps.exif_transpose(image)
        if image.mode != "RGBA":
            if not self.convert:
                raise UnsupportedFormatError(
                    f"Pillow mode {image.mode!r} is not packed 8-bit RGBA"
                )
            image = image.convert("RGBA")
        return image

    @contextmanager
    def lock(self) -> Iterator[SourceImage]:
        """Yield a SourceImage over the decoded pixels; release them on exit."""
        opened = None
        try:
            if isinstance(self.image, Image.Image):
                image = self.image
            else:
                opened = Image.open(self.image)
                image = opened
            prepared = self._prepare(image)
            yield SourceImage.from_array(np.asarray(prepared), PixelFormat.RGBA_8888)
        finally:
            if opened is not None:
                opened.close()

    def __repr__(self) -> str:
        name = self.image if not isinstance(self.image, Image.Image) else f"<{self.image.mode} {self.image.size}>"
        return (
            f"PillowSource({name}, convert={self.convert}, "
            f"apply_exif_orientation={self.apply_exif_orientation})"
        )


__all__ = [
    "BYTES_PER_PIXEL",
    "PixelFormat",
    "SUPPORTED_FORMATS",
    "ensure_supported",
    "SourceImage",
    "PillowSource",
]
