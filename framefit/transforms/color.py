"""Packed RGBA/ARGB to packed or planar YUV 4:2:0 conversion.

Planar output layout (``w * h * 3 / 2`` bytes):
  Y plane:  h * w bytes, one luma sample per pixel
  VU plane: (h/2) rows of w bytes, interleaved V,U per 2x2 block (NV21)
            or U,V (NV12)

Luma and chroma use BT.601 limited-range coefficients in 8-bit fixed point,
the same integer math libyuv uses, so output is bit-identical to consumers
built on it:

  Y = (66 R + 129 G + 25 B + 0x1080) >> 8            # 16 + 0.257R + 0.504G + 0.098B
  U = (-38 R - 74 G + 112 B + 0x8080) >> 8           # 128 - 0.148R - 0.291G + 0.439B
  V = (112 R - 94 G - 18 B + 0x8080) >> 8            # 128 + 0.439R - 0.368G - 0.071B

Chroma is taken from the top-left pixel of each 2x2 block rather than the
block average (fast conversion mode); downstream consumers depend on this.
"""

from __future__ import annotations

from enum import Enum

import numpy as np

from framefit.errors import DimensionMismatchError
from framefit.source import BYTES_PER_PIXEL, PixelFormat, ensure_supported
from framefit.transforms._alloc import allocate, allocation_guard
from framefit.utils.crop import check_dimensions

__all__ = [
    "PlanarLayout",
    "planar_size",
    "to_packed",
    "to_planar_yuv420",
    "split_planar_yuv420",
]


class PlanarLayout(str, Enum):
    """Chroma order of the interleaved 4:2:0 plane."""

    NV21 = "nv21"  # V then U
    NV12 = "nv12"  # U then V


def _resolve_layout(layout: PlanarLayout | str) -> PlanarLayout:
    if isinstance(layout, str) and not isinstance(layout, PlanarLayout):
        layout = layout.lower()
    return PlanarLayout(layout)


def planar_size(width: int, height: int) -> int:
    """Bytes in a 4:2:0 frame: full-size luma plus half-size chroma."""
    return width * height + width * height // 2


def _packed_pixels(scaled, width: int, height: int) -> np.ndarray:
    """View ``scaled`` as [height, width, 4] uint8, checking its byte length."""
    pixels = np.asarray(scaled) if isinstance(scaled, np.ndarray) else np.frombuffer(scaled, dtype=np.uint8)
    if pixels.dtype != np.uint8:
        raise DimensionMismatchError(f"Packed buffer must be uint8, got {pixels.dtype}")
    expected = width * height * BYTES_PER_PIXEL
    if pixels.size != expected:
        raise DimensionMismatchError(
            f"Packed buffer holds {pixels.size} bytes, expected {expected} for {width}x{height}"
        )
    return pixels.reshape(height, width, BYTES_PER_PIXEL)


def _infer_size(scaled) -> tuple[int, int]:
    if isinstance(scaled, np.ndarray) and scaled.ndim == 3 and scaled.shape[2] == BYTES_PER_PIXEL:
        return scaled.shape[1], scaled.shape[0]
    raise DimensionMismatchError(
        "width and height are required unless the buffer is an [H, W, 4] array"
    )


def to_packed(
    scaled,
    source_format: PixelFormat | str = PixelFormat.RGBA_8888,
    target_format: PixelFormat | str = PixelFormat.RGBA_8888,
    width: int | None = None,
    height: int | None = None,
    copy: bool = True,
) -> np.ndarray:
    """Hand off a scaled packed buffer, swapping R and B if the formats differ.

    Args:
        scaled: [H, W, 4] uint8 array, or a flat buffer with width/height given
        source_format: Channel layout of ``scaled``
        target_format: Channel layout wanted by the caller
        width: Frame width (only needed for flat buffers)
        height: Frame height (only needed for flat buffers)
        copy: If False and the formats match, return ``scaled`` itself as
            an [H, W, 4] view instead of copying it

    Returns:
        [H, W, 4] uint8 array in ``target_format``
    """
    source_format = ensure_supported(source_format)
    target_format = ensure_supported(target_format)
    if width is None or height is None:
        width, height = _infer_size(scaled)
    pixels = _packed_pixels(scaled, width, height)
    if source_format is target_format and not copy:
        return pixels

    out = allocate(pixels.shape)
    if source_format is target_format:
        out[...] = pixels
    else:
        # RGBA_8888 <-> ARGB_8888 differ only in the position of R and B
        out[..., 0] = pixels[..., 2]
        out[..., 1] = pixels[..., 1]
        out[..., 2] = pixels[..., 0]
        out[..., 3] = pixels[..., 3]
    return out


def _luma(r: np.ndarray, g: np.ndarray, b: np.ndarray) -> np.ndarray:
    return np.clip((66 * r + 129 * g + 25 * b + 0x1080) >> 8, 0, 255)


def _chroma(r: np.ndarray, g: np.ndarray, b: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """(U, V) for int32 channel planes."""
    u = np.clip((-38 * r - 74 * g + 112 * b + 0x8080) >> 8, 0, 255)
    v = np.clip((112 * r - 94 * g - 18 * b + 0x8080) >> 8, 0, 255)
    return u, v


def to_planar_yuv420(
    scaled,
    width: int,
    height: int,
    pixel_format: PixelFormat | str = PixelFormat.RGBA_8888,
    layout: PlanarLayout | str = PlanarLayout.NV21,
) -> np.ndarray:
    """Convert a packed buffer to a 4:2:0 frame with interleaved chroma.

    Args:
        scaled: width*height*4 bytes of packed pixels (array or buffer)
        width: Frame width, must be even
        height: Frame height, must be even
        pixel_format: Channel layout of ``scaled``
        layout: NV21 (V,U) or NV12 (U,V) chroma order

    Returns:
        Flat uint8 array of ``planar_size(width, height)`` bytes

    Raises:
        DimensionMismatchError: If a dimension is odd or non-positive, or the
            buffer is not exactly width*height*4 bytes
        AllocationFailureError: If the output or the conversion planes cannot
            be allocated
    """
    check_dimensions(width=width, height=height)
    width, height = int(width), int(height)
    if width % 2 or height % 2:
        raise DimensionMismatchError(
            f"4:2:0 output needs even dimensions, got {width}x{height}"
        )
    r_off, g_off, b_off = ensure_supported(pixel_format).rgb_offsets
    layout = _resolve_layout(layout)
    pixels = _packed_pixels(scaled, width, height)

    out = allocate(planar_size(width, height))
    luma_size = width * height

    with allocation_guard(f"{width}x{height} conversion planes"):
        r = pixels[:, :, r_off].astype(np.int32)
        g = pixels[:, :, g_off].astype(np.int32)
        b = pixels[:, :, b_off].astype(np.int32)
        out[:luma_size] = _luma(r, g, b).reshape(-1)
        # Top-left pixel of every 2x2 block
        u, v = _chroma(r[::2, ::2], g[::2, ::2], b[::2, ::2])

    chroma = out[luma_size:].reshape(height // 2, width // 2, 2)
    first, second = (v, u) if layout is PlanarLayout.NV21 else (u, v)
    chroma[:, :, 0] = first
    chroma[:, :, 1] = second
    return out


def split_planar_yuv420(
    frame,
    width: int,
    height: int,
    layout: PlanarLayout | str = PlanarLayout.NV21,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Return (Y [H, W], U [H/2, W/2], V [H/2, W/2]) views of a 4:2:0 frame."""
    if width <= 0 or height <= 0 or width % 2 or height % 2:
        raise DimensionMismatchError(f"4:2:0 frames need even positive dimensions, got {width}x{height}")
    layout = _resolve_layout(layout)
    data = np.asarray(frame) if isinstance(frame, np.ndarray) else np.frombuffer(frame, dtype=np.uint8)
    data = data.reshape(-1)
    if data.size != planar_size(width, height):
        raise DimensionMismatchError(
            f"Frame holds {data.size} bytes, expected {planar_size(width, height)} for {width}x{height}"
        )
    luma_size = width * height
    y = data[:luma_size].reshape(height, width)
    chroma = data[luma_size:].reshape(height // 2, width // 2, 2)
    if layout is PlanarLayout.NV21:
        return y, chroma[:, :, 1], chroma[:, :, 0]
    return y, chroma[:, :, 0], chroma[:, :, 1]
