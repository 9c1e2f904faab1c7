"""Cropped scaling of strided packed-pixel buffers.

``scale()`` reads only the crop rectangle of a ``SourceImage``, addressing
each row at ``(crop.y + row) * stride + crop.x * 4``, and writes a tightly
packed [dst_h, dst_w, 4] buffer. The source is never copied.

Filters:
- BOX: area-weighted average of every source pixel an output pixel
  overlaps. Weights are exact integers (overlap lengths measured in
  1/dst_len source pixels), so each channel is divided and rounded once.
  Works for both up- and downscaling and is the identity when the crop
  already has the target size.
- BILINEAR: center-aligned bilinear interpolation, 8-bit fixed-point weights.
- NEAREST: the source pixel under each output pixel center.

All four channels (alpha included) are filtered the same way and keep
their byte order.

Usage:
    from framefit.transforms.resize import Filter, scale

    scaled = scale(source, crop, 640, 480)  # [480, 640, 4] uint8
"""

from __future__ import annotations

from enum import Enum

import numpy as np

from framefit.compiler import lazy_kernel
from framefit.source import BYTES_PER_PIXEL, SourceImage
from framefit.transforms._alloc import allocate
from framefit.utils.config import get_default_filter_name
from framefit.utils.crop import CropParams, check_dimensions, validate_crop

__all__ = ["Filter", "resolve_filter", "scale"]


class Filter(str, Enum):
    """Resampling filters supported by ``scale``."""

    BOX = "box"
    BILINEAR = "bilinear"
    NEAREST = "nearest"


def resolve_filter(filter: Filter | str | None) -> Filter:
    """Coerce a filter name, falling back to FRAMEFIT_FILTER when None."""
    if filter is None:
        filter = get_default_filter_name()
    try:
        return Filter(filter.lower() if isinstance(filter, str) and not isinstance(filter, Filter) else filter)
    except ValueError:
        raise ValueError(
            f"Unknown resampling filter {filter!r}; expected one of {[f.value for f in Filter]}"
        ) from None


# =============================================================================
# Per-axis sampling tables
# =============================================================================

def _box_contributions(src_len: int, dst_len: int) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Source spans and integer overlap weights for each output position.

    Output pixel i covers [i*src_len, (i+1)*src_len) and source pixel j covers
    [j*dst_len, (j+1)*dst_len) on a common integer axis. The weights of each
    output pixel therefore sum to exactly ``src_len``.

    Returns:
        (starts [dst_len], counts [dst_len], weights [dst_len, max_count])
    """
    i = np.arange(dst_len, dtype=np.int64)
    lo = i * src_len
    hi = lo + src_len
    starts = lo // dst_len
    counts = (hi + dst_len - 1) // dst_len - starts
    k = np.arange(int(counts.max()), dtype=np.int64)
    j = starts[:, None] + k[None, :]
    weights = (
        np.minimum(hi[:, None], (j + 1) * dst_len)
        - np.maximum(lo[:, None], j * dst_len)
    )
    weights = np.where(k[None, :] < counts[:, None], np.maximum(weights, 0), 0)
    return starts, counts, np.ascontiguousarray(weights)


def _nearest_indices(src_len: int, dst_len: int) -> np.ndarray:
    """Index of the source pixel under each output pixel center."""
    i = np.arange(dst_len, dtype=np.int64)
    return ((2 * i + 1) * src_len) // (2 * dst_len)


def _bilinear_taps(src_len: int, dst_len: int) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Two source taps and an 8-bit fraction for each output position."""
    i = np.arange(dst_len, dtype=np.int64)
    # (i + 0.5) * src / dst - 0.5, in 1/256 source pixels
    pos = ((2 * i + 1) * src_len - dst_len) * 256 // (2 * dst_len)
    pos = np.clip(pos, 0, (src_len - 1) * 256)
    first = pos >> 8
    frac = pos & 255
    second = np.minimum(first + 1, src_len - 1)
    return first, second, frac


# =============================================================================
# Kernels (compiled lazily with Numba)
# =============================================================================

def box_kernel(
    src: np.ndarray,  # [N] uint8, flat source bytes
    stride: int,
    crop_x: int,
    crop_y: int,
    x_starts: np.ndarray,  # [dst_w] int64
    x_counts: np.ndarray,  # [dst_w] int64
    x_weights: np.ndarray,  # [dst_w, kx] int64
    y_starts: np.ndarray,  # [dst_h] int64
    y_counts: np.ndarray,  # [dst_h] int64
    y_weights: np.ndarray,  # [dst_h, ky] int64
    total: int,
    out: np.ndarray,  # [dst_h, dst_w, 4] uint8
) -> None:
    dst_h = out.shape[0]
    dst_w = out.shape[1]
    half = total // 2
    for oy in range(dst_h):
        y0 = crop_y + y_starts[oy]
        for ox in range(dst_w):
            x0 = (crop_x + x_starts[ox]) * 4
            a0 = 0
            a1 = 0
            a2 = 0
            a3 = 0
            for ky in range(y_counts[oy]):
                wy = y_weights[oy, ky]
                row = (y0 + ky) * stride + x0
                for kx in range(x_counts[ox]):
                    w = wy * x_weights[ox, kx]
                    p = row + kx * 4
                    a0 += w * src[p]
                    a1 += w * src[p + 1]
                    a2 += w * src[p + 2]
                    a3 += w * src[p + 3]
            out[oy, ox, 0] = (a0 + half) // total
            out[oy, ox, 1] = (a1 + half) // total
            out[oy, ox, 2] = (a2 + half) // total
            out[oy, ox, 3] = (a3 + half) // total


def nearest_kernel(
    src: np.ndarray,
    stride: int,
    crop_x: int,
    crop_y: int,
    x_index: np.ndarray,  # [dst_w] int64
    y_index: np.ndarray,  # [dst_h] int64
    out: np.ndarray,
) -> None:
    dst_h = out.shape[0]
    dst_w = out.shape[1]
    for oy in range(dst_h):
        row = (crop_y + y_index[oy]) * stride
        for ox in range(dst_w):
            p = row + (crop_x + x_index[ox]) * 4
            for c in range(4):
                out[oy, ox, c] = src[p + c]


def bilinear_kernel(
    src: np.ndarray,
    stride: int,
    crop_x: int,
    crop_y: int,
    x_first: np.ndarray,
    x_second: np.ndarray,
    x_frac: np.ndarray,
    y_first: np.ndarray,
    y_second: np.ndarray,
    y_frac: np.ndarray,
    out: np.ndarray,
) -> None:
    dst_h = out.shape[0]
    dst_w = out.shape[1]
    for oy in range(dst_h):
        r0 = (crop_y + y_first[oy]) * stride
        r1 = (crop_y + y_second[oy]) * stride
        fy = y_frac[oy]
        for ox in range(dst_w):
            c0 = (crop_x + x_first[ox]) * 4
            c1 = (crop_x + x_second[ox]) * 4
            fx = x_frac[ox]
            for c in range(4):
                top = src[r0 + c0 + c] * (256 - fx) + src[r0 + c1 + c] * fx
                bottom = src[r1 + c0 + c] * (256 - fx) + src[r1 + c1 + c] * fx
                out[oy, ox, c] = (top * (256 - fy) + bottom * fy + 32768) >> 16


_get_box_kernel = lazy_kernel(box_kernel)
_get_nearest_kernel = lazy_kernel(nearest_kernel)
_get_bilinear_kernel = lazy_kernel(bilinear_kernel)


# =============================================================================
# Public API
# =============================================================================

def scale(
    source: SourceImage,
    crop: CropParams,
    dst_w: int,
    dst_h: int,
    filter: Filter | str | None = None,
) -> np.ndarray:
    """Scale the ``crop`` region of ``source`` to dst_w x dst_h.

    Args:
        source: Strided source view (borrowed, never modified)
        crop: Region of the source to scale
        dst_w: Output width in pixels
        dst_h: Output height in pixels
        filter: Resampling filter. None = FRAMEFIT_FILTER (default box)

    Returns:
        Newly allocated [dst_h, dst_w, 4] uint8 array in the source's
        channel order

    Raises:
        InvalidRegionError: If ``crop`` is empty or not inside the source
        DimensionMismatchError: If dst_w or dst_h is not a positive integer
        AllocationFailureError: If the output buffer cannot be allocated
    """
    validate_crop(crop, source.width, source.height)
    check_dimensions(dst_w=dst_w, dst_h=dst_h)
    resample = resolve_filter(filter)
    dst_w, dst_h = int(dst_w), int(dst_h)

    out = allocate((dst_h, dst_w, BYTES_PER_PIXEL))
    src = source.data
    stride = int(source.stride)
    crop_x, crop_y = int(crop.x), int(crop.y)

    if resample is Filter.BOX:
        xs, xc, xw = _box_contributions(crop.width, dst_w)
        ys, yc, yw = _box_contributions(crop.height, dst_h)
        total = int(crop.width) * int(crop.height)
        _get_box_kernel()(src, stride, crop_x, crop_y, xs, xc, xw, ys, yc, yw, total, out)
    elif resample is Filter.NEAREST:
        _get_nearest_kernel()(
            src, stride, crop_x, crop_y,
            _nearest_indices(crop.width, dst_w),
            _nearest_indices(crop.height, dst_h),
            out,
        )
    else:
        x_first, x_second, x_frac = _bilinear_taps(crop.width, dst_w)
        y_first, y_second, y_frac = _bilinear_taps(crop.height, dst_h)
        _get_bilinear_kernel()(
            src, stride, crop_x, crop_y,
            x_first, x_second, x_frac,
            y_first, y_second, y_frac,
            out,
        )
    return out
