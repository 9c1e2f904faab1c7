"""Scaling and color conversion stages.

- resize: strided crop + scale to a packed [H, W, 4] buffer
- color: packed copy/swizzle and packed -> 4:2:0 planar conversion
"""

from framefit.transforms.color import (
    PlanarLayout,
    planar_size,
    split_planar_yuv420,
    to_packed,
    to_planar_yuv420,
)
from framefit.transforms.resize import Filter, resolve_filter, scale

__all__ = [
    # Scaling
    "Filter",
    "resolve_filter",
    "scale",
    # Color conversion
    "PlanarLayout",
    "planar_size",
    "to_packed",
    "to_planar_yuv420",
    "split_planar_yuv420",
]
