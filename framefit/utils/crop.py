"""Center-crop geometry for framefit.

The crop rectangle is the largest region of the source that has the target
aspect ratio, centered on the source. Cropping before scaling means the
scaled frame is never stretched.

Key concepts:
- Source relatively wider than the target: the sides are cropped.
- Source relatively taller (or equal): the top and bottom are cropped.
- The derived dimension is truncated toward zero, so an odd residual puts
  the extra pixel on the right/bottom side.

Usage:
    from framefit.utils.crop import compute_center_crop

    crop = compute_center_crop(1920, 1080, 480, 480)
    x, y, w, h = crop  # (420, 0, 1080, 1080)
"""

from __future__ import annotations

from dataclasses import dataclass

from framefit.errors import DimensionMismatchError, InvalidRegionError


@dataclass
class CropParams:
    """Parameters for a crop operation.

    All coordinates are in pixels, relative to the source image.

    Attributes:
        x: Left coordinate of crop region
        y: Top coordinate of crop region
        width: Width of crop region
        height: Height of crop region
    """

    x: int
    y: int
    width: int
    height: int

    def __iter__(self):
        """Allow unpacking: x, y, w, h = crop_params."""
        return iter((self.x, self.y, self.width, self.height))

    def to_tuple(self) -> tuple[int, int, int, int]:
        """Return as (x, y, width, height) tuple."""
        return (self.x, self.y, self.width, self.height)

    def fits_within(self, width: int, height: int) -> bool:
        """True if the crop is non-empty and fully inside a width x height image."""
        return (
            self.x >= 0 and self.y >= 0
            and self.width > 0 and self.height > 0
            and self.x + self.width <= width
            and self.y + self.height <= height
        )


def check_dimensions(**dims: int) -> None:
    """Raise DimensionMismatchError unless every keyword value is a positive integer."""
    for name, value in dims.items():
        try:
            whole = int(value)
        except (TypeError, ValueError, OverflowError):
            whole = None
        if whole is None or whole != value or value <= 0:
            raise DimensionMismatchError(f"{name} must be a positive integer, got {value!r}")


def compute_center_crop(src_w: int, src_h: int, dst_w: int, dst_h: int) -> CropParams:
    """Compute the aspect-correct center crop of a source for a target size.

    Aspect ratios are compared with exact integer cross-multiplication, and
    the derived crop dimension is ``src_h * dst_w // dst_h`` (or
    ``src_w * dst_h // dst_w``), i.e. truncated toward zero. Equal aspect
    ratios take the "taller" branch, which then crops nothing.

    Args:
        src_w: Source width in pixels
        src_h: Source height in pixels
        dst_w: Target width in pixels
        dst_h: Target height in pixels

    Returns:
        CropParams fully contained in the source

    Raises:
        DimensionMismatchError: If any dimension is not a positive integer

    Examples:
        >>> compute_center_crop(1920, 1080, 480, 480)
        CropParams(x=420, y=0, width=1080, height=1080)
        >>> compute_center_crop(1080, 1920, 480, 480)
        CropParams(x=0, y=420, width=1080, height=1080)
    """
    check_dimensions(src_w=src_w, src_h=src_h, dst_w=dst_w, dst_h=dst_h)
    src_w, src_h, dst_w, dst_h = int(src_w), int(src_h), int(dst_w), int(dst_h)

    if src_w * dst_h > dst_w * src_h:
        # Source is wider than destination - crop the sides
        crop_h = src_h
        crop_w = max(1, src_h * dst_w // dst_h)
        return CropParams(x=(src_w - crop_w) // 2, y=0, width=crop_w, height=crop_h)

    # Source is taller than (or as tall as) destination - crop top/bottom
    crop_w = src_w
    crop_h = max(1, src_w * dst_h // dst_w)
    return CropParams(x=0, y=(src_h - crop_h) // 2, width=crop_w, height=crop_h)


def validate_crop(crop: CropParams, width: int, height: int) -> None:
    """Raise InvalidRegionError unless ``crop`` is non-empty and inside the image."""
    if not crop.fits_within(width, height):
        raise InvalidRegionError(
            f"Crop {crop.to_tuple()} (x, y, w, h) is not contained in a {width}x{height} source"
        )


__all__ = [
    "CropParams",
    "check_dimensions",
    "compute_center_crop",
    "validate_crop",
]
