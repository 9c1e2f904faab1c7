"""framefit: center-crop, scale and encode RGBA frames for video/ML consumers.

The pipeline takes a packed 8-bit RGBA (or ARGB) image of any size, crops the
largest centered region with the target aspect ratio, scales it to the
target resolution with a box filter, and hands it back either as packed
pixels or as a 4:2:0 planar frame (NV21 by default).

Example:
    from framefit import PillowSource, SourceImage, convert_to_planar_yuv

    # From a decoded file
    nv21 = convert_to_planar_yuv(PillowSource("photo.jpg"), 1280, 720)

    # From raw pixel memory with padded rows
    source = SourceImage.from_buffer(buf, width=1920, height=1080, stride=7744)
    rgba = convert_to_packed_rgba(source, 480, 480)

Batch conversion:
    from framefit import FrameProcessor

    with FrameProcessor(640, 480, output="nv21", num_workers=8) as processor:
        frames = processor.process_batch(sources)
"""

__version__ = "0.1.0"

from framefit.errors import (
    AllocationFailureError,
    DimensionMismatchError,
    FrameFitError,
    InvalidRegionError,
    UnsupportedFormatError,
)
from framefit.pipeline import (
    FrameProcessor,
    OutputFormat,
    convert_to_packed_rgba,
    convert_to_planar_yuv,
    process,
)
from framefit.source import (
    PillowSource,
    PixelFormat,
    SourceImage,
)
from framefit.transforms import (
    Filter,
    PlanarLayout,
    planar_size,
    scale,
    split_planar_yuv420,
    to_packed,
    to_planar_yuv420,
)
from framefit.utils.crop import (
    CropParams,
    compute_center_crop,
    validate_crop,
)

__all__ = [
    "__version__",
    # Errors
    "FrameFitError",
    "UnsupportedFormatError",
    "InvalidRegionError",
    "DimensionMismatchError",
    "AllocationFailureError",
    # Sources
    "SourceImage",
    "PixelFormat",
    "PillowSource",
    # Crop geometry
    "CropParams",
    "compute_center_crop",
    "validate_crop",
    # Stages
    "Filter",
    "scale",
    "PlanarLayout",
    "planar_size",
    "to_packed",
    "to_planar_yuv420",
    "split_planar_yuv420",
    # Pipeline
    "OutputFormat",
    "process",
    "convert_to_planar_yuv",
    "convert_to_packed_rgba",
    "FrameProcessor",
]
