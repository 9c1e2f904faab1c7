"""Crop -> scale -> convert pipeline and its entry points.

One function, ``process``, runs the whole sequence for every output format:

1. compute the aspect-correct center crop of the source
2. scale the crop region (read in place through the row stride) to the target size
3. either hand the packed buffer back (RGBA/ARGB) or convert it to 4:2:0 (NV21/NV12)

``source`` can be a ``SourceImage`` or an image source provider (anything
with a ``lock()`` context manager, such as ``PillowSource``). Providers are
locked only after the request has been validated and are always released
before ``process`` returns.

Usage:
    from framefit import PillowSource, convert_to_planar_yuv, FrameProcessor

    nv21 = convert_to_planar_yuv(PillowSource("photo.jpg"), 1280, 720)

    with FrameProcessor(640, 480, output="nv21", num_workers=8) as processor:
        frames = processor.process_batch([PillowSource(p) for p in paths])
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Iterable, Iterator

import numpy as np

from framefit.errors import DimensionMismatchError
from framefit.source import PixelFormat, SourceImage
from framefit.transforms.color import PlanarLayout, to_packed, to_planar_yuv420
from framefit.transforms.resize import Filter, resolve_filter, scale
from framefit.utils.config import get_num_workers
from framefit.utils.crop import check_dimensions, compute_center_crop

__all__ = [
    "OutputFormat",
    "process",
    "convert_to_planar_yuv",
    "convert_to_packed_rgba",
    "FrameProcessor",
]


class OutputFormat(str, Enum):
    """Output encodings of the pipeline."""

    RGBA = "rgba"  # packed, bytes R, G, B, A
    ARGB = "argb"  # packed, bytes B, G, R, A
    NV21 = "nv21"  # 4:2:0, luma + interleaved V,U
    NV12 = "nv12"  # 4:2:0, luma + interleaved U,V

    @property
    def is_planar(self) -> bool:
        return self in (OutputFormat.NV21, OutputFormat.NV12)

    @property
    def pixel_format(self) -> PixelFormat:
        if self is OutputFormat.ARGB:
            return PixelFormat.ARGB_8888
        return PixelFormat.RGBA_8888

    @property
    def extension(self) -> str:
        return self.value


def _resolve_output(output: OutputFormat | str) -> OutputFormat:
    if isinstance(output, str) and not isinstance(output, OutputFormat):
        output = output.lower()
    try:
        return OutputFormat(output)
    except ValueError:
        raise ValueError(
            f"Unknown output format {output!r}; expected one of {[f.value for f in OutputFormat]}"
        ) from None


def _check_target(target_w: int, target_h: int, output: OutputFormat) -> None:
    check_dimensions(target_w=target_w, target_h=target_h)
    if output.is_planar and (target_w % 2 or target_h % 2):
        raise DimensionMismatchError(
            f"{output.value.upper()} output needs even dimensions, got {target_w}x{target_h}"
        )


def _run(
    image: SourceImage,
    target_w: int,
    target_h: int,
    output: OutputFormat,
    filter: Filter,
) -> np.ndarray:
    crop = compute_center_crop(image.width, image.height, target_w, target_h)
    scaled = scale(image, crop, target_w, target_h, filter)
    if output.is_planar:
        return to_planar_yuv420(
            scaled, target_w, target_h,
            pixel_format=image.pixel_format,
            layout=PlanarLayout(output.value),
        )
    return to_packed(scaled, image.pixel_format, output.pixel_format, copy=False)


def process(
    source,
    target_w: int,
    target_h: int,
    output: OutputFormat | str = OutputFormat.NV21,
    filter: Filter | str | None = None,
) -> np.ndarray:
    """Center-crop, scale and convert ``source`` to target_w x target_h.

    Args:
        source: SourceImage, or a provider exposing ``lock()``
        target_w: Output width in pixels (even for planar outputs)
        target_h: Output height in pixels (even for planar outputs)
        output: Output encoding (rgba, argb, nv21, nv12)
        filter: Resampling filter. None = FRAMEFIT_FILTER (default box)

    Returns:
        Packed outputs: [target_h, target_w, 4] uint8 array.
        Planar outputs: flat uint8 array of target_w * target_h * 3 / 2 bytes.

    Raises:
        DimensionMismatchError: Non-integer or non-positive target, or odd target for planar output
        UnsupportedFormatError: Source pixel format is not packed 8-bit RGBA/ARGB
        InvalidRegionError: Crop rectangle outside the source
        AllocationFailureError: Output buffer could not be allocated
    """
    output = _resolve_output(output)
    _check_target(target_w, target_h, output)
    resample = resolve_filter(filter)
    target_w, target_h = int(target_w), int(target_h)

    if isinstance(source, SourceImage):
        return _run(source, target_w, target_h, output, resample)
    with source.lock() as image:
        return _run(image, target_w, target_h, output, resample)


def convert_to_planar_yuv(source, target_w: int, target_h: int, filter: Filter | str | None = None) -> bytes:
    """Center-crop and scale ``source``, then encode it as NV21 bytes."""
    return process(source, target_w, target_h, OutputFormat.NV21, filter).tobytes()


def convert_to_packed_rgba(source, target_w: int, target_h: int, filter: Filter | str | None = None) -> bytes:
    """Center-crop and scale ``source`` to packed RGBA bytes."""
    return process(source, target_w, target_h, OutputFormat.RGBA, filter).tobytes()


class FrameProcessor:
    """Runs the pipeline for many independent sources on a thread pool.

    The scaling kernels release the GIL, so conversions run in parallel.
    Results come back in input order.

    Args:
        target_width: Output width in pixels
        target_height: Output height in pixels
        output: Output encoding (rgba, argb, nv21, nv12)
        filter: Resampling filter. None = FRAMEFIT_FILTER (default box)
        num_workers: Worker threads. None = FRAMEFIT_NUM_WORKERS (default cpu_count)

    Example:
        with FrameProcessor(1280, 720) as processor:
            frames = processor.process_batch(sources)
    """

    def __init__(
        self,
        target_width: int,
        target_height: int,
        output: OutputFormat | str = OutputFormat.NV21,
        filter: Filter | str | None = None,
        num_workers: int | None = None,
    ) -> None:
        self.output = _resolve_output(output)
        _check_target(target_width, target_height, self.output)
        self.target_width = int(target_width)
        self.target_height = int(target_height)
        self.filter = resolve_filter(filter)
        self.num_workers = num_workers if num_workers is not None else get_num_workers()
        if self.num_workers < 1:
            raise ValueError(f"num_workers must be at least 1, got {self.num_workers}")
        self._executor: ThreadPoolExecutor | None = None

    def _ensure_executor(self) -> ThreadPoolExecutor:
        """Ensure executor is initialized."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self.num_workers)
        return self._executor

    def __call__(self, source) -> np.ndarray:
        return process(source, self.target_width, self.target_height, self.output, self.filter)

    def imap(self, sources: Iterable, return_exceptions: bool = False) -> Iterator:
        """Yield one result per source, in input order.

        Args:
            sources: SourceImages or providers
            return_exceptions: If True, a failed conversion yields its
                exception instead of raising it

        Yields:
            Output arrays (or exceptions, see ``return_exceptions``)
        """
        executor = self._ensure_executor()
        futures = [executor.submit(self, source) for source in sources]
        for future in futures:
            if return_exceptions:
                error = future.exception()
                yield error if error is not None else future.result()
            else:
                yield future.result()

    def process_batch(self, sources: Iterable, return_exceptions: bool = False) -> list:
        """Convert every source and return the results as a list."""
        return list(self.imap(sources, return_exceptions=return_exceptions))

    def shutdown(self) -> None:
        """Shutdown the thread pool."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> FrameProcessor:
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()

    def __repr__(self) -> str:
        return (
            f"FrameProcessor({self.target_width}x{self.target_height}, "
            f"output={self.output.value}, filter={self.filter.value}, "
            f"num_workers={self.num_workers})"
        )
