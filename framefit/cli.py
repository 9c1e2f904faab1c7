"""Convert image files to raw frames of a fixed size.

Each input is decoded with Pillow, turned upright using its EXIF
orientation, center-cropped to the target aspect ratio, scaled, and written
as a headerless raw file next to the others in the output directory:

    <stem>_<W>x<H>.<format>

NV21/NV12 files hold W*H*3/2 bytes; RGBA/ARGB files hold W*H*4 bytes.

Usage:
    framefit photo.jpg --size 1280x720
    framefit shots/*.png --size 640x480 --format rgba --output-dir frames/
    framefit big.jpg --size 480x480 --filter bilinear --quiet
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

from tqdm import tqdm

from framefit import __version__
from framefit.pipeline import FrameProcessor, OutputFormat
from framefit.source import PillowSource
from framefit.transforms.resize import Filter


def parse_size(text: str) -> tuple[int, int]:
    """Parse 'WxH' into (width, height)."""
    parts = text.lower().split("x")
    if len(parts) != 2:
        raise argparse.ArgumentTypeError(f"size must look like WIDTHxHEIGHT, got {text!r}")
    try:
        width, height = int(parts[0]), int(parts[1])
    except ValueError:
        raise argparse.ArgumentTypeError(f"size must look like WIDTHxHEIGHT, got {text!r}") from None
    if width <= 0 or height <= 0:
        raise argparse.ArgumentTypeError(f"size must be positive, got {text!r}")
    return width, height


def output_path(input_path: Path, output_dir: Path, width: int, height: int, output: OutputFormat) -> Path:
    return output_dir / f"{input_path.stem}_{width}x{height}.{output.extension}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="framefit",
        description="Center-crop, scale and encode images as raw NV21/NV12/RGBA/ARGB frames",
    )
    parser.add_argument("inputs", nargs="+", type=Path, help="Image files to convert")
    parser.add_argument("--size", type=parse_size, required=True, help="Target size as WIDTHxHEIGHT")
    parser.add_argument(
        "--format", dest="output", default=OutputFormat.NV21.value,
        choices=[f.value for f in OutputFormat], help="Output encoding (default: nv21)",
    )
    parser.add_argument(
        "--filter", default=None, choices=[f.value for f in Filter],
        help="Resampling filter (default: $FRAMEFIT_FILTER or box)",
    )
    parser.add_argument("--output-dir", type=Path, default=None, help="Directory for output files (default: next to each input)")
    parser.add_argument("--workers", type=int, default=None, help="Worker threads (default: $FRAMEFIT_NUM_WORKERS or CPU count)")
    parser.add_argument("--no-exif", action="store_true", help="Ignore EXIF orientation")
    parser.add_argument("--quiet", action="store_true", help="No progress bar or summary")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    width, height = args.size
    verbose = not args.quiet

    try:
        processor = FrameProcessor(
            width, height, output=args.output, filter=args.filter, num_workers=args.workers,
        )
    except ValueError as e:
        parser.error(str(e))

    if args.output_dir is not None:
        args.output_dir.mkdir(parents=True, exist_ok=True)

    sources = [PillowSource(path, apply_exif_orientation=not args.no_exif) for path in args.inputs]
    failures = 0
    written = 0
    t0 = time.perf_counter()

    with processor:
        results = processor.imap(sources, return_exceptions=True)
        for path, result in zip(args.inputs, tqdm(results, total=len(sources), desc="  framefit", disable=not verbose)):
            if isinstance(result, Exception):
                failures += 1
                print(f"error: {path}: {result}", file=sys.stderr)
                continue
            out_dir = args.output_dir if args.output_dir is not None else path.parent
            result.tofile(output_path(path, out_dir, width, height, processor.output))
            written += 1

    elapsed = time.perf_counter() - t0
    if verbose:
        print(
            f"Wrote {written} {processor.output.value} frame(s) at {width}x{height} "
            f"in {elapsed:.2f}s ({failures} failed)"
        )
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
