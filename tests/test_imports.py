"""Test that all public imports work.

Run after any refactor to verify nothing broke.
"""

import pytest


class TestTopLevelImports:
    """All symbols exported from framefit.__init__."""

    def test_errors(self):
        from framefit import FrameFitError, UnsupportedFormatError, InvalidRegionError
        from framefit import DimensionMismatchError, AllocationFailureError

    def test_sources(self):
        from framefit import SourceImage, PixelFormat, PillowSource

    def test_crop_utils(self):
        from framefit import CropParams, compute_center_crop, validate_crop

    def test_stages(self):
        from framefit import Filter, scale
        from framefit import PlanarLayout, planar_size, to_packed, to_planar_yuv420, split_planar_yuv420

    def test_pipeline(self):
        from framefit import OutputFormat, process, FrameProcessor
        from framefit import convert_to_planar_yuv, convert_to_packed_rgba

    def test_all_is_complete(self):
        import framefit
        for name in framefit.__all__:
            assert hasattr(framefit, name), f"framefit.__all__ lists missing name {name!r}"


class TestCanonicalImports:
    """Imports from the defining modules."""

    def test_errors_module(self):
        from framefit.errors import FrameFitError

    def test_source_module(self):
        from framefit.source import BYTES_PER_PIXEL, SUPPORTED_FORMATS, ensure_supported

    def test_compiler_module(self):
        from framefit.compiler import Compiler, lazy_kernel

    def test_transforms_modules(self):
        from framefit.transforms.resize import Filter, resolve_filter, scale
        from framefit.transforms.color import to_planar_yuv420
        from framefit.transforms import resolve_filter

    def test_utils_modules(self):
        from framefit.utils.config import get_num_workers, get_default_filter_name, jit_disabled
        from framefit.utils.crop import CropParams
        from framefit.utils import compute_center_crop, get_num_workers

    def test_cli_module(self):
        from framefit.cli import main, build_parser


class TestErrorHierarchy:

    @pytest.mark.parametrize("name,builtin", [
        ("UnsupportedFormatError", ValueError),
        ("InvalidRegionError", ValueError),
        ("DimensionMismatchError", ValueError),
        ("AllocationFailureError", MemoryError),
    ])
    def test_subclasses(self, name, builtin):
        import framefit
        cls = getattr(framefit, name)
        assert issubclass(cls, framefit.FrameFitError)
        assert issubclass(cls, builtin)
