"""Tests for SourceImage views and the Pillow source provider."""

import numpy as np
import pytest
from PIL import Image

from framefit.errors import (
    DimensionMismatchError,
    InvalidRegionError,
    UnsupportedFormatError,
)
from framefit.source import PillowSource, PixelFormat, SourceImage, ensure_supported


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def random_rgba(height, width, seed=0):
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)


# ---------------------------------------------------------------------------
# Tests: pixel formats
# ---------------------------------------------------------------------------

class TestPixelFormat:

    @pytest.mark.parametrize("fmt", [PixelFormat.RGBA_8888, PixelFormat.ARGB_8888, "rgba_8888", "ARGB_8888"])
    def test_supported_formats(self, fmt):
        assert ensure_supported(fmt).is_supported

    @pytest.mark.parametrize("fmt", [
        PixelFormat.RGB_565,
        PixelFormat.RGBA_4444,
        PixelFormat.A_8,
        PixelFormat.RGBA_F16,
        PixelFormat.RGBA_1010102,
    ])
    def test_other_host_formats_rejected(self, fmt):
        with pytest.raises(UnsupportedFormatError):
            ensure_supported(fmt)

    def test_unknown_format_rejected(self):
        with pytest.raises(UnsupportedFormatError, match="Unknown pixel format"):
            ensure_supported("YUY2")

    def test_channel_offsets(self):
        assert PixelFormat.RGBA_8888.rgb_offsets == (0, 1, 2)
        assert PixelFormat.ARGB_8888.rgb_offsets == (2, 1, 0)
        with pytest.raises(UnsupportedFormatError):
            PixelFormat.RGB_565.rgb_offsets


# ---------------------------------------------------------------------------
# Tests: SourceImage
# ---------------------------------------------------------------------------

class TestSourceImageFromBuffer:

    def test_tightly_packed(self):
        buf = bytes(range(256)) * 3  # 768 bytes = 16x12 pixels
        source = SourceImage.from_buffer(buf, 16, 12)
        assert source.stride == 64
        assert source.size == (16, 12)
        assert source.required_bytes == 768
        assert source.as_array().shape == (12, 16, 4)

    def test_padded_rows(self):
        pixels = random_rgba(5, 3)
        stride = 3 * 4 + 20
        buf = np.full((5, stride), 255, dtype=np.uint8)
        buf[:, :12] = pixels.reshape(5, 12)
        source = SourceImage.from_buffer(buf.tobytes(), 3, 5, stride=stride)
        np.testing.assert_array_equal(source.as_array(), pixels)

    def test_last_row_needs_no_padding(self):
        stride = 40
        buf = np.zeros(stride * 3 + 16, dtype=np.uint8)
        source = SourceImage.from_buffer(buf, 4, 4, stride=stride)
        assert source.required_bytes == buf.size

    def test_zero_copy(self):
        buf = bytearray(4 * 4 * 4)
        source = SourceImage.from_buffer(buf, 4, 4)
        buf[0] = 77
        assert source.data[0] == 77

    def test_stride_smaller_than_row(self):
        with pytest.raises(InvalidRegionError, match="Stride"):
            SourceImage.from_buffer(bytes(64), 4, 4, stride=12)

    def test_buffer_too_small(self):
        with pytest.raises(InvalidRegionError, match="needs"):
            SourceImage.from_buffer(bytes(63), 4, 4)

    @pytest.mark.parametrize("width,height", [(0, 4), (4, 0), (-1, 4)])
    def test_non_positive_dimensions(self, width, height):
        with pytest.raises(DimensionMismatchError):
            SourceImage.from_buffer(bytes(64), width, height, stride=16)

    def test_unsupported_format(self):
        with pytest.raises(UnsupportedFormatError):
            SourceImage.from_buffer(bytes(32), 4, 4, pixel_format=PixelFormat.RGB_565)

    @pytest.mark.parametrize("data", [bytes(64), bytearray(64), memoryview(bytes(64)), [0] * 64])
    def test_constructor_requires_array(self, data):
        with pytest.raises(InvalidRegionError, match="from_buffer"):
            SourceImage(data=data, width=4, height=4, stride=16)

    def test_constructor_rejects_wrong_dtype(self):
        with pytest.raises(InvalidRegionError, match="flat uint8"):
            SourceImage(data=np.zeros(16, dtype=np.uint32), width=4, height=1, stride=16)

    def test_frozen(self):
        source = SourceImage.from_buffer(bytes(64), 4, 4)
        with pytest.raises(AttributeError):
            source.width = 8


class TestSourceImageFromArray:

    def test_contiguous_array_is_not_copied(self):
        pixels = random_rgba(6, 8)
        source = SourceImage.from_array(pixels)
        assert source.stride == 32
        assert np.shares_memory(source.data, pixels)

    def test_column_slice_reads_parent_stride(self):
        frame = random_rgba(6, 10)
        view = frame[:, 2:7]
        source = SourceImage.from_array(view)
        assert source.stride == 10 * 4
        assert np.shares_memory(source.data, frame)
        np.testing.assert_array_equal(source.as_array(), view)

    def test_transposed_array_is_copied(self):
        frame = random_rgba(6, 10)
        view = frame.transpose(1, 0, 2)
        source = SourceImage.from_array(view)
        assert source.size == (6, 10)
        np.testing.assert_array_equal(source.as_array(), view)

    def test_view_is_read_only(self):
        source = SourceImage.from_array(random_rgba(2, 2))
        assert not source.as_array().flags.writeable

    @pytest.mark.parametrize("array", [
        np.zeros((4, 4, 3), dtype=np.uint8),
        np.zeros((4, 4), dtype=np.uint8),
        np.zeros((4, 4, 4), dtype=np.uint16),
        np.zeros((4, 4, 4), dtype=np.float32),
    ])
    def test_rejects_non_rgba8(self, array):
        with pytest.raises(UnsupportedFormatError):
            SourceImage.from_array(array)

    def test_rejects_empty(self):
        with pytest.raises(DimensionMismatchError):
            SourceImage.from_array(np.zeros((0, 4, 4), dtype=np.uint8))


# ---------------------------------------------------------------------------
# Tests: PillowSource
# ---------------------------------------------------------------------------

class TestPillowSource:
    """Decoding, conversion, EXIF orientation and release of Pillow images."""

    def test_wraps_rgba_image(self):
        pixels = random_rgba(5, 7)
        image = Image.fromarray(pixels)
        with PillowSource(image).lock() as source:
            assert source.pixel_format is PixelFormat.RGBA_8888
            np.testing.assert_array_equal(source.as_array(), pixels)

    def test_converts_rgb(self):
        image = Image.new("RGB", (6, 4), (10, 20, 30))
        with PillowSource(image).lock() as source:
            assert source.size == (6, 4)
            assert source.as_array()[0, 0].tolist() == [10, 20, 30, 255]

    def test_convert_disabled_rejects_other_modes(self):
        image = Image.new("L", (4, 4), 128)
        with pytest.raises(UnsupportedFormatError, match="'L'"):
            with PillowSource(image, convert=False).lock():
                pass

    def test_reads_file(self, tmp_path):
        path = tmp_path / "frame.png"
        Image.new("RGB", (9, 5), (200, 100, 50)).save(path)
        with PillowSource(path).lock() as source:
            assert source.size == (9, 5)
            assert source.as_array()[2, 4].tolist() == [200, 100, 50, 255]

    def test_file_closed_on_error(self, tmp_path, monkeypatch):
        path = tmp_path / "frame.png"
        Image.new("RGB", (4, 4)).save(path)

        closed = []
        real_open = Image.open

        def tracking_open(fp):
            image = real_open(fp)
            real_close = image.close

            def close():
                closed.append(fp)
                real_close()

            image.close = close
            return image

        monkeypatch.setattr(Image, "open", tracking_open)

        with pytest.raises(RuntimeError):
            with PillowSource(path).lock():
                raise RuntimeError("consumer failed")
        assert closed == [path]

    def test_exif_orientation_applied(self, tmp_path):
        path = tmp_path / "rotated.jpg"
        exif = Image.Exif()
        exif[0x0112] = 6  # rotate 90 degrees clockwise on display
        Image.new("RGB", (8, 4), (0, 0, 0)).save(path, exif=exif.tobytes())

        with PillowSource(path).lock() as source:
            assert source.size == (4, 8)
        with PillowSource(path, apply_exif_orientation=False).lock() as source:
            assert source.size == (8, 4)

    def test_repr(self):
        assert "RGB" in repr(PillowSource(Image.new("RGB", (2, 2))))
