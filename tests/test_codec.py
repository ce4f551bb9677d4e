import io

import numpy as np
import pytest
from PIL import Image

from boxshrink.codec.base import ScanlineWriter
from boxshrink.codec.jpeg import JpegReader, JpegWriter, clamp_quality
from boxshrink.codec.memory import ArrayWriter
from boxshrink.codec.png import PngReader, PngWriter
from boxshrink.errors import DecodeError, Status, errstr
from boxshrink.params import MAXDIM
from boxshrink.pipeline import shrink


def test_errstr_messages():
    assert errstr(DecodeError.OK) == "No error"
    assert errstr(2) == "Image dimensions out of range"
    assert errstr(99) == "Unknown error"


def test_jpeg_reader_reports_size(jpeg_bytes):
    img = np.full((17, 33, 3), 128, dtype=np.uint8)
    with JpegReader(io.BytesIO(jpeg_bytes(img))) as reader:
        assert reader.status is DecodeError.OK
        assert (reader.width, reader.height, reader.channels) == (33, 17, 3)
        buf = np.zeros(33 * 3, dtype=np.uint8)
        for _ in range(17):
            assert reader.read_scanline(buf)
            assert np.abs(buf.astype(int) - 128).max() <= 2
        with pytest.raises(RuntimeError):
            reader.read_scanline(buf)


def test_jpeg_reader_grayscale(jpeg_bytes):
    img = np.full((8, 5), 200, dtype=np.uint8)
    reader = JpegReader(io.BytesIO(jpeg_bytes(img)))
    assert reader.channels == 1
    reader.close()
    reader.close()


def test_jpeg_reader_rejects_other_formats(png_bytes):
    reader = JpegReader(io.BytesIO(png_bytes(np.zeros((4, 4), dtype=np.uint8))))
    assert reader.status is DecodeError.LIBJ
    assert (reader.width, reader.height, reader.channels) == (1, 1, 1)
    assert JpegReader(io.BytesIO(b"")).status is DecodeError.LIBJ


def test_jpeg_reader_rejects_cmyk():
    bio = io.BytesIO()
    Image.new("CMYK", (4, 4)).save(bio, format="JPEG")
    bio.seek(0)
    assert JpegReader(bio).status is DecodeError.CCNT


def test_jpeg_reader_accepts_large_header(jpeg_bytes):
    data = bytearray(jpeg_bytes(np.zeros((8, 8), dtype=np.uint8)))
    sof = data.index(b"\xff\xc0")
    # SOF0: marker, length(2), precision(1), height(2), width(2)
    data[sof + 5 : sof + 9] = (14000).to_bytes(2, "big") * 2
    with JpegReader(io.BytesIO(bytes(data))) as reader:
        assert reader.status is DecodeError.OK
        assert (reader.width, reader.height) == (14000, 14000)


def test_jpeg_reader_rejects_header_past_maxdim(jpeg_bytes):
    data = bytearray(jpeg_bytes(np.zeros((8, 8), dtype=np.uint8)))
    sof = data.index(b"\xff\xc0")
    data[sof + 7 : sof + 9] = (MAXDIM + 1).to_bytes(2, "big")
    assert JpegReader(io.BytesIO(bytes(data))).status is DecodeError.IDIM


def test_truncated_jpeg_fails_sticky(jpeg_bytes, rng):
    img = rng.integers(0, 256, size=(64, 64, 3), dtype=np.uint8)
    data = jpeg_bytes(img)
    reader = JpegReader(io.BytesIO(data[: len(data) // 2]))
    assert reader.status is DecodeError.OK
    buf = np.full(64 * 3, 7, dtype=np.uint8)
    assert not reader.read_scanline(buf)
    assert reader.status is DecodeError.READ
    assert not buf.any()
    buf[:] = 7
    assert not reader.read_scanline(buf)
    assert not buf.any()


def test_clamp_quality():
    assert clamp_quality(0) == 25
    assert clamp_quality(50) == 50
    assert clamp_quality(100) == 90


def test_jpeg_shrink_end_to_end(jpeg_bytes, rng):
    img = rng.integers(0, 256, size=(17, 33, 3), dtype=np.uint8)
    out = io.BytesIO()
    result = shrink(io.BytesIO(jpeg_bytes(img)), out, 4, 75)
    assert result.ok
    shrunk = Image.open(io.BytesIO(out.getvalue()))
    assert shrunk.format == "JPEG"
    assert shrunk.mode == "RGB"
    assert shrunk.size == (9, 5)


def test_truncated_jpeg_shrink_reports_decode_error(jpeg_bytes, rng):
    img = rng.integers(0, 256, size=(64, 64), dtype=np.uint8)
    data = jpeg_bytes(img)
    result = shrink(io.BytesIO(data[: len(data) // 2]), io.BytesIO(), 2)
    assert result.status is Status.DECODER_ERROR
    assert result.error is DecodeError.READ


def test_writer_finalizes_on_last_row():
    out = io.BytesIO()
    writer = JpegWriter(out, 3, 2, 1, 90)
    writer.write_scanline(np.zeros(3, dtype=np.uint8))
    assert out.getvalue() == b""
    writer.write_scanline(np.zeros(3, dtype=np.uint8))
    assert Image.open(io.BytesIO(out.getvalue())).size == (3, 2)
    with pytest.raises(RuntimeError):
        writer.write_scanline(np.zeros(3, dtype=np.uint8))
    writer.close()
    writer.close()


def test_array_writer_streams_each_row():
    out = io.BytesIO()
    with ArrayWriter(out, 2, 3, 3) as writer:
        writer.write_scanline(np.arange(6, dtype=np.uint8))
        assert out.getvalue() == bytes(range(6))
        writer.write_scanline(np.full(9, 7, dtype=np.uint8))
        assert out.getvalue() == bytes(range(6)) + bytes([7] * 6)
    assert not writer.complete
    assert not hasattr(writer, "rows")


def test_buffered_writer_closed_early_writes_nothing():
    out = io.BytesIO()
    with PngWriter(out, 2, 2, 3, 90) as writer:
        writer.write_scanline(np.zeros(6, dtype=np.uint8))
        assert writer.rows.shape == (2, 6)
    assert out.getvalue() == b""
    assert writer.rows is None


def test_writer_validates_size():
    with pytest.raises(ValueError):
        ScanlineWriter(io.BytesIO(), 0, 2, 1, 90)
    with pytest.raises(ValueError):
        ScanlineWriter(io.BytesIO(), 2, 2, 4, 90)


def test_png_shrink_is_exact(png_bytes, reference_shrink, rng):
    img = rng.integers(0, 256, size=(13, 10, 3), dtype=np.uint8)
    out = io.BytesIO()
    result = shrink(
        io.BytesIO(png_bytes(img)), out, 3, reader_factory=PngReader, writer_factory=PngWriter
    )
    assert result.ok
    shrunk = np.array(Image.open(io.BytesIO(out.getvalue())))
    assert np.array_equal(shrunk, reference_shrink(img, 3))


def test_png_grayscale(png_bytes, reference_shrink, rng):
    img = rng.integers(0, 256, size=(6, 7), dtype=np.uint8)
    reader = PngReader(io.BytesIO(png_bytes(img)))
    assert (reader.width, reader.height, reader.channels) == (7, 6, 1)
    out = io.BytesIO()
    result = shrink(
        io.BytesIO(png_bytes(img)), out, 2, reader_factory=PngReader, writer_factory=PngWriter
    )
    assert result.ok
    shrunk = np.array(Image.open(io.BytesIO(out.getvalue())))
    assert np.array_equal(shrunk, reference_shrink(img, 2))


def test_png_alpha_composites_on_white(png_bytes):
    img = np.zeros((2, 2, 4), dtype=np.uint8)
    img[0, 0] = (10, 20, 30, 255)
    reader = PngReader(io.BytesIO(png_bytes(img)))
    assert reader.channels == 3
    buf = np.zeros(6, dtype=np.uint8)
    assert reader.read_scanline(buf)
    assert buf.tolist() == [10, 20, 30, 255, 255, 255]


def test_png_rejects_16_bit(png_bytes):
    img = np.zeros((4, 4), dtype=np.uint16)
    assert PngReader(io.BytesIO(png_bytes(img))).status is DecodeError.CCNT


def test_png_rejects_garbage(jpeg_bytes):
    assert PngReader(io.BytesIO(b"not an image")).status is DecodeError.LIBJ
    data = jpeg_bytes(np.zeros((4, 4), dtype=np.uint8))
    assert PngReader(io.BytesIO(data)).status is DecodeError.LIBJ


def test_png_truncated_body_fails_on_read(png_bytes, rng):
    img = rng.integers(0, 256, size=(32, 32, 3), dtype=np.uint8)
    data = png_bytes(img)
    reader = PngReader(io.BytesIO(data[: len(data) // 2]))
    assert reader.status is DecodeError.OK
    buf = np.zeros(32 * 3, dtype=np.uint8)
    assert not reader.read_scanline(buf)
    assert reader.status is DecodeError.READ
