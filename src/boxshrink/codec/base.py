"""
Scanline reader and writer contracts.

A reader exposes the image size and hands out decoded scanlines top to
bottom. Its status is a one-way latch: once a read fails, every later read
fails too without touching the stream. A writer accepts exactly `height`
scanlines and finalizes the encoded image on the last one.
"""
import logging
from typing import BinaryIO

import numpy as np

from ..errors import DecodeError
from ..params import MAXDIM

logger = logging.getLogger(__name__)


class CodecReadError(Exception):
    """Raised by reader hooks when the codec fails; carries the status to latch."""

    def __init__(self, code: DecodeError, detail: str = ""):
        super().__init__(detail or code.name)
        self.code = code


class ScanlineReader:
    """
    Base class for scanline readers.

    Subclasses implement `_open()` to parse the header and return
    (width, height, channels), and `_read_row(index)` to return one decoded
    row as a uint8 array of width * channels samples. Either hook raises
    CodecReadError to report a failure.
    """

    def __init__(self, stream: BinaryIO):
        self.stream = stream
        self.width = 1
        self.height = 1
        self.channels = 1
        self.status = DecodeError.OK
        self._rows_read = 0
        self._closed = False

        try:
            width, height, channels = self._open()
        except CodecReadError as e:
            logger.debug("%s open failed: %s", type(self).__name__, e)
            self.status = e.code
            return

        if not (1 <= width <= MAXDIM and 1 <= height <= MAXDIM):
            self.status = DecodeError.IDIM
        elif channels not in (1, 3):
            self.status = DecodeError.CCNT
        else:
            self.width, self.height, self.channels = width, height, channels

    @property
    def row_samples(self) -> int:
        return self.width * self.channels

    def _open(self):
        raise NotImplementedError

    def _read_row(self, index: int) -> np.ndarray:
        raise NotImplementedError

    def _release(self) -> None:
        pass

    def read_scanline(self, buf: np.ndarray) -> bool:
        """
        Fills the first width * channels samples of buf with the next row.

        Returns False on failure, leaving those samples zeroed.
        """
        if self._rows_read >= self.height:
            raise RuntimeError("read past the last scanline")
        if buf.size < self.row_samples:
            raise ValueError("scanline buffer too small")
        index = self._rows_read
        self._rows_read += 1

        if self.status == DecodeError.OK:
            try:
                row = self._read_row(index)
                buf[: self.row_samples] = row
                return True
            except CodecReadError as e:
                logger.debug("%s row %d failed: %s", type(self).__name__, index, e)
                self.status = e.code

        buf[: self.row_samples] = 0
        return False

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._release()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class ScanlineWriter:
    """
    Base class for scanline writers.

    Subclasses implement `_put_row(index, row)`, called for every scanline as
    it arrives, and may override `_finalize()`, called once after the last.
    """

    def __init__(self, stream: BinaryIO, width: int, height: int, channels: int, quality: int):
        if not (1 <= width <= MAXDIM and 1 <= height <= MAXDIM):
            raise ValueError(f"output dimensions out of range: {width}x{height}")
        if channels not in (1, 3):
            raise ValueError(f"channels must be 1 or 3, got {channels}")
        self.stream = stream
        self.width = width
        self.height = height
        self.channels = channels
        self.quality = quality
        self._rows_written = 0
        self._closed = False

    @property
    def complete(self) -> bool:
        return self._rows_written >= self.height

    def _put_row(self, index: int, row: np.ndarray) -> None:
        raise NotImplementedError

    def _finalize(self) -> None:
        pass

    def write_scanline(self, buf: np.ndarray) -> None:
        if self._closed:
            raise RuntimeError("writer already closed")
        if self.complete:
            raise RuntimeError("write past the last scanline")
        n = self.width * self.channels
        self._put_row(self._rows_written, buf[:n])
        self._rows_written += 1
        if self.complete:
            self._finalize()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if not self.complete:
            logger.debug(
                "%s closed after %d of %d rows",
                type(self).__name__,
                self._rows_written,
                self.height,
            )
        self._discard()

    def _discard(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class BufferedScanlineWriter(ScanlineWriter):
    """
    Writer for encoders that need the whole image at once.

    Rows are collected in `self.rows` (height x width * channels) and the
    subclass encodes them in `_finalize()`.
    """

    def __init__(self, stream: BinaryIO, width: int, height: int, channels: int, quality: int):
        super().__init__(stream, width, height, channels, quality)
        self.rows = np.zeros((height, width * channels), dtype=np.uint8)

    def image_array(self) -> np.ndarray:
        """Collected rows shaped (h, w) for grayscale or (h, w, 3) for RGB."""
        if self.channels == 1:
            return self.rows
        return self.rows.reshape(self.height, self.width, 3)

    def _put_row(self, index: int, row: np.ndarray) -> None:
        self.rows[index] = row

    def _finalize(self) -> None:
        raise NotImplementedError

    def _discard(self) -> None:
        self.rows = None
