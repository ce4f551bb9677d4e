from typing import BinaryIO, Iterable, Iterator, Optional

import numpy as np

from ..errors import DecodeError
from .base import CodecReadError, ScanlineReader, ScanlineWriter


def image_channels(arr: np.ndarray) -> int:
    if arr.ndim == 2:
        return 1
    if arr.ndim == 3:
        return arr.shape[2]
    raise ValueError(f"expected a 2D or 3D image array, got shape {arr.shape}")


class ArrayReader(ScanlineReader):
    """
    Reads scanlines from a numpy image of shape (h, w) or (h, w, 3).

    `rows` may be given instead of an image to stream rows from any iterable
    of width * channels samples; the size must then be passed explicitly.
    `fail_at` makes the read of that row index fail with READ, for tests and
    for callers wrapping flaky sources.
    """

    def __init__(
        self,
        image: Optional[np.ndarray] = None,
        *,
        rows: Optional[Iterable[np.ndarray]] = None,
        width: int = 0,
        height: int = 0,
        channels: int = 1,
        fail_at: Optional[int] = None,
    ):
        self.image = image
        self._rows: Optional[Iterator[np.ndarray]] = iter(rows) if rows is not None else None
        self._size = (width, height, channels)
        self.fail_at = fail_at
        self.reads = []
        super().__init__(stream=None)

    def _open(self):
        if self.image is None:
            if self._rows is None:
                raise CodecReadError(DecodeError.LIBJ, "no image or rows given")
            return self._size
        if self.image.dtype != np.uint8:
            raise CodecReadError(DecodeError.CCNT, f"unsupported dtype {self.image.dtype}")
        h, w = self.image.shape[:2]
        return w, h, image_channels(self.image)

    def _read_row(self, index: int) -> np.ndarray:
        self.reads.append(index)
        if self.fail_at is not None and index >= self.fail_at:
            raise CodecReadError(DecodeError.READ, f"row {index} unavailable")
        if self.image is not None:
            return self.image[index].reshape(-1)
        try:
            row = np.asarray(next(self._rows), dtype=np.uint8).reshape(-1)
        except StopIteration:
            raise CodecReadError(DecodeError.READ, f"row source ended at row {index}")
        if row.size != self.row_samples:
            raise CodecReadError(DecodeError.READ, f"row {index} has {row.size} samples")
        return row


class ArrayWriter(ScanlineWriter):
    """Writes raw scanline samples to the stream as each row arrives."""

    def __init__(self, stream: BinaryIO, width: int = 1, height: int = 1, channels: int = 1, quality: int = 90):
        super().__init__(stream, width, height, channels, quality)

    def _put_row(self, index: int, row: np.ndarray) -> None:
        self.stream.write(np.ascontiguousarray(row, dtype=np.uint8).tobytes())
