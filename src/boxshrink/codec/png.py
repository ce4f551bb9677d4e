"""PNG scanline reader and writer built on OpenCV."""
import logging
from typing import BinaryIO

import cv2
import numpy as np

from ..errors import DecodeError
from .base import BufferedScanlineWriter, CodecReadError, ScanlineReader

logger = logging.getLogger(__name__)

_PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def composite_rgba(bgra: np.ndarray) -> np.ndarray:
    """Flattens BGRA onto a white background."""
    a = bgra[..., 3:4] / 255.0
    bgr = bgra[..., :3]
    bg = np.ones_like(bgr) * 255
    return (bgr * a + bg * (1 - a)).astype(np.uint8)


class PngReader(ScanlineReader):
    """
    Reads an 8-bit PNG. Grayscale stays grayscale, RGB and RGBA become RGB
    (alpha is composited onto white). Gray+alpha PNGs decode as RGBA in
    OpenCV and therefore come out RGB.
    """

    def __init__(self, stream: BinaryIO):
        self._data = b""
        self._pixels = None
        super().__init__(stream)

    def _open(self):
        data = self.stream.read()
        if not data.startswith(_PNG_SIGNATURE) or len(data) < 26 or data[12:16] != b"IHDR":
            raise CodecReadError(DecodeError.LIBJ, "not a PNG stream")
        width = int.from_bytes(data[16:20], "big")
        height = int.from_bytes(data[20:24], "big")
        bit_depth, color_type = data[24], data[25]
        if bit_depth != 8:
            raise CodecReadError(DecodeError.CCNT, f"unsupported bit depth {bit_depth}")
        self._data = data
        # palette (3) decodes to BGR in OpenCV
        return width, height, 1 if color_type == 0 else 3

    def _read_row(self, index: int) -> np.ndarray:
        if self._pixels is None:
            self._pixels = self._decode()
        return self._pixels[index]

    def _decode(self) -> np.ndarray:
        try:
            img = cv2.imdecode(np.frombuffer(self._data, np.uint8), cv2.IMREAD_UNCHANGED)
        except cv2.error as e:
            raise CodecReadError(DecodeError.READ, str(e))
        self._data = b""
        if img is None or img.shape[0] != self.height or img.shape[1] != self.width:
            raise CodecReadError(DecodeError.READ, "PNG data could not be decoded")
        if img.ndim == 3 and img.shape[-1] == 4:
            img = composite_rgba(img)
        if self.channels == 1:
            if img.ndim == 3:
                img = cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
        else:
            if img.ndim == 2:
                img = cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
            img = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
        logger.debug("decoded %dx%d PNG", self.width, self.height)
        return np.ascontiguousarray(img).reshape(self.height, -1)

    def _release(self) -> None:
        self._data = b""
        self._pixels = None


class PngWriter(BufferedScanlineWriter):
    """Encodes collected scanlines as a PNG. PNG is lossless, so quality is ignored."""

    def _finalize(self) -> None:
        img = self.image_array()
        if self.channels == 3:
            img = cv2.cvtColor(img, cv2.COLOR_RGB2BGR)
        ok, buf = cv2.imencode(".png", img)
        if not ok:
            raise RuntimeError("PNG encoding failed")
        self.stream.write(buf.tobytes())
        logger.debug("encoded %dx%d PNG", self.width, self.height)
