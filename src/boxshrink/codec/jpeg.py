"""JPEG scanline reader and writer built on Pillow."""
import logging
from typing import BinaryIO

import numpy as np
from PIL import Image, UnidentifiedImageError

from ..errors import DecodeError
from ..params import MAX_QUALITY, MAXDIM, MIN_QUALITY
from .base import BufferedScanlineWriter, CodecReadError, ScanlineReader

logger = logging.getLogger(__name__)

_MODE_CHANNELS = {"L": 1, "RGB": 3}

# MAXDIM is the only size gate; the reader checks it after the header is parsed.
Image.MAX_IMAGE_PIXELS = MAXDIM * MAXDIM


def clamp_quality(quality: int) -> int:
    return max(MIN_QUALITY, min(MAX_QUALITY, int(quality)))


class JpegReader(ScanlineReader):
    """
    Reads a baseline or progressive JPEG.

    The header is parsed on construction; pixel data is decoded by Pillow on
    the first scanline read, so a truncated or corrupt body surfaces as a READ
    failure rather than a header error.
    """

    def __init__(self, stream: BinaryIO):
        self._img = None
        self._pixels = None
        super().__init__(stream)

    def _open(self):
        try:
            img = Image.open(self.stream, formats=["JPEG"])
        except Image.DecompressionBombError as e:
            raise CodecReadError(DecodeError.IDIM, str(e))
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise CodecReadError(DecodeError.LIBJ, str(e))
        self._img = img
        w, h = img.size
        # CMYK and other layouts are not converted
        return w, h, _MODE_CHANNELS.get(img.mode, 0)

    def _read_row(self, index: int) -> np.ndarray:
        if self._pixels is None:
            try:
                self._img.load()
            except (OSError, ValueError, SyntaxError) as e:
                raise CodecReadError(DecodeError.READ, str(e))
            self._pixels = np.asarray(self._img, dtype=np.uint8).reshape(self.height, -1)
            logger.debug("decoded %dx%d JPEG", self.width, self.height)
        return self._pixels[index]

    def _release(self) -> None:
        self._pixels = None
        if self._img is not None:
            self._img.close()
            self._img = None


class JpegWriter(BufferedScanlineWriter):
    """
    Encodes collected scanlines as a JPEG once the last one arrives.

    Quality is clamped to [MIN_QUALITY, MAX_QUALITY].
    """

    def _finalize(self) -> None:
        img = Image.fromarray(self.image_array())
        img.save(self.stream, format="JPEG", quality=clamp_quality(self.quality))
        logger.debug(
            "encoded %dx%d JPEG at quality %d",
            self.width,
            self.height,
            clamp_quality(self.quality),
        )
