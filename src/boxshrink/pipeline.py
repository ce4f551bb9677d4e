import logging
from dataclasses import dataclass
from typing import BinaryIO, Callable, Optional

import numpy as np

from .codec.base import ScanlineReader, ScanlineWriter
from .codec.jpeg import JpegReader, JpegWriter
from .codec.png import PngReader, PngWriter
from .errors import CONSTRAINTS_MESSAGE, DecodeError, ShrinkError, Status, errstr
from .params import DEFAULT_QUALITY, ShrinkBounds, ShrinkParams
from .processing.planning import ShrinkPlan, check_bounds, check_sval, plan_dimensions
from .processing.scanline import average_blit, mix_scanline, pad_scanline

logger = logging.getLogger(__name__)

ReaderFactory = Callable[[BinaryIO], ScanlineReader]
WriterFactory = Callable[..., ScanlineWriter]

CODECS = {
    "jpeg": (JpegReader, JpegWriter),
    "png": (PngReader, PngWriter),
}


@dataclass
class ShrinkResult:
    status: Status
    error: DecodeError = DecodeError.OK
    plan: Optional[ShrinkPlan] = None

    @property
    def ok(self) -> bool:
        return self.status is Status.OK

    @property
    def message(self) -> str:
        if self.status is Status.CONSTRAINTS_VIOLATED:
            return CONSTRAINTS_MESSAGE
        return errstr(self.error)

    def raise_for_status(self) -> "ShrinkResult":
        if not self.ok:
            raise ShrinkError(self)
        return self


def _copy_scanlines(reader: ScanlineReader, writer: ScanlineWriter, plan: ShrinkPlan) -> bool:
    scan = np.zeros(plan.in_width * plan.channels, dtype=np.uint8)
    for _ in range(plan.in_height):
        if not reader.read_scanline(scan):
            return False
        writer.write_scanline(scan)
    return True


def _reduce_scanlines(reader: ScanlineReader, writer: ScanlineWriter, plan: ShrinkPlan) -> bool:
    sval, channels = plan.sval, plan.channels
    scan = np.zeros(plan.padded_width * channels, dtype=np.uint8)
    acc = np.zeros(plan.out_samples, dtype=np.uint16)
    out = np.zeros(plan.out_samples, dtype=np.uint8)

    for y in range(plan.pad_height):
        # Past the bottom of the image the buffer still holds the last real
        # scanline, already padded, which stands in for the missing rows.
        if y < plan.in_height:
            if not reader.read_scanline(scan):
                return False
            pad_scanline(scan, plan.in_width, plan.pad_count, channels)

        if y % sval == 0:
            acc.fill(0)

        mix_scanline(scan, acc, plan.out_width, sval, channels)

        if y % sval == sval - 1:
            average_blit(acc, out, sval)
            writer.write_scanline(out)
    return True


def shrink(
    in_stream,
    out_stream,
    sval: int,
    quality: int = DEFAULT_QUALITY,
    bounds: Optional[ShrinkBounds] = None,
    *,
    reader_factory: ReaderFactory = JpegReader,
    writer_factory: WriterFactory = JpegWriter,
    force_windowed: bool = False,
) -> ShrinkResult:
    """
    Shrinks an image by an integer factor with a box filter, one scanline at a time.

    The input is padded to a multiple of sval on the right and bottom by
    duplicating the last pixel and the last scanline, then each sval x sval
    block is averaged into one output pixel (integer division, truncating).
    Memory use depends on the image width only.

    Args:
        in_stream: Source handed to reader_factory (a binary stream for the
            file codecs, a numpy image for ArrayReader).
        out_stream: Sink handed to writer_factory.
        sval: Reduction factor in [1, MAXSHRINK]. 1 re-encodes unchanged pixels.
        quality: Output quality hint in [0, 100], interpreted by the writer.
        bounds: Optional limits on the output size, checked before anything
            is written.
        reader_factory: Builds the scanline reader from in_stream.
        writer_factory: Builds the scanline writer as
            writer_factory(out_stream, width, height, channels, quality).
        force_windowed: Run the windowed path even when sval is 1.

    Returns:
        A ShrinkResult. A decoder failure carries the reader's error code; an
        output size outside bounds yields CONSTRAINTS_VIOLATED and no output.
    """
    check_sval(sval)
    if not 0 <= quality <= 100:
        raise ValueError(f"quality must be in [0, 100], got {quality}")

    reader = None
    writer = None
    try:
        reader = reader_factory(in_stream)
        if reader.status != DecodeError.OK:
            logger.warning("cannot open input: %s", errstr(reader.status))
            return ShrinkResult(Status.DECODER_ERROR, reader.status)

        plan = plan_dimensions(reader.width, reader.height, reader.channels, sval)
        logger.debug(
            "plan: %dx%d x%d -> %dx%d (pad %d px, %d rows)",
            plan.in_width,
            plan.in_height,
            plan.channels,
            plan.out_width,
            plan.out_height,
            plan.pad_count,
            plan.pad_height,
        )

        if not check_bounds(plan.out_width, plan.out_height, bounds):
            logger.warning(
                "output %dx%d violates bounds %s", plan.out_width, plan.out_height, bounds
            )
            return ShrinkResult(Status.CONSTRAINTS_VIOLATED, plan=plan)

        writer = writer_factory(out_stream, plan.out_width, plan.out_height, plan.channels, quality)

        if sval == 1 and not force_windowed:
            completed = _copy_scanlines(reader, writer, plan)
        else:
            completed = _reduce_scanlines(reader, writer, plan)

        if not completed:
            logger.warning("decoding failed: %s", errstr(reader.status))
            return ShrinkResult(Status.DECODER_ERROR, reader.status, plan)

        logger.info(
            "shrunk %dx%d to %dx%d (factor %d)",
            plan.in_width,
            plan.in_height,
            plan.out_width,
            plan.out_height,
            sval,
        )
        return ShrinkResult(Status.OK, plan=plan)
    finally:
        if writer is not None:
            writer.close()
        if reader is not None:
            reader.close()


def echo(in_stream, out_stream, quality: int = DEFAULT_QUALITY, **kwargs) -> ShrinkResult:
    """Decodes and re-encodes an image without scaling."""
    return shrink(in_stream, out_stream, 1, quality, **kwargs)


def shrink_with_params(in_stream, out_stream, params: ShrinkParams, **kwargs) -> ShrinkResult:
    """Runs shrink with the codec pair and settings named by params."""
    try:
        reader_factory, writer_factory = CODECS[params.image_format]
    except KeyError:
        raise ValueError(f"unknown image format: {params.image_format}")
    kwargs.setdefault("reader_factory", reader_factory)
    kwargs.setdefault("writer_factory", writer_factory)
    return shrink(in_stream, out_stream, params.sval, params.quality, params.bounds, **kwargs)
