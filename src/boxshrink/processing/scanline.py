import numpy as np

from ..params import MAXSHRINK


def _check_channels(channels: int) -> None:
    if channels not in (1, 3):
        raise ValueError(f"channels must be 1 or 3, got {channels}")


def pad_scanline(scan: np.ndarray, in_width: int, pad_count: int, channels: int) -> None:
    """
    Pads a scanline in place by duplicating its last real pixel.

    Args:
        scan: uint8 buffer holding in_width real pixels followed by room for
            at least pad_count more.
        in_width: Number of real pixels at the start of the buffer.
        pad_count: Number of copies of the last pixel to append, in [0, MAXSHRINK].
        channels: Samples per pixel, 1 or 3.
    """
    _check_channels(channels)
    if not 0 <= pad_count <= MAXSHRINK:
        raise ValueError(f"pad_count must be in [0, {MAXSHRINK}], got {pad_count}")
    if pad_count == 0:
        return

    end = in_width * channels
    if scan.size < end + pad_count * channels:
        raise ValueError("scanline buffer too small for padding")
    last = scan[end - channels : end]
    scan[end : end + pad_count * channels] = np.tile(last, pad_count)


def mix_scanline(
    scan: np.ndarray,
    acc: np.ndarray,
    out_width: int,
    sval: int,
    channels: int,
) -> None:
    """
    Adds a padded scanline into the accumulator row.

    The first out_width * sval pixels of scan are split into out_width runs
    of sval pixels; the per-channel sum of run i lands in accumulator pixel i.
    The caller keeps the window small enough that acc cannot overflow.
    """
    _check_channels(channels)
    windows = scan[: out_width * sval * channels].reshape(out_width, sval, channels)
    acc_px = acc[: out_width * channels].reshape(out_width, channels)
    acc_px += windows.sum(axis=1, dtype=acc.dtype)


def average_blit(acc: np.ndarray, out: np.ndarray, sval: int) -> None:
    """Writes acc // sval**2, clamped to [0, 255], into the uint8 row out."""
    n = out.size
    averaged = np.floor_divide(acc[:n], sval * sval)
    out[:] = np.clip(averaged, 0, 255)
