from dataclasses import dataclass
from typing import Optional

from ..params import MAXDIM, MAXSHRINK, UNSET, ShrinkBounds


@dataclass(frozen=True)
class ShrinkPlan:
    in_width: int
    in_height: int
    channels: int
    sval: int
    out_width: int
    out_height: int
    pad_count: int  # duplicated pixels appended to every scanline
    pad_height: int  # input rows visited, including duplicated bottom rows

    @property
    def padded_width(self) -> int:
        return self.out_width * self.sval

    @property
    def out_samples(self) -> int:
        return self.out_width * self.channels


def check_sval(sval: int) -> None:
    if not 1 <= sval <= MAXSHRINK:
        raise ValueError(f"reduction factor must be in [1, {MAXSHRINK}], got {sval}")


def plan_dimensions(in_width: int, in_height: int, channels: int, sval: int) -> ShrinkPlan:
    """
    Computes the output size of a shrink and the padding it needs.

    Each dimension is rounded up to a multiple of sval by duplicating the last
    pixel (or scanline), then divided by sval. With sval == 1 the output is
    the input and nothing is padded.
    """
    check_sval(sval)
    if not (1 <= in_width <= MAXDIM and 1 <= in_height <= MAXDIM):
        raise ValueError(f"image dimensions out of range: {in_width}x{in_height}")
    if channels not in (1, 3):
        raise ValueError(f"channels must be 1 or 3, got {channels}")

    if sval == 1:
        out_width, out_height = in_width, in_height
    else:
        out_width = -(-in_width // sval)
        out_height = -(-in_height // sval)

    return ShrinkPlan(
        in_width=in_width,
        in_height=in_height,
        channels=channels,
        sval=sval,
        out_width=out_width,
        out_height=out_height,
        pad_count=out_width * sval - in_width,
        pad_height=out_height * sval,
    )


def check_bounds(out_width: int, out_height: int, bounds: Optional[ShrinkBounds]) -> bool:
    """Returns True when the output size satisfies every set bound."""
    if bounds is None:
        return True

    if out_height > out_width:
        long_dim, short_dim = out_height, out_width
    else:
        long_dim, short_dim = out_width, out_height
    pixels = out_width * out_height

    limits = (
        (bounds.max_long, long_dim),
        (bounds.max_short, short_dim),
        (bounds.max_width, out_width),
        (bounds.max_height, out_height),
        (bounds.max_pixels, pixels),
    )
    return all(limit == UNSET or value <= limit for limit, value in limits)
