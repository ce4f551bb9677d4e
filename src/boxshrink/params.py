from dataclasses import asdict, dataclass, field
from typing import Dict

# Largest supported width or height of an image, in pixels.
MAXDIM = 32000

# Largest reduction factor. An sval x sval window of 8-bit samples must fit
# in one accumulator sample.
MAXSHRINK = 16
ACC_MAX = 65535
if MAXSHRINK * MAXSHRINK * 255 > ACC_MAX:
    raise ImportError("accumulator too narrow for MAXSHRINK")

MIN_QUALITY = 25
MAX_QUALITY = 90
DEFAULT_QUALITY = 90

# Value of an output bound that is not set.
UNSET = -1

IMAGE_FORMATS = ("jpeg", "png")


@dataclass(frozen=True)
class ShrinkBounds:
    max_long: int = UNSET
    max_short: int = UNSET
    max_width: int = UNSET
    max_height: int = UNSET
    max_pixels: int = UNSET

    def __post_init__(self):
        for name, value in asdict(self).items():
            if int(value) < UNSET:
                raise ValueError(f"{name} must be -1 (unset) or non-negative, got {value}")

    def is_unconstrained(self) -> bool:
        return all(v == UNSET for v in asdict(self).values())


@dataclass
class ShrinkParams:
    sval: int = 2
    quality: int = DEFAULT_QUALITY
    image_format: str = "jpeg"  # jpeg|png
    bounds: ShrinkBounds = field(default_factory=ShrinkBounds)

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict) -> "ShrinkParams":
        d = dict(d)
        bounds = ShrinkBounds(**d.pop("bounds", {}))
        return cls(bounds=bounds, **d)
