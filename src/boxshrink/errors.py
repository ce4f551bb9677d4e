from enum import Enum, IntEnum


class DecodeError(IntEnum):
    OK = 0
    LIBJ = 1  # codec error while reading the header
    IDIM = 2  # image dimensions out of range
    CCNT = 3  # unsupported channel count
    READ = 4  # codec error while decoding scanlines


_MESSAGES = {
    DecodeError.OK: "No error",
    DecodeError.LIBJ: "Error reading header of image file",
    DecodeError.IDIM: "Image dimensions out of range",
    DecodeError.CCNT: "Invalid number of color channels",
    DecodeError.READ: "Error decoding image file",
}


def errstr(code: int) -> str:
    """Returns the user-facing message for a decoder status code."""
    try:
        return _MESSAGES[DecodeError(code)]
    except ValueError:
        return "Unknown error"


class Status(Enum):
    OK = "ok"
    DECODER_ERROR = "decoder_error"
    CONSTRAINTS_VIOLATED = "constraints_violated"


CONSTRAINTS_MESSAGE = "Constraints not satisfied"


class ShrinkError(RuntimeError):
    """Raised by ShrinkResult.raise_for_status() when a shrink failed."""

    def __init__(self, result):
        super().__init__(result.message)
        self.result = result
