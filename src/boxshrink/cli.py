"""
Command-line tools.

    jpeg-reduce [rval] [q]   shrink the image on stdin by rval, write it to stdout
    jpeg-echo [q]            re-encode the image on stdin to stdout

rval is in [1, 16]; q is in [0, 100] and defaults to 90. Metadata is not
carried over and the image is always fully re-encoded.
"""
import argparse
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from .logger import get_logger
from .params import DEFAULT_QUALITY, IMAGE_FORMATS, MAXSHRINK, UNSET, ShrinkBounds, ShrinkParams
from .pipeline import shrink_with_params
from .preset_management import load_preset


class UsageError(Exception):
    pass


class _ArgumentParser(argparse.ArgumentParser):
    """Reports bad arguments as UsageError instead of exiting with status 2."""

    def error(self, message):
        if message.startswith("unrecognized arguments"):
            raise UsageError("Wrong number of parameters")
        raise UsageError(message[:1].upper() + message[1:])


def _parse_int(text: str, what: str) -> int:
    try:
        return int(text, 10)
    except ValueError:
        raise UsageError(f"Can't parse {what}")


def _build_parser(prog: str, with_rval: bool) -> argparse.ArgumentParser:
    parser = _ArgumentParser(prog=prog, description=__doc__.strip().splitlines()[0])
    if with_rval:
        parser.add_argument("rval", nargs="?", help=f"reduction value, 1-{MAXSHRINK}")
    parser.add_argument("q", nargs="?", help="output quality, 0-100 (default 90)")
    parser.add_argument("--format", choices=IMAGE_FORMATS, help="image format (default jpeg)")
    parser.add_argument("--preset", help="load defaults from a saved preset")
    if with_rval:
        bounds = parser.add_argument_group("output bounds")
        for name in ("max-long", "max-short", "max-width", "max-height", "max-pixels"):
            bounds.add_argument(f"--{name}", type=int, default=None, metavar="N")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def _resolve_params(args: argparse.Namespace, with_rval: bool) -> ShrinkParams:
    params = ShrinkParams(sval=1)
    if args.preset:
        try:
            preset = load_preset(args.preset)
        except (ValueError, TypeError, AttributeError):
            raise UsageError(f"Invalid preset '{args.preset}'")
        if preset is None:
            raise UsageError(f"No preset named '{args.preset}'")
        if not all(isinstance(v, int) for v in (preset.sval, preset.quality)):
            raise UsageError(f"Invalid preset '{args.preset}'")
        params = preset

    if with_rval:
        if args.rval is not None:
            params.sval = _parse_int(args.rval, "reduction value")
        elif not args.preset:
            raise UsageError("Wrong number of parameters")
        if not 1 <= params.sval <= MAXSHRINK:
            raise UsageError("Reduction value out of range")

        overrides = {
            field: value
            for field, value in (
                ("max_long", args.max_long),
                ("max_short", args.max_short),
                ("max_width", args.max_width),
                ("max_height", args.max_height),
                ("max_pixels", args.max_pixels),
            )
            if value is not None
        }
        if any(v < UNSET for v in overrides.values()):
            raise UsageError("Bound value out of range")
        params.bounds = replace(params.bounds, **overrides)
    else:
        params.sval = 1
        params.bounds = ShrinkBounds()

    if args.q is not None:
        params.quality = _parse_int(args.q, "quality value")
    elif not args.preset:
        params.quality = DEFAULT_QUALITY
    if not 0 <= params.quality <= 100:
        raise UsageError("Quality value out of range")

    if args.format:
        params.image_format = args.format
    if params.image_format not in IMAGE_FORMATS:
        raise UsageError("Unknown image format")
    return params


def _run(prog: str, with_rval: bool, argv: Optional[List[str]], stdin, stdout) -> int:
    try:
        args = _build_parser(prog, with_rval).parse_args(argv)
        get_logger("boxshrink", logging.DEBUG if args.verbose else logging.WARNING)
        params = _resolve_params(args, with_rval)
    except UsageError as e:
        print(f"{prog}: {e}!", file=sys.stderr)
        return 1

    stdin = stdin if stdin is not None else sys.stdin.buffer
    stdout = stdout if stdout is not None else sys.stdout.buffer

    result = shrink_with_params(stdin, stdout, params)
    stdout.flush()
    if not result.ok:
        print(f"{prog}: {result.message}!", file=sys.stderr)
        return 1
    return 0


def reduce_main(argv: Optional[List[str]] = None, stdin=None, stdout=None) -> int:
    return _run("jpeg_reduce", True, argv, stdin, stdout)


def echo_main(argv: Optional[List[str]] = None, stdin=None, stdout=None) -> int:
    return _run("jpeg_echo", False, argv, stdin, stdout)


if __name__ == "__main__":
    sys.exit(reduce_main())
