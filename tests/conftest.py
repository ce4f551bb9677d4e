"""Pytest configuration and shared fixtures."""
import io

import cv2
import numpy as np
import pytest
from PIL import Image

from boxshrink.codec.memory import ArrayReader, ArrayWriter
from boxshrink.pipeline import shrink


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def grid4x4():
    """4x4 grayscale image with values 10..160 in row-major order."""
    return np.arange(10, 170, 10, dtype=np.uint8).reshape(4, 4)


@pytest.fixture
def reference_shrink():
    """Whole-image box filter used as an oracle for the streaming path."""

    def _reference(img: np.ndarray, s: int) -> np.ndarray:
        h, w = img.shape[:2]
        oh, ow = -(-h // s), -(-w // s)
        pad = [(0, oh * s - h), (0, ow * s - w)] + [(0, 0)] * (img.ndim - 2)
        padded = np.pad(img.astype(np.int64), pad, mode="edge")
        if img.ndim == 2:
            sums = padded.reshape(oh, s, ow, s).sum(axis=(1, 3))
        else:
            sums = padded.reshape(oh, s, ow, s, img.shape[2]).sum(axis=(1, 3))
        return (sums // (s * s)).astype(np.uint8)

    return _reference


@pytest.fixture
def run_shrink():
    """Runs shrink through the in-memory codec and returns (result, output image)."""

    def _run(img: np.ndarray, sval: int, **kwargs):
        out = io.BytesIO()
        kwargs.setdefault("reader_factory", ArrayReader)
        kwargs.setdefault("writer_factory", ArrayWriter)
        result = shrink(img, out, sval, **kwargs)
        data = out.getvalue()
        if not result.ok or not data:
            return result, None
        plan = result.plan
        shape = (plan.out_height, plan.out_width)
        if plan.channels == 3:
            shape += (3,)
        return result, np.frombuffer(data, dtype=np.uint8).reshape(shape)

    return _run


@pytest.fixture
def jpeg_bytes():
    def _encode(arr: np.ndarray, quality: int = 95) -> bytes:
        bio = io.BytesIO()
        Image.fromarray(arr).save(bio, format="JPEG", quality=quality)
        return bio.getvalue()

    return _encode


@pytest.fixture
def png_bytes():
    def _encode(arr: np.ndarray) -> bytes:
        """Encodes an RGB, RGBA or grayscale array as PNG."""
        if arr.ndim == 3 and arr.shape[2] == 3:
            arr = cv2.cvtColor(arr, cv2.COLOR_RGB2BGR)
        elif arr.ndim == 3 and arr.shape[2] == 4:
            arr = cv2.cvtColor(arr, cv2.COLOR_RGBA2BGRA)
        ok, buf = cv2.imencode(".png", arr)
        assert ok
        return buf.tobytes()

    return _encode
