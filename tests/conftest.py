"""Shared pytest fixtures for datum_transformer tests."""

import io

import numpy as np
import pytest
from PIL import Image

from datum_transformer.types import EncodedImage, RawImage


def make_raw(planar: np.ndarray, label: float | None = None) -> RawImage:
    """Wrap a ``(C, H, W)`` uint8 array as a raw sample."""
    channels, height, width = planar.shape
    return RawImage(
        channels=channels,
        height=height,
        width=width,
        data=planar.astype(np.uint8).tobytes(),
        label=label,
    )


def encode_png(img: np.ndarray) -> bytes:
    """Losslessly encode an ``(H, W, C)`` or ``(H, W)`` uint8 array."""
    if img.ndim == 3 and img.shape[2] == 1:
        img = img[:, :, 0]
    buf = io.BytesIO()
    Image.fromarray(img).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture()
def gray_4x4() -> RawImage:
    """Single-channel 4x4 raw sample holding 0..15 row-major."""
    return make_raw(np.arange(16, dtype=np.uint8).reshape(1, 4, 4), label=3)


@pytest.fixture()
def rgb_planar() -> np.ndarray:
    """Random (3, 6, 8) uint8 planar pixels."""
    rng = np.random.default_rng(0)
    return rng.integers(0, 256, (3, 6, 8), dtype=np.uint8)


@pytest.fixture()
def rgb_sample(rgb_planar: np.ndarray) -> RawImage:
    return make_raw(rgb_planar, label=1)


@pytest.fixture()
def rgb_image() -> np.ndarray:
    """Random (8, 10, 3) uint8 decoded image."""
    rng = np.random.default_rng(1)
    return rng.integers(0, 256, (8, 10, 3), dtype=np.uint8)


@pytest.fixture()
def encoded_rgb(rgb_image: np.ndarray) -> EncodedImage:
    return EncodedImage(data=encode_png(rgb_image), label=2)
