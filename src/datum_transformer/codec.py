"""Pillow-backed decode adapter and layout conversions.

Decoded images are ``(H, W, C)`` ``uint8`` arrays (interleaved); raw samples
and output tensors are planar ``(C, H, W)``.
"""

from __future__ import annotations

import io

import numpy as np
from PIL import Image, UnidentifiedImageError

from datum_transformer.errors import UnsupportedOperationError
from datum_transformer.types import RawImage, Shape

__all__ = ["ImageDecoder", "image_to_planar", "image_to_raw", "planar_to_image"]

# Modes decoded natively; anything else (palette, CMYK, 16-bit) becomes RGB
_NATIVE_MODES = {"L": 1, "RGB": 3, "RGBA": 4}


class ImageDecoder:
    """Turn encoded bytes into an ``(H, W, C)`` ``uint8`` array.

    ``force_color=True`` decodes to 3 channels, ``False`` to 1 channel, and
    ``None`` keeps the stored channel count.
    """

    def _open(self, data: bytes) -> Image.Image:
        try:
            return Image.open(io.BytesIO(data))
        except (UnidentifiedImageError, OSError) as e:
            raise UnsupportedOperationError(f"could not decode image: {e}") from e

    @staticmethod
    def _target_mode(img: Image.Image, force_color: bool | None) -> str:
        if force_color is True:
            return "RGB"
        if force_color is False:
            return "L"
        return img.mode if img.mode in _NATIVE_MODES else "RGB"

    def decode(self, data: bytes, force_color: bool | None = None) -> np.ndarray:
        img = self._open(data)
        mode = self._target_mode(img, force_color)
        try:
            img = img.convert(mode)
        except OSError as e:
            raise UnsupportedOperationError(f"could not decode image: {e}") from e
        arr = np.asarray(img, dtype=np.uint8)
        if arr.ndim == 2:
            arr = arr[:, :, np.newaxis]
        return arr

    def peek_shape(self, data: bytes, force_color: bool | None = None) -> Shape:
        """Channels, height and width read from the header only."""
        img = self._open(data)
        mode = self._target_mode(img, force_color)
        width, height = img.size
        return Shape(1, _NATIVE_MODES[mode], height, width)


def image_to_planar(img: np.ndarray) -> np.ndarray:
    """``(H, W, C)`` to a contiguous ``(C, H, W)`` array."""
    if img.ndim == 2:
        img = img[:, :, np.newaxis]
    return np.ascontiguousarray(img.transpose(2, 0, 1))


def planar_to_image(planar: np.ndarray) -> np.ndarray:
    """``(C, H, W)`` to a contiguous ``(H, W, C)`` array."""
    return np.ascontiguousarray(planar.transpose(1, 2, 0))


def image_to_raw(img: np.ndarray, label: float | None = None) -> RawImage:
    """Wrap a decoded ``uint8`` image as a planar raw sample."""
    planar = image_to_planar(img)
    channels, height, width = planar.shape
    return RawImage(
        channels=channels,
        height=height,
        width=width,
        data=planar.astype(np.uint8).tobytes(),
        label=label,
    )
