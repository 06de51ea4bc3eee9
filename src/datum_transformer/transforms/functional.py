"""Pixel primitives on ``(H, W, C)`` ``uint8`` arrays.

Pillow only understands a handful of channel layouts, so every filter and
geometric op runs on each channel as an ``L`` image and the planes are
stacked back.  Pillow's multi-band ops are per-band anyway, so the result is
the same as running them on an RGB image.
"""

from __future__ import annotations

from collections.abc import Callable

import numpy as np
from PIL import Image

from datum_transformer.errors import InvalidConfigError

__all__ = ["apply_per_channel", "crop", "resize"]


def apply_per_channel(
    img: np.ndarray, fn: Callable[[Image.Image], Image.Image]
) -> np.ndarray:
    """Run ``fn`` on every channel of ``img`` and restack the results."""
    if img.dtype != np.uint8:
        raise InvalidConfigError(f"expected a uint8 image, got {img.dtype}")
    planes = [
        np.asarray(fn(Image.fromarray(np.ascontiguousarray(img[:, :, c]))))
        for c in range(img.shape[2])
    ]
    return np.stack(planes, axis=2).astype(np.uint8, copy=False)


def resize(
    img: np.ndarray,
    height: int,
    width: int,
    resample: Image.Resampling = Image.Resampling.BILINEAR,
) -> np.ndarray:
    """Resize to ``height x width``."""
    if img.shape[0] == height and img.shape[1] == width:
        return img
    return apply_per_channel(img, lambda p: p.resize((width, height), resample))


def crop(img: np.ndarray, top: int, left: int, height: int, width: int) -> np.ndarray:
    """Copy of the ``height x width`` region whose top-left corner is ``(top, left)``."""
    if top < 0 or left < 0 or top + height > img.shape[0] or left + width > img.shape[1]:
        raise InvalidConfigError(
            f"crop ({top}, {left}, {height}, {width}) outside image "
            f"{img.shape[0]}x{img.shape[1]}"
        )
    return np.ascontiguousarray(img[top : top + height, left : left + width])
