"""Crop, mirror, mean subtraction and scale into planar output regions."""

from __future__ import annotations

import numpy as np

from datum_transformer.errors import InvalidConfigError
from datum_transformer.mean import MeanReference
from datum_transformer.types import RandomDraws

__all__ = ["crop_offsets", "check_output_shape", "write_planar"]


def crop_offsets(
    height: int,
    width: int,
    crop_size: int,
    is_train: bool,
    draws: RandomDraws | None = None,
) -> tuple[int, int]:
    """Top-left corner of the crop.

    Training takes the offsets from ``draws`` (modulo the valid range); testing
    centres the crop.  No crop, or a crop as large as the image, is ``(0, 0)``.
    """
    if not crop_size:
        return 0, 0
    if height < crop_size or width < crop_size:
        raise InvalidConfigError(
            f"crop_size {crop_size} exceeds image size {height}x{width}"
        )
    if is_train:
        if draws is None:
            raise InvalidConfigError("training crop needs random draws")
        return draws.crop_h % (height - crop_size + 1), draws.crop_w % (
            width - crop_size + 1
        )
    return (height - crop_size) // 2, (width - crop_size) // 2


def check_output_shape(
    out_shape: tuple[int, ...], channels: int, height: int, width: int, crop_size: int
) -> None:
    """Destination ``(C, H, W)`` must be the sample's size after cropping."""
    expected = (
        (channels, crop_size, crop_size) if crop_size else (channels, height, width)
    )
    if tuple(out_shape) != expected:
        raise InvalidConfigError(
            f"output region has shape {tuple(out_shape)}, expected {expected}"
        )


def write_planar(
    src: np.ndarray,
    out: np.ndarray,
    h_off: int,
    w_off: int,
    mirror: bool,
    mean: MeanReference,
    scale: float,
) -> None:
    """Write ``(src[crop] - mean) * scale`` into ``out``.

    Args:
        src: Planar ``(C, H, W)`` source, ``uint8`` or float.
        out: Planar ``(C, h, w)`` destination; its dtype is the arithmetic type.
        h_off: Crop offset along the height.
        w_off: Crop offset along the width.
        mirror: Flip horizontally (column ``w`` lands at ``w - 1 - w``).
        mean: Per-pixel means are read at the same absolute coordinate as the
            source pixel.
        scale: Multiplier applied after mean subtraction; skipped when 1.0.
    """
    channels, height, width = out.shape
    dtype = out.dtype
    mean.check_image(*src.shape)

    values = src[:, h_off : h_off + height, w_off : w_off + width].astype(dtype)
    if mean.per_pixel is not None:
        values -= mean.per_pixel[
            :, h_off : h_off + height, w_off : w_off + width
        ].astype(dtype)
    elif mean.has_values:
        values -= mean.for_channels(channels).astype(dtype)
    if scale != 1.0:
        values *= dtype.type(scale)
    if mirror:
        values = values[:, :, ::-1]
    out[...] = values
