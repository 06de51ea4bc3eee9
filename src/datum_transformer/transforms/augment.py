"""Randomized augmentation of decoded images: rotation, resize, colour jitter.

``draw_augmentation`` takes every random value up front, in a fixed order, and
``apply_augmentation`` consumes them.  All stages operate on ``(H, W, C)``
``uint8`` arrays and saturate to ``[0, 255]``.
"""

from __future__ import annotations

from enum import IntEnum
from typing import NamedTuple

import numpy as np
from PIL import Image, ImageFilter

from datum_transformer.config import FixedResize, RandomResize, TransformConfig
from datum_transformer.rng import RandomSequencer
from datum_transformer.shapes import min_side_size
from datum_transformer.transforms.functional import apply_per_channel, resize

__all__ = [
    "AugmentationParams",
    "SmoothKind",
    "adjust_contrast_brightness",
    "apply_augmentation",
    "draw_augmentation",
    "resize_min_side",
    "rotate",
    "shift_channels",
    "smooth",
]


class SmoothKind(IntEnum):
    GAUSSIAN = 0
    BLUR = 1
    MEDIAN = 2
    BOX_FILTER = 3


class AugmentationParams(NamedTuple):
    """Every randomized decision for one decoded image."""

    mirror: bool = False
    angle: int = 0
    min_side: int | None = None
    channel_shifts: tuple[int, ...] | None = None
    subtract_shift: bool = False
    alpha: float | None = None
    beta: int = 0
    smooth_kind: SmoothKind | None = None
    smooth_size: int = 0


def draw_augmentation(
    config: TransformConfig, sequencer: RandomSequencer, channels: int
) -> AugmentationParams:
    """Draw the parameters of one image.

    In the train phase the mirror bit and the three stage probabilities
    (contrast/brightness, smoothing, channel shift) are always drawn first so
    that enabling one stage never shifts the draws of another.  A stage fires
    when configured and its probability exceeds ``1 - apply_probability``.
    """
    mirror = do_brightness = do_smooth = do_color_shift = False
    if config.is_train and sequencer.initialized:
        mirror_bit = sequencer.rand(2)
        threshold = 1.0 - config.apply_probability
        p_brightness = sequencer.uniform()
        p_smooth = sequencer.uniform()
        p_color_shift = sequencer.uniform()
        mirror = config.mirror and mirror_bit == 1
        do_brightness = config.contrast_brightness_adjustment and p_brightness > threshold
        do_smooth = (
            config.smooth_filtering and config.max_smooth > 1 and p_smooth > threshold
        )
        do_color_shift = config.max_color_shift > 0 and p_color_shift > threshold

    angle = 0
    if config.rotation_enabled:
        angle = sequencer.randint(-config.max_rotation_angle, config.max_rotation_angle)

    min_side = None
    bounds = config.resize_bounds
    if isinstance(bounds, RandomResize):
        min_side = sequencer.randint(bounds.lower, bounds.upper)
    elif isinstance(bounds, FixedResize):
        min_side = bounds.min_side

    channel_shifts = None
    subtract_shift = False
    if do_color_shift:
        channel_shifts = tuple(
            sequencer.rand(config.max_color_shift + 1) for _ in range(channels)
        )
        subtract_shift = sequencer.rand(2) == 1

    alpha = None
    beta = 0
    if do_brightness:
        alpha = sequencer.uniform(config.min_contrast, config.max_contrast)
        beta = sequencer.randint(-config.max_brightness_shift, config.max_brightness_shift)

    smooth_kind = None
    smooth_size = 0
    if do_smooth:
        smooth_kind = SmoothKind(sequencer.rand(4))
        smooth_size = 1 + 2 * sequencer.rand(max(1, int(config.max_smooth / 2)))

    return AugmentationParams(
        mirror=mirror,
        angle=angle,
        min_side=min_side,
        channel_shifts=channel_shifts,
        subtract_shift=subtract_shift,
        alpha=alpha,
        beta=beta,
        smooth_kind=smooth_kind,
        smooth_size=smooth_size,
    )


def rotate(img: np.ndarray, angle: float) -> np.ndarray:
    """Rotate counter-clockwise about the centre, growing the canvas to fit."""
    if not angle:
        return img
    return apply_per_channel(
        img,
        lambda p: p.rotate(angle, resample=Image.Resampling.BILINEAR, expand=True),
    )


def resize_min_side(img: np.ndarray, min_side: int) -> np.ndarray:
    """Scale so the shorter side equals ``min_side``; the long side rounds up."""
    height, width = min_side_size(img.shape[0], img.shape[1], min_side)
    return resize(img, height, width)


def shift_channels(
    img: np.ndarray, shifts: tuple[int, ...], subtract: bool
) -> np.ndarray:
    """Add (or subtract) a constant per channel, saturating."""
    delta = np.asarray(shifts, dtype=np.int16).reshape(1, 1, -1)
    if subtract:
        delta = -delta
    return np.clip(img.astype(np.int16) + delta, 0, 255).astype(np.uint8)


def adjust_contrast_brightness(img: np.ndarray, alpha: float, beta: int) -> np.ndarray:
    """``pixel * alpha + beta``, rounded and saturated."""
    out = img.astype(np.float32) * np.float32(alpha) + np.float32(beta)
    return np.clip(np.rint(out), 0, 255).astype(np.uint8)


def smooth(img: np.ndarray, kind: SmoothKind, size: int) -> np.ndarray:
    """Blur with an odd ``size`` kernel (the box filter uses ``2 * size``)."""
    if kind == SmoothKind.BOX_FILTER:
        return apply_per_channel(img, lambda p: p.filter(ImageFilter.BoxBlur(size - 0.5)))
    if size <= 1:
        return img
    if kind == SmoothKind.GAUSSIAN:
        # sigma derived from the kernel size as for a zero-sigma Gaussian kernel
        sigma = 0.3 * ((size - 1) * 0.5 - 1) + 0.8
        return apply_per_channel(img, lambda p: p.filter(ImageFilter.GaussianBlur(sigma)))
    if kind == SmoothKind.BLUR:
        return apply_per_channel(img, lambda p: p.filter(ImageFilter.BoxBlur((size - 1) / 2)))
    return apply_per_channel(img, lambda p: p.filter(ImageFilter.MedianFilter(size)))


def apply_augmentation(img: np.ndarray, params: AugmentationParams) -> np.ndarray:
    """Rotation, resize, channel shift, contrast/brightness, smoothing."""
    if params.angle:
        img = rotate(img, params.angle)
    if params.min_side:
        img = resize_min_side(img, params.min_side)
    if params.channel_shifts is not None:
        img = shift_channels(img, params.channel_shifts, params.subtract_shift)
    if params.alpha is not None:
        img = adjust_contrast_brightness(img, params.alpha, params.beta)
    if params.smooth_kind is not None:
        img = smooth(img, params.smooth_kind, params.smooth_size)
    return img
