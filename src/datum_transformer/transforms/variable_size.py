"""Variable sized transforms: random resize, then random or center crop.

These run before the fixed size pipeline on images whose dimensions differ
from sample to sample, and leave every image at ``crop_size x crop_size``.
"""

from __future__ import annotations

import numpy as np
from PIL import Image

from datum_transformer.config import TransformConfig
from datum_transformer.errors import InternalError, InvalidConfigError
from datum_transformer.rng import RandomSequencer
from datum_transformer.transforms.functional import crop, resize

__all__ = ["apply_variable_sized", "center_crop", "random_crop", "random_resize"]


def random_resize(
    img: np.ndarray, lower: int, upper: int, sequencer: RandomSequencer
) -> np.ndarray:
    """Rescale so the short side is uniform in ``[lower, upper]``.

    Downscaling uses pixel-area (box) interpolation and upscaling uses cubic
    interpolation; an unchanged size is a no-op.
    """
    if lower <= 0 or upper <= 0:
        raise InvalidConfigError("random resize bounds must be positive")
    resize_size = sequencer.randint(lower, upper)
    img_height, img_width = img.shape[:2]
    short_side = img_height if img_width >= img_height else img_width
    scale = resize_size / short_side
    resize_height = round(scale * img_height)
    resize_width = round(scale * img_width)

    if resize_height < img_height or resize_width < img_width:
        if scale > 1.0 or resize_height > img_height or resize_width > img_width:
            raise InternalError(
                f"inconsistent downscale: ({img_width}, {img_height}) => "
                f"({resize_width}, {resize_height})"
            )
        return resize(img, resize_height, resize_width, Image.Resampling.BOX)
    if resize_height > img_height or resize_width > img_width:
        if scale < 1.0:
            raise InternalError(
                f"inconsistent upscale: ({img_width}, {img_height}) => "
                f"({resize_width}, {resize_height})"
            )
        return resize(img, resize_height, resize_width, Image.Resampling.BICUBIC)
    if resize_height == img_height and resize_width == img_width:
        return img
    raise InternalError(
        f"unreachable random resize shape: ({img_width}, {img_height}) => "
        f"({resize_width}, {resize_height})"
    )


def _check_crop(img: np.ndarray, crop_size: int) -> None:
    if crop_size <= 0:
        raise InvalidConfigError("crop size parameter must be positive")
    if img.shape[0] < crop_size or img.shape[1] < crop_size:
        raise InvalidConfigError(
            f"crop size {crop_size} must not exceed the image size "
            f"{img.shape[0]}x{img.shape[1]}"
        )


def random_crop(
    img: np.ndarray, crop_size: int, sequencer: RandomSequencer
) -> np.ndarray:
    """``crop_size`` square at uniform offsets in ``[0, H - crop]``, ``[0, W - crop]``."""
    _check_crop(img, crop_size)
    offset_h = sequencer.randint(0, img.shape[0] - crop_size)
    offset_w = sequencer.randint(0, img.shape[1] - crop_size)
    return crop(img, offset_h, offset_w, crop_size, crop_size)


def center_crop(img: np.ndarray, crop_size: int) -> np.ndarray:
    _check_crop(img, crop_size)
    offset_h = (img.shape[0] - crop_size) // 2
    offset_w = (img.shape[1] - crop_size) // 2
    return crop(img, offset_h, offset_w, crop_size, crop_size)


def apply_variable_sized(
    img: np.ndarray, config: TransformConfig, sequencer: RandomSequencer
) -> np.ndarray:
    """Apply the enabled steps in their fixed order."""
    if config.random_resize_enabled:
        img = random_resize(
            img,
            config.img_rand_resize_lower,
            config.img_rand_resize_upper,
            sequencer,
        )
    if config.random_crop_enabled:
        img = random_crop(img, config.crop_size, sequencer)
    if config.center_crop_enabled:
        img = center_crop(img, config.crop_size)
    return img
