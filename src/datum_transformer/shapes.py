"""Output shape inference without materializing pixels."""

from __future__ import annotations

import math

from datum_transformer.codec import ImageDecoder
from datum_transformer.config import FixedResize, TransformConfig
from datum_transformer.errors import InvalidConfigError, UnsupportedOperationError
from datum_transformer.types import EncodedImage, Sample, Shape

__all__ = [
    "force_color_flag",
    "infer_image_shape",
    "infer_output_shape",
    "infer_sample_shape",
    "infer_variable_sized_shape",
    "min_side_size",
]


def force_color_flag(config: TransformConfig) -> bool | None:
    """Decoder colour argument: ``True`` colour, ``False`` gray, ``None`` native."""
    if config.force_color:
        return True
    if config.force_gray:
        return False
    return None


def infer_sample_shape(
    sample: Sample,
    config: TransformConfig,
    decoder: ImageDecoder | None = None,
) -> Shape:
    """Shape of a single sample before any transform (``num`` is always 1)."""
    if isinstance(sample, EncodedImage):
        if decoder is None:
            raise UnsupportedOperationError(
                "Encoded sample requires an image decoder"
            )
        return decoder.peek_shape(sample.data, force_color_flag(config))
    return Shape(1, sample.channels, sample.height, sample.width)


def min_side_size(height: int, width: int, min_side: int) -> tuple[int, int]:
    """Height and width once the shorter side is scaled to ``min_side``.

    The longer side rounds up.
    """
    if height <= width:
        k = height / min_side
        return min_side, math.ceil(width / k)
    k = width / min_side
    return math.ceil(height / k), min_side


def infer_image_shape(sample_shape: Shape, config: TransformConfig) -> Shape:
    """Shape of a decoded image after the deterministic augmentation stages.

    Only a fixed resize-to-min-side is folded in; a random min side or a
    rotation is only pinned down by a crop.
    """
    bounds = config.resize_bounds
    if not isinstance(bounds, FixedResize):
        return sample_shape
    num, channels, height, width = sample_shape
    height, width = min_side_size(height, width, bounds.min_side)
    return Shape(num, channels, height, width)


def infer_output_shape(
    sample_shape: Shape,
    config: TransformConfig,
    device_mode: bool = False,
) -> Shape:
    """Shape written by a transform call for a sample of ``sample_shape``.

    The device path crops inside its kernel, so in ``device_mode`` the
    un-cropped height and width (the staging shape) are returned.
    """
    _, channels, height, width = sample_shape
    crop_size = config.crop_size
    if channels <= 0:
        raise InvalidConfigError(f"sample must have channels, got {channels}")
    if height < crop_size or width < crop_size:
        raise InvalidConfigError(
            f"crop_size {crop_size} exceeds sample size {height}x{width}"
        )
    if device_mode or not crop_size:
        return Shape(1, channels, height, width)
    return Shape(1, channels, crop_size, crop_size)


def infer_variable_sized_shape(
    sample_shape: Shape, config: TransformConfig
) -> Shape:
    """Walk random resize -> random crop -> center crop.

    A random resize leaves height and width unresolved (0); only a following
    crop makes the shape concrete.
    """
    shape = Shape(1, *sample_shape[1:])
    if config.random_resize_enabled:
        shape = Shape(1, shape.channels, 0, 0)
    if config.random_crop_enabled or config.center_crop_enabled:
        shape = Shape(1, shape.channels, config.crop_size, config.crop_size)
    if shape.height == 0:
        raise InvalidConfigError(
            "variable sized transform has invalid output height; "
            "did you forget to crop?"
        )
    if shape.width == 0:
        raise InvalidConfigError(
            "variable sized transform has invalid output width; "
            "did you forget to crop?"
        )
    return shape
