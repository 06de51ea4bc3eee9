"""Pixel transforms used by the pipeline.

Stages operate on numpy arrays: decoded images are ``(H, W, C)`` ``uint8`` and
the planar writers take ``(C, H, W)`` sources.  The torchvision adapter lives
in ``datum_transformer.transforms.conversion``.
"""

from datum_transformer.transforms.augment import (
    AugmentationParams,
    SmoothKind,
    apply_augmentation,
    draw_augmentation,
)
from datum_transformer.transforms.planar import crop_offsets, write_planar
from datum_transformer.transforms.variable_size import (
    apply_variable_sized,
    center_crop,
    random_crop,
    random_resize,
)

__all__ = [
    "AugmentationParams",
    "SmoothKind",
    "apply_augmentation",
    "apply_variable_sized",
    "center_crop",
    "crop_offsets",
    "draw_augmentation",
    "random_crop",
    "random_resize",
    "write_planar",
]
