"""torchvision adapter around ``DataTransformer``."""

from __future__ import annotations

from typing import Any

import numpy as np
import torch
from PIL import Image
from torchvision.transforms import v2

from datum_transformer.config import RandomResize
from datum_transformer.errors import InvalidConfigError
from datum_transformer.shapes import infer_image_shape
from datum_transformer.transformer import DataTransformer
from datum_transformer.types import EncodedImage, RawImage, Shape


class ToPlanarTensor(v2.Transform):
    """Run a ``DataTransformer`` inside a torchvision v2 pipeline.

    Accepts a PIL image, an ``(H, W, C)`` ``uint8`` array or a sample and
    returns a freshly allocated ``(C, H, W)`` tensor.  PIL images and arrays
    take the augmenting image path.  Extra inputs (labels, targets) pass
    through unchanged.

    Args:
        transformer: Pipeline to apply.
        dtype: Output dtype.  Defaults to ``torch.float32``.
    """

    def __init__(
        self, transformer: DataTransformer, dtype: torch.dtype = torch.float32
    ) -> None:
        super().__init__()
        self.transformer = transformer
        self.dtype = dtype

    def _output_shape(self, item: RawImage | EncodedImage | np.ndarray) -> tuple[int, ...]:
        config = self.transformer.config
        if isinstance(item, RawImage):
            return tuple(self.transformer.infer_output_shape(item)[1:])
        varies = isinstance(config.resize_bounds, RandomResize) or config.rotation_enabled
        if config.crop_size == 0 and varies:
            # only a crop pins the size of a rotated or randomly resized image
            raise InvalidConfigError(
                "ToPlanarTensor needs crop_size when images are rotated or "
                "resized to a random min side"
            )
        if isinstance(item, np.ndarray):
            height, width, channels = item.shape
            if config.crop_size:
                return (channels, config.crop_size, config.crop_size)
            shape = infer_image_shape(Shape(1, channels, height, width), config)
            return (channels, shape.height, shape.width)
        return tuple(self.transformer.infer_output_shape(item)[1:])

    def forward(self, *inputs: Any) -> Any:
        item = inputs[0]
        rest = inputs[1:]

        if isinstance(item, Image.Image):
            item = np.asarray(item, dtype=np.uint8)
        if isinstance(item, np.ndarray) and item.ndim == 2:
            item = item[:, :, np.newaxis]
        if not isinstance(item, (np.ndarray, RawImage, EncodedImage)):
            raise TypeError(
                f"ToPlanarTensor expects a PIL Image, array or sample, got {type(item)}"
            )

        out = torch.empty(self._output_shape(item), dtype=self.dtype)
        self.transformer.transform(item, out)
        return (out, *rest) if rest else out
