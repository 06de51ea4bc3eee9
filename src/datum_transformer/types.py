"""Sample types and small value objects shared across the pipeline."""

from __future__ import annotations

from typing import NamedTuple, TypedDict

import numpy as np
import torch
from pydantic import BaseModel, ConfigDict, model_validator

from datum_transformer.errors import InvalidConfigError

__all__ = [
    "EncodedImage",
    "RandomDraws",
    "RawImage",
    "Sample",
    "Shape",
    "TransformedBatch",
]


class Shape(NamedTuple):
    """``(num, channels, height, width)``; 0 height/width means unresolved."""

    num: int
    channels: int
    height: int
    width: int


class RandomDraws(NamedTuple):
    """The three draws taken per raw sample, always in this order.

    A value of 0 means the consuming transform was disabled when drawn.
    """

    mirror: int
    crop_h: int
    crop_w: int


class RawImage(BaseModel, frozen=True):
    """Undecoded pixels stored planar (channel-major), ``index = (c*H + h)*W + w``.

    Exactly one of ``data`` (8-bit samples) and ``float_data`` is set.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    channels: int
    height: int
    width: int
    data: bytes | np.ndarray | None = None
    float_data: np.ndarray | None = None
    label: float | None = None

    @model_validator(mode="after")
    def _check_payload(self) -> RawImage:
        if (self.data is None) == (self.float_data is None):
            raise InvalidConfigError(
                "RawImage needs exactly one of 'data' and 'float_data'"
            )
        expected = self.channels * self.height * self.width
        size = len(self.data) if isinstance(self.data, bytes) else self.payload.size
        if size != expected:
            raise InvalidConfigError(
                f"RawImage payload has {size} values, expected "
                f"{self.channels}x{self.height}x{self.width} = {expected}"
            )
        return self

    @property
    def is_uint8(self) -> bool:
        return self.data is not None

    @property
    def payload(self) -> np.ndarray:
        """Flat view of the pixel values (``uint8`` or ``float32``)."""
        if isinstance(self.data, bytes):
            return np.frombuffer(self.data, dtype=np.uint8)
        if self.data is not None:
            return np.asarray(self.data, dtype=np.uint8).reshape(-1)
        return np.asarray(self.float_data, dtype=np.float32).reshape(-1)

    def planar(self) -> np.ndarray:
        """Pixel values reshaped to ``(channels, height, width)``."""
        return self.payload.reshape(self.channels, self.height, self.width)

    @property
    def shape(self) -> Shape:
        return Shape(1, self.channels, self.height, self.width)


class EncodedImage(BaseModel, frozen=True):
    """Compressed image bytes (JPEG, PNG, ...) plus an optional label."""

    data: bytes
    label: float | None = None


Sample = RawImage | EncodedImage


class TransformedBatch(TypedDict):
    """A batch written by the batch driver.

    images: Tensor of shape (N, C, H, W) in planar layout.
    labels: Float tensor of shape (N,), copied from the samples.
    """

    images: torch.Tensor
    labels: torch.Tensor
