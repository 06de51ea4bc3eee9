"""Mean reference subtracted from every sample before scaling."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import torch
from loguru import logger

from datum_transformer.config import TransformConfig
from datum_transformer.errors import InvalidConfigError

__all__ = ["MeanReference", "load_mean_file"]


def load_mean_file(path: str | Path) -> np.ndarray:
    """Load a per-pixel mean saved as ``.npy`` or as a torch tensor (``.pt``).

    A leading ``num == 1`` axis is dropped, so both ``(C, H, W)`` and
    ``(1, C, H, W)`` arrays are accepted.

    Returns:
        Float32 array of shape ``(C, H, W)``.
    """
    path = Path(path)
    logger.info(f"Loading mean file from: {path}")
    if not path.is_file():
        raise InvalidConfigError(f"mean file not found: {path}")
    if path.suffix in (".pt", ".pth"):
        tensor = torch.load(path, map_location="cpu", weights_only=True)
        array = tensor.detach().numpy()
    else:
        array = np.load(path, allow_pickle=False)
    array = np.asarray(array, dtype=np.float32)
    if array.ndim == 4 and array.shape[0] == 1:
        array = array[0]
    if array.ndim != 3:
        raise InvalidConfigError(
            f"mean file {path} must hold a (C, H, W) array, got shape {array.shape}"
        )
    return array


class MeanReference:
    """Either a per-pixel ``(C, H, W)`` array or a list of per-channel values.

    Read-only after construction; safe to share between workers.
    """

    def __init__(
        self,
        per_pixel: np.ndarray | None = None,
        per_channel: tuple[float, ...] = (),
    ) -> None:
        if per_pixel is not None and per_channel:
            raise InvalidConfigError(
                "Cannot specify mean_file and mean_values at the same time"
            )
        self.per_pixel: np.ndarray | None = None
        if per_pixel is not None:
            self.per_pixel = np.array(per_pixel, dtype=np.float32, order="C")
            self.per_pixel.setflags(write=False)
        self.per_channel: tuple[float, ...] = tuple(float(v) for v in per_channel)

    @classmethod
    def from_config(
        cls, config: TransformConfig, mean: np.ndarray | None = None
    ) -> MeanReference:
        """Resolve the configured mean source.

        Args:
            config: Pipeline configuration.
            mean: Already-loaded per-pixel mean; bypasses ``config.mean_file``.
        """
        if mean is not None:
            if config.mean_values:
                raise InvalidConfigError(
                    "Cannot specify mean_file and mean_values at the same time"
                )
            return cls(per_pixel=mean)
        if config.mean_file is not None:
            return cls(per_pixel=load_mean_file(config.mean_file))
        return cls(per_channel=config.mean_values)

    @property
    def has_file(self) -> bool:
        return self.per_pixel is not None

    @property
    def has_values(self) -> bool:
        return bool(self.per_channel)

    def __bool__(self) -> bool:
        return self.has_file or self.has_values

    def check_image(self, channels: int, height: int, width: int) -> None:
        """Per-pixel means must match the pre-crop sample exactly."""
        if self.per_pixel is None:
            return
        if self.per_pixel.shape != (channels, height, width):
            raise InvalidConfigError(
                f"mean reference has shape {self.per_pixel.shape}, sample is "
                f"({channels}, {height}, {width})"
            )

    def for_channels(self, channels: int) -> np.ndarray:
        """Per-channel means as a ``(channels, 1, 1)`` array.

        A single value is broadcast to every channel; the owned list is never
        extended in place.
        """
        if len(self.per_channel) not in (1, channels):
            raise InvalidConfigError(
                f"Specify either 1 mean_value or as many as channels: {channels}"
            )
        values = np.asarray(self.per_channel, dtype=np.float32)
        return np.broadcast_to(values, (channels,)).reshape(channels, 1, 1)

    def __repr__(self) -> str:
        if self.per_pixel is not None:
            return f"MeanReference(per_pixel={self.per_pixel.shape})"
        return f"MeanReference(per_channel={list(self.per_channel)})"
