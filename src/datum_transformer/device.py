"""Device offload of the crop / mirror / mean / scale stage.

Given the same ``RandomDraws`` as the host path, the raw sample is staged
into device memory on a dedicated stream and transformed there with torch
ops.  The call synchronizes the stream before returning, so it behaves
synchronously for the caller.
"""

from __future__ import annotations

import contextlib

import numpy as np
import torch
from loguru import logger
from torchvision.transforms.v2 import functional as F

from datum_transformer.config import TransformConfig
from datum_transformer.errors import InvalidConfigError
from datum_transformer.mean import MeanReference
from datum_transformer.transforms.planar import crop_offsets
from datum_transformer.types import RandomDraws

__all__ = ["DeviceTransform"]


class DeviceTransform:
    """Crop, mirror, mean subtraction and scale on a torch device.

    Args:
        config: Pipeline configuration (crop size, mirror, scale, phase).
        mean: Mean reference; per-pixel means are copied to the device once.
        device: Target device.  CPU devices run the same kernel without a
            stream, which keeps the path testable on hosts without CUDA.
    """

    def __init__(
        self,
        config: TransformConfig,
        mean: MeanReference,
        device: torch.device | str = "cuda",
    ) -> None:
        self.config = config
        self.mean = mean
        self.device = torch.device(device)
        self._mean_file: torch.Tensor | None = None
        if mean.per_pixel is not None:
            self._mean_file = torch.from_numpy(mean.per_pixel.copy()).to(self.device)
        logger.debug(f"DeviceTransform ready on {self.device}")

    @property
    def uses_stream(self) -> bool:
        return self.device.type == "cuda"

    def _stage(self, planar: np.ndarray) -> torch.Tensor:
        """Copy the raw sample into a short-lived device buffer."""
        host = torch.from_numpy(np.ascontiguousarray(planar))
        if self.uses_stream:
            host = host.pin_memory()
        return host.to(self.device, non_blocking=self.uses_stream)

    def _kernel(
        self,
        staged: torch.Tensor,
        out: torch.Tensor,
        draws: RandomDraws,
    ) -> None:
        channels, height, width = staged.shape
        out_height, out_width = out.shape[-2:]
        h_off, w_off = crop_offsets(
            height, width, self.config.crop_size, self.config.is_train, draws
        )
        mirror = self.config.mirror and draws.mirror % 2 == 1

        values = F.crop(staged, h_off, w_off, out_height, out_width).to(out.dtype)
        if self._mean_file is not None:
            self.mean.check_image(channels, height, width)
            mean = F.crop(self._mean_file, h_off, w_off, out_height, out_width)
            values = values - mean.to(out.dtype)
        elif self.mean.has_values:
            mean_values = torch.from_numpy(self.mean.for_channels(channels).copy())
            values = values - mean_values.to(device=self.device, dtype=out.dtype)
        if self.config.scale != 1.0:
            values = values * self.config.scale
        if mirror:
            values = F.horizontal_flip(values)
        out.copy_(values)

    def __call__(
        self, planar: np.ndarray, out: torch.Tensor, draws: RandomDraws
    ) -> None:
        """Transform a planar ``(C, H, W)`` sample into the device region ``out``."""
        if out.device.type != self.device.type:
            raise InvalidConfigError(
                f"output region lives on {out.device}, expected {self.device}"
            )
        stream = None
        if self.uses_stream:
            stream = torch.cuda.Stream(device=self.device)
            # pending writes to ``out`` were queued on the caller's stream
            stream.wait_stream(torch.cuda.current_stream(self.device))
        ctx = torch.cuda.stream(stream) if stream is not None else contextlib.nullcontext()
        with ctx:
            staged = self._stage(planar)
            self._kernel(staged, out, draws)
        if stream is not None:
            stream.synchronize()
