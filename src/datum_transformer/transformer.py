"""Sample-to-tensor transform pipeline.

``DataTransformer`` turns one raw or encoded sample into a planar
``(C, H, W)`` region of a caller-owned tensor, optionally augmenting it on the
way.  Dispatch is over a closed set of inputs:

- **raw samples** take three pre-ordered random draws (mirror, crop height,
  crop width) and go through crop / mirror / mean / scale, on the host or on
  a torch device;
- **encoded samples** and already-decoded ``(H, W, C)`` arrays go through the
  augmenting image path (rotation, resize, colour jitter) before the same
  final stage.

An instance owns its random generator and is not meant to be shared between
threads; the configuration and mean reference may be.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np
import torch
from loguru import logger

from datum_transformer.codec import ImageDecoder, image_to_planar, image_to_raw
from datum_transformer.config import TransformConfig
from datum_transformer.device import DeviceTransform
from datum_transformer.errors import InvalidConfigError, UnsupportedOperationError
from datum_transformer.mean import MeanReference
from datum_transformer.rng import RandomSequencer, SeedSource
from datum_transformer.shapes import (
    force_color_flag,
    infer_image_shape,
    infer_output_shape,
    infer_sample_shape,
    infer_variable_sized_shape,
)
from datum_transformer.transforms.augment import apply_augmentation, draw_augmentation
from datum_transformer.transforms.planar import (
    check_output_shape,
    crop_offsets,
    write_planar,
)
from datum_transformer.transforms.variable_size import apply_variable_sized
from datum_transformer.types import (
    EncodedImage,
    RandomDraws,
    RawImage,
    Sample,
    Shape,
    TransformedBatch,
)

__all__ = ["DataTransformer"]

_NO_DRAWS = RandomDraws(0, 0, 0)


def _numpy_dtype(dtype: torch.dtype) -> np.dtype:
    return torch.empty(0, dtype=dtype).numpy().dtype


class DataTransformer:
    """Apply the configured transforms to samples, writing planar tensors.

    Args:
        config: Frozen pipeline configuration.
        mean: Already-loaded per-pixel mean ``(C, H, W)``; when omitted,
            ``config.mean_file`` is loaded instead.
        decoder: Image codec for encoded samples.  Defaults to the Pillow
            decoder unless ``enable_codec`` is ``False``.
        enable_codec: ``False`` rejects encoded samples with
            ``UnsupportedOperationError``.
        seed_source: Seed counter used when ``config.random_seed`` is negative.
        device: Device for the offload path.  ``None`` picks CUDA when
            ``config.use_gpu_transform`` is set and CUDA is available.
    """

    def __init__(
        self,
        config: TransformConfig,
        *,
        mean: np.ndarray | None = None,
        decoder: ImageDecoder | None = None,
        enable_codec: bool = True,
        seed_source: SeedSource | None = None,
        device: torch.device | str | None = None,
    ) -> None:
        self.config = config
        self.mean = MeanReference.from_config(config, mean)
        self.decoder = (decoder or ImageDecoder()) if enable_codec else None
        self._seed_source = seed_source
        self._sequencer = RandomSequencer()
        self._warned_force_flags = False

        if device is None and config.use_gpu_transform:
            if torch.cuda.is_available():
                device = "cuda"
            else:
                logger.warning(
                    "use_gpu_transform requested but CUDA is unavailable; "
                    "transforming on the host"
                )
        self._device_transform = (
            DeviceTransform(config, self.mean, device) if device is not None else None
        )

        self.init_rand()
        logger.info(
            f"DataTransformer: phase={config.phase.value}, "
            f"crop_size={config.crop_size}, mirror={config.mirror}, "
            f"scale={config.scale}, mean={self.mean!r}, "
            f"device={self.device or 'host'}"
        )

    # ------------------------------------------------------------------
    # Randomness
    # ------------------------------------------------------------------
    def init_rand(self) -> None:
        """(Re)create the generator, or clear it when nothing is random."""
        self._sequencer.init(
            self.config.needs_random, self.config.random_seed, self._seed_source
        )

    @property
    def sequencer(self) -> RandomSequencer:
        return self._sequencer

    def draw_three(self) -> RandomDraws:
        """Mirror and crop draws for one raw sample."""
        if not self._sequencer.initialized:
            return _NO_DRAWS
        return self._sequencer.draw_three(
            mirror=self.config.mirror, crop=self.config.random_crop_enabled
        )

    @property
    def device(self) -> torch.device | None:
        if self._device_transform is None:
            return None
        return self._device_transform.device

    # ------------------------------------------------------------------
    # Shapes
    # ------------------------------------------------------------------
    def infer_sample_shape(self, sample: Sample) -> Shape:
        return infer_sample_shape(sample, self.config, self.decoder)

    def infer_output_shape(
        self, sample: Sample | Shape, device_mode: bool = False
    ) -> Shape:
        """Shape written for ``sample``, including the stages before the crop.

        Encoded samples take the image path, so a fixed resize-to-min-side is
        applied to their shape.  A bare ``Shape`` is treated as a raw sample.
        """
        shape = sample if isinstance(sample, Shape) else self.infer_sample_shape(sample)
        if self.config.var_sz_img_enabled:
            shape = infer_variable_sized_shape(shape, self.config)
        elif isinstance(sample, EncodedImage):
            shape = infer_image_shape(shape, self.config)
        return infer_output_shape(shape, self.config, device_mode)

    def infer_variable_sized_shape(self, sample_shape: Shape) -> Shape:
        return infer_variable_sized_shape(sample_shape, self.config)

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------
    def decode(self, sample: EncodedImage) -> np.ndarray:
        """Decode to an ``(H, W, C)`` ``uint8`` array."""
        if self.decoder is None:
            raise UnsupportedOperationError(
                "Encoded sample requires an image codec; none is configured"
            )
        return self.decoder.decode(sample.data, force_color_flag(self.config))

    def _check_force_flags(self) -> None:
        if (self.config.force_color or self.config.force_gray) and not (
            self._warned_force_flags
        ):
            logger.error("force_color and force_gray only apply to encoded samples")
            self._warned_force_flags = True

    def _as_image(self, sample: Sample) -> np.ndarray:
        if isinstance(sample, EncodedImage):
            return self.decode(sample)
        if not sample.is_uint8:
            raise InvalidConfigError("image transforms need 8-bit samples")
        return np.ascontiguousarray(sample.planar().transpose(1, 2, 0))

    # ------------------------------------------------------------------
    # Variable sized transforms
    # ------------------------------------------------------------------
    def variable_sized_transforms(self, sample: Sample) -> RawImage:
        """Random resize, random crop and center crop; returns a raw sample."""
        img = self._as_image(sample)
        img = apply_variable_sized(img, self.config, self._sequencer)
        return image_to_raw(img, label=sample.label)

    # ------------------------------------------------------------------
    # Output regions
    # ------------------------------------------------------------------
    @staticmethod
    def _region(out: torch.Tensor) -> torch.Tensor:
        """``(C, H, W)`` view of a 3-D region or the first item of a 4-D one."""
        if out.dim() == 4:
            if out.shape[0] < 1:
                raise InvalidConfigError("output tensor must hold at least one item")
            return out[0]
        if out.dim() != 3:
            raise InvalidConfigError(
                f"output region must be (C, H, W) or (N, C, H, W), got {tuple(out.shape)}"
            )
        return out

    def _uses_device(self, region: torch.Tensor) -> bool:
        return (
            self._device_transform is not None
            and region.device.type == self._device_transform.device.type
        )

    def _write_host(
        self,
        src: np.ndarray,
        region: torch.Tensor,
        h_off: int,
        w_off: int,
        mirror: bool,
    ) -> None:
        if region.device.type == "cpu":
            write_planar(
                src, region.detach().numpy(), h_off, w_off, mirror, self.mean,
                self.config.scale,
            )
            return
        staging = np.empty(tuple(region.shape), dtype=_numpy_dtype(region.dtype))
        write_planar(src, staging, h_off, w_off, mirror, self.mean, self.config.scale)
        region.copy_(torch.from_numpy(staging))

    def _transform_planar(
        self,
        src: np.ndarray,
        region: torch.Tensor,
        draws: RandomDraws,
        allow_device: bool,
    ) -> None:
        channels, height, width = src.shape
        if channels <= 0:
            raise InvalidConfigError(f"sample must have channels, got {channels}")
        check_output_shape(region.shape, channels, height, width, self.config.crop_size)
        device_transform = self._device_transform
        if allow_device and device_transform is not None and self._uses_device(region):
            device_transform(src, region, draws)
            return
        h_off, w_off = crop_offsets(
            height, width, self.config.crop_size, self.config.is_train, draws
        )
        mirror = self.config.mirror and draws.mirror % 2 == 1
        self._write_host(src, region, h_off, w_off, mirror)

    # ------------------------------------------------------------------
    # Single sample
    # ------------------------------------------------------------------
    def transform(self, item: Sample | np.ndarray, out: torch.Tensor) -> None:
        """Transform one sample (or decoded ``(H, W, C)`` image) into ``out``."""
        if isinstance(item, np.ndarray):
            self._transform_image(item, out)
            return
        if self.config.var_sz_img_enabled:
            item = self.variable_sized_transforms(item)
        if isinstance(item, EncodedImage):
            self._transform_image(self.decode(item), out)
            return
        self._check_force_flags()
        self._transform_planar(
            item.planar(), self._region(out), self.draw_three(), allow_device=True
        )

    def transform_with_draws(
        self,
        sample: Sample,
        out: torch.Tensor,
        draws: RandomDraws,
        output_labels: bool = False,
    ) -> float | None:
        """Crop / mirror / mean / scale using draws taken by the caller.

        Encoded samples are decoded but not augmented.  Returns the sample's
        label when ``output_labels`` is set.
        """
        if isinstance(sample, EncodedImage):
            src = image_to_planar(self.decode(sample))
            self._transform_planar(src, self._region(out), draws, allow_device=False)
        else:
            self._transform_planar(
                sample.planar(), self._region(out), draws, allow_device=True
            )
        return sample.label if output_labels else None

    def _transform_image(self, img: np.ndarray, out: torch.Tensor) -> None:
        if img.ndim == 2:
            img = img[:, :, np.newaxis]
        if img.dtype != np.uint8:
            raise InvalidConfigError(f"Image data type must be uint8, got {img.dtype}")
        if img.shape[2] <= 0:
            raise InvalidConfigError("image must have channels")

        params = draw_augmentation(self.config, self._sequencer, img.shape[2])
        img = apply_augmentation(img, params)
        if self.config.debug_params and self.config.is_train:
            logger.info(f"augmentation parameters: {params._asdict()}")

        height, width, channels = img.shape
        crop_size = self.config.crop_size
        region = self._region(out)
        check_output_shape(region.shape, channels, height, width, crop_size)
        draws = _NO_DRAWS
        if self.config.random_crop_enabled:
            draws = RandomDraws(0, self._sequencer.next(), self._sequencer.next())
        h_off, w_off = crop_offsets(
            height, width, crop_size, self.config.is_train, draws
        )
        self._write_host(image_to_planar(img), region, h_off, w_off, params.mirror)

    def copy(self, sample: Sample, out: torch.Tensor) -> int:
        """Copy pixels into ``out`` untransformed.

        Returns:
            Size in bytes of one source element: 1 for 8-bit data, 4 for
            float samples.
        """
        region = self._region(out)
        if isinstance(sample, EncodedImage):
            src = image_to_planar(self.decode(sample))
            element_size = 1
        else:
            self._check_force_flags()
            src = sample.planar()
            element_size = 1 if sample.is_uint8 else 4
        if tuple(region.shape) != src.shape:
            raise InvalidConfigError(
                f"output region has shape {tuple(region.shape)}, sample is {src.shape}"
            )
        region.copy_(torch.from_numpy(np.ascontiguousarray(src)))
        return element_size

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------
    def transform_batch(self, samples: Sequence[Sample], out: torch.Tensor) -> None:
        """Transform each sample into its own item of ``out``, in order."""
        if len(samples) == 0:
            raise InvalidConfigError("There is no sample to add")
        if out.dim() != 4 or len(samples) > out.shape[0]:
            raise InvalidConfigError(
                f"{len(samples)} samples do not fit an output of shape "
                f"{tuple(out.shape)}"
            )
        for item_id, sample in enumerate(samples):
            self.transform(sample, out[item_id])

    def transform_images(self, images: Sequence[np.ndarray], out: torch.Tensor) -> None:
        """Transform exactly ``out.shape[0]`` decoded images."""
        if len(images) == 0:
            raise InvalidConfigError("There is no image to add")
        if out.dim() != 4 or len(images) != out.shape[0]:
            raise InvalidConfigError(
                f"{len(images)} images must match an output of shape "
                f"{tuple(out.shape)}"
            )
        for item_id, img in enumerate(images):
            self._transform_image(img, out[item_id])

    def make_batch(
        self, samples: Sequence[Sample], dtype: torch.dtype = torch.float32
    ) -> TransformedBatch:
        """Allocate an output sized from the first sample and fill it."""
        if len(samples) == 0:
            raise InvalidConfigError("There is no sample to add")
        shape = self.infer_output_shape(samples[0])
        images = torch.empty((len(samples), *shape[1:]), dtype=dtype)
        self.transform_batch(samples, images)
        labels = torch.tensor(
            [math.nan if s.label is None else float(s.label) for s in samples],
            dtype=torch.float32,
        )
        return {"images": images, "labels": labels}

    def __repr__(self) -> str:
        return (
            f"DataTransformer(phase={self.config.phase.value}, "
            f"crop_size={self.config.crop_size}, mean={self.mean!r})"
        )
