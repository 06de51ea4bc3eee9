"""Pydantic frozen configuration model for datum_transformer."""

from collections.abc import Mapping
from enum import Enum
from typing import Any, Literal, NamedTuple

from omegaconf import DictConfig, OmegaConf
from pydantic import BaseModel, Field, model_validator

from datum_transformer.errors import InvalidConfigError
from datum_transformer.utils.hydra import register

__all__ = ["FixedResize", "Phase", "RandomResize", "TransformConfig"]


class Phase(str, Enum):
    """TRAIN permits randomized transforms; TEST is centered and deterministic."""

    TRAIN = "TRAIN"
    TEST = "TEST"


class FixedResize(NamedTuple):
    min_side: int


class RandomResize(NamedTuple):
    lower: int
    upper: int


@register(group="transform", name="default", _convert_="all")
class TransformConfig(BaseModel, frozen=True):
    """Recognized options of a transform pipeline.

    All fields are validated at construction time. Frozen — no mutation after
    creation, so one instance may be shared read-only by every worker.

    Cross-field contradictions raise ``InvalidConfigError``; single-field
    range violations (negative sizes, probabilities outside ``[0, 1]``) raise
    pydantic's ``ValidationError``.
    """

    phase: Phase = Phase.TRAIN
    crop_size: int = Field(default=0, ge=0)
    mirror: bool = False
    scale: float = 1.0

    mean_file: str | None = None
    mean_values: tuple[float, ...] = ()

    force_color: bool = False
    force_gray: bool = False

    # >= 0 fixes the generator seed; negative draws one from a SeedSource
    random_seed: int = -1

    # Resize-to-min-side of decoded images (fixed size pipeline)
    min_side: int = Field(default=0, ge=0)
    min_side_min: int = Field(default=0, ge=0)
    min_side_max: int = Field(default=0, ge=0)

    # Random resize of the variable sized pipeline
    img_rand_resize_lower: int = Field(default=0, ge=0)
    img_rand_resize_upper: int = Field(default=0, ge=0)

    max_rotation_angle: int = Field(default=0, ge=0)

    contrast_brightness_adjustment: bool = False
    min_contrast: float = Field(default=0.8, ge=0.0)
    max_contrast: float = Field(default=1.2, ge=0.0)
    max_brightness_shift: int = Field(default=5, ge=0)

    smooth_filtering: bool = False
    max_smooth: float = Field(default=6.0, ge=0.0)

    max_color_shift: int = Field(default=0, ge=0)

    apply_probability: float = Field(default=0.5, ge=0.0, le=1.0)

    use_gpu_transform: bool = False
    var_sz_img_enabled: bool = False
    debug_params: bool = False

    @model_validator(mode="after")
    def _check_exclusive_options(self) -> "TransformConfig":
        if self.force_color and self.force_gray:
            raise InvalidConfigError("cannot set both force_color and force_gray")
        if self.mean_file is not None and self.mean_values:
            raise InvalidConfigError(
                "Cannot specify mean_file and mean_values at the same time"
            )
        if (self.img_rand_resize_lower == 0) != (self.img_rand_resize_upper == 0):
            raise InvalidConfigError(
                "random resize 'lower' and 'upper' parameters must either "
                "both be zero or both be nonzero"
            )
        if self.img_rand_resize_lower > self.img_rand_resize_upper:
            raise InvalidConfigError(
                f"img_rand_resize_lower ({self.img_rand_resize_lower}) must not "
                f"exceed img_rand_resize_upper ({self.img_rand_resize_upper})"
            )
        if (self.min_side_min == 0) != (self.min_side_max == 0):
            raise InvalidConfigError(
                "min_side_min and min_side_max must either both be zero or both "
                "be nonzero"
            )
        if self.min_side_min > self.min_side_max:
            raise InvalidConfigError(
                f"min_side_min ({self.min_side_min}) must not exceed "
                f"min_side_max ({self.min_side_max})"
            )
        if self.min_contrast > self.max_contrast:
            raise InvalidConfigError(
                f"min_contrast ({self.min_contrast}) must not exceed "
                f"max_contrast ({self.max_contrast})"
            )
        return self

    @classmethod
    def from_dictconfig(cls, cfg: DictConfig | Mapping[str, Any]) -> "TransformConfig":
        """Build from a Hydra/OmegaConf node, ignoring ``_target_``-style keys."""
        data: Any = cfg
        if isinstance(cfg, DictConfig):
            data = OmegaConf.to_container(cfg, resolve=True)
        if not isinstance(data, Mapping):
            raise InvalidConfigError(
                f"transform config must be a mapping, got {type(data).__name__}"
            )
        fields = {str(k): v for k, v in data.items() if not str(k).startswith("_")}
        return cls(**fields)

    # ------------------------------------------------------------------
    # Resolved views
    # ------------------------------------------------------------------
    @property
    def is_train(self) -> bool:
        return self.phase == Phase.TRAIN

    @property
    def resize_bounds(self) -> FixedResize | RandomResize | None:
        """Resize-to-min-side mode of the fixed size pipeline."""
        if self.min_side_min and self.min_side_max:
            return RandomResize(self.min_side_min, self.min_side_max)
        if self.min_side:
            return FixedResize(self.min_side)
        return None

    @property
    def mean_mode(self) -> Literal["file", "values"] | None:
        if self.mean_file is not None:
            return "file"
        if self.mean_values:
            return "values"
        return None

    @property
    def random_resize_enabled(self) -> bool:
        return self.img_rand_resize_lower != 0 and self.img_rand_resize_upper != 0

    @property
    def random_crop_enabled(self) -> bool:
        return self.is_train and self.crop_size > 0

    @property
    def center_crop_enabled(self) -> bool:
        return self.phase == Phase.TEST and self.crop_size > 0

    @property
    def rotation_enabled(self) -> bool:
        return self.is_train and self.max_rotation_angle > 0

    @property
    def jitter_enabled(self) -> bool:
        """Whether any colour jitter stage can fire during training."""
        return self.is_train and (
            self.contrast_brightness_adjustment
            or (self.smooth_filtering and self.max_smooth > 1)
            or self.max_color_shift > 0
        )

    @property
    def needs_random(self) -> bool:
        """Whether some enabled transform consumes random draws."""
        return (
            self.mirror
            or self.random_crop_enabled
            or self.rotation_enabled
            or self.jitter_enabled
            or self.random_resize_enabled
            or isinstance(self.resize_bounds, RandomResize)
        )
