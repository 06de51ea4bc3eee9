"""Seedable augmentation and normalization of labeled image samples."""

from datum_transformer.config import Phase, TransformConfig
from datum_transformer.errors import (
    InternalError,
    InvalidConfigError,
    PreconditionError,
    TransformError,
    UnsupportedOperationError,
)
from datum_transformer.mean import MeanReference, load_mean_file
from datum_transformer.rng import RandomSequencer, SeedSource
from datum_transformer.transformer import DataTransformer
from datum_transformer.transforms.conversion import ToPlanarTensor
from datum_transformer.types import EncodedImage, RandomDraws, RawImage, Shape

__version__ = "0.0.1"

__all__ = [
    "DataTransformer",
    "EncodedImage",
    "InternalError",
    "InvalidConfigError",
    "MeanReference",
    "Phase",
    "PreconditionError",
    "RandomDraws",
    "RandomSequencer",
    "RawImage",
    "SeedSource",
    "Shape",
    "ToPlanarTensor",
    "TransformConfig",
    "TransformError",
    "UnsupportedOperationError",
    "__version__",
    "load_mean_file",
]
