"""Command-line entrypoint for datum_transformer.

Usage:
    datum-transform inputs='[img0.jpg,img1.png]'                 # defaults
    datum-transform inputs='[img0.jpg]' transform.crop_size=224  # override
    datum-transform inputs='[img0.jpg]' transform.phase=TEST output=batch.pt
"""

import sys
from pathlib import Path

import hydra
import torch
from hydra.utils import to_absolute_path
from loguru import logger
from omegaconf import DictConfig, OmegaConf

# CRITICAL: import config to trigger @register before Hydra parses config
from datum_transformer.config import TransformConfig
from datum_transformer.errors import InvalidConfigError
from datum_transformer.rng import SeedSource
from datum_transformer.transformer import DataTransformer
from datum_transformer.types import EncodedImage


@hydra.main(version_base=None, config_path="conf", config_name="transform")
def main(cfg: DictConfig) -> None:
    """Transform the configured images and save the batch."""
    logger.remove()
    logger.add(sys.stderr, level=cfg.get("log_level", "INFO"))

    logger.info(f"Configuration:\n{OmegaConf.to_yaml(cfg)}")

    config: TransformConfig = hydra.utils.instantiate(cfg.transform)
    dtype = getattr(torch, cfg.get("dtype", "float32"))
    if not isinstance(dtype, torch.dtype):
        raise InvalidConfigError(f"Unknown dtype: {cfg.dtype}")

    paths = [Path(to_absolute_path(p)) for p in cfg.inputs]
    if not paths:
        raise InvalidConfigError("No inputs given; pass inputs='[a.jpg,b.jpg]'")

    transformer = DataTransformer(config, seed_source=SeedSource(cfg.get("seed", 0)))
    samples = [EncodedImage(data=p.read_bytes()) for p in paths]
    batch = transformer.make_batch(samples, dtype=dtype)

    output = Path(to_absolute_path(cfg.output))
    output.parent.mkdir(parents=True, exist_ok=True)
    torch.save(batch, output)
    logger.info(
        f"Saved {tuple(batch['images'].shape)} {batch['images'].dtype} batch to {output}"
    )


if __name__ == "__main__":
    main()
