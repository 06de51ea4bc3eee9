"""Tests for the decoded-image augmentation stages."""

from __future__ import annotations

import numpy as np
import pytest

from datum_transformer.config import Phase, TransformConfig
from datum_transformer.rng import RandomSequencer
from datum_transformer.transforms.augment import (
    AugmentationParams,
    SmoothKind,
    adjust_contrast_brightness,
    apply_augmentation,
    draw_augmentation,
    resize_min_side,
    rotate,
    shift_channels,
    smooth,
)


def _sequencer(config: TransformConfig, seed: int = 0) -> RandomSequencer:
    seq = RandomSequencer()
    seq.init(config.needs_random, seed)
    return seq


@pytest.fixture()
def flat_image() -> np.ndarray:
    return np.full((12, 12, 3), 90, dtype=np.uint8)


# --- draw_augmentation ---


class TestDrawAugmentation:
    def test_test_phase_draws_nothing(self) -> None:
        cfg = TransformConfig(phase=Phase.TEST, contrast_brightness_adjustment=True)
        params = draw_augmentation(cfg, _sequencer(cfg), 3)
        assert params == AugmentationParams()

    def test_fixed_min_side_needs_no_randomness(self) -> None:
        cfg = TransformConfig(phase=Phase.TEST, min_side=32)
        params = draw_augmentation(cfg, _sequencer(cfg), 3)
        assert params.min_side == 32

    def test_min_side_range(self) -> None:
        cfg = TransformConfig(phase=Phase.TEST, min_side_min=10, min_side_max=20)
        seq = _sequencer(cfg, seed=4)
        for _ in range(20):
            assert 10 <= draw_augmentation(cfg, seq, 3).min_side <= 20  # type: ignore[operator]

    def test_deterministic_with_seed(self) -> None:
        cfg = TransformConfig(
            mirror=True,
            max_rotation_angle=15,
            contrast_brightness_adjustment=True,
            smooth_filtering=True,
            max_color_shift=20,
            apply_probability=1.0,
        )
        a = draw_augmentation(cfg, _sequencer(cfg, 42), 3)
        b = draw_augmentation(cfg, _sequencer(cfg, 42), 3)
        assert a == b

    def test_probability_one_enables_all(self) -> None:
        cfg = TransformConfig(
            contrast_brightness_adjustment=True,
            smooth_filtering=True,
            max_color_shift=20,
            apply_probability=1.0,
        )
        params = draw_augmentation(cfg, _sequencer(cfg, 3), 3)
        assert params.alpha is not None
        assert 0.8 <= params.alpha <= 1.2
        assert -5 <= params.beta <= 5
        assert params.smooth_kind is not None
        assert params.smooth_size % 2 == 1
        assert params.channel_shifts is not None
        assert len(params.channel_shifts) == 3
        assert all(0 <= s <= 20 for s in params.channel_shifts)

    def test_probability_zero_disables_all(self) -> None:
        cfg = TransformConfig(
            contrast_brightness_adjustment=True,
            smooth_filtering=True,
            max_color_shift=20,
            apply_probability=0.0,
        )
        params = draw_augmentation(cfg, _sequencer(cfg, 3), 3)
        assert params.alpha is None
        assert params.smooth_kind is None
        assert params.channel_shifts is None

    def test_rotation_angle_bounds(self) -> None:
        cfg = TransformConfig(max_rotation_angle=10)
        seq = _sequencer(cfg, 8)
        for _ in range(50):
            assert -10 <= draw_augmentation(cfg, seq, 1).angle <= 10

    def test_enabling_mirror_keeps_jitter_draws(self) -> None:
        base = TransformConfig(contrast_brightness_adjustment=True, apply_probability=1.0)
        mirrored = base.model_copy(update={"mirror": True})
        a = draw_augmentation(base, _sequencer(base, 21), 3)
        b = draw_augmentation(mirrored, _sequencer(mirrored, 21), 3)
        assert a.alpha == b.alpha
        assert a.beta == b.beta
        assert a.mirror is False


# --- stages ---


class TestRotate:
    def test_zero_angle_is_noop(self, flat_image: np.ndarray) -> None:
        assert rotate(flat_image, 0) is flat_image

    def test_quarter_turn_swaps_dimensions(self) -> None:
        img = np.zeros((4, 6, 3), dtype=np.uint8)
        assert rotate(img, 90).shape == (6, 4, 3)

    def test_canvas_grows_to_fit(self) -> None:
        img = np.full((20, 20, 1), 200, dtype=np.uint8)
        out = rotate(img, 45)
        assert out.shape[0] > 20 and out.shape[1] > 20
        # corners of the expanded canvas are background
        assert out[0, 0, 0] == 0


class TestResizeMinSide:
    def test_landscape(self) -> None:
        img = np.zeros((8, 10, 3), dtype=np.uint8)
        assert resize_min_side(img, 4).shape == (4, 5, 3)

    def test_portrait(self) -> None:
        img = np.zeros((10, 8, 3), dtype=np.uint8)
        assert resize_min_side(img, 4).shape == (5, 4, 3)

    def test_long_side_rounds_up(self) -> None:
        img = np.zeros((3, 7, 1), dtype=np.uint8)
        assert resize_min_side(img, 2).shape == (2, 5, 1)


class TestColorJitter:
    def test_shift_add_saturates(self) -> None:
        img = np.array([[[250, 10, 0]]], dtype=np.uint8)
        out = shift_channels(img, (10, 5, 0), subtract=False)
        assert out.tolist() == [[[255, 15, 0]]]

    def test_shift_subtract_saturates(self) -> None:
        img = np.array([[[5, 10, 200]]], dtype=np.uint8)
        out = shift_channels(img, (10, 5, 0), subtract=True)
        assert out.tolist() == [[[0, 5, 200]]]

    def test_contrast_brightness(self) -> None:
        img = np.array([[[100], [200], [0]]], dtype=np.uint8)
        out = adjust_contrast_brightness(img, 1.5, 3)
        assert out.ravel().tolist() == [153, 255, 3]
        assert out.dtype == np.uint8

    def test_negative_brightness_saturates(self) -> None:
        img = np.array([[[2]]], dtype=np.uint8)
        assert adjust_contrast_brightness(img, 1.0, -5).item() == 0


class TestSmooth:
    @pytest.mark.parametrize("kind", list(SmoothKind))
    def test_flat_image_unchanged(self, flat_image: np.ndarray, kind: SmoothKind) -> None:
        out = smooth(flat_image, kind, 3)
        assert out.shape == flat_image.shape
        assert out.dtype == np.uint8
        assert np.abs(out.astype(int) - 90).max() <= 1

    def test_blur_spreads_impulse(self) -> None:
        img = np.zeros((9, 9, 1), dtype=np.uint8)
        img[4, 4, 0] = 255
        out = smooth(img, SmoothKind.BLUR, 3)
        assert out[4, 4, 0] < 255
        assert out[3, 3, 0] > 0

    def test_median_removes_impulse(self) -> None:
        img = np.zeros((9, 9, 1), dtype=np.uint8)
        img[4, 4, 0] = 255
        assert (smooth(img, SmoothKind.MEDIAN, 3) == 0).all()

    def test_unit_kernel_is_noop(self, flat_image: np.ndarray) -> None:
        assert smooth(flat_image, SmoothKind.GAUSSIAN, 1) is flat_image


class TestApplyAugmentation:
    def test_default_params_noop(self, flat_image: np.ndarray) -> None:
        assert apply_augmentation(flat_image, AugmentationParams()) is flat_image

    def test_resize_stage(self, flat_image: np.ndarray) -> None:
        out = apply_augmentation(flat_image, AugmentationParams(min_side=6))
        assert out.shape == (6, 6, 3)

    def test_jitter_stages_compose(self, flat_image: np.ndarray) -> None:
        params = AugmentationParams(channel_shifts=(10, 0, 0), alpha=2.0, beta=-5)
        out = apply_augmentation(flat_image, params)
        assert (out[..., 0] == 195).all()
        assert (out[..., 1] == 175).all()
