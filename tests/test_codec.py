"""Tests for the Pillow decode adapter."""

import numpy as np
import pytest
from conftest import encode_png

from datum_transformer.codec import (
    ImageDecoder,
    image_to_planar,
    image_to_raw,
    planar_to_image,
)
from datum_transformer.errors import UnsupportedOperationError
from datum_transformer.types import EncodedImage


class TestImageDecoder:
    def test_decode_native_rgb(
        self, rgb_image: np.ndarray, encoded_rgb: EncodedImage
    ) -> None:
        decoded = ImageDecoder().decode(encoded_rgb.data)
        assert decoded.dtype == np.uint8
        np.testing.assert_array_equal(decoded, rgb_image)

    def test_decode_native_gray_has_one_channel(self) -> None:
        gray = np.arange(12, dtype=np.uint8).reshape(3, 4)
        decoded = ImageDecoder().decode(encode_png(gray))
        assert decoded.shape == (3, 4, 1)
        np.testing.assert_array_equal(decoded[:, :, 0], gray)

    def test_force_gray(self, encoded_rgb: EncodedImage) -> None:
        decoded = ImageDecoder().decode(encoded_rgb.data, force_color=False)
        assert decoded.shape == (8, 10, 1)

    def test_force_color(self) -> None:
        gray = np.full((3, 4), 77, dtype=np.uint8)
        decoded = ImageDecoder().decode(encode_png(gray), force_color=True)
        assert decoded.shape == (3, 4, 3)
        assert (decoded == 77).all()

    def test_garbage_bytes(self) -> None:
        with pytest.raises(UnsupportedOperationError, match="could not decode"):
            ImageDecoder().decode(b"definitely not an image")

    def test_peek_shape_matches_decode(self, encoded_rgb: EncodedImage) -> None:
        decoder = ImageDecoder()
        shape = decoder.peek_shape(encoded_rgb.data)
        decoded = decoder.decode(encoded_rgb.data)
        assert (shape.height, shape.width, shape.channels) == decoded.shape


class TestLayout:
    def test_image_to_planar(self, rgb_image: np.ndarray) -> None:
        planar = image_to_planar(rgb_image)
        assert planar.shape == (3, 8, 10)
        assert planar[2, 5, 7] == rgb_image[5, 7, 2]
        assert planar.flags["C_CONTIGUOUS"]

    def test_planar_to_image_inverts(self, rgb_image: np.ndarray) -> None:
        np.testing.assert_array_equal(
            planar_to_image(image_to_planar(rgb_image)), rgb_image
        )

    def test_image_to_raw(self, rgb_image: np.ndarray) -> None:
        raw = image_to_raw(rgb_image, label=4)
        assert (raw.channels, raw.height, raw.width) == (3, 8, 10)
        assert raw.label == 4
        np.testing.assert_array_equal(raw.planar(), image_to_planar(rgb_image))
