"""Tests for image helpers."""
import base64

import numpy as np
import pytest

from classroll.core.exceptions import InvalidImageError
from classroll.core.utils.image import (
    bytes_to_numpy_array,
    crop_region,
    decode_base64_image,
    downscale_to_max_pixels,
)

from tests.fakes import make_photo


def test_decode_photo():
    image = bytes_to_numpy_array(make_photo([(0, 0, 10, 10, 200)], size=(30, 40)))

    assert image.shape == (30, 40, 3)
    assert image[5, 5, 0] == 200


@pytest.mark.parametrize("payload", [b"", b"definitely not a png"])
def test_undecodable_photo(payload):
    with pytest.raises(InvalidImageError):
        bytes_to_numpy_array(payload)


def test_base64_and_data_url():
    raw = b"\x89PNG rest"
    encoded = base64.b64encode(raw).decode()

    assert decode_base64_image(encoded) == raw
    assert decode_base64_image(f"data:image/png;base64,{encoded}") == raw
    with pytest.raises(InvalidImageError):
        decode_base64_image("not base64!")


def test_small_image_is_not_resized():
    image = np.zeros((10, 20, 3), dtype=np.uint8)

    resized, scale = downscale_to_max_pixels(image, 1000)

    assert resized is image
    assert scale == (1.0, 1.0)


def test_large_image_is_resized_within_budget():
    image = np.zeros((300, 400, 3), dtype=np.uint8)

    resized, (scale_x, scale_y) = downscale_to_max_pixels(image, 30000)

    height, width = resized.shape[:2]
    assert width * height <= 30000
    assert scale_x == pytest.approx(400 / width)
    assert scale_y == pytest.approx(300 / height)
    assert width / height == pytest.approx(4 / 3, rel=0.02)


def test_resize_scales_are_per_axis():
    image = np.zeros((101, 300, 3), dtype=np.uint8)

    resized, (scale_x, scale_y) = downscale_to_max_pixels(image, 10000)

    assert resized.shape[:2] == (58, 172)
    assert scale_x == pytest.approx(300 / 172)
    assert scale_y == pytest.approx(101 / 58)
    assert scale_x != pytest.approx(scale_y, rel=1e-4)


def test_crop_region_margin_is_clipped():
    image = np.zeros((100, 100, 3), dtype=np.uint8)

    assert crop_region(image, 10, 10, 20, 20, margin=0.5).shape[:2] == (40, 40)
    assert crop_region(image, 40, 40, 20, 20, margin=0.5).shape[:2] == (40, 40)
    assert crop_region(image, 200, 200, 10, 10).size == 0
