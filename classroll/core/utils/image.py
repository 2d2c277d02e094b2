"""
Image processing utility functions.
"""
import base64
import binascii
import math
from typing import Tuple

import cv2
import numpy as np

from classroll.core.exceptions import InvalidImageError


def bytes_to_numpy_array(image_bytes: bytes, flags: int = cv2.IMREAD_COLOR) -> np.ndarray:
    """Convert image bytes to a numpy array.

    Args:
        image_bytes: Raw image bytes
        flags: OpenCV imread flags (default: COLOR)

    Returns:
        numpy.ndarray: Image as a BGR numpy array

    Raises:
        InvalidImageError: If the image cannot be decoded
    """
    if not image_bytes:
        raise InvalidImageError("Empty image payload")

    np_array = np.frombuffer(image_bytes, np.uint8)
    img = cv2.imdecode(np_array, flags)

    if img is None:
        raise InvalidImageError("Failed to decode image bytes")

    return img


def decode_base64_image(payload: str) -> bytes:
    """Decode a base64 image payload, accepting data URLs.

    Args:
        payload: Base64 string, optionally prefixed with ``data:image/...;base64,``

    Returns:
        Raw image bytes

    Raises:
        InvalidImageError: If the payload is not valid base64
    """
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImageError(f"Invalid base64 image payload: {e}")


def downscale_to_max_pixels(image: np.ndarray, max_pixels: int) -> Tuple[np.ndarray, Tuple[float, float]]:
    """Shrink an image so that it holds at most ``max_pixels`` pixels.

    Args:
        image: BGR image
        max_pixels: Pixel budget

    Returns:
        Tuple of (image, (scale_x, scale_y)) where the scales map resized
        coordinates back to the source image ((1.0, 1.0) when no resize happened)
    """
    height, width = image.shape[:2]
    pixels = width * height
    if pixels <= max_pixels:
        return image, (1.0, 1.0)

    scale = math.sqrt(max_pixels / pixels)
    new_width = max(1, int(width * scale))
    new_height = max(1, int(height * scale))
    resized = cv2.resize(image, (new_width, new_height), interpolation=cv2.INTER_AREA)
    return resized, (width / new_width, height / new_height)


def crop_region(
    image: np.ndarray,
    x: float,
    y: float,
    width: float,
    height: float,
    margin: float = 0.0,
) -> np.ndarray:
    """Crop a rectangle from an image, expanded by ``margin`` and clipped to bounds.

    Args:
        image: Source image
        x, y, width, height: Rectangle in pixel coordinates
        margin: Fraction of the rectangle size added on each side

    Returns:
        The cropped view (may be empty if the rectangle lies outside the image)
    """
    img_height, img_width = image.shape[:2]
    pad_x = width * margin
    pad_y = height * margin
    left = max(0, int(math.floor(x - pad_x)))
    top = max(0, int(math.floor(y - pad_y)))
    right = min(img_width, int(math.ceil(x + width + pad_x)))
    bottom = min(img_height, int(math.ceil(y + height + pad_y)))
    return image[top:bottom, left:right]
