from __future__ import annotations

import math
from typing import Tuple

import cv2
import numpy as np

from .types import RotatedBox, ScalingRatio


def scale_box(box: RotatedBox, ratio: ScalingRatio) -> RotatedBox:
    """
    Map a box from network-input space to original-image space.

    Center and size are scaled per axis; the angle is kept as-is, which is only
    exact when rx == ry.
    """

    return RotatedBox(
        cx=box.cx * ratio.rx,
        cy=box.cy * ratio.ry,
        width=box.width * ratio.rx,
        height=box.height * ratio.ry,
        angle=box.angle,
    )


def pad_box(box: RotatedBox, amount: int) -> RotatedBox:
    """Grow a box by `amount` pixels on every side."""
    if amount < 0:
        raise ValueError("padding must be >= 0")
    return RotatedBox(
        cx=box.cx,
        cy=box.cy,
        width=box.width + 2 * amount,
        height=box.height + 2 * amount,
        angle=box.angle,
    )


def clip_rect(rect: Tuple[int, int, int, int], *, width: int, height: int) -> Tuple[int, int, int, int]:
    x, y, w, h = rect
    x0 = max(0, min(int(x), width))
    y0 = max(0, min(int(y), height))
    x1 = max(0, min(int(x) + int(w), width))
    y1 = max(0, min(int(y) + int(h), height))
    return x0, y0, x1 - x0, y1 - y0


def crop(image: np.ndarray, rect: Tuple[int, int, int, int]) -> np.ndarray:
    """
    Copy of the (x, y, w, h) region of `image`, clipped to the image bounds.
    """

    img_h, img_w = image.shape[:2]
    x, y, w, h = clip_rect(rect, width=img_w, height=img_h)
    if w <= 0 or h <= 0:
        raise ValueError(f"Crop {rect} lies outside image of size {(img_w, img_h)}")
    return image[y : y + h, x : x + w].copy()


def crop_filled(image: np.ndarray, rect: Tuple[int, int, int, int]) -> np.ndarray:
    """
    Copy of the (x, y, w, h) region of `image` at its full size.

    Parts of the rectangle outside the image are black, so the centre of the
    result is always the centre of `rect`.
    """

    x, y, w, h = (int(v) for v in rect)
    if w <= 0 or h <= 0:
        raise ValueError(f"Crop {rect} has no area")
    img_h, img_w = image.shape[:2]
    cx, cy, cw, ch = clip_rect((x, y, w, h), width=img_w, height=img_h)
    if cw <= 0 or ch <= 0:
        raise ValueError(f"Crop {rect} lies outside image of size {(img_w, img_h)}")

    out = np.zeros((h, w) + image.shape[2:], dtype=image.dtype)
    out[cy - y : cy - y + ch, cx - x : cx - x + cw] = image[cy : cy + ch, cx : cx + cw]
    return out


def rotate_image(image: np.ndarray, degrees: float) -> np.ndarray:
    """
    Rotate `image` clockwise by `degrees` onto a canvas large enough to hold it.

    The canvas is floor(w|cos| + h|sin|) x floor(h|cos| + w|sin|), the image is
    centred on it and uncovered pixels are black.
    """

    h, w = image.shape[:2]
    rads = math.radians(degrees)
    sin_a = abs(math.sin(rads))
    cos_a = abs(math.cos(rads))
    new_w = int(math.floor(w * cos_a + h * sin_a))
    new_h = int(math.floor(h * cos_a + w * sin_a))

    # getRotationMatrix2D treats positive angles as counter-clockwise.
    m = cv2.getRotationMatrix2D((w / 2.0, h / 2.0), -degrees, 1.0)
    m[0, 2] += (new_w - w) / 2.0
    m[1, 2] += (new_h - h) / 2.0
    return cv2.warpAffine(
        image,
        m,
        (max(new_w, 1), max(new_h, 1)),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=0,
    )
