from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

from .decode import DOWNSAMPLE
from .types import ScalingRatio

# Channel means used when EAST was trained, in RGB order.
EAST_MEAN_RGB = (123.68, 116.78, 103.94)


@dataclass(frozen=True)
class PreprocessConfig:
    """
    - input_size: square network input, must be a multiple of 4
    - mean: RGB mean to subtract; None uses the mean colour of each image
    """

    input_size: int = 512
    mean: Optional[Tuple[float, float, float]] = None

    def __post_init__(self) -> None:
        if self.input_size <= 0 or self.input_size % DOWNSAMPLE != 0:
            raise ValueError(f"input_size must be a positive multiple of {DOWNSAMPLE}, got {self.input_size}")
        if self.mean is not None and len(self.mean) != 3:
            raise ValueError("mean must have exactly 3 values (R, G, B)")


@dataclass(frozen=True)
class PreprocessResult:
    blob: np.ndarray
    orig_size: Tuple[int, int]
    ratio: ScalingRatio


def to_bgr(image: np.ndarray) -> np.ndarray:
    """
    Normalise an 8-bit image to 3-channel BGR. Returns a new array.
    """

    if image is None or not hasattr(image, "shape"):
        raise TypeError("image must be a NumPy array.")
    if image.dtype != np.uint8:
        raise ValueError(f"Expected an 8-bit image, got dtype {image.dtype}")
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    if image.ndim == 3 and image.shape[2] == 3:
        return image.copy()
    raise ValueError(f"Expected image shape (H, W), (H, W, 3) or (H, W, 4), got {image.shape}")


def mean_rgb(image_bgr: np.ndarray) -> Tuple[float, float, float]:
    b, g, r, _ = cv2.mean(image_bgr)
    return float(r), float(g), float(b)


def make_blob(image: np.ndarray, cfg: PreprocessConfig = PreprocessConfig()) -> PreprocessResult:
    """
    Resize to the square network input, swap to RGB and subtract the mean.

    Returns an NCHW float32 blob plus what is needed to map boxes back.
    """

    frame = to_bgr(image)
    orig_h, orig_w = frame.shape[:2]
    if orig_w == 0 or orig_h == 0:
        raise ValueError("image must not be empty")

    size = (cfg.input_size, cfg.input_size)
    mean = cfg.mean if cfg.mean is not None else mean_rgb(frame)
    blob = cv2.dnn.blobFromImage(frame, 1.0, size, mean, swapRB=True, crop=False)

    return PreprocessResult(
        blob=blob,
        orig_size=(orig_w, orig_h),
        ratio=ScalingRatio.between((orig_w, orig_h), size),
    )
