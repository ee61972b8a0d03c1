from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

import cv2
import numpy as np


@dataclass(frozen=True)
class RotatedBox:
    """
    Oriented rectangle in pixel coordinates.

    `angle` is in degrees and follows the OpenCV `RotatedRect` convention
    (clockwise in image coordinates, y pointing down).
    """

    cx: float
    cy: float
    width: float
    height: float
    angle: float = 0.0

    @property
    def center(self) -> Tuple[float, float]:
        return self.cx, self.cy

    @property
    def size(self) -> Tuple[float, float]:
        return self.width, self.height

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    def as_cv2(self) -> Tuple[Tuple[float, float], Tuple[float, float], float]:
        return (float(self.cx), float(self.cy)), (float(self.width), float(self.height)), float(self.angle)

    def vertices(self) -> np.ndarray:
        """Corner points, shape (4, 2) float32, in `cv2.boxPoints` order."""
        return cv2.boxPoints(self.as_cv2())

    def bounding_rect(self) -> Tuple[int, int, int, int]:
        """
        Integer (x, y, w, h) enclosing every vertex, matching `RotatedRect::boundingRect`.
        """
        pts = self.vertices()
        x0 = int(math.floor(float(pts[:, 0].min())))
        y0 = int(math.floor(float(pts[:, 1].min())))
        x1 = int(math.ceil(float(pts[:, 0].max())))
        y1 = int(math.ceil(float(pts[:, 1].max())))
        return x0, y0, x1 - x0 + 1, y1 - y0 + 1


@dataclass(frozen=True)
class Candidate:
    """
    Decoded EAST box in network-input coordinates.
    """

    box: RotatedBox
    score: float


@dataclass(frozen=True)
class ScalingRatio:
    """
    Original-image size divided by network-input size, per axis.
    """

    rx: float
    ry: float

    def __post_init__(self) -> None:
        if not (self.rx > 0 and self.ry > 0):
            raise ValueError(f"Scaling ratio must be > 0 on both axes, got ({self.rx}, {self.ry})")

    @classmethod
    def between(cls, orig_size: Tuple[int, int], input_size: Tuple[int, int]) -> "ScalingRatio":
        orig_w, orig_h = orig_size
        in_w, in_h = input_size
        if in_w <= 0 or in_h <= 0:
            raise ValueError(f"input_size must be positive, got {input_size}")
        return cls(rx=float(orig_w) / float(in_w), ry=float(orig_h) / float(in_h))

    def __mul__(self, other: "ScalingRatio") -> "ScalingRatio":
        return ScalingRatio(rx=self.rx * other.rx, ry=self.ry * other.ry)

    def as_tuple(self) -> Tuple[float, float]:
        return self.rx, self.ry


@dataclass(frozen=True)
class TextDetection:
    """
    Text region kept after suppression, in original-image coordinates.
    """

    box: RotatedBox
    score: float
    ratio: ScalingRatio
