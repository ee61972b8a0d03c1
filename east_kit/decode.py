from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List

import numpy as np

from .types import Candidate, RotatedBox

# EAST emits one output cell per 4x4 block of the input image.
DOWNSAMPLE = 4


def _readonly(a: np.ndarray) -> np.ndarray:
    a = np.array(a, dtype=np.float32, copy=True)
    a.setflags(write=False)
    return a


@dataclass(frozen=True)
class ScoreMap:
    """
    Per-cell text confidence, shape (H, W).
    """

    data: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", np.asarray(self.data))
        if self.data.ndim != 2:
            raise ValueError(f"ScoreMap expects a 2D array, got shape {self.data.shape}")
        object.__setattr__(self, "data", _readonly(self.data))

    @classmethod
    def from_output(cls, raw: np.ndarray) -> "ScoreMap":
        """
        Accepts the raw sigmoid output as (1, 1, H, W), (1, H, W) or (H, W).
        """
        p = np.asarray(raw)
        if p.ndim == 4:
            if p.shape[0] != 1 or p.shape[1] != 1:
                raise ValueError(f"Expected score output (1, 1, H, W), got shape {p.shape}")
            p = p[0, 0]
        elif p.ndim == 3:
            if p.shape[0] != 1:
                raise ValueError(f"Expected score output (1, H, W), got shape {p.shape}")
            p = p[0]
        return cls(p)

    @property
    def shape(self):
        return self.data.shape


@dataclass(frozen=True)
class GeometryMap:
    """
    Per-cell box geometry, shape (5, H, W).

    Channels: distance to top, right, bottom, left edge, then rotation in radians.
    """

    data: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", np.asarray(self.data))
        if self.data.ndim != 3 or self.data.shape[0] != 5:
            raise ValueError(f"GeometryMap expects shape (5, H, W), got {self.data.shape}")
        object.__setattr__(self, "data", _readonly(self.data))

    @classmethod
    def from_output(cls, raw: np.ndarray) -> "GeometryMap":
        p = np.asarray(raw)
        if p.ndim == 4:
            if p.shape[0] != 1:
                raise ValueError(f"Batch > 1 is not supported (got shape {p.shape}). Pass one image at a time.")
            p = p[0]
        return cls(p)

    @property
    def shape(self):
        return self.data.shape[1:]

    @property
    def top(self) -> np.ndarray:
        return self.data[0]

    @property
    def right(self) -> np.ndarray:
        return self.data[1]

    @property
    def bottom(self) -> np.ndarray:
        return self.data[2]

    @property
    def left(self) -> np.ndarray:
        return self.data[3]

    @property
    def angle(self) -> np.ndarray:
        return self.data[4]


def decode(scores: ScoreMap, geometry: GeometryMap, threshold: float) -> List[Candidate]:
    """
    Rebuild oriented boxes from the EAST RBOX encoding.

    Every cell scoring >= `threshold` yields one candidate; cells are visited in
    row-major (y, x) order. An empty list means no text was found.
    """

    if tuple(scores.shape) != tuple(geometry.shape):
        raise ValueError(f"Score map {scores.shape} and geometry map {geometry.shape} differ in size")

    ys, xs = np.nonzero(scores.data >= threshold)
    if ys.size == 0:
        return []

    conf = scores.data[ys, xs].astype(np.float64)
    top = geometry.top[ys, xs].astype(np.float64)
    right = geometry.right[ys, xs].astype(np.float64)
    bottom = geometry.bottom[ys, xs].astype(np.float64)
    left = geometry.left[ys, xs].astype(np.float64)
    angle = geometry.angle[ys, xs].astype(np.float64)

    offset_x = xs.astype(np.float64) * DOWNSAMPLE
    offset_y = ys.astype(np.float64) * DOWNSAMPLE
    cos_a = np.cos(angle)
    sin_a = np.sin(angle)
    h = top + bottom
    w = right + left

    # Anchor at the bottom-right corner of the rotated box.
    anchor_x = offset_x + cos_a * right + sin_a * bottom
    anchor_y = offset_y - sin_a * right + cos_a * bottom
    p1_x = -sin_a * h + anchor_x
    p1_y = -cos_a * h + anchor_y
    p3_x = -cos_a * w + anchor_x
    p3_y = sin_a * w + anchor_y

    cx = 0.5 * (p1_x + p3_x)
    cy = 0.5 * (p1_y + p3_y)
    degrees = -angle * 180.0 / math.pi

    return [
        Candidate(
            box=RotatedBox(cx=float(x), cy=float(y), width=float(bw), height=float(bh), angle=float(a)),
            score=float(s),
        )
        for x, y, bw, bh, a, s in zip(cx, cy, w, h, degrees, conf)
    ]


def decode_outputs(raw_scores: np.ndarray, raw_geometry: np.ndarray, threshold: float) -> List[Candidate]:
    return decode(ScoreMap.from_output(raw_scores), GeometryMap.from_output(raw_geometry), threshold)
