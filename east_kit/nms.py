from dataclasses import dataclass
from typing import Optional, Sequence

import cv2
import numpy as np

from .types import RotatedBox


@dataclass
class NMSConfig:
    iou_threshold: float = 0.4
    score_threshold: float = 0.5
    max_detections: Optional[int] = None


def rotated_iou(a: RotatedBox, b: RotatedBox) -> float:
    """
    Intersection over union of two oriented rectangles.
    """

    inter = 0.0
    status, region = cv2.rotatedRectangleIntersection(a.as_cv2(), b.as_cv2())
    if status != cv2.INTERSECT_NONE and region is not None and len(region) > 2:
        hull = cv2.convexHull(region, returnPoints=True)
        inter = float(cv2.contourArea(hull))

    union = a.area + b.area - inter
    return inter / max(union, 1e-6)


def nms_rotated(boxes: Sequence[RotatedBox], scores: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    Greedy NMS over oriented boxes.

    Boxes scoring below `cfg.score_threshold` are dropped first. Ties in score keep
    input order. Returns indices into `boxes`, highest score first.
    """

    scores = np.asarray(scores, dtype=np.float64).reshape(-1)
    if len(boxes) != scores.shape[0]:
        raise ValueError(f"Got {len(boxes)} boxes but {scores.shape[0]} scores")
    if scores.size == 0:
        return np.empty((0,), dtype=np.int32)

    candidates = np.where(scores >= cfg.score_threshold)[0]
    order = candidates[np.argsort(-scores[candidates], kind="stable")]
    keep = []

    while order.size > 0:
        if cfg.max_detections is not None and len(keep) >= cfg.max_detections:
            break
        i = int(order[0])
        keep.append(i)

        rest = order[1:]
        overlaps = np.array([rotated_iou(boxes[i], boxes[int(j)]) for j in rest], dtype=np.float64)
        order = rest[overlaps <= cfg.iou_threshold] if rest.size else rest

    return np.array(keep, dtype=np.int32)
