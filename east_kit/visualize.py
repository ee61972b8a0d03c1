from __future__ import annotations

from typing import Iterable, Tuple

import cv2
import numpy as np

from .types import RotatedBox, TextDetection

BOX_COLOR: Tuple[int, int, int] = (0, 0, 255)


def _as_box(item) -> RotatedBox:
    return item.box if isinstance(item, TextDetection) else item


def polygon_points(box: RotatedBox) -> np.ndarray:
    """Integer corner points shaped for cv2.fillPoly / cv2.polylines."""
    return np.round(box.vertices()).astype(np.int32).reshape((-1, 1, 2))


def draw_rotated_boxes(
    image_bgr: np.ndarray,
    boxes: Iterable,
    *,
    color: Tuple[int, int, int] = BOX_COLOR,
    thickness: int = 1,
    show_score: bool = False,
    font_scale: float = 0.4,
) -> np.ndarray:
    """
    Draw the outline of each oriented box on a copy of an OpenCV BGR image.

    Args:
        image_bgr: input image in BGR (H, W, 3).
        boxes: iterable of RotatedBox or TextDetection in image coordinates.
        show_score: label TextDetection items with their score.
    """

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    out = image_bgr.copy()

    for item in boxes:
        box = _as_box(item)
        pts = box.vertices()
        for j in range(4):
            p0 = tuple(int(round(v)) for v in pts[j])
            p1 = tuple(int(round(v)) for v in pts[(j + 1) % 4])
            cv2.line(out, p0, p1, color, thickness)

        if show_score and isinstance(item, TextDetection):
            x, y, _, _ = box.bounding_rect()
            cv2.putText(
                out,
                f"{item.score:.2f}",
                (max(0, x), max(0, y - 2)),
                cv2.FONT_HERSHEY_SIMPLEX,
                font_scale,
                color,
                thickness=1,
                lineType=cv2.LINE_AA,
            )

    return out
