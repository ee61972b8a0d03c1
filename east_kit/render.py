"""
Turn final text detections into output images.

Each output mode is a pure function of (image, detections, source_id); the
source image is never written to.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Sequence

import cv2
import numpy as np

from .geometry import clip_rect, crop, crop_filled, rotate_image
from .preprocess import to_bgr
from .types import TextDetection
from .visualize import draw_rotated_boxes, polygon_points

logger = logging.getLogger(__name__)

PARENT_KEY = "parent"
WHITE = 255
BLACK = 0


class OutputMode(str, Enum):
    BOX = "BOX"
    EXTRACT = "EXTRACT"
    MASK = "MASK"
    INVERSE_MASK = "INVERSE_MASK"


@dataclass(frozen=True)
class OutputArtifact:
    mode: OutputMode
    image: np.ndarray
    description: str
    properties: Dict[str, Any] = field(default_factory=dict)

    @property
    def parent(self) -> Any:
        return self.properties.get(PARENT_KEY)


def _description(mode: OutputMode, source_id: Any) -> str:
    return f"EAST output ({mode.value}) from {source_id}"


def render_box(image: np.ndarray, detections: Sequence[TextDetection], source_id: Any) -> List[OutputArtifact]:
    out = draw_rotated_boxes(image, detections)
    return [
        OutputArtifact(
            mode=OutputMode.BOX,
            image=out,
            description=_description(OutputMode.BOX, source_id),
            properties={PARENT_KEY: source_id},
        )
    ]


def extract_region(image: np.ndarray, detection: TextDetection) -> np.ndarray:
    """
    Cut one de-rotated text region out of `image`.

    The bounding rectangle is cropped, rotated back by the box angle, then
    trimmed around its centre to the box width and height. Where the rectangle
    runs past the image border the missing pixels are black, so the strip stays
    centred on the box and keeps its int(width) x int(height) size.
    """

    box = detection.box
    bounded = crop_filled(image, box.bounding_rect())
    rotated = rotate_image(bounded, -box.angle)

    rot_h, rot_w = rotated.shape[:2]
    centre_x = rot_w // 2
    centre_y = rot_h // 2
    return crop(
        rotated,
        (
            int(centre_x - box.width / 2.0),
            int(centre_y - box.height / 2.0),
            int(box.width),
            int(box.height),
        ),
    )


def render_extract(image: np.ndarray, detections: Sequence[TextDetection], source_id: Any) -> List[OutputArtifact]:
    # TODO: merge intersecting regions before extraction
    img_h, img_w = image.shape[:2]
    artifacts: List[OutputArtifact] = []
    for det in detections:
        x, y, w, h = det.box.bounding_rect()
        _, _, cw, ch = clip_rect((x, y, w, h), width=img_w, height=img_h)
        if cw <= 0 or ch <= 0 or int(det.box.width) <= 0 or int(det.box.height) <= 0:
            logger.debug("Skipping degenerate region %s in image %s", det.box, source_id)
            continue

        artifacts.append(
            OutputArtifact(
                mode=OutputMode.EXTRACT,
                image=extract_region(image, det),
                description=_description(OutputMode.EXTRACT, source_id),
                properties={
                    "x": x,
                    "y": y,
                    "width": w,
                    "height": h,
                    "source": source_id,
                    "angle": float(det.box.angle),
                    PARENT_KEY: source_id,
                },
            )
        )
    return artifacts


def build_mask(shape, detections: Sequence[TextDetection], *, background: int, fill: int) -> np.ndarray:
    mask = np.full(shape[:2], background, dtype=np.uint8)
    for det in detections:
        cv2.fillPoly(mask, [polygon_points(det.box)], fill)
    return mask


def apply_mask(image: np.ndarray, mask: np.ndarray) -> np.ndarray:
    """Black out every pixel where `mask` is white; keep the rest."""
    out = image.copy()
    out[mask == WHITE] = 0
    return out


def render_mask(image: np.ndarray, detections: Sequence[TextDetection], source_id: Any) -> List[OutputArtifact]:
    mask = build_mask(image.shape, detections, background=WHITE, fill=BLACK)
    return [
        OutputArtifact(
            mode=OutputMode.MASK,
            image=apply_mask(image, mask),
            description=_description(OutputMode.MASK, source_id),
            properties={PARENT_KEY: source_id},
        )
    ]


def render_inverse_mask(image: np.ndarray, detections: Sequence[TextDetection], source_id: Any) -> List[OutputArtifact]:
    mask = build_mask(image.shape, detections, background=BLACK, fill=WHITE)
    return [
        OutputArtifact(
            mode=OutputMode.INVERSE_MASK,
            image=apply_mask(image, mask),
            description=_description(OutputMode.INVERSE_MASK, source_id),
            properties={PARENT_KEY: source_id},
        )
    ]


_RENDERERS: Dict[OutputMode, Callable[[np.ndarray, Sequence[TextDetection], Any], List[OutputArtifact]]] = {
    OutputMode.BOX: render_box,
    OutputMode.EXTRACT: render_extract,
    OutputMode.MASK: render_mask,
    OutputMode.INVERSE_MASK: render_inverse_mask,
}


def render(
    mode: OutputMode,
    image: np.ndarray,
    detections: Sequence[TextDetection],
    *,
    source_id: Any,
) -> List[OutputArtifact]:
    """
    Produce the output artifacts for one image. No detections, no artifacts.
    """

    mode = OutputMode(mode)
    if not detections:
        return []
    return _RENDERERS[mode](to_bgr(image), detections, source_id)
