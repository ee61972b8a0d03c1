from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from .decode import GeometryMap, ScoreMap, decode
from .geometry import pad_box, scale_box
from .nms import NMSConfig, nms_rotated
from .types import Candidate, ScalingRatio, TextDetection


@dataclass
class EastPostConfig:
    """
    Post-processing settings for EAST outputs.
    """

    score_threshold: float = 0.5
    nms_threshold: float = 0.4
    # Pixels added on every side, in original-image units (applied after scaling).
    padding: int = 0
    max_detections: Optional[int] = None
    # If False, skip NMS and keep every candidate above the score threshold.
    apply_nms: bool = True

    def __post_init__(self) -> None:
        if not (0.0 <= self.score_threshold <= 1.0):
            raise ValueError("score_threshold must be within [0, 1]")
        if not (0.0 <= self.nms_threshold <= 1.0):
            raise ValueError("nms_threshold must be within [0, 1]")
        if self.padding < 0:
            raise ValueError("padding must be >= 0")
        if self.max_detections is not None and self.max_detections < 1:
            raise ValueError("max_detections must be >= 1")


class EastPostprocessor:
    """
    EAST post-process: decode -> rotated NMS -> rescale -> pad.

    Expects the two raw outputs of the network for a single image:
    - scores: (1, 1, H, W) sigmoid map
    - geometry: (1, 5, H, W) RBOX map (top, right, bottom, left, angle)
    """

    def __init__(self, cfg: EastPostConfig):
        self.cfg = cfg

    def process(self, scores: np.ndarray, geometry: np.ndarray, ratio: ScalingRatio) -> List[TextDetection]:
        """
        Convert raw model output into text regions in original-image coordinates.

        Args:
            scores: score output for one image
            geometry: geometry output for one image
            ratio: (rx, ry) original size / network input size
        """

        candidates = decode(ScoreMap.from_output(scores), GeometryMap.from_output(geometry), self.cfg.score_threshold)
        if not candidates:
            return []

        kept = self._suppress(candidates)

        return [
            TextDetection(
                box=pad_box(scale_box(c.box, ratio), self.cfg.padding),
                score=c.score,
                ratio=ratio,
            )
            for c in kept
        ]

    def _suppress(self, candidates: List[Candidate]) -> List[Candidate]:
        if not self.cfg.apply_nms:
            ordered = sorted(candidates, key=lambda c: c.score, reverse=True)
            if self.cfg.max_detections is not None:
                ordered = ordered[: self.cfg.max_detections]
            return ordered

        nms_cfg = NMSConfig(
            iou_threshold=self.cfg.nms_threshold,
            score_threshold=self.cfg.score_threshold,
            max_detections=self.cfg.max_detections,
        )
        scores = np.array([c.score for c in candidates], dtype=np.float64)
        keep_idx = nms_rotated([c.box for c in candidates], scores, nms_cfg)
        return [candidates[int(i)] for i in keep_idx]
