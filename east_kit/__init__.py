"""
Lightweight, reusable EAST text-detection post-processing helpers.

Works with the NumPy arrays emitted by OpenCV DNN or ONNX Runtime. No external
dependencies beyond NumPy and OpenCV; inference runtimes are optional.
"""

from .types import Candidate, RotatedBox, ScalingRatio, TextDetection
from .decode import GeometryMap, ScoreMap, decode, decode_outputs
from .nms import NMSConfig, nms_rotated, rotated_iou
from .geometry import pad_box, rotate_image, scale_box
from .preprocess import PreprocessConfig, make_blob
from .postprocess import EastPostprocessor, EastPostConfig
from .render import OutputArtifact, OutputMode, render
from .runtime import DetectionResult, EastPipeline, load_pipeline, find_project_root, resolve_path
from .visualize import draw_rotated_boxes

__all__ = [
    "Candidate",
    "RotatedBox",
    "ScalingRatio",
    "TextDetection",
    "GeometryMap",
    "ScoreMap",
    "decode",
    "decode_outputs",
    "NMSConfig",
    "nms_rotated",
    "rotated_iou",
    "pad_box",
    "rotate_image",
    "scale_box",
    "PreprocessConfig",
    "make_blob",
    "EastPostprocessor",
    "EastPostConfig",
    "OutputArtifact",
    "OutputMode",
    "render",
    "DetectionResult",
    "EastPipeline",
    "load_pipeline",
    "find_project_root",
    "resolve_path",
    "draw_rotated_boxes",
]
