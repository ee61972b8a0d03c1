from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from east_kit.decode import DOWNSAMPLE
from east_kit.render import OutputMode


@dataclass(frozen=True)
class TextDetectionSettings:
    discard_original: bool = False
    score_threshold: float = 0.5
    nms_threshold: float = 0.4
    input_size: int = 512
    output_mode: OutputMode = OutputMode.MASK
    # Pixels added around each detection, in original-image units.
    padding: int = 0
    east_model: Optional[str] = None
    backend: Optional[str] = None
    mean: Optional[Tuple[float, float, float]] = None
    max_detections: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "output_mode", OutputMode(self.output_mode))
        if not (0.0 <= self.score_threshold <= 1.0):
            raise ValueError("score_threshold must be within [0, 1]")
        if not (0.0 <= self.nms_threshold <= 1.0):
            raise ValueError("nms_threshold must be within [0, 1]")
        if self.input_size <= 0 or self.input_size % DOWNSAMPLE != 0:
            raise ValueError(f"input_size must be a positive multiple of {DOWNSAMPLE}")
        if self.padding < 0:
            raise ValueError("padding must be >= 0")
        if self.mean is not None:
            if len(self.mean) != 3:
                raise ValueError("mean must have exactly 3 values (R, G, B)")
            object.__setattr__(self, "mean", tuple(float(v) for v in self.mean))
        if self.max_detections is not None and self.max_detections < 1:
            raise ValueError("max_detections must be >= 1")


def _require_number(payload: Dict[str, Any], key: str) -> float:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _require_int(payload: Dict[str, Any], key: str) -> int:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _require_bool(payload: Dict[str, Any], key: str) -> bool:
    value = payload[key]
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be a boolean")
    return value


def _require_str(payload: Dict[str, Any], key: str) -> str:
    value = payload[key]
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{key} must be a non-empty string")
    return value.strip()


def settings_from_dict(payload: Dict[str, Any]) -> TextDetectionSettings:
    allowed = {
        "discard_original",
        "score_threshold",
        "nms_threshold",
        "input_size",
        "output_mode",
        "padding",
        "east_model",
        "backend",
        "mean",
        "max_detections",
    }
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown text detection settings keys: {unknown}")

    kwargs: Dict[str, Any] = {}
    for key in ("score_threshold", "nms_threshold"):
        if payload.get(key) is not None:
            kwargs[key] = _require_number(payload, key)
    for key in ("input_size", "padding", "max_detections"):
        if payload.get(key) is not None:
            kwargs[key] = _require_int(payload, key)
    for key in ("east_model", "backend"):
        if payload.get(key) is not None:
            kwargs[key] = _require_str(payload, key)
    if payload.get("discard_original") is not None:
        kwargs["discard_original"] = _require_bool(payload, "discard_original")
    if payload.get("output_mode") is not None:
        mode = _require_str(payload, "output_mode").upper()
        try:
            kwargs["output_mode"] = OutputMode(mode)
        except ValueError as exc:
            choices = [m.value for m in OutputMode]
            raise ValueError(f"output_mode must be one of {choices}, got {mode!r}") from exc
    if payload.get("mean") is not None:
        mean = payload["mean"]
        if (
            not isinstance(mean, list)
            or len(mean) != 3
            or any(isinstance(v, bool) or not isinstance(v, (int, float)) for v in mean)
        ):
            raise ValueError("mean must be a list of 3 numbers")
        kwargs["mean"] = tuple(float(v) for v in mean)

    return TextDetectionSettings(**kwargs)


def load_settings(path: Path) -> TextDetectionSettings:
    if not path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid settings JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Settings file must be a JSON object")
    return settings_from_dict(payload)
