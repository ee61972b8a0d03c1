"""
Persist output artifacts and a per-run summary to disk.
"""

from __future__ import annotations

import json
import re
from collections import defaultdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import cv2

from east_kit.render import OutputArtifact

from .processor import ProcessorResponse


def _safe_name(source_id: Any) -> str:
    return re.sub(r"[^A-Za-z0-9._-]+", "_", str(source_id)).strip("_") or "image"


def artifact_to_dict(artifact: OutputArtifact, *, file: Optional[str] = None) -> Dict[str, Any]:
    h, w = artifact.image.shape[:2]
    payload: Dict[str, Any] = {
        "mode": artifact.mode.value,
        "description": artifact.description,
        "image_width": int(w),
        "image_height": int(h),
        "properties": dict(artifact.properties),
    }
    if file is not None:
        payload["file"] = file
    return payload


def write_artifacts(*, out_dir: Path, artifacts: List[OutputArtifact]) -> List[Path]:
    """
    Write each artifact as PNG plus a JSON sidecar holding its properties.

    Files are named `<source>_<mode>_<index>.png`, counted per source image.
    """

    out_dir.mkdir(parents=True, exist_ok=True)
    counters: Dict[str, int] = defaultdict(int)
    written: List[Path] = []
    for artifact in artifacts:
        stem = _safe_name(artifact.parent)
        idx = counters[stem]
        counters[stem] += 1
        name = f"{stem}_{artifact.mode.value.lower()}_{idx:02d}"
        path = out_dir / f"{name}.png"
        ok = cv2.imwrite(str(path), artifact.image)
        if not ok:
            raise RuntimeError(f"Failed to write output image: {path}")
        (out_dir / f"{name}.json").write_text(
            json.dumps(artifact_to_dict(artifact, file=path.name), indent=2, sort_keys=True, default=str),
            encoding="utf-8",
        )
        written.append(path)
    return written


def response_to_dict(response: ProcessorResponse) -> Dict[str, Any]:
    return {
        "status": response.status.value,
        "processed": int(response.processed),
        "failed": len(response.errors),
        "artifacts": len(response.artifacts),
        "errors": [{"source_id": e.source_id, "error": e.message} for e in response.errors],
        "discard": list(response.discard),
        "timings_ms": response.timings_ms,
    }


def write_run_report(
    *,
    out_dir: Path,
    response: ProcessorResponse,
    run_config: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> Path:
    payload = response_to_dict(response)
    payload["finished_at"] = (now or datetime.now()).isoformat(timespec="seconds")
    if run_config is not None:
        payload["run_config"] = run_config
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / "run_report.json"
    path.write_text(json.dumps(payload, indent=2, sort_keys=True, default=str), encoding="utf-8")
    return path
