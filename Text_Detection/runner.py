from __future__ import annotations

import argparse
import logging
from dataclasses import asdict, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from tqdm import tqdm

from east_kit.render import OutputMode

from .config import TextDetectionSettings, load_settings
from .ingest import collect_sources
from .processor import TextDetectionProcessor
from .reporting import write_artifacts, write_run_report

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# CLI dest -> settings field
_OVERRIDES = {
    "model": "east_model",
    "backend": "backend",
    "mode": "output_mode",
    "score": "score_threshold",
    "nms": "nms_threshold",
    "size": "input_size",
    "padding": "padding",
    "max_detections": "max_detections",
    "discard_original": "discard_original",
}


def setup_logging(log_level: str = "INFO", log_path: Optional[str] = None) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_path:
        Path(log_path).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))
    logging.basicConfig(level=getattr(logging, log_level.upper()), format=LOG_FORMAT, handlers=handlers)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Detect text regions with EAST and write BOX/EXTRACT/MASK outputs.")
    parser.add_argument("input", help="Image file or directory of images.")
    parser.add_argument("--out-dir", default="Outputs/text_detection", help="Directory for output images and report.")
    parser.add_argument("--config", default=None, help="JSON settings file; CLI flags override it.")
    parser.add_argument("--model", default=None, help="Path to the EAST model (.pb or .onnx).")
    parser.add_argument("--backend", default=None, help="Force backend: opencv_dnn / onnxruntime.")
    parser.add_argument(
        "--mode",
        default=None,
        choices=[m.value for m in OutputMode],
        help="Output mode (default MASK).",
    )
    parser.add_argument("--score", type=float, default=None, help="Score threshold (default 0.5).")
    parser.add_argument("--nms", type=float, default=None, help="Rotated NMS IoU threshold (default 0.4).")
    parser.add_argument("--size", type=int, default=None, help="Network input size, multiple of 4 (default 512).")
    parser.add_argument("--padding", type=int, default=None, help="Pixels added around each region (default 0).")
    parser.add_argument("--max-detections", type=int, default=None, help="Keep at most N regions per image.")
    parser.add_argument(
        "--discard-original",
        action="store_true",
        default=None,
        help="Report successfully processed inputs as discardable.",
    )
    parser.add_argument("--no-progress", action="store_true", help="Disable the progress bar.")
    parser.add_argument(
        "--log-level",
        default="INFO",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Logging level (default INFO).",
    )
    parser.add_argument("--log-file", default=None, help="Optional log file path.")
    return parser


def resolve_settings(args: argparse.Namespace) -> TextDetectionSettings:
    settings = load_settings(Path(args.config)) if args.config else TextDetectionSettings()
    overrides: Dict[str, Any] = {}
    for dest, field_name in _OVERRIDES.items():
        value = getattr(args, dest, None)
        if value is not None:
            overrides[field_name] = value
    return replace(settings, **overrides) if overrides else settings


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    settings = resolve_settings(args)
    if not settings.east_model:
        parser.error("an EAST model is required (--model or east_model in --config)")

    sources = collect_sources(Path(args.input))
    if not sources:
        print(f"No images found under: {args.input}")
        return 1

    processor = TextDetectionProcessor.from_settings(settings)

    pbar = None if args.no_progress else tqdm(total=len(sources), desc="text detection", unit="img")
    try:
        response = processor.process(sources, on_image_done=(lambda _src: pbar.update(1)) if pbar is not None else None)
    finally:
        if pbar is not None:
            pbar.close()

    out_dir = Path(args.out_dir)
    written = write_artifacts(out_dir=out_dir, artifacts=list(response.artifacts))
    run_config = asdict(settings)
    run_config["output_mode"] = settings.output_mode.value
    run_config["input"] = str(args.input)
    report_path = write_run_report(out_dir=out_dir, response=response, run_config=run_config)

    print(f"Images: {response.processed} (failed: {len(response.errors)})")
    print(f"Wrote {len(written)} output images to: {out_dir}")
    print(f"Wrote run report: {report_path}")
    for err in response.errors:
        print(f"FAILED {err.source_id}: {err.message}")
    if response.discard:
        print(f"Discard originals: {', '.join(response.discard)}")

    return 2 if response.all_failed else 0
