import contextlib
import io
import json
import tempfile
import unittest
from pathlib import Path

from east_kit.render import OutputMode
from Text_Detection.config import TextDetectionSettings, load_settings
from Text_Detection.runner import build_parser, resolve_settings


class TestTextDetectionSettings(unittest.TestCase):
    def _write(self, payload: dict) -> Path:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / "settings.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    def test_defaults(self) -> None:
        s = TextDetectionSettings()
        self.assertFalse(s.discard_original)
        self.assertEqual(s.score_threshold, 0.5)
        self.assertEqual(s.nms_threshold, 0.4)
        self.assertEqual(s.input_size, 512)
        self.assertEqual(s.output_mode, OutputMode.MASK)
        self.assertEqual(s.padding, 0)

    def test_load_ok(self) -> None:
        path = self._write(
            {
                "east_model": "Models/frozen_east_text_detection.pb",
                "output_mode": "extract",
                "score_threshold": 0.7,
                "input_size": 320,
                "padding": 4,
                "discard_original": True,
                "mean": [123.68, 116.78, 103.94],
            }
        )
        s = load_settings(path)
        self.assertEqual(s.output_mode, OutputMode.EXTRACT)
        self.assertEqual(s.score_threshold, 0.7)
        self.assertEqual(s.input_size, 320)
        self.assertEqual(s.padding, 4)
        self.assertTrue(s.discard_original)
        self.assertEqual(s.mean, (123.68, 116.78, 103.94))

    def test_unknown_keys_rejected(self) -> None:
        with self.assertRaises(ValueError):
            load_settings(self._write({"size": 512}))

    def test_invalid_values_rejected(self) -> None:
        for payload in (
            {"input_size": 30},
            {"padding": -1},
            {"score_threshold": 1.5},
            {"score_threshold": True},
            {"output_mode": "OUTLINE"},
            {"mean": [1, 2]},
        ):
            with self.subTest(payload=payload):
                with self.assertRaises(ValueError):
                    load_settings(self._write(payload))

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_settings(Path("does/not/exist.json"))


class TestRunnerSettings(unittest.TestCase):
    def test_cli_flags_override_defaults(self) -> None:
        args = build_parser().parse_args(["images/", "--mode", "BOX", "--score", "0.7", "--model", "east.pb"])
        s = resolve_settings(args)
        self.assertEqual(s.output_mode, OutputMode.BOX)
        self.assertEqual(s.score_threshold, 0.7)
        self.assertEqual(s.east_model, "east.pb")
        self.assertEqual(s.nms_threshold, 0.4)
        self.assertFalse(s.discard_original)

    def test_cli_flags_override_config(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "settings.json"
            path.write_text(json.dumps({"output_mode": "EXTRACT", "padding": 3, "nms_threshold": 0.2}), encoding="utf-8")
            args = build_parser().parse_args(["images/", "--config", str(path), "--padding", "5", "--discard-original"])
            s = resolve_settings(args)
        self.assertEqual(s.output_mode, OutputMode.EXTRACT)
        self.assertEqual(s.padding, 5)
        self.assertEqual(s.nms_threshold, 0.2)
        self.assertTrue(s.discard_original)

    def test_log_level_is_case_insensitive(self) -> None:
        args = build_parser().parse_args(["images/", "--log-level", "debug"])
        self.assertEqual(args.log_level, "DEBUG")

    def test_unknown_log_level_is_a_usage_error(self) -> None:
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit) as ctx:
                build_parser().parse_args(["images/", "--log-level", "LOUD"])
        self.assertEqual(ctx.exception.code, 2)


if __name__ == "__main__":
    unittest.main()
