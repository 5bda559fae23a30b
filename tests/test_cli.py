import contextlib
import io
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from slice_annotator import __version__
from slice_annotator.cli import _apply_overrides, _build_parser, main
from slice_annotator.config import AnnotatorConfig, ConfigResolution


class CliTests(unittest.TestCase):
    def test_version_flag_prints_version(self) -> None:
        buffer = io.StringIO()
        with contextlib.redirect_stdout(buffer):
            self.assertEqual(main(["--version"]), 0)
        self.assertEqual(buffer.getvalue().strip(), __version__)

    def test_missing_config_file_exits_with_error(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            missing = Path(temp_dir) / "missing.yaml"
            self.assertEqual(main(["--config", str(missing)]), 1)

    def test_malformed_config_exits_with_error(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.yaml"
            config_path.write_text("- not\n- a mapping\n", encoding="utf-8")
            self.assertEqual(main(["--config", str(config_path)]), 1)

    def test_invalid_overrides_are_not_saved(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            user_file = Path(temp_dir) / "config.yaml"
            with patch.dict(os.environ, {}, clear=True), patch(
                "slice_annotator.config._user_config_path", return_value=user_file
            ):
                exit_code = main(
                    [temp_dir, "--save-config", "--num-channels", "4", "--channel-map", "1,2"]
                )

            self.assertEqual(exit_code, 1)
            self.assertFalse(user_file.exists())

    def test_command_line_overrides_config_values(self) -> None:
        args = _build_parser().parse_args(["--num-channels", "4", "--channel-map", "4,3,2,1"])
        resolution = ConfigResolution(AnnotatorConfig(), None, "defaults")

        updated = _apply_overrides(resolution, args)

        self.assertEqual(updated.config.num_channels, 4)
        self.assertEqual(updated.config.channel_map, [4, 3, 2, 1])
        self.assertEqual(updated.config.channels_per_arc, 8)
        self.assertEqual(updated.source, "defaults")

    def test_rejects_non_numeric_channel_map(self) -> None:
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit):
                _build_parser().parse_args(["--channel-map", "1,two"])


if __name__ == "__main__":
    unittest.main()
