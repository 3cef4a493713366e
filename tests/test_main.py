from __future__ import annotations

import os
from pathlib import Path
import sys
import tempfile
import unittest
from unittest.mock import patch

from PIL import Image

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from favigen import main as cli  # noqa: E402
from favigen.ico import ImageCountError, is_valid_ico  # noqa: E402


class MainTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.source = self.tmp / "logo.png"
        Image.new("RGBA", (64, 64), (10, 20, 30, 255)).save(self.source)
        self.out = self.tmp / "icons"

        env = patch.dict(os.environ, {}, clear=True)
        env.start()
        self.addCleanup(env.stop)
        cwd = patch("pathlib.Path.cwd", return_value=self.tmp)
        cwd.start()
        self.addCleanup(cwd.stop)
        printer = patch("builtins.print")
        self.mock_print = printer.start()
        self.addCleanup(printer.stop)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_no_arguments_prints_quick_start(self) -> None:
        self.assertEqual(0, cli.main([]))
        self.mock_print.assert_any_call("Quick start:")

    def test_generates_icons(self) -> None:
        code = cli.main(
            ["-i", str(self.source), "-o", str(self.out), "-s", "16,32", "-y", "--manifest"]
        )

        self.assertEqual(0, code)
        self.assertTrue(is_valid_ico((self.out / "favicon.ico").read_bytes()))
        self.assertTrue((self.out / "site.webmanifest").is_file())

    def test_missing_input_exit_code(self) -> None:
        code = cli.main(["-i", str(self.tmp / "missing.png"), "-o", str(self.out), "-y"])
        self.assertEqual(cli.EXIT_INPUT_ERROR, code)

    def test_invalid_sizes_exit_code(self) -> None:
        code = cli.main(["-i", str(self.source), "-o", str(self.out), "-s", "abc", "-y"])
        self.assertEqual(cli.EXIT_CONFIG_ERROR, code)

    def test_invalid_theme_color_exit_code(self) -> None:
        code = cli.main(
            ["-i", str(self.source), "-o", str(self.out), "--theme-color", "nope", "-y"]
        )
        self.assertEqual(cli.EXIT_CONFIG_ERROR, code)

    def test_encoding_error_exit_code(self) -> None:
        with patch("favigen.generator.encode_ico", side_effect=ImageCountError("boom")):
            code = cli.main(["-i", str(self.source), "-o", str(self.out), "-s", "16", "-y"])
        self.assertEqual(cli.EXIT_ENCODE_ERROR, code)

    def test_outside_cwd_declined(self) -> None:
        outside = Path(tempfile.gettempdir()).resolve() / "favigen-elsewhere"
        with patch("pathlib.Path.cwd", return_value=self.tmp / "project"):
            with patch("favigen.main.ask_yes_no", return_value=False) as ask:
                code = cli.main(["-i", str(self.source), "-o", str(outside)])

        self.assertEqual(cli.EXIT_CANCELLED, code)
        ask.assert_called_once()
        self.assertFalse(outside.exists())

    def test_interrupt_at_outside_cwd_prompt(self) -> None:
        outside = Path(tempfile.gettempdir()).resolve() / "favigen-elsewhere"
        with patch("pathlib.Path.cwd", return_value=self.tmp / "project"):
            with patch("favigen.main.ask_yes_no", side_effect=KeyboardInterrupt):
                code = cli.main(["-i", str(self.source), "-o", str(outside)])

        self.assertEqual(cli.EXIT_CANCELLED, code)
        self.mock_print.assert_any_call("Operation cancelled.")
        self.assertFalse(outside.exists())

    def test_unexpected_failure_exit_code(self) -> None:
        with patch(
            "favigen.main.FaviconGenerator.run",
            side_effect=RuntimeError("something broke"),
        ):
            code = cli.main(["-i", str(self.source), "-o", str(self.out), "-y"])

        self.assertEqual(cli.EXIT_ERROR, code)
        self.mock_print.assert_any_call("ERROR: something broke", file=sys.stderr)


if __name__ == "__main__":
    unittest.main()
