from __future__ import annotations

from pathlib import Path
import sys
import unittest
from xml.etree import ElementTree

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from favigen.assets import (  # noqa: E402
    build_browserconfig,
    build_manifest,
    icon_filename,
    normalize_color,
)


class AssetsTests(unittest.TestCase):
    def test_manifest_lists_every_size(self) -> None:
        manifest = build_manifest("Demo", [16, 192, 512], "#112233")

        self.assertEqual("Demo", manifest["name"])
        self.assertEqual("Demo", manifest["short_name"])
        self.assertEqual("#112233", manifest["background_color"])
        self.assertEqual("standalone", manifest["display"])
        self.assertEqual(
            {"src": "icon-192x192.png", "sizes": "192x192", "type": "image/png"},
            manifest["icons"][1],
        )
        self.assertEqual(3, len(manifest["icons"]))

    def test_manifest_background_override(self) -> None:
        manifest = build_manifest("Demo", [16], "#112233", background_color="#ffffff")
        self.assertEqual("#ffffff", manifest["background_color"])

    def test_browserconfig_references_tiles(self) -> None:
        xml = build_browserconfig("#abcdef")
        root = ElementTree.fromstring(xml.encode("utf-8"))
        tile = root.find("msapplication/tile")

        self.assertIsNotNone(tile)
        self.assertEqual("icon-310x150.png", tile.find("wide310x150logo").get("src"))
        self.assertEqual("icon-70x70.png", tile.find("square70x70logo").get("src"))
        self.assertEqual("#abcdef", tile.findtext("TileColor"))

    def test_normalize_color(self) -> None:
        self.assertEqual("#aabbcc", normalize_color("ABC"))
        self.assertEqual("#a1b2c3", normalize_color("#A1B2C3"))
        for bad in ("", "#12", "red", "#1234567"):
            with self.subTest(value=bad):
                with self.assertRaises(ValueError):
                    normalize_color(bad)

    def test_icon_filename(self) -> None:
        self.assertEqual("icon-310x150.png", icon_filename(310, 150))


if __name__ == "__main__":
    unittest.main()
