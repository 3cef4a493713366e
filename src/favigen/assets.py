from __future__ import annotations

import re
from typing import Any, Iterable, Optional
from xml.sax.saxutils import escape

BROWSERCONFIG_TILES = ((70, 70), (150, 150), (310, 150), (310, 310))

_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def icon_filename(width: int, height: int) -> str:
    return f"icon-{width}x{height}.png"


def normalize_color(value: str) -> str:
    match = _HEX_COLOR.match((value or "").strip())
    if not match:
        raise ValueError(f"Invalid hex color: {value!r}")
    digits = match.group(1).lower()
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return f"#{digits}"


def build_manifest(
    app_name: str,
    sizes: Iterable[int],
    theme_color: str,
    background_color: Optional[str] = None,
) -> dict[str, Any]:
    icons = [
        {
            "src": icon_filename(size, size),
            "sizes": f"{size}x{size}",
            "type": "image/png",
        }
        for size in sizes
    ]
    return {
        "name": app_name,
        "short_name": app_name,
        "icons": icons,
        "theme_color": theme_color,
        "background_color": background_color or theme_color,
        "display": "standalone",
    }


def build_browserconfig(tile_color: str) -> str:
    (w70, h70), (w150, h150), (w310w, h310w), (w310, h310) = BROWSERCONFIG_TILES
    return f"""<?xml version="1.0" encoding="utf-8"?>
<browserconfig>
  <msapplication>
    <tile>
      <square70x70logo src="{icon_filename(w70, h70)}"/>
      <square150x150logo src="{icon_filename(w150, h150)}"/>
      <wide310x150logo src="{icon_filename(w310w, h310w)}"/>
      <square310x310logo src="{icon_filename(w310, h310)}"/>
      <TileColor>{escape(tile_color)}</TileColor>
    </tile>
  </msapplication>
</browserconfig>
"""
