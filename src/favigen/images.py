from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
import io
import logging
from pathlib import Path
from typing import Iterable, Optional, Union

from PIL import Image, ImageOps, UnidentifiedImageError

SUPPORTED_FORMATS = {"PNG", "JPEG", "WEBP"}
DEFAULT_MAX_WORKERS = 4

PathLike = Union[str, Path]


class UnsupportedImageError(ValueError):
    pass


@dataclass(frozen=True)
class SourceImage:
    path: Path
    format: str
    width: int
    height: int


def inspect_source(path: PathLike) -> SourceImage:
    source = Path(path)
    if not source.is_file():
        raise FileNotFoundError(f"Input file not found or not a file: {source}")

    try:
        with Image.open(source) as img:
            fmt = (img.format or "").upper()
            width, height = img.size
    except UnidentifiedImageError as exc:
        raise UnsupportedImageError(f"Cannot read image: {source}") from exc

    if fmt not in SUPPORTED_FORMATS:
        raise UnsupportedImageError(
            f"Unsupported input format {fmt or 'unknown'}. Use PNG, JPEG, or WebP."
        )
    return SourceImage(path=source, format=fmt, width=width, height=height)


def resize_png(path: PathLike, width: int, height: int) -> bytes:
    # cover: keep the aspect ratio and crop the overflow around the centre
    with Image.open(path) as img:
        resized = ImageOps.fit(img.convert("RGBA"), (width, height), Image.Resampling.LANCZOS)
    buffer = io.BytesIO()
    resized.save(buffer, format="PNG")
    return buffer.getvalue()


def resize_many(
    path: PathLike,
    dimensions: Iterable[tuple[int, int]],
    *,
    max_workers: Optional[int] = None,
    logger: Optional[logging.Logger] = None,
) -> dict[tuple[int, int], bytes]:
    """Resize ``path`` to every requested size on a thread pool.

    Sizes that fail are logged and left out of the result.
    """
    log = logger or logging.getLogger("favigen")
    wanted = list(dict.fromkeys(dimensions))
    if not wanted:
        return {}

    workers = max(1, min(max_workers or DEFAULT_MAX_WORKERS, len(wanted)))
    results: dict[tuple[int, int], bytes] = {}
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="favigen-resize") as pool:
        futures = {dims: pool.submit(resize_png, path, *dims) for dims in wanted}
        for dims in wanted:
            try:
                results[dims] = futures[dims].result()
            except Exception as exc:
                log.error("Resize to %sx%s failed: %s", dims[0], dims[1], exc)
    return results


def detect_theme_color(path: PathLike) -> str:
    with Image.open(path) as img:
        pixel = img.convert("RGB").resize((1, 1), Image.Resampling.BOX).getpixel((0, 0))
    r, g, b = pixel[:3]
    return f"#{r:02x}{g:02x}{b:02x}"
