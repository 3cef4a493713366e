from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Callable, Optional

from .assets import (
    BROWSERCONFIG_TILES,
    build_browserconfig,
    build_manifest,
    icon_filename,
)
from .files import OutputWriter, path_exists
from .ico import MAX_DIMENSION, IcoWarning, encode_ico
from .images import DEFAULT_MAX_WORKERS, detect_theme_color, inspect_source, resize_many

ICO_FILENAME = "favicon.ico"
MANIFEST_FILENAME = "site.webmanifest"
BROWSERCONFIG_FILENAME = "browserconfig.xml"

ConfirmFn = Callable[[Path], bool]


class GenerationError(RuntimeError):
    pass


@dataclass
class GeneratorOptions:
    input_path: Path
    output_dir: Path
    sizes: list[int]
    app_name: str = "App"
    theme_color: Optional[str] = None
    yes: bool = False
    dry_run: bool = False
    manifest: bool = False
    browserconfig: bool = False
    max_workers: int = DEFAULT_MAX_WORKERS


@dataclass
class GenerationReport:
    written: list[Path] = field(default_factory=list)
    planned: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    warnings: list[IcoWarning] = field(default_factory=list)
    ico_path: Optional[Path] = None
    theme_color: Optional[str] = None


class FaviconGenerator:
    def __init__(
        self,
        options: GeneratorOptions,
        writer: Optional[OutputWriter] = None,
        confirm: Optional[ConfirmFn] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.options = options
        self.logger = logger or logging.getLogger("favigen")
        self.writer = writer or OutputWriter(dry_run=options.dry_run, logger=self.logger)
        self.confirm = confirm
        self.report = GenerationReport()

    def run(self) -> GenerationReport:
        opts = self.options
        source = inspect_source(opts.input_path)
        self.logger.info(
            "Source %s format=%s size=%sx%s",
            source.path,
            source.format,
            source.width,
            source.height,
        )

        theme_color = opts.theme_color
        if not theme_color:
            theme_color = detect_theme_color(source.path)
            print(f"Detected theme color: {theme_color}")
            self.logger.info("Detected theme color %s", theme_color)
        self.report.theme_color = theme_color

        self.writer.ensure_dir(opts.output_dir)
        icons = self.generate_png_icons()
        self.generate_ico(icons)

        if opts.manifest:
            self.generate_manifest(theme_color)
        if opts.browserconfig:
            self.generate_browserconfig(theme_color)
        return self.report

    def _may_write(self, path: Path) -> bool:
        if not path_exists(path):
            return True
        if self.options.yes:
            return True
        if self.confirm is not None and self.confirm(path):
            return True
        print(f"Skipped {path.name}")
        self.logger.info("Skipped existing file %s", path)
        self.report.skipped.append(path)
        return False

    def _record(self, path: Path) -> None:
        # dry runs only plan writes
        if self.writer.dry_run:
            self.report.planned.append(path)
        else:
            self.report.written.append(path)

    def _write(self, path: Path, data: bytes) -> None:
        self.writer.write_bytes(path, data)
        self._record(path)

    def generate_png_icons(self) -> list[tuple[int, bytes]]:
        opts = self.options
        wanted = [
            size
            for size in opts.sizes
            if self._may_write(opts.output_dir / icon_filename(size, size))
        ]
        print(f"Resizing {len(wanted)} PNG icons...")
        resized = resize_many(
            opts.input_path,
            [(size, size) for size in wanted],
            max_workers=opts.max_workers,
            logger=self.logger,
        )
        if wanted and not resized:
            raise GenerationError("No PNG icons could be generated from the source image")

        icons: list[tuple[int, bytes]] = []
        for size in wanted:
            data = resized.get((size, size))
            if data is None:
                continue
            self._write(opts.output_dir / icon_filename(size, size), data)
            print(f"Generated {icon_filename(size, size)}")
            icons.append((size, data))

        print(f"Completed PNG icons ({len(icons)}/{len(opts.sizes)})")
        return icons

    def generate_ico(self, icons: list[tuple[int, bytes]]) -> Optional[Path]:
        ico_path = self.options.output_dir / ICO_FILENAME
        eligible = [data for size, data in icons if size <= MAX_DIMENSION]
        excluded = [size for size, _ in icons if size > MAX_DIMENSION]
        if excluded:
            self.logger.info(
                "Sizes larger than %s left out of %s: %s",
                MAX_DIMENSION,
                ICO_FILENAME,
                ", ".join(str(s) for s in excluded),
            )
        if not eligible:
            print(f"Skipped {ICO_FILENAME} (no icon sizes up to {MAX_DIMENSION}px)")
            self.logger.warning("No icons eligible for %s", ICO_FILENAME)
            return None
        if not self._may_write(ico_path):
            return None

        print(f"Generating {ICO_FILENAME}...")
        result = encode_ico(eligible)
        for warning in result.warnings:
            self.logger.warning("ICO: %s", warning.message)
        self.report.warnings.extend(result.warnings)

        self._write(ico_path, result.data)
        if not self.writer.dry_run:
            self.report.ico_path = ico_path
        print(f"Generated {ICO_FILENAME} ({len(result.images)} images, {len(result.data)} bytes)")
        return ico_path

    def generate_manifest(self, theme_color: str) -> Optional[Path]:
        path = self.options.output_dir / MANIFEST_FILENAME
        if not self._may_write(path):
            return None
        print(f"Writing {MANIFEST_FILENAME}...")
        manifest = build_manifest(self.options.app_name, self.options.sizes, theme_color)
        self.writer.write_json(path, manifest)
        self._record(path)
        print(f"Generated {MANIFEST_FILENAME}")
        return path

    def generate_browserconfig(self, theme_color: str) -> Optional[Path]:
        opts = self.options
        path = opts.output_dir / BROWSERCONFIG_FILENAME
        if not self._may_write(path):
            return None

        missing = [
            dims
            for dims in BROWSERCONFIG_TILES
            if not path_exists(opts.output_dir / icon_filename(*dims))
        ]
        if missing:
            print(f"Generating {len(missing)} tile images for {BROWSERCONFIG_FILENAME}...")
            tiles = resize_many(
                opts.input_path,
                missing,
                max_workers=opts.max_workers,
                logger=self.logger,
            )
            for dims in missing:
                data = tiles.get(dims)
                if data is None:
                    continue
                self._write(opts.output_dir / icon_filename(*dims), data)
                print(f"Generated {icon_filename(*dims)}")

        print(f"Writing {BROWSERCONFIG_FILENAME}...")
        self.writer.write_text(path, build_browserconfig(theme_color))
        self._record(path)
        print(f"Generated {BROWSERCONFIG_FILENAME}")
        return path
