from __future__ import annotations

import argparse
import importlib.metadata
import logging
from logging.handlers import RotatingFileHandler
import os
from pathlib import Path
import sys
from typing import Optional, Sequence

from .assets import normalize_color
from .env import ConfigError, Settings, load_env_from_cwd, load_settings, parse_sizes
from .generator import FaviconGenerator, GenerationError, GeneratorOptions
from .ico import IcoError
from .images import UnsupportedImageError

LOG_MAX_BYTES = 2 * 1024 * 1024
LOG_BACKUP_COUNT = 5
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_INPUT_ERROR = 3
EXIT_ENCODE_ERROR = 4
EXIT_CANCELLED = 130


def _setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    logger = logging.getLogger("favigen")
    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(message)s")

    stream = logging.StreamHandler(sys.stderr)
    stream.setLevel(logging.WARNING)
    stream.setFormatter(formatter)
    logger.addHandler(stream)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_path,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


def _get_version() -> str:
    try:
        return importlib.metadata.version("favigen")
    except Exception:
        return "unknown"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="favigen",
        description=(
            "Generate favicon.ico, assorted PNG icons, webmanifest, and browserconfig "
            "from a single image"
        ),
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
        help="Output the current version",
    )
    parser.add_argument(
        "-i",
        "--input",
        required=True,
        help="Source image file (PNG/JPEG/WebP)",
    )
    parser.add_argument("-o", "--output", help="Output directory (default: icons)")
    parser.add_argument(
        "-s",
        "--sizes",
        help="Comma-separated icon sizes for PNG generation",
    )
    parser.add_argument(
        "-y",
        "--yes",
        action="store_true",
        help="Auto-confirm all prompts (overwrite files, external paths)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview operations without writing files",
    )
    parser.add_argument(
        "--manifest",
        action="store_true",
        help="Generate site.webmanifest for PWA support",
    )
    parser.add_argument(
        "--browserconfig",
        action="store_true",
        help="Generate browserconfig.xml for Windows tiles",
    )
    parser.add_argument("--app-name", help="Application name for manifest files")
    parser.add_argument(
        "--theme-color",
        help="Theme color (hex) for manifest/browserconfig; detected from the image if omitted",
    )
    parser.add_argument("--config", help="Path to a favigen YAML config file")
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)")
    return parser


def _print_quick_start() -> None:
    print("Favigen - Favicon Generator")
    print("No arguments supplied. Use --help to see usage.")
    print()
    print("Quick start:")
    print("  favigen -i logo.png -o ./assets/icons")
    print("  favigen -i logo.png -o /home/user/website/icons --manifest")


def ask_yes_no(message: str) -> bool:
    try:
        answer = input(f"{message} (y/n): ")
    except EOFError:
        return False
    return answer.strip().lower().startswith("y")


def _confirm_overwrite(path: Path) -> bool:
    return ask_yes_no(f"{path} exists. Overwrite?")


def _is_outside_cwd(path: Path) -> bool:
    try:
        path.relative_to(Path.cwd().resolve())
    except ValueError:
        return True
    return False


def _build_options(args: argparse.Namespace, settings: Settings) -> GeneratorOptions:
    sizes = parse_sizes(args.sizes) if args.sizes else settings.sizes
    theme_color = settings.theme_color
    if args.theme_color:
        try:
            theme_color = normalize_color(args.theme_color)
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc

    return GeneratorOptions(
        input_path=Path(args.input).expanduser().resolve(),
        output_dir=Path(args.output or settings.output_dir).expanduser().resolve(),
        sizes=sizes,
        app_name=args.app_name or settings.app_name,
        theme_color=theme_color,
        yes=args.yes,
        dry_run=args.dry_run,
        manifest=args.manifest,
        browserconfig=args.browserconfig,
        max_workers=settings.max_workers,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv:
        _print_quick_start()
        return 0

    args = _build_parser().parse_args(argv)
    env_path = load_env_from_cwd()

    try:
        settings = load_settings(args.config)
    except ConfigError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    logger = _setup_logging(args.log_level or settings.log_level, settings.log_file)
    logger.info(
        "Loaded config (env_path=%s, config=%s)",
        env_path if env_path.exists() else "not found",
        args.config or os.getenv("FAVIGEN_CONFIG") or "none",
    )

    try:
        options = _build_options(args, settings)
    except ConfigError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        logger.error("Invalid options: %s", exc)
        return EXIT_CONFIG_ERROR

    print("Starting favicon generation...")
    print(f"Input:  {options.input_path}")
    print(f"Output: {options.output_dir}")

    if _is_outside_cwd(options.output_dir) and not options.yes:
        print(f"WARN: Output path is outside current directory: {options.output_dir}")
        try:
            proceed = ask_yes_no("Continue with output path outside current directory?")
        except KeyboardInterrupt:
            proceed = False
        if not proceed:
            print("Operation cancelled.")
            return EXIT_CANCELLED

    generator = FaviconGenerator(options, confirm=_confirm_overwrite, logger=logger)
    try:
        report = generator.run()
    except (FileNotFoundError, UnsupportedImageError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        logger.error("Input rejected: %s", exc)
        return EXIT_INPUT_ERROR
    except IcoError as exc:
        print(f"ERROR: favicon.ico encoding failed: {exc}", file=sys.stderr)
        logger.error("ICO encoding failed: %s", exc)
        return EXIT_ENCODE_ERROR
    except GenerationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        logger.error("Generation failed: %s", exc)
        return EXIT_ERROR
    except KeyboardInterrupt:
        print("Operation cancelled.")
        return EXIT_CANCELLED
    except OSError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        print("Ensure the output directory is writable.", file=sys.stderr)
        logger.exception("Filesystem failure: %s", exc)
        return EXIT_ERROR
    except Exception as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        logger.exception("Unexpected failure: %s", exc)
        return EXIT_ERROR

    print()
    print("Favicon generation completed successfully!")
    print(f"Files generated in: {options.output_dir}")
    logger.info(
        "Done: written=%s planned=%s skipped=%s warnings=%s",
        len(report.written),
        len(report.planned),
        len(report.skipped),
        len(report.warnings),
    )
    if not options.manifest and not options.browserconfig:
        print("Tip: Use --manifest and --browserconfig flags for web app support")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
