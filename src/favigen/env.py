from __future__ import annotations

from dataclasses import dataclass
import io
import os
from pathlib import Path
from typing import Any, Optional

from dotenv import dotenv_values
import yaml

from .assets import normalize_color

DEFAULT_OUTPUT_DIR = "icons"
DEFAULT_SIZES = "16,32,48,64,128,256,180,150,70"
DEFAULT_APP_NAME = "App"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_MAX_WORKERS = 4

ENV_KEYS = {
    "output_dir": "FAVIGEN_OUTPUT_DIR",
    "sizes": "FAVIGEN_SIZES",
    "app_name": "FAVIGEN_APP_NAME",
    "theme_color": "FAVIGEN_THEME_COLOR",
    "log_level": "FAVIGEN_LOG_LEVEL",
    "log_file": "FAVIGEN_LOG_FILE",
    "max_workers": "FAVIGEN_MAX_WORKERS",
}
CONFIG_ENV = "FAVIGEN_CONFIG"


@dataclass(frozen=True)
class Settings:
    output_dir: str
    sizes: list[int]
    app_name: str
    theme_color: Optional[str]
    log_level: str
    log_file: Optional[str]
    max_workers: int


class ConfigError(ValueError):
    pass


def _read_env_text(env_path: Path) -> str:
    data = env_path.read_bytes()
    for encoding in ("utf-8-sig", "utf-8", "latin-1"):
        try:
            text = data.decode(encoding)
            break
        except UnicodeDecodeError:
            continue
    else:
        text = data.decode("latin-1", errors="replace")

    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return text.lstrip("\ufeff")


def load_env_from_cwd() -> Path:
    env_path = Path.cwd() / ".env"
    if env_path.exists():
        text = _read_env_text(env_path)
        values = dotenv_values(stream=io.StringIO(text))
        for key, value in values.items():
            if value is None:
                continue
            if key not in os.environ:
                os.environ[key] = value
    return env_path


def parse_sizes(text: str) -> list[int]:
    sizes: list[int] = []
    for part in str(text or "").split(","):
        part = part.strip()
        if not part:
            continue
        try:
            size = int(part)
        except ValueError:
            continue
        if size > 0 and size not in sizes:
            sizes.append(size)
    if not sizes:
        raise ConfigError(f"No valid sizes provided: {text!r}")
    return sizes


def _parse_int(name: str, raw: Any, default: int) -> int:
    if raw is None or str(raw).strip() == "":
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid integer for {name}: {raw}") from exc
    if value <= 0:
        raise ConfigError(f"{name} must be > 0")
    return value


def _load_config_file(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    section = raw.get("favigen", raw)
    if not isinstance(section, dict):
        raise ConfigError(f"'favigen' section in {path} must be a mapping")
    return section


def _env_override(d: dict[str, Any]) -> dict[str, Any]:
    for key, env_name in ENV_KEYS.items():
        value = os.getenv(env_name)
        if value is not None and value.strip() != "":
            d[key] = value.strip()
    return d


def load_settings(config_path: Optional[str] = None) -> Settings:
    """Resolve settings from an optional YAML file overridden by FAVIGEN_* env vars."""
    path = config_path or os.getenv(CONFIG_ENV)
    raw: dict[str, Any] = _load_config_file(Path(path)) if path else {}
    raw = _env_override(dict(raw))

    sizes_raw = raw.get("sizes", DEFAULT_SIZES)
    if isinstance(sizes_raw, (list, tuple)):
        sizes_raw = ",".join(str(s) for s in sizes_raw)

    theme_color = raw.get("theme_color")
    if theme_color:
        try:
            theme_color = normalize_color(str(theme_color))
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc
    else:
        theme_color = None

    log_file = raw.get("log_file")

    return Settings(
        output_dir=str(raw.get("output_dir") or DEFAULT_OUTPUT_DIR),
        sizes=parse_sizes(sizes_raw),
        app_name=str(raw.get("app_name") or DEFAULT_APP_NAME),
        theme_color=theme_color,
        log_level=str(raw.get("log_level") or DEFAULT_LOG_LEVEL).upper(),
        log_file=str(log_file) if log_file else None,
        max_workers=_parse_int("max_workers", raw.get("max_workers"), DEFAULT_MAX_WORKERS),
    )
