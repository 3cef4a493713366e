from __future__ import annotations

import json
import logging
import os
from pathlib import Path
import shutil
import tempfile
from typing import Any, Optional, Union

PathLike = Union[str, Path]


def path_exists(path: PathLike) -> bool:
    return Path(path).exists()


def is_file(path: PathLike) -> bool:
    return Path(path).is_file()


def is_directory(path: PathLike) -> bool:
    return Path(path).is_dir()


def read_json(path: PathLike) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def safe_write_file(path: PathLike, data: Union[bytes, str], *, backup: bool = False) -> Path:
    """Write through a temporary sibling file so readers never see a partial file."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = data.encode("utf-8") if isinstance(data, str) else data

    if backup and target.exists():
        shutil.copy2(target, target.with_name(target.name + ".bak"))

    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=target.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return target


class OutputWriter:
    def __init__(self, dry_run: bool = False, logger: Optional[logging.Logger] = None) -> None:
        self.dry_run = dry_run
        self.logger = logger or logging.getLogger("favigen")

    def ensure_dir(self, path: PathLike) -> None:
        if self.dry_run:
            self._announce("ensure directory", path)
            return
        Path(path).mkdir(parents=True, exist_ok=True)

    def write_bytes(self, path: PathLike, data: bytes) -> None:
        if self.dry_run:
            self._announce("write file", path)
            return
        safe_write_file(path, data)
        self.logger.info("Wrote %s (%s bytes)", path, len(data))

    def write_text(self, path: PathLike, text: str) -> None:
        self.write_bytes(path, text.encode("utf-8"))

    def write_json(self, path: PathLike, obj: Any, indent: int = 2) -> None:
        if self.dry_run:
            self._announce("write JSON", path)
            return
        self.write_bytes(path, json.dumps(obj, indent=indent).encode("utf-8"))

    def _announce(self, action: str, path: PathLike) -> None:
        print(f"[Dry Run] Would {action} {path}")
        self.logger.info("[Dry Run] Would %s %s", action, path)
