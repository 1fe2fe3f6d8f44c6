from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional

META_EXT = ".meta"


def normalize_path(path: str) -> str:
    """Project-relative form used everywhere in manifests and snapshots.

    Lowercase, forward slashes, no leading slash and no leading ``./``.
    """
    out = str(path).replace("\\", "/").lower().lstrip("/")
    if out.startswith("./"):
        out = out[2:]
    return out


def is_meta_path(path: str) -> bool:
    return path.lower().endswith(META_EXT)


def meta_companion(path: str) -> str:
    return path + META_EXT


def strip_meta(path: str) -> str:
    return path[: -len(META_EXT)] if is_meta_path(path) else path


def ancestors(path: str) -> list[str]:
    # "a/b/c" -> ["a", "a/b", "a/b/c"]
    parts = [p for p in path.split("/") if p]
    return ["/".join(parts[: i + 1]) for i in range(len(parts))]


def find_on_disk(root: Path, rel: str) -> Optional[Path]:
    """Map a normalized path back to the real, case-preserving path under root."""

    direct = root / rel
    if direct.exists():
        return direct

    current = root
    for part in [p for p in rel.split("/") if p]:
        if not current.is_dir():
            return None
        match = None
        try:
            with os.scandir(current) as it:
                for child in it:
                    if child.name.lower() == part:
                        match = Path(child.path)
                        break
        except OSError:
            return None
        if match is None:
            return None
        current = match
    return current


def safe_component(value: str, fallback: str = "bundle", max_len: int = 120) -> str:
    clean = re.sub(r"[^A-Za-z0-9 ._()+-]+", "_", value).strip(" ._")
    if not clean:
        clean = fallback
    return clean[:max_len]
