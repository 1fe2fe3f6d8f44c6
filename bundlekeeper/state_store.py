from __future__ import annotations

import json
import logging
import os
import uuid
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"json", "yaml", "yml"}:
        return ext
    # Default to JSON for unknown extensions (e.g. ".manifest").
    return "json"


def _yaml():
    try:
        import yaml  # type: ignore
    except Exception as e:  # pragma: no cover
        raise RuntimeError(
            "YAML documents requested but PyYAML is not available. "
            "Use JSON or install PyYAML."
        ) from e
    return yaml


def load_document(path: str | Path, *, fmt: Optional[str] = None) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        return {}

    fmt = fmt or _detect_format(p)
    text = p.read_text(encoding="utf-8")
    if fmt in {"yaml", "yml"}:
        data = _yaml().safe_load(text) or {}
    else:
        data = json.loads(text) if text.strip() else {}

    if not isinstance(data, dict):
        raise ValueError(f"{p} must contain an object/dict, got {type(data)}")

    return data


def dump_document(data: Dict[str, Any], *, fmt: str) -> str:
    if fmt in {"yaml", "yml"}:
        return _yaml().safe_dump(data, sort_keys=False) + "\n"
    return json.dumps(data, indent=2, sort_keys=True) + "\n"


def write_text_atomic(path: str | Path, text: str) -> None:
    """Temp file in the same directory, fsync, replace."""

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_name(f"{p.name}.tmp.{uuid.uuid4().hex}")
    try:
        with tmp.open("w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        tmp.replace(p)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise
    logger.debug("Wrote %s", str(p))


def save_document(path: str | Path, data: Dict[str, Any], *, fmt: Optional[str] = None) -> None:
    p = Path(path)
    write_text_atomic(p, dump_document(data, fmt=fmt or _detect_format(p)))


def delete_document(path: str | Path) -> bool:
    p = Path(path)
    if not p.exists():
        return False
    p.unlink()
    return True
