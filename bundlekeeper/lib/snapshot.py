from __future__ import annotations

import hashlib
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .paths import normalize_path

logger = logging.getLogger(__name__)

DEFAULT_INCLUDE_PATTERN = r"^assets(/|$)"
DEFAULT_IGNORE_PATTERNS = (r"\.ds_store$", r"(^|/)desktop\.ini$")
HASH_CHUNK = 1024 * 1024


@dataclass(frozen=True)
class FileStateEntry:
    """One tracked file. Equality covers all four fields, so a file replaced in place differs."""

    path: str
    content_hash: Optional[str]
    modified_time: int
    size: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "content_hash": self.content_hash,
            "modified_time": self.modified_time,
            "size": self.size,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileStateEntry":
        return cls(
            path=str(data["path"]),
            content_hash=data.get("content_hash") or None,
            modified_time=int(data.get("modified_time") or 0),
            size=int(data.get("size") or 0),
        )


def hash_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(HASH_CHUNK), b""):
            h.update(chunk)
    return h.hexdigest()


def file_state(root: Path, path: Path, *, with_hash: bool = False) -> FileStateEntry:
    st = path.stat()
    rel = normalize_path(path.relative_to(root).as_posix())
    return FileStateEntry(
        path=rel,
        content_hash=hash_file(path) if with_hash else None,
        modified_time=st.st_mtime_ns,
        size=st.st_size,
    )


def take_snapshot(
    root: str | Path,
    *,
    include_pattern: str = DEFAULT_INCLUDE_PATTERN,
    ignore_patterns: Sequence[str] = DEFAULT_IGNORE_PATTERNS,
    with_hashes: bool = False,
) -> List[FileStateEntry]:
    """Walk the included subtree of root; entries come back in walk order."""

    root_path = Path(root)
    include = re.compile(include_pattern, re.IGNORECASE)
    ignores = [re.compile(p, re.IGNORECASE) for p in ignore_patterns]

    entries: List[FileStateEntry] = []
    for dirpath, dirnames, filenames in os.walk(root_path):
        here = Path(dirpath)
        rel_dir = normalize_path(here.relative_to(root_path).as_posix()) if here != root_path else ""

        dirnames[:] = [
            d for d in dirnames if include.search(normalize_path(f"{rel_dir}/{d}" if rel_dir else d))
        ]
        if not rel_dir or not include.search(rel_dir):
            continue

        for fname in filenames:
            rel = f"{rel_dir}/{fname.lower()}"
            if any(p.search(rel) for p in ignores):
                continue
            entries.append(file_state(root_path, here / fname, with_hash=with_hashes))

    logger.debug("Snapshot of %s: %d file(s)", str(root_path), len(entries))
    return entries


def sort_snapshot(entries: Iterable[FileStateEntry]) -> List[FileStateEntry]:
    return sorted(entries, key=lambda e: e.path)


def diff_snapshots(post: Iterable[FileStateEntry], pre: Iterable[FileStateEntry]) -> List[FileStateEntry]:
    """Entries of post that are absent from pre (new or changed files). Not symmetric."""

    before = set(pre)
    seen = set()
    out: List[FileStateEntry] = []
    for e in sort_snapshot(post):
        if e in before or e in seen:
            continue
        seen.add(e)
        out.append(e)
    return out


def snapshot_to_list(entries: Iterable[FileStateEntry]) -> List[Dict[str, Any]]:
    return [e.to_dict() for e in entries]


def snapshot_from_list(data: Iterable[Dict[str, Any]]) -> List[FileStateEntry]:
    return [FileStateEntry.from_dict(d) for d in data]
