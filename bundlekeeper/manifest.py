from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List

from .errors import MetadataMissing, TitleNotFound
from .lib.gzip_extra import read_container_metadata
from .lib.snapshot import FileStateEntry
from .lib.tar_catalog import catalog_container

logger = logging.getLogger(__name__)

TITLE_PATTERN = re.compile(r'"title"\s*:\s*"([^"]+)"', re.IGNORECASE)


@dataclass
class BundleManifest:
    title: str
    raw_metadata: str = ""
    canonical_files: List[str] = field(default_factory=list)
    installed_files: List[FileStateEntry] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.canonical_files = sorted(set(self.canonical_files))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "raw_metadata": self.raw_metadata,
            "canonical_files": list(self.canonical_files),
            "installed_files": [e.to_dict() for e in self.installed_files],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BundleManifest":
        if not data.get("title"):
            raise ValueError("manifest document has no title")
        return cls(
            title=str(data["title"]),
            raw_metadata=str(data.get("raw_metadata") or ""),
            canonical_files=[str(p) for p in data.get("canonical_files") or []],
            installed_files=[FileStateEntry.from_dict(e) for e in data.get("installed_files") or []],
        )

    def tracked_paths(self) -> List[str]:
        """Paths an uninstall should consider: the install diff when recorded, else the full list."""
        if self.installed_files:
            return [e.path for e in self.installed_files]
        return list(self.canonical_files)


def extract_title(metadata: str, *, container: str = "<metadata>") -> str:
    try:
        doc = json.loads(metadata)
    except ValueError:
        doc = None
    if isinstance(doc, dict):
        for key, value in doc.items():
            if str(key).lower() == "title" and isinstance(value, str) and value:
                return value

    m = TITLE_PATTERN.search(metadata)
    if not m:
        raise TitleNotFound(container, f"no title in metadata {metadata!r}")
    return m.group(1)


def build_manifest(container_path: str | Path) -> BundleManifest:
    p = Path(container_path)

    try:
        metadata = read_container_metadata(p)
    except MetadataMissing as e:
        logger.warning("%s; using the file name as title", e)
        metadata = ""

    if metadata:
        title = extract_title(metadata, container=str(p))
    else:
        title = p.stem

    files = catalog_container(p)
    logger.info("Read bundle %r from %s (%d file(s))", title, str(p), len(files))
    return BundleManifest(title=title, raw_metadata=metadata, canonical_files=files)


def merge_installed(new: Iterable[FileStateEntry], old: Iterable[FileStateEntry]) -> List[FileStateEntry]:
    """Union of two install histories, new entries first, duplicates dropped."""

    out: List[FileStateEntry] = []
    seen = set()
    for e in [*new, *old]:
        if e in seen:
            continue
        seen.add(e)
        out.append(e)
    return out
