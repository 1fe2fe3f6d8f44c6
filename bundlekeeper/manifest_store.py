from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from .lib.paths import safe_component
from .manifest import BundleManifest
from .state_store import delete_document, load_document, save_document, write_text_atomic

logger = logging.getLogger(__name__)

MANIFEST_SUFFIX = ".manifest"


class ManifestStore:
    """Permanent record of installed bundles: one document per title."""

    def __init__(self, directory: str | Path, *, fmt: str = "json") -> None:
        self.directory = Path(directory)
        self.fmt = fmt

    def path_for(self, title: str) -> Path:
        return self.directory / f"{safe_component(title)}{MANIFEST_SUFFIX}"

    def load(self, path: str | Path) -> BundleManifest:
        data = load_document(path, fmt=self.fmt)
        if not data:
            raise FileNotFoundError(str(path))
        return BundleManifest.from_dict(data)

    def find(self, title: str) -> Optional[BundleManifest]:
        p = self.path_for(title)
        if not p.exists():
            return None
        return self.load(p)

    def list(self) -> List[BundleManifest]:
        if not self.directory.is_dir():
            return []
        return [self.load(p) for p in sorted(self.directory.glob(f"*{MANIFEST_SUFFIX}"))]

    def save(self, manifest: BundleManifest) -> Path:
        p = self.path_for(manifest.title)
        save_document(p, manifest.to_dict(), fmt=self.fmt)
        logger.info("Stored manifest for %r at %s", manifest.title, str(p))
        return p

    def delete(self, title: str) -> bool:
        return self.delete_path(self.path_for(title))

    def delete_path(self, path: str | Path) -> bool:
        return delete_document(path)

    def read_raw(self, title: str) -> Optional[str]:
        p = self.path_for(title)
        return p.read_text(encoding="utf-8") if p.exists() else None

    def restore_raw(self, title: str, text: Optional[str]) -> None:
        """Put back what read_raw returned; None removes the document."""

        p = self.path_for(title)
        if text is None:
            delete_document(p)
        else:
            write_text_atomic(p, text)
        logger.info("Restored previous manifest state for %r", title)
