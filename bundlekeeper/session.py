from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .lib.snapshot import FileStateEntry, snapshot_from_list, snapshot_to_list
from .manifest import BundleManifest
from .state_store import delete_document, load_document, save_document

logger = logging.getLogger(__name__)


@dataclass
class InstallSession:
    """An install that has been triggered but not yet recorded.

    Its presence on disk, not any in-memory flag, says an install is pending.
    """

    candidate: BundleManifest
    pre_install_snapshot: List[FileStateEntry]
    container_path: str = ""
    created_at: float = field(default_factory=time.time)
    readd_paths: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "candidate_manifest": self.candidate.to_dict(),
            "pre_install_snapshot": snapshot_to_list(self.pre_install_snapshot),
            "container_path": self.container_path,
            "created_at": self.created_at,
            "readd_paths": list(self.readd_paths),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InstallSession":
        return cls(
            candidate=BundleManifest.from_dict(data["candidate_manifest"]),
            pre_install_snapshot=snapshot_from_list(data.get("pre_install_snapshot") or []),
            container_path=str(data.get("container_path") or ""),
            created_at=float(data.get("created_at") or 0.0),
            readd_paths=[str(p) for p in data.get("readd_paths") or []],
        )


class SessionStore:
    def __init__(self, directory: str | Path, *, fmt: str = "json") -> None:
        ext = "yaml" if fmt in {"yaml", "yml"} else "json"
        self.path = Path(directory) / f"session.{ext}"

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Optional[InstallSession]:
        data = load_document(self.path)
        if not data:
            return None
        return InstallSession.from_dict(data)

    def save(self, session: InstallSession) -> None:
        save_document(self.path, session.to_dict())
        logger.info("Persisted install session for %r at %s", session.candidate.title, str(self.path))

    def purge(self) -> bool:
        removed = delete_document(self.path)
        if removed:
            logger.info("Purged install session %s", str(self.path))
        return removed
