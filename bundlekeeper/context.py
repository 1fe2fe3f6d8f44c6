from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import List, Optional

from .lib.extractor import ExtractionResult, Extractor
from .lib.snapshot import FileStateEntry, sort_snapshot, take_snapshot
from .lib.vcs import Vcs
from .manifest import BundleManifest
from .manifest_store import ManifestStore
from .overlap import OverlapReport
from .project_config import ProjectConfig
from .session import InstallSession, SessionStore


class InstallPhase(str, enum.Enum):
    IDLE = "idle"
    CANDIDATE_BUILT = "candidate_built"
    PRE_SNAPSHOT_PERSISTED = "pre_snapshot_persisted"
    EXTRACTION_TRIGGERED = "extraction_triggered"
    EXTRACTION_COMPLETED = "extraction_completed"
    EXTRACTION_FAILED = "extraction_failed"
    EXTRACTION_CANCELLED = "extraction_cancelled"
    POST_DIFFED = "post_diffed"
    MERGED = "merged"
    PERSISTED = "persisted"


@dataclass
class InstallContext:
    config: ProjectConfig
    vcs: Vcs
    extractor: Extractor
    manifests: ManifestStore
    sessions: SessionStore

    phase: InstallPhase = InstallPhase.IDLE
    container_path: Optional[str] = None
    candidate: Optional[BundleManifest] = None
    overlaps: Optional[OverlapReport] = None
    readd_paths: List[str] = field(default_factory=list)
    session: Optional[InstallSession] = None
    extraction: Optional[ExtractionResult] = None
    installed: Optional[BundleManifest] = None
    result: Optional[BundleManifest] = None

    def snapshot(self) -> List[FileStateEntry]:
        cfg = self.config
        return sort_snapshot(
            take_snapshot(
                cfg.root,
                include_pattern=cfg.include_pattern,
                ignore_patterns=cfg.ignore_patterns,
                with_hashes=cfg.hash_files,
            )
        )

    def reset(self) -> None:
        self.phase = InstallPhase.IDLE
        self.container_path = None
        self.candidate = None
        self.overlaps = None
        self.readd_paths = []
        self.session = None
        self.extraction = None
        self.installed = None
