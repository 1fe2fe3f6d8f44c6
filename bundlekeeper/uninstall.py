from __future__ import annotations

import logging
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .lib.paths import ancestors, find_on_disk, is_meta_path, meta_companion, strip_meta
from .lib.snapshot import DEFAULT_IGNORE_PATTERNS
from .lib.vcs import Vcs
from .manifest import BundleManifest
from .manifest_store import ManifestStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UninstallPlan:
    title: str
    files: List[Path]
    directories: List[Path]


@dataclass
class UninstallResult:
    title: str
    deleted_files: List[Path] = field(default_factory=list)
    deleted_directories: List[Path] = field(default_factory=list)


def plan_uninstall(manifest: BundleManifest, root: str | Path) -> UninstallPlan:
    """Files to delete and directories that may become empty.

    Metadata files are never deleted on their own; a metadata file whose
    stripped path is a directory makes that directory (and its ancestors)
    pruning candidates.
    """

    root_path = Path(root)
    files: List[Path] = []
    dirs: Dict[str, Path] = {}

    for rel in manifest.tracked_paths():
        if is_meta_path(rel):
            stripped = strip_meta(rel)
            target = find_on_disk(root_path, stripped)
            if target is None or not target.is_dir():
                continue
            for anc in ancestors(stripped):
                real = find_on_disk(root_path, anc)
                if real is not None and real.is_dir():
                    dirs.setdefault(anc, real)
        else:
            real = find_on_disk(root_path, rel)
            if real is not None and real.is_file() and real not in files:
                files.append(real)

    return UninstallPlan(title=manifest.title, files=files, directories=list(dirs.values()))


def select_prunable_directories(
    candidates: Sequence[Path],
    *,
    ignore_patterns: Sequence[str] = DEFAULT_IGNORE_PATTERNS,
) -> List[Path]:
    """Deepest first; a directory qualifies when it holds no real content.

    Real content is any file that is neither metadata nor ignored, or any
    subdirectory that is not itself selected.
    """

    ignores = [re.compile(p, re.IGNORECASE) for p in ignore_patterns]
    selected: List[Path] = []

    for d in sorted(set(candidates), key=lambda p: p.as_posix().lower(), reverse=True):
        if not d.is_dir():
            continue
        legit_files = []
        live_dirs = []
        for child in d.iterdir():
            if child.is_dir():
                if child not in selected:
                    live_dirs.append(child)
                continue
            name = child.name.lower()
            if is_meta_path(name) or any(p.search(name) for p in ignores):
                continue
            legit_files.append(child)

        if not legit_files and not live_dirs:
            selected.append(d)
        else:
            logger.debug("Keeping %s (%d file(s), %d dir(s))", str(d), len(legit_files), len(live_dirs))

    return selected


class Uninstaller:
    def __init__(
        self,
        root: str | Path,
        *,
        vcs: Vcs,
        manifests: ManifestStore,
        ignore_patterns: Sequence[str] = DEFAULT_IGNORE_PATTERNS,
    ) -> None:
        self.root = Path(root)
        self.vcs = vcs
        self.manifests = manifests
        self.ignore_patterns = list(ignore_patterns)

    def _rel(self, p: Path) -> str:
        return p.relative_to(self.root).as_posix()

    def _delete_files(self, paths: List[Path]) -> None:
        if not paths:
            return
        if self.vcs.active:
            self.vcs.delete([self._rel(p) for p in paths])
            return
        for p in paths:
            p.unlink(missing_ok=True)

    def run(self, manifest: BundleManifest, manifest_path: Optional[Path] = None) -> UninstallResult:
        """Delete the bundle's files, then the manifest document itself.

        manifest_path is the file the manifest was loaded from; defaults to
        the store's path for its title.
        """

        plan = plan_uninstall(manifest, self.root)
        result = UninstallResult(title=manifest.title)

        to_delete: List[Path] = []
        for f in plan.files:
            to_delete.append(f)
            companion = f.with_name(meta_companion(f.name))
            if companion.is_file():
                to_delete.append(companion)
        self._delete_files(to_delete)
        result.deleted_files = list(plan.files)

        prunable = select_prunable_directories(plan.directories, ignore_patterns=self.ignore_patterns)
        dir_metas = [d.with_name(meta_companion(d.name)) for d in prunable]
        if self.vcs.active:
            rels = [self._rel(m) for m in dir_metas if m.is_file()]
            statuses = self.vcs.status(rels)
            tracked = [r for r, st in statuses.items() if st.tracked]
            if tracked:
                self.vcs.delete(tracked)
        for m in dir_metas:
            m.unlink(missing_ok=True)

        for d in prunable:
            if d.exists():
                shutil.rmtree(d)
            result.deleted_directories.append(d)

        manifest_path = Path(manifest_path) if manifest_path else self.manifests.path_for(manifest.title)
        if self.vcs.active and manifest_path.exists() and manifest_path.is_relative_to(self.root):
            self.vcs.delete([self._rel(manifest_path)])
        self.manifests.delete_path(manifest_path)

        logger.info(
            "Uninstalled %r: %d file(s) and %d directories",
            manifest.title,
            len(result.deleted_files),
            len(result.deleted_directories),
        )
        return result
