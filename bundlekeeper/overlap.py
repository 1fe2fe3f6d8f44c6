from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence

from .manifest import BundleManifest

logger = logging.getLogger(__name__)


@dataclass
class OverlapReport:
    """Advisory findings; callers decide whether to go ahead.

    packages lists every installed bundle sharing a file with the candidate,
    the candidate's own title included when it is already installed.
    """

    title: str = ""
    packages: List[str] = field(default_factory=list)
    loose_files: List[str] = field(default_factory=list)

    @property
    def reinstall(self) -> bool:
        return self.title in self.packages

    @property
    def conflicts(self) -> List[str]:
        """Overlapping bundles other than the candidate itself."""
        return [t for t in self.packages if t != self.title]

    @property
    def clean(self) -> bool:
        return not self.conflicts and not self.loose_files


def detect_overlaps(
    installed: Sequence[BundleManifest],
    candidate: BundleManifest,
    project_paths: Iterable[str],
) -> OverlapReport:
    wanted = set(candidate.canonical_files)
    report = OverlapReport(title=candidate.title)

    tracked = set()
    for m in installed:
        if wanted.intersection(m.canonical_files):
            report.packages.append(m.title)
        tracked.update(m.canonical_files)
    loose = set(project_paths) - tracked
    report.loose_files = sorted(loose & wanted)

    for title in report.conflicts:
        logger.warning("Bundle %r overlaps installed bundle %r", candidate.title, title)
    for path in report.loose_files:
        logger.warning("File %s will be replaced by bundle %r", path, candidate.title)

    return report
