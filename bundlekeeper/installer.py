"""Resumable install orchestration.

An install is split at the extraction call: everything needed to finish it is
persisted as an InstallSession first, because the extractor may tear down and
restart this process. Finishing (diff, merge, persist) runs either on the
completion notification or, after a restart, from the leftover session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .context import InstallContext, InstallPhase
from .errors import SessionConflict
from .lib.extractor import CommandExtractor, ExtractionOutcome, ExtractionResult, Extractor
from .lib.vcs import Vcs, make_vcs
from .manifest import BundleManifest
from .manifest_store import ManifestStore
from .overlap import OverlapReport
from .pipeline import Step, run_pipeline
from .project_config import ProjectConfig
from .session import SessionStore
from .steps import (
    BuildCandidateStep,
    CheckOverlapsStep,
    MergeStep,
    PersistManifestStep,
    PersistSessionStep,
    PostDiffStep,
    PrepareVcsStep,
    TriggerExtractionStep,
)

logger = logging.getLogger(__name__)


def build_steps() -> List[Step]:
    return [
        BuildCandidateStep(),
        CheckOverlapsStep(),
        PrepareVcsStep(),
        PersistSessionStep(),
        TriggerExtractionStep(),
        PostDiffStep(),
        MergeStep(),
        PersistManifestStep(),
    ]


@dataclass(frozen=True)
class InstallPlan:
    candidate: BundleManifest
    overlaps: OverlapReport


class InstallStateMachine:
    def __init__(
        self,
        config: ProjectConfig,
        *,
        vcs: Vcs,
        extractor: Extractor,
        manifests: Optional[ManifestStore] = None,
        sessions: Optional[SessionStore] = None,
    ) -> None:
        self.ctx = InstallContext(
            config=config,
            vcs=vcs,
            extractor=extractor,
            manifests=manifests or ManifestStore(config.manifest_dir, fmt=config.manifest_format),
            sessions=sessions or SessionStore(config.session_dir, fmt=config.session_format),
        )
        self.steps = build_steps()

    @classmethod
    def from_config(cls, config: ProjectConfig) -> "InstallStateMachine":
        return cls(
            config,
            vcs=make_vcs(config.vcs, config.root),
            extractor=CommandExtractor(
                config.extract_command, project_root=config.root, wait=config.extract_wait
            ),
        )

    @property
    def phase(self) -> InstallPhase:
        return self.ctx.phase

    def has_pending_session(self) -> bool:
        return self.ctx.sessions.exists()

    def _run(self, *, start_at: Optional[str] = None, stop_after: Optional[str] = None) -> InstallContext:
        self.ctx = run_pipeline(ctx=self.ctx, steps=self.steps, start_at=start_at, stop_after=stop_after).ctx
        return self.ctx

    def prepare(self, container_path: str | Path) -> InstallPlan:
        """Build the candidate manifest and report overlaps. Nothing is written."""

        if self.ctx.phase is not InstallPhase.IDLE:
            raise RuntimeError(f"cannot prepare an install while {self.ctx.phase.value}")

        self.ctx.container_path = str(container_path)
        try:
            ctx = self._run(stop_after="20_check_overlaps")
        except Exception:
            self.ctx.reset()
            raise
        if ctx.candidate is None or ctx.overlaps is None:
            raise RuntimeError("install preparation produced no candidate")
        return InstallPlan(candidate=ctx.candidate, overlaps=ctx.overlaps)

    def start(self) -> ExtractionResult:
        """Prepare the VCS, persist the session and trigger extraction."""

        if self.ctx.phase is not InstallPhase.CANDIDATE_BUILT:
            raise RuntimeError(f"cannot start an install while {self.ctx.phase.value}")

        try:
            ctx = self._run(start_at="30_prepare_vcs", stop_after="50_trigger_extraction")
        except SessionConflict:
            self.ctx.reset()
            raise
        except Exception:
            if self.ctx.phase is InstallPhase.CANDIDATE_BUILT:
                # Failed before anything durable was written.
                self.ctx.reset()
            raise

        if ctx.extraction is None:
            raise RuntimeError("extractor returned no result")
        result = ctx.extraction
        if result.finished:
            self.notify(result)
        return result

    def install(self, container_path: str | Path) -> ExtractionResult:
        """prepare + start without consulting the overlap report."""

        self.prepare(container_path)
        return self.start()

    def notify(self, result: ExtractionResult) -> Optional[BundleManifest]:
        """Deliver the extractor's final outcome."""

        if result.outcome is ExtractionOutcome.STARTED:
            logger.info("Extraction in progress")
            return None

        if self.ctx.phase is not InstallPhase.EXTRACTION_TRIGGERED and not self.has_pending_session():
            raise RuntimeError("no install is waiting for an extraction result")

        if result.outcome is ExtractionOutcome.FAILED:
            self.ctx.phase = InstallPhase.EXTRACTION_FAILED
            logger.error(
                "Extraction failed; revert any pending version control changes. Error: %s", result.message
            )
            self.purge()
            return None

        if result.outcome is ExtractionOutcome.CANCELLED:
            self.ctx.phase = InstallPhase.EXTRACTION_CANCELLED
            logger.warning("Extraction was cancelled; fix any pending version control changes")
            self.purge()
            return None

        self.ctx.phase = InstallPhase.EXTRACTION_COMPLETED
        return self._finish()

    def resume(self) -> Optional[BundleManifest]:
        """Finish an install left behind by a previous process, if any."""

        if not self.has_pending_session():
            return None
        logger.info("Found a pending install session; resuming from the post-install diff")
        self.ctx.session = None
        self.ctx.phase = InstallPhase.EXTRACTION_COMPLETED
        return self._finish()

    def _finish(self) -> Optional[BundleManifest]:
        ctx = self._run(start_at="60_post_diff")
        logger.info("Recorded install of %r", ctx.result.title if ctx.result else None)
        return ctx.result

    def record(self, container_path: str | Path) -> BundleManifest:
        """Store a manifest for a bundle installed outside of bundlekeeper (no install diff)."""

        if self.ctx.phase is not InstallPhase.IDLE:
            raise RuntimeError(f"cannot record a manifest while {self.ctx.phase.value}")

        self.ctx.container_path = str(container_path)
        try:
            ctx = self._run(stop_after="10_build_candidate")
            ctx.installed = ctx.candidate
            ctx.phase = InstallPhase.POST_DIFFED
            ctx = self._run(start_at="70_merge")
        except Exception:
            self.ctx.reset()
            raise
        if ctx.result is None:
            raise RuntimeError("no manifest was recorded")
        return ctx.result

    def abandon(self) -> None:
        """Drop a prepared candidate that was never started."""

        if self.ctx.phase not in {InstallPhase.IDLE, InstallPhase.CANDIDATE_BUILT}:
            raise RuntimeError(f"cannot abandon an install while {self.ctx.phase.value}")
        self.ctx.reset()

    def purge(self) -> bool:
        removed = self.ctx.sessions.purge()
        self.ctx.reset()
        return removed
