from __future__ import annotations

import logging

from ..context import InstallContext, InstallPhase
from ..lib.paths import find_on_disk
from ..lib.snapshot import diff_snapshots
from ..manifest import BundleManifest

logger = logging.getLogger(__name__)


class PostDiffStep:
    step_id = "60_post_diff"

    def run(self, ctx: InstallContext) -> InstallContext:
        session = ctx.session or ctx.sessions.load()
        if session is None:
            raise RuntimeError("no install session to finish")
        ctx.session = session
        ctx.container_path = ctx.container_path or session.container_path or None

        if ctx.vcs.active and session.readd_paths:
            root = ctx.config.root
            present = []
            for rel in session.readd_paths:
                real = find_on_disk(root, rel)
                if real is not None:
                    present.append(real.relative_to(root).as_posix())
            if present:
                ctx.vcs.add(present)
                logger.info("Re-added %d file(s) previously marked for delete", len(present))

        installed = diff_snapshots(ctx.snapshot(), session.pre_install_snapshot)
        candidate = session.candidate
        ctx.installed = BundleManifest(
            title=candidate.title,
            raw_metadata=candidate.raw_metadata,
            canonical_files=list(candidate.canonical_files),
            installed_files=installed,
        )
        ctx.phase = InstallPhase.POST_DIFFED
        logger.info("Install of %r produced %d new or changed file(s)", candidate.title, len(installed))
        return ctx
