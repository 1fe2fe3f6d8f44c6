from __future__ import annotations

import logging

from ..context import InstallContext
from ..overlap import detect_overlaps

logger = logging.getLogger(__name__)


class CheckOverlapsStep:
    step_id = "20_check_overlaps"

    def run(self, ctx: InstallContext) -> InstallContext:
        if ctx.candidate is None:
            raise RuntimeError("candidate manifest missing")

        installed = ctx.manifests.list()
        project_paths = [e.path for e in ctx.snapshot()]
        ctx.overlaps = detect_overlaps(installed, ctx.candidate, project_paths)

        if ctx.overlaps.reinstall:
            logger.info(
                "Bundle %r is already installed; its manifest will be updated", ctx.candidate.title
            )
        return ctx
