from __future__ import annotations

import logging

from ..context import InstallContext, InstallPhase

logger = logging.getLogger(__name__)


class TriggerExtractionStep:
    step_id = "50_trigger_extraction"

    def run(self, ctx: InstallContext) -> InstallContext:
        if ctx.session is None or not ctx.container_path:
            raise RuntimeError("install session must be persisted before extraction")

        ctx.phase = InstallPhase.EXTRACTION_TRIGGERED
        logger.info(
            "Extracting %s; if this process restarts, run `bundlekeeper finish` to record the install",
            ctx.container_path,
        )
        try:
            ctx.extraction = ctx.extractor.extract(
                ctx.container_path, interactive=ctx.config.interactive
            )
        except Exception:
            # Nothing was triggered, so the session describes no pending install.
            ctx.sessions.purge()
            ctx.reset()
            raise

        logger.info("Extraction reported %s", ctx.extraction.outcome.value)
        return ctx
