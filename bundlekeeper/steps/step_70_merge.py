from __future__ import annotations

import logging

from ..context import InstallContext, InstallPhase
from ..manifest import BundleManifest, merge_installed

logger = logging.getLogger(__name__)


class MergeStep:
    """Fold the stored install history of the same title into the new manifest."""

    step_id = "70_merge"

    def run(self, ctx: InstallContext) -> InstallContext:
        new = ctx.installed
        if new is None:
            raise RuntimeError("post-install manifest missing")

        old = ctx.manifests.find(new.title)
        if old is not None:
            new = BundleManifest(
                title=new.title,
                raw_metadata=new.raw_metadata,
                canonical_files=new.canonical_files,
                installed_files=merge_installed(new.installed_files, old.installed_files),
            )
            logger.info("Merged %d previously recorded file(s) for %r", len(old.installed_files), new.title)

        ctx.result = new
        ctx.phase = InstallPhase.MERGED
        return ctx
