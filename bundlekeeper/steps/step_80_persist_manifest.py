from __future__ import annotations

import logging

from ..context import InstallContext, InstallPhase
from ..errors import VcsOperationFailed

logger = logging.getLogger(__name__)


class PersistManifestStep:
    step_id = "80_persist_manifest"

    def run(self, ctx: InstallContext) -> InstallContext:
        manifest = ctx.result
        if manifest is None:
            raise RuntimeError("merged manifest missing")

        target = ctx.manifests.path_for(manifest.title)
        rel = target.relative_to(ctx.config.root).as_posix() if target.is_relative_to(ctx.config.root) else str(target)

        if ctx.vcs.active and target.exists():
            st = ctx.vcs.status([rel]).get(rel)
            if st is not None and st.tracked and not st.open_for_edit:
                ctx.vcs.checkout([rel])

        previous = ctx.manifests.read_raw(manifest.title)
        ctx.manifests.save(manifest)

        if ctx.vcs.active:
            try:
                st = ctx.vcs.status([rel]).get(rel)
                if st is None or not st.tracked:
                    ctx.vcs.add([rel])
            except VcsOperationFailed:
                # The session stays behind, so `finish` can write it again.
                logger.error("Could not add manifest %s to version control; rolling it back", rel)
                ctx.manifests.restore_raw(manifest.title, previous)
                raise

        ctx.phase = InstallPhase.PERSISTED
        ctx.sessions.purge()
        ctx.reset()
        return ctx
