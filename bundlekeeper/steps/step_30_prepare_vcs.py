from __future__ import annotations

import logging

from ..context import InstallContext
from ..errors import VcsOperationFailed
from ..lib.paths import find_on_disk

logger = logging.getLogger(__name__)


class PrepareVcsStep:
    """Open every tracked bundle file for edit before the extractor overwrites it."""

    step_id = "30_prepare_vcs"

    def run(self, ctx: InstallContext) -> InstallContext:
        if ctx.candidate is None:
            raise RuntimeError("candidate manifest missing")
        if not ctx.vcs.active:
            return ctx

        root = ctx.config.root
        paths = []
        for rel in ctx.candidate.canonical_files:
            real = find_on_disk(root, rel)
            paths.append(real.relative_to(root).as_posix() if real else rel)

        statuses = ctx.vcs.status(paths)

        to_open = []
        to_readd = []
        locked = []
        for path, st in statuses.items():
            if st.locked_remote:
                locked.append(path)
                logger.error("File %s cannot be opened because it is locked remotely", path)
            if st.deleted_local or st.deleted_remote:
                to_readd.append(path)
            elif st.tracked and not (st.added_local or st.open_for_edit):
                to_open.append(path)

        if locked:
            raise VcsOperationFailed("checkout", locked, "file(s) locked remotely")

        if to_open:
            ctx.vcs.checkout(to_open)
            logger.info("Opened %d file(s) for edit", len(to_open))

        ctx.readd_paths = sorted(to_readd)
        return ctx
