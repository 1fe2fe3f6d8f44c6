from __future__ import annotations

import logging

from ..context import InstallContext, InstallPhase
from ..errors import SessionConflict
from ..manifest import build_manifest

logger = logging.getLogger(__name__)


def ensure_no_pending_session(ctx: InstallContext) -> None:
    if not ctx.sessions.exists():
        return
    pending = ctx.sessions.load()
    raise SessionConflict(pending.candidate.title if pending else None, str(ctx.sessions.path))


class BuildCandidateStep:
    step_id = "10_build_candidate"

    def run(self, ctx: InstallContext) -> InstallContext:
        if not ctx.container_path:
            raise RuntimeError("container_path missing")

        ensure_no_pending_session(ctx)

        ctx.candidate = build_manifest(ctx.container_path)
        ctx.phase = InstallPhase.CANDIDATE_BUILT
        return ctx
