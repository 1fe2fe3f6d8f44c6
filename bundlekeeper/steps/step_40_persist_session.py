from __future__ import annotations

import logging

from ..context import InstallContext, InstallPhase
from ..session import InstallSession
from .step_10_build_candidate import ensure_no_pending_session

logger = logging.getLogger(__name__)


class PersistSessionStep:
    """Durably record the pre-install state; must complete before extraction starts."""

    step_id = "40_persist_session"

    def run(self, ctx: InstallContext) -> InstallContext:
        if ctx.candidate is None:
            raise RuntimeError("candidate manifest missing")

        ensure_no_pending_session(ctx)

        session = InstallSession(
            candidate=ctx.candidate,
            pre_install_snapshot=ctx.snapshot(),
            container_path=str(ctx.container_path or ""),
            readd_paths=list(ctx.readd_paths),
        )
        ctx.sessions.save(session)
        ctx.session = session
        ctx.phase = InstallPhase.PRE_SNAPSHOT_PERSISTED
        return ctx
