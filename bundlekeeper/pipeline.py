from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

from .context import InstallContext

logger = logging.getLogger(__name__)


class Step(Protocol):
    """A single phase transition of an install."""

    step_id: str

    def run(self, ctx: InstallContext) -> InstallContext:
        ...


@dataclass(frozen=True)
class PipelineResult:
    ctx: InstallContext
    ran_steps: List[str]


def run_pipeline(
    *,
    ctx: InstallContext,
    steps: Sequence[Step],
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
) -> PipelineResult:
    """Run steps in order from start_at through stop_after (inclusive)."""

    if start_at is not None and start_at not in {s.step_id for s in steps}:
        raise ValueError(f"Unknown step_id: {start_at}")

    ran: List[str] = []
    started = start_at is None

    for step in steps:
        if not started:
            if step.step_id == start_at:
                started = True
            else:
                continue

        logger.info("Running step %s (phase=%s)", step.step_id, ctx.phase.value)
        ctx = step.run(ctx)
        ran.append(step.step_id)

        if stop_after is not None and step.step_id == stop_after:
            logger.debug("Stopping after %s", stop_after)
            break

    return PipelineResult(ctx=ctx, ran_steps=ran)
