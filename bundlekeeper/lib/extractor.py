from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence

from ..errors import ExtractionError
from .command import run_cmd, spawn_cmd

logger = logging.getLogger(__name__)

# Exit status a shell reports for a command interrupted by the user (SIGINT).
CANCELLED_EXIT_CODE = 130


class ExtractionOutcome(str, enum.Enum):
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ExtractionResult:
    outcome: ExtractionOutcome
    message: str = ""

    @property
    def finished(self) -> bool:
        return self.outcome is not ExtractionOutcome.STARTED


class Extractor(Protocol):
    """Opaque import of a container's payload into the project tree.

    May return STARTED and deliver the final outcome later, possibly after the
    current process has been replaced.
    """

    def extract(self, container_path: str, *, interactive: bool) -> ExtractionResult:
        ...


class CommandExtractor:
    """Runs a configured command template.

    Placeholders: {container}, {project}, {interactive} ("1" or "0").
    """

    def __init__(self, command: Sequence[str], *, project_root: str | Path, wait: bool = True) -> None:
        self.command = list(command)
        self.project_root = str(project_root)
        self.wait = wait

    def _argv(self, container_path: str, interactive: bool) -> list[str]:
        if not self.command:
            raise ExtractionError("No extractor command configured (extractor.command)")
        values = {
            "container": container_path,
            "project": self.project_root,
            "interactive": "1" if interactive else "0",
        }
        try:
            return [part.format(**values) for part in self.command]
        except (KeyError, IndexError) as e:
            raise ExtractionError(f"Bad placeholder in extractor command: {e}") from e

    def extract(self, container_path: str, *, interactive: bool) -> ExtractionResult:
        argv = self._argv(container_path, interactive)

        try:
            if not self.wait:
                spawn_cmd(argv, cwd=self.project_root)
                return ExtractionResult(ExtractionOutcome.STARTED)
            r = run_cmd(argv, check=False, cwd=self.project_root)
        except OSError as e:
            raise ExtractionError(f"Cannot run extractor {argv[0]!r}: {e}") from e

        if r.returncode == 0:
            return ExtractionResult(ExtractionOutcome.COMPLETED)
        if r.returncode < 0 or r.returncode == CANCELLED_EXIT_CODE:
            return ExtractionResult(ExtractionOutcome.CANCELLED, r.stderr.strip())
        return ExtractionResult(
            ExtractionOutcome.FAILED,
            r.stderr.strip() or f"extractor exited with status {r.returncode}",
        )
