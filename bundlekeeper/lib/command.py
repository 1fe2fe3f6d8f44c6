from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)


def fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


class CommandFailed(RuntimeError):
    def __init__(self, argv: Sequence[str], returncode: int, stderr: str) -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"{fmt_argv(argv)} exited with {returncode}: {stderr.strip()}")


@dataclass(frozen=True)
class CmdResult:
    argv: List[str]
    returncode: int
    stdout: str
    stderr: str


def run_cmd(argv: Sequence[str], *, check: bool = True, cwd: Optional[str] = None) -> CmdResult:
    """Run an external tool (git, the extractor) and capture its output.

    Non-zero exit raises CommandFailed unless check is False.
    """

    args = list(argv)
    logger.info("CMD %s (cwd=%s)", fmt_argv(args), cwd or ".")

    proc = subprocess.run(args, cwd=cwd, capture_output=True, text=True)
    for stream, text in (("STDOUT", proc.stdout), ("STDERR", proc.stderr)):
        if text:
            logger.debug("%s %s", stream, text.strip())

    if check and proc.returncode != 0:
        raise CommandFailed(args, proc.returncode, proc.stderr)
    return CmdResult(argv=args, returncode=proc.returncode, stdout=proc.stdout, stderr=proc.stderr)


def spawn_cmd(argv: Sequence[str], *, cwd: Optional[str] = None) -> int:
    """Start a detached process (own session, no pipes); returns its pid."""

    args = list(argv)
    logger.info("SPAWN %s (cwd=%s)", fmt_argv(args), cwd or ".")
    proc = subprocess.Popen(
        args,
        cwd=cwd,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
    )
    return proc.pid
