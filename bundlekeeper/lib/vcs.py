from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Protocol, Sequence

from ..errors import VcsOperationFailed
from .command import CommandFailed, run_cmd

logger = logging.getLogger(__name__)

# Keep argv well below platform command line limits.
PATH_BATCH = 200


@dataclass(frozen=True)
class VcsStatus:
    path: str
    tracked: bool = False
    open_for_edit: bool = False
    added_local: bool = False
    deleted_local: bool = False
    deleted_remote: bool = False
    locked_remote: bool = False


class Vcs(Protocol):
    """Version control collaborator. Every failing operation raises VcsOperationFailed."""

    active: bool

    def status(self, paths: Sequence[str]) -> Dict[str, VcsStatus]:
        ...

    def checkout(self, paths: Sequence[str]) -> None:
        ...

    def add(self, paths: Sequence[str]) -> None:
        ...

    def delete(self, paths: Sequence[str]) -> None:
        ...


class NullVcs:
    active = False

    def status(self, paths: Sequence[str]) -> Dict[str, VcsStatus]:
        return {p: VcsStatus(path=p) for p in paths}

    def checkout(self, paths: Sequence[str]) -> None:
        return None

    def add(self, paths: Sequence[str]) -> None:
        return None

    def delete(self, paths: Sequence[str]) -> None:
        return None


def _batches(paths: Sequence[str]) -> Iterator[List[str]]:
    items = list(paths)
    for i in range(0, len(items), PATH_BATCH):
        yield items[i : i + PATH_BATCH]


class GitVcs:
    """Git backend. Working tree files are always writable, so checkout is a no-op."""

    active = True

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _git(self, operation: str, args: Sequence[str], paths: Sequence[str]) -> str:
        try:
            r = run_cmd(["git", *args], cwd=str(self.root))
        except (CommandFailed, OSError) as e:
            raise VcsOperationFailed(operation, list(paths), str(e).strip()) from e
        return r.stdout

    def _prefix(self) -> str:
        return self._git("status", ["rev-parse", "--show-prefix"], []).strip()

    def _tracked(self, paths: Sequence[str]) -> set[str]:
        tracked: set[str] = set()
        for batch in _batches(paths):
            out = self._git("status", ["ls-files", "-z", "--", *batch], batch)
            tracked.update(p for p in out.split("\0") if p)
        return tracked

    def status(self, paths: Sequence[str]) -> Dict[str, VcsStatus]:
        prefix = self._prefix()
        tracked = self._tracked(paths)

        codes: Dict[str, str] = {}
        for batch in _batches(paths):
            out = self._git("status", ["status", "--porcelain", "-z", "--", *batch], batch)
            tokens = out.split("\0")
            i = 0
            while i < len(tokens):
                tok = tokens[i]
                i += 1
                if len(tok) < 4:
                    continue
                xy, rel = tok[:2], tok[3:]
                if "R" in xy or "C" in xy:
                    i += 1  # skip the rename source
                if prefix and rel.startswith(prefix):
                    rel = rel[len(prefix) :]
                codes[rel] = xy

        out_status: Dict[str, VcsStatus] = {}
        for p in paths:
            xy = codes.get(p, "  ")
            is_tracked = p in tracked or "D" in xy
            out_status[p] = VcsStatus(
                path=p,
                tracked=is_tracked,
                open_for_edit=is_tracked,
                added_local=xy[0] == "A",
                deleted_local="D" in xy,
            )
        return out_status

    def checkout(self, paths: Sequence[str]) -> None:
        logger.debug("git checkout-for-edit is implicit (%d path(s))", len(paths))

    def add(self, paths: Sequence[str]) -> None:
        for batch in _batches(paths):
            self._git("add", ["add", "-f", "--", *batch], batch)

    def delete(self, paths: Sequence[str]) -> None:
        tracked = self._tracked(paths)
        for batch in _batches([p for p in paths if p in tracked]):
            self._git("delete", ["rm", "-r", "-f", "-q", "--", *batch], batch)
        for p in paths:
            if p in tracked:
                continue
            target = self.root / p
            if target.is_file():
                target.unlink()


def make_vcs(kind: str, root: str | Path) -> Vcs:
    if kind in {"", "none"}:
        return NullVcs()
    if kind == "git":
        return GitVcs(root)
    raise ValueError(f"Unsupported vcs backend: {kind}")
