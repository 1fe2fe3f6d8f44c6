"""Shared fixtures: bundle containers, project trees and collaborator fakes."""

from __future__ import annotations

import hashlib
import io
import json
import logging
import struct
import tarfile
import zlib
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from bundlekeeper.errors import VcsOperationFailed
from bundlekeeper.lib.extractor import ExtractionOutcome, ExtractionResult
from bundlekeeper.lib.vcs import VcsStatus
from bundlekeeper.project_config import ProjectConfig


# ============================================================================
# Container builders
# ============================================================================

def tar_bytes(entries: Sequence[Tuple[str, bytes]], *, dirs: Sequence[str] = ()) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w", format=tarfile.USTAR_FORMAT) as tf:
        for name in dirs:
            info = tarfile.TarInfo(name)
            info.type = tarfile.DIRTYPE
            tf.addfile(info)
        for name, data in entries:
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tf.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def gzip_bytes(payload: bytes, subfields: Optional[Sequence[Tuple[bytes, bytes]]] = None) -> bytes:
    flags = 0
    extra = b""
    if subfields is not None:
        flags |= 0x04
        body = b"".join(sid + struct.pack("<H", len(data)) + data for sid, data in subfields)
        extra = struct.pack("<H", len(body)) + body
    header = b"\x1f\x8b\x08" + bytes([flags]) + struct.pack("<I", 0) + b"\x00\xff" + extra
    co = zlib.compressobj(9, zlib.DEFLATED, -15)
    deflated = co.compress(payload) + co.flush()
    trailer = struct.pack("<II", zlib.crc32(payload) & 0xFFFFFFFF, len(payload) & 0xFFFFFFFF)
    return header + deflated + trailer


def bucket_id(pathname: str) -> str:
    return hashlib.sha1(pathname.encode("utf-8")).hexdigest()


def bundle_entries(files: Dict[str, Optional[bytes]], *, meta: bool = True) -> List[Tuple[str, bytes]]:
    """Hash-bucket entries for pathname -> content (None for a directory)."""

    entries: List[Tuple[str, bytes]] = []
    for pathname, content in files.items():
        h = bucket_id(pathname)
        if content is not None:
            entries.append((f"{h}/asset", content))
        if meta:
            entries.append((f"{h}/asset.meta", b"fileFormatVersion: 2\n"))
        entries.append((f"{h}/pathname", (pathname + "\n00").encode("utf-8")))
    return entries


@pytest.fixture
def make_container(tmp_path):
    """Factory writing a bundle container under <tmp>/bundles."""

    out_dir = tmp_path / "bundles"

    def _make(
        name: str,
        files: Dict[str, Optional[bytes]],
        *,
        title: Optional[str] = None,
        metadata: Optional[str] = None,
        extra: bool = True,
    ) -> Path:
        out_dir.mkdir(parents=True, exist_ok=True)
        if metadata is None and title is not None:
            metadata = json.dumps({"title": title, "version": "1.0"})
        subfields = None
        if extra:
            subfields = [(b"XX", b"ignored")]
            if metadata is not None:
                subfields.append((b"A$", metadata.encode("utf-8")))
        p = out_dir / name
        p.write_bytes(gzip_bytes(tar_bytes(bundle_entries(files)), subfields))
        return p

    return _make


# ============================================================================
# Project fixtures
# ============================================================================

@pytest.fixture
def project(tmp_path):
    root = tmp_path / "project"
    (root / "Assets").mkdir(parents=True)
    (root / "Assets" / "Existing.txt").write_text("already here\n")
    (root / "ProjectSettings").mkdir()
    (root / "ProjectSettings" / "settings.asset").write_text("x\n")
    return root


@pytest.fixture
def config(project):
    return ProjectConfig(root=project, raw={})


# ============================================================================
# Collaborator fakes
# ============================================================================

def write_tree(root: Path, files: Dict[str, Optional[bytes]]) -> None:
    for rel, content in files.items():
        p = root / rel
        if content is None:
            p.mkdir(parents=True, exist_ok=True)
        else:
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_bytes(content)
        p.with_name(p.name + ".meta").write_text("fileFormatVersion: 2\n")


class FakeExtractor:
    """Writes the given files (plus .meta companions) like an import would."""

    def __init__(
        self,
        root: Path,
        files: Dict[str, Optional[bytes]],
        outcome: ExtractionOutcome = ExtractionOutcome.COMPLETED,
        message: str = "",
    ) -> None:
        self.root = root
        self.files = files
        self.outcome = outcome
        self.message = message
        self.calls: List[Tuple[str, bool]] = []

    def extract(self, container_path: str, *, interactive: bool) -> ExtractionResult:
        self.calls.append((container_path, interactive))
        if self.outcome in {ExtractionOutcome.COMPLETED, ExtractionOutcome.STARTED}:
            write_tree(self.root, self.files)
        return ExtractionResult(self.outcome, self.message)


class RaisingExtractor:
    def extract(self, container_path: str, *, interactive: bool) -> ExtractionResult:
        raise RuntimeError("extractor crashed before starting")


class FakeVcs:
    active = True

    def __init__(
        self,
        statuses: Optional[Dict[str, VcsStatus]] = None,
        fail_on: Sequence[str] = (),
        root: Optional[Path] = None,
    ) -> None:
        self.statuses = statuses or {}
        self.root = root
        self.fail_on = set(fail_on)
        self.calls: List[Tuple[str, List[str]]] = []

    def _call(self, op: str, paths: Sequence[str]) -> None:
        self.calls.append((op, list(paths)))
        if op in self.fail_on:
            raise VcsOperationFailed(op, list(paths), "simulated failure")

    def status(self, paths):
        self._call("status", paths)
        return {p: self.statuses.get(p, VcsStatus(path=p)) for p in paths}

    def checkout(self, paths):
        self._call("checkout", paths)

    def add(self, paths):
        self._call("add", paths)

    def delete(self, paths):
        self._call("delete", paths)
        if self.root is None:
            return
        for p in paths:
            target = self.root / p
            if target.is_file():
                target.unlink()

    def paths_for(self, op: str) -> List[str]:
        out: List[str] = []
        for name, paths in self.calls:
            if name == op:
                out.extend(paths)
        return out


# ============================================================================
# Fixture wrappers (tests take helpers as fixtures, not imports)
# ============================================================================

@pytest.fixture
def build_tar():
    return tar_bytes


@pytest.fixture
def build_gzip():
    return gzip_bytes


@pytest.fixture
def bucket_entries():
    return bundle_entries


@pytest.fixture
def fake_extractor(project):
    def _make(files, outcome=ExtractionOutcome.COMPLETED, message=""):
        return FakeExtractor(project, files, outcome, message)

    return _make


@pytest.fixture
def raising_extractor():
    return RaisingExtractor()


@pytest.fixture
def fake_vcs():
    return FakeVcs


@pytest.fixture
def clean_root_logger():
    """Undo configure_logging() side effects on the root logger."""

    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    yield root
    for h in list(root.handlers):
        if h not in before:
            root.removeHandler(h)
            h.close()
    for attr in ("_bundlekeeper_configured", "_bundlekeeper_log_path"):
        if hasattr(root, attr):
            delattr(root, attr)
    root.setLevel(level)
