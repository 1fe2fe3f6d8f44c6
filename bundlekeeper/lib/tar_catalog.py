from __future__ import annotations

import gzip
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional

from ..errors import InvalidContainerFormat, MalformedSize, TruncatedArchive
from .paths import meta_companion, normalize_path

logger = logging.getLogger(__name__)

BLOCK_SIZE = 512
SKIP_CHUNK = 1024 * 1024

# Header field offsets (name, size, magic, prefix) in a 512 byte TAR header.
NAME = slice(0, 100)
SIZE = slice(124, 136)
MAGIC = slice(257, 263)
PREFIX = slice(345, 500)

HASH_BUCKET = re.compile(r"^([a-f\d]{20,})/")


@dataclass
class BucketEntry:
    has_asset: bool = False
    has_meta: bool = False
    pathname: Optional[str] = None


@dataclass(frozen=True)
class TarHeader:
    name: str
    size: int


def _field(raw: bytes) -> str:
    return raw.split(b"\0", 1)[0].decode("utf-8", errors="replace").strip()


def _parse_size(raw: bytes, *, name: str) -> int:
    text = raw.split(b"\0", 1)[0].strip()
    try:
        return int(text, 8)
    except ValueError:
        raise MalformedSize(name, raw) from None


def parse_header(block: bytes, *, name: str = "<stream>") -> TarHeader:
    filename = _field(block[NAME])
    prefix = ""
    if block[MAGIC].rstrip(b"\0") == b"ustar":
        prefix = _field(block[PREFIX])
    # The prefix field never carries the separator itself.
    fullname = f"{prefix}/{filename}" if prefix else filename
    return TarHeader(name=fullname, size=_parse_size(block[SIZE], name=name))


def _padded(size: int) -> int:
    rem = size % BLOCK_SIZE
    return size + (BLOCK_SIZE - rem if rem else 0)


def _skip(stream: BinaryIO, n: int, *, name: str, entry: str) -> None:
    while n > 0:
        chunk = stream.read(min(SKIP_CHUNK, n))
        if not chunk:
            raise TruncatedArchive(name, f"payload of {entry} runs past the end of the stream")
        n -= len(chunk)


def _read_exact(stream: BinaryIO, n: int, *, name: str, entry: str) -> bytes:
    parts: List[bytes] = []
    left = n
    while left > 0:
        chunk = stream.read(left)
        if not chunk:
            raise TruncatedArchive(name, f"payload of {entry} runs past the end of the stream")
        parts.append(chunk)
        left -= len(chunk)
    return b"".join(parts)


def scan_buckets(stream: BinaryIO, *, name: str = "<stream>") -> Dict[str, BucketEntry]:
    """Walk TAR headers and collect per-hash facts without extracting assets."""

    buckets: Dict[str, BucketEntry] = {}

    while True:
        block = _read_exact_or_eof(stream, name=name)
        if block is None or not any(block):
            break

        header = parse_header(block, name=name)
        entry_name = header.name[2:] if header.name.startswith("./") else header.name
        payload_len = _padded(header.size)

        m = HASH_BUCKET.match(entry_name)
        if not m:
            _skip(stream, payload_len, name=name, entry=entry_name)
            continue

        bucket = buckets.setdefault(m.group(1), BucketEntry())
        if entry_name.endswith("/asset"):
            bucket.has_asset = True
        elif entry_name.endswith("/asset.meta"):
            bucket.has_meta = True
        elif entry_name.endswith("/pathname"):
            payload = _read_exact(stream, payload_len, name=name, entry=entry_name)
            first_line = payload[: header.size].decode("utf-8", errors="replace").split("\n", 1)[0]
            bucket.pathname = normalize_path(first_line.rstrip("\r"))
            continue

        _skip(stream, payload_len, name=name, entry=entry_name)

    return buckets


def _read_exact_or_eof(stream: BinaryIO, *, name: str) -> Optional[bytes]:
    block = stream.read(BLOCK_SIZE)
    if not block:
        return None
    while len(block) < BLOCK_SIZE:
        more = stream.read(BLOCK_SIZE - len(block))
        if not more:
            raise TruncatedArchive(name, f"partial TAR header ({len(block)} bytes)")
        block += more
    return block


def catalog_tar_stream(stream: BinaryIO, *, name: str = "<stream>") -> List[str]:
    """Return the sorted, de-duplicated logical file list of a bundle TAR stream."""

    buckets = scan_buckets(stream, name=name)

    files = set()
    dropped = 0
    for bucket in buckets.values():
        if not bucket.pathname:
            # TODO: surface dropped buckets to callers once the CLI can report container warnings.
            dropped += 1
            continue
        if bucket.has_asset:
            files.add(bucket.pathname)
        if bucket.has_meta:
            files.add(meta_companion(bucket.pathname))

    if dropped:
        logger.warning("%s: %d hash bucket(s) without a pathname entry were excluded", name, dropped)

    return sorted(files)


def catalog_container(path: str | Path) -> List[str]:
    p = Path(path)
    try:
        with gzip.open(str(p), "rb") as f:
            return catalog_tar_stream(f, name=str(p))
    except gzip.BadGzipFile as e:
        raise InvalidContainerFormat(str(p), str(e)) from e
    except EOFError as e:
        raise TruncatedArchive(str(p), f"compressed stream ended early: {e}") from e
