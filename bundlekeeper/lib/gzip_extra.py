from __future__ import annotations

import logging
import struct
from pathlib import Path
from typing import BinaryIO

from ..errors import InvalidContainerFormat, MetadataMissing

logger = logging.getLogger(__name__)

GZIP_MAGIC = (31, 139)
GZIP_HEADER_SIZE = 10
FLAG_FEXTRA = 0x04
SUBFIELD_HEADER_SIZE = 4

# Subfield id carrying the bundle's JSON metadata blob.
METADATA_SUBFIELD_ID = b"A$"


def _read(stream: BinaryIO, n: int, *, name: str, what: str) -> bytes:
    data = stream.read(n)
    if len(data) != n:
        raise InvalidContainerFormat(name, f"stream ended inside {what} ({len(data)}/{n} bytes)")
    return data


def read_gzip_metadata(stream: BinaryIO, *, name: str = "<stream>") -> str:
    """Return the metadata blob embedded in a gzip header's extra field.

    Returns "" when the header carries no extra field at all. Raises
    MetadataMissing when the extra field exists but has no metadata subfield.
    """

    header = stream.read(GZIP_HEADER_SIZE)
    if len(header) < 2 or (header[0], header[1]) != GZIP_MAGIC:
        got = tuple(header[:2])
        raise InvalidContainerFormat(
            name, f"gzip id bytes should be {GZIP_MAGIC[0]} and {GZIP_MAGIC[1]}, got {got}"
        )
    if len(header) != GZIP_HEADER_SIZE:
        raise InvalidContainerFormat(name, "truncated gzip header")

    flags = header[3]
    if not flags & FLAG_FEXTRA:
        logger.warning("gzip header of %s has no extra field; no bundle metadata supplied", name)
        return ""

    (remaining,) = struct.unpack("<H", _read(stream, 2, name=name, what="extra field length"))

    while remaining > SUBFIELD_HEADER_SIZE:
        sub = _read(stream, SUBFIELD_HEADER_SIZE, name=name, what="extra subfield header")
        sub_id = sub[:2]
        (length,) = struct.unpack("<H", sub[2:4])
        remaining -= SUBFIELD_HEADER_SIZE
        if length > remaining:
            raise InvalidContainerFormat(
                name, f"extra subfield {sub_id!r} declares {length} bytes but only {remaining} remain"
            )

        payload = _read(stream, length, name=name, what="extra subfield payload")
        if sub_id == METADATA_SUBFIELD_ID:
            return payload.decode("utf-8", errors="replace")

        logger.debug("Skipping gzip extra subfield %r (%d bytes) in %s", sub_id, length, name)
        remaining -= length

    raise MetadataMissing(name, "no bundle metadata subfield in gzip extra field")


def read_container_metadata(path: str | Path) -> str:
    p = Path(path)
    with p.open("rb") as f:
        return read_gzip_metadata(f, name=str(p))
