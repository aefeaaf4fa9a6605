"""Reading ZIM archives: header, pointer lists, directory entries and clusters."""

from __future__ import annotations

import hashlib
import logging
import mmap
import os
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Union
from uuid import UUID

from zimread.cluster import Cluster
from zimread.errors import (
    InvalidChecksumError,
    InvalidHeaderError,
    InvalidMagicNumberError,
    InvalidVersionError,
    MissingChecksumError,
    OutOfBoundsError,
    ParsingError,
    UnknownMimeTypeError,
)
from zimread.model import ClusterTarget, MimeKind, MimeType, Namespace, RedirectTarget

log = logging.getLogger(__name__)

ZIM_MAGIC_NUMBER = 72173914
"""Magic number that opens every ZIM file."""

_HEADER = struct.Struct("<IHH16sIIQQQQIIQ")
_HEADER_SIZE = 80
_UNDEFINED_PAGE = 0xFFFFFFFF
_CHECKSUM_SIZE = 16
_STRING_CHUNK = 256

Target = Union[RedirectTarget, ClusterTarget]


def _read_cstring(buf: memoryview, pos: int) -> tuple[bytes, int]:
    """Read a NUL-terminated byte string starting at `pos`; return it and the next position."""
    parts = []
    while True:
        chunk = bytes(buf[pos:pos + _STRING_CHUNK])
        if not chunk:
            raise ParsingError("unterminated string")
        end = chunk.find(0)
        if end >= 0:
            parts.append(chunk[:end])
            return b"".join(parts), pos + end + 1
        parts.append(chunk)
        pos += len(chunk)


def _decode(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ParsingError(exc) from exc


def _unpack(fmt: str, buf: memoryview, pos: int) -> tuple:
    try:
        return struct.unpack_from(fmt, buf, pos)
    except struct.error as exc:
        raise ParsingError(exc) from exc


@dataclass(frozen=True)
class ZimHeader:
    """The fixed header at the start of a ZIM file."""

    version_major: int
    version_minor: int
    uuid: UUID
    article_count: int
    cluster_count: int
    url_ptr_pos: int
    title_ptr_pos: int
    cluster_ptr_pos: int
    mime_list_pos: int
    main_page: Optional[int]
    layout_page: Optional[int]
    checksum_pos: int
    geo_index_pos: Optional[int]


@dataclass(frozen=True)
class DirectoryEntry:
    """Metadata about one article."""

    mime_type: MimeType
    namespace: Namespace
    revision: Optional[int]
    url: str
    title: str
    target: Optional[Target]

    @classmethod
    def parse(cls, zim, data):
        """Parse a directory entry from the start of `data`."""
        with memoryview(data) as buf:
            (mime_id,) = _unpack("<H", buf, 0)
            mime_type = zim.get_mimetype(mime_id)
            if mime_type is None:
                raise UnknownMimeTypeError()
            _, namespace = _unpack("<BB", buf, 2)
            pos = 4
            revision = None
            if len(buf) - pos >= 4:
                (revision,) = _unpack("<I", buf, pos)
                pos += 4

            target: Optional[Target]
            if mime_type.kind is MimeKind.REDIRECT:
                (index,) = _unpack("<I", buf, pos)
                pos += 4
                target = RedirectTarget(index)
            elif mime_type.kind in (MimeKind.LINK_TARGET, MimeKind.DELETED_ENTRY):
                target = None
            else:
                cluster, blob = _unpack("<II", buf, pos)
                pos += 8
                target = ClusterTarget(cluster, blob)

            raw_url, pos = _read_cstring(buf, pos)
            url = _decode(raw_url)
            raw_title, pos = _read_cstring(buf, pos)
            title = _decode(raw_title)

        return cls(
            mime_type=mime_type,
            namespace=Namespace.from_byte(namespace),
            revision=revision,
            url=url,
            title=title,
            target=target,
        )


def _defined(value: int) -> Optional[int]:
    return None if value == _UNDEFINED_PAGE else value


def parse_header(data):
    """Parse the header and the MIME type list; return (header, mime_table)."""
    with memoryview(data) as buf:
        (magic,) = _unpack("<I", buf, 0)
        if magic != ZIM_MAGIC_NUMBER:
            raise InvalidMagicNumberError()
        (version_major,) = _unpack("<H", buf, 4)
        if version_major not in (5, 6):
            raise InvalidVersionError(version_major)

        (
            _,
            _,
            version_minor,
            raw_uuid,
            article_count,
            cluster_count,
            url_ptr_pos,
            title_ptr_pos,
            cluster_ptr_pos,
            mime_list_pos,
            main_page,
            layout_page,
            checksum_pos,
        ) = _unpack(_HEADER.format, buf, 0)
        if _HEADER.size != _HEADER_SIZE:
            raise InvalidHeaderError()

        pos = _HEADER_SIZE
        geo_index_pos = None
        if mime_list_pos > _HEADER_SIZE:
            (geo_index_pos,) = _unpack("<Q", buf, pos)
            pos += 8

        mime_table = []
        while True:
            raw, pos = _read_cstring(buf, pos)
            if not raw:
                break
            mime_table.append(_decode(raw))

    header = ZimHeader(
        version_major=version_major,
        version_minor=version_minor,
        uuid=UUID(bytes=raw_uuid),
        article_count=article_count,
        cluster_count=cluster_count,
        url_ptr_pos=url_ptr_pos,
        title_ptr_pos=title_ptr_pos,
        cluster_ptr_pos=cluster_ptr_pos,
        mime_list_pos=mime_list_pos,
        main_page=_defined(main_page),
        layout_page=_defined(layout_page),
        checksum_pos=checksum_pos,
        geo_index_pos=geo_index_pos,
    )
    return header, mime_table


def _parse_pointer_list(buf: memoryview, start: int, count: int, code: str) -> list[int]:
    width = struct.calcsize("<" + code)
    end = start + count * width
    if end > len(buf):
        raise OutOfBoundsError()
    return list(struct.unpack_from(f"<{count}{code}", buf, start))


def _read_checksum(buf: memoryview, checksum_pos: int) -> bytes:
    raw = bytes(buf[checksum_pos:checksum_pos + _CHECKSUM_SIZE])
    if len(raw) != _CHECKSUM_SIZE:
        raise MissingChecksumError()
    return raw


def compute_checksum(path, checksum_pos):
    """MD5 digest of the first `checksum_pos` bytes of the file at `path`."""
    digest = hashlib.md5()
    remaining = checksum_pos
    with open(path, "rb") as handle:
        while remaining > 0:
            chunk = handle.read(min(remaining, 1 << 20))
            if not chunk:
                break
            digest.update(chunk)
            remaining -= len(chunk)
    return digest.digest()


class Zim:
    """An open ZIM file.

    The header and the pointer lists are parsed on opening; entries and
    clusters are read only when asked for.
    """

    def __init__(self, path):
        self.file_path = Path(path)
        self._map: Optional[mmap.mmap] = None
        with open(self.file_path, "rb") as handle:
            if os.fstat(handle.fileno()).st_size > 0:
                self._map = mmap.mmap(handle.fileno(), 0, access=mmap.ACCESS_READ)
        data = self._map if self._map is not None else b""
        self._view = memoryview(data)
        try:
            self.header, self.mime_table = parse_header(data)
            header = self.header
            self.url_list = _parse_pointer_list(
                self._view, header.url_ptr_pos, header.article_count, "Q"
            )
            self.article_list = _parse_pointer_list(
                self._view, header.title_ptr_pos, header.article_count, "I"
            )
            self.cluster_list = _parse_pointer_list(
                self._view, header.cluster_ptr_pos, header.cluster_count, "Q"
            )
            self.checksum = _read_checksum(self._view, header.checksum_pos)
        except BaseException:
            self.close()
            raise

    def close(self) -> None:
        """Release the memory map of the file."""
        self._view.release()
        if self._map is not None:
            self._map.close()
            self._map = None

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    @property
    def article_count(self) -> int:
        """The number of articles in the archive."""
        return len(self.article_list)

    def verify_checksum(self) -> None:
        """Recompute the MD5 checksum; raise InvalidChecksumError on mismatch."""
        if compute_checksum(self.file_path, self.header.checksum_pos) != self.checksum:
            raise InvalidChecksumError()

    def get_mimetype(self, mime_id) -> Optional[MimeType]:
        """The MIME type for an id, or None if the id is unknown."""
        if mime_id == 0xFFFF:
            return MimeType.REDIRECT
        if mime_id == 0xFFFE:
            return MimeType.LINK_TARGET
        if mime_id == 0xFFFD:
            return MimeType.DELETED_ENTRY
        if mime_id < len(self.mime_table):
            return MimeType.of(self.mime_table[mime_id])
        log.warning("unknown mimetype idx %d", mime_id)
        return None

    def _entry_at(self, offset: int) -> DirectoryEntry:
        if offset > len(self._view):
            raise OutOfBoundsError()
        with self._view[offset:] as view:
            return DirectoryEntry.parse(self, view)

    def iterate_by_urls(self) -> Iterator[DirectoryEntry]:
        """Yield directory entries in URL order, stopping at the first unreadable one."""
        for offset in self.url_list[:self.header.article_count]:
            try:
                yield self._entry_at(offset)
            except (ParsingError, OutOfBoundsError, UnknownMimeTypeError,
                    InvalidNamespaceErrorAlias):
                return

    def get_by_url_index(self, index) -> DirectoryEntry:
        """The directory entry at position `index` of the URL pointer list."""
        if not 0 <= index < len(self.url_list):
            raise OutOfBoundsError()
        return self._entry_at(self.url_list[index])

    def get_cluster(self, index) -> Cluster:
        """The cluster at position `index` of the cluster pointer list."""
        data = self._map if self._map is not None else b""
        return Cluster(
            data,
            self.cluster_list,
            index,
            self.header.checksum_pos,
            self.header.version_major,
        )


from zimread.errors import InvalidNamespaceError as InvalidNamespaceErrorAlias  # noqa: E402