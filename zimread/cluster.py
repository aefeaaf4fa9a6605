"""Clusters: groups of blobs stored, and possibly compressed, together."""

from __future__ import annotations

import bz2
import lzma
import struct
import threading
import zlib
from enum import IntEnum
from typing import Optional

import zstandard

from zimread.errors import (
    InvalidClusterExtensionError,
    MissingBlobListError,
    OutOfBoundsError,
    ParsingError,
    UnknownCompressionError,
)


class Compression(IntEnum):
    """Compression applied to a cluster."""

    NONE = 0
    ZLIB = 2
    BZIP2 = 3
    LZMA2 = 4
    ZSTD = 5

    @classmethod
    def from_raw(cls, raw):
        """Decode the compression nibble; 0 and 1 both mean no compression."""
        if raw in (0, 1):
            return cls.NONE
        try:
            return cls(raw)
        except ValueError:
            raise UnknownCompressionError(raw) from None


def parse_details(details):
    """Split the cluster info byte into (extended, compression).

    Bit 4 flags extended 8-byte offsets; the low four bits hold the compression.
    """
    return bool(details & 0x10), Compression.from_raw(details & 0x0F)


def parse_blob_list(data, extended):
    """Read the blob offset table at the start of the cluster data."""
    width, code = (8, "Q") if extended else (4, "I")
    buf = memoryview(data)
    if len(buf) < width:
        raise ParsingError("truncated blob list")
    (first,) = struct.unpack_from("<" + code, buf, 0)
    count = first // width
    if count == 0:
        raise ParsingError("empty blob list")
    if len(buf) < count * width:
        raise ParsingError("truncated blob list")
    return list(struct.unpack_from(f"<{count}{code}", buf, 0))


def _zstd_decompress(data: bytes) -> bytes:
    reader = zstandard.ZstdDecompressor().stream_reader(data, read_across_frames=True)
    with reader:
        return reader.read()


_DECOMPRESSORS = {
    Compression.LZMA2: (lzma.decompress, lzma.LZMAError),
    Compression.ZSTD: (_zstd_decompress, zstandard.ZstdError),
    Compression.ZLIB: (zlib.decompress, zlib.error),
    Compression.BZIP2: (bz2.decompress, (OSError, ValueError)),
}


class Cluster:
    """A cluster of blobs within a ZIM archive.

    Compressed clusters are decompressed lazily, on the first blob access.
    """

    def __init__(self, view, cluster_list, index, checksum_pos, version):
        if not 0 <= index < len(cluster_list):
            raise OutOfBoundsError()
        start = cluster_list[index]
        end = cluster_list[index + 1] if index + 1 < len(cluster_list) else checksum_pos
        if end <= start or end > len(view):
            raise OutOfBoundsError()

        self.start = start
        self.end = end
        self.size = end - start
        self._data = bytes(view[start:end])
        self.extended, self._compression = parse_details(self._data[0])

        if self.extended and version != 6:
            raise InvalidClusterExtensionError()

        self._lock = threading.Lock()
        self._decompressed: Optional[bytes] = None
        self._blob_list: Optional[list[int]] = None
        if self._compression is Compression.NONE:
            self._blob_list = parse_blob_list(self._data[1:], self.extended)

    @property
    def compression(self) -> Compression:
        """The compression used by this cluster."""
        return self._compression

    def _needs_decompression(self) -> bool:
        if self._compression is Compression.NONE:
            return False
        return self._decompressed is None or self._blob_list is None

    def decompress(self) -> None:
        """Decompress the cluster data and read its blob list, if not done yet."""
        with self._lock:
            if not self._needs_decompression():
                return
            if self._decompressed is None:
                decompress, failure = _DECOMPRESSORS[self._compression]
                try:
                    self._decompressed = decompress(self._data[1:])
                except failure as exc:
                    raise ParsingError(exc) from exc
            if self._blob_list is None:
                self._blob_list = parse_blob_list(self._decompressed, self.extended)

    def blob_size(self, index) -> Optional[int]:
        """Size in bytes of blob `index`, or None if unknown or out of range."""
        blobs = self._blob_list
        if blobs is None or not 0 <= index < len(blobs):
            return None
        end = blobs[index + 1] if index + 1 < len(blobs) else self.size
        return end - blobs[index]

    def get_blob(self, index) -> bytes:
        """The bytes of blob `index`."""
        if self._needs_decompression():
            self.decompress()
        blobs = self._blob_list
        if blobs is None:
            raise MissingBlobListError()
        if not 0 <= index < len(blobs):
            raise OutOfBoundsError()
        start = blobs[index]
        end = blobs[index + 1] if index + 1 < len(blobs) else self.size
        if self._compression is Compression.NONE:
            return self._data[1 + start:1 + end]
        return self._decompressed[start:end]

    def __repr__(self) -> str:
        decompressed = None if self._decompressed is None else len(self._decompressed)
        return (
            f"Cluster(extended={self.extended}, compression={self._compression.name}, "
            f"start={self.start}, end={self.end}, size={self.size}, "
            f"blob_list={self._blob_list}, decompressed_len={decompressed})"
        )