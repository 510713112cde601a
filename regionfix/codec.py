from __future__ import annotations

import gzip
import io
import zlib
from typing import BinaryIO, Optional

from .constants import COMPRESSION_GZIP, COMPRESSION_NONE, COMPRESSION_ZLIB
from .errors import InvalidCompressionError


_READ_SIZE = 65536


class ZlibReader(io.RawIOBase):
    """Read-only stream that inflates a zlib buffer on demand."""

    def __init__(self, data: bytes):
        super().__init__()
        self._src = memoryview(data)
        self._pos = 0
        self._decomp = zlib.decompressobj()

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        want = len(b)
        if not want:
            return 0
        out = b""
        while not out and not self._decomp.eof:
            data = self._decomp.unconsumed_tail
            if not data:
                data = self._src[self._pos : self._pos + _READ_SIZE]
                self._pos += len(data)
                if not data:
                    # Truncated stream; the consumer sees a short read
                    break
            out = self._decomp.decompress(data, want)
        b[: len(out)] = out
        return len(out)


class Codec:
    def __init__(self, compression: int, level: Optional[int] = None):
        self.compression = compression
        self.level = level

    def compress(self, data: bytes) -> bytes:
        if self.compression == COMPRESSION_NONE:
            return data
        if self.compression == COMPRESSION_GZIP:
            return gzip.compress(data, self.level if self.level is not None else 9)
        if self.compression == COMPRESSION_ZLIB:
            return zlib.compress(data, self.level if self.level is not None else 6)
        raise InvalidCompressionError(self.compression)

    def open(self, data: bytes) -> BinaryIO:
        """Wrap compressed bytes in a stream that yields the decompressed payload."""
        if self.compression == COMPRESSION_NONE:
            return io.BytesIO(data)
        if self.compression == COMPRESSION_GZIP:
            return gzip.GzipFile(fileobj=io.BytesIO(data), mode="rb")
        if self.compression == COMPRESSION_ZLIB:
            return io.BufferedReader(ZlibReader(data))
        raise InvalidCompressionError(self.compression)

    def decompress(self, data: bytes) -> bytes:
        with self.open(data) as stream:
            return stream.read()
