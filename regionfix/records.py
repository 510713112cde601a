from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import BinaryIO, Dict

from . import nbt
from .codec import Codec
from .constants import (
    COMPRESSION_TAGS,
    MAX_RECORD_LENGTH,
    RECORD_LENGTH_SIZE,
    SECTOR_SIZE,
)
from .errors import InvalidCompressionError, InvalidLengthError, TruncatedRecordError
from .tables import sectors_for_length


# Record header (fixed 5 bytes, big-endian)
#  - length u32 (compression byte + payload)
#  - compression u8 (0=raw, 1=gzip, 2=zlib)
_REC_HDR_STRUCT = struct.Struct(">IB")


@dataclass
class RecordHeader:
    length: int
    compression: int

    @property
    def payload_len(self) -> int:
        return self.length - 1

    @property
    def sector_count(self) -> int:
        return sectors_for_length(self.length)

    def pack(self) -> bytes:
        return _REC_HDR_STRUCT.pack(self.length, self.compression)


def read_exact(f: BinaryIO, n: int) -> bytes:
    b = f.read(n)
    if len(b) != n:
        raise TruncatedRecordError(f"Unexpected EOF: wanted {n} bytes, got {len(b)}")
    return b


def read_record_header(f: BinaryIO, sector_offset: int) -> RecordHeader:
    f.seek(sector_offset * SECTOR_SIZE)
    length, compression = _REC_HDR_STRUCT.unpack(read_exact(f, _REC_HDR_STRUCT.size))
    if length == 0 or length > MAX_RECORD_LENGTH:
        raise InvalidLengthError(length)
    return RecordHeader(length=length, compression=compression)


def open_payload(f: BinaryIO, sector_offset: int, header: RecordHeader) -> BinaryIO:
    """Return a stream over the decompressed payload of the record at `sector_offset`.

    Raises InvalidCompressionError without reading anything for unknown tags.
    """
    if header.compression not in COMPRESSION_TAGS:
        raise InvalidCompressionError(header.compression)
    f.seek(sector_offset * SECTOR_SIZE + _REC_HDR_STRUCT.size)
    data = read_exact(f, header.payload_len)
    return Codec(header.compression).open(data)


def read_chunk_tree(f: BinaryIO, sector_offset: int, header: RecordHeader) -> Dict[str, nbt.NBTValue]:
    with open_payload(f, sector_offset, header) as stream:
        return nbt.load(stream)


def write_compression_tag(f: BinaryIO, sector_offset: int, compression: int) -> None:
    """Overwrite only the compression byte of a record; the payload is left alone."""
    f.seek(sector_offset * SECTOR_SIZE + RECORD_LENGTH_SIZE)
    f.write(bytes([compression & 0xFF]))


def encode_record(payload: bytes, compression: int) -> bytes:
    """Frame an uncompressed payload as a chunk record."""
    data = Codec(compression).compress(payload)
    return RecordHeader(length=len(data) + 1, compression=compression).pack() + data
