from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import BinaryIO, Iterator, List, Optional, Tuple

from .constants import (
    HEADER_SECTORS,
    HEADER_SIZE,
    MAX_SECTOR_COUNT,
    MAX_SECTOR_OFFSET,
    RECORD_LENGTH_SIZE,
    REGION_CHUNKS,
    REGION_WIDTH,
    SECTOR_SIZE,
)
from .errors import RegionHeaderError


# Both tables: 1024 big-endian u32 words.
# Location word: offset u24 (sectors) || sector_count u8
_TABLE_STRUCT = struct.Struct(f">{REGION_CHUNKS}I")


def grid_index(x: int, z: int) -> int:
    """Table slot for chunk coordinates; negative coordinates wrap into [0, 32)."""
    return (x % REGION_WIDTH) + (z % REGION_WIDTH) * REGION_WIDTH


def sectors_for_length(length: int) -> int:
    """Sectors occupied by a record whose length field is `length`."""
    return -(-(length + RECORD_LENGTH_SIZE) // SECTOR_SIZE)


@dataclass(frozen=True)
class LocationEntry:
    offset: int = 0
    sector_count: int = 0

    @property
    def is_empty(self) -> bool:
        return self.offset == 0 and self.sector_count == 0

    @property
    def is_valid(self) -> bool:
        # sectors 0 and 1 hold the header tables
        return self.offset >= HEADER_SECTORS

    @property
    def end(self) -> int:
        return self.offset + self.sector_count

    def pack(self) -> int:
        if not 0 <= self.offset <= MAX_SECTOR_OFFSET:
            raise ValueError(f"sector offset out of range: {self.offset}")
        if not 0 <= self.sector_count <= MAX_SECTOR_COUNT:
            raise ValueError(f"sector count out of range: {self.sector_count}")
        return (self.offset << 8) | self.sector_count

    @classmethod
    def unpack(cls, word: int) -> "LocationEntry":
        return cls(offset=word >> 8, sector_count=word & 0xFF)


EMPTY_ENTRY = LocationEntry()


class LocationTable:
    def __init__(self, entries: Optional[List[LocationEntry]] = None):
        if entries is None:
            entries = [EMPTY_ENTRY] * REGION_CHUNKS
        if len(entries) != REGION_CHUNKS:
            raise ValueError(f"location table needs {REGION_CHUNKS} entries")
        self._entries = list(entries)

    @classmethod
    def parse(cls, raw: bytes) -> "LocationTable":
        if len(raw) != SECTOR_SIZE:
            raise RegionHeaderError("Location table must be exactly one sector")
        return cls([LocationEntry.unpack(w) for w in _TABLE_STRUCT.unpack(raw)])

    def serialize(self) -> bytes:
        return _TABLE_STRUCT.pack(*(e.pack() for e in self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LocationEntry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> LocationEntry:
        return self._entries[index]

    def __setitem__(self, index: int, entry: LocationEntry) -> None:
        self._entries[index] = entry

    def clear(self, index: int) -> None:
        self._entries[index] = EMPTY_ENTRY

    def valid_entries(self) -> List[Tuple[int, LocationEntry]]:
        """(index, entry) pairs pointing past the header, in table order."""
        return [(i, e) for i, e in enumerate(self._entries) if e.is_valid]

    def chunk_count(self) -> int:
        return sum(1 for e in self._entries if not e.is_empty)


class TimestampTable:
    def __init__(self, timestamps: Optional[List[int]] = None):
        if timestamps is None:
            timestamps = [0] * REGION_CHUNKS
        if len(timestamps) != REGION_CHUNKS:
            raise ValueError(f"timestamp table needs {REGION_CHUNKS} entries")
        self._timestamps = list(timestamps)

    @classmethod
    def parse(cls, raw: bytes) -> "TimestampTable":
        if len(raw) != SECTOR_SIZE:
            raise RegionHeaderError("Timestamp table must be exactly one sector")
        return cls(list(_TABLE_STRUCT.unpack(raw)))

    def serialize(self) -> bytes:
        return _TABLE_STRUCT.pack(*self._timestamps)

    def __len__(self) -> int:
        return len(self._timestamps)

    def __getitem__(self, index: int) -> int:
        return self._timestamps[index]

    def __setitem__(self, index: int, value: int) -> None:
        self._timestamps[index] = value


def read_header_tables(f: BinaryIO) -> Tuple[LocationTable, TimestampTable]:
    f.seek(0)
    raw = f.read(HEADER_SIZE)
    if len(raw) != HEADER_SIZE:
        raise RegionHeaderError(f"Region header too short ({len(raw)} of {HEADER_SIZE} bytes)")
    return LocationTable.parse(raw[:SECTOR_SIZE]), TimestampTable.parse(raw[SECTOR_SIZE:])


def write_location_table(f: BinaryIO, table: LocationTable) -> None:
    f.seek(0)
    f.write(table.serialize())
