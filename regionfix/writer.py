from __future__ import annotations

from pathlib import Path
from typing import BinaryIO, Dict, Optional, Union

from . import nbt
from .constants import (
    COMPRESSION_ZLIB,
    HEADER_SECTORS,
    HEADER_SIZE,
    SECTOR_SIZE,
    TAG_ENTITIES,
    TAG_HEIGHTMAPS,
    TAG_INHABITED_TIME,
    TAG_LAST_UPDATE,
    TAG_LEVEL,
    TAG_LIQUID_TICKS,
    TAG_POST_PROCESSING,
    TAG_SECTIONS,
    TAG_STATUS,
    TAG_STRUCTURES,
    TAG_TILE_ENTITIES,
    TAG_X_POS,
    TAG_Z_POS,
)
from .records import encode_record
from .tables import LocationEntry, LocationTable, TimestampTable, grid_index


def empty_chunk(x: int, z: int, *, status: str = "full") -> Dict[str, nbt.NBTValue]:
    """Smallest chunk tree that carries every required Level field."""
    level = {
        TAG_X_POS: nbt.Int(x),
        TAG_Z_POS: nbt.Int(z),
        TAG_SECTIONS: nbt.NBTList([]),
        TAG_LAST_UPDATE: nbt.Long(0),
        TAG_INHABITED_TIME: nbt.Long(0),
        TAG_HEIGHTMAPS: nbt.Compound({}),
        TAG_ENTITIES: nbt.NBTList([]),
        TAG_TILE_ENTITIES: nbt.NBTList([]),
        TAG_LIQUID_TICKS: nbt.NBTList([]),
        TAG_POST_PROCESSING: nbt.NBTList([]),
        TAG_STATUS: nbt.String(status),
        TAG_STRUCTURES: nbt.Compound({}),
    }
    return {TAG_LEVEL: nbt.Compound(level)}


class RegionWriter:
    """Builds a region file record by record; finalize() writes the header tables."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.f: Optional[BinaryIO] = None
        self.locations = LocationTable()
        self.timestamps = TimestampTable()
        self.next_sector = HEADER_SECTORS

    def __enter__(self):
        self.f = open(self.path, "wb")
        self.f.write(b"\x00" * HEADER_SIZE)
        return self

    def __exit__(self, exc_type, exc, tb):
        if self.f is not None:
            self.f.close()
            self.f = None

    def add_chunk(
        self,
        x: int,
        z: int,
        root: Dict[str, nbt.NBTValue],
        *,
        compression: int = COMPRESSION_ZLIB,
        timestamp: int = 0,
        offset: Optional[int] = None,
    ) -> LocationEntry:
        record = encode_record(nbt.dumps(root), compression)
        return self.add_record(grid_index(x, z), record, offset=offset, timestamp=timestamp)

    def add_record(
        self,
        index: int,
        record: bytes,
        *,
        offset: Optional[int] = None,
        sector_count: Optional[int] = None,
        timestamp: int = 0,
    ) -> LocationEntry:
        """Place raw record bytes at `offset` (default: next free sector), padded to whole sectors.

        `sector_count` overrides the count written to the location table.
        """
        if self.f is None:
            raise RuntimeError("Writer not open")
        sectors = max(1, -(-len(record) // SECTOR_SIZE))
        if offset is None:
            offset = self.next_sector
        if offset < HEADER_SECTORS:
            raise ValueError("records cannot overlap the header tables")
        self.f.seek(offset * SECTOR_SIZE)
        self.f.write(record + b"\x00" * (sectors * SECTOR_SIZE - len(record)))
        self.next_sector = max(self.next_sector, offset + sectors)
        entry = LocationEntry(offset, sectors if sector_count is None else sector_count)
        self.locations[index] = entry
        self.timestamps[index] = timestamp
        return entry

    def finalize(self) -> None:
        if self.f is None:
            raise RuntimeError("Writer not open")
        self.f.seek(0)
        self.f.write(self.locations.serialize())
        self.f.write(self.timestamps.serialize())
        self.f.flush()
