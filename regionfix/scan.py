from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import BinaryIO, List, Tuple

from .constants import (
    COMPRESSION_GZIP,
    COMPRESSION_TAGS,
    HEADER_SECTORS,
    REASONABLE_RECORD_LENGTH,
    SECTOR_SIZE,
)
from .defrag import Relocation, defragment
from .errors import ChunkError, DecodeError, PayloadReadError, ValidationError
from .records import read_chunk_tree, read_record_header, write_compression_tag
from .stats import ScanStatistics
from .tables import LocationEntry, LocationTable, write_location_table
from .validate import check_payload


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanOptions:
    fix: bool = False
    fix_delete: bool = False

    @property
    def repair(self) -> bool:
        """Bookkeeping repairs are on; removing records implies them."""
        return self.fix or self.fix_delete


class RegionScanner:
    """Checks every chunk record of one open region file and optionally repairs it.

    Entries are visited in ascending sector order so gaps can be measured against the
    on-disk layout. Chunk-level problems only increment counters; OSError propagates
    and leaves the location table on disk untouched.
    """

    def __init__(self, f: BinaryIO, locations: LocationTable, *, name: str = "<region>"):
        self.f = f
        self.locations = locations
        self.name = name

    def _file_size(self) -> int:
        self.f.seek(0, os.SEEK_END)
        return self.f.tell()

    def run(self, options: ScanOptions) -> ScanStatistics:
        stats = ScanStatistics()
        relocations: List[Relocation] = []
        file_size = self._file_size()
        capacity = -(-file_size // SECTOR_SIZE)

        entries = sorted(self.locations.valid_entries(), key=lambda item: (item[1].offset, item[0]))
        next_offsets = [e.offset for _, e in entries[1:]] + [capacity]

        # furthest sector claimed so far; follows the original layout, not the repaired one
        claimed = HEADER_SECTORS
        for (index, entry), next_offset in zip(entries, next_offsets):
            stats.total_chunks += 1
            expected = claimed
            claimed = max(claimed, entry.end)

            # bounds first: a pointer past the end says nothing about gaps
            if entry.end > capacity:
                stats.invalid_chunk_pointer += 1
                logger.debug("%s: chunk %d points outside the file (sectors %d..%d of %d)", self.name, index, entry.offset, entry.end, capacity)
                if options.fix_delete:
                    self.locations.clear(index)
                continue

            if entry.offset > expected:
                gap = entry.offset - expected
                stats.unused_space += gap * SECTOR_SIZE
                if options.repair:
                    relocations.append(Relocation(position=entry.offset, delta=-gap))

            # sectors shared with the records before or after this one are never removable
            removable = (max(entry.offset, expected), min(entry.end, next_offset))
            self._check_entry(index, entry, stats, relocations, options, removable=removable)

        if options.repair:
            self._finalize(stats, relocations, capacity, file_size)
        return stats

    def _check_entry(
        self,
        index: int,
        entry: LocationEntry,
        stats: ScanStatistics,
        relocations: List[Relocation],
        options: ScanOptions,
        *,
        removable: Tuple[int, int],
    ) -> None:
        try:
            header = read_record_header(self.f, entry.offset)
        except ChunkError as exc:
            stats.failed_to_read += 1
            logger.debug("%s: failed to read chunk %d at sector %d: %s", self.name, index, entry.offset, exc)
            if options.fix_delete:
                self._delete(index, removable, relocations)
            return

        if header.compression not in COMPRESSION_TAGS:
            stats.invalid_compression_method += 1
            logger.debug("%s: chunk %d has invalid compression method %d", self.name, index, header.compression)
            if options.repair:
                # a guess; the payload is left untouched and may still not decode
                write_compression_tag(self.f, entry.offset, COMPRESSION_GZIP)
        else:
            try:
                coords = check_payload(read_chunk_tree(self.f, entry.offset, header))
            except PayloadReadError as exc:
                stats.corrupted_compression += 1
                failure = exc
            except DecodeError as exc:
                stats.corrupted_nbt += 1
                failure = exc
            except ValidationError as exc:
                stats.missing_field += 1
                failure = exc
            except ChunkError as exc:
                stats.failed_to_read += 1
                failure = exc
            else:
                failure = None

            if failure is not None:
                logger.debug("%s: chunk %d at sector %d is damaged: %s", self.name, index, entry.offset, failure)
                if options.fix_delete:
                    self._delete(index, removable, relocations)
                    return
            elif coords.known and coords.grid_index() != index:
                stats.invalid_chunk_pointer += 1
                logger.debug("%s: chunk %d holds data for (%d, %d)", self.name, index, coords.x, coords.z)
                if options.fix_delete:
                    # the bytes may still belong to another slot, so they stay in place
                    self.locations.clear(index)
                    return

        required = header.sector_count
        if required != entry.sector_count or header.length >= REASONABLE_RECORD_LENGTH:
            stats.invalid_length += 1
            logger.debug("%s: chunk %d declares %d sectors, record needs %d", self.name, index, entry.sector_count, required)
            if options.repair:
                self.locations[index] = LocationEntry(entry.offset, required)

    def _delete(self, index: int, removable: Tuple[int, int], relocations: List[Relocation]) -> None:
        """Clear the slot and remove the sectors in [start, stop) from the file."""
        self.locations.clear(index)
        start, stop = removable
        if stop > start:
            relocations.append(Relocation(position=stop, delta=start - stop))

    def _finalize(self, stats: ScanStatistics, relocations: List[Relocation], capacity: int, file_size: int) -> None:
        new_size = file_size
        if relocations:
            # moves run to the end of the file so corrected sector counts still cover copied bytes
            new_size = defragment(self.f, self.locations, relocations, capacity)
        write_location_table(self.f, self.locations)
        if relocations and new_size < file_size:
            self.f.truncate(new_size)
            stats.shrunk_size += file_size - new_size
            logger.info("%s: compacted by %d KiB", self.name, (file_size - new_size) // 1024)
        self.f.flush()
        os.fsync(self.f.fileno())
