from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import BinaryIO, Iterable, List

from .constants import HEADER_SECTORS, SECTOR_SIZE
from .errors import DefragmentationError
from .tables import LocationEntry, LocationTable


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Relocation:
    """Shift everything from `position` onwards by `delta` sectors (negative = left)."""

    position: int
    delta: int


@dataclass(frozen=True)
class Move:
    """Copy sectors [start, end) to [start + shift, end + shift)."""

    start: int
    end: int
    shift: int

    def covers(self, sector: int) -> bool:
        return self.start <= sector < self.end


def plan_relocations(relocations: Iterable[Relocation], end_sector: int) -> List[Move]:
    """Turn relocation requests into an ordered list of sector moves.

    Pure: nothing is read or written. Requests are ordered by the position they end
    up at and their deltas are accumulated, so every move copies towards the start
    of the file and never overwrites bytes a later move still has to read. The last
    move runs up to `end_sector`.

    Raises DefragmentationError for an inverted range, a move that would shift data
    to the right, or one that would land on the header tables.
    """
    ordered = sorted(relocations, key=lambda r: (r.position + r.delta, r.position))
    moves: List[Move] = []
    shift = 0
    for i, rel in enumerate(ordered):
        shift += rel.delta
        start = rel.position
        end = ordered[i + 1].position if i + 1 < len(ordered) else end_sector
        if end < start:
            raise DefragmentationError(f"Inverted relocation range: sectors {start}..{end}")
        if shift > 0:
            raise DefragmentationError(f"Relocation at sector {start} would shift data right by {shift} sectors")
        if start + shift < HEADER_SECTORS:
            raise DefragmentationError(f"Relocation at sector {start} would overwrite the header tables")
        moves.append(Move(start=start, end=end, shift=shift))
    return moves


def apply_moves(f: BinaryIO, moves: Iterable[Move]) -> int:
    """Execute moves sector by sector through a one-sector buffer. Returns sectors copied."""
    buf = bytearray(SECTOR_SIZE)
    view = memoryview(buf)
    copied = 0
    for move in moves:
        if move.shift == 0:
            continue
        for sector in range(move.start, move.end):
            f.seek(sector * SECTOR_SIZE)
            n = f.readinto(buf)
            if not n:
                break
            f.seek((sector + move.shift) * SECTOR_SIZE)
            f.write(view[:n])
            copied += 1
    return copied


def relocate_table(table: LocationTable, moves: List[Move]) -> int:
    """Shift table entries that start inside a moved range. Returns entries updated."""
    updated = 0
    for index, entry in table.valid_entries():
        for move in moves:
            if move.covers(entry.offset):
                if move.shift:
                    table[index] = LocationEntry(entry.offset + move.shift, entry.sector_count)
                    updated += 1
                break
    return updated


def logical_size(table: LocationTable) -> int:
    """Bytes needed to hold every referenced sector, never less than the header."""
    end = max((e.end for e in table if not e.is_empty), default=HEADER_SECTORS)
    return max(end, HEADER_SECTORS) * SECTOR_SIZE


def defragment(f: BinaryIO, table: LocationTable, relocations: List[Relocation], end_sector: int) -> int:
    """Compact the file and update `table` in memory. Returns the new logical size in bytes.

    The plan is validated before any byte moves; the caller persists the table.
    """
    moves = plan_relocations(relocations, end_sector)
    copied = apply_moves(f, moves)
    updated = relocate_table(table, moves)
    logger.debug("Defragmented: %d moves, %d sectors copied, %d entries updated", len(moves), copied, updated)
    return logical_size(table)
