from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Dict, Iterable


@dataclass
class ScanStatistics:
    total_chunks: int = 0
    failed_to_read: int = 0
    invalid_chunk_pointer: int = 0
    invalid_length: int = 0
    invalid_compression_method: int = 0
    missing_field: int = 0
    corrupted_nbt: int = 0
    corrupted_compression: int = 0
    unused_space: int = 0   # bytes
    shrunk_size: int = 0    # bytes

    def __add__(self, other: "ScanStatistics") -> "ScanStatistics":
        if not isinstance(other, ScanStatistics):
            return NotImplemented
        return ScanStatistics(**{f.name: getattr(self, f.name) + getattr(other, f.name) for f in fields(self)})

    def __radd__(self, other):
        # sum() starts from 0
        if other == 0:
            return self
        return NotImplemented

    @classmethod
    def merge(cls, items: Iterable["ScanStatistics"]) -> "ScanStatistics":
        total = cls()
        for item in items:
            total = total + item
        return total

    @property
    def anomalies(self) -> int:
        return sum(getattr(self, f.name) for f in fields(self) if f.name not in ("total_chunks", "unused_space", "shrunk_size"))

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)

    def __str__(self) -> str:
        return "\n".join(
            [
                f"  Total chunks: {self.total_chunks}",
                f"  Failed to read: {self.failed_to_read}",
                f"  Invalid chunk pointers: {self.invalid_chunk_pointer}",
                f"  Chunks with invalid length: {self.invalid_length}",
                f"  Chunks with invalid compression method: {self.invalid_compression_method}",
                f"  Chunks with missing nbt data: {self.missing_field}",
                f"  Chunks with corrupted nbt data: {self.corrupted_nbt}",
                f"  Chunks with corrupted compressed data: {self.corrupted_compression}",
                f"  Unused space: {self.unused_space // 1024} KiB",
                f"  Shrunk by: {self.shrunk_size // 1024} KiB",
            ]
        )
