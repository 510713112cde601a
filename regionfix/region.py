from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO, Optional, Union

from .errors import RegionError
from .scan import RegionScanner, ScanOptions
from .stats import ScanStatistics
from .tables import LocationTable, TimestampTable, read_header_tables


logger = logging.getLogger(__name__)


class RegionFile:
    """One region container file: header tables plus the handle used to scan it.

    Open read-only to count or audit; open writable to apply repairs. The handle is
    owned exclusively by this object until close().
    """

    def __init__(self, path: Union[str, Path], writable: bool = False):
        self.path = Path(path)
        self.writable = writable
        self.f: Optional[BinaryIO] = None
        self.locations: Optional[LocationTable] = None
        self.timestamps: Optional[TimestampTable] = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def open(self):
        if self.f is not None:
            return
        self.f = open(self.path, "r+b" if self.writable else "rb")
        try:
            self.locations, self.timestamps = read_header_tables(self.f)
        except (RegionError, OSError) as exc:
            # Ensure file handle is closed on failure to avoid leaks
            self.close()
            raise exc

    def close(self):
        if self.f is not None:
            self.f.close()
            self.f = None

    def chunk_count(self) -> int:
        if self.locations is None:
            raise RuntimeError("Region file not open")
        return self.locations.chunk_count()

    def scan(self, options: ScanOptions) -> ScanStatistics:
        if self.f is None or self.locations is None:
            raise RuntimeError("Region file not open")
        if options.repair and not self.writable:
            raise ValueError(f"Region file {self.path} was opened read-only; cannot repair")
        logger.debug("Scanning region file %s", self.path)
        return RegionScanner(self.f, self.locations, name=str(self.path)).run(options)


def open_container(path: Union[str, Path], writable: bool = False) -> RegionFile:
    region = RegionFile(path, writable=writable)
    region.open()
    return region
