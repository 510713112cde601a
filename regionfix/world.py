from __future__ import annotations

import concurrent.futures as _fut
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

from .constants import REGION_DIRNAME, REGION_SUFFIX
from .errors import RegionError, RegionHeaderError
from .region import open_container
from .scan import ScanOptions
from .stats import ScanStatistics


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, Path], None]


@dataclass
class ScanReport:
    statistics: ScanStatistics = field(default_factory=ScanStatistics)
    scanned: int = 0
    failed: List[Tuple[Path, str]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.scanned + len(self.failed)


def _scan_one(path: Path, options: ScanOptions) -> ScanStatistics:
    try:
        region = open_container(path, writable=options.repair)
    except RegionHeaderError:
        if options.fix_delete:
            logger.warning("Deleting region file %s: header tables are unreadable", path)
            os.remove(path)
        raise
    with region:
        return region.scan(options)


class WorldFolder:
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    @property
    def region_dir(self) -> Path:
        return self.path / REGION_DIRNAME

    def region_paths(self) -> List[Path]:
        """Region files of the world, sorted. Raises OSError if the directory cannot be listed."""
        names = os.listdir(self.region_dir)
        return sorted(
            self.region_dir / name
            for name in names
            if name.endswith(REGION_SUFFIX) and (self.region_dir / name).is_file()
        )

    def count_chunks(self) -> int:
        """Counts all chunks of a world; unreadable files are logged and skipped."""
        count = 0
        for path in self.region_paths():
            try:
                with open_container(path) as region:
                    count += region.chunk_count()
            except (RegionError, OSError) as exc:
                logger.error("Failed to open region file %s: %s", path, exc)
        return count

    def scan_files(
        self,
        options: ScanOptions,
        *,
        jobs: int = 4,
        progress: Optional[ProgressCallback] = None,
    ) -> ScanReport:
        """Scan every region file in parallel and merge the statistics.

        Each worker owns one file; results and progress are handled in the calling
        thread as workers finish. A file that fails is logged and left out of the totals.
        """
        paths = self.region_paths()
        report = ScanReport()
        with _fut.ThreadPoolExecutor(max_workers=max(1, int(jobs))) as ex:
            futures = {ex.submit(_scan_one, p, options): p for p in paths}
            for done, fut in enumerate(_fut.as_completed(futures), start=1):
                path = futures[fut]
                try:
                    stats = fut.result()
                except (RegionError, OSError) as exc:
                    logger.error("Failed to scan region file %s: %s", path, exc)
                    report.failed.append((path, str(exc)))
                else:
                    logger.debug("Statistics for %s:\n%s", path, stats)
                    report.statistics = report.statistics + stats
                    report.scanned += 1
                if progress is not None:
                    progress(done, len(paths), path)
        return report
