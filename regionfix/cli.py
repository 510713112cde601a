from __future__ import annotations

import argparse
import json as _json
import logging
import sys
from pathlib import Path
from typing import List

from regionfix.scan import ScanOptions
from regionfix.world import WorldFolder


logger = logging.getLogger("regionfix")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )


def cmd_count(world: str) -> int:
    """Print the total number of chunks in a world.

    Args:
        world: Path to the world folder (region files live in <world>/region).

    Returns:
        The chunk count.
    """
    count = WorldFolder(world).count_chunks()
    print(f"Chunk Count: {count}")
    return count


def cmd_scan(
    world: str,
    *,
    fix: bool = False,
    delete: bool = False,
    jobs: int = 4,
    as_json: bool = False,
    quiet: bool = False,
) -> bool:
    """Scan all region files of a world; optionally repair them.

    Args:
        world: Path to the world folder.
        fix: Correct sector counts and compression tags, close gaps.
        delete: Additionally remove records that cannot be recovered.
        jobs: Maximum parallel workers (one region file each).
        as_json: When True, print a JSON result summary.
        quiet: Suppress the progress line.

    Returns:
        False only when region files exist and none of them could be scanned.
    """
    options = ScanOptions(fix=fix, fix_delete=delete)
    if options.repair:
        logger.info("Fixing fixable errors.")
    if delete:
        logger.info("Deleting unrecoverable chunks.")
    logger.info("Scanning region files for errors...")

    show_progress = not quiet and not as_json and not logger.isEnabledFor(logging.DEBUG)

    def _progress(done: int, total: int, path: Path) -> None:
        print(f"\r [{done}/{total}] {path.name:<24}", end="", file=sys.stderr, flush=True)

    report = WorldFolder(world).scan_files(options, jobs=jobs, progress=_progress if show_progress else None)
    if show_progress and report.total:
        print(file=sys.stderr)

    if as_json:
        print(
            _json.dumps(
                {
                    "statistics": report.statistics.as_dict(),
                    "scanned": report.scanned,
                    "failed": [{"path": str(p), "error": msg} for p, msg in report.failed],
                }
            )
        )
    else:
        print("Scan Results:")
        print(report.statistics)
        for path, msg in report.failed:
            print(f"FAILED   {path}: {msg}")
        print(f"Summary: scanned={report.scanned} failed={len(report.failed)}")
    return not (report.total and report.scanned == 0)


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(
        prog="regionfix",
        description="Audit and repair the region files of a world",
    )
    ap.add_argument("world", help="Path to the world folder")
    ap.add_argument("--verbose", "-v", action="store_true", help="Forces verbose output")
    sub = ap.add_subparsers(dest="cmd", required=True)

    sub.add_parser("count", help="Return the total number of chunks in the world")

    ap_scan = sub.add_parser("scan", help="Scan for errors in the region files and optionally fix them")
    ap_scan.add_argument("--fix", "-f", action="store_true", help="Fixes errors that can be fixed without problems")
    ap_scan.add_argument("--delete", "-d", action="store_true", help="Deletes corrupted data (implies --fix)")
    ap_scan.add_argument("--jobs", "-j", type=int, default=4, help="Parallel jobs (default 4)")
    ap_scan.add_argument("--json", action="store_true", help="Emit JSON result summary")
    ap_scan.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    args = ap.parse_args(argv)
    _configure_logging(args.verbose)
    try:
        if args.cmd == "count":
            cmd_count(args.world)
        elif args.cmd == "scan":
            success = cmd_scan(
                args.world,
                fix=args.fix,
                delete=args.delete,
                jobs=args.jobs,
                as_json=args.json,
                quiet=args.quiet,
            )
            sys.exit(0 if success else 1)
        else:
            raise RuntimeError("Unknown command")
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except RuntimeError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
