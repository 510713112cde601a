from __future__ import annotations

import argparse
import os
import random
import sys
from typing import Optional, Tuple

from regionfix.constants import HEADER_SIZE, RECORD_LENGTH_SIZE, SECTOR_SIZE
from regionfix.errors import RegionError
from regionfix.records import read_record_header, write_compression_tag
from regionfix.region import open_container
from regionfix.tables import LocationEntry, grid_index, write_location_table


def _flip_byte(path: str, offset: int, xor_val: int = 0xFF) -> None:
    if offset < 0:
        raise ValueError("Offset must be non-negative")
    with open(path, "r+b") as f:
        f.seek(offset)
        b = f.read(1)
        if not b:
            raise ValueError("Offset beyond end of file")
        f.seek(offset)
        f.write(bytes([b[0] ^ (xor_val & 0xFF)]))
        f.flush()
        os.fsync(f.fileno())


def _slot(args: argparse.Namespace) -> int:
    return grid_index(args.x, args.z)


def cmd_by_offset(args: argparse.Namespace) -> None:
    _flip_byte(args.region, args.offset, xor_val=args.xor)
    print(f"Flipped 1 byte at offset {args.offset}")


def cmd_compression(args: argparse.Namespace) -> None:
    with open_container(args.region, writable=True) as r:
        entry = r.locations[_slot(args)]
        if not entry.is_valid:
            raise ValueError(f"No chunk stored for ({args.x}, {args.z})")
        write_compression_tag(r.f, entry.offset, args.tag)
    print(f"Set compression tag of chunk ({args.x}, {args.z}) to {args.tag}")


def cmd_sectors(args: argparse.Namespace) -> None:
    with open_container(args.region, writable=True) as r:
        idx = _slot(args)
        entry = r.locations[idx]
        r.locations[idx] = LocationEntry(entry.offset, args.count)
        write_location_table(r.f, r.locations)
    print(f"Set sector count of chunk ({args.x}, {args.z}) to {args.count}")


def cmd_pointer(args: argparse.Namespace) -> None:
    with open_container(args.region, writable=True) as r:
        source = r.locations[grid_index(args.from_x, args.from_z)]
        if not source.is_valid:
            raise ValueError(f"No chunk stored for ({args.from_x}, {args.from_z})")
        r.locations[_slot(args)] = source
        write_location_table(r.f, r.locations)
    print(f"Chunk ({args.x}, {args.z}) now points at sector {source.offset}")


def _damage_range(args: argparse.Namespace) -> Tuple[int, int]:
    """Byte range eligible for random flips: one chunk's payload, or every record."""
    if args.x is None and args.z is None:
        size = os.path.getsize(args.region)
        if size <= HEADER_SIZE:
            raise ValueError("Region file holds no chunk records")
        return HEADER_SIZE, size
    if args.x is None or args.z is None:
        raise ValueError("--x and --z must be given together")
    with open_container(args.region) as r:
        entry = r.locations[_slot(args)]
        if not entry.is_valid:
            raise ValueError(f"No chunk stored for ({args.x}, {args.z})")
        header = read_record_header(r.f, entry.offset)
    # skip the length and compression fields so the record stays framed
    start = entry.offset * SECTOR_SIZE + RECORD_LENGTH_SIZE + 1
    return start, start + header.payload_len


def cmd_random(args: argparse.Namespace) -> None:
    rng = random.Random(args.seed)
    start, end = _damage_range(args)
    if end <= start:
        raise ValueError("Nothing to damage")
    for _ in range(args.count):
        _flip_byte(args.region, rng.randrange(start, end), xor_val=args.xor)
    print(f"Flipped {args.count} byte(s) between offsets {start} and {end}")


def main(argv: Optional[list[str]] = None) -> None:
    ap = argparse.ArgumentParser(prog="regionfix.corrupt", description="Damage region files for testing")
    sub = ap.add_subparsers(dest="cmd", required=True)

    def _chunk_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("region", help="Path to .mca region file")
        p.add_argument("--x", type=int, required=True, help="Chunk X")
        p.add_argument("--z", type=int, required=True, help="Chunk Z")

    p_off = sub.add_parser("by-offset", help="Flip one byte at an absolute file offset")
    p_off.add_argument("region", help="Path to .mca region file")
    p_off.add_argument("--offset", type=int, required=True, help="Absolute byte offset in file")
    p_off.add_argument("--xor", type=lambda x: int(x, 0), default=0xFF, help="XOR mask to apply (default 0xFF)")
    p_off.set_defaults(func=cmd_by_offset)

    p_comp = sub.add_parser("compression", help="Overwrite the compression tag of a chunk record")
    _chunk_args(p_comp)
    p_comp.add_argument("--tag", type=int, required=True, help="New compression tag byte")
    p_comp.set_defaults(func=cmd_compression)

    p_sec = sub.add_parser("sectors", help="Overwrite the sector count of a location entry")
    _chunk_args(p_sec)
    p_sec.add_argument("--count", type=int, required=True, help="New sector count")
    p_sec.set_defaults(func=cmd_sectors)

    p_ptr = sub.add_parser("pointer", help="Point a location entry at another chunk's record")
    _chunk_args(p_ptr)
    p_ptr.add_argument("--from-x", type=int, required=True, help="X of the chunk whose record is reused")
    p_ptr.add_argument("--from-z", type=int, required=True, help="Z of the chunk whose record is reused")
    p_ptr.set_defaults(func=cmd_pointer)

    p_rand = sub.add_parser("random", help="Flip N random bytes in the records (or in one chunk's payload)")
    p_rand.add_argument("region", help="Path to .mca region file")
    p_rand.add_argument("--x", type=int, default=None, help="Chunk X (limit damage to this chunk)")
    p_rand.add_argument("--z", type=int, default=None, help="Chunk Z (limit damage to this chunk)")
    p_rand.add_argument("--count", type=int, default=1, help="Number of random byte flips (default 1)")
    p_rand.add_argument("--seed", type=int, default=None, help="PRNG seed for reproducibility")
    p_rand.add_argument("--xor", type=lambda x: int(x, 0), default=0xFF, help="XOR mask to apply (default 0xFF)")
    p_rand.set_defaults(func=cmd_random)

    args = ap.parse_args(argv)
    try:
        args.func(args)
    except (RegionError, OSError, ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
